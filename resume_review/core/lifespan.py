import contextlib
from contextlib import asynccontextmanager
import asyncio
import logging

from resume_review.analytics.db import init_db, purge_old_records
from resume_review.core.config import settings
from resume_review.core.dependencies import get_collaborators
from resume_review.rendering import RenderEngineUnavailable

logger = logging.getLogger(__name__)

ANALYTICS_PURGE_INTERVAL_SECONDS = 3600


@asynccontextmanager
async def lifespan(app):
    init_db()

    stop_event = asyncio.Event()
    collaborators = app.dependency_overrides.get(get_collaborators, get_collaborators)()

    async def periodic_analytics_purge() -> None:
        # init_db already purged once at startup
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=ANALYTICS_PURGE_INTERVAL_SECONDS)
                return
            except asyncio.TimeoutError:
                pass
            try:
                deleted = purge_old_records()
                if any(deleted.values()):
                    logger.info("analytics_retention_purge deleted=%s", deleted)
            except Exception as exc:  # pragma: no cover
                logger.warning("analytics_retention_purge_failed: %s", exc)

    async def periodic_preview_purge() -> None:
        while not stop_event.is_set():
            try:
                released = collaborators.previews.purge_expired()
                if released:
                    logger.info("preview_expiry_purge released=%s", released)
            except Exception as exc:  # pragma: no cover
                logger.warning("preview_expiry_purge_failed: %s", exc)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=settings.preview_purge_interval_seconds)
            except asyncio.TimeoutError:
                continue

    async def warm_renderer() -> None:
        try:
            await collaborators.render_engine.get()
        except RenderEngineUnavailable as exc:
            logger.warning("render_engine_warmup_failed: %s", exc)

    tasks = [
        asyncio.create_task(warm_renderer()),
        asyncio.create_task(periodic_analytics_purge()),
        asyncio.create_task(periodic_preview_purge()),
    ]
    yield
    stop_event.set()
    for task in tasks:
        if not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
