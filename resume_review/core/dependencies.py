from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Callable

from resume_review.ai.factory import get_ai_client
from resume_review.ai.types import FeedbackClient
from resume_review.core.blob_store import BlobStore, LocalBlobStore
from resume_review.core.config import settings
from resume_review.core.kv_store import KeyValueStore, SqliteKeyValueStore
from resume_review.rendering.engine import RenderEngineLoader, get_render_engine_loader
from resume_review.services.previews import PreviewRegistry


@dataclass(frozen=True)
class Collaborators:
    """External capabilities the analysis pipeline works against."""

    kv: KeyValueStore
    blobs: BlobStore
    previews: PreviewRegistry
    render_engine: RenderEngineLoader
    ai_factory: Callable[[], FeedbackClient] = get_ai_client

    def ai(self) -> FeedbackClient:
        return self.ai_factory()


@lru_cache(maxsize=1)
def get_collaborators() -> Collaborators:
    return Collaborators(
        kv=SqliteKeyValueStore(settings.kv_db_path),
        blobs=LocalBlobStore(settings.blob_root),
        previews=PreviewRegistry(ttl_seconds=settings.preview_ttl_seconds),
        render_engine=get_render_engine_loader(),
    )
