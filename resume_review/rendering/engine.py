from __future__ import annotations

import asyncio
import importlib
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable

logger = logging.getLogger(__name__)

# Highest anti-aliasing level MuPDF supports for text and graphics.
_MAX_AA_LEVEL = 8


class RenderEngineUnavailable(RuntimeError):
    """The PDF rendering library could not be loaded or initialised."""


class RenderError(RuntimeError):
    def __init__(self, message: str, *, stage: str):
        super().__init__(message)
        self.stage = stage


@dataclass(frozen=True)
class RenderedPage:
    png_bytes: bytes
    width: int
    height: int


def _import_pymupdf() -> Any:
    module = importlib.import_module("fitz")
    module.TOOLS.set_aa_level(_MAX_AA_LEVEL)
    return module


class RenderEngine:
    def __init__(self, fitz_module: Any):
        self._fitz = fitz_module

    @property
    def version(self) -> str:
        return str(getattr(self._fitz, "VersionBind", "unknown"))

    def render_first_page(self, data: bytes, *, scale: float) -> RenderedPage:
        """Render page one of a PDF to PNG; blocking, run it off the event loop."""
        try:
            document = self._fitz.open(stream=data, filetype="pdf")
        except Exception as exc:
            raise RenderError(f"Unable to open PDF document: {exc}", stage="open") from exc

        try:
            if document.needs_pass:
                raise RenderError("PDF document is password protected.", stage="open")
            if document.page_count < 1:
                raise RenderError("PDF document has no pages.", stage="open")
            try:
                page = document.load_page(0)
                matrix = self._fitz.Matrix(scale, scale)
                pixmap = page.get_pixmap(matrix=matrix, alpha=False)
            except Exception as exc:
                raise RenderError(f"Failed to render page: {exc}", stage="render") from exc
            try:
                png_bytes = pixmap.tobytes("png")
            except Exception as exc:
                raise RenderError(f"Failed to create image blob: {exc}", stage="encode") from exc
            if not png_bytes:
                raise RenderError("Failed to create image blob", stage="encode")
            return RenderedPage(png_bytes=png_bytes, width=pixmap.width, height=pixmap.height)
        finally:
            document.close()


class RenderEngineLoader:
    """Loads the rendering library once and hands out the same engine.

    Callers that arrive while the first load is still running await that
    same load. A failed load is forgotten so a later call can try again.
    """

    def __init__(self, loader: Callable[[], Any] | None = None):
        self._loader = loader or _import_pymupdf
        self._engine: RenderEngine | None = None
        self._pending: asyncio.Task[RenderEngine] | None = None

    @property
    def loaded(self) -> bool:
        return self._engine is not None

    async def _load(self) -> RenderEngine:
        logger.info("render_engine_loading")
        try:
            module = await asyncio.to_thread(self._loader)
        except Exception as exc:
            logger.error("render_engine_load_failed: %s", exc)
            raise RenderEngineUnavailable(f"PDF renderer loading failed: {exc}") from exc
        logger.info("render_engine_loaded")
        return RenderEngine(module)

    async def get(self) -> RenderEngine:
        if self._engine is not None:
            return self._engine
        loop = asyncio.get_running_loop()
        # a load started on another (possibly closed) loop cannot be awaited here
        if self._pending is None or self._pending.cancelled() or self._pending.get_loop() is not loop:
            self._pending = loop.create_task(self._load())
        pending = self._pending
        try:
            engine = await asyncio.shield(pending)
        except RenderEngineUnavailable:
            if self._pending is pending:
                self._pending = None
            raise
        self._engine = engine
        self._pending = None
        return engine


@lru_cache(maxsize=1)
def get_render_engine_loader() -> RenderEngineLoader:
    return RenderEngineLoader()
