from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Literal

from resume_review.services.previews import PreviewRegistry

from .engine import RenderEngineLoader, RenderEngineUnavailable, RenderError

logger = logging.getLogger(__name__)

# Upscale so small resume fonts stay legible in the preview.
RASTER_SCALE = 4.0
PNG_MEDIA_TYPE = "image/png"

RasterErrorKind = Literal["input", "environment", "render"]

_PDF_SUFFIX = re.compile(r"\.pdf$", re.IGNORECASE)


@dataclass(frozen=True)
class UploadedDocument:
    filename: str
    content: bytes
    content_type: str = ""


@dataclass(frozen=True)
class ImageArtifact:
    filename: str
    content: bytes
    media_type: str
    width: int
    height: int


@dataclass(frozen=True)
class RasterResult:
    image_url: str = ""
    image: ImageArtifact | None = None
    error: str | None = None
    error_kind: RasterErrorKind | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.image is not None


def _failure(message: str, kind: RasterErrorKind) -> RasterResult:
    return RasterResult(error=message, error_kind=kind)


def image_filename_for(document_name: str) -> str:
    base = _PDF_SUFFIX.sub("", document_name or "") or "resume"
    return f"{base}.png"


def _looks_like_pdf(document: UploadedDocument) -> bool:
    return "pdf" in (document.content_type or "").lower() or (document.filename or "").lower().endswith(".pdf")


async def convert_pdf_to_image(
    document: UploadedDocument | None,
    *,
    engine_loader: RenderEngineLoader,
    previews: PreviewRegistry,
    scale: float = RASTER_SCALE,
) -> RasterResult:
    """Render the first page of a PDF into a PNG preview.

    Never raises for expected failures; the result carries an error message
    and its category instead. On success ``image_url`` is a preview handle
    the caller must revoke once the preview is no longer displayed.
    """
    if document is None or not document.content:
        return _failure("No file provided", "input")
    if not _looks_like_pdf(document):
        return _failure("File must be a PDF", "input")

    try:
        engine = await engine_loader.get()
    except RenderEngineUnavailable as exc:
        return _failure(f"PDF conversion is unavailable: {exc}", "environment")

    logger.info("pdf_render_started file=%s bytes=%s scale=%s", document.filename, len(document.content), scale)
    try:
        page = await asyncio.to_thread(engine.render_first_page, document.content, scale=scale)
    except RenderError as exc:
        logger.warning("pdf_render_failed file=%s stage=%s: %s", document.filename, exc.stage, exc)
        # a page that rendered but cannot be encoded is a server fault, not a bad upload
        kind: RasterErrorKind = "environment" if exc.stage == "encode" else "render"
        return _failure(f"Failed to convert PDF: {exc}", kind)
    except Exception as exc:  # noqa: BLE001 - any engine failure becomes a result
        logger.exception("pdf_render_crashed file=%s", document.filename)
        return _failure(f"Failed to convert PDF: {exc}", "render")

    image = ImageArtifact(
        filename=image_filename_for(document.filename),
        content=page.png_bytes,
        media_type=PNG_MEDIA_TYPE,
        width=page.width,
        height=page.height,
    )
    handle = previews.create(image.content, image.media_type)
    logger.info(
        "pdf_render_done file=%s image=%s size=%sx%s",
        document.filename,
        image.filename,
        image.width,
        image.height,
    )
    return RasterResult(image_url=handle.url, image=image)
