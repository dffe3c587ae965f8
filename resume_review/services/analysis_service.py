from __future__ import annotations

import json
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable

from resume_review.ai.errors import AIFeedbackError
from resume_review.ai.types import DocumentInput
from resume_review.analytics.db import log_ai_analysis_run
from resume_review.core.dependencies import Collaborators
from resume_review.core.kv_store import RESUME_KEY_PREFIX, resume_key
from resume_review.feedback import (
    STORED_FEEDBACK_INVALID_MESSAGE,
    create_fallback_feedback,
    is_valid_feedback,
    parse_ai_feedback,
)
from resume_review.rendering import UploadedDocument, convert_pdf_to_image
from resume_review.schemas.feedback import AnalysisMetadata, ParseResult
from resume_review.services import upload_security
from resume_review.services.feedback_prompt import build_feedback_prompt

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[dict[str, Any]], None]


class AnalysisInputError(ValueError):
    """Bad or missing upload; the caller can fix it and resubmit."""


class AnalysisEnvironmentError(RuntimeError):
    """The server cannot render documents; retrying the same input will not help."""


class AnalysisNotFoundError(LookupError):
    pass


class AnalysisStorageError(RuntimeError):
    pass


@dataclass(frozen=True)
class JobContext:
    company_name: str | None = None
    job_title: str | None = None
    job_description: str | None = None


@dataclass(frozen=True)
class CreatedAnalysis:
    metadata: AnalysisMetadata
    preview_url: str


def _emit(progress_callback: ProgressCallback | None, stage: str, message: str) -> None:
    if progress_callback is None:
        return
    try:
        progress_callback({"stage": stage, "message": message})
    except Exception:  # pragma: no cover - progress reporting must not break analysis
        logger.debug("analysis_progress_callback_failed", exc_info=True)


def _log_run(**fields: Any) -> None:
    try:
        log_ai_analysis_run(**fields)
    except Exception:  # pragma: no cover - analytics must not break analysis
        logger.debug("ai_run_logging_failed", exc_info=True)


def _pdf_filename(filename: str) -> str:
    name = upload_security.safe_document_filename(filename)
    if not name.lower().endswith(".pdf"):
        name = f"{name}.pdf"
    return name


async def _discard_blobs(collaborators: Collaborators, paths: list[str], resume_id: str) -> None:
    for path in paths:
        try:
            await collaborators.blobs.delete(path)
        except Exception as exc:
            logger.warning("analysis_blob_cleanup_failed resume_id=%s path=%s: %s", resume_id, path, exc)


async def create_analysis(
    *,
    filename: str,
    content: bytes,
    content_type: str,
    job: JobContext,
    collaborators: Collaborators,
    progress_callback: ProgressCallback | None = None,
) -> CreatedAnalysis:
    """Store the document and its rendered preview and create the metadata record.

    Nothing is persisted when the upload is rejected or cannot be rendered.
    """
    try:
        upload_security.validate_upload_signature(filename=filename, content=content)
    except ValueError as exc:
        raise AnalysisInputError(str(exc)) from exc

    _emit(progress_callback, "converting", "Converting to image...")
    document = UploadedDocument(filename=_pdf_filename(filename), content=content, content_type=content_type)
    raster = await convert_pdf_to_image(
        document,
        engine_loader=collaborators.render_engine,
        previews=collaborators.previews,
    )
    if not raster.ok or raster.image is None:
        message = raster.error or "Failed to convert PDF to image"
        if raster.error_kind == "input":
            raise AnalysisInputError(message)
        if raster.error_kind == "environment":
            raise AnalysisEnvironmentError(message)
        raise AnalysisInputError(message)

    resume_id = uuid.uuid4().hex
    written: list[str] = []
    try:
        _emit(progress_callback, "uploading", "Uploading the file...")
        resume_blob = await collaborators.blobs.write(f"resumes/{resume_id}/{document.filename}", content)
        written.append(resume_blob.path)
        _emit(progress_callback, "uploading_image", "Uploading the image...")
        image_blob = await collaborators.blobs.write(
            f"resumes/{resume_id}/{raster.image.filename}", raster.image.content
        )
        written.append(image_blob.path)

        _emit(progress_callback, "preparing", "Preparing data...")
        metadata = AnalysisMetadata(
            id=resume_id,
            resume_path=resume_blob.path,
            image_path=image_blob.path,
            company_name=job.company_name,
            job_title=job.job_title,
            job_description=job.job_description,
        )
        if not await collaborators.kv.set(resume_key(resume_id), metadata.to_json()):
            raise AnalysisStorageError("write was not acknowledged")
    except Exception as exc:
        collaborators.previews.revoke(raster.image_url)
        logger.warning("analysis_store_failed resume_id=%s: %s", resume_id, exc)
        await _discard_blobs(collaborators, written, resume_id)
        raise AnalysisStorageError(f"Failed to store resume: {exc}") from exc

    logger.info("analysis_created resume_id=%s resume=%s image=%s", resume_id, resume_blob.path, image_blob.path)
    return CreatedAnalysis(metadata=metadata, preview_url=raster.image_url)


def decode_metadata(raw: str) -> AnalysisMetadata:
    """Deserialize a stored record; invalid stored feedback becomes the fallback record."""
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("Stored resume record is not an object")
    feedback = data.get("feedback")
    if feedback is not None and not is_valid_feedback(feedback):
        logger.warning("stored_feedback_invalid resume_id=%s", data.get("id"))
        data["feedback"] = create_fallback_feedback(STORED_FEEDBACK_INVALID_MESSAGE).to_payload()
    return AnalysisMetadata.model_validate(data)


async def load_metadata(resume_id: str, *, collaborators: Collaborators) -> AnalysisMetadata:
    raw = await collaborators.kv.get(resume_key(resume_id))
    if not raw:
        raise AnalysisNotFoundError("Resume not found")
    try:
        return decode_metadata(raw)
    except ValueError as exc:
        raise AnalysisStorageError(f"Invalid resume data: {exc}") from exc


async def run_feedback_analysis(
    resume_id: str,
    *,
    collaborators: Collaborators,
    progress_callback: ProgressCallback | None = None,
) -> tuple[AnalysisMetadata, ParseResult]:
    """Ask the AI for feedback on a stored resume and attach the parsed record.

    Transport failures (store, blob, AI call) propagate with their cause; a
    malformed AI answer does not, it is stored as the fallback record.
    """
    metadata = await load_metadata(resume_id, collaborators=collaborators)
    content = await collaborators.blobs.read(metadata.resume_path)
    if content is None:
        raise AnalysisStorageError("Failed to load resume file")

    _emit(progress_callback, "analyzing", "Analyzing...")
    run_id = uuid.uuid4().hex
    started = time.perf_counter()
    try:
        client = collaborators.ai()
    except ValueError as exc:
        raise AIFeedbackError(str(exc), code="ai_not_configured") from exc
    model = str(getattr(client, "model", "unknown"))
    prompt = build_feedback_prompt(
        job_title=metadata.job_title,
        job_description=metadata.job_description,
        company_name=metadata.company_name,
    )
    document = DocumentInput(filename=metadata.resume_path.rsplit("/", 1)[-1], content=content)
    try:
        raw_text = await client.feedback(document, prompt)
    except AIFeedbackError as exc:
        _log_run(
            run_id=run_id,
            resume_id=resume_id,
            model=model,
            parse_method=None,
            success=False,
            status="error",
            error_code=exc.code,
            latency_ms=int((time.perf_counter() - started) * 1000),
        )
        raise

    result = parse_ai_feedback(raw_text)
    updated = metadata.model_copy(update={"feedback": result.feedback})
    try:
        if not await collaborators.kv.set(resume_key(resume_id), updated.to_json()):
            raise AnalysisStorageError("write was not acknowledged")
    except Exception as exc:
        logger.warning("analysis_feedback_store_failed resume_id=%s: %s", resume_id, exc)
        _log_run(
            run_id=run_id,
            resume_id=resume_id,
            model=model,
            parse_method=result.method,
            success=False,
            status="error",
            error_code="storage_failed",
            latency_ms=int((time.perf_counter() - started) * 1000),
        )
        raise AnalysisStorageError(f"Failed to store feedback: {exc}") from exc
    _log_run(
        run_id=run_id,
        resume_id=resume_id,
        model=model,
        parse_method=result.method,
        success=result.success,
        status="success" if result.success else "fallback",
        error_code=None if result.success else "unparseable_response",
        latency_ms=int((time.perf_counter() - started) * 1000),
    )
    logger.info(
        "analysis_feedback_attached resume_id=%s method=%s success=%s",
        resume_id,
        result.method,
        result.success,
    )
    _emit(progress_callback, "complete", "Analysis complete")
    return updated, result


async def list_analyses(*, collaborators: Collaborators) -> list[AnalysisMetadata]:
    records: list[AnalysisMetadata] = []
    for raw in await collaborators.kv.list(f"{RESUME_KEY_PREFIX}*"):
        try:
            records.append(decode_metadata(raw))
        except ValueError as exc:
            logger.warning("analysis_record_skipped: %s", exc)
    return records
