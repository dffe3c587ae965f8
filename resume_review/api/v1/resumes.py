import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
from fastapi.responses import StreamingResponse

from resume_review.ai.errors import AIFeedbackError
from resume_review.core.config import settings
from resume_review.core.dependencies import Collaborators, get_collaborators
from resume_review.core.rate_limit import rate_limit
from resume_review.schemas.feedback import AnalysisMetadata, ParseResult
from resume_review.schemas.resumes import ErrorDetail, ParseSummary, ResumeAnalysisResponse, ResumeListResponse
from resume_review.services.analysis_service import (
    AnalysisEnvironmentError,
    AnalysisInputError,
    AnalysisNotFoundError,
    AnalysisStorageError,
    JobContext,
    ProgressCallback,
    create_analysis,
    list_analyses,
    run_feedback_analysis,
)
from resume_review.services.review_session import ReviewSession

logger = logging.getLogger(__name__)

router = APIRouter()

UPLOAD_CHUNK_BYTES = 1024 * 64

# review errors that point at a broken record rather than a flaky backend
_RECORD_ERROR_CODES = {"invalid_record", "missing_files"}


def _sse_event(event: str, payload: dict[str, Any]) -> str:
    data = json.dumps(payload, ensure_ascii=False)
    return f"event: {event}\ndata: {data}\n\n"


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


async def _read_upload(file: UploadFile | None) -> tuple[str, bytes, str]:
    if file is None or not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file provided")

    limit = settings.max_upload_bytes
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await file.read(UPLOAD_CHUNK_BYTES)
        if not chunk:
            break
        total += len(chunk)
        if total > limit:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File too large. Maximum allowed size is {limit // (1024 * 1024)} MB.",
            )
        chunks.append(chunk)
    return file.filename, b"".join(chunks), file.content_type or ""


def _error_detail(code: str, message: str, *, retry: bool = True, resume_id: str | None = None) -> dict[str, Any]:
    return ErrorDetail(code=code, message=message, retry=retry, resume_id=resume_id).model_dump(exclude_none=True)


def _analysis_response(metadata: AnalysisMetadata, result: ParseResult, preview_url: str | None) -> ResumeAnalysisResponse:
    return ResumeAnalysisResponse(
        id=metadata.id,
        preview_url=preview_url,
        metadata=metadata,
        parse=ParseSummary(success=result.success, method=result.method, error=result.error),
    )


def _http_error_for(exc: Exception, resume_id: str | None = None) -> HTTPException:
    if isinstance(exc, AnalysisInputError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, AnalysisEnvironmentError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    if isinstance(exc, AnalysisNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, AIFeedbackError):
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=_error_detail(exc.code, str(exc), resume_id=resume_id),
        )
    if isinstance(exc, AnalysisStorageError):
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=_error_detail("storage_failed", str(exc), resume_id=resume_id),
        )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


async def _upload_and_analyze(
    *,
    filename: str,
    content: bytes,
    content_type: str,
    job: JobContext,
    collaborators: Collaborators,
    progress_callback: ProgressCallback | None = None,
) -> ResumeAnalysisResponse:
    created = await create_analysis(
        filename=filename,
        content=content,
        content_type=content_type,
        job=job,
        collaborators=collaborators,
        progress_callback=progress_callback,
    )
    resume_id = created.metadata.id
    try:
        metadata, result = await run_feedback_analysis(
            resume_id,
            collaborators=collaborators,
            progress_callback=progress_callback,
        )
    except (AIFeedbackError, AnalysisStorageError) as exc:
        logger.warning("resume_analysis_failed resume_id=%s: %s", resume_id, exc)
        raise _http_error_for(exc, resume_id) from exc
    return _analysis_response(metadata, result, created.preview_url)


@router.post("/resumes", response_model=ResumeAnalysisResponse)
@rate_limit()
async def upload_resume(
    request: Request,
    file: UploadFile | None = File(default=None),
    company_name: str | None = Form(default=None),
    job_title: str | None = Form(default=None),
    job_description: str | None = Form(default=None),
    collaborators: Collaborators = Depends(get_collaborators),
):
    _ = request
    filename, content, content_type = await _read_upload(file)
    job = JobContext(
        company_name=_clean(company_name),
        job_title=_clean(job_title),
        job_description=_clean(job_description),
    )
    try:
        return await _upload_and_analyze(
            filename=filename,
            content=content,
            content_type=content_type,
            job=job,
            collaborators=collaborators,
        )
    except (AnalysisInputError, AnalysisEnvironmentError, AnalysisStorageError) as exc:
        raise _http_error_for(exc) from exc


@router.post("/resumes/stream")
@rate_limit()
async def upload_resume_stream(
    request: Request,
    file: UploadFile | None = File(default=None),
    company_name: str | None = Form(default=None),
    job_title: str | None = Form(default=None),
    job_description: str | None = Form(default=None),
    collaborators: Collaborators = Depends(get_collaborators),
):
    filename, content, content_type = await _read_upload(file)
    job = JobContext(
        company_name=_clean(company_name),
        job_title=_clean(job_title),
        job_description=_clean(job_description),
    )

    async def event_stream():
        queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()

        def push_progress(event: dict[str, Any]) -> None:
            queue.put_nowait({"kind": "progress", "payload": event})

        async def worker() -> None:
            try:
                response = await _upload_and_analyze(
                    filename=filename,
                    content=content,
                    content_type=content_type,
                    job=job,
                    collaborators=collaborators,
                    progress_callback=push_progress,
                )
                queue.put_nowait({"kind": "result", "payload": response.model_dump(mode="json", by_alias=True)})
            except HTTPException as exc:
                queue.put_nowait({"kind": "error", "payload": {"detail": exc.detail, "status": exc.status_code}})
            except (AnalysisInputError, AnalysisEnvironmentError, AnalysisStorageError) as exc:
                error = _http_error_for(exc)
                queue.put_nowait({"kind": "error", "payload": {"detail": error.detail, "status": error.status_code}})
            except Exception as exc:  # pragma: no cover - guard rail
                logger.exception("resume_stream_failed")
                queue.put_nowait(
                    {
                        "kind": "error",
                        "payload": {"detail": str(exc), "status": status.HTTP_500_INTERNAL_SERVER_ERROR},
                    }
                )
            finally:
                queue.put_nowait({"kind": "done", "payload": {}})

        task = asyncio.create_task(worker())

        try:
            yield _sse_event("connected", {"ok": True})
            while True:
                if await request.is_disconnected():
                    break
                event = await queue.get()
                kind = event.get("kind")
                if kind == "done":
                    break
                if kind in {"progress", "result", "error"}:
                    yield _sse_event(kind, event.get("payload", {}))
        finally:
            if not task.done():
                task.cancel()

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.post("/resumes/{resume_id}/analysis", response_model=ResumeAnalysisResponse)
@rate_limit()
async def rerun_analysis(
    request: Request,
    resume_id: str,
    collaborators: Collaborators = Depends(get_collaborators),
):
    _ = request
    try:
        metadata, result = await run_feedback_analysis(resume_id, collaborators=collaborators)
    except (AnalysisNotFoundError, AnalysisStorageError, AIFeedbackError) as exc:
        raise _http_error_for(exc, resume_id) from exc
    return _analysis_response(metadata, result, None)


@router.get("/resumes", response_model=ResumeListResponse)
async def list_resumes(collaborators: Collaborators = Depends(get_collaborators)):
    return ResumeListResponse(resumes=await list_analyses(collaborators=collaborators))


@router.get("/resumes/{resume_id}")
async def get_resume(resume_id: str, collaborators: Collaborators = Depends(get_collaborators)):
    session = ReviewSession(
        resume_id,
        kv=collaborators.kv,
        blobs=collaborators.blobs,
        previews=collaborators.previews,
    )
    state = await session.load()
    if state.status == "error":
        code = state.error_code or "load_failed"
        message = state.error or "Failed to load resume"
        if code == "not_found":
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=_error_detail(code, message, retry=False),
            )
        status_code = (
            status.HTTP_500_INTERNAL_SERVER_ERROR
            if code in _RECORD_ERROR_CODES
            else status.HTTP_502_BAD_GATEWAY
        )
        raise HTTPException(status_code=status_code, detail=_error_detail(code, message))

    payload = state.model_dump(mode="json", by_alias=True)
    payload["processing"] = state.processing
    return payload
