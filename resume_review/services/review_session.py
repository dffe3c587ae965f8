from __future__ import annotations

import json
import logging
from typing import Any, Literal

from pydantic import BaseModel

from resume_review.core.blob_store import BlobStore
from resume_review.core.kv_store import KeyValueStore, resume_key
from resume_review.feedback import STORED_FEEDBACK_INVALID_MESSAGE, create_fallback_feedback, is_valid_feedback
from resume_review.schemas.feedback import FeedbackRecord
from resume_review.services.previews import PreviewRegistry

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
PNG_MEDIA_TYPE = "image/png"

ReviewStatus = Literal["loading", "error", "ready"]
ReviewErrorCode = Literal[
    "not_found",
    "invalid_record",
    "missing_files",
    "resume_unavailable",
    "image_unavailable",
    "load_failed",
]


class ReviewState(BaseModel):
    resume_id: str
    status: ReviewStatus = "loading"
    error: str | None = None
    error_code: ReviewErrorCode | None = None
    resume_url: str | None = None
    image_url: str | None = None
    feedback: FeedbackRecord | None = None
    company_name: str | None = None
    job_title: str | None = None

    @property
    def processing(self) -> bool:
        return self.status == "ready" and self.feedback is None


class _LoadFailed(Exception):
    def __init__(self, message: str, code: ReviewErrorCode):
        super().__init__(message)
        self.code = code


def _image_media_type(path: str) -> str:
    lowered = path.lower()
    if lowered.endswith((".jpg", ".jpeg")):
        return "image/jpeg"
    if lowered.endswith(".webp"):
        return "image/webp"
    return PNG_MEDIA_TYPE


class ReviewSession:
    """Loads one stored analysis and turns it into something displayable.

    State goes ``loading`` -> ``error`` | ``ready`` exactly once per
    session; a failed load is not retried. Start a new session to reload.
    Preview URLs in a ready state belong to the caller, who revokes them
    through the registry when they are no longer shown.
    """

    def __init__(
        self,
        resume_id: str,
        *,
        kv: KeyValueStore,
        blobs: BlobStore,
        previews: PreviewRegistry,
    ) -> None:
        self._kv = kv
        self._blobs = blobs
        self._previews = previews
        self._state = ReviewState(resume_id=resume_id)
        self._allocated: list[str] = []

    @property
    def state(self) -> ReviewState:
        return self._state

    async def load(self) -> ReviewState:
        if self._state.status != "loading":
            return self._state

        resume_id = self._state.resume_id
        logger.info("review_load_started resume_id=%s", resume_id)
        try:
            self._state = await self._load(resume_id)
        except _LoadFailed as exc:
            self._fail(str(exc), exc.code)
        except Exception as exc:  # noqa: BLE001 - storage errors become an error state
            logger.exception("review_load_crashed resume_id=%s", resume_id)
            self._fail(f"Failed to load resume: {exc}", "load_failed")
        else:
            self._allocated.clear()
            logger.info(
                "review_load_ready resume_id=%s feedback=%s",
                resume_id,
                "present" if self._state.feedback else "pending",
            )
        return self._state

    def _fail(self, message: str, code: ReviewErrorCode) -> None:
        for url in self._allocated:
            self._previews.revoke(url)
        self._allocated.clear()
        logger.warning("review_load_failed resume_id=%s code=%s: %s", self._state.resume_id, code, message)
        self._state = ReviewState(
            resume_id=self._state.resume_id,
            status="error",
            error=message,
            error_code=code,
        )

    def _publish(self, content: bytes, media_type: str) -> str:
        url = self._previews.create(content, media_type).url
        self._allocated.append(url)
        return url

    async def _load(self, resume_id: str) -> ReviewState:
        raw = await self._kv.get(resume_key(resume_id))
        if not raw:
            raise _LoadFailed("Resume not found", "not_found")

        try:
            data: Any = json.loads(raw)
        except ValueError as exc:
            raise _LoadFailed("Invalid resume data", "invalid_record") from exc
        if not isinstance(data, dict):
            raise _LoadFailed("Invalid resume data", "invalid_record")

        resume_path = data.get("resumePath")
        image_path = data.get("imagePath")
        if not isinstance(resume_path, str) or not isinstance(image_path, str) or not resume_path or not image_path:
            raise _LoadFailed("Resume files missing", "missing_files")

        resume_bytes = await self._blobs.read(resume_path)
        if resume_bytes is None:
            raise _LoadFailed("Failed to load resume file", "resume_unavailable")
        resume_url = self._publish(resume_bytes, PDF_MEDIA_TYPE)

        image_bytes = await self._blobs.read(image_path)
        if image_bytes is None:
            raise _LoadFailed("Failed to load resume image", "image_unavailable")
        image_url = self._publish(image_bytes, _image_media_type(image_path))

        return ReviewState(
            resume_id=resume_id,
            status="ready",
            resume_url=resume_url,
            image_url=image_url,
            feedback=self._feedback_from(data.get("feedback"), resume_id),
            company_name=data.get("companyName") if isinstance(data.get("companyName"), str) else None,
            job_title=data.get("jobTitle") if isinstance(data.get("jobTitle"), str) else None,
        )

    @staticmethod
    def _feedback_from(value: Any, resume_id: str) -> FeedbackRecord | None:
        if value is None:
            return None
        if is_valid_feedback(value):
            return FeedbackRecord.model_validate(value)
        logger.warning("review_feedback_invalid resume_id=%s", resume_id)
        return create_fallback_feedback(STORED_FEEDBACK_INVALID_MESSAGE)
