from __future__ import annotations

from pydantic import BaseModel

from resume_review.schemas.feedback import AnalysisMetadata, ParseMethod


class ParseSummary(BaseModel):
    success: bool
    method: ParseMethod
    error: str | None = None


class ResumeAnalysisResponse(BaseModel):
    id: str
    preview_url: str | None = None
    metadata: AnalysisMetadata
    parse: ParseSummary


class ResumeListResponse(BaseModel):
    resumes: list[AnalysisMetadata]


class ErrorDetail(BaseModel):
    code: str
    message: str
    retry: bool = True
    resume_id: str | None = None
