from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

TipType = Literal["good", "improve"]
ParseMethod = Literal["direct", "regex_extraction", "repair", "fallback"]
Score = int | float


class ATSTip(BaseModel):
    type: TipType
    tip: str


class DetailedTip(ATSTip):
    explanation: str


class ATSSection(BaseModel):
    score: Score
    tips: list[ATSTip] = Field(default_factory=list)


class DetailedSection(BaseModel):
    score: Score
    tips: list[DetailedTip] = Field(default_factory=list)


class FeedbackRecord(BaseModel):
    """Validated analysis result for one resume.

    Field names are snake_case in Python and keep the camelCase keys the
    model is prompted to emit on the wire.
    """

    model_config = ConfigDict(populate_by_name=True)

    overall_score: Score = Field(alias="overallScore")
    ats: ATSSection = Field(alias="ATS")
    tone_and_style: DetailedSection = Field(alias="toneAndStyle")
    content: DetailedSection
    structure: DetailedSection
    skills: DetailedSection

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class AnalysisMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    resume_path: str = Field(alias="resumePath", min_length=1)
    image_path: str = Field(alias="imagePath", min_length=1)
    company_name: str | None = Field(default=None, alias="companyName")
    job_title: str | None = Field(default=None, alias="jobTitle")
    job_description: str | None = Field(default=None, alias="jobDescription")
    feedback: FeedbackRecord | None = None

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class ParseResult(BaseModel):
    success: bool
    feedback: FeedbackRecord
    method: ParseMethod
    error: str | None = None
