from __future__ import annotations

from resume_review.schemas.feedback import (
    ATSSection,
    ATSTip,
    DetailedSection,
    DetailedTip,
    FeedbackRecord,
)

FALLBACK_SCORE = 50
DEFAULT_FALLBACK_MESSAGE = "AI parsing failed"
STORED_FEEDBACK_INVALID_MESSAGE = "Stored feedback could not be read"


def create_fallback_feedback(error_message: str = DEFAULT_FALLBACK_MESSAGE) -> FeedbackRecord:
    """Build the placeholder record shown when no usable feedback exists."""
    error_tip = DetailedTip(
        type="improve",
        tip="Manual review needed",
        explanation=(
            f"{error_message}. Please try uploading your resume again "
            "or contact support if the issue persists."
        ),
    )
    retry_tip = ATSTip(type="improve", tip="Upload failed - please try again")

    def section() -> DetailedSection:
        return DetailedSection(score=FALLBACK_SCORE, tips=[error_tip.model_copy()])

    return FeedbackRecord(
        overall_score=FALLBACK_SCORE,
        ats=ATSSection(score=FALLBACK_SCORE, tips=[retry_tip]),
        tone_and_style=section(),
        content=section(),
        structure=section(),
        skills=section(),
    )
