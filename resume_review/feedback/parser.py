from __future__ import annotations

import json
import logging
import re
from typing import Any

from resume_review.schemas.feedback import FeedbackRecord, ParseMethod, ParseResult

from .fallback import create_fallback_feedback
from .repair import repair_json
from .validator import is_valid_feedback

logger = logging.getLogger(__name__)

_FENCE_OPEN = re.compile(r"^```[\w+-]*[ \t]*\r?\n?")
_FENCE_CLOSE = re.compile(r"\r?\n?[ \t]*```$")
_OBJECT_SPAN = re.compile(r"\{.*\}", re.DOTALL)

PARSE_FALLBACK_MESSAGE = "Unable to parse AI response"
PARSE_FAILED_ERROR = "All parsing strategies failed"


class _AttemptFailed(Exception):
    pass


def _reject_constant(name: str) -> Any:
    # NaN and Infinity are not JSON
    raise ValueError(f"Non-JSON number constant {name}")


def strip_code_fence(text: str) -> str:
    """Drop one leading and one trailing markdown fence at the text boundaries."""
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = _FENCE_OPEN.sub("", stripped, count=1)
    if stripped.endswith("```"):
        stripped = _FENCE_CLOSE.sub("", stripped, count=1)
    return stripped.strip()


def extract_object_span(text: str) -> str | None:
    # Greedy on purpose: first "{" through last "}", no brace balancing.
    match = _OBJECT_SPAN.search(text)
    return match.group(0) if match else None


def _load_feedback(candidate: str, method: ParseMethod) -> FeedbackRecord:
    try:
        parsed: Any = json.loads(candidate, parse_constant=_reject_constant)
    except (ValueError, RecursionError) as exc:
        logger.debug("feedback_parse_%s_failed error=%s", method, exc)
        raise _AttemptFailed(f"{method}: {exc}") from exc
    if not is_valid_feedback(parsed):
        logger.warning("feedback_parse_%s_schema_mismatch", method)
        raise _AttemptFailed(f"{method}: parsed value does not match the feedback structure")
    return FeedbackRecord.model_validate(parsed)


def parse_ai_feedback(raw_text: str | None) -> ParseResult:
    """Turn free-form model output into a validated feedback record.

    Strategies run in order (direct, regex extraction, repair) and the first
    structurally valid record wins. When all of them fail a fallback record
    is returned with ``success=False``, so callers always get something
    renderable.
    """
    processed = strip_code_fence(raw_text or "")
    failures: list[str] = []

    try:
        feedback = _load_feedback(processed, "direct")
        return ParseResult(success=True, feedback=feedback, method="direct")
    except _AttemptFailed as exc:
        failures.append(str(exc))

    span = extract_object_span(processed)
    if span is not None:
        try:
            feedback = _load_feedback(span, "regex_extraction")
            return ParseResult(success=True, feedback=feedback, method="regex_extraction")
        except _AttemptFailed as exc:
            failures.append(str(exc))

        try:
            feedback = _load_feedback(repair_json(span), "repair")
            return ParseResult(success=True, feedback=feedback, method="repair")
        except _AttemptFailed as exc:
            failures.append(str(exc))
    else:
        failures.append("regex_extraction: no JSON object found")

    logger.warning(
        "feedback_parse_fallback raw_len=%s failures=%s",
        len(raw_text or ""),
        "; ".join(failures),
    )
    return ParseResult(
        success=False,
        feedback=create_fallback_feedback(PARSE_FALLBACK_MESSAGE),
        method="fallback",
        error=PARSE_FAILED_ERROR,
    )
