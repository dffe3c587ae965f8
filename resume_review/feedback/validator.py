from __future__ import annotations

import math
from typing import Any

FEEDBACK_SECTIONS: tuple[str, ...] = ("ATS", "toneAndStyle", "content", "structure", "skills")
TIP_TYPES = frozenset({"good", "improve"})
# ATS tips are terse flags; every other section must explain its tips.
EXPLANATION_EXEMPT_SECTIONS = frozenset({"ATS"})


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _is_valid_tip(tip: Any, *, requires_explanation: bool) -> bool:
    if not isinstance(tip, dict):
        return False
    tip_type = tip.get("type")
    if not isinstance(tip_type, str) or tip_type not in TIP_TYPES:
        return False
    if not isinstance(tip.get("tip"), str):
        return False
    if requires_explanation and not isinstance(tip.get("explanation"), str):
        return False
    return True


def _is_valid_section(name: str, section: Any) -> bool:
    if not isinstance(section, dict):
        return False
    if not _is_number(section.get("score")):
        return False
    tips = section.get("tips")
    if not isinstance(tips, list):
        return False
    requires_explanation = name not in EXPLANATION_EXEMPT_SECTIONS
    return all(_is_valid_tip(tip, requires_explanation=requires_explanation) for tip in tips)


def is_valid_feedback(value: Any) -> bool:
    """Return True when ``value`` has the exact feedback record shape.

    ``value`` is whatever ``json.loads`` produced, so any JSON value is
    accepted and judged; malformed input yields False, never an exception.
    """
    if not isinstance(value, dict):
        return False
    if not _is_number(value.get("overallScore")):
        return False
    return all(_is_valid_section(name, value.get(name)) for name in FEEDBACK_SECTIONS)
