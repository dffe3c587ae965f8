from .fallback import STORED_FEEDBACK_INVALID_MESSAGE, create_fallback_feedback
from .parser import parse_ai_feedback, strip_code_fence
from .repair import repair_json
from .validator import FEEDBACK_SECTIONS, is_valid_feedback

__all__ = [
    "FEEDBACK_SECTIONS",
    "STORED_FEEDBACK_INVALID_MESSAGE",
    "create_fallback_feedback",
    "is_valid_feedback",
    "parse_ai_feedback",
    "repair_json",
    "strip_code_fence",
]
