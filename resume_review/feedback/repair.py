from __future__ import annotations

import re

_MISSING_COMMA_BEFORE_KEY = re.compile(r'([}\]])\s*"([^"]+)"\s*:\s*')
_MISSING_COMMA_BETWEEN_OBJECTS = re.compile(r"}\s*{")
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")

_STRING_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}


def _trim_to_outer_braces(text: str) -> str:
    trimmed = text.strip()
    first = trimmed.find("{")
    if first > 0:
        trimmed = trimmed[first:]
    last = trimmed.rfind("}")
    if last >= 0:
        trimmed = trimmed[: last + 1]
    return trimmed


def escape_control_chars_in_strings(text: str) -> str:
    """Escape raw newlines, carriage returns and tabs that sit inside JSON strings."""
    out: list[str] = []
    in_string = False
    escaped = False
    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            elif char in _STRING_ESCAPES:
                out.append(_STRING_ESCAPES[char])
                continue
        elif char == '"':
            in_string = True
        out.append(char)
    return "".join(out)


def repair_json(text: str) -> str:
    """Apply the fixed sequence of textual repairs to a JSON-ish object span."""
    repaired = _trim_to_outer_braces(text)
    repaired = _MISSING_COMMA_BEFORE_KEY.sub(r'\1, "\2": ', repaired)
    repaired = _MISSING_COMMA_BETWEEN_OBJECTS.sub("}, {", repaired)
    repaired = _TRAILING_COMMA.sub(r"\1", repaired)
    return escape_control_chars_in_strings(repaired)
