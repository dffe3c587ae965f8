from __future__ import annotations

import re
import unicodedata
from typing import Any

PDF_MAGIC = b"%PDF-"
ALLOWED_EXTENSIONS = {"pdf"}

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._ -]+")


def _safe_str(value: Any, max_len: int = 255) -> str:
    if value is None:
        return ""
    text = str(value).strip()
    if not text:
        return ""
    return text[:max_len]


def extension_from_filename(filename: str) -> str:
    if "." not in filename:
        return ""
    return _safe_str(filename.rsplit(".", 1)[-1], 20).lower()


def safe_document_filename(filename: str | None, default: str = "resume.pdf") -> str:
    """Reduce an uploaded filename to a safe basename usable inside a blob path."""
    name = _safe_str(filename)
    name = name.replace("\\", "/").split("/")[-1]
    name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    name = _UNSAFE_FILENAME_CHARS.sub("_", name).strip(" .")
    if not name:
        return default
    if len(name) > 120:
        ext = extension_from_filename(name)
        stem = name[: 120 - len(ext) - 1] if ext else name[:120]
        name = f"{stem}.{ext}" if ext else stem
    return name


def validate_upload_signature(*, filename: str, content: bytes) -> None:
    ext = extension_from_filename(filename)
    if ext not in ALLOWED_EXTENSIONS:
        raise ValueError(f"Unsupported file type '.{ext}'. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}.")
    if not content:
        raise ValueError("No file provided")
    if not content.startswith(PDF_MAGIC):
        raise ValueError("File signature does not match .pdf content.")
