from __future__ import annotations

import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

PREVIEW_URL_PREFIX = "/v1/previews/"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PreviewHandle:
    token: str
    url: str
    media_type: str
    expires_at: datetime


@dataclass(frozen=True)
class PreviewEntry:
    content: bytes
    media_type: str
    expires_at: datetime


def token_from_url(url: str) -> str:
    if url.startswith(PREVIEW_URL_PREFIX):
        return url[len(PREVIEW_URL_PREFIX) :]
    return url


class PreviewRegistry:
    """In-memory, revocable references to rendered bytes.

    A handle stays resolvable until it is revoked or its TTL runs out;
    whoever receives a handle is expected to revoke it when done.
    """

    def __init__(self, ttl_seconds: int = 900) -> None:
        self._ttl = timedelta(seconds=max(1, int(ttl_seconds)))
        self._entries: dict[str, PreviewEntry] = {}
        self._lock = threading.Lock()

    def create(self, content: bytes, media_type: str) -> PreviewHandle:
        token = secrets.token_urlsafe(18)
        expires_at = _utc_now() + self._ttl
        with self._lock:
            self._entries[token] = PreviewEntry(content=content, media_type=media_type, expires_at=expires_at)
        return PreviewHandle(
            token=token,
            url=f"{PREVIEW_URL_PREFIX}{token}",
            media_type=media_type,
            expires_at=expires_at,
        )

    def get(self, token: str) -> PreviewEntry | None:
        with self._lock:
            entry = self._entries.get(token)
            if entry is None:
                return None
            if entry.expires_at <= _utc_now():
                del self._entries[token]
                return None
            return entry

    def revoke(self, token_or_url: str) -> bool:
        token = token_from_url(token_or_url)
        with self._lock:
            return self._entries.pop(token, None) is not None

    def purge_expired(self) -> int:
        now = _utc_now()
        with self._lock:
            expired = [token for token, entry in self._entries.items() if entry.expires_at <= now]
            for token in expired:
                del self._entries[token]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
