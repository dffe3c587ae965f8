from __future__ import annotations

from fastapi import Request
from slowapi import Limiter

from resume_review.core.config import settings


def client_key(request: Request) -> str:
    # first X-Forwarded-For hop is the original client
    forwarded_for = request.headers.get("x-forwarded-for", "").strip()
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


limiter = Limiter(key_func=client_key, default_limits=[], enabled=settings.rate_limit_enabled)


def rate_limit(limit: str | None = None):
    """Apply the configured per-client limit, or ``limit`` when given."""
    if not settings.rate_limit_enabled:
        def decorator(func):
            return func

        return decorator
    return limiter.limit(limit or settings.rate_limit)
