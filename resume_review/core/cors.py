from __future__ import annotations

from typing import Any

from resume_review.core.config import settings


def cors_middleware_options() -> dict[str, Any]:
    """Keyword arguments for ``CORSMiddleware`` built from settings.

    Browsers reject credentialed responses with a wildcard origin, so
    credentials are switched off when ``*`` is configured.
    """
    origins = list(settings.cors_allowed_origins)
    regex = (settings.cors_allow_origin_regex or "").strip() or None
    allow_credentials = settings.cors_allow_credentials and "*" not in origins
    return {
        "allow_origins": origins,
        "allow_origin_regex": regex,
        "allow_credentials": allow_credentials,
        "allow_methods": ["GET", "POST", "DELETE", "OPTIONS"],
        "allow_headers": ["*"],
    }
