from __future__ import annotations

import base64
import logging
import os
from typing import Any, Optional

from openai import AsyncOpenAI, OpenAIError

from resume_review.ai.errors import AIFeedbackError
from resume_review.ai.types import DocumentInput

logger = logging.getLogger(__name__)


def _message_text(content: Any) -> str:
    # Some gateways return a list of content parts instead of a plain string.
    if isinstance(content, str):
        return content
    if isinstance(content, list) and content:
        first = content[0]
        text = first.get("text") if isinstance(first, dict) else getattr(first, "text", None)
        return str(text or "")
    return ""


class OpenAIProvider:
    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_s: float = 60.0,
        max_retries: int = 2,
        temperature: float = 0.2,
        json_mode: bool = False,
    ):
        self._model = model
        self._temperature = temperature
        self._json_mode = json_mode
        key = (api_key or os.getenv("OPENAI_API_KEY") or "").strip()
        if not key:
            raise AIFeedbackError("OPENAI_API_KEY is missing", code="ai_not_configured")

        self._client = AsyncOpenAI(
            api_key=key,
            base_url=(base_url or os.getenv("OPENAI_BASE_URL") or None),
            timeout=float(os.getenv("OPENAI_TIMEOUT_S", str(timeout_s))),
            max_retries=int(os.getenv("OPENAI_MAX_RETRIES", str(max_retries))),
        )

    @property
    def model(self) -> str:
        return self._model

    async def feedback(self, document: DocumentInput, prompt: str) -> str:
        encoded = base64.b64encode(document.content).decode("utf-8")
        create_kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "file",
                            "file": {
                                "filename": document.filename,
                                "file_data": f"data:{document.media_type};base64,{encoded}",
                            },
                        },
                        {"type": "text", "text": prompt},
                    ],
                }
            ],
            "temperature": self._temperature,
        }
        if self._json_mode:
            create_kwargs["response_format"] = {"type": "json_object"}

        try:
            response = await self._client.chat.completions.create(**create_kwargs)
        except OpenAIError as exc:
            logger.warning("openai_feedback_failed model=%s file=%s: %s", self._model, document.filename, exc)
            raise AIFeedbackError(f"Failed to analyze resume: {exc}", code="ai_request_failed") from exc

        content = response.choices[0].message.content if response.choices else None
        text = _message_text(content)
        if not text:
            raise AIFeedbackError("Failed to analyze resume: empty AI response", code="ai_empty_response")
        return text
