from functools import lru_cache

from resume_review.ai.config import load_ai_config
from resume_review.ai.types import FeedbackClient

from resume_review.ai.providers.openai_provider import OpenAIProvider


@lru_cache(maxsize=1)
def get_ai_client() -> FeedbackClient:
    cfg = load_ai_config()

    if cfg.provider == "openai":
        return OpenAIProvider(model=cfg.model, temperature=cfg.temperature, json_mode=cfg.json_mode)

    raise ValueError(f"Unsupported AI_PROVIDER='{cfg.provider}'")
