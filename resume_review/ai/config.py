import os
from dataclasses import dataclass


@dataclass(frozen=True)
class AIConfig:
    provider: str
    model: str
    temperature: float
    json_mode: bool


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def load_ai_config() -> AIConfig:
    provider = os.getenv("AI_PROVIDER", "openai").strip().lower()
    model = os.getenv("AI_MODEL", "gpt-4o-mini").strip()
    response_format = (os.getenv("OPENAI_RESPONSE_FORMAT") or "").strip().lower()
    return AIConfig(
        provider=provider,
        model=model,
        temperature=_float_env("AI_TEMPERATURE", 0.2),
        json_mode=response_format == "json",
    )
