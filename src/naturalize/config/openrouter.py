"""OpenRouter configuration values."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .env import require_any_env_var
from .http_resilience import RateLimit, ResilienceConfig, connect_only_retry_policy

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
OPENROUTER_TIMEOUT_SECONDS = 60.0
DEFAULT_MODEL = "openai/gpt-4o-mini"
DEFAULT_FALLBACK_MODEL = "openai/gpt-3.5-turbo"
DEFAULT_REFERER = "https://localhost:3000"
APP_TITLE = "Business Name Naturalizer"


@dataclass(frozen=True, slots=True)
class OpenRouterConfig:
    """Holds OpenRouter API configuration values."""

    api_key: str
    resilience: ResilienceConfig
    model: str = DEFAULT_MODEL
    fallback_model: str | None = DEFAULT_FALLBACK_MODEL
    referer: str = DEFAULT_REFERER
    title: str = APP_TITLE
    max_tokens: int = 1000
    temperature: float = 0.1

    @property
    def models(self) -> list[str]:
        if self.fallback_model and self.fallback_model != self.model:
            return [self.model, self.fallback_model]
        return [self.model]


def default_openrouter_resilience() -> ResilienceConfig:
    return ResilienceConfig(
        name="openrouter",
        base_url=OPENROUTER_BASE_URL,
        timeout_seconds=OPENROUTER_TIMEOUT_SECONDS,
        retry=connect_only_retry_policy(),
        ratelimit=RateLimit(max_calls=20, per_seconds=10.0),
    )


def get_openrouter_config(*, resilience: ResilienceConfig | None = None) -> OpenRouterConfig:
    api_key = require_any_env_var(("OPENROUTER_API_KEY", "OPEN_ROUTER_API_KEY"))
    fallback = os.getenv("OPENROUTER_FALLBACK_MODEL", DEFAULT_FALLBACK_MODEL).strip()
    return OpenRouterConfig(
        api_key=api_key,
        resilience=resilience or default_openrouter_resilience(),
        model=os.getenv("OPENROUTER_MODEL", DEFAULT_MODEL).strip() or DEFAULT_MODEL,
        fallback_model=fallback or None,
        referer=os.getenv("RENDER_EXTERNAL_URL", DEFAULT_REFERER),
    )
