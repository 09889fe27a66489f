"""Slack notification configuration values."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .env import env_flag
from .errors import MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy


@dataclass(frozen=True, slots=True)
class SlackConfig:
    webhook_url: str | None
    enabled: bool
    resilience: ResilienceConfig

    @property
    def active(self) -> bool:
        return self.enabled and bool(self.webhook_url)


def get_slack_config() -> SlackConfig:
    enabled = env_flag("ENABLE_SLACK_NOTIFICATIONS")
    webhook_url = (os.getenv("SLACK_WEBHOOK_URL") or "").strip() or None
    if enabled and webhook_url is None:
        raise MissingConfigurationError("Missing configuration for: SLACK_WEBHOOK_URL")
    return SlackConfig(
        webhook_url=webhook_url,
        enabled=enabled,
        resilience=ResilienceConfig(
            name="slack",
            timeout_seconds=10.0,
            retry=RetryPolicy(total=3),
            ratelimit=RateLimit(max_calls=1, per_seconds=1.0),
        ),
    )
