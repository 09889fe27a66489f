"""Retry and rate-limit settings for the outbound HTTP clients."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from collections.abc import Mapping

# Both upstreams (chat completions, Slack webhooks) are only ever POSTed to.
RETRYABLE_METHODS = frozenset({"POST"})
RETRYABLE_STATUSES = frozenset({500, 502, 503, 504})


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Transport-level retries applied inside the httpx transport."""

    total: int = 3
    backoff_factor: float = 0.5
    max_backoff_wait: float = 30.0
    respect_retry_after_header: bool = True
    allowed_methods: frozenset[str] = RETRYABLE_METHODS
    status_forcelist: frozenset[int] = RETRYABLE_STATUSES
    retry_on_exceptions: tuple[type[httpx.HTTPError], ...] = (
        httpx.TimeoutException,
        httpx.NetworkError,
    )
    backoff_jitter: float = 1.0


def connect_only_retry_policy(total: int = 2) -> RetryPolicy:
    """Transport retries for connection set-up failures only.

    Status codes and read timeouts are left to the caller, which classifies them
    and keeps its own attempt count.
    """

    return RetryPolicy(
        total=total,
        status_forcelist=frozenset(),
        retry_on_exceptions=(httpx.ConnectError, httpx.ConnectTimeout),
    )


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    name: str
    base_url: str | None = None
    timeout_seconds: float = 30.0
    retry: RetryPolicy | None = field(default_factory=RetryPolicy)
    ratelimit: RateLimit | None = None
    default_headers: Mapping[str, str] | None = None
