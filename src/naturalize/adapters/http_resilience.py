"""Rate-limited httpx client shared by the OpenRouter and Slack adapters."""

from __future__ import annotations

import time
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from aiolimiter import AsyncLimiter
from httpx_retries import Retry, RetryTransport

from naturalize.config.http_resilience import RateLimit, ResilienceConfig, RetryPolicy

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

__all__ = ["RateLimit", "ResilienceConfig", "ResilientClient", "RetryPolicy", "build_retry"]

log = getLogger(__name__)


def build_retry(policy: RetryPolicy) -> Retry:
    return Retry(
        total=policy.total,
        backoff_factor=policy.backoff_factor,
        max_backoff_wait=policy.max_backoff_wait,
        respect_retry_after_header=policy.respect_retry_after_header,
        allowed_methods=tuple(policy.allowed_methods),
        status_forcelist=tuple(policy.status_forcelist),
        retry_on_exceptions=policy.retry_on_exceptions,
        backoff_jitter=policy.backoff_jitter,
    )


def _build_client(config: ResilienceConfig) -> httpx.AsyncClient:
    transport = RetryTransport(retry=build_retry(config.retry)) if config.retry else None
    return httpx.AsyncClient(
        base_url=config.base_url or "",
        timeout=config.timeout_seconds,
        headers=dict(config.default_headers or {}),
        transport=transport,
    )


class ResilientClient:
    """Async JSON-over-POST client with optional transport retries and a call budget.

    Every request first waits on the limiter (when configured), so all batches
    dispatched by the pipeline share one upstream budget per client.
    """

    def __init__(self, config: ResilienceConfig) -> None:
        self.config = config
        self.requests_sent = 0
        self._limiter: AsyncLimiter | None = (
            AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
            if config.ratelimit
            else None
        )
        self._client = _build_client(config)

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        log.debug(f"Closing {self.config.name} client after {self.requests_sent} requests")
        await self._client.aclose()

    async def post_json(
        self,
        url: str,
        payload: object,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        if self._limiter is not None:
            waited = time.monotonic()
            await self._limiter.acquire()
            waited = time.monotonic() - waited
            if waited > 0.5:  # noqa: PLR2004
                log.debug(f"{self.config.name}: waited {waited:.2f}s for rate limit")
        self.requests_sent += 1
        response = await self._client.post(url, json=payload, headers=headers)
        log.debug(f"{self.config.name}: POST {url} -> {response.status_code}")
        return response
