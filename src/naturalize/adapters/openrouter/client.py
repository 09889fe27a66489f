"""HTTP client for the OpenRouter chat completions API."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from naturalize.adapters.http_resilience import ResilientClient
from naturalize.domain.errors import (
    QuotaExhaustedError,
    RateLimitedError,
    TransientUpstreamError,
    UpstreamAuthError,
    UpstreamError,
)

from .schema import ChatCompletionResponse, ErrorResponse

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from naturalize.config.http_resilience import ResilienceConfig
    from naturalize.config.openrouter import OpenRouterConfig

log = getLogger(__name__)

_PAYMENT_REQUIRED = 402
_RATE_LIMITED = 429
_AUTH_FAILURES = frozenset({401, 403})


def classify_status(
    status_code: int,
    message: str,
    *,
    retry_after: float | None = None,
) -> UpstreamError:
    """Map an HTTP (or in-body) error code onto the pipeline's error taxonomy."""

    if status_code == _PAYMENT_REQUIRED:
        return QuotaExhaustedError(f"OpenRouter credits exhausted: {message}", status_code=402)
    if status_code in _AUTH_FAILURES:
        return UpstreamAuthError(
            f"OpenRouter rejected credentials: {message}", status_code=status_code
        )
    if status_code == _RATE_LIMITED:
        return RateLimitedError(f"OpenRouter rate limit: {message}", retry_after=retry_after)
    return TransientUpstreamError(
        f"OpenRouter error {status_code}: {message}", status_code=status_code
    )


def _retry_after_seconds(response: httpx.Response) -> float | None:
    raw = response.headers.get("Retry-After")
    if raw is None:
        return None
    try:
        return max(float(raw), 0.0)
    except ValueError:
        return None


def _error_message(response: httpx.Response) -> str:
    try:
        return ErrorResponse.model_validate(response.json()).error.message
    except (ValueError, ValidationError):
        return response.reason_phrase or "no details"


class OpenRouterClient:
    """`NameGenerator` backed by OpenRouter.

    Use as an async context manager: one :class:`ResilientClient` lives for the
    whole run so every concurrent batch shares its connection pool and rate
    limiter.
    """

    def __init__(
        self,
        *,
        config: OpenRouterConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._client_factory = client_factory or ResilientClient
        self._client: ResilientClient | None = None

    async def __aenter__(self) -> OpenRouterClient:
        self._client = self._client_factory(self._config.resilience)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def complete(self, prompt: str) -> str:
        if self._client is None:
            raise RuntimeError("OpenRouterClient must be used inside 'async with'")

        try:
            response = await self._client.post_json(
                self._endpoint(),
                self._payload(prompt),
                headers=self._headers(),
            )
        except httpx.TimeoutException as exc:
            raise TransientUpstreamError(f"OpenRouter request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise TransientUpstreamError(f"OpenRouter transport error: {exc}") from exc

        if response.status_code >= 400:  # noqa: PLR2004
            raise classify_status(
                response.status_code,
                _error_message(response),
                retry_after=_retry_after_seconds(response),
            )

        return self._parse(response)

    def _endpoint(self) -> str:
        base_url = (self._config.resilience.base_url or "").rstrip("/")
        return f"{base_url}/chat/completions"

    def _payload(self, prompt: str) -> dict[str, object]:
        return {
            "model": self._config.model,
            "models": self._config.models,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self._config.max_tokens,
            "temperature": self._config.temperature,
        }

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._config.api_key}",
            "HTTP-Referer": self._config.referer,
            "X-Title": self._config.title,
            "Content-Type": "application/json",
        }

    @staticmethod
    def _parse(response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError as exc:
            raise TransientUpstreamError("OpenRouter returned a non-JSON body") from exc

        if isinstance(payload, dict) and "error" in payload:
            try:
                error = ErrorResponse.model_validate(payload).error
            except ValidationError as exc:
                raise TransientUpstreamError("Unreadable OpenRouter error payload") from exc
            log.error(f"OpenRouter API error {error.code}: {error.message}")
            raise classify_status(error.code or 500, error.message)

        try:
            completion = ChatCompletionResponse.model_validate(payload)
        except ValidationError as exc:
            raise TransientUpstreamError("Unexpected OpenRouter response payload") from exc

        content = completion.first_content()
        if content is None:
            raise TransientUpstreamError("OpenRouter response carried no content")
        if completion.model:
            log.debug(f"Model used: {completion.model}")
        return content


if TYPE_CHECKING:
    from naturalize.config.openrouter import default_openrouter_resilience
    from naturalize.domain.ports import NameGenerator

    _generator_check: NameGenerator = OpenRouterClient(
        config=OpenRouterConfig(api_key="", resilience=default_openrouter_resilience())
    )
