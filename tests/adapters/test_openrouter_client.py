from __future__ import annotations

import asyncio
import json
from collections.abc import Callable  # noqa: TC003

import httpx
import pytest

from naturalize.adapters.http_resilience import ResilienceConfig, ResilientClient
from naturalize.adapters.openrouter import OpenRouterClient, classify_status
from naturalize.config import OpenRouterConfig
from naturalize.config.openrouter import default_openrouter_resilience
from naturalize.domain.errors import (
    FatalUpstreamError,
    QuotaExhaustedError,
    RateLimitedError,
    TransientUpstreamError,
    UpstreamAuthError,
)


def _make_client_factory(
    handler: Callable[[httpx.Request], httpx.Response],
) -> Callable[[ResilienceConfig], ResilientClient]:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(resilience)
        client._client = httpx.AsyncClient(transport=httpx.MockTransport(async_handler))  # noqa: SLF001  # type: ignore[reportPrivateUsage]
        return client

    return factory


def _config() -> OpenRouterConfig:
    return OpenRouterConfig(
        api_key="test-key",
        resilience=default_openrouter_resilience(),
        model="openai/gpt-4o-mini",
        fallback_model="openai/gpt-3.5-turbo",
        referer="https://example.test",
    )


def _complete(handler: Callable[[httpx.Request], httpx.Response], prompt: str = "hi") -> str:
    async def run() -> str:
        client = OpenRouterClient(config=_config(), client_factory=_make_client_factory(handler))
        async with client:
            return await client.complete(prompt)

    return asyncio.run(run())


def _completion(content: str | None) -> dict[str, object]:
    return {
        "id": "gen-1",
        "model": "openai/gpt-4o-mini",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
        "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
    }


def test_complete_posts_chat_request_and_returns_content() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json=_completion("1. Birthday's Plus\n"))

    content = _complete(handler, prompt="Please process")

    assert content == "1. Birthday's Plus"
    request = captured[0]
    assert request.method == "POST"
    assert str(request.url) == "https://openrouter.ai/api/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer test-key"
    assert request.headers["HTTP-Referer"] == "https://example.test"
    body = json.loads(request.content)
    assert body["model"] == "openai/gpt-4o-mini"
    assert body["models"] == ["openai/gpt-4o-mini", "openai/gpt-3.5-turbo"]
    assert body["messages"] == [{"role": "user", "content": "Please process"}]
    assert body["temperature"] == 0.1


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (402, QuotaExhaustedError),
        (401, UpstreamAuthError),
        (403, UpstreamAuthError),
        (429, RateLimitedError),
        (500, TransientUpstreamError),
        (502, TransientUpstreamError),
    ],
)
def test_http_errors_are_classified(status: int, expected: type[Exception]) -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json={"error": {"code": status, "message": "nope"}})

    with pytest.raises(expected) as excinfo:
        _complete(handler)

    assert "nope" in str(excinfo.value)


def test_rate_limit_carries_retry_after() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, headers={"Retry-After": "7"}, text="slow down")

    with pytest.raises(RateLimitedError) as excinfo:
        _complete(handler)

    assert excinfo.value.retry_after == 7.0


def test_error_payload_with_success_status_is_classified() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"error": {"code": "402", "message": "Insufficient"}})

    with pytest.raises(QuotaExhaustedError):
        _complete(handler)


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>bad gateway</html>"),
        httpx.Response(200, json=_completion(None)),
        httpx.Response(200, json={"choices": "not-a-list"}),
    ],
)
def test_unusable_payloads_are_transient(response: httpx.Response) -> None:
    with pytest.raises(TransientUpstreamError):
        _complete(lambda _request: response)


def test_transport_errors_are_transient() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransientUpstreamError):
        _complete(handler)


def test_complete_requires_context_manager() -> None:
    client = OpenRouterClient(config=_config())

    with pytest.raises(RuntimeError, match="async with"):
        asyncio.run(client.complete("hi"))


def test_classify_status_fatal_branches() -> None:
    assert isinstance(classify_status(402, "x"), FatalUpstreamError)
    assert isinstance(classify_status(401, "x"), FatalUpstreamError)
    assert not isinstance(classify_status(429, "x"), FatalUpstreamError)
    assert classify_status(503, "x").status_code == 503
