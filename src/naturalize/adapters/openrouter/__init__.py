"""Public interface for the OpenRouter generation adapter."""

from __future__ import annotations

from .client import OpenRouterClient, classify_status
from .schema import ChatCompletionResponse, ErrorResponse

__all__ = [
    "ChatCompletionResponse",
    "ErrorResponse",
    "OpenRouterClient",
    "classify_status",
]
