"""Pydantic models describing the OpenRouter chat completion payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OpenRouterBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ChatMessage(OpenRouterBaseModel):
    role: str = "assistant"
    content: str | None = None


class Choice(OpenRouterBaseModel):
    index: int = 0
    message: ChatMessage
    finish_reason: str | None = None


class Usage(OpenRouterBaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ErrorDetail(OpenRouterBaseModel):
    code: int | None = None
    message: str = "Unknown OpenRouter error"

    @field_validator("code", mode="before")
    @classmethod
    def _coerce_code(cls, value: object) -> object:
        if isinstance(value, str):
            return int(value) if value.strip().isdigit() else None
        return value


class ErrorResponse(OpenRouterBaseModel):
    error: ErrorDetail


class ChatCompletionResponse(OpenRouterBaseModel):
    id: str | None = None
    model: str | None = None
    choices: list[Choice] = Field(default_factory=list[Choice])
    usage: Usage | None = None

    def first_content(self) -> str | None:
        for choice in self.choices:
            if choice.message.content and choice.message.content.strip():
                return choice.message.content.strip()
        return None
