"""Wire models for the Puter chat-completion API.

This module defines Pydantic v2 models for the request and response shapes
exchanged with Puter's ``drivers/call`` endpoint and the model catalog.

Key Behaviors:
    - Request-side models (ChatMessage, ChatOptions) are immutable
    - Response-side models allow extra fields, since the upstream provider
      attaches provider-specific metadata that callers may still want
    - ChatStreamChunk accepts both ``tool_call`` and the wire name ``toolCall``
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

Role = Literal["user", "assistant", "system", "tool"]


class ChatMessage(BaseModel):
    """A single conversation message.

    A sequence of these forms the request's conversation history; order is
    significant. Provider-specific fields (``tool_calls``, ``tool_call_id``,
    ``name``, ...) are accepted as extras and forwarded untouched.

    Attributes:
        role: Message role: "user", "assistant", "system", or "tool".
        content: Message text. Some providers answer with a list of content
            blocks instead of a plain string.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    role: Role = Field(..., description="Message role")
    content: str | list[dict[str, Any]] | None = Field(default="", description="Message content")

    @property
    def text(self) -> str:
        """Plain text of the message, joining text blocks when content is a list."""
        match self.content:
            case str():
                return self.content
            case list():
                return "".join(
                    block.get("text", "") for block in self.content if isinstance(block, dict)
                )
            case _:
                return ""


class ChatOptions(BaseModel):
    """Per-call chat options.

    Attributes:
        model: Model identifier. None means the client default (gpt-5-nano).
        max_tokens: Maximum tokens to generate.
        temperature: Sampling temperature.
        tools: Tool specifications the model may call.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    model: str | None = None
    max_tokens: int | None = Field(default=None, ge=0)
    temperature: float | None = None
    tools: list[dict[str, Any]] | None = None


class ChatResponse(BaseModel):
    """One complete assistant message plus metadata from a non-streaming call."""

    model_config = ConfigDict(extra="allow")

    message: ChatMessage | None = None
    finish_reason: str | None = None
    usage: dict[str, Any] | list[Any] | None = None
    via_ai_chat_service: bool | None = None


class ChatStreamChunk(BaseModel):
    """One decoded line of a streaming response.

    A stream is a finite ordered sequence of chunks that ends either with a
    chunk whose ``done`` is true or when the transport closes.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    text: str | None = None
    reasoning: str | None = None
    tool_call: dict[str, Any] | None = Field(default=None, alias="toolCall")
    done: bool = False


class ModelInfo(BaseModel):
    """Catalog entry describing a model available through Puter.

    Only ``id`` is required; live catalog entries that omit capability
    fields get conservative defaults.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    id: str = Field(..., min_length=1)
    name: str = ""
    provider: str = "unknown"
    context_window: int = Field(default=0, ge=0)
    max_output_tokens: int = Field(default=0, ge=0)
    supports_streaming: bool = True
    supports_tools: bool = False
    supports_vision: bool = False

    @model_validator(mode="before")
    @classmethod
    def _default_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("name") and data.get("id"):
            return {**data, "name": data["id"]}
        return data


__all__ = [
    "ChatMessage",
    "ChatOptions",
    "ChatResponse",
    "ChatStreamChunk",
    "ModelInfo",
    "Role",
]
