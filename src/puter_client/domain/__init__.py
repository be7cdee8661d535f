"""Domain layer for the Puter client: wire models and exceptions."""

from puter_client.domain.entities import (
    ChatMessage,
    ChatOptions,
    ChatResponse,
    ChatStreamChunk,
    ModelInfo,
    Role,
)
from puter_client.domain.exceptions import (
    PuterAPIError,
    PuterError,
    RetryExhaustedError,
)

__all__ = [
    "ChatMessage",
    "ChatOptions",
    "ChatResponse",
    "ChatStreamChunk",
    "ModelInfo",
    "PuterAPIError",
    "PuterError",
    "RetryExhaustedError",
    "Role",
]
