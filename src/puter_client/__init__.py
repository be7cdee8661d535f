"""Puter client: resilient async access to Puter's chat-completion API."""

from puter_client.client import (
    DEFAULT_MODELS,
    NDJSONStreamDecoder,
    PuterClient,
    decode_chat_stream,
    get_default_models,
)
from puter_client.core import (
    DEFAULT_RETRYABLE_STATUSES,
    ClientConfig,
    RetryPolicy,
    calculate_delay,
    create_retry_fetch,
    is_retryable_error,
    with_retry,
    with_retry_sync,
)
from puter_client.domain import (
    ChatMessage,
    ChatOptions,
    ChatResponse,
    ChatStreamChunk,
    ModelInfo,
    PuterAPIError,
    PuterError,
    RetryExhaustedError,
)
from puter_client.telemetry import configure_request_log

__all__ = [
    "ChatMessage",
    "ChatOptions",
    "ChatResponse",
    "ChatStreamChunk",
    "ClientConfig",
    "DEFAULT_MODELS",
    "DEFAULT_RETRYABLE_STATUSES",
    "ModelInfo",
    "NDJSONStreamDecoder",
    "PuterAPIError",
    "PuterClient",
    "PuterError",
    "RetryExhaustedError",
    "RetryPolicy",
    "calculate_delay",
    "configure_request_log",
    "create_retry_fetch",
    "decode_chat_stream",
    "get_default_models",
    "is_retryable_error",
    "with_retry",
    "with_retry_sync",
]
