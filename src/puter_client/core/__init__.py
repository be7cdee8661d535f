"""Core helpers for the Puter client: configuration and the retry engine."""

from puter_client.core.config import (
    DEFAULT_API_URL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MODEL,
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_TIMEOUT_MS,
    ClientConfig,
)
from puter_client.core.retry import (
    DEFAULT_RETRYABLE_STATUSES,
    RetryPolicy,
    calculate_delay,
    create_retry_fetch,
    is_retryable_error,
    with_retry,
    with_retry_sync,
)

__all__ = [
    "ClientConfig",
    "DEFAULT_API_URL",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_MODEL",
    "DEFAULT_RETRYABLE_STATUSES",
    "DEFAULT_RETRY_DELAY_MS",
    "DEFAULT_TIMEOUT_MS",
    "RetryPolicy",
    "calculate_delay",
    "create_retry_fetch",
    "is_retryable_error",
    "with_retry",
    "with_retry_sync",
]
