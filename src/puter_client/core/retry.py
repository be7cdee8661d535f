"""Retry engine with exponential backoff and jitter for the Puter client.

``with_retry`` runs a zero-argument operation and retries it while it fails
with a transient error. The loop itself is tenacity's; this module supplies
the backoff schedule (``calculate_delay``), the transient-failure classifier
(``is_retryable_error``) and the stop condition.

Classification is structured first (``PuterAPIError.status_code``, httpx
network and timeout exceptions) and falls back to matching the error
message, e.g. ``"(503)"`` or ``"socket hang up"``. The textual fallback is a
heuristic: an unrelated message that happens to contain ``"network"`` will
be retried.

Delays are expressed in integer milliseconds throughout.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any, TypeAlias, TypeVar

import httpx
from tenacity import AsyncRetrying, RetryCallState, Retrying, retry_if_exception, stop_after_attempt

from puter_client.domain.exceptions import PuterAPIError, RetryExhaustedError

logger = logging.getLogger(__name__)

_T = TypeVar("_T")
OnRetry: TypeAlias = Callable[[int, BaseException, int], None]

DEFAULT_RETRYABLE_STATUSES: frozenset[int] = frozenset({429, 500, 502, 503, 504})

TRANSIENT_MARKERS: tuple[str, ...] = (
    "timeout",
    "timed out",
    "econnreset",
    "connection reset",
    "econnrefused",
    "connection refused",
    "network",
    "socket hang up",
    "rate limit",
    "too many requests",
)

JITTER_RATIO = 0.25


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Retry behaviour for a single call.

    Attributes:
        max_retries: Retries after the initial attempt (total attempts is
            ``max_retries + 1``).
        initial_delay: Delay before the first retry, in milliseconds.
        max_delay: Upper bound for any single delay, in milliseconds.
        backoff_factor: Multiplier applied per attempt.
        jitter: Add a uniform +/-25% random offset to each delay.
        retryable_statuses: HTTP status codes treated as transient.
        on_retry: Called as ``on_retry(attempt, error, delay_ms)`` before each
            wait, with ``attempt`` counting retries from 1.
    """

    max_retries: int = 3
    initial_delay: int = 1000
    max_delay: int = 30_000
    backoff_factor: float = 2.0
    jitter: bool = True
    retryable_statuses: frozenset[int] = DEFAULT_RETRYABLE_STATUSES
    on_retry: OnRetry | None = None


def calculate_delay(attempt: int, policy: RetryPolicy | None = None) -> int:
    """Return the delay in milliseconds before retrying after ``attempt``.

    ``attempt`` is the 0-based index of the attempt that just failed. With
    jitter disabled the result is ``round(min(initial * factor**attempt, max))``.

    >>> calculate_delay(2, RetryPolicy(jitter=False))
    4000
    """
    cfg = policy or RetryPolicy()
    try:
        base = cfg.initial_delay * cfg.backoff_factor**attempt
    except OverflowError:
        base = float(cfg.max_delay)
    capped = min(base, cfg.max_delay)

    if cfg.jitter:
        offset = random.uniform(-1.0, 1.0) * capped * JITTER_RATIO
        return max(0, round(capped + offset))

    return round(capped)


def is_retryable_error(
    error: object,
    retryable_statuses: Iterable[int] = DEFAULT_RETRYABLE_STATUSES,
) -> bool:
    """Decide whether ``error`` is a transient failure worth retrying.

    Only ``Exception`` instances qualify; ``None``, strings and
    ``asyncio.CancelledError`` never do.
    """
    if not isinstance(error, Exception):
        return False

    statuses = frozenset(retryable_statuses)

    match error:
        case PuterAPIError(status_code=int() as status_code):
            return status_code in statuses
        case httpx.TimeoutException() | httpx.NetworkError():
            return True

    message = str(error).lower()
    for status in statuses:
        if f"({status})" in message or f"status {status}" in message:
            return True

    return any(marker in message for marker in TRANSIENT_MARKERS)


def _wait_for(cfg: RetryPolicy) -> Callable[[RetryCallState], float]:
    def wait(retry_state: RetryCallState) -> float:
        return calculate_delay(retry_state.attempt_number - 1, cfg) / 1000

    return wait


def _before_sleep(cfg: RetryPolicy) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        delay_ms = round(retry_state.next_action.sleep * 1000) if retry_state.next_action else 0
        logger.debug(
            "Attempt %s failed with %r, retrying in %sms",
            retry_state.attempt_number,
            error,
            delay_ms,
        )
        if cfg.on_retry is not None and error is not None:
            cfg.on_retry(retry_state.attempt_number, error, delay_ms)

    return before_sleep


def _raise_exhausted(retry_state: RetryCallState) -> Any:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    msg = f"Operation failed after {retry_state.attempt_number} attempts"
    raise RetryExhaustedError(msg, retry_state.attempt_number, error) from error


def _retrying_kwargs(cfg: RetryPolicy, raise_exhausted: bool) -> dict[str, Any]:
    kwargs: dict[str, Any] = {
        "stop": stop_after_attempt(cfg.max_retries + 1),
        "wait": _wait_for(cfg),
        "retry": retry_if_exception(
            lambda exc: is_retryable_error(exc, cfg.retryable_statuses)
        ),
        "before_sleep": _before_sleep(cfg),
        "reraise": True,
    }
    if raise_exhausted:
        kwargs["retry_error_callback"] = _raise_exhausted
    return kwargs


async def with_retry(
    operation: Callable[[], Awaitable[_T]],
    policy: RetryPolicy | None = None,
    *,
    raise_exhausted: bool = False,
) -> _T:
    """Await ``operation()`` with exponential-backoff retries.

    Non-retryable failures and the failure of the final attempt propagate
    unchanged. With ``raise_exhausted=True`` a transient failure that
    outlives every attempt raises ``RetryExhaustedError`` instead, chained
    from the last error.

    Raises:
        Whatever ``operation`` raised, or RetryExhaustedError (see above).
    """
    cfg = policy or RetryPolicy()
    retrying = AsyncRetrying(**_retrying_kwargs(cfg, raise_exhausted))
    return await retrying(operation)


def with_retry_sync(
    operation: Callable[[], _T],
    policy: RetryPolicy | None = None,
    *,
    raise_exhausted: bool = False,
) -> _T:
    """Blocking counterpart of ``with_retry`` for synchronous callables."""
    cfg = policy or RetryPolicy()
    retrying = Retrying(**_retrying_kwargs(cfg, raise_exhausted))
    return retrying(operation)


def create_retry_fetch(
    client: httpx.AsyncClient,
    policy: RetryPolicy | None = None,
) -> Callable[..., Awaitable[httpx.Response]]:
    """Wrap ``client.request`` so retryable HTTP statuses are retried.

    The returned coroutine function takes ``(method, url, **kwargs)`` like
    ``httpx.AsyncClient.request``. Responses with a status outside
    ``retryable_statuses`` are returned as-is, successful or not.
    """
    cfg = policy or RetryPolicy()

    async def retry_fetch(method: str, url: str, **kwargs: Any) -> httpx.Response:
        async def attempt() -> httpx.Response:
            response = await client.request(method, url, **kwargs)
            if response.status_code in cfg.retryable_statuses:
                await response.aclose()
                raise PuterAPIError.from_response(
                    response.status_code, response.reason_phrase, prefix="HTTP error"
                )
            return response

        return await with_retry(attempt, cfg)

    return retry_fetch


__all__ = [
    "DEFAULT_RETRYABLE_STATUSES",
    "RetryPolicy",
    "TRANSIENT_MARKERS",
    "calculate_delay",
    "create_retry_fetch",
    "is_retryable_error",
    "with_retry",
    "with_retry_sync",
]
