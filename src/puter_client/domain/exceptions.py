"""Exceptions raised by the Puter client.

Exception Hierarchy:
    - PuterError: Base exception for all client errors
    - PuterAPIError: Non-successful HTTP response from the Puter API
    - RetryExhaustedError: A transient failure persisted through every attempt

Error classification (transient vs. permanent) is not encoded in the class
hierarchy. It is decided by ``puter_client.core.retry.is_retryable_error``
from the status code carried on ``PuterAPIError`` and, for foreign errors,
from the error message.
"""

from __future__ import annotations


class PuterError(Exception):
    """Base exception for all Puter client errors."""


class PuterAPIError(PuterError):
    """Raised when the Puter API answers with a non-successful status.

    The message embeds the status in parentheses, e.g.
    ``Puter API error (429): Too many requests``, so that callers relying on
    the textual format keep working. ``status_code`` carries the same value
    in structured form.

    Attributes:
        status_code: HTTP status code of the response, if known.
        body: Response body text (may be empty).
    """

    def __init__(self, message: str, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    @classmethod
    def from_response(cls, status_code: int, body: str, prefix: str = "Puter API error") -> PuterAPIError:
        """Build the error in the ``<prefix> (<status>): <body>`` format."""
        return cls(f"{prefix} ({status_code}): {body}", status_code=status_code, body=body)


class RetryExhaustedError(PuterError):
    """Raised when retries are exhausted and the caller asked for it explicitly.

    Attributes:
        attempts: Number of attempts made (initial attempt plus retries).
        last_error: The error raised by the final attempt.
    """

    def __init__(self, message: str, attempts: int, last_error: BaseException) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


__all__ = [
    "PuterAPIError",
    "PuterError",
    "RetryExhaustedError",
]
