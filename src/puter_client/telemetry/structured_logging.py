"""Structured request logging for the Puter client.

Request events are emitted as one JSON object per line on the
``puter_client.requests`` logger. The logger does not propagate and carries
only a ``NullHandler`` until ``configure_request_log`` attaches a JSON Lines
file handler, so importing the library never writes anywhere.

Event Schema:
    All events include:
        - event: Always "puter_request"
        - operation: "chat", "chat_stream" or "list_models"
        - status: "success", "error" or "fallback"
        - timestamp: ISO 8601 UTC timestamp (auto-injected if missing)
    Plus operation-specific fields (request_id, model, latency_ms,
    error_type, error_message, http_status, ...).
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter

REQUEST_LOGGER = logging.getLogger("puter_client.requests")
REQUEST_LOGGER.setLevel(logging.INFO)
REQUEST_LOGGER.propagate = False
if not REQUEST_LOGGER.handlers:
    REQUEST_LOGGER.addHandler(logging.NullHandler())


def _json_default(value: Any) -> Any:
    """Fallback serializer for datetime and Path values."""
    match value:
        case datetime():
            return TypeAdapter(datetime).dump_python(value, mode="json")
        case Path():
            return str(value)
        case _:
            return str(value)


def configure_request_log(path: str | Path) -> logging.Handler:
    """Append request events to ``path`` in JSON Lines format.

    Creates parent directories as needed. Returns the attached handler so
    callers can remove it again.
    """
    log_path = Path(path)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(message)s"))
    REQUEST_LOGGER.addHandler(handler)
    return handler


def log_request_event(event: dict[str, Any]) -> None:
    """Emit a structured request event.

    Injects ``timestamp`` when missing (mutates ``event``).

    Example:
        >>> log_request_event({
        ...     "event": "puter_request",
        ...     "operation": "chat",
        ...     "status": "success",
        ...     "model": "gpt-5-nano",
        ...     "latency_ms": 812.4,
        ... })
    """
    event.setdefault("timestamp", datetime.now(UTC).isoformat())
    REQUEST_LOGGER.info(json.dumps(event, default=_json_default))


__all__ = ["REQUEST_LOGGER", "configure_request_log", "log_request_event"]
