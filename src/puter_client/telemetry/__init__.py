"""Telemetry utilities (structured request logging)."""

from puter_client.telemetry.structured_logging import (
    REQUEST_LOGGER,
    configure_request_log,
    log_request_event,
)

__all__ = ["REQUEST_LOGGER", "configure_request_log", "log_request_event"]
