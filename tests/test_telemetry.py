"""
Tests for structured request logging.
"""

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from puter_client import PuterClient
from puter_client.telemetry import REQUEST_LOGGER, configure_request_log, log_request_event


@pytest.fixture
def request_log(tmp_path):
    path = tmp_path / "logs" / "requests.jsonl"
    handler = configure_request_log(path)
    try:
        yield path
    finally:
        REQUEST_LOGGER.removeHandler(handler)
        handler.close()


def read_events(path: Path) -> list[dict]:
    return [json.loads(line) for line in path.read_text().splitlines() if line]


class TestLogRequestEvent:
    def test_writes_json_line_with_timestamp(self, request_log):
        log_request_event({"event": "puter_request", "operation": "chat", "status": "success"})

        (event,) = read_events(request_log)
        assert event["operation"] == "chat"
        assert datetime.fromisoformat(event["timestamp"]).tzinfo is not None

    def test_keeps_existing_timestamp(self, request_log):
        log_request_event({"event": "x", "timestamp": "2025-01-01T00:00:00+00:00"})
        assert read_events(request_log)[0]["timestamp"] == "2025-01-01T00:00:00+00:00"

    def test_serializes_datetime_and_path_values(self, request_log):
        when = datetime(2025, 6, 1, 12, 30, tzinfo=UTC)
        log_request_event({"event": "x", "at": when, "file": Path("/tmp/a.txt")})

        event = read_events(request_log)[0]
        assert event["at"].startswith("2025-06-01T12:30:00")
        assert event["file"] == "/tmp/a.txt"

    def test_silent_without_configured_handler(self, tmp_path, capsys):
        log_request_event({"event": "x"})
        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err == ""


@pytest.mark.asyncio
class TestClientRequestEvents:
    async def test_chat_emits_success_event(self, request_log, puter_server, fast_config):
        async with PuterClient("token", fast_config) as client:
            await client.chat([{"role": "user", "content": "hi"}])

        (event,) = read_events(request_log)
        assert event["operation"] == "chat"
        assert event["status"] == "success"
        assert event["model"] == "gpt-5-nano"
        assert event["latency_ms"] >= 0

    async def test_chat_error_event_carries_status(self, request_log, puter_server, fast_config):
        puter_server.state["call_failures"] = [403]
        async with PuterClient("token", fast_config) as client:
            with pytest.raises(Exception):
                await client.chat([{"role": "user", "content": "hi"}])

        (event,) = read_events(request_log)
        assert event["status"] == "error"
        assert event["http_status"] == 403
        assert event["error_type"] == "PuterAPIError"

    async def test_stream_success_event_counts_chunks(self, request_log, puter_server, fast_config):
        async with PuterClient("token", fast_config) as client:
            async for _ in client.chat_stream([{"role": "user", "content": "hi"}]):
                pass

        (event,) = read_events(request_log)
        assert event["operation"] == "chat_stream"
        assert event["chunks"] == 3

    async def test_list_models_fallback_event(self, request_log, unreachable_url):
        config = {"api_base_url": unreachable_url, "max_retries": 0}
        async with PuterClient("token", config) as client:
            await client.list_models()

        (event,) = read_events(request_log)
        assert event["operation"] == "list_models"
        assert event["status"] == "fallback"
