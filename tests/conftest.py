"""
Pytest configuration and fixtures for Puter client tests.
"""

import json
import socket
import socketserver
import sys
import threading
import time
from http.server import BaseHTTPRequestHandler
from pathlib import Path
from types import SimpleNamespace

import pytest

SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))


class ThreadedTCPServer(socketserver.ThreadingMixIn, socketserver.TCPServer):
    allow_reuse_address = True
    daemon_threads = True
    block_on_close = False


class PuterRequestHandler(BaseHTTPRequestHandler):
    def _json_response(self, data, status: int = 200):
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.end_headers()
        self.wfile.write(json.dumps(data).encode("utf-8"))

    def _text_response(self, text: str, status: int):
        self.send_response(status)
        self.send_header("Content-Type", "text/plain")
        self.end_headers()
        self.wfile.write(text.encode("utf-8"))

    def _stream_response(self, state):
        self.send_response(200)
        self.send_header("Content-Type", "application/x-ndjson")
        self.end_headers()
        try:
            for piece in state["stream_pieces"]:
                self.wfile.write(piece.encode("utf-8") if isinstance(piece, str) else piece)
                self.wfile.flush()
                if state["stream_piece_delay_s"]:
                    time.sleep(state["stream_piece_delay_s"])
            if state["stream_hang_s"]:
                time.sleep(state["stream_hang_s"])
        except (BrokenPipeError, ConnectionResetError):
            state["stream_disconnects"] += 1

    def do_GET(self):
        state = self.server.server_state  # type: ignore[attr-defined]
        if self.path == "/puterai/chat/models/details":
            state["models_calls"].append(self.headers.get("Authorization"))
            if state["models_failures"]:
                self._text_response("models unavailable", state["models_failures"].pop(0))
                return
            status = state["models_status"]
            if status != 200:
                self._text_response("models unavailable", status)
                return
            self._json_response(state["models_payload"])
            return

        self._json_response({"error": "not found"}, status=404)

    def do_POST(self):
        state = self.server.server_state  # type: ignore[attr-defined]
        length = int(self.headers.get("Content-Length", "0"))
        raw = self.rfile.read(length) if length else b"{}"
        try:
            payload = json.loads(raw.decode("utf-8"))
        except json.JSONDecodeError:
            payload = {}

        if self.path != "/drivers/call":
            self._json_response({"error": "not found"}, status=404)
            return

        state["calls"].append(payload)

        if state["call_failures"]:
            status = state["call_failures"].pop(0)
            self._text_response(f"failure {status}", status)
            return

        args = payload.get("args", {})
        if args.get("stream"):
            self._stream_response(state)
            return

        if state["chat_result"] is not None:
            self._json_response({"success": True, "result": state["chat_result"]})
            return

        messages = args.get("messages", [])
        last = messages[-1]["content"] if messages else ""
        self._json_response(
            {
                "success": True,
                "result": {
                    "message": {"role": "assistant", "content": f"Echo: {last}"},
                    "finish_reason": "stop",
                    "usage": [{"type": "prompt", "model": args.get("model"), "amount": 3}],
                },
            }
        )

    def log_message(self, format, *args):
        # Suppress default HTTP server logging to keep test output clean.
        return


@pytest.fixture
def puter_server():
    """Start a lightweight HTTP server that mimics the Puter endpoints used by the client."""
    state = {
        "calls": [],
        "call_failures": [],
        "chat_result": None,
        "stream_pieces": [
            '{"text": "Hel"}\n',
            '{"text": "lo"}\n',
            '{"done": true}\n',
        ],
        "stream_piece_delay_s": 0.0,
        "stream_hang_s": 0.0,
        "stream_disconnects": 0,
        "models_calls": [],
        "models_failures": [],
        "models_status": 200,
        "models_payload": {
            "models": [
                {"id": "live-model-1", "name": "Live Model 1", "provider": "test"},
                {"id": "live-model-2", "provider": "test", "context_window": 8192},
            ]
        },
    }

    server = ThreadedTCPServer(("127.0.0.1", 0), PuterRequestHandler)
    server.server_state = state  # type: ignore[attr-defined]

    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    base_url = f"http://127.0.0.1:{server.server_address[1]}"

    try:
        yield SimpleNamespace(base_url=base_url, state=state)
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture
def unreachable_url():
    """URL of a local port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return f"http://127.0.0.1:{port}"


@pytest.fixture
def fast_config(puter_server):
    """Client config pointing at the test server with near-zero backoff."""
    return {
        "api_base_url": puter_server.base_url,
        "api_timeout_ms": 5000,
        "max_retries": 3,
        "retry_delay_ms": 1,
    }


@pytest.fixture(autouse=True)
def clear_puter_env(monkeypatch):
    """Keep PUTER_* variables from the developer's shell out of the tests."""
    for name in ("PUTER_API_BASE_URL", "PUTER_API_TIMEOUT_MS", "PUTER_MAX_RETRIES",
                 "PUTER_RETRY_DELAY_MS", "PUTER_DEBUG"):
        monkeypatch.delenv(name, raising=False)
