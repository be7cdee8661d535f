"""Asynchronous client for Puter's chat-completion API.

This module provides ``PuterClient``, an httpx-based client for the
``drivers/call`` endpoint and the model catalog. Every network call runs
through the retry engine in ``puter_client.core.retry``.

Key behaviors:
    - ``chat`` posts one non-streaming completion, retried as a whole
    - ``chat_stream`` retries only the connection; once bytes flow, a
      mid-stream failure ends the stream with that error
    - ``list_models`` never raises: it falls back to the built-in catalog
    - ``test_connection`` never raises: it answers True or False
    - Configuration is resolved on every call, so edits to ``client.config``
      apply to the next call

Timeouts:
    Deadlines are enforced with ``asyncio.timeout``/``asyncio.timeout_at``
    around each suspension point. Expiry cancels the awaiting httpx call,
    which tears the connection down, and surfaces as ``TimeoutError``. A
    deadline expiry is not retried.

Concurrency:
    - Methods may be called concurrently; calls share only the httpx
      connection pool and the auth token
    - The token is read once when a call starts; ``set_auth_token`` never
      affects a call already in flight
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
import types
import uuid
from collections.abc import AsyncIterator, Mapping, Sequence
from contextlib import aclosing
from typing import Any

import httpx

from puter_client.client.catalog import get_default_models
from puter_client.client.streaming import decode_chat_stream
from puter_client.core.config import DEFAULT_MODEL, ClientConfig
from puter_client.core.retry import RetryPolicy, create_retry_fetch, with_retry
from puter_client.domain.entities import (
    ChatMessage,
    ChatOptions,
    ChatResponse,
    ChatStreamChunk,
    ModelInfo,
)
from puter_client.domain.exceptions import PuterAPIError
from puter_client.telemetry.structured_logging import log_request_event

logger = logging.getLogger(__name__)

DRIVER_INTERFACE = "puter-chat-completion"
DRIVER_SERVICE = "ai-chat"
PROBE_PROMPT = 'Say "OK" and nothing else.'
PROBE_MAX_TOKENS = 10

MessagesInput = Sequence[ChatMessage | Mapping[str, Any]]


def _coerce_messages(messages: MessagesInput) -> list[dict[str, Any]]:
    return [
        (m if isinstance(m, ChatMessage) else ChatMessage.model_validate(m)).model_dump(
            exclude_none=True
        )
        for m in messages
    ]


def _coerce_options(options: ChatOptions | Mapping[str, Any] | None) -> ChatOptions:
    match options:
        case None:
            return ChatOptions()
        case ChatOptions():
            return options
        case _:
            return ChatOptions.model_validate(dict(options))


class PuterClient:
    """Resilient async client for the Puter chat-completion API.

    Can be used as an async context manager; the underlying
    ``httpx.AsyncClient`` is created lazily on first use and closed on exit,
    unless it was injected through ``http_client``, in which case the caller
    owns it.

    Attributes:
        config: Live ``ClientConfig``; fields may be reassigned at any time.
    """

    __slots__ = ("_auth_token", "_http_client", "_owns_http_client", "config")

    def __init__(
        self,
        auth_token: str,
        config: ClientConfig | Mapping[str, Any] | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            auth_token: Opaque Puter auth token, supplied by the caller's
                authentication layer.
            config: Partial configuration. A mapping is validated into a
                ``ClientConfig``; None reads ``PUTER_*`` environment variables.
            http_client: Optional pre-configured httpx client to send through.
        """
        self._auth_token = auth_token
        match config:
            case ClientConfig():
                self.config = config
            case None:
                self.config = ClientConfig()
            case _:
                self.config = ClientConfig(**dict(config))
        self._http_client = http_client
        self._owns_http_client = http_client is None

    async def __aenter__(self) -> PuterClient:
        await self._ensure_client()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        await self.close()

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Return the httpx client, creating it on first use.

        Read time is left unbounded here: the per-call deadline governs it.
        """
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(connect=10.0, read=None, write=10.0, pool=10.0),
            )
            self._owns_http_client = True
        return self._http_client

    async def close(self) -> None:
        """Close the owned httpx client. Safe to call multiple times."""
        if self._http_client is not None and self._owns_http_client:
            await self._http_client.aclose()
            self._http_client = None

    @property
    def api_url(self) -> str:
        return self.config.resolved_api_base_url

    @property
    def timeout_ms(self) -> int:
        return self.config.resolved_timeout_ms

    @property
    def retry_policy(self) -> RetryPolicy:
        """Retry policy derived from the current config."""
        return RetryPolicy(
            max_retries=self.config.resolved_max_retries,
            initial_delay=self.config.resolved_retry_delay_ms,
            on_retry=self._log_retry if self.config.resolved_debug else None,
        )

    @staticmethod
    def _log_retry(attempt: int, error: BaseException, delay: int) -> None:
        logger.warning("Retry %s: %s (waiting %sms)", attempt, error, delay)

    def set_auth_token(self, token: str) -> None:
        """Replace the auth token used by subsequent calls."""
        self._auth_token = token

    def _driver_payload(self, method: str, args: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "interface": DRIVER_INTERFACE,
            "service": DRIVER_SERVICE,
            "method": method,
            "args": {k: v for k, v in args.items() if v is not None},
            "auth_token": self._auth_token,
        }

    @staticmethod
    def _chat_args(
        messages: MessagesInput, options: ChatOptions, *, stream: bool
    ) -> dict[str, Any]:
        return {
            "messages": _coerce_messages(messages),
            "model": options.model or DEFAULT_MODEL,
            "stream": stream,
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
            "tools": options.tools,
        }

    async def make_request(self, method: str, args: Mapping[str, Any]) -> dict[str, Any]:
        """POST a driver call and return the decoded JSON body.

        Each attempt gets its own ``api_timeout_ms`` deadline; the whole
        request/response cycle is retried on transient failures.

        Raises:
            PuterAPIError: If the response status is not 2xx. The message
                embeds the status and the response body.
            ValueError: If the body is not a JSON object.
            TimeoutError: If an attempt outlives its deadline.
            httpx.RequestError: If a network error survives all retries.
        """
        client = await self._ensure_client()
        url = f"{self.api_url}/drivers/call"
        payload = self._driver_payload(method, args)
        timeout_s = self.timeout_ms / 1000

        async def attempt() -> dict[str, Any]:
            async with asyncio.timeout(timeout_s):
                response = await client.post(url, json=payload)
            if not response.is_success:
                raise PuterAPIError.from_response(response.status_code, response.text)

            data = response.json()
            if not isinstance(data, dict):
                msg = f"Expected dict response, got {type(data).__name__}"
                raise ValueError(msg)
            return data

        return await with_retry(attempt, self.retry_policy)

    async def chat(
        self,
        messages: MessagesInput,
        options: ChatOptions | Mapping[str, Any] | None = None,
    ) -> ChatResponse:
        """Send a non-streaming chat completion.

        Args:
            messages: Conversation history, oldest first. Dicts are validated
                into ``ChatMessage``.
            options: Model and sampling options. Model defaults to gpt-5-nano.

        Returns:
            The ``result`` field of the driver response as a ChatResponse.

        Raises:
            PuterAPIError: On a non-2xx response (after retries when transient)
                or when the body carries no ``result`` object.
            TimeoutError: If the final attempt outlives ``api_timeout_ms``.
            httpx.RequestError: If a network error survives all retries.

        Example:
            >>> response = await client.chat(
            ...     [{"role": "user", "content": "Hello!"}],
            ...     ChatOptions(model="claude-opus-4-5"),
            ... )
            >>> print(response.message.text)
        """
        return await self._complete(messages, options)

    async def _complete(
        self,
        messages: MessagesInput,
        options: ChatOptions | Mapping[str, Any] | None,
        *,
        quiet: bool = False,
    ) -> ChatResponse:
        """Run one non-streaming completion; ``quiet`` logs failures at DEBUG only."""
        opts = _coerce_options(options)
        args = self._chat_args(messages, opts, stream=False)
        request_id = str(uuid.uuid4())
        start_time = time.perf_counter()

        try:
            data = await self.make_request("complete", args)
            result = data.get("result")
            if not isinstance(result, dict):
                msg = f"Puter API returned no result: {json.dumps(data)[:500]}"
                raise PuterAPIError(msg, body=json.dumps(data))
            response = ChatResponse.model_validate(result)
        except Exception as exc:
            self._log_error("chat", args["model"], request_id, start_time, exc)
            if quiet:
                logger.debug("Chat request failed for %s: %s", args["model"], exc)
            else:
                logger.exception("Chat request failed for %s", args["model"])
            raise

        log_request_event(
            {
                "event": "puter_request",
                "operation": "chat",
                "status": "success",
                "model": args["model"],
                "request_id": request_id,
                "latency_ms": round((time.perf_counter() - start_time) * 1000, 3),
                "messages": len(args["messages"]),
                "finish_reason": response.finish_reason,
            }
        )
        return response

    async def chat_stream(
        self,
        messages: MessagesInput,
        options: ChatOptions | Mapping[str, Any] | None = None,
    ) -> AsyncIterator[ChatStreamChunk]:
        """Stream a chat completion as it is generated.

        One ``api_timeout_ms`` deadline covers connecting (including retries
        and backoff waits) and the whole consumption. The stream is pulled:
        nothing is read from the network until the consumer asks for a chunk
        that is not already buffered.

        Wrap the iterator in ``contextlib.aclosing`` when breaking out early
        so the connection is released immediately rather than on garbage
        collection.

        Yields:
            ChatStreamChunk objects in the order their lines arrived. The
            stream ends after a chunk with ``done=True`` or when the server
            closes the connection.

        Raises:
            PuterAPIError: If the connection is refused with a non-2xx status.
            TimeoutError: If the deadline passes before the stream ends.
            httpx.RequestError: On connection failure after retries, or on a
                mid-stream network error (never retried).

        Example:
            >>> async with aclosing(client.chat_stream(messages)) as stream:
            ...     async for chunk in stream:
            ...         if chunk.text:
            ...             print(chunk.text, end="")
        """
        client = await self._ensure_client()
        opts = _coerce_options(options)
        args = self._chat_args(messages, opts, stream=True)
        payload = self._driver_payload("complete", args)
        url = f"{self.api_url}/drivers/call"
        policy = self.retry_policy
        deadline = asyncio.get_running_loop().time() + self.timeout_ms / 1000
        request_id = str(uuid.uuid4())
        start_time = time.perf_counter()

        async def connect() -> httpx.Response:
            request = client.build_request("POST", url, json=payload)
            response = await client.send(request, stream=True)
            if not response.is_success:
                try:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                finally:
                    await response.aclose()
                raise PuterAPIError.from_response(response.status_code, body)
            return response

        chunk_count = 0
        try:
            async with asyncio.timeout_at(deadline):
                response = await with_retry(connect, policy)

            body = self._read_with_deadline(response, deadline)
            try:
                async with aclosing(body), aclosing(decode_chat_stream(body)) as chunks:
                    async for chunk in chunks:
                        chunk_count += 1
                        yield chunk
            finally:
                await response.aclose()
        except Exception as exc:
            self._log_error(
                "chat_stream", args["model"], request_id, start_time, exc, chunks=chunk_count
            )
            logger.exception("Streaming chat failed for %s", args["model"])
            raise

        log_request_event(
            {
                "event": "puter_request",
                "operation": "chat_stream",
                "status": "success",
                "model": args["model"],
                "request_id": request_id,
                "latency_ms": round((time.perf_counter() - start_time) * 1000, 3),
                "chunks": chunk_count,
            }
        )

    @staticmethod
    async def _read_with_deadline(
        response: httpx.Response, deadline: float
    ) -> AsyncIterator[bytes]:
        """Yield body bytes, one network read per request, bounded by ``deadline``."""
        body = response.aiter_bytes()
        try:
            while True:
                async with asyncio.timeout_at(deadline):
                    try:
                        data = await anext(body)
                    except StopAsyncIteration:
                        return
                yield data
        finally:
            await body.aclose()

    async def list_models(self) -> list[ModelInfo]:
        """List models from the live catalog, or the built-in one on failure.

        Returns:
            Live catalog entries when the catalog endpoint answers (a
            ``models`` field or a bare list; anything else is an empty
            list). The built-in catalog when the request fails for any
            reason after retries. Never raises.
        """
        start_time = time.perf_counter()
        try:
            client = await self._ensure_client()
            fetch = create_retry_fetch(client, self.retry_policy)
            async with asyncio.timeout(self.timeout_ms / 1000):
                response = await fetch(
                    "GET",
                    f"{self.api_url}/puterai/chat/models/details",
                    headers={"Authorization": f"Bearer {self._auth_token}"},
                )
            if not response.is_success:
                raise PuterAPIError.from_response(
                    response.status_code, response.text, prefix="Failed to fetch models"
                )
            models = self._parse_catalog(response.json())
        except Exception as exc:
            level = logging.WARNING if self.config.resolved_debug else logging.DEBUG
            logger.log(level, "Failed to fetch models, using defaults: %s", exc)
            log_request_event(
                {
                    "event": "puter_request",
                    "operation": "list_models",
                    "status": "fallback",
                    "request_id": str(uuid.uuid4()),
                    "latency_ms": round((time.perf_counter() - start_time) * 1000, 3),
                    "error_type": type(exc).__name__,
                    "error_message": str(exc),
                }
            )
            return self.get_default_models()

        log_request_event(
            {
                "event": "puter_request",
                "operation": "list_models",
                "status": "success",
                "request_id": str(uuid.uuid4()),
                "latency_ms": round((time.perf_counter() - start_time) * 1000, 3),
                "models_returned": len(models),
            }
        )
        return models

    @staticmethod
    def _parse_catalog(data: Any) -> list[ModelInfo]:
        match data:
            case {"models": list() as entries}:
                pass
            case list() as entries:
                pass
            case _:
                entries = []
        return [ModelInfo.model_validate(entry) for entry in entries]

    @staticmethod
    def get_default_models() -> list[ModelInfo]:
        """Return the built-in fallback catalog."""
        return get_default_models()

    async def test_connection(self) -> bool:
        """Check that the API is reachable and the token is accepted.

        Sends a tiny probe completion. Never raises.

        Returns:
            True if the probe came back with non-empty assistant content.
        """
        try:
            response = await self._complete(
                [ChatMessage(role="user", content=PROBE_PROMPT)],
                ChatOptions(model=DEFAULT_MODEL, max_tokens=PROBE_MAX_TOKENS),
                quiet=True,
            )
        except Exception as exc:
            logger.debug("Connection test failed: %s", exc)
            return False
        return bool(response.message and response.message.content)

    def _log_error(
        self,
        operation: str,
        model: str,
        request_id: str,
        start_time: float,
        exc: BaseException,
        **extra: Any,
    ) -> None:
        """Emit a structured error event for ``operation``."""
        log_data: dict[str, Any] = {
            "event": "puter_request",
            "operation": operation,
            "status": "error",
            "model": model,
            "request_id": request_id,
            "latency_ms": round((time.perf_counter() - start_time) * 1000, 3),
            "error_type": type(exc).__name__,
            "error_message": str(exc),
            **extra,
        }
        if isinstance(exc, PuterAPIError) and exc.status_code is not None:
            log_data["http_status"] = exc.status_code
        log_request_event(log_data)


__all__ = ["PuterClient"]
