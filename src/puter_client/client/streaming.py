"""Incremental decoding of Puter's newline-delimited JSON chat stream.

Each line of the response body is one JSON object. Bytes arrive in arbitrary
pieces, so the decoder keeps the trailing partial line buffered until the
next newline shows up. Lines that fail to parse are skipped: a noisy or
partially corrupt stream must not abort consumption.
"""

from __future__ import annotations

import codecs
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator, Iterator

from pydantic import ValidationError

from puter_client.domain.entities import ChatStreamChunk

logger = logging.getLogger(__name__)


def parse_chunk_line(line: str) -> ChatStreamChunk | None:
    """Parse one stream line. Returns None for blank or malformed lines."""
    if not line.strip():
        return None
    try:
        return ChatStreamChunk.model_validate(json.loads(line))
    except (json.JSONDecodeError, ValidationError):
        logger.debug("Skipping malformed stream line: %.200s", line)
        return None


class NDJSONStreamDecoder:
    """Stateful line splitter turning byte pieces into ChatStreamChunks.

    ``feed`` is a generator: lines are parsed only as the caller iterates,
    so a consumer that stops at a ``done`` chunk never parses what follows.
    """

    __slots__ = ("_buffer", "_decoder")

    def __init__(self) -> None:
        self._buffer = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed(self, data: bytes) -> Iterator[ChatStreamChunk]:
        """Append ``data`` and yield chunks for every completed line."""
        self._buffer += self._decoder.decode(data)
        *lines, self._buffer = self._buffer.split("\n")
        for line in lines:
            chunk = parse_chunk_line(line)
            if chunk is not None:
                yield chunk

    def flush(self) -> ChatStreamChunk | None:
        """Parse whatever remains buffered once the transport has closed."""
        remainder = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        return parse_chunk_line(remainder)


async def decode_chat_stream(byte_chunks: AsyncIterable[bytes]) -> AsyncIterator[ChatStreamChunk]:
    """Decode an async byte stream into chunks, in line order.

    Stops right after a chunk with ``done=True``, leaving any unread bytes
    unread. If the source ends without one, the buffered tail is parsed as a
    final chunk when possible.
    """
    decoder = NDJSONStreamDecoder()
    async for data in byte_chunks:
        for chunk in decoder.feed(data):
            yield chunk
            if chunk.done:
                return

    trailing = decoder.flush()
    if trailing is not None:
        yield trailing


__all__ = ["NDJSONStreamDecoder", "decode_chat_stream", "parse_chunk_line"]
