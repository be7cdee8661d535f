"""Client interfaces for the Puter chat-completion API."""

from puter_client.client.async_client import PuterClient
from puter_client.client.catalog import DEFAULT_MODELS, get_default_models
from puter_client.client.streaming import (
    NDJSONStreamDecoder,
    decode_chat_stream,
    parse_chunk_line,
)

__all__ = [
    "DEFAULT_MODELS",
    "NDJSONStreamDecoder",
    "PuterClient",
    "decode_chat_stream",
    "get_default_models",
    "parse_chunk_line",
]
