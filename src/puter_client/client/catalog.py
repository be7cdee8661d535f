"""Built-in model catalog used when the live catalog cannot be fetched."""

from __future__ import annotations

from puter_client.domain.entities import ModelInfo

CATALOG_VERSION = "2025-12"


def _model(
    id: str,
    name: str,
    provider: str,
    context_window: int,
    max_output_tokens: int,
    *,
    supports_vision: bool = True,
) -> ModelInfo:
    return ModelInfo(
        id=id,
        name=name,
        provider=provider,
        context_window=context_window,
        max_output_tokens=max_output_tokens,
        supports_streaming=True,
        supports_tools=True,
        supports_vision=supports_vision,
    )


DEFAULT_MODELS: tuple[ModelInfo, ...] = (
    # Anthropic
    _model("claude-opus-4-5", "Claude Opus 4.5", "anthropic", 200_000, 64_000),
    _model("claude-sonnet-4-5", "Claude Sonnet 4.5", "anthropic", 200_000, 64_000),
    _model("claude-sonnet-4", "Claude Sonnet 4", "anthropic", 200_000, 64_000),
    _model("claude-haiku-4-5", "Claude Haiku 4.5", "anthropic", 200_000, 64_000),
    # OpenAI
    _model("gpt-5-nano", "GPT-5 Nano", "openai", 128_000, 16_384),
    _model("gpt-5.2", "GPT-5.2", "openai", 128_000, 32_768),
    _model("gpt-4o", "GPT-4o", "openai", 128_000, 16_384),
    _model("o3-mini", "o3-mini", "openai", 128_000, 32_768, supports_vision=False),
    # Google
    _model("gemini-2.5-pro", "Gemini 2.5 Pro", "google", 1_000_000, 65_536),
    _model("gemini-2.5-flash", "Gemini 2.5 Flash", "google", 1_000_000, 65_536),
)


def get_default_models() -> list[ModelInfo]:
    """Return a fresh list of the built-in catalog entries."""
    return list(DEFAULT_MODELS)


__all__ = ["CATALOG_VERSION", "DEFAULT_MODELS", "get_default_models"]
