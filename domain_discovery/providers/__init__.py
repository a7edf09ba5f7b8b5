"""
LLM provider implementations.

Providers expose a single async `complete(messages, options)` capability so
schema enrichment stays provider-agnostic.
"""

from __future__ import annotations

from ..config import LLMProviderConfig, get_llm_provider_config
from .base import CompletionOptions, CompletionResult, LLMMessage, LLMProvider
from .openai_compat import OpenAICompatProvider


def create_provider(config: LLMProviderConfig | None = None) -> OpenAICompatProvider | None:
    """
    Build a provider from explicit or environment configuration.

    Returns:
        Provider instance, or None when no provider is configured
    """
    config = config or get_llm_provider_config()
    if config is None:
        return None
    return OpenAICompatProvider.from_config(config)


__all__ = [
    "CompletionOptions",
    "CompletionResult",
    "LLMMessage",
    "LLMProvider",
    "OpenAICompatProvider",
    "create_provider",
]
