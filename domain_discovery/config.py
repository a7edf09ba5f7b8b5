"""
Discovery configuration helpers.

Centralizes pipeline thresholds and LLM provider credential resolution.
Values come from keyword arguments or from DOMAIN_DISCOVERY_* environment
variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_LLM_PROVIDER = "openai"
DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_OLLAMA_BASE_URL = "http://localhost:11434/v1"
DEFAULT_LLM_MODEL = "gpt-4o-mini"

_ENV_PREFIX = "DOMAIN_DISCOVERY_"


def _env_float(name: str, default: str) -> float:
    return float(os.environ.get(_ENV_PREFIX + name, default))


def _env_int(name: str, default: str) -> int:
    return int(os.environ.get(_ENV_PREFIX + name, default))


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(_ENV_PREFIX + name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class DiscoveryConfig:
    """Thresholds and switches for every pipeline stage."""

    # Clustering
    min_cluster_size: int = 2
    similarity_threshold: float = 0.5

    # Review thresholds
    confidence_threshold: float = 0.7
    ambiguity_threshold: float = 0.7

    # Relationship analysis
    strong_coupling_threshold: float = 0.7
    merge_suggestion_threshold: float = 0.8
    max_evidence: int = 5

    # Schema synthesis
    enable_llm_enrichment: bool = True
    max_alternatives: int = 3

    @classmethod
    def from_env(cls) -> DiscoveryConfig:
        """Build a config from DOMAIN_DISCOVERY_* environment variables."""
        return cls(
            min_cluster_size=_env_int("MIN_CLUSTER_SIZE", "2"),
            similarity_threshold=_env_float("SIMILARITY_THRESHOLD", "0.5"),
            confidence_threshold=_env_float("CONFIDENCE_THRESHOLD", "0.7"),
            ambiguity_threshold=_env_float("AMBIGUITY_THRESHOLD", "0.7"),
            strong_coupling_threshold=_env_float("STRONG_COUPLING_THRESHOLD", "0.7"),
            merge_suggestion_threshold=_env_float("MERGE_SUGGESTION_THRESHOLD", "0.8"),
            max_evidence=_env_int("MAX_EVIDENCE", "5"),
            enable_llm_enrichment=_env_bool("ENABLE_LLM_ENRICHMENT", True),
            max_alternatives=_env_int("MAX_ALTERNATIVES", "3"),
        )


@dataclass(frozen=True)
class LLMProviderConfig:
    provider: str
    api_key: str
    base_url: str
    model: str
    timeout_seconds: float = 120.0
    connect_timeout_seconds: float = 20.0


def normalize_provider(provider: str | None) -> str:
    if not provider:
        return DEFAULT_LLM_PROVIDER
    return provider.strip().lower()


def get_llm_provider_config(provider: str | None = None) -> LLMProviderConfig | None:
    """
    Resolve LLM provider settings from the environment.

    Args:
        provider: Provider identifier (openai, ollama, or any OpenAI-compatible
                  name). Defaults to DOMAIN_DISCOVERY_LLM_PROVIDER, then openai.

    Returns:
        Provider config, or None when no API key is available and the provider
        requires one. A missing config disables LLM enrichment.
    """
    provider_id = normalize_provider(provider or os.environ.get(_ENV_PREFIX + "LLM_PROVIDER"))

    api_key = os.environ.get(_ENV_PREFIX + "LLM_API_KEY") or os.environ.get("OPENAI_API_KEY") or ""
    if not api_key and provider_id != "ollama":
        return None

    default_base_url = DEFAULT_OLLAMA_BASE_URL if provider_id == "ollama" else DEFAULT_OPENAI_BASE_URL
    base_url = os.environ.get(_ENV_PREFIX + "LLM_BASE_URL") or default_base_url

    return LLMProviderConfig(
        provider=provider_id,
        api_key=api_key,
        base_url=base_url.rstrip("/"),
        model=os.environ.get(_ENV_PREFIX + "LLM_MODEL") or DEFAULT_LLM_MODEL,
        timeout_seconds=_env_float("LLM_TIMEOUT_SECONDS", "120.0"),
        connect_timeout_seconds=_env_float("LLM_CONNECT_TIMEOUT_SECONDS", "20.0"),
    )
