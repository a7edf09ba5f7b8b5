"""
Domain Discovery
================

Mines a React codebase's detector output for cohesive business domains and
proposes a confidence-scored schema (entities, state, intents) for each.

Usage:
    from domain_discovery import DomainDiscoveryPipeline, FileAnalysis

    analyses = [FileAnalysis.from_dict(item) for item in detector_output]
    result = DomainDiscoveryPipeline().run_sync(analyses)
    for request in result.review_requests:
        ...
"""

from __future__ import annotations

from .config import DiscoveryConfig, LLMProviderConfig, get_llm_provider_config
from .errors import DomainDiscoveryError, InvariantViolation, LLMProviderError, PatternMetadataError
from .models import (
    DependencyGraph,
    DetectedPattern,
    DiscoveryData,
    DiscoverySnapshot,
    DiscoveryState,
    DomainCandidate,
    DomainConflict,
    DomainRelationship,
    DomainSummary,
    FileAnalysis,
    ReviewRequest,
    SchemaProposal,
    ValidationResult,
)
from .pipeline import DiscoveryResult, DomainDiscoveryPipeline, build_review_requests

__version__ = "0.1.0"

__all__ = [
    # Pipeline
    "DomainDiscoveryPipeline",
    "DiscoveryResult",
    "build_review_requests",
    # Configuration
    "DiscoveryConfig",
    "LLMProviderConfig",
    "get_llm_provider_config",
    # Errors
    "DomainDiscoveryError",
    "InvariantViolation",
    "LLMProviderError",
    "PatternMetadataError",
    # Models
    "DependencyGraph",
    "DetectedPattern",
    "DiscoveryData",
    "DiscoverySnapshot",
    "DiscoveryState",
    "DomainCandidate",
    "DomainConflict",
    "DomainRelationship",
    "DomainSummary",
    "FileAnalysis",
    "ReviewRequest",
    "SchemaProposal",
    "ValidationResult",
]
