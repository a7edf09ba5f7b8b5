"""
Schema Proposal Module
======================

Entity and action mining, path-addressed schema proposals, and optional
LLM enrichment.
"""

from __future__ import annotations

from .extraction import (
    classify_action,
    deduplicate_actions,
    deduplicate_entities,
    extract_actions_from_patterns,
    extract_entities_from_patterns,
    parse_context_value_fields,
    to_camel_case,
)
from .llm_enrichment import SchemaEnricher, merge_actions, merge_entities
from .proposal import (
    actions_to_schema_fields,
    build_schema_proposal,
    entities_to_schema_fields,
    generate_all_schema_proposals,
    generate_schema_proposal,
    infer_state_fields,
    merge_schema_proposals,
    validate_schema_proposal,
)

__all__ = [
    # Extraction
    "classify_action",
    "deduplicate_actions",
    "deduplicate_entities",
    "extract_actions_from_patterns",
    "extract_entities_from_patterns",
    "parse_context_value_fields",
    "to_camel_case",
    # Proposals
    "actions_to_schema_fields",
    "build_schema_proposal",
    "entities_to_schema_fields",
    "generate_all_schema_proposals",
    "generate_schema_proposal",
    "infer_state_fields",
    "merge_schema_proposals",
    "validate_schema_proposal",
    # LLM enrichment
    "SchemaEnricher",
    "merge_actions",
    "merge_entities",
]
