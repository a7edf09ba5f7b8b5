"""
LLM Schema Enrichment
=====================

Hybrid schema synthesis: heuristic extraction first, then an optional
language-model pass that adds entities and actions the heuristics missed
and proposes alternative schemas. The same model can name groups of files
that no heuristic explained.

Enrichment is fail-open. Any transport, status or parse failure is logged
and the heuristic result stands.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any

from ..config import DiscoveryConfig
from ..json_utils import parse_json_response
from ..models.domain_models import (
    ActionType,
    DomainRelationship,
    DomainSummary,
    EntityKind,
    ExtractedAction,
    ExtractedEntity,
    ExtractedField,
    generate_id,
)
from ..models.pattern_models import DetectedPattern, PatternType
from ..models.schema_models import SchemaFieldProposal, SchemaProposal
from ..providers.base import CompletionOptions, LLMMessage, LLMProvider
from .extraction import extract_actions_from_patterns, extract_entities_from_patterns
from .prompts import (
    extract_actions_prompt,
    extract_entities_prompt,
    generate_schema_prompt,
    identify_domain_prompt,
)
from .proposal import ENTITY_FIELD_DISCOUNT, build_schema_proposal, validate_schema_proposal

logger = logging.getLogger(__name__)

# Confidence assigned to model-extracted items
LLM_CONFIDENCE = 0.85

ACTION_PATTERN_TYPES = {PatternType.REDUCER, PatternType.HOOK, PatternType.EFFECT}


@dataclass
class DomainIdentification:
    """A model's name for a group of files."""

    name: str
    description: str = ""
    confidence: float = LLM_CONFIDENCE


def merge_entities(heuristic: list[ExtractedEntity], llm: list[ExtractedEntity]) -> list[ExtractedEntity]:
    """
    Merge model entities into heuristic ones by lowercase name.

    Unknown entities are appended. For a matching entity the model's field
    list replaces the heuristic one when it is longer, and the confidence
    becomes the max of both.
    """
    merged = list(heuristic)
    index = {entity.name.lower(): i for i, entity in enumerate(merged)}

    for entity in llm:
        key = entity.name.lower()
        if key not in index:
            index[key] = len(merged)
            merged.append(entity)
            continue

        existing = merged[index[key]]
        fields = entity.fields if len(entity.fields) > len(existing.fields) else existing.fields
        merged[index[key]] = replace(
            existing, fields=fields, confidence=max(existing.confidence, entity.confidence)
        )

    return merged


def merge_actions(heuristic: list[ExtractedAction], llm: list[ExtractedAction]) -> list[ExtractedAction]:
    """Merge model actions into heuristic ones by lowercase name (max confidence)."""
    merged = list(heuristic)
    index = {action.name.lower(): i for i, action in enumerate(merged)}

    for action in llm:
        key = action.name.lower()
        if key not in index:
            index[key] = len(merged)
            merged.append(action)
        else:
            existing = merged[index[key]]
            merged[index[key]] = replace(existing, confidence=max(existing.confidence, action.confidence))

    return merged


def _parse_action_type(value: Any) -> ActionType:
    try:
        return ActionType(str(value).lower())
    except ValueError:
        return ActionType.COMMAND


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _spec(value: Any) -> dict:
    """A field or entity spec as a dict; a bare string is taken as its type."""
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        return {"type": value}
    return {}


def _named_items(value: Any) -> list[tuple[str, Any]]:
    """
    (name, spec) pairs from either shape a model tends to answer with.

    Accepts a name-keyed object (`{"User": {...}}`) or a list of objects
    carrying a "name" key (`[{"name": "User", ...}]`). Anything else,
    and any entry without a usable name, is skipped.
    """
    if isinstance(value, dict):
        return [(key, spec) for key, spec in value.items() if isinstance(key, str) and key]
    if isinstance(value, list):
        return [
            (item["name"], item)
            for item in value
            if isinstance(item, dict) and isinstance(item.get("name"), str) and item["name"]
        ]
    return []


def parse_llm_entities(data: dict) -> list[ExtractedEntity]:
    """Convert an `{"entities": [...]}` document, skipping malformed items."""
    entities = []
    for name, item in _named_items(data.get("entities")):
        item = _spec(item)
        fields = [
            ExtractedField(
                name=field_name,
                type=str(_spec(field_spec).get("type") or "unknown"),
                description=_text(_spec(field_spec).get("description")),
            )
            for field_name, field_spec in _named_items(item.get("fields"))
        ]
        source = item.get("source")
        entities.append(
            ExtractedEntity(
                id=generate_id(f"entity-llm-{name}"),
                name=name,
                type=EntityKind.ENTITY,
                fields=fields,
                source_patterns=[source] if isinstance(source, str) and source else [],
                confidence=LLM_CONFIDENCE,
            )
        )
    return entities


def parse_llm_actions(data: dict) -> list[ExtractedAction]:
    """Convert an `{"actions": [...]}` document, skipping malformed items."""
    actions = []
    for name, item in _named_items(data.get("actions")):
        item = _spec(item)
        source = item.get("source")
        actions.append(
            ExtractedAction(
                id=generate_id(f"action-llm-{name}"),
                name=name,
                type=_parse_action_type(item.get("type")),
                source_patterns=[source] if isinstance(source, str) and source else [],
                confidence=LLM_CONFIDENCE,
            )
        )
    return actions


def parse_domain_identification(data: dict) -> DomainIdentification | None:
    """Read an `{"domainName": ..., "confidence": ...}` reply; None when unusable."""
    name = data.get("domainName")
    if not isinstance(name, str) or not name.strip():
        return None
    confidence = data.get("confidence")
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        confidence = LLM_CONFIDENCE
    return DomainIdentification(
        name=name.strip(),
        description=_text(data.get("description")) or "",
        confidence=min(1.0, max(0.0, float(confidence))),
    )


def schema_document_to_proposal(document: dict, domain: DomainSummary) -> SchemaProposal:
    """
    Flatten a generated schema document into a proposal for `domain`.

    The document's own "domain" key is ignored so every path carries the
    domain's current name. Sections may be name-keyed objects or lists of
    named objects; other shapes contribute nothing.
    """
    name = domain.name
    entities: list[SchemaFieldProposal] = []
    state: list[SchemaFieldProposal] = []
    intents: list[SchemaFieldProposal] = []

    for entity_name, entity_spec in _named_items(document.get("entities")):
        entity_spec = _spec(entity_spec)
        entities.append(
            SchemaFieldProposal(
                path=f"{name}.entities.{entity_name}",
                type=str(entity_spec.get("type") or "object"),
                description=_text(entity_spec.get("description")),
                source="llm",
                confidence=LLM_CONFIDENCE,
            )
        )
        for field_name, field_spec in _named_items(entity_spec.get("fields")):
            field_spec = _spec(field_spec)
            entities.append(
                SchemaFieldProposal(
                    path=f"{name}.entities.{entity_name}.{field_name}",
                    type=str(field_spec.get("type") or "unknown"),
                    description=_text(field_spec.get("description")),
                    source="llm",
                    confidence=LLM_CONFIDENCE * ENTITY_FIELD_DISCOUNT,
                )
            )

    for section, target in (("state", state), ("intents", intents)):
        for key, section_spec in _named_items(document.get(section)):
            section_spec = _spec(section_spec)
            target.append(
                SchemaFieldProposal(
                    path=f"{name}.{section}.{key}",
                    type=str(section_spec.get("type") or "unknown"),
                    description=_text(section_spec.get("description")),
                    source="llm",
                    confidence=LLM_CONFIDENCE,
                )
            )

    all_fields = [*entities, *state, *intents]
    return SchemaProposal(
        id=generate_id(f"alternative-{domain.id}"),
        domain_id=domain.id,
        domain_name=name,
        entities=entities,
        state=state,
        intents=intents,
        confidence=sum(f.confidence for f in all_fields) / len(all_fields) if all_fields else 0.0,
        needs_review=True,
    )


class SchemaEnricher:
    """
    Heuristic + LLM hybrid proposal generator.

    Calls are issued one at a time; `llm_call_count` counts every attempt,
    successful or not.
    """

    def __init__(self, provider: LLMProvider | None, config: DiscoveryConfig | None = None):
        self.provider = provider
        self.config = config or DiscoveryConfig()
        self.llm_call_count = 0

    @property
    def enabled(self) -> bool:
        return self.provider is not None and self.config.enable_llm_enrichment

    async def _request_json(self, prompt: str, temperature: float, max_tokens: int) -> dict | None:
        """Send one prompt and parse a JSON object reply. Returns None on any failure."""
        if self.provider is None:
            return None

        self.llm_call_count += 1
        try:
            result = await self.provider.complete(
                [LLMMessage(role="user", content=prompt)],
                CompletionOptions(temperature=temperature, max_tokens=max_tokens),
            )
            return parse_json_response(result.content)
        except Exception as e:
            logger.warning("LLM enrichment call failed, keeping heuristic result: %s", e)
            return None

    async def identify_domain_with_llm(
        self, patterns: list[DetectedPattern], files: list[str]
    ) -> DomainIdentification | None:
        """
        Ask the model what business domain a group of files represents.

        Args:
            patterns: Patterns found in the files
            files: The grouped file paths

        Returns:
            DomainIdentification, or None when enrichment is off, the
            group is empty or the call fails
        """
        if not self.enabled or not files:
            return None
        data = await self._request_json(identify_domain_prompt(patterns, files), temperature=0.3, max_tokens=1000)
        return parse_domain_identification(data) if data else None

    async def extract_entities_with_llm(
        self, patterns: list[DetectedPattern], domain_name: str
    ) -> list[ExtractedEntity]:
        if not patterns:
            return []
        data = await self._request_json(
            extract_entities_prompt(patterns, domain_name), temperature=0.2, max_tokens=2000
        )
        return parse_llm_entities(data) if data else []

    async def extract_actions_with_llm(
        self, patterns: list[DetectedPattern], domain_name: str
    ) -> list[ExtractedAction]:
        action_patterns = [p for p in patterns if p.type in ACTION_PATTERN_TYPES]
        if not action_patterns:
            return []
        data = await self._request_json(
            extract_actions_prompt(action_patterns, domain_name), temperature=0.2, max_tokens=2000
        )
        return parse_llm_actions(data) if data else []

    async def generate_alternatives(self, domain: DomainSummary) -> list[SchemaProposal]:
        """
        Ask for alternative schemas and keep the valid ones.

        Returns:
            At most `config.max_alternatives` proposals that pass
            validate_schema_proposal
        """
        if self.config.max_alternatives <= 0:
            return []

        data = await self._request_json(
            generate_schema_prompt(domain, self.config.max_alternatives), temperature=0.3, max_tokens=3000
        )
        if not data:
            return []

        documents = data.get("alternatives") if "alternatives" in data else [data]
        if isinstance(documents, dict):
            documents = [documents]
        alternatives = []
        for document in documents if isinstance(documents, list) else []:
            if not isinstance(document, dict):
                continue
            proposal = schema_document_to_proposal(document, domain)
            validation = validate_schema_proposal(proposal)
            if not validation.valid:
                logger.debug("Dropping invalid alternative for %s: %s", domain.name, validation.errors)
                continue
            alternatives.append(proposal)
            if len(alternatives) >= self.config.max_alternatives:
                break
        return alternatives

    async def generate_hybrid_proposal(
        self,
        domain: DomainSummary,
        patterns: list[DetectedPattern],
        relationships: list[DomainRelationship],
    ) -> SchemaProposal:
        """
        Build a proposal from heuristics, enriched by the LLM when available.

        Args:
            domain: Domain to describe
            patterns: The domain's patterns
            relationships: Relationships touching the domain

        Returns:
            SchemaProposal; identical to the heuristic proposal when the
            provider is absent, disabled or failing
        """
        entities = extract_entities_from_patterns(patterns)
        actions = extract_actions_from_patterns(patterns)

        if not self.enabled:
            return build_schema_proposal(domain, entities, actions, patterns, relationships, self.config)

        llm_entities = await self.extract_entities_with_llm(patterns, domain.name)
        llm_actions = await self.extract_actions_with_llm(patterns, domain.name)
        logger.debug(
            "LLM added %d entities and %d actions for %s", len(llm_entities), len(llm_actions), domain.name
        )

        proposal = build_schema_proposal(
            domain,
            merge_entities(entities, llm_entities),
            merge_actions(actions, llm_actions),
            patterns,
            relationships,
            self.config,
        )

        alternatives = await self.generate_alternatives(domain)
        if alternatives:
            proposal = replace(proposal, alternatives=alternatives)
        return proposal
