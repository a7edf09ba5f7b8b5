"""
Schema Proposal Synthesis
=========================

Flattens a domain's entities, actions and state into path-addressed schema
fields (`<domain>.<section>.<name>...`), scores the result and flags what a
reviewer should look at.
"""

from __future__ import annotations

import logging

from ..config import DiscoveryConfig
from ..models.domain_models import (
    DomainRelationship,
    DomainSummary,
    ExtractedAction,
    ExtractedEntity,
    generate_id,
)
from ..models.pattern_models import DetectedPattern, PatternType
from ..models.schema_models import (
    ProposalMergeResult,
    SchemaFieldProposal,
    SchemaProposal,
    ValidationResult,
)
from .extraction import extract_actions_from_patterns, extract_entities_from_patterns

logger = logging.getLogger(__name__)

# Entity members are less certain than the entity itself
ENTITY_FIELD_DISCOUNT = 0.9

NO_ENTITIES_NOTE = "No entities could be extracted - manual entity definition may be needed"
NO_ACTIONS_NOTE = "No actions could be extracted - manual action definition may be needed"


def _dedupe_by_path(fields: list[SchemaFieldProposal]) -> list[SchemaFieldProposal]:
    """Keep the highest-confidence field per path, in first-seen order."""
    by_path: dict[str, SchemaFieldProposal] = {}
    for proposal_field in fields:
        existing = by_path.get(proposal_field.path)
        if existing is None or proposal_field.confidence > existing.confidence:
            by_path[proposal_field.path] = proposal_field
    return list(by_path.values())


def entities_to_schema_fields(entities: list[ExtractedEntity], domain_name: str) -> list[SchemaFieldProposal]:
    fields = []
    for entity in entities:
        source = ", ".join(entity.source_patterns)
        fields.append(
            SchemaFieldProposal(
                path=f"{domain_name}.entities.{entity.name}",
                type="object",
                description=f"Entity: {entity.name}",
                source=source,
                confidence=entity.confidence,
            )
        )
        for member in entity.fields:
            fields.append(
                SchemaFieldProposal(
                    path=f"{domain_name}.entities.{entity.name}.{member.name}",
                    type=member.type,
                    description=member.description,
                    source=source,
                    confidence=entity.confidence * ENTITY_FIELD_DISCOUNT,
                )
            )
    return _dedupe_by_path(fields)


def actions_to_schema_fields(actions: list[ExtractedAction], domain_name: str) -> list[SchemaFieldProposal]:
    fields = [
        SchemaFieldProposal(
            path=f"{domain_name}.intents.{action.name}",
            type=action.type.value,
            description=f"{action.type.value}: {action.name}",
            source=", ".join(action.source_patterns),
            confidence=action.confidence,
        )
        for action in actions
    ]
    return _dedupe_by_path(fields)


def infer_state_fields(patterns: list[DetectedPattern], domain_name: str) -> list[SchemaFieldProposal]:
    """State fields from context containers and reducer state shapes."""
    fields = []

    for pattern in patterns:
        if pattern.type == PatternType.CONTEXT and pattern.metadata.context_name:
            fields.append(
                SchemaFieldProposal(
                    path=f"{domain_name}.state.{pattern.metadata.context_name}",
                    type="context",
                    description=f"Context state from {pattern.name}",
                    source=pattern.name,
                    confidence=pattern.confidence,
                )
            )

    for pattern in patterns:
        if pattern.type == PatternType.REDUCER and pattern.metadata.state_shape:
            for key, declared in pattern.metadata.state_shape.items():
                fields.append(
                    SchemaFieldProposal(
                        path=f"{domain_name}.state.{key}",
                        type=declared,
                        description=f"State field from {pattern.name}",
                        source=pattern.name,
                        confidence=pattern.confidence,
                    )
                )

    return _dedupe_by_path(fields)


def _related_domain_ids(domain_id: str, relationships: list[DomainRelationship]) -> list[str]:
    related = []
    for rel in relationships:
        if not rel.involves(domain_id):
            continue
        other = rel.to_domain if rel.from_domain == domain_id else rel.from_domain
        if other not in related:
            related.append(other)
    return related


def build_schema_proposal(
    domain: DomainSummary,
    entities: list[ExtractedEntity],
    actions: list[ExtractedAction],
    patterns: list[DetectedPattern],
    relationships: list[DomainRelationship],
    config: DiscoveryConfig | None = None,
) -> SchemaProposal:
    """
    Assemble a proposal from already-extracted entities and actions.

    Args:
        domain: Domain the proposal describes
        entities: Entities to publish under `<domain>.entities`
        actions: Actions to publish under `<domain>.intents`
        patterns: Domain patterns (state fields are inferred from these)
        relationships: Relationships; only those touching the domain are noted
        config: Confidence threshold

    Returns:
        SchemaProposal scored by mean field confidence
    """
    config = config or DiscoveryConfig()

    entity_fields = entities_to_schema_fields(entities, domain.name)
    state_fields = infer_state_fields(patterns, domain.name)
    intent_fields = actions_to_schema_fields(actions, domain.name)

    all_fields = [*entity_fields, *state_fields, *intent_fields]
    confidence = sum(f.confidence for f in all_fields) / len(all_fields) if all_fields else 0.0

    review_notes = []
    if not entities:
        review_notes.append(NO_ENTITIES_NOTE)
    if not actions:
        review_notes.append(NO_ACTIONS_NOTE)

    low_confidence = [f for f in all_fields if f.confidence < config.confidence_threshold]
    if low_confidence:
        review_notes.append(f"{len(low_confidence)} fields have low confidence and may need review")

    related = _related_domain_ids(domain.id, relationships)
    if related:
        review_notes.append(f"Related domains: {', '.join(related)}")

    return SchemaProposal(
        id=generate_id(f"proposal-{domain.id}"),
        domain_id=domain.id,
        domain_name=domain.name,
        entities=entity_fields,
        state=state_fields,
        intents=intent_fields,
        confidence=confidence,
        review_notes=review_notes,
        needs_review=confidence < config.confidence_threshold or len(review_notes) > 2,
    )


def generate_schema_proposal(
    domain: DomainSummary,
    patterns: list[DetectedPattern],
    relationships: list[DomainRelationship],
    config: DiscoveryConfig | None = None,
) -> SchemaProposal:
    """Heuristic proposal for one domain, mined from its patterns."""
    return build_schema_proposal(
        domain,
        extract_entities_from_patterns(patterns),
        extract_actions_from_patterns(patterns),
        patterns,
        relationships,
        config,
    )


def generate_all_schema_proposals(
    domains: list[DomainSummary],
    patterns_by_domain: dict[str, list[DetectedPattern]],
    relationships: list[DomainRelationship],
    config: DiscoveryConfig | None = None,
) -> list[SchemaProposal]:
    proposals = [
        generate_schema_proposal(
            domain,
            patterns_by_domain.get(domain.id, []),
            [rel for rel in relationships if rel.involves(domain.id)],
            config,
        )
        for domain in domains
    ]
    logger.info(
        "Generated %d schema proposals (%d need review)",
        len(proposals),
        sum(1 for p in proposals if p.needs_review),
    )
    return proposals


def validate_schema_proposal(proposal: SchemaProposal) -> ValidationResult:
    """
    Structural checks: path prefix, unique paths, non-empty.

    Returns:
        ValidationResult listing every problem found
    """
    errors = []
    prefix = f"{proposal.domain_name}."

    for proposal_field in proposal.all_fields:
        if not proposal_field.path.startswith(prefix):
            errors.append(f'Field path "{proposal_field.path}" doesn\'t start with domain name')

    seen: set[str] = set()
    duplicates: list[str] = []
    for proposal_field in proposal.all_fields:
        if proposal_field.path in seen and proposal_field.path not in duplicates:
            duplicates.append(proposal_field.path)
        seen.add(proposal_field.path)
    if duplicates:
        errors.append(f"Duplicate paths found: {', '.join(duplicates)}")

    if not proposal.all_fields:
        errors.append("Schema proposal is empty")

    return ValidationResult(valid=not errors, errors=errors)


def merge_schema_proposals(proposals: list[SchemaProposal]) -> ProposalMergeResult:
    """
    Union several proposals for the same domain.

    The highest-confidence field wins per path, review notes are unioned and
    the result needs review if any input did.

    Returns:
        ProposalMergeResult; invalid for an empty input or mixed domains
    """
    if not proposals:
        return ProposalMergeResult(
            validation=ValidationResult(valid=False, errors=["Cannot merge empty proposals list"])
        )

    domain_ids = list(dict.fromkeys(p.domain_id for p in proposals))
    if len(domain_ids) > 1:
        return ProposalMergeResult(
            validation=ValidationResult(
                valid=False, errors=[f"Proposals belong to different domains: {', '.join(domain_ids)}"]
            )
        )

    if len(proposals) == 1:
        return ProposalMergeResult(proposal=proposals[0])

    first = proposals[0]
    review_notes: list[str] = []
    for proposal in proposals:
        review_notes.extend(note for note in proposal.review_notes if note not in review_notes)

    merged = SchemaProposal(
        id=generate_id("merged"),
        domain_id=first.domain_id,
        domain_name=first.domain_name,
        entities=_dedupe_by_path([f for p in proposals for f in p.entities]),
        state=_dedupe_by_path([f for p in proposals for f in p.state]),
        intents=_dedupe_by_path([f for p in proposals for f in p.intents]),
        confidence=sum(p.confidence for p in proposals) / len(proposals),
        review_notes=review_notes,
        needs_review=any(p.needs_review for p in proposals),
    )
    return ProposalMergeResult(proposal=merged)
