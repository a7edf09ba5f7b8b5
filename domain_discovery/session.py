"""
Discovery Session Transforms
============================

Pure functions over DiscoveryData and DiscoveryState. Every function
returns new values and leaves its arguments untouched, so the host can
snapshot between any two calls.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone

from .models.domain_models import (
    AmbiguousPattern,
    DomainConflict,
    DomainRelationship,
    DomainSummary,
    RelationshipType,
    generate_id,
)
from .models.schema_models import SchemaProposal
from .models.session_models import (
    ClusteringStatus,
    DerivedMetrics,
    DiscoveryData,
    DiscoverySnapshot,
    DiscoveryState,
    RelationshipsByType,
)

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# Initialization
# =============================================================================


def create_initial_data(session_id: str | None = None) -> DiscoveryData:
    return DiscoveryData(session_id=session_id or generate_id("session"))


def create_initial_state() -> DiscoveryState:
    return DiscoveryState()


# =============================================================================
# Domains
# =============================================================================


def add_domain(data: DiscoveryData, domain: DomainSummary) -> DiscoveryData:
    """Add (or replace) a domain, keeping insertion order."""
    return replace(data, domains={**data.domains, domain.id: domain})


def update_domain(data: DiscoveryData, domain_id: str, **changes) -> DiscoveryData:
    """
    Replace fields of one domain.

    Args:
        data: Current data
        domain_id: Domain to update
        **changes: DomainSummary field values

    Returns:
        New data; unchanged when the domain does not exist
    """
    domain = data.domains.get(domain_id)
    if domain is None:
        logger.debug("update_domain: unknown domain %s", domain_id)
        return data
    return replace(data, domains={**data.domains, domain_id: replace(domain, **changes)})


def remove_domain(data: DiscoveryData, domain_id: str) -> DiscoveryData:
    if domain_id not in data.domains:
        return data
    return replace(data, domains={k: v for k, v in data.domains.items() if k != domain_id})


# =============================================================================
# Relationships
# =============================================================================

_BUCKETS = {
    RelationshipType.DEPENDENCY: "dependencies",
    RelationshipType.SHARED_STATE: "shared_state",
    RelationshipType.EVENT_FLOW: "event_flows",
    RelationshipType.COMPOSITION: "compositions",
}


def add_relationship(state: DiscoveryState, relationship: DomainRelationship) -> DiscoveryState:
    """File a relationship under its type bucket (ignoring duplicate ids)."""
    if any(rel.id == relationship.id for rel in state.relationships.all()):
        return state
    bucket = _BUCKETS[relationship.type]
    current = getattr(state.relationships, bucket)
    relationships = replace(state.relationships, **{bucket: [*current, relationship]})
    return replace(state, relationships=relationships)


def add_relationships(state: DiscoveryState, relationships: list[DomainRelationship]) -> DiscoveryState:
    for relationship in relationships:
        state = add_relationship(state, relationship)
    return state


def clear_relationships(state: DiscoveryState) -> DiscoveryState:
    return replace(state, relationships=RelationshipsByType())


# =============================================================================
# Conflicts
# =============================================================================


def add_conflict(data: DiscoveryData, conflict: DomainConflict) -> DiscoveryData:
    """Add a conflict unless one with the same id already exists."""
    if any(existing.id == conflict.id for existing in data.conflicts):
        return data
    return replace(data, conflicts=[*data.conflicts, conflict])


def add_conflicts(data: DiscoveryData, conflicts: list[DomainConflict]) -> DiscoveryData:
    for conflict in conflicts:
        data = add_conflict(data, conflict)
    return data


def resolve_conflict(data: DiscoveryData, conflict_id: str) -> DiscoveryData:
    """Drop a conflict record. Reshaping happens in conflicts.apply_conflict_resolution."""
    return replace(data, conflicts=[c for c in data.conflicts if c.id != conflict_id])


# =============================================================================
# Schema proposals
# =============================================================================


def add_schema_proposal(state: DiscoveryState, proposal: SchemaProposal) -> DiscoveryState:
    return replace(state, schema_proposals={**state.schema_proposals, proposal.domain_id: proposal})


def update_schema_proposal(state: DiscoveryState, domain_id: str, **changes) -> DiscoveryState:
    proposal = state.schema_proposals.get(domain_id)
    if proposal is None:
        logger.debug("update_schema_proposal: no proposal for %s", domain_id)
        return state
    return replace(
        state, schema_proposals={**state.schema_proposals, domain_id: replace(proposal, **changes)}
    )


def remove_schema_proposal(state: DiscoveryState, domain_id: str) -> DiscoveryState:
    if domain_id not in state.schema_proposals:
        return state
    return replace(
        state, schema_proposals={k: v for k, v in state.schema_proposals.items() if k != domain_id}
    )


def mark_proposal_reviewed(state: DiscoveryState, domain_id: str) -> DiscoveryState:
    return update_schema_proposal(state, domain_id, needs_review=False)


# =============================================================================
# Clustering and ambiguity
# =============================================================================


def start_clustering(state: DiscoveryState, now: str | None = None) -> DiscoveryState:
    clustering = replace(
        state.clustering, status=ClusteringStatus.RUNNING, started_at=now or _now(), completed_at=None
    )
    return replace(state, clustering=clustering)


def complete_clustering(
    state: DiscoveryState, cluster_count: int, noise_count: int = 0, now: str | None = None
) -> DiscoveryState:
    clustering = replace(
        state.clustering,
        status=ClusteringStatus.DONE,
        cluster_count=cluster_count,
        noise_count=noise_count,
        completed_at=now or _now(),
    )
    return replace(state, clustering=clustering)


def add_ambiguous_patterns(state: DiscoveryState, patterns: list[AmbiguousPattern]) -> DiscoveryState:
    known = {p.id for p in state.ambiguous_patterns}
    fresh = [p for p in patterns if p.id not in known]
    if not fresh:
        return state
    return replace(state, ambiguous_patterns=[*state.ambiguous_patterns, *fresh])


# =============================================================================
# Meta
# =============================================================================


def increment_attempts(state: DiscoveryState) -> DiscoveryState:
    return replace(state, meta=replace(state.meta, attempts=state.meta.attempts + 1))


def increment_llm_calls(state: DiscoveryState, count: int = 1) -> DiscoveryState:
    return replace(state, meta=replace(state.meta, llm_call_count=state.meta.llm_call_count + count))


def set_last_processed_domain(state: DiscoveryState, domain_id: str) -> DiscoveryState:
    return replace(state, meta=replace(state.meta, last_processed_domain=domain_id))


def update_processing_rate(
    state: DiscoveryState, domains_processed: int, elapsed_seconds: float
) -> DiscoveryState:
    rate = domains_processed / elapsed_seconds if elapsed_seconds > 0 else 0.0
    return replace(state, meta=replace(state.meta, processing_rate=rate))


def add_error(state: DiscoveryState, message: str) -> DiscoveryState:
    return replace(state, meta=replace(state.meta, errors=[*state.meta.errors, message]))


# =============================================================================
# Derived values and snapshots
# =============================================================================


def calculate_derived(data: DiscoveryData, state: DiscoveryState) -> DerivedMetrics:
    """
    Compute progress metrics from data and state.

    Returns:
        DerivedMetrics; estimated_time_remaining is None until a processing
        rate is known
    """
    domains = list(data.domains.values())
    total = len(domains)
    proposals = [state.schema_proposals[d.id] for d in domains if d.id in state.schema_proposals]
    processed = len(proposals)
    remaining = total - processed

    return DerivedMetrics(
        domains_total=total,
        domains_processed=processed,
        conflicts_unresolved=len(data.conflicts),
        proposals_ready=sum(1 for p in proposals if not p.needs_review),
        overall_confidence=sum(d.confidence for d in domains) / total if total else 0.0,
        progress=processed / total * 100 if total else 0.0,
        estimated_time_remaining=(
            remaining / state.meta.processing_rate if state.meta.processing_rate > 0 else None
        ),
    )


def create_snapshot(
    data: DiscoveryData,
    state: DiscoveryState,
    phase: str,
    version: int,
    now: str | None = None,
) -> DiscoverySnapshot:
    return DiscoverySnapshot(
        session_id=data.session_id,
        version=version,
        phase=phase,
        data=data,
        state=state,
        derived=calculate_derived(data, state),
        created_at=now or _now(),
    )


def is_discovery_complete(data: DiscoveryData, state: DiscoveryState) -> bool:
    """Every domain has a proposal and no conflict is open."""
    if not data.domains or data.conflicts:
        return False
    return all(domain_id in state.schema_proposals for domain_id in data.domains)


def domain_needs_review(domain: DomainSummary, threshold: float) -> bool:
    return domain.needs_review or domain.confidence < threshold


def needs_review(data: DiscoveryData, state: DiscoveryState) -> bool:
    """Any open conflict, ambiguous pattern or proposal awaiting review."""
    return bool(
        data.conflicts
        or state.ambiguous_patterns
        or any(p.needs_review for p in state.schema_proposals.values())
    )
