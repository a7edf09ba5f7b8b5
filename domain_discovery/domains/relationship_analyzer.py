"""
Domain Relationship Analyzer
============================

Pairwise analysis of domain summaries: relationship strength and type,
domain boundaries (imports, exports, shared state) and dependency cycles.
"""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass, field, replace

from ..config import DiscoveryConfig
from ..models.domain_models import (
    ActionType,
    DomainBoundary,
    DomainRelationship,
    DomainSummary,
    RelationshipType,
    generate_id,
)
from ..models.graph_models import DependencyGraph, find_elementary_cycles

logger = logging.getLogger(__name__)

MIN_RELATIONSHIP_STRENGTH = 0.1


@dataclass
class ImportCounts:
    """Directed import counts between two domains."""

    forward: int = 0  # first domain imports second
    backward: int = 0  # second domain imports first
    evidence: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.forward + self.backward


@dataclass
class RelationshipAnalysis:
    """All relationships plus the couplings worth a reviewer's attention."""

    relationships: list[DomainRelationship] = field(default_factory=list)
    strong_couplings: list[DomainRelationship] = field(default_factory=list)
    suggested_merges: list[tuple[str, str]] = field(default_factory=list)
    cycles: list[list[str]] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "relationships": [r.to_dict() for r in self.relationships],
            "strong_couplings": [r.to_dict() for r in self.strong_couplings],
            "suggested_merges": [list(pair) for pair in self.suggested_merges],
            "cycles": self.cycles,
        }


def count_imports(domain1: DomainSummary, domain2: DomainSummary, graph: DependencyGraph) -> ImportCounts:
    """Count import edges in each direction between two domains."""
    files1, files2 = set(domain1.source_files), set(domain2.source_files)
    counts = ImportCounts()

    for edge in graph.edges:
        hit = False
        if edge.source in files1 and edge.target in files2:
            counts.forward += 1
            hit = True
        if edge.source in files2 and edge.target in files1:
            counts.backward += 1
            hit = True
        if hit:
            counts.evidence.append(f"{edge.source} -> {edge.target}")

    return counts


def _shared_state(domain1: DomainSummary, domain2: DomainSummary) -> list[str]:
    other = set(domain2.boundaries.shared_state)
    return [name for name in domain1.boundaries.shared_state if name in other]


def _directories(domain: DomainSummary) -> set[str]:
    return {posixpath.dirname(f) for f in domain.source_files}


def calculate_domain_relationship_strength(
    domain1: DomainSummary, domain2: DomainSummary, graph: DependencyGraph
) -> float:
    """
    Coupling strength between two domains.

    Import edges count 0.1 each (max 0.5), shared-state entries 0.15 each
    (max 0.3) and shared parent directories 0.1 each (max 0.2).

    Returns:
        Strength in [0, 1]
    """
    strength = min(count_imports(domain1, domain2, graph).total * 0.1, 0.5)
    strength += min(len(_shared_state(domain1, domain2)) * 0.15, 0.3)
    strength += min(len(_directories(domain1) & _directories(domain2)) * 0.1, 0.2)
    return min(strength, 1.0)


def determine_relationship_type(
    domain1: DomainSummary, domain2: DomainSummary, counts: ImportCounts
) -> RelationshipType | None:
    """Shared state beats event flow, which beats plain dependency."""
    if _shared_state(domain1, domain2):
        return RelationshipType.SHARED_STATE

    has_events = any(a.type == ActionType.EVENT for a in [*domain1.actions, *domain2.actions])
    if has_events and counts.total > 0:
        return RelationshipType.EVENT_FLOW

    if counts.total > 0:
        return RelationshipType.DEPENDENCY

    return None


def describe_relationship(rel_type: RelationshipType, source: DomainSummary, target: DomainSummary) -> str:
    if rel_type == RelationshipType.DEPENDENCY:
        return f"{source.name} depends on {target.name}"
    if rel_type == RelationshipType.SHARED_STATE:
        return f"{source.name} and {target.name} share state"
    if rel_type == RelationshipType.EVENT_FLOW:
        return f"{source.name} communicates with {target.name} via events"
    return f"{source.name} composes {target.name}"


def create_relationship(
    domain1: DomainSummary,
    domain2: DomainSummary,
    graph: DependencyGraph,
    max_evidence: int = 5,
) -> DomainRelationship | None:
    """
    Build the relationship between two domains, if one is warranted.

    Args:
        domain1: First domain
        domain2: Second domain
        graph: Dependency graph
        max_evidence: Maximum number of import strings kept as evidence

    Returns:
        DomainRelationship directed from the domain importing more
        (domain1 on ties), or None when unrelated or weaker than 0.1
    """
    counts = count_imports(domain1, domain2, graph)
    rel_type = determine_relationship_type(domain1, domain2, counts)
    if rel_type is None:
        return None

    strength = calculate_domain_relationship_strength(domain1, domain2, graph)
    if strength < MIN_RELATIONSHIP_STRENGTH:
        return None

    source, target = (domain1, domain2) if counts.forward >= counts.backward else (domain2, domain1)

    return DomainRelationship(
        id=generate_id("rel"),
        type=rel_type,
        from_domain=source.id,
        to_domain=target.id,
        strength=strength,
        evidence=counts.evidence[:max_evidence],
        description=describe_relationship(rel_type, source, target),
    )


def analyze_all_relationships(
    domains: list[DomainSummary],
    graph: DependencyGraph,
    config: DiscoveryConfig | None = None,
) -> RelationshipAnalysis:
    """
    Relate every unordered pair of domains at most once.

    Args:
        domains: Domain summaries (boundaries should already be analyzed)
        graph: Dependency graph
        config: Thresholds for strong coupling and merge suggestions

    Returns:
        RelationshipAnalysis including dependency cycles
    """
    config = config or DiscoveryConfig()
    analysis = RelationshipAnalysis()

    for i, domain1 in enumerate(domains):
        for domain2 in domains[i + 1 :]:
            relationship = create_relationship(domain1, domain2, graph, config.max_evidence)
            if relationship is None:
                continue

            analysis.relationships.append(relationship)
            if relationship.strength > config.strong_coupling_threshold:
                analysis.strong_couplings.append(relationship)
            if relationship.strength > config.merge_suggestion_threshold:
                analysis.suggested_merges.append((domain1.id, domain2.id))

    analysis.cycles = detect_cyclic_dependencies(domains, analysis.relationships)

    logger.info(
        "Found %d domain relationships (%d strong couplings, %d cycles)",
        len(analysis.relationships),
        len(analysis.strong_couplings),
        len(analysis.cycles),
    )
    return analysis


def analyze_domain_boundaries(domains: list[DomainSummary], graph: DependencyGraph) -> list[DomainSummary]:
    """
    Fill each domain's boundaries.

    Imports and exports hold the names of domains this one imports from or
    is imported by. Shared state holds context entity names that also appear
    in another domain's entities.

    Returns:
        New DomainSummary list; inputs are not modified
    """
    owners: dict[str, list[DomainSummary]] = {}
    for domain in domains:
        for path in domain.source_files:
            owners.setdefault(path, []).append(domain)

    result = []
    for domain in domains:
        files = set(domain.source_files)
        imports: list[str] = []
        exports: list[str] = []

        for edge in graph.edges:
            if edge.source in files:
                for other in owners.get(edge.target, []):
                    if other.id != domain.id and other.name not in imports:
                        imports.append(other.name)
            if edge.target in files:
                for other in owners.get(edge.source, []):
                    if other.id != domain.id and other.name not in exports:
                        exports.append(other.name)

        shared_state: list[str] = []
        for entity in domain.entities:
            if "Context" not in entity.name or entity.name in shared_state:
                continue
            if any(
                other.id != domain.id and any(e.name == entity.name for e in other.entities)
                for other in domains
            ):
                shared_state.append(entity.name)

        result.append(
            replace(domain, boundaries=DomainBoundary(imports=imports, exports=exports, shared_state=shared_state))
        )

    return result


def detect_cyclic_dependencies(
    domains: list[DomainSummary], relationships: list[DomainRelationship]
) -> list[list[str]]:
    """
    Find every distinct cycle among dependency relationships.

    Builds the adjacency list once from dependency-typed relationships and
    runs an explicit-stack DFS over it.

    Returns:
        Cycles as ordered domain-id lists (closing edge implied)
    """
    adjacency: dict[str, list[str]] = {domain.id: [] for domain in domains}
    for rel in relationships:
        if rel.type == RelationshipType.DEPENDENCY and rel.from_domain in adjacency:
            adjacency[rel.from_domain].append(rel.to_domain)

    return find_elementary_cycles(adjacency, [domain.id for domain in domains])


def get_relationships_for_domain(
    relationships: list[DomainRelationship], domain_id: str
) -> list[DomainRelationship]:
    return [rel for rel in relationships if rel.involves(domain_id)]


def get_relationship_between(
    relationships: list[DomainRelationship], domain1: str, domain2: str
) -> DomainRelationship | None:
    for rel in relationships:
        if {rel.from_domain, rel.to_domain} == {domain1, domain2}:
            return rel
    return None
