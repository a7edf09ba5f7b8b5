"""
Data Models for Discovery Sessions
==================================

Immutable containers threaded through the pipeline. Session transforms
return new instances instead of mutating these in place.
"""

from dataclasses import dataclass, field
from enum import Enum

from .domain_models import (
    AmbiguousPattern,
    DomainConflict,
    DomainRelationship,
    DomainSummary,
    SuggestedResolution,
)
from .pattern_models import DetectedPattern
from .schema_models import SchemaProposal


class ClusteringStatus(Enum):
    """Lifecycle of the clustering phase."""

    IDLE = "idle"
    RUNNING = "running"
    DONE = "done"


class ReviewKind(Enum):
    """Kinds of human-in-the-loop requests."""

    AMBIGUOUS_PATTERN = "ambiguous_pattern"
    SCHEMA_REVIEW = "schema_review"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class RelationshipsByType:
    """Domain relationships bucketed by type."""

    dependencies: list[DomainRelationship] = field(default_factory=list)
    shared_state: list[DomainRelationship] = field(default_factory=list)
    event_flows: list[DomainRelationship] = field(default_factory=list)
    compositions: list[DomainRelationship] = field(default_factory=list)

    def all(self) -> list[DomainRelationship]:
        return [*self.dependencies, *self.shared_state, *self.event_flows, *self.compositions]

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "dependencies": [r.to_dict() for r in self.dependencies],
            "shared_state": [r.to_dict() for r in self.shared_state],
            "event_flows": [r.to_dict() for r in self.event_flows],
            "compositions": [r.to_dict() for r in self.compositions],
        }


@dataclass(frozen=True)
class ClusteringState:
    """Progress of the clustering phase."""

    status: ClusteringStatus = ClusteringStatus.IDLE
    cluster_count: int = 0
    noise_count: int = 0
    started_at: str | None = None
    completed_at: str | None = None

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "status": self.status.value,
            "cluster_count": self.cluster_count,
            "noise_count": self.noise_count,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
        }


@dataclass(frozen=True)
class DiscoveryMeta:
    """Run bookkeeping."""

    attempts: int = 0
    llm_call_count: int = 0
    last_processed_domain: str | None = None
    processing_rate: float = 0.0  # domains per second
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "attempts": self.attempts,
            "llm_call_count": self.llm_call_count,
            "last_processed_domain": self.last_processed_domain,
            "processing_rate": self.processing_rate,
            "errors": self.errors,
        }


@dataclass(frozen=True)
class DiscoveryData:
    """Authoritative discovery output: domains and open conflicts."""

    session_id: str = ""
    domains: dict[str, DomainSummary] = field(default_factory=dict)
    conflicts: list[DomainConflict] = field(default_factory=list)

    def get_domain(self, domain_id: str) -> DomainSummary | None:
        return self.domains.get(domain_id)

    def get_conflict(self, conflict_id: str) -> DomainConflict | None:
        for conflict in self.conflicts:
            if conflict.id == conflict_id:
                return conflict
        return None

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "session_id": self.session_id,
            "domains": {domain_id: d.to_dict() for domain_id, d in self.domains.items()},
            "conflicts": [c.to_dict() for c in self.conflicts],
        }


@dataclass(frozen=True)
class DiscoveryState:
    """Working state that accompanies DiscoveryData through the phases."""

    relationships: RelationshipsByType = field(default_factory=RelationshipsByType)
    schema_proposals: dict[str, SchemaProposal] = field(default_factory=dict)
    clustering: ClusteringState = field(default_factory=ClusteringState)
    ambiguous_patterns: list[AmbiguousPattern] = field(default_factory=list)
    meta: DiscoveryMeta = field(default_factory=DiscoveryMeta)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "relationships": self.relationships.to_dict(),
            "schema_proposals": {
                domain_id: p.to_dict() for domain_id, p in self.schema_proposals.items()
            },
            "clustering": self.clustering.to_dict(),
            "ambiguous_patterns": [a.to_dict() for a in self.ambiguous_patterns],
            "meta": self.meta.to_dict(),
        }


@dataclass(frozen=True)
class DerivedMetrics:
    """Values computed from data and state, never stored independently."""

    domains_total: int = 0
    domains_processed: int = 0
    conflicts_unresolved: int = 0
    proposals_ready: int = 0
    overall_confidence: float = 0.0
    progress: float = 0.0  # percent
    estimated_time_remaining: float | None = None  # seconds

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "domains_total": self.domains_total,
            "domains_processed": self.domains_processed,
            "conflicts_unresolved": self.conflicts_unresolved,
            "proposals_ready": self.proposals_ready,
            "overall_confidence": self.overall_confidence,
            "progress": self.progress,
            "estimated_time_remaining": self.estimated_time_remaining,
        }


@dataclass(frozen=True)
class DiscoverySnapshot:
    """A persisted point-in-time view of a session."""

    session_id: str
    version: int
    phase: str
    data: DiscoveryData
    state: DiscoveryState
    derived: DerivedMetrics
    created_at: str = ""

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "session_id": self.session_id,
            "version": self.version,
            "phase": self.phase,
            "data": self.data.to_dict(),
            "state": self.state.to_dict(),
            "derived": self.derived.to_dict(),
            "created_at": self.created_at,
        }


@dataclass
class ReviewRequest:
    """A decision the host must obtain from a human before proceeding."""

    id: str = ""
    kind: ReviewKind = ReviewKind.SCHEMA_REVIEW
    subject_id: str = ""
    description: str = ""
    suggested_resolutions: list[SuggestedResolution] = field(default_factory=list)
    patterns: list[DetectedPattern] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "id": self.id,
            "kind": self.kind.value,
            "subject_id": self.subject_id,
            "description": self.description,
            "suggested_resolutions": [r.to_dict() for r in self.suggested_resolutions],
            "patterns": [p.to_dict() for p in self.patterns],
        }
