"""
Domain Discovery Models
=======================

Data models for detector input, dependency graphs, domain candidates and
summaries, schema proposals and discovery sessions.
"""

from .domain_models import (
    ActionType,
    AmbiguousPattern,
    CandidateRelationship,
    ConflictType,
    DomainBoundary,
    DomainCandidate,
    DomainConflict,
    DomainRelationship,
    DomainSummary,
    EntityKind,
    ExtractedAction,
    ExtractedEntity,
    ExtractedField,
    RelationshipType,
    ResolutionAction,
    SuggestedBy,
    SuggestedResolution,
    generate_id,
)
from .graph_models import (
    DependencyGraph,
    FileTask,
    FileTaskStatus,
    GraphAnalysis,
    ImportEdge,
    find_elementary_cycles,
)
from .pattern_models import (
    DetectedPattern,
    EntityFieldSpec,
    ExportInfo,
    FileAnalysis,
    ImportInfo,
    ImportSpecifier,
    PatternMetadata,
    PatternType,
    SourceLocation,
)
from .schema_models import ProposalMergeResult, SchemaFieldProposal, SchemaProposal, ValidationResult
from .session_models import (
    ClusteringState,
    ClusteringStatus,
    DerivedMetrics,
    DiscoveryData,
    DiscoveryMeta,
    DiscoverySnapshot,
    DiscoveryState,
    RelationshipsByType,
    ReviewKind,
    ReviewRequest,
)

__all__ = [
    # Detector input
    "PatternType",
    "SourceLocation",
    "EntityFieldSpec",
    "PatternMetadata",
    "DetectedPattern",
    "ImportSpecifier",
    "ImportInfo",
    "ExportInfo",
    "FileAnalysis",
    # Graph models
    "FileTaskStatus",
    "FileTask",
    "ImportEdge",
    "DependencyGraph",
    "GraphAnalysis",
    "find_elementary_cycles",
    # Domain models
    "SuggestedBy",
    "ResolutionAction",
    "EntityKind",
    "ActionType",
    "RelationshipType",
    "ConflictType",
    "CandidateRelationship",
    "DomainCandidate",
    "SuggestedResolution",
    "AmbiguousPattern",
    "ExtractedField",
    "ExtractedEntity",
    "ExtractedAction",
    "DomainBoundary",
    "DomainSummary",
    "DomainRelationship",
    "DomainConflict",
    "generate_id",
    # Schema models
    "ValidationResult",
    "SchemaFieldProposal",
    "SchemaProposal",
    "ProposalMergeResult",
    # Session models
    "ClusteringStatus",
    "ReviewKind",
    "RelationshipsByType",
    "ClusteringState",
    "DiscoveryMeta",
    "DiscoveryData",
    "DiscoveryState",
    "DerivedMetrics",
    "DiscoverySnapshot",
    "ReviewRequest",
]
