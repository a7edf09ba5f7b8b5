"""
Domain Analysis Module
======================

Candidate extraction, file clustering, relationship analysis and conflict
handling for domain discovery.
"""

from __future__ import annotations

from .candidate_extractor import (
    DomainCandidateExtractor,
    calculate_candidate_relationships,
    detect_ambiguous_patterns,
    generate_domain_description,
    infer_domain_name,
    merge_candidates,
    normalize_domain_name,
)
from .clustering import (
    ClusteringResult,
    FileCluster,
    FileClusterer,
    calculate_file_similarity,
    clusters_to_domain_summaries,
    merge_clusters,
    perform_clustering,
    rename_synthesized_summary,
)
from .conflicts import (
    apply_conflict_resolution,
    detect_all_conflicts,
    detect_boundary_conflicts,
    detect_naming_conflicts,
    detect_ownership_conflicts,
    merge_domains,
    split_domain,
    suggest_domain_name,
)
from .relationship_analyzer import (
    RelationshipAnalysis,
    analyze_all_relationships,
    analyze_domain_boundaries,
    calculate_domain_relationship_strength,
    create_relationship,
    detect_cyclic_dependencies,
)

__all__ = [
    # Candidates
    "DomainCandidateExtractor",
    "calculate_candidate_relationships",
    "detect_ambiguous_patterns",
    "generate_domain_description",
    "infer_domain_name",
    "merge_candidates",
    "normalize_domain_name",
    # Clustering
    "ClusteringResult",
    "FileCluster",
    "FileClusterer",
    "calculate_file_similarity",
    "clusters_to_domain_summaries",
    "merge_clusters",
    "perform_clustering",
    "rename_synthesized_summary",
    # Relationships
    "RelationshipAnalysis",
    "analyze_all_relationships",
    "analyze_domain_boundaries",
    "calculate_domain_relationship_strength",
    "create_relationship",
    "detect_cyclic_dependencies",
    # Conflicts
    "apply_conflict_resolution",
    "detect_all_conflicts",
    "detect_boundary_conflicts",
    "detect_naming_conflicts",
    "detect_ownership_conflicts",
    "merge_domains",
    "split_domain",
    "suggest_domain_name",
]
