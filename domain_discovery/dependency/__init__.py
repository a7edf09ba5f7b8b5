"""
Dependency Analysis Module
==========================

Builds the first-party import graph from detector output and ranks files
by advisory processing priority.
"""

from __future__ import annotations

from .graph_builder import DependencyGraphBuilder, analyze_graph, resolve_import_path
from .priority import (
    PriorityFactors,
    analyze_priority_factors,
    calculate_priority,
    create_file_tasks,
    infer_domain_from_path,
    is_entry_point,
    is_feature_directory,
)

__all__ = [
    "DependencyGraphBuilder",
    "analyze_graph",
    "resolve_import_path",
    "PriorityFactors",
    "analyze_priority_factors",
    "calculate_priority",
    "create_file_tasks",
    "infer_domain_from_path",
    "is_entry_point",
    "is_feature_directory",
]
