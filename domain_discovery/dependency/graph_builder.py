"""
Dependency Graph Builder
========================

Builds the first-party import graph from per-file detector output.
Resolves relative import specifiers against the known file set and drops
bare package specifiers, so only project files ever become nodes.
"""

from __future__ import annotations

import logging
import posixpath

from ..errors import InvariantViolation
from ..models.graph_models import DependencyGraph, GraphAnalysis, ImportEdge
from ..models.pattern_models import FileAnalysis, PatternType

logger = logging.getLogger(__name__)

SCRIPT_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx")
INDEX_SUFFIXES = tuple(f"/index{ext}" for ext in SCRIPT_EXTENSIONS)


def _normalize(path: str) -> str:
    return posixpath.normpath(path.replace("\\", "/"))


def is_relative_specifier(source: str) -> bool:
    """Relative (or root-absolute) specifiers point at project files."""
    return source.startswith(".") or source.startswith("/")


def resolve_import_path(source: str, from_file: str, known_files: set[str] | dict[str, str]) -> str | None:
    """
    Resolve an import specifier to a known file.

    Tries, in order: the exact path, the path with each script extension
    appended, the index file inside the path as a directory, and finally the
    same candidates with an existing script extension stripped.

    Args:
        source: Import specifier as written (e.g. "./useAuth", "react")
        from_file: Path of the importing file
        known_files: Known file paths (normalized)

    Returns:
        Matching known path, or None for external or unresolvable specifiers
    """
    if not is_relative_specifier(source):
        return None

    if source.startswith("/"):
        base = _normalize(source)
    else:
        base = _normalize(posixpath.join(posixpath.dirname(_normalize(from_file)), source))

    candidates = [base]
    candidates.extend(base + ext for ext in SCRIPT_EXTENSIONS)
    candidates.extend(base + suffix for suffix in INDEX_SUFFIXES)

    stem, ext = posixpath.splitext(base)
    if ext in SCRIPT_EXTENSIONS:
        candidates.extend(stem + other for other in SCRIPT_EXTENSIONS)
        candidates.extend(stem + suffix for suffix in INDEX_SUFFIXES)

    for candidate in candidates:
        if candidate in known_files:
            return candidate

    return None


class DependencyGraphBuilder:
    """Builds DependencyGraph objects from FileAnalysis lists."""

    def __init__(self) -> None:
        self.external_imports: dict[str, set[str]] = {}
        self.unresolved_imports: dict[str, set[str]] = {}

    def build(self, analyses: list[FileAnalysis]) -> DependencyGraph:
        """
        Build a complete dependency graph.

        Args:
            analyses: Detector output, one entry per file

        Returns:
            DependencyGraph whose edges only connect known files

        Raises:
            InvariantViolation: If the built graph references unknown nodes
        """
        self.external_imports = {}
        self.unresolved_imports = {}

        # Normalized path -> path as supplied by the detector
        known: dict[str, str] = {}
        for analysis in analyses:
            known.setdefault(_normalize(analysis.path), analysis.path)

        nodes = list(known.values())
        edges = self._build_edges(analyses, known)

        graph = DependencyGraph(nodes=nodes, edges=edges)
        validation = graph.validate()
        if not validation.valid:
            raise InvariantViolation("; ".join(validation.errors))

        external_count = sum(len(specs) for specs in self.external_imports.values())
        logger.info(
            "Built dependency graph: %d nodes, %d edges (%d external imports skipped)",
            len(nodes),
            len(edges),
            external_count,
        )
        return graph

    def _build_edges(self, analyses: list[FileAnalysis], known: dict[str, str]) -> list[ImportEdge]:
        edges = []

        for analysis in analyses:
            export_names = analysis.export_names

            for imp in analysis.imports:
                resolved = resolve_import_path(imp.source, analysis.path, known)

                if resolved is None:
                    bucket = (
                        self.unresolved_imports
                        if is_relative_specifier(imp.source)
                        else self.external_imports
                    )
                    bucket.setdefault(analysis.path, set()).add(imp.source)
                    if bucket is self.unresolved_imports:
                        logger.debug("Unresolved import %r in %s", imp.source, analysis.path)
                    continue

                names = imp.names
                edges.append(
                    ImportEdge(
                        source=known[_normalize(analysis.path)],
                        target=known[resolved],
                        specifiers=names,
                        is_reexport=any(name in export_names for name in names),
                    )
                )

        return edges


def analyze_graph(graph: DependencyGraph, analyses: list[FileAnalysis] | None = None) -> GraphAnalysis:
    """
    Compute degree statistics and shared-state flow for a graph.

    Args:
        graph: Dependency graph
        analyses: Detector output, used to find context provider files

    Returns:
        GraphAnalysis
    """
    in_degree = {node: 0 for node in graph.nodes}
    out_degree = {node: 0 for node in graph.nodes}
    for edge in graph.edges:
        out_degree[edge.source] += 1
        in_degree[edge.target] += 1

    isolated = [n for n in graph.nodes if in_degree[n] == 0 and out_degree[n] == 0]
    isolated_set = set(isolated)

    providers = []
    for analysis in analyses or []:
        if any(p.type == PatternType.CONTEXT for p in analysis.patterns) and analysis.path in in_degree:
            providers.append(analysis.path)

    return GraphAnalysis(
        in_degree=in_degree,
        out_degree=out_degree,
        entry_points=[n for n in graph.nodes if in_degree[n] == 0 and n not in isolated_set],
        leaf_nodes=[n for n in graph.nodes if out_degree[n] == 0 and n not in isolated_set],
        isolated=isolated,
        context_providers=providers,
        context_consumers={path: graph.dependents_of(path) for path in providers},
        cycles=graph.find_cycles(),
        components=graph.find_connected_components(),
    )
