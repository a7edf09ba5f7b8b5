"""
Data Models for Dependency Graphs
=================================

Core data structures for the first-party import graph: file tasks, import
edges and the graph itself, together with the traversal helpers every later
stage relies on (cycles, components, transitive closure, pair strength).
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum

from .schema_models import ValidationResult

logger = logging.getLogger(__name__)


class FileTaskStatus(Enum):
    """Processing status of a single file."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class FileTask:
    """A file scheduled for analysis, ordered by advisory priority."""

    path: str = ""
    relative_path: str = ""
    priority: int = 50
    dependencies: list[str] = field(default_factory=list)
    status: FileTaskStatus = FileTaskStatus.PENDING

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "path": self.path,
            "relative_path": self.relative_path,
            "priority": self.priority,
            "dependencies": self.dependencies,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FileTask":
        """Load from dict."""
        return cls(
            path=data.get("path", ""),
            relative_path=data.get("relative_path", ""),
            priority=data.get("priority", 50),
            dependencies=data.get("dependencies", []),
            status=FileTaskStatus(data.get("status", FileTaskStatus.PENDING.value)),
        )


@dataclass
class ImportEdge:
    """A resolved first-party import from one file to another."""

    source: str = ""
    target: str = ""
    specifiers: list[str] = field(default_factory=list)
    is_reexport: bool = False

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "source": self.source,
            "target": self.target,
            "specifiers": self.specifiers,
            "is_reexport": self.is_reexport,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ImportEdge":
        """Load from dict."""
        return cls(
            source=data.get("source", ""),
            target=data.get("target", ""),
            specifiers=data.get("specifiers", []),
            is_reexport=data.get("is_reexport", False),
        )


def find_elementary_cycles(
    adjacency: dict[str, list[str]],
    order: list[str] | None = None,
    max_cycles: int = 10_000,
) -> list[list[str]]:
    """
    Enumerate every elementary cycle of a directed graph.

    Runs a DFS from each node in turn with an explicit recursion stack,
    only descending into nodes ordered after the start node. Each cycle is
    therefore reported exactly once, rotated so it begins at its
    earliest-ordered node.

    Args:
        adjacency: Node -> successor list
        order: Node visiting order (defaults to adjacency key order)
        max_cycles: Enumeration stops once this many cycles were found

    Returns:
        List of cycles, each an ordered list of nodes (closing edge implied)
    """
    nodes = list(order) if order is not None else list(adjacency)
    index = {node: i for i, node in enumerate(nodes)}
    successors = {node: list(dict.fromkeys(adjacency.get(node, []))) for node in nodes}
    cycles: list[list[str]] = []

    for start in nodes:
        start_index = index[start]
        path = [start]
        on_path = {start}
        stack = [iter(successors[start])]

        while stack:
            advanced = False
            for neighbor in stack[-1]:
                if neighbor == start:
                    cycles.append(list(path))
                    if len(cycles) >= max_cycles:
                        logger.warning("Cycle enumeration stopped after %d cycles", max_cycles)
                        return cycles
                    continue
                if neighbor in on_path or index.get(neighbor, -1) <= start_index:
                    continue
                path.append(neighbor)
                on_path.add(neighbor)
                stack.append(iter(successors[neighbor]))
                advanced = True
                break

            if not advanced:
                stack.pop()
                on_path.discard(path.pop())

    return cycles


@dataclass
class DependencyGraph:
    """First-party import graph. Every edge endpoint is a node."""

    nodes: list[str] = field(default_factory=list)
    edges: list[ImportEdge] = field(default_factory=list)

    def dependencies_of(self, path: str) -> list[str]:
        """Direct import targets of a file."""
        return list(dict.fromkeys(e.target for e in self.edges if e.source == path))

    def dependents_of(self, path: str) -> list[str]:
        """Files that import the given file directly."""
        return list(dict.fromkeys(e.source for e in self.edges if e.target == path))

    def edges_between(self, a: str, b: str) -> list[ImportEdge]:
        """Edges in either direction between two files."""
        return [
            e
            for e in self.edges
            if (e.source == a and e.target == b) or (e.source == b and e.target == a)
        ]

    def adjacency(self) -> dict[str, list[str]]:
        """Build the outgoing adjacency list once."""
        adjacency: dict[str, list[str]] = {node: [] for node in self.nodes}
        for edge in self.edges:
            adjacency.setdefault(edge.source, []).append(edge.target)
        return adjacency

    def validate(self) -> ValidationResult:
        """Check that every edge endpoint is a known node."""
        node_set = set(self.nodes)
        errors = []
        if len(node_set) != len(self.nodes):
            errors.append("Duplicate nodes in graph")
        for edge in self.edges:
            if edge.source not in node_set:
                errors.append(f"Edge source is not a node: {edge.source}")
            if edge.target not in node_set:
                errors.append(f"Edge target is not a node: {edge.target}")
        return ValidationResult(valid=not errors, errors=errors)

    def find_cycles(self) -> list[list[str]]:
        """All elementary import cycles, each as an ordered file list."""
        return find_elementary_cycles(self.adjacency(), self.nodes)

    def find_connected_components(self) -> list[list[str]]:
        """Weakly connected components (edges treated as undirected)."""
        neighbors: dict[str, set[str]] = {node: set() for node in self.nodes}
        for edge in self.edges:
            neighbors.setdefault(edge.source, set()).add(edge.target)
            neighbors.setdefault(edge.target, set()).add(edge.source)

        visited: set[str] = set()
        components: list[list[str]] = []

        for node in self.nodes:
            if node in visited:
                continue
            component = []
            queue = deque([node])
            visited.add(node)
            while queue:
                current = queue.popleft()
                component.append(current)
                for neighbor in sorted(neighbors.get(current, ())):
                    if neighbor not in visited:
                        visited.add(neighbor)
                        queue.append(neighbor)
            components.append(component)

        return components

    def find_all_dependencies(self, path: str) -> set[str]:
        """Transitive closure of imports starting at a file (file excluded)."""
        return self._closure(path, self.adjacency())

    def find_all_dependents(self, path: str) -> set[str]:
        """Transitive closure of importers of a file (file excluded)."""
        reverse: dict[str, list[str]] = {}
        for edge in self.edges:
            reverse.setdefault(edge.target, []).append(edge.source)
        return self._closure(path, reverse)

    @staticmethod
    def _closure(start: str, adjacency: dict[str, list[str]]) -> set[str]:
        seen: set[str] = set()
        queue = deque(adjacency.get(start, []))
        while queue:
            current = queue.popleft()
            if current in seen or current == start:
                continue
            seen.add(current)
            queue.extend(adjacency.get(current, []))
        return seen

    def calculate_relationship_strength(self, a: str, b: str) -> float:
        """
        Import-weighted coupling between two files.

        Args:
            a: First file path
            b: Second file path

        Returns:
            Strength in [0, 1]; 0 when the files are not connected at all
        """
        if a == b:
            return 0.0

        strength = 0.0
        direct = self.edges_between(a, b)

        if direct:
            strength += 0.5
            if any(edge.is_reexport for edge in direct):
                strength += 0.2
            specifier_count = sum(len(edge.specifiers) for edge in direct)
            strength += min(specifier_count * 0.05, 0.2)
        else:
            for component in self.find_connected_components():
                if a in component and b in component:
                    strength += 0.1
                    break

        return min(strength, 1.0)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "nodes": self.nodes,
            "edges": [edge.to_dict() for edge in self.edges],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DependencyGraph":
        """Load from dict."""
        return cls(
            nodes=data.get("nodes", []),
            edges=[ImportEdge.from_dict(e) for e in data.get("edges", [])],
        )


@dataclass
class GraphAnalysis:
    """Structural statistics derived from a dependency graph."""

    in_degree: dict[str, int] = field(default_factory=dict)
    out_degree: dict[str, int] = field(default_factory=dict)
    entry_points: list[str] = field(default_factory=list)
    leaf_nodes: list[str] = field(default_factory=list)
    isolated: list[str] = field(default_factory=list)

    # Shared-state flow
    context_providers: list[str] = field(default_factory=list)
    context_consumers: dict[str, list[str]] = field(default_factory=dict)

    cycles: list[list[str]] = field(default_factory=list)
    components: list[list[str]] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "in_degree": self.in_degree,
            "out_degree": self.out_degree,
            "entry_points": self.entry_points,
            "leaf_nodes": self.leaf_nodes,
            "isolated": self.isolated,
            "context_providers": self.context_providers,
            "context_consumers": self.context_consumers,
            "cycles": self.cycles,
            "components": self.components,
        }
