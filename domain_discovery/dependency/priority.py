"""
File Priority Ranking
=====================

Advisory ordering of files for analysis. Files that define shared state,
reducers or exported custom hooks, and shallow entry points, are processed
first. The score never influences the correctness of later stages.
"""

from __future__ import annotations

import logging
import math
import posixpath
import re
from dataclasses import dataclass

from ..models.graph_models import DependencyGraph, FileTask, FileTaskStatus
from ..models.pattern_models import FileAnalysis, PatternType

logger = logging.getLogger(__name__)

BASE_PRIORITY = 50

ENTRY_POINT_RE = re.compile(r"^(index|App|main|_app|layout)\.(tsx?|jsx?)$")
CUSTOM_HOOK_NAME_RE = re.compile(r"^use[A-Z]")

FEATURE_DIR_RE = re.compile(r"(?:^|/)(?:features?|modules?|domains?|pages?|views?|screens?)/([^/]+)/")
HOOK_FILE_RE = re.compile(r"^use([A-Z]\w*)$")
CONTEXT_FILE_RE = re.compile(r"^([A-Z]\w*)Context$")


@dataclass
class PriorityFactors:
    """Breakdown of a file's priority score."""

    is_entry_point: bool = False
    creates_context: bool = False
    exports_custom_hook: bool = False
    has_reducer: bool = False
    uses_provider: bool = False
    export_count: int = 0
    import_count: int = 0
    size: int = 0
    depth: int = 0

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "is_entry_point": self.is_entry_point,
            "creates_context": self.creates_context,
            "exports_custom_hook": self.exports_custom_hook,
            "has_reducer": self.has_reducer,
            "uses_provider": self.uses_provider,
            "export_count": self.export_count,
            "import_count": self.import_count,
            "size": self.size,
            "depth": self.depth,
        }


def is_entry_point(path: str) -> bool:
    return bool(ENTRY_POINT_RE.match(posixpath.basename(path)))


def is_feature_directory(path: str) -> bool:
    """True when the path sits under a feature/module/domain/page/view/screen directory."""
    return bool(FEATURE_DIR_RE.search(path.replace("\\", "/")))


def infer_domain_from_path(path: str) -> str | None:
    """
    Guess a domain name from a file path.

    Args:
        path: Relative file path

    Returns:
        The directory after a feature-style directory, else the name inside a
        use<Name> or <Name>Context file stem (lowercased), else None
    """
    normalized = path.replace("\\", "/")
    match = FEATURE_DIR_RE.search(normalized)
    if match:
        return match.group(1)

    stem = posixpath.splitext(posixpath.basename(normalized))[0]
    hook_match = HOOK_FILE_RE.match(stem)
    if hook_match:
        return hook_match.group(1).lower()

    context_match = CONTEXT_FILE_RE.match(stem)
    if context_match:
        return context_match.group(1).lower()

    return None


def path_depth(relative_path: str) -> int:
    """Number of directories above the file."""
    parts = [p for p in relative_path.replace("\\", "/").split("/") if p and p != "."]
    return max(len(parts) - 1, 0)


def analyze_priority_factors(analysis: FileAnalysis) -> PriorityFactors:
    """Collect the signals that drive a file's priority."""
    export_names = analysis.export_names
    patterns = analysis.patterns

    exports_hook = any(
        p.type == PatternType.HOOK
        and (p.metadata.is_custom_hook or CUSTOM_HOOK_NAME_RE.match(p.name))
        and p.name in export_names
        for p in patterns
    )

    return PriorityFactors(
        is_entry_point=is_entry_point(analysis.relative_path or analysis.path),
        creates_context=any(p.type == PatternType.CONTEXT for p in patterns),
        exports_custom_hook=exports_hook,
        has_reducer=any(p.type == PatternType.REDUCER for p in patterns),
        uses_provider=any(p.metadata.has_provider for p in patterns),
        export_count=len(analysis.exports),
        import_count=len(analysis.imports),
        size=analysis.size,
        depth=path_depth(analysis.relative_path or analysis.path),
    )


def score_factors(factors: PriorityFactors) -> int:
    """Turn a factor breakdown into a priority in [0, 100]."""
    score = float(BASE_PRIORITY)

    if factors.is_entry_point:
        score += 30
    if factors.creates_context:
        score += 25
    if factors.exports_custom_hook:
        score += 20
    if factors.has_reducer:
        score += 20
    if factors.uses_provider:
        score += 15

    score += min(factors.export_count * 2, 20)
    score -= min(factors.import_count, 15)
    score -= min(factors.size * 0.0001, 10)
    score -= min(factors.depth * 3, 15)

    # Half-up rounding, not banker's rounding
    return max(0, min(100, int(math.floor(score + 0.5))))


def calculate_priority(analysis: FileAnalysis) -> int:
    return score_factors(analyze_priority_factors(analysis))


def create_file_tasks(
    analyses: list[FileAnalysis], graph: DependencyGraph | None = None
) -> list[FileTask]:
    """
    Create pending file tasks ordered by priority (highest first).

    Args:
        analyses: Detector output
        graph: Dependency graph used to fill each task's dependencies

    Returns:
        FileTask list; ties keep input order
    """
    tasks = [
        FileTask(
            path=analysis.path,
            relative_path=analysis.relative_path,
            priority=calculate_priority(analysis),
            dependencies=graph.dependencies_of(analysis.path) if graph else [],
            status=FileTaskStatus.PENDING,
        )
        for analysis in analyses
    ]
    tasks.sort(key=lambda task: task.priority, reverse=True)

    logger.debug("Ranked %d files by priority", len(tasks))
    return tasks
