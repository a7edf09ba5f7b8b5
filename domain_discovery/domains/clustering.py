"""
File Clustering Engine
======================

Density-based clustering of files by structural similarity, reconciled
against domain candidates to produce DomainSummary records.

Similarity combines directory layout, direct imports and filename prefixes.
Feature directories are hard boundaries: two files in different feature
directories never cluster, and feature code never clusters with shared code.
"""

from __future__ import annotations

import logging
import posixpath
import re
from collections import Counter, deque
from dataclasses import dataclass, field, replace

from ..config import DiscoveryConfig
from ..models.domain_models import DomainCandidate, DomainSummary, SuggestedBy
from ..models.graph_models import DependencyGraph
from ..models.pattern_models import DetectedPattern
from ..schema.extraction import extract_actions_from_patterns, extract_entities_from_patterns
from .candidate_extractor import generate_domain_description, infer_domain_name, normalize_domain_name

logger = logging.getLogger(__name__)

FEATURE_RE = re.compile(r"(?:^|/)(?:features?|domains?|modules?)/([^/]+)/")
SHARED_RE = re.compile(r"(?:^|/)(?:shared|common|utils|lib|helpers)/")

SYNTHESIZED_REVIEW_NOTE = "Domain inferred from file clustering, needs review"

# suggested_by of summaries built from unmatched clusters
SYNTHESIZED_BY = "clustering"


@dataclass
class FileCluster:
    """A group of mutually similar files. Exists only during clustering."""

    id: str = ""
    files: list[str] = field(default_factory=list)
    centroid: str = ""
    density: float = 0.0
    domain_candidates: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "id": self.id,
            "files": self.files,
            "centroid": self.centroid,
            "density": self.density,
            "domain_candidates": self.domain_candidates,
        }


@dataclass
class ClusteringResult:
    """Clusters, noise files and the similarity scores that produced them."""

    clusters: list[FileCluster] = field(default_factory=list)
    noise: list[str] = field(default_factory=list)
    similarity_matrix: dict[tuple[str, str], float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "clusters": [c.to_dict() for c in self.clusters],
            "noise": self.noise,
            "similarity_matrix": {f"{a}|{b}": score for (a, b), score in self.similarity_matrix.items()},
        }


def feature_of(path: str) -> str | None:
    """Name of the feature-style directory holding the file, if any."""
    match = FEATURE_RE.search(path.replace("\\", "/"))
    return match.group(1) if match else None


def is_shared_location(path: str) -> bool:
    return bool(SHARED_RE.search(path.replace("\\", "/")))


def _directory(path: str) -> str:
    return posixpath.dirname(path.replace("\\", "/"))


def _is_nested(dir1: str, dir2: str) -> bool:
    if not dir1 or not dir2:
        return False
    return dir2.startswith(dir1 + "/") or dir1.startswith(dir2 + "/")


def _common_prefix_length(a: str, b: str) -> int:
    length = 0
    for ch1, ch2 in zip(a, b):
        if ch1 != ch2:
            break
        length += 1
    return length


def calculate_file_similarity(file1: str, file2: str, directly_imports: bool = False) -> float:
    """
    Structural similarity of two files.

    Args:
        file1: First file path
        file2: Second file path
        directly_imports: Whether an import edge connects the files (either way)

    Returns:
        Similarity in [0, 1]
    """
    feature1, feature2 = feature_of(file1), feature_of(file2)
    shared1, shared2 = is_shared_location(file1), is_shared_location(file2)
    dir1, dir2 = _directory(file1), _directory(file2)

    if feature1 and feature2 and feature1 != feature2:
        return 0.0

    score = 0.0
    if feature1 and feature1 == feature2:
        score += 0.6

    if shared1 and shared2:
        if dir1 == dir2:
            score += 0.4
    elif shared1 != shared2:
        return 0.0

    unclassified = not (feature1 or feature2 or shared1 or shared2)
    if unclassified:
        if dir1 == dir2:
            score += 0.3
        elif _is_nested(dir1, dir2):
            score += 0.15

    if directly_imports:
        if feature1 and feature1 == feature2:
            score += 0.3
        elif unclassified:
            score += 0.2

    stem1 = posixpath.splitext(posixpath.basename(file1))[0]
    stem2 = posixpath.splitext(posixpath.basename(file2))[0]
    prefix = _common_prefix_length(stem1, stem2)
    if prefix >= 3:
        score += min(0.2, prefix / max(len(stem1), len(stem2)) * 0.2)

    return max(0.0, min(1.0, score))


class FileClusterer:
    """DBSCAN-style clustering over files with cached pairwise similarity."""

    def __init__(
        self,
        graph: DependencyGraph | None = None,
        min_cluster_size: int = 2,
        similarity_threshold: float = 0.5,
    ):
        """
        Initialize the clusterer.

        Args:
            graph: Dependency graph supplying direct import edges
            min_cluster_size: Minimum files per cluster (core point needs size-1 neighbors)
            similarity_threshold: Minimum similarity for two files to be neighbors
        """
        self.min_cluster_size = max(1, min_cluster_size)
        self.similarity_threshold = similarity_threshold
        self._import_pairs: set[frozenset[str]] = set()
        if graph is not None:
            self._import_pairs = {frozenset((e.source, e.target)) for e in graph.edges}
        self._cache: dict[tuple[str, str], float] = {}

    def similarity(self, file1: str, file2: str) -> float:
        """Symmetric, cached similarity."""
        key = (file1, file2) if file1 <= file2 else (file2, file1)
        if key not in self._cache:
            self._cache[key] = calculate_file_similarity(
                key[0], key[1], frozenset(key) in self._import_pairs
            )
        return self._cache[key]

    def neighbors(self, file: str, files: list[str]) -> list[str]:
        return [
            other
            for other in files
            if other != file and self.similarity(file, other) >= self.similarity_threshold
        ]

    def cluster(self, files: list[str]) -> ClusteringResult:
        """
        Cluster files in input order.

        A file with at least min_cluster_size - 1 neighbors seeds a cluster,
        which grows breadth-first through density-reachable files. Files that
        were noise earlier may still join a later cluster as border points.

        Args:
            files: File paths to cluster

        Returns:
            ClusteringResult with clusters and leftover noise
        """
        files = list(dict.fromkeys(files))
        required = self.min_cluster_size - 1
        visited: set[str] = set()
        assigned: dict[str, int] = {}
        groups: list[list[str]] = []

        for file in files:
            if file in visited:
                continue
            visited.add(file)

            seed_neighbors = self.neighbors(file, files)
            if len(seed_neighbors) < required or file in assigned:
                continue

            index = len(groups)
            members = [file]
            assigned[file] = index
            queue = deque(n for n in seed_neighbors if n not in assigned)

            while queue:
                current = queue.popleft()
                if current in assigned:
                    continue
                assigned[current] = index
                members.append(current)

                if current in visited:
                    continue
                visited.add(current)

                current_neighbors = self.neighbors(current, files)
                if len(current_neighbors) >= required:
                    queue.extend(n for n in current_neighbors if n not in assigned)

            groups.append(members)

        clusters = [
            FileCluster(
                id=f"cluster-{i}",
                files=members,
                centroid=self._centroid(members),
                density=self._density(members),
            )
            for i, members in enumerate(groups)
        ]
        noise = [f for f in files if f not in assigned]

        logger.info("Clustered %d files into %d clusters (%d noise)", len(files), len(clusters), len(noise))
        return ClusteringResult(clusters=clusters, noise=noise, similarity_matrix=dict(self._cache))

    def _centroid(self, members: list[str]) -> str:
        best, best_count = members[0], -1
        for file in members:
            count = sum(
                1
                for other in members
                if other != file and self.similarity(file, other) >= self.similarity_threshold
            )
            if count > best_count:
                best, best_count = file, count
        return best

    def _density(self, members: list[str]) -> float:
        n = len(members)
        if n < 2:
            return 0.0
        qualifying = sum(
            1
            for i in range(n)
            for j in range(i + 1, n)
            if self.similarity(members[i], members[j]) >= self.similarity_threshold
        )
        return qualifying / (n * (n - 1) / 2)


def map_candidates_to_clusters(
    clusters: list[FileCluster], candidates: list[DomainCandidate]
) -> list[FileCluster]:
    """Attach the ids of candidates whose files intersect each cluster."""
    mapped = []
    for cluster in clusters:
        files = set(cluster.files)
        mapped.append(
            FileCluster(
                id=cluster.id,
                files=list(cluster.files),
                centroid=cluster.centroid,
                density=cluster.density,
                domain_candidates=[c.id for c in candidates if files.intersection(c.source_files)],
            )
        )
    return mapped


def dominant_feature(cluster: FileCluster) -> str | None:
    """Feature directory holding most of the cluster's files (first on ties)."""
    counts = Counter(f for f in (feature_of(path) for path in cluster.files) if f)
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def merge_clusters(clusters: list[FileCluster]) -> list[FileCluster]:
    """
    Merge clusters sharing a dominant feature directory.

    The first cluster of each group keeps its id, centroid and density.
    """
    merged: list[FileCluster] = []
    by_feature: dict[str, FileCluster] = {}

    for cluster in clusters:
        feature = dominant_feature(cluster)
        if feature is None or feature not in by_feature:
            copy = FileCluster(
                id=cluster.id,
                files=list(cluster.files),
                centroid=cluster.centroid,
                density=cluster.density,
                domain_candidates=list(cluster.domain_candidates),
            )
            merged.append(copy)
            if feature is not None:
                by_feature[feature] = copy
            continue

        target = by_feature[feature]
        target.files = list(dict.fromkeys([*target.files, *cluster.files]))
        target.domain_candidates = list(
            dict.fromkeys([*target.domain_candidates, *cluster.domain_candidates])
        )
        logger.debug("Merged %s into %s (feature %s)", cluster.id, target.id, feature)

    return merged


def create_domain_summary(
    candidate: DomainCandidate, confidence_threshold: float = 0.7
) -> DomainSummary:
    """Turn a candidate into a summary; low-confidence summaries need review."""
    needs_review = candidate.confidence < confidence_threshold
    return DomainSummary(
        id=f"summary-{candidate.id}",
        name=candidate.name,
        description=generate_domain_description(candidate),
        source_files=list(candidate.source_files),
        suggested_by=candidate.id,
        confidence=candidate.confidence,
        needs_review=needs_review,
        review_notes=(
            [f"Low confidence ({candidate.confidence:.2f}) from {candidate.suggested_by.value} heuristic"]
            if needs_review
            else []
        ),
    )


def clusters_to_domain_summaries(
    clusters: list[FileCluster],
    candidates: list[DomainCandidate],
    patterns_by_file: dict[str, list[DetectedPattern]] | None = None,
    confidence_threshold: float = 0.7,
) -> list[DomainSummary]:
    """
    Build one DomainSummary per cluster.

    Clusters matched to candidates inherit the best candidate's name,
    confidence and provenance. Unmatched clusters are named after their
    centroid file, scored density x 0.7 and always flagged for review.

    Args:
        clusters: Clusters with candidate ids attached
        candidates: Merged candidates
        patterns_by_file: Detector patterns per file, mined for entities/actions
        confidence_threshold: Summaries below this confidence need review

    Returns:
        DomainSummary list in cluster order
    """
    by_id = {c.id: c for c in candidates}
    used_ids: Counter[str] = Counter()
    summaries = []

    for cluster in clusters:
        matched = [by_id[cid] for cid in cluster.domain_candidates if cid in by_id]

        if matched:
            best = max(matched, key=lambda c: c.confidence)
            summary = create_domain_summary(best, confidence_threshold)
            summary.source_files = list(dict.fromkeys([*cluster.files, *best.source_files]))
            fallback_patterns = best.patterns
        else:
            stem = posixpath.splitext(posixpath.basename(cluster.centroid))[0]
            summary = DomainSummary(
                id=f"domain-{cluster.id}",
                name=infer_domain_name(stem) or stem.lower(),
                description=f"Files clustered around {posixpath.basename(cluster.centroid)}",
                source_files=list(cluster.files),
                suggested_by=SYNTHESIZED_BY,
                confidence=cluster.density * 0.7,
                needs_review=True,
                review_notes=[SYNTHESIZED_REVIEW_NOTE],
            )
            fallback_patterns = []

        used_ids[summary.id] += 1
        if used_ids[summary.id] > 1:
            summary.id = f"{summary.id}-{used_ids[summary.id]}"

        if patterns_by_file is not None:
            patterns = [p for path in summary.source_files for p in patterns_by_file.get(path, [])]
        else:
            patterns = list(fallback_patterns)
        summary.entities = extract_entities_from_patterns(patterns)
        summary.actions = extract_actions_from_patterns(patterns)

        summaries.append(summary)

    return summaries


def rename_synthesized_summary(
    summary: DomainSummary, name: str, description: str = "", confidence: float | None = None
) -> DomainSummary:
    """
    Apply a language model's name to a summary synthesized from clustering.

    Summaries matched to candidates are returned unchanged, as is any
    summary when `name` normalizes to nothing. The renamed summary keeps
    needing review.
    """
    if summary.suggested_by != SYNTHESIZED_BY:
        return summary
    new_name = normalize_domain_name(name)
    if not new_name:
        return summary
    return replace(
        summary,
        name=new_name,
        description=description or summary.description,
        suggested_by=SuggestedBy.LLM.value,
        confidence=summary.confidence if confidence is None else confidence,
        needs_review=True,
        review_notes=[*summary.review_notes, f"Named by language model (heuristic name: {summary.name})"],
    )


def perform_clustering(
    candidates: list[DomainCandidate],
    graph: DependencyGraph | None,
    config: DiscoveryConfig | None = None,
    patterns_by_file: dict[str, list[DetectedPattern]] | None = None,
) -> tuple[list[DomainSummary], ClusteringResult]:
    """
    Cluster every candidate file and reconcile the clusters into summaries.

    Args:
        candidates: Merged candidates
        graph: Dependency graph for import-edge similarity
        config: Discovery configuration (cluster size, thresholds)
        patterns_by_file: Detector patterns per file

    Returns:
        Tuple of (summaries, raw clustering result)
    """
    config = config or DiscoveryConfig()
    files = list(dict.fromkeys(f for c in candidates for f in c.source_files))

    clusterer = FileClusterer(graph, config.min_cluster_size, config.similarity_threshold)
    result = clusterer.cluster(files)

    clusters = merge_clusters(map_candidates_to_clusters(result.clusters, candidates))
    result.clusters = clusters

    summaries = clusters_to_domain_summaries(
        clusters, candidates, patterns_by_file, config.confidence_threshold
    )
    return summaries, result
