"""
Domain Candidate Extractor
==========================

Proposes named domain candidates from detected patterns using four
independent heuristics (shared-state containers, reducers, custom hooks and
feature-style directories), then merges candidates that share a normalized
name and flags patterns that need a human decision.
"""

from __future__ import annotations

import logging
import math
import posixpath
import re
from collections import Counter

from ..dependency.priority import FEATURE_DIR_RE, infer_domain_from_path
from ..models.domain_models import (
    AmbiguousPattern,
    CandidateRelationship,
    DomainCandidate,
    ResolutionAction,
    SuggestedBy,
    SuggestedResolution,
    generate_id,
)
from ..models.graph_models import DependencyGraph
from ..models.pattern_models import DetectedPattern, FileAnalysis, PatternType

logger = logging.getLogger(__name__)

CONTEXT_CONFIDENCE = 0.9
REDUCER_CONFIDENCE = 0.8
HOOK_CONFIDENCE = 0.7
FILE_STRUCTURE_MAX_CONFIDENCE = 0.6

# Reducers with more actions than this are suggested for splitting
MAX_REDUCER_ACTIONS = 8

# Domain-agnostic hooks that never name a domain
GENERIC_HOOK_PATTERNS = [
    re.compile(r"^use(Effect|State|Ref|Memo|Callback|Reducer|Context|LayoutEffect)$", re.IGNORECASE),
    re.compile(r"^use(Debug|Deferred|Transition|Sync|Id|Imperative)$", re.IGNORECASE),
    re.compile(r"^use(Toggle|Boolean|Counter|Input|Form|Previous)$", re.IGNORECASE),
    re.compile(r"^use(Fetch|Async|Promise|Query|Mutation)$", re.IGNORECASE),
    re.compile(r"^use(Local|Session)Storage$", re.IGNORECASE),
    re.compile(r"^use(Window|Document|Event|Scroll|Resize)$", re.IGNORECASE),
]

_GENERIC_REDUCER_NAMES = {"", "use", "reducer", "root"}


def normalize_domain_name(name: str) -> str:
    """Lowercase, map punctuation to single hyphens and trim them."""
    normalized = re.sub(r"[^a-z0-9]+", "-", name.lower())
    return normalized.strip("-")


def infer_domain_name(name: str) -> str:
    """
    Derive a domain name from a pattern name.

    Strips a trailing Context, Provider or Reducer suffix and converts
    PascalCase/camelCase to lower kebab-case.

    Args:
        name: Pattern name such as "UserProfileContext" or "authReducer"

    Returns:
        Normalized domain name ("user-profile", "auth")
    """
    base = name
    for suffix in ("Context", "Provider", "Reducer"):
        if base.endswith(suffix):
            base = base[: -len(suffix)]

    kebab = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1-\2", base)
    kebab = re.sub(r"([a-z0-9])([A-Z])", r"\1-\2", kebab)
    return normalize_domain_name(kebab)


def is_generic_hook(name: str) -> bool:
    return any(pattern.match(name) for pattern in GENERIC_HOOK_PATTERNS)


def _unique(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))


class DomainCandidateExtractor:
    """Runs the candidate heuristics over a set of analyzed files."""

    def __init__(self, analyses: list[FileAnalysis]):
        """
        Initialize the extractor.

        Args:
            analyses: Detector output for every file in the project
        """
        self.analyses = analyses

    def extract(self, graph: DependencyGraph | None = None) -> list[DomainCandidate]:
        """
        Run all heuristics, merge by name and attach candidate relationships.

        Args:
            graph: Dependency graph used for import relationships

        Returns:
            Merged candidate list
        """
        candidates = [
            *self.extract_context_candidates(),
            *self.extract_reducer_candidates(),
            *self.extract_hook_candidates(),
            *self.extract_file_structure_candidates(),
        ]
        merged = merge_candidates(candidates)
        logger.info("Extracted %d domain candidates (%d before merge)", len(merged), len(candidates))

        if graph is not None:
            merged = calculate_candidate_relationships(merged, graph)
        return merged

    def extract_context_candidates(self) -> list[DomainCandidate]:
        """Candidates from shared-state containers with an enclosing provider."""
        candidates = []

        for analysis in self.analyses:
            for pattern in analysis.patterns:
                if pattern.type != PatternType.CONTEXT:
                    continue
                context_name = pattern.metadata.context_name
                if not pattern.metadata.has_provider or not context_name:
                    continue

                name = infer_domain_name(context_name)
                if not name:
                    continue

                users = [
                    other.path
                    for other in self.analyses
                    if other.path != analysis.path
                    and any(
                        p.type == PatternType.CONTEXT and p.metadata.context_name == context_name
                        for p in other.patterns
                    )
                ]

                candidates.append(
                    DomainCandidate(
                        id=generate_id(f"ctx-{name}"),
                        name=name,
                        suggested_by=SuggestedBy.CONTEXT,
                        source_files=_unique([analysis.path, *users]),
                        patterns=[pattern],
                        confidence=CONTEXT_CONFIDENCE,
                    )
                )

        return candidates

    def extract_reducer_candidates(self) -> list[DomainCandidate]:
        """Candidates from reducers; one per file."""
        candidates = []

        for analysis in self.analyses:
            reducer = next(
                (
                    p
                    for p in analysis.patterns
                    if p.type == PatternType.REDUCER and p.name != "initialState"
                ),
                None,
            )
            if reducer is None:
                continue

            name = infer_domain_name(reducer.name)
            if name in _GENERIC_REDUCER_NAMES:
                path_name = infer_domain_from_path(analysis.relative_path or analysis.path)
                stem = posixpath.splitext(posixpath.basename(analysis.path))[0]
                name = normalize_domain_name(path_name) if path_name else infer_domain_name(stem)
            if not name:
                logger.debug("No usable name for reducer %s in %s", reducer.name, analysis.path)
                continue

            reducers = [p for p in analysis.patterns if p.type == PatternType.REDUCER]
            candidates.append(
                DomainCandidate(
                    id=generate_id(f"reducer-{name}"),
                    name=name,
                    suggested_by=SuggestedBy.REDUCER,
                    source_files=[analysis.path],
                    patterns=reducers,
                    confidence=REDUCER_CONFIDENCE,
                )
            )

        return candidates

    def extract_hook_candidates(self) -> list[DomainCandidate]:
        """Candidates from custom hooks, skipping generic utility hooks."""
        candidates = []

        for analysis in self.analyses:
            for pattern in analysis.patterns:
                if pattern.type != PatternType.HOOK or not pattern.metadata.is_custom_hook:
                    continue
                if is_generic_hook(pattern.name):
                    logger.debug("Skipping generic hook %s", pattern.name)
                    continue

                hook_name = pattern.name[3:] if pattern.name.startswith("use") else pattern.name
                name = infer_domain_name(hook_name)
                if not name:
                    continue

                candidates.append(
                    DomainCandidate(
                        id=generate_id(f"hook-{name}"),
                        name=name,
                        suggested_by=SuggestedBy.HOOK,
                        source_files=[analysis.path],
                        patterns=[pattern],
                        confidence=HOOK_CONFIDENCE,
                    )
                )

        return candidates

    def extract_file_structure_candidates(self) -> list[DomainCandidate]:
        """One candidate per feature-style directory holding at least two files."""
        groups: dict[str, list[FileAnalysis]] = {}
        names: dict[str, str] = {}

        for analysis in self.analyses:
            rel = (analysis.relative_path or analysis.path).replace("\\", "/")
            match = FEATURE_DIR_RE.search(rel)
            if not match:
                continue
            directory = rel[: match.end(1)]
            groups.setdefault(directory, []).append(analysis)
            names[directory] = match.group(1)

        candidates = []
        for directory, members in groups.items():
            if len(members) < 2:
                continue
            name = normalize_domain_name(names[directory])
            if not name:
                continue

            average = sum(m.confidence for m in members) / len(members)
            candidates.append(
                DomainCandidate(
                    id=generate_id(f"dir-{name}"),
                    name=name,
                    suggested_by=SuggestedBy.FILE_STRUCTURE,
                    source_files=[m.path for m in members],
                    patterns=[p for m in members for p in m.patterns],
                    confidence=min(FILE_STRUCTURE_MAX_CONFIDENCE, average),
                )
            )

        return candidates


def merge_candidates(candidates: list[DomainCandidate]) -> list[DomainCandidate]:
    """
    Merge candidates whose normalized names match.

    The highest-confidence member (first on ties) supplies the id and
    provenance. Files are unioned in order, patterns are deduplicated by
    (type, name, line) and confidence is the maximum. Merging an already
    merged list returns an equal list.

    Args:
        candidates: Raw heuristic output

    Returns:
        One candidate per normalized name, in first-seen order
    """
    groups: dict[str, list[DomainCandidate]] = {}
    for candidate in candidates:
        groups.setdefault(normalize_domain_name(candidate.name), []).append(candidate)

    merged = []
    for name, members in groups.items():
        if len(members) == 1:
            only = members[0]
            merged.append(
                DomainCandidate(
                    id=only.id,
                    name=name,
                    suggested_by=only.suggested_by,
                    source_files=list(only.source_files),
                    patterns=list(only.patterns),
                    confidence=only.confidence,
                    relationships=list(only.relationships),
                )
            )
            continue

        best = max(members, key=lambda c: c.confidence)

        seen_patterns: set[tuple[str, str, int]] = set()
        patterns: list[DetectedPattern] = []
        for member in members:
            for pattern in member.patterns:
                key = (pattern.type.value, pattern.name, pattern.location.line)
                if key not in seen_patterns:
                    seen_patterns.add(key)
                    patterns.append(pattern)

        seen_relationships: set[tuple[str, str]] = set()
        relationships: list[CandidateRelationship] = []
        for member in members:
            for rel in member.relationships:
                if (rel.target_id, rel.type) not in seen_relationships:
                    seen_relationships.add((rel.target_id, rel.type))
                    relationships.append(rel)

        merged.append(
            DomainCandidate(
                id=best.id,
                name=name,
                suggested_by=best.suggested_by,
                source_files=_unique([f for m in members for f in m.source_files]),
                patterns=patterns,
                confidence=best.confidence,
                relationships=relationships,
            )
        )

    return merged


def calculate_candidate_relationships(
    candidates: list[DomainCandidate], graph: DependencyGraph
) -> list[DomainCandidate]:
    """
    Attach import and shared-state relationships between candidates.

    Returns:
        New candidate list; inputs are not modified
    """
    file_sets = {c.id: set(c.source_files) for c in candidates}
    context_names = {
        c.id: {
            p.metadata.context_name
            for p in c.patterns
            if p.type == PatternType.CONTEXT and p.metadata.context_name
        }
        for c in candidates
    }

    result = []
    for candidate in candidates:
        relationships = []
        for other in candidates:
            if other.id == candidate.id:
                continue
            own_files, other_files = file_sets[candidate.id], file_sets[other.id]
            if any(e.source in own_files and e.target in other_files for e in graph.edges):
                relationships.append(CandidateRelationship(target_id=other.id, type="imports", strength=0.5))
            if context_names[candidate.id] & context_names[other.id]:
                relationships.append(
                    CandidateRelationship(target_id=other.id, type="shared_state", strength=0.8)
                )

        result.append(
            DomainCandidate(
                id=candidate.id,
                name=candidate.name,
                suggested_by=candidate.suggested_by,
                source_files=list(candidate.source_files),
                patterns=list(candidate.patterns),
                confidence=candidate.confidence,
                relationships=relationships,
            )
        )

    return result


def detect_ambiguous_patterns(
    analyses: list[FileAnalysis],
    candidates: list[DomainCandidate],
    confidence_threshold: float = 0.7,
) -> list[AmbiguousPattern]:
    """
    Flag patterns and files that need a human decision.

    A pattern is ambiguous when its confidence is below the threshold, when
    the detector marked it for review, when its file is claimed by two or
    more candidates, or when it is a reducer handling too many actions.
    Files claimed by several candidates but holding no patterns are
    reported once at file level.

    Args:
        analyses: Detector output
        candidates: Merged candidates
        confidence_threshold: Minimum pattern confidence

    Returns:
        AmbiguousPattern records with suggested resolutions
    """
    claims: dict[str, list[DomainCandidate]] = {}
    for candidate in candidates:
        for path in _unique(candidate.source_files):
            claims.setdefault(path, []).append(candidate)

    findings = []
    for analysis in analyses:
        claimants = claims.get(analysis.path, [])
        ownership_reason = None
        if len(claimants) >= 2:
            ownership_reason = (
                f"File claimed by {len(claimants)} domains: {', '.join(c.name for c in claimants)}"
            )

        if not analysis.patterns and ownership_reason:
            findings.append(
                AmbiguousPattern(
                    id=generate_id("ambig"),
                    file=analysis.path,
                    reasons=[ownership_reason],
                    candidate_ids=[c.id for c in claimants],
                    suggested_resolutions=_ambiguity_resolutions(None, claimants),
                )
            )
            continue

        for pattern in analysis.patterns:
            reasons = []
            if pattern.confidence < confidence_threshold:
                reasons.append(f"Low confidence: {pattern.confidence:.2f}")
            if pattern.needs_review:
                reasons.append("Pattern explicitly marked for review")
            if ownership_reason:
                reasons.append(ownership_reason)
            if pattern.type == PatternType.REDUCER and len(pattern.metadata.actions) > MAX_REDUCER_ACTIONS:
                reasons.append(
                    f"Reducer handles {len(pattern.metadata.actions)} actions and may span several domains"
                )

            if not reasons:
                continue

            findings.append(
                AmbiguousPattern(
                    id=generate_id("ambig"),
                    file=analysis.path,
                    pattern=pattern,
                    reasons=reasons,
                    candidate_ids=[c.id for c in claimants],
                    suggested_resolutions=_ambiguity_resolutions(pattern, claimants),
                )
            )

    if findings:
        logger.info("Flagged %d ambiguous patterns for review", len(findings))
    return findings


def _ambiguity_resolutions(
    pattern: DetectedPattern | None, claimants: list[DomainCandidate]
) -> list[SuggestedResolution]:
    resolutions = [
        SuggestedResolution(
            id=generate_id("res"),
            action=ResolutionAction.CLASSIFY_AS,
            label=f"Assign to {candidate.name}",
            params={"domain_id": candidate.id, "domain_name": candidate.name},
            confidence=candidate.confidence,
        )
        for candidate in claimants
    ]

    if pattern is not None and pattern.type == PatternType.REDUCER:
        action_count = len(pattern.metadata.actions)
        if action_count > MAX_REDUCER_ACTIONS:
            parts = math.ceil(action_count / 5)
            resolutions.append(
                SuggestedResolution(
                    id=generate_id("res"),
                    action=ResolutionAction.SPLIT,
                    label=f"Split into {parts} smaller domains",
                    params={"parts": parts},
                    confidence=0.5,
                )
            )

    resolutions.append(
        SuggestedResolution(
            id=generate_id("res"),
            action=ResolutionAction.SKIP,
            label="Skip this pattern",
            params={},
            confidence=0.3,
        )
    )
    return resolutions


def generate_domain_description(candidate: DomainCandidate) -> str:
    """Human-readable one-line description of a candidate."""
    counts = Counter(p.type.value for p in candidate.patterns)
    breakdown = ", ".join(f"{count} {kind}" for kind, count in counts.most_common())
    title = candidate.name.replace("-", " ").title()
    description = (
        f"{title} domain suggested by {candidate.suggested_by.value.replace('_', ' ')} analysis, "
        f"covering {len(candidate.source_files)} file(s)"
    )
    if breakdown:
        description += f" ({breakdown})"
    return description
