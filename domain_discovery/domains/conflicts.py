"""
Domain Conflicts
================

Detection of ownership, naming and boundary conflicts between domain
summaries, and the reshaping operations a reviewer's resolution triggers
(assign, rename, merge, split, keep).
"""

from __future__ import annotations

import logging
import posixpath
from collections import Counter
from dataclasses import replace

from ..models.domain_models import (
    ConflictType,
    DomainConflict,
    DomainSummary,
    ResolutionAction,
    SuggestedResolution,
    generate_id,
)
from ..models.schema_models import ValidationResult
from ..models.session_models import DiscoveryData
from ..schema.extraction import deduplicate_actions, deduplicate_entities
from ..session import add_domain, remove_domain, resolve_conflict
from .candidate_extractor import infer_domain_name, normalize_domain_name
from .relationship_analyzer import RelationshipAnalysis

logger = logging.getLogger(__name__)

# Directory names that say nothing about the domain
GENERIC_SEGMENTS = {
    "src",
    "components",
    "features",
    "domains",
    "modules",
    "pages",
    "views",
    "screens",
    "hooks",
    "contexts",
    "store",
}


# =============================================================================
# Conflict builders
# =============================================================================


def create_ownership_conflict(
    file: str,
    domain_ids: list[str],
    suggested_resolutions: list[SuggestedResolution] | None = None,
) -> DomainConflict:
    return DomainConflict(
        id=f"conflict-ownership-{file}",
        type=ConflictType.OWNERSHIP,
        domains=list(domain_ids),
        file=file,
        description=f'File "{file}" is claimed by multiple domains',
        suggested_resolutions=suggested_resolutions or [],
    )


def create_naming_conflict(
    domain_ids: list[str],
    suggested_resolutions: list[SuggestedResolution] | None = None,
) -> DomainConflict:
    return DomainConflict(
        id=f"conflict-naming-{'-'.join(domain_ids)}",
        type=ConflictType.NAMING,
        domains=list(domain_ids),
        description="Multiple domains have similar names",
        suggested_resolutions=suggested_resolutions or [],
    )


def create_boundary_conflict(
    domain_ids: list[str],
    description: str,
    suggested_resolutions: list[SuggestedResolution] | None = None,
) -> DomainConflict:
    return DomainConflict(
        id=f"conflict-boundary-{'-'.join(domain_ids)}",
        type=ConflictType.BOUNDARY,
        domains=list(domain_ids),
        description=description,
        suggested_resolutions=suggested_resolutions or [],
    )


# =============================================================================
# Detection
# =============================================================================


def _merge_resolution(domains: list[DomainSummary], confidence: float = 0.5) -> SuggestedResolution:
    names = [d.name for d in domains]
    return SuggestedResolution(
        id=generate_id("res"),
        action=ResolutionAction.MERGE,
        label=f"Merge {', '.join(names)}",
        params={"domain_ids": [d.id for d in domains], "new_name": names[0]},
        confidence=confidence,
    )


def _keep_resolution() -> SuggestedResolution:
    return SuggestedResolution(
        id=generate_id("res"),
        action=ResolutionAction.KEEP,
        label="Keep domains separate",
        params={},
        confidence=0.4,
    )


def detect_ownership_conflicts(domains: list[DomainSummary]) -> list[DomainConflict]:
    """One conflict per file listed by more than one domain."""
    owners: dict[str, list[DomainSummary]] = {}
    for domain in domains:
        for path in domain.source_files:
            claimants = owners.setdefault(path, [])
            if domain not in claimants:
                claimants.append(domain)

    conflicts = []
    for path, claimants in owners.items():
        if len(claimants) < 2:
            continue
        resolutions = [
            SuggestedResolution(
                id=generate_id("res"),
                action=ResolutionAction.ASSIGN,
                label=f"Assign {path} to {domain.name}",
                params={"domain_id": domain.id, "file": path},
                confidence=domain.confidence,
            )
            for domain in claimants
        ]
        conflicts.append(create_ownership_conflict(path, [d.id for d in claimants], resolutions))
    return conflicts


def detect_naming_conflicts(domains: list[DomainSummary]) -> list[DomainConflict]:
    """One conflict per group of domains sharing a normalized name."""
    groups: dict[str, list[DomainSummary]] = {}
    for domain in domains:
        groups.setdefault(normalize_domain_name(domain.name), []).append(domain)

    conflicts = []
    for members in groups.values():
        if len(members) < 2:
            continue
        resolutions = []
        for domain in members:
            suggested = suggest_domain_name(domain)
            if suggested == domain.name:
                continue
            resolutions.append(
                SuggestedResolution(
                    id=generate_id("res"),
                    action=ResolutionAction.RENAME,
                    label=f"Rename {domain.id} to {suggested}",
                    params={"domain_id": domain.id, "new_name": suggested},
                    confidence=0.6,
                )
            )
        resolutions.append(_merge_resolution(members, confidence=0.7))
        conflicts.append(create_naming_conflict([d.id for d in members], resolutions))
    return conflicts


def detect_boundary_conflicts(
    domains: list[DomainSummary], analysis: RelationshipAnalysis
) -> list[DomainConflict]:
    """
    Flag strongly coupled domain pairs and dependency cycles.

    Args:
        domains: Current domain summaries
        analysis: Relationship analysis (strong couplings and cycles)

    Returns:
        Boundary conflicts, couplings first
    """
    by_id = {d.id: d for d in domains}
    conflicts = []

    for rel in analysis.strong_couplings:
        pair = [by_id[i] for i in (rel.from_domain, rel.to_domain) if i in by_id]
        if len(pair) < 2:
            continue
        conflicts.append(
            create_boundary_conflict(
                [d.id for d in pair],
                f"{pair[0].name} and {pair[1].name} are strongly coupled ({rel.strength:.2f})",
                [_merge_resolution(pair), _keep_resolution()],
            )
        )

    for cycle in analysis.cycles:
        members = [by_id[i] for i in cycle if i in by_id]
        if len(members) < 2:
            continue
        path = " -> ".join(d.name for d in [*members, members[0]])
        conflicts.append(
            create_boundary_conflict(
                [d.id for d in members],
                f"Cyclic dependency: {path}",
                [_merge_resolution(members, confidence=0.4), _keep_resolution()],
            )
        )

    return conflicts


def detect_all_conflicts(
    domains: list[DomainSummary], analysis: RelationshipAnalysis | None = None
) -> list[DomainConflict]:
    conflicts = detect_ownership_conflicts(domains) + detect_naming_conflicts(domains)
    if analysis is not None:
        conflicts += detect_boundary_conflicts(domains, analysis)
    if conflicts:
        logger.info("Detected %d domain conflicts", len(conflicts))
    return conflicts


# =============================================================================
# Naming
# =============================================================================


def suggest_domain_name(domain: DomainSummary) -> str:
    """
    Suggest a distinguishing name for a domain.

    Uses the most frequent non-generic directory segment of its files, then
    the first entity name, then falls back to the current name.
    """
    segments: Counter[str] = Counter()
    for path in domain.source_files:
        for segment in posixpath.dirname(path).split("/"):
            if segment and segment.lower() not in GENERIC_SEGMENTS:
                segments[segment] += 1

    if segments:
        name = normalize_domain_name(segments.most_common(1)[0][0])
        if name:
            return name

    for entity in domain.entities:
        name = infer_domain_name(entity.name)
        if name:
            return name

    return domain.name


# =============================================================================
# Reshaping
# =============================================================================


def _invalid(*errors: str) -> ValidationResult:
    return ValidationResult(valid=False, errors=list(errors))


def _remap_conflicts(data: DiscoveryData, old_ids: set[str], new_id: str) -> DiscoveryData:
    """Point conflicts at a merged domain, dropping those left with one party."""
    conflicts = []
    for conflict in data.conflicts:
        if not old_ids.intersection(conflict.domains):
            conflicts.append(conflict)
            continue
        remapped: list[str] = []
        for domain_id in conflict.domains:
            target = new_id if domain_id in old_ids else domain_id
            if target not in remapped:
                remapped.append(target)
        if len(remapped) > 1:
            conflicts.append(replace(conflict, domains=remapped))
    return replace(data, conflicts=conflicts)


def merge_domains(
    data: DiscoveryData, domain_ids: list[str], new_name: str | None = None
) -> tuple[DiscoveryData, ValidationResult]:
    """
    Merge two or more domains into one.

    Args:
        data: Current data
        domain_ids: Domains to merge (order decides which name is kept by default)
        new_name: Name of the merged domain

    Returns:
        (new data, validation); data is unchanged when validation fails
    """
    ids = list(dict.fromkeys(domain_ids))
    missing = [i for i in ids if i not in data.domains]
    if missing:
        return data, _invalid(f"Unknown domain(s): {', '.join(missing)}")
    if len(ids) < 2:
        return data, _invalid("Merging needs at least two domains")

    members = [data.domains[i] for i in ids]
    name = normalize_domain_name(new_name or members[0].name) or members[0].name

    files: list[str] = []
    for member in members:
        files.extend(f for f in member.source_files if f not in files)

    merged = DomainSummary(
        id=generate_id("domain"),
        name=name,
        description=f"Merged domain combining {', '.join(m.name for m in members)}",
        source_files=files,
        entities=deduplicate_entities([e for m in members for e in m.entities]),
        actions=deduplicate_actions([a for m in members for a in m.actions]),
        suggested_by="merge",
        confidence=sum(m.confidence for m in members) / len(members),
        needs_review=True,
        review_notes=[f"Merged from: {', '.join(m.name for m in members)}"],
    )

    for domain_id in ids:
        data = remove_domain(data, domain_id)
    data = add_domain(data, merged)
    data = _remap_conflicts(data, set(ids), merged.id)

    logger.info("Merged %s into %s", ", ".join(ids), merged.id)
    return data, ValidationResult()


def split_domain(
    data: DiscoveryData, domain_id: str, files: list[str], new_name: str
) -> tuple[DiscoveryData, ValidationResult]:
    """Move some of a domain's files into a new domain that needs review."""
    domain = data.domains.get(domain_id)
    if domain is None:
        return data, _invalid(f"Unknown domain: {domain_id}")

    moved = [f for f in dict.fromkeys(files) if f in domain.source_files]
    if not moved:
        return data, _invalid(f"None of the files belong to {domain_id}")
    if len(moved) == len(domain.source_files):
        return data, _invalid("Split must leave at least one file behind")

    name = normalize_domain_name(new_name or "")
    if not name:
        return data, _invalid("Split needs a new domain name")

    data = add_domain(
        data,
        replace(domain, source_files=[f for f in domain.source_files if f not in moved]),
    )
    data = add_domain(
        data,
        DomainSummary(
            id=generate_id("domain"),
            name=name,
            description=f"Split from {domain.name}",
            source_files=moved,
            suggested_by="split",
            confidence=domain.confidence,
            needs_review=True,
            review_notes=[f"Split from: {domain.name}"],
        ),
    )
    return data, ValidationResult()


def rename_domain(data: DiscoveryData, domain_id: str, new_name: str) -> tuple[DiscoveryData, ValidationResult]:
    domain = data.domains.get(domain_id)
    if domain is None:
        return data, _invalid(f"Unknown domain: {domain_id}")
    name = normalize_domain_name(new_name or "")
    if not name:
        return data, _invalid("Rename needs a non-empty name")
    return add_domain(data, replace(domain, name=name)), ValidationResult()


def assign_file(
    data: DiscoveryData, conflict: DomainConflict, domain_id: str, file: str | None
) -> tuple[DiscoveryData, ValidationResult]:
    """Keep a contested file in one domain and drop it from the other claimants."""
    if not file:
        return data, _invalid("Assign needs a file")
    if domain_id not in conflict.domains or domain_id not in data.domains:
        return data, _invalid(f"{domain_id} is not a party to {conflict.id}")
    if file not in data.domains[domain_id].source_files:
        return data, _invalid(f"{file} does not belong to {domain_id}")

    for other_id in conflict.domains:
        other = data.domains.get(other_id)
        if other is None or other_id == domain_id:
            continue
        data = add_domain(data, replace(other, source_files=[f for f in other.source_files if f != file]))
    return data, ValidationResult()


def apply_conflict_resolution(
    data: DiscoveryData, conflict_id: str, resolution: SuggestedResolution
) -> tuple[DiscoveryData, ValidationResult]:
    """
    Apply a reviewer's resolution to a conflict.

    Args:
        data: Current data
        conflict_id: Conflict being resolved
        resolution: Chosen resolution; its params drive the reshaping

    Returns:
        (new data, validation). On success the conflict record is removed;
        on failure the original data is returned unchanged.
    """
    conflict = data.get_conflict(conflict_id)
    if conflict is None:
        return data, _invalid(f"Unknown conflict: {conflict_id}")

    params = resolution.params
    action = resolution.action

    if action == ResolutionAction.ASSIGN:
        result = assign_file(data, conflict, params.get("domain_id", ""), params.get("file", conflict.file))
    elif action == ResolutionAction.RENAME:
        result = rename_domain(data, params.get("domain_id", ""), params.get("new_name", ""))
    elif action == ResolutionAction.MERGE:
        result = merge_domains(data, params.get("domain_ids") or conflict.domains, params.get("new_name"))
    elif action == ResolutionAction.SPLIT:
        result = split_domain(
            data, params.get("domain_id", ""), params.get("files", []), params.get("new_name", "")
        )
    elif action in (ResolutionAction.KEEP, ResolutionAction.SKIP):
        result = (data, ValidationResult())
    else:
        return data, _invalid(f"Action {action.value} does not apply to conflicts")

    new_data, validation = result
    if not validation.valid:
        logger.warning("Could not resolve %s: %s", conflict_id, "; ".join(validation.errors))
        return data, validation

    return resolve_conflict(new_data, conflict_id), validation
