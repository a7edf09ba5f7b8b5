"""
Domain Discovery Pipeline
=========================

Runs the discovery phases in order over detector output:

    graph -> priority -> candidates -> clustering -> relationships
          -> conflicts -> proposals -> validation

Data and state are threaded through pure session transforms. A snapshot is
handed to the optional listener after every phase (and after every domain
in the proposals phase), so a host can persist progress and surface review
requests.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from .config import DiscoveryConfig
from .dependency import DependencyGraphBuilder, create_file_tasks
from .domains.candidate_extractor import DomainCandidateExtractor, detect_ambiguous_patterns
from .domains.clustering import SYNTHESIZED_BY, perform_clustering, rename_synthesized_summary
from .domains.conflicts import (
    detect_boundary_conflicts,
    detect_naming_conflicts,
    detect_ownership_conflicts,
)
from .domains.relationship_analyzer import analyze_all_relationships, analyze_domain_boundaries
from .models.domain_models import AmbiguousPattern, DomainCandidate, DomainSummary
from .models.graph_models import DependencyGraph, FileTask
from .models.pattern_models import DetectedPattern, FileAnalysis
from .models.session_models import (
    DerivedMetrics,
    DiscoveryData,
    DiscoverySnapshot,
    DiscoveryState,
    ReviewKind,
    ReviewRequest,
)
from .providers import create_provider
from .providers.base import LLMProvider
from .schema.llm_enrichment import SchemaEnricher
from .schema.proposal import validate_schema_proposal
from .session import (
    add_ambiguous_patterns,
    add_conflicts,
    add_domain,
    add_error,
    add_relationships,
    add_schema_proposal,
    calculate_derived,
    complete_clustering,
    create_initial_data,
    create_initial_state,
    create_snapshot,
    increment_attempts,
    increment_llm_calls,
    is_discovery_complete,
    set_last_processed_domain,
    start_clustering,
    update_processing_rate,
    update_schema_proposal,
)

logger = logging.getLogger(__name__)

PHASES = (
    "graph",
    "priority",
    "candidates",
    "clustering",
    "relationships",
    "conflicts",
    "proposals",
    "validation",
)

SnapshotListener = Callable[[str, DiscoverySnapshot], None]


@dataclass
class DiscoveryResult:
    """Everything a discovery run produced."""

    graph: DependencyGraph
    file_tasks: list[FileTask]
    candidates: list[DomainCandidate]
    ambiguous_patterns: list[AmbiguousPattern]
    data: DiscoveryData
    state: DiscoveryState
    derived: DerivedMetrics
    review_requests: list[ReviewRequest] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return is_discovery_complete(self.data, self.state)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "graph": self.graph.to_dict(),
            "file_tasks": [t.to_dict() for t in self.file_tasks],
            "candidates": [c.to_dict() for c in self.candidates],
            "ambiguous_patterns": [a.to_dict() for a in self.ambiguous_patterns],
            "data": self.data.to_dict(),
            "state": self.state.to_dict(),
            "derived": self.derived.to_dict(),
            "review_requests": [r.to_dict() for r in self.review_requests],
        }


def build_review_requests(data: DiscoveryData, state: DiscoveryState) -> list[ReviewRequest]:
    """
    Collect every decision awaiting a human.

    Ambiguous patterns come first, then proposals flagged for review, then
    open conflicts.
    """
    requests = [
        ReviewRequest(
            id=f"review-{finding.id}",
            kind=ReviewKind.AMBIGUOUS_PATTERN,
            subject_id=finding.id,
            description=finding.description,
            suggested_resolutions=list(finding.suggested_resolutions),
            patterns=[finding.pattern] if finding.pattern else [],
        )
        for finding in state.ambiguous_patterns
    ]

    for domain_id, proposal in state.schema_proposals.items():
        if not proposal.needs_review:
            continue
        notes = "; ".join(proposal.review_notes) or f"confidence {proposal.confidence:.2f}"
        requests.append(
            ReviewRequest(
                id=f"review-{proposal.id}",
                kind=ReviewKind.SCHEMA_REVIEW,
                subject_id=domain_id,
                description=f"Schema proposal for {proposal.domain_name} needs review: {notes}",
            )
        )

    for conflict in data.conflicts:
        requests.append(
            ReviewRequest(
                id=f"review-{conflict.id}",
                kind=ReviewKind.CONFLICT,
                subject_id=conflict.id,
                description=conflict.description,
                suggested_resolutions=list(conflict.suggested_resolutions),
            )
        )

    return requests


class DomainDiscoveryPipeline:
    """
    Orchestrates one discovery run.

    A pipeline instance may be reused for several runs, but never for two
    concurrent runs of the same session.
    """

    def __init__(
        self,
        config: DiscoveryConfig | None = None,
        llm_provider: LLMProvider | None = None,
        snapshot_listener: SnapshotListener | None = None,
    ):
        """
        Initialize the pipeline.

        Args:
            config: Discovery thresholds and switches
            llm_provider: Optional language model used to enrich proposals
            snapshot_listener: Called with (phase, snapshot) after each step
        """
        self.config = config or DiscoveryConfig()
        self.llm_provider = llm_provider
        self.snapshot_listener = snapshot_listener
        self._version = 0
        self._owns_provider = False

    @classmethod
    def from_env(cls, snapshot_listener: SnapshotListener | None = None) -> "DomainDiscoveryPipeline":
        """Build a pipeline from DOMAIN_DISCOVERY_* environment variables."""
        config = DiscoveryConfig.from_env()
        provider = create_provider() if config.enable_llm_enrichment else None
        pipeline = cls(config=config, llm_provider=provider, snapshot_listener=snapshot_listener)
        pipeline._owns_provider = provider is not None
        return pipeline

    async def __aenter__(self) -> "DomainDiscoveryPipeline":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.close()

    async def close(self) -> None:
        """Close the LLM provider if this pipeline created it."""
        if self._owns_provider and self.llm_provider is not None:
            await self.llm_provider.close()  # type: ignore[attr-defined]

    def _emit(self, phase: str, data: DiscoveryData, state: DiscoveryState) -> None:
        self._version += 1
        if self.snapshot_listener is None:
            return
        self.snapshot_listener(phase, create_snapshot(data, state, phase, self._version))

    async def run(self, analyses: list[FileAnalysis], session_id: str | None = None) -> DiscoveryResult:
        """
        Run every phase over the detector output.

        Args:
            analyses: One FileAnalysis per file
            session_id: Session identifier (generated when omitted)

        Returns:
            DiscoveryResult with final data, state and review requests

        Raises:
            Exception: Any failure escaping a phase is recorded in the state
                errors, reported in a "failed" snapshot and re-raised
        """
        self._version = 0
        data = create_initial_data(session_id)
        state = increment_attempts(create_initial_state())
        patterns_by_file: dict[str, list[DetectedPattern]] = {a.path: a.patterns for a in analyses}
        phase = PHASES[0]

        logger.info("Starting domain discovery for %d files (session %s)", len(analyses), data.session_id)

        try:
            graph = DependencyGraphBuilder().build(analyses)
            self._emit(phase, data, state)

            phase = "priority"
            file_tasks = create_file_tasks(analyses, graph)
            self._emit(phase, data, state)

            phase = "candidates"
            candidates = DomainCandidateExtractor(analyses).extract(graph)
            ambiguous = detect_ambiguous_patterns(analyses, candidates, self.config.ambiguity_threshold)
            state = add_ambiguous_patterns(state, ambiguous)
            self._emit(phase, data, state)

            phase = "clustering"
            state = start_clustering(state)
            summaries, clustering = perform_clustering(candidates, graph, self.config, patterns_by_file)
            summaries, state = await self._name_synthesized_domains(summaries, state, patterns_by_file)
            for summary in summaries:
                data = add_domain(data, summary)
            state = complete_clustering(state, len(clustering.clusters), len(clustering.noise))
            logger.info(
                "Clustering produced %d domains (%d noise files)", len(summaries), len(clustering.noise)
            )
            self._emit(phase, data, state)

            phase = "relationships"
            domains = analyze_domain_boundaries(list(data.domains.values()), graph)
            for domain in domains:
                data = add_domain(data, domain)
            analysis = analyze_all_relationships(domains, graph, self.config)
            state = add_relationships(state, analysis.relationships)
            data = add_conflicts(data, detect_boundary_conflicts(domains, analysis))
            self._emit(phase, data, state)

            phase = "conflicts"
            domains = list(data.domains.values())
            data = add_conflicts(data, detect_ownership_conflicts(domains))
            data = add_conflicts(data, detect_naming_conflicts(domains))
            if data.conflicts:
                logger.info("%d conflicts need review", len(data.conflicts))
            self._emit(phase, data, state)

            phase = "proposals"
            data, state = await self._generate_proposals(data, state, patterns_by_file)

            phase = "validation"
            state = self._validate_proposals(state)
            self._emit(phase, data, state)

        except Exception as e:
            state = add_error(state, f"{phase}: {e}")
            logger.exception("Domain discovery failed during %s phase", phase)
            self._emit("failed", data, state)
            raise

        requests = build_review_requests(data, state)
        derived = calculate_derived(data, state)
        logger.info(
            "Domain discovery finished: %d domains, %d proposals ready, %d review requests",
            derived.domains_total,
            derived.proposals_ready,
            len(requests),
        )

        return DiscoveryResult(
            graph=graph,
            file_tasks=file_tasks,
            candidates=candidates,
            ambiguous_patterns=ambiguous,
            data=data,
            state=state,
            derived=derived,
            review_requests=requests,
        )

    async def _name_synthesized_domains(
        self,
        summaries: list[DomainSummary],
        state: DiscoveryState,
        patterns_by_file: dict[str, list[DetectedPattern]],
    ) -> tuple[list[DomainSummary], DiscoveryState]:
        """Let the language model name clusters no candidate explained, one at a time."""
        enricher = SchemaEnricher(self.llm_provider, self.config)
        if not enricher.enabled:
            return summaries, state

        named = []
        for summary in summaries:
            if summary.suggested_by == SYNTHESIZED_BY:
                patterns = [p for path in summary.source_files for p in patterns_by_file.get(path, [])]
                identification = await enricher.identify_domain_with_llm(patterns, summary.source_files)
                if identification is not None:
                    logger.debug("LLM named cluster %s as %s", summary.id, identification.name)
                    summary = rename_synthesized_summary(
                        summary, identification.name, identification.description, identification.confidence
                    )
            named.append(summary)

        if enricher.llm_call_count:
            state = increment_llm_calls(state, enricher.llm_call_count)
        return named, state

    async def _generate_proposals(
        self,
        data: DiscoveryData,
        state: DiscoveryState,
        patterns_by_file: dict[str, list[DetectedPattern]],
    ) -> tuple[DiscoveryData, DiscoveryState]:
        """One proposal per domain, awaited strictly in domain order."""
        enricher = SchemaEnricher(self.llm_provider, self.config)
        relationships = state.relationships.all()
        started = time.monotonic()

        for processed, domain in enumerate(list(data.domains.values()), start=1):
            patterns = [p for path in domain.source_files for p in patterns_by_file.get(path, [])]
            calls_before = enricher.llm_call_count

            proposal = await enricher.generate_hybrid_proposal(
                domain, patterns, [rel for rel in relationships if rel.involves(domain.id)]
            )

            state = add_schema_proposal(state, proposal)
            if enricher.llm_call_count > calls_before:
                state = increment_llm_calls(state, enricher.llm_call_count - calls_before)
            state = set_last_processed_domain(state, domain.id)
            state = update_processing_rate(state, processed, time.monotonic() - started)
            self._emit("proposals", data, state)

        return data, state

    def _validate_proposals(self, state: DiscoveryState) -> DiscoveryState:
        for domain_id, proposal in list(state.schema_proposals.items()):
            validation = validate_schema_proposal(proposal)
            if validation.valid:
                continue
            logger.debug("Proposal for %s failed validation: %s", proposal.domain_name, validation.errors)
            state = update_schema_proposal(
                state,
                domain_id,
                needs_review=True,
                review_notes=[*proposal.review_notes, *(f"Validation: {e}" for e in validation.errors)],
            )
        return state

    def run_sync(self, analyses: list[FileAnalysis], session_id: str | None = None) -> DiscoveryResult:
        """Synchronous wrapper around run() for non-async hosts."""
        return asyncio.run(self.run(analyses, session_id))
