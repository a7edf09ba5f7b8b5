"""
Tests for Discovery Session Transforms
=====================================

Tests for:
- immutability of every transform
- relationship bucketing and conflict de-duplication
- derived metrics, completion and review checks
"""

import pytest

from domain_discovery.models import (
    AmbiguousPattern,
    ClusteringStatus,
    DomainConflict,
    DomainRelationship,
    RelationshipType,
    SchemaProposal,
)
from domain_discovery.session import (
    add_ambiguous_patterns,
    add_conflict,
    add_domain,
    add_error,
    add_relationship,
    add_relationships,
    add_schema_proposal,
    calculate_derived,
    clear_relationships,
    complete_clustering,
    create_initial_data,
    create_initial_state,
    create_snapshot,
    domain_needs_review,
    increment_attempts,
    increment_llm_calls,
    is_discovery_complete,
    mark_proposal_reviewed,
    needs_review,
    remove_domain,
    remove_schema_proposal,
    resolve_conflict,
    set_last_processed_domain,
    start_clustering,
    update_domain,
    update_processing_rate,
)


@pytest.fixture
def data(make_domain):
    result = create_initial_data("session-1")
    result = add_domain(result, make_domain("d1", confidence=0.9))
    return add_domain(result, make_domain("d2", confidence=0.5))


def _proposal(domain_id, needs_review=False):
    return SchemaProposal(id=f"p-{domain_id}", domain_id=domain_id, domain_name=domain_id, needs_review=needs_review)


# =============================================================================
# DATA TRANSFORMS
# =============================================================================


class TestDataTransforms:
    """Tests for domain and conflict transforms."""

    def test_initial_data(self):
        assert create_initial_data("abc").session_id == "abc"
        assert create_initial_data().session_id.startswith("session-")

    def test_add_domain_does_not_mutate(self, make_domain):
        empty = create_initial_data("s")

        added = add_domain(empty, make_domain("d1"))

        assert empty.domains == {}
        assert list(added.domains) == ["d1"]

    def test_update_domain(self, data):
        updated = update_domain(data, "d1", name="billing")

        assert updated.domains["d1"].name == "billing"
        assert data.domains["d1"].name == "d1"
        assert update_domain(data, "ghost", name="x") is data

    def test_remove_domain(self, data):
        assert list(remove_domain(data, "d1").domains) == ["d2"]
        assert remove_domain(data, "ghost") is data

    def test_conflicts_deduplicate_by_id(self, data):
        conflict = DomainConflict(id="c1", domains=["d1", "d2"])

        once = add_conflict(data, conflict)
        twice = add_conflict(once, conflict)

        assert len(twice.conflicts) == 1
        assert resolve_conflict(twice, "c1").conflicts == []
        assert data.conflicts == []


# =============================================================================
# STATE TRANSFORMS
# =============================================================================


class TestStateTransforms:
    """Tests for relationship, proposal, clustering and meta transforms."""

    def test_relationships_are_bucketed(self):
        state = create_initial_state()
        rels = [
            DomainRelationship(id="r1", type=RelationshipType.DEPENDENCY),
            DomainRelationship(id="r2", type=RelationshipType.SHARED_STATE),
            DomainRelationship(id="r3", type=RelationshipType.EVENT_FLOW),
            DomainRelationship(id="r4", type=RelationshipType.COMPOSITION),
        ]

        filled = add_relationships(state, rels)

        assert [r.id for r in filled.relationships.dependencies] == ["r1"]
        assert [r.id for r in filled.relationships.shared_state] == ["r2"]
        assert [r.id for r in filled.relationships.event_flows] == ["r3"]
        assert [r.id for r in filled.relationships.compositions] == ["r4"]
        assert state.relationships.all() == []
        assert add_relationship(filled, rels[0]) is filled
        assert clear_relationships(filled).relationships.all() == []

    def test_schema_proposals(self):
        state = add_schema_proposal(create_initial_state(), _proposal("d1", needs_review=True))

        reviewed = mark_proposal_reviewed(state, "d1")

        assert reviewed.schema_proposals["d1"].needs_review is False
        assert state.schema_proposals["d1"].needs_review is True
        assert remove_schema_proposal(state, "d1").schema_proposals == {}
        assert mark_proposal_reviewed(state, "ghost") is state

    def test_clustering_lifecycle(self):
        started = start_clustering(create_initial_state(), now="t0")
        done = complete_clustering(started, cluster_count=3, noise_count=1, now="t1")

        assert started.clustering.status == ClusteringStatus.RUNNING
        assert done.clustering.status == ClusteringStatus.DONE
        assert (done.clustering.started_at, done.clustering.completed_at) == ("t0", "t1")
        assert (done.clustering.cluster_count, done.clustering.noise_count) == (3, 1)

    def test_ambiguous_patterns_deduplicate(self):
        finding = AmbiguousPattern(id="a1", file="x.ts", reasons=["Low confidence: 0.40"])

        state = add_ambiguous_patterns(create_initial_state(), [finding])

        assert add_ambiguous_patterns(state, [finding]) is state

    def test_meta(self):
        state = create_initial_state()
        state = increment_attempts(state)
        state = increment_llm_calls(state, 3)
        state = set_last_processed_domain(state, "d1")
        state = update_processing_rate(state, 4, 2.0)
        state = add_error(state, "proposals: boom")

        assert state.meta.attempts == 1
        assert state.meta.llm_call_count == 3
        assert state.meta.last_processed_domain == "d1"
        assert state.meta.processing_rate == 2.0
        assert state.meta.errors == ["proposals: boom"]
        assert update_processing_rate(state, 4, 0).meta.processing_rate == 0.0


# =============================================================================
# DERIVED VALUES
# =============================================================================


class TestDerived:
    """Tests for calculate_derived() and the review checks."""

    def test_metrics(self, data):
        state = add_schema_proposal(create_initial_state(), _proposal("d1"))
        state = update_processing_rate(state, 1, 2.0)

        derived = calculate_derived(data, state)

        assert derived.domains_total == 2
        assert derived.domains_processed == 1
        assert derived.proposals_ready == 1
        assert derived.overall_confidence == pytest.approx(0.7)
        assert derived.progress == 50.0
        assert derived.estimated_time_remaining == pytest.approx(2.0)

    def test_no_rate_means_no_estimate(self, data):
        assert calculate_derived(data, create_initial_state()).estimated_time_remaining is None

    def test_empty_session(self):
        derived = calculate_derived(create_initial_data("s"), create_initial_state())

        assert derived.progress == 0.0
        assert derived.overall_confidence == 0.0

    def test_completion(self, data):
        state = add_schema_proposal(create_initial_state(), _proposal("d1"))
        assert not is_discovery_complete(data, state)

        state = add_schema_proposal(state, _proposal("d2"))
        assert is_discovery_complete(data, state)

        blocked = add_conflict(data, DomainConflict(id="c1"))
        assert not is_discovery_complete(blocked, state)
        assert not is_discovery_complete(create_initial_data("s"), state)

    def test_needs_review(self, data, make_domain):
        clean = add_schema_proposal(create_initial_state(), _proposal("d1"))
        assert not needs_review(data, clean)

        flagged = add_schema_proposal(clean, _proposal("d2", needs_review=True))
        assert needs_review(data, flagged)
        assert needs_review(add_conflict(data, DomainConflict(id="c1")), clean)

        assert domain_needs_review(make_domain("x", confidence=0.5), 0.7)
        assert not domain_needs_review(make_domain("x", confidence=0.9), 0.7)

    def test_snapshot(self, data):
        snapshot = create_snapshot(data, create_initial_state(), "clustering", 4, now="t")

        assert snapshot.session_id == "session-1"
        assert snapshot.version == 4
        assert snapshot.phase == "clustering"
        assert snapshot.derived.domains_total == 2
        assert snapshot.to_dict()["phase"] == "clustering"
