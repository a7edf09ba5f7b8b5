"""
Tests for Domain Conflicts
==========================

Tests for:
- ownership, naming and boundary conflict detection
- reviewer resolutions (assign, rename, merge, split, keep)
- failed resolutions leaving data untouched
"""

import pytest

from domain_discovery.domains import (
    RelationshipAnalysis,
    apply_conflict_resolution,
    detect_all_conflicts,
    detect_boundary_conflicts,
    detect_naming_conflicts,
    detect_ownership_conflicts,
    merge_domains,
    split_domain,
    suggest_domain_name,
)
from domain_discovery.models import (
    ConflictType,
    DomainRelationship,
    ExtractedEntity,
    RelationshipType,
    ResolutionAction,
    SuggestedResolution,
)
from domain_discovery.session import add_conflicts, add_domain, create_initial_data

SHARED = "src/shared/session.ts"


@pytest.fixture
def auth_domains(make_domain):
    """Two "auth" domains that both claim the shared session file."""
    return [
        make_domain(
            "d1",
            name="auth",
            files=["src/features/auth/login.ts", "src/features/auth/logout.ts", SHARED],
            confidence=0.9,
            entities=[ExtractedEntity(name="User", confidence=0.9)],
        ),
        make_domain(
            "d2",
            name="Auth",
            files=["src/admin/auth/roles.ts", SHARED],
            confidence=0.6,
            entities=[ExtractedEntity(name="user", confidence=0.5), ExtractedEntity(name="Role")],
        ),
    ]


@pytest.fixture
def data(auth_domains):
    """Discovery data holding both domains and their conflicts."""
    result = create_initial_data("session-1")
    for domain in auth_domains:
        result = add_domain(result, domain)
    return add_conflicts(result, detect_all_conflicts(auth_domains))


def _resolution(action, **params):
    return SuggestedResolution(id="res-test", action=action, params=params)


# =============================================================================
# DETECTION
# =============================================================================


class TestDetection:
    """Tests for conflict detection."""

    def test_ownership_conflict(self, auth_domains):
        [conflict] = detect_ownership_conflicts(auth_domains)

        assert conflict.id == f"conflict-ownership-{SHARED}"
        assert conflict.type == ConflictType.OWNERSHIP
        assert conflict.file == SHARED
        assert conflict.domains == ["d1", "d2"]
        assert [r.action for r in conflict.suggested_resolutions] == [ResolutionAction.ASSIGN] * 2
        assert conflict.suggested_resolutions[1].params == {"domain_id": "d2", "file": SHARED}

    def test_naming_conflict(self, auth_domains):
        [conflict] = detect_naming_conflicts(auth_domains)

        assert conflict.id == "conflict-naming-d1-d2"
        assert conflict.description == "Multiple domains have similar names"
        rename, merge = conflict.suggested_resolutions
        assert rename.action == ResolutionAction.RENAME
        assert rename.params == {"domain_id": "d2", "new_name": "admin"}
        assert merge.action == ResolutionAction.MERGE
        assert merge.params == {"domain_ids": ["d1", "d2"], "new_name": "auth"}

    def test_distinct_domains_have_no_conflicts(self, make_domain):
        domains = [make_domain("a", files=["src/a.ts"]), make_domain("b", files=["src/b.ts"])]

        assert detect_all_conflicts(domains) == []

    def test_boundary_conflicts(self, make_domain):
        cart, checkout = make_domain("cart"), make_domain("checkout")
        coupling = DomainRelationship(
            type=RelationshipType.SHARED_STATE, from_domain="cart", to_domain="checkout", strength=0.9
        )
        analysis = RelationshipAnalysis(strong_couplings=[coupling], cycles=[["cart", "checkout"]])

        coupled, cyclic = detect_boundary_conflicts([cart, checkout], analysis)

        assert coupled.type == ConflictType.BOUNDARY
        assert coupled.description == "cart and checkout are strongly coupled (0.90)"
        assert [r.action for r in coupled.suggested_resolutions] == [ResolutionAction.MERGE, ResolutionAction.KEEP]
        assert cyclic.description == "Cyclic dependency: cart -> checkout -> cart"

    def test_suggest_domain_name(self, make_domain):
        by_directory = make_domain("x", files=["src/features/billing/a.ts"])
        by_entity = make_domain("x", entities=[ExtractedEntity(name="InvoiceContext")])

        assert suggest_domain_name(by_directory) == "billing"
        assert suggest_domain_name(by_entity) == "invoice"
        assert suggest_domain_name(make_domain("x")) == "x"

    def test_conflict_ids_are_stable(self, data, auth_domains):
        """Re-adding detected conflicts does not duplicate them."""
        again = add_conflicts(data, detect_all_conflicts(auth_domains))

        assert len(again.conflicts) == len(data.conflicts) == 2


# =============================================================================
# RESOLUTION
# =============================================================================


class TestApplyConflictResolution:
    """Tests for apply_conflict_resolution()."""

    def test_assign_keeps_file_in_one_domain(self, data):
        conflict_id = f"conflict-ownership-{SHARED}"

        new_data, result = apply_conflict_resolution(
            data, conflict_id, _resolution(ResolutionAction.ASSIGN, domain_id="d1", file=SHARED)
        )

        assert result.valid
        assert SHARED in new_data.domains["d1"].source_files
        assert SHARED not in new_data.domains["d2"].source_files
        assert new_data.get_conflict(conflict_id) is None
        assert SHARED in data.domains["d2"].source_files

    def test_rename(self, data):
        new_data, result = apply_conflict_resolution(
            data, "conflict-naming-d1-d2", _resolution(ResolutionAction.RENAME, domain_id="d2", new_name="Admin")
        )

        assert result.valid
        assert new_data.domains["d2"].name == "admin"
        assert new_data.get_conflict("conflict-naming-d1-d2") is None

    def test_merge(self, data):
        new_data, result = apply_conflict_resolution(
            data,
            "conflict-naming-d1-d2",
            _resolution(ResolutionAction.MERGE, domain_ids=["d1", "d2"], new_name="auth"),
        )

        assert result.valid
        [merged] = new_data.domains.values()
        assert merged.name == "auth"
        assert merged.suggested_by == "merge"
        assert merged.needs_review is True
        assert merged.review_notes == ["Merged from: auth, Auth"]
        assert merged.confidence == pytest.approx(0.75)
        assert merged.source_files == [
            "src/features/auth/login.ts",
            "src/features/auth/logout.ts",
            SHARED,
            "src/admin/auth/roles.ts",
        ]
        assert sorted(e.name for e in merged.entities) == ["Role", "User"]
        assert new_data.conflicts == []

    def test_split(self, data):
        new_data, result = apply_conflict_resolution(
            data,
            "conflict-naming-d1-d2",
            _resolution(
                ResolutionAction.SPLIT, domain_id="d1", files=["src/features/auth/logout.ts"], new_name="logout"
            ),
        )

        assert result.valid
        assert "src/features/auth/logout.ts" not in new_data.domains["d1"].source_files
        [created] = [d for d in new_data.domains.values() if d.suggested_by == "split"]
        assert created.name == "logout"
        assert created.source_files == ["src/features/auth/logout.ts"]
        assert created.review_notes == ["Split from: auth"]

    def test_keep_only_closes_the_conflict(self, data):
        new_data, result = apply_conflict_resolution(
            data, "conflict-naming-d1-d2", _resolution(ResolutionAction.KEEP)
        )

        assert result.valid
        assert new_data.domains == data.domains
        assert len(new_data.conflicts) == 1

    def test_invalid_params_leave_data_unchanged(self, data):
        conflict_id = f"conflict-ownership-{SHARED}"

        new_data, result = apply_conflict_resolution(
            data, conflict_id, _resolution(ResolutionAction.ASSIGN, domain_id="nobody", file=SHARED)
        )

        assert not result.valid
        assert new_data is data
        assert new_data.get_conflict(conflict_id) is not None

    def test_unknown_conflict(self, data):
        new_data, result = apply_conflict_resolution(data, "missing", _resolution(ResolutionAction.KEEP))

        assert not result.valid
        assert result.errors == ["Unknown conflict: missing"]
        assert new_data is data

    def test_ambiguity_actions_do_not_apply(self, data):
        _, result = apply_conflict_resolution(
            data, "conflict-naming-d1-d2", _resolution(ResolutionAction.CLASSIFY_AS)
        )

        assert not result.valid


class TestReshaping:
    """Direct tests for merge and split validation."""

    def test_merge_needs_two_domains(self, data):
        same, result = merge_domains(data, ["d1"])

        assert not result.valid
        assert same is data

    def test_merge_rejects_unknown_ids(self, data):
        _, result = merge_domains(data, ["d1", "ghost"])

        assert result.errors == ["Unknown domain(s): ghost"]

    def test_split_must_leave_a_file(self, data):
        files = list(data.domains["d2"].source_files)

        same, result = split_domain(data, "d2", files, "roles")

        assert not result.valid
        assert same is data
