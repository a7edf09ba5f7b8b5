"""
Tests for Domain Discovery Pipeline
===================================

End-to-end runs over small React feature trees:
- a single auth feature discovered into one reviewed-free proposal
- two related features with a cross-feature import
- snapshots per phase, failure recording and review requests
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from domain_discovery import DomainDiscoveryPipeline
from domain_discovery.config import DiscoveryConfig
from domain_discovery.domains import clusters_to_domain_summaries
from domain_discovery.domains.clustering import FileCluster
from domain_discovery.errors import LLMProviderError
from domain_discovery.models import (
    AmbiguousPattern,
    ClusteringStatus,
    DomainCandidate,
    DomainConflict,
    RelationshipType,
    ReviewKind,
    SchemaProposal,
    SuggestedBy,
)
from domain_discovery.pipeline import PHASES, build_review_requests
from domain_discovery.providers import CompletionResult
from domain_discovery.session import (
    add_ambiguous_patterns,
    add_conflict,
    add_schema_proposal,
    create_initial_data,
    create_initial_state,
)


@pytest.fixture
def cart_analyses(make_analysis, make_pattern):
    """A cart feature whose hook imports the auth hook."""
    return [
        make_analysis(
            "src/features/cart/CartContext.tsx",
            patterns=[
                make_pattern(
                    "context",
                    "CartContext",
                    contextName="CartContext",
                    contextValue="{ items: Item[] }",
                    hasProvider=True,
                )
            ],
            exports=["CartContext", "CartProvider"],
        ),
        make_analysis(
            "src/features/cart/useCart.ts",
            patterns=[make_pattern("hook", "useCart", isCustomHook=True)],
            imports={"../auth/useAuth": ["useAuth"], "./CartContext": ["CartContext"]},
            exports=["useCart"],
        ),
    ]


@pytest.fixture
def snapshots():
    """Collects (phase, snapshot) pairs handed to the listener."""
    return []


@pytest.fixture
def pipeline(snapshots):
    return DomainDiscoveryPipeline(
        config=DiscoveryConfig(),
        snapshot_listener=lambda phase, snapshot: snapshots.append((phase, snapshot)),
    )


# =============================================================================
# END TO END
# =============================================================================


class TestAuthFeature:
    """Discovery over the three-file auth feature."""

    @pytest.mark.asyncio
    async def test_single_auth_domain(self, pipeline, auth_analyses):
        result = await pipeline.run(auth_analyses, session_id="session-auth")

        [domain] = result.data.domains.values()
        assert domain.name == "auth"
        assert set(domain.source_files) == {a.path for a in auth_analyses}
        assert result.data.session_id == "session-auth"
        assert result.ambiguous_patterns == []
        assert result.data.conflicts == []

    @pytest.mark.asyncio
    async def test_auth_proposal(self, pipeline, auth_analyses):
        result = await pipeline.run(auth_analyses)

        [proposal] = result.state.schema_proposals.values()
        intents = {f.path: f.type for f in proposal.intents}
        assert intents["auth.intents.loginSuccess"] == "event"
        assert intents["auth.intents.logout"] == "command"
        entity_paths = {f.path for f in proposal.entities}
        assert "auth.entities.AuthContext.user" in entity_paths
        assert "auth.entities.authReducerState.isAuthenticated" in entity_paths
        assert proposal.needs_review is False

    @pytest.mark.asyncio
    async def test_run_is_complete(self, pipeline, auth_analyses):
        result = await pipeline.run(auth_analyses)

        assert result.complete
        assert result.review_requests == []
        assert result.derived.domains_total == 1
        assert result.derived.proposals_ready == 1
        assert result.derived.progress == 100.0
        assert result.state.meta.attempts == 1
        assert result.state.meta.llm_call_count == 0
        assert result.state.clustering.status == ClusteringStatus.DONE
        assert result.file_tasks[0].path == "src/features/auth/AuthContext.tsx"
        assert result.to_dict()["derived"]["domains_total"] == 1

    @pytest.mark.asyncio
    async def test_snapshot_per_phase(self, pipeline, snapshots, auth_analyses):
        await pipeline.run(auth_analyses)

        assert [phase for phase, _ in snapshots] == list(PHASES)
        assert [s.version for _, s in snapshots] == list(range(1, len(PHASES) + 1))
        assert snapshots[-1][1].derived.domains_processed == 1

    def test_run_sync(self, pipeline, auth_analyses):
        result = pipeline.run_sync(auth_analyses)

        assert [d.name for d in result.data.domains.values()] == ["auth"]


class TestRelatedFeatures:
    """Discovery over auth plus a cart feature that imports it."""

    @pytest.mark.asyncio
    async def test_relationship_between_features(self, pipeline, auth_analyses, cart_analyses):
        result = await pipeline.run([*auth_analyses, *cart_analyses])

        by_name = {d.name: d for d in result.data.domains.values()}
        assert set(by_name) == {"auth", "cart"}
        auth, cart = by_name["auth"], by_name["cart"]

        [relationship] = result.state.relationships.all()
        assert relationship.type == RelationshipType.EVENT_FLOW
        assert (relationship.from_domain, relationship.to_domain) == (cart.id, auth.id)
        assert result.state.relationships.event_flows == [relationship]

        assert auth.boundaries.exports == ["cart"]
        assert cart.boundaries.imports == ["auth"]
        assert result.state.schema_proposals[auth.id].review_notes == [f"Related domains: {cart.id}"]
        assert result.data.conflicts == []


# =============================================================================
# LLM AND FAILURES
# =============================================================================


class TestPipelineWithProvider:
    """Pipeline runs with a language model attached."""

    @pytest.mark.asyncio
    async def test_failing_provider_is_counted_not_fatal(self, auth_analyses):
        provider = MagicMock()
        provider.complete = AsyncMock(side_effect=LLMProviderError("rate limited", status_code=429))
        pipeline = DomainDiscoveryPipeline(config=DiscoveryConfig(), llm_provider=provider)

        result = await pipeline.run(auth_analyses)

        assert result.state.meta.llm_call_count == 3
        assert result.state.meta.errors == []
        [proposal] = result.state.schema_proposals.values()
        assert proposal.needs_review is False

    @pytest.mark.asyncio
    async def test_unexpected_reply_shapes_keep_heuristic_proposal(self, auth_analyses):
        replies = [
            {"entities": 5},
            {"actions": 5},
            {"alternatives": [{"entities": [{"name": "User"}]}]},
        ]
        provider = MagicMock()
        provider.complete = AsyncMock(
            side_effect=[CompletionResult(content=json.dumps(reply)) for reply in replies]
        )
        baseline = await DomainDiscoveryPipeline(config=DiscoveryConfig()).run(auth_analyses)

        result = await DomainDiscoveryPipeline(config=DiscoveryConfig(), llm_provider=provider).run(auth_analyses)

        [expected] = baseline.state.schema_proposals.values()
        [proposal] = result.state.schema_proposals.values()
        assert [f.path for f in proposal.all_fields] == [f.path for f in expected.all_fields]
        assert result.state.meta.errors == []
        assert result.state.meta.llm_call_count == 3
        [alternative] = proposal.alternatives
        assert [f.path for f in alternative.all_fields] == ["auth.entities.User"]


class TestSyntheticDomainNaming:
    """Language-model naming of clusters no candidate explains."""

    @pytest.fixture
    def summaries(self):
        clusters = [
            FileCluster(
                id="cluster-0",
                files=["src/a/orderList.ts", "src/a/orderItem.ts"],
                centroid="src/a/orderList.ts",
                density=1.0,
            ),
            FileCluster(id="cluster-1", files=["src/search.ts"], domain_candidates=["c1"]),
        ]
        candidate = DomainCandidate(id="c1", name="search", confidence=0.9, source_files=["src/search.ts"])
        return clusters_to_domain_summaries(clusters, [candidate])

    @pytest.mark.asyncio
    async def test_synthesized_cluster_is_named(self, summaries, make_pattern):
        provider = MagicMock()
        provider.complete = AsyncMock(
            return_value=CompletionResult(content='{"domainName": "Order History", "confidence": 0.6}')
        )
        pipeline = DomainDiscoveryPipeline(config=DiscoveryConfig(), llm_provider=provider)
        patterns_by_file = {"src/a/orderList.ts": [make_pattern("component", "OrderList")]}

        named, state = await pipeline._name_synthesized_domains(summaries, create_initial_state(), patterns_by_file)

        assert [s.name for s in named] == ["order-history", "search"]
        assert named[0].suggested_by == SuggestedBy.LLM.value
        assert named[0].needs_review is True
        assert named[1] is summaries[1]
        assert provider.complete.await_count == 1
        assert state.meta.llm_call_count == 1

    @pytest.mark.asyncio
    async def test_failed_call_keeps_heuristic_name(self, summaries):
        provider = MagicMock()
        provider.complete = AsyncMock(side_effect=LLMProviderError("timeout"))
        pipeline = DomainDiscoveryPipeline(config=DiscoveryConfig(), llm_provider=provider)

        named, state = await pipeline._name_synthesized_domains(summaries, create_initial_state(), {})

        assert [s.name for s in named] == ["order-list", "search"]
        assert named[0].suggested_by == "clustering"
        assert state.meta.llm_call_count == 1

    @pytest.mark.asyncio
    async def test_without_provider(self, summaries, pipeline):
        state = create_initial_state()

        named, after = await pipeline._name_synthesized_domains(summaries, state, {})

        assert named is summaries
        assert after is state


class TestPipelineFailure:
    """Failures escaping a phase."""

    @pytest.mark.asyncio
    async def test_failure_is_recorded_and_raised(self, monkeypatch, pipeline, snapshots, auth_analyses):
        def explode(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr("domain_discovery.pipeline.perform_clustering", explode)

        with pytest.raises(RuntimeError, match="boom"):
            await pipeline.run(auth_analyses)

        phase, snapshot = snapshots[-1]
        assert phase == "failed"
        assert snapshot.state.meta.errors == ["clustering: boom"]
        assert [p for p, _ in snapshots[:-1]] == ["graph", "priority", "candidates"]


class TestFromEnv:
    """Tests for DomainDiscoveryPipeline.from_env()."""

    @pytest.mark.asyncio
    async def test_without_credentials(self, monkeypatch):
        for name in ("DOMAIN_DISCOVERY_LLM_API_KEY", "DOMAIN_DISCOVERY_LLM_PROVIDER", "OPENAI_API_KEY"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setenv("DOMAIN_DISCOVERY_MIN_CLUSTER_SIZE", "3")

        async with DomainDiscoveryPipeline.from_env() as pipeline:
            assert pipeline.llm_provider is None
            assert pipeline.config.min_cluster_size == 3


# =============================================================================
# REVIEW REQUESTS
# =============================================================================


class TestBuildReviewRequests:
    """Tests for build_review_requests()."""

    def test_order_and_kinds(self, make_pattern):
        finding = AmbiguousPattern(
            id="ambig-1", file="src/x.ts", pattern=make_pattern("hook", "useX"), reasons=["Low confidence: 0.40"]
        )
        state = add_ambiguous_patterns(create_initial_state(), [finding])
        state = add_schema_proposal(
            state,
            SchemaProposal(id="p1", domain_id="d1", domain_name="cart", needs_review=True, review_notes=["thin"]),
        )
        state = add_schema_proposal(state, SchemaProposal(id="p2", domain_id="d2", domain_name="auth"))
        data = add_conflict(create_initial_data("s"), DomainConflict(id="c1", description="File claimed twice"))

        requests = build_review_requests(data, state)

        assert [r.kind for r in requests] == [
            ReviewKind.AMBIGUOUS_PATTERN,
            ReviewKind.SCHEMA_REVIEW,
            ReviewKind.CONFLICT,
        ]
        assert requests[0].id == "review-ambig-1"
        assert requests[0].description == "useX: Low confidence: 0.40"
        assert requests[0].patterns == [finding.pattern]
        assert requests[1].subject_id == "d1"
        assert requests[1].description == "Schema proposal for cart needs review: thin"
        assert requests[2].subject_id == "c1"
