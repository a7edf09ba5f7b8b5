"""
Tests for File Clustering Engine
================================

Tests for:
- file similarity bounds and hard feature boundaries
- density clustering of files
- cluster merge and reconciliation into domain summaries
"""

import pytest

from domain_discovery.config import DiscoveryConfig
from domain_discovery.dependency import DependencyGraphBuilder
from domain_discovery.domains import (
    DomainCandidateExtractor,
    FileCluster,
    FileClusterer,
    calculate_file_similarity,
    clusters_to_domain_summaries,
    merge_clusters,
    perform_clustering,
    rename_synthesized_summary,
)
from domain_discovery.domains.clustering import SYNTHESIZED_REVIEW_NOTE
from domain_discovery.models import DomainCandidate

# =============================================================================
# SIMILARITY
# =============================================================================


class TestFileSimilarity:
    """Tests for calculate_file_similarity()."""

    @pytest.mark.parametrize(
        "file1,file2,imports",
        [
            ("src/features/auth/a.ts", "src/features/auth/b.ts", True),
            ("src/features/auth/useAuthUser.ts", "src/features/auth/useAuthToken.ts", True),
            ("src/shared/format.ts", "src/shared/formatDate.ts", False),
            ("src/a/x.ts", "src/a/b/y.ts", True),
            ("lib.ts", "main.ts", False),
        ],
    )
    def test_bounds(self, file1, file2, imports):
        """Similarity is always within [0, 1] and symmetric."""
        score = calculate_file_similarity(file1, file2, imports)

        assert 0.0 <= score <= 1.0
        assert calculate_file_similarity(file2, file1, imports) == score

    def test_different_features_never_cluster(self):
        """Feature directories are hard boundaries, even with an import edge."""
        assert calculate_file_similarity("src/features/auth/a.ts", "src/features/cart/a.ts", True) == 0.0

    def test_feature_and_shared_never_cluster(self):
        assert calculate_file_similarity("src/features/auth/format.ts", "src/utils/format.ts", True) == 0.0

    def test_same_feature(self):
        assert calculate_file_similarity("src/features/auth/A.ts", "src/features/auth/B.ts") == pytest.approx(0.6)
        assert calculate_file_similarity("src/features/auth/A.ts", "src/features/auth/B.ts", True) == pytest.approx(0.9)

    def test_shared_same_directory(self):
        assert calculate_file_similarity("src/shared/format.ts", "src/shared/parse.ts") == pytest.approx(0.4)

    def test_unclassified_directories(self):
        """Same directory scores 0.3, nested 0.15, plus 0.2 for a direct import."""
        assert calculate_file_similarity("src/a/x.ts", "src/a/y.ts") == pytest.approx(0.3)
        assert calculate_file_similarity("src/a/x.ts", "src/a/y.ts", True) == pytest.approx(0.5)
        assert calculate_file_similarity("src/a/x.ts", "src/a/b/y.ts") == pytest.approx(0.15)

    def test_filename_prefix_bonus(self):
        """A shared stem prefix of three or more characters adds up to 0.2."""
        score = calculate_file_similarity("src/a/useCartItems.ts", "src/a/useCartTotal.ts")

        assert score == pytest.approx(0.3 + 7 / 12 * 0.2)


# =============================================================================
# CLUSTERING
# =============================================================================


class TestFileClusterer:
    """Tests for FileClusterer.cluster()."""

    def test_auth_files_form_one_cluster(self, auth_analyses):
        graph = DependencyGraphBuilder().build(auth_analyses)
        files = [a.path for a in auth_analyses]

        result = FileClusterer(graph).cluster(files)

        assert len(result.clusters) == 1
        assert sorted(result.clusters[0].files) == sorted(files)
        assert result.clusters[0].density == 1.0
        assert result.clusters[0].centroid == files[0]
        assert result.noise == []

    def test_features_stay_apart(self):
        files = [
            "src/features/auth/Login.tsx",
            "src/features/cart/Cart.tsx",
            "src/features/auth/Logout.tsx",
            "src/features/cart/CartItem.tsx",
            "src/App.tsx",
        ]

        result = FileClusterer().cluster(files)

        assert [c.files for c in result.clusters] == [
            ["src/features/auth/Login.tsx", "src/features/auth/Logout.tsx"],
            ["src/features/cart/Cart.tsx", "src/features/cart/CartItem.tsx"],
        ]
        assert result.noise == ["src/App.tsx"]

    def test_similarity_is_cached(self):
        clusterer = FileClusterer()
        clusterer.similarity("src/a/x.ts", "src/a/y.ts")

        assert clusterer.similarity("src/a/y.ts", "src/a/x.ts") == pytest.approx(0.3)
        assert list(clusterer._cache) == [("src/a/x.ts", "src/a/y.ts")]

    def test_min_cluster_size_one(self):
        """With size one every file is its own core point."""
        result = FileClusterer(min_cluster_size=1).cluster(["x/a.ts", "y/b.ts"])

        assert [c.files for c in result.clusters] == [["x/a.ts"], ["y/b.ts"]]
        assert result.noise == []


class TestMergeClusters:
    """Tests for merge_clusters()."""

    def test_same_feature_clusters_merge(self):
        clusters = [
            FileCluster(id="cluster-0", files=["src/features/cart/a.ts", "src/features/cart/b.ts"]),
            FileCluster(id="cluster-1", files=["src/lib/x.ts", "src/lib/y.ts"]),
            FileCluster(id="cluster-2", files=["src/features/cart/c.ts"], domain_candidates=["c1"]),
        ]

        merged = merge_clusters(clusters)

        assert [c.id for c in merged] == ["cluster-0", "cluster-1"]
        assert merged[0].files == ["src/features/cart/a.ts", "src/features/cart/b.ts", "src/features/cart/c.ts"]
        assert merged[0].domain_candidates == ["c1"]
        assert clusters[0].files == ["src/features/cart/a.ts", "src/features/cart/b.ts"]


# =============================================================================
# SUMMARIES
# =============================================================================


class TestDomainSummaries:
    """Tests for reconciling clusters with candidates."""

    def test_auth_summary(self, auth_analyses):
        graph = DependencyGraphBuilder().build(auth_analyses)
        candidates = DomainCandidateExtractor(auth_analyses).extract(graph)
        patterns_by_file = {a.path: a.patterns for a in auth_analyses}

        summaries, result = perform_clustering(candidates, graph, DiscoveryConfig(), patterns_by_file)

        [summary] = summaries
        assert summary.id == f"summary-{candidates[0].id}"
        assert summary.name == "auth"
        assert summary.confidence == 0.9
        assert summary.needs_review is False
        assert set(summary.source_files) == {a.path for a in auth_analyses}
        assert {e.name for e in summary.entities} == {"AuthContext", "authReducerState"}
        assert {a.name for a in summary.actions} == {"loginSuccess", "logout", "getAuth"}
        assert result.clusters[0].domain_candidates == [candidates[0].id]

    def test_unmatched_cluster_is_synthesized(self):
        clusters = [
            FileCluster(
                id="cluster-0",
                files=["src/a/orderList.ts", "src/a/orderItem.ts"],
                centroid="src/a/orderList.ts",
                density=1.0,
            )
        ]

        [summary] = clusters_to_domain_summaries(clusters, [])

        assert summary.id == "domain-cluster-0"
        assert summary.name == "order-list"
        assert summary.suggested_by == "clustering"
        assert summary.confidence == pytest.approx(0.7)
        assert summary.needs_review is True
        assert summary.review_notes == [SYNTHESIZED_REVIEW_NOTE]

    def test_low_confidence_candidate_needs_review(self):
        candidate = DomainCandidate(id="c1", name="search", confidence=0.6, source_files=["src/search.ts"])
        clusters = [FileCluster(id="cluster-0", files=["src/search.ts"], domain_candidates=["c1"])]

        [summary] = clusters_to_domain_summaries(clusters, [candidate])

        assert summary.needs_review is True
        assert summary.review_notes == ["Low confidence (0.60) from file_structure heuristic"]

    def test_duplicate_summary_ids_get_suffixes(self):
        candidate = DomainCandidate(id="c1", name="orders", confidence=0.9, source_files=["a.ts", "b.ts"])
        clusters = [
            FileCluster(id="cluster-0", files=["a.ts"], domain_candidates=["c1"]),
            FileCluster(id="cluster-1", files=["b.ts"], domain_candidates=["c1"]),
        ]

        summaries = clusters_to_domain_summaries(clusters, [candidate])

        assert [s.id for s in summaries] == ["summary-c1", "summary-c1-2"]


class TestRenameSynthesizedSummary:
    """Tests for rename_synthesized_summary()."""

    @pytest.fixture
    def synthesized(self):
        clusters = [
            FileCluster(
                id="cluster-0",
                files=["src/a/orderList.ts", "src/a/orderItem.ts"],
                centroid="src/a/orderList.ts",
                density=1.0,
            )
        ]
        [summary] = clusters_to_domain_summaries(clusters, [])
        return summary

    def test_model_name_is_applied(self, synthesized):
        renamed = rename_synthesized_summary(synthesized, "Order History", "Past orders", 0.6)

        assert renamed.name == "order-history"
        assert renamed.description == "Past orders"
        assert renamed.suggested_by == "llm"
        assert renamed.confidence == 0.6
        assert renamed.needs_review is True
        assert renamed.review_notes == [
            SYNTHESIZED_REVIEW_NOTE,
            "Named by language model (heuristic name: order-list)",
        ]
        assert synthesized.name == "order-list"

    def test_empty_name_keeps_summary(self, synthesized):
        assert rename_synthesized_summary(synthesized, " ?! ") is synthesized

    def test_candidate_summaries_are_untouched(self):
        candidate = DomainCandidate(id="c1", name="search", confidence=0.9, source_files=["src/search.ts"])
        clusters = [FileCluster(id="cluster-0", files=["src/search.ts"], domain_candidates=["c1"])]
        [summary] = clusters_to_domain_summaries(clusters, [candidate])

        assert rename_synthesized_summary(summary, "finder") is summary
