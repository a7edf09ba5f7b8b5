"""
Shared fixtures for domain discovery tests.

Detector output is built from the camelCase dictionaries the upstream
pattern detector emits, so every test also exercises boundary validation.
"""

import pytest

from domain_discovery.models import (
    DependencyGraph,
    DetectedPattern,
    DomainSummary,
    FileAnalysis,
    ImportEdge,
)


def pattern(type_: str, name: str, confidence: float = 0.9, line: int = 1, **metadata) -> DetectedPattern:
    return DetectedPattern.from_dict(
        {
            "type": type_,
            "name": name,
            "location": {"line": line, "column": 0},
            "confidence": confidence,
            "metadata": metadata,
        }
    )


def analysis(path: str, patterns=None, imports=None, exports=None, size: int = 0) -> FileAnalysis:
    return FileAnalysis.from_dict(
        {
            "path": path,
            "relativePath": path,
            "imports": [
                {"source": source, "specifiers": list(names)} for source, names in (imports or {}).items()
            ],
            "exports": list(exports or []),
            "patterns": [p.to_dict() for p in patterns or []],
            "size": size,
        }
    )


@pytest.fixture
def make_pattern():
    """Factory: make_pattern("hook", "useAuth", isCustomHook=True)."""
    return pattern


@pytest.fixture
def make_analysis():
    """Factory: make_analysis(path, patterns, imports={"./x": ["y"]}, exports=[...])."""
    return analysis


@pytest.fixture
def make_graph():
    """Factory: make_graph(nodes, [(source, target), ...])."""

    def build(nodes, edges=()):
        return DependencyGraph(
            nodes=list(nodes),
            edges=[ImportEdge(source=s, target=t, specifiers=[]) for s, t in edges],
        )

    return build


@pytest.fixture
def make_domain():
    """Factory for DomainSummary objects with sensible defaults."""

    def build(domain_id: str, name: str | None = None, files=(), confidence: float = 0.8, **kwargs):
        return DomainSummary(
            id=domain_id,
            name=name or domain_id,
            source_files=list(files),
            confidence=confidence,
            **kwargs,
        )

    return build


@pytest.fixture
def auth_analyses():
    """Three files of an auth feature: context, hook and reducer."""
    context = analysis(
        "src/features/auth/AuthContext.tsx",
        patterns=[
            pattern(
                "context",
                "AuthContext",
                contextName="AuthContext",
                contextValue="{ user: User, login: Function }",
                hasProvider=True,
            )
        ],
        exports=["AuthContext", "AuthProvider"],
    )
    hook = analysis(
        "src/features/auth/useAuth.ts",
        patterns=[pattern("hook", "useAuth", isCustomHook=True)],
        imports={"./AuthContext": ["AuthContext"], "react": ["useContext"]},
        exports=["useAuth"],
    )
    reducer = analysis(
        "src/features/auth/authReducer.ts",
        patterns=[
            pattern(
                "reducer",
                "authReducer",
                actions=["LOGIN_SUCCESS", "LOGOUT"],
                stateShape={"user": "User|null", "isAuthenticated": "boolean"},
            )
        ],
        exports=["authReducer"],
    )
    return [context, hook, reducer]


@pytest.fixture
def auth_patterns(auth_analyses):
    return [p for a in auth_analyses for p in a.patterns]
