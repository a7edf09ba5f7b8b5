"""
Exception Hierarchy
===================

Only invariant violations abort a discovery run. Data-quality findings are
returned as records and structural failures as ValidationResult values.
"""


class DomainDiscoveryError(Exception):
    """Base class for all domain discovery errors."""


class InvariantViolation(DomainDiscoveryError):
    """Raised when an internal invariant no longer holds. Fatal for the run."""


class PatternMetadataError(DomainDiscoveryError, ValueError):
    """Raised when detector metadata does not match the documented key set."""

    def __init__(self, message: str, key: str | None = None, pattern: str | None = None):
        super().__init__(message)
        self.key = key
        self.pattern = pattern

    def __str__(self) -> str:
        parts = []
        if self.pattern:
            parts.append(f"pattern {self.pattern!r}")
        if self.key:
            parts.append(f"key {self.key!r}")
        prefix = f"Invalid metadata ({', '.join(parts)})" if parts else "Invalid metadata"
        return f"{prefix}: {super().__str__()}"


class LLMProviderError(DomainDiscoveryError, RuntimeError):
    """Raised by LLM providers on transport or API failures."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
