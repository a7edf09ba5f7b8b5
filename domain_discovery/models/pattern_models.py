"""
Data Models for Detected Patterns
=================================

Input structures produced by the upstream pattern detector: per-file import
and export data plus the implementation idioms found in each file.

Detector metadata arrives as a loose mapping. It is converted here into a
closed set of typed fields and validated once, so the rest of the pipeline
never inspects raw dictionaries.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..errors import PatternMetadataError

logger = logging.getLogger(__name__)


class PatternType(Enum):
    """Kinds of implementation idioms reported by the detector."""

    COMPONENT = "component"
    HOOK = "hook"
    CONTEXT = "context"
    REDUCER = "reducer"
    EFFECT = "effect"
    UNKNOWN = "unknown"


# Wire key (as emitted by the detector) -> PatternMetadata attribute
METADATA_KEYS: dict[str, str] = {
    "props": "props",
    "contextName": "context_name",
    "contextValue": "context_value",
    "hasProvider": "has_provider",
    "stateShape": "state_shape",
    "actions": "actions",
    "isCustomHook": "is_custom_hook",
    "isEntity": "is_entity",
    "entityFields": "entity_fields",
    "isActionType": "is_action_type",
}

# Metadata attributes that carry meaning for each pattern type
KEYS_BY_PATTERN_TYPE: dict[PatternType, set[str]] = {
    PatternType.COMPONENT: {"props"},
    PatternType.HOOK: {"is_custom_hook"},
    PatternType.CONTEXT: {"context_name", "context_value", "has_provider"},
    PatternType.REDUCER: {"state_shape", "actions"},
    PatternType.EFFECT: set(),
    PatternType.UNKNOWN: {"is_entity", "entity_fields", "is_action_type", "actions"},
}


@dataclass
class SourceLocation:
    """Position of a pattern inside its file."""

    file: str = ""
    line: int = 0
    column: int = 0

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {"file": self.file, "line": self.line, "column": self.column}

    @classmethod
    def from_dict(cls, data: dict) -> "SourceLocation":
        """Load from dict."""
        return cls(
            file=data.get("file", ""),
            line=data.get("line", 0),
            column=data.get("column", 0),
        )


@dataclass
class EntityFieldSpec:
    """A field declared by an explicit structural type (interface/type alias)."""

    name: str = ""
    type: str = "unknown"
    optional: bool = False

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {"name": self.name, "type": self.type, "optional": self.optional}

    @classmethod
    def from_dict(cls, data: dict) -> "EntityFieldSpec":
        """Load from dict."""
        return cls(
            name=str(data.get("name", "")),
            type=str(data.get("type", "unknown")),
            optional=bool(data.get("optional", False)),
        )


def _expect(value: Any, expected: type | tuple[type, ...], key: str, pattern: str | None) -> Any:
    if not isinstance(value, expected):
        names = (
            expected.__name__
            if isinstance(expected, type)
            else " or ".join(t.__name__ for t in expected)
        )
        raise PatternMetadataError(
            f"expected {names}, got {type(value).__name__}", key=key, pattern=pattern
        )
    return value


def _expect_str_list(value: Any, key: str, pattern: str | None) -> list[str]:
    items = _expect(value, list, key, pattern)
    for item in items:
        _expect(item, str, key, pattern)
    return list(items)


@dataclass
class PatternMetadata:
    """
    Typed detector metadata.

    Only the documented keys are kept. Each key is meaningful for one or more
    pattern types (see KEYS_BY_PATTERN_TYPE); keys that do not apply to the
    owning pattern are dropped during validation.
    """

    # Component
    props: list[str] = field(default_factory=list)

    # Context
    context_name: str | None = None
    context_value: str | dict | None = None
    has_provider: bool = False

    # Reducer (actions are shared with action-type declarations)
    state_shape: dict[str, str] = field(default_factory=dict)
    actions: list[str] = field(default_factory=list)

    # Hook
    is_custom_hook: bool = False

    # Structural types
    is_entity: bool = False
    entity_fields: list[EntityFieldSpec] = field(default_factory=list)
    is_action_type: bool = False

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "props": self.props,
            "context_name": self.context_name,
            "context_value": self.context_value,
            "has_provider": self.has_provider,
            "state_shape": self.state_shape,
            "actions": self.actions,
            "is_custom_hook": self.is_custom_hook,
            "is_entity": self.is_entity,
            "entity_fields": [f.to_dict() for f in self.entity_fields],
            "is_action_type": self.is_action_type,
        }

    def compact(self) -> dict:
        """Non-empty keys only, for prompts and logs."""
        return {key: value for key, value in self.to_dict().items() if value}

    @classmethod
    def from_dict(
        cls,
        data: dict | None,
        pattern_type: PatternType | None = None,
        pattern_name: str | None = None,
    ) -> "PatternMetadata":
        """
        Validate and load metadata.

        Accepts both the detector's camelCase keys and snake_case keys.

        Args:
            data: Raw metadata mapping
            pattern_type: Owning pattern type, used to drop inapplicable keys
            pattern_name: Owning pattern name, for error messages

        Returns:
            Validated PatternMetadata

        Raises:
            PatternMetadataError: If a documented key carries the wrong type
        """
        if not data:
            return cls()
        _expect(data, dict, "metadata", pattern_name)

        allowed = KEYS_BY_PATTERN_TYPE.get(pattern_type) if pattern_type else None
        values: dict[str, Any] = {}

        for raw_key, raw_value in data.items():
            attr = METADATA_KEYS.get(raw_key, raw_key if raw_key in METADATA_KEYS.values() else None)
            if attr is None:
                logger.debug("Dropping unknown metadata key %r on %s", raw_key, pattern_name)
                continue
            if allowed is not None and attr not in allowed:
                logger.debug(
                    "Dropping metadata key %r not used by %s patterns", raw_key, pattern_type.value
                )
                continue
            if raw_value is None:
                continue
            values[attr] = cls._coerce(attr, raw_value, pattern_name)

        return cls(**values)

    @staticmethod
    def _coerce(attr: str, value: Any, pattern_name: str | None) -> Any:
        if attr in ("props", "actions"):
            return _expect_str_list(value, attr, pattern_name)
        if attr == "context_name":
            return _expect(value, str, attr, pattern_name)
        if attr == "context_value":
            return _expect(value, (str, dict), attr, pattern_name)
        if attr in ("has_provider", "is_custom_hook", "is_entity", "is_action_type"):
            return _expect(value, bool, attr, pattern_name)
        if attr == "state_shape":
            shape = _expect(value, dict, attr, pattern_name)
            # Declared types are strings; anything else is recorded as unknown
            return {str(k): v if isinstance(v, str) else "unknown" for k, v in shape.items()}
        if attr == "entity_fields":
            items = _expect(value, list, attr, pattern_name)
            specs = []
            for item in items:
                if isinstance(item, EntityFieldSpec):
                    specs.append(item)
                else:
                    specs.append(EntityFieldSpec.from_dict(_expect(item, dict, attr, pattern_name)))
            return specs
        raise PatternMetadataError(f"unhandled key {attr}", key=attr, pattern=pattern_name)


@dataclass
class DetectedPattern:
    """A single implementation idiom found in one file."""

    type: PatternType = PatternType.UNKNOWN
    name: str = ""
    location: SourceLocation = field(default_factory=SourceLocation)
    confidence: float = 0.0
    metadata: PatternMetadata = field(default_factory=PatternMetadata)
    needs_review: bool = False

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "type": self.type.value,
            "name": self.name,
            "location": self.location.to_dict(),
            "confidence": self.confidence,
            "metadata": self.metadata.to_dict(),
            "needs_review": self.needs_review,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DetectedPattern":
        """Load from dict, validating type, confidence and metadata."""
        name = data.get("name", "")
        raw_type = data.get("type", PatternType.UNKNOWN.value)
        try:
            pattern_type = PatternType(raw_type)
        except ValueError as e:
            raise PatternMetadataError(f"unknown pattern type {raw_type!r}", key="type", pattern=name) from e

        confidence = data.get("confidence", 0.0)
        if isinstance(confidence, bool):
            raise PatternMetadataError("expected int or float, got bool", key="confidence", pattern=name)
        _expect(confidence, (int, float), "confidence", name)
        if not 0.0 <= confidence <= 1.0:
            raise PatternMetadataError(
                f"confidence {confidence} outside [0, 1]", key="confidence", pattern=name
            )

        needs_review = _expect(
            data.get("needs_review", data.get("needsReview", False)), bool, "needs_review", name
        )

        return cls(
            type=pattern_type,
            name=name,
            location=SourceLocation.from_dict(data.get("location", {})),
            confidence=float(confidence),
            metadata=PatternMetadata.from_dict(data.get("metadata"), pattern_type, name),
            needs_review=needs_review,
        )


@dataclass
class ImportSpecifier:
    """One imported binding."""

    name: str = ""
    alias: str | None = None
    is_default: bool = False
    is_namespace: bool = False

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "name": self.name,
            "alias": self.alias,
            "is_default": self.is_default,
            "is_namespace": self.is_namespace,
        }

    @classmethod
    def from_dict(cls, data: dict | str) -> "ImportSpecifier":
        """Load from dict (or a bare name)."""
        if isinstance(data, str):
            return cls(name=data)
        return cls(
            name=data.get("name", ""),
            alias=data.get("alias"),
            is_default=data.get("is_default", data.get("isDefault", False)),
            is_namespace=data.get("is_namespace", data.get("isNamespace", False)),
        )


@dataclass
class ImportInfo:
    """A single import statement."""

    source: str = ""
    specifiers: list[ImportSpecifier] = field(default_factory=list)
    is_type_only: bool = False
    line: int = 0

    @property
    def names(self) -> list[str]:
        return [spec.name for spec in self.specifiers]

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "source": self.source,
            "specifiers": [spec.to_dict() for spec in self.specifiers],
            "is_type_only": self.is_type_only,
            "line": self.line,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ImportInfo":
        """Load from dict."""
        return cls(
            source=data.get("source", ""),
            specifiers=[ImportSpecifier.from_dict(s) for s in data.get("specifiers", [])],
            is_type_only=data.get("is_type_only", data.get("isTypeOnly", False)),
            line=data.get("line", 0),
        )


@dataclass
class ExportInfo:
    """A single exported binding."""

    name: str = ""
    is_default: bool = False
    is_type_only: bool = False
    line: int = 0

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "name": self.name,
            "is_default": self.is_default,
            "is_type_only": self.is_type_only,
            "line": self.line,
        }

    @classmethod
    def from_dict(cls, data: dict | str) -> "ExportInfo":
        """Load from dict (or a bare name)."""
        if isinstance(data, str):
            return cls(name=data)
        return cls(
            name=data.get("name", ""),
            is_default=data.get("is_default", data.get("isDefault", False)),
            is_type_only=data.get("is_type_only", data.get("isTypeOnly", False)),
            line=data.get("line", 0),
        )


@dataclass
class FileAnalysis:
    """Everything the detector reports for one source file."""

    path: str = ""
    relative_path: str = ""
    imports: list[ImportInfo] = field(default_factory=list)
    exports: list[ExportInfo] = field(default_factory=list)
    patterns: list[DetectedPattern] = field(default_factory=list)

    # File characteristics
    size: int = 0
    confidence: float = 1.0

    @property
    def export_names(self) -> set[str]:
        return {export.name for export in self.exports}

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "path": self.path,
            "relative_path": self.relative_path,
            "imports": [imp.to_dict() for imp in self.imports],
            "exports": [exp.to_dict() for exp in self.exports],
            "patterns": [p.to_dict() for p in self.patterns],
            "size": self.size,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FileAnalysis":
        """Load from dict."""
        path = data.get("path", "")
        return cls(
            path=path,
            relative_path=data.get("relative_path", data.get("relativePath", path)),
            imports=[ImportInfo.from_dict(i) for i in data.get("imports", [])],
            exports=[ExportInfo.from_dict(e) for e in data.get("exports", [])],
            patterns=[DetectedPattern.from_dict(p) for p in data.get("patterns", [])],
            size=data.get("size", 0),
            confidence=data.get("confidence", 1.0),
        )
