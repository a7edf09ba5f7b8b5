"""
Data Models for Domain Discovery
================================

Core data structures for domain candidates, ambiguity findings, domain
summaries, inter-domain relationships and conflicts.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum

from .pattern_models import DetectedPattern


def generate_id(prefix: str) -> str:
    """Short random identifier with a readable prefix."""
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


class SuggestedBy(Enum):
    """Heuristic that proposed a domain candidate."""

    CONTEXT = "context"
    REDUCER = "reducer"
    HOOK = "hook"
    FILE_STRUCTURE = "file_structure"
    LLM = "llm"


class ResolutionAction(Enum):
    """Actions a reviewer can pick for an ambiguity or a conflict."""

    CLASSIFY_AS = "classify_as"
    SPLIT = "split"
    SKIP = "skip"
    ASSIGN = "assign"
    RENAME = "rename"
    MERGE = "merge"
    KEEP = "keep"


class EntityKind(Enum):
    """Kinds of extracted entities."""

    ENTITY = "entity"
    VALUE_OBJECT = "value_object"
    ENUM = "enum"


class ActionType(Enum):
    """Intent classification."""

    COMMAND = "command"
    QUERY = "query"
    EVENT = "event"


class RelationshipType(Enum):
    """Types of relationships between domains."""

    DEPENDENCY = "dependency"
    SHARED_STATE = "shared_state"
    EVENT_FLOW = "event_flow"
    COMPOSITION = "composition"


class ConflictType(Enum):
    """Types of conflicts between domains."""

    OWNERSHIP = "ownership"
    NAMING = "naming"
    BOUNDARY = "boundary"


@dataclass
class CandidateRelationship:
    """A hint that two candidates are related."""

    target_id: str = ""
    type: str = "imports"  # "imports" or "shared_state"
    strength: float = 0.0

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {"target_id": self.target_id, "type": self.type, "strength": self.strength}

    @classmethod
    def from_dict(cls, data: dict) -> "CandidateRelationship":
        """Load from dict."""
        return cls(
            target_id=data.get("target_id", ""),
            type=data.get("type", "imports"),
            strength=data.get("strength", 0.0),
        )


@dataclass
class DomainCandidate:
    """A named domain proposed by one of the extraction heuristics."""

    id: str = ""
    name: str = ""
    suggested_by: SuggestedBy = SuggestedBy.FILE_STRUCTURE
    source_files: list[str] = field(default_factory=list)
    patterns: list[DetectedPattern] = field(default_factory=list)
    confidence: float = 0.0
    relationships: list[CandidateRelationship] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "id": self.id,
            "name": self.name,
            "suggested_by": self.suggested_by.value,
            "source_files": self.source_files,
            "patterns": [p.to_dict() for p in self.patterns],
            "confidence": self.confidence,
            "relationships": [r.to_dict() for r in self.relationships],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DomainCandidate":
        """Load from dict."""
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            suggested_by=SuggestedBy(data.get("suggested_by", SuggestedBy.FILE_STRUCTURE.value)),
            source_files=data.get("source_files", []),
            patterns=[DetectedPattern.from_dict(p) for p in data.get("patterns", [])],
            confidence=data.get("confidence", 0.0),
            relationships=[CandidateRelationship.from_dict(r) for r in data.get("relationships", [])],
        )


@dataclass
class SuggestedResolution:
    """One reviewer-selectable way to settle an ambiguity or conflict."""

    id: str = ""
    action: ResolutionAction = ResolutionAction.SKIP
    label: str = ""
    params: dict = field(default_factory=dict)
    confidence: float = 0.0

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "id": self.id,
            "action": self.action.value,
            "label": self.label,
            "params": self.params,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SuggestedResolution":
        """Load from dict."""
        return cls(
            id=data.get("id", ""),
            action=ResolutionAction(data.get("action", ResolutionAction.SKIP.value)),
            label=data.get("label", ""),
            params=data.get("params", {}),
            confidence=data.get("confidence", 0.0),
        )


@dataclass
class AmbiguousPattern:
    """A pattern (or file) that needs a human decision before clustering."""

    id: str = ""
    file: str = ""
    pattern: DetectedPattern | None = None
    reasons: list[str] = field(default_factory=list)
    candidate_ids: list[str] = field(default_factory=list)
    suggested_resolutions: list[SuggestedResolution] = field(default_factory=list)

    @property
    def description(self) -> str:
        subject = self.pattern.name if self.pattern else self.file
        return f"{subject}: {'; '.join(self.reasons)}"

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "id": self.id,
            "file": self.file,
            "pattern": self.pattern.to_dict() if self.pattern else None,
            "reasons": self.reasons,
            "candidate_ids": self.candidate_ids,
            "suggested_resolutions": [r.to_dict() for r in self.suggested_resolutions],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AmbiguousPattern":
        """Load from dict."""
        pattern = data.get("pattern")
        return cls(
            id=data.get("id", ""),
            file=data.get("file", ""),
            pattern=DetectedPattern.from_dict(pattern) if pattern else None,
            reasons=data.get("reasons", []),
            candidate_ids=data.get("candidate_ids", []),
            suggested_resolutions=[
                SuggestedResolution.from_dict(r) for r in data.get("suggested_resolutions", [])
            ],
        )


@dataclass
class ExtractedField:
    """A field of an extracted entity."""

    name: str = ""
    type: str = "unknown"
    optional: bool = False
    description: str | None = None

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "name": self.name,
            "type": self.type,
            "optional": self.optional,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ExtractedField":
        """Load from dict."""
        return cls(
            name=data.get("name", ""),
            type=data.get("type", "unknown"),
            optional=data.get("optional", False),
            description=data.get("description"),
        )


@dataclass
class ExtractedEntity:
    """A data structure mined from one or more patterns."""

    id: str = ""
    name: str = ""
    type: EntityKind = EntityKind.ENTITY
    fields: list[ExtractedField] = field(default_factory=list)
    source_patterns: list[str] = field(default_factory=list)
    confidence: float = 0.0

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "fields": [f.to_dict() for f in self.fields],
            "source_patterns": self.source_patterns,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ExtractedEntity":
        """Load from dict."""
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            type=EntityKind(data.get("type", EntityKind.ENTITY.value)),
            fields=[ExtractedField.from_dict(f) for f in data.get("fields", [])],
            source_patterns=data.get("source_patterns", []),
            confidence=data.get("confidence", 0.0),
        )


@dataclass
class ExtractedAction:
    """A command, query or event mined from one or more patterns."""

    id: str = ""
    name: str = ""
    type: ActionType = ActionType.COMMAND
    source_patterns: list[str] = field(default_factory=list)
    confidence: float = 0.0

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "source_patterns": self.source_patterns,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ExtractedAction":
        """Load from dict."""
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            type=ActionType(data.get("type", ActionType.COMMAND.value)),
            source_patterns=data.get("source_patterns", []),
            confidence=data.get("confidence", 0.0),
        )


@dataclass
class DomainBoundary:
    """What a domain pulls in, hands out and shares."""

    imports: list[str] = field(default_factory=list)  # names of domains imported from
    exports: list[str] = field(default_factory=list)  # names of domains importing this one
    shared_state: list[str] = field(default_factory=list)  # entity names shared with others

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "imports": self.imports,
            "exports": self.exports,
            "shared_state": self.shared_state,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DomainBoundary":
        """Load from dict."""
        return cls(
            imports=data.get("imports", []),
            exports=data.get("exports", []),
            shared_state=data.get("shared_state", []),
        )


@dataclass
class DomainSummary:
    """Authoritative description of a discovered domain."""

    id: str = ""
    name: str = ""
    description: str = ""
    source_files: list[str] = field(default_factory=list)
    entities: list[ExtractedEntity] = field(default_factory=list)
    actions: list[ExtractedAction] = field(default_factory=list)
    boundaries: DomainBoundary = field(default_factory=DomainBoundary)

    # Provenance and review
    suggested_by: str = ""  # candidate id, "clustering", "merge" or "split"
    confidence: float = 0.0
    needs_review: bool = False
    review_notes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "source_files": self.source_files,
            "entities": [e.to_dict() for e in self.entities],
            "actions": [a.to_dict() for a in self.actions],
            "boundaries": self.boundaries.to_dict(),
            "suggested_by": self.suggested_by,
            "confidence": self.confidence,
            "needs_review": self.needs_review,
            "review_notes": self.review_notes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DomainSummary":
        """Load from dict."""
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            description=data.get("description", ""),
            source_files=data.get("source_files", []),
            entities=[ExtractedEntity.from_dict(e) for e in data.get("entities", [])],
            actions=[ExtractedAction.from_dict(a) for a in data.get("actions", [])],
            boundaries=DomainBoundary.from_dict(data.get("boundaries", {})),
            suggested_by=data.get("suggested_by", ""),
            confidence=data.get("confidence", 0.0),
            needs_review=data.get("needs_review", False),
            review_notes=data.get("review_notes", []),
        )


@dataclass
class DomainRelationship:
    """Directed relationship between two domains."""

    id: str = ""
    type: RelationshipType = RelationshipType.DEPENDENCY
    from_domain: str = ""
    to_domain: str = ""
    strength: float = 0.0
    evidence: list[str] = field(default_factory=list)
    description: str = ""

    def involves(self, domain_id: str) -> bool:
        return domain_id in (self.from_domain, self.to_domain)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "id": self.id,
            "type": self.type.value,
            "from": self.from_domain,
            "to": self.to_domain,
            "strength": self.strength,
            "evidence": self.evidence,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DomainRelationship":
        """Load from dict."""
        return cls(
            id=data.get("id", ""),
            type=RelationshipType(data.get("type", RelationshipType.DEPENDENCY.value)),
            from_domain=data.get("from", ""),
            to_domain=data.get("to", ""),
            strength=data.get("strength", 0.0),
            evidence=data.get("evidence", []),
            description=data.get("description", ""),
        )


@dataclass
class DomainConflict:
    """An ownership, naming or boundary problem awaiting a decision."""

    id: str = ""
    type: ConflictType = ConflictType.OWNERSHIP
    domains: list[str] = field(default_factory=list)
    file: str | None = None
    description: str = ""
    suggested_resolutions: list[SuggestedResolution] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "id": self.id,
            "type": self.type.value,
            "domains": self.domains,
            "file": self.file,
            "description": self.description,
            "suggested_resolutions": [r.to_dict() for r in self.suggested_resolutions],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DomainConflict":
        """Load from dict."""
        return cls(
            id=data.get("id", ""),
            type=ConflictType(data.get("type", ConflictType.OWNERSHIP.value)),
            domains=data.get("domains", []),
            file=data.get("file"),
            description=data.get("description", ""),
            suggested_resolutions=[
                SuggestedResolution.from_dict(r) for r in data.get("suggested_resolutions", [])
            ],
        )
