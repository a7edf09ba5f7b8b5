"""
Data Models for Schema Proposals
================================

Path-addressed drafts of a domain's entities, state and intents, plus the
explicit validation results used wherever a structural check can fail.
"""

from dataclasses import dataclass, field


@dataclass
class ValidationResult:
    """Outcome of a structural check. Failures are values, not exceptions."""

    valid: bool = True
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {"valid": self.valid, "errors": self.errors}


@dataclass
class SchemaFieldProposal:
    """A single proposed schema field, addressed by `<domain>.<section>...`."""

    path: str = ""
    type: str = "unknown"
    description: str | None = None
    source: str = ""
    confidence: float = 0.0

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "path": self.path,
            "type": self.type,
            "description": self.description,
            "source": self.source,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SchemaFieldProposal":
        """Load from dict."""
        return cls(
            path=data.get("path", ""),
            type=data.get("type", "unknown"),
            description=data.get("description"),
            source=data.get("source", ""),
            confidence=data.get("confidence", 0.0),
        )


@dataclass
class SchemaProposal:
    """Draft schema for one domain, ready for human review or generation."""

    id: str = ""
    domain_id: str = ""
    domain_name: str = ""

    # Sections
    entities: list[SchemaFieldProposal] = field(default_factory=list)
    state: list[SchemaFieldProposal] = field(default_factory=list)
    intents: list[SchemaFieldProposal] = field(default_factory=list)

    # Quality
    confidence: float = 0.0
    alternatives: list["SchemaProposal"] = field(default_factory=list)
    review_notes: list[str] = field(default_factory=list)
    needs_review: bool = False

    @property
    def all_fields(self) -> list[SchemaFieldProposal]:
        return [*self.entities, *self.state, *self.intents]

    def get_field(self, path: str) -> SchemaFieldProposal | None:
        """Get a field by its path."""
        for proposal_field in self.all_fields:
            if proposal_field.path == path:
                return proposal_field
        return None

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "id": self.id,
            "domain_id": self.domain_id,
            "domain_name": self.domain_name,
            "entities": [f.to_dict() for f in self.entities],
            "state": [f.to_dict() for f in self.state],
            "intents": [f.to_dict() for f in self.intents],
            "confidence": self.confidence,
            "alternatives": [alt.to_dict() for alt in self.alternatives],
            "review_notes": self.review_notes,
            "needs_review": self.needs_review,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SchemaProposal":
        """Load from dict."""
        return cls(
            id=data.get("id", ""),
            domain_id=data.get("domain_id", ""),
            domain_name=data.get("domain_name", ""),
            entities=[SchemaFieldProposal.from_dict(f) for f in data.get("entities", [])],
            state=[SchemaFieldProposal.from_dict(f) for f in data.get("state", [])],
            intents=[SchemaFieldProposal.from_dict(f) for f in data.get("intents", [])],
            confidence=data.get("confidence", 0.0),
            alternatives=[cls.from_dict(alt) for alt in data.get("alternatives", [])],
            review_notes=data.get("review_notes", []),
            needs_review=data.get("needs_review", False),
        )


@dataclass
class ProposalMergeResult:
    """Result of merging several proposals for the same domain."""

    proposal: SchemaProposal | None = None
    validation: ValidationResult = field(default_factory=ValidationResult)

    @property
    def valid(self) -> bool:
        return self.validation.valid
