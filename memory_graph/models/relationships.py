"""
Relationship models and types for the memory graph.

Edge types form a closed enumeration. Free-form strings coming from older data
files or callers are resolved onto it at the boundary; anything that cannot be
resolved is kept as an explicit custom type (a plain lowercase string) which
never takes part in inverse inference.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Annotated

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
)

from memory_graph.models.memory import ensure_utc, utc_now


class RelationshipType(str, Enum):
    """Types of relationships between memories."""

    # Basic semantic
    RELATES_TO = "relates_to"
    SUPPORTS = "supports"
    CONFLICTS_WITH = "conflicts_with"
    CONTRADICTS = "contradicts"
    REFINES = "refines"
    SYNTHESIZES = "synthesizes"

    # Temporal
    FOLLOWS = "follows"
    PRECEDES = "precedes"
    TRIGGERED_BY = "triggered_by"

    # Hierarchical
    CONTAINS = "contains"
    PART_OF = "part_of"
    GENERALIZES = "generalizes"
    SPECIALIZES = "specializes"

    # Causal
    CAUSES = "causes"
    CAUSED_BY = "caused_by"
    ENABLES = "enables"
    PREVENTS = "prevents"

    # Reference
    REFERENCES = "references"
    REFERENCED_BY = "referenced_by"
    EXPLAINS = "explains"
    EXAMPLE_OF = "example_of"
    EXEMPLIFIES = "exemplifies"
    DEFINES = "defines"
    DEFINED_BY = "defined_by"
    IMPLEMENTS = "implements"
    IMPLEMENTED_BY = "implemented_by"

    # Context
    CONTEXT_FOR = "context_for"
    APPLIES_TO = "applies_to"
    SIMILAR_TO = "similar_to"
    ALTERNATIVE_TO = "alternative_to"


class RelationshipTypeInfo(BaseModel):
    """Semantic properties of a relationship type."""

    model_config = ConfigDict(frozen=True)

    type: RelationshipType
    description: str
    is_bidirectional: bool = False
    is_transitive: bool = False
    inverse_type: RelationshipType | None = None
    semantic_weight: float = Field(default=0.5, ge=0.0, le=1.0)


def _info(
    type_: RelationshipType,
    description: str,
    weight: float,
    *,
    bidirectional: bool = False,
    transitive: bool = False,
    inverse: RelationshipType | None = None,
) -> RelationshipTypeInfo:
    # Symmetric types are their own inverse
    if bidirectional:
        inverse = type_
    return RelationshipTypeInfo(
        type=type_,
        description=description,
        is_bidirectional=bidirectional,
        is_transitive=transitive,
        inverse_type=inverse,
        semantic_weight=weight,
    )


_T = RelationshipType

RELATIONSHIP_TYPES: dict[RelationshipType, RelationshipTypeInfo] = {
    info.type: info
    for info in (
        _info(_T.RELATES_TO, "General semantic connection between memories", 0.5, bidirectional=True),
        _info(_T.SUPPORTS, "One memory reinforces or validates another", 0.8, transitive=True),
        _info(_T.CONFLICTS_WITH, "Memories contain contradictory information", 0.9, bidirectional=True),
        _info(_T.CONTRADICTS, "One memory states the opposite of another", 0.9, bidirectional=True),
        _info(_T.REFINES, "One memory clarifies or improves upon another", 0.7, transitive=True),
        _info(_T.SYNTHESIZES, "Memory combines insights from multiple sources", 0.9),
        _info(
            _T.FOLLOWS,
            "Temporal sequence - this memory comes after another",
            0.6,
            transitive=True,
            inverse=_T.PRECEDES,
        ),
        _info(
            _T.PRECEDES,
            "Temporal sequence - this memory comes before another",
            0.6,
            transitive=True,
            inverse=_T.FOLLOWS,
        ),
        _info(_T.TRIGGERED_BY, "This memory was created in response to another", 0.8),
        _info(
            _T.CONTAINS,
            "Hierarchical containment - includes another memory as part",
            0.8,
            transitive=True,
            inverse=_T.PART_OF,
        ),
        _info(
            _T.PART_OF,
            "Hierarchical membership - this memory is part of another",
            0.8,
            transitive=True,
            inverse=_T.CONTAINS,
        ),
        _info(
            _T.GENERALIZES,
            "This memory represents a broader concept than another",
            0.7,
            transitive=True,
            inverse=_T.SPECIALIZES,
        ),
        _info(
            _T.SPECIALIZES,
            "This memory represents a more specific case of another",
            0.7,
            transitive=True,
            inverse=_T.GENERALIZES,
        ),
        _info(
            _T.CAUSES,
            "Causal relationship - this memory describes a cause",
            0.9,
            transitive=True,
            inverse=_T.CAUSED_BY,
        ),
        _info(
            _T.CAUSED_BY,
            "Causal relationship - this memory describes an effect",
            0.9,
            transitive=True,
            inverse=_T.CAUSES,
        ),
        _info(_T.ENABLES, "This memory makes another possible or easier", 0.7, transitive=True),
        _info(_T.PREVENTS, "This memory blocks or inhibits another", 0.8),
        _info(_T.REFERENCES, "This memory cites or mentions another", 0.4, inverse=_T.REFERENCED_BY),
        _info(
            _T.REFERENCED_BY, "This memory is cited or mentioned by another", 0.4, inverse=_T.REFERENCES
        ),
        _info(_T.EXPLAINS, "This memory provides explanation for another", 0.8),
        _info(_T.EXAMPLE_OF, "This memory illustrates a concept from another", 0.6),
        _info(_T.EXEMPLIFIES, "This memory is a concrete instance of another", 0.6),
        _info(_T.DEFINES, "This memory gives the definition of another", 0.8, inverse=_T.DEFINED_BY),
        _info(_T.DEFINED_BY, "This memory is defined by another", 0.8, inverse=_T.DEFINES),
        _info(
            _T.IMPLEMENTS, "This memory realises a design or idea from another", 0.7, inverse=_T.IMPLEMENTED_BY
        ),
        _info(
            _T.IMPLEMENTED_BY, "This memory is realised by another", 0.7, inverse=_T.IMPLEMENTS
        ),
        _info(_T.CONTEXT_FOR, "This memory provides context for understanding another", 0.6),
        _info(_T.APPLIES_TO, "This memory is relevant to a specific situation in another", 0.7),
        _info(_T.SIMILAR_TO, "Memories share common characteristics", 0.6, bidirectional=True),
        _info(
            _T.ALTERNATIVE_TO,
            "Memories represent different approaches to the same problem",
            0.7,
            bidirectional=True,
        ),
    )
}

# Free-form names seen in older data, normalized form -> enumeration member
LEGACY_TYPE_ALIASES: dict[str, RelationshipType] = {
    "related": _T.RELATES_TO,
    "related_to": _T.RELATES_TO,
    "relates": _T.RELATES_TO,
    "relation": _T.RELATES_TO,
    "supported_by": _T.SUPPORTS,
    "support": _T.SUPPORTS,
    "conflicts": _T.CONFLICTS_WITH,
    "conflict": _T.CONFLICTS_WITH,
    "contradiction": _T.CONTRADICTS,
    "contradicts_with": _T.CONTRADICTS,
    "refinement": _T.REFINES,
    "refined_by": _T.REFINES,
    "synthesis": _T.SYNTHESIZES,
    "after": _T.FOLLOWS,
    "next": _T.FOLLOWS,
    "before": _T.PRECEDES,
    "previous": _T.PRECEDES,
    "triggers": _T.TRIGGERED_BY,
    "parent": _T.CONTAINS,
    "parent_of": _T.CONTAINS,
    "child": _T.PART_OF,
    "child_of": _T.PART_OF,
    "belongs_to": _T.PART_OF,
    "generalization": _T.GENERALIZES,
    "specialization": _T.SPECIALIZES,
    "cause": _T.CAUSES,
    "effect": _T.CAUSED_BY,
    "effect_of": _T.CAUSED_BY,
    "enabled_by": _T.ENABLES,
    "blocks": _T.PREVENTS,
    "reference": _T.REFERENCES,
    "refers_to": _T.REFERENCES,
    "cites": _T.REFERENCES,
    "mentions": _T.REFERENCES,
    "explanation": _T.EXPLAINS,
    "explained_by": _T.EXPLAINS,
    "example": _T.EXAMPLE_OF,
    "instance_of": _T.EXEMPLIFIES,
    "definition": _T.DEFINES,
    "definition_of": _T.DEFINES,
    "implementation": _T.IMPLEMENTS,
    "implementation_of": _T.IMPLEMENTS,
    "context": _T.CONTEXT_FOR,
    "applies": _T.APPLIES_TO,
    "similar": _T.SIMILAR_TO,
    "alternative": _T.ALTERNATIVE_TO,
}

CUSTOM_TYPE_WEIGHT = 0.5

_SEPARATORS = re.compile(r"[\s\-]+")


def normalize_type_name(raw: str) -> str:
    """Lowercase a type name and fold spaces and hyphens into underscores."""
    return _SEPARATORS.sub("_", raw.strip()).lower()


def resolve_relationship_type(raw: "RelationshipType | str") -> "RelationshipType | str":
    """
    Map a raw relationship name onto the enumeration.

    Matching is case-insensitive against member values, member names and the
    legacy alias table. Unresolvable names are returned as a normalized custom
    type string.

    Args:
        raw: Enumeration member or free-form name

    Returns:
        RelationshipType member, or the normalized custom name

    Raises:
        ValueError: If the name is empty
    """
    if isinstance(raw, RelationshipType):
        return raw
    if not isinstance(raw, str):
        raise ValueError(f"Relationship type must be a string, got {type(raw).__name__}")

    name = normalize_type_name(raw)
    if not name:
        raise ValueError("Relationship type must not be empty")

    try:
        return RelationshipType(name)
    except ValueError:
        pass
    return LEGACY_TYPE_ALIASES.get(name, name)


def is_custom_type(type_: "RelationshipType | str") -> bool:
    """True for relationship types outside the enumeration."""
    return not isinstance(type_, RelationshipType)


def type_value(type_: "RelationshipType | str") -> str:
    """Wire/storage value of a relationship type."""
    return type_.value if isinstance(type_, RelationshipType) else type_


def get_type_info(type_: "RelationshipType | str") -> RelationshipTypeInfo | None:
    """Type info for enumeration members, None for custom types."""
    if isinstance(type_, RelationshipType):
        return RELATIONSHIP_TYPES[type_]
    return None


def get_inverse_type(type_: "RelationshipType | str") -> RelationshipType | None:
    """Declared inverse of a type; custom types never have one."""
    info = get_type_info(type_)
    return info.inverse_type if info else None


def get_semantic_weight(type_: "RelationshipType | str") -> float:
    info = get_type_info(type_)
    return info.semantic_weight if info else CUSTOM_TYPE_WEIGHT


def clamp_strength(value: float) -> float:
    """Clamp a strength into [0, 1]."""
    return max(0.0, min(1.0, float(value)))


# Relationship type as carried on edges: enumeration member or custom name
EdgeType = Annotated[
    RelationshipType | str,
    BeforeValidator(resolve_relationship_type),
    PlainSerializer(type_value, return_type=str),
]


class RelationshipStrength(BaseModel):
    """
    Multi-dimensional strength of a relationship.

    The composite strength is the mean of whichever sub-scores are supplied.
    """

    semantic: float | None = None
    structural: float | None = None
    temporal: float | None = None
    confidence: float | None = None

    @property
    def composite(self) -> float:
        scores = [
            score
            for score in (self.semantic, self.structural, self.temporal, self.confidence)
            if score is not None
        ]
        if not scores:
            raise ValueError("RelationshipStrength needs at least one sub-score")
        return clamp_strength(sum(scores) / len(scores))


def resolve_strength(strength: "float | RelationshipStrength") -> float:
    """Collapse a float or composite strength to a clamped float."""
    if isinstance(strength, RelationshipStrength):
        return strength.composite
    return clamp_strength(strength)


class RelationshipMetadata(BaseModel):
    """Provenance of an edge."""

    # Unknown keys from older data files are carried through unchanged
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    is_inferred: bool = Field(default=False, alias="isInferred")
    evidence: list[str] | None = None
    inverse_type: EdgeType | None = Field(default=None, alias="inverseType")
    tags: list[str] | None = None


class GraphEdge(BaseModel):
    """
    Directed, typed, weighted edge between two memories of one domain.

    Identity is ``(source, target, type)``; strength is always kept in [0, 1].
    """

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    source: str
    target: str
    type: EdgeType
    strength: float = 1.0
    timestamp: datetime = Field(default_factory=utc_now)
    relationship: RelationshipMetadata | None = None

    @field_validator("strength", mode="before")
    @classmethod
    def _clamp_strength(cls, value: float) -> float:
        return clamp_strength(value)

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @classmethod
    def from_stored(cls, data: dict) -> "GraphEdge":
        """Validate a persisted edge; a type recorded on its relationship wins."""
        relationship = data.get("relationship") if isinstance(data, dict) else None
        if isinstance(relationship, dict) and relationship.get("type"):
            data = {**data, "type": relationship["type"]}
        return cls.model_validate(data)

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.source, self.target, type_value(self.type))

    @property
    def is_inferred(self) -> bool:
        return bool(self.relationship and self.relationship.is_inferred)

    def other_end(self, node_id: str) -> str:
        """Endpoint opposite to ``node_id``."""
        return self.target if self.source == node_id else self.source

    def touches(self, node_id: str) -> bool:
        return self.source == node_id or self.target == node_id
