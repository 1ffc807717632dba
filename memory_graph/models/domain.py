"""
Domain registry and persistence marker models.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from memory_graph.models.memory import ensure_utc, utc_now


class DomainInfo(BaseModel):
    """A named, isolated partition of the memory store."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    id: str = Field(..., min_length=1)
    name: str
    description: str = ""
    created: datetime = Field(default_factory=utc_now)
    last_access: datetime = Field(default_factory=utc_now, alias="lastAccess")

    @field_validator("created", "last_access")
    @classmethod
    def _normalize(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class PersistenceState(BaseModel):
    """Which domain was active last, restored on startup."""

    model_config = ConfigDict(populate_by_name=True)

    current_domain: str = Field(..., alias="currentDomain")
    last_access: datetime = Field(default_factory=utc_now, alias="lastAccess")
    last_memory_id: str | None = Field(default=None, alias="lastMemoryId")

    @field_validator("last_access")
    @classmethod
    def _normalize(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class RelationshipStatistics(BaseModel):
    """Aggregate figures over a domain's edge set."""

    model_config = ConfigDict(populate_by_name=True)

    total_relationships: int = Field(default=0, alias="totalRelationships")
    inferred_relationships: int = Field(default=0, alias="inferredRelationships")
    type_distribution: dict[str, int] = Field(default_factory=dict, alias="typeDistribution")
    average_strength: float = Field(default=0.0, alias="averageStrength")


class GraphStatistics(BaseModel):
    """Node and edge figures for one domain."""

    model_config = ConfigDict(populate_by_name=True)

    domain: str
    total_memories: int = Field(default=0, alias="totalMemories")
    relationships: RelationshipStatistics = Field(default_factory=RelationshipStatistics)
    path_distribution: dict[str, int] = Field(default_factory=dict, alias="pathDistribution")
    tag_distribution: dict[str, int] = Field(default_factory=dict, alias="tagDistribution")
