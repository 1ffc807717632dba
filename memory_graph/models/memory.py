"""
Memory node model and cross-domain references.
"""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so every timestamp compares consistently."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class DomainRef(BaseModel):
    """Pointer from a node to a node in another (or the same) domain."""

    model_config = ConfigDict(populate_by_name=True)

    domain: str = Field(..., description="Target domain id")
    node_id: str = Field(..., alias="nodeId", description="Node id inside the target domain")
    description: str | None = None
    bidirectional: bool | None = None


class DomainPointer(BaseModel):
    """
    Store-time shorthand for linking a new memory into another domain.

    When ``entry_point_id`` is omitted the most recent memory of the target
    domain is used as the entry point.
    """

    model_config = ConfigDict(populate_by_name=True)

    domain: str
    entry_point_id: str | None = Field(default=None, alias="entryPointId")
    bidirectional: bool = True
    description: str | None = None


class MemoryNode(BaseModel):
    """
    A single stored memory.

    Nodes live inside exactly one domain; ``id`` is unique within it.
    Serialized with camelCase aliases so data files stay compatible.
    """

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    id: str = Field(..., description="Memory id, unique within its domain")
    content: str = Field(..., min_length=1, description="Memory text")
    timestamp: datetime = Field(default_factory=utc_now, description="Creation time (UTC)")
    path: str = Field(default="/", description="Hierarchical organisation path")
    tags: list[str] | None = None
    domain_refs: list[DomainRef] | None = Field(default=None, alias="domainRefs")
    content_summary: str | None = None

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @field_validator("tags")
    @classmethod
    def _unique_tags(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        # Set semantics, first occurrence wins
        return list(dict.fromkeys(value))

    def has_tags(self, tags: list[str]) -> bool:
        """True when this node carries every tag in ``tags``."""
        own = set(self.tags or [])
        return all(tag in own for tag in tags)
