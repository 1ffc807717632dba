"""
Recall request and result models.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from memory_graph.models.memory import MemoryNode, ensure_utc
from memory_graph.models.relationships import EdgeType, GraphEdge


class RecallStrategy(str, Enum):
    """Primary recall strategy."""

    RECENT = "recent"
    RELATED = "related"
    PATH = "path"
    TAG = "tag"
    CONTENT = "content"


class SortBy(str, Enum):
    """Post-recall ordering."""

    RELEVANCE = "relevance"
    DATE = "date"
    STRENGTH = "strength"


class SearchOptions(BaseModel):
    """Content search parameters."""

    model_config = ConfigDict(populate_by_name=True)

    keywords: list[str] | None = None
    fuzzy_match: bool = Field(default=False, alias="fuzzyMatch")
    regex: str | None = None
    case_sensitive: bool = Field(default=False, alias="caseSensitive")


class RecallMemoriesInput(BaseModel):
    """Parameters of a recall call."""

    model_config = ConfigDict(populate_by_name=True)

    # None falls back to the configured recall default
    max_nodes: int | None = Field(default=None, ge=1, alias="maxNodes")
    strategy: RecallStrategy
    start_node_id: str | None = Field(default=None, alias="startNodeId")
    relationship_types: list[EdgeType] | None = Field(default=None, alias="relationshipTypes")
    min_strength: float | None = Field(default=None, ge=0.0, le=1.0, alias="minStrength")
    before: datetime | None = None
    after: datetime | None = None
    path: str | None = None
    tags: list[str] | None = None
    search: SearchOptions | None = None
    combined_strategy: bool = Field(default=False, alias="combinedStrategy")
    sort_by: SortBy | None = Field(default=None, alias="sortBy")

    @field_validator("before", "after")
    @classmethod
    def _normalize(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None


class MatchDetails(BaseModel):
    """Where and how strongly a content search matched."""

    matches: list[str] = Field(default_factory=list)
    positions: list[int] = Field(default_factory=list)
    relevance: float = 0.0


class RecallResult(BaseModel):
    """A recalled node with its relevant edges and score."""

    model_config = ConfigDict(populate_by_name=True)

    node: MemoryNode
    edges: list[GraphEdge] = Field(default_factory=list)
    score: float = 1.0
    match_details: MatchDetails | None = Field(default=None, alias="matchDetails")


class ContentSearchResult(BaseModel):
    """A full-text search hit, possibly from a domain other than the active one."""

    domain: str
    node: MemoryNode
    edges: list[GraphEdge] = Field(default_factory=list)
