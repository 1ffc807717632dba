"""
Data models for Memory Graph.

Core models:
- MemoryNode, DomainRef, DomainPointer: stored memories and cross-domain links
- RelationshipType, GraphEdge, RelationshipMetadata, RelationshipStrength: edges
- DomainInfo, PersistenceState: domain registry and active-domain marker
- RecallMemoriesInput, RecallResult, MatchDetails: recall
- TraverseMemoriesInput, TraversalResult, CrossDomainConnection: traversal
- StoreMemoryInput, EditMemoryInput, ForgetMemoryInput: mutations
"""

from memory_graph.models.domain import (
    DomainInfo,
    GraphStatistics,
    PersistenceState,
    RelationshipStatistics,
)
from memory_graph.models.memory import (
    DomainPointer,
    DomainRef,
    MemoryNode,
    ensure_utc,
    utc_now,
)
from memory_graph.models.recall import (
    ContentSearchResult,
    MatchDetails,
    RecallMemoriesInput,
    RecallResult,
    RecallStrategy,
    SearchOptions,
    SortBy,
)
from memory_graph.models.relationships import (
    RELATIONSHIP_TYPES,
    EdgeType,
    GraphEdge,
    RelationshipMetadata,
    RelationshipStrength,
    RelationshipType,
    RelationshipTypeInfo,
    get_inverse_type,
    get_semantic_weight,
    get_type_info,
    is_custom_type,
    resolve_relationship_type,
    resolve_strength,
    type_value,
)
from memory_graph.models.requests import (
    EditMemoryInput,
    ForgetMemoryInput,
    RelationshipSpec,
    RelationshipTarget,
    StoreMemoryInput,
)
from memory_graph.models.traversal import (
    CrossDomainConnection,
    ResolutionDepth,
    TraversalContext,
    TraversalResult,
    TraversedEdge,
    TraverseMemoriesInput,
)

__all__ = [
    # Memory models
    "MemoryNode",
    "DomainRef",
    "DomainPointer",
    "utc_now",
    "ensure_utc",
    # Relationship models
    "RelationshipType",
    "RelationshipTypeInfo",
    "RELATIONSHIP_TYPES",
    "EdgeType",
    "GraphEdge",
    "RelationshipMetadata",
    "RelationshipStrength",
    "resolve_relationship_type",
    "resolve_strength",
    "is_custom_type",
    "type_value",
    "get_type_info",
    "get_inverse_type",
    "get_semantic_weight",
    # Domain models
    "DomainInfo",
    "PersistenceState",
    "RelationshipStatistics",
    "GraphStatistics",
    # Recall
    "RecallStrategy",
    "SortBy",
    "SearchOptions",
    "RecallMemoriesInput",
    "MatchDetails",
    "RecallResult",
    "ContentSearchResult",
    # Traversal
    "TraverseMemoriesInput",
    "TraversalResult",
    "TraversalContext",
    "TraversedEdge",
    "CrossDomainConnection",
    "ResolutionDepth",
    # Mutations
    "StoreMemoryInput",
    "EditMemoryInput",
    "ForgetMemoryInput",
    "RelationshipTarget",
    "RelationshipSpec",
]
