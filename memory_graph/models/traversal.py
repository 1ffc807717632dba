"""
Traversal request and result models.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from memory_graph.models.memory import MemoryNode
from memory_graph.models.relationships import EdgeType, GraphEdge


class ResolutionDepth(str, Enum):
    """How much detail the narrative renderer includes."""

    MINIMAL = "minimal"
    STANDARD = "standard"
    DETAILED = "detailed"
    COMPREHENSIVE = "comprehensive"


class TraverseMemoriesInput(BaseModel):
    """
    Parameters of a traversal.

    ``max_depth`` and ``max_nodes_per_domain`` fall back to configured
    defaults when left unset.
    """

    model_config = ConfigDict(populate_by_name=True)

    start_node_id: str | None = Field(default=None, alias="startNodeId")
    max_depth: int | None = Field(default=None, ge=0, alias="maxDepth")
    follow_domain_pointers: bool | None = Field(default=None, alias="followDomainPointers")
    target_domain: str | None = Field(default=None, alias="targetDomain")
    max_nodes_per_domain: int | None = Field(default=None, ge=1, alias="maxNodesPerDomain")
    relationship_types: list[EdgeType] | None = Field(default=None, alias="relationshipTypes")
    min_strength: float | None = Field(default=None, ge=0.0, le=1.0, alias="minStrength")
    resolution_depth: ResolutionDepth = Field(
        default=ResolutionDepth.STANDARD, alias="resolutionDepth"
    )


class CrossDomainConnection(BaseModel):
    """A followed domain ref."""

    model_config = ConfigDict(populate_by_name=True)

    from_domain: str = Field(..., alias="fromDomain")
    from_node_id: str = Field(..., alias="fromNodeId")
    to_domain: str = Field(..., alias="toDomain")
    to_node_id: str = Field(..., alias="toNodeId")
    description: str | None = None


class TraversedEdge(GraphEdge):
    """Edge tagged with the domain it was found in."""

    domain: str


class TraversalContext(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    starting_point: str | None = Field(default=None, alias="startingPoint")
    depth: int = 0
    domains: list[str] = Field(default_factory=list)


class TraversalResult(BaseModel):
    """Nodes grouped by domain, the edges between them, and followed refs."""

    model_config = ConfigDict(populate_by_name=True)

    nodes: dict[str, list[MemoryNode]] = Field(default_factory=dict)
    edges: list[TraversedEdge] = Field(default_factory=list)
    cross_domain_connections: list[CrossDomainConnection] = Field(
        default_factory=list, alias="crossDomainConnections"
    )
    context: TraversalContext = Field(default_factory=TraversalContext)

    @property
    def node_count(self) -> int:
        return sum(len(nodes) for nodes in self.nodes.values())

    def all_nodes(self) -> list[MemoryNode]:
        return [node for nodes in self.nodes.values() for node in nodes]

    def find_node(self, domain: str, node_id: str) -> MemoryNode | None:
        for node in self.nodes.get(domain, []):
            if node.id == node_id:
                return node
        return None
