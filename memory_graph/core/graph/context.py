"""
Domain context - the loaded graph of one domain.
"""

from collections.abc import Iterable

from memory_graph.core.graph.relationship_manager import RelationshipManager
from memory_graph.models.memory import MemoryNode
from memory_graph.models.relationships import GraphEdge


class DomainContext:
    """
    Nodes and edges of a single domain.

    Switching domains builds a new context; engines receive the context they
    operate on explicitly.
    """

    def __init__(
        self,
        domain_id: str,
        nodes: dict[str, MemoryNode] | None = None,
        edges: Iterable[GraphEdge] | None = None,
    ):
        self.domain_id = domain_id
        self.nodes: dict[str, MemoryNode] = dict(nodes or {})
        self.relationships = RelationshipManager(edges)

    def __repr__(self) -> str:
        return (
            f"DomainContext(domain_id={self.domain_id!r}, nodes={len(self.nodes)}, "
            f"edges={len(self.relationships)})"
        )

    @property
    def edges(self) -> list[GraphEdge]:
        return self.relationships.get_all_edges()

    def get_node(self, node_id: str) -> MemoryNode | None:
        return self.nodes.get(node_id)

    def most_recent_node(self) -> MemoryNode | None:
        """Newest node by timestamp, None for an empty domain."""
        if not self.nodes:
            return None
        return max(self.nodes.values(), key=lambda node: node.timestamp)

    def last_node_id(self) -> str | None:
        """Id of the most recently inserted node."""
        return next(reversed(self.nodes), None)
