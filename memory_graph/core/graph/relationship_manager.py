"""
Relationship Manager - owns the edge set of one domain.

Every edge creation and removal goes through here so that inverse edges stay
consistent: adding an edge whose type declares an inverse also adds the
inferred inverse, and removing it takes the inferred inverse with it.
"""

from collections import Counter
from collections.abc import Iterable

from memory_graph.models.domain import RelationshipStatistics
from memory_graph.models.memory import utc_now
from memory_graph.models.relationships import (
    GraphEdge,
    RelationshipMetadata,
    RelationshipStrength,
    RelationshipType,
    get_inverse_type,
    resolve_relationship_type,
    resolve_strength,
    type_value,
)
from memory_graph.utils.logger import get_logger

logger = get_logger(__name__)

EdgeKey = tuple[str, str, str]


class RelationshipManager:
    """
    Authoritative, insertion-ordered edge set keyed by ``(source, target, type)``.

    The manager does not know about nodes; callers check endpoints exist
    before adding edges.
    """

    def __init__(self, edges: Iterable[GraphEdge] | None = None):
        """
        Initialize manager.

        Args:
            edges: Existing edges to load. Loading never infers inverses and
                duplicate triples collapse onto the last occurrence.
        """
        self._edges: dict[EdgeKey, GraphEdge] = {}
        for edge in edges or []:
            self._edges[edge.key] = edge

    def __len__(self) -> int:
        return len(self._edges)

    def __contains__(self, key: EdgeKey) -> bool:
        return key in self._edges

    @staticmethod
    def _key(source: str, target: str, type_: RelationshipType | str) -> EdgeKey:
        return (source, target, type_value(type_))

    def get_edge(
        self, source: str, target: str, type_: RelationshipType | str
    ) -> GraphEdge | None:
        return self._edges.get(self._key(source, target, resolve_relationship_type(type_)))

    # ═══════════════════════════════════════════════════════════
    # MUTATIONS
    # ═══════════════════════════════════════════════════════════

    def add_relationship(
        self,
        source: str,
        target: str,
        type_: RelationshipType | str,
        strength: float | RelationshipStrength = 1.0,
        evidence: list[str] | None = None,
        tags: list[str] | None = None,
        skip_inference: bool = False,
    ) -> GraphEdge:
        """
        Create or update an edge and its inferred inverse.

        Args:
            source: Source node id
            target: Target node id
            type_: Relationship type (enumeration member or free-form name)
            strength: Plain strength or multi-dimensional strength
            evidence: Optional supporting evidence
            tags: Optional edge tags
            skip_inference: Do not create an inverse edge

        Returns:
            The forward edge
        """
        rel_type = resolve_relationship_type(type_)
        value = resolve_strength(strength)
        now = utc_now()
        metadata = RelationshipMetadata(is_inferred=False, evidence=evidence, tags=tags)

        key = self._key(source, target, rel_type)
        edge = self._edges.get(key)
        if edge is not None:
            # Upsert: identity is the triple, last write wins
            edge.strength = value
            edge.timestamp = now
            edge.relationship = metadata
        else:
            edge = GraphEdge(
                source=source,
                target=target,
                type=rel_type,
                strength=value,
                timestamp=now,
                relationship=metadata,
            )
            self._edges[key] = edge

        inverse_type = get_inverse_type(rel_type)
        if inverse_type is not None and not skip_inference:
            self._ensure_inverse(edge, inverse_type)

        logger.debug(
            f"Added relationship {source} -[{type_value(rel_type)}]-> {target}",
            extra={"strength": value},
        )
        return edge

    def _ensure_inverse(self, edge: GraphEdge, inverse_type: RelationshipType) -> None:
        inverse_key = self._key(edge.target, edge.source, inverse_type)
        existing = self._edges.get(inverse_key)
        # A symmetric self-loop finds itself here
        if existing is not None:
            if existing.is_inferred:
                existing.strength = edge.strength
                existing.timestamp = edge.timestamp
            return

        self._edges[inverse_key] = GraphEdge(
            source=edge.target,
            target=edge.source,
            type=inverse_type,
            strength=edge.strength,
            timestamp=edge.timestamp,
            relationship=RelationshipMetadata(
                is_inferred=True,
                evidence=[f"Inverse of {type_value(edge.type)} relationship"],
                inverse_type=edge.type,
            ),
        )

    def remove_relationship(self, source: str, target: str, type_: RelationshipType | str) -> bool:
        """
        Remove an edge and, if present, its inferred inverse.

        A manually created inverse is left in place.

        Returns:
            True if the forward edge existed
        """
        rel_type = resolve_relationship_type(type_)
        edge = self._edges.pop(self._key(source, target, rel_type), None)
        if edge is None:
            return False

        inverse_type = get_inverse_type(rel_type)
        if inverse_type is not None:
            inverse_key = self._key(target, source, inverse_type)
            inverse = self._edges.get(inverse_key)
            if inverse is not None and inverse.is_inferred:
                del self._edges[inverse_key]

        logger.debug(f"Removed relationship {source} -[{type_value(rel_type)}]-> {target}")
        return True

    def remove_outgoing(self, node_id: str) -> int:
        """
        Remove every declared (non-inferred) outgoing edge of a node.

        Returns:
            Number of forward edges removed
        """
        declared = [
            edge for edge in self._edges.values() if edge.source == node_id and not edge.is_inferred
        ]
        for edge in declared:
            self.remove_relationship(edge.source, edge.target, edge.type)
        return len(declared)

    def purge_dangling(self, node_ids: Iterable[str]) -> int:
        """Drop edges with an endpoint outside ``node_ids``."""
        alive = set(node_ids)
        doomed = [
            key
            for key, edge in self._edges.items()
            if edge.source not in alive or edge.target not in alive
        ]
        for key in doomed:
            del self._edges[key]
        if doomed:
            logger.debug(f"Purged {len(doomed)} dangling edges")
        return len(doomed)

    # ═══════════════════════════════════════════════════════════
    # QUERIES
    # ═══════════════════════════════════════════════════════════

    def get_node_edges(self, node_id: str) -> list[GraphEdge]:
        """Edges where the node is source or target."""
        return [edge for edge in self._edges.values() if edge.touches(node_id)]

    def get_edges_between(self, source: str, target: str) -> list[GraphEdge]:
        """Edges directed from ``source`` to ``target``."""
        return [
            edge for edge in self._edges.values() if edge.source == source and edge.target == target
        ]

    def get_all_edges(self) -> list[GraphEdge]:
        return list(self._edges.values())

    def get_statistics(self) -> RelationshipStatistics:
        edges = self.get_all_edges()
        if not edges:
            return RelationshipStatistics()

        return RelationshipStatistics(
            total_relationships=len(edges),
            inferred_relationships=sum(1 for edge in edges if edge.is_inferred),
            type_distribution=dict(Counter(type_value(edge.type) for edge in edges)),
            average_strength=sum(edge.strength for edge in edges) / len(edges),
        )
