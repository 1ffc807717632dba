"""
Traversal Engine - breadth-first walk across relationships and domain refs.

The walk is an explicit work queue of ``(domain, node_id, depth)``. Nodes are
collected at depths ``0..max_depth`` and only expanded below ``max_depth``.
Visited keys are ``domain:node_id`` and are claimed on enqueue, so a node is
collected at most once no matter how many cycles lead back to it.

Following a domain ref never touches the caller's active context: the target
domain is obtained from ``load_context`` and cached for the rest of the walk.
"""

from collections import deque
from collections.abc import Awaitable, Callable

from memory_graph.core.graph.context import DomainContext
from memory_graph.models.memory import MemoryNode
from memory_graph.models.relationships import GraphEdge, type_value
from memory_graph.models.traversal import (
    CrossDomainConnection,
    TraversalContext,
    TraversalResult,
    TraversedEdge,
    TraverseMemoriesInput,
)
from memory_graph.utils.logger import get_logger

logger = get_logger(__name__)

ContextLoader = Callable[[str], Awaitable[DomainContext | None]]


class _Walk:
    """Mutable state of one traversal."""

    def __init__(self, max_nodes_per_domain: int | None):
        self.cap = max_nodes_per_domain
        self.visited: set[str] = set()
        self.nodes: dict[str, list[MemoryNode]] = {}
        self.edge_keys: set[tuple[str, str, str, str]] = set()
        self.edges: list[TraversedEdge] = []
        self.queue: deque[tuple[str, MemoryNode, int]] = deque()

    def admit(self, domain: str, node: MemoryNode, depth: int) -> bool:
        """
        Collect and enqueue a node unless already visited.

        Returns:
            True if the node is (now or already) part of the result
        """
        key = f"{domain}:{node.id}"
        if key in self.visited:
            return True
        collected = self.nodes.setdefault(domain, [])
        if self.cap is not None and len(collected) >= self.cap:
            return False
        self.visited.add(key)
        collected.append(node)
        self.queue.append((domain, node, depth))
        return True

    def add_edge(self, domain: str, edge: GraphEdge) -> None:
        key = (domain, *edge.key)
        if key in self.edge_keys:
            return
        self.edge_keys.add(key)
        self.edges.append(TraversedEdge(**edge.model_dump(), domain=domain))


class TraversalEngine:
    """Cross-domain breadth-first traversal."""

    def __init__(
        self,
        max_depth: int = 2,
        max_nodes_per_domain: int | None = None,
        follow_domain_pointers: bool = True,
    ):
        """
        Initialize engine.

        Args:
            max_depth: Depth used when a request leaves it unset
            max_nodes_per_domain: Per-domain cap used when a request leaves it unset
            follow_domain_pointers: Whether domain refs are followed by default
        """
        self.max_depth = max_depth
        self.max_nodes_per_domain = max_nodes_per_domain
        self.follow_domain_pointers = follow_domain_pointers

    async def traverse(
        self,
        context: DomainContext,
        request: TraverseMemoriesInput,
        load_context: ContextLoader,
    ) -> TraversalResult:
        """
        Walk the graph from a start node.

        Args:
            context: Active domain, where the walk starts
            request: Start node, depth, filters and pointer options
            load_context: Async callable returning another domain's context,
                or None for an unknown domain

        Returns:
            TraversalResult; empty when the start node does not exist
        """
        max_depth = request.max_depth if request.max_depth is not None else self.max_depth
        cap = (
            request.max_nodes_per_domain
            if request.max_nodes_per_domain is not None
            else self.max_nodes_per_domain
        )
        follow = (
            request.follow_domain_pointers
            if request.follow_domain_pointers is not None
            else self.follow_domain_pointers
        )

        start_id = request.start_node_id
        if start_id is None:
            recent = context.most_recent_node()
            start_id = recent.id if recent else None

        result = TraversalResult(
            context=TraversalContext(starting_point=start_id, depth=max_depth)
        )
        start = context.get_node(start_id) if start_id else None
        if start is None:
            logger.debug(f"Traversal start {start_id!r} not found in {context.domain_id}")
            return result

        allowed = (
            {type_value(t) for t in request.relationship_types}
            if request.relationship_types
            else None
        )
        contexts: dict[str, DomainContext | None] = {context.domain_id: context}

        async def context_for(domain: str) -> DomainContext | None:
            if domain not in contexts:
                contexts[domain] = await load_context(domain)
            return contexts[domain]

        walk = _Walk(cap)
        walk.admit(context.domain_id, start, 0)

        while walk.queue:
            domain, node, depth = walk.queue.popleft()
            if depth >= max_depth:
                continue
            domain_context = contexts[domain]

            for edge in domain_context.relationships.get_node_edges(node.id):
                if allowed is not None and type_value(edge.type) not in allowed:
                    continue
                if request.min_strength is not None and edge.strength < request.min_strength:
                    continue
                neighbour = domain_context.get_node(edge.other_end(node.id))
                if neighbour is None:
                    continue
                if walk.admit(domain, neighbour, depth + 1):
                    walk.add_edge(domain, edge)

            if not follow:
                continue
            for ref in node.domain_refs or []:
                if request.target_domain and ref.domain != request.target_domain:
                    continue
                result.cross_domain_connections.append(
                    CrossDomainConnection(
                        from_domain=domain,
                        from_node_id=node.id,
                        to_domain=ref.domain,
                        to_node_id=ref.node_id,
                        description=ref.description,
                    )
                )
                target_context = await context_for(ref.domain)
                if target_context is None:
                    logger.warning(f"Domain ref from {node.id} names unknown domain {ref.domain}")
                    continue
                target = target_context.get_node(ref.node_id)
                if target is None:
                    logger.warning(f"Domain ref target {ref.domain}:{ref.node_id} not found")
                    continue
                walk.admit(ref.domain, target, depth + 1)

        result.nodes = {domain: nodes for domain, nodes in walk.nodes.items() if nodes}
        result.edges = walk.edges
        result.context.domains = list(result.nodes)

        logger.info(
            f"Traversed {result.node_count} nodes across {len(result.nodes)} domains "
            f"from {context.domain_id}:{start_id}"
        )
        return result
