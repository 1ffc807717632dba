"""
Recall Engine - selects and ranks memories of one domain.

Strategies: recent, related (BFS over edges), path, tag, content. With
``combined_strategy`` every strategy implied by the request's parameters runs
and results are merged by node id keeping the best score.
"""

from collections import deque

from memory_graph.core.graph.context import DomainContext
from memory_graph.core.graph.text_match import (
    DEFAULT_FUZZY_THRESHOLD,
    compile_pattern,
    match_content,
)
from memory_graph.models.memory import MemoryNode
from memory_graph.models.recall import (
    RecallMemoriesInput,
    RecallResult,
    RecallStrategy,
    SortBy,
)
from memory_graph.models.relationships import GraphEdge, type_value
from memory_graph.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_NODES = 10


class RecallEngine:
    """
    Stateless recall over a DomainContext.

    Missing strategy parameters (no start node, no path, no tags, no search
    terms) yield empty results rather than errors.
    """

    def __init__(
        self,
        fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD,
        default_max_nodes: int = DEFAULT_MAX_NODES,
    ):
        self.fuzzy_threshold = fuzzy_threshold
        self.default_max_nodes = default_max_nodes

    def recall(self, context: DomainContext, request: RecallMemoriesInput) -> list[RecallResult]:
        """
        Recall memories from a domain.

        Args:
            context: Domain to search
            request: Strategy, filters and limits

        Returns:
            At most ``request.max_nodes`` results (``default_max_nodes`` when unset)

        Raises:
            ValidationError: If the search regex does not compile
        """
        if request.max_nodes is None:
            request = request.model_copy(update={"max_nodes": self.default_max_nodes})

        candidates = self._candidates(context, request)

        if request.combined_strategy:
            results = self._combined(context, candidates, request)
        else:
            results = self._run_strategy(request.strategy, context, candidates, request)

        if request.sort_by is not None:
            results = self._sort(results, request.sort_by, context)

        logger.debug(
            f"Recall {request.strategy.value} over {len(candidates)} candidates "
            f"in {context.domain_id} returned {len(results)} results"
        )
        return results[: request.max_nodes]

    # ═══════════════════════════════════════════════════════════
    # FILTERS
    # ═══════════════════════════════════════════════════════════

    @staticmethod
    def _candidates(context: DomainContext, request: RecallMemoriesInput) -> list[MemoryNode]:
        nodes = list(context.nodes.values())
        if request.before is not None:
            nodes = [node for node in nodes if node.timestamp < request.before]
        if request.after is not None:
            nodes = [node for node in nodes if node.timestamp > request.after]
        return nodes

    @staticmethod
    def _relevant_edges(
        context: DomainContext, node_id: str, request: RecallMemoriesInput
    ) -> list[GraphEdge]:
        allowed = (
            {type_value(t) for t in request.relationship_types}
            if request.relationship_types
            else None
        )
        edges = []
        for edge in context.relationships.get_node_edges(node_id):
            if allowed is not None and type_value(edge.type) not in allowed:
                continue
            if request.min_strength is not None and edge.strength < request.min_strength:
                continue
            edges.append(edge)
        return edges

    # ═══════════════════════════════════════════════════════════
    # STRATEGIES
    # ═══════════════════════════════════════════════════════════

    def _run_strategy(
        self,
        strategy: RecallStrategy,
        context: DomainContext,
        candidates: list[MemoryNode],
        request: RecallMemoriesInput,
    ) -> list[RecallResult]:
        if strategy == RecallStrategy.RECENT:
            return self._recent(context, candidates)
        if strategy == RecallStrategy.RELATED:
            return self._related(context, candidates, request)
        if strategy == RecallStrategy.PATH:
            return self._by_path(context, candidates, request.path)
        if strategy == RecallStrategy.TAG:
            return self._by_tags(context, candidates, request.tags)
        return self._by_content(context, candidates, request)

    @staticmethod
    def _recent(context: DomainContext, candidates: list[MemoryNode]) -> list[RecallResult]:
        ordered = sorted(candidates, key=lambda node: node.timestamp, reverse=True)
        return [
            RecallResult(node=node, edges=context.relationships.get_node_edges(node.id), score=1.0)
            for node in ordered
        ]

    def _related(
        self,
        context: DomainContext,
        candidates: list[MemoryNode],
        request: RecallMemoriesInput,
    ) -> list[RecallResult]:
        start = request.start_node_id
        if not start or start not in context.nodes:
            return []

        eligible = {node.id for node in candidates}
        results: list[RecallResult] = []
        visited: set[str] = set()
        queue: deque[tuple[str, int]] = deque([(start, 0)])

        while queue and len(results) < request.max_nodes:
            node_id, depth = queue.popleft()
            if node_id in visited:
                continue
            visited.add(node_id)

            node = context.nodes.get(node_id)
            if node is None:
                continue

            edges = self._relevant_edges(context, node_id, request)
            if edges and node_id in eligible:
                results.append(RecallResult(node=node, edges=edges, score=1.0 / (depth + 1)))

            for edge in edges:
                neighbour = edge.other_end(node_id)
                if neighbour not in visited:
                    queue.append((neighbour, depth + 1))

        return results

    @staticmethod
    def _by_path(
        context: DomainContext, candidates: list[MemoryNode], path: str | None
    ) -> list[RecallResult]:
        if not path:
            return []
        return [
            RecallResult(node=node, edges=context.relationships.get_node_edges(node.id), score=1.0)
            for node in candidates
            if node.path == path
        ]

    @staticmethod
    def _by_tags(
        context: DomainContext, candidates: list[MemoryNode], tags: list[str] | None
    ) -> list[RecallResult]:
        if not tags:
            return []
        return [
            RecallResult(node=node, edges=context.relationships.get_node_edges(node.id), score=1.0)
            for node in candidates
            if node.has_tags(tags)
        ]

    def _by_content(
        self,
        context: DomainContext,
        candidates: list[MemoryNode],
        request: RecallMemoriesInput,
    ) -> list[RecallResult]:
        options = request.search
        if options is None or (not options.keywords and not options.regex):
            return []

        pattern = compile_pattern(options.regex, options.case_sensitive) if options.regex else None

        results = []
        for node in candidates:
            details = match_content(node.content, options, pattern, self.fuzzy_threshold)
            if details is None:
                continue
            results.append(
                RecallResult(
                    node=node,
                    edges=context.relationships.get_node_edges(node.id),
                    score=details.relevance,
                    match_details=details,
                )
            )

        results.sort(key=lambda result: result.score, reverse=True)
        return results

    def _combined(
        self,
        context: DomainContext,
        candidates: list[MemoryNode],
        request: RecallMemoriesInput,
    ) -> list[RecallResult]:
        result_sets = []
        if request.strategy == RecallStrategy.CONTENT or request.search is not None:
            result_sets.append(self._by_content(context, candidates, request))
        if request.path:
            result_sets.append(self._by_path(context, candidates, request.path))
        if request.tags:
            result_sets.append(self._by_tags(context, candidates, request.tags))
        if request.start_node_id:
            result_sets.append(self._related(context, candidates, request))

        merged: dict[str, RecallResult] = {}
        for results in result_sets:
            for result in results:
                existing = merged.get(result.node.id)
                if existing is None or result.score > existing.score:
                    merged[result.node.id] = result
        return list(merged.values())

    # ═══════════════════════════════════════════════════════════
    # ORDERING
    # ═══════════════════════════════════════════════════════════

    @staticmethod
    def _sort(
        results: list[RecallResult], sort_by: SortBy, context: DomainContext
    ) -> list[RecallResult]:
        if sort_by == SortBy.RELEVANCE:
            return sorted(results, key=lambda result: result.score, reverse=True)
        if sort_by == SortBy.DATE:
            return sorted(results, key=lambda result: result.node.timestamp, reverse=True)

        def max_strength(result: RecallResult) -> float:
            edges = context.relationships.get_node_edges(result.node.id)
            return max((edge.strength for edge in edges), default=float("-inf"))

        return sorted(results, key=max_strength, reverse=True)
