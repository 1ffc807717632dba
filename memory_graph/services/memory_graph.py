"""
Memory Graph service - the caller surface.

Brings together:
- Domain registry and the active DomainContext
- Relationship Manager for every edge mutation
- Recall and Traversal engines
- A DomainStore backend

Every mutation writes the active domain's full node and edge set, bumps the
domain's last access time and persists the active-domain marker. A failed
write is reported but in-memory changes are not rolled back.
"""

from collections import Counter
from typing import Any

from memory_graph.config import Config
from memory_graph.core.graph.context import DomainContext
from memory_graph.core.graph.recall import RecallEngine
from memory_graph.core.graph.traversal import TraversalEngine
from memory_graph.core.storage.base import DomainStore
from memory_graph.models.domain import DomainInfo, GraphStatistics, PersistenceState
from memory_graph.models.memory import DomainRef, MemoryNode, utc_now
from memory_graph.models.recall import ContentSearchResult, RecallMemoriesInput, RecallResult
from memory_graph.models.relationships import (
    GraphEdge,
    RelationshipStrength,
    RelationshipType,
    resolve_relationship_type,
    resolve_strength,
)
from memory_graph.models.requests import (
    EditMemoryInput,
    ForgetMemoryInput,
    RelationshipSpec,
    StoreMemoryInput,
)
from memory_graph.models.traversal import TraversalResult, TraverseMemoriesInput
from memory_graph.utils.exceptions import (
    ConflictError,
    MemoryGraphError,
    NotFoundError,
    ValidationError,
)
from memory_graph.utils.id_generator import generate_unique_memory_id
from memory_graph.utils.logger import get_logger

logger = get_logger(__name__)

# (type, target id, strength, evidence)
ResolvedRelationship = tuple[RelationshipType | str, str, float, list[str] | None]


class MemoryGraph:
    """
    Domain-partitioned memory store.

    Features:
    - Store, edit and forget memories with typed, weighted relationships
    - Automatic inverse edges for types that declare one
    - Recall by recency, relationships, path, tags or content
    - Breadth-first traversal that follows cross-domain refs
    - Named domains with a persisted active-domain marker
    """

    def __init__(self, store: DomainStore, config: Config | None = None):
        """
        Initialize service.

        Args:
            store: Storage backend
            config: Configuration (defaults when omitted)
        """
        self.store = store
        self.config = config or Config()

        self.recall_engine = RecallEngine(
            fuzzy_threshold=self.config.recall.fuzzy_threshold,
            default_max_nodes=self.config.recall.default_max_nodes,
        )
        self.traversal_engine = TraversalEngine(
            max_depth=self.config.traversal.max_depth,
            max_nodes_per_domain=self.config.traversal.max_nodes_per_domain,
            follow_domain_pointers=self.config.traversal.follow_domain_pointers,
        )

        self._domains: dict[str, DomainInfo] = {}
        self._context: DomainContext | None = None

    async def initialize(self) -> None:
        """Open storage, ensure a default domain and restore the last active domain."""
        storage = self.config.storage
        await self.store.initialize()

        self._domains = await self.store.get_domains()
        if not self._domains:
            default = DomainInfo(
                id=storage.default_domain,
                name=storage.default_domain_name,
                description=storage.default_domain_description,
            )
            await self.store.create_domain(default)
            self._domains = {default.id: default}
            logger.info(f"Created default domain {default.id}")

        state = await self.store.get_persistence_state()
        if state is not None and state.current_domain in self._domains:
            current = state.current_domain
        elif storage.default_domain in self._domains:
            current = storage.default_domain
        else:
            current = next(iter(self._domains))

        self._context = await self._load_context(current)
        await self._save_persistence()
        logger.info(
            f"Memory graph initialized in domain {current}",
            extra={"nodes": len(self._context.nodes), "edges": len(self._context.relationships)},
        )

    async def close(self) -> None:
        await self.store.close()
        logger.info("Memory graph closed")

    @property
    def context(self) -> DomainContext:
        if self._context is None:
            raise MemoryGraphError("Memory graph not initialized")
        return self._context

    @property
    def current_domain(self) -> str:
        return self.context.domain_id

    # ═══════════════════════════════════════════════════════════
    # PERSISTENCE
    # ═══════════════════════════════════════════════════════════

    async def _load_context(self, domain: str) -> DomainContext:
        nodes, edges = await self.store.get_memories(domain)
        return DomainContext(domain, nodes, edges)

    async def _context_for(self, domain: str) -> DomainContext | None:
        """Context of any registered domain, without switching the active one."""
        if domain not in self._domains:
            return None
        if domain == self.current_domain:
            return self.context
        return await self._load_context(domain)

    async def _save_persistence(self) -> None:
        await self.store.save_persistence_state(
            PersistenceState(
                current_domain=self.current_domain,
                last_access=utc_now(),
                last_memory_id=self.context.last_node_id(),
            )
        )

    async def _save(self) -> None:
        ctx = self.context
        await self.store.save_memories(ctx.domain_id, ctx.nodes, ctx.edges)
        self._domains[ctx.domain_id].last_access = utc_now()
        await self.store.save_domains(self._domains)
        await self._save_persistence()

    # ═══════════════════════════════════════════════════════════
    # DOMAINS
    # ═══════════════════════════════════════════════════════════

    async def create_domain(self, domain_id: str, name: str, description: str = "") -> DomainInfo:
        """
        Register a new, empty domain.

        Raises:
            ConflictError: If the id is taken
            ValidationError: If the id is blank
        """
        if not domain_id or not domain_id.strip():
            raise ValidationError("Domain id must not be empty")
        if domain_id in self._domains:
            raise ConflictError(f"Domain already exists: {domain_id}", context={"domain": domain_id})

        domain = DomainInfo(id=domain_id, name=name, description=description)
        await self.store.create_domain(domain)
        self._domains[domain_id] = domain
        logger.info(f"Created domain {domain_id}")
        return domain

    async def select_domain(self, domain_id: str) -> DomainInfo:
        """
        Make a domain the active one.

        The outgoing domain is saved, the incoming one loaded into a fresh
        context, and the marker persisted.

        Raises:
            NotFoundError: If the domain is not registered
        """
        if domain_id not in self._domains:
            raise NotFoundError(f"Domain not found: {domain_id}", context={"domain": domain_id})

        await self._save()
        self._context = await self._load_context(domain_id)

        domain = self._domains[domain_id]
        domain.last_access = utc_now()
        await self.store.save_domains(self._domains)
        await self._save_persistence()
        logger.info(f"Selected domain {domain_id}")
        return domain

    def list_domains(self) -> list[DomainInfo]:
        return list(self._domains.values())

    def get_domain(self, domain_id: str) -> DomainInfo:
        domain = self._domains.get(domain_id)
        if domain is None:
            raise NotFoundError(f"Domain not found: {domain_id}", context={"domain": domain_id})
        return domain

    # ═══════════════════════════════════════════════════════════
    # MEMORIES
    # ═══════════════════════════════════════════════════════════

    def get_memory(self, memory_id: str) -> MemoryNode:
        node = self.context.get_node(memory_id)
        if node is None:
            raise NotFoundError(f"Memory not found: {memory_id}", context={"memory_id": memory_id})
        return node

    def _resolve_relationships(self, spec: RelationshipSpec | None) -> list[ResolvedRelationship]:
        """Validate requested relationships before anything is mutated."""
        resolved = []
        for type_name, targets in (spec or {}).items():
            try:
                rel_type = resolve_relationship_type(type_name)
                for target in targets:
                    resolved.append(
                        (rel_type, target.target_id, resolve_strength(target.strength), target.evidence)
                    )
            except ValueError as e:
                raise ValidationError(
                    f"Invalid relationship {type_name!r}: {e}", context={"type": type_name}
                ) from e
        return resolved

    def _apply_relationships(self, source: str, relationships: list[ResolvedRelationship]) -> int:
        ctx = self.context
        created = 0
        for rel_type, target_id, strength, evidence in relationships:
            if target_id not in ctx.nodes:
                logger.warning(f"Skipping relationship from {source}: target {target_id} not found")
                continue
            ctx.relationships.add_relationship(source, target_id, rel_type, strength, evidence=evidence)
            created += 1
        return created

    def _check_content(self, content: str) -> None:
        if not content or not content.strip():
            raise ValidationError("Memory content must not be empty")

    async def _resolve_pointer_refs(self, request: StoreMemoryInput) -> list[DomainRef]:
        refs = list(request.domain_refs or [])
        for ref in refs:
            if ref.domain not in self._domains:
                raise ValidationError(
                    f"Domain ref names unknown domain: {ref.domain}", context={"domain": ref.domain}
                )

        pointer = request.domain_pointer
        if pointer is None:
            return refs
        if pointer.domain not in self._domains:
            raise ValidationError(
                f"Domain pointer names unknown domain: {pointer.domain}",
                context={"domain": pointer.domain},
            )

        target_context = await self._context_for(pointer.domain)
        entry_id = pointer.entry_point_id
        if entry_id is None:
            recent = target_context.most_recent_node()
            if recent is None:
                raise ValidationError(
                    f"Domain {pointer.domain} has no memories to point at",
                    context={"domain": pointer.domain},
                )
            entry_id = recent.id
        elif entry_id not in target_context.nodes:
            raise ValidationError(
                f"Entry point {entry_id} not found in domain {pointer.domain}",
                context={"domain": pointer.domain, "node_id": entry_id},
            )

        refs.append(
            DomainRef(
                domain=pointer.domain,
                node_id=entry_id,
                description=pointer.description,
                bidirectional=pointer.bidirectional,
            )
        )
        return refs

    @staticmethod
    def _append_back_ref(target: MemoryNode, back: DomainRef) -> bool:
        existing = target.domain_refs or []
        if any(r.domain == back.domain and r.node_id == back.node_id for r in existing):
            return False
        target.domain_refs = [*existing, back]
        return True

    async def _link_back(self, node: MemoryNode, ref: DomainRef) -> None:
        """Add the reverse domain ref on the referenced node, in its own domain."""
        back = DomainRef(
            domain=self.current_domain,
            node_id=node.id,
            description=ref.description,
            bidirectional=True,
        )
        if ref.domain == self.current_domain:
            target = self.context.get_node(ref.node_id)
            if target is not None:
                self._append_back_ref(target, back)
            return

        target_context = await self._load_context(ref.domain)
        target = target_context.get_node(ref.node_id)
        if target is None:
            logger.warning(f"Cannot link back: {ref.domain}:{ref.node_id} not found")
            return
        if self._append_back_ref(target, back):
            await self.store.save_memories(ref.domain, target_context.nodes, target_context.edges)

    async def store_memory(self, request: StoreMemoryInput) -> MemoryNode:
        """
        Store a new memory in the active domain.

        Relationship targets that do not exist are skipped. Bidirectional
        domain refs also get a reverse ref on the referenced node.

        Returns:
            The stored node

        Raises:
            ValidationError: Blank content, unknown ref domains, bad relationships
        """
        self._check_content(request.content)
        relationships = self._resolve_relationships(request.relationships)
        refs = await self._resolve_pointer_refs(request)

        ctx = self.context
        node = MemoryNode(
            id=generate_unique_memory_id(ctx.nodes),
            content=request.content,
            path=request.path or self.config.storage.default_path,
            tags=request.tags,
            domain_refs=refs or None,
            content_summary=request.content_summary,
        )
        ctx.nodes[node.id] = node
        created = self._apply_relationships(node.id, relationships)

        local_links = [r for r in refs if r.bidirectional and r.domain == self.current_domain]
        for ref in local_links:
            await self._link_back(node, ref)

        await self._save()

        for ref in refs:
            if ref.bidirectional and ref.domain != self.current_domain:
                await self._link_back(node, ref)

        logger.info(
            f"Stored memory {node.id} in {ctx.domain_id}",
            extra={"relationships": created, "domain_refs": len(refs)},
        )
        return node

    async def recall_memories(self, request: RecallMemoriesInput) -> list[RecallResult]:
        """Recall memories from the active domain."""
        return self.recall_engine.recall(self.context, request)

    async def edit_memory(self, request: EditMemoryInput) -> MemoryNode:
        """
        Edit a memory's content and/or replace its outgoing relationships.

        Raises:
            NotFoundError: If the memory does not exist
            ValidationError: Blank content or bad relationships
        """
        node = self.get_memory(request.id)
        if request.content is not None:
            self._check_content(request.content)
        relationships = (
            self._resolve_relationships(request.relationships)
            if request.relationships is not None
            else None
        )

        if request.content is not None:
            node.content = request.content
        if relationships is not None:
            removed = self.context.relationships.remove_outgoing(node.id)
            created = self._apply_relationships(node.id, relationships)
            logger.debug(f"Replaced {removed} relationships of {node.id} with {created}")

        await self._save()
        logger.info(f"Edited memory {node.id}")
        return node

    async def forget_memory(self, request: ForgetMemoryInput) -> bool:
        """
        Delete a memory, and with ``cascade`` its direct neighbours.

        Returns:
            False if the memory does not exist
        """
        ctx = self.context
        if request.id not in ctx.nodes:
            return False

        doomed = {request.id}
        if request.cascade:
            doomed.update(
                edge.other_end(request.id) for edge in ctx.relationships.get_node_edges(request.id)
            )
        for node_id in doomed:
            ctx.nodes.pop(node_id, None)
        purged = ctx.relationships.purge_dangling(ctx.nodes)

        await self._save()
        logger.info(
            f"Forgot {len(doomed)} memories from {ctx.domain_id}",
            extra={"root": request.id, "edges_removed": purged},
        )
        return True

    async def traverse_memories(self, request: TraverseMemoriesInput) -> TraversalResult:
        """Breadth-first traversal from a node of the active domain."""
        return await self.traversal_engine.traverse(self.context, request, self._context_for)

    # ═══════════════════════════════════════════════════════════
    # RELATIONSHIPS
    # ═══════════════════════════════════════════════════════════

    async def add_relationship(
        self,
        source: str,
        target: str,
        rel_type: RelationshipType | str,
        strength: float | RelationshipStrength = 1.0,
        evidence: list[str] | None = None,
    ) -> GraphEdge:
        """
        Create or update one edge between two memories of the active domain.

        Raises:
            NotFoundError: If either endpoint is missing
            ValidationError: Bad type or strength
        """
        self.get_memory(source)
        self.get_memory(target)
        try:
            resolved_type = resolve_relationship_type(rel_type)
            value = resolve_strength(strength)
        except ValueError as e:
            raise ValidationError(f"Invalid relationship: {e}") from e

        edge = self.context.relationships.add_relationship(
            source, target, resolved_type, value, evidence=evidence
        )
        await self._save()
        return edge

    async def remove_relationship(
        self, source: str, target: str, rel_type: RelationshipType | str
    ) -> bool:
        """Remove one edge (and its inferred inverse). Returns whether it existed."""
        try:
            resolved_type = resolve_relationship_type(rel_type)
        except ValueError as e:
            raise ValidationError(f"Invalid relationship: {e}") from e

        removed = self.context.relationships.remove_relationship(source, target, resolved_type)
        if removed:
            await self._save()
        return removed

    # ═══════════════════════════════════════════════════════════
    # SEARCH & STATISTICS
    # ═══════════════════════════════════════════════════════════

    async def search_content(
        self, query: str, domain: str | None = None, max_results: int = 20
    ) -> list[ContentSearchResult]:
        """
        Full-text search through the storage backend.

        Args:
            query: Search text
            domain: Restrict to one domain (all domains when None)
            max_results: Result limit
        """
        if domain is not None and domain not in self._domains:
            raise NotFoundError(f"Domain not found: {domain}", context={"domain": domain})
        if not query.strip():
            return []

        hits = await self.store.search_content(query, domain=domain, max_results=max_results)
        results = []
        for domain_id, node in hits:
            edges = (
                self.context.relationships.get_node_edges(node.id)
                if domain_id == self.current_domain
                else []
            )
            results.append(ContentSearchResult(domain=domain_id, node=node, edges=edges))
        return results

    def get_statistics(self) -> GraphStatistics:
        """Node, edge, path and tag figures for the active domain."""
        ctx = self.context
        nodes = list(ctx.nodes.values())
        return GraphStatistics(
            domain=ctx.domain_id,
            total_memories=len(nodes),
            relationships=ctx.relationships.get_statistics(),
            path_distribution=dict(Counter(node.path for node in nodes)),
            tag_distribution=dict(Counter(tag for node in nodes for tag in node.tags or [])),
        )

    def describe(self) -> dict[str, Any]:
        return {
            "current_domain": self.current_domain,
            "domains": len(self._domains),
            "memories": len(self.context.nodes),
            "relationships": len(self.context.relationships),
        }
