"""
Base interface for domain storage.

A domain store persists the domain registry, the active-domain marker and,
per domain, the full node map and edge list.
"""

from abc import ABC, abstractmethod

from memory_graph.models.domain import DomainInfo, PersistenceState
from memory_graph.models.memory import MemoryNode
from memory_graph.models.relationships import GraphEdge


class DomainStore(ABC):
    """Abstract base class for domain storage implementations."""

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the backend (create directories, tables, indices)."""
        pass

    async def close(self) -> None:
        """Release backend resources."""
        pass

    # ═══════════════════════════════════════════════════════════
    # DOMAIN REGISTRY
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def get_domains(self) -> dict[str, DomainInfo]:
        """
        Load the domain registry.

        Returns:
            Mapping of domain id to DomainInfo (empty when nothing is stored)
        """
        pass

    @abstractmethod
    async def save_domains(self, domains: dict[str, DomainInfo]) -> None:
        """
        Replace the stored domain registry.

        Args:
            domains: Complete registry
        """
        pass

    @abstractmethod
    async def create_domain(self, domain: DomainInfo) -> None:
        """
        Register a domain with an empty memory set.

        Args:
            domain: Domain to create

        Raises:
            ConflictError: If the id is already registered
        """
        pass

    # ═══════════════════════════════════════════════════════════
    # PERSISTENCE MARKER
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def get_persistence_state(self) -> PersistenceState | None:
        """
        Load the active-domain marker.

        Returns:
            PersistenceState or None if never saved
        """
        pass

    @abstractmethod
    async def save_persistence_state(self, state: PersistenceState) -> None:
        pass

    # ═══════════════════════════════════════════════════════════
    # MEMORIES
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def get_memories(self, domain: str) -> tuple[dict[str, MemoryNode], list[GraphEdge]]:
        """
        Load one domain's graph.

        Args:
            domain: Domain id

        Returns:
            (nodes by id, edges); both empty for a domain with no stored data
        """
        pass

    @abstractmethod
    async def save_memories(
        self, domain: str, nodes: dict[str, MemoryNode], edges: list[GraphEdge]
    ) -> None:
        """
        Replace one domain's graph with the given nodes and edges.

        Args:
            domain: Domain id
            nodes: Complete node map
            edges: Complete edge list
        """
        pass

    @abstractmethod
    async def search_content(
        self, query: str, domain: str | None = None, max_results: int = 20
    ) -> list[tuple[str, MemoryNode]]:
        """
        Full-text search over stored memories.

        Args:
            query: Search text
            domain: Restrict to one domain (all domains when None)
            max_results: Result limit

        Returns:
            (domain id, node) pairs, best match first
        """
        pass
