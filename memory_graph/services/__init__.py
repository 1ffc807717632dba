"""Service layer for Memory Graph."""

from memory_graph.services.memory_graph import MemoryGraph

__all__ = ["MemoryGraph"]
