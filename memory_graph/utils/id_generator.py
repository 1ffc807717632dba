"""
ID generation utilities for Memory Graph.

Memory ids are opaque strings, unique within a domain:
- Memories: mem_xxx
"""

from collections.abc import Container
from uuid import uuid4


def generate_memory_id() -> str:
    """
    Generate unique Memory ID.

    Returns:
        ID in format "mem_xxx" where xxx is 12 hex characters
    """
    return f"mem_{uuid4().hex[:12]}"


def generate_unique_memory_id(existing: Container[str]) -> str:
    """
    Generate a Memory ID that does not collide with any id in ``existing``.

    Args:
        existing: Ids already taken in the target domain

    Returns:
        Fresh memory ID
    """
    memory_id = generate_memory_id()
    while memory_id in existing:
        memory_id = generate_memory_id()
    return memory_id


def edge_key(source: str, target: str, type_value: str) -> str:
    """
    Build the persisted identifier of an edge.

    Returns:
        ID in format "source-target-type"
    """
    return f"{source}-{target}-{type_value}"
