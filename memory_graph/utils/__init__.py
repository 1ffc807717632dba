"""Utility modules for Memory Graph."""

from memory_graph.utils.exceptions import (
    ConfigurationError,
    ConflictError,
    MemoryGraphError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from memory_graph.utils.id_generator import (
    edge_key,
    generate_memory_id,
    generate_unique_memory_id,
)
from memory_graph.utils.logger import get_logger, setup_logging

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    # ID Generators
    "generate_memory_id",
    "generate_unique_memory_id",
    "edge_key",
    # Exceptions
    "MemoryGraphError",
    "StorageError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "ConfigurationError",
]
