"""
Factory for creating domain store backends.
"""

from pathlib import Path

from memory_graph.config import Config
from memory_graph.core.storage.base import DomainStore
from memory_graph.core.storage.json_store import JsonDomainStore
from memory_graph.core.storage.sqlite_store import SQLiteDomainStore
from memory_graph.utils.exceptions import ConfigurationError


class DomainStoreFactory:
    """Factory for creating domain stores from configuration."""

    @staticmethod
    def create(config: Config) -> DomainStore:
        """
        Create domain store from configuration.

        Args:
            config: Main configuration object

        Returns:
            Domain store instance

        Raises:
            ConfigurationError: If backend is not supported
        """
        storage = config.storage
        return create_domain_store(
            storage.backend,
            storage_dir=storage.storage_dir,
            db_path=storage.sqlite_path,
        )


def create_domain_store(backend: str = "json", **kwargs) -> DomainStore:
    """
    Factory function to create domain stores.

    Args:
        backend: Type of backend ("json" or "sqlite")
        **kwargs: Backend-specific arguments (storage_dir, db_path)

    Returns:
        DomainStore instance

    Raises:
        ConfigurationError: If backend is not supported
    """
    backend = backend.lower()
    if backend == "json":
        return JsonDomainStore(storage_dir=kwargs.get("storage_dir", "memory-data"))
    elif backend == "sqlite":
        default_path = Path(kwargs.get("storage_dir", "memory-data")) / "memory.db"
        return SQLiteDomainStore(db_path=kwargs.get("db_path") or default_path)
    else:
        raise ConfigurationError(f"Unknown storage backend: {backend}", context={"backend": backend})
