"""Domain storage backends."""

from memory_graph.core.storage.base import DomainStore
from memory_graph.core.storage.factory import DomainStoreFactory, create_domain_store
from memory_graph.core.storage.json_store import JsonDomainStore
from memory_graph.core.storage.sqlite_store import SQLiteDomainStore

__all__ = [
    "DomainStore",
    "JsonDomainStore",
    "SQLiteDomainStore",
    "DomainStoreFactory",
    "create_domain_store",
]
