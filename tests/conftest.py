"""
Shared test fixtures.

Fixtures use function scope so every test gets a fresh data directory and
event loop.
"""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import pytest

from memory_graph.config import Config, StorageConfig
from memory_graph.core.graph.context import DomainContext
from memory_graph.core.storage.json_store import JsonDomainStore
from memory_graph.core.storage.sqlite_store import SQLiteDomainStore
from memory_graph.models import MemoryNode
from memory_graph.services.memory_graph import MemoryGraph

BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def base_time() -> datetime:
    return BASE_TIME


@pytest.fixture
def test_config(tmp_path) -> Config:
    """Configuration pointing at a temporary data directory."""
    return Config(storage=StorageConfig(storage_dir=str(tmp_path / "memory-data")))


@pytest.fixture
def json_store(tmp_path) -> JsonDomainStore:
    return JsonDomainStore(tmp_path / "memory-data")


@pytest.fixture
async def sqlite_store(tmp_path) -> AsyncGenerator[SQLiteDomainStore, None]:
    store = SQLiteDomainStore(tmp_path / "memory-data" / "memory.db")
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture
async def graph(test_config, json_store) -> AsyncGenerator[MemoryGraph, None]:
    """Initialized memory graph on a JSON store."""
    service = MemoryGraph(json_store, test_config)
    await service.initialize()
    yield service
    await service.close()


@pytest.fixture
def sample_context() -> DomainContext:
    """
    Small domain:

        a -relates_to(0.9)-> b -follows(0.4)-> c
        a -supports(0.6)-> d
        e (isolated)

    ``a`` is the oldest node, ``e`` the newest. relates_to and follows
    produce inferred inverses.
    """
    rows = [
        ("a", "Python is a programming language. It is popular.", "/lang", ["python", "lang"]),
        ("b", "Asyncio brings coroutines to Python", "/lang/python", ["python", "async"]),
        ("c", "Event loops schedule callbacks", "/lang/python", ["async"]),
        ("d", "Type hints improve readability", "/lang", ["python", "typing"]),
        ("e", "Bananas are rich in potassium", "/food", ["fruit"]),
    ]
    nodes = {
        node_id: MemoryNode(
            id=node_id,
            content=content,
            path=path,
            tags=tags,
            timestamp=BASE_TIME + timedelta(minutes=i),
        )
        for i, (node_id, content, path, tags) in enumerate(rows)
    }
    context = DomainContext("general", nodes)
    context.relationships.add_relationship("a", "b", "relates_to", 0.9)
    context.relationships.add_relationship("b", "c", "follows", 0.4)
    context.relationships.add_relationship("a", "d", "supports", 0.6)
    return context
