"""
Tests for SQLiteDomainStore.

Uses a temporary database file per test.
"""

import pytest

from memory_graph.core.storage.factory import create_domain_store
from memory_graph.core.storage.sqlite_store import SQLiteDomainStore, _fts_query
from memory_graph.models import (
    DomainInfo,
    DomainRef,
    GraphEdge,
    MemoryNode,
    PersistenceState,
    RelationshipMetadata,
    RelationshipType,
)
from memory_graph.utils.exceptions import ConfigurationError, ConflictError


@pytest.fixture
def nodes(base_time) -> dict[str, MemoryNode]:
    return {
        "mem_b": MemoryNode(
            id="mem_b",
            content="Coroutines are scheduled by the event loop",
            timestamp=base_time,
            path="/python",
            tags=["python", "async"],
            domain_refs=[
                DomainRef(domain="work", node_id="w1", description="used at work"),
                DomainRef(domain="general", node_id="mem_a", bidirectional=False),
            ],
        ),
        "mem_a": MemoryNode(
            id="mem_a",
            content="Bananas are yellow",
            timestamp=base_time,
            content_summary="fruit colour",
        ),
    }


@pytest.fixture
def edges() -> list[GraphEdge]:
    return [
        GraphEdge(source="mem_b", target="mem_a", type="causes", strength=0.7),
        GraphEdge(
            source="mem_a",
            target="mem_b",
            type="caused_by",
            strength=0.7,
            relationship=RelationshipMetadata(is_inferred=True, inverse_type="causes"),
        ),
        GraphEdge(source="mem_a", target="mem_b", type="sparked", strength=0.2),
    ]


@pytest.mark.integration
class TestSQLiteRegistry:
    """Tests for domains and the persistence marker."""

    async def test_empty_database(self, sqlite_store):
        assert await sqlite_store.get_domains() == {}
        assert await sqlite_store.get_persistence_state() is None

    async def test_create_and_list_domains(self, sqlite_store):
        await sqlite_store.create_domain(DomainInfo(id="general", name="General"))
        await sqlite_store.create_domain(DomainInfo(id="work", name="Work", description="Job"))

        domains = await sqlite_store.get_domains()
        assert list(domains) == ["general", "work"]
        assert domains["work"].description == "Job"

    async def test_duplicate_domain(self, sqlite_store):
        await sqlite_store.create_domain(DomainInfo(id="work", name="Work"))
        with pytest.raises(ConflictError):
            await sqlite_store.create_domain(DomainInfo(id="work", name="Work"))

    async def test_save_domains_updates_last_access(self, sqlite_store, base_time):
        domain = DomainInfo(id="work", name="Work")
        await sqlite_store.create_domain(domain)
        domain.last_access = base_time
        await sqlite_store.save_domains({"work": domain})

        assert (await sqlite_store.get_domains())["work"].last_access == base_time

    async def test_persistence_state_is_single_row(self, sqlite_store):
        await sqlite_store.save_persistence_state(PersistenceState(current_domain="general"))
        await sqlite_store.save_persistence_state(
            PersistenceState(current_domain="work", last_memory_id="mem_1")
        )

        state = await sqlite_store.get_persistence_state()
        assert state.current_domain == "work"
        assert state.last_memory_id == "mem_1"


@pytest.mark.integration
class TestSQLiteMemories:
    """Tests for saving and loading a domain graph."""

    async def test_round_trip(self, sqlite_store, nodes, edges):
        await sqlite_store.save_memories("general", nodes, edges)
        loaded_nodes, loaded_edges = await sqlite_store.get_memories("general")

        assert list(loaded_nodes) == ["mem_b", "mem_a"]
        assert loaded_nodes == nodes
        assert [edge.key for edge in loaded_edges] == [edge.key for edge in edges]
        assert loaded_edges[0].type is RelationshipType.CAUSES
        assert loaded_edges[1].is_inferred
        assert loaded_edges[1].relationship.inverse_type is RelationshipType.CAUSES
        assert loaded_edges[2].type == "sparked"
        assert loaded_edges[2].relationship is None

    async def test_save_replaces_domain_rows(self, sqlite_store, nodes, edges):
        await sqlite_store.save_memories("general", nodes, edges)
        await sqlite_store.save_memories("general", {"mem_a": nodes["mem_a"]}, [])

        loaded_nodes, loaded_edges = await sqlite_store.get_memories("general")
        assert list(loaded_nodes) == ["mem_a"]
        assert loaded_edges == []
        assert await sqlite_store.search_content("coroutines") == []

    async def test_domains_are_isolated(self, sqlite_store, nodes, base_time):
        """Test the same node id can exist in two domains."""
        await sqlite_store.save_memories("general", nodes, [])
        await sqlite_store.save_memories(
            "work", {"mem_a": MemoryNode(id="mem_a", content="Standup", timestamp=base_time)}, []
        )

        general, _ = await sqlite_store.get_memories("general")
        work, _ = await sqlite_store.get_memories("work")
        assert general["mem_a"].content == "Bananas are yellow"
        assert work["mem_a"].content == "Standup"

    async def test_unknown_domain_reads_empty(self, sqlite_store):
        assert await sqlite_store.get_memories("nowhere") == ({}, [])

    async def test_reopen_keeps_data(self, tmp_path, nodes, edges):
        db_path = tmp_path / "reopen.db"
        store = SQLiteDomainStore(db_path)
        await store.initialize()
        await store.save_memories("general", nodes, edges)
        await store.close()

        reopened = SQLiteDomainStore(db_path)
        await reopened.initialize()
        loaded_nodes, loaded_edges = await reopened.get_memories("general")
        await reopened.close()

        assert loaded_nodes == nodes
        assert len(loaded_edges) == 3


@pytest.mark.integration
class TestSQLiteSearch:
    """Tests for FTS5 search."""

    async def test_stemmed_search(self, sqlite_store, nodes):
        await sqlite_store.save_memories("general", nodes, [])

        hits = await sqlite_store.search_content("coroutine")
        assert [(d, n.id) for d, n in hits] == [("general", "mem_b")]
        assert hits[0][1].tags == ["python", "async"]

    async def test_search_summary_and_tags(self, sqlite_store, nodes):
        await sqlite_store.save_memories("general", nodes, [])

        assert [n.id for _, n in await sqlite_store.search_content("fruit")] == ["mem_a"]
        assert [n.id for _, n in await sqlite_store.search_content("async")] == ["mem_b"]

    async def test_search_domain_filter_and_limit(self, sqlite_store, nodes, base_time):
        await sqlite_store.save_memories("general", nodes, [])
        await sqlite_store.save_memories(
            "work", {"w1": MemoryNode(id="w1", content="Event planning", timestamp=base_time)}, []
        )

        assert {d for d, _ in await sqlite_store.search_content("event")} == {"general", "work"}
        assert [d for d, _ in await sqlite_store.search_content("event", domain="work")] == ["work"]
        assert len(await sqlite_store.search_content("event", max_results=1)) == 1

    async def test_search_syntax_is_quoted(self, sqlite_store, nodes):
        await sqlite_store.save_memories("general", nodes, [])

        # Operators are searched as plain words
        assert await sqlite_store.search_content("event AND NOT") == []
        assert [n.id for _, n in await sqlite_store.search_content('"event"')] == ["mem_b"]
        assert await sqlite_store.search_content("   ") == []

    def test_fts_query(self):
        assert _fts_query('say "hi" now') == '"say" """hi""" "now"'
        assert _fts_query("  ") == ""


@pytest.mark.unit
class TestStoreFactory:
    """Tests for backend selection."""

    def test_json_backend(self, tmp_path):
        from memory_graph.core.storage.json_store import JsonDomainStore

        store = create_domain_store("json", storage_dir=tmp_path)
        assert isinstance(store, JsonDomainStore)

    def test_sqlite_backend(self, tmp_path):
        store = create_domain_store("SQLite", db_path=tmp_path / "x.db")
        assert isinstance(store, SQLiteDomainStore)
        assert store.db_path == str(tmp_path / "x.db")

    def test_unknown_backend(self):
        with pytest.raises(ConfigurationError):
            create_domain_store("neo4j")
