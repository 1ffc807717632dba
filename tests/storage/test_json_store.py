"""
Tests for JsonDomainStore.

Tests cover:
1. Domain registry and persistence marker
2. Memory file round trips and on-disk format
3. Error handling for bad ids and corrupt files
4. Substring search
"""

import json

import pytest

from memory_graph.models import (
    DomainInfo,
    DomainRef,
    GraphEdge,
    MemoryNode,
    PersistenceState,
    RelationshipMetadata,
    RelationshipType,
)
from memory_graph.utils.exceptions import ConflictError, StorageError, ValidationError


@pytest.fixture
async def store(json_store):
    await json_store.initialize()
    return json_store


@pytest.fixture
def nodes(base_time) -> dict[str, MemoryNode]:
    return {
        "mem_2": MemoryNode(
            id="mem_2",
            content="Second memory about Python",
            timestamp=base_time,
            tags=["python"],
            domain_refs=[DomainRef(domain="work", node_id="w1", bidirectional=True)],
        ),
        "mem_1": MemoryNode(
            id="mem_1",
            content="First memory",
            timestamp=base_time,
            path="/notes",
            content_summary="A summary mentioning Rust",
        ),
    }


@pytest.fixture
def edges() -> list[GraphEdge]:
    return [
        GraphEdge(source="mem_2", target="mem_1", type="follows", strength=0.5),
        GraphEdge(
            source="mem_1",
            target="mem_2",
            type="precedes",
            strength=0.5,
            relationship=RelationshipMetadata(
                is_inferred=True, inverse_type="follows", evidence=["Inverse of follows relationship"]
            ),
        ),
        GraphEdge(source="mem_1", target="mem_2", type="inspired_by", strength=0.3),
    ]


@pytest.mark.integration
class TestDomainRegistry:
    """Tests for domains and the persistence marker."""

    async def test_initialize_creates_layout(self, store):
        assert store.memories_dir.is_dir()
        assert await store.get_domains() == {}
        assert await store.get_persistence_state() is None

    async def test_create_domain(self, store):
        await store.create_domain(DomainInfo(id="work", name="Work"))

        domains = await store.get_domains()
        assert list(domains) == ["work"]
        assert domains["work"].name == "Work"
        assert (store.memories_dir / "work.json").exists()
        assert await store.get_memories("work") == ({}, [])

    async def test_create_duplicate_domain(self, store):
        await store.create_domain(DomainInfo(id="work", name="Work"))
        with pytest.raises(ConflictError):
            await store.create_domain(DomainInfo(id="work", name="Again"))

    async def test_save_domains_preserves_order(self, store):
        domains = {d: DomainInfo(id=d, name=d.title()) for d in ("b", "a", "c")}
        await store.save_domains(domains)

        assert list(await store.get_domains()) == ["b", "a", "c"]

    async def test_persistence_state(self, store):
        await store.save_persistence_state(
            PersistenceState(current_domain="work", last_memory_id="mem_1")
        )
        state = await store.get_persistence_state()

        assert state.current_domain == "work"
        assert state.last_memory_id == "mem_1"

        on_disk = json.loads(store.persistence_file.read_text())
        assert on_disk["currentDomain"] == "work"
        assert "lastAccess" in on_disk


@pytest.mark.integration
class TestMemories:
    """Tests for memory file round trips."""

    async def test_round_trip(self, store, nodes, edges):
        await store.save_memories("general", nodes, edges)
        loaded_nodes, loaded_edges = await store.get_memories("general")

        assert list(loaded_nodes) == ["mem_2", "mem_1"]
        assert loaded_nodes == nodes
        assert [edge.key for edge in loaded_edges] == [edge.key for edge in edges]
        assert loaded_edges[0].type is RelationshipType.FOLLOWS
        assert loaded_edges[1].is_inferred
        assert loaded_edges[1].relationship.inverse_type is RelationshipType.FOLLOWS
        assert loaded_edges[2].type == "inspired_by"

    async def test_file_format(self, store, nodes, edges):
        """Test files use camelCase keys and omit unset fields."""
        await store.save_memories("general", nodes, edges)
        data = json.loads((store.memories_dir / "general.json").read_text())

        node = data["nodes"]["mem_2"]
        assert node["domainRefs"] == [{"domain": "work", "nodeId": "w1", "bidirectional": True}]
        assert "content_summary" not in node
        assert data["edges"][0]["type"] == "follows"
        assert "relationship" not in data["edges"][0]
        assert data["edges"][1]["relationship"]["isInferred"] is True
        assert data["edges"][1]["relationship"]["inverseType"] == "follows"

    async def test_save_replaces(self, store, nodes, edges):
        await store.save_memories("general", nodes, edges)
        await store.save_memories("general", {"mem_1": nodes["mem_1"]}, [])

        loaded_nodes, loaded_edges = await store.get_memories("general")
        assert list(loaded_nodes) == ["mem_1"]
        assert loaded_edges == []

    async def test_missing_file_reads_empty(self, store):
        assert await store.get_memories("nowhere") == ({}, [])

    async def test_reads_legacy_relationship_names(self, store):
        """Test free-form type names in existing files resolve on load."""
        path = store.memories_dir / "general.json"
        path.write_text(
            json.dumps(
                {
                    "nodes": {
                        "a": {"id": "a", "content": "A", "timestamp": "2024-01-01T00:00:00Z"},
                        "b": {"id": "b", "content": "B", "timestamp": "2024-01-01T00:00:00"},
                    },
                    "edges": [
                        {"source": "a", "target": "b", "type": "related", "strength": 1.4,
                         "timestamp": "2024-01-01T00:00:00Z"}
                    ],
                }
            )
        )
        nodes, edges = await store.get_memories("general")

        assert nodes["b"].timestamp.tzinfo is not None
        assert edges[0].type is RelationshipType.RELATES_TO
        assert edges[0].strength == 1.0

    async def test_legacy_relationship_metadata_survives_save(self, store):
        """Test a type recorded on the relationship wins and extra keys are kept."""
        legacy_relationship = {
            "type": "supports",
            "targetId": "b",
            "strength": {"semantic": 0.8, "temporal": 0.2},
            "created": "2024-01-01T00:00:00Z",
            "lastUpdated": "2024-01-02T00:00:00Z",
            "isBidirectional": False,
            "isTransitive": True,
            "isInferred": False,
        }
        path = store.memories_dir / "general.json"
        path.write_text(
            json.dumps(
                {
                    "nodes": {
                        "a": {"id": "a", "content": "A", "timestamp": "2024-01-01T00:00:00Z"},
                        "b": {"id": "b", "content": "B", "timestamp": "2024-01-01T00:00:00Z"},
                    },
                    "edges": [
                        {"source": "a", "target": "b", "type": "related", "strength": 0.8,
                         "timestamp": "2024-01-01T00:00:00Z", "relationship": legacy_relationship}
                    ],
                }
            )
        )

        nodes, edges = await store.get_memories("general")
        assert edges[0].type is RelationshipType.SUPPORTS

        await store.save_memories("general", nodes, edges)
        saved = json.loads(path.read_text())["edges"][0]

        assert saved["type"] == "supports"
        assert saved["relationship"] == legacy_relationship

    @pytest.mark.parametrize("domain", ["../escape", "a/b", "", ".."])
    async def test_invalid_domain_id(self, store, domain):
        with pytest.raises(ValidationError):
            await store.get_memories(domain)

    async def test_corrupt_file(self, store):
        (store.memories_dir / "general.json").write_text("{not json")
        with pytest.raises(StorageError):
            await store.get_memories("general")

    async def test_corrupt_registry(self, store):
        store.domains_file.write_text(json.dumps({"work": {"name": "no id"}}))
        with pytest.raises(StorageError):
            await store.get_domains()


@pytest.mark.integration
class TestSearch:
    """Tests for substring search."""

    async def test_search_content_and_summary(self, store, nodes):
        await store.create_domain(DomainInfo(id="general", name="General"))
        await store.save_memories("general", nodes, [])

        python_hits = await store.search_content("PYTHON")
        rust_hits = await store.search_content("rust")

        assert [(d, n.id) for d, n in python_hits] == [("general", "mem_2")]
        assert [(d, n.id) for d, n in rust_hits] == [("general", "mem_1")]

    async def test_search_across_and_within_domains(self, store, nodes, base_time):
        for domain_id in ("general", "work"):
            await store.create_domain(DomainInfo(id=domain_id, name=domain_id))
        await store.save_memories("general", nodes, [])
        await store.save_memories(
            "work", {"w1": MemoryNode(id="w1", content="Memory of a meeting", timestamp=base_time)}, []
        )

        everywhere = await store.search_content("memory")
        work_only = await store.search_content("memory", domain="work")
        limited = await store.search_content("memory", max_results=1)

        assert {(d, n.id) for d, n in everywhere} == {
            ("general", "mem_2"),
            ("general", "mem_1"),
            ("work", "w1"),
        }
        assert [(d, n.id) for d, n in work_only] == [("work", "w1")]
        assert len(limited) == 1
