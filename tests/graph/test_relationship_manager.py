"""
Tests for RelationshipManager.

Covers inverse inference, upserts, removal rules and statistics.
"""

import pytest

from memory_graph.core.graph.relationship_manager import RelationshipManager
from memory_graph.models import GraphEdge, RelationshipMetadata, RelationshipType


@pytest.fixture
def manager() -> RelationshipManager:
    return RelationshipManager()


@pytest.mark.unit
class TestAddRelationship:
    """Tests for edge creation and inverse inference."""

    def test_add_creates_inferred_inverse(self, manager):
        """Test a type with a declared inverse gets the reverse edge."""
        edge = manager.add_relationship("a", "b", "follows", 0.7)

        assert edge.type is RelationshipType.FOLLOWS
        assert not edge.is_inferred

        inverse = manager.get_edge("b", "a", RelationshipType.PRECEDES)
        assert inverse is not None
        assert inverse.is_inferred
        assert inverse.strength == 0.7
        assert inverse.relationship.inverse_type is RelationshipType.FOLLOWS
        assert inverse.relationship.evidence == ["Inverse of follows relationship"]
        assert len(manager) == 2

    def test_symmetric_type_creates_reverse_edge(self, manager):
        manager.add_relationship("a", "b", RelationshipType.SIMILAR_TO)

        reverse = manager.get_edge("b", "a", "similar_to")
        assert reverse is not None
        assert reverse.is_inferred

    def test_one_way_type_has_no_inverse(self, manager):
        manager.add_relationship("a", "b", "supports")
        assert len(manager) == 1

    def test_custom_type_has_no_inverse(self, manager):
        edge = manager.add_relationship("a", "b", "inspired by")

        assert edge.type == "inspired_by"
        assert len(manager) == 1

    def test_skip_inference(self, manager):
        manager.add_relationship("a", "b", "causes", skip_inference=True)
        assert manager.get_edge("b", "a", "caused_by") is None

    def test_upsert_updates_existing_edge(self, manager):
        """Test re-adding the same triple updates rather than duplicates."""
        manager.add_relationship("a", "b", "follows", 0.3)
        manager.add_relationship("a", "b", "follows", 0.8, evidence=["again"])

        assert len(manager) == 2
        forward = manager.get_edge("a", "b", "follows")
        assert forward.strength == 0.8
        assert forward.relationship.evidence == ["again"]
        assert manager.get_edge("b", "a", "precedes").strength == 0.8

    def test_manual_inverse_is_not_overwritten(self, manager):
        """Test a manually created inverse keeps its own strength and provenance."""
        manager.add_relationship("b", "a", "precedes", 0.2)
        manager.add_relationship("a", "b", "follows", 0.9)

        manual = manager.get_edge("b", "a", "precedes")
        assert not manual.is_inferred
        assert manual.strength == 0.2

    def test_manual_add_clears_inferred_flag(self, manager):
        manager.add_relationship("a", "b", "follows")
        manager.add_relationship("b", "a", "precedes", 0.5)

        edge = manager.get_edge("b", "a", "precedes")
        assert not edge.is_inferred
        assert edge.strength == 0.5

    def test_strength_clamped(self, manager):
        assert manager.add_relationship("a", "b", "supports", 4.2).strength == 1.0

    def test_symmetric_self_loop_is_single_edge(self, manager):
        manager.add_relationship("a", "a", "relates_to")
        assert len(manager) == 1

    def test_loading_does_not_infer(self):
        """Test edges passed to the constructor are taken as-is."""
        edges = [
            GraphEdge(source="a", target="b", type="follows", strength=0.4),
            GraphEdge(source="a", target="b", type="follows", strength=0.6),
        ]
        manager = RelationshipManager(edges)

        assert len(manager) == 1
        assert manager.get_edge("a", "b", "follows").strength == 0.6
        assert ("b", "a", "precedes") not in manager


@pytest.mark.unit
class TestRemoveRelationship:
    """Tests for edge removal."""

    def test_remove_takes_inferred_inverse(self, manager):
        manager.add_relationship("a", "b", "contains")

        assert manager.remove_relationship("a", "b", "contains") is True
        assert len(manager) == 0

    def test_remove_keeps_manual_inverse(self, manager):
        manager.add_relationship("b", "a", "part_of")
        manager.add_relationship("a", "b", "contains")

        manager.remove_relationship("a", "b", "contains")

        assert manager.get_edge("b", "a", "part_of") is not None
        assert len(manager) == 1

    def test_remove_missing_returns_false(self, manager):
        assert manager.remove_relationship("a", "b", "supports") is False

    def test_remove_accepts_alias(self, manager):
        manager.add_relationship("a", "b", "relates_to")
        assert manager.remove_relationship("a", "b", "related") is True
        assert len(manager) == 0

    def test_remove_outgoing_only_declared(self, manager):
        """Test remove_outgoing drops declared edges and their inferred inverses."""
        manager.add_relationship("a", "b", "follows")
        manager.add_relationship("c", "a", "causes")
        manager.add_relationship("a", "d", "supports")

        removed = manager.remove_outgoing("a")

        assert removed == 2
        # a -caused_by-> c is inferred from c's edge and stays
        assert manager.get_edge("a", "c", "caused_by") is not None
        assert manager.get_edge("c", "a", "causes") is not None
        assert manager.get_edge("b", "a", "precedes") is None

    def test_purge_dangling(self, manager):
        manager.add_relationship("a", "b", "follows")
        manager.add_relationship("b", "c", "supports")

        assert manager.purge_dangling({"b", "c"}) == 2
        assert [edge.key for edge in manager.get_all_edges()] == [("b", "c", "supports")]


@pytest.mark.unit
class TestQueries:
    """Tests for edge queries and statistics."""

    def test_node_edges_and_direction(self, manager):
        manager.add_relationship("a", "b", "follows")
        manager.add_relationship("c", "a", "supports")

        assert len(manager.get_node_edges("a")) == 3
        assert [e.type for e in manager.get_edges_between("b", "a")] == [RelationshipType.PRECEDES]
        assert manager.get_edges_between("a", "c") == []

    def test_statistics(self, manager):
        manager.add_relationship("a", "b", "follows", 0.5)
        manager.add_relationship("a", "c", "supports", 1.0)

        stats = manager.get_statistics()

        assert stats.total_relationships == 3
        assert stats.inferred_relationships == 1
        assert stats.type_distribution == {"follows": 1, "precedes": 1, "supports": 1}
        assert stats.average_strength == pytest.approx(2.0 / 3)

    def test_statistics_empty(self, manager):
        stats = manager.get_statistics()
        assert stats.total_relationships == 0
        assert stats.average_strength == 0.0

    def test_inferred_flag_from_metadata(self):
        edge = GraphEdge(
            source="a",
            target="b",
            type="follows",
            relationship=RelationshipMetadata(is_inferred=True),
        )
        manager = RelationshipManager([edge])
        assert manager.get_statistics().inferred_relationships == 1
