"""Graph engines: relationship management, recall, traversal and rendering."""

from memory_graph.core.graph.context import DomainContext
from memory_graph.core.graph.recall import RecallEngine
from memory_graph.core.graph.relationship_manager import RelationshipManager
from memory_graph.core.graph.render import (
    MermaidContentFormat,
    MermaidRenderer,
    NarrativeRenderer,
)
from memory_graph.core.graph.text_match import levenshtein_distance
from memory_graph.core.graph.traversal import ContextLoader, TraversalEngine

__all__ = [
    "DomainContext",
    "RelationshipManager",
    "RecallEngine",
    "TraversalEngine",
    "ContextLoader",
    "MermaidRenderer",
    "MermaidContentFormat",
    "NarrativeRenderer",
    "levenshtein_distance",
]
