"""
Inputs of the mutating memory operations.
"""

from pydantic import BaseModel, ConfigDict, Field

from memory_graph.models.memory import DomainPointer, DomainRef
from memory_graph.models.relationships import RelationshipStrength


class RelationshipTarget(BaseModel):
    """One outgoing relationship requested at store/edit time."""

    model_config = ConfigDict(populate_by_name=True)

    target_id: str = Field(..., alias="targetId")
    strength: float | RelationshipStrength = 1.0
    evidence: list[str] | None = None


# Relationship type name -> targets
RelationshipSpec = dict[str, list[RelationshipTarget]]


class StoreMemoryInput(BaseModel):
    """Parameters for storing a new memory in the current domain."""

    model_config = ConfigDict(populate_by_name=True)

    content: str
    path: str | None = None
    tags: list[str] | None = None
    relationships: RelationshipSpec | None = None
    domain_refs: list[DomainRef] | None = Field(default=None, alias="domainRefs")
    domain_pointer: DomainPointer | None = Field(default=None, alias="domainPointer")
    content_summary: str | None = None


class EditMemoryInput(BaseModel):
    """
    Parameters for editing a memory.

    ``relationships`` replaces the node's whole set of declared outgoing edges.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    content: str | None = None
    relationships: RelationshipSpec | None = None


class ForgetMemoryInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    cascade: bool = False
