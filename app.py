"""
Memory Graph FastAPI Application

A REST API server for the Memory Graph store.
Provides endpoints for domains, storing, recalling, editing, forgetting and
traversing memories. Requests are handled one at a time.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Literal

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field

from memory_graph import __version__
from memory_graph.config import Config
from memory_graph.core.graph.render import (
    MermaidContentFormat,
    MermaidDirection,
    MermaidRenderer,
    NarrativeRenderer,
)
from memory_graph.core.storage.factory import DomainStoreFactory
from memory_graph.models import (
    ContentSearchResult,
    DomainInfo,
    EdgeType,
    EditMemoryInput,
    ForgetMemoryInput,
    GraphEdge,
    GraphStatistics,
    MemoryNode,
    RecallMemoriesInput,
    RecallResult,
    RelationshipSpec,
    RelationshipStrength,
    StoreMemoryInput,
    TraversalResult,
    TraverseMemoriesInput,
)
from memory_graph.services.memory_graph import MemoryGraph
from memory_graph.utils.exceptions import (
    ConflictError,
    MemoryGraphError,
    NotFoundError,
    ValidationError,
)
from memory_graph.utils.logger import get_logger, setup_logging

# Global service instance; one lock serializes every request
graph: MemoryGraph | None = None
graph_lock: asyncio.Lock | None = None
logger = get_logger(__name__)


# Pydantic models for API
class CreateDomainRequest(BaseModel):
    """Request model for creating a domain."""

    id: str = Field(..., min_length=1, description="Domain id")
    name: str = Field(..., description="Human-readable name")
    description: str = Field(default="", description="Purpose of the domain")


class DomainListResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_domain: str = Field(..., alias="currentDomain")
    domains: list[DomainInfo]


class EditMemoryRequest(BaseModel):
    """Request model for editing a memory."""

    content: str | None = None
    relationships: RelationshipSpec | None = None


class SearchContentRequest(BaseModel):
    """Request model for full-text search."""

    model_config = ConfigDict(populate_by_name=True)

    query: str = Field(..., description="Search text")
    domain: str | None = Field(default=None, description="Restrict to one domain")
    max_results: int = Field(default=20, ge=1, le=200, alias="maxResults")


class RelationshipRequest(BaseModel):
    """Request model for creating one relationship."""

    source: str
    target: str
    type: EdgeType
    strength: float | RelationshipStrength = 1.0
    evidence: list[str] | None = None


class MermaidRequest(TraverseMemoriesInput):
    """Traversal parameters plus Mermaid rendering options."""

    direction: MermaidDirection = "LR"
    content_format: MermaidContentFormat | None = Field(default=None, alias="contentFormat")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    engine_initialized: bool
    storage_backend: str
    current_domain: str | None = None


def _http_error(error: MemoryGraphError) -> HTTPException:
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=error.message)
    if isinstance(error, ConflictError):
        return HTTPException(status_code=409, detail=error.message)
    if isinstance(error, ValidationError):
        return HTTPException(status_code=422, detail=error.message)
    logger.error(f"Request failed: {error.message}")
    return HTTPException(status_code=500, detail=error.message)


def _service() -> tuple[MemoryGraph, asyncio.Lock]:
    if graph is None or graph_lock is None:
        raise HTTPException(status_code=503, detail="Memory graph not initialized")
    return graph, graph_lock


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    global graph, graph_lock

    config = Config.from_env()

    setup_logging(
        level=config.logging.level,
        log_to_file=config.logging.log_to_file,
        log_dir=config.logging.log_dir,
        file_rotation=config.logging.file_rotation,
        file_retention=config.logging.file_retention,
        compression=config.logging.compression,
        serialize=config.logging.serialize,
    )

    logger.info("Starting Memory Graph server")
    logger.info(
        f"Configuration: storage={config.storage.backend} at {config.storage.storage_dir}, "
        f"default domain={config.storage.default_domain}"
    )

    store = DomainStoreFactory.create(config)
    graph = MemoryGraph(store, config)
    graph_lock = asyncio.Lock()
    await graph.initialize()
    app.state.config = config
    logger.info("Memory graph initialized")

    yield

    logger.info("Shutting down Memory Graph server")
    await graph.close()
    graph = None
    graph_lock = None
    logger.info("Cleanup complete")


# Create FastAPI app
app = FastAPI(
    title="Memory Graph API",
    description="Domain-partitioned memory store with typed relationships",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy" if graph else "initializing",
        engine_initialized=graph is not None,
        storage_backend=app.state.config.storage.backend if graph else "unknown",
        current_domain=graph.current_domain if graph else None,
    )


# Domain endpoints
@app.get("/domains", response_model=DomainListResponse)
async def list_domains():
    """List all domains and the active one."""
    service, lock = _service()
    async with lock:
        return DomainListResponse(
            current_domain=service.current_domain, domains=service.list_domains()
        )


@app.post("/domains", response_model=DomainInfo)
async def create_domain(request: CreateDomainRequest):
    """Create a new, empty domain. Fails with 409 if the id is taken."""
    service, lock = _service()
    async with lock:
        try:
            return await service.create_domain(request.id, request.name, request.description)
        except MemoryGraphError as e:
            raise _http_error(e) from e


@app.post("/domains/{domain_id}/select", response_model=DomainInfo)
async def select_domain(domain_id: str):
    """
    Switch the active domain.

    The current domain is saved before the new one is loaded; the choice
    survives restarts.
    """
    service, lock = _service()
    async with lock:
        try:
            return await service.select_domain(domain_id)
        except MemoryGraphError as e:
            raise _http_error(e) from e


# Memory endpoints
@app.post("/memories", response_model=MemoryNode)
async def store_memory(request: StoreMemoryInput):
    """
    Store a memory in the active domain.

    Relationships are given as ``{type: [{targetId, strength}]}``; types that
    declare an inverse also get an inferred reverse edge.
    """
    service, lock = _service()
    async with lock:
        try:
            return await service.store_memory(request)
        except MemoryGraphError as e:
            raise _http_error(e) from e


@app.get("/memories/{memory_id}", response_model=MemoryNode)
async def get_memory(memory_id: str):
    """Retrieve a memory of the active domain by id."""
    service, lock = _service()
    async with lock:
        try:
            return service.get_memory(memory_id)
        except MemoryGraphError as e:
            raise _http_error(e) from e


@app.post("/memories/recall", response_model=list[RecallResult])
async def recall_memories(request: RecallMemoriesInput):
    """
    Recall memories of the active domain.

    Strategies: recent, related, path, tag, content. ``combinedStrategy``
    merges every strategy implied by the supplied parameters.
    """
    service, lock = _service()
    async with lock:
        try:
            return await service.recall_memories(request)
        except MemoryGraphError as e:
            raise _http_error(e) from e


@app.put("/memories/{memory_id}", response_model=MemoryNode)
async def edit_memory(memory_id: str, request: EditMemoryRequest):
    """Edit content and/or replace the outgoing relationships of a memory."""
    service, lock = _service()
    async with lock:
        try:
            return await service.edit_memory(
                EditMemoryInput(
                    id=memory_id, content=request.content, relationships=request.relationships
                )
            )
        except MemoryGraphError as e:
            raise _http_error(e) from e


@app.delete("/memories/{memory_id}")
async def forget_memory(memory_id: str, cascade: bool = Query(default=False)):
    """Delete a memory; with ``cascade`` also its directly connected memories."""
    service, lock = _service()
    async with lock:
        try:
            deleted = await service.forget_memory(ForgetMemoryInput(id=memory_id, cascade=cascade))
        except MemoryGraphError as e:
            raise _http_error(e) from e
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Memory not found: {memory_id}")
    return {"id": memory_id, "deleted": True}


@app.post("/memories/traverse", response_model=None)
async def traverse_memories(
    request: TraverseMemoriesInput,
    format: Literal["json", "markdown"] = Query(default="json"),
) -> TraversalResult | PlainTextResponse:
    """
    Traverse relationships and domain refs from a memory.

    ``format=markdown`` returns the narrative report at the requested
    resolution depth.
    """
    service, lock = _service()
    async with lock:
        try:
            result = await service.traverse_memories(request)
        except MemoryGraphError as e:
            raise _http_error(e) from e

    if format == "markdown":
        return PlainTextResponse(NarrativeRenderer(request.resolution_depth).render(result))
    return result


@app.post("/memories/search", response_model=list[ContentSearchResult])
async def search_content(request: SearchContentRequest):
    """Full-text search using the storage backend."""
    service, lock = _service()
    async with lock:
        try:
            return await service.search_content(
                request.query, domain=request.domain, max_results=request.max_results
            )
        except MemoryGraphError as e:
            raise _http_error(e) from e


# Relationship endpoints
@app.post("/relationships", response_model=GraphEdge)
async def add_relationship(request: RelationshipRequest):
    """Create or update one relationship in the active domain."""
    service, lock = _service()
    async with lock:
        try:
            return await service.add_relationship(
                request.source,
                request.target,
                request.type,
                request.strength,
                evidence=request.evidence,
            )
        except MemoryGraphError as e:
            raise _http_error(e) from e


@app.delete("/relationships")
async def remove_relationship(
    source: str = Query(...), target: str = Query(...), type: str = Query(...)
):
    """Remove one relationship and its inferred inverse."""
    service, lock = _service()
    async with lock:
        try:
            removed = await service.remove_relationship(source, target, type)
        except MemoryGraphError as e:
            raise _http_error(e) from e
    if not removed:
        raise HTTPException(status_code=404, detail="Relationship not found")
    return {"source": source, "target": target, "type": type, "deleted": True}


@app.post("/graph/mermaid", response_class=PlainTextResponse)
async def mermaid_graph(request: MermaidRequest):
    """Render a traversal as Mermaid flowchart source."""
    service, lock = _service()
    async with lock:
        try:
            result = await service.traverse_memories(request)
        except MemoryGraphError as e:
            raise _http_error(e) from e
    return MermaidRenderer(request.direction, request.content_format).render(result)


@app.get("/stats", response_model=GraphStatistics)
async def get_stats():
    """Node and relationship statistics of the active domain."""
    service, lock = _service()
    async with lock:
        return service.get_statistics()


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Memory Graph API",
        "version": __version__,
        "description": "Domain-partitioned memory store with typed relationships",
        "docs": "/docs",
        "health": "/health",
    }
