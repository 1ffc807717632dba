"""
JSON file domain store.

Layout under ``storage_dir``:
- domains.json: {domain_id: DomainInfo}
- persistence.json: PersistenceState
- memories/<domain_id>.json: {"nodes": {id: MemoryNode}, "edges": [GraphEdge]}

Blocking file I/O runs in a worker thread via ``asyncio.to_thread``.
"""

import asyncio
import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from memory_graph.core.storage.base import DomainStore
from memory_graph.models.domain import DomainInfo, PersistenceState
from memory_graph.models.memory import MemoryNode
from memory_graph.models.relationships import GraphEdge
from memory_graph.utils.exceptions import ConflictError, StorageError, ValidationError
from memory_graph.utils.logger import get_logger

logger = get_logger(__name__)


def _dump(model) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


class JsonDomainStore(DomainStore):
    """
    File-per-domain JSON storage.

    Files written here stay readable by older data directories: camelCase
    keys, two-space indentation, missing files read as empty.
    """

    def __init__(self, storage_dir: str | Path = "memory-data"):
        """
        Initialize JSON store.

        Args:
            storage_dir: Root data directory
        """
        self.storage_dir = Path(storage_dir)
        self.memories_dir = self.storage_dir / "memories"
        self.domains_file = self.storage_dir / "domains.json"
        self.persistence_file = self.storage_dir / "persistence.json"

    async def initialize(self) -> None:
        await asyncio.to_thread(self.memories_dir.mkdir, parents=True, exist_ok=True)
        logger.info(f"JSON domain store ready at {self.storage_dir}")

    def _memory_file(self, domain: str) -> Path:
        if not domain or Path(domain).name != domain or domain in (".", ".."):
            raise ValidationError(f"Invalid domain id: {domain!r}", context={"domain": domain})
        return self.memories_dir / f"{domain}.json"

    # ═══════════════════════════════════════════════════════════
    # FILE HELPERS
    # ═══════════════════════════════════════════════════════════

    @staticmethod
    def _read_sync(path: Path) -> Any | None:
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            return None

    @staticmethod
    def _write_sync(path: Path, data: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    async def _read(self, path: Path) -> Any | None:
        try:
            return await asyncio.to_thread(self._read_sync, path)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read {path}: {e}")
            raise StorageError(f"Failed to read {path.name}: {e}", context={"path": str(path)}) from e

    async def _write(self, path: Path, data: Any) -> None:
        try:
            await asyncio.to_thread(self._write_sync, path, data)
        except OSError as e:
            logger.error(f"Failed to write {path}: {e}")
            raise StorageError(f"Failed to write {path.name}: {e}", context={"path": str(path)}) from e

    # ═══════════════════════════════════════════════════════════
    # DOMAIN REGISTRY
    # ═══════════════════════════════════════════════════════════

    async def get_domains(self) -> dict[str, DomainInfo]:
        data = await self._read(self.domains_file) or {}
        try:
            return {domain_id: DomainInfo.model_validate(info) for domain_id, info in data.items()}
        except PydanticValidationError as e:
            raise StorageError(f"Corrupt domain registry: {e}") from e

    async def save_domains(self, domains: dict[str, DomainInfo]) -> None:
        await self._write(
            self.domains_file, {domain_id: _dump(info) for domain_id, info in domains.items()}
        )

    async def create_domain(self, domain: DomainInfo) -> None:
        domains = await self.get_domains()
        if domain.id in domains:
            raise ConflictError(f"Domain already exists: {domain.id}", context={"domain": domain.id})
        memory_file = self._memory_file(domain.id)

        domains[domain.id] = domain
        await self.save_domains(domains)
        await self._write(memory_file, {"nodes": {}, "edges": []})
        logger.info(f"Created domain {domain.id}")

    # ═══════════════════════════════════════════════════════════
    # PERSISTENCE MARKER
    # ═══════════════════════════════════════════════════════════

    async def get_persistence_state(self) -> PersistenceState | None:
        data = await self._read(self.persistence_file)
        if data is None:
            return None
        try:
            return PersistenceState.model_validate(data)
        except PydanticValidationError as e:
            raise StorageError(f"Corrupt persistence state: {e}") from e

    async def save_persistence_state(self, state: PersistenceState) -> None:
        await self._write(self.persistence_file, _dump(state))

    # ═══════════════════════════════════════════════════════════
    # MEMORIES
    # ═══════════════════════════════════════════════════════════

    async def get_memories(self, domain: str) -> tuple[dict[str, MemoryNode], list[GraphEdge]]:
        data = await self._read(self._memory_file(domain)) or {}
        try:
            nodes = {
                node_id: MemoryNode.model_validate(node)
                for node_id, node in (data.get("nodes") or {}).items()
            }
            edges = [GraphEdge.from_stored(edge) for edge in data.get("edges") or []]
        except PydanticValidationError as e:
            raise StorageError(f"Corrupt memory file for domain {domain}: {e}") from e
        return nodes, edges

    async def save_memories(
        self, domain: str, nodes: dict[str, MemoryNode], edges: list[GraphEdge]
    ) -> None:
        data = {
            "nodes": {node_id: _dump(node) for node_id, node in nodes.items()},
            "edges": [_dump(edge) for edge in edges],
        }
        await self._write(self._memory_file(domain), data)
        logger.debug(f"Saved {len(nodes)} nodes and {len(edges)} edges to {domain}")

    async def search_content(
        self, query: str, domain: str | None = None, max_results: int = 20
    ) -> list[tuple[str, MemoryNode]]:
        """Case-insensitive substring scan over content and summaries."""
        needle = query.lower()
        domain_ids = [domain] if domain else list(await self.get_domains())

        hits: list[tuple[str, MemoryNode]] = []
        for domain_id in domain_ids:
            nodes, _ = await self.get_memories(domain_id)
            for node in nodes.values():
                haystack = f"{node.content}\n{node.content_summary or ''}".lower()
                if needle in haystack:
                    hits.append((domain_id, node))
                    if len(hits) >= max_results:
                        return hits
        return hits
