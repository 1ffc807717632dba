"""
SQLite domain store using aiosqlite.

Nodes, tags, edges and domain refs live in relational tables keyed by
``(domain, id)``; an FTS5 table kept in sync by triggers backs
``search_content``. Each ``save_memories`` call replaces a domain's rows inside
one transaction.
"""

import json
from pathlib import Path

import aiosqlite

from memory_graph.core.storage.base import DomainStore
from memory_graph.models.domain import DomainInfo, PersistenceState
from memory_graph.models.memory import DomainRef, MemoryNode
from memory_graph.models.relationships import GraphEdge, RelationshipMetadata, type_value
from memory_graph.utils.exceptions import ConflictError, StorageError
from memory_graph.utils.id_generator import edge_key
from memory_graph.utils.logger import get_logger

logger = get_logger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS DOMAINS (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT,
    created TEXT NOT NULL,
    lastAccess TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS PERSISTENCE (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    currentDomain TEXT NOT NULL,
    lastAccess TEXT NOT NULL,
    lastMemoryId TEXT
);

CREATE TABLE IF NOT EXISTS MEMORY_NODES (
    id TEXT NOT NULL,
    domain TEXT NOT NULL,
    seq INTEGER NOT NULL,
    content TEXT NOT NULL,
    timestamp TEXT NOT NULL,
    path TEXT DEFAULT '/',
    content_summary TEXT,
    summary_timestamp TEXT,
    PRIMARY KEY (domain, id)
);

CREATE TABLE IF NOT EXISTS MEMORY_TAGS (
    domain TEXT NOT NULL,
    nodeId TEXT NOT NULL,
    tag TEXT NOT NULL,
    position INTEGER NOT NULL,
    PRIMARY KEY (domain, nodeId, tag)
);

CREATE TABLE IF NOT EXISTS MEMORY_EDGES (
    id TEXT NOT NULL,
    domain TEXT NOT NULL,
    seq INTEGER NOT NULL,
    source TEXT NOT NULL,
    target TEXT NOT NULL,
    type TEXT NOT NULL,
    strength REAL NOT NULL CHECK (strength >= 0 AND strength <= 1),
    timestamp TEXT NOT NULL,
    relationship TEXT,
    PRIMARY KEY (domain, source, target, type)
);

CREATE TABLE IF NOT EXISTS DOMAIN_REFS (
    domain TEXT NOT NULL,
    nodeId TEXT NOT NULL,
    position INTEGER NOT NULL,
    targetDomain TEXT NOT NULL,
    targetNodeId TEXT NOT NULL,
    description TEXT,
    bidirectional INTEGER,
    PRIMARY KEY (domain, nodeId, position)
);

CREATE INDEX IF NOT EXISTS idx_memory_nodes_domain ON MEMORY_NODES(domain, seq);
CREATE INDEX IF NOT EXISTS idx_memory_tags_tag ON MEMORY_TAGS(tag);
CREATE INDEX IF NOT EXISTS idx_memory_edges_source ON MEMORY_EDGES(domain, source);
CREATE INDEX IF NOT EXISTS idx_memory_edges_target ON MEMORY_EDGES(domain, target);
CREATE INDEX IF NOT EXISTS idx_domain_refs_target ON DOMAIN_REFS(targetDomain, targetNodeId);

CREATE VIRTUAL TABLE IF NOT EXISTS memory_content_fts USING fts5(
    id UNINDEXED,
    domain UNINDEXED,
    content,
    content_summary,
    path,
    tags,
    tokenize = "porter unicode61"
);

CREATE TRIGGER IF NOT EXISTS memory_nodes_ai AFTER INSERT ON MEMORY_NODES BEGIN
    INSERT INTO memory_content_fts(id, domain, content, content_summary, path)
    VALUES (new.id, new.domain, new.content, new.content_summary, new.path);
END;

CREATE TRIGGER IF NOT EXISTS memory_nodes_ad AFTER DELETE ON MEMORY_NODES BEGIN
    DELETE FROM memory_content_fts WHERE id = old.id AND domain = old.domain;
END;

CREATE TRIGGER IF NOT EXISTS memory_tags_ai AFTER INSERT ON MEMORY_TAGS BEGIN
    UPDATE memory_content_fts
    SET tags = (
        SELECT group_concat(tag, ' ') FROM MEMORY_TAGS
        WHERE domain = new.domain AND nodeId = new.nodeId
    )
    WHERE id = new.nodeId AND domain = new.domain;
END;
"""


def _fts_query(query: str) -> str:
    # Quote every term so user input is never parsed as FTS syntax
    terms = [term.replace('"', '""') for term in query.split()]
    return " ".join(f'"{term}"' for term in terms)


class SQLiteDomainStore(DomainStore):
    """
    SQLite-based domain store.

    Features:
    - Single local database file for every domain
    - Full-text search with Porter stemming (FTS5)
    - Transactional full-domain saves
    """

    def __init__(self, db_path: str | Path = "memory-data/memory.db"):
        """
        Initialize SQLite store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = str(db_path)
        self.connection: aiosqlite.Connection | None = None

        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

    async def connect(self) -> None:
        """Establish connection to SQLite."""
        if self.connection is None:
            try:
                self.connection = await aiosqlite.connect(self.db_path)
            except aiosqlite.Error as e:
                raise StorageError(f"Failed to open {self.db_path}: {e}") from e
            self.connection.row_factory = aiosqlite.Row
            await self.connection.execute("PRAGMA journal_mode = WAL")
            await self.connection.commit()

    async def initialize(self) -> None:
        """Initialize database schema."""
        await self.connect()
        try:
            await self.connection.executescript(SCHEMA)
            await self.connection.commit()
        except aiosqlite.Error as e:
            logger.error(f"Failed to create schema: {e}")
            raise StorageError(f"Failed to create schema: {e}") from e
        logger.info(f"SQLite domain store ready at {self.db_path}")

    async def close(self) -> None:
        if self.connection is not None:
            await self.connection.close()
            self.connection = None

    async def _fetchall(self, sql: str, params: tuple = ()) -> list[aiosqlite.Row]:
        await self.connect()
        try:
            async with self.connection.execute(sql, params) as cursor:
                return list(await cursor.fetchall())
        except aiosqlite.Error as e:
            logger.error(f"Query failed: {e}")
            raise StorageError(f"Query failed: {e}", context={"sql": sql}) from e

    # ═══════════════════════════════════════════════════════════
    # DOMAIN REGISTRY
    # ═══════════════════════════════════════════════════════════

    @staticmethod
    def _domain_row(domain: DomainInfo) -> tuple:
        return (
            domain.id,
            domain.name,
            domain.description,
            domain.created.isoformat(),
            domain.last_access.isoformat(),
        )

    async def get_domains(self) -> dict[str, DomainInfo]:
        rows = await self._fetchall(
            "SELECT id, name, description, created, lastAccess FROM DOMAINS ORDER BY rowid"
        )
        return {
            row["id"]: DomainInfo(
                id=row["id"],
                name=row["name"],
                description=row["description"] or "",
                created=row["created"],
                last_access=row["lastAccess"],
            )
            for row in rows
        }

    async def save_domains(self, domains: dict[str, DomainInfo]) -> None:
        await self.connect()
        try:
            await self.connection.execute("DELETE FROM DOMAINS")
            await self.connection.executemany(
                "INSERT INTO DOMAINS (id, name, description, created, lastAccess) "
                "VALUES (?, ?, ?, ?, ?)",
                [self._domain_row(domain) for domain in domains.values()],
            )
            await self.connection.commit()
        except aiosqlite.Error as e:
            await self.connection.rollback()
            logger.error(f"Failed to save domains: {e}")
            raise StorageError(f"Failed to save domains: {e}") from e

    async def create_domain(self, domain: DomainInfo) -> None:
        await self.connect()
        try:
            await self.connection.execute(
                "INSERT INTO DOMAINS (id, name, description, created, lastAccess) "
                "VALUES (?, ?, ?, ?, ?)",
                self._domain_row(domain),
            )
            await self.connection.commit()
        except aiosqlite.IntegrityError as e:
            await self.connection.rollback()
            raise ConflictError(
                f"Domain already exists: {domain.id}", context={"domain": domain.id}
            ) from e
        except aiosqlite.Error as e:
            await self.connection.rollback()
            raise StorageError(f"Failed to create domain {domain.id}: {e}") from e
        logger.info(f"Created domain {domain.id}")

    # ═══════════════════════════════════════════════════════════
    # PERSISTENCE MARKER
    # ═══════════════════════════════════════════════════════════

    async def get_persistence_state(self) -> PersistenceState | None:
        rows = await self._fetchall(
            "SELECT currentDomain, lastAccess, lastMemoryId FROM PERSISTENCE WHERE id = 1"
        )
        if not rows:
            return None
        row = rows[0]
        return PersistenceState(
            current_domain=row["currentDomain"],
            last_access=row["lastAccess"],
            last_memory_id=row["lastMemoryId"],
        )

    async def save_persistence_state(self, state: PersistenceState) -> None:
        await self.connect()
        try:
            await self.connection.execute(
                "INSERT OR REPLACE INTO PERSISTENCE (id, currentDomain, lastAccess, lastMemoryId) "
                "VALUES (1, ?, ?, ?)",
                (state.current_domain, state.last_access.isoformat(), state.last_memory_id),
            )
            await self.connection.commit()
        except aiosqlite.Error as e:
            await self.connection.rollback()
            raise StorageError(f"Failed to save persistence state: {e}") from e

    # ═══════════════════════════════════════════════════════════
    # MEMORIES
    # ═══════════════════════════════════════════════════════════

    async def _load_nodes(self, domain: str, ids: list[str] | None = None) -> dict[str, MemoryNode]:
        rows = await self._fetchall(
            "SELECT id, content, timestamp, path, content_summary FROM MEMORY_NODES "
            "WHERE domain = ? ORDER BY seq",
            (domain,),
        )
        tag_rows = await self._fetchall(
            "SELECT nodeId, tag FROM MEMORY_TAGS WHERE domain = ? ORDER BY nodeId, position",
            (domain,),
        )
        ref_rows = await self._fetchall(
            "SELECT nodeId, targetDomain, targetNodeId, description, bidirectional "
            "FROM DOMAIN_REFS WHERE domain = ? ORDER BY nodeId, position",
            (domain,),
        )

        tags: dict[str, list[str]] = {}
        for row in tag_rows:
            tags.setdefault(row["nodeId"], []).append(row["tag"])

        refs: dict[str, list[DomainRef]] = {}
        for row in ref_rows:
            refs.setdefault(row["nodeId"], []).append(
                DomainRef(
                    domain=row["targetDomain"],
                    node_id=row["targetNodeId"],
                    description=row["description"],
                    bidirectional=(
                        bool(row["bidirectional"]) if row["bidirectional"] is not None else None
                    ),
                )
            )

        wanted = set(ids) if ids is not None else None
        return {
            row["id"]: MemoryNode(
                id=row["id"],
                content=row["content"],
                timestamp=row["timestamp"],
                path=row["path"] or "/",
                tags=tags.get(row["id"]),
                domain_refs=refs.get(row["id"]),
                content_summary=row["content_summary"],
            )
            for row in rows
            if wanted is None or row["id"] in wanted
        }

    async def get_memories(self, domain: str) -> tuple[dict[str, MemoryNode], list[GraphEdge]]:
        nodes = await self._load_nodes(domain)
        edge_rows = await self._fetchall(
            "SELECT source, target, type, strength, timestamp, relationship FROM MEMORY_EDGES "
            "WHERE domain = ? ORDER BY seq",
            (domain,),
        )
        edges = [
            GraphEdge(
                source=row["source"],
                target=row["target"],
                type=row["type"],
                strength=row["strength"],
                timestamp=row["timestamp"],
                relationship=(
                    RelationshipMetadata.model_validate(json.loads(row["relationship"]))
                    if row["relationship"]
                    else None
                ),
            )
            for row in edge_rows
        ]
        return nodes, edges

    async def save_memories(
        self, domain: str, nodes: dict[str, MemoryNode], edges: list[GraphEdge]
    ) -> None:
        await self.connect()
        conn = self.connection
        try:
            for table in ("MEMORY_TAGS", "DOMAIN_REFS", "MEMORY_EDGES", "MEMORY_NODES"):
                await conn.execute(f"DELETE FROM {table} WHERE domain = ?", (domain,))

            await conn.executemany(
                "INSERT INTO MEMORY_NODES (id, domain, seq, content, timestamp, path, content_summary) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                [
                    (
                        node.id,
                        domain,
                        seq,
                        node.content,
                        node.timestamp.isoformat(),
                        node.path,
                        node.content_summary,
                    )
                    for seq, node in enumerate(nodes.values())
                ],
            )
            await conn.executemany(
                "INSERT INTO MEMORY_TAGS (domain, nodeId, tag, position) VALUES (?, ?, ?, ?)",
                [
                    (domain, node.id, tag, position)
                    for node in nodes.values()
                    for position, tag in enumerate(node.tags or [])
                ],
            )
            await conn.executemany(
                "INSERT INTO DOMAIN_REFS (domain, nodeId, position, targetDomain, targetNodeId, "
                "description, bidirectional) VALUES (?, ?, ?, ?, ?, ?, ?)",
                [
                    (
                        domain,
                        node.id,
                        position,
                        ref.domain,
                        ref.node_id,
                        ref.description,
                        None if ref.bidirectional is None else int(ref.bidirectional),
                    )
                    for node in nodes.values()
                    for position, ref in enumerate(node.domain_refs or [])
                ],
            )
            await conn.executemany(
                "INSERT INTO MEMORY_EDGES (id, domain, seq, source, target, type, strength, "
                "timestamp, relationship) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    (
                        edge_key(edge.source, edge.target, type_value(edge.type)),
                        domain,
                        seq,
                        edge.source,
                        edge.target,
                        type_value(edge.type),
                        edge.strength,
                        edge.timestamp.isoformat(),
                        (
                            edge.relationship.model_dump_json(by_alias=True, exclude_none=True)
                            if edge.relationship
                            else None
                        ),
                    )
                    for seq, edge in enumerate(edges)
                ],
            )
            await conn.commit()
        except aiosqlite.Error as e:
            await conn.rollback()
            logger.error(f"Failed to save memories for {domain}: {e}")
            raise StorageError(
                f"Failed to save memories for {domain}: {e}", context={"domain": domain}
            ) from e

        logger.debug(f"Saved {len(nodes)} nodes and {len(edges)} edges to {domain}")

    async def search_content(
        self, query: str, domain: str | None = None, max_results: int = 20
    ) -> list[tuple[str, MemoryNode]]:
        """FTS5 search ranked by bm25."""
        match = _fts_query(query)
        if not match:
            return []

        sql = "SELECT id, domain FROM memory_content_fts WHERE memory_content_fts MATCH ?"
        params: tuple = (match,)
        if domain:
            sql += " AND domain = ?"
            params += (domain,)
        sql += " ORDER BY rank LIMIT ?"
        params += (max_results,)

        rows = await self._fetchall(sql, params)

        wanted: dict[str, list[str]] = {}
        for row in rows:
            wanted.setdefault(row["domain"], []).append(row["id"])
        loaded = {
            domain_id: await self._load_nodes(domain_id, ids) for domain_id, ids in wanted.items()
        }
        return [
            (row["domain"], loaded[row["domain"]][row["id"]])
            for row in rows
            if row["id"] in loaded[row["domain"]]
        ]
