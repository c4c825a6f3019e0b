"""SQLite database handle shared by the four stores.

Every logical operation opens its own connection. Writers run inside
BEGIN IMMEDIATE transactions so SQLite serializes them on the database
lock; readers proceed concurrently under WAL.
"""

import sqlite3
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from memoria.core.errors import StoreError
from memoria.core.logging import get_logger

logger = get_logger("memory.database")

Clock = Callable[[], datetime]

SCHEMA = """
-- Episodic, insight and procedure memories with embeddings
CREATE TABLE IF NOT EXISTS memories (
    id TEXT PRIMARY KEY,
    project_id TEXT NOT NULL,
    category TEXT NOT NULL,
    content TEXT NOT NULL,
    embedding BLOB NOT NULL,  -- float32 little-endian, 384 values
    metadata TEXT NOT NULL DEFAULT '{}',  -- JSON object
    type TEXT NOT NULL DEFAULT 'episodic'
        CHECK (type IN ('episodic', 'insight', 'procedure')),
    importance INTEGER NOT NULL DEFAULT 1 CHECK (importance BETWEEN 1 AND 5),
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_memories_project_created
    ON memories(project_id, created_at DESC);
CREATE INDEX IF NOT EXISTS idx_memories_project_category
    ON memories(project_id, category);

-- Associative graph between memories
CREATE TABLE IF NOT EXISTS memory_relations (
    id TEXT PRIMARY KEY,
    source_id TEXT NOT NULL REFERENCES memories(id) ON DELETE CASCADE,
    target_id TEXT NOT NULL REFERENCES memories(id) ON DELETE CASCADE,
    relation_type TEXT NOT NULL,
    created_at TEXT NOT NULL,
    UNIQUE (source_id, target_id, relation_type)
);

CREATE INDEX IF NOT EXISTS idx_relations_source ON memory_relations(source_id);
CREATE INDEX IF NOT EXISTS idx_relations_target ON memory_relations(target_id);

-- Exact facts
CREATE TABLE IF NOT EXISTS structured_memories (
    project_id TEXT NOT NULL,
    category TEXT NOT NULL,
    key TEXT NOT NULL,
    value TEXT NOT NULL,  -- JSON value
    description TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    PRIMARY KEY (project_id, category, key)
);

-- Session scratch state
CREATE TABLE IF NOT EXISTS short_term_memory (
    session_id TEXT NOT NULL,
    key TEXT NOT NULL,
    value TEXT NOT NULL,  -- JSON value
    created_at TEXT NOT NULL,
    expires_at TEXT,  -- NULL: no automatic expiry
    PRIMARY KEY (session_id, key)
);

-- Write counter per project, lets an in-process index detect outside writes
CREATE TABLE IF NOT EXISTS project_generations (
    project_id TEXT PRIMARY KEY,
    generation INTEGER NOT NULL
);
"""


def utcnow() -> datetime:
    """Current time, timezone-aware UTC."""
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_db(dt: datetime) -> str:
    """Serialize a datetime so lexical order equals chronological order."""
    return as_utc(dt).isoformat(timespec="microseconds")


def from_db(value: str | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromisoformat(value)


class Database:
    """SQLite database with per-operation connections."""

    def __init__(self, db_path: Path, busy_timeout: float = 5.0):
        self.db_path = db_path
        self.busy_timeout = busy_timeout
        self._ready = False

    async def connect(self) -> None:
        """Create the database file and schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with aiosqlite.connect(self.db_path, timeout=self.busy_timeout) as conn:
                await conn.execute("PRAGMA journal_mode=WAL")
                await conn.executescript(SCHEMA)
                await conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to initialize database {self.db_path}: {e}") from e
        self._ready = True
        logger.info(f"Connected to memory database: {self.db_path}")

    async def close(self) -> None:
        self._ready = False

    @property
    def ready(self) -> bool:
        return self._ready

    async def _open(self) -> aiosqlite.Connection:
        if not self._ready:
            raise RuntimeError("Database not initialized. Call connect() first.")
        conn = await aiosqlite.connect(
            self.db_path,
            timeout=self.busy_timeout,
            isolation_level=None,  # explicit BEGIN/COMMIT
        )
        conn.row_factory = aiosqlite.Row
        await conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Run a block as one write transaction, rolled back on any error."""
        try:
            conn = await self._open()
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open database: {e}") from e

        try:
            await conn.execute("BEGIN IMMEDIATE")
            yield conn
            await conn.execute("COMMIT")
        except sqlite3.Error as e:
            await self._rollback(conn)
            raise StoreError(f"Database error: {e}") from e
        except BaseException:
            await self._rollback(conn)
            raise
        finally:
            await conn.close()

    @asynccontextmanager
    async def reader(self) -> AsyncIterator[aiosqlite.Connection]:
        """Connection for read-only statements (each statement is its own snapshot)."""
        try:
            conn = await self._open()
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open database: {e}") from e

        try:
            yield conn
        except sqlite3.Error as e:
            raise StoreError(f"Database error: {e}") from e
        finally:
            await conn.close()

    @staticmethod
    async def _rollback(conn: aiosqlite.Connection) -> None:
        if not conn.in_transaction:
            return
        try:
            await conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            logger.error(f"Rollback failed: {e}")


async def bump_generation(conn: aiosqlite.Connection, project_id: str) -> int:
    """Increment and return the project's write generation (inside a transaction)."""
    await conn.execute(
        """INSERT INTO project_generations (project_id, generation) VALUES (?, 1)
           ON CONFLICT(project_id) DO UPDATE SET generation = generation + 1""",
        (project_id,),
    )
    return await get_generation(conn, project_id)


async def get_generation(conn: aiosqlite.Connection, project_id: str) -> int:
    async with conn.execute(
        "SELECT generation FROM project_generations WHERE project_id = ?", (project_id,)
    ) as cursor:
        row = await cursor.fetchone()
        return row[0] if row else 0
