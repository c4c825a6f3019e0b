"""Vector store: episodic, insight and procedure memories with embeddings."""

from datetime import timedelta
from typing import Any
from uuid import uuid4

import aiosqlite
import numpy as np

from memoria.core.errors import NotFoundError, ValidationError
from memoria.core.json_value import DEFAULT_MAX_BYTES, DEFAULT_MAX_DEPTH, validate_metadata
from memoria.core.logging import get_logger
from memoria.memory.base import (
    EMBEDDING_DIMENSION,
    MAX_IMPORTANCE,
    MIN_IMPORTANCE,
    Memory,
    MemoryType,
    SearchResult,
)
from memoria.memory.codec import MEMORY_COLUMNS, encode_embedding, row_to_memory
from memoria.memory.database import Clock, Database, bump_generation, to_db, utcnow
from memoria.memory.similarity import ExactBackend, SimilarityBackend

logger = get_logger("memory.vector_store")

SEARCH_LIMIT_MAX = 50
LIST_LIMIT_MAX = 100


def _require_text(name: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} must be a non-empty string")
    return value


def _check_embedding(embedding: Any, name: str = "embedding") -> np.ndarray:
    try:
        arr = np.asarray(embedding, dtype=np.float32)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{name} must be a list of numbers") from e
    if arr.ndim != 1 or arr.shape[0] != EMBEDDING_DIMENSION:
        raise ValidationError(
            f"{name} must have exactly {EMBEDDING_DIMENSION} elements, got {arr.size}"
        )
    if not np.all(np.isfinite(arr)):
        raise ValidationError(f"{name} contains non-finite values")
    return arr


def _check_limit(limit: Any, maximum: int) -> int:
    if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= maximum:
        raise ValidationError(f"limit must be an integer between 1 and {maximum}")
    return limit


def _parse_type(memory_type: MemoryType | str) -> MemoryType:
    try:
        return MemoryType(memory_type)
    except ValueError as e:
        allowed = ", ".join(t.value for t in MemoryType)
        raise ValidationError(f"type must be one of: {allowed}") from e


class VectorStore:
    """Memories with embeddings, similarity search and chronological listing."""

    def __init__(
        self,
        db: Database,
        backend: SimilarityBackend | None = None,
        clock: Clock = utcnow,
        json_max_depth: int = DEFAULT_MAX_DEPTH,
        json_max_bytes: int = DEFAULT_MAX_BYTES,
    ):
        self.db = db
        self.backend = backend or ExactBackend()
        self.clock = clock
        self.json_max_depth = json_max_depth
        self.json_max_bytes = json_max_bytes

    async def store(
        self,
        project_id: str,
        category: str,
        content: str,
        embedding: list[float],
        type: MemoryType | str = MemoryType.EPISODIC,
        importance: int = 1,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Persist a new memory, return its id."""
        _require_text("project_id", project_id)
        _require_text("category", category)
        _require_text("content", content)
        vector = _check_embedding(embedding)
        memory_type = _parse_type(type)
        if (
            isinstance(importance, bool)
            or not isinstance(importance, int)
            or not MIN_IMPORTANCE <= importance <= MAX_IMPORTANCE
        ):
            raise ValidationError(
                f"importance must be an integer between {MIN_IMPORTANCE} and {MAX_IMPORTANCE}"
            )
        metadata_json = validate_metadata(
            metadata, max_depth=self.json_max_depth, max_bytes=self.json_max_bytes
        )

        now = self.clock()
        memory = Memory(
            id=str(uuid4()),
            project_id=project_id,
            category=category,
            content=content,
            embedding=vector.tolist(),
            type=memory_type,
            importance=importance,
            metadata=metadata or {},
            created_at=now,
            updated_at=now,
        )

        async with self.db.transaction() as conn:
            await conn.execute(
                """INSERT INTO memories
                   (id, project_id, category, content, embedding, metadata,
                    type, importance, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    memory.id,
                    project_id,
                    category,
                    content,
                    encode_embedding(vector),
                    metadata_json,
                    memory_type.value,
                    importance,
                    to_db(now),
                    to_db(now),
                ),
            )
            generation = await bump_generation(conn, project_id)

        self.backend.memory_added(memory, generation)
        logger.info(f"Stored memory {memory.id} in {project_id}/{category}")
        return memory.id

    async def search(
        self,
        project_id: str,
        query_embedding: list[float],
        category: str | None = None,
        threshold: float = 0.5,
        limit: int = 5,
    ) -> list[SearchResult]:
        """Similarity search ranked by importance, then similarity.

        Only memories of `project_id` (and `category` if given) whose cosine
        similarity to the query reaches `threshold` are returned.

        Raises:
            SearchUnavailableError: If the similarity backend fails
        """
        _require_text("project_id", project_id)
        query = _check_embedding(query_embedding, "query_embedding")
        if (
            isinstance(threshold, bool)
            or not isinstance(threshold, (int, float))
            or not 0.0 <= threshold <= 1.0
        ):
            raise ValidationError("threshold must be a number between 0 and 1")
        limit = _check_limit(limit, SEARCH_LIMIT_MAX)

        async with self.db.reader() as conn:
            candidates = await self.backend.candidates(conn, project_id, query, category, limit)

        matches = [
            SearchResult(memory=memory, similarity=similarity)
            for memory, similarity in candidates
            if similarity >= threshold
        ]
        matches.sort(key=lambda r: (-r.memory.importance, -(r.similarity or 0.0)))
        logger.debug(
            f"{self.backend.name} search in {project_id}: "
            f"{len(candidates)} candidates, {len(matches)} above {threshold}"
        )
        return matches[:limit]

    async def list(
        self,
        project_id: str,
        category: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Memory]:
        """Page of memories, newest first."""
        _require_text("project_id", project_id)
        limit = _check_limit(limit, LIST_LIMIT_MAX)
        if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
            raise ValidationError("offset must be a non-negative integer")

        sql = f"SELECT {MEMORY_COLUMNS} FROM memories WHERE project_id = ?"
        params: list[Any] = [project_id]
        if category is not None:
            sql += " AND category = ?"
            params.append(category)
        sql += " ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        async with self.db.reader() as conn:
            rows = await conn.execute_fetchall(sql, params)
        return [row_to_memory(row) for row in rows]

    async def get(self, memory_id: str, project_id: str) -> Memory:
        """Fetch one memory owned by `project_id`."""
        async with self.db.reader() as conn:
            async with conn.execute(
                f"SELECT {MEMORY_COLUMNS}, embedding FROM memories WHERE id = ? AND project_id = ?",
                (memory_id, project_id),
            ) as cursor:
                row = await cursor.fetchone()
        if row is None:
            raise NotFoundError(f"Memory {memory_id} not found in project {project_id}")
        return row_to_memory(row)

    async def delete(self, memory_id: str, project_id: str) -> None:
        """Delete a memory owned by `project_id`.

        Relations referencing it are removed by the foreign-key cascade in
        the same transaction.

        Raises:
            NotFoundError: If no such memory exists in the project
        """
        async with self.db.transaction() as conn:
            generation = await self.remove(conn, memory_id, project_id)
        self.removed(memory_id, project_id, generation)

    async def remove(self, conn: aiosqlite.Connection, memory_id: str, project_id: str) -> int:
        """Delete inside the caller's transaction and return the new generation.

        The caller must call removed() once that transaction has committed.
        """
        cursor = await conn.execute(
            "DELETE FROM memories WHERE id = ? AND project_id = ?", (memory_id, project_id)
        )
        if cursor.rowcount == 0:
            raise NotFoundError(f"Memory {memory_id} not found in project {project_id}")
        return await bump_generation(conn, project_id)

    def removed(self, memory_id: str, project_id: str, generation: int) -> None:
        self.backend.memory_removed(project_id, generation)
        logger.info(f"Deleted memory {memory_id} from {project_id}")

    async def stats(self, project_id: str) -> dict[str, int]:
        _require_text("project_id", project_id)
        async with self.db.reader() as conn:
            async with conn.execute(
                "SELECT COUNT(*) FROM memories WHERE project_id = ?", (project_id,)
            ) as cursor:
                row = await cursor.fetchone()
        return {"total_memories": row[0] if row else 0}

    async def cleanup(self, older_than_days: int = 90, project_id: str | None = None) -> int:
        """Delete memories created more than `older_than_days` ago. Returns the count."""
        if isinstance(older_than_days, bool) or not isinstance(older_than_days, int):
            raise ValidationError("older_than_days must be an integer")
        if older_than_days < 0:
            raise ValidationError("older_than_days must not be negative")
        cutoff = to_db(self.clock() - timedelta(days=older_than_days))

        where = "created_at < ?"
        params: list[Any] = [cutoff]
        if project_id is not None:
            where += " AND project_id = ?"
            params.append(project_id)

        generations: dict[str, int] = {}
        async with self.db.transaction() as conn:
            rows = await conn.execute_fetchall(
                f"SELECT DISTINCT project_id FROM memories WHERE {where}", params
            )
            projects = [row[0] for row in rows]
            cursor = await conn.execute(f"DELETE FROM memories WHERE {where}", params)
            deleted = cursor.rowcount
            for pid in projects:
                generations[pid] = await bump_generation(conn, pid)

        for pid, generation in generations.items():
            self.backend.memory_removed(pid, generation)
        logger.info(f"Cleanup removed {deleted} memories older than {older_than_days} days")
        return deleted
