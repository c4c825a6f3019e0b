"""Relation graph: directed, typed edges between memories."""

import sqlite3
from uuid import uuid4

import aiosqlite

from memoria.core.errors import ConflictError, NotFoundError, ValidationError
from memoria.core.logging import get_logger
from memoria.memory.base import Direction, MemoryType, Relation, RelatedMemory
from memoria.memory.database import Clock, Database, from_db, to_db, utcnow

logger = get_logger("memory.relation_graph")

# One hop in both directions, joined against memories so an edge is only
# visible while both endpoints exist.
TRAVERSE_SQL = """
SELECT r.relation_type, 'outgoing' AS direction, m.id, m.category, m.content, m.type
FROM memory_relations r
JOIN memories m ON r.target_id = m.id
WHERE r.source_id = ?

UNION ALL

SELECT r.relation_type, 'incoming' AS direction, m.id, m.category, m.content, m.type
FROM memory_relations r
JOIN memories m ON r.source_id = m.id
WHERE r.target_id = ?
"""


class RelationGraph:
    """Edges between vector store memories, with single-hop traversal."""

    def __init__(self, db: Database, clock: Clock = utcnow):
        self.db = db
        self.clock = clock

    async def create_relation(self, source_id: str, target_id: str, relation_type: str) -> str:
        """Create an edge source -> target labelled `relation_type`.

        The endpoint check and the insert run in one write transaction.

        Raises:
            NotFoundError: If either endpoint memory does not exist
            ConflictError: If the same (source, target, type) edge exists
        """
        for name, value in (
            ("source_id", source_id),
            ("target_id", target_id),
            ("relation_type", relation_type),
        ):
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f"{name} must be a non-empty string")

        relation = Relation(
            id=str(uuid4()),
            source_id=source_id,
            target_id=target_id,
            relation_type=relation_type,
            created_at=self.clock(),
        )

        async with self.db.transaction() as conn:
            for endpoint in dict.fromkeys((source_id, target_id)):
                async with conn.execute(
                    "SELECT 1 FROM memories WHERE id = ?", (endpoint,)
                ) as cursor:
                    if await cursor.fetchone() is None:
                        raise NotFoundError(f"Memory {endpoint} not found")
            try:
                await conn.execute(
                    """INSERT INTO memory_relations
                       (id, source_id, target_id, relation_type, created_at)
                       VALUES (?, ?, ?, ?, ?)""",
                    (
                        relation.id,
                        source_id,
                        target_id,
                        relation_type,
                        to_db(relation.created_at),
                    ),
                )
            except sqlite3.IntegrityError as e:
                raise ConflictError(
                    f"Relation {source_id} -[{relation_type}]-> {target_id} already exists"
                ) from e

        logger.info(f"Created relation {source_id} -[{relation_type}]-> {target_id}")
        return relation.id

    async def traverse(self, memory_id: str) -> list[RelatedMemory]:
        """All memories one edge away from `memory_id`, in either direction."""
        async with self.db.reader() as conn:
            rows = await conn.execute_fetchall(TRAVERSE_SQL, (memory_id, memory_id))
        return [
            RelatedMemory(
                relation_type=row[0],
                direction=Direction(row[1]),
                memory_id=row[2],
                category=row[3],
                content=row[4],
                type=MemoryType(row[5]),
            )
            for row in rows
        ]

    async def detach(self, conn: aiosqlite.Connection, memory_id: str) -> int:
        """Delete every edge touching `memory_id` inside the caller's transaction."""
        cursor = await conn.execute(
            "DELETE FROM memory_relations WHERE source_id = ? OR target_id = ?",
            (memory_id, memory_id),
        )
        return cursor.rowcount

    async def relations_of(self, memory_id: str) -> list[Relation]:
        """Raw edges touching `memory_id` as source or target."""
        async with self.db.reader() as conn:
            rows = await conn.execute_fetchall(
                """SELECT id, source_id, target_id, relation_type, created_at
                   FROM memory_relations
                   WHERE source_id = ? OR target_id = ?
                   ORDER BY created_at""",
                (memory_id, memory_id),
            )
        return [
            Relation(
                id=row["id"],
                source_id=row["source_id"],
                target_id=row["target_id"],
                relation_type=row["relation_type"],
                created_at=from_db(row["created_at"]),
            )
            for row in rows
        ]
