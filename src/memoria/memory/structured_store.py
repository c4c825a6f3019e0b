"""Structured store: exact facts keyed by (project_id, category, key)."""

from typing import Any

from memoria.core.errors import NotFoundError, ValidationError
from memoria.core.json_value import (
    DEFAULT_MAX_BYTES,
    DEFAULT_MAX_DEPTH,
    load_json,
    validate_json_value,
)
from memoria.core.logging import get_logger
from memoria.memory.base import StructuredEntry
from memoria.memory.database import Clock, Database, from_db, to_db, utcnow

logger = get_logger("memory.structured_store")


class StructuredStore:
    """Key-value facts with upsert semantics."""

    def __init__(
        self,
        db: Database,
        clock: Clock = utcnow,
        json_max_depth: int = DEFAULT_MAX_DEPTH,
        json_max_bytes: int = DEFAULT_MAX_BYTES,
    ):
        self.db = db
        self.clock = clock
        self.json_max_depth = json_max_depth
        self.json_max_bytes = json_max_bytes

    async def set(
        self,
        project_id: str,
        category: str,
        key: str,
        value: Any,
        description: str | None = None,
    ) -> None:
        """Insert or replace a fact; created_at of an existing fact is kept."""
        for name, part in (("project_id", project_id), ("category", category), ("key", key)):
            if not isinstance(part, str) or not part.strip():
                raise ValidationError(f"{name} must be a non-empty string")
        if description is not None and not isinstance(description, str):
            raise ValidationError("description must be a string")
        value_json = validate_json_value(
            value, max_depth=self.json_max_depth, max_bytes=self.json_max_bytes
        )

        now = to_db(self.clock())
        async with self.db.transaction() as conn:
            await conn.execute(
                """INSERT INTO structured_memories
                   (project_id, category, key, value, description, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?)
                   ON CONFLICT(project_id, category, key) DO UPDATE SET
                       value = excluded.value,
                       description = excluded.description,
                       updated_at = excluded.updated_at""",
                (project_id, category, key, value_json, description, now, now),
            )
        logger.debug(f"Set structured memory {project_id}/{category}/{key}")

    async def get_entry(self, project_id: str, category: str, key: str) -> StructuredEntry:
        async with self.db.reader() as conn:
            async with conn.execute(
                """SELECT value, description, created_at, updated_at
                   FROM structured_memories
                   WHERE project_id = ? AND category = ? AND key = ?""",
                (project_id, category, key),
            ) as cursor:
                row = await cursor.fetchone()
        if row is None:
            raise NotFoundError(f"No structured memory {category}/{key} in project {project_id}")
        return StructuredEntry(
            project_id=project_id,
            category=category,
            key=key,
            value=load_json(row["value"]),
            description=row["description"],
            created_at=from_db(row["created_at"]),
            updated_at=from_db(row["updated_at"]),
        )

    async def get(self, project_id: str, category: str, key: str) -> dict[str, Any]:
        """Return {"value", "description"} for a fact.

        Raises:
            NotFoundError: If the fact does not exist
        """
        entry = await self.get_entry(project_id, category, key)
        return {"value": entry.value, "description": entry.description}
