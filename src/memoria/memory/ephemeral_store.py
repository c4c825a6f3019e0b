"""Ephemeral store: session scratch values with optional time-to-live.

Expiry is evaluated when a value is read. An expired entry is deleted by
the read that notices it; nothing sweeps entries in the background.
"""

import math
from datetime import datetime, timedelta
from typing import Any

from memoria.core.errors import ExpiredNotFoundError, NotFoundError, ValidationError
from memoria.core.json_value import (
    DEFAULT_MAX_BYTES,
    DEFAULT_MAX_DEPTH,
    load_json,
    validate_json_value,
)
from memoria.core.logging import get_logger
from memoria.core.typing import JSONValue
from memoria.memory.base import EphemeralEntry
from memoria.memory.database import Clock, Database, as_utc, from_db, to_db, utcnow

MAX_TTL_SECONDS = 10 * 365 * 24 * 3600

logger = get_logger("memory.ephemeral_store")


class EphemeralStore:
    """Per-session key-value state with lazy expiry."""

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
        session_id: str,
        key: str,
        value: Any,
        ttl_seconds: float | None = None,
    ) -> None:
        """Insert or overwrite a value; without ttl_seconds it never expires."""
        for name, part in (("session_id", session_id), ("key", key)):
            if not isinstance(part, str) or not part.strip():
                raise ValidationError(f"{name} must be a non-empty string")
        if ttl_seconds is not None and (
            isinstance(ttl_seconds, bool)
            or not isinstance(ttl_seconds, (int, float))
            or not math.isfinite(ttl_seconds)
            or not 0 < ttl_seconds <= MAX_TTL_SECONDS
        ):
            raise ValidationError(
                f"ttl_seconds must be a positive number of at most {MAX_TTL_SECONDS}"
            )
        value_json = validate_json_value(
            value, max_depth=self.json_max_depth, max_bytes=self.json_max_bytes
        )

        now = self.clock()
        try:
            expires_at = to_db(now + timedelta(seconds=ttl_seconds)) if ttl_seconds else None
        except OverflowError as e:
            raise ValidationError(f"ttl_seconds {ttl_seconds} runs past the end of the calendar") from e
        async with self.db.transaction() as conn:
            await conn.execute(
                """INSERT INTO short_term_memory (session_id, key, value, created_at, expires_at)
                   VALUES (?, ?, ?, ?, ?)
                   ON CONFLICT(session_id, key) DO UPDATE SET
                       value = excluded.value,
                       expires_at = excluded.expires_at""",
                (session_id, key, value_json, to_db(now), expires_at),
            )
        logger.debug(f"Set short-term {session_id}/{key} (ttl={ttl_seconds})")

    async def get_entry(self, session_id: str, key: str) -> EphemeralEntry:
        """Return the live entry.

        Raises:
            NotFoundError: If there is no entry
            ExpiredNotFoundError: If the entry had expired (it is deleted now)
        """
        async with self.db.reader() as conn:
            async with conn.execute(
                """SELECT value, created_at, expires_at FROM short_term_memory
                   WHERE session_id = ? AND key = ?""",
                (session_id, key),
            ) as cursor:
                row = await cursor.fetchone()
        if row is None:
            raise NotFoundError(f"No short-term memory {key} in session {session_id}")

        entry = EphemeralEntry(
            session_id=session_id,
            key=key,
            value=load_json(row["value"]),
            created_at=from_db(row["created_at"]),
            expires_at=from_db(row["expires_at"]),
        )
        now = as_utc(self.clock())
        if entry.is_expired(now):
            await self._delete_expired(session_id, key, now)
            raise ExpiredNotFoundError(f"Short-term memory {key} in session {session_id} expired")
        return entry

    async def get(self, session_id: str, key: str) -> JSONValue:
        entry = await self.get_entry(session_id, key)
        return entry.value

    async def _delete_expired(self, session_id: str, key: str, now: datetime) -> None:
        # Re-checks expiry so a concurrent overwrite with a fresh TTL survives;
        # zero rows means another reader already removed it.
        async with self.db.transaction() as conn:
            cursor = await conn.execute(
                """DELETE FROM short_term_memory
                   WHERE session_id = ? AND key = ?
                     AND expires_at IS NOT NULL AND expires_at <= ?""",
                (session_id, key, to_db(now)),
            )
            removed = cursor.rowcount
        if removed:
            logger.debug(f"Expired short-term {session_id}/{key} removed")
