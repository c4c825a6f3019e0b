"""Tests for the ephemeral (short-term) store."""

import asyncio
from datetime import datetime, timezone

import pytest

from helpers import FakeClock
from memoria.core.errors import ExpiredNotFoundError, NotFoundError, ValidationError
from memoria.memory.database import Database
from memoria.memory.ephemeral_store import EphemeralStore


@pytest.fixture
def store(db: Database, clock: FakeClock) -> EphemeralStore:
    return EphemeralStore(db, clock=clock)


async def _row_count(db: Database) -> int:
    async with db.reader() as conn:
        rows = await conn.execute_fetchall("SELECT COUNT(*) FROM short_term_memory")
    return rows[0][0]


@pytest.mark.asyncio
async def test_set_and_get(store: EphemeralStore):
    await store.set("s1", "focus", "auth.ts")
    assert await store.get("s1", "focus") == "auth.ts"


@pytest.mark.asyncio
async def test_missing_key(store: EphemeralStore):
    with pytest.raises(NotFoundError) as exc_info:
        await store.get("s1", "absent")
    assert not isinstance(exc_info.value, ExpiredNotFoundError)


@pytest.mark.asyncio
async def test_no_ttl_never_expires(store: EphemeralStore, clock: FakeClock):
    await store.set("s1", "plan", ["a", "b"])
    clock.advance(days=365)
    assert await store.get("s1", "plan") == ["a", "b"]


@pytest.mark.asyncio
async def test_value_before_expiry(store: EphemeralStore, clock: FakeClock):
    await store.set("s1", "focus", "auth.ts", ttl_seconds=60)
    clock.advance(seconds=59)
    assert await store.get("s1", "focus") == "auth.ts"


@pytest.mark.asyncio
async def test_expired_at_boundary(store: EphemeralStore, clock: FakeClock):
    await store.set("s1", "focus", "auth.ts", ttl_seconds=60)
    clock.advance(seconds=60)
    with pytest.raises(ExpiredNotFoundError):
        await store.get("s1", "focus")


@pytest.mark.asyncio
async def test_expired_read_deletes_and_never_resurrects(
    store: EphemeralStore, db: Database, clock: FakeClock
):
    await store.set("s1", "focus", "auth.ts", ttl_seconds=1)
    clock.advance(seconds=2)

    with pytest.raises(ExpiredNotFoundError):
        await store.get("s1", "focus")
    assert await _row_count(db) == 0

    # Second read sees plain not-found
    with pytest.raises(NotFoundError) as exc_info:
        await store.get("s1", "focus")
    assert not isinstance(exc_info.value, ExpiredNotFoundError)


@pytest.mark.asyncio
async def test_concurrent_expired_reads(store: EphemeralStore, db: Database, clock: FakeClock):
    await store.set("s1", "k", 1, ttl_seconds=1)
    clock.advance(seconds=5)

    results = await asyncio.gather(
        *(store.get("s1", "k") for _ in range(5)), return_exceptions=True
    )
    assert all(isinstance(r, NotFoundError) for r in results)
    assert await _row_count(db) == 0


@pytest.mark.asyncio
async def test_overwrite_refreshes_ttl(store: EphemeralStore, clock: FakeClock):
    await store.set("s1", "focus", "old", ttl_seconds=10)
    clock.advance(seconds=8)
    await store.set("s1", "focus", "new", ttl_seconds=10)
    clock.advance(seconds=8)
    assert await store.get("s1", "focus") == "new"


@pytest.mark.asyncio
async def test_overwrite_without_ttl_clears_expiry(store: EphemeralStore, clock: FakeClock):
    await store.set("s1", "focus", "old", ttl_seconds=1)
    await store.set("s1", "focus", "pinned")
    clock.advance(hours=1)

    entry = await store.get_entry("s1", "focus")
    assert entry.value == "pinned"
    assert entry.expires_at is None


@pytest.mark.asyncio
async def test_overwrite_keeps_created_at(store: EphemeralStore, clock: FakeClock):
    await store.set("s1", "k", 1)
    created = clock.now
    clock.advance(minutes=5)
    await store.set("s1", "k", 2)
    assert (await store.get_entry("s1", "k")).created_at == created


@pytest.mark.asyncio
async def test_sessions_are_separate(store: EphemeralStore):
    await store.set("s1", "k", "one")
    await store.set("s2", "k", "two")
    assert await store.get("s1", "k") == "one"
    assert await store.get("s2", "k") == "two"


@pytest.mark.asyncio
@pytest.mark.parametrize("ttl", [0, -5, True, "10", float("nan"), float("inf"), 1e15])
async def test_rejects_bad_ttl(store: EphemeralStore, ttl):
    with pytest.raises(ValidationError, match="ttl_seconds"):
        await store.set("s1", "k", 1, ttl_seconds=ttl)


@pytest.mark.asyncio
async def test_naive_clock_treated_as_utc(db: Database):
    clock = FakeClock(datetime(2025, 1, 1, 12, 0))
    store = EphemeralStore(db, clock=clock)
    await store.set("s1", "k", "v", ttl_seconds=30)
    assert await store.get("s1", "k") == "v"
    clock.advance(seconds=31)
    with pytest.raises(ExpiredNotFoundError):
        await store.get("s1", "k")


@pytest.mark.asyncio
async def test_real_time_expiry(db: Database):
    """Default wall clock: value visible immediately, gone after its TTL."""
    store = EphemeralStore(db)
    await store.set("s1", "focus", "auth.ts", ttl_seconds=1)
    assert await store.get("s1", "focus") == "auth.ts"

    await asyncio.sleep(2)
    with pytest.raises(NotFoundError):
        await store.get("s1", "focus")


@pytest.mark.asyncio
async def test_ttl_past_calendar_end(db: Database):
    clock = FakeClock(datetime(9999, 12, 31, 12, 0, tzinfo=timezone.utc))
    store = EphemeralStore(db, clock=clock)
    with pytest.raises(ValidationError, match="ttl_seconds"):
        await store.set("s1", "k", 1, ttl_seconds=86400 * 2)
    assert await _row_count(db) == 0
