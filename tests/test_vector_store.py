"""Tests for the vector store."""

import pytest

from helpers import FakeClock, at_similarity, make_vector
from memoria.core.errors import NotFoundError, SearchUnavailableError, ValidationError
from memoria.memory.base import MemoryType
from memoria.memory.database import Database
from memoria.memory.similarity import ExactBackend, HNSWBackend
from memoria.memory.vector_store import VectorStore

QUERY = make_vector(1.0)


@pytest.fixture(params=["exact", "hnsw"])
def backend(request):
    if request.param == "exact":
        return ExactBackend()
    return HNSWBackend(candidate_pool=50)


@pytest.fixture
def store(db: Database, backend, clock: FakeClock) -> VectorStore:
    return VectorStore(db, backend=backend, clock=clock)


async def _store(store: VectorStore, embedding, project_id="p1", category="decision", **kwargs) -> str:
    return await store.store(
        project_id=project_id,
        category=category,
        content=kwargs.pop("content", "some memory"),
        embedding=embedding,
        **kwargs,
    )


class TestStore:
    @pytest.mark.asyncio
    async def test_store_and_get(self, store: VectorStore, clock: FakeClock):
        memory_id = await _store(
            store,
            QUERY,
            content="Switched to JWT",
            type="insight",
            importance=3,
            metadata={"files": ["auth.py"]},
        )

        memory = await store.get(memory_id, "p1")
        assert memory.content == "Switched to JWT"
        assert memory.type == MemoryType.INSIGHT
        assert memory.importance == 3
        assert memory.metadata == {"files": ["auth.py"]}
        assert memory.created_at == clock.now
        assert memory.updated_at == clock.now
        assert memory.embedding == pytest.approx(QUERY, abs=1e-6)

    @pytest.mark.asyncio
    async def test_ids_are_unique(self, store: VectorStore):
        ids = {await _store(store, QUERY) for _ in range(5)}
        assert len(ids) == 5

    @pytest.mark.asyncio
    @pytest.mark.parametrize("size", [0, 383, 385])
    async def test_rejects_wrong_embedding_length(self, store: VectorStore, size: int):
        with pytest.raises(ValidationError, match="384"):
            await _store(store, [0.1] * size)

    @pytest.mark.asyncio
    async def test_rejects_non_finite_embedding(self, store: VectorStore):
        embedding = list(QUERY)
        embedding[3] = float("nan")
        with pytest.raises(ValidationError, match="non-finite"):
            await _store(store, embedding)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("importance", [0, 6, True, 2.5, "3"])
    async def test_rejects_bad_importance(self, store: VectorStore, importance):
        with pytest.raises(ValidationError, match="importance"):
            await _store(store, QUERY, importance=importance)

    @pytest.mark.asyncio
    async def test_rejects_unknown_type(self, store: VectorStore):
        with pytest.raises(ValidationError, match="type must be one of"):
            await _store(store, QUERY, type="semantic")

    @pytest.mark.asyncio
    async def test_rejects_empty_content(self, store: VectorStore):
        with pytest.raises(ValidationError, match="content"):
            await _store(store, QUERY, content="   ")

    @pytest.mark.asyncio
    async def test_rejects_non_object_metadata(self, store: VectorStore):
        with pytest.raises(ValidationError, match="metadata"):
            await _store(store, QUERY, metadata=["x"])

    @pytest.mark.asyncio
    async def test_failed_store_persists_nothing(self, store: VectorStore):
        with pytest.raises(ValidationError):
            await _store(store, QUERY, importance=9)
        assert await store.stats("p1") == {"total_memories": 0}


class TestSearch:
    @pytest.mark.asyncio
    async def test_importance_outranks_similarity(self, store: VectorStore):
        """A (importance 5) is farther than B (importance 1) but ranks first."""
        a = await _store(store, at_similarity(0.8), importance=5)
        b = await _store(store, at_similarity(0.95), importance=1)

        results = await store.search("p1", QUERY, threshold=0.5)
        assert [r.memory.id for r in results] == [a, b]
        assert results[0].similarity == pytest.approx(0.8, abs=1e-4)
        assert results[1].similarity == pytest.approx(0.95, abs=1e-4)

    @pytest.mark.asyncio
    async def test_similarity_orders_equal_importance(self, store: VectorStore):
        far = await _store(store, at_similarity(0.6), importance=2)
        near = await _store(store, at_similarity(0.9), importance=2)
        mid = await _store(store, at_similarity(0.75), importance=2)

        results = await store.search("p1", QUERY, threshold=0.5)
        assert [r.memory.id for r in results] == [near, mid, far]

    @pytest.mark.asyncio
    async def test_threshold_filters(self, store: VectorStore):
        await _store(store, at_similarity(0.3), importance=5)
        kept = await _store(store, at_similarity(0.7))

        results = await store.search("p1", QUERY, threshold=0.5)
        assert [r.memory.id for r in results] == [kept]
        assert all(r.similarity >= 0.5 for r in results)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("cos", [0.3, 0.5, 0.6, 0.7, 0.8, 0.95])
    async def test_memory_exactly_at_threshold_included(self, store: VectorStore, cos: float):
        memory_id = await _store(store, at_similarity(cos))

        results = await store.search("p1", QUERY, threshold=cos)
        assert [r.memory.id for r in results] == [memory_id]
        assert results[0].similarity == pytest.approx(cos, abs=1e-6)

    @pytest.mark.asyncio
    async def test_threshold_zero_excludes_opposite_vectors(self, store: VectorStore):
        await _store(store, make_vector(-1.0))
        assert await store.search("p1", QUERY, threshold=0.0) == []

    @pytest.mark.asyncio
    async def test_category_filter(self, store: VectorStore):
        await _store(store, at_similarity(0.9), category="bug")
        decision = await _store(store, at_similarity(0.8), category="decision")

        results = await store.search("p1", QUERY, category="decision", threshold=0.5)
        assert [r.memory.id for r in results] == [decision]
        assert await store.search("p1", QUERY, category="missing", threshold=0.0) == []

    @pytest.mark.asyncio
    async def test_limit(self, store: VectorStore):
        for i in range(8):
            await _store(store, at_similarity(0.6 + i * 0.04))
        results = await store.search("p1", QUERY, threshold=0.5, limit=3)
        assert len(results) == 3
        assert results[0].similarity == pytest.approx(0.88, abs=1e-4)

    @pytest.mark.asyncio
    async def test_project_isolation(self, store: VectorStore):
        mine = await _store(store, at_similarity(0.9), project_id="p1")
        await _store(store, QUERY, project_id="p2")

        results = await store.search("p1", QUERY, threshold=0.0)
        assert [r.memory.id for r in results] == [mine]
        assert all(r.memory.project_id == "p1" for r in results)

    @pytest.mark.asyncio
    async def test_results_omit_embedding(self, store: VectorStore):
        await _store(store, QUERY)
        results = await store.search("p1", QUERY)
        assert results[0].memory.embedding is None
        assert "embedding" not in results[0].to_dict()

    @pytest.mark.asyncio
    async def test_empty_project(self, store: VectorStore):
        assert await store.search("nobody", QUERY) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "kwargs",
        [{"limit": 0}, {"limit": 51}, {"threshold": 1.5}, {"threshold": -0.1}],
    )
    async def test_rejects_bad_parameters(self, store: VectorStore, kwargs):
        with pytest.raises(ValidationError):
            await store.search("p1", QUERY, **kwargs)

    @pytest.mark.asyncio
    async def test_rejects_wrong_query_length(self, store: VectorStore):
        with pytest.raises(ValidationError, match="query_embedding"):
            await store.search("p1", [1.0] * 10)


class TestList:
    @pytest.mark.asyncio
    async def test_newest_first(self, store: VectorStore, clock: FakeClock):
        ids = []
        for _ in range(3):
            ids.append(await _store(store, QUERY))
            clock.advance(minutes=1)

        memories = await store.list("p1")
        assert [m.id for m in memories] == list(reversed(ids))

    @pytest.mark.asyncio
    async def test_same_timestamp_keeps_insert_order(self, store: VectorStore):
        first = await _store(store, QUERY)
        second = await _store(store, QUERY)
        assert [m.id for m in await store.list("p1")] == [second, first]

    @pytest.mark.asyncio
    async def test_pagination(self, store: VectorStore, clock: FakeClock):
        ids = []
        for _ in range(5):
            ids.append(await _store(store, QUERY))
            clock.advance(seconds=1)
        newest_first = list(reversed(ids))

        page1 = await store.list("p1", limit=2)
        page2 = await store.list("p1", limit=2, offset=2)
        page3 = await store.list("p1", limit=2, offset=4)
        assert [m.id for m in page1 + page2 + page3] == newest_first
        assert await store.list("p1", limit=2, offset=10) == []

    @pytest.mark.asyncio
    async def test_category_and_project(self, store: VectorStore):
        await _store(store, QUERY, category="bug")
        wanted = await _store(store, QUERY, category="decision")
        await _store(store, QUERY, project_id="p2", category="decision")

        memories = await store.list("p1", category="decision")
        assert [m.id for m in memories] == [wanted]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kwargs", [{"limit": 0}, {"limit": 101}, {"offset": -1}])
    async def test_rejects_bad_parameters(self, store: VectorStore, kwargs):
        with pytest.raises(ValidationError):
            await store.list("p1", **kwargs)


class TestDeleteAndStats:
    @pytest.mark.asyncio
    async def test_delete(self, store: VectorStore):
        memory_id = await _store(store, QUERY)
        await store.delete(memory_id, "p1")

        with pytest.raises(NotFoundError):
            await store.get(memory_id, "p1")
        assert await store.search("p1", QUERY) == []

    @pytest.mark.asyncio
    async def test_delete_requires_owning_project(self, store: VectorStore):
        memory_id = await _store(store, QUERY, project_id="p1")

        with pytest.raises(NotFoundError):
            await store.delete(memory_id, "p2")
        assert (await store.get(memory_id, "p1")).id == memory_id

    @pytest.mark.asyncio
    async def test_delete_unknown(self, store: VectorStore):
        with pytest.raises(NotFoundError):
            await store.delete("missing", "p1")

    @pytest.mark.asyncio
    async def test_get_requires_owning_project(self, store: VectorStore):
        memory_id = await _store(store, QUERY, project_id="p1")
        with pytest.raises(NotFoundError):
            await store.get(memory_id, "p2")

    @pytest.mark.asyncio
    async def test_stats(self, store: VectorStore):
        for _ in range(3):
            await _store(store, QUERY, project_id="p1")
        await _store(store, QUERY, project_id="p2")

        assert await store.stats("p1") == {"total_memories": 3}
        assert await store.stats("p2") == {"total_memories": 1}
        assert await store.stats("p3") == {"total_memories": 0}


class TestCleanup:
    @pytest.mark.asyncio
    async def test_removes_only_old_memories(self, store: VectorStore, clock: FakeClock):
        old = await _store(store, QUERY)
        clock.advance(days=100)
        recent = await _store(store, QUERY)

        assert await store.cleanup(older_than_days=90) == 1
        assert [m.id for m in await store.list("p1")] == [recent]
        with pytest.raises(NotFoundError):
            await store.get(old, "p1")

    @pytest.mark.asyncio
    async def test_scoped_to_project(self, store: VectorStore, clock: FakeClock):
        await _store(store, QUERY, project_id="p1")
        await _store(store, QUERY, project_id="p2")
        clock.advance(days=10)

        assert await store.cleanup(older_than_days=5, project_id="p1") == 1
        assert await store.stats("p1") == {"total_memories": 0}
        assert await store.stats("p2") == {"total_memories": 1}

    @pytest.mark.asyncio
    async def test_search_after_cleanup(self, store: VectorStore, clock: FakeClock):
        await _store(store, QUERY)
        await store.search("p1", QUERY)  # builds any index
        clock.advance(days=2)

        await store.cleanup(older_than_days=1)
        assert await store.search("p1", QUERY) == []

    @pytest.mark.asyncio
    async def test_rejects_negative_days(self, store: VectorStore):
        with pytest.raises(ValidationError):
            await store.cleanup(older_than_days=-1)


class TestHNSWBackend:
    """Index maintenance specific to the approximate backend."""

    @pytest.mark.asyncio
    async def test_incremental_add_after_build(self, db: Database, clock: FakeClock):
        backend = HNSWBackend(candidate_pool=50)
        store = VectorStore(db, backend=backend, clock=clock)
        first = await _store(store, at_similarity(0.7))
        await store.search("p1", QUERY)

        second = await _store(store, at_similarity(0.9))
        index, _ = backend._indexes["p1"]
        assert second in index

        results = await store.search("p1", QUERY)
        assert [r.memory.id for r in results] == [second, first]

    @pytest.mark.asyncio
    async def test_rebuilds_after_outside_write(self, db: Database, clock: FakeClock):
        """A write through another store instance is picked up via the generation counter."""
        ours = VectorStore(db, backend=HNSWBackend(), clock=clock)
        theirs = VectorStore(db, backend=HNSWBackend(), clock=clock)
        await _store(ours, at_similarity(0.6))
        assert len(await ours.search("p1", QUERY)) == 1

        other = await _store(theirs, at_similarity(0.9))
        results = await ours.search("p1", QUERY)
        assert [r.memory.id for r in results][0] == other
        assert len(results) == 2

    @pytest.mark.asyncio
    async def test_deleted_memory_not_returned(self, db: Database, clock: FakeClock):
        store = VectorStore(db, backend=HNSWBackend(), clock=clock)
        gone = await _store(store, QUERY)
        kept = await _store(store, at_similarity(0.9))
        await store.search("p1", QUERY)

        await store.delete(gone, "p1")
        assert [r.memory.id for r in await store.search("p1", QUERY)] == [kept]


class _BrokenBackend(ExactBackend):
    name = "broken"

    async def candidates(self, conn, project_id, query, category, limit):
        raise SearchUnavailableError("index offline")


@pytest.mark.asyncio
async def test_backend_failure_surfaces(db: Database):
    store = VectorStore(db, backend=_BrokenBackend())
    with pytest.raises(SearchUnavailableError):
        await store.search("p1", QUERY)
