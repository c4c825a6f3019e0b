"""
Similarity backends for the vector store.

A backend produces (memory, similarity) candidates for one project. The
vector store applies the threshold, ranking and limit itself, so every
backend honours the same search contract.

- ExactBackend: cosine scan over all of the project's memories (O(n))
- HNSWBackend: per-project faiss HNSW index, for large corpora
"""

from abc import ABC, abstractmethod

import aiosqlite
import numpy as np

from memoria.core.errors import SearchUnavailableError
from memoria.core.logging import get_logger
from memoria.index.project_index import ProjectIndex
from memoria.memory.base import EMBEDDING_DIMENSION, Memory
from memoria.memory.codec import MEMORY_COLUMNS, decode_embedding, row_to_memory
from memoria.memory.database import get_generation

logger = get_logger("memory.similarity")

# Embeddings are stored as float32; more digits than this are noise
SIMILARITY_DECIMALS = 6


def cosine_similarities(matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
    """Cosine similarity of each row of `matrix` to `query`, in float64."""
    matrix = np.asarray(matrix, dtype=np.float64)
    query = np.asarray(query, dtype=np.float64)
    norms = np.linalg.norm(matrix, axis=1) * float(np.linalg.norm(query))
    dots = matrix @ query
    sims = np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)
    return np.round(sims, SIMILARITY_DECIMALS)


def _score_rows(rows: list, query: np.ndarray) -> list[tuple[Memory, float]]:
    try:
        matrix = np.vstack([decode_embedding(row["embedding"]) for row in rows])
        sims = cosine_similarities(matrix, query)
    except ValueError as e:
        raise SearchUnavailableError(f"Similarity scoring failed: {e}") from e

    results = []
    for row, sim in zip(rows, sims):
        memory = row_to_memory(row)
        memory.embedding = None
        results.append((memory, float(sim)))
    return results


class SimilarityBackend(ABC):
    """Candidate generator for similarity search."""

    name: str

    @abstractmethod
    async def candidates(
        self,
        conn: aiosqlite.Connection,
        project_id: str,
        query: np.ndarray,
        category: str | None,
        limit: int,
    ) -> list[tuple[Memory, float]]:
        """Return memories of the project with their cosine similarity to `query`.

        Raises:
            SearchUnavailableError: If the backend cannot serve the query
        """
        ...

    def memory_added(self, memory: Memory, generation: int) -> None:
        """Hook called after a memory insert commits."""
        return None

    def memory_removed(self, project_id: str, generation: int) -> None:
        """Hook called after memories of a project were deleted."""
        return None


class ExactBackend(SimilarityBackend):
    """Brute-force cosine similarity with numpy."""

    name = "exact"

    async def candidates(
        self,
        conn: aiosqlite.Connection,
        project_id: str,
        query: np.ndarray,
        category: str | None,
        limit: int,
    ) -> list[tuple[Memory, float]]:
        sql = f"SELECT {MEMORY_COLUMNS}, embedding FROM memories WHERE project_id = ?"
        params: list[str] = [project_id]
        if category is not None:
            sql += " AND category = ?"
            params.append(category)

        rows = list(await conn.execute_fetchall(sql, params))
        if not rows:
            return []
        return _score_rows(rows, query)


class HNSWBackend(SimilarityBackend):
    """Approximate search through one faiss HNSW index per project.

    Indexes are built lazily from the database and kept in process. Each
    index remembers the project generation it reflects; when the stored
    generation moved (a write this process did not see), it is rebuilt.
    The index only nominates candidates; their similarity is recomputed
    exactly from the stored embeddings.
    """

    name = "hnsw"

    def __init__(
        self,
        dimensions: int = EMBEDDING_DIMENSION,
        m: int = 16,
        ef_construction: int = 64,
        ef_search: int = 40,
        candidate_pool: int = 200,
    ):
        self.dimensions = dimensions
        self.m = m
        self.ef_construction = ef_construction
        self.ef_search = ef_search
        self.candidate_pool = candidate_pool
        self._indexes: dict[str, tuple[ProjectIndex, int]] = {}

    def _new_index(self) -> ProjectIndex:
        return ProjectIndex(
            self.dimensions,
            m=self.m,
            ef_construction=self.ef_construction,
            ef_search=self.ef_search,
        )

    async def _index_for(self, conn: aiosqlite.Connection, project_id: str) -> ProjectIndex:
        generation = await get_generation(conn, project_id)
        cached = self._indexes.get(project_id)
        if cached is not None and cached[1] == generation:
            return cached[0]

        index = self._new_index()
        rows = await conn.execute_fetchall(
            "SELECT id, embedding FROM memories WHERE project_id = ? ORDER BY rowid",
            (project_id,),
        )
        if rows:
            index.add_many(
                [row["id"] for row in rows],
                np.vstack([decode_embedding(row["embedding"]) for row in rows]),
            )

        self._indexes[project_id] = (index, generation)
        logger.debug(f"Built HNSW index for {project_id}: {len(index)} vectors, gen {generation}")
        return index

    async def candidates(
        self,
        conn: aiosqlite.Connection,
        project_id: str,
        query: np.ndarray,
        category: str | None,
        limit: int,
    ) -> list[tuple[Memory, float]]:
        try:
            index = await self._index_for(conn, project_id)
            nearest = index.search(query, max(self.candidate_pool, limit))
        except (ValueError, RuntimeError) as e:
            raise SearchUnavailableError(f"HNSW search failed: {e}") from e
        if not nearest:
            return []

        placeholders = ", ".join("?" for _ in nearest)
        sql = (
            f"SELECT {MEMORY_COLUMNS}, embedding FROM memories "
            f"WHERE project_id = ? AND id IN ({placeholders})"
        )
        params: list[str] = [project_id, *nearest]
        if category is not None:
            sql += " AND category = ?"
            params.append(category)

        rows = list(await conn.execute_fetchall(sql, params))
        if not rows:
            return []
        return _score_rows(rows, query)

    def memory_added(self, memory: Memory, generation: int) -> None:
        cached = self._indexes.get(memory.project_id)
        if cached is None:
            return
        index, known = cached
        if known == generation - 1 and memory.embedding is not None:
            index.add(memory.id, memory.embedding)
            self._indexes[memory.project_id] = (index, generation)
        elif known != generation:
            del self._indexes[memory.project_id]

    def memory_removed(self, project_id: str, generation: int) -> None:
        self._indexes.pop(project_id, None)


def create_backend(
    name: str,
    *,
    m: int = 16,
    ef_construction: int = 64,
    ef_search: int = 40,
    candidate_pool: int = 200,
) -> SimilarityBackend:
    """Build a similarity backend by name ("exact" or "hnsw")."""
    if name == "exact":
        return ExactBackend()
    if name == "hnsw":
        return HNSWBackend(
            m=m,
            ef_construction=ef_construction,
            ef_search=ef_search,
            candidate_pool=candidate_pool,
        )
    raise ValueError(f"Unknown similarity backend: {name}")
