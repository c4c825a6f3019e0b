"""Per-project HNSW index backed by faiss.

faiss labels are int64, so the index keeps its own label -> memory id table.
Vectors are L2-normalized before insert and query, which makes the inner
product metric equal to cosine similarity.
"""

import faiss
import numpy as np


class ProjectIndex:
    """faiss IndexHNSWFlat over one project's memories, keyed by memory id."""

    def __init__(
        self,
        dimensions: int,
        m: int = 16,
        ef_construction: int = 64,
        ef_search: int = 40,
    ):
        """
        Args:
            dimensions: Vector length
            m: Neighbour fan-out per node
            ef_construction: Search width used while linking new vectors
            ef_search: Search width at query time
        """
        self.dimensions = dimensions
        self.ef_search = ef_search
        hnsw = faiss.IndexHNSWFlat(dimensions, m, faiss.METRIC_INNER_PRODUCT)
        hnsw.hnsw.efConstruction = ef_construction
        hnsw.hnsw.efSearch = ef_search
        self._hnsw = hnsw
        self._index = faiss.IndexIDMap(hnsw)
        self._ids: list[str] = []
        self._labels: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, memory_id: str) -> bool:
        return memory_id in self._labels

    def _prepare(self, vectors: list | np.ndarray) -> np.ndarray:
        matrix = np.ascontiguousarray(vectors, dtype=np.float32)
        if matrix.ndim == 1:
            matrix = matrix.reshape(1, -1)
        if matrix.shape[1] != self.dimensions:
            raise ValueError(f"Expected vectors of {self.dimensions} dims, got {matrix.shape[1]}")
        matrix = matrix.copy()
        faiss.normalize_L2(matrix)
        return matrix

    def add_many(self, memory_ids: list[str], vectors: list | np.ndarray) -> None:
        """Insert a batch of vectors; ids already present are skipped."""
        fresh = [(i, memory_id) for i, memory_id in enumerate(memory_ids) if memory_id not in self._labels]
        if not fresh:
            return
        matrix = self._prepare(vectors)[[i for i, _ in fresh]]
        start = len(self._ids)
        labels = np.arange(start, start + len(fresh), dtype=np.int64)
        self._index.add_with_ids(matrix, labels)
        for label, (_, memory_id) in zip(labels, fresh):
            self._labels[memory_id] = int(label)
            self._ids.append(memory_id)

    def add(self, memory_id: str, vector: list[float] | np.ndarray) -> None:
        self.add_many([memory_id], [vector])

    def search(self, query: list[float] | np.ndarray, k: int) -> list[str]:
        """Ids of the (approximately) k nearest vectors, nearest first."""
        if not self._ids or k <= 0:
            return []
        k = min(k, len(self._ids))
        self._hnsw.hnsw.efSearch = max(self.ef_search, k)
        _, labels = self._index.search(self._prepare(query), k)
        # faiss pads missing results with -1
        return [self._ids[label] for label in labels[0] if label >= 0]
