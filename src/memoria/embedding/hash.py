"""Deterministic hash embeddings for tests and offline use."""

import hashlib

import numpy as np

from memoria.core.typing import Embedding
from memoria.embedding.base import EmbeddingProvider, ProviderType


class HashEmbeddingProvider(EmbeddingProvider):
    """Unit vectors derived from sha256 of the text.

    Identical texts get identical vectors. Different texts are unrelated;
    there is no semantic similarity.
    """

    provider_type = ProviderType.HASH

    def __init__(self, dimensions: int = 384):
        self._dimensions = dimensions

    @property
    def provider_name(self) -> str:
        return "hash"

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed(self, text: str) -> Embedding:
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        values = np.frombuffer(digest, dtype=np.uint8).astype(np.float32)
        vector = np.resize(values / 127.5 - 1.0, self._dimensions)
        norm = np.linalg.norm(vector)
        if norm > 0:
            vector = vector / norm
        return vector.tolist()

    async def health_check(self) -> bool:
        return True
