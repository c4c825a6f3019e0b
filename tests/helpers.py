"""Test helpers: controllable clock, fixed vectors, stub embeddings."""

import math
from datetime import datetime, timedelta, timezone

from memoria.core.typing import Embedding
from memoria.embedding.base import EmbeddingProvider, ProviderType
from memoria.embedding.hash import HashEmbeddingProvider

DIM = 384


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def make_vector(*values: float) -> Embedding:
    """384-dim unit vector whose leading components are proportional to `values`."""
    vector = [0.0] * DIM
    vector[: len(values)] = values
    norm = math.sqrt(sum(x * x for x in vector))
    return [x / norm for x in vector]


def at_similarity(cos: float) -> Embedding:
    """Unit vector with cosine `cos` to make_vector(1.0)."""
    return make_vector(cos, math.sqrt(1.0 - cos * cos))


class StubEmbeddingProvider(EmbeddingProvider):
    """Returns preset vectors for known texts, hash vectors otherwise."""

    provider_type = ProviderType.HASH

    def __init__(self, vectors: dict[str, Embedding] | None = None):
        self.vectors = dict(vectors or {})
        self.calls: list[str] = []
        self._fallback = HashEmbeddingProvider(DIM)

    @property
    def provider_name(self) -> str:
        return "stub"

    @property
    def dimensions(self) -> int:
        return DIM

    async def embed(self, text: str) -> Embedding:
        self.calls.append(text)
        if text in self.vectors:
            return self.vectors[text]
        return await self._fallback.embed(text)

    async def health_check(self) -> bool:
        return True
