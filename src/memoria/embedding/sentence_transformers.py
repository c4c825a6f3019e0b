"""Sentence-Transformers embedding provider for local embeddings."""

import asyncio

from memoria.core.logging import get_logger
from memoria.core.typing import Embedding
from memoria.embedding.base import EmbeddingProvider, ProviderType
from memoria.embedding.shared import SharedModelHandle, shared_model_handle

logger = get_logger("embedding.sentence_transformers")

DEFAULT_MODEL = "sentence-transformers/all-MiniLM-L6-v2"


def _load_model(model_name: str):
    # Deferred: pulls in torch
    from sentence_transformers import SentenceTransformer

    return SentenceTransformer(model_name)


class SentenceTransformersProvider(EmbeddingProvider):
    """Embeddings from a sentence-transformers model shared across the process."""

    provider_type = ProviderType.SENTENCE_TRANSFORMERS

    def __init__(
        self,
        model_name: str = DEFAULT_MODEL,
        dimensions: int = 384,
        handle: SharedModelHandle | None = None,
    ):
        """
        Args:
            model_name: Model to load (must produce `dimensions` values)
            dimensions: Expected embedding size
            handle: Model handle; defaults to the process-wide one for model_name
        """
        self._model_name = model_name
        self._dimensions = dimensions
        self._handle = handle or shared_model_handle(model_name, lambda: _load_model(model_name))

    @property
    def provider_name(self) -> str:
        return f"sentence_transformers_{self._model_name}"

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def _encode(self, text: str) -> Embedding:
        model = self._handle.get()
        vector = model.encode(
            text,
            convert_to_numpy=True,
            normalize_embeddings=True,
            show_progress_bar=False,
        )
        return vector.tolist()

    async def embed(self, text: str) -> Embedding:
        # Model load and inference both run in a worker thread
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._encode, text)

    async def health_check(self) -> bool:
        """Load the model (if needed) and embed a probe text."""
        try:
            vector = await self.embed("health check")
        except Exception as e:
            logger.warning(f"Sentence-transformers health check failed: {e}")
            return False
        return len(vector) == self._dimensions
