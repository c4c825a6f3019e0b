"""Embedding providers: text -> normalized 384-float vector."""

from memoria.core.config import Settings
from memoria.embedding.base import EmbeddingProvider, ProviderType
from memoria.embedding.hash import HashEmbeddingProvider
from memoria.embedding.local import OpenAICompatibleEmbeddingProvider
from memoria.embedding.sentence_transformers import SentenceTransformersProvider
from memoria.embedding.shared import SharedModelHandle, shared_model_handle


def create_embedding_provider(settings: Settings) -> EmbeddingProvider:
    """Build the provider selected by settings.embedding_provider."""
    provider = ProviderType(settings.embedding_provider)
    if provider is ProviderType.SENTENCE_TRANSFORMERS:
        return SentenceTransformersProvider(settings.embedding_model)
    if provider is ProviderType.OPENAI_COMPATIBLE:
        return OpenAICompatibleEmbeddingProvider(
            base_url=settings.embedding_url,
            model=settings.embedding_model,
            timeout=settings.embedding_timeout,
        )
    return HashEmbeddingProvider()


__all__ = [
    "EmbeddingProvider",
    "HashEmbeddingProvider",
    "OpenAICompatibleEmbeddingProvider",
    "ProviderType",
    "SentenceTransformersProvider",
    "SharedModelHandle",
    "create_embedding_provider",
    "shared_model_handle",
]
