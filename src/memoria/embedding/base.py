"""
Embedding provider interface.
"""

from abc import ABC, abstractmethod
from enum import Enum

from memoria.core.typing import Embedding


class ProviderType(Enum):
    SENTENCE_TRANSFORMERS = "sentence_transformers"
    OPENAI_COMPATIBLE = "openai_compatible"
    HASH = "hash"


class EmbeddingProvider(ABC):
    """Abstract text embedding provider.

    Implementations return L2-normalized vectors of `dimensions` floats.
    """

    provider_type: ProviderType

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        ...

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Return the embedding dimensions."""
        ...

    @abstractmethod
    async def embed(self, text: str) -> Embedding:
        """
        Embed one text.

        Args:
            text: Text to embed

        Returns:
            Normalized embedding vector
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if provider is available."""
        ...

    async def close(self) -> None:
        """Release clients or other resources held by the provider."""
        return None
