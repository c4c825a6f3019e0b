"""Local embedding provider - OpenAI-compatible API for LM Studio, Ollama, vLLM, etc."""

import math

import httpx

from memoria.core.errors import ProviderError
from memoria.core.logging import get_logger
from memoria.core.typing import Embedding
from memoria.embedding.base import EmbeddingProvider, ProviderType

logger = get_logger("embedding.local")


class OpenAICompatibleEmbeddingProvider(EmbeddingProvider):
    """Embeddings via an OpenAI-compatible /embeddings endpoint."""

    provider_type = ProviderType.OPENAI_COMPATIBLE

    def __init__(
        self,
        base_url: str = "http://localhost:1234/v1",
        model: str = "sentence-transformers/all-MiniLM-L6-v2",
        dimensions: int = 384,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.model = model
        self._dimensions = dimensions
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    @property
    def provider_name(self) -> str:
        return f"openai_compatible_{self.model}"

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed(self, text: str) -> Embedding:
        """Embed via POST /embeddings and renormalize the returned vector."""
        payload = {"model": self.model, "input": text}
        logger.debug(f"Embedding request: model={self.model}, url={self.base_url}")

        try:
            response = await self.client.post("/embeddings", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.ConnectError as e:
            logger.warning(f"Embedding server not reachable at {self.base_url}: {e}")
            raise ProviderError(f"Embedding server not reachable: {e}") from e
        except httpx.HTTPStatusError as e:
            logger.error(f"Embedding server error: {e.response.status_code}")
            raise ProviderError(f"Embedding server returned {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Embedding request failed: {e}")
            raise ProviderError(f"Embedding request failed: {e}") from e

        try:
            vector = [float(x) for x in data["data"][0]["embedding"]]
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise ProviderError(f"Malformed embedding response: {e}") from e

        # Servers differ on whether they normalize
        norm = math.sqrt(sum(x * x for x in vector))
        if norm > 0:
            vector = [x / norm for x in vector]
        return vector

    async def health_check(self) -> bool:
        """Check if the embedding server is running."""
        try:
            response = await self.client.get("/models")
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.debug(f"Embedding server health check failed: {e}")
            return False

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
