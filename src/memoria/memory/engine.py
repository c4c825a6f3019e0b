"""
Memory engine facade.

Composes the four stores behind one set of operations. Every operation
maps to one store, except relation creation and traversal and memory
deletion, which span the vector store and the relation graph.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

from memoria.core.config import Settings
from memoria.core.errors import MemoriaError, ProviderError, SearchUnavailableError, ValidationError
from memoria.core.logging import get_logger
from memoria.core.typing import Embedding, JSONValue
from memoria.embedding import EmbeddingProvider, create_embedding_provider
from memoria.memory.base import Memory, MemoryType, RelatedMemory, SearchResult
from memoria.memory.database import Clock, Database, utcnow
from memoria.memory.ephemeral_store import EphemeralStore
from memoria.memory.relation_graph import RelationGraph
from memoria.memory.similarity import create_backend
from memoria.memory.structured_store import StructuredStore
from memoria.memory.vector_store import VectorStore

logger = get_logger("memory.engine")


@dataclass
class SearchResponse:
    """Search results; degraded is True when they came from the chronological fallback."""

    results: list[SearchResult] = field(default_factory=list)
    degraded: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "count": len(self.results),
            "degraded": self.degraded,
        }


class MemoryEngine:
    """Facade over vector store, relation graph, structured and ephemeral stores."""

    def __init__(
        self,
        db: Database,
        embedder: EmbeddingProvider,
        vectors: VectorStore,
        relations: RelationGraph,
        structured: StructuredStore,
        ephemeral: EphemeralStore,
        embedding_timeout: float = 30.0,
    ):
        self.db = db
        self.embedder = embedder
        self.vectors = vectors
        self.relations = relations
        self.structured = structured
        self.ephemeral = ephemeral
        self.embedding_timeout = embedding_timeout

    @classmethod
    def create(
        cls,
        settings: Settings,
        embedder: EmbeddingProvider | None = None,
        clock: Clock = utcnow,
    ) -> "MemoryEngine":
        """Wire an engine from settings. Call connect() before use."""
        db = Database(settings.db_path, busy_timeout=settings.busy_timeout)
        backend = create_backend(
            settings.search_backend,
            m=settings.hnsw_m,
            ef_construction=settings.hnsw_ef_construction,
            ef_search=settings.hnsw_ef_search,
            candidate_pool=settings.hnsw_candidate_pool,
        )
        limits = {
            "json_max_depth": settings.json_max_depth,
            "json_max_bytes": settings.json_max_bytes,
        }
        return cls(
            db=db,
            embedder=embedder or create_embedding_provider(settings),
            vectors=VectorStore(db, backend=backend, clock=clock, **limits),
            relations=RelationGraph(db, clock=clock),
            structured=StructuredStore(db, clock=clock, **limits),
            ephemeral=EphemeralStore(db, clock=clock, **limits),
            embedding_timeout=settings.embedding_timeout,
        )

    async def connect(self) -> None:
        await self.db.connect()

    async def close(self) -> None:
        try:
            await self.embedder.close()
        finally:
            await self.db.close()

    async def _embed(self, text: str) -> Embedding:
        """Run the embedding provider under the caller-level timeout."""
        try:
            return await asyncio.wait_for(self.embedder.embed(text), timeout=self.embedding_timeout)
        except asyncio.TimeoutError as e:
            logger.warning(
                f"Embedding timed out after {self.embedding_timeout}s ({self.embedder.provider_name})"
            )
            raise ProviderError(f"Embedding timed out after {self.embedding_timeout}s") from e
        except MemoriaError:
            raise
        except Exception as e:
            logger.error(f"Embedding failed ({self.embedder.provider_name}): {e}")
            raise ProviderError(f"Embedding failed: {e}") from e

    # =========================================================================
    # Vector store
    # =========================================================================

    async def store_memory(
        self,
        content: str,
        category: str,
        project_id: str,
        type: MemoryType | str = MemoryType.EPISODIC,
        importance: int = 1,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Embed `content` and persist it as a new memory. Returns the id."""
        if not isinstance(content, str) or not content.strip():
            raise ValidationError("content must be a non-empty string")
        embedding = await self._embed(content)
        return await self.vectors.store(
            project_id=project_id,
            category=category,
            content=content,
            embedding=embedding,
            type=type,
            importance=importance,
            metadata=metadata,
        )

    async def search_memories(
        self,
        query: str,
        project_id: str,
        category: str | None = None,
        limit: int = 5,
        similarity_threshold: float = 0.5,
    ) -> SearchResponse:
        """Semantic search; falls back to the newest memories if search is unavailable."""
        if not isinstance(query, str) or not query.strip():
            raise ValidationError("query must be a non-empty string")
        embedding = await self._embed(query)
        try:
            results = await self.vectors.search(
                project_id=project_id,
                query_embedding=embedding,
                category=category,
                threshold=similarity_threshold,
                limit=limit,
            )
            return SearchResponse(results=results)
        except SearchUnavailableError as e:
            logger.warning(f"Similarity search unavailable, listing newest memories instead: {e}")

        memories = await self.vectors.list(project_id, category=category, limit=limit)
        return SearchResponse(
            results=[SearchResult(memory=m, similarity=None) for m in memories],
            degraded=True,
        )

    async def list_memories(
        self,
        project_id: str,
        category: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Memory]:
        return await self.vectors.list(project_id, category=category, limit=limit, offset=offset)

    async def get_memory(self, memory_id: str, project_id: str) -> Memory:
        return await self.vectors.get(memory_id, project_id)

    async def delete_memory(self, memory_id: str, project_id: str) -> None:
        """Delete a memory and every relation touching it, atomically.

        Raises:
            NotFoundError: If the memory does not exist in `project_id`
        """
        async with self.db.transaction() as conn:
            detached = await self.relations.detach(conn, memory_id)
            generation = await self.vectors.remove(conn, memory_id, project_id)
        self.vectors.removed(memory_id, project_id, generation)
        if detached:
            logger.info(f"Deleting memory {memory_id} removed {detached} relations")

    async def get_project_stats(self, project_id: str) -> dict[str, int]:
        return await self.vectors.stats(project_id)

    async def cleanup_old_memories(
        self, older_than_days: int = 90, project_id: str | None = None
    ) -> int:
        """Delete memories older than the cutoff; their relations cascade."""
        return await self.vectors.cleanup(older_than_days=older_than_days, project_id=project_id)

    # =========================================================================
    # Relation graph
    # =========================================================================

    async def create_relation(self, source_id: str, target_id: str, relation_type: str) -> str:
        return await self.relations.create_relation(source_id, target_id, relation_type)

    async def get_related_memories(self, memory_id: str) -> list[RelatedMemory]:
        if not isinstance(memory_id, str) or not memory_id.strip():
            raise ValidationError("memory_id must be a non-empty string")
        return await self.relations.traverse(memory_id)

    # =========================================================================
    # Structured store
    # =========================================================================

    async def set_structured_memory(
        self,
        project_id: str,
        category: str,
        key: str,
        value: Any,
        description: str | None = None,
    ) -> None:
        await self.structured.set(project_id, category, key, value, description)

    async def get_structured_memory(self, project_id: str, category: str, key: str) -> dict[str, Any]:
        return await self.structured.get(project_id, category, key)

    # =========================================================================
    # Ephemeral store
    # =========================================================================

    async def set_short_term_memory(
        self,
        session_id: str,
        key: str,
        value: Any,
        ttl_seconds: float | None = None,
    ) -> None:
        await self.ephemeral.set(session_id, key, value, ttl_seconds)

    async def get_short_term_memory(self, session_id: str, key: str) -> JSONValue:
        return await self.ephemeral.get(session_id, key)
