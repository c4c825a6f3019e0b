"""
Memory system - four stores behind one engine.

Stores:
- VectorStore: episodic, insight and procedure memories with embeddings
- RelationGraph: directed, typed edges between memories
- StructuredStore: exact facts keyed by (project, category, key)
- EphemeralStore: session scratch values with optional TTL
"""

from memoria.memory.base import (
    Direction,
    EphemeralEntry,
    Memory,
    MemoryType,
    RelatedMemory,
    Relation,
    SearchResult,
    StructuredEntry,
)
from memoria.memory.database import Database
from memoria.memory.engine import MemoryEngine, SearchResponse
from memoria.memory.ephemeral_store import EphemeralStore
from memoria.memory.relation_graph import RelationGraph
from memoria.memory.similarity import ExactBackend, HNSWBackend, SimilarityBackend
from memoria.memory.structured_store import StructuredStore
from memoria.memory.vector_store import VectorStore

__all__ = [
    "Database",
    "Direction",
    "EphemeralEntry",
    "EphemeralStore",
    "ExactBackend",
    "HNSWBackend",
    "Memory",
    "MemoryEngine",
    "MemoryType",
    "RelatedMemory",
    "Relation",
    "RelationGraph",
    "SearchResponse",
    "SearchResult",
    "SimilarityBackend",
    "StructuredEntry",
    "StructuredStore",
    "VectorStore",
]
