"""
Memory data model.

Four record kinds, one per store: memories (vector store), relations
(graph), structured entries and ephemeral entries.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from memoria.core.typing import Embedding, JSONDict, JSONValue

EMBEDDING_DIMENSION = 384
MIN_IMPORTANCE = 1
MAX_IMPORTANCE = 5


class MemoryType(Enum):
    EPISODIC = "episodic"  # A specific event or decision
    INSIGHT = "insight"  # Learned, durable truth
    PROCEDURE = "procedure"  # Repeatable how-to


class Direction(Enum):
    OUTGOING = "outgoing"
    INCOMING = "incoming"


@dataclass
class Memory:
    """Single memory record."""

    id: str
    project_id: str
    category: str
    content: str
    embedding: Embedding | None
    type: MemoryType = MemoryType.EPISODIC
    importance: int = 1  # 1 (routine) to 5 (critical)
    metadata: JSONDict = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize without the embedding."""
        return {
            "id": self.id,
            "project_id": self.project_id,
            "category": self.category,
            "content": self.content,
            "type": self.type.value,
            "importance": self.importance,
            "metadata": self.metadata,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class SearchResult:
    """A memory paired with its similarity to the query.

    similarity is None when the result came from the chronological fallback.
    """

    memory: Memory
    similarity: float | None

    def to_dict(self) -> dict[str, Any]:
        data = self.memory.to_dict()
        data["similarity"] = self.similarity
        return data


@dataclass
class Relation:
    """Directed, typed edge between two memories."""

    id: str
    source_id: str
    target_id: str
    relation_type: str
    created_at: datetime


@dataclass
class RelatedMemory:
    """One hop from a memory: the edge label, its direction and the other end."""

    relation_type: str
    direction: Direction
    memory_id: str
    category: str
    content: str
    type: MemoryType

    def to_dict(self) -> dict[str, Any]:
        return {
            "relation_type": self.relation_type,
            "direction": self.direction.value,
            "memory_id": self.memory_id,
            "category": self.category,
            "content": self.content,
            "type": self.type.value,
        }


@dataclass
class StructuredEntry:
    """Exact fact keyed by (project_id, category, key)."""

    project_id: str
    category: str
    key: str
    value: JSONValue
    description: str | None
    created_at: datetime
    updated_at: datetime


@dataclass
class EphemeralEntry:
    """Session scratch value keyed by (session_id, key)."""

    session_id: str
    key: str
    value: JSONValue
    created_at: datetime
    expires_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now
