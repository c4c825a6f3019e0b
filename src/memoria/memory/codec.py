"""Row and embedding (de)serialization for the memories table."""

import numpy as np
from aiosqlite import Row

from memoria.core.json_value import load_metadata
from memoria.memory.base import Memory, MemoryType
from memoria.memory.database import from_db

# Columns selected whenever a full memory (minus embedding) is read
MEMORY_COLUMNS = "id, project_id, category, content, metadata, type, importance, created_at, updated_at"


def encode_embedding(embedding: list[float] | np.ndarray) -> bytes:
    return np.asarray(embedding, dtype="<f4").tobytes()


def decode_embedding(blob: bytes) -> np.ndarray:
    return np.frombuffer(blob, dtype="<f4")


def row_to_memory(row: Row) -> Memory:
    """Build a Memory from a row; the embedding is decoded only if selected."""
    keys = row.keys()
    embedding = decode_embedding(row["embedding"]).tolist() if "embedding" in keys else None
    return Memory(
        id=row["id"],
        project_id=row["project_id"],
        category=row["category"],
        content=row["content"],
        embedding=embedding,
        type=MemoryType(row["type"]),
        importance=row["importance"],
        metadata=load_metadata(row["metadata"]),
        created_at=from_db(row["created_at"]),
        updated_at=from_db(row["updated_at"]),
    )
