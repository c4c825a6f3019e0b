"""Memory tools: one tool per engine operation."""

from typing import Any

from memoria.core.types import ActionResult, RiskLevel
from memoria.memory.engine import MemoryEngine
from memoria.tools.base import tool
from memoria.tools.registry import register_tool

# Global reference to the engine (set during initialization)
_memory_engine: MemoryEngine | None = None


def set_memory_engine(engine: MemoryEngine | None) -> None:
    """Set the engine instance for tools to use."""
    global _memory_engine
    _memory_engine = engine


def _get_memory_engine() -> MemoryEngine:
    """Get memory engine or raise error."""
    if _memory_engine is None:
        raise RuntimeError("MemoryEngine not initialized. Call set_memory_engine() first.")
    return _memory_engine


# =============================================================================
# Semantic memories
# =============================================================================


@tool(
    "store_memory",
    "Store a memory (event, decision, learned insight or procedure) for later semantic recall",
    examples=[
        'store_memory(content="Switched auth to JWT", category="decision", project_id="api")',
        'store_memory(content="Run migrations before seeding", category="howto", '
        'project_id="api", type="procedure", importance=4)',
    ],
)
async def store_memory(
    content: str,
    category: str,
    project_id: str,
    type: str = "episodic",
    importance: int = 1,
    metadata: dict | None = None,
) -> ActionResult:
    """
    Store a memory.

    Args:
        content: Text of the memory
        category: Free-form grouping such as "decision" or "bug"
        project_id: Project the memory belongs to
        type: One of "episodic", "insight", "procedure"
        importance: 1 (routine) to 5 (critical), ranks search results
        metadata: Extra JSON object stored with the memory

    Returns:
        ActionResult with the new memory_id
    """
    engine = _get_memory_engine()
    memory_id = await engine.store_memory(
        content=content,
        category=category,
        project_id=project_id,
        type=type,
        importance=importance,
        metadata=metadata,
    )
    return ActionResult(success=True, data={"memory_id": memory_id})


@tool(
    "search_memories",
    "Semantic search over a project's memories, most important first",
    examples=['search_memories(query="why did we pick JWT", project_id="api")'],
)
async def search_memories(
    query: str,
    project_id: str,
    category: str | None = None,
    limit: int = 5,
    similarity_threshold: float = 0.5,
) -> ActionResult:
    """
    Search memories by meaning.

    Args:
        query: Natural-language query
        project_id: Project to search
        category: Only return memories of this category
        limit: Maximum results, 1 to 50
        similarity_threshold: Minimum cosine similarity, 0 to 1

    Returns:
        ActionResult with results ranked by importance then similarity;
        degraded is true when the newest memories were returned instead
    """
    engine = _get_memory_engine()
    response = await engine.search_memories(
        query=query,
        project_id=project_id,
        category=category,
        limit=limit,
        similarity_threshold=similarity_threshold,
    )
    return ActionResult(success=True, data=response.to_dict())


@tool(
    "list_memories",
    "List a project's memories, newest first",
    examples=['list_memories(project_id="api", limit=10)'],
)
async def list_memories(
    project_id: str,
    category: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> ActionResult:
    """
    List memories chronologically.

    Args:
        project_id: Project to list
        category: Only list memories of this category
        limit: Page size, 1 to 100
        offset: Number of memories to skip

    Returns:
        ActionResult with memories and count
    """
    engine = _get_memory_engine()
    memories = await engine.list_memories(project_id, category=category, limit=limit, offset=offset)
    return ActionResult(
        success=True,
        data={"memories": [m.to_dict() for m in memories], "count": len(memories)},
    )


@tool(
    "delete_memory",
    "Delete a memory and its relations",
    risk_level=RiskLevel.MEDIUM,
    examples=['delete_memory(memory_id="3f2c...", project_id="api")'],
)
async def delete_memory(memory_id: str, project_id: str) -> ActionResult:
    """
    Delete a memory.

    Args:
        memory_id: ID of the memory to delete
        project_id: Project that owns the memory

    Returns:
        ActionResult indicating success
    """
    engine = _get_memory_engine()
    await engine.delete_memory(memory_id, project_id)
    return ActionResult(success=True, data={"memory_id": memory_id, "deleted": True})


@tool(
    "get_project_stats",
    "Count memories stored for a project",
    examples=['get_project_stats(project_id="api")'],
)
async def get_project_stats(project_id: str) -> ActionResult:
    """
    Project statistics.

    Args:
        project_id: Project to count

    Returns:
        ActionResult with total_memories
    """
    engine = _get_memory_engine()
    stats = await engine.get_project_stats(project_id)
    return ActionResult(success=True, data=stats)


@tool(
    "cleanup_old_memories",
    "Delete memories older than a number of days",
    risk_level=RiskLevel.HIGH,
    examples=["cleanup_old_memories(older_than_days=180)"],
)
async def cleanup_old_memories(
    older_than_days: int = 90, project_id: str | None = None
) -> ActionResult:
    """
    Remove old memories.

    Args:
        older_than_days: Age cutoff in days
        project_id: Limit cleanup to one project

    Returns:
        ActionResult with deleted count
    """
    engine = _get_memory_engine()
    deleted = await engine.cleanup_old_memories(older_than_days, project_id)
    return ActionResult(success=True, data={"deleted": deleted})


# =============================================================================
# Relations
# =============================================================================


@tool(
    "create_relation",
    "Link two memories with a typed, directed relation",
    examples=['create_relation(source_id="a1...", target_id="b2...", relation_type="caused_by")'],
)
async def create_relation(source_id: str, target_id: str, relation_type: str) -> ActionResult:
    """
    Create a relation.

    Args:
        source_id: Memory the relation starts at
        target_id: Memory the relation points to
        relation_type: Label such as "caused_by" or "supersedes"

    Returns:
        ActionResult with relation_id
    """
    engine = _get_memory_engine()
    relation_id = await engine.create_relation(source_id, target_id, relation_type)
    return ActionResult(success=True, data={"relation_id": relation_id})


@tool(
    "get_related_memories",
    "Memories directly linked to a memory, in both directions",
    examples=['get_related_memories(memory_id="a1...")'],
)
async def get_related_memories(memory_id: str) -> ActionResult:
    """
    One-hop traversal.

    Args:
        memory_id: Memory to start from

    Returns:
        ActionResult with related memories and their direction
    """
    engine = _get_memory_engine()
    related = await engine.get_related_memories(memory_id)
    return ActionResult(
        success=True,
        data={"related": [r.to_dict() for r in related], "count": len(related)},
    )


# =============================================================================
# Structured facts
# =============================================================================


@tool(
    "set_structured_memory",
    "Store an exact fact under (project, category, key), replacing any previous value",
    examples=[
        'set_structured_memory(project_id="api", category="config", key="db", value="postgres")'
    ],
)
async def set_structured_memory(
    project_id: str,
    category: str,
    key: str,
    value: Any,
    description: str | None = None,
) -> ActionResult:
    """
    Upsert a fact.

    Args:
        project_id: Project the fact belongs to
        category: Fact grouping
        key: Fact name
        value: Any JSON value
        description: What the fact means

    Returns:
        ActionResult indicating success
    """
    engine = _get_memory_engine()
    await engine.set_structured_memory(project_id, category, key, value, description)
    return ActionResult(success=True, data={"project_id": project_id, "category": category, "key": key})


@tool(
    "get_structured_memory",
    "Read an exact fact",
    examples=['get_structured_memory(project_id="api", category="config", key="db")'],
)
async def get_structured_memory(project_id: str, category: str, key: str) -> ActionResult:
    """
    Read a fact.

    Args:
        project_id: Project the fact belongs to
        category: Fact grouping
        key: Fact name

    Returns:
        ActionResult with value and description
    """
    engine = _get_memory_engine()
    entry = await engine.get_structured_memory(project_id, category, key)
    return ActionResult(success=True, data=entry)


# =============================================================================
# Short-term memory
# =============================================================================


@tool(
    "set_short_term_memory",
    "Keep a session scratch value, optionally expiring after ttl_seconds",
    examples=['set_short_term_memory(session_id="s1", key="focus", value="auth.ts", ttl_seconds=600)'],
)
async def set_short_term_memory(
    session_id: str,
    key: str,
    value: Any,
    ttl_seconds: float | None = None,
) -> ActionResult:
    """
    Set a session value.

    Args:
        session_id: Session the value belongs to
        key: Value name
        value: Any JSON value
        ttl_seconds: Lifetime in seconds; omitted means no expiry

    Returns:
        ActionResult indicating success
    """
    engine = _get_memory_engine()
    await engine.set_short_term_memory(session_id, key, value, ttl_seconds)
    return ActionResult(success=True, data={"session_id": session_id, "key": key})


@tool(
    "get_short_term_memory",
    "Read a session scratch value",
    examples=['get_short_term_memory(session_id="s1", key="focus")'],
)
async def get_short_term_memory(session_id: str, key: str) -> ActionResult:
    """
    Read a session value.

    Args:
        session_id: Session the value belongs to
        key: Value name

    Returns:
        ActionResult with value; fails not_found or expired
    """
    engine = _get_memory_engine()
    value = await engine.get_short_term_memory(session_id, key)
    return ActionResult(success=True, data={"value": value})


def register_memory_tools() -> None:
    """Register all memory tools with the global registry."""
    register_tool(store_memory._tool)  # type: ignore[attr-defined]
    register_tool(search_memories._tool)  # type: ignore[attr-defined]
    register_tool(list_memories._tool)  # type: ignore[attr-defined]
    register_tool(delete_memory._tool)  # type: ignore[attr-defined]
    register_tool(get_project_stats._tool)  # type: ignore[attr-defined]
    register_tool(create_relation._tool)  # type: ignore[attr-defined]
    register_tool(get_related_memories._tool)  # type: ignore[attr-defined]
    register_tool(set_structured_memory._tool)  # type: ignore[attr-defined]
    register_tool(get_structured_memory._tool)  # type: ignore[attr-defined]
    register_tool(set_short_term_memory._tool)  # type: ignore[attr-defined]
    register_tool(get_short_term_memory._tool)  # type: ignore[attr-defined]
    register_tool(cleanup_old_memories._tool)  # type: ignore[attr-defined]
