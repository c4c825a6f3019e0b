"""Built-in tools."""

from memoria.tools.builtin.memory import register_memory_tools, set_memory_engine


def register_all_builtin_tools() -> None:
    """Register all built-in tools with the global registry."""
    register_memory_tools()


__all__ = ["register_all_builtin_tools", "set_memory_engine"]
