"""Tool registry for managing available tools."""

from memoria.core.logging import get_logger
from memoria.core.typing import ToolSpec
from memoria.tools.base import Tool

logger = get_logger("tools.registry")


class ToolRegistry:
    """Central registry for all available tools."""

    def __init__(self):
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        """Register a tool."""
        if tool.name in self._tools:
            logger.warning(f"Tool {tool.name} already registered, overwriting")
        self._tools[tool.name] = tool
        logger.debug(f"Registered tool: {tool.name}")

    def get(self, name: str) -> Tool | None:
        """Get tool by name."""
        return self._tools.get(name)

    def get_all(self) -> list[Tool]:
        """Get all registered tools."""
        return list(self._tools.values())

    def get_context_string(self) -> str:
        """All tool descriptions, one block per tool."""
        if not self._tools:
            return "No tools available."
        return "\n\n".join(tool.to_context_string() for tool in self._tools.values())

    def to_openai_tools(self) -> list[ToolSpec]:
        """Get all tools in OpenAI function calling format."""
        return [tool.to_openai_function() for tool in self._tools.values()]

    def to_anthropic_tools(self) -> list[ToolSpec]:
        """Get all tools in Anthropic tool use format."""
        return [tool.to_anthropic_tool() for tool in self._tools.values()]


# Global registry instance
_global_registry: ToolRegistry | None = None


def get_global_registry() -> ToolRegistry:
    """Get or create the global tool registry."""
    global _global_registry
    if _global_registry is None:
        _global_registry = ToolRegistry()
    return _global_registry


def register_tool(tool: Tool) -> None:
    """Register a tool with the global registry."""
    get_global_registry().register(tool)
