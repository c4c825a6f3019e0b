"""Operation surface: every engine operation exposed as a tool returning an ActionResult."""

from memoria.tools.base import Tool, ToolCall, tool
from memoria.tools.executor import ToolExecutor
from memoria.tools.registry import ToolRegistry, get_global_registry

__all__ = ["Tool", "ToolCall", "tool", "ToolRegistry", "ToolExecutor", "get_global_registry"]
