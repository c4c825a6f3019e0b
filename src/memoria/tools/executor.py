"""Execute tool calls and turn every outcome into an ActionResult."""

import json
from datetime import datetime
from enum import Enum
from typing import Any

from memoria.core.errors import MemoriaError
from memoria.core.logging import get_logger
from memoria.core.types import ActionResult
from memoria.tools.base import ToolCall
from memoria.tools.registry import ToolRegistry

logger = get_logger("tools.executor")

# Maximum length for logged content (characters)
MAX_LOG_LENGTH = 500


def _truncate_for_logging(result: ActionResult, max_len: int = MAX_LOG_LENGTH) -> str:
    """
    Create a truncated string representation of ActionResult for logging.

    Args:
        result: ActionResult to represent
        max_len: Maximum length of string fields

    Returns:
        Truncated string representation
    """
    if not result.success:
        # Errors are usually short, log them fully
        return repr(result)

    if not result.data:
        return "ActionResult(success=True, data=None)"

    if not isinstance(result.data, dict):
        text = repr(result.data)
        if len(text) > max_len:
            text = f"{text[:max_len]}... [truncated, {len(text)} chars total]"
        return f"ActionResult(success=True, data={text})"

    truncated_data = {}
    for key, value in result.data.items():
        if isinstance(value, str) and len(value) > max_len:
            truncated_data[key] = f"{value[:max_len]}... [truncated, {len(value)} chars total]"
        elif isinstance(value, list) and len(repr(value)) > max_len:
            truncated_data[key] = f"[{len(value)} items]"
        else:
            truncated_data[key] = value

    return f"ActionResult(success=True, data={truncated_data})"


class DateTimeEncoder(json.JSONEncoder):
    """JSON encoder that handles datetime and enum values."""

    def default(self, obj: object) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


class ToolExecutor:
    """Executes tool calls with validation."""

    def __init__(self, registry: ToolRegistry) -> None:
        """
        Initialize executor.

        Args:
            registry: Tool registry to look up tools
        """
        self.registry = registry

    async def execute(self, tool_call: ToolCall) -> ActionResult:
        """
        Execute a single tool call.

        Engine errors become failed results carrying the error code;
        anything unexpected is logged with traceback and reported as
        "internal_error".

        Args:
            tool_call: Tool name and arguments

        Returns:
            ActionResult with success/error and data
        """
        tool = self.registry.get(tool_call.tool_name)
        if not tool:
            return ActionResult(
                success=False,
                error=f"Tool not found: {tool_call.tool_name}",
                error_code="not_found",
            )

        valid, error = tool.validate_args(tool_call.arguments)
        if not valid:
            return ActionResult(
                success=False,
                error=f"Invalid arguments: {error}",
                error_code="validation_error",
            )

        try:
            logger.info(f"Executing tool: {tool_call.tool_name} with args: {list(tool_call.arguments)}")
            result = await tool.executor(**tool_call.arguments)
            logger.debug(f"Tool {tool_call.tool_name} result: {_truncate_for_logging(result)}")
            return result
        except MemoriaError as e:
            logger.info(f"Tool {tool_call.tool_name} failed ({e.code}): {e.message}")
            return ActionResult(success=False, error=e.message, error_code=e.code)
        except Exception as e:
            logger.error(f"Tool {tool_call.tool_name} failed: {e}", exc_info=True)
            return ActionResult(
                success=False,
                error=f"Tool execution failed: {e}",
                error_code="internal_error",
            )

    def format_result(self, result: ActionResult) -> str:
        """Serialize a result as JSON (datetimes as ISO strings)."""
        return json.dumps(result.to_dict(), indent=2, ensure_ascii=False, cls=DateTimeEncoder)
