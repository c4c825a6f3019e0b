"""Base tool definitions and decorators."""

import inspect
import types
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar, Union, get_args, get_origin

from memoria.core.types import ActionResult, RiskLevel
from memoria.core.typing import ToolSpec

# Python annotation -> JSON schema type; "any" means no type constraint
_SCHEMA_TYPES: dict[Any, str] = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    dict: "object",
    list: "array",
    Any: "any",
}


@dataclass
class ToolParameter:
    """Definition of a tool parameter."""

    name: str
    type: str  # "string", "integer", "number", "boolean", "object", "array", "any"
    description: str
    required: bool = True
    default: Any = None

    def to_schema(self) -> dict[str, Any]:
        schema: dict[str, Any] = {"description": self.description}
        if self.type != "any":
            schema["type"] = self.type
        if self.default is not None:
            schema["default"] = self.default
        return schema


@dataclass
class ToolCall:
    """One requested operation: tool name plus keyword arguments."""

    tool_name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass
class Tool:
    """Definition of a callable tool."""

    name: str
    description: str
    parameters: list[ToolParameter]
    executor: Callable[..., Awaitable[ActionResult]]
    risk_level: RiskLevel = RiskLevel.LOW
    examples: list[str] = field(default_factory=list)

    def to_context_string(self) -> str:
        """Human-readable signature, parameters and examples."""
        params_str = ", ".join(
            f"{p.name}: {p.type}" + ("" if p.required else " (optional)")
            for p in self.parameters
        )

        lines = [f"{self.name}({params_str})", f"  {self.description}"]
        if self.risk_level is not RiskLevel.LOW:
            lines.append(f"  Risk: {self.risk_level.value}")
        if self.parameters:
            lines.append("  Parameters:")
            for p in self.parameters:
                req = "required" if p.required else "optional"
                lines.append(f"    - {p.name} ({p.type}, {req}): {p.description}")
                if p.default is not None:
                    lines.append(f"      default: {p.default}")

        if self.examples:
            lines.append("  Examples:")
            lines.extend(f"    {ex}" for ex in self.examples)

        return "\n".join(lines)

    def validate_args(self, args: dict[str, Any]) -> tuple[bool, str | None]:
        """
        Check argument names (values are validated by the operation itself).

        Returns:
            (valid, error_message)
        """
        if not isinstance(args, dict):
            return False, "Arguments must be an object"

        required_params = [p.name for p in self.parameters if p.required]
        missing = [name for name in required_params if name not in args]
        if missing:
            return False, f"Missing required parameters: {', '.join(missing)}"

        valid_params = {p.name for p in self.parameters}
        unknown = sorted(set(args) - valid_params)
        if unknown:
            return False, f"Unknown parameters: {', '.join(unknown)}"

        return True, None

    def _input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {p.name: p.to_schema() for p in self.parameters},
            "required": [p.name for p in self.parameters if p.required],
        }

    def to_openai_function(self) -> ToolSpec:
        """Convert to OpenAI function calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self._input_schema(),
            },
        }

    def to_anthropic_tool(self) -> ToolSpec:
        """Convert to Anthropic tool use format."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self._input_schema(),
        }


def _schema_type(annotation: Any) -> str:
    if annotation is inspect.Parameter.empty:
        return "string"
    # Optional[X] / X | None -> X
    if get_origin(annotation) in (Union, types.UnionType):
        args = [a for a in get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return _schema_type(args[0])
        return "any"
    origin = get_origin(annotation)
    if origin is not None:
        annotation = origin
    return _SCHEMA_TYPES.get(annotation, "string")


def _param_description(func: Callable, param_name: str) -> str:
    # Looks for "param_name: description" lines in the Args section
    for line in (func.__doc__ or "").split("\n"):
        parts = line.split(":", 1)
        if len(parts) == 2 and parts[0].strip() == param_name:
            return parts[1].strip()
    return f"Parameter {param_name}"


F = TypeVar("F", bound=Callable[..., Awaitable[ActionResult]])


def tool(
    name: str,
    description: str,
    risk_level: RiskLevel = RiskLevel.LOW,
    examples: list[str] | None = None,
) -> Callable[[F], F]:
    """
    Decorator to declare a function as a tool.

    Parameters are read from the function signature: annotations give the
    schema type, defaults make a parameter optional, and "name: text"
    lines of the docstring give descriptions.

    Args:
        name: Tool name (e.g., "store_memory")
        description: Human-readable description
        risk_level: Risk level (LOW, MEDIUM, HIGH), shown in the tool description
        examples: Example usage strings

    Example:
        @tool("get_project_stats", "Count memories in a project")
        async def get_project_stats(project_id: str) -> ActionResult:
            ...
    """

    def decorator(func: F) -> F:
        parameters = []
        for param_name, param in inspect.signature(func).parameters.items():
            if param_name in ("self", "cls"):
                continue
            required = param.default is inspect.Parameter.empty
            parameters.append(
                ToolParameter(
                    name=param_name,
                    type=_schema_type(param.annotation),
                    description=_param_description(func, param_name),
                    required=required,
                    default=None if required else param.default,
                )
            )

        func._tool = Tool(  # type: ignore[attr-defined]
            name=name,
            description=description,
            parameters=parameters,
            executor=func,
            risk_level=risk_level,
            examples=examples or [],
        )
        return func

    return decorator
