"""Shared typing aliases used across modules."""

from typing import Any, TypeAlias

JSONValue: TypeAlias = None | bool | int | float | str | list["JSONValue"] | dict[str, "JSONValue"]
JSONDict: TypeAlias = dict[str, Any]
Embedding: TypeAlias = list[float]
ToolSpec: TypeAlias = dict[str, Any]
