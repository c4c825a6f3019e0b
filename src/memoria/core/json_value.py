"""
JSON value validation boundary.

Metadata and stored values are free-form JSON. Before anything is persisted
it is checked here: only JSON types, string keys, finite numbers, bounded
nesting and bounded serialized size.
"""

import json
import math
from typing import Any

from memoria.core.errors import ValidationError
from memoria.core.typing import JSONDict, JSONValue

DEFAULT_MAX_DEPTH = 16
DEFAULT_MAX_BYTES = 65536


def _check(value: Any, depth: int, max_depth: int, path: str) -> None:
    if depth > max_depth:
        raise ValidationError(f"JSON value nested deeper than {max_depth} levels at {path}")

    if value is None or isinstance(value, (bool, str)):
        return
    if isinstance(value, int):
        return
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValidationError(f"Non-finite number at {path}")
        return
    if isinstance(value, (list, tuple)):
        for i, item in enumerate(value):
            _check(item, depth + 1, max_depth, f"{path}[{i}]")
        return
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise ValidationError(f"Object key {key!r} at {path} is not a string")
            _check(item, depth + 1, max_depth, f"{path}.{key}")
        return

    raise ValidationError(f"Unsupported type {type(value).__name__} at {path}")


def validate_json_value(
    value: Any,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_bytes: int = DEFAULT_MAX_BYTES,
) -> str:
    """Validate a JSON value and return its serialized form.

    Args:
        value: Candidate value
        max_depth: Maximum container nesting (the top level is depth 0)
        max_bytes: Maximum size of the UTF-8 serialization

    Returns:
        Compact JSON text ready for storage

    Raises:
        ValidationError: If the value is not representable or exceeds limits
    """
    _check(value, 0, max_depth, "$")
    encoded = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    size = len(encoded.encode("utf-8"))
    if size > max_bytes:
        raise ValidationError(f"JSON value is {size} bytes, limit is {max_bytes}")
    return encoded


def validate_metadata(
    metadata: Any,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_bytes: int = DEFAULT_MAX_BYTES,
) -> str:
    """Validate a metadata object (must be a JSON object, None means empty)."""
    if metadata is None:
        metadata = {}
    if not isinstance(metadata, dict):
        raise ValidationError("metadata must be a JSON object")
    return validate_json_value(metadata, max_depth=max_depth, max_bytes=max_bytes)


def load_json(text: str | None) -> JSONValue:
    """Decode a stored JSON column."""
    if text is None:
        return None
    return json.loads(text)


def load_metadata(text: str | None) -> JSONDict:
    value = load_json(text)
    return value if isinstance(value, dict) else {}
