"""
Shared type definitions.

Core data structures used across modules.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class RiskLevel(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class ActionResult:
    """Structured outcome of one operation."""

    success: bool
    data: Any = None
    error: str | None = None
    error_code: str | None = None  # MemoriaError.code on failure

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "data": self.data}
        return {"success": False, "error": self.error, "error_code": self.error_code}
