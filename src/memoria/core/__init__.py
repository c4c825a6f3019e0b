"""
Core module - configuration, errors, shared types.

Components:
- config: Settings management via pydantic-settings
- errors: Error taxonomy (validation, not found, conflict, provider, store)
- types: Shared data structures (ActionResult)
- json_value: Validation boundary for free-form JSON values
- logging: Structured logging setup
"""

from memoria.core.config import Settings
from memoria.core.types import ActionResult

__all__ = ["Settings", "ActionResult"]
