"""
Domain Exceptions
Error taxonomy raised by the recalculation engine and its services
"""

from typing import Any, Dict, Optional


class EngineError(Exception):
    """Base class for all engine errors"""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        return self.message


class InvalidArgumentError(EngineError, ValueError):
    """Empty group, mixed group ids or a missing/invalid group reference"""


class NotFoundError(EngineError, LookupError):
    """Referenced row does not exist in the store"""

    def __init__(self, entity: str, identifier: Any):
        super().__init__(
            f"{entity} {identifier} not found",
            {"entity": entity, "id": identifier},
        )
        self.entity = entity
        self.identifier = identifier


class ComputationError(EngineError, ArithmeticError):
    """Numeric edge case that would otherwise produce NaN/Infinity"""

    def __init__(self, reason: str, group: Any = None):
        message = reason if group is None else f"{reason} (group {group})"
        super().__init__(message, {"group": group, "reason": reason})
        self.reason = reason
        self.group = group
