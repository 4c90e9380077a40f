"""
Game-rule exceptions raised by the engine services.

Some outcomes are results, not errors: overspending returns False and
claiming an ineligible quest returns empty rewards.
"""

from __future__ import annotations

from typing import Any, Optional


class QuestifyDomainException(Exception):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(QuestifyDomainException):
    """An unknown player, quest, quest template or achievement."""

    def __init__(self, resource_type: str, identifier: Optional[Any] = None) -> None:
        self.resource_type = resource_type
        self.identifier = identifier
        suffix = f": {identifier}" if identifier is not None else ""
        super().__init__(f"{resource_type} not found{suffix}")


class ValidationError(QuestifyDomainException):
    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.validation_message = message
        super().__init__(f"Invalid {field}: {message}")


class InvalidOperationError(QuestifyDomainException):
    def __init__(self, action: str, reason: str) -> None:
        self.action = action
        self.reason = reason
        super().__init__(f"Cannot {action}: {reason}")
