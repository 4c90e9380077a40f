"""
Infrastructure exceptions: configuration, database, locking and optimistic
concurrency failures. Game-rule failures live in
`questify.modules.shared.exceptions`.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class QuestifyInfrastructureException(Exception):
    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def __str__(self) -> str:
        return f"{self.message} {self.details}" if self.details else self.message


class ConfigurationError(QuestifyInfrastructureException):
    def __init__(self, config_key: str, message: str) -> None:
        self.config_key = config_key
        super().__init__(f"Invalid configuration '{config_key}': {message}")


class DatabaseError(QuestifyInfrastructureException):
    def __init__(self, operation: str, original_error: Exception) -> None:
        self.operation = operation
        self.original_error = original_error
        super().__init__(
            f"Database error during {operation}",
            error_type=type(original_error).__name__,
            error=str(original_error),
        )


class ConcurrencyConflictError(QuestifyInfrastructureException):
    """Another writer saved the row between our read and our versioned write."""

    def __init__(
        self,
        entity: str,
        entity_id: str,
        expected_version: int,
        actual_version: Optional[int],
    ) -> None:
        self.entity = entity
        self.entity_id = entity_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Concurrent modification of {entity} {entity_id}",
            expected_version=expected_version,
            actual_version=actual_version,
        )


class LockAcquisitionError(QuestifyInfrastructureException):
    def __init__(self, lock_name: str, timeout: float) -> None:
        self.lock_name = lock_name
        self.timeout = timeout
        super().__init__(f"Could not acquire lock '{lock_name}' within {timeout:.2f}s")
