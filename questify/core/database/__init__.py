"""
Database subsystem: async engine/session management and declarative base.
"""

from .base import Base, TimestampMixin, VersionMixin
from .service import (
    DatabaseInitializationError,
    DatabaseNotInitializedError,
    DatabaseService,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "VersionMixin",
    "DatabaseService",
    "DatabaseInitializationError",
    "DatabaseNotInitializedError",
]
