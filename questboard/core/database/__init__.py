"""Async SQLAlchemy engine/session management and declarative base."""

from questboard.core.database.base import Base, IdMixin, TimestampMixin
from questboard.core.database.service import DatabaseService, EngineSettings
from questboard.core.exceptions import (
    DatabaseInitializationError,
    DatabaseNotInitializedError,
)

__all__ = [
    "Base",
    "IdMixin",
    "TimestampMixin",
    "DatabaseService",
    "EngineSettings",
    "DatabaseInitializationError",
    "DatabaseNotInitializedError",
]
