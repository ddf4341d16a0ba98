"""
Progression domain ORM models.

Exports:
- UserStats
"""

from questboard.core.database.base import Base

from .user_stats import UserStats

__all__ = ["Base", "UserStats"]
