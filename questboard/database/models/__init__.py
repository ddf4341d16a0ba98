"""
Questboard ORM models.

Importing this package registers every table on ``Base.metadata``.
"""

from questboard.core.database.base import Base

from .economy import RewardClaim
from .progression import UserStats

__all__ = ["Base", "RewardClaim", "UserStats"]
