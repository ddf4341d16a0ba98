"""
Economy domain ORM models.

Exports:
- RewardClaim
"""

from questboard.core.database.base import Base

from .reward_claim import RewardClaim

__all__ = ["Base", "RewardClaim"]
