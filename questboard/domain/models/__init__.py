"""
Domain models package for Questboard.

Design Notes
------------
Domain models are separate from database models:
- Database models (questboard/database/models/): anemic SQLAlchemy rows
- Domain models (questboard/domain/models/): frozen value objects and the
  UserProgress aggregate

Stores convert between database models and domain models.
"""

from .base import (
    AggregateRoot,
    DomainEvent,
    DomainValidationError,
    Entity,
    validate_non_negative,
    validate_not_empty,
    validate_positive,
    validate_range,
)
from .milestone import (
    BadgeDefinition,
    BadgeUnlockCriteria,
    CategoryProgress,
    CategoryRecommendation,
    CategoryRecommendations,
    EarnedBadge,
    LevelProgress,
    LevelProgressionResult,
    Milestone,
    MilestoneCategory,
    MilestoneReward,
    ProgressionSummary,
)
from .progress import LeaderboardEntry, ProgressionUpdate, UserProgress
from .rewards import (
    Reason,
    ReasonCode,
    RewardResult,
    RWISResult,
    TaskComplexity,
    TaskRewardSpec,
    TrustResult,
    WorkCategory,
    XPResult,
)
from .user_stats import CategoryMetrics, UserStatsSnapshot, WorkHistoryTotals

__all__ = [
    # Base classes
    "Entity",
    "AggregateRoot",
    "DomainEvent",
    "DomainValidationError",
    "validate_positive",
    "validate_non_negative",
    "validate_range",
    "validate_not_empty",
    # Rewards
    "WorkCategory",
    "TaskComplexity",
    "TaskRewardSpec",
    "Reason",
    "ReasonCode",
    "RewardResult",
    "XPResult",
    "TrustResult",
    "RWISResult",
    # Stats
    "CategoryMetrics",
    "UserStatsSnapshot",
    "WorkHistoryTotals",
    # Milestones and levels
    "MilestoneCategory",
    "MilestoneReward",
    "Milestone",
    "LevelProgressionResult",
    "LevelProgress",
    "CategoryProgress",
    "CategoryRecommendation",
    "CategoryRecommendations",
    "BadgeDefinition",
    "BadgeUnlockCriteria",
    "EarnedBadge",
    "ProgressionSummary",
    # Aggregate
    "UserProgress",
    "ProgressionUpdate",
    "LeaderboardEntry",
]
