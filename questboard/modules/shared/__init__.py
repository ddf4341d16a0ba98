"""
Questboard Shared Module

Purpose
-------
Provides domain-level foundations for all progression modules:
- Domain exceptions and error handling
- Base service and repository patterns
- Progression constants and pure formulas

Architecture
------------
- BaseService: Foundation for service classes (logging, config, events)
- BaseRepository: Type-safe database access patterns
- Domain exceptions: Business rule violations
- Formulas: Pure calculation functions for the level curve and scores
- Constants: Default balance values

Usage
-----
    from questboard.modules.shared import (
        BaseService,
        RewardAlreadyClaimedError,
        xp_required_for_level,
    )
"""

from __future__ import annotations

from .base_repository import BaseRepository
from .base_service import BaseService
from .exceptions import (
    ConcurrentUpdateError,
    InvalidOperationError,
    NotFoundError,
    QuestboardDomainException,
    RewardAlreadyClaimedError,
    ValidationError,
    get_error_severity,
    is_transient_error,
    should_alert,
)
from .formulas import (
    category_balance_score,
    clamp_level,
    clamp_quality,
    cumulative_xp_for_level,
    floor_points,
    level_for_total_xp,
    level_scaling_factor,
    round_half_up,
    running_average,
    xp_required_for_level,
)

__all__ = [
    # Base patterns
    "BaseService",
    "BaseRepository",
    # Exceptions
    "QuestboardDomainException",
    "NotFoundError",
    "ValidationError",
    "InvalidOperationError",
    "RewardAlreadyClaimedError",
    "ConcurrentUpdateError",
    "is_transient_error",
    "get_error_severity",
    "should_alert",
    # Formulas
    "clamp_quality",
    "clamp_level",
    "floor_points",
    "xp_required_for_level",
    "cumulative_xp_for_level",
    "level_for_total_xp",
    "level_scaling_factor",
    "running_average",
    "round_half_up",
    "category_balance_score",
]
