"""
Milestone and Progression-View Domain Models for Questboard.

Purpose
-------
Immutable read models produced by the leveling and milestone subsystems:
milestones and their rewards, level progression results, per-category
progress, recommendations, badges, and the progression summary.

Milestones are generated fresh from the current stats on every call and are
never persisted; only the idempotency claim for a completed milestone is.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from questboard.domain.models.base import (
    DomainValidationError,
    validate_non_negative,
    validate_positive,
    validate_range,
)
from questboard.domain.models.rewards import WorkCategory
from questboard.domain.models.user_stats import UserStatsSnapshot, WorkHistoryTotals


class MilestoneCategory(str, Enum):
    XP = "xp"
    TRUST_SCORE = "trust_score"
    RWIS = "rwis"
    TASKS = "tasks"
    LEVEL = "level"
    CATEGORY = "category"


@dataclass(frozen=True)
class MilestoneReward:
    """What completing a milestone grants."""

    xp: int = 0
    trust_score: int = 0
    badge: Optional[str] = None
    zone_unlock: Optional[str] = None

    def __post_init__(self) -> None:
        validate_non_negative(self.xp, "xp")
        validate_non_negative(self.trust_score, "trust_score")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "xp": self.xp,
            "trust_score": self.trust_score,
            "badge": self.badge,
            "zone_unlock": self.zone_unlock,
        }


@dataclass(frozen=True)
class Milestone:
    """
    One rung of a milestone ladder evaluated against a user's stats.

    Attributes
    ----------
    id : str
        Stable id such as ``xp-1000`` or ``freelance-20``
    progress : float
        Percent in [0, 100]; exactly 100 only when completed
    work_category : Optional[WorkCategory]
        Set for CATEGORY milestones only
    """

    id: str
    name: str
    description: str
    category: MilestoneCategory
    current_value: int
    target_value: int
    progress: float
    completed: bool
    reward: MilestoneReward
    work_category: Optional[WorkCategory] = None

    def __post_init__(self) -> None:
        validate_positive(self.target_value, "target_value")
        validate_range(self.progress, 0.0, 100.0, "progress")
        if self.completed != (self.current_value >= self.target_value):
            raise DomainValidationError(
                f"completed flag inconsistent for milestone {self.id}", field="completed"
            )
        if (self.progress == 100.0) != self.completed:
            raise DomainValidationError(
                f"progress must be 100 exactly when completed ({self.id})", field="progress"
            )

    @property
    def is_exact_hit(self) -> bool:
        """Completed with the current value landing exactly on the target."""
        return self.completed and self.current_value == self.target_value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category.value,
            "current_value": self.current_value,
            "target_value": self.target_value,
            "progress": self.progress,
            "completed": self.completed,
            "reward": self.reward.to_dict(),
        }


@dataclass(frozen=True)
class LevelProgressionResult:
    """Outcome of deriving a level from cumulative XP."""

    previous_level: int
    new_level: int
    leveled_up: bool
    xp_required_for_current_level: int
    xp_to_next_level: int
    unlocked_features: tuple[str, ...] = ()
    newly_unlocked_features: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        validate_positive(self.new_level, "new_level")
        validate_non_negative(self.xp_to_next_level, "xp_to_next_level")


@dataclass(frozen=True)
class LevelProgress:
    """Progress bar data for the current level (absolute XP markers)."""

    current_level: int
    current_xp: int
    xp_for_current_level: int
    xp_for_next_level: int
    progress_to_next_level: float
    xp_needed: int

    def __post_init__(self) -> None:
        validate_positive(self.current_level, "current_level")
        validate_range(self.progress_to_next_level, 0.0, 100.0, "progress_to_next_level")
        validate_non_negative(self.xp_needed, "xp_needed")


@dataclass(frozen=True)
class CategoryProgress:
    """Per-category card: work metrics plus the next rung to aim for (None past the top)."""

    category: WorkCategory
    tasks_completed: int
    total_xp: int
    average_rating: float
    next_milestone: Optional[Milestone]
    specializations: tuple[str, ...] = ()


@dataclass(frozen=True)
class CategoryRecommendation:
    category: WorkCategory
    reason: str
    next_milestone: str
    tasks_needed: int

    def __post_init__(self) -> None:
        validate_non_negative(self.tasks_needed, "tasks_needed")


@dataclass(frozen=True)
class CategoryRecommendations:
    recommendations: tuple[CategoryRecommendation, ...]
    balance_score: int

    def __post_init__(self) -> None:
        validate_range(self.balance_score, 0, 100, "balance_score")


@dataclass(frozen=True)
class BadgeUnlockCriteria:
    """
    Thresholds a user must meet to unlock a badge; zero/empty means "no requirement".

    ``category_tasks`` maps a category to the completed-task count required in it.
    """

    tasks_completed: int = 0
    trust_score: int = 0
    category_tasks: Mapping[WorkCategory, int] = field(default_factory=dict)

    def is_met(self, snapshot: UserStatsSnapshot, totals: WorkHistoryTotals) -> bool:
        if totals.total_tasks < self.tasks_completed:
            return False
        if snapshot.trust_score < self.trust_score:
            return False
        return all(totals.count(cat) >= required for cat, required in self.category_tasks.items())


@dataclass(frozen=True)
class BadgeDefinition:
    """A badge from the badge catalog."""

    id: str
    name: str
    description: str = ""
    criteria: BadgeUnlockCriteria = field(default_factory=BadgeUnlockCriteria)


@dataclass(frozen=True)
class EarnedBadge:
    """A badge a user holds, with when it was earned."""

    badge_id: str
    name: str
    earned_at: datetime


@dataclass(frozen=True)
class ProgressionSummary:
    """Everything a progression dashboard needs for one user."""

    user_id: str
    active_milestones: tuple[Milestone, ...]
    completed_milestones: tuple[Milestone, ...]
    upcoming_milestones: tuple[Milestone, ...]
    category_progress: tuple[CategoryProgress, ...]
    recent_badges: tuple[EarnedBadge, ...]
    next_badges: tuple[BadgeDefinition, ...]
    total_badges: int
    level_progress: Optional[LevelProgress] = None
