"""
User Statistics Domain Model for Questboard.

Purpose
-------
Immutable snapshot of a user's progression state (trust, RWIS, XP, level,
per-category work metrics, unlocked zones) plus the aggregate work-history
totals consumed by the milestone tracker.

This is separate from the database model (`UserStats`), which is an anemic
row. Stores convert between the two.

Responsibilities
----------------
- Enforce non-negative totals and ``current_level >= 1``
- Fold one completed task into the per-category metrics
- Serialize category metrics to and from plain JSON mappings

Usage Example
-------------
>>> snapshot = UserStatsSnapshot.new("u-1")
>>> metrics = snapshot.category(WorkCategory.FREELANCE).record_task(xp=120, quality=4)
>>> snapshot.with_category(WorkCategory.FREELANCE, metrics).total_tasks
1
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping

from questboard.domain.models.base import (
    validate_non_negative,
    validate_not_empty,
    validate_positive,
)
from questboard.domain.models.rewards import WorkCategory
from questboard.modules.shared.constants import DEFAULT_ZONE
from questboard.modules.shared.formulas import running_average


@dataclass(frozen=True)
class CategoryMetrics:
    """
    Work metrics for one category.

    ``rated_tasks`` counts the tasks that carried a rating (> 0), which is
    what ``average_rating`` averages over.
    """

    tasks_completed: int = 0
    total_xp: int = 0
    average_rating: float = 0.0
    rated_tasks: int = 0
    specializations: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        validate_non_negative(self.tasks_completed, "tasks_completed")
        validate_non_negative(self.total_xp, "total_xp")
        validate_non_negative(self.average_rating, "average_rating")
        validate_non_negative(self.rated_tasks, "rated_tasks")

    def record_task(self, xp: int, quality: float) -> CategoryMetrics:
        """Return new metrics with one more completed task folded in."""
        average = self.average_rating
        rated = self.rated_tasks
        if quality > 0:
            average = running_average(self.average_rating, self.rated_tasks, quality)
            rated += 1
        return replace(
            self,
            tasks_completed=self.tasks_completed + 1,
            total_xp=self.total_xp + xp,
            average_rating=average,
            rated_tasks=rated,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tasks_completed": self.tasks_completed,
            "total_xp": self.total_xp,
            "average_rating": self.average_rating,
            "rated_tasks": self.rated_tasks,
            "specializations": list(self.specializations),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CategoryMetrics:
        return cls(
            tasks_completed=int(data.get("tasks_completed", 0)),
            total_xp=int(data.get("total_xp", 0)),
            average_rating=float(data.get("average_rating", 0.0)),
            rated_tasks=int(data.get("rated_tasks", 0)),
            specializations=tuple(data.get("specializations", ())),
        )


@dataclass(frozen=True)
class UserStatsSnapshot:
    """
    Point-in-time view of a user's progression.

    Attributes
    ----------
    user_id : str
        Owner of the stats
    trust_score, rwis_score, xp_points : int
        Cumulative totals (never negative)
    current_level : int
        Stored level (>= 1, never decreases)
    category_stats : Mapping[WorkCategory, CategoryMetrics]
        Per-category work metrics; missing categories read as empty metrics
    unlocked_zones : tuple[str, ...]
        Zone ids in unlock order
    version : int
        Row version, bumped on every committed write
    """

    user_id: str
    trust_score: int = 0
    rwis_score: int = 0
    xp_points: int = 0
    current_level: int = 1
    category_stats: Mapping[WorkCategory, CategoryMetrics] = field(default_factory=dict)
    unlocked_zones: tuple[str, ...] = (DEFAULT_ZONE,)
    version: int = 0

    def __post_init__(self) -> None:
        validate_not_empty(self.user_id, "user_id")
        validate_non_negative(self.trust_score, "trust_score")
        validate_non_negative(self.rwis_score, "rwis_score")
        validate_non_negative(self.xp_points, "xp_points")
        validate_positive(self.current_level, "current_level")
        validate_non_negative(self.version, "version")

    @classmethod
    def new(cls, user_id: str) -> UserStatsSnapshot:
        """Fresh stats for a user with no history."""
        return cls(user_id=user_id)

    def category(self, category: WorkCategory) -> CategoryMetrics:
        return self.category_stats.get(category, CategoryMetrics())

    @property
    def total_tasks(self) -> int:
        return sum(metrics.tasks_completed for metrics in self.category_stats.values())

    def category_counts(self) -> Dict[WorkCategory, int]:
        return {cat: self.category(cat).tasks_completed for cat in WorkCategory}

    def with_category(self, category: WorkCategory, metrics: CategoryMetrics) -> UserStatsSnapshot:
        stats = dict(self.category_stats)
        stats[category] = metrics
        return replace(self, category_stats=stats)

    def category_stats_to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {cat.value: metrics.to_dict() for cat, metrics in self.category_stats.items()}

    @staticmethod
    def category_stats_from_dict(
        data: Mapping[str, Mapping[str, Any]] | None,
    ) -> Dict[WorkCategory, CategoryMetrics]:
        # Exact category keys win; an unknown key only fills a category (COMMUNITY)
        # that has no exact entry of its own.
        stats: Dict[WorkCategory, CategoryMetrics] = {}
        folded: Dict[WorkCategory, CategoryMetrics] = {}
        for key, value in (data or {}).items():
            category = WorkCategory.from_value(key)
            if isinstance(key, str) and key.strip().lower() == category.value:
                stats[category] = CategoryMetrics.from_dict(value)
            else:
                folded.setdefault(category, CategoryMetrics.from_dict(value))
        for category, metrics in folded.items():
            stats.setdefault(category, metrics)
        return stats


@dataclass(frozen=True)
class WorkHistoryTotals:
    """
    Aggregate work-history figures for one user.

    ``categories`` carries per-category metrics; categories without history
    read as empty metrics.
    """

    total_tasks: int = 0
    categories: Mapping[WorkCategory, CategoryMetrics] = field(default_factory=dict)

    def __post_init__(self) -> None:
        validate_non_negative(self.total_tasks, "total_tasks")

    def category(self, category: WorkCategory) -> CategoryMetrics:
        return self.categories.get(category, CategoryMetrics())

    def count(self, category: WorkCategory) -> int:
        return self.category(category).tasks_completed

    @classmethod
    def from_snapshot(cls, snapshot: UserStatsSnapshot) -> WorkHistoryTotals:
        return cls(total_tasks=snapshot.total_tasks, categories=dict(snapshot.category_stats))
