"""
User Progress Aggregate for Questboard.

Purpose
-------
Rich domain model that applies progression changes (task rewards, level
changes, zone unlocks, milestone rewards) to a user's stats snapshot inside
one unit of work, and records the domain events those changes produce.

Responsibilities
----------------
- Keep totals non-negative and the stored level monotone
- Fold task rewards into per-category metrics
- Emit domain events for rewards, level-ups, zone unlocks, and milestones

Non-Responsibilities
--------------------
- Reward and level formulas (handled by the calculators)
- Locking, idempotency, and persistence (handled by the progression store)
- Publishing events (the service publishes after commit)

Usage Example
-------------
>>> progress = UserProgress(uow.snapshot)
>>> progress.apply_task_reward("task-9", WorkCategory.FREELANCE, xp=120, trust=6, rwis=50, quality=4)
>>> progress.apply_level(level_result)
>>> uow.stage(progress.snapshot)
>>> # after commit
>>> for event in progress.clear_domain_events():
...     await event_bus.publish(event.event_name, event.payload)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable

from questboard.domain.models.base import AggregateRoot, validate_non_negative
from questboard.domain.models.milestone import (
    BadgeDefinition,
    LevelProgressionResult,
    Milestone,
)
from questboard.domain.models.rewards import RWISResult, TrustResult, WorkCategory, XPResult
from questboard.domain.models.user_stats import UserStatsSnapshot

EVENT_TASK_REWARDED = "progression.task_rewarded"
EVENT_LEVELED_UP = "progression.leveled_up"
EVENT_ZONE_UNLOCKED = "progression.zone_unlocked"
EVENT_MILESTONES_COMPLETED = "progression.milestones_completed"
EVENT_BADGE_AWARDED = "progression.badge_awarded"


class UserProgress(AggregateRoot):
    """
    Progression aggregate for one user.

    Business Rules
    --------------
    - Trust, RWIS and XP only grow through rewards and never go negative
    - The stored level never decreases
    - A zone is unlocked at most once

    Domain Events
    -------------
    - progression.task_rewarded
    - progression.leveled_up
    - progression.zone_unlocked
    - progression.milestones_completed
    """

    def __init__(self, snapshot: UserStatsSnapshot) -> None:
        super().__init__(snapshot.user_id)
        self._snapshot = snapshot

    @property
    def snapshot(self) -> UserStatsSnapshot:
        return self._snapshot

    def apply_task_reward(
        self,
        task_id: str,
        category: WorkCategory,
        *,
        xp: int,
        trust: int,
        rwis: int,
        quality: float,
    ) -> None:
        """Add one task's awards to the totals and the category metrics."""
        validate_non_negative(xp, "xp")
        validate_non_negative(trust, "trust")
        validate_non_negative(rwis, "rwis")

        metrics = self._snapshot.category(category).record_task(xp=xp, quality=quality)
        self._snapshot = replace(
            self._snapshot.with_category(category, metrics),
            xp_points=self._snapshot.xp_points + xp,
            trust_score=self._snapshot.trust_score + trust,
            rwis_score=self._snapshot.rwis_score + rwis,
        )

        self.add_domain_event(
            EVENT_TASK_REWARDED,
            {
                "user_id": self.id,
                "task_id": task_id,
                "category": category.value,
                "xp": xp,
                "trust_score": trust,
                "rwis": rwis,
                "new_xp_total": self._snapshot.xp_points,
            },
        )

    def apply_level(self, result: LevelProgressionResult) -> bool:
        """
        Store the derived level if it is higher than the stored one.

        Returns True when the stored level changed.
        """
        previous = self._snapshot.current_level
        if result.new_level <= previous:
            return False

        self._snapshot = replace(self._snapshot, current_level=result.new_level)
        self.add_domain_event(
            EVENT_LEVELED_UP,
            {
                "user_id": self.id,
                "previous_level": previous,
                "new_level": result.new_level,
                "unlocked_features": list(result.newly_unlocked_features),
            },
        )
        return True

    def unlock_zones(self, zone_ids: Iterable[str]) -> tuple[str, ...]:
        """Append zones not yet unlocked; returns the ones actually added."""
        added = tuple(
            zone for zone in dict.fromkeys(zone_ids) if zone not in self._snapshot.unlocked_zones
        )
        if not added:
            return ()

        self._snapshot = replace(
            self._snapshot, unlocked_zones=self._snapshot.unlocked_zones + added
        )
        for zone_id in added:
            self.add_domain_event(
                EVENT_ZONE_UNLOCKED,
                {"user_id": self.id, "zone_id": zone_id},
            )
        return added

    def apply_milestone_rewards(self, milestones: Iterable[Milestone]) -> None:
        """Add the summed xp/trust rewards of the claimed milestones in one change."""
        claimed = list(milestones)
        if not claimed:
            return

        xp = sum(m.reward.xp for m in claimed)
        trust = sum(m.reward.trust_score for m in claimed)
        self._snapshot = replace(
            self._snapshot,
            xp_points=self._snapshot.xp_points + xp,
            trust_score=self._snapshot.trust_score + trust,
        )
        self.add_domain_event(
            EVENT_MILESTONES_COMPLETED,
            {
                "user_id": self.id,
                "milestone_ids": [m.id for m in claimed],
                "xp": xp,
                "trust_score": trust,
                "badges": [m.reward.badge for m in claimed if m.reward.badge],
            },
        )


@dataclass(frozen=True)
class ProgressionUpdate:
    """Everything that happened to a user's progression for one completed task."""

    user_id: str
    task_id: str
    xp: XPResult
    trust: TrustResult
    rwis: RWISResult
    level: LevelProgressionResult
    stats: UserStatsSnapshot
    zones_unlocked: tuple[str, ...] = ()
    badges_awarded: tuple[BadgeDefinition, ...] = ()
    milestones_completed: tuple[Milestone, ...] = ()
    skipped_milestones: tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "task_id": self.task_id,
            "xp": self.xp.to_dict(),
            "trust_score": self.trust.to_dict(),
            "rwis": self.rwis.to_dict(),
            "level": {
                "previous_level": self.level.previous_level,
                "new_level": self.level.new_level,
                "leveled_up": self.level.leveled_up,
                "xp_to_next_level": self.level.xp_to_next_level,
                "unlocked_features": list(self.level.newly_unlocked_features),
            },
            "zones_unlocked": list(self.zones_unlocked),
            "badges_awarded": [badge.id for badge in self.badges_awarded],
            "milestones_completed": [m.id for m in self.milestones_completed],
        }


@dataclass(frozen=True)
class LeaderboardEntry:
    """One ranked row of a progression leaderboard (rank starts at 1)."""

    rank: int
    user_id: str
    metric: str
    value: int
    current_level: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rank": self.rank,
            "user_id": self.user_id,
            "metric": self.metric,
            "value": self.value,
            "current_level": self.current_level,
        }
