"""
MilestoneTracker - milestone detection, awarding and progression views.

Purpose
-------
Evaluate a user's milestone catalog against their current stats, award the
rewards of newly completed milestones exactly once, and build the read-only
views the progression dashboard renders (summary, level progress, category
recommendations).

Responsibilities
----------------
- Build the milestone catalog from the stats snapshot and work-history totals
- Detect newly completed milestones (current value exactly on the target)
- Claim ``milestone:{id}`` per user and apply the summed rewards atomically
- Summarize active, completed, and upcoming milestones plus badges
- Recommend the least-used work category when work is unbalanced

Design Notes
------------
- **Idempotency**: completion checks run inside ``ProgressionStore.lock_user``;
  each milestone is claimed before its reward counts, so concurrent or
  replayed checks award a milestone once.
- **Exact hits only**: a milestone crossed without landing on its target is
  never awarded here. The task-completion flow logs those as skipped.
- Ladders and the clock are injected; the tracker holds no global state.

Usage Example
-------------
>>> tracker = MilestoneTracker(
...     store=store,
...     work_history=SnapshotWorkHistory(store),
...     badge_catalog=InMemoryBadgeCatalog(),
...     ladders=MilestoneLadders(),
...     level_calculator=LevelCalculator(),
...     config_manager=config,
...     event_bus=bus,
...     logger=get_logger(__name__),
... )
>>> completed = await tracker.check_milestone_completions("u-1")
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, List, Optional

from questboard.core.database.base import utc_now
from questboard.core.logging.logger import LogContext
from questboard.domain.models.milestone import (
    CategoryProgress,
    CategoryRecommendation,
    CategoryRecommendations,
    LevelProgress,
    Milestone,
    ProgressionSummary,
)
from questboard.domain.models.progress import UserProgress
from questboard.domain.models.rewards import WorkCategory
from questboard.domain.models.user_stats import WorkHistoryTotals
from questboard.modules.milestones.catalog import (
    build_catalog,
    next_category_milestone,
    select_newly_completed,
)
from questboard.modules.milestones.ladders import MilestoneLadders
from questboard.modules.shared.base_service import BaseService
from questboard.modules.shared.constants import CLAIM_MILESTONE
from questboard.modules.shared.formulas import category_balance_score

if TYPE_CHECKING:
    from logging import Logger

    from questboard.core.config.manager import ConfigManager
    from questboard.core.event.bus import EventBus
    from questboard.modules.leveling.calculator import LevelCalculator
    from questboard.modules.progression.ports import (
        BadgeCatalog,
        Clock,
        WorkHistoryProvider,
    )
    from questboard.modules.progression.store import ProgressionStore

_BALANCE_REASON = "Balance your experience across all work categories"


class MilestoneTracker(BaseService):
    """Milestone completion and progression views for one deployment's ladders."""

    def __init__(
        self,
        store: ProgressionStore,
        work_history: WorkHistoryProvider,
        badge_catalog: BadgeCatalog,
        ladders: MilestoneLadders,
        level_calculator: LevelCalculator,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        clock: Clock = utc_now,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._store = store
        self._work_history = work_history
        self._badges = badge_catalog
        self._ladders = ladders
        self._levels = level_calculator
        self._clock = clock

    @property
    def ladders(self) -> MilestoneLadders:
        return self._ladders

    # =========================================================================
    # COMPLETIONS
    # =========================================================================

    async def check_milestone_completions(self, user_id: str) -> List[Milestone]:
        """
        Award every newly completed milestone for the user, once.

        Runs as one serialized unit of work: the catalog is rebuilt from the
        locked snapshot, each exact-hit milestone is claimed, and the summed
        xp/trust rewards of the claimed ones are applied in a single write.
        The stored level follows any XP the rewards add.

        Args:
            user_id: User to check

        Returns:
            Milestones claimed by this call (empty for replays and unknown users)

        Raises:
            ValidationError: If user_id is blank
            DatabaseError: If the store fails (retryable)
        """
        self.validate_not_blank(user_id, "user_id")

        async with LogContext(user_id=user_id, operation="check_milestone_completions"):
            self.log_operation("check_milestone_completions", user_id=user_id)

            progress: Optional[UserProgress] = None
            claimed: List[Milestone] = []

            async with self._store.lock_user(user_id) as uow:
                snapshot = uow.snapshot
                if snapshot is None:
                    return []

                totals = await self._work_history.get_totals(user_id)
                candidates = select_newly_completed(build_catalog(snapshot, totals, self._ladders))

                for milestone in candidates:
                    if await uow.claim(CLAIM_MILESTONE, milestone.id):
                        claimed.append(milestone)

                if claimed:
                    progress = UserProgress(snapshot)
                    progress.apply_milestone_rewards(claimed)
                    updated = progress.snapshot
                    progress.apply_level(
                        self._levels.calculate_level_progression(
                            updated.xp_points, updated.current_level
                        )
                    )
                    uow.stage(progress.snapshot)

            if progress is not None:
                for event in progress.clear_domain_events():
                    await self.emit_event(event.event_name, event.payload)

            self.log.info(
                "Milestone completions checked",
                extra={
                    "user_id": user_id,
                    "candidates": len(candidates),
                    "claimed": [m.id for m in claimed],
                    "xp_awarded": sum(m.reward.xp for m in claimed),
                    "trust_awarded": sum(m.reward.trust_score for m in claimed),
                },
            )
            return claimed

    # =========================================================================
    # VIEWS
    # =========================================================================

    async def get_user_progression_summary(self, user_id: str) -> Optional[ProgressionSummary]:
        """
        Dashboard summary of milestones, per-category progress and badges.

        Returns:
            ProgressionSummary, or None when the user has no stats
        """
        self.validate_not_blank(user_id, "user_id")

        snapshot = await self._store.get_snapshot(user_id)
        if snapshot is None:
            return None

        totals = await self._work_history.get_totals(user_id)
        milestones = build_catalog(snapshot, totals, self._ladders)
        ladders = self._ladders

        completed = [m for m in milestones if m.completed]
        active = [m for m in milestones if not m.completed and m.progress > 0]
        upcoming = [m for m in milestones if not m.completed and m.progress == 0]

        user_badges = await self._badges.find_user_badges(user_id)
        cutoff = self._clock() - timedelta(days=ladders.recent_badge_days)
        recent_badges = sorted(
            (badge for badge in user_badges if badge.earned_at >= cutoff),
            key=lambda badge: badge.earned_at,
            reverse=True,
        )
        next_badges = await self._badges.find_unlockable_badges(user_id, snapshot, totals)

        # Most recent rungs last in ladder order
        completed_limit = ladders.summary_completed_limit
        completed_tail = completed[-completed_limit:] if completed_limit > 0 else []

        return ProgressionSummary(
            user_id=user_id,
            active_milestones=tuple(active),
            completed_milestones=tuple(completed_tail),
            upcoming_milestones=tuple(upcoming[: ladders.summary_upcoming_limit]),
            category_progress=self._category_progress(totals),
            recent_badges=tuple(recent_badges[: ladders.recent_badge_limit]),
            next_badges=tuple(next_badges[: ladders.next_badge_limit]),
            total_badges=len(user_badges),
            level_progress=self._levels.level_progress(snapshot.xp_points, snapshot.current_level),
        )

    def _category_progress(self, totals: WorkHistoryTotals) -> tuple[CategoryProgress, ...]:
        cards = []
        for category in WorkCategory:
            metrics = totals.category(category)
            cards.append(
                CategoryProgress(
                    category=category,
                    tasks_completed=metrics.tasks_completed,
                    total_xp=metrics.total_xp,
                    average_rating=metrics.average_rating,
                    next_milestone=next_category_milestone(
                        category, metrics.tasks_completed, self._ladders
                    ),
                    specializations=metrics.specializations,
                )
            )
        return tuple(cards)

    async def get_level_progress(self, user_id: str) -> Optional[LevelProgress]:
        """Level progress bar for the user; None when the user has no stats."""
        self.validate_not_blank(user_id, "user_id")

        snapshot = await self._store.get_snapshot(user_id)
        if snapshot is None:
            return None
        return self._levels.level_progress(snapshot.xp_points, snapshot.current_level)

    async def get_category_recommendations(self, user_id: str) -> CategoryRecommendations:
        """
        Balance score across work categories plus what to work on next.

        The least-used category is recommended when the gap between the most
        and least used reaches the imbalance threshold. Ties keep WorkCategory
        order, so the first category wins on the low end and the last on the
        high end.
        """
        self.validate_not_blank(user_id, "user_id")

        totals = await self._work_history.get_totals(user_id)
        ladders = self._ladders

        ranked = sorted(WorkCategory, key=totals.count)
        counts = [totals.count(category) for category in WorkCategory]
        least_used, most_used = ranked[0], ranked[-1]

        recommendations: List[CategoryRecommendation] = []
        if totals.count(most_used) - totals.count(least_used) >= ladders.imbalance_threshold:
            current = totals.count(least_used)
            target = next(
                (t for t in ladders.category_targets if t > current),
                ladders.category_targets[-1],
            )
            recommendations.append(
                CategoryRecommendation(
                    category=least_used,
                    reason=_BALANCE_REASON,
                    next_milestone=f"{least_used.value} specialist {target}",
                    tasks_needed=max(0, target - current),
                )
            )

        return CategoryRecommendations(
            recommendations=tuple(recommendations),
            balance_score=category_balance_score(
                counts,
                ideal_share=ladders.balance_ideal_share,
                penalty_per_point=ladders.balance_penalty_per_point,
            ),
        )
