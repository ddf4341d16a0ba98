"""
ProgressionService - turns completed tasks into progression.

Purpose
-------
Orchestrate everything that happens to a user's progression when a task is
completed: reward calculation, stat updates, level-ups, zone unlocks, badge
awards, and milestone completions. Also serves progression leaderboards.

Responsibilities
----------------
- Apply one task's rewards exactly once (``task_completion:{task_id}`` claim)
- Keep totals non-negative and the stored level monotone
- Unlock zones whose trust and level thresholds are met
- Award unlockable badges and newly completed milestones after commit
- Publish progression events after commit

Non-Responsibilities
--------------------
- Reward and level formulas (RewardCalculator, LevelCalculator)
- Milestone rules (MilestoneTracker)
- Transactions and locking (ProgressionStore)

Design Notes
------------
**Write path**: the task reward is one unit of work on the store. Badge
awards and milestone checks run afterwards against the committed stats; each
is idempotent on its own, so a retry after a partial failure is safe.

**Events** (published only after commit):
- progression.task_rewarded
- progression.leveled_up
- progression.zone_unlocked
- progression.badge_awarded
- progression.milestones_completed (via MilestoneTracker)

Usage Example
-------------
>>> service = ProgressionService.build(config, bus, InMemoryProgressionStore())
>>> update = await service.process_task_completion(
...     "u-1", "task-42", TaskRewardSpec(xp=100, trust_score_bonus=5, rwis_points=50),
...     WorkCategory.FREELANCE, quality_score=4,
... )
>>> update.level.new_level
2
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from questboard.core.database.base import utc_now
from questboard.core.logging.logger import LogContext, get_logger
from questboard.domain.models.milestone import BadgeDefinition
from questboard.domain.models.progress import (
    EVENT_BADGE_AWARDED,
    LeaderboardEntry,
    ProgressionUpdate,
    UserProgress,
)
from questboard.domain.models.rewards import TaskComplexity, TaskRewardSpec, WorkCategory
from questboard.domain.models.user_stats import UserStatsSnapshot, WorkHistoryTotals
from questboard.modules.leveling.calculator import LevelCalculator
from questboard.modules.milestones.catalog import build_catalog, find_skipped_milestones
from questboard.modules.milestones.tracker import MilestoneTracker
from questboard.modules.progression.badges import InMemoryBadgeCatalog
from questboard.modules.progression.ports import SnapshotWorkHistory
from questboard.modules.progression.rules import ProgressionRules
from questboard.modules.progression.zones import evaluate_zone_unlocks
from questboard.modules.rewards.calculator import RewardCalculator
from questboard.modules.shared.base_service import BaseService
from questboard.modules.shared.constants import (
    CLAIM_TASK_COMPLETION,
    LEADERBOARD_DEFAULT_LIMIT,
    LEADERBOARD_MAX_LIMIT,
    LEADERBOARD_METRICS,
)
from questboard.modules.shared.exceptions import (
    InvalidOperationError,
    QuestboardDomainException,
    RewardAlreadyClaimedError,
)
from questboard.modules.shared.formulas import clamp_quality

if TYPE_CHECKING:
    from logging import Logger

    from questboard.core.config.manager import ConfigManager
    from questboard.core.event.bus import EventBus
    from questboard.modules.progression.ports import (
        BadgeCatalog,
        Clock,
        WorkHistoryProvider,
    )
    from questboard.modules.progression.store import ProgressionStore


class ProgressionService(BaseService):
    """Task-completion progression and leaderboards."""

    def __init__(
        self,
        store: ProgressionStore,
        rules: ProgressionRules,
        work_history: WorkHistoryProvider,
        badge_catalog: BadgeCatalog,
        tracker: MilestoneTracker,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        reward_calculator: Optional[RewardCalculator] = None,
        level_calculator: Optional[LevelCalculator] = None,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._store = store
        self._rules = rules
        self._work_history = work_history
        self._badges = badge_catalog
        self._tracker = tracker
        self._rewards = reward_calculator or RewardCalculator(rules.rewards)
        self._levels = level_calculator or LevelCalculator(rules.leveling)

    @classmethod
    def build(
        cls,
        config_manager: ConfigManager,
        event_bus: EventBus,
        store: ProgressionStore,
        *,
        badge_catalog: Optional[BadgeCatalog] = None,
        work_history: Optional[WorkHistoryProvider] = None,
        clock: Clock = utc_now,
        logger: Optional[Logger] = None,
    ) -> ProgressionService:
        """
        Wire the service and its collaborators from config.

        Raises:
            ConfigurationError: If any rule section is malformed
        """
        rules = ProgressionRules.from_config(config_manager)
        log = logger or get_logger(__name__)
        badges = badge_catalog or InMemoryBadgeCatalog(rules.badges, clock=clock)
        history = work_history or SnapshotWorkHistory(store)
        levels = LevelCalculator(rules.leveling)

        tracker = MilestoneTracker(
            store=store,
            work_history=history,
            badge_catalog=badges,
            ladders=rules.ladders,
            level_calculator=levels,
            config_manager=config_manager,
            event_bus=event_bus,
            logger=log,
            clock=clock,
        )
        return cls(
            store=store,
            rules=rules,
            work_history=history,
            badge_catalog=badges,
            tracker=tracker,
            config_manager=config_manager,
            event_bus=event_bus,
            logger=log,
            reward_calculator=RewardCalculator(rules.rewards),
            level_calculator=levels,
        )

    @property
    def tracker(self) -> MilestoneTracker:
        return self._tracker

    # =========================================================================
    # TASK COMPLETION
    # =========================================================================

    async def process_task_completion(
        self,
        user_id: str,
        task_id: str,
        rewards: TaskRewardSpec,
        category: WorkCategory | str,
        quality_score: float = 3,
        on_time: bool = True,
        completion_time_ratio: float = 1.0,
        complexity: TaskComplexity | str = TaskComplexity.MEDIUM,
        client_feedback: Optional[str] = None,
    ) -> ProgressionUpdate:
        """
        Apply a completed task's rewards to the user's progression.

        This is a **write operation**: the reward, level and zone changes
        commit together; badges and milestones follow on committed stats.

        Args:
            user_id: User who completed the task
            task_id: Completed task (idempotency key)
            rewards: Task reward definition
            category: Work category of the task
            quality_score: Client rating 0-5 (clamped)
            on_time: Whether the task met its deadline
            completion_time_ratio: Actual / allotted time (< 1 is early)
            complexity: Task complexity for the RWIS bonus
            client_feedback: Optional written feedback

        Returns:
            ProgressionUpdate with every award and unlock

        Raises:
            ValidationError: If user_id or task_id is blank
            RewardAlreadyClaimedError: If this task was already rewarded
            ConcurrentUpdateError: If the stats changed underneath (retryable)
            DatabaseError: If the store fails (retryable)
        """
        self.validate_not_blank(user_id, "user_id")
        self.validate_not_blank(task_id, "task_id")
        category = WorkCategory.from_value(category)
        complexity = TaskComplexity.from_value(complexity)

        async with LogContext(user_id=user_id, task_id=task_id, operation="task_completion"):
            self.log_operation(
                "process_task_completion",
                user_id=user_id,
                task_id=task_id,
                category=category.value,
                quality_score=quality_score,
            )

            try:
                async with self._store.lock_user(user_id, create=True) as uow:
                    if not await uow.claim(CLAIM_TASK_COMPLETION, task_id):
                        raise RewardAlreadyClaimedError(
                            user_id, f"{CLAIM_TASK_COMPLETION}:{task_id}"
                        )

                    before = uow.snapshot
                    if before is None:
                        before = UserStatsSnapshot.new(user_id)

                    xp = self._rewards.calculate_xp(
                        rewards, category, quality_score, completion_time_ratio, before.current_level
                    )
                    trust = self._rewards.calculate_trust_score(
                        rewards, category, quality_score, on_time, client_feedback
                    )
                    rwis = self._rewards.calculate_rwis(rewards, category, quality_score, complexity)

                    progress = UserProgress(before)
                    progress.apply_task_reward(
                        task_id,
                        category,
                        xp=xp.total,
                        trust=trust.total,
                        rwis=rwis.total,
                        quality=clamp_quality(quality_score),
                    )
                    level = self._levels.calculate_level_progression(
                        progress.snapshot.xp_points, before.current_level
                    )
                    progress.apply_level(level)

                    after = progress.snapshot
                    zones = progress.unlock_zones(
                        evaluate_zone_unlocks(
                            after.trust_score,
                            after.current_level,
                            after.unlocked_zones,
                            self._rules.zones,
                        )
                    )
                    uow.stage(progress.snapshot)

                stats = progress.snapshot
                for event in progress.clear_domain_events():
                    await self.emit_event(event.event_name, event.payload)

                skipped = self._log_skipped_milestones(user_id, before, stats)
                badges = await self._award_badges(user_id, stats)
                milestones = await self._tracker.check_milestone_completions(user_id)
                if milestones:
                    stats, late_zones = await self._unlock_zones_after_milestones(user_id, stats)
                    zones = zones + late_zones

            except RewardAlreadyClaimedError:
                self.log.info(
                    "Task reward replay ignored",
                    extra={"user_id": user_id, "task_id": task_id},
                )
                raise
            except QuestboardDomainException:
                raise
            except Exception as exc:
                self.log_error("process_task_completion", exc, user_id=user_id, task_id=task_id)
                raise

            self.log.info(
                f"Task completion processed: {task_id}",
                extra={
                    "user_id": user_id,
                    "task_id": task_id,
                    "xp": xp.total,
                    "trust_score": trust.total,
                    "rwis": rwis.total,
                    "level": stats.current_level,
                    "leveled_up": level.leveled_up,
                    "zones_unlocked": list(zones),
                    "badges_awarded": [badge.id for badge in badges],
                    "milestones_completed": [m.id for m in milestones],
                    "success": True,
                },
            )

            return ProgressionUpdate(
                user_id=user_id,
                task_id=task_id,
                xp=xp,
                trust=trust,
                rwis=rwis,
                level=level,
                stats=stats,
                zones_unlocked=zones,
                badges_awarded=tuple(badges),
                milestones_completed=tuple(milestones),
                skipped_milestones=skipped,
            )

    async def _unlock_zones_after_milestones(
        self, user_id: str, fallback: UserStatsSnapshot
    ) -> tuple[UserStatsSnapshot, tuple[str, ...]]:
        """Re-check zone requirements once milestone rewards have changed level or trust."""
        progress: Optional[UserProgress] = None
        unlocked: tuple[str, ...] = ()

        async with self._store.lock_user(user_id) as uow:
            snapshot = uow.snapshot
            if snapshot is None:
                return fallback, ()

            progress = UserProgress(snapshot)
            unlocked = progress.unlock_zones(
                evaluate_zone_unlocks(
                    snapshot.trust_score,
                    snapshot.current_level,
                    snapshot.unlocked_zones,
                    self._rules.zones,
                )
            )
            if unlocked:
                uow.stage(progress.snapshot)

        for event in progress.clear_domain_events():
            await self.emit_event(event.event_name, event.payload)
        return progress.snapshot, unlocked

    def _log_skipped_milestones(
        self, user_id: str, before: UserStatsSnapshot, after: UserStatsSnapshot
    ) -> tuple[str, ...]:
        ladders = self._rules.ladders
        skipped = find_skipped_milestones(
            build_catalog(before, WorkHistoryTotals.from_snapshot(before), ladders),
            build_catalog(after, WorkHistoryTotals.from_snapshot(after), ladders),
        )
        for milestone in skipped:
            self.log.warning(
                f"Milestone crossed without exact hit: {milestone.id}",
                extra={
                    "user_id": user_id,
                    "milestone_id": milestone.id,
                    "current_value": milestone.current_value,
                    "target_value": milestone.target_value,
                },
            )
        return tuple(m.id for m in skipped)

    async def _award_badges(
        self, user_id: str, stats: UserStatsSnapshot
    ) -> List[BadgeDefinition]:
        totals = await self._work_history.get_totals(user_id)
        awarded: List[BadgeDefinition] = []
        for definition in await self._badges.find_unlockable_badges(user_id, stats, totals):
            earned = await self._badges.award_badge(user_id, definition.id)
            if earned is None:
                continue
            awarded.append(definition)
            await self.emit_event(
                EVENT_BADGE_AWARDED,
                {
                    "user_id": user_id,
                    "badge_id": definition.id,
                    "badge_name": definition.name,
                    "earned_at": earned.earned_at.isoformat(),
                },
            )
        return awarded

    # =========================================================================
    # LEADERBOARD
    # =========================================================================

    async def get_leaderboard(
        self,
        metric: str = "xp_points",
        limit: int = LEADERBOARD_DEFAULT_LIMIT,
        zone_id: Optional[str] = None,
    ) -> List[LeaderboardEntry]:
        """
        Top users by a progression metric, highest first, ties by user id.

        Args:
            metric: One of trust_score, rwis_score, xp_points, current_level
            limit: Rows to return (capped at the configured maximum)
            zone_id: Only rank users who have unlocked this zone

        Raises:
            InvalidOperationError: If metric is not a leaderboard metric
            ValidationError: If limit is not a positive integer or zone_id is blank
        """
        if metric not in LEADERBOARD_METRICS:
            raise InvalidOperationError(
                "get_leaderboard",
                f"unknown metric '{metric}'; expected one of {', '.join(LEADERBOARD_METRICS)}",
            )
        self.validate_positive_int(limit, "limit")
        max_limit = int(self.get_config("leaderboard.max_limit", LEADERBOARD_MAX_LIMIT))
        limit = min(limit, max_limit)

        if zone_id is not None:
            self.validate_not_blank(zone_id, "zone_id")
        snapshots = await self._store.leaderboard(metric, limit, zone_id)
        return [
            LeaderboardEntry(
                rank=rank,
                user_id=snapshot.user_id,
                metric=metric,
                value=getattr(snapshot, metric),
                current_level=snapshot.current_level,
            )
            for rank, snapshot in enumerate(snapshots, start=1)
        ]

    async def get_user_stats(self, user_id: str) -> Optional[UserStatsSnapshot]:
        """Committed stats for the user, or None when they have none."""
        self.validate_not_blank(user_id, "user_id")
        return await self._store.get_snapshot(user_id)

