"""
Milestone catalog - pure milestone generation and selection.

Purpose
-------
Build every milestone rung (XP, trust, RWIS, tasks, level, per-category) for
a user's current figures, and pick out the ones that matter for a given
operation (newly completed, skipped, next per category).

Design Notes
------------
- Deterministic: the same snapshot, totals and ladders always produce the
  same milestones in the same order (ladder by ladder, targets ascending,
  categories in WorkCategory order).
- ``progress`` is exactly 100.0 only for completed rungs; an incomplete rung
  tops out at 99.99 even when it rounds closer.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from questboard.domain.models.milestone import Milestone, MilestoneCategory, MilestoneReward
from questboard.domain.models.rewards import WorkCategory
from questboard.domain.models.user_stats import UserStatsSnapshot, WorkHistoryTotals
from questboard.modules.milestones.ladders import MilestoneLadders
from questboard.modules.shared.formulas import floor_points

_MAX_INCOMPLETE_PROGRESS = 99.99


def milestone_progress(current: int, target: int) -> float:
    """
    Percent progress toward ``target``; 100.0 exactly when reached.

    Example:
        >>> milestone_progress(50, 200)
        25.0
        >>> milestone_progress(999, 1000)
        99.9
    """
    if current >= target:
        return 100.0
    return max(0.0, min(current / target * 100, _MAX_INCOMPLETE_PROGRESS))


def _milestone(
    *,
    milestone_id: str,
    name: str,
    description: str,
    category: MilestoneCategory,
    current: int,
    target: int,
    reward: MilestoneReward,
    work_category: Optional[WorkCategory] = None,
) -> Milestone:
    return Milestone(
        id=milestone_id,
        name=name,
        description=description,
        category=category,
        current_value=current,
        target_value=target,
        progress=milestone_progress(current, target),
        completed=current >= target,
        reward=reward,
        work_category=work_category,
    )


# ============================================================================
# LADDERS
# ============================================================================


def xp_milestones(xp: int, ladders: MilestoneLadders) -> list[Milestone]:
    return [
        _milestone(
            milestone_id=f"xp-{target}",
            name=f"XP Milestone {target}",
            description=f"Earn {target:,} total XP",
            category=MilestoneCategory.XP,
            current=xp,
            target=target,
            reward=MilestoneReward(
                xp=floor_points(target * ladders.xp_reward_rate),
                badge=f"XP Master {target}" if index >= ladders.xp_badge_from_index else None,
            ),
        )
        for index, target in enumerate(ladders.xp_targets)
    ]


def trust_milestones(trust_score: int, ladders: MilestoneLadders) -> list[Milestone]:
    return [
        _milestone(
            milestone_id=f"trust-{target}",
            name=f"Trust Level {target}",
            description=f"Reach {target} Trust Score",
            category=MilestoneCategory.TRUST_SCORE,
            current=trust_score,
            target=target,
            reward=MilestoneReward(
                trust_score=floor_points(target * ladders.trust_reward_rate),
                zone_unlock=f"zone-{index}" if index >= ladders.trust_zone_from_index else None,
            ),
        )
        for index, target in enumerate(ladders.trust_targets)
    ]


def rwis_milestones(rwis_score: int, ladders: MilestoneLadders) -> list[Milestone]:
    return [
        _milestone(
            milestone_id=f"rwis-{target}",
            name=f"Impact Score {target}",
            description=f"Achieve {target:,} Real-World Impact Score",
            category=MilestoneCategory.RWIS,
            current=rwis_score,
            target=target,
            reward=MilestoneReward(
                xp=floor_points(target * ladders.rwis_reward_rate),
                badge=(
                    f"Impact Champion {target}"
                    if target >= ladders.rwis_badge_from_target
                    else None
                ),
            ),
        )
        for target in ladders.rwis_targets
    ]


def task_milestones(total_tasks: int, ladders: MilestoneLadders) -> list[Milestone]:
    return [
        _milestone(
            milestone_id=f"tasks-{target}",
            name=f"Task Milestone {target}",
            description=f"Complete {target} total tasks",
            category=MilestoneCategory.TASKS,
            current=total_tasks,
            target=target,
            reward=MilestoneReward(
                xp=target * ladders.task_reward_per_task,
                badge=f"Task Master {target}" if index >= ladders.task_badge_from_index else None,
            ),
        )
        for index, target in enumerate(ladders.task_targets)
    ]


def level_milestones(level: int, ladders: MilestoneLadders) -> list[Milestone]:
    return [
        _milestone(
            milestone_id=f"level-{target}",
            name=f"Level {target}",
            description=f"Reach level {target}",
            category=MilestoneCategory.LEVEL,
            current=level,
            target=target,
            reward=MilestoneReward(
                xp=target * ladders.level_reward_per_level,
                badge=f"Level {target} Master",
            ),
        )
        for target in ladders.level_targets
    ]


def _category_milestone(
    category: WorkCategory, tasks: int, target: int, ladders: MilestoneLadders
) -> Milestone:
    name = category.display_name
    return _milestone(
        milestone_id=f"{category.value}-{target}",
        name=f"{name} Specialist {target}",
        description=f"Complete {target} {name.lower()} tasks",
        category=MilestoneCategory.CATEGORY,
        current=tasks,
        target=target,
        reward=MilestoneReward(
            xp=target * ladders.category_reward_per_task,
            badge=(
                f"{name} Expert {target}"
                if target >= ladders.category_badge_from_target
                else None
            ),
        ),
        work_category=category,
    )


def category_milestones(
    category: WorkCategory, tasks: int, ladders: MilestoneLadders
) -> list[Milestone]:
    return [
        _category_milestone(category, tasks, target, ladders)
        for target in ladders.category_targets
    ]


def build_catalog(
    snapshot: UserStatsSnapshot,
    totals: WorkHistoryTotals,
    ladders: MilestoneLadders,
) -> tuple[Milestone, ...]:
    """
    Every milestone for the user's current figures, in ladder order.

    Stat ladders read the snapshot; task and category ladders read the
    work-history totals.
    """
    milestones: list[Milestone] = []
    milestones += xp_milestones(snapshot.xp_points, ladders)
    milestones += trust_milestones(snapshot.trust_score, ladders)
    milestones += rwis_milestones(snapshot.rwis_score, ladders)
    milestones += task_milestones(totals.total_tasks, ladders)
    milestones += level_milestones(snapshot.current_level, ladders)
    for category in WorkCategory:
        milestones += category_milestones(category, totals.count(category), ladders)
    return tuple(milestones)


# ============================================================================
# SELECTION
# ============================================================================


def next_category_milestone(
    category: WorkCategory, tasks: int, ladders: MilestoneLadders
) -> Optional[Milestone]:
    """Next rung above ``tasks`` on the extended category ladder, or None past the top."""
    target = next((t for t in ladders.category_next_milestones if t > tasks), None)
    if target is None:
        return None
    return _category_milestone(category, tasks, target, ladders)


def select_newly_completed(milestones: Iterable[Milestone]) -> list[Milestone]:
    """Milestones whose current value sits exactly on the target."""
    return [m for m in milestones if m.is_exact_hit]


def find_skipped_milestones(
    before: Sequence[Milestone], after: Sequence[Milestone]
) -> list[Milestone]:
    """
    Milestones that became complete between two catalogs without an exact hit.

    These are never awarded by exact-hit detection; callers log them.
    """
    was_completed = {m.id for m in before if m.completed}
    return [
        m
        for m in after
        if m.completed and not m.is_exact_hit and m.id not in was_completed
    ]
