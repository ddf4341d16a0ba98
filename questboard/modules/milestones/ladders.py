"""
Milestone ladder definitions.

Each ladder is a sorted tuple of targets plus the reward rule for a rung.
Built from the ``milestones`` section of the balance config, falling back to
the defaults in ``questboard.modules.shared.constants``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable

from questboard.core.exceptions import ConfigurationError
from questboard.modules.shared import constants as C

if TYPE_CHECKING:
    from questboard.core.config.manager import ConfigManager


def _targets(raw: Iterable[Any], key: str) -> tuple[int, ...]:
    targets = tuple(int(value) for value in raw)
    if not targets or any(t <= 0 for t in targets) or list(targets) != sorted(set(targets)):
        raise ConfigurationError(key, "targets must be positive, unique and ascending")
    return targets


@dataclass(frozen=True)
class MilestoneLadders:
    xp_targets: tuple[int, ...] = C.MILESTONE_XP_TARGETS
    xp_reward_rate: float = C.MILESTONE_XP_REWARD_RATE
    xp_badge_from_index: int = C.MILESTONE_XP_BADGE_FROM_INDEX

    trust_targets: tuple[int, ...] = C.MILESTONE_TRUST_TARGETS
    trust_reward_rate: float = C.MILESTONE_TRUST_REWARD_RATE
    trust_zone_from_index: int = C.MILESTONE_TRUST_ZONE_FROM_INDEX

    rwis_targets: tuple[int, ...] = C.MILESTONE_RWIS_TARGETS
    rwis_reward_rate: float = C.MILESTONE_RWIS_REWARD_RATE
    rwis_badge_from_target: int = C.MILESTONE_RWIS_BADGE_FROM_TARGET

    task_targets: tuple[int, ...] = C.MILESTONE_TASK_TARGETS
    task_reward_per_task: int = C.MILESTONE_TASK_REWARD_PER_TASK
    task_badge_from_index: int = C.MILESTONE_TASK_BADGE_FROM_INDEX

    level_targets: tuple[int, ...] = C.MILESTONE_LEVEL_TARGETS
    level_reward_per_level: int = C.MILESTONE_LEVEL_REWARD_PER_LEVEL

    category_targets: tuple[int, ...] = C.MILESTONE_CATEGORY_TARGETS
    category_reward_per_task: int = C.MILESTONE_CATEGORY_REWARD_PER_TASK
    category_badge_from_target: int = C.MILESTONE_CATEGORY_BADGE_FROM_TARGET
    category_next_milestones: tuple[int, ...] = C.CATEGORY_NEXT_MILESTONES

    summary_completed_limit: int = C.SUMMARY_COMPLETED_LIMIT
    summary_upcoming_limit: int = C.SUMMARY_UPCOMING_LIMIT
    recent_badge_days: int = C.SUMMARY_RECENT_BADGE_DAYS
    recent_badge_limit: int = C.SUMMARY_RECENT_BADGE_LIMIT
    next_badge_limit: int = C.SUMMARY_NEXT_BADGE_LIMIT

    imbalance_threshold: int = C.RECOMMENDATION_IMBALANCE_THRESHOLD
    balance_ideal_share: float = C.BALANCE_IDEAL_SHARE
    balance_penalty_per_point: float = C.BALANCE_PENALTY_PER_POINT

    @classmethod
    def from_config(cls, config: ConfigManager) -> MilestoneLadders:
        """
        Raises:
            ConfigurationError: If a ladder is empty, unsorted or malformed
        """

        def get(key: str, default: Any) -> Any:
            return config.get(f"milestones.{key}", default)

        try:
            return cls(
                xp_targets=_targets(get("xp.targets", C.MILESTONE_XP_TARGETS), "milestones.xp.targets"),
                xp_reward_rate=float(get("xp.reward_rate", C.MILESTONE_XP_REWARD_RATE)),
                xp_badge_from_index=int(get("xp.badge_from_index", C.MILESTONE_XP_BADGE_FROM_INDEX)),
                trust_targets=_targets(
                    get("trust_score.targets", C.MILESTONE_TRUST_TARGETS), "milestones.trust_score.targets"
                ),
                trust_reward_rate=float(get("trust_score.reward_rate", C.MILESTONE_TRUST_REWARD_RATE)),
                trust_zone_from_index=int(
                    get("trust_score.zone_from_index", C.MILESTONE_TRUST_ZONE_FROM_INDEX)
                ),
                rwis_targets=_targets(get("rwis.targets", C.MILESTONE_RWIS_TARGETS), "milestones.rwis.targets"),
                rwis_reward_rate=float(get("rwis.reward_rate", C.MILESTONE_RWIS_REWARD_RATE)),
                rwis_badge_from_target=int(
                    get("rwis.badge_from_target", C.MILESTONE_RWIS_BADGE_FROM_TARGET)
                ),
                task_targets=_targets(get("tasks.targets", C.MILESTONE_TASK_TARGETS), "milestones.tasks.targets"),
                task_reward_per_task=int(get("tasks.xp_per_task", C.MILESTONE_TASK_REWARD_PER_TASK)),
                task_badge_from_index=int(get("tasks.badge_from_index", C.MILESTONE_TASK_BADGE_FROM_INDEX)),
                level_targets=_targets(get("level.targets", C.MILESTONE_LEVEL_TARGETS), "milestones.level.targets"),
                level_reward_per_level=int(
                    get("level.xp_per_level", C.MILESTONE_LEVEL_REWARD_PER_LEVEL)
                ),
                category_targets=_targets(
                    get("category.targets", C.MILESTONE_CATEGORY_TARGETS), "milestones.category.targets"
                ),
                category_reward_per_task=int(
                    get("category.xp_per_task", C.MILESTONE_CATEGORY_REWARD_PER_TASK)
                ),
                category_badge_from_target=int(
                    get("category.badge_from_target", C.MILESTONE_CATEGORY_BADGE_FROM_TARGET)
                ),
                category_next_milestones=_targets(
                    get("category.next_milestones", C.CATEGORY_NEXT_MILESTONES),
                    "milestones.category.next_milestones",
                ),
                summary_completed_limit=int(get("summary.completed_limit", C.SUMMARY_COMPLETED_LIMIT)),
                summary_upcoming_limit=int(get("summary.upcoming_limit", C.SUMMARY_UPCOMING_LIMIT)),
                recent_badge_days=int(get("summary.recent_badge_days", C.SUMMARY_RECENT_BADGE_DAYS)),
                recent_badge_limit=int(get("summary.recent_badge_limit", C.SUMMARY_RECENT_BADGE_LIMIT)),
                next_badge_limit=int(get("summary.next_badge_limit", C.SUMMARY_NEXT_BADGE_LIMIT)),
                imbalance_threshold=int(
                    get("recommendations.imbalance_threshold", C.RECOMMENDATION_IMBALANCE_THRESHOLD)
                ),
                balance_ideal_share=float(
                    get("recommendations.ideal_share", C.BALANCE_IDEAL_SHARE)
                ),
                balance_penalty_per_point=float(
                    get("recommendations.penalty_per_point", C.BALANCE_PENALTY_PER_POINT)
                ),
            )
        except (TypeError, ValueError) as exc:
            raise ConfigurationError("milestones", f"malformed milestone ladders: {exc}") from exc
