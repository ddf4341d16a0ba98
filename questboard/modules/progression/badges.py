"""
In-memory badge catalog.

Holds the badge definitions (defaults mirror the marketplace's seeded badge
set) and records earned badges per user. Definitions can be replaced through
the ``badges.definitions`` config key:

    badges:
      definitions:
        - id: first-steps
          name: First Steps
          description: Complete your first task
          criteria: {tasks_completed: 1}
        - id: freelance-novice
          name: Freelance Novice
          criteria: {category_tasks: {freelance: 5}}
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional

from questboard.core.database.base import utc_now
from questboard.core.exceptions import ConfigurationError
from questboard.core.logging.logger import get_logger
from questboard.domain.models.milestone import BadgeDefinition, BadgeUnlockCriteria, EarnedBadge
from questboard.domain.models.rewards import WorkCategory
from questboard.domain.models.user_stats import UserStatsSnapshot, WorkHistoryTotals
from questboard.modules.progression.ports import BadgeCatalog, Clock
from questboard.modules.shared.exceptions import NotFoundError

if TYPE_CHECKING:
    from questboard.core.config.manager import ConfigManager

logger = get_logger(__name__)


def _badge(badge_id: str, name: str, description: str, **criteria: Any) -> BadgeDefinition:
    return BadgeDefinition(
        id=badge_id,
        name=name,
        description=description,
        criteria=BadgeUnlockCriteria(**criteria),
    )


DEFAULT_BADGE_DEFINITIONS: tuple[BadgeDefinition, ...] = (
    _badge("first-steps", "First Steps", "Complete your first task", tasks_completed=1),
    _badge("helper", "Helper", "Complete 5 tasks", tasks_completed=5),
    _badge("contributor", "Contributor", "Complete 10 tasks", tasks_completed=10),
    _badge("dedicated", "Dedicated", "Complete 25 tasks", tasks_completed=25),
    _badge("champion", "Champion", "Complete 50 tasks", tasks_completed=50),
    _badge(
        "freelance-novice", "Freelance Novice", "Complete 5 freelance tasks",
        category_tasks={WorkCategory.FREELANCE: 5},
    ),
    _badge(
        "community-volunteer", "Community Volunteer", "Complete 5 community tasks",
        category_tasks={WorkCategory.COMMUNITY: 5},
    ),
    _badge(
        "corporate-professional", "Corporate Professional", "Complete 5 corporate tasks",
        category_tasks={WorkCategory.CORPORATE: 5},
    ),
    _badge(
        "freelance-expert", "Freelance Expert", "Complete 20 freelance tasks",
        category_tasks={WorkCategory.FREELANCE: 20},
    ),
    _badge(
        "community-leader", "Community Leader", "Complete 20 community tasks",
        category_tasks={WorkCategory.COMMUNITY: 20},
    ),
    _badge(
        "corporate-executive", "Corporate Executive", "Complete 20 corporate tasks",
        category_tasks={WorkCategory.CORPORATE: 20},
    ),
    _badge("trustworthy", "Trustworthy", "Reach Trust Score of 25", trust_score=25),
    _badge("reliable", "Reliable", "Reach Trust Score of 50", trust_score=50),
    _badge("dependable", "Dependable", "Reach Trust Score of 100", trust_score=100),
)


def _definition_from_dict(data: Mapping[str, Any]) -> BadgeDefinition:
    criteria = data.get("criteria") or {}
    return BadgeDefinition(
        id=str(data["id"]),
        name=str(data["name"]),
        description=str(data.get("description", "")),
        criteria=BadgeUnlockCriteria(
            tasks_completed=int(criteria.get("tasks_completed", 0)),
            trust_score=int(criteria.get("trust_score", 0)),
            category_tasks={
                WorkCategory(key): int(value)
                for key, value in (criteria.get("category_tasks") or {}).items()
            },
        ),
    )


def badge_definitions_from_config(config: ConfigManager) -> tuple[BadgeDefinition, ...]:
    """
    Badge definitions from ``badges.definitions``, or the defaults when unset.

    Raises:
        ConfigurationError: If an entry is malformed or an id repeats
    """
    raw = config.get("badges.definitions")
    if raw is None:
        return DEFAULT_BADGE_DEFINITIONS

    try:
        definitions = tuple(_definition_from_dict(entry) for entry in raw)
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise ConfigurationError("badges.definitions", f"malformed badge definition: {exc}") from exc

    ids = [d.id for d in definitions]
    if len(ids) != len(set(ids)):
        raise ConfigurationError("badges.definitions", "badge ids must be unique")
    return definitions


class InMemoryBadgeCatalog(BadgeCatalog):
    """
    Process-local badge catalog.

    Awarding is serialized with a single lock so concurrent awards of the same
    badge record it once.
    """

    def __init__(
        self,
        definitions: Iterable[BadgeDefinition] = DEFAULT_BADGE_DEFINITIONS,
        clock: Clock = utc_now,
    ) -> None:
        self._definitions: Dict[str, BadgeDefinition] = {d.id: d for d in definitions}
        self._earned: Dict[str, List[EarnedBadge]] = {}
        self._clock = clock
        self._lock = asyncio.Lock()

    @property
    def definitions(self) -> tuple[BadgeDefinition, ...]:
        return tuple(self._definitions.values())

    def seed(self, user_id: str, badges: Iterable[EarnedBadge]) -> None:
        """Preload earned badges (fixtures, migrations)."""
        self._earned.setdefault(user_id, []).extend(badges)

    async def find_user_badges(self, user_id: str) -> List[EarnedBadge]:
        return list(self._earned.get(user_id, ()))

    async def find_unlockable_badges(
        self,
        user_id: str,
        snapshot: UserStatsSnapshot,
        totals: WorkHistoryTotals,
    ) -> List[BadgeDefinition]:
        held = {badge.badge_id for badge in self._earned.get(user_id, ())}
        return [
            definition
            for definition in self._definitions.values()
            if definition.id not in held and definition.criteria.is_met(snapshot, totals)
        ]

    async def award_badge(self, user_id: str, badge_id: str) -> Optional[EarnedBadge]:
        definition = self._definitions.get(badge_id)
        if definition is None:
            raise NotFoundError("Badge", badge_id)

        async with self._lock:
            earned = self._earned.setdefault(user_id, [])
            if any(badge.badge_id == badge_id for badge in earned):
                return None
            badge = EarnedBadge(badge_id=badge_id, name=definition.name, earned_at=self._clock())
            earned.append(badge)

        logger.info(
            "Badge awarded",
            extra={"user_id": user_id, "badge_id": badge_id},
        )
        return badge
