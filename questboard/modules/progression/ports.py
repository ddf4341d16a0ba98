"""
Collaborator ports for the progression subsystem.

Purpose
-------
Abstract seams the milestone tracker and progression service depend on but
do not own: aggregate work history and the badge catalog. Production code
plugs in database-backed adapters; tests and single-process deployments use
the in-memory ones.

Design Notes
------------
- Ports are async even when an adapter is purely in-memory, so callers never
  care which adapter they hold.
- ``Clock`` is injected everywhere "now" matters (recent badges, claim
  timestamps) so tests stay deterministic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Callable, List, Optional

from questboard.domain.models.milestone import BadgeDefinition, EarnedBadge
from questboard.domain.models.user_stats import UserStatsSnapshot, WorkHistoryTotals

if TYPE_CHECKING:
    from questboard.modules.progression.store import ProgressionStore

Clock = Callable[[], datetime]


class WorkHistoryProvider(ABC):
    """Source of aggregate completed-work figures for a user."""

    @abstractmethod
    async def get_totals(self, user_id: str) -> WorkHistoryTotals:
        """Totals for ``user_id``; an unknown user has empty totals."""


class SnapshotWorkHistory(WorkHistoryProvider):
    """Derives work-history totals from the per-category metrics on the stats snapshot."""

    def __init__(self, store: ProgressionStore) -> None:
        self._store = store

    async def get_totals(self, user_id: str) -> WorkHistoryTotals:
        snapshot = await self._store.get_snapshot(user_id)
        if snapshot is None:
            return WorkHistoryTotals()
        return WorkHistoryTotals.from_snapshot(snapshot)


class BadgeCatalog(ABC):
    """Badge definitions plus the badges each user holds."""

    @abstractmethod
    async def find_user_badges(self, user_id: str) -> List[EarnedBadge]:
        """Badges held by the user, oldest first."""

    @abstractmethod
    async def find_unlockable_badges(
        self,
        user_id: str,
        snapshot: UserStatsSnapshot,
        totals: WorkHistoryTotals,
    ) -> List[BadgeDefinition]:
        """Badges whose criteria the user meets but does not hold yet, in catalog order."""

    @abstractmethod
    async def award_badge(self, user_id: str, badge_id: str) -> Optional[EarnedBadge]:
        """
        Record that the user earned a badge.

        Returns None when the user already holds it.

        Raises:
            NotFoundError: If the badge id is not in the catalog
        """
