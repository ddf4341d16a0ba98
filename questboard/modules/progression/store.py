"""
Progression store abstraction.

Purpose
-------
Single seam for reading and writing user progression state. Every write goes
through ``lock_user``, which opens a per-user serialized unit of work:

- the snapshot is read under an exclusive per-user lock
  (``SELECT ... FOR UPDATE`` in SQL, an ``asyncio.Lock`` in memory)
- idempotency claims recorded in the unit of work and the staged snapshot
  commit together, or not at all when the block raises

Usage
-----
>>> async with store.lock_user(user_id, create=True) as uow:
...     if not await uow.claim(CLAIM_TASK_COMPLETION, task_id):
...         raise RewardAlreadyClaimedError(user_id, task_id)
...     uow.stage(updated_snapshot)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncContextManager, List, Optional

from questboard.domain.models.user_stats import UserStatsSnapshot
from questboard.modules.shared.exceptions import ConcurrentUpdateError


class StatsUnitOfWork(ABC):
    """One user's locked read-modify-write scope."""

    def __init__(self, user_id: str, snapshot: Optional[UserStatsSnapshot]) -> None:
        self.user_id = user_id
        self._snapshot = snapshot
        self._staged: Optional[UserStatsSnapshot] = None

    @property
    def snapshot(self) -> Optional[UserStatsSnapshot]:
        """The locked snapshot, or the staged one once ``stage`` was called."""
        return self._staged if self._staged is not None else self._snapshot

    @property
    def staged(self) -> Optional[UserStatsSnapshot]:
        return self._staged

    def stage(self, snapshot: UserStatsSnapshot) -> None:
        """
        Replace the user's snapshot when the unit of work commits.

        Raises:
            ConcurrentUpdateError: If the snapshot was not derived from the locked one
        """
        if snapshot.user_id != self.user_id:
            raise ValueError(
                f"cannot stage stats for {snapshot.user_id} inside unit of work for {self.user_id}"
            )
        if self._snapshot is not None and snapshot.version != self._snapshot.version:
            raise ConcurrentUpdateError(
                self.user_id,
                f"staged snapshot version {snapshot.version} does not match locked version "
                f"{self._snapshot.version}",
            )
        self._staged = snapshot

    @abstractmethod
    async def claim(self, claim_type: str, claim_key: str) -> bool:
        """
        Record an idempotency claim for this user.

        Returns False when the claim already exists (committed or earlier in
        this unit of work).
        """


class ProgressionStore(ABC):
    """Persistence for user progression snapshots and reward claims."""

    @abstractmethod
    async def get_snapshot(self, user_id: str) -> Optional[UserStatsSnapshot]:
        """Unlocked read of the committed snapshot; None for an unknown user."""

    @abstractmethod
    def lock_user(
        self, user_id: str, *, create: bool = False
    ) -> AsyncContextManager[StatsUnitOfWork]:
        """
        Open a serialized unit of work for ``user_id``.

        With ``create=True`` a missing user starts from fresh stats; otherwise
        ``uow.snapshot`` is None for an unknown user.
        """

    @abstractmethod
    async def leaderboard(
        self, metric: str, limit: int, zone_id: Optional[str] = None
    ) -> List[UserStatsSnapshot]:
        """
        Top ``limit`` snapshots by ``metric`` descending, ties broken by user id.

        With ``zone_id`` only users who have unlocked that zone are ranked.
        """
