"""
In-memory progression store.

Process-local implementation of ``ProgressionStore`` for tests and
single-process deployments. Each user has its own ``asyncio.Lock`` while any
unit of work holds or waits on it; the lock is dropped once the last one
exits. Claims and the staged snapshot are buffered in the unit of work and applied only when the
``lock_user`` block exits cleanly.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import replace
from typing import AsyncIterator, Dict, List, Optional, Set, Tuple

from questboard.core.logging.logger import get_logger
from questboard.domain.models.user_stats import UserStatsSnapshot
from questboard.modules.progression.store import ProgressionStore, StatsUnitOfWork

logger = get_logger(__name__)

ClaimId = Tuple[str, str, str]


class _MemoryUnitOfWork(StatsUnitOfWork):
    def __init__(
        self,
        store: InMemoryProgressionStore,
        user_id: str,
        snapshot: Optional[UserStatsSnapshot],
    ) -> None:
        super().__init__(user_id, snapshot)
        self._store = store
        self.pending_claims: Set[ClaimId] = set()

    async def claim(self, claim_type: str, claim_key: str) -> bool:
        claim_id = (self.user_id, claim_type, claim_key)
        if claim_id in self._store._claims or claim_id in self.pending_claims:
            return False
        self.pending_claims.add(claim_id)
        return True


class InMemoryProgressionStore(ProgressionStore):
    """Dictionary-backed store with per-user asyncio locks."""

    def __init__(self) -> None:
        self._snapshots: Dict[str, UserStatsSnapshot] = {}
        self._claims: Set[ClaimId] = set()
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_holders: Dict[str, int] = {}

    def seed(self, snapshot: UserStatsSnapshot) -> None:
        """Store a snapshot as committed state (fixtures, migrations)."""
        self._snapshots[snapshot.user_id] = snapshot

    def has_claim(self, user_id: str, claim_type: str, claim_key: str) -> bool:
        return (user_id, claim_type, claim_key) in self._claims

    async def get_snapshot(self, user_id: str) -> Optional[UserStatsSnapshot]:
        return self._snapshots.get(user_id)

    @asynccontextmanager
    async def _user_lock(self, user_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(user_id, asyncio.Lock())
        self._lock_holders[user_id] = self._lock_holders.get(user_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_holders[user_id] -= 1
            if not self._lock_holders[user_id]:
                del self._lock_holders[user_id]
                del self._locks[user_id]

    @asynccontextmanager
    async def lock_user(
        self, user_id: str, *, create: bool = False
    ) -> AsyncIterator[StatsUnitOfWork]:
        async with self._user_lock(user_id):
            existing = self._snapshots.get(user_id)
            created = existing is None and create
            if created:
                existing = replace(UserStatsSnapshot.new(user_id), version=1)

            uow = _MemoryUnitOfWork(self, user_id, existing)
            yield uow

            # Only reached when the block did not raise
            staged = uow.staged
            if staged is not None:
                base_version = existing.version if existing is not None else 0
                self._snapshots[user_id] = replace(staged, version=base_version + 1)
            elif created and existing is not None:
                self._snapshots[user_id] = existing
            self._claims.update(uow.pending_claims)

            logger.debug(
                "In-memory unit of work committed",
                extra={
                    "user_id": user_id,
                    "claims": len(uow.pending_claims),
                    "staged": staged is not None,
                },
            )

    async def leaderboard(
        self, metric: str, limit: int, zone_id: Optional[str] = None
    ) -> List[UserStatsSnapshot]:
        candidates = [
            s for s in self._snapshots.values() if zone_id is None or zone_id in s.unlocked_zones
        ]
        ranked = sorted(candidates, key=lambda s: s.user_id)
        ranked.sort(key=lambda s: getattr(s, metric), reverse=True)
        return ranked[:limit]
