"""
SQL-backed progression store.

Purpose
-------
``ProgressionStore`` on PostgreSQL through ``DatabaseService``. A unit of work
is one database transaction:

1. ``SELECT ... FOR UPDATE`` on the user's ``user_stats`` row (created first
   with ``INSERT ... ON CONFLICT DO NOTHING`` when ``create=True``)
2. claims go straight to ``reward_claims`` with ``ON CONFLICT DO NOTHING``
3. on clean exit the staged snapshot is written onto the locked row with a
   version bump, and the transaction commits

Any exception inside the block rolls the whole transaction back, claims
included. SQLAlchemy failures surface as ``DatabaseError``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from questboard.core.database.service import DatabaseService
from questboard.core.exceptions import DatabaseError
from questboard.core.logging.logger import get_logger
from questboard.database.models import UserStats
from questboard.domain.models.user_stats import UserStatsSnapshot
from questboard.modules.progression.repository import (
    RewardClaimRepository,
    UserStatsRepository,
)
from questboard.modules.progression.store import ProgressionStore, StatsUnitOfWork
from questboard.modules.shared.constants import DEFAULT_ZONE

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession


def row_to_snapshot(row: UserStats) -> UserStatsSnapshot:
    return UserStatsSnapshot(
        user_id=row.user_id,
        trust_score=row.trust_score,
        rwis_score=row.rwis_score,
        xp_points=row.xp_points,
        current_level=row.current_level,
        category_stats=UserStatsSnapshot.category_stats_from_dict(row.category_stats),
        unlocked_zones=tuple(row.unlocked_zones or (DEFAULT_ZONE,)),
        version=row.version,
    )


def apply_snapshot(row: UserStats, snapshot: UserStatsSnapshot) -> None:
    """Copy snapshot values onto a locked row and bump its version."""
    row.trust_score = snapshot.trust_score
    row.rwis_score = snapshot.rwis_score
    row.xp_points = snapshot.xp_points
    row.current_level = snapshot.current_level
    # New containers so the JSON columns are flagged dirty
    row.category_stats = snapshot.category_stats_to_dict()
    row.unlocked_zones = list(snapshot.unlocked_zones)
    row.version = row.version + 1


class _SqlUnitOfWork(StatsUnitOfWork):
    def __init__(
        self,
        session: AsyncSession,
        claims: RewardClaimRepository,
        user_id: str,
        row: Optional[UserStats],
    ) -> None:
        super().__init__(user_id, row_to_snapshot(row) if row is not None else None)
        self.session = session
        self.row = row
        self._claims = claims

    async def claim(self, claim_type: str, claim_key: str) -> bool:
        return await self._claims.try_claim(self.session, self.user_id, claim_type, claim_key)


class SqlProgressionStore(ProgressionStore):
    """PostgreSQL progression store with row locks and claim rows."""

    def __init__(self, logger: Optional[Logger] = None) -> None:
        self.log = logger or get_logger(__name__)
        self._stats = UserStatsRepository(self.log)
        self._claims = RewardClaimRepository(self.log)

    async def get_snapshot(self, user_id: str) -> Optional[UserStatsSnapshot]:
        try:
            async with DatabaseService.get_session() as session:
                row = await self._stats.find_by_user(session, user_id)
                return row_to_snapshot(row) if row is not None else None
        except SQLAlchemyError as exc:
            raise DatabaseError("get_snapshot", exc) from exc

    async def has_claim(self, user_id: str, claim_type: str, claim_key: str) -> bool:
        try:
            async with DatabaseService.get_session() as session:
                return await self._claims.has_claim(session, user_id, claim_type, claim_key)
        except SQLAlchemyError as exc:
            raise DatabaseError("has_claim", exc) from exc

    @asynccontextmanager
    async def lock_user(
        self, user_id: str, *, create: bool = False
    ) -> AsyncIterator[StatsUnitOfWork]:
        try:
            async with DatabaseService.get_transaction() as session:
                if create:
                    await self._stats.insert_if_missing(session, user_id)
                row = await self._stats.find_by_user(session, user_id, for_update=True)

                uow = _SqlUnitOfWork(session, self._claims, user_id, row)
                yield uow

                staged = uow.staged
                if staged is not None:
                    if row is None:
                        row = UserStats(user_id=user_id, version=0)
                        await self._stats.add(session, row)
                    apply_snapshot(row, staged)
                    await self._stats.flush(session)

                self.log.debug(
                    "SQL unit of work staged for commit",
                    extra={"user_id": user_id, "staged": staged is not None},
                )
        except SQLAlchemyError as exc:
            self.log.error(
                "Progression transaction failed",
                extra={"user_id": user_id, "error": str(exc), "error_type": type(exc).__name__},
            )
            raise DatabaseError("lock_user", exc) from exc

    async def leaderboard(
        self, metric: str, limit: int, zone_id: Optional[str] = None
    ) -> List[UserStatsSnapshot]:
        try:
            async with DatabaseService.get_session() as session:
                rows = await self._stats.top_by(session, metric, limit, zone_id)
                return [row_to_snapshot(row) for row in rows]
        except SQLAlchemyError as exc:
            raise DatabaseError("leaderboard", exc) from exc
