"""
Progression repositories.

Data access for ``UserStats`` and ``RewardClaim`` rows. Repositories run inside
the caller's session; ``DatabaseService.get_transaction`` owns commit and
rollback. Both inserts use PostgreSQL ``ON CONFLICT DO NOTHING`` so concurrent
writers race on the database constraint rather than on a read-then-insert.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import type_coerce
from sqlalchemy.dialects.postgresql import JSONB, insert

from questboard.core.database.base import utc_now
from questboard.database.models import RewardClaim, UserStats
from questboard.modules.shared.base_repository import BaseRepository
from questboard.modules.shared.constants import DEFAULT_ZONE

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession


class UserStatsRepository(BaseRepository[UserStats]):
    def __init__(self, logger: Logger) -> None:
        super().__init__(UserStats, logger)

    async def find_by_user(
        self, session: AsyncSession, user_id: str, *, for_update: bool = False
    ) -> Optional[UserStats]:
        return await self.find_one_where(
            session, UserStats.user_id == user_id, for_update=for_update
        )

    async def insert_if_missing(self, session: AsyncSession, user_id: str) -> bool:
        """
        Create the stats row for a new user.

        Returns:
            True if this call inserted the row, False if it already existed
        """
        now = utc_now()
        stmt = (
            insert(UserStats)
            .values(
                user_id=user_id,
                version=1,
                trust_score=0,
                rwis_score=0,
                xp_points=0,
                current_level=1,
                category_stats={},
                unlocked_zones=[DEFAULT_ZONE],
                created_at=now,
                updated_at=now,
            )
            .on_conflict_do_nothing(index_elements=["user_id"])
        )
        result = await session.execute(stmt)
        inserted = result.rowcount == 1  # type: ignore[attr-defined]

        self.log.debug(
            "UserStatsRepository.insert_if_missing",
            extra={"user_id": user_id, "inserted": inserted},
        )
        return inserted

    async def top_by(
        self, session: AsyncSession, metric: str, limit: int, zone_id: Optional[str] = None
    ) -> List[UserStats]:
        column = getattr(UserStats, metric)
        conditions = []
        if zone_id is not None:
            conditions.append(type_coerce(UserStats.unlocked_zones, JSONB).contains([zone_id]))
        return await self.find_many_where(
            session,
            *conditions,
            order_by=(column.desc(), UserStats.user_id.asc()),
            limit=limit,
        )


class RewardClaimRepository(BaseRepository[RewardClaim]):
    def __init__(self, logger: Logger) -> None:
        super().__init__(RewardClaim, logger)

    async def try_claim(
        self,
        session: AsyncSession,
        user_id: str,
        claim_type: str,
        claim_key: str,
    ) -> bool:
        """
        Atomically record a claim.

        Returns:
            True if the claim is new, False if it was already recorded
        """
        stmt = (
            insert(RewardClaim)
            .values(
                user_id=user_id,
                claim_type=claim_type,
                claim_key=claim_key,
                claimed_at=utc_now(),
            )
            .on_conflict_do_nothing(index_elements=["user_id", "claim_type", "claim_key"])
        )
        result = await session.execute(stmt)

        # If no row was inserted, the reward was already claimed
        claimed = result.rowcount == 1  # type: ignore[attr-defined]

        self.log.debug(
            "RewardClaimRepository.try_claim",
            extra={
                "user_id": user_id,
                "claim_type": claim_type,
                "claim_key": claim_key,
                "claimed": claimed,
            },
        )
        return claimed

    async def has_claim(
        self,
        session: AsyncSession,
        user_id: str,
        claim_type: str,
        claim_key: str,
    ) -> bool:
        return await self.exists_where(
            session,
            RewardClaim.user_id == user_id,
            RewardClaim.claim_type == claim_type,
            RewardClaim.claim_key == claim_key,
        )
