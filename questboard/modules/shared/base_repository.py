"""
Generic async repository over one ORM model.

Repositories only build and run statements inside the caller's session;
``DatabaseService.get_transaction()`` owns commit and rollback. Subclasses
add the named queries the progression store needs:

    class UserStatsRepository(BaseRepository[UserStats]):
        async def find_by_user(self, session, user_id, *, for_update=False):
            return await self.find_one_where(
                session, UserStats.user_id == user_id, for_update=for_update
            )
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import exists, select

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy import ColumnElement, Select
    from sqlalchemy.ext.asyncio import AsyncSession

ModelT = TypeVar("ModelT")


class BaseRepository(Generic[ModelT]):
    def __init__(self, model_class: Type[ModelT], logger: Logger) -> None:
        self.model_class = model_class
        self.log = logger

    @property
    def model_name(self) -> str:
        return self.model_class.__name__

    def _select(self, conditions: Sequence[ColumnElement[bool]]) -> Select[Any]:
        return select(self.model_class).where(*conditions)

    async def find_one_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        for_update: bool = False,
    ) -> Optional[ModelT]:
        """
        Return the single matching row or None.

        ``for_update=True`` takes a row lock held until the transaction ends.
        """
        stmt = self._select(conditions)
        if for_update:
            stmt = stmt.with_for_update()

        instance = (await session.execute(stmt)).scalar_one_or_none()
        self.log.debug(
            f"{self.model_name} lookup",
            extra={"model": self.model_name, "found": instance is not None, "locked": for_update},
        )
        return instance

    async def find_many_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        order_by: Sequence[Any] = (),
        limit: Optional[int] = None,
    ) -> List[ModelT]:
        stmt = self._select(conditions).order_by(*order_by)
        if limit is not None:
            stmt = stmt.limit(limit)

        instances = list((await session.execute(stmt)).scalars())
        self.log.debug(
            f"{self.model_name} listing",
            extra={"model": self.model_name, "count": len(instances), "limit": limit},
        )
        return instances

    async def exists_where(self, session: AsyncSession, *conditions: ColumnElement[bool]) -> bool:
        return bool(await session.scalar(select(exists().where(*conditions))))

    async def add(self, session: AsyncSession, instance: ModelT) -> ModelT:
        session.add(instance)
        return instance

    async def flush(self, session: AsyncSession) -> None:
        """Send pending changes so constraints are checked inside the transaction."""
        await session.flush()
