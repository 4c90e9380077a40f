"""
Generic per-record repository over an `AsyncSession`.

Repositories only build and run statements. Transactions belong to the
caller (`DatabaseService.get_transaction` via the store's `atomic()`), and
mapping to aggregates belongs to the store.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy import delete, select, update

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy import ColumnElement
    from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class BaseRepository(Generic[T]):
    def __init__(self, model_class: Type[T], logger: Logger) -> None:
        self.model_class = model_class
        self.log = logger

    @property
    def _name(self) -> str:
        return self.model_class.__name__

    async def get(self, session: AsyncSession, id_value: Any) -> Optional[T]:
        return await session.get(self.model_class, id_value, populate_existing=True)

    async def find_many_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        order_by: Optional[Any] = None,
    ) -> List[T]:
        stmt = select(self.model_class).where(*conditions)
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        return list((await session.execute(stmt)).scalars().all())

    def add(self, session: AsyncSession, instance: T) -> T:
        session.add(instance)
        return instance

    async def update_where(
        self,
        session: AsyncSession,
        values: Dict[str, Any],
        *conditions: ColumnElement[bool],
    ) -> int:
        """Conditional UPDATE; returns the matched row count (0 = lost race)."""
        stmt = (
            update(self.model_class)
            .where(*conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        rowcount = (await session.execute(stmt)).rowcount or 0
        self.log.debug(
            f"{self._name} conditional update",
            extra={"model": self._name, "rowcount": rowcount},
        )
        return rowcount

    async def delete_where(self, session: AsyncSession, *conditions: ColumnElement[bool]) -> int:
        stmt = delete(self.model_class).where(*conditions).execution_options(
            synchronize_session=False
        )
        rowcount = (await session.execute(stmt)).rowcount or 0
        self.log.debug(f"{self._name} delete", extra={"model": self._name, "rowcount": rowcount})
        return rowcount

    async def flush(self, session: AsyncSession) -> None:
        await session.flush()
