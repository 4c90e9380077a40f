"""
SQLAlchemy-backed game store.

Purpose
-------
Durable implementation of the persistence collaborator on top of
`DatabaseService` (PostgreSQL via asyncpg in production, SQLite via
aiosqlite in tests).

Design Notes
------------
- `atomic()` opens one transaction and binds its session to a ContextVar;
  every store call inside the block joins it. Calls outside `atomic()` run
  in their own short transaction.
- Stats updates are conditional: `UPDATE ... WHERE user_id = :id AND
  version = :expected`. Zero affected rows means another writer got there
  first, reported as `ConcurrencyConflictError`.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any, AsyncIterator, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from questify.core.database.service import DatabaseService
from questify.core.exceptions import ConcurrencyConflictError, DatabaseError
from questify.core.logging.logger import get_logger
from questify.database.models.player_stats import PlayerStatsRecord
from questify.database.models.quest import QuestRecord
from questify.domain.models.player import PlayerStats
from questify.domain.models.quest import Quest
from questify.modules.persistence.store import STATS_FIELDS, check_version, require_full_record
from questify.modules.shared.base_repository import BaseRepository

logger = get_logger(__name__)

_active_session: ContextVar[Optional[AsyncSession]] = ContextVar(
    "questify_store_session", default=None
)

QUEST_COLUMNS = (
    "quest_id",
    "user_id",
    "template_id",
    "type",
    "title",
    "description",
    "icon",
    "objectives",
    "rewards",
    "start_date",
    "end_date",
    "completed",
    "completed_at",
    "claimed",
    "claimed_at",
)


class PlayerStatsRepository(BaseRepository[PlayerStatsRecord]):
    async def current_version(self, session: AsyncSession, user_id: str) -> Optional[int]:
        result = await session.execute(
            select(PlayerStatsRecord.version).where(PlayerStatsRecord.user_id == user_id)
        )
        return result.scalar_one_or_none()


class QuestRepository(BaseRepository[QuestRecord]):
    async def for_user(self, session: AsyncSession, user_id: str) -> List[QuestRecord]:
        return await self.find_many_where(
            session, QuestRecord.user_id == user_id, order_by=QuestRecord.start_date
        )


class SqlAlchemyGameStore:
    """Game store persisting to the `player_stats` and `quests` tables."""

    def __init__(self) -> None:
        self._stats = PlayerStatsRepository(PlayerStatsRecord, logger)
        self._quests = QuestRepository(QuestRecord, logger)

    # ========================================================================
    # Transactions
    # ========================================================================

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        if _active_session.get() is not None:
            yield
            return

        async with DatabaseService.get_transaction() as session:
            token = _active_session.set(session)
            try:
                yield
            finally:
                _active_session.reset(token)

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        session = _active_session.get()
        try:
            if session is not None:
                yield session
            else:
                async with DatabaseService.get_transaction() as own_session:
                    yield own_session
        except SQLAlchemyError as exc:
            raise DatabaseError(operation, exc) from exc

    # ========================================================================
    # Stats
    # ========================================================================

    async def load_stats(self, user_id: str) -> Optional[PlayerStats]:
        async with self._session("load_stats") as session:
            record = await self._stats.get(session, user_id)
            if record is None:
                return None
            return PlayerStats.from_record(
                {name: getattr(record, name) for name in STATS_FIELDS}
            )

    async def save_stats(self, user_id: str, update: Dict[str, Any]) -> None:
        async with self._session("save_stats") as session:
            stored_version = await self._stats.current_version(session, user_id)
            check_version(user_id, update, stored_version)

            if stored_version is None:
                require_full_record(user_id, update)
                self._stats.add(
                    session,
                    PlayerStatsRecord(**{k: v for k, v in update.items() if k in STATS_FIELDS}),
                )
                await self._stats.flush(session)
                return

            values = {
                k: v for k, v in update.items() if k in STATS_FIELDS and k != "user_id"
            }
            updated = await self._stats.update_where(
                session,
                values,
                PlayerStatsRecord.user_id == user_id,
                PlayerStatsRecord.version == stored_version,
            )
            if updated == 0:
                raise ConcurrencyConflictError(
                    "PlayerStats",
                    user_id,
                    expected_version=stored_version,
                    actual_version=await self._stats.current_version(session, user_id),
                )

    # ========================================================================
    # Quests
    # ========================================================================

    async def load_quests(self, user_id: str) -> List[Quest]:
        async with self._session("load_quests") as session:
            records = await self._quests.for_user(session, user_id)
            return [
                Quest.from_record({name: getattr(record, name) for name in QUEST_COLUMNS})
                for record in records
            ]

    async def save_quest(self, quest: Quest) -> None:
        values = quest.to_record()
        async with self._session("save_quest") as session:
            record = await self._quests.get(session, quest.quest_id)
            if record is None:
                self._quests.add(session, QuestRecord(**values))
            else:
                for name, value in values.items():
                    setattr(record, name, value)
            await self._quests.flush(session)

    async def delete_quest(self, quest_id: str) -> None:
        async with self._session("delete_quest") as session:
            await self._quests.delete_where(session, QuestRecord.quest_id == quest_id)
