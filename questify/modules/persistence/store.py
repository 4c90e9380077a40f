"""
Persistence collaborator.

Purpose
-------
Define the narrow storage contract the engine needs, plus an in-memory
implementation for tests and embedding.

Contract
--------
- `load_stats(user_id)` returns the stored `PlayerStats` or None. Derived
  fields are repaired by the caller (`PlayerStats.sanitize`).
- `save_stats(user_id, update)` writes a partial update. `update["version"]`
  is the new version and must be exactly one more than the stored version;
  otherwise `ConcurrencyConflictError` is raised and nothing is written. A
  player that is not stored yet must be saved with a full record.
- `load_quests(user_id)`, `save_quest(quest)` (upsert), `delete_quest(id)`.
- `atomic()` groups the writes of one engine operation: all land or none.
"""

from __future__ import annotations

import copy
from contextlib import asynccontextmanager
from dataclasses import fields
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol

from questify.core.exceptions import ConcurrencyConflictError
from questify.core.logging.logger import get_logger
from questify.domain.models.player import PlayerStats
from questify.domain.models.quest import Quest
from questify.modules.shared.exceptions import NotFoundError

logger = get_logger(__name__)

STATS_FIELDS = frozenset(f.name for f in fields(PlayerStats))


class GameStore(Protocol):
    async def load_stats(self, user_id: str) -> Optional[PlayerStats]: ...

    async def save_stats(self, user_id: str, update: Dict[str, Any]) -> None: ...

    async def load_quests(self, user_id: str) -> List[Quest]: ...

    async def save_quest(self, quest: Quest) -> None: ...

    async def delete_quest(self, quest_id: str) -> None: ...

    def atomic(self) -> "AsyncIterator[None]": ...


def check_version(user_id: str, update: Dict[str, Any], stored_version: Optional[int]) -> None:
    """Raise unless `update` is based on the stored version."""
    if "version" not in update:
        raise ValueError("PlayerStats update must carry its new 'version'")
    new_version = update["version"]
    current = stored_version if stored_version is not None else 0
    if current != new_version - 1:
        raise ConcurrencyConflictError(
            "PlayerStats",
            user_id,
            expected_version=new_version - 1,
            actual_version=stored_version,
        )


def require_full_record(user_id: str, update: Dict[str, Any]) -> None:
    missing = STATS_FIELDS - set(update)
    if missing:
        raise NotFoundError("PlayerStats", user_id)


class InMemoryGameStore:
    """
    Dict-backed store.

    `atomic()` snapshots both tables and restores them if the block raises,
    so a failed operation leaves no partial writes behind.
    """

    def __init__(self) -> None:
        self._stats: Dict[str, Dict[str, Any]] = {}
        self._quests: Dict[str, Dict[str, Any]] = {}

    async def load_stats(self, user_id: str) -> Optional[PlayerStats]:
        record = self._stats.get(user_id)
        if record is None:
            return None
        return PlayerStats.from_record(record)

    async def save_stats(self, user_id: str, update: Dict[str, Any]) -> None:
        existing = self._stats.get(user_id)
        check_version(user_id, update, existing["version"] if existing else None)

        if existing is None:
            require_full_record(user_id, update)
            self._stats[user_id] = copy.deepcopy(update)
        else:
            existing.update(copy.deepcopy(update))

        logger.debug(
            "Stats saved",
            extra={"fields": sorted(update), "version": update["version"]},
        )

    async def load_quests(self, user_id: str) -> List[Quest]:
        return [
            Quest.from_record(copy.deepcopy(record))
            for record in self._quests.values()
            if record["user_id"] == user_id
        ]

    async def save_quest(self, quest: Quest) -> None:
        self._quests[quest.quest_id] = copy.deepcopy(quest.to_record())

    async def delete_quest(self, quest_id: str) -> None:
        self._quests.pop(quest_id, None)

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        stats_snapshot = copy.deepcopy(self._stats)
        quests_snapshot = copy.deepcopy(self._quests)
        try:
            yield
        except BaseException:
            self._stats = stats_snapshot
            self._quests = quests_snapshot
            raise
