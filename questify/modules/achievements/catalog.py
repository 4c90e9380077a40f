"""
Achievement catalog.

The catalog is static configuration (`config/achievements.yaml`, read
through `ConfigManager` under the `achievements` key). It is loaded once at
startup and shared read-only by every evaluation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterable, Iterator, List, Optional, Type

from questify.core.exceptions import ConfigurationError
from questify.core.logging.logger import get_logger
from questify.domain.models.achievement import Achievement
from questify.domain.models.base import DomainValidationError

if TYPE_CHECKING:
    from questify.core.config.manager import ConfigManager

logger = get_logger(__name__)


class AchievementCatalog:
    """Ordered, id-indexed collection of achievements."""

    def __init__(self, achievements: Iterable[Achievement]) -> None:
        self._items: List[Achievement] = []
        self._by_id: Dict[str, Achievement] = {}
        for achievement in achievements:
            if achievement.id in self._by_id:
                raise ConfigurationError(
                    "achievements", f"duplicate achievement id '{achievement.id}'"
                )
            self._items.append(achievement)
            self._by_id[achievement.id] = achievement

    @classmethod
    def from_entries(cls, entries: Iterable[Dict[str, Any]]) -> "AchievementCatalog":
        achievements = []
        for entry in entries:
            try:
                achievements.append(Achievement.from_dict(entry))
            except (DomainValidationError, KeyError, TypeError, ValueError) as exc:
                raise ConfigurationError(
                    "achievements", f"invalid entry {entry!r}: {exc}"
                ) from exc
        return cls(achievements)

    @classmethod
    def from_config(cls, config: Type["ConfigManager"]) -> "AchievementCatalog":
        entries = config.get("achievements", [])
        if not isinstance(entries, list):
            raise ConfigurationError("achievements", "must be a list of achievement entries")
        catalog = cls.from_entries(entries)
        logger.info("Achievement catalog loaded", extra={"achievement_count": len(catalog)})
        return catalog

    def get(self, achievement_id: str) -> Optional[Achievement]:
        return self._by_id.get(achievement_id)

    def __contains__(self, achievement_id: object) -> bool:
        return achievement_id in self._by_id

    def __iter__(self) -> Iterator[Achievement]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)
