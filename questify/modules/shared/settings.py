"""
Gamification balance settings.

Builds one frozen `GamificationSettings` from `ConfigManager` (the YAML under
`config/`). Missing keys fall back to `questify.modules.shared.constants`;
values that are present but unusable raise `ConfigurationError` so a bad
balance file fails at startup rather than mid-game.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Mapping, Tuple, Type

from questify.core.exceptions import ConfigurationError
from questify.modules.shared import constants
from questify.modules.shared.exceptions import ValidationError
from questify.modules.shared.formulas import (
    LevelCurve,
    RewardTable,
    StreakBonusTable,
    level_title,
)

if TYPE_CHECKING:
    from questify.core.config.manager import ConfigManager


@dataclass(frozen=True)
class GamificationSettings:
    curve: LevelCurve = field(default_factory=LevelCurve)
    rewards: RewardTable = field(default_factory=RewardTable)
    streak_bonuses: StreakBonusTable = field(default_factory=StreakBonusTable)
    daily_quest_count: int = constants.DAILY_QUEST_COUNT
    weekly_quest_count: int = constants.WEEKLY_QUEST_COUNT
    special_quest_duration_days: int = constants.SPECIAL_QUEST_DURATION_DAYS
    starting_coins: int = constants.STARTING_COINS
    starting_gems: int = constants.STARTING_GEMS
    categories: Tuple[str, ...] = constants.DEFAULT_CATEGORIES
    level_titles: Tuple[Tuple[int, str], ...] = constants.LEVEL_TITLES

    @classmethod
    def defaults(cls) -> "GamificationSettings":
        return cls()

    @classmethod
    def from_config(cls, config: Type["ConfigManager"]) -> "GamificationSettings":
        """
        Read every balance value from `config`.

        Raises
        ------
        ConfigurationError
            If a configured value has the wrong shape or is out of range.
        """
        try:
            curve = LevelCurve(
                base_xp=_int(config, "leveling.base_xp", constants.LEVEL_BASE_XP, minimum=1),
                multiplier=str(config.get("leveling.multiplier", constants.LEVEL_MULTIPLIER)),
            )
            rewards = RewardTable(
                difficulty_xp=_int_table(config, "rewards.difficulty_xp", constants.DIFFICULTY_XP),
                priority_bonus=_int_table(
                    config, "rewards.priority_bonus", constants.PRIORITY_XP_BONUS
                ),
                coin_divisor=_int(config, "rewards.coin_divisor", constants.COIN_DIVISOR, minimum=1),
            )
            streak_bonuses = StreakBonusTable.from_mapping(
                config.get("streaks.bonuses", constants.STREAK_BONUSES)
            )
        except ValidationError as exc:
            raise ConfigurationError(exc.field, exc.validation_message) from exc
        except (TypeError, ValueError, ZeroDivisionError, AttributeError) as exc:
            raise ConfigurationError("gamification", f"Invalid balance value: {exc}") from exc

        categories = config.get("categories", list(constants.DEFAULT_CATEGORIES))
        if not isinstance(categories, list) or not all(
            isinstance(name, str) and name.strip() for name in categories
        ):
            raise ConfigurationError("categories", "must be a list of non-empty strings")

        return cls(
            curve=curve,
            rewards=rewards,
            streak_bonuses=streak_bonuses,
            daily_quest_count=_int(
                config, "quests.daily_count", constants.DAILY_QUEST_COUNT, minimum=0
            ),
            weekly_quest_count=_int(
                config, "quests.weekly_count", constants.WEEKLY_QUEST_COUNT, minimum=0
            ),
            special_quest_duration_days=_int(
                config,
                "quests.special_duration_days",
                constants.SPECIAL_QUEST_DURATION_DAYS,
                minimum=1,
            ),
            starting_coins=_int(config, "economy.starting_coins", constants.STARTING_COINS, minimum=0),
            starting_gems=_int(config, "economy.starting_gems", constants.STARTING_GEMS, minimum=0),
            categories=tuple(categories),
            level_titles=_titles(config),
        )

    def title_for(self, level: int) -> str:
        return level_title(level, self.level_titles)


def _int(config: Any, key: str, default: int, *, minimum: int) -> int:
    value = config.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise ConfigurationError(key, f"must be an integer >= {minimum}, got {value!r}")
    return value


def _int_table(config: Any, key: str, default: Mapping[str, int]) -> Dict[str, int]:
    table = config.get(key, dict(default))
    if not isinstance(table, dict) or not table:
        raise ConfigurationError(key, "must be a non-empty mapping")
    result: Dict[str, int] = {}
    for name, value in table.items():
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ConfigurationError(f"{key}.{name}", f"must be a non-negative integer, got {value!r}")
        result[str(name)] = value
    return result


def _titles(config: Any) -> Tuple[Tuple[int, str], ...]:
    raw = config.get("leveling.titles")
    if raw is None:
        return constants.LEVEL_TITLES
    if not isinstance(raw, dict) or not raw:
        raise ConfigurationError("leveling.titles", "must be a non-empty mapping of level -> title")
    try:
        titles = tuple(sorted((int(level), str(title)) for level, title in raw.items()))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError("leveling.titles", f"invalid level key: {exc}") from exc
    if titles[0][0] != 1:
        raise ConfigurationError("leveling.titles", "the first title must start at level 1")
    return titles
