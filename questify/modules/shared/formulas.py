"""
Questify Game Formulas

Purpose
-------
Pure calculation functions for the reward engine: the level curve, task
rewards and the streak bonus multiplier.

Design Notes
------------
- Pure functions and frozen value objects only (no side effects)
- No config access; tables are passed in (see `GamificationSettings`)
- All XP arithmetic is exact. Multipliers are held as `Fraction`s so the
  level walk and bonus rounding never drift, however large totals grow.

Usage
-----
    from questify.modules.shared.formulas import xp_for_level, level_from_total_xp

    xp_for_level(2)            # 150
    level_from_total_xp(100)   # LevelProgress(level=2, current_xp=0, xp_to_next_level=150)
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Dict, Mapping, Tuple, Union

from questify.modules.shared import constants
from questify.modules.shared.exceptions import ValidationError

Number = Union[int, float, str, Fraction]


def _exact(value: Number) -> Fraction:
    # str() keeps float literals like 1.5 / 0.1 exact
    if isinstance(value, Fraction):
        return value
    return Fraction(str(value))


# ============================================================================
# LEVELING
# ============================================================================


@dataclass(frozen=True)
class LevelProgress:
    """Level state derived from a total XP amount."""

    level: int
    current_xp: int
    xp_to_next_level: int

    @property
    def percent(self) -> float:
        """Progress through the current level, 0 to 100."""
        return round(self.current_xp * 100 / self.xp_to_next_level, 2)


@dataclass(frozen=True)
class LevelCurve:
    """
    Exponential level curve: level N needs floor(base * multiplier^(N-1)) XP.

    >>> curve = LevelCurve()
    >>> [curve.xp_for_level(n) for n in (1, 2, 3, 4)]
    [100, 150, 225, 337]
    """

    base_xp: int = constants.LEVEL_BASE_XP
    multiplier: Fraction = field(default_factory=lambda: _exact(constants.LEVEL_MULTIPLIER))

    def __post_init__(self) -> None:
        object.__setattr__(self, "multiplier", _exact(self.multiplier))
        if not isinstance(self.base_xp, int) or self.base_xp <= 0:
            raise ValidationError("base_xp", f"must be a positive integer, got {self.base_xp}")
        if self.multiplier <= 1:
            raise ValidationError("multiplier", f"must be greater than 1, got {self.multiplier}")

    def xp_for_level(self, level: int) -> int:
        """XP needed to go from `level` to `level + 1`."""
        if level < 1:
            raise ValidationError("level", f"must be >= 1, got {level}")
        return math.floor(self.base_xp * self.multiplier ** (level - 1))

    def total_xp_for_level(self, level: int) -> int:
        """Cumulative XP at which `level` is reached (0 for level 1)."""
        if level < 1:
            raise ValidationError("level", f"must be >= 1, got {level}")
        total = 0
        step = Fraction(self.base_xp)
        for _ in range(level - 1):
            total += math.floor(step)
            step *= self.multiplier
        return total

    def progress_for(self, total_xp: int) -> LevelProgress:
        """
        Walk levels upward from 1 until the next level no longer fits.

        A total exactly on a threshold lands at the start of the new level.
        """
        if total_xp < 0:
            raise ValidationError("total_xp", f"must be >= 0, got {total_xp}")

        level = 1
        remaining = total_xp
        step = Fraction(self.base_xp)
        needed = math.floor(step)
        while remaining >= needed:
            remaining -= needed
            level += 1
            step *= self.multiplier
            needed = math.floor(step)

        return LevelProgress(level=level, current_xp=remaining, xp_to_next_level=needed)


DEFAULT_CURVE = LevelCurve()


def xp_for_level(level: int, curve: LevelCurve = DEFAULT_CURVE) -> int:
    return curve.xp_for_level(level)


def level_from_total_xp(total_xp: int, curve: LevelCurve = DEFAULT_CURVE) -> LevelProgress:
    return curve.progress_for(total_xp)


def level_title(level: int, titles: Tuple[Tuple[int, str], ...] = constants.LEVEL_TITLES) -> str:
    """
    Title of the highest bracket whose minimum level is <= `level`.

    >>> level_title(12)
    'Initiate'
    """
    title = titles[0][1] if titles else ""
    for min_level, name in titles:
        if level >= min_level:
            title = name
        else:
            break
    return title


# ============================================================================
# TASK REWARDS
# ============================================================================


@dataclass(frozen=True)
class TaskRewards:
    xp: int
    coins: int


@dataclass(frozen=True)
class RewardTable:
    """Difficulty and priority lookup tables for task rewards."""

    difficulty_xp: Mapping[str, int] = field(
        default_factory=lambda: dict(constants.DIFFICULTY_XP)
    )
    priority_bonus: Mapping[str, int] = field(
        default_factory=lambda: dict(constants.PRIORITY_XP_BONUS)
    )
    coin_divisor: int = constants.COIN_DIVISOR

    def rewards_for(self, difficulty: str, priority: str) -> TaskRewards:
        """
        XP = difficulty XP + priority bonus; coins = floor(difficulty XP / divisor).

        >>> RewardTable().rewards_for("medium", "high")
        TaskRewards(xp=35, coins=12)
        """
        difficulty_key = str(difficulty)
        priority_key = str(priority)

        if difficulty_key not in self.difficulty_xp:
            raise ValidationError("difficulty", f"unknown difficulty '{difficulty_key}'")
        if priority_key not in self.priority_bonus:
            raise ValidationError("priority", f"unknown priority '{priority_key}'")

        base = self.difficulty_xp[difficulty_key]
        return TaskRewards(
            xp=base + self.priority_bonus[priority_key],
            coins=base // self.coin_divisor,
        )


# ============================================================================
# STREAK BONUS
# ============================================================================


@dataclass(frozen=True)
class StreakBonusTable:
    """
    Streak length thresholds mapped to XP bonus fractions.

    >>> table = StreakBonusTable()
    >>> table.bonus_for(2), table.bonus_for(7), table.bonus_for(13)
    (Fraction(0, 1), Fraction(1, 4), Fraction(1, 4))
    """

    thresholds: Tuple[Tuple[int, Fraction], ...] = field(
        default_factory=lambda: tuple(
            (days, _exact(bonus)) for days, bonus in sorted(constants.STREAK_BONUSES.items())
        )
    )

    @classmethod
    def from_mapping(cls, mapping: Mapping[Union[int, str], Number]) -> "StreakBonusTable":
        pairs = sorted((int(days), _exact(bonus)) for days, bonus in mapping.items())
        for days, bonus in pairs:
            if days < 1 or bonus < 0:
                raise ValidationError(
                    "streak_bonuses", f"invalid threshold {days} -> {bonus}"
                )
        return cls(thresholds=tuple(pairs))

    def bonus_for(self, streak: int) -> Fraction:
        bonus = Fraction(0)
        for days, value in self.thresholds:
            if streak >= days:
                bonus = value
            else:
                break
        return bonus

    def apply(self, xp: int, streak: int) -> int:
        """
        XP actually granted: floor(xp * (1 + bonus)).

        >>> StreakBonusTable().apply(35, 7)
        43
        """
        return math.floor(xp * (1 + self.bonus_for(streak)))

    def as_dict(self) -> Dict[int, float]:
        return {days: float(bonus) for days, bonus in self.thresholds}


DEFAULT_REWARD_TABLE = RewardTable()
DEFAULT_STREAK_BONUSES = StreakBonusTable()


def task_rewards(
    difficulty: str, priority: str, table: RewardTable = DEFAULT_REWARD_TABLE
) -> TaskRewards:
    return table.rewards_for(difficulty, priority)


def streak_bonus(streak: int, table: StreakBonusTable = DEFAULT_STREAK_BONUSES) -> float:
    return float(table.bonus_for(streak))
