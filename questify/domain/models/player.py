"""
PlayerStats aggregate.

Purpose
-------
One `PlayerStats` per user holds everything the reward engine tracks:
level state, streak state, wallet, gameplay counters and the set of
unlocked achievements.

Invariants
----------
- `level`, `current_xp` and `xp_to_next_level` always equal
  `curve.progress_for(total_xp)`; they are re-derived on every XP grant.
- `total_xp` only grows.
- `coins` and `gems` never go negative: spending more than held fails and
  changes nothing.
- `achievements_unlocked` is append-only and has no duplicates.
- `longest_streak >= current_streak`.

Design Notes
------------
- Mutators record domain events (`player.xp_gained`, `player.leveled_up`,
  `achievement.unlocked`, ...) for the service to publish after commit.
- `version` is the optimistic-concurrency token; only the store bumps it.
- `to_record()` / `from_record()` convert to the flat dict the persistence
  collaborator stores; `sanitize()` repairs stored values on load.
"""

from __future__ import annotations

import copy as _copy
from dataclasses import dataclass, field, fields
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from questify.domain.models.base import (
    AggregateRoot,
    validate_non_negative,
    validate_not_empty,
    validate_positive,
)

if TYPE_CHECKING:
    from questify.modules.shared.formulas import LevelCurve, LevelProgress


# Integer fields that can never be negative
COUNTER_FIELDS = (
    "current_streak",
    "longest_streak",
    "streak_recoveries",
    "coins",
    "gems",
    "tasks_completed",
    "tasks_created",
    "tasks_failed",
    "quests_completed",
    "daily_quests_completed",
    "daily_tasks_completed",
    "weekly_tasks_completed",
    "daily_xp",
    "weekly_xp",
    "hard_tasks_completed",
    "epic_tasks_completed",
    "legendary_tasks_completed",
    "high_priority_tasks_completed",
    "early_completions",
    "late_completions",
    "weekend_tasks_completed",
    "perfect_tasks",
    "perfect_days",
    "subtasks_created",
    "achievement_points",
    "last_absence_days",
)

DATE_FIELDS = (
    "last_completed_date",
    "last_perfect_day",
    "last_login_date",
    "last_daily_reset",
    "last_weekly_reset",
)


@dataclass(eq=False)
class PlayerStats(AggregateRoot):
    user_id: str
    version: int = 0

    # Leveling
    level: int = 1
    current_xp: int = 0
    total_xp: int = 0
    xp_to_next_level: int = 100

    # Streak
    current_streak: int = 0
    longest_streak: int = 0
    last_completed_date: Optional[date] = None
    streak_recovery_pending: bool = False
    streak_recoveries: int = 0

    # Wallet
    coins: int = 0
    gems: int = 0

    # Counters
    tasks_completed: int = 0
    tasks_created: int = 0
    tasks_failed: int = 0
    quests_completed: int = 0
    daily_quests_completed: int = 0
    daily_tasks_completed: int = 0
    weekly_tasks_completed: int = 0
    daily_xp: int = 0
    weekly_xp: int = 0
    hard_tasks_completed: int = 0
    epic_tasks_completed: int = 0
    legendary_tasks_completed: int = 0
    high_priority_tasks_completed: int = 0
    early_completions: int = 0
    late_completions: int = 0
    weekend_tasks_completed: int = 0
    perfect_tasks: int = 0
    perfect_days: int = 0
    last_perfect_day: Optional[date] = None
    subtasks_created: int = 0
    category_stats: Dict[str, Dict[str, int]] = field(default_factory=dict)

    # Achievements
    achievement_points: int = 0
    achievements_unlocked: List[str] = field(default_factory=list)

    # Calendar bookkeeping
    last_login_date: Optional[date] = None
    last_absence_days: int = 0
    last_daily_reset: Optional[date] = None
    last_weekly_reset: Optional[date] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        validate_not_empty(self.user_id, "user_id")
        super().__init__(self.user_id)

    # ========================================================================
    # CONSTRUCTION
    # ========================================================================

    @classmethod
    def new(
        cls,
        user_id: str,
        *,
        coins: int,
        gems: int,
        now: datetime,
        curve: "LevelCurve",
    ) -> "PlayerStats":
        """Create a fresh level-1 player with the starting wallet."""
        validate_non_negative(coins, "coins")
        validate_non_negative(gems, "gems")
        stats = cls(
            user_id=user_id,
            coins=coins,
            gems=gems,
            xp_to_next_level=curve.xp_for_level(1),
            last_daily_reset=now.date(),
            last_weekly_reset=now.date(),
            created_at=now,
        )
        stats.add_domain_event(
            "player.created",
            {"user_id": user_id, "coins": coins, "gems": gems},
        )
        return stats

    # ========================================================================
    # LEVELING
    # ========================================================================

    def grant_xp(
        self,
        amount: int,
        curve: "LevelCurve",
        *,
        source: str,
        count_toward_period: bool = True,
    ) -> bool:
        """
        Add XP and re-derive level state.

        Returns True if the player leveled up.
        """
        validate_non_negative(amount, "amount")
        if amount == 0:
            return False

        old_level = self.level
        self.total_xp += amount
        if count_toward_period:
            self.daily_xp += amount
            self.weekly_xp += amount
        progress = self.rederive_level(curve)

        self.add_domain_event(
            "player.xp_gained",
            {
                "user_id": self.user_id,
                "amount": amount,
                "source": source,
                "total_xp": self.total_xp,
            },
        )

        if progress.level > old_level:
            self.add_domain_event(
                "player.leveled_up",
                {
                    "user_id": self.user_id,
                    "old_level": old_level,
                    "new_level": progress.level,
                    "levels_gained": progress.level - old_level,
                },
            )
            return True
        return False

    def rederive_level(self, curve: "LevelCurve") -> "LevelProgress":
        progress = curve.progress_for(self.total_xp)
        self.level = progress.level
        self.current_xp = progress.current_xp
        self.xp_to_next_level = progress.xp_to_next_level
        return progress

    # ========================================================================
    # WALLET
    # ========================================================================

    def add_coins(self, amount: int) -> None:
        validate_non_negative(amount, "amount")
        self.coins += amount

    def add_gems(self, amount: int) -> None:
        validate_non_negative(amount, "amount")
        self.gems += amount

    def spend_coins(self, amount: int) -> bool:
        """Spend coins; returns False and changes nothing if funds are short."""
        validate_positive(amount, "amount")
        if self.coins < amount:
            return False
        self.coins -= amount
        self.add_domain_event(
            "currency.spent",
            {"user_id": self.user_id, "currency": "coins", "amount": amount, "balance": self.coins},
        )
        return True

    def spend_gems(self, amount: int) -> bool:
        validate_positive(amount, "amount")
        if self.gems < amount:
            return False
        self.gems -= amount
        self.add_domain_event(
            "currency.spent",
            {"user_id": self.user_id, "currency": "gems", "amount": amount, "balance": self.gems},
        )
        return True

    # ========================================================================
    # ACHIEVEMENTS
    # ========================================================================

    def has_achievement(self, achievement_id: str) -> bool:
        return achievement_id in self.achievements_unlocked

    def record_achievement(
        self,
        achievement_id: str,
        *,
        xp: int,
        coins: int,
        curve: "LevelCurve",
    ) -> bool:
        """
        Unlock an achievement and apply its reward in one step.

        Returns False (and grants nothing) if it is already unlocked.
        Achievement XP re-derives the level but does not count toward
        daily/weekly XP.
        """
        if self.has_achievement(achievement_id):
            return False

        self.achievements_unlocked.append(achievement_id)
        self.achievement_points += xp
        self.add_coins(coins)
        self.add_domain_event(
            "achievement.unlocked",
            {
                "user_id": self.user_id,
                "achievement_id": achievement_id,
                "xp_reward": xp,
                "coin_reward": coins,
            },
        )
        self.grant_xp(xp, curve, source=f"achievement:{achievement_id}", count_toward_period=False)
        return True

    # ========================================================================
    # COUNTERS
    # ========================================================================

    def roll_periods(self, today: date, week_start: date) -> None:
        """Reset daily/weekly counters when the calendar day or week changed."""
        if self.last_daily_reset != today:
            self.daily_xp = 0
            self.daily_tasks_completed = 0
            self.last_daily_reset = today
        if self.last_weekly_reset is None or self.last_weekly_reset < week_start:
            self.weekly_xp = 0
            self.weekly_tasks_completed = 0
            self.last_weekly_reset = today

    def record_category(self, category: str, xp: int) -> None:
        entry = self.category_stats.setdefault(category, {"tasks_completed": 0, "total_xp": 0})
        entry["tasks_completed"] = entry.get("tasks_completed", 0) + 1
        entry["total_xp"] = entry.get("total_xp", 0) + xp

    def category_count(self, category: str) -> int:
        return self.category_stats.get(category, {}).get("tasks_completed", 0)

    # ========================================================================
    # PERSISTENCE SUPPORT
    # ========================================================================

    def sanitize(self, curve: "LevelCurve") -> "PlayerStats":
        """
        Repair stored values that violate invariants.

        Counters are clamped at 0 and derived level fields are recomputed
        from `total_xp` rather than trusted.
        """
        self.total_xp = max(0, int(self.total_xp or 0))
        for name in COUNTER_FIELDS:
            setattr(self, name, max(0, int(getattr(self, name) or 0)))
        self.rederive_level(curve)
        self.longest_streak = max(self.longest_streak, self.current_streak)

        seen: List[str] = []
        for achievement_id in self.achievements_unlocked:
            if achievement_id not in seen:
                seen.append(achievement_id)
        self.achievements_unlocked = seen

        cleaned: Dict[str, Dict[str, int]] = {}
        for category, entry in (self.category_stats or {}).items():
            cleaned[category] = {
                "tasks_completed": max(0, int(entry.get("tasks_completed", 0) or 0)),
                "total_xp": max(0, int(entry.get("total_xp", 0) or 0)),
            }
        self.category_stats = cleaned
        return self

    def to_record(self) -> Dict[str, Any]:
        """Flat, deep-copied field dict (the persistence shape)."""
        return {f.name: _copy.deepcopy(getattr(self, f.name)) for f in fields(self)}

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "PlayerStats":
        known = {f.name for f in fields(cls)}
        values = {k: _copy.deepcopy(v) for k, v in record.items() if k in known}
        for name in DATE_FIELDS:
            if isinstance(values.get(name), str):
                values[name] = date.fromisoformat(values[name])
        if isinstance(values.get("created_at"), str):
            values["created_at"] = datetime.fromisoformat(values["created_at"])
        return cls(**values)

    def copy(self) -> "PlayerStats":
        """Deep copy without pending domain events."""
        return PlayerStats.from_record(self.to_record())

    def diff(self, other: "PlayerStats") -> Dict[str, Any]:
        """Fields whose value in `self` differs from `other`."""
        mine = self.to_record()
        theirs = other.to_record()
        return {name: value for name, value in mine.items() if theirs.get(name) != value}
