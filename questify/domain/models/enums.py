"""
Closed vocabularies of the gamification domain.

All enums are `str` subclasses so values round-trip through YAML, JSON
columns and log records unchanged.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Type, TypeVar

E = TypeVar("E", bound="GameEnum")


class GameEnum(str, Enum):
    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls: Type[E], value: object) -> Optional[E]:
        """Return the member for `value`, or None if it is not recognized."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


class Difficulty(GameEnum):
    TRIVIAL = "trivial"
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EPIC = "epic"
    LEGENDARY = "legendary"


class Priority(GameEnum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class QuestType(GameEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    SPECIAL = "special"
    STORY = "story"


class ObjectiveType(GameEnum):
    COMPLETE_TASKS = "complete_tasks"
    COMPLETE_CATEGORY = "complete_category"
    COMPLETE_PRIORITY = "complete_priority"
    EARN_XP = "earn_xp"
    MAINTAIN_STREAK = "maintain_streak"
    # Progressed by the surrounding application, never by engine events
    FOCUS_TIME = "focus_time"
    CUSTOM = "custom"


class Rarity(GameEnum):
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class RequirementKind(GameEnum):
    """Every stat an achievement can be gated on."""

    TASKS_COMPLETED = "tasks_completed"
    STREAK = "streak"
    LEVEL = "level"
    TOTAL_XP = "total_xp"
    DAILY_XP = "daily_xp"
    DAILY_TASKS = "daily_tasks"
    ACHIEVEMENTS = "achievements"
    QUESTS_COMPLETED = "quests_completed"
    DAILY_QUESTS = "daily_quests"
    EPIC_TASKS = "epic_tasks"
    LEGENDARY_TASKS = "legendary_tasks"
    HARD_TASKS = "hard_tasks"
    HIGH_PRIORITY_TASKS = "high_priority_tasks"
    EARLY_COMPLETION = "early_completion"
    LATE_COMPLETION = "late_completion"
    PERFECT_DAY = "perfect_day"
    PERFECT_TASKS = "perfect_tasks"
    WEEKEND_TASKS = "weekend_tasks"
    CATEGORY_TASKS = "category_tasks"
    ALL_CATEGORIES = "all_categories"
    COINS = "coins"
    STREAK_RECOVERED = "streak_recovered"
    SUBTASKS_CREATED = "subtasks_created"
    COMEBACK = "comeback"
    ACCOUNT_CREATED = "account_created"
