"""
Task value object.

Tasks belong to the surrounding task manager; the engine only reads them,
except for `xp_reward` / `coin_reward`, which are locked in when the task is
created and recomputed only by an explicit `with_updates()`.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import date
from typing import Optional

from questify.domain.models.base import (
    DomainValidationError,
    validate_non_negative,
    validate_not_empty,
)
from questify.domain.models.enums import Difficulty, Priority
from questify.modules.shared.formulas import DEFAULT_REWARD_TABLE, RewardTable


@dataclass(frozen=True)
class Task:
    id: str
    title: str
    category: str
    difficulty: Difficulty
    priority: Priority
    xp_reward: int
    coin_reward: int
    due_date: Optional[date] = None
    subtasks_total: int = 0
    subtasks_completed: int = 0

    def __post_init__(self) -> None:
        validate_not_empty(self.id, "id")
        validate_not_empty(self.category, "category")
        validate_non_negative(self.xp_reward, "xp_reward")
        validate_non_negative(self.coin_reward, "coin_reward")
        validate_non_negative(self.subtasks_total, "subtasks_total")
        validate_non_negative(self.subtasks_completed, "subtasks_completed")
        if self.subtasks_completed > self.subtasks_total:
            raise DomainValidationError(
                "subtasks_completed cannot exceed subtasks_total",
                field="subtasks_completed",
            )

    @classmethod
    def create(
        cls,
        id: str,
        title: str,
        *,
        category: str,
        difficulty: str,
        priority: str = Priority.NONE,
        due_date: Optional[date] = None,
        subtasks_total: int = 0,
        subtasks_completed: int = 0,
        rewards: RewardTable = DEFAULT_REWARD_TABLE,
    ) -> "Task":
        """Build a task with its rewards computed from difficulty and priority."""
        parsed_difficulty = _parse_difficulty(difficulty)
        parsed_priority = _parse_priority(priority)
        reward = rewards.rewards_for(parsed_difficulty, parsed_priority)
        return cls(
            id=id,
            title=title,
            category=category,
            difficulty=parsed_difficulty,
            priority=parsed_priority,
            xp_reward=reward.xp,
            coin_reward=reward.coins,
            due_date=due_date,
            subtasks_total=subtasks_total,
            subtasks_completed=subtasks_completed,
        )

    def with_updates(
        self,
        *,
        difficulty: Optional[str] = None,
        priority: Optional[str] = None,
        rewards: RewardTable = DEFAULT_REWARD_TABLE,
        **changes: object,
    ) -> "Task":
        """
        Return an edited copy.

        Changing difficulty or priority recomputes the locked rewards from
        the new values; other edits keep them as they are.
        """
        new_difficulty = _parse_difficulty(difficulty) if difficulty is not None else self.difficulty
        new_priority = _parse_priority(priority) if priority is not None else self.priority
        updated = dataclasses.replace(
            self, difficulty=new_difficulty, priority=new_priority, **changes
        )
        if difficulty is None and priority is None:
            return updated

        reward = rewards.rewards_for(new_difficulty, new_priority)
        return dataclasses.replace(updated, xp_reward=reward.xp, coin_reward=reward.coins)

    @property
    def is_perfect(self) -> bool:
        """Has subtasks and every one of them is done."""
        return self.subtasks_total > 0 and self.subtasks_completed == self.subtasks_total


def _parse_difficulty(value: object) -> Difficulty:
    parsed = Difficulty.parse(value)
    if parsed is None:
        raise DomainValidationError(f"Unknown difficulty '{value}'", field="difficulty")
    return parsed


def _parse_priority(value: object) -> Priority:
    parsed = Priority.parse(value)
    if parsed is None:
        raise DomainValidationError(f"Unknown priority '{value}'", field="priority")
    return parsed
