"""
Domain models for the gamification engine.

Pure Python objects with no persistence or I/O; the services load them
through the store, mutate them through their methods and save them back.
"""

from questify.domain.models.achievement import Achievement, Requirement
from questify.domain.models.base import (
    AggregateRoot,
    DomainEvent,
    DomainValidationError,
)
from questify.domain.models.enums import (
    Difficulty,
    ObjectiveType,
    Priority,
    QuestType,
    Rarity,
    RequirementKind,
)
from questify.domain.models.player import PlayerStats
from questify.domain.models.quest import NO_REWARDS, Quest, QuestObjective, QuestRewards
from questify.domain.models.task import Task

__all__ = [
    "Achievement",
    "AggregateRoot",
    "Difficulty",
    "DomainEvent",
    "DomainValidationError",
    "NO_REWARDS",
    "ObjectiveType",
    "PlayerStats",
    "Priority",
    "Quest",
    "QuestObjective",
    "QuestRewards",
    "QuestType",
    "Rarity",
    "Requirement",
    "RequirementKind",
    "Task",
]
