"""
Gameplay events the router accepts.

Each event is an immutable value; `EventRouter.apply` dispatches on its
type, so adding an event means adding a class here and a branch there.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from questify.domain.models.task import Task


@dataclass(frozen=True)
class TaskCreated:
    task: Task


@dataclass(frozen=True)
class TaskCompleted:
    task: Task


@dataclass(frozen=True)
class TaskFailed:
    task: Task


@dataclass(frozen=True)
class PlayerLoggedIn:
    pass


GameEvent = Union[TaskCreated, TaskCompleted, TaskFailed, PlayerLoggedIn]
