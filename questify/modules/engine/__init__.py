"""Game events, the event router and the async service facade."""

from questify.modules.engine.events import (
    GameEvent,
    PlayerLoggedIn,
    TaskCompleted,
    TaskCreated,
    TaskFailed,
)
from questify.modules.engine.router import EngineOutcome, EventRouter
from questify.modules.engine.service import GamificationService

__all__ = [
    "EngineOutcome",
    "EventRouter",
    "GameEvent",
    "GamificationService",
    "PlayerLoggedIn",
    "TaskCompleted",
    "TaskCreated",
    "TaskFailed",
]
