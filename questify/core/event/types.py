"""
Event payloads, listener priorities and the subscription record.

Priority decides both order and concurrency when an event is published:
CRITICAL and HIGH listeners run one at a time under a timeout, NORMAL
listeners run together and are awaited, LOW listeners run in the background.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Union

EventPayload = Dict[str, Any]

CallbackType = Union[
    Callable[[EventPayload], Any],
    Callable[[EventPayload], Awaitable[Any]],
]


class ListenerPriority(Enum):
    CRITICAL = 0
    HIGH = 10
    NORMAL = 50
    LOW = 100


@dataclass(frozen=True)
class EventListener:
    """One subscription: `pattern` is an event name or a `*` wildcard."""

    pattern: str
    callback: CallbackType
    priority: ListenerPriority
    identifier: str
    once: bool = False

    @classmethod
    def create(
        cls,
        pattern: str,
        callback: CallbackType,
        priority: ListenerPriority,
        identifier: Optional[str] = None,
        once: bool = False,
    ) -> EventListener:
        if identifier is None:
            name = getattr(callback, "__qualname__", None) or getattr(callback, "__name__", "callback")
            identifier = f"{getattr(callback, '__module__', 'unknown')}.{name}@{pattern}"
        return cls(pattern, callback, priority, identifier, once)

    @property
    def sort_key(self) -> Tuple[int, str]:
        return (self.priority.value, self.identifier)
