"""
Subscriptions held by an EventBus.

Single event loop only: the registry is never touched from another thread.
"""

from __future__ import annotations

from fnmatch import fnmatchcase
from typing import List

from questify.core.event.types import EventListener


def matches(event_name: str, pattern: str) -> bool:
    """
    `*` in a pattern matches any run of characters, dots included.

    >>> matches("quest.completed", "*.completed")
    True
    >>> matches("quest.completed", "player.*")
    False
    """
    if "*" not in pattern:
        return event_name == pattern
    return fnmatchcase(event_name, pattern)


class ListenerRegistry:
    def __init__(self) -> None:
        self._listeners: List[EventListener] = []

    def __len__(self) -> int:
        return len(self._listeners)

    def add(self, listener: EventListener) -> bool:
        """False if the same identifier is already subscribed to the pattern."""
        for existing in self._listeners:
            if existing.pattern == listener.pattern and existing.identifier == listener.identifier:
                return False
        self._listeners.append(listener)
        return True

    def remove(self, pattern: str, identifier: str) -> bool:
        before = len(self._listeners)
        self._listeners = [
            listener
            for listener in self._listeners
            if not (listener.pattern == pattern and listener.identifier == identifier)
        ]
        return len(self._listeners) < before

    def count_for(self, event_name: str) -> int:
        return sum(1 for listener in self._listeners if matches(event_name, listener.pattern))

    def take(self, event_name: str) -> List[EventListener]:
        """Listeners for `event_name` in priority order; one-shot ones are removed."""
        selected = [listener for listener in self._listeners if matches(event_name, listener.pattern)]
        spent = {id(listener) for listener in selected if listener.once}
        if spent:
            self._listeners = [listener for listener in self._listeners if id(listener) not in spent]
        return sorted(selected, key=lambda listener: listener.sort_key)
