"""
Domain model building blocks.

Aggregates (`PlayerStats`, `Quest`) keep their own invariants and record
what changed as `DomainEvent`s. The service publishes those events only
after the store has committed the new state:

>>> stats.grant_xp(150, curve, source="task")
>>> for event in stats.clear_domain_events():
...     await event_bus.publish(event.event_name, event.payload)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


@dataclass
class DomainEvent:
    event_name: str
    payload: Dict[str, Any]
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class AggregateRoot:
    """
    Identity plus a buffer of pending domain events.

    Equality is by type and id. Dataclass subclasses use `eq=False` and call
    `AggregateRoot.__init__` from `__post_init__`.
    """

    def __init__(self, entity_id: str) -> None:
        self._id = entity_id
        self._domain_events: List[DomainEvent] = []

    @property
    def id(self) -> str:
        return self._id

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other) and self.id == other.id  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        return hash(self.id)

    def add_domain_event(self, event_name: str, payload: Dict[str, Any]) -> None:
        self._domain_events.append(DomainEvent(event_name, payload))

    def get_pending_events(self) -> List[DomainEvent]:
        return list(self._domain_events)

    def clear_domain_events(self) -> List[DomainEvent]:
        events, self._domain_events = self._domain_events, []
        return events


class DomainValidationError(Exception):
    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_positive(value: int, field_name: str) -> None:
    if not _is_int(value) or value <= 0:
        raise DomainValidationError(f"{field_name} must be a positive integer, got {value!r}", field_name)


def validate_non_negative(value: int, field_name: str) -> None:
    if not _is_int(value) or value < 0:
        raise DomainValidationError(f"{field_name} must be a non-negative integer, got {value!r}", field_name)


def validate_not_empty(value: str, field_name: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise DomainValidationError(f"{field_name} cannot be empty", field_name)
