"""
Injectable time source.

All day-boundary logic in the engine (streak continuation, quest expiry,
daily/weekly counter roll-over) reads local wall-clock time through a
`Clock`, so tests can pin "now" to a fixed instant.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Local wall-clock time (naive, in the process time zone)."""

    def now(self) -> datetime:
        return datetime.now()


class FixedClock:
    """
    A clock frozen at a given instant, movable by tests.

    >>> clock = FixedClock(datetime(2024, 1, 1, 9, 0))
    >>> clock.advance(days=1).date()
    datetime.date(2024, 1, 2)
    """

    def __init__(self, current: datetime) -> None:
        self._current = current

    def now(self) -> datetime:
        return self._current

    def set(self, current: datetime) -> None:
        self._current = current

    def advance(self, **delta: float) -> datetime:
        self._current = self._current + timedelta(**delta)
        return self._current


def start_of_week(day: date) -> date:
    """Monday of the ISO week containing `day`."""
    return day - timedelta(days=day.weekday())
