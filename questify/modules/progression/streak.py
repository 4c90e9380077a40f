"""
Streak Tracker.

A streak is the count of consecutive calendar days with at least one task
completed. `record_completion` folds one completion date into a player's
streak state and is idempotent for repeats on the same day.

Transition rule (last completion -> today):

    no prior date      -> 1
    same day           -> unchanged
    exactly next day   -> +1
    gap of 2+ days     -> 1 (a streak loss when the old streak was > 0)

After a loss the player is "recovery eligible": the first time the new
streak continues into a second day, `streak_recoveries` is incremented.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

from questify.core.logging.logger import get_logger

if TYPE_CHECKING:
    from questify.domain.models.player import PlayerStats

logger = get_logger(__name__)


@dataclass(frozen=True)
class StreakUpdate:
    previous: int
    current: int
    longest: int
    changed: bool
    lost: bool
    recovered: bool


def record_completion(stats: "PlayerStats", completed_on: date) -> StreakUpdate:
    """
    Apply one completion on `completed_on` to `stats` in place.

    A date earlier than the last completion (clock skew, back-dated
    import) leaves the streak untouched.
    """
    previous = stats.current_streak
    last = stats.last_completed_date
    lost = False
    recovered = False

    if last is None:
        new_streak = 1
    else:
        gap = (completed_on - last).days
        if gap <= 0:
            return StreakUpdate(
                previous=previous,
                current=previous,
                longest=stats.longest_streak,
                changed=False,
                lost=False,
                recovered=False,
            )
        if gap == 1:
            new_streak = previous + 1
        else:
            new_streak = 1
            lost = previous > 0

    if lost:
        stats.streak_recovery_pending = True
    elif new_streak >= 2 and stats.streak_recovery_pending:
        stats.streak_recoveries += 1
        stats.streak_recovery_pending = False
        recovered = True

    stats.current_streak = new_streak
    stats.longest_streak = max(stats.longest_streak, new_streak)
    stats.last_completed_date = completed_on

    stats.add_domain_event(
        "streak.updated",
        {
            "user_id": stats.user_id,
            "previous": previous,
            "current": new_streak,
            "longest": stats.longest_streak,
            "lost": lost,
            "recovered": recovered,
        },
    )

    if lost:
        logger.debug(
            "Streak lost",
            extra={"previous_streak": previous, "gap_days": (completed_on - last).days},
        )

    return StreakUpdate(
        previous=previous,
        current=new_streak,
        longest=stats.longest_streak,
        changed=new_streak != previous,
        lost=lost,
        recovered=recovered,
    )
