"""Streak tracking."""

from questify.modules.progression.streak import StreakUpdate, record_completion

__all__ = ["StreakUpdate", "record_completion"]
