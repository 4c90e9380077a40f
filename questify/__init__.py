"""
Questify gamification engine.

Converts task, quest and login events into experience, levels, currency,
streaks, achievement unlocks and quest rewards.
"""

__version__ = "1.0.0"
