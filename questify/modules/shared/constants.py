"""
Questify Domain Constants

Purpose
-------
Built-in balance defaults for the gamification engine. The YAML files
under `config/` carry the live values; these constants are the fallbacks
`GamificationSettings` uses for any key the YAML omits.

IMPORTANT:
This module contains GAMEPLAY constants only. Infrastructure settings
(database URL, lock timeouts, logging) belong in `questify.core.config`.

Design Notes
------------
- Values are annotated with typing.Final to signal immutability
- Grouped by game system (leveling, rewards, streaks, quests, economy)
"""

from __future__ import annotations

from typing import Dict, Final, Tuple

# ============================================================================
# LEVELING
# ============================================================================

LEVEL_BASE_XP: Final[int] = 100
LEVEL_MULTIPLIER: Final[str] = "1.5"  # parsed exactly as a Fraction

LEVEL_TITLES: Final[Tuple[Tuple[int, str], ...]] = (
    (1, "Novice"),
    (5, "Apprentice"),
    (10, "Initiate"),
    (15, "Adept"),
    (20, "Adventurer"),
    (25, "Explorer"),
    (30, "Veteran"),
    (40, "Expert"),
    (50, "Master"),
    (60, "Grandmaster"),
    (75, "Champion"),
    (90, "Hero"),
    (100, "Legend"),
)

# ============================================================================
# TASK REWARDS
# ============================================================================

DIFFICULTY_XP: Final[Dict[str, int]] = {
    "trivial": 5,
    "easy": 10,
    "medium": 25,
    "hard": 50,
    "epic": 100,
    "legendary": 200,
}

PRIORITY_XP_BONUS: Final[Dict[str, int]] = {
    "none": 0,
    "low": 0,
    "medium": 5,
    "high": 10,
    "critical": 20,
}

COIN_DIVISOR: Final[int] = 2  # coins = floor(difficulty xp / 2)

# ============================================================================
# STREAKS
# ============================================================================

# Highest threshold <= streak wins
STREAK_BONUSES: Final[Dict[int, str]] = {
    3: "0.10",
    7: "0.25",
    14: "0.50",
    30: "0.75",
    60: "1.00",
    100: "1.50",
    365: "2.00",
}

# ============================================================================
# QUESTS
# ============================================================================

DAILY_QUEST_COUNT: Final[int] = 3
WEEKLY_QUEST_COUNT: Final[int] = 2
SPECIAL_QUEST_DURATION_DAYS: Final[int] = 30

# ============================================================================
# ECONOMY
# ============================================================================

STARTING_COINS: Final[int] = 100
STARTING_GEMS: Final[int] = 10

# ============================================================================
# CATEGORIES
# ============================================================================

DEFAULT_CATEGORIES: Final[Tuple[str, ...]] = (
    "Work",
    "Personal",
    "Health",
    "Study",
    "Finance",
    "Social",
    "Leisure",
    "Home",
)
