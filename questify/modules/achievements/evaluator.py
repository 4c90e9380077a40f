"""
Achievement Evaluator.

Purpose
-------
Decide which catalog achievements a player's current stats qualify for, and
unlock them exactly once.

Design Notes
------------
- Stateless with respect to the player: every check reads `PlayerStats`
  only, so a full re-scan is safe to repeat at any time.
- One metric function per `RequirementKind`. The module refuses to import
  if a kind has no function, so adding a kind without its rule fails fast.
- Unlocking checks membership first, then records the id and applies the
  XP/coin reward in the same mutation (`PlayerStats.record_achievement`).
- Unlocking can itself satisfy more achievements (XP -> level, coins,
  achievement count), so `scan()` loops until nothing new unlocks.
- A requirement type the engine does not know is never satisfied; it is
  logged as a configuration warning once per achievement.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from questify.core.logging.logger import get_logger
from questify.domain.models.achievement import Achievement, Requirement
from questify.domain.models.enums import RequirementKind
from questify.domain.models.player import PlayerStats
from questify.modules.achievements.catalog import AchievementCatalog
from questify.modules.shared import constants
from questify.modules.shared.exceptions import NotFoundError
from questify.modules.shared.formulas import DEFAULT_CURVE, LevelCurve

logger = get_logger(__name__)

Metric = Callable[[PlayerStats, Requirement, Sequence[str]], int]


def _counter(name: str) -> Metric:
    def metric(stats: PlayerStats, requirement: Requirement, categories: Sequence[str]) -> int:
        return getattr(stats, name)

    return metric


def _achievement_count(stats: PlayerStats, requirement: Requirement, categories: Sequence[str]) -> int:
    return len(stats.achievements_unlocked)


def _category_tasks(stats: PlayerStats, requirement: Requirement, categories: Sequence[str]) -> int:
    if requirement.category:
        return stats.category_count(requirement.category)
    return max(
        (entry.get("tasks_completed", 0) for entry in stats.category_stats.values()),
        default=0,
    )


def _all_categories(stats: PlayerStats, requirement: Requirement, categories: Sequence[str]) -> int:
    # Weakest category decides
    if not categories:
        return 0
    return min(stats.category_count(category) for category in categories)


def _account_created(stats: PlayerStats, requirement: Requirement, categories: Sequence[str]) -> int:
    # Always satisfied once the player exists
    return max(1, requirement.value)


METRICS: Dict[RequirementKind, Metric] = {
    RequirementKind.TASKS_COMPLETED: _counter("tasks_completed"),
    RequirementKind.STREAK: _counter("current_streak"),
    RequirementKind.LEVEL: _counter("level"),
    RequirementKind.TOTAL_XP: _counter("total_xp"),
    RequirementKind.DAILY_XP: _counter("daily_xp"),
    RequirementKind.DAILY_TASKS: _counter("daily_tasks_completed"),
    RequirementKind.ACHIEVEMENTS: _achievement_count,
    RequirementKind.QUESTS_COMPLETED: _counter("quests_completed"),
    RequirementKind.DAILY_QUESTS: _counter("daily_quests_completed"),
    RequirementKind.EPIC_TASKS: _counter("epic_tasks_completed"),
    RequirementKind.LEGENDARY_TASKS: _counter("legendary_tasks_completed"),
    RequirementKind.HARD_TASKS: _counter("hard_tasks_completed"),
    RequirementKind.HIGH_PRIORITY_TASKS: _counter("high_priority_tasks_completed"),
    RequirementKind.EARLY_COMPLETION: _counter("early_completions"),
    RequirementKind.LATE_COMPLETION: _counter("late_completions"),
    RequirementKind.PERFECT_DAY: _counter("perfect_days"),
    RequirementKind.PERFECT_TASKS: _counter("perfect_tasks"),
    RequirementKind.WEEKEND_TASKS: _counter("weekend_tasks_completed"),
    RequirementKind.CATEGORY_TASKS: _category_tasks,
    RequirementKind.ALL_CATEGORIES: _all_categories,
    RequirementKind.COINS: _counter("coins"),
    RequirementKind.STREAK_RECOVERED: _counter("streak_recoveries"),
    RequirementKind.SUBTASKS_CREATED: _counter("subtasks_created"),
    RequirementKind.COMEBACK: _counter("last_absence_days"),
    RequirementKind.ACCOUNT_CREATED: _account_created,
}

_missing = set(RequirementKind) - set(METRICS)
if _missing:
    raise RuntimeError(
        f"No achievement metric for requirement kinds: {sorted(k.value for k in _missing)}"
    )


class AchievementEvaluator:
    """
    Evaluates a catalog against player stats.

    Usage
    -----
        evaluator = AchievementEvaluator(catalog, curve=settings.curve)
        unlocked_ids = evaluator.scan(stats)
    """

    def __init__(
        self,
        catalog: AchievementCatalog,
        *,
        curve: LevelCurve = DEFAULT_CURVE,
        categories: Sequence[str] = constants.DEFAULT_CATEGORIES,
    ) -> None:
        self.catalog = catalog
        self.curve = curve
        self.categories: Tuple[str, ...] = tuple(categories)
        self._warned: Set[str] = set()

    # ========================================================================
    # CHECKS
    # ========================================================================

    def current_value(self, stats: PlayerStats, achievement: Achievement) -> Optional[int]:
        """Metric value for the achievement's requirement, or None if unknown."""
        kind = achievement.requirement.kind
        if kind is None:
            self._warn_unknown(achievement)
            return None
        return METRICS[kind](stats, achievement.requirement, self.categories)

    def is_satisfied(self, stats: PlayerStats, achievement: Achievement) -> bool:
        value = self.current_value(stats, achievement)
        return value is not None and value >= achievement.requirement.value

    def qualifying(
        self,
        stats: PlayerStats,
        kinds: Optional[Set[RequirementKind]] = None,
    ) -> List[Achievement]:
        """Achievements not yet unlocked whose requirement is met now."""
        found = []
        for achievement in self.catalog:
            if stats.has_achievement(achievement.id):
                continue
            if kinds is not None and achievement.requirement.kind not in kinds:
                continue
            if self.is_satisfied(stats, achievement):
                found.append(achievement)
        return found

    def progress(self, stats: PlayerStats, achievement: Achievement) -> Tuple[int, int]:
        """(current, target) for display; current is capped at target."""
        target = max(1, achievement.requirement.value)
        if stats.has_achievement(achievement.id):
            return target, target
        value = self.current_value(stats, achievement)
        if value is None:
            return 0, target
        return min(value, target), target

    # ========================================================================
    # UNLOCKING
    # ========================================================================

    def unlock(self, stats: PlayerStats, achievement_id: str) -> bool:
        """
        Unlock one achievement and grant its reward.

        Returns False if it was already unlocked.

        Raises
        ------
        NotFoundError
            If the id is not in the catalog.
        """
        achievement = self.catalog.get(achievement_id)
        if achievement is None:
            raise NotFoundError("Achievement", achievement_id)

        unlocked = stats.record_achievement(
            achievement.id,
            xp=achievement.xp_reward,
            coins=achievement.coin_reward,
            curve=self.curve,
        )
        if unlocked:
            logger.info(
                "Achievement unlocked",
                extra={
                    "achievement_id": achievement.id,
                    "rarity": str(achievement.rarity),
                    "xp_reward": achievement.xp_reward,
                    "coin_reward": achievement.coin_reward,
                },
            )
        return unlocked

    def scan(
        self,
        stats: PlayerStats,
        kinds: Optional[Set[RequirementKind]] = None,
    ) -> List[str]:
        """
        Unlock everything that qualifies, repeating until nothing new does.

        `kinds` restricts the first pass to the given requirement kinds
        (e.g. streak checks right after a streak update); follow-up passes
        triggered by the granted rewards always consider every kind.
        """
        unlocked: List[str] = []
        pending = self.qualifying(stats, kinds)
        while pending:
            for achievement in pending:
                if self.unlock(stats, achievement.id):
                    unlocked.append(achievement.id)
            pending = self.qualifying(stats)
        return unlocked

    def _warn_unknown(self, achievement: Achievement) -> None:
        if achievement.id in self._warned:
            return
        self._warned.add(achievement.id)
        logger.warning(
            "Unknown achievement requirement type; treating as never satisfied",
            extra={
                "achievement_id": achievement.id,
                "requirement_type": achievement.requirement.type,
            },
        )


def achievement_progress(
    stats: PlayerStats,
    achievement: Achievement,
    categories: Sequence[str] = constants.DEFAULT_CATEGORIES,
) -> Tuple[int, int]:
    """Display progress for one achievement without a configured evaluator."""
    evaluator = AchievementEvaluator(AchievementCatalog([achievement]), categories=categories)
    return evaluator.progress(stats, achievement)
