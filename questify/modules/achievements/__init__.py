"""Achievement catalog and evaluator."""

from questify.modules.achievements.catalog import AchievementCatalog
from questify.modules.achievements.evaluator import (
    AchievementEvaluator,
    achievement_progress,
)

__all__ = ["AchievementCatalog", "AchievementEvaluator", "achievement_progress"]
