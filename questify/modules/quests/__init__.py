"""Quest templates and the quest lifecycle."""

from questify.modules.quests.catalog import ObjectiveSpec, QuestTemplate, QuestTemplateCatalog
from questify.modules.quests.lifecycle import (
    GenerationResult,
    QuestAction,
    QuestLifecycle,
    is_active,
    progress_objective,
    quest_window,
)

__all__ = [
    "GenerationResult",
    "ObjectiveSpec",
    "QuestAction",
    "QuestLifecycle",
    "QuestTemplate",
    "QuestTemplateCatalog",
    "is_active",
    "progress_objective",
    "quest_window",
]
