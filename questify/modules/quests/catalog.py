"""
Quest template catalog.

Templates are static configuration (`config/quests.yaml`, key
`quest_templates`), grouped by quest type and kept in file order so seeded
selection is reproducible.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional, Tuple, Type

from questify.core.exceptions import ConfigurationError
from questify.core.logging.logger import get_logger
from questify.domain.models.base import DomainValidationError
from questify.domain.models.enums import ObjectiveType, Priority, QuestType
from questify.domain.models.quest import QuestRewards

if TYPE_CHECKING:
    from questify.core.config.manager import ConfigManager

logger = get_logger(__name__)


@dataclass(frozen=True)
class ObjectiveSpec:
    description: str
    type: ObjectiveType
    target: int
    category: Optional[str] = None
    priority: Optional[str] = None


@dataclass(frozen=True)
class QuestTemplate:
    id: str
    type: QuestType
    title: str
    description: str
    objectives: Tuple[ObjectiveSpec, ...]
    rewards: QuestRewards
    icon: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any], quest_type: QuestType) -> "QuestTemplate":
        objectives = []
        for raw in data.get("objectives") or []:
            objective_type = ObjectiveType.parse(raw.get("type"))
            if objective_type is None:
                raise DomainValidationError(
                    f"unknown objective type '{raw.get('type')}'", field="objectives"
                )
            target = int(raw["target"])
            if target <= 0:
                raise DomainValidationError("objective target must be positive", field="target")

            category = raw.get("category")
            priority = raw.get("priority")
            if objective_type is ObjectiveType.COMPLETE_CATEGORY and not category:
                raise DomainValidationError("complete_category needs a category", field="category")
            if objective_type is ObjectiveType.COMPLETE_PRIORITY:
                parsed = Priority.parse(priority)
                if parsed is None:
                    raise DomainValidationError(
                        f"complete_priority needs a valid priority, got {priority!r}",
                        field="priority",
                    )
                priority = parsed.value

            objectives.append(
                ObjectiveSpec(
                    description=str(raw.get("description", "")),
                    type=objective_type,
                    target=target,
                    category=category,
                    priority=priority,
                )
            )

        if not objectives:
            raise DomainValidationError("template has no objectives", field="objectives")

        return cls(
            id=str(data["id"]),
            type=quest_type,
            title=str(data.get("title", data["id"])),
            description=str(data.get("description", "")),
            icon=str(data.get("icon", "")),
            objectives=tuple(objectives),
            rewards=QuestRewards.from_dict(data.get("rewards") or {}),
        )


class QuestTemplateCatalog:
    """Templates grouped by quest type."""

    def __init__(self, templates: List[QuestTemplate]) -> None:
        self._by_id: Dict[str, QuestTemplate] = {}
        self._by_type: Dict[QuestType, List[QuestTemplate]] = {kind: [] for kind in QuestType}
        for template in templates:
            if template.id in self._by_id:
                raise ConfigurationError(
                    "quest_templates", f"duplicate template id '{template.id}'"
                )
            self._by_id[template.id] = template
            self._by_type[template.type].append(template)

    @classmethod
    def from_mapping(cls, mapping: Dict[str, Any]) -> "QuestTemplateCatalog":
        """
        Build from `{quest_type: [template, ...]}`.

        A template that cannot be parsed is skipped with a warning; an
        unknown quest type section is a configuration error.
        """
        templates: List[QuestTemplate] = []
        for type_name, entries in (mapping or {}).items():
            quest_type = QuestType.parse(type_name)
            if quest_type is None:
                raise ConfigurationError("quest_templates", f"unknown quest type '{type_name}'")
            for entry in entries or []:
                if not isinstance(entry, dict):
                    logger.warning(
                        "Skipping invalid quest template",
                        extra={"template_id": None, "error": f"not a mapping: {entry!r}"},
                    )
                    continue
                try:
                    templates.append(QuestTemplate.from_dict(entry, quest_type))
                except (DomainValidationError, AttributeError, KeyError, TypeError, ValueError) as exc:
                    logger.warning(
                        "Skipping invalid quest template",
                        extra={"template_id": entry.get("id"), "error": str(exc)},
                    )
        return cls(templates)

    @classmethod
    def from_config(cls, config: Type["ConfigManager"]) -> "QuestTemplateCatalog":
        mapping = config.get("quest_templates", {})
        if not isinstance(mapping, dict):
            raise ConfigurationError("quest_templates", "must be a mapping of type -> templates")
        catalog = cls.from_mapping(mapping)
        logger.info(
            "Quest template catalog loaded",
            extra={
                "template_count": len(catalog),
                "daily_templates": len(catalog.by_type(QuestType.DAILY)),
                "weekly_templates": len(catalog.by_type(QuestType.WEEKLY)),
            },
        )
        return catalog

    def get(self, template_id: str) -> Optional[QuestTemplate]:
        return self._by_id.get(template_id)

    def by_type(self, quest_type: QuestType) -> List[QuestTemplate]:
        return list(self._by_type[quest_type])

    def __iter__(self) -> Iterator[QuestTemplate]:
        return iter(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)
