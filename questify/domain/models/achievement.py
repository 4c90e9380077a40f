"""
Achievement catalog entry.

Achievements are static configuration. Per user, only the unlocked id set on
`PlayerStats` is persisted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from questify.domain.models.base import (
    DomainValidationError,
    validate_non_negative,
    validate_not_empty,
)
from questify.domain.models.enums import Rarity, RequirementKind


@dataclass(frozen=True)
class Requirement:
    """
    `type` is kept as the raw catalog string so an unrecognized kind can be
    carried (and reported) instead of failing the whole catalog.
    """

    type: str
    value: int = 0
    category: Optional[str] = None

    @property
    def kind(self) -> Optional[RequirementKind]:
        return RequirementKind.parse(self.type)


@dataclass(frozen=True)
class Achievement:
    id: str
    title: str
    description: str
    requirement: Requirement
    xp_reward: int = 0
    coin_reward: int = 0
    rarity: Rarity = Rarity.COMMON
    category: str = "general"
    icon: str = ""
    secret: bool = False

    def __post_init__(self) -> None:
        validate_not_empty(self.id, "id")
        validate_non_negative(self.xp_reward, "xp_reward")
        validate_non_negative(self.coin_reward, "coin_reward")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Achievement":
        requirement = data.get("requirement") or {}
        if not isinstance(requirement, dict) or "type" not in requirement:
            raise DomainValidationError(
                f"Achievement '{data.get('id')}' has no requirement type",
                field="requirement",
            )
        rarity = Rarity.parse(data.get("rarity", Rarity.COMMON))
        if rarity is None:
            raise DomainValidationError(
                f"Achievement '{data.get('id')}' has unknown rarity '{data.get('rarity')}'",
                field="rarity",
            )
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", data["id"])),
            description=str(data.get("description", "")),
            requirement=Requirement(
                type=str(requirement["type"]),
                value=int(requirement.get("value", 0)),
                category=requirement.get("category"),
            ),
            xp_reward=int(data.get("xp_reward", 0)),
            coin_reward=int(data.get("coin_reward", 0)),
            rarity=rarity,
            category=str(data.get("category", "general")),
            icon=str(data.get("icon", "")),
            secret=bool(data.get("secret", False)),
        )
