"""
Quest aggregate and its parts.

State machine per quest:

    active (incomplete) -> active (completed, unclaimed) -> claimed

Independently, a quest whose `end_date` has passed and which is not claimed
is expired; it is deleted at the next generation and its reward is lost.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from questify.domain.models.base import (
    AggregateRoot,
    DomainValidationError,
    validate_non_negative,
    validate_not_empty,
    validate_positive,
)
from questify.domain.models.enums import ObjectiveType, QuestType


@dataclass
class QuestObjective:
    """One countable sub-goal; `current` stays within [0, target]."""

    id: str
    description: str
    type: ObjectiveType
    target: int
    current: int = 0
    category: Optional[str] = None
    priority: Optional[str] = None

    def __post_init__(self) -> None:
        validate_positive(self.target, "target")
        self.current = min(max(0, self.current), self.target)

    @property
    def completed(self) -> bool:
        return self.current >= self.target

    def advance(self, amount: int) -> bool:
        """Add progress, clamped to the target. Returns True if it changed."""
        before = self.current
        self.current = min(max(0, self.current + amount), self.target)
        return self.current != before

    def raise_to(self, value: int) -> bool:
        """Set progress to `value` if that is an increase (never decreases)."""
        clamped = min(max(0, value), self.target)
        if clamped <= self.current:
            return False
        self.current = clamped
        return True

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "description": self.description,
            "type": str(self.type),
            "target": self.target,
            "current": self.current,
        }
        if self.category is not None:
            data["category"] = self.category
        if self.priority is not None:
            data["priority"] = self.priority
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuestObjective":
        objective_type = ObjectiveType.parse(data.get("type"))
        if objective_type is None:
            raise DomainValidationError(
                f"Unknown objective type '{data.get('type')}'", field="type"
            )
        return cls(
            id=str(data["id"]),
            description=str(data.get("description", "")),
            type=objective_type,
            target=int(data["target"]),
            current=int(data.get("current", 0)),
            category=data.get("category"),
            priority=data.get("priority"),
        )


@dataclass(frozen=True)
class QuestRewards:
    xp: int = 0
    coins: int = 0
    gems: int = 0
    achievement: Optional[str] = None

    def __post_init__(self) -> None:
        validate_non_negative(self.xp, "xp")
        validate_non_negative(self.coins, "coins")
        validate_non_negative(self.gems, "gems")

    @property
    def is_empty(self) -> bool:
        return self.xp == 0 and self.coins == 0 and self.gems == 0 and self.achievement is None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"xp": self.xp, "coins": self.coins, "gems": self.gems}
        if self.achievement:
            data["achievement"] = self.achievement
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuestRewards":
        return cls(
            xp=int(data.get("xp", 0)),
            coins=int(data.get("coins", 0)),
            gems=int(data.get("gems", 0) or 0),
            achievement=data.get("achievement") or None,
        )


NO_REWARDS = QuestRewards()


@dataclass(eq=False)
class Quest(AggregateRoot):
    quest_id: str
    user_id: str
    template_id: str
    type: QuestType
    title: str
    description: str
    objectives: List[QuestObjective]
    rewards: QuestRewards
    start_date: datetime
    end_date: datetime
    completed: bool = False
    completed_at: Optional[datetime] = None
    claimed: bool = False
    claimed_at: Optional[datetime] = None
    icon: str = ""

    def __post_init__(self) -> None:
        validate_not_empty(self.quest_id, "quest_id")
        validate_not_empty(self.user_id, "user_id")
        if not self.objectives:
            raise DomainValidationError("A quest needs at least one objective", field="objectives")
        if self.end_date < self.start_date:
            raise DomainValidationError("end_date precedes start_date", field="end_date")
        super().__init__(self.quest_id)

    @property
    def all_objectives_completed(self) -> bool:
        return all(objective.completed for objective in self.objectives)

    @property
    def is_claimable(self) -> bool:
        return self.completed and not self.claimed

    def is_expired(self, now: datetime) -> bool:
        return now > self.end_date

    def mark_completed(self, now: datetime) -> bool:
        """Flip to completed once every objective is done. Returns True on transition."""
        if self.completed or not self.all_objectives_completed:
            return False
        self.completed = True
        self.completed_at = now
        self.add_domain_event(
            "quest.completed",
            {
                "user_id": self.user_id,
                "quest_id": self.quest_id,
                "quest_type": str(self.type),
                "title": self.title,
            },
        )
        return True

    def mark_claimed(self, now: datetime) -> None:
        if not self.is_claimable:
            raise DomainValidationError(
                f"Quest {self.quest_id} is not claimable", field="claimed"
            )
        self.claimed = True
        self.claimed_at = now
        self.add_domain_event(
            "quest.claimed",
            {
                "user_id": self.user_id,
                "quest_id": self.quest_id,
                "rewards": self.rewards.to_dict(),
            },
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "quest_id": self.quest_id,
            "user_id": self.user_id,
            "template_id": self.template_id,
            "type": str(self.type),
            "title": self.title,
            "description": self.description,
            "icon": self.icon,
            "objectives": [objective.to_dict() for objective in self.objectives],
            "rewards": self.rewards.to_dict(),
            "start_date": self.start_date,
            "end_date": self.end_date,
            "completed": self.completed,
            "completed_at": self.completed_at,
            "claimed": self.claimed,
            "claimed_at": self.claimed_at,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Quest":
        quest_type = QuestType.parse(record["type"])
        if quest_type is None:
            raise DomainValidationError(f"Unknown quest type '{record['type']}'", field="type")
        return cls(
            quest_id=record["quest_id"],
            user_id=record["user_id"],
            template_id=record.get("template_id", ""),
            type=quest_type,
            title=record.get("title", ""),
            description=record.get("description", ""),
            icon=record.get("icon", ""),
            objectives=[QuestObjective.from_dict(o) for o in record["objectives"]],
            rewards=QuestRewards.from_dict(record.get("rewards") or {}),
            start_date=record["start_date"],
            end_date=record["end_date"],
            completed=bool(record.get("completed", False)),
            completed_at=record.get("completed_at"),
            claimed=bool(record.get("claimed", False)),
            claimed_at=record.get("claimed_at"),
        )

    def copy(self) -> "Quest":
        return Quest.from_record(self.to_record())
