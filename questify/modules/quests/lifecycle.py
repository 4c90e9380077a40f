"""
Quest Lifecycle Manager.

Purpose
-------
Generate daily/weekly quests from templates, advance objective progress
from gameplay events, detect completion and gate reward claiming.

Lifecycle
---------
    generated -> active (incomplete) -> active (completed, unclaimed) -> claimed

A quest past its `end_date` that is not claimed is expired. Expired quests
are deleted at the next generation and their rewards are forfeited, with no
partial credit.

Design Notes
------------
- Pure with respect to I/O: methods mutate the `Quest` objects they are
  given and return what changed; the service persists the result.
- Template selection uses an injected `random.Random`, so a seeded
  generator yields the same quests (ids included) every run.
- Generation only tops up what is missing: today's dailies and this ISO
  week's weeklies are never generated twice.
"""

from __future__ import annotations

import random
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from questify.core.clock import start_of_week
from questify.core.logging.logger import get_logger
from questify.domain.models.enums import GameEnum, ObjectiveType, QuestType
from questify.domain.models.quest import NO_REWARDS, Quest, QuestObjective, QuestRewards
from questify.modules.quests.catalog import QuestTemplate, QuestTemplateCatalog
from questify.modules.shared import constants

logger = get_logger(__name__)


class QuestAction(GameEnum):
    """Gameplay events quests listen to."""

    TASK_COMPLETED = "task_completed"
    XP_GAINED = "xp_gained"
    STREAK_UPDATED = "streak_updated"


def quest_window(
    quest_type: QuestType,
    now: datetime,
    special_duration_days: int = constants.SPECIAL_QUEST_DURATION_DAYS,
) -> Tuple[datetime, datetime]:
    """
    (start, end) for a quest generated at `now`.

    Daily quests end at the last instant of the day, weekly quests at the
    last instant of the ISO week's Sunday; special and story quests run
    `special_duration_days` days.
    """
    today = now.date()
    if quest_type is QuestType.DAILY:
        end_day = today
    elif quest_type is QuestType.WEEKLY:
        end_day = start_of_week(today) + timedelta(days=6)
    else:
        end_day = today + timedelta(days=special_duration_days)
    return now, datetime.combine(end_day, time.max)


def is_active(quest: Quest, now: datetime) -> bool:
    """Visible to the player: not claimed and not expired."""
    return not quest.claimed and not quest.is_expired(now)


@dataclass
class GenerationResult:
    kept: List[Quest] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    created: List[Quest] = field(default_factory=list)

    @property
    def quests(self) -> List[Quest]:
        return self.kept + self.created

    @property
    def changed(self) -> bool:
        return bool(self.deleted or self.created)


class QuestLifecycle:
    """
    Usage
    -----
        lifecycle = QuestLifecycle(catalog, rng=random.Random(42))
        result = lifecycle.generate("user-1", stored_quests, clock.now())
        completed = lifecycle.apply_progress(result.quests, QuestAction.TASK_COMPLETED,
                                             {"category": "Work", "priority": "high"}, now)
    """

    def __init__(
        self,
        catalog: QuestTemplateCatalog,
        *,
        rng: Optional[random.Random] = None,
        daily_count: int = constants.DAILY_QUEST_COUNT,
        weekly_count: int = constants.WEEKLY_QUEST_COUNT,
        special_duration_days: int = constants.SPECIAL_QUEST_DURATION_DAYS,
    ) -> None:
        self.catalog = catalog
        self.rng = rng or random.Random()
        self.daily_count = daily_count
        self.weekly_count = weekly_count
        self.special_duration_days = special_duration_days

    # ========================================================================
    # GENERATION
    # ========================================================================

    def instantiate(self, template: QuestTemplate, user_id: str, now: datetime) -> Quest:
        """Fresh quest for `template`, every objective at 0."""
        start, end = quest_window(template.type, now, self.special_duration_days)
        quest_id = str(uuid.UUID(int=self.rng.getrandbits(128), version=4))
        quest = Quest(
            quest_id=quest_id,
            user_id=user_id,
            template_id=template.id,
            type=template.type,
            title=template.title,
            description=template.description,
            icon=template.icon,
            objectives=[
                QuestObjective(
                    id=f"{quest_id}-{index}",
                    description=objective_template.description,
                    type=objective_template.type,
                    target=objective_template.target,
                    category=objective_template.category,
                    priority=objective_template.priority,
                )
                for index, objective_template in enumerate(template.objectives)
            ],
            rewards=template.rewards,
            start_date=start,
            end_date=end,
        )
        quest.add_domain_event(
            "quest.generated",
            {
                "user_id": user_id,
                "quest_id": quest_id,
                "template_id": template.id,
                "quest_type": str(template.type),
                "end_date": end.isoformat(),
            },
        )
        return quest

    def pick(self, quest_type: QuestType, count: int) -> List[QuestTemplate]:
        """`count` distinct templates of `quest_type`, in random order."""
        templates = self.catalog.by_type(quest_type)
        return self.rng.sample(templates, min(count, len(templates)))

    def generate(self, user_id: str, quests: Sequence[Quest], now: datetime) -> GenerationResult:
        """
        Drop expired quests and top up today's dailies and this week's weeklies.

        Quests whose `end_date` fell before today are deleted whether or not
        they were claimed. Dailies are generated only if none of the kept
        quests is a daily started today, weeklies only if none is a weekly
        started this ISO week.
        """
        today = now.date()
        today_start = datetime.combine(today, time.min)
        monday = start_of_week(today)

        result = GenerationResult()
        for quest in quests:
            if quest.end_date < today_start:
                result.deleted.append(quest.quest_id)
            else:
                result.kept.append(quest)

        if not self._has_daily_for(result.kept, today):
            for template in self.pick(QuestType.DAILY, self.daily_count):
                result.created.append(self.instantiate(template, user_id, now))

        if not self._has_weekly_for(result.kept, monday):
            for template in self.pick(QuestType.WEEKLY, self.weekly_count):
                result.created.append(self.instantiate(template, user_id, now))

        if result.changed:
            logger.info(
                "Quests generated",
                extra={
                    "deleted_count": len(result.deleted),
                    "created_count": len(result.created),
                    "created_templates": [q.template_id for q in result.created],
                },
            )
        return result

    @staticmethod
    def _has_daily_for(quests: Sequence[Quest], today: date) -> bool:
        return any(q.type is QuestType.DAILY and q.start_date.date() == today for q in quests)

    @staticmethod
    def _has_weekly_for(quests: Sequence[Quest], monday: date) -> bool:
        return any(q.type is QuestType.WEEKLY and q.start_date.date() >= monday for q in quests)

    def start_special(
        self,
        template_id: str,
        user_id: str,
        now: datetime,
        existing: Sequence[Quest] = (),
    ) -> Optional[Quest]:
        """
        Instantiate a special or story quest.

        An unexpired instance of the template in `existing` is returned as-is,
        claimed or not; a new one starts only after it expires.
        """
        template = self.catalog.get(template_id)
        if template is None or template.type not in (QuestType.SPECIAL, QuestType.STORY):
            return None
        for quest in existing:
            if quest.template_id == template_id and not quest.is_expired(now):
                return quest
        return self.instantiate(template, user_id, now)

    # ========================================================================
    # PROGRESS
    # ========================================================================

    def apply_progress(
        self,
        quests: Sequence[Quest],
        action: QuestAction,
        payload: Mapping[str, Any],
        now: datetime,
    ) -> List[Quest]:
        """
        Advance matching objectives of every active, incomplete quest.

        Returns the quests that became completed because of this event.
        """
        newly_completed: List[Quest] = []
        for quest in quests:
            if quest.completed or not is_active(quest, now):
                continue
            for objective in quest.objectives:
                if not objective.completed:
                    progress_objective(objective, action, payload)
            if quest.mark_completed(now):
                newly_completed.append(quest)
        return newly_completed

    # ========================================================================
    # CLAIMING
    # ========================================================================

    def claim(self, quest: Optional[Quest], now: datetime) -> QuestRewards:
        """
        Mark a completed quest claimed and return its rewards.

        Returns zero rewards, and changes nothing, for a missing, incomplete,
        already-claimed or expired quest.
        """
        if quest is None or not quest.is_claimable or quest.is_expired(now):
            return NO_REWARDS
        quest.mark_claimed(now)
        return quest.rewards


def progress_objective(
    objective: QuestObjective, action: QuestAction, payload: Mapping[str, Any]
) -> bool:
    """Apply one event to one objective. Returns True if progress changed."""
    kind = objective.type

    if action is QuestAction.TASK_COMPLETED:
        if kind is ObjectiveType.COMPLETE_TASKS:
            return objective.advance(1)
        if kind is ObjectiveType.COMPLETE_CATEGORY:
            if payload.get("category") == objective.category:
                return objective.advance(1)
            return False
        if kind is ObjectiveType.COMPLETE_PRIORITY:
            if str(payload.get("priority")) == objective.priority:
                return objective.advance(1)
            return False
        return False

    if action is QuestAction.XP_GAINED:
        if kind is ObjectiveType.EARN_XP:
            return objective.advance(int(payload.get("amount", 0)))
        return False

    if action is QuestAction.STREAK_UPDATED:
        if kind is ObjectiveType.MAINTAIN_STREAK:
            return objective.raise_to(int(payload.get("streak", 0)))
        return False

    return False


def summarize(quests: Sequence[Quest], now: datetime) -> Dict[str, int]:
    """Counts for dashboards and log lines."""
    return {
        "active": sum(1 for q in quests if is_active(q, now) and not q.completed),
        "claimable": sum(1 for q in quests if q.is_claimable and not q.is_expired(now)),
        "claimed": sum(1 for q in quests if q.claimed),
        "expired": sum(1 for q in quests if not q.claimed and q.is_expired(now)),
    }
