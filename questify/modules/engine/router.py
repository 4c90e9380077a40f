"""
Stat/Event Router.

Purpose
-------
The single entry point that turns gameplay events into stat, quest and
achievement changes, in a fixed order.

Task completion order
---------------------
1. Roll daily/weekly counters over if the day or week changed
2. Read the reward locked on the task
3. Update the streak, then check streak achievements
4. Grant XP with the post-update streak bonus and add coins, then check
   level/XP achievements
5. Increment task, category, difficulty, priority and timing counters
6. Re-scan every achievement
7. Fan out `task_completed`, `xp_gained` and `streak_updated` to quests
8. Count newly completed quests, record a perfect day, re-scan

Achievement and quest checks therefore always see post-update stats, and
the streak bonus is known before XP is granted.

Design Notes
------------
- Pure: inputs are copied, nothing is persisted or published. The outcome
  carries the new stats, the quests, which quests changed and the domain
  events for the caller to persist and publish.
- Every method takes `now` explicitly; the service reads it from its clock.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from questify.core.clock import start_of_week
from questify.core.logging.logger import get_logger
from questify.domain.models.base import DomainEvent
from questify.domain.models.enums import Difficulty, Priority, QuestType, RequirementKind
from questify.domain.models.player import PlayerStats
from questify.domain.models.quest import NO_REWARDS, Quest, QuestRewards
from questify.domain.models.task import Task
from questify.modules.achievements.evaluator import AchievementEvaluator
from questify.modules.engine.events import (
    GameEvent,
    PlayerLoggedIn,
    TaskCompleted,
    TaskCreated,
    TaskFailed,
)
from questify.modules.progression.streak import record_completion
from questify.modules.quests.lifecycle import QuestAction, QuestLifecycle
from questify.modules.shared.settings import GamificationSettings

logger = get_logger(__name__)

STREAK_KINDS = {RequirementKind.STREAK, RequirementKind.STREAK_RECOVERED}
XP_KINDS = {RequirementKind.LEVEL, RequirementKind.TOTAL_XP, RequirementKind.DAILY_XP}
HIGH_PRIORITIES = {Priority.HIGH, Priority.CRITICAL}
DIFFICULTY_COUNTERS = {
    Difficulty.HARD: "hard_tasks_completed",
    Difficulty.EPIC: "epic_tasks_completed",
    Difficulty.LEGENDARY: "legendary_tasks_completed",
}


@dataclass
class EngineOutcome:
    """Result of one engine operation."""

    stats: PlayerStats
    quests: List[Quest] = field(default_factory=list)
    changed_quests: List[Quest] = field(default_factory=list)
    xp_gained: int = 0
    bonus_xp: int = 0
    coins_gained: int = 0
    gems_gained: int = 0
    leveled_up: bool = False
    new_level: int = 1
    streak: int = 0
    unlocked_achievements: List[str] = field(default_factory=list)
    completed_quests: List[str] = field(default_factory=list)
    rewards: QuestRewards = NO_REWARDS
    events: List[DomainEvent] = field(default_factory=list)

    def summary(self) -> Dict[str, Any]:
        return {
            "xp_gained": self.xp_gained,
            "bonus_xp": self.bonus_xp,
            "coins_gained": self.coins_gained,
            "gems_gained": self.gems_gained,
            "leveled_up": self.leveled_up,
            "new_level": self.new_level,
            "streak": self.streak,
            "unlocked_achievements": list(self.unlocked_achievements),
            "completed_quests": list(self.completed_quests),
        }


class _Session:
    """Working copies for one operation, plus the outcome being built."""

    def __init__(self, stats: PlayerStats, quests: Sequence[Quest]) -> None:
        self.stats = stats.copy()
        self.quests = [quest.copy() for quest in quests]
        self._before = {quest.quest_id: quest.to_record() for quest in quests}
        self._start_level = stats.level
        self.outcome = EngineOutcome(stats=self.stats, quests=self.quests)

    def finish(self) -> EngineOutcome:
        outcome = self.outcome
        outcome.changed_quests = [
            quest for quest in self.quests if self._before.get(quest.quest_id) != quest.to_record()
        ]
        outcome.leveled_up = self.stats.level > self._start_level
        outcome.new_level = self.stats.level
        outcome.streak = self.stats.current_streak
        outcome.events = self.stats.clear_domain_events()
        for quest in self.quests:
            outcome.events.extend(quest.clear_domain_events())
        return outcome


class EventRouter:
    """
    Usage
    -----
        router = EventRouter(settings, evaluator, lifecycle)
        outcome = router.apply(stats, quests, TaskCompleted(task), now)
    """

    def __init__(
        self,
        settings: GamificationSettings,
        evaluator: AchievementEvaluator,
        lifecycle: QuestLifecycle,
    ) -> None:
        self.settings = settings
        self.evaluator = evaluator
        self.lifecycle = lifecycle

    # ========================================================================
    # ENTRY POINTS
    # ========================================================================

    def apply(
        self,
        stats: PlayerStats,
        quests: Sequence[Quest],
        event: GameEvent,
        now: datetime,
    ) -> EngineOutcome:
        session = _Session(stats, quests)
        self._roll_periods(session, now)

        if isinstance(event, TaskCompleted):
            self._complete_task(session, event.task, now)
        elif isinstance(event, TaskCreated):
            session.stats.tasks_created += 1
            session.stats.subtasks_created += event.task.subtasks_total
            self._scan(session)
        elif isinstance(event, TaskFailed):
            session.stats.tasks_failed += 1
            self._scan(session)
        elif isinstance(event, PlayerLoggedIn):
            self._login(session, now)
        else:
            raise TypeError(f"Unsupported game event: {type(event).__name__}")

        return session.finish()

    def create_player(self, user_id: str, now: datetime) -> EngineOutcome:
        stats = PlayerStats.new(
            user_id,
            coins=self.settings.starting_coins,
            gems=self.settings.starting_gems,
            now=now,
            curve=self.settings.curve,
        )
        session = _Session(stats, [])
        # Keep the creation event; copy() drops pending events
        for event in stats.clear_domain_events():
            session.stats.add_domain_event(event.event_name, event.payload)
        self._scan(session)
        return session.finish()

    def update_streak(
        self, stats: PlayerStats, quests: Sequence[Quest], now: datetime
    ) -> EngineOutcome:
        """Fold a completion on `now`'s date into the streak on its own."""
        session = _Session(stats, quests)
        self._roll_periods(session, now)
        self._update_streak(session, now)
        self._fan_out(
            session, QuestAction.STREAK_UPDATED, {"streak": session.stats.current_streak}, now
        )
        self._finish_quests(session, now)
        return session.finish()

    def claim_quest(
        self,
        stats: PlayerStats,
        quests: Sequence[Quest],
        quest_id: str,
        now: datetime,
    ) -> EngineOutcome:
        """
        Claim a quest's rewards at most once.

        A missing, incomplete, claimed or expired quest yields zero rewards
        and no changes.
        """
        session = _Session(stats, quests)
        quest = next((q for q in session.quests if q.quest_id == quest_id), None)
        eligible = quest is not None and quest.is_claimable and not quest.is_expired(now)
        rewards = self.lifecycle.claim(quest, now)
        session.outcome.rewards = rewards
        if not eligible or quest is None:
            return session.finish()

        self._roll_periods(session, now)
        stats = session.stats
        # Flat reward: no streak bonus
        stats.grant_xp(rewards.xp, self.settings.curve, source=f"quest:{quest.template_id}")
        stats.add_coins(rewards.coins)
        stats.add_gems(rewards.gems)
        session.outcome.xp_gained = rewards.xp
        session.outcome.coins_gained = rewards.coins
        session.outcome.gems_gained = rewards.gems

        if rewards.achievement:
            if rewards.achievement in self.evaluator.catalog:
                if self.evaluator.unlock(stats, rewards.achievement):
                    session.outcome.unlocked_achievements.append(rewards.achievement)
            else:
                logger.warning(
                    "Quest reward names an unknown achievement",
                    extra={"quest_id": quest.quest_id, "achievement_id": rewards.achievement},
                )

        if rewards.xp:
            self._fan_out(session, QuestAction.XP_GAINED, {"amount": rewards.xp}, now)
        self._finish_quests(session, now)
        return session.finish()

    def unlock_achievement(self, stats: PlayerStats, achievement_id: str) -> EngineOutcome:
        """Unlock one achievement explicitly (exactly once), then re-scan."""
        session = _Session(stats, [])
        if self.evaluator.unlock(session.stats, achievement_id):
            session.outcome.unlocked_achievements.append(achievement_id)
        self._scan(session)
        return session.finish()

    def check_achievements(self, stats: PlayerStats) -> EngineOutcome:
        session = _Session(stats, [])
        self._scan(session)
        return session.finish()

    def add_currency(self, stats: PlayerStats, *, coins: int = 0, gems: int = 0) -> EngineOutcome:
        session = _Session(stats, [])
        session.stats.add_coins(coins)
        session.stats.add_gems(gems)
        session.outcome.coins_gained = coins
        session.outcome.gems_gained = gems
        self._scan(session)
        return session.finish()

    def spend_currency(self, stats: PlayerStats, currency: str, amount: int) -> Optional[EngineOutcome]:
        """Returns None (and nothing changes) when funds are insufficient."""
        session = _Session(stats, [])
        if currency == "coins":
            spent = session.stats.spend_coins(amount)
        elif currency == "gems":
            spent = session.stats.spend_gems(amount)
        else:
            raise ValueError(f"Unknown currency '{currency}'")
        if not spent:
            return None
        return session.finish()

    # ========================================================================
    # STEPS
    # ========================================================================

    def _roll_periods(self, session: _Session, now: datetime) -> None:
        today = now.date()
        session.stats.roll_periods(today, start_of_week(today))

    def _update_streak(self, session: _Session, now: datetime) -> None:
        record_completion(session.stats, now.date())
        self._scan(session, STREAK_KINDS)

    def _complete_task(self, session: _Session, task: Task, now: datetime) -> None:
        stats = session.stats
        today = now.date()

        base_xp, coins = task.xp_reward, task.coin_reward

        self._update_streak(session, now)

        granted = self.settings.streak_bonuses.apply(base_xp, stats.current_streak)
        stats.grant_xp(granted, self.settings.curve, source=f"task:{task.id}")
        stats.add_coins(coins)
        session.outcome.xp_gained = granted
        session.outcome.bonus_xp = granted - base_xp
        session.outcome.coins_gained = coins
        self._scan(session, XP_KINDS)

        self._count_task(stats, task, granted, now)
        stats.add_domain_event(
            "task.completed",
            {
                "user_id": stats.user_id,
                "task_id": task.id,
                "category": task.category,
                "difficulty": str(task.difficulty),
                "priority": str(task.priority),
                "xp_gained": granted,
                "bonus_xp": granted - base_xp,
                "coins_gained": coins,
            },
        )
        self._scan(session)

        self._fan_out(
            session,
            QuestAction.TASK_COMPLETED,
            {
                "category": task.category,
                "priority": str(task.priority),
                "difficulty": str(task.difficulty),
            },
            now,
        )
        if granted:
            self._fan_out(session, QuestAction.XP_GAINED, {"amount": granted}, now)
        self._fan_out(session, QuestAction.STREAK_UPDATED, {"streak": stats.current_streak}, now)
        self._finish_quests(session, now)

        logger.debug(
            "Task completion routed",
            extra={"task_id": task.id, "completed_on": today.isoformat(), **session.outcome.summary()},
        )

    @staticmethod
    def _count_task(stats: PlayerStats, task: Task, granted: int, now: datetime) -> None:
        today = now.date()
        stats.tasks_completed += 1
        stats.daily_tasks_completed += 1
        stats.weekly_tasks_completed += 1
        stats.record_category(task.category, granted)

        counter = DIFFICULTY_COUNTERS.get(task.difficulty)
        if counter:
            setattr(stats, counter, getattr(stats, counter) + 1)
        if task.priority in HIGH_PRIORITIES:
            stats.high_priority_tasks_completed += 1
        if task.due_date is not None:
            if today < task.due_date:
                stats.early_completions += 1
            elif today > task.due_date:
                stats.late_completions += 1
        if today.weekday() >= 5:
            stats.weekend_tasks_completed += 1
        if task.is_perfect:
            stats.perfect_tasks += 1

    def _login(self, session: _Session, now: datetime) -> None:
        stats = session.stats
        today = now.date()
        if stats.last_login_date is not None:
            stats.last_absence_days = max(0, (today - stats.last_login_date).days)
        else:
            stats.last_absence_days = 0
        stats.last_login_date = today
        self._scan(session)

    def _fan_out(
        self,
        session: _Session,
        action: QuestAction,
        payload: Mapping[str, Any],
        now: datetime,
    ) -> None:
        completed = self.lifecycle.apply_progress(session.quests, action, payload, now)
        for quest in completed:
            session.stats.quests_completed += 1
            if quest.type is QuestType.DAILY:
                session.stats.daily_quests_completed += 1
            session.outcome.completed_quests.append(quest.quest_id)

    def _finish_quests(self, session: _Session, now: datetime) -> None:
        self._record_perfect_day(session, now)
        self._scan(session)

    @staticmethod
    def _record_perfect_day(session: _Session, now: datetime) -> None:
        """Count the day once, when every one of today's daily quests is done."""
        today = now.date()
        stats = session.stats
        if stats.last_perfect_day == today:
            return
        todays = [
            q for q in session.quests if q.type is QuestType.DAILY and q.start_date.date() == today
        ]
        if todays and all(q.completed for q in todays):
            stats.perfect_days += 1
            stats.last_perfect_day = today

    def _scan(self, session: _Session, kinds: Optional[set] = None) -> None:
        session.outcome.unlocked_achievements.extend(self.evaluator.scan(session.stats, kinds))
