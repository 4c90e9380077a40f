"""
GamificationService: async facade over the reward engine.

Purpose
-------
Expose the engine's public operations (complete a task, claim a quest,
unlock an achievement, update a streak, ...) with the guarantees the pure
router cannot give on its own:

- Atomic per user: every mutating operation holds the user's lock for the
  whole read-modify-write, and the store's version check rejects a write
  based on stale stats.
- All-or-nothing persistence: the stats update and every quest write of
  one operation go through a single `store.atomic()` block.
- Notifications after commit: domain events are published on the
  `EventBus` only once the writes have landed.

Design Notes
------------
- Rules live in `EventRouter` and below; this class only loads, calls the
  router, persists the diff and publishes.
- Stats are sanitized on load; repaired fields are written back with the
  next update of that player.
- Quests are refreshed (expired ones dropped, missing dailies/weeklies
  generated) before any event that progresses them.

Usage
-----
    service = GamificationService(InMemoryGameStore(), clock=FixedClock(now))
    await service.create_player("user-1")
    task = await service.create_task("user-1", "t-1", "Write report",
                                     category="Work", difficulty="medium", priority="high")
    outcome = await service.complete_task("user-1", task)
"""

from __future__ import annotations

import random
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Type

from questify.core.clock import Clock, SystemClock
from questify.core.config.manager import ConfigManager
from questify.core.event.bus import EventBus
from questify.core.locks import UserLockProvider, build_user_locks
from questify.core.logging.logger import LogContext, get_logger
from questify.domain.models.base import DomainEvent, DomainValidationError
from questify.domain.models.player import PlayerStats
from questify.domain.models.quest import NO_REWARDS, Quest, QuestRewards
from questify.domain.models.task import Task
from questify.modules.achievements.catalog import AchievementCatalog
from questify.modules.achievements.evaluator import AchievementEvaluator
from questify.modules.engine.events import (
    GameEvent,
    PlayerLoggedIn,
    TaskCompleted,
    TaskCreated,
    TaskFailed,
)
from questify.modules.engine.router import EngineOutcome, EventRouter
from questify.modules.persistence.store import GameStore
from questify.modules.quests.catalog import QuestTemplateCatalog
from questify.modules.quests.lifecycle import GenerationResult, QuestLifecycle, is_active
from questify.modules.shared.base_service import BaseService
from questify.modules.shared.exceptions import (
    InvalidOperationError,
    NotFoundError,
    ValidationError,
)
from questify.modules.shared.settings import GamificationSettings


class GamificationService(BaseService):
    def __init__(
        self,
        store: GameStore,
        *,
        settings: Optional[GamificationSettings] = None,
        achievements: Optional[AchievementCatalog] = None,
        quest_templates: Optional[QuestTemplateCatalog] = None,
        event_bus: Optional[EventBus] = None,
        locks: Optional[UserLockProvider] = None,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
        config_manager: Type[ConfigManager] = ConfigManager,
    ) -> None:
        super().__init__(event_bus or EventBus(config_manager), get_logger(__name__))
        self.store = store
        self.settings = settings or GamificationSettings.from_config(config_manager)
        self.achievements = achievements or AchievementCatalog.from_config(config_manager)
        self.quest_templates = quest_templates or QuestTemplateCatalog.from_config(config_manager)
        self.locks = locks or build_user_locks()
        self.clock = clock or SystemClock()

        self.evaluator = AchievementEvaluator(
            self.achievements,
            curve=self.settings.curve,
            categories=self.settings.categories,
        )
        self.lifecycle = QuestLifecycle(
            self.quest_templates,
            rng=rng,
            daily_count=self.settings.daily_quest_count,
            weekly_count=self.settings.weekly_quest_count,
            special_duration_days=self.settings.special_quest_duration_days,
        )
        self.router = EventRouter(self.settings, self.evaluator, self.lifecycle)

    @property
    def events(self) -> EventBus:
        return self._events

    # ========================================================================
    # PLAYERS
    # ========================================================================

    async def create_player(self, user_id: str) -> PlayerStats:
        """
        Create a level-1 player with the starting wallet.

        Raises:
            InvalidOperationError: If the player already exists
        """
        self.validate_not_blank(user_id, "user_id")
        async with LogContext(user_id=user_id, operation="create_player"):
            async with self.locks.hold(user_id):
                if await self.store.load_stats(user_id) is not None:
                    raise InvalidOperationError("create_player", "Player already exists")

                outcome = self.router.create_player(user_id, self.clock.now())
                await self._commit(None, outcome)

            self.log_operation(
                "create_player",
                coins=outcome.stats.coins,
                gems=outcome.stats.gems,
                unlocked_achievements=outcome.unlocked_achievements,
            )
            return outcome.stats

    async def get_stats(self, user_id: str) -> PlayerStats:
        """
        Raises:
            NotFoundError: If the player does not exist
        """
        _, stats = await self._load_stats(user_id)
        return stats

    # ========================================================================
    # TASKS
    # ========================================================================

    async def create_task(
        self,
        user_id: str,
        task_id: str,
        title: str,
        *,
        category: str,
        difficulty: str,
        priority: str = "none",
        due_date: Optional[date] = None,
        subtasks_total: int = 0,
        subtasks_completed: int = 0,
    ) -> Task:
        """
        Build a task with its rewards locked in and count it for the player.

        Raises:
            ValidationError: For an unknown difficulty/priority or bad fields
        """
        try:
            task = Task.create(
                task_id,
                title,
                category=category,
                difficulty=difficulty,
                priority=priority,
                due_date=due_date,
                subtasks_total=subtasks_total,
                subtasks_completed=subtasks_completed,
                rewards=self.settings.rewards,
            )
        except DomainValidationError as exc:
            raise ValidationError(exc.field or "task", str(exc)) from exc

        await self._apply(user_id, "create_task", TaskCreated(task), refresh_quests=False)
        return task

    def update_task(
        self,
        task: Task,
        *,
        difficulty: Optional[str] = None,
        priority: Optional[str] = None,
        **changes: Any,
    ) -> Task:
        """
        Edit a task; a new difficulty or priority recomputes its rewards.

        Raises:
            ValidationError: For an unknown difficulty/priority or bad fields
        """
        try:
            return task.with_updates(
                difficulty=difficulty,
                priority=priority,
                rewards=self.settings.rewards,
                **changes,
            )
        except (DomainValidationError, TypeError) as exc:
            raise ValidationError(getattr(exc, "field", None) or "task", str(exc)) from exc

    async def complete_task(self, user_id: str, task: Task) -> EngineOutcome:
        """Grant the task's rewards, update streak, quests and achievements."""
        return await self._apply(user_id, "complete_task", TaskCompleted(task))

    async def fail_task(self, user_id: str, task: Task) -> EngineOutcome:
        return await self._apply(user_id, "fail_task", TaskFailed(task), refresh_quests=False)

    async def record_login(self, user_id: str) -> EngineOutcome:
        """Record today's login; long absences can unlock comeback achievements."""
        return await self._apply(user_id, "record_login", PlayerLoggedIn())

    async def update_streak(self, user_id: str) -> EngineOutcome:
        """Fold a completion today into the streak without granting task rewards."""
        async with LogContext(user_id=user_id, operation="update_streak"):
            async with self.locks.hold(user_id):
                raw, stats = await self._load_stats(user_id)
                quests, generation, events = await self._refresh_quests(user_id)
                outcome = self.router.update_streak(stats, quests, self.clock.now())
                await self._commit(raw, outcome, generation, events)

            self.log_operation("update_streak", **outcome.summary())
            return outcome

    # ========================================================================
    # CURRENCY
    # ========================================================================

    async def add_coins(self, user_id: str, amount: int) -> int:
        """Returns the new coin balance."""
        self.validate_positive_int(amount, "amount")
        outcome = await self._mutate(
            user_id, "add_coins", lambda stats: self.router.add_currency(stats, coins=amount)
        )
        return outcome.stats.coins if outcome else 0

    async def add_gems(self, user_id: str, amount: int) -> int:
        """Returns the new gem balance."""
        self.validate_positive_int(amount, "amount")
        outcome = await self._mutate(
            user_id, "add_gems", lambda stats: self.router.add_currency(stats, gems=amount)
        )
        return outcome.stats.gems if outcome else 0

    async def spend_coins(self, user_id: str, amount: int) -> bool:
        """
        Spend coins. Returns False, changing nothing, when funds are short.

        Raises:
            ValidationError: If amount is not a positive integer
        """
        self.validate_positive_int(amount, "amount")
        outcome = await self._mutate(
            user_id, "spend_coins", lambda stats: self.router.spend_currency(stats, "coins", amount)
        )
        return outcome is not None

    async def spend_gems(self, user_id: str, amount: int) -> bool:
        self.validate_positive_int(amount, "amount")
        outcome = await self._mutate(
            user_id, "spend_gems", lambda stats: self.router.spend_currency(stats, "gems", amount)
        )
        return outcome is not None

    # ========================================================================
    # ACHIEVEMENTS
    # ========================================================================

    async def unlock_achievement(self, user_id: str, achievement_id: str) -> bool:
        """
        Unlock one achievement and grant its reward, at most once.

        Returns False if it was already unlocked.

        Raises:
            NotFoundError: If the achievement id is not in the catalog
        """
        if achievement_id not in self.achievements:
            raise NotFoundError("Achievement", achievement_id)
        outcome = await self._mutate(
            user_id,
            "unlock_achievement",
            lambda stats: self.router.unlock_achievement(stats, achievement_id),
        )
        return bool(outcome and achievement_id in outcome.unlocked_achievements)

    async def check_achievements(self, user_id: str) -> List[str]:
        """Full re-scan; returns ids unlocked by this call."""
        outcome = await self._mutate(user_id, "check_achievements", self.router.check_achievements)
        return list(outcome.unlocked_achievements) if outcome else []

    async def achievement_progress(self, user_id: str, achievement_id: str) -> Tuple[int, int]:
        achievement = self.achievements.get(achievement_id)
        if achievement is None:
            raise NotFoundError("Achievement", achievement_id)
        stats = await self.get_stats(user_id)
        return self.evaluator.progress(stats, achievement)

    # ========================================================================
    # QUESTS
    # ========================================================================

    async def load_quests(self, user_id: str) -> List[Quest]:
        """Drop expired quests, generate missing ones, return the player's quests."""
        async with LogContext(user_id=user_id, operation="load_quests"):
            async with self.locks.hold(user_id):
                quests, generation, events = await self._refresh_quests(user_id)
                if generation.changed:
                    async with self.store.atomic():
                        for quest in generation.created:
                            await self.store.save_quest(quest)
                        for quest_id in generation.deleted:
                            await self.store.delete_quest(quest_id)
                    await self.emit_domain_events(events)
            return quests

    async def get_active_quests(self, user_id: str) -> List[Quest]:
        """Quests still visible to the player: not claimed, not expired."""
        now = self.clock.now()
        return [quest for quest in await self.load_quests(user_id) if is_active(quest, now)]

    async def start_special_quest(self, user_id: str, template_id: str) -> Quest:
        """
        Start a special or story quest, or return the player's live instance.

        Raises:
            NotFoundError: If no special or story template has this id
        """
        async with LogContext(user_id=user_id, operation="start_special_quest"):
            async with self.locks.hold(user_id):
                await self._load_stats(user_id)
                stored = await self.store.load_quests(user_id)
                quest = self.lifecycle.start_special(
                    template_id, user_id, self.clock.now(), stored
                )
                if quest is None:
                    raise NotFoundError("QuestTemplate", template_id)
                if any(q.quest_id == quest.quest_id for q in stored):
                    return quest
                events = quest.clear_domain_events()
                async with self.store.atomic():
                    await self.store.save_quest(quest)
            await self.emit_domain_events(events)
            self.log_operation("start_special_quest", template_id=template_id)
            return quest

    async def claim_quest_rewards(self, user_id: str, quest_id: str) -> QuestRewards:
        """
        Claim a completed quest's rewards, at most once.

        Claiming a missing, incomplete, already-claimed or expired quest
        returns zero rewards and changes nothing.
        """
        async with LogContext(user_id=user_id, operation="claim_quest_rewards"):
            async with self.locks.hold(user_id):
                raw, stats = await self._load_stats(user_id)
                quests = await self.store.load_quests(user_id)
                outcome = self.router.claim_quest(stats, quests, quest_id, self.clock.now())
                if not outcome.changed_quests:
                    self.log.info(
                        "Quest claim was a no-op",
                        extra={"quest_id": quest_id},
                    )
                    return NO_REWARDS
                await self._commit(raw, outcome)

            self.log_operation("claim_quest_rewards", quest_id=quest_id, **outcome.summary())
            return outcome.rewards

    # ========================================================================
    # PRESENTATION
    # ========================================================================

    def level_progress_percent(self, stats: PlayerStats) -> float:
        return self.settings.curve.progress_for(stats.total_xp).percent

    def level_title(self, level: int) -> str:
        return self.settings.title_for(level)

    # ========================================================================
    # INTERNALS
    # ========================================================================

    async def _load_stats(self, user_id: str) -> Tuple[PlayerStats, PlayerStats]:
        """(as stored, sanitized working copy)."""
        raw = await self.store.load_stats(user_id)
        if raw is None:
            raise NotFoundError("Player", user_id)
        return raw, raw.copy().sanitize(self.settings.curve)

    async def _refresh_quests(
        self, user_id: str
    ) -> Tuple[List[Quest], GenerationResult, List[DomainEvent]]:
        stored = await self.store.load_quests(user_id)
        generation = self.lifecycle.generate(user_id, stored, self.clock.now())
        events: List[DomainEvent] = []
        for quest in generation.created:
            events.extend(quest.clear_domain_events())
        return generation.quests, generation, events

    async def _apply(
        self,
        user_id: str,
        operation: str,
        event: GameEvent,
        *,
        refresh_quests: bool = True,
    ) -> EngineOutcome:
        async with LogContext(user_id=user_id, operation=operation):
            async with self.locks.hold(user_id):
                raw, stats = await self._load_stats(user_id)
                generation: Optional[GenerationResult] = None
                events: List[DomainEvent] = []
                if refresh_quests:
                    quests, generation, events = await self._refresh_quests(user_id)
                else:
                    quests = await self.store.load_quests(user_id)

                outcome = self.router.apply(stats, quests, event, self.clock.now())
                await self._commit(raw, outcome, generation, events)

            self.log_operation(operation, **outcome.summary())
            return outcome

    async def _mutate(self, user_id: str, operation: str, change: Any) -> Optional[EngineOutcome]:
        """Run a stats-only router call under the lock; None means no change."""
        async with LogContext(user_id=user_id, operation=operation):
            async with self.locks.hold(user_id):
                raw, stats = await self._load_stats(user_id)
                outcome = change(stats)
                if outcome is None:
                    self.log_operation(operation, applied=False)
                    return None
                await self._commit(raw, outcome)

            self.log_operation(operation, applied=True, **outcome.summary())
            return outcome

    async def _commit(
        self,
        raw: Optional[PlayerStats],
        outcome: EngineOutcome,
        generation: Optional[GenerationResult] = None,
        extra_events: Sequence[DomainEvent] = (),
    ) -> None:
        """Persist the outcome in one atomic block, then publish its events."""
        stats = outcome.stats
        if raw is None:
            update: Dict[str, Any] = stats.to_record()
            base_version = 0
        else:
            update = stats.diff(raw)
            base_version = raw.version

        quest_ids = {quest.quest_id for quest in outcome.changed_quests}
        if generation is not None:
            quest_ids.update(quest.quest_id for quest in generation.created)
        quests_to_save = [quest for quest in outcome.quests if quest.quest_id in quest_ids]
        deleted = generation.deleted if generation is not None else []

        update.pop("version", None)
        if update:
            stats.version = base_version + 1
            update["version"] = stats.version

        async with self.store.atomic():
            if update:
                await self.store.save_stats(stats.user_id, update)
            for quest in quests_to_save:
                await self.store.save_quest(quest)
            for quest_id in deleted:
                await self.store.delete_quest(quest_id)

        await self.emit_domain_events(_ordered(extra_events, outcome.events))


def _ordered(*groups: Iterable[DomainEvent]) -> List[DomainEvent]:
    return [event for group in groups for event in group]
