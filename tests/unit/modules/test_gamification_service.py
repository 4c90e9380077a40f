"""
Unit Tests for GamificationService
==================================

Test Coverage
-------------
- Player creation and lookup
- Task creation, editing and completion (persisted stats, version bumps)
- Quest loading, generation across days, claiming exactly once
- Currency and explicit achievement unlocks
- Login streak/comeback handling
- Events published only after the writes commit
- Failed writes roll back and publish nothing
- Concurrent operations on one player are serialized

Testing Strategy
----------------
- Real EventBus, in-memory store, fixed clock, seeded RNG
- Catalogs from conftest: three dailies and two weeklies, so a fresh
  player always gets every template
"""

import asyncio
from datetime import date, timedelta
from unittest.mock import ANY

import pytest

from questify.core.locks import LocalUserLocks
from questify.domain.models.enums import QuestType
from questify.domain.models.quest import NO_REWARDS, QuestRewards
from questify.domain.models.task import Task
from questify.modules.engine.service import GamificationService
from questify.modules.shared.exceptions import (
    InvalidOperationError,
    NotFoundError,
    ValidationError,
)
from tests.conftest import TODAY

USER = "user-1"


def work_task(task_id="t-1", **fields) -> Task:
    values = dict(category="Work", difficulty="medium", priority="high")
    values.update(fields)
    return Task.create(task_id, "Write report", **values)


async def quest_for(store, template_id):
    quests = await store.load_quests(USER)
    return next(quest for quest in quests if quest.template_id == template_id)


@pytest.fixture
async def player(service):
    return await service.create_player(USER)


# ============================================================================
# PLAYERS
# ============================================================================


@pytest.mark.unit
class TestPlayers:
    async def test_create_player_starts_with_wallet(self, service, store):
        # Act
        stats = await service.create_player(USER)

        # Assert
        assert (stats.level, stats.total_xp) == (1, 0)
        assert (stats.coins, stats.gems) == (100, 10)
        assert stats.version == 1
        stored = await store.load_stats(USER)
        assert stored.coins == 100
        assert stored.last_daily_reset == TODAY

    async def test_create_player_twice_rejected(self, service, player):
        with pytest.raises(InvalidOperationError):
            await service.create_player(USER)

    async def test_blank_user_id_rejected(self, service):
        with pytest.raises(ValidationError):
            await service.create_player("  ")

    async def test_get_stats_for_unknown_player(self, service):
        with pytest.raises(NotFoundError):
            await service.get_stats("ghost")

    async def test_stored_stats_are_repaired_on_load(self, service, store, stats_factory):
        # Arrange
        record = stats_factory("user-9", tasks_completed=-3, total_xp=150).to_record()
        record.update(version=1, level=1, current_xp=0)
        await store.save_stats("user-9", record)

        # Act
        stats = await service.get_stats("user-9")

        # Assert
        assert stats.tasks_completed == 0
        assert stats.level == 2
        assert stats.current_xp == 50

    async def test_created_event_published(self, service, captured):
        # Arrange
        created = captured("player.created")

        # Act
        await service.create_player(USER)

        # Assert
        assert created == [{"user_id": USER, "coins": 100, "gems": 10, "occurred_at": ANY}]


# ============================================================================
# TASKS
# ============================================================================


@pytest.mark.unit
class TestTasks:
    async def test_create_task_locks_rewards_and_counts(self, service, player):
        # Act
        task = await service.create_task(
            USER, "t-1", "Write report", category="Work", difficulty="medium", priority="high",
            subtasks_total=2,
        )

        # Assert
        assert (task.xp_reward, task.coin_reward) == (35, 12)
        stats = await service.get_stats(USER)
        assert stats.tasks_created == 1
        assert stats.subtasks_created == 2
        assert stats.version == 2

    async def test_create_task_with_unknown_difficulty(self, service, player):
        with pytest.raises(ValidationError):
            await service.create_task(USER, "t-1", "Bad", category="Work", difficulty="impossible")

        assert (await service.get_stats(USER)).version == 1

    async def test_update_task_recomputes_rewards(self, service, settings):
        # Arrange
        task = work_task()

        # Act
        edited = service.update_task(task, difficulty="epic")
        renamed = service.update_task(task, title="Renamed")

        # Assert
        expected = settings.rewards.rewards_for("epic", "high")
        assert (edited.xp_reward, edited.coin_reward) == (expected.xp, expected.coins)
        assert (renamed.xp_reward, renamed.coin_reward) == (35, 12)
        assert renamed.title == "Renamed"

    async def test_update_task_with_unknown_priority(self, service):
        with pytest.raises(ValidationError):
            service.update_task(work_task(), priority="urgent-ish")

    async def test_complete_task_persists_outcome(self, service, store, player):
        # Act
        outcome = await service.complete_task(USER, work_task())

        # Assert
        assert outcome.xp_gained == 35
        assert outcome.coins_gained == 12
        assert outcome.streak == 1
        assert outcome.unlocked_achievements == ["first_task"]

        stored = await store.load_stats(USER)
        assert stored.total_xp == 45
        assert stored.coins == 117
        assert stored.tasks_completed == 1
        assert stored.quests_completed == 1
        assert stored.version == 2

    async def test_complete_task_generates_and_progresses_quests(self, service, store, player):
        # Act
        await service.complete_task(USER, work_task())

        # Assert
        quests = await store.load_quests(USER)
        assert len(quests) == 5
        assert (await quest_for(store, "d_work_1")).completed is True
        assert (await quest_for(store, "d_xp_100")).objectives[0].current == 35

    async def test_fail_task_counts_failure(self, service, player):
        # Act
        outcome = await service.fail_task(USER, work_task())

        # Assert
        assert outcome.xp_gained == 0
        assert (await service.get_stats(USER)).tasks_failed == 1

    async def test_unknown_player_cannot_complete(self, service):
        with pytest.raises(NotFoundError):
            await service.complete_task("ghost", work_task())

    async def test_three_tasks_make_a_perfect_day(self, service, player):
        # Act
        outcomes = [await service.complete_task(USER, work_task(f"t-{i}")) for i in range(3)]

        # Assert
        stats = await service.get_stats(USER)
        assert stats.perfect_days == 1
        assert stats.quests_completed == 3
        assert outcomes[2].leveled_up is True
        assert "level_2" in outcomes[2].unlocked_achievements
        assert stats.level == 2


# ============================================================================
# QUESTS
# ============================================================================


@pytest.mark.unit
class TestQuests:
    async def test_load_quests_generates_once_per_day(self, service, store, player, captured):
        # Arrange
        generated = captured("quest.generated")

        # Act
        first = await service.load_quests(USER)
        second = await service.load_quests(USER)

        # Assert
        assert len(first) == 5
        assert {q.quest_id for q in first} == {q.quest_id for q in second}
        assert len(generated) == 5
        assert len(await store.load_quests(USER)) == 5

    async def test_next_day_replaces_dailies(self, service, store, player, clock):
        # Arrange
        first = await service.load_quests(USER)
        old_daily_ids = {q.quest_id for q in first if q.type is QuestType.DAILY}
        clock.advance(days=1)

        # Act
        second = await service.load_quests(USER)

        # Assert
        stored_ids = {q.quest_id for q in await store.load_quests(USER)}
        assert len(second) == 5
        assert stored_ids == {q.quest_id for q in second}
        assert old_daily_ids.isdisjoint(stored_ids)

    async def test_claim_grants_rewards_once(self, service, store, player):
        # Arrange
        await service.complete_task(USER, work_task())
        quest = await quest_for(store, "d_work_1")

        # Act
        first = await service.claim_quest_rewards(USER, quest.quest_id)
        second = await service.claim_quest_rewards(USER, quest.quest_id)

        # Assert
        assert first == QuestRewards(xp=30, coins=10, gems=1)
        assert second is NO_REWARDS
        stats = await service.get_stats(USER)
        assert (stats.total_xp, stats.coins, stats.gems) == (75, 127, 11)
        assert stats.version == 3
        assert (await quest_for(store, "d_work_1")).claimed is True
        assert (await quest_for(store, "d_xp_100")).objectives[0].current == 65

    async def test_claim_incomplete_quest_is_a_no_op(self, service, store, player):
        # Arrange
        quests = await service.load_quests(USER)
        quest = next(q for q in quests if q.template_id == "d_tasks_2")

        # Act
        rewards = await service.claim_quest_rewards(USER, quest.quest_id)

        # Assert
        assert rewards is NO_REWARDS
        assert (await service.get_stats(USER)).version == 1

    async def test_claimed_quest_leaves_active_list(self, service, store, player):
        # Arrange
        await service.complete_task(USER, work_task())
        quest = await quest_for(store, "d_work_1")
        await service.claim_quest_rewards(USER, quest.quest_id)

        # Act
        active = await service.get_active_quests(USER)

        # Assert
        assert quest.quest_id not in {q.quest_id for q in active}
        assert len(active) == 4

    async def test_start_special_quest(self, service, store, player):
        # Act
        quest = await service.start_special_quest(USER, "s_marathon")

        # Assert
        assert quest.type is QuestType.SPECIAL
        assert quest.end_date.date() == TODAY + timedelta(days=30)
        assert quest.quest_id in {q.quest_id for q in await store.load_quests(USER)}

    async def test_start_special_quest_unknown_template(self, service, player):
        with pytest.raises(NotFoundError):
            await service.start_special_quest(USER, "d_tasks_2")

    async def test_start_special_quest_unknown_player(self, service):
        with pytest.raises(NotFoundError):
            await service.start_special_quest("ghost", "s_marathon")

    async def test_start_special_quest_twice_keeps_one_instance(self, service, store, player, captured):
        # Arrange
        generated = captured("quest.generated")

        # Act
        first = await service.start_special_quest(USER, "s_marathon")
        second = await service.start_special_quest(USER, "s_marathon")

        # Assert
        assert second.quest_id == first.quest_id
        marathons = [q for q in await store.load_quests(USER) if q.template_id == "s_marathon"]
        assert len(marathons) == 1
        assert len(generated) == 1

    async def test_claimed_special_quest_cannot_restart_until_expired(self, service, store, player, clock):
        # Arrange
        quest = await service.start_special_quest(USER, "s_marathon")
        for index in range(5):
            await service.complete_task(USER, work_task(f"t-{index}"))
        first = await service.claim_quest_rewards(USER, quest.quest_id)

        # Act
        restarted = await service.start_special_quest(USER, "s_marathon")
        second = await service.claim_quest_rewards(USER, restarted.quest_id)

        # Assert
        assert first.xp == 500
        assert restarted.quest_id == quest.quest_id
        assert restarted.claimed is True
        assert second is NO_REWARDS

    async def test_special_quest_restarts_after_expiry(self, service, store, player, clock):
        # Arrange
        first = await service.start_special_quest(USER, "s_marathon")
        clock.advance(days=31)

        # Act
        second = await service.start_special_quest(USER, "s_marathon")

        # Assert
        assert second.quest_id != first.quest_id
        assert second.end_date.date() == TODAY + timedelta(days=61)


# ============================================================================
# STREAKS AND LOGIN
# ============================================================================


@pytest.mark.unit
class TestStreakAndLogin:
    async def test_update_streak_without_rewards(self, service, player):
        # Act
        outcome = await service.update_streak(USER)

        # Assert
        assert outcome.streak == 1
        assert outcome.xp_gained == 0
        stats = await service.get_stats(USER)
        assert stats.last_completed_date == TODAY

    async def test_streak_continues_across_days(self, service, player, clock):
        # Act
        await service.complete_task(USER, work_task("t-1"))
        clock.advance(days=1)
        await service.complete_task(USER, work_task("t-2"))
        clock.advance(days=1)
        outcome = await service.complete_task(USER, work_task("t-3"))

        # Assert
        assert outcome.streak == 3
        assert "streak_3" in outcome.unlocked_achievements
        assert outcome.xp_gained == 38

    async def test_login_after_long_absence_unlocks_comeback(self, service, player, clock):
        # Arrange
        await service.record_login(USER)
        clock.advance(days=10)

        # Act
        outcome = await service.record_login(USER)

        # Assert
        stats = await service.get_stats(USER)
        assert stats.last_absence_days == 10
        assert stats.last_login_date == TODAY + timedelta(days=10)
        assert "comeback" in outcome.unlocked_achievements


# ============================================================================
# CURRENCY AND ACHIEVEMENTS
# ============================================================================


@pytest.mark.unit
class TestCurrency:
    async def test_add_currency_returns_balance(self, service, player):
        assert await service.add_coins(USER, 25) == 125
        assert await service.add_gems(USER, 5) == 15

    async def test_spend_more_than_balance_changes_nothing(self, service, player):
        # Act
        spent = await service.spend_coins(USER, 150)

        # Assert
        assert spent is False
        stats = await service.get_stats(USER)
        assert stats.coins == 100
        assert stats.version == 1

    async def test_spend_deducts(self, service, player, captured):
        # Arrange
        spent_events = captured("currency.spent")

        # Act
        assert await service.spend_gems(USER, 4) is True

        # Assert
        assert (await service.get_stats(USER)).gems == 6
        assert spent_events[0]["balance"] == 6

    @pytest.mark.parametrize("amount", [0, -5, 2.5, True])
    async def test_spend_rejects_non_positive_amounts(self, service, player, amount):
        with pytest.raises(ValidationError):
            await service.spend_coins(USER, amount)


@pytest.mark.unit
class TestAchievements:
    async def test_unlock_exactly_once(self, service, player):
        # Act
        first = await service.unlock_achievement(USER, "streak_3")
        second = await service.unlock_achievement(USER, "streak_3")

        # Assert
        assert (first, second) == (True, False)
        stats = await service.get_stats(USER)
        assert stats.total_xp == 20
        assert stats.achievements_unlocked == ["streak_3"]

    async def test_unlock_unknown_achievement(self, service, player):
        with pytest.raises(NotFoundError):
            await service.unlock_achievement(USER, "nope")

    async def test_check_achievements_on_fresh_player(self, service, player):
        assert await service.check_achievements(USER) == []

    async def test_achievement_progress(self, service, player):
        # Arrange
        await service.complete_task(USER, work_task())

        # Act & Assert
        assert await service.achievement_progress(USER, "streak_3") == (1, 3)
        assert await service.achievement_progress(USER, "first_task") == (1, 1)

    async def test_presentation_helpers(self, service, stats_factory):
        assert service.level_title(1) == "Novice"
        assert service.level_progress_percent(stats_factory(total_xp=175)) == 50.0


# ============================================================================
# COMMIT ORDERING AND ATOMICITY
# ============================================================================


@pytest.mark.unit
class TestCommitSemantics:
    async def test_listeners_see_committed_stats(self, service, store, event_bus, player):
        # Arrange
        seen = []

        async def on_unlock(payload):
            seen.append((await store.load_stats(USER)).tasks_completed)

        event_bus.subscribe("achievement.unlocked", on_unlock)

        # Act
        await service.complete_task(USER, work_task())

        # Assert
        assert seen == [1]

    async def test_failed_write_rolls_back_and_publishes_nothing(
        self, service, store, player, captured, mocker
    ):
        # Arrange
        unlocked = captured("achievement.unlocked")
        mocker.patch.object(store, "save_quest", side_effect=RuntimeError("disk full"))

        # Act
        with pytest.raises(RuntimeError):
            await service.complete_task(USER, work_task())

        # Assert
        stats = await store.load_stats(USER)
        assert stats.tasks_completed == 0
        assert stats.version == 1
        assert unlocked == []

    async def test_concurrent_completions_are_serialized(self, service, player):
        # Act
        await asyncio.gather(
            service.complete_task(USER, work_task("t-1")),
            service.complete_task(USER, work_task("t-2")),
        )

        # Assert
        stats = await service.get_stats(USER)
        assert stats.tasks_completed == 2
        assert stats.achievements_unlocked.count("first_task") == 1
        assert stats.version == 3

    async def test_concurrent_claims_grant_once(self, service, store, player):
        # Arrange
        await service.complete_task(USER, work_task())
        quest = await quest_for(store, "d_work_1")

        # Act
        results = await asyncio.gather(
            service.claim_quest_rewards(USER, quest.quest_id),
            service.claim_quest_rewards(USER, quest.quest_id),
        )

        # Assert
        granted = [rewards for rewards in results if not rewards.is_empty]
        assert granted == [QuestRewards(xp=30, coins=10, gems=1)]
        stats = await service.get_stats(USER)
        assert (stats.total_xp, stats.coins, stats.gems) == (75, 127, 11)
        assert stats.version == 3

    async def test_events_go_to_the_injected_bus(
        self, store, settings, achievement_catalog, template_catalog, clock, rng, mock_event_bus
    ):
        # Arrange
        service = GamificationService(
            store,
            settings=settings,
            achievements=achievement_catalog,
            quest_templates=template_catalog,
            event_bus=mock_event_bus,
            locks=LocalUserLocks(timeout=2),
            clock=clock,
            rng=rng,
        )

        # Act
        await service.create_player(USER)

        # Assert
        mock_event_bus.publish.assert_awaited_once_with(
            "player.created",
            {"user_id": USER, "coins": 100, "gems": 10, "occurred_at": ANY},
        )

    async def test_dates_in_store_are_dates(self, service, store, player):
        await service.complete_task(USER, work_task())

        stored = await store.load_stats(USER)

        assert isinstance(stored.last_completed_date, date)
