"""
Unit tests for the Quest aggregate and its objectives.
"""

from datetime import datetime

import pytest

from questify.domain.models.base import DomainValidationError
from questify.domain.models.enums import ObjectiveType, QuestType
from questify.domain.models.quest import Quest, QuestObjective, QuestRewards
from tests.conftest import assert_domain_event_emitted

START = datetime(2024, 3, 6, 9, 0)
END = datetime(2024, 3, 6, 23, 59, 59, 999999)


def make_quest(*objectives: QuestObjective, **overrides) -> Quest:
    values = dict(
        quest_id="q-1",
        user_id="user-1",
        template_id="daily_complete_3",
        type=QuestType.DAILY,
        title="Warming Up",
        description="Complete 3 tasks today",
        objectives=list(objectives)
        or [QuestObjective(id="q-1-0", description="Complete 3", type=ObjectiveType.COMPLETE_TASKS, target=3)],
        rewards=QuestRewards(xp=50, coins=20),
        start_date=START,
        end_date=END,
    )
    values.update(overrides)
    return Quest(**values)


@pytest.mark.unit
@pytest.mark.domain
class TestQuestObjective:
    def test_current_clamped_to_target(self):
        # Arrange & Act
        objective = QuestObjective(id="o", description="", type=ObjectiveType.EARN_XP, target=100, current=250)

        # Assert
        assert objective.current == 100
        assert objective.completed

    def test_advance_never_exceeds_target(self):
        # Arrange
        objective = QuestObjective(id="o", description="", type=ObjectiveType.EARN_XP, target=100, current=90)

        # Act
        changed = objective.advance(35)

        # Assert
        assert changed is True
        assert objective.current == 100

    def test_raise_to_never_decreases(self):
        # Arrange
        objective = QuestObjective(id="o", description="", type=ObjectiveType.MAINTAIN_STREAK, target=7, current=4)

        # Act
        changed = objective.raise_to(1)

        # Assert
        assert changed is False
        assert objective.current == 4

    def test_target_must_be_positive(self):
        with pytest.raises(DomainValidationError):
            QuestObjective(id="o", description="", type=ObjectiveType.COMPLETE_TASKS, target=0)

    def test_dict_round_trip_keeps_filters(self):
        # Arrange
        objective = QuestObjective(
            id="o", description="Work", type=ObjectiveType.COMPLETE_CATEGORY, target=3, current=1, category="Work"
        )

        # Act
        restored = QuestObjective.from_dict(objective.to_dict())

        # Assert
        assert restored == objective

    def test_unknown_type_rejected(self):
        with pytest.raises(DomainValidationError):
            QuestObjective.from_dict({"id": "o", "type": "juggle", "target": 1})


@pytest.mark.unit
@pytest.mark.domain
class TestQuestStateMachine:
    def test_completes_only_when_every_objective_done(self):
        # Arrange
        quest = make_quest(
            QuestObjective(id="a", description="", type=ObjectiveType.COMPLETE_TASKS, target=1, current=1),
            QuestObjective(id="b", description="", type=ObjectiveType.EARN_XP, target=50, current=10),
        )

        # Act & Assert
        assert quest.mark_completed(START) is False
        quest.objectives[1].advance(40)
        assert quest.mark_completed(START) is True
        assert quest.completed_at == START
        assert assert_domain_event_emitted(quest, "quest.completed")

    def test_completion_transition_happens_once(self):
        # Arrange
        quest = make_quest(
            QuestObjective(id="a", description="", type=ObjectiveType.COMPLETE_TASKS, target=1, current=1)
        )
        quest.mark_completed(START)

        # Act & Assert
        assert quest.mark_completed(START) is False

    def test_claim_requires_completion(self):
        # Arrange
        quest = make_quest()

        # Act & Assert
        assert quest.is_claimable is False
        with pytest.raises(DomainValidationError):
            quest.mark_claimed(START)

    def test_claimed_quest_is_no_longer_claimable(self):
        # Arrange
        quest = make_quest(
            QuestObjective(id="a", description="", type=ObjectiveType.COMPLETE_TASKS, target=1, current=1)
        )
        quest.mark_completed(START)

        # Act
        quest.mark_claimed(START)

        # Assert
        assert quest.claimed
        assert quest.is_claimable is False

    def test_expiry_is_strictly_after_end(self):
        quest = make_quest()

        assert quest.is_expired(END) is False
        assert quest.is_expired(datetime(2024, 3, 7, 0, 0)) is True

    def test_needs_an_objective(self):
        with pytest.raises(DomainValidationError):
            Quest(
                quest_id="q-1",
                user_id="user-1",
                template_id="t",
                type=QuestType.DAILY,
                title="",
                description="",
                objectives=[],
                rewards=QuestRewards(),
                start_date=START,
                end_date=END,
            )

    def test_end_before_start_rejected(self):
        with pytest.raises(DomainValidationError):
            make_quest(end_date=datetime(2024, 3, 5))


@pytest.mark.unit
@pytest.mark.domain
class TestQuestRecords:
    def test_copy_preserves_state_without_events(self):
        # Arrange
        quest = make_quest(
            QuestObjective(id="a", description="", type=ObjectiveType.COMPLETE_TASKS, target=1, current=1)
        )
        quest.mark_completed(START)

        # Act
        clone = quest.copy()

        # Assert
        assert clone.to_record() == quest.to_record()
        assert clone.get_pending_events() == []

    def test_rewards_round_trip(self):
        rewards = QuestRewards(xp=500, coins=250, gems=10, achievement="marathoner")

        assert QuestRewards.from_dict(rewards.to_dict()) == rewards
