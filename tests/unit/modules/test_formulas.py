"""
Unit Tests for Game Formulas
============================

Test Coverage
-------------
- Level curve thresholds and the exact level walk
- Task reward lookup (difficulty XP + priority bonus, coins)
- Streak bonus thresholds and bonus XP rounding
- Level titles
"""

from fractions import Fraction

import pytest

from questify.modules.shared.exceptions import ValidationError
from questify.modules.shared.formulas import (
    DEFAULT_CURVE,
    LevelCurve,
    RewardTable,
    StreakBonusTable,
    level_from_total_xp,
    level_title,
    streak_bonus,
    task_rewards,
    xp_for_level,
)


# ============================================================================
# LEVEL CURVE
# ============================================================================


@pytest.mark.unit
class TestLevelCurve:
    """Level N needs floor(100 * 1.5^(N-1)) XP."""

    def test_first_levels_follow_curve(self):
        # Arrange & Act
        steps = [xp_for_level(level) for level in (1, 2, 3, 4, 5)]

        # Assert
        assert steps == [100, 150, 225, 337, 506]

    def test_level_below_one_rejected(self):
        # Arrange & Act & Assert
        with pytest.raises(ValidationError):
            xp_for_level(0)

    def test_total_xp_for_level_accumulates_steps(self):
        # Arrange & Act & Assert
        assert DEFAULT_CURVE.total_xp_for_level(1) == 0
        assert DEFAULT_CURVE.total_xp_for_level(2) == 100
        assert DEFAULT_CURVE.total_xp_for_level(3) == 250
        assert DEFAULT_CURVE.total_xp_for_level(4) == 475

    def test_zero_xp_is_level_one(self):
        # Arrange & Act
        progress = level_from_total_xp(0)

        # Assert
        assert (progress.level, progress.current_xp, progress.xp_to_next_level) == (1, 0, 100)

    def test_just_below_threshold_stays_on_level(self):
        # Arrange & Act
        progress = level_from_total_xp(99)

        # Assert
        assert progress.level == 1
        assert progress.current_xp == 99

    def test_exact_threshold_starts_next_level(self):
        """A total of exactly 100 XP is level 2 with 0 XP into it."""
        # Arrange & Act
        progress = level_from_total_xp(100)

        # Assert
        assert progress.level == 2
        assert progress.current_xp == 0
        assert progress.xp_to_next_level == 150

    def test_progress_matches_cumulative_thresholds(self):
        """Every threshold total maps back to its level with 0 XP into it."""
        for level in range(1, 40):
            # Arrange
            total = DEFAULT_CURVE.total_xp_for_level(level)

            # Act
            progress = DEFAULT_CURVE.progress_for(total)

            # Assert
            assert progress.level == level
            assert progress.current_xp == 0
            assert progress.xp_to_next_level == DEFAULT_CURVE.xp_for_level(level)

    def test_current_xp_always_below_next_level(self):
        for total in (0, 1, 99, 100, 249, 250, 10_000, 1_234_567):
            # Act
            progress = level_from_total_xp(total)

            # Assert
            assert 0 <= progress.current_xp < progress.xp_to_next_level

    def test_negative_total_rejected(self):
        # Arrange & Act & Assert
        with pytest.raises(ValidationError):
            level_from_total_xp(-1)

    def test_progress_percent(self):
        # Arrange
        progress = level_from_total_xp(175)

        # Act & Assert
        assert progress.level == 2
        assert progress.percent == 50.0

    def test_multiplier_parsed_exactly(self):
        # Arrange & Act
        curve = LevelCurve(base_xp=100, multiplier=1.1)

        # Assert
        assert curve.multiplier == Fraction(11, 10)
        assert curve.xp_for_level(2) == 110

    def test_multiplier_must_exceed_one(self):
        # Arrange & Act & Assert
        with pytest.raises(ValidationError) as exc_info:
            LevelCurve(base_xp=100, multiplier=1)

        assert exc_info.value.field == "multiplier"


# ============================================================================
# TASK REWARDS
# ============================================================================


@pytest.mark.unit
class TestTaskRewards:
    def test_medium_high_priority(self):
        # Arrange & Act
        rewards = task_rewards("medium", "high")

        # Assert
        assert rewards.xp == 35
        assert rewards.coins == 12

    @pytest.mark.parametrize(
        "difficulty,xp,coins",
        [
            ("trivial", 5, 2),
            ("easy", 10, 5),
            ("medium", 25, 12),
            ("hard", 50, 25),
            ("epic", 100, 50),
            ("legendary", 200, 100),
        ],
    )
    def test_difficulty_table_without_priority(self, difficulty, xp, coins):
        # Arrange & Act
        rewards = task_rewards(difficulty, "none")

        # Assert
        assert (rewards.xp, rewards.coins) == (xp, coins)

    def test_priority_bonus_does_not_change_coins(self):
        # Arrange & Act
        plain = task_rewards("hard", "none")
        critical = task_rewards("hard", "critical")

        # Assert
        assert critical.xp == plain.xp + 20
        assert critical.coins == plain.coins

    def test_unknown_difficulty_rejected(self):
        # Arrange & Act & Assert
        with pytest.raises(ValidationError) as exc_info:
            task_rewards("impossible", "none")

        assert exc_info.value.field == "difficulty"

    def test_unknown_priority_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            task_rewards("easy", "urgent")

        assert exc_info.value.field == "priority"

    def test_custom_table(self):
        # Arrange
        table = RewardTable(
            difficulty_xp={"easy": 7}, priority_bonus={"none": 0, "high": 3}, coin_divisor=3
        )

        # Act
        rewards = table.rewards_for("easy", "high")

        # Assert
        assert (rewards.xp, rewards.coins) == (10, 2)


# ============================================================================
# STREAK BONUS
# ============================================================================


@pytest.mark.unit
class TestStreakBonus:
    @pytest.mark.parametrize(
        "streak,bonus",
        [
            (0, 0.0),
            (2, 0.0),
            (3, 0.10),
            (6, 0.10),
            (7, 0.25),
            (14, 0.50),
            (30, 0.75),
            (60, 1.00),
            (100, 1.50),
            (364, 1.50),
            (365, 2.00),
            (1000, 2.00),
        ],
    )
    def test_highest_threshold_applies(self, streak, bonus):
        # Act & Assert
        assert streak_bonus(streak) == bonus

    def test_bonus_xp_is_floored(self):
        """35 XP at a 7-day streak grants floor(35 * 1.25) = 43."""
        # Arrange
        table = StreakBonusTable()

        # Act & Assert
        assert table.apply(35, 7) == 43

    def test_bonus_rounding_is_exact(self):
        """10 * 1.1 must be 11, not 10 through float drift."""
        # Arrange
        table = StreakBonusTable()

        # Act & Assert
        assert table.apply(10, 3) == 11

    def test_from_mapping_sorts_thresholds(self):
        # Arrange
        table = StreakBonusTable.from_mapping({"10": "0.5", 2: 0.2})

        # Act & Assert
        assert table.as_dict() == {2: 0.2, 10: 0.5}
        assert table.apply(100, 5) == 120

    def test_from_mapping_rejects_negative_bonus(self):
        with pytest.raises(ValidationError):
            StreakBonusTable.from_mapping({3: -0.1})


# ============================================================================
# TITLES
# ============================================================================


@pytest.mark.unit
class TestLevelTitle:
    @pytest.mark.parametrize(
        "level,title",
        [(1, "Novice"), (4, "Novice"), (5, "Apprentice"), (12, "Initiate"), (100, "Legend"), (250, "Legend")],
    )
    def test_bracket_lookup(self, level, title):
        assert level_title(level) == title
