"""
Unit tests for LevelCalculator.

Covers the exponential level curve, level derivation from cumulative XP,
feature unlocks and the level progress bar.
"""

import pytest

from questboard.core.config.manager import ConfigManager
from questboard.core.exceptions import ConfigurationError
from questboard.modules.leveling import LevelCalculator, LevelRules


@pytest.mark.unit
class TestLevelCurve:
    """Test requirement and cumulative tables."""

    @pytest.mark.parametrize(
        "level,required",
        [(1, 100), (2, 150), (3, 225), (4, 337), (5, 506), (9, 2562)],
    )
    def test_requirement_per_level(self, level_calculator, level, required):
        assert level_calculator.xp_required_for_level(level) == required

    @pytest.mark.parametrize(
        "level,cumulative",
        [(1, 0), (2, 100), (3, 250), (4, 475), (5, 812), (6, 1318), (10, 7486)],
    )
    def test_cumulative_per_level(self, level_calculator, level, cumulative):
        assert level_calculator.cumulative_xp_for_level(level) == cumulative

    def test_cumulative_is_strictly_increasing(self, level_calculator):
        """Test every level costs more XP than the one before."""
        # Act
        values = [level_calculator.cumulative_xp_for_level(level) for level in range(1, 60)]

        # Assert
        assert all(later > earlier for earlier, later in zip(values, values[1:]))

    def test_level_below_one_is_treated_as_one(self, level_calculator):
        assert level_calculator.xp_required_for_level(0) == 100
        assert level_calculator.cumulative_xp_for_level(-4) == 0

    def test_levels_past_the_cap_keep_growing(self, level_calculator):
        """Test requirements beyond float range are computed without overflow."""
        # Act
        required = level_calculator.xp_required_for_level(2000)

        # Assert
        assert required > level_calculator.xp_required_for_level(1995) * 2


@pytest.mark.unit
class TestLevelForXP:
    """Test LevelCalculator.level_for_xp."""

    @pytest.mark.parametrize(
        "total_xp,level",
        [(0, 1), (99, 1), (100, 2), (249, 2), (250, 3), (474, 3), (475, 4), (7486, 10)],
    )
    def test_threshold_boundaries(self, level_calculator, total_xp, level):
        assert level_calculator.level_for_xp(total_xp) == level

    def test_negative_xp_is_level_one(self, level_calculator):
        assert level_calculator.level_for_xp(-50) == 1

    def test_level_is_capped(self, level_calculator):
        """Test absurd XP totals stop at the level cap."""
        # Arrange
        huge = level_calculator.cumulative_xp_for_level(500) * 10

        # Act
        level = level_calculator.level_for_xp(huge)

        # Assert
        assert level == 500

    def test_small_cap_from_rules(self):
        """Test a custom cap is honored."""
        # Arrange
        calculator = LevelCalculator(LevelRules(level_cap=3))

        # Act & Assert
        assert calculator.level_for_xp(10_000) == 3


@pytest.mark.unit
class TestCalculateLevelProgression:
    """Test LevelCalculator.calculate_level_progression."""

    def test_level_up_on_exact_threshold(self, level_calculator):
        """Test reaching 250 XP from level 1 lands on level 3."""
        # Act
        result = level_calculator.calculate_level_progression(250, 1)

        # Assert
        assert result.previous_level == 1
        assert result.new_level == 3
        assert result.leveled_up is True
        assert result.xp_required_for_current_level == 225
        assert result.xp_to_next_level == 225
        assert result.unlocked_features == ()

    def test_no_level_up_without_enough_xp(self, level_calculator):
        # Act
        result = level_calculator.calculate_level_progression(99, 1)

        # Assert
        assert result.new_level == 1
        assert result.leveled_up is False
        assert result.xp_to_next_level == 1

    def test_feature_unlocks_when_crossing_level_ten(self, level_calculator):
        """Test cumulative and newly unlocked features differ."""
        # Act
        result = level_calculator.calculate_level_progression(7486, 5)

        # Assert
        assert result.new_level == 10
        assert result.unlocked_features == (
            "Advanced Task Filtering",
            "Mentor Status",
            "Level 10 Badge",
        )
        assert result.newly_unlocked_features == ("Mentor Status", "Level 10 Badge")

    def test_no_features_reported_without_level_up(self, level_calculator):
        """Test stale stored levels above the derived level report nothing."""
        # Act
        result = level_calculator.calculate_level_progression(0, 5)

        # Assert
        assert result.new_level == 1
        assert result.leveled_up is False
        assert result.unlocked_features == ()
        assert result.newly_unlocked_features == ()


@pytest.mark.unit
class TestFeaturesForLevel:
    """Test LevelCalculator.features_for_level."""

    def test_level_ten_features(self, level_calculator):
        assert level_calculator.features_for_level(10) == (
            "Advanced Task Filtering",
            "Mentor Status",
            "Level 10 Badge",
        )

    def test_no_features_before_level_five(self, level_calculator):
        assert level_calculator.features_for_level(4) == ()

    def test_badges_repeat_every_ten_levels(self, level_calculator):
        # Act
        features = level_calculator.features_for_level(30)

        # Assert
        assert "Level 20 Badge" in features
        assert "Level 30 Badge" in features
        assert features[-1] == "Level 30 Badge"


@pytest.mark.unit
class TestLevelProgress:
    """Test LevelCalculator.level_progress."""

    def test_progress_bar_midway_through_level(self, level_calculator):
        # Act
        progress = level_calculator.level_progress(300, 1)

        # Assert
        assert progress.current_level == 3
        assert progress.current_xp == 300
        assert progress.xp_for_current_level == 250
        assert progress.xp_for_next_level == 475
        assert progress.progress_to_next_level == 22.22
        assert progress.xp_needed == 175

    def test_fresh_user_is_at_zero_percent(self, level_calculator):
        # Act
        progress = level_calculator.level_progress(0, 1)

        # Assert
        assert progress.current_level == 1
        assert progress.progress_to_next_level == 0.0
        assert progress.xp_needed == 100

    def test_xp_far_beyond_the_cap_is_a_full_bar(self, level_calculator):
        # Act
        progress = level_calculator.level_progress(10**400, 1)

        # Assert
        assert progress.current_level == level_calculator.rules.level_cap
        assert progress.progress_to_next_level == 100.0
        assert progress.xp_needed == 0


@pytest.mark.unit
class TestLevelRulesFromConfig:
    """Test building leveling rules from balance config."""

    def test_shipped_yaml_matches_defaults(self, config_manager):
        assert LevelRules.from_config(config_manager) == LevelRules()

    def test_growth_below_one_is_rejected(self):
        # Arrange
        config = ConfigManager()
        config.set_override("leveling.growth_rate", 0.9)

        # Act & Assert
        with pytest.raises(ConfigurationError):
            LevelRules.from_config(config)
