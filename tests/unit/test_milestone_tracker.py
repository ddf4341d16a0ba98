"""
Unit tests for MilestoneTracker.

Tests milestone awarding (exactly once, including concurrent checks), the
progression summary, level progress, and category recommendations against
the in-memory store and badge catalog.
"""

import asyncio
from datetime import timedelta

import pytest

from questboard.domain.models import EarnedBadge, WorkCategory
from questboard.modules.shared.constants import CLAIM_MILESTONE
from questboard.modules.shared.exceptions import ValidationError
from tests.fixtures.factories import FROZEN_NOW, make_snapshot


@pytest.mark.unit
@pytest.mark.asyncio
class TestCheckMilestoneCompletions:
    """Test MilestoneTracker.check_milestone_completions."""

    async def test_unknown_user_has_no_milestones(self, tracker, store, published_events):
        # Act
        completed = await tracker.check_milestone_completions("nobody")

        # Assert
        assert completed == []
        assert await store.get_snapshot("nobody") is None
        assert published_events == []

    async def test_exact_hit_is_awarded_and_applied(self, tracker, store, published_events):
        """Test landing on 250 XP awards xp-250 and its 25 XP reward."""
        # Arrange
        store.seed(make_snapshot("u-1", xp_points=250, current_level=3))

        # Act
        completed = await tracker.check_milestone_completions("u-1")

        # Assert
        assert [m.id for m in completed] == ["xp-250"]
        stats = await store.get_snapshot("u-1")
        assert stats.xp_points == 275
        assert stats.current_level == 3
        assert stats.version == 1
        assert store.has_claim("u-1", CLAIM_MILESTONE, "xp-250")

        events = [e for e in published_events if e["event"] == "progression.milestones_completed"]
        assert len(events) == 1
        assert events[0]["payload"]["milestone_ids"] == ["xp-250"]
        assert events[0]["payload"]["xp"] == 25

    async def test_replay_awards_nothing(self, tracker, store):
        """Test a second check after an award is a no-op."""
        # Arrange
        store.seed(make_snapshot("u-1", xp_points=250, current_level=3))
        await tracker.check_milestone_completions("u-1")

        # Act
        second = await tracker.check_milestone_completions("u-1")

        # Assert
        assert second == []
        assert (await store.get_snapshot("u-1")).xp_points == 275

    async def test_claimed_milestone_is_not_reawarded_on_exact_value(self, tracker, store):
        """Test a milestone whose reward leaves the value on target is awarded once."""
        # Arrange
        store.seed(make_snapshot("u-1", trust_score=10))

        # Act
        first = await tracker.check_milestone_completions("u-1")
        second = await tracker.check_milestone_completions("u-1")

        # Assert
        assert [m.id for m in first] == ["trust-10"]
        assert second == []
        assert (await store.get_snapshot("u-1")).trust_score == 10

    async def test_concurrent_checks_award_once(self, tracker, store):
        """Test concurrent checks for one user award each milestone exactly once."""
        # Arrange
        store.seed(make_snapshot("u-1", xp_points=250, current_level=3))

        # Act
        results = await asyncio.gather(
            *(tracker.check_milestone_completions("u-1") for _ in range(5))
        )

        # Assert
        awarded = [m.id for result in results for m in result]
        assert awarded == ["xp-250"]
        assert (await store.get_snapshot("u-1")).xp_points == 275

    async def test_milestone_xp_can_level_up(self, tracker, store, published_events):
        """Test the stored level follows XP added by milestone rewards."""
        # Arrange
        store.seed(make_snapshot("u-1", xp_points=1000, current_level=5))

        # Act
        completed = await tracker.check_milestone_completions("u-1")

        # Assert
        assert [m.id for m in completed] == ["xp-1000", "level-5"]
        stats = await store.get_snapshot("u-1")
        assert stats.xp_points == 1350
        assert stats.current_level == 6
        assert any(e["event"] == "progression.leveled_up" for e in published_events)

    async def test_blank_user_id_is_rejected(self, tracker):
        with pytest.raises(ValidationError):
            await tracker.check_milestone_completions("  ")


@pytest.mark.unit
@pytest.mark.asyncio
class TestProgressionSummary:
    """Test MilestoneTracker.get_user_progression_summary."""

    async def test_unknown_user_has_no_summary(self, tracker):
        assert await tracker.get_user_progression_summary("nobody") is None

    async def test_summary_groups_milestones(self, tracker, store):
        # Arrange
        store.seed(
            make_snapshot(
                "u-1", xp_points=300, current_level=3, categories={WorkCategory.FREELANCE: 5}
            )
        )

        # Act
        summary = await tracker.get_user_progression_summary("u-1")

        # Assert
        assert [m.id for m in summary.completed_milestones] == [
            "xp-100",
            "xp-250",
            "tasks-1",
            "tasks-5",
            "freelance-5",
        ]
        assert all(not m.completed and m.progress > 0 for m in summary.active_milestones)
        assert "xp-500" in {m.id for m in summary.active_milestones}
        assert [m.id for m in summary.upcoming_milestones] == [
            "trust-10",
            "trust-25",
            "trust-50",
            "trust-100",
            "trust-200",
        ]

    async def test_summary_category_cards_and_level(self, tracker, store):
        # Arrange
        store.seed(
            make_snapshot(
                "u-1", xp_points=300, current_level=3, categories={WorkCategory.FREELANCE: 5}
            )
        )

        # Act
        summary = await tracker.get_user_progression_summary("u-1")

        # Assert
        cards = {card.category: card for card in summary.category_progress}
        assert set(cards) == set(WorkCategory)
        assert cards[WorkCategory.FREELANCE].tasks_completed == 5
        assert cards[WorkCategory.FREELANCE].total_xp == 500
        assert cards[WorkCategory.FREELANCE].next_milestone.id == "freelance-10"
        assert cards[WorkCategory.CORPORATE].next_milestone.id == "corporate-5"
        assert summary.level_progress.current_level == 3
        assert summary.level_progress.xp_needed == 175

    async def test_summary_badges(self, tracker, store, badge_catalog):
        """Test recent badges use a 7 day window and next badges skip held ones."""
        # Arrange
        store.seed(make_snapshot("u-1", categories={WorkCategory.FREELANCE: 5}))
        badge_catalog.seed(
            "u-1",
            [
                EarnedBadge("first-steps", "First Steps", FROZEN_NOW - timedelta(days=2)),
                EarnedBadge("helper", "Helper", FROZEN_NOW - timedelta(days=30)),
            ],
        )

        # Act
        summary = await tracker.get_user_progression_summary("u-1")

        # Assert
        assert summary.total_badges == 2
        assert [b.badge_id for b in summary.recent_badges] == ["first-steps"]
        assert [b.id for b in summary.next_badges] == ["freelance-novice"]

    async def test_recent_badges_are_newest_first(self, tracker, store, badge_catalog):
        """Test the recent badge view keeps the newest five when more are recent."""
        # Arrange
        store.seed(make_snapshot("u-1"))
        badge_catalog.seed(
            "u-1",
            [
                EarnedBadge(f"b{days}", f"Badge {days}", FROZEN_NOW - timedelta(days=days))
                for days in range(6, -1, -1)
            ],
        )

        # Act
        summary = await tracker.get_user_progression_summary("u-1")

        # Assert
        assert [b.badge_id for b in summary.recent_badges] == ["b0", "b1", "b2", "b3", "b4"]
        assert summary.total_badges == 7

    async def test_completed_milestones_are_capped(self, tracker, store):
        # Arrange
        store.seed(
            make_snapshot(
                "u-1",
                xp_points=100_000,
                trust_score=1600,
                current_level=10,
                categories={WorkCategory.COMMUNITY: 100},
            )
        )

        # Act
        summary = await tracker.get_user_progression_summary("u-1")

        # Assert
        assert len(summary.completed_milestones) == 10
        assert summary.completed_milestones[-1].id == "community-100"


@pytest.mark.unit
@pytest.mark.asyncio
class TestLevelProgressView:
    """Test MilestoneTracker.get_level_progress."""

    async def test_unknown_user(self, tracker):
        assert await tracker.get_level_progress("nobody") is None

    async def test_known_user(self, tracker, store):
        # Arrange
        store.seed(make_snapshot("u-1", xp_points=300, current_level=3))

        # Act
        progress = await tracker.get_level_progress("u-1")

        # Assert
        assert progress.current_level == 3
        assert progress.progress_to_next_level == 22.22


@pytest.mark.unit
@pytest.mark.asyncio
class TestCategoryRecommendations:
    """Test MilestoneTracker.get_category_recommendations."""

    async def test_balanced_work_needs_no_recommendation(self, tracker, store):
        # Arrange
        store.seed(
            make_snapshot(
                "u-1",
                categories={
                    WorkCategory.FREELANCE: 3,
                    WorkCategory.COMMUNITY: 3,
                    WorkCategory.CORPORATE: 3,
                },
            )
        )

        # Act
        result = await tracker.get_category_recommendations("u-1")

        # Assert
        assert result.recommendations == ()
        assert result.balance_score == 100

    async def test_least_used_category_is_recommended(self, tracker, store):
        # Arrange
        store.seed(
            make_snapshot(
                "u-1", categories={WorkCategory.FREELANCE: 10, WorkCategory.COMMUNITY: 2}
            )
        )

        # Act
        result = await tracker.get_category_recommendations("u-1")

        # Assert
        assert len(result.recommendations) == 1
        recommendation = result.recommendations[0]
        assert recommendation.category is WorkCategory.CORPORATE
        assert recommendation.next_milestone == "corporate specialist 5"
        assert recommendation.tasks_needed == 5
        assert recommendation.reason == "Balance your experience across all work categories"
        assert result.balance_score == 0

    async def test_tie_for_least_used_keeps_category_order(self, tracker, store):
        """Test the gap threshold is inclusive and ties pick the first category."""
        # Arrange
        store.seed(make_snapshot("u-1", categories={WorkCategory.FREELANCE: 5}))

        # Act
        result = await tracker.get_category_recommendations("u-1")

        # Assert
        assert [r.category for r in result.recommendations] == [WorkCategory.COMMUNITY]

    async def test_gap_below_threshold_recommends_nothing(self, tracker, store):
        # Arrange
        store.seed(make_snapshot("u-1", categories={WorkCategory.FREELANCE: 4}))

        # Act
        result = await tracker.get_category_recommendations("u-1")

        # Assert
        assert result.recommendations == ()

    async def test_user_without_history(self, tracker):
        # Act
        result = await tracker.get_category_recommendations("nobody")

        # Assert
        assert result.recommendations == ()
        assert result.balance_score == 100
