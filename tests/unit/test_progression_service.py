"""
Unit tests for ProgressionService.

Tests the task-completion write path end to end against the in-memory store:
reward application, idempotency, level-ups, zone unlocks, badge awards,
follow-up milestones, events, and leaderboards.
"""

import asyncio

import pytest

from questboard.core.logging.logger import get_logger
from questboard.domain.models import TaskComplexity, WorkCategory
from questboard.modules.progression import InMemoryProgressionStore, ProgressionService
from questboard.modules.shared.constants import CLAIM_TASK_COMPLETION
from questboard.modules.shared.exceptions import (
    InvalidOperationError,
    RewardAlreadyClaimedError,
    ValidationError,
)
from tests.fixtures.factories import make_rewards, make_snapshot


def _event_names(published_events):
    return [e["event"] for e in published_events]


@pytest.mark.unit
@pytest.mark.asyncio
class TestProcessTaskCompletion:
    """Test ProgressionService.process_task_completion."""

    async def test_first_task_creates_stats_and_levels_up(self, progression_service, store):
        """Test a new user's first task: rewards, level 2, first badge, tasks-1 milestone."""
        # Act
        update = await progression_service.process_task_completion(
            "u-1", "task-1", make_rewards(), WorkCategory.FREELANCE, quality_score=3
        )

        # Assert
        assert update.xp.total == 110
        assert update.trust.total == 7
        assert update.rwis.total == 60
        assert update.level.previous_level == 1
        assert update.level.new_level == 2
        assert update.level.leveled_up is True
        assert [b.id for b in update.badges_awarded] == ["first-steps"]
        assert [m.id for m in update.milestones_completed] == ["tasks-1"]
        assert update.skipped_milestones == ("xp-100", "rwis-50")
        assert update.zones_unlocked == ()

        stats = await store.get_snapshot("u-1")
        assert stats == update.stats
        assert stats.xp_points == 120  # 110 + tasks-1 reward
        assert stats.trust_score == 7
        assert stats.rwis_score == 60
        assert stats.current_level == 2
        assert stats.unlocked_zones == ("zone-1",)
        assert stats.category(WorkCategory.FREELANCE).tasks_completed == 1
        assert stats.category(WorkCategory.FREELANCE).average_rating == 3.0
        assert stats.version == 3
        assert store.has_claim("u-1", CLAIM_TASK_COMPLETION, "task-1")

    async def test_events_are_published_after_commit(self, progression_service, published_events):
        # Act
        await progression_service.process_task_completion(
            "u-1", "task-1", make_rewards(), WorkCategory.FREELANCE
        )

        # Assert
        assert _event_names(published_events) == [
            "progression.task_rewarded",
            "progression.leveled_up",
            "progression.badge_awarded",
            "progression.milestones_completed",
        ]
        rewarded = published_events[0]["payload"]
        assert rewarded["task_id"] == "task-1"
        assert rewarded["xp"] == 110
        assert rewarded["category"] == "freelance"

    async def test_replay_is_rejected_and_changes_nothing(
        self, progression_service, store, published_events
    ):
        """Test the same task id is rewarded only once."""
        # Arrange
        await progression_service.process_task_completion(
            "u-1", "task-1", make_rewards(), WorkCategory.FREELANCE
        )
        before = await store.get_snapshot("u-1")
        published_events.clear()

        # Act & Assert
        with pytest.raises(RewardAlreadyClaimedError):
            await progression_service.process_task_completion(
                "u-1", "task-1", make_rewards(), WorkCategory.FREELANCE
            )

        assert await store.get_snapshot("u-1") == before
        assert published_events == []

    async def test_concurrent_replays_reward_once(self, progression_service, store):
        # Act
        results = await asyncio.gather(
            *(
                progression_service.process_task_completion(
                    "u-1", "task-1", make_rewards(), WorkCategory.COMMUNITY
                )
                for _ in range(5)
            ),
            return_exceptions=True,
        )

        # Assert
        failures = [r for r in results if isinstance(r, Exception)]
        assert len(failures) == 4
        assert all(isinstance(r, RewardAlreadyClaimedError) for r in failures)
        stats = await store.get_snapshot("u-1")
        assert stats.category(WorkCategory.COMMUNITY).tasks_completed == 1

    async def test_concurrent_distinct_tasks_all_apply(self, progression_service, store):
        """Test no lost updates when one user completes many tasks at once."""
        # Act
        await asyncio.gather(
            *(
                progression_service.process_task_completion(
                    "u-1", f"task-{n}", make_rewards(), WorkCategory.CORPORATE
                )
                for n in range(10)
            )
        )

        # Assert
        stats = await store.get_snapshot("u-1")
        assert stats.total_tasks == 10
        assert stats.category(WorkCategory.CORPORATE).tasks_completed == 10

    async def test_level_scaling_uses_stored_level(self, progression_service, store):
        """Test XP is scaled by the level before the award and the level never drops."""
        # Arrange
        store.seed(make_snapshot("u-1", xp_points=40_000, current_level=20))

        # Act
        update = await progression_service.process_task_completion(
            "u-1", "task-1", make_rewards(), WorkCategory.FREELANCE
        )

        # Assert
        assert update.xp.total == 68
        assert update.level.leveled_up is False
        assert update.stats.current_level == 20

    async def test_zone_unlocks_when_thresholds_met(
        self, progression_service, store, published_events
    ):
        # Arrange
        store.seed(make_snapshot("u-1", trust_score=24, xp_points=300, current_level=3))

        # Act
        update = await progression_service.process_task_completion(
            "u-1", "task-1", make_rewards(), WorkCategory.FREELANCE
        )

        # Assert
        assert update.zones_unlocked == ("zone-2",)
        assert update.stats.unlocked_zones == ("zone-1", "zone-2")
        assert "trust-25" in update.skipped_milestones
        zone_events = [e for e in published_events if e["event"] == "progression.zone_unlocked"]
        assert [e["payload"]["zone_id"] for e in zone_events] == ["zone-2"]

    async def test_zone_unlocks_after_milestone_level_up(
        self, progression_service, store, published_events
    ):
        """Test milestone bonus XP that reaches level 3 opens zone-2 in the same call."""
        # Arrange
        store.seed(make_snapshot("u-1", trust_score=30, xp_points=240, current_level=2))

        # Act
        update = await progression_service.process_task_completion(
            "u-1",
            "task-1",
            make_rewards(xp=0, trust=0, rwis=50),
            WorkCategory.FREELANCE,
            quality_score=0,
            complexity=TaskComplexity.LOW,
        )

        # Assert
        assert update.level.leveled_up is False
        assert sorted(m.id for m in update.milestones_completed) == ["rwis-50", "tasks-1"]
        assert update.zones_unlocked == ("zone-2",)

        stats = await store.get_snapshot("u-1")
        assert stats.xp_points == 260
        assert stats.current_level == 3
        assert stats.unlocked_zones == ("zone-1", "zone-2")
        zone_events = [e for e in published_events if e["event"] == "progression.zone_unlocked"]
        assert [e["payload"]["zone_id"] for e in zone_events] == ["zone-2"]

    async def test_badges_are_not_awarded_twice(self, progression_service, badge_catalog):
        # Act
        await progression_service.process_task_completion(
            "u-1", "task-1", make_rewards(), WorkCategory.FREELANCE
        )
        second = await progression_service.process_task_completion(
            "u-1", "task-2", make_rewards(), WorkCategory.FREELANCE
        )

        # Assert
        assert second.badges_awarded == ()
        held = await badge_catalog.find_user_badges("u-1")
        assert [b.badge_id for b in held] == ["first-steps"]

    async def test_unrated_task_keeps_average_rating(self, progression_service, store):
        # Act
        await progression_service.process_task_completion(
            "u-1", "task-1", make_rewards(), WorkCategory.FREELANCE, quality_score=4
        )
        await progression_service.process_task_completion(
            "u-1", "task-2", make_rewards(), WorkCategory.FREELANCE, quality_score=0
        )

        # Assert
        metrics = (await store.get_snapshot("u-1")).category(WorkCategory.FREELANCE)
        assert metrics.tasks_completed == 2
        assert metrics.rated_tasks == 1
        assert metrics.average_rating == 4.0

    async def test_string_inputs_are_normalized(self, progression_service):
        # Act
        update = await progression_service.process_task_completion(
            "u-1",
            "task-1",
            make_rewards(),
            "Community",
            quality_score=5,
            complexity="HIGH",
        )

        # Assert
        assert update.xp.total == 156
        assert update.rwis.total == 135
        assert update.xp.reasoning[1] == "Category multiplier (COMMUNITY): x1.2"

    @pytest.mark.parametrize("user_id,task_id", [("", "task-1"), ("u-1", "  "), (None, "t")])
    async def test_blank_identifiers_are_rejected(self, progression_service, user_id, task_id):
        with pytest.raises(ValidationError):
            await progression_service.process_task_completion(
                user_id, task_id, make_rewards(), WorkCategory.FREELANCE
            )

    async def test_unexpected_store_failure_is_logged_and_raised(
        self, config_manager, event_bus, mock_logger, mocker
    ):
        """Test infrastructure errors propagate after being logged."""
        # Arrange
        store = InMemoryProgressionStore()
        service = ProgressionService.build(config_manager, event_bus, store, logger=mock_logger)
        mocker.patch.object(store, "lock_user", side_effect=RuntimeError("connection reset"))

        # Act & Assert
        with pytest.raises(RuntimeError):
            await service.process_task_completion(
                "u-1", "task-1", make_rewards(), WorkCategory.FREELANCE
            )

        mock_logger.error.assert_called_once()
        assert mock_logger.error.call_args.kwargs["extra"]["error_type"] == "RuntimeError"

    async def test_to_dict_lists_awards(self, progression_service):
        # Act
        update = await progression_service.process_task_completion(
            "u-1", "task-1", make_rewards(), WorkCategory.FREELANCE, complexity=TaskComplexity.LOW
        )
        data = update.to_dict()

        # Assert
        assert data["xp"]["total"] == 110
        assert data["rwis"]["total"] == 50
        assert data["level"]["new_level"] == 2
        assert data["badges_awarded"] == ["first-steps"]
        assert data["milestones_completed"] == ["tasks-1"]


@pytest.mark.unit
@pytest.mark.asyncio
class TestLeaderboard:
    """Test ProgressionService.get_leaderboard."""

    @pytest.fixture
    def seeded_store(self, store):
        store.seed(make_snapshot("alice", xp_points=500, trust_score=40, current_level=4))
        store.seed(make_snapshot("bob", xp_points=900, trust_score=10, current_level=5))
        store.seed(make_snapshot("carol", xp_points=500, trust_score=70, current_level=4))
        return store

    async def test_ranked_by_metric_with_user_id_tie_break(self, progression_service, seeded_store):
        # Act
        entries = await progression_service.get_leaderboard("xp_points")

        # Assert
        assert [(e.rank, e.user_id, e.value) for e in entries] == [
            (1, "bob", 900),
            (2, "alice", 500),
            (3, "carol", 500),
        ]
        assert entries[0].to_dict()["metric"] == "xp_points"

    async def test_other_metric_and_limit(self, progression_service, seeded_store):
        # Act
        entries = await progression_service.get_leaderboard("trust_score", limit=2)

        # Assert
        assert [e.user_id for e in entries] == ["carol", "alice"]

    async def test_limit_is_capped_by_config(
        self, progression_service, seeded_store, config_manager
    ):
        # Arrange
        config_manager.set_override("leaderboard.max_limit", 1)

        # Act
        entries = await progression_service.get_leaderboard("current_level", limit=50)

        # Assert
        assert [e.user_id for e in entries] == ["bob"]

    async def test_unknown_metric_is_rejected(self, progression_service):
        with pytest.raises(InvalidOperationError):
            await progression_service.get_leaderboard("version")

    @pytest.mark.parametrize("limit", [0, -1, True])
    async def test_invalid_limit_is_rejected(self, progression_service, limit):
        with pytest.raises(ValidationError):
            await progression_service.get_leaderboard("xp_points", limit=limit)

    async def test_empty_store(self, progression_service):
        assert await progression_service.get_leaderboard() == []

    async def test_zone_filter_ranks_only_zone_members(self, progression_service, seeded_store):
        # Arrange
        seeded_store.seed(
            make_snapshot("dave", xp_points=300, unlocked_zones=("zone-1", "zone-2"))
        )
        seeded_store.seed(
            make_snapshot("erin", xp_points=700, unlocked_zones=("zone-1", "zone-2"))
        )

        # Act
        entries = await progression_service.get_leaderboard("xp_points", zone_id="zone-2")

        # Assert
        assert [(e.rank, e.user_id) for e in entries] == [(1, "erin"), (2, "dave")]

    async def test_blank_zone_is_rejected(self, progression_service):
        with pytest.raises(ValidationError):
            await progression_service.get_leaderboard("xp_points", zone_id="  ")


@pytest.mark.unit
@pytest.mark.asyncio
class TestGetUserStats:
    async def test_unknown_user(self, progression_service):
        assert await progression_service.get_user_stats("nobody") is None

    async def test_known_user(self, progression_service, store):
        # Arrange
        store.seed(make_snapshot("u-1", xp_points=42))

        # Act
        stats = await progression_service.get_user_stats("u-1")

        # Assert
        assert stats.xp_points == 42


@pytest.mark.unit
class TestBuild:
    def test_build_wires_tracker_with_configured_ladders(self, config_manager, event_bus):
        # Arrange
        config_manager.set_override("milestones.xp.targets", [10, 20])

        # Act
        service = ProgressionService.build(
            config_manager, event_bus, InMemoryProgressionStore(), logger=get_logger("tests")
        )

        # Assert
        assert service.tracker.ladders.xp_targets == (10, 20)
