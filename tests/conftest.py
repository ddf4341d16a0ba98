"""
Pytest Configuration and Fixtures for Questboard Tests
=======================================================

Purpose
-------
Centralized test fixtures for the Questboard progression test suite.
Provides reusable fixtures for configuration, events, stores, services,
and mocks. Snapshot factories live in tests/fixtures/factories.py.

Responsibilities
----------------
- Test environment flags (loaded before Questboard modules read them)
- Balance configuration from the shipped ``config/`` directory
- In-memory progression store, badge catalog and frozen clock
- Fully wired MilestoneTracker and ProgressionService
- Mock fixtures for unit tests of thin seams

Non-Responsibilities
--------------------
- PostgreSQL fixtures (see tests/integration/conftest.py)
- Test implementation (delegated to test files)

Architecture Notes
------------------
- Unit tests use the in-memory store (fast, isolated)
- Integration tests use testcontainers (real PostgreSQL)
- Every fixture is function scoped so each test gets a clean graph
"""

from __future__ import annotations

import os
from datetime import datetime
from typing import Any, Callable, Dict, List

import pytest

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from questboard.core.config.config import Config  # noqa: E402
from questboard.core.config.manager import ConfigManager  # noqa: E402
from questboard.core.event.bus import EventBus  # noqa: E402
from questboard.core.logging.logger import get_logger  # noqa: E402
from questboard.modules.leveling import LevelCalculator  # noqa: E402
from questboard.modules.milestones import MilestoneLadders, MilestoneTracker  # noqa: E402
from questboard.modules.progression import (  # noqa: E402
    InMemoryBadgeCatalog,
    InMemoryProgressionStore,
    ProgressionService,
    SnapshotWorkHistory,
)
from questboard.modules.rewards import RewardCalculator  # noqa: E402

from tests.fixtures.factories import FROZEN_NOW  # noqa: E402


# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """Configure pytest environment."""
    os.environ["ENVIRONMENT"] = "testing"
    os.environ["TESTING"] = "true"
    Config.load()


# ============================================================================
# CORE FIXTURES
# ============================================================================


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """Frozen clock for deterministic badge timestamps."""
    return lambda: FROZEN_NOW


@pytest.fixture
def config_manager() -> ConfigManager:
    """
    Balance configuration loaded from the shipped YAML files.

    Scope: function (overrides never leak between tests)
    """
    return ConfigManager.from_directory(Config.CONFIG_DIR, strict=True)


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus(listener_timeout_seconds=1.0)


@pytest.fixture
def published_events(event_bus: EventBus) -> List[Dict[str, Any]]:
    """
    Capture every progression event published on the bus.

    Usage:
        await service.process_task_completion(...)
        assert any(e["event"] == "progression.leveled_up" for e in published_events)
    """
    captured: List[Dict[str, Any]] = []
    original_publish = event_bus.publish

    async def recording_publish(event_name: str, data: Dict[str, Any]) -> list:
        captured.append({"event": event_name, "payload": data})
        return await original_publish(event_name, data)

    event_bus.publish = recording_publish  # type: ignore[method-assign]
    return captured


# ============================================================================
# CALCULATOR FIXTURES
# ============================================================================


@pytest.fixture
def reward_calculator() -> RewardCalculator:
    return RewardCalculator()


@pytest.fixture
def level_calculator() -> LevelCalculator:
    return LevelCalculator()


@pytest.fixture
def ladders() -> MilestoneLadders:
    return MilestoneLadders()


# ============================================================================
# STORE & SERVICE FIXTURES
# ============================================================================


@pytest.fixture
def store() -> InMemoryProgressionStore:
    return InMemoryProgressionStore()


@pytest.fixture
def badge_catalog(clock) -> InMemoryBadgeCatalog:
    return InMemoryBadgeCatalog(clock=clock)


@pytest.fixture
def tracker(
    store, badge_catalog, ladders, level_calculator, config_manager, event_bus, clock
) -> MilestoneTracker:
    return MilestoneTracker(
        store=store,
        work_history=SnapshotWorkHistory(store),
        badge_catalog=badge_catalog,
        ladders=ladders,
        level_calculator=level_calculator,
        config_manager=config_manager,
        event_bus=event_bus,
        logger=get_logger("tests.tracker"),
        clock=clock,
    )


@pytest.fixture
def progression_service(
    config_manager, event_bus, store, badge_catalog, clock
) -> ProgressionService:
    return ProgressionService.build(
        config_manager,
        event_bus,
        store,
        badge_catalog=badge_catalog,
        clock=clock,
        logger=get_logger("tests.progression"),
    )


# ============================================================================
# MOCK FIXTURES (Unit Tests)
# ============================================================================


@pytest.fixture
def mock_event_bus(mocker):
    """
    Mock EventBus for unit tests.

    Scope: function
    Uses: Unit tests that need to assert on event publishing
    """
    mock_bus = mocker.MagicMock()
    mock_bus.publish = mocker.AsyncMock(return_value=[])
    mock_bus.subscribe = mocker.MagicMock()
    return mock_bus


@pytest.fixture
def mock_logger(mocker):
    """Logger double for asserting on warnings and errors."""
    return mocker.MagicMock()

