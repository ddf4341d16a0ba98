"""
Unit tests for core infrastructure: ConfigManager, Config, EventBus, logging.
"""

import json
import logging

import pytest

from questboard.core.config.config import Config, Environment
from questboard.core.config.errors import ConfigInitializationError
from questboard.core.config.manager import ConfigManager
from questboard.core.event.bus import EventBus
from questboard.core.event.types import ListenerPriority
from questboard.core.logging.logger import (
    ContextFilter,
    JSONFormatter,
    LogContext,
    clear_log_context,
    get_log_context,
)


# ============================================================================
# CONFIGURATION
# ============================================================================


@pytest.mark.unit
class TestConfigManager:
    def test_nested_lookup_and_default(self, config_manager):
        assert config_manager.get("leveling.growth_rate") == 1.5
        assert config_manager.get("leveling.no_such_key", "fallback") == "fallback"
        assert config_manager.get("rewards.xp.no.deeper", 7) == 7

    def test_override_wins_and_clears(self, config_manager):
        # Act
        config_manager.set_override("leveling.growth_rate", 1.4)
        overridden = config_manager.get("leveling.growth_rate")
        config_manager.clear_overrides()

        # Assert
        assert overridden == 1.4
        assert config_manager.get("leveling.growth_rate") == 1.5

    def test_section_is_a_copy(self, config_manager):
        # Act
        section = config_manager.section("zones")
        section["default"] = "zone-9"

        # Assert
        assert config_manager.get("zones.default") == "zone-1"
        assert config_manager.section("no_such_section") == {}

    def test_yaml_files_are_deep_merged(self, tmp_path):
        # Arrange
        (tmp_path / "a.yaml").write_text("leveling:\n  base_xp: 100\n  growth_rate: 1.5\n")
        (tmp_path / "b.yaml").write_text("leveling:\n  growth_rate: 2.0\n")

        # Act
        manager = ConfigManager.from_directory(tmp_path)

        # Assert
        assert manager.get("leveling.base_xp") == 100
        assert manager.get("leveling.growth_rate") == 2.0

    def test_missing_directory_strict(self, tmp_path):
        with pytest.raises(ConfigInitializationError):
            ConfigManager.from_directory(tmp_path / "missing", strict=True)

    def test_missing_directory_lenient(self, tmp_path):
        manager = ConfigManager.from_directory(tmp_path / "missing")

        assert manager.get("leveling.base_xp", 100) == 100

    def test_broken_yaml_strict(self, tmp_path):
        # Arrange
        (tmp_path / "broken.yaml").write_text("leveling: [unclosed\n")

        # Act & Assert
        with pytest.raises(ConfigInitializationError):
            ConfigManager.from_directory(tmp_path, strict=True)


@pytest.mark.unit
class TestConfig:
    def test_test_environment_is_detected(self):
        assert Config.is_testing() is True
        assert Config.is_production() is False

    def test_unknown_environment_falls_back_to_development(self):
        assert Environment.from_string("moon-base") is Environment.DEVELOPMENT

    def test_load_reads_environment(self, monkeypatch):
        # Arrange
        monkeypatch.setenv("DATABASE_POOL_SIZE", "25")

        # Act
        Config.load()

        # Assert
        assert Config.DATABASE_POOL_SIZE == 25

        monkeypatch.delenv("DATABASE_POOL_SIZE")
        Config.load()


# ============================================================================
# EVENT BUS
# ============================================================================


@pytest.mark.unit
@pytest.mark.asyncio
class TestEventBus:
    async def test_publish_reaches_exact_and_wildcard_listeners(self, event_bus):
        # Arrange
        received = []

        async def on_level(payload):
            received.append(("exact", payload["new_level"]))

        def on_any(payload):
            received.append(("wildcard", payload["new_level"]))

        event_bus.subscribe("progression.leveled_up", on_level)
        event_bus.subscribe("progression.*", on_any, priority=ListenerPriority.HIGH)

        # Act
        await event_bus.publish("progression.leveled_up", {"new_level": 3})

        # Assert
        assert received == [("wildcard", 3), ("exact", 3)]

    async def test_failing_listener_is_isolated(self, event_bus):
        # Arrange
        def broken(payload):
            raise RuntimeError("listener bug")

        def healthy(payload):
            return "ok"

        event_bus.subscribe("progression.task_rewarded", broken)
        event_bus.subscribe("progression.task_rewarded", healthy)

        # Act
        results = await event_bus.publish("progression.task_rewarded", {"xp": 1})

        # Assert
        assert results == [None, "ok"]

    async def test_duplicate_subscription_is_ignored(self, event_bus):
        # Arrange
        def listener(payload):
            return None

        # Act
        first = event_bus.subscribe("progression.zone_unlocked", listener)
        second = event_bus.subscribe("progression.zone_unlocked", listener)

        # Assert
        assert first == second
        assert event_bus.get_listener_count("progression.zone_unlocked") == 1
        assert event_bus.unsubscribe("progression.zone_unlocked", first) is True
        assert event_bus.get_listener_count() == 0

    async def test_listener_signature_is_validated(self, event_bus):
        def two_args(payload, extra):
            return None

        with pytest.raises(ValueError):
            event_bus.subscribe("progression.leveled_up", two_args)

    async def test_publish_without_listeners(self):
        assert await EventBus().publish("progression.badge_awarded", {}) == []


# ============================================================================
# LOGGING
# ============================================================================


def _record(message="Task completion processed", **extra):
    record = logging.LogRecord(
        name="questboard.modules.progression.service",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.mark.unit
class TestStructuredLogging:
    def test_json_formatter_output(self):
        # Arrange
        record = _record(user_id="u-1", xp=110)

        # Act
        data = json.loads(JSONFormatter().format(record))

        # Assert
        assert data["level"] == "INFO"
        assert data["message"] == "Task completion processed"
        assert data["user_id"] == "u-1"
        assert data["extra"] == {"xp": 110}

    def test_placeholder_context_is_omitted(self):
        data = json.loads(JSONFormatter().format(_record(user_id="N/A")))

        assert "user_id" not in data

    @pytest.mark.asyncio
    async def test_log_context_binds_and_resets(self):
        # Arrange
        clear_log_context()

        # Act
        async with LogContext(user_id="u-1", operation="task_completion"):
            inside = get_log_context()
            record = _record()
            ContextFilter().filter(record)

        # Assert
        assert inside["user_id"] == "u-1"
        assert len(inside["correlation_id"]) == 8
        assert record.user_id == "u-1"
        assert record.operation == "task_completion"
        assert record.component == "questboard"
        assert get_log_context() == {}

    def test_explicit_operation_wins_over_context(self):
        # Arrange
        record = _record(operation="get_leaderboard")

        # Act
        with LogContext(operation="task_completion"):
            ContextFilter().filter(record)

        # Assert
        assert record.operation == "get_leaderboard"
