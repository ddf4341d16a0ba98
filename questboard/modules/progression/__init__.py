"""
Progression orchestration: stores, zones, badges and the task-completion service.
"""

from questboard.modules.progression.badges import (
    DEFAULT_BADGE_DEFINITIONS,
    InMemoryBadgeCatalog,
    badge_definitions_from_config,
)
from questboard.modules.progression.memory_store import InMemoryProgressionStore
from questboard.modules.progression.ports import (
    BadgeCatalog,
    Clock,
    SnapshotWorkHistory,
    WorkHistoryProvider,
)
from questboard.modules.progression.rules import ProgressionRules
from questboard.modules.progression.service import ProgressionService
from questboard.modules.progression.store import ProgressionStore, StatsUnitOfWork
from questboard.modules.progression.zones import ZoneRequirement, ZoneRules, evaluate_zone_unlocks

__all__ = [
    "BadgeCatalog",
    "Clock",
    "DEFAULT_BADGE_DEFINITIONS",
    "InMemoryBadgeCatalog",
    "InMemoryProgressionStore",
    "ProgressionRules",
    "ProgressionService",
    "ProgressionStore",
    "SnapshotWorkHistory",
    "StatsUnitOfWork",
    "WorkHistoryProvider",
    "ZoneRequirement",
    "ZoneRules",
    "badge_definitions_from_config",
    "evaluate_zone_unlocks",
]
