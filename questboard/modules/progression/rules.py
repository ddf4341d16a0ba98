"""
Progression rules bundle.

Collects every immutable rule object the engine needs, so a deployment (or a
test) builds them once from config and hands them to the calculators and
services at construction time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from questboard.domain.models.milestone import BadgeDefinition
from questboard.modules.leveling.rules import LevelRules
from questboard.modules.milestones.ladders import MilestoneLadders
from questboard.modules.progression.badges import (
    DEFAULT_BADGE_DEFINITIONS,
    badge_definitions_from_config,
)
from questboard.modules.progression.zones import ZoneRules
from questboard.modules.rewards.rules import RewardRules

if TYPE_CHECKING:
    from questboard.core.config.manager import ConfigManager


@dataclass(frozen=True)
class ProgressionRules:
    rewards: RewardRules = field(default_factory=RewardRules)
    leveling: LevelRules = field(default_factory=LevelRules)
    ladders: MilestoneLadders = field(default_factory=MilestoneLadders)
    zones: ZoneRules = field(default_factory=ZoneRules)
    badges: tuple[BadgeDefinition, ...] = DEFAULT_BADGE_DEFINITIONS

    @classmethod
    def from_config(cls, config: ConfigManager) -> ProgressionRules:
        """
        Raises:
            ConfigurationError: If any rule section is malformed
        """
        return cls(
            rewards=RewardRules.from_config(config),
            leveling=LevelRules.from_config(config),
            ladders=MilestoneLadders.from_config(config),
            zones=ZoneRules.from_config(config),
            badges=badge_definitions_from_config(config),
        )
