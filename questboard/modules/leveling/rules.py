"""
Level curve and feature-unlock table for the LevelCalculator.

Built from the ``leveling`` section of the balance config, falling back to
the defaults in ``questboard.modules.shared.constants``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping

from questboard.core.exceptions import ConfigurationError
from questboard.modules.shared import constants as C

if TYPE_CHECKING:
    from questboard.core.config.manager import ConfigManager


def _feature_table(raw: Mapping[Any, Any]) -> dict[int, str]:
    # YAML may hand back int or str keys
    return {int(level): str(name) for level, name in sorted(raw.items(), key=lambda kv: int(kv[0]))}


@dataclass(frozen=True)
class LevelRules:
    """
    Attributes
    ----------
    base_xp : int
        XP needed to go from level 1 to 2
    growth_rate : float
        Each level needs ``growth_rate`` times the previous one
    level_cap : int
        Highest reachable level
    badge_interval : int
        Every multiple of this level also grants a "Level {n} Badge"
    features : Mapping[int, str]
        Named feature unlocked at each level threshold
    """

    base_xp: int = C.LEVEL_BASE_XP
    growth_rate: float = C.LEVEL_GROWTH
    level_cap: int = C.LEVEL_CAP
    badge_interval: int = C.LEVEL_BADGE_INTERVAL
    features: Mapping[int, str] = field(default_factory=lambda: _feature_table(C.LEVEL_FEATURES))

    def __post_init__(self) -> None:
        if self.base_xp <= 0:
            raise ConfigurationError("leveling.base_xp", "must be positive")
        if self.growth_rate < 1.0:
            raise ConfigurationError("leveling.growth_rate", "must be >= 1.0")
        if self.level_cap < 1:
            raise ConfigurationError("leveling.level_cap", "must be >= 1")
        if self.badge_interval < 0:
            raise ConfigurationError("leveling.badge_interval", "must be >= 0")

    @classmethod
    def from_config(cls, config: ConfigManager) -> LevelRules:
        try:
            return cls(
                base_xp=int(config.get("leveling.base_xp", C.LEVEL_BASE_XP)),
                growth_rate=float(config.get("leveling.growth_rate", C.LEVEL_GROWTH)),
                level_cap=int(config.get("leveling.level_cap", C.LEVEL_CAP)),
                badge_interval=int(config.get("leveling.badge_interval", C.LEVEL_BADGE_INTERVAL)),
                features=_feature_table(config.get("leveling.features", C.LEVEL_FEATURES)),
            )
        except (TypeError, ValueError) as exc:
            raise ConfigurationError("leveling", f"malformed leveling rules: {exc}") from exc
