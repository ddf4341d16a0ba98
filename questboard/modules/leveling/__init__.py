"""Level curve, level-ups and feature unlocks."""

from questboard.modules.leveling.calculator import LevelCalculator
from questboard.modules.leveling.rules import LevelRules

__all__ = ["LevelCalculator", "LevelRules"]
