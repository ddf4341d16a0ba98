"""Task reward calculations: XP, trust score and RWIS."""

from questboard.modules.rewards.calculator import RewardCalculator
from questboard.modules.rewards.reasoning import ReasonFormatter
from questboard.modules.rewards.rules import QualityTier, RewardRules, TrustQualityTier

__all__ = [
    "RewardCalculator",
    "RewardRules",
    "QualityTier",
    "TrustQualityTier",
    "ReasonFormatter",
]
