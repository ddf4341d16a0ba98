"""
Reward rule set for the RewardCalculator.

Rules are immutable and built once from ConfigManager (``rewards.*`` keys in
``config/progression.yaml``), falling back to the defaults in
``questboard.modules.shared.constants``. A calculator constructed with the
same rules always produces the same results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional

from questboard.core.exceptions import ConfigurationError
from questboard.domain.models.rewards import TaskComplexity, WorkCategory
from questboard.modules.shared import constants as C

if TYPE_CHECKING:
    from questboard.core.config.manager import ConfigManager


@dataclass(frozen=True)
class QualityTier:
    """XP bonus tier: applies when quality >= ``min_quality``."""

    min_quality: float
    rate: float
    label: str


@dataclass(frozen=True)
class TrustQualityTier:
    """Trust adjustment tier: applies when quality >= ``min_quality``."""

    min_quality: float
    adjustment: int
    label: str


def _category_map(raw: Mapping[str, Any], key: str) -> dict[WorkCategory, float]:
    values: dict[WorkCategory, float] = {}
    for category in WorkCategory:
        value = raw.get(category.value)
        if value is None:
            raise ConfigurationError(key, f"missing multiplier for '{category.value}'")
        values[category] = float(value)
        if values[category] < 1.0:
            raise ConfigurationError(key, f"multiplier for '{category.value}' must be >= 1.0")
    return values


def _complexity_map(raw: Mapping[str, Any], key: str) -> dict[TaskComplexity, float]:
    values: dict[TaskComplexity, float] = {}
    for complexity in TaskComplexity:
        value = raw.get(complexity.value)
        if value is None:
            raise ConfigurationError(key, f"missing multiplier for '{complexity.value}'")
        values[complexity] = float(value)
        if values[complexity] < 1.0:
            raise ConfigurationError(key, f"multiplier for '{complexity.value}' must be >= 1.0")
    return values


def _xp_tiers(raw: Iterable[Any]) -> tuple[QualityTier, ...]:
    tiers = []
    for entry in raw:
        if isinstance(entry, Mapping):
            tiers.append(
                QualityTier(float(entry["min_quality"]), float(entry["rate"]), str(entry["label"]))
            )
        else:
            min_quality, rate, label = entry
            tiers.append(QualityTier(float(min_quality), float(rate), str(label)))
    return tuple(sorted(tiers, key=lambda t: t.min_quality, reverse=True))


def _trust_tiers(raw: Iterable[Any]) -> tuple[TrustQualityTier, ...]:
    tiers = []
    for entry in raw:
        if isinstance(entry, Mapping):
            tiers.append(
                TrustQualityTier(
                    float(entry["min_quality"]), int(entry["adjustment"]), str(entry["label"])
                )
            )
        else:
            min_quality, adjustment, label = entry
            tiers.append(TrustQualityTier(float(min_quality), int(adjustment), str(label)))
    return tuple(sorted(tiers, key=lambda t: t.min_quality, reverse=True))


@dataclass(frozen=True)
class RewardRules:
    """Balance values for XP, trust and RWIS calculations."""

    xp_category_multipliers: Mapping[WorkCategory, float] = field(
        default_factory=lambda: _category_map(C.XP_CATEGORY_MULTIPLIERS, "rewards.xp.category_multipliers")
    )
    xp_quality_tiers: tuple[QualityTier, ...] = field(
        default_factory=lambda: _xp_tiers(C.XP_QUALITY_TIERS)
    )
    xp_early_completion_rate: float = C.XP_EARLY_COMPLETION_RATE
    xp_level_scaling_step: float = C.XP_LEVEL_SCALING_STEP
    xp_level_scaling_floor: float = C.XP_LEVEL_SCALING_FLOOR

    trust_quality_tiers: tuple[TrustQualityTier, ...] = field(
        default_factory=lambda: _trust_tiers(C.TRUST_QUALITY_ADJUSTMENTS)
    )
    trust_unsatisfactory_penalty: int = C.TRUST_UNSATISFACTORY_PENALTY
    trust_on_time_bonus: int = C.TRUST_ON_TIME_BONUS
    trust_late_penalty: int = C.TRUST_LATE_PENALTY
    trust_feedback_bonus: int = C.TRUST_FEEDBACK_BONUS
    trust_feedback_min_length: int = C.TRUST_FEEDBACK_MIN_LENGTH
    trust_community_bonus: int = C.TRUST_COMMUNITY_BONUS

    rwis_category_multipliers: Mapping[WorkCategory, float] = field(
        default_factory=lambda: _category_map(C.RWIS_CATEGORY_MULTIPLIERS, "rewards.rwis.category_multipliers")
    )
    rwis_complexity_multipliers: Mapping[TaskComplexity, float] = field(
        default_factory=lambda: _complexity_map(
            C.RWIS_COMPLEXITY_MULTIPLIERS, "rewards.rwis.complexity_multipliers"
        )
    )
    rwis_top_quality_rate: float = C.RWIS_TOP_QUALITY_RATE

    def __post_init__(self) -> None:
        if not 0.0 < self.xp_level_scaling_floor <= 1.0:
            raise ConfigurationError(
                "rewards.xp.level_scaling.floor", "must be in (0, 1]"
            )
        if self.xp_level_scaling_step < 0:
            raise ConfigurationError("rewards.xp.level_scaling.step", "must be >= 0")

    def xp_quality_tier(self, quality: float) -> Optional[QualityTier]:
        """Highest XP tier whose threshold the quality reaches, if any."""
        return next((tier for tier in self.xp_quality_tiers if quality >= tier.min_quality), None)

    def trust_quality_tier(self, quality: float) -> Optional[TrustQualityTier]:
        return next(
            (tier for tier in self.trust_quality_tiers if quality >= tier.min_quality), None
        )

    @classmethod
    def from_config(cls, config: ConfigManager) -> RewardRules:
        """
        Build rules from the ``rewards`` section of the balance config.

        Raises:
            ConfigurationError: If a configured value is malformed
        """
        try:
            return cls(
                xp_category_multipliers=_category_map(
                    config.get("rewards.xp.category_multipliers", C.XP_CATEGORY_MULTIPLIERS),
                    "rewards.xp.category_multipliers",
                ),
                xp_quality_tiers=_xp_tiers(
                    config.get("rewards.xp.quality_tiers", C.XP_QUALITY_TIERS)
                ),
                xp_early_completion_rate=float(
                    config.get("rewards.xp.early_completion_rate", C.XP_EARLY_COMPLETION_RATE)
                ),
                xp_level_scaling_step=float(
                    config.get("rewards.xp.level_scaling.step", C.XP_LEVEL_SCALING_STEP)
                ),
                xp_level_scaling_floor=float(
                    config.get("rewards.xp.level_scaling.floor", C.XP_LEVEL_SCALING_FLOOR)
                ),
                trust_quality_tiers=_trust_tiers(
                    config.get("rewards.trust.quality_adjustments", C.TRUST_QUALITY_ADJUSTMENTS)
                ),
                trust_unsatisfactory_penalty=int(
                    config.get("rewards.trust.unsatisfactory_penalty", C.TRUST_UNSATISFACTORY_PENALTY)
                ),
                trust_on_time_bonus=int(
                    config.get("rewards.trust.on_time_bonus", C.TRUST_ON_TIME_BONUS)
                ),
                trust_late_penalty=int(
                    config.get("rewards.trust.late_penalty", C.TRUST_LATE_PENALTY)
                ),
                trust_feedback_bonus=int(
                    config.get("rewards.trust.feedback_bonus", C.TRUST_FEEDBACK_BONUS)
                ),
                trust_feedback_min_length=int(
                    config.get("rewards.trust.feedback_min_length", C.TRUST_FEEDBACK_MIN_LENGTH)
                ),
                trust_community_bonus=int(
                    config.get("rewards.trust.community_bonus", C.TRUST_COMMUNITY_BONUS)
                ),
                rwis_category_multipliers=_category_map(
                    config.get("rewards.rwis.category_multipliers", C.RWIS_CATEGORY_MULTIPLIERS),
                    "rewards.rwis.category_multipliers",
                ),
                rwis_complexity_multipliers=_complexity_map(
                    config.get(
                        "rewards.rwis.complexity_multipliers", C.RWIS_COMPLEXITY_MULTIPLIERS
                    ),
                    "rewards.rwis.complexity_multipliers",
                ),
                rwis_top_quality_rate=float(
                    config.get("rewards.rwis.top_quality_rate", C.RWIS_TOP_QUALITY_RATE)
                ),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigurationError("rewards", f"malformed reward rules: {exc}") from exc
