"""
Reward Domain Model for Questboard.

Purpose
-------
Value objects describing what a task pays out and what the reward
calculators return: work categories, task complexity, the task reward
definition, structured reasons, and the XP / trust / RWIS results.

Responsibilities
----------------
- Normalize loosely-typed category and complexity input (never raise)
- Validate reward definitions on construction
- Carry an ordered, never-empty reasoning trail with every result

Non-Responsibilities
--------------------
- Reward formulas (handled by RewardCalculator)
- Reason wording (handled by the reason renderer)

Usage Example
-------------
>>> rewards = TaskRewardSpec(xp=100, trust_score_bonus=5, rwis_points=50)
>>> WorkCategory.from_value("Community")
<WorkCategory.COMMUNITY: 'community'>
>>> WorkCategory.from_value("gardening")   # unknown -> COMMUNITY
<WorkCategory.COMMUNITY: 'community'>
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from questboard.domain.models.base import (
    DomainValidationError,
    validate_non_negative,
    validate_positive,
)


# ============================================================================
# ENUMS
# ============================================================================


class WorkCategory(str, Enum):
    """Closed set of work categories a task can belong to."""

    FREELANCE = "freelance"
    COMMUNITY = "community"
    CORPORATE = "corporate"

    @classmethod
    def from_value(cls, value: Any) -> WorkCategory:
        """Parse a category case-insensitively; unknown values become COMMUNITY."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.COMMUNITY

    @property
    def label(self) -> str:
        """Upper-case label used in reasoning lines, e.g. ``FREELANCE``."""
        return self.name

    @property
    def display_name(self) -> str:
        """Title-case name used in milestone and badge names, e.g. ``Freelance``."""
        return self.name.capitalize()


class TaskComplexity(str, Enum):
    """Task complexity; drives the RWIS complexity bonus."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_value(cls, value: Any) -> TaskComplexity:
        """Parse a complexity case-insensitively; unknown values become MEDIUM."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.MEDIUM


# ============================================================================
# TASK REWARD DEFINITION
# ============================================================================


@dataclass(frozen=True)
class TaskRewardSpec:
    """
    Immutable reward definition attached to a task.

    Attributes
    ----------
    xp : int
        Base experience points
    trust_score_bonus : int
        Base trust score change
    rwis_points : int
        Base real-world impact score
    badges : tuple[str, ...]
        Badge ids granted by the task itself
    payment : Optional[float]
        Monetary payment (positive when present)
    """

    xp: int = 0
    trust_score_bonus: int = 0
    rwis_points: int = 0
    badges: tuple[str, ...] = ()
    payment: Optional[float] = None

    def __post_init__(self) -> None:
        validate_non_negative(self.xp, "xp")
        validate_non_negative(self.trust_score_bonus, "trust_score_bonus")
        validate_non_negative(self.rwis_points, "rwis_points")
        if self.payment is not None:
            validate_positive(self.payment, "payment")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TaskRewardSpec:
        """
        Build from a JSON-style mapping; accepts snake_case or camelCase keys.

        >>> TaskRewardSpec.from_dict({"xp": 100, "trustScoreBonus": 5})
        TaskRewardSpec(xp=100, trust_score_bonus=5, rwis_points=0, badges=(), payment=None)
        """

        def pick(*keys: str, default: Any = None) -> Any:
            for key in keys:
                if data.get(key) is not None:
                    return data[key]
            return default

        try:
            return cls(
                xp=int(pick("xp", default=0)),
                trust_score_bonus=int(pick("trust_score_bonus", "trustScoreBonus", default=0)),
                rwis_points=int(pick("rwis_points", "rwisPoints", default=0)),
                badges=tuple(pick("badges", default=())),
                payment=pick("payment"),
            )
        except (TypeError, ValueError) as exc:
            raise DomainValidationError(f"Invalid task reward definition: {exc}") from exc

    def to_dict(self) -> Dict[str, Any]:
        return {
            "xp": self.xp,
            "trust_score_bonus": self.trust_score_bonus,
            "rwis_points": self.rwis_points,
            "badges": list(self.badges),
            "payment": self.payment,
        }


# ============================================================================
# REASONING
# ============================================================================


class ReasonCode(str, Enum):
    """Structured reasoning entries; wording lives in the reason renderer."""

    BASE_XP = "base_xp"
    XP_CATEGORY_MULTIPLIER = "xp_category_multiplier"
    XP_QUALITY_BONUS = "xp_quality_bonus"
    XP_EARLY_COMPLETION = "xp_early_completion"
    XP_LEVEL_SCALING = "xp_level_scaling"

    BASE_TRUST = "base_trust"
    TRUST_QUALITY = "trust_quality"
    TRUST_NO_RATING = "trust_no_rating"
    TRUST_ON_TIME = "trust_on_time"
    TRUST_LATE = "trust_late"
    TRUST_FEEDBACK = "trust_feedback"
    TRUST_COMMUNITY = "trust_community"
    TRUST_FLOORED = "trust_floored"

    BASE_RWIS = "base_rwis"
    RWIS_CATEGORY_MULTIPLIER = "rwis_category_multiplier"
    RWIS_COMPLEXITY_BONUS = "rwis_complexity_bonus"
    RWIS_QUALITY_IMPACT = "rwis_quality_impact"


@dataclass(frozen=True)
class Reason:
    """One structured reasoning entry: a code plus the numbers it mentions."""

    code: ReasonCode
    params: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def of(cls, code: ReasonCode, **params: Any) -> Reason:
        return cls(code=code, params=params)


# ============================================================================
# CALCULATION RESULTS
# ============================================================================


@dataclass(frozen=True)
class RewardResult:
    """
    Outcome of one reward calculation.

    ``reasons`` holds the structured trail; ``reasoning`` the rendered lines in
    the same order. Both are never empty.
    """

    base: int
    bonus: int
    total: int
    reasons: tuple[Reason, ...]
    reasoning: tuple[str, ...]

    def __post_init__(self) -> None:
        validate_non_negative(self.base, "base")
        validate_non_negative(self.total, "total")
        if not self.reasons or len(self.reasons) != len(self.reasoning):
            raise DomainValidationError(
                "reasoning must be non-empty and match the structured reasons",
                field="reasoning",
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base": self.base,
            "bonus": self.bonus,
            "total": self.total,
            "reasoning": list(self.reasoning),
        }


@dataclass(frozen=True)
class XPResult(RewardResult):
    """Experience award for a completed task."""

    @property
    def total_xp(self) -> int:
        return self.total


@dataclass(frozen=True)
class TrustResult(RewardResult):
    """Trust score change for a completed task (never negative)."""

    @property
    def total_trust_score(self) -> int:
        return self.total


@dataclass(frozen=True)
class RWISResult(RewardResult):
    """Real-world impact score award for a completed task."""

    @property
    def total_rwis(self) -> int:
        return self.total
