"""
RewardCalculator - task reward math for Questboard.

Purpose
-------
Convert a completed task's reward definition plus its context (category,
quality rating, timeliness, user level, complexity) into XP, trust score and
real-world impact score (RWIS) awards, each with an ordered reasoning trail.

Responsibilities
----------------
- XP: category multiplier, quality tier bonus, early completion bonus,
  level scaling
- Trust: quality adjustment, timeliness, detailed feedback, community bonus,
  floor at zero
- RWIS: category impact multiplier, complexity bonus, top-quality bonus

Non-Responsibilities
--------------------
- Persisting awards or enforcing idempotency (ProgressionService)
- Level derivation (LevelCalculator)

Design Notes
------------
- Pure and stateless apart from the immutable ``RewardRules``; safe to call
  concurrently.
- Never raises for well-typed input: quality is clamped to [0, 5], unknown
  categories fall back to COMMUNITY and unknown complexities to MEDIUM.
- Amounts are computed exactly and only each total is floored; reasoning
  lines show each bonus floored for display. Orderings never invert, and
  they are strict once the exact amounts differ by a whole point: COMMUNITY
  XP beats FREELANCE XP from a base of 10 at any level, RWIS categories and
  complexities separate from a base of 5. Smaller bases may tie.

Usage
-----
>>> calculator = RewardCalculator(RewardRules())
>>> result = calculator.calculate_xp(
...     TaskRewardSpec(xp=100), WorkCategory.FREELANCE, quality_score=3,
...     completion_time_ratio=1.0, user_level=1,
... )
>>> result.total, result.reasoning[0]
(110, 'Base XP from task: 100')
"""

from __future__ import annotations

import math
from typing import Any, Optional

from questboard.domain.models.rewards import (
    Reason,
    ReasonCode,
    RWISResult,
    TaskComplexity,
    TaskRewardSpec,
    TrustResult,
    WorkCategory,
    XPResult,
)
from questboard.modules.rewards.reasoning import ReasonFormatter
from questboard.modules.rewards.rules import RewardRules
from questboard.modules.shared.formulas import (
    clamp_level,
    clamp_quality,
    exact,
    level_scaling_factor,
)


def _completion_ratio(value: Any) -> float:
    """Sanitize a completion-time ratio: non-finite means on time, negatives floor at 0."""
    try:
        ratio = float(value)
    except (TypeError, ValueError):
        return 1.0
    if not math.isfinite(ratio):
        return 1.0
    return max(0.0, ratio)


class RewardCalculator:
    """Pure reward calculations driven by ``RewardRules``."""

    def __init__(self, rules: Optional[RewardRules] = None) -> None:
        self._rules = rules or RewardRules()

    @property
    def rules(self) -> RewardRules:
        return self._rules

    # =========================================================================
    # XP
    # =========================================================================

    def calculate_xp(
        self,
        rewards: TaskRewardSpec,
        category: WorkCategory | str,
        quality_score: float = 3,
        completion_time_ratio: float = 1.0,
        user_level: int = 1,
    ) -> XPResult:
        """
        Calculate the XP award for a completed task.

        Args:
            rewards: Task reward definition (``rewards.xp`` is the base)
            category: Work category; unknown values count as COMMUNITY
            quality_score: Client rating, clamped to [0, 5]
            completion_time_ratio: Actual/expected duration (<1 early)
            user_level: Level before the award; higher levels earn less

        Returns:
            XPResult with ``bonus = floor(pre-scaling total) - base``
        """
        rules = self._rules
        category = WorkCategory.from_value(category)
        quality = clamp_quality(quality_score)
        level = clamp_level(user_level)

        base = rewards.xp
        reasons = [Reason.of(ReasonCode.BASE_XP, base=base)]

        multiplier = rules.xp_category_multipliers[category]
        weighted = exact(base) * exact(multiplier)
        reasons.append(
            Reason.of(
                ReasonCode.XP_CATEGORY_MULTIPLIER,
                category=category.label,
                multiplier=multiplier,
            )
        )

        quality_bonus = 0
        tier = rules.xp_quality_tier(quality)
        if tier is not None:
            quality_bonus = weighted * exact(tier.rate)
            reasons.append(
                Reason.of(
                    ReasonCode.XP_QUALITY_BONUS,
                    tier=tier.label,
                    quality=quality,
                    bonus=math.floor(quality_bonus),
                )
            )

        early_bonus = 0
        ratio = _completion_ratio(completion_time_ratio)
        if ratio < 1.0:
            early_bonus = weighted * (1 - exact(ratio)) * exact(rules.xp_early_completion_rate)
            reasons.append(
                Reason.of(ReasonCode.XP_EARLY_COMPLETION, bonus=math.floor(early_bonus))
            )

        factor = level_scaling_factor(
            level, rules.xp_level_scaling_step, rules.xp_level_scaling_floor
        )
        earned = weighted + quality_bonus + early_bonus
        total = max(0, math.floor(earned * exact(factor)))
        if factor < 1:
            reasons.append(Reason.of(ReasonCode.XP_LEVEL_SCALING, level=level, factor=factor))

        return XPResult(
            base=base,
            bonus=math.floor(earned) - base,
            total=total,
            reasons=tuple(reasons),
            reasoning=ReasonFormatter.render_all(reasons),
        )

    # =========================================================================
    # TRUST SCORE
    # =========================================================================

    def calculate_trust_score(
        self,
        rewards: TaskRewardSpec,
        category: WorkCategory | str,
        quality_score: float = 3,
        on_time: bool = True,
        client_feedback: Optional[str] = None,
    ) -> TrustResult:
        """
        Calculate the trust score change for a completed task.

        A quality of 0 means "no rating": no adjustment is applied but the
        trail still records it. The total never goes below zero.
        """
        rules = self._rules
        category = WorkCategory.from_value(category)
        quality = clamp_quality(quality_score)

        base = rewards.trust_score_bonus
        reasons = [Reason.of(ReasonCode.BASE_TRUST, base=base)]
        adjustment = 0

        if quality <= 0:
            reasons.append(Reason.of(ReasonCode.TRUST_NO_RATING))
        else:
            tier = rules.trust_quality_tier(quality)
            if tier is not None:
                delta, label = tier.adjustment, tier.label
            else:
                delta, label = rules.trust_unsatisfactory_penalty, "Unsatisfactory"
            adjustment += delta
            reasons.append(
                Reason.of(ReasonCode.TRUST_QUALITY, tier=label, quality=quality, adjustment=delta)
            )

        if on_time:
            adjustment += rules.trust_on_time_bonus
            reasons.append(
                Reason.of(ReasonCode.TRUST_ON_TIME, adjustment=rules.trust_on_time_bonus)
            )
        else:
            adjustment += rules.trust_late_penalty
            reasons.append(Reason.of(ReasonCode.TRUST_LATE, adjustment=rules.trust_late_penalty))

        if client_feedback and len(client_feedback.strip()) > rules.trust_feedback_min_length:
            adjustment += rules.trust_feedback_bonus
            reasons.append(
                Reason.of(ReasonCode.TRUST_FEEDBACK, adjustment=rules.trust_feedback_bonus)
            )

        if category is WorkCategory.COMMUNITY:
            adjustment += rules.trust_community_bonus
            reasons.append(
                Reason.of(ReasonCode.TRUST_COMMUNITY, adjustment=rules.trust_community_bonus)
            )

        raw_total = base + adjustment
        if raw_total < 0:
            reasons.append(Reason.of(ReasonCode.TRUST_FLOORED))

        return TrustResult(
            base=base,
            bonus=adjustment,
            total=max(0, raw_total),
            reasons=tuple(reasons),
            reasoning=ReasonFormatter.render_all(reasons),
        )

    # =========================================================================
    # RWIS
    # =========================================================================

    def calculate_rwis(
        self,
        rewards: TaskRewardSpec,
        category: WorkCategory | str,
        quality_score: float = 3,
        task_complexity: TaskComplexity | str = TaskComplexity.MEDIUM,
    ) -> RWISResult:
        """
        Calculate the real-world impact score for a completed task.

        Only the top quality tier (5) earns the impact bonus.
        """
        rules = self._rules
        category = WorkCategory.from_value(category)
        complexity = TaskComplexity.from_value(task_complexity)
        quality = clamp_quality(quality_score)

        base = rewards.rwis_points
        reasons = [Reason.of(ReasonCode.BASE_RWIS, base=base)]

        multiplier = rules.rwis_category_multipliers[category]
        weighted = exact(base) * exact(multiplier)
        reasons.append(
            Reason.of(
                ReasonCode.RWIS_CATEGORY_MULTIPLIER,
                category=category.label,
                multiplier=multiplier,
            )
        )

        complexity_bonus = weighted * (exact(rules.rwis_complexity_multipliers[complexity]) - 1)
        reasons.append(
            Reason.of(
                ReasonCode.RWIS_COMPLEXITY_BONUS,
                complexity=complexity.name,
                bonus=math.floor(complexity_bonus),
            )
        )

        impact_bonus = 0
        if quality >= 5:
            impact_bonus = weighted * exact(rules.rwis_top_quality_rate)
            reasons.append(
                Reason.of(ReasonCode.RWIS_QUALITY_IMPACT, bonus=math.floor(impact_bonus))
            )

        total = max(0, math.floor(weighted + complexity_bonus + impact_bonus))
        return RWISResult(
            base=base,
            bonus=total - base,
            total=total,
            reasons=tuple(reasons),
            reasoning=ReasonFormatter.render_all(reasons),
        )
