"""
Pure formatters for reward reasoning lines.

Calculators record *what* happened as structured ``Reason`` entries; this
module owns *how* it reads. Wording is stable: clients and tests match on
these exact strings.

Usage:
    >>> from questboard.modules.rewards.reasoning import ReasonFormatter
    >>> ReasonFormatter.render(Reason.of(ReasonCode.BASE_XP, base=100))
    'Base XP from task: 100'
"""

from __future__ import annotations

from typing import Final, Iterable, Mapping

from questboard.domain.models.rewards import Reason, ReasonCode

REASON_TEMPLATES: Final[Mapping[ReasonCode, str]] = {
    ReasonCode.BASE_XP: "Base XP from task: {base}",
    ReasonCode.XP_CATEGORY_MULTIPLIER: "Category multiplier ({category}): x{multiplier:g}",
    ReasonCode.XP_QUALITY_BONUS: "{tier} quality bonus ({quality:g}/5): +{bonus} XP",
    ReasonCode.XP_EARLY_COMPLETION: "Early completion bonus: +{bonus} XP",
    ReasonCode.XP_LEVEL_SCALING: "Level scaling (Level {level}): x{factor:.2f}",
    ReasonCode.BASE_TRUST: "Base trust score from task: {base}",
    ReasonCode.TRUST_QUALITY: "{tier} quality ({quality:g}/5): {adjustment:+d} trust score",
    ReasonCode.TRUST_NO_RATING: "No quality rating: no trust score adjustment",
    ReasonCode.TRUST_ON_TIME: "On-time completion: {adjustment:+d} trust score",
    ReasonCode.TRUST_LATE: "Late completion: {adjustment:+d} trust score",
    ReasonCode.TRUST_FEEDBACK: "Detailed client feedback: {adjustment:+d} trust score",
    ReasonCode.TRUST_COMMUNITY: "Community work bonus: {adjustment:+d} trust score",
    ReasonCode.TRUST_FLOORED: "Trust score change floored at 0",
    ReasonCode.BASE_RWIS: "Base RWIS from task: {base}",
    ReasonCode.RWIS_CATEGORY_MULTIPLIER: "Category impact multiplier ({category}): x{multiplier:g}",
    ReasonCode.RWIS_COMPLEXITY_BONUS: "Task complexity bonus ({complexity}): +{bonus} RWIS",
    ReasonCode.RWIS_QUALITY_IMPACT: "High quality impact bonus: +{bonus} RWIS",
}


class ReasonFormatter:
    """
    Pure formatter for reasoning trails.

    All methods are static and pure.
    """

    @staticmethod
    def render(reason: Reason) -> str:
        """
        Render one structured reason.

        Example:
            >>> ReasonFormatter.render(Reason.of(ReasonCode.TRUST_LATE, adjustment=-3))
            'Late completion: -3 trust score'
        """
        return REASON_TEMPLATES[reason.code].format(**reason.params)

    @staticmethod
    def render_all(reasons: Iterable[Reason]) -> tuple[str, ...]:
        """Render a trail, preserving order."""
        return tuple(ReasonFormatter.render(reason) for reason in reasons)
