"""
Questboard Progression Formulas

Purpose
-------
Pure calculation functions for the progression engine: the level curve,
quality clamping, level scaling, running rating averages, and the category
balance score.

Design Notes
------------
All formulas:
- Accept parameters explicitly (no config access)
- Return calculated values
- Are deterministic and never raise for well-typed input

Usage
-----
    from questboard.modules.shared.formulas import xp_required_for_level

    needed = xp_required_for_level(3)  # 225
"""

from __future__ import annotations

import math
from fractions import Fraction
from typing import Any, Sequence

from questboard.modules.shared.constants import (
    BALANCE_IDEAL_SHARE,
    BALANCE_PENALTY_PER_POINT,
    LEVEL_BASE_XP,
    LEVEL_CAP,
    LEVEL_GROWTH,
    QUALITY_MAX,
    QUALITY_MIN,
)


def clamp_quality(value: Any) -> float:
    """
    Clamp a quality rating into [0, 5].

    Non-numeric and non-finite input counts as "no rating" (0).

    Example:
        >>> clamp_quality(7)
        5.0
        >>> clamp_quality(float("nan"))
        0.0
    """
    if isinstance(value, bool):
        return QUALITY_MIN
    try:
        number = float(value)
    except (TypeError, ValueError):
        return QUALITY_MIN
    if not math.isfinite(number):
        return QUALITY_MIN
    return min(QUALITY_MAX, max(QUALITY_MIN, number))


_FLOOR_EPSILON = 1e-9


def exact(value: Any) -> Fraction:
    """
    Exact rational for a point amount or a configured rate.

    Floats go through their shortest repr, so ``1.2`` is ``6/5`` rather than
    the nearest binary fraction. Integers of any size stay exact.

    Example:
        >>> exact(1.2) * 100
        Fraction(120, 1)
    """
    if isinstance(value, (int, Fraction)):
        return Fraction(value)
    return Fraction(repr(float(value)))


def floor_points(value: float) -> int:
    """
    Floor a point amount, absorbing binary float error.

    ``100 * (1.2 - 1)`` evaluates to 19.999999999999996; it must award 20.

    Example:
        >>> floor_points(100 * (1.2 - 1))
        20
    """
    return math.floor(value + _FLOOR_EPSILON)


def clamp_level(level: Any) -> int:
    """Coerce a level into an int >= 1."""
    try:
        number = int(level)
    except (TypeError, ValueError, OverflowError):
        return 1
    return max(1, number)


def xp_required_for_level(
    level: int, base: int = LEVEL_BASE_XP, growth: float = LEVEL_GROWTH
) -> int:
    """
    XP needed to advance from ``level`` to ``level + 1``.

    Example:
        >>> xp_required_for_level(1)
        100
        >>> xp_required_for_level(3)
        225
    """
    return math.floor(exact(base) * exact(growth) ** (clamp_level(level) - 1))


def cumulative_xp_for_level(
    level: int, base: int = LEVEL_BASE_XP, growth: float = LEVEL_GROWTH
) -> int:
    """
    Total XP needed to reach ``level`` from level 1.

    Example:
        >>> cumulative_xp_for_level(1)
        0
        >>> cumulative_xp_for_level(3)
        250
    """
    return sum(xp_required_for_level(n, base, growth) for n in range(1, clamp_level(level)))


def level_for_total_xp(
    total_xp: int,
    base: int = LEVEL_BASE_XP,
    growth: float = LEVEL_GROWTH,
    cap: int = LEVEL_CAP,
) -> int:
    """
    Largest level L (1..cap) with cumulative_xp_for_level(L) <= total_xp.

    Example:
        >>> level_for_total_xp(249)
        2
        >>> level_for_total_xp(250)
        3
    """
    level = 1
    threshold = 0
    while level < cap:
        threshold += xp_required_for_level(level, base, growth)
        if total_xp < threshold:
            break
        level += 1
    return level


def level_scaling_factor(level: int, step: float, floor: float) -> float:
    """
    XP multiplier for a user level: ``max(floor, 1 - (level - 1) * step)``.

    Computed exactly, so arbitrarily large levels simply reach the floor.

    Example:
        >>> level_scaling_factor(11, 0.02, 0.5)
        0.8
    """
    factor = max(exact(floor), 1 - (clamp_level(level) - 1) * exact(step))
    return float(factor)


def running_average(current_average: float, rated_count: int, new_rating: float) -> float:
    """
    Fold ``new_rating`` into an average over ``rated_count`` previous ratings.

    Example:
        >>> running_average(4.0, 1, 5.0)
        4.5
    """
    if rated_count <= 0:
        return float(new_rating)
    return (current_average * rated_count + new_rating) / (rated_count + 1)


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer with .5 rounding up (unlike round()).

    Example:
        >>> round_half_up(84.5)
        85
    """
    return math.floor(value + 0.5)


def category_balance_score(
    counts: Sequence[int],
    ideal_share: float = BALANCE_IDEAL_SHARE,
    penalty_per_point: float = BALANCE_PENALTY_PER_POINT,
) -> int:
    """
    Score 0-100 for how evenly work is spread across categories.

    Each category's share (percent of all tasks) is compared with the ideal
    one-third split; the mean absolute deviation costs ``penalty_per_point``
    per percentage point. No tasks at all scores 100.

    Example:
        >>> category_balance_score([10, 10, 10])
        100
        >>> category_balance_score([30, 0, 0])
        0
    """
    total = sum(counts)
    if total <= 0 or not counts:
        return 100

    deviations = [abs(count / total * 100 - ideal_share) for count in counts]
    mean_deviation = sum(deviations) / len(deviations)
    return round_half_up(max(0.0, 100 - penalty_per_point * mean_deviation))
