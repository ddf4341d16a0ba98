"""
LevelCalculator - derives levels and feature unlocks from cumulative XP.

Purpose
-------
Map a user's total XP onto the exponential level curve
(``requirement(L) = floor(base * growth^(L-1))``), report how far they are
from the next level, and list the features unlocked along the way.

Design Notes
------------
- Pure; requirement and cumulative tables are precomputed up to the cap.
- The derived level depends only on total XP. Callers that store a level
  keep it monotone themselves (``UserProgress.apply_level``).
- ``unlocked_features`` lists every feature at or below the new level when a
  level-up happened; ``newly_unlocked_features`` lists only the ones crossed
  by this change and is what notifications use.
"""

from __future__ import annotations

import bisect
from typing import Optional

from questboard.domain.models.milestone import LevelProgress, LevelProgressionResult
from questboard.modules.leveling.rules import LevelRules
from questboard.modules.shared.formulas import clamp_level, xp_required_for_level


class LevelCalculator:
    """Level curve lookups driven by ``LevelRules``."""

    def __init__(self, rules: Optional[LevelRules] = None) -> None:
        self._rules = rules or LevelRules()

        cap = self._rules.level_cap
        # index L holds the value for level L; index 0 unused
        self._requirements = [0] + [
            xp_required_for_level(level, self._rules.base_xp, self._rules.growth_rate)
            for level in range(1, cap + 2)
        ]
        self._cumulative = [0, 0]
        for level in range(1, cap + 1):
            self._cumulative.append(self._cumulative[-1] + self._requirements[level])

    @property
    def rules(self) -> LevelRules:
        return self._rules

    # =========================================================================
    # CURVE
    # =========================================================================

    def xp_required_for_level(self, level: int) -> int:
        """XP needed to advance from ``level`` to ``level + 1``."""
        level = clamp_level(level)
        if level < len(self._requirements):
            return self._requirements[level]
        return xp_required_for_level(level, self._rules.base_xp, self._rules.growth_rate)

    def cumulative_xp_for_level(self, level: int) -> int:
        """Total XP needed to reach ``level`` from level 1."""
        level = clamp_level(level)
        if level < len(self._cumulative):
            return self._cumulative[level]
        return self._cumulative[-1] + sum(
            self.xp_required_for_level(n) for n in range(len(self._cumulative) - 1, level)
        )

    def level_for_xp(self, total_xp: int) -> int:
        """Largest level (capped) whose cumulative requirement is <= total_xp."""
        total_xp = max(0, int(total_xp))
        # cumulative is non-decreasing from index 1, so bisect over levels 1..cap
        level = bisect.bisect_right(self._cumulative, total_xp, lo=1, hi=self._rules.level_cap + 1) - 1
        return max(1, min(level, self._rules.level_cap))

    # =========================================================================
    # FEATURES
    # =========================================================================

    def _features_at(self, level: int) -> list[str]:
        features = []
        if level in self._rules.features:
            features.append(self._rules.features[level])
        interval = self._rules.badge_interval
        if interval and level % interval == 0:
            features.append(f"Level {level} Badge")
        return features

    def features_for_level(self, level: int) -> tuple[str, ...]:
        """All features unlocked at or below ``level``, in unlock order."""
        return self._features_between(0, clamp_level(level))

    def _features_between(self, low_exclusive: int, high_inclusive: int) -> tuple[str, ...]:
        return tuple(
            feature
            for level in range(low_exclusive + 1, high_inclusive + 1)
            for feature in self._features_at(level)
        )

    # =========================================================================
    # PROGRESSION
    # =========================================================================

    def calculate_level_progression(
        self, total_xp: int, current_level: int
    ) -> LevelProgressionResult:
        """
        Derive the level for ``total_xp`` and compare it with ``current_level``.

        Example:
            >>> LevelCalculator().calculate_level_progression(250, 1).new_level
            3
        """
        total_xp = max(0, int(total_xp))
        previous_level = clamp_level(current_level)
        new_level = self.level_for_xp(total_xp)
        leveled_up = new_level > previous_level

        requirement = self.xp_required_for_level(new_level)
        into_level = total_xp - self.cumulative_xp_for_level(new_level)

        return LevelProgressionResult(
            previous_level=previous_level,
            new_level=new_level,
            leveled_up=leveled_up,
            xp_required_for_current_level=requirement,
            xp_to_next_level=max(0, requirement - into_level),
            unlocked_features=self.features_for_level(new_level) if leveled_up else (),
            newly_unlocked_features=(
                self._features_between(previous_level, new_level) if leveled_up else ()
            ),
        )

    def level_progress(self, total_xp: int, current_level: int) -> LevelProgress:
        """Progress-bar view of the current level with absolute XP markers."""
        total_xp = max(0, int(total_xp))
        level = self.calculate_level_progression(total_xp, current_level).new_level

        floor_xp = self.cumulative_xp_for_level(level)
        next_xp = self.cumulative_xp_for_level(level + 1)
        span = next_xp - floor_xp
        if span <= 0 or total_xp >= next_xp:
            progress = 100.0
        else:
            progress = max(0.0, (total_xp - floor_xp) / span * 100)

        return LevelProgress(
            current_level=level,
            current_xp=total_xp,
            xp_for_current_level=floor_xp,
            xp_for_next_level=next_xp,
            progress_to_next_level=round(progress, 2),
            xp_needed=max(0, next_xp - total_xp),
        )
