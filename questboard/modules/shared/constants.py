"""
Questboard Progression Constants

Purpose
-------
Default balance values for the progression and rewards engine. These are the
fallbacks used when `config/progression.yaml` does not override a key; the
rules objects (`RewardRules`, `LevelRules`, `MilestoneLadders`, `ZoneRules`)
read ConfigManager first and fall back to the values here.

IMPORTANT:
This module contains PROGRESSION constants only. Infrastructure settings
(database pool, logging) live in `questboard.core.config.config.Config`.

Design Notes
------------
- Values are annotated with typing.Final to signal immutability
- Grouped by subsystem (rewards, leveling, milestones, zones)
- Mappings are keyed by the enum *value* strings so they mirror the YAML layout
"""

from __future__ import annotations

from typing import Final, Mapping

# ============================================================================
# XP REWARDS
# ============================================================================

XP_CATEGORY_MULTIPLIERS: Final[Mapping[str, float]] = {
    "freelance": 1.0,
    "corporate": 1.1,
    "community": 1.2,
}

# (minimum quality, bonus rate, tier label), checked top-down
XP_QUALITY_TIERS: Final[tuple[tuple[float, float, str], ...]] = (
    (5.0, 0.30, "Exceptional"),
    (4.0, 0.25, "High"),
    (3.0, 0.10, "Good"),
    (2.0, 0.05, "Fair"),
    (1.0, 0.02, "Minimal"),
)

XP_EARLY_COMPLETION_RATE: Final[float] = 0.2
XP_LEVEL_SCALING_STEP: Final[float] = 0.02
XP_LEVEL_SCALING_FLOOR: Final[float] = 0.5

# ============================================================================
# TRUST SCORE
# ============================================================================

# (minimum quality, adjustment, label); quality 0 means "no rating"
TRUST_QUALITY_ADJUSTMENTS: Final[tuple[tuple[float, int, str], ...]] = (
    (5.0, 3, "Excellent"),
    (4.0, 2, "Good"),
    (3.0, 1, "Satisfactory"),
    (2.0, -1, "Poor"),
)
TRUST_UNSATISFACTORY_PENALTY: Final[int] = -2
TRUST_ON_TIME_BONUS: Final[int] = 1
TRUST_LATE_PENALTY: Final[int] = -3
TRUST_FEEDBACK_BONUS: Final[int] = 1
TRUST_FEEDBACK_MIN_LENGTH: Final[int] = 50
TRUST_COMMUNITY_BONUS: Final[int] = 1

# ============================================================================
# REAL-WORLD IMPACT SCORE (RWIS)
# ============================================================================

RWIS_CATEGORY_MULTIPLIERS: Final[Mapping[str, float]] = {
    "freelance": 1.0,
    "corporate": 1.2,
    "community": 1.5,
}

RWIS_COMPLEXITY_MULTIPLIERS: Final[Mapping[str, float]] = {
    "low": 1.0,
    "medium": 1.2,
    "high": 1.5,
}

RWIS_TOP_QUALITY_RATE: Final[float] = 0.3

QUALITY_MIN: Final[float] = 0.0
QUALITY_MAX: Final[float] = 5.0

# ============================================================================
# LEVELING
# ============================================================================

LEVEL_BASE_XP: Final[int] = 100
LEVEL_GROWTH: Final[float] = 1.5
LEVEL_CAP: Final[int] = 500
LEVEL_BADGE_INTERVAL: Final[int] = 10

LEVEL_FEATURES: Final[Mapping[int, str]] = {
    5: "Advanced Task Filtering",
    10: "Mentor Status",
    15: "Custom Character Accessories",
    20: "Zone Fast Travel",
    25: "Expert Task Access",
}

# ============================================================================
# MILESTONES
# ============================================================================

MILESTONE_XP_TARGETS: Final[tuple[int, ...]] = (
    100, 250, 500, 1000, 2500, 5000, 10000, 25000, 50000, 100000,
)
MILESTONE_TRUST_TARGETS: Final[tuple[int, ...]] = (10, 25, 50, 100, 200, 400, 800, 1600)
MILESTONE_RWIS_TARGETS: Final[tuple[int, ...]] = (50, 100, 250, 500, 1000, 2500, 5000, 10000)
MILESTONE_TASK_TARGETS: Final[tuple[int, ...]] = (1, 5, 10, 25, 50, 100, 200, 500, 1000)
MILESTONE_LEVEL_TARGETS: Final[tuple[int, ...]] = (5, 10, 15, 20, 25, 30, 40, 50)
MILESTONE_CATEGORY_TARGETS: Final[tuple[int, ...]] = (5, 10, 20, 35, 50, 75, 100)

# "next milestone" ladder shown on category progress cards
CATEGORY_NEXT_MILESTONES: Final[tuple[int, ...]] = (5, 10, 20, 35, 50, 75, 100, 150, 200)

MILESTONE_XP_REWARD_RATE: Final[float] = 0.1
MILESTONE_TRUST_REWARD_RATE: Final[float] = 0.05
MILESTONE_RWIS_REWARD_RATE: Final[float] = 0.2
MILESTONE_TASK_REWARD_PER_TASK: Final[int] = 10
MILESTONE_LEVEL_REWARD_PER_LEVEL: Final[int] = 50
MILESTONE_CATEGORY_REWARD_PER_TASK: Final[int] = 15

MILESTONE_XP_BADGE_FROM_INDEX: Final[int] = 5
MILESTONE_TRUST_ZONE_FROM_INDEX: Final[int] = 2
MILESTONE_RWIS_BADGE_FROM_TARGET: Final[int] = 1000
MILESTONE_TASK_BADGE_FROM_INDEX: Final[int] = 3
MILESTONE_CATEGORY_BADGE_FROM_TARGET: Final[int] = 20

SUMMARY_COMPLETED_LIMIT: Final[int] = 10
SUMMARY_UPCOMING_LIMIT: Final[int] = 5
SUMMARY_RECENT_BADGE_DAYS: Final[int] = 7
SUMMARY_RECENT_BADGE_LIMIT: Final[int] = 5
SUMMARY_NEXT_BADGE_LIMIT: Final[int] = 3

RECOMMENDATION_IMBALANCE_THRESHOLD: Final[int] = 5
BALANCE_PENALTY_PER_POINT: Final[float] = 3.0
BALANCE_IDEAL_SHARE: Final[float] = 33.33

# ============================================================================
# ZONES
# ============================================================================

DEFAULT_ZONE: Final[str] = "zone-1"

# zone id -> (minimum trust score, minimum level)
ZONE_UNLOCK_CRITERIA: Final[Mapping[str, tuple[int, int]]] = {
    "zone-2": (25, 3),
    "zone-3": (50, 5),
    "zone-4": (100, 8),
    "zone-5": (200, 12),
    "zone-6": (400, 18),
    "zone-7": (800, 25),
}

# ============================================================================
# IDEMPOTENCY CLAIMS
# ============================================================================

CLAIM_TASK_COMPLETION: Final[str] = "task_completion"
CLAIM_MILESTONE: Final[str] = "milestone"

LEADERBOARD_METRICS: Final[tuple[str, ...]] = (
    "trust_score",
    "rwis_score",
    "xp_points",
    "current_level",
)
LEADERBOARD_DEFAULT_LIMIT: Final[int] = 10
LEADERBOARD_MAX_LIMIT: Final[int] = 100
