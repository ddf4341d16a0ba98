"""
Domain model factories for Questboard tests.

Usage:
    snapshot = make_snapshot(xp_points=1000, categories={WorkCategory.FREELANCE: 5})
    rewards = make_rewards(xp=200)
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from questboard.domain.models import (
    CategoryMetrics,
    TaskRewardSpec,
    UserStatsSnapshot,
    WorkCategory,
)

FROZEN_NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


def make_snapshot(
    user_id: str = "user-1",
    *,
    categories: Optional[Dict[WorkCategory, int]] = None,
    **fields: Any,
) -> UserStatsSnapshot:
    """Snapshot with ``categories`` given as completed-task counts."""
    stats = {
        category: CategoryMetrics(tasks_completed=count, total_xp=count * 100)
        for category, count in (categories or {}).items()
    }
    return UserStatsSnapshot(user_id=user_id, category_stats=stats, **fields)


def make_rewards(xp: int = 100, trust: int = 5, rwis: int = 50) -> TaskRewardSpec:
    return TaskRewardSpec(xp=xp, trust_score_bonus=trust, rwis_points=rwis)
