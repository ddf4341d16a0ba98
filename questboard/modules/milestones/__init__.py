"""Milestone ladders, catalog generation and the milestone tracker."""

from questboard.modules.milestones.catalog import (
    build_catalog,
    find_skipped_milestones,
    milestone_progress,
    next_category_milestone,
    select_newly_completed,
)
from questboard.modules.milestones.ladders import MilestoneLadders
from questboard.modules.milestones.tracker import MilestoneTracker

__all__ = [
    "MilestoneLadders",
    "MilestoneTracker",
    "build_catalog",
    "find_skipped_milestones",
    "milestone_progress",
    "next_category_milestone",
    "select_newly_completed",
]
