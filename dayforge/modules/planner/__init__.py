"""Day planning: free-gap computation and greedy task packing."""

from dayforge.modules.planner.intervals import Interval, compute_gaps, merge_intervals
from dayforge.modules.planner.models import DayPlan, ProposedEvent
from dayforge.modules.planner.packer import pack_tasks

__all__ = ["DayPlan", "Interval", "ProposedEvent", "compute_gaps", "merge_intervals", "pack_tasks"]
