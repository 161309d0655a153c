"""Allocation package - capacity-aware distribution of work-minutes over days.

This package provides:
- A multi-day planner that fills each day up to a resource's capacity and
  resolves overflow as overtime or pushes it to the next weekday
- A decision session that collects overtime decisions one overflow day at a time
- Fragment merging (days -> contiguous blocks) and expansion (blocks -> days)
- Manual three-state (none/normal/overtime) day editing

Main entry points:
- calculate_multi_day_allocation_plan: Plan a quantity of minutes
- OvertimeDecisionSession: Interactive overflow resolution
- merge_consecutive_days: Collapse a plan into fragments
"""

from .core import (
    DEFAULT_DAILY_CAPACITY_MINUTES,
    MAX_PLAN_DAYS,
    MAX_WEEKDAY_OVERTIME_MINUTES,
    NORMAL_MULTIPLIER,
    WEEKDAY_OVERTIME_MULTIPLIER,
    WEEKEND_OVERTIME_MULTIPLIER,
    AllocationFragment,
    CapacityOverflow,
    DayDecision,
    DayPlan,
    MultiDayAllocationPlan,
    OvertimeOption,
    OvertimeOptionType,
    WorkMode,
)
from .decisions import OvertimeDecisionSession, apply_decisions
from .editing import redistribute_days, set_work_mode
from .fragments import expand_fragments, merge_consecutive_days
from .planner import (
    AllocationTracer,
    LoggerTracer,
    OverflowResolver,
    calculate_multi_day_allocation_plan,
    calculate_overtime_cost,
    detect_capacity_overflow,
    generate_overtime_options,
    get_overtime_multiplier,
)

__all__ = [
    # Constants
    "DEFAULT_DAILY_CAPACITY_MINUTES",
    "MAX_PLAN_DAYS",
    "MAX_WEEKDAY_OVERTIME_MINUTES",
    "NORMAL_MULTIPLIER",
    "WEEKDAY_OVERTIME_MULTIPLIER",
    "WEEKEND_OVERTIME_MULTIPLIER",
    # Core dataclasses
    "AllocationFragment",
    "CapacityOverflow",
    "DayDecision",
    "DayPlan",
    "MultiDayAllocationPlan",
    "OvertimeOption",
    "OvertimeOptionType",
    "WorkMode",
    # Planner
    "AllocationTracer",
    "LoggerTracer",
    "OverflowResolver",
    "calculate_multi_day_allocation_plan",
    "calculate_overtime_cost",
    "detect_capacity_overflow",
    "generate_overtime_options",
    "get_overtime_multiplier",
    # Decisions
    "OvertimeDecisionSession",
    "apply_decisions",
    # Fragments
    "expand_fragments",
    "merge_consecutive_days",
    # Editing
    "redistribute_days",
    "set_work_mode",
]
