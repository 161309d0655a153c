"""Gantry - task scheduling and capacity allocation engine.

Main entry points:
- calculate_critical_path: Early/late dates, slack and the critical path
- recalculate_tasks_in_cascade: Propagate a task's dates downstream
- audit_predecessor_conflicts: Find tasks scheduled before their predecessors allow
- validate_task_start_date: Check a proposed start date
- calculate_multi_day_allocation_plan: Spread work-minutes over days under capacity
- merge_consecutive_days: Collapse day plans into fragments
"""

from .allocation import (
    AllocationFragment,
    DayPlan,
    MultiDayAllocationPlan,
    OvertimeDecisionSession,
    WorkMode,
    apply_decisions,
    calculate_multi_day_allocation_plan,
    expand_fragments,
    merge_consecutive_days,
)
from .config import GantryConfig, ResourceDefinition, load_config, load_effective_config
from .cpm import CPMResult, CPMTaskResult, calculate_critical_path, update_critical_path_flags
from .dates import WorkCalendar
from .exceptions import (
    CycleDetectedError,
    GantryError,
    InvalidDateError,
    MissingReferenceError,
    OverflowUnresolvedError,
    ParseError,
    ValidationError,
)
from .graph import TaskGraph
from .loader import load_project
from .models import Predecessor, PredecessorType, Project, Task, TaskUpdate
from .propagation import (
    ValidationResult,
    audit_predecessor_conflicts,
    move_task,
    recalculate_tasks_in_cascade,
    validate_task_start_date,
)

__all__ = [
    # Models
    "Task",
    "Predecessor",
    "PredecessorType",
    "Project",
    "TaskUpdate",
    "TaskGraph",
    "WorkCalendar",
    # CPM
    "CPMResult",
    "CPMTaskResult",
    "calculate_critical_path",
    "update_critical_path_flags",
    # Propagation
    "ValidationResult",
    "audit_predecessor_conflicts",
    "move_task",
    "recalculate_tasks_in_cascade",
    "validate_task_start_date",
    # Allocation
    "AllocationFragment",
    "DayPlan",
    "MultiDayAllocationPlan",
    "OvertimeDecisionSession",
    "WorkMode",
    "apply_decisions",
    "calculate_multi_day_allocation_plan",
    "expand_fragments",
    "merge_consecutive_days",
    # Configuration and loading
    "GantryConfig",
    "ResourceDefinition",
    "load_config",
    "load_effective_config",
    "load_project",
    # Exceptions
    "GantryError",
    "InvalidDateError",
    "CycleDetectedError",
    "OverflowUnresolvedError",
    "ValidationError",
    "MissingReferenceError",
    "ParseError",
]
