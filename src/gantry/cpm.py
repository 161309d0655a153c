"""Critical Path Method (CPM) calculator.

Computes early/late start and finish dates, total and free slack, and the
critical path for the tasks of a project.

Algorithm:
1. Forward pass in topological order: early start is the most restrictive
   (latest) date implied by any incoming edge; roots keep their recorded start.
2. Backward pass in reverse topological order: late finish is the most
   restrictive (earliest) date implied by any outgoing edge; terminal tasks
   are seeded with late finish = early finish.
3. Total slack = late start - early start; tasks with slack <= 0 are critical.

The critical path is the set of critical tasks in topological order. Every
terminal task is seeded with its own early finish, so a task with no
successors is critical even when it is unrelated to the longest chain; only
a graph with a single terminal task yields one connected chain.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING

from .dates import add_days, days_between
from .graph import TaskGraph
from .logger import debug_enabled, get_logger
from .models import PredecessorType

if TYPE_CHECKING:
    from .models import Predecessor, Task

logger = get_logger()


@dataclass
class CPMTaskResult:
    """CPM outcome for a single task."""

    task_id: str
    early_start: date
    early_finish: date
    late_start: date
    late_finish: date
    total_slack: int = 0
    free_slack: int = 0
    is_critical: bool = False


def _default_results() -> dict[str, CPMTaskResult]:
    return {}


def _default_str_list() -> list[str]:
    return []


@dataclass
class CPMResult:
    """Complete CPM outcome for a project."""

    tasks: dict[str, CPMTaskResult] = field(default_factory=_default_results)
    critical_path: list[str] = field(default_factory=_default_str_list)
    project_duration: int = 0
    project_early_finish: date | None = None
    project_late_finish: date | None = None


def early_start_from_edge(
    edge: Predecessor, duration: int, predecessor_early_start: date, predecessor_early_finish: date
) -> date:
    """Earliest start of the dependent implied by one incoming edge.

    Start-to-finish has no formula of its own and is treated as
    finish-to-start.
    """
    lag = edge.lag_time
    if edge.type == PredecessorType.START_TO_START:
        return add_days(predecessor_early_start, lag)
    if edge.type == PredecessorType.FINISH_TO_FINISH:
        return add_days(predecessor_early_finish, -duration + 1 + lag)
    return add_days(predecessor_early_finish, 1 + lag)


def late_finish_from_edge(
    edge: Predecessor, duration: int, successor_late_start: date, successor_late_finish: date
) -> date:
    """Latest finish of the predecessor implied by one outgoing edge.

    Start-to-finish has no formula of its own and is treated as
    finish-to-start.
    """
    lag = edge.lag_time
    if edge.type == PredecessorType.START_TO_START:
        return add_days(successor_late_start, -lag + duration - 1)
    if edge.type == PredecessorType.FINISH_TO_FINISH:
        return add_days(successor_late_finish, -lag)
    return add_days(successor_late_start, -1 - lag)


def calculate_critical_path(
    tasks: list[Task],
    predecessors: list[Predecessor],
    project_start_date: date | None = None,
) -> CPMResult:
    """Run the Critical Path Method over a project.

    Only tasks with both a start and an end date take part. Edges touching
    any other task are ignored.

    Args:
        tasks: All tasks of the project
        predecessors: All predecessor edges of the project
        project_start_date: Project start; defaults to the earliest start
            among tasks without predecessors

    Returns:
        CPMResult with per-task dates and slack, the critical path and the
        project duration. Empty when no task has dates.

    Raises:
        CycleDetectedError: If the predecessor edges form a cycle
    """
    graph = TaskGraph([t for t in tasks if t.has_dates], predecessors)
    if not len(graph):
        return CPMResult()

    order = graph.topological_order()

    if project_start_date is None:
        root_starts = [graph.tasks[task_id].start_date for task_id in graph.roots()]
        project_start_date = min(d for d in root_starts if d is not None)

    results = _forward_pass(graph, order)
    _backward_pass(graph, order, results)
    critical_path = _compute_slack(graph, order, results)

    project_early_finish = max(r.early_finish for r in results.values())
    project_duration = days_between(project_start_date, project_early_finish) + 1

    logger.changes(
        f"CPM: {len(results)} tasks, {len(critical_path)} critical, "
        f"duration {project_duration} days (finish {project_early_finish})"
    )

    return CPMResult(
        tasks=results,
        critical_path=critical_path,
        project_duration=project_duration,
        project_early_finish=project_early_finish,
        # No project deadline is modelled, so the late finish equals the early finish
        project_late_finish=project_early_finish,
    )


def _forward_pass(graph: TaskGraph, order: list[str]) -> dict[str, CPMTaskResult]:
    """Compute early start/finish for every task."""
    results: dict[str, CPMTaskResult] = {}

    for task_id in order:
        task = graph.tasks[task_id]
        assert task.start_date is not None
        duration = task.span_days

        candidates: list[date] = []
        for edge in graph.incoming(task_id):
            pred = results[edge.predecessor_id]
            candidate = early_start_from_edge(edge, duration, pred.early_start, pred.early_finish)
            logger.checks(
                f"  {task_id}: {edge.type.code} from {edge.predecessor_id} "
                f"(lag {edge.lag_time}) -> earliest start {candidate}"
            )
            candidates.append(candidate)

        early_start = max(candidates) if candidates else task.start_date
        early_finish = add_days(early_start, duration - 1)

        results[task_id] = CPMTaskResult(
            task_id=task_id,
            early_start=early_start,
            early_finish=early_finish,
            # Placeholders until the backward pass runs
            late_start=early_start,
            late_finish=early_finish,
        )

    return results


def _backward_pass(graph: TaskGraph, order: list[str], results: dict[str, CPMTaskResult]) -> None:
    """Compute late start/finish for every task, in place."""
    for task_id in reversed(order):
        result = results[task_id]
        duration = graph.tasks[task_id].span_days

        candidates: list[date] = []
        for edge in graph.outgoing(task_id):
            succ = results[edge.task_id]
            candidates.append(
                late_finish_from_edge(edge, duration, succ.late_start, succ.late_finish)
            )

        result.late_finish = min(candidates) if candidates else result.early_finish
        result.late_start = add_days(result.late_finish, -duration + 1)

        if debug_enabled():
            logger.debug(
                f"  {task_id}: ES={result.early_start} EF={result.early_finish} "
                f"LS={result.late_start} LF={result.late_finish}"
            )


def _compute_slack(
    graph: TaskGraph, order: list[str], results: dict[str, CPMTaskResult]
) -> list[str]:
    """Fill in slack and criticality; return the critical task IDs in topological order."""
    critical_path: list[str] = []

    for task_id in order:
        result = results[task_id]
        result.total_slack = days_between(result.early_start, result.late_start)

        successor_starts = [results[succ_id].early_start for succ_id in graph.successors(task_id)]
        if successor_starts:
            result.free_slack = days_between(result.early_finish, min(successor_starts)) - 1
        else:
            result.free_slack = result.total_slack

        result.is_critical = result.total_slack <= 0
        if result.is_critical:
            critical_path.append(task_id)
            logger.changes(f"  Critical: {task_id} (slack {result.total_slack})")

    return critical_path


def update_critical_path_flags(tasks: list[Task], cpm_result: CPMResult) -> list[tuple[str, bool]]:
    """List the tasks whose stored critical flag disagrees with a CPM result.

    Args:
        tasks: Tasks carrying their stored ``is_critical_path`` flag
        cpm_result: Fresh CPM result

    Returns:
        (task_id, is_critical) pairs for the tasks that need updating. Tasks
        missing from the result are treated as non-critical.
    """
    updates: list[tuple[str, bool]] = []
    for task in tasks:
        entry = cpm_result.tasks.get(task.id)
        is_critical = entry.is_critical if entry else False
        if task.is_critical_path != is_critical:
            updates.append((task.id, is_critical))
    return updates
