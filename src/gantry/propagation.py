"""Predecessor constraint propagation.

Recalculates dependent task dates after an edit, audits a project for tasks
scheduled before their predecessors allow, and validates a proposed start date
before it is committed. All date arithmetic is anchored on the recorded dates
of the predecessor, not on CPM-derived early dates.
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, replace
from datetime import date
from typing import TYPE_CHECKING

from .dates import add_days, days_between
from .exceptions import InvalidDateError, ValidationError
from .graph import TaskGraph
from .logger import get_logger
from .models import PredecessorType, TaskUpdate

if TYPE_CHECKING:
    from .models import Predecessor, Task

logger = get_logger()


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of checking a proposed start date against predecessors."""

    is_valid: bool
    message: str | None = None

    def raise_if_invalid(self) -> None:
        """Raise ValidationError carrying the message when invalid."""
        if not self.is_valid:
            raise ValidationError(self.message or "Invalid task start date")


def calculate_task_date_from_predecessor(
    task: Task, predecessor: Task, edge: Predecessor
) -> tuple[date, date]:
    """Compute the dates a predecessor relation implies for its dependent.

    Args:
        task: The dependent task
        predecessor: The predecessor task (its recorded dates are used)
        edge: The relation between them

    Returns:
        Tuple of (start_date, end_date) for the dependent

    Raises:
        InvalidDateError: If the predecessor has no start date, or the
            relation keeps the dependent's own start and it has none
    """
    if predecessor.start_date is None:
        raise InvalidDateError(f"Predecessor '{predecessor.id}' has no start date")

    pred_start = predecessor.start_date
    pred_end = predecessor.end_date or predecessor.start_date
    lag = edge.lag_time
    duration = task.span_days

    if edge.type == PredecessorType.FINISH_TO_START:
        start = add_days(pred_end, 1 + lag)
    elif edge.type == PredecessorType.START_TO_START:
        start = add_days(pred_start, lag)
    elif edge.type == PredecessorType.FINISH_TO_FINISH:
        start = add_days(add_days(pred_end, lag), -duration + 1)
    else:
        # Start-to-finish does not move the dependent
        if task.start_date is None:
            raise InvalidDateError(f"Task '{task.id}' has no start date")
        start = task.start_date

    return start, add_days(start, duration - 1)


def detect_date_conflict(task: Task, calculated_start: date) -> tuple[bool, int]:
    """Compare a task's recorded start with a calculated start.

    Returns:
        Tuple of (has_conflict, days_difference). The difference is positive
        when the calculated start is later than the recorded one. Tasks
        without a start date never conflict.
    """
    if task.start_date is None:
        return False, 0
    difference = days_between(task.start_date, calculated_start)
    return difference != 0, difference


def recalculate_tasks_in_cascade(
    changed_task_id: str,
    tasks: list[Task],
    predecessors: list[Predecessor],
    *,
    only_changed: bool = False,
) -> list[TaskUpdate]:
    """Propagate a task's dates to everything downstream of it.

    Walks breadth-first from the changed task along predecessor edges. Every
    dependent reached gets an update, even when its dates come out unchanged,
    so the walk keeps confirming the tasks further down. Later hops compute
    from the dates assigned earlier in the same walk. The caller's tasks are
    never modified.

    Args:
        changed_task_id: Task whose dates were edited
        tasks: All tasks of the project
        predecessors: All predecessor edges of the project
        only_changed: Collapse the result to one net update per task and drop
            tasks whose final dates equal their current dates

    Returns:
        List of task updates in visiting order

    Raises:
        InvalidDateError: If the changed task has no start date
    """
    working = {task.id: replace(task) for task in tasks}
    changed_task = working.get(changed_task_id)
    if changed_task is not None and changed_task.start_date is None:
        raise InvalidDateError(f"Task '{changed_task_id}' has no start date")

    graph = TaskGraph(working.values(), predecessors)
    updates: list[TaskUpdate] = []
    processed: set[str] = set()
    queue: deque[str] = deque([changed_task_id])

    # Each task is expanded at most once, so the walk is bounded by the task count
    while queue:
        current_id = queue.popleft()
        if current_id in processed:
            continue
        processed.add(current_id)

        for edge in graph.outgoing(current_id):
            dependent = working[edge.task_id]
            predecessor = working[edge.predecessor_id]

            try:
                new_start, new_end = calculate_task_date_from_predecessor(
                    dependent, predecessor, edge
                )
            except InvalidDateError as e:
                logger.checks(f"  Skipping {edge.predecessor_id} -> {edge.task_id}: {e}")
                continue

            had_date = dependent.start_date is not None
            changed = (dependent.start_date, dependent.end_date) != (new_start, new_end)
            if had_date:
                reason = f'Predecessor "{predecessor.name}" was changed'
            else:
                reason = f'Date calculated from predecessor "{predecessor.name}"'

            updates.append(
                TaskUpdate(
                    id=dependent.id,
                    start_date=new_start,
                    end_date=new_end,
                    reason=reason,
                    changed=changed,
                )
            )
            if changed:
                logger.changes(
                    f"  {dependent.id}: {dependent.start_date} -> {new_start} "
                    f"(via {edge.type.code} from {predecessor.id})"
                )

            working[dependent.id] = replace(dependent, start_date=new_start, end_date=new_end)
            queue.append(dependent.id)

    if only_changed:
        return _net_changes(updates, tasks)
    return updates


def _net_changes(updates: list[TaskUpdate], tasks: list[Task]) -> list[TaskUpdate]:
    """Keep the last update per task, dropping tasks that end where they began."""
    original = {task.id: (task.start_date, task.end_date) for task in tasks}
    last: dict[str, TaskUpdate] = {}
    for update in updates:
        # Re-inserting keeps first-visit order while the value tracks the last update
        last[update.id] = update

    return [
        replace(update, changed=True)
        for update in last.values()
        if original.get(update.id) != (update.start_date, update.end_date)
    ]


def audit_predecessor_conflicts(
    tasks: list[Task], predecessors: list[Predecessor]
) -> list[TaskUpdate]:
    """Find tasks scheduled earlier than their predecessors allow.

    Only under-scheduling is reported; a task starting later than required is
    left alone (its extra room shows up as CPM slack). When several
    predecessors constrain the same task, the latest implied start wins.

    Args:
        tasks: All tasks of the project
        predecessors: All predecessor edges of the project

    Returns:
        One update per conflicting task carrying the corrected dates
    """
    graph = TaskGraph(tasks, predecessors)
    conflicts: dict[str, TaskUpdate] = {}

    for task_id, task in graph.tasks.items():
        if task.start_date is None:
            continue

        for edge in graph.incoming(task_id):
            predecessor = graph.tasks[edge.predecessor_id]
            if not predecessor.has_dates:
                continue

            try:
                new_start, new_end = calculate_task_date_from_predecessor(task, predecessor, edge)
            except InvalidDateError:
                continue

            has_conflict, days_late = detect_date_conflict(task, new_start)
            if not has_conflict or days_late < 0:
                continue

            existing = conflicts.get(task_id)
            if existing is not None and existing.start_date >= new_start:
                continue

            logger.checks(
                f"  Conflict: {task_id} starts {task.start_date}, "
                f"{edge.predecessor_id} requires {new_start}"
            )
            conflicts[task_id] = TaskUpdate(
                id=task_id,
                start_date=new_start,
                end_date=new_end,
                reason=(
                    f'Conflicts with predecessor "{predecessor.name}" '
                    f"(must start {days_late} day(s) later)"
                ),
            )

    return list(conflicts.values())


def validate_task_start_date(
    task: Task,
    proposed_start: date,
    tasks: list[Task],
    predecessors: list[Predecessor],
) -> ValidationResult:
    """Check whether a task may start on a proposed date.

    Never raises: predecessors that cannot be evaluated are skipped.

    Args:
        task: Task being moved
        proposed_start: Candidate start date
        tasks: All tasks of the project
        predecessors: All predecessor edges of the project

    Returns:
        ValidationResult naming the first violated predecessor, if any
    """
    by_id = {t.id: t for t in tasks}

    for edge in predecessors:
        if edge.task_id != task.id:
            continue
        predecessor = by_id.get(edge.predecessor_id)
        if predecessor is None:
            continue

        try:
            implied_start, _ = calculate_task_date_from_predecessor(task, predecessor, edge)
        except InvalidDateError:
            continue

        if proposed_start < implied_start:
            days_diff = math.ceil(days_between(proposed_start, implied_start))
            return ValidationResult(
                is_valid=False,
                message=(
                    f'Conflicts with predecessor "{predecessor.name}". '
                    f"The task must start {days_diff} day(s) later."
                ),
            )

    return ValidationResult(is_valid=True)


def move_task(
    task_id: str,
    proposed_start: date,
    tasks: list[Task],
    predecessors: list[Predecessor],
) -> list[TaskUpdate]:
    """Move a task to a new start date and cascade the change downstream.

    The task keeps its duration. The move is validated against the task's
    predecessors before anything is computed.

    Args:
        task_id: Task being moved
        proposed_start: New start date
        tasks: All tasks of the project
        predecessors: All predecessor edges of the project

    Returns:
        The moved task's own update followed by the cascade updates

    Raises:
        ValidationError: If the task is unknown or the move violates a predecessor
    """
    task = next((t for t in tasks if t.id == task_id), None)
    if task is None:
        raise ValidationError(f"Unknown task: {task_id}")

    validate_task_start_date(task, proposed_start, tasks, predecessors).raise_if_invalid()

    new_end = add_days(proposed_start, task.span_days - 1)
    moved = replace(task, start_date=proposed_start, end_date=new_end)
    own_update = TaskUpdate(
        id=task_id,
        start_date=proposed_start,
        end_date=new_end,
        reason="Moved directly",
        changed=(task.start_date, task.end_date) != (proposed_start, new_end),
    )

    working = [moved if t.id == task_id else t for t in tasks]
    return [own_update, *recalculate_tasks_in_cascade(task_id, working, predecessors)]
