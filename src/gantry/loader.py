"""Project loading with reference and consistency validation."""

from __future__ import annotations

from pathlib import Path

from .dates import duration_from_dates
from .exceptions import MissingReferenceError, ValidationError
from .graph import TaskGraph
from .logger import get_logger
from .models import Project, Task
from .parser import ProjectParser

logger = get_logger()


def load_project(path: Path | str) -> Project:
    """Load and validate a project file.

    This is the main entry point for loading projects. It handles:
    1. YAML parsing
    2. Validation (references, date consistency and cycles)

    Args:
        path: Path to the project YAML file

    Returns:
        Validated Project

    Raises:
        ParseError: If the file cannot be read as YAML
        ValidationError: If the project is structurally invalid
        MissingReferenceError: If an edge or parent references an unknown task
        CycleDetectedError: If the predecessor edges form a cycle
    """
    path = Path(path)
    project = ProjectParser().parse_file(path)
    validate_project(project)
    logger.checks(
        f"Loaded {len(project.tasks)} task(s) and {len(project.predecessors)} edge(s) from {path}"
    )
    return project


def validate_project(project: Project) -> None:
    """Validate reference integrity, task dates and the absence of cycles."""
    all_ids = project.get_all_ids()

    for edge in project.predecessors:
        if edge.predecessor_id == edge.task_id:
            raise ValidationError(f"Task {edge.task_id} lists itself as a predecessor")
        if edge.predecessor_id not in all_ids:
            raise MissingReferenceError(
                f"Task {edge.task_id} has unknown predecessor: {edge.predecessor_id}"
            )

    for task in project.tasks:
        if task.parent_id is not None and task.parent_id not in all_ids:
            raise MissingReferenceError(f"Task {task.id} has unknown parent: {task.parent_id}")
        _validate_task_dates(task)

    # Raises CycleDetectedError
    TaskGraph(project.tasks, project.predecessors).topological_order()


def _validate_task_dates(task: Task) -> None:
    if task.start_date is None or task.end_date is None:
        return

    if task.end_date < task.start_date:
        raise ValidationError(
            f"Task {task.id} ends ({task.end_date}) before it starts ({task.start_date})"
        )

    if task.duration is not None:
        span = duration_from_dates(task.start_date, task.end_date)
        if span != task.span_days:
            raise ValidationError(
                f"Task {task.id} has duration {task.duration:g} but its dates "
                f"span {span} day(s)"
            )
