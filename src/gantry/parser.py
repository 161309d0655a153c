"""YAML parser for Gantry project files."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from .dates import add_days, duration_from_dates
from .exceptions import ParseError, ValidationError
from .models import Predecessor, Project, Task
from .schemas import PredecessorSchema, ProjectFileSchema, TaskSchema


class ProjectParser:
    """Parser for project YAML files.

    This parser only handles YAML parsing and model creation. For loading
    with reference validation, use load_project() from gantry.loader.
    """

    def parse_file(self, file_path: Path | str) -> Project:
        """Parse a YAML file into a Project."""
        path = Path(file_path)
        if not path.exists():
            raise ParseError(f"File not found: {file_path}")

        try:
            with path.open(encoding="utf-8") as f:
                data: Any = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ParseError(f"Failed to parse YAML: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ParseError("YAML must contain a dictionary at the root level")

        return self.parse_data(data)  # type: ignore[arg-type]

    def parse_data(self, data: dict[str, Any]) -> Project:
        """Parse already-loaded YAML data into a Project."""
        try:
            schema = ProjectFileSchema(**data)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid YAML structure: {e}") from e

        tasks: list[Task] = []
        predecessors: list[Predecessor] = []

        for task_id, task_data in schema.tasks.items():
            tasks.append(self._build_task(task_id, task_data))
            for entry in task_data.predecessors:
                predecessors.append(self._build_predecessor(task_id, entry))

        return Project(
            name=schema.project.name,
            start_date=schema.project.start_date,
            tasks=tasks,
            predecessors=predecessors,
        )

    def _build_task(self, task_id: str, data: TaskSchema) -> Task:
        """Create a Task, deriving whichever of duration/end date is missing."""
        duration = data.duration
        end_date = data.end_date

        if data.start_date is not None and end_date is not None and duration is None:
            duration = float(duration_from_dates(data.start_date, end_date))
        elif data.start_date is not None and end_date is None and duration is not None:
            task_span = Task(id=task_id, duration=duration).span_days
            end_date = add_days(data.start_date, task_span - 1)

        return Task(
            id=task_id,
            name=data.name or task_id,
            start_date=data.start_date,
            end_date=end_date,
            duration=duration,
            parent_id=data.parent,
            is_critical_path=data.is_critical_path,
            margin_start=data.margin_start,
            margin_end=data.margin_end,
            lag_days=data.lag_days,
        )

    def _build_predecessor(self, task_id: str, entry: str | PredecessorSchema) -> Predecessor:
        """Create a Predecessor from either the compact or the mapping form."""
        if isinstance(entry, PredecessorSchema):
            return Predecessor(
                task_id=task_id,
                predecessor_id=entry.task,
                type=entry.type,
                lag_time=entry.lag,
            )
        try:
            return Predecessor.parse(task_id, entry)
        except ValueError as e:
            raise ValidationError(f"Task '{task_id}': {e}") from e
