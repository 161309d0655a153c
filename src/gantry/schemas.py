"""Pydantic schemas for project YAML validation."""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, Field, field_validator

from .dates import parse_date
from .exceptions import InvalidDateError
from .models import PredecessorType


def _coerce_date(value: Any) -> date | None:
    """Accept dates, YYYY-MM-DD strings and ISO timestamps."""
    try:
        return parse_date(value)
    except InvalidDateError as e:
        raise ValueError(str(e)) from e


class PredecessorSchema(BaseModel):
    """Mapping form of a predecessor edge."""

    task: str
    type: PredecessorType = PredecessorType.FINISH_TO_START
    lag: int = 0

    @field_validator("task", mode="before")
    @classmethod
    def coerce_task_to_string(cls, v: Any) -> str:
        """Allow numeric task IDs."""
        return str(v)

    @field_validator("type", mode="before")
    @classmethod
    def parse_type(cls, v: Any) -> PredecessorType:
        """Accept FS/SS/FF/SF as well as the full names."""
        if isinstance(v, PredecessorType):
            return v
        return PredecessorType.from_code(str(v))


class TaskSchema(BaseModel):
    """Schema for a single task."""

    name: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    duration: float | None = Field(default=None, ge=0)
    parent: str | None = None
    is_critical_path: bool = False
    margin_start: float = 0.0
    margin_end: float = 0.0
    lag_days: float = 0.0
    predecessors: list[str | PredecessorSchema] = Field(
        default_factory=list[str | PredecessorSchema]
    )

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> date | None:
        """Parse date fields."""
        return _coerce_date(v)

    @field_validator("predecessors", mode="before")
    @classmethod
    def ensure_list(cls, v: Any) -> list[Any]:
        """Ensure value is a list."""
        if v is None:
            return []
        if isinstance(v, list):
            return v  # type: ignore[return-value]
        return [v]


class ProjectInfoSchema(BaseModel):
    """Schema for the project header."""

    name: str = ""
    start_date: date | None = None

    @field_validator("start_date", mode="before")
    @classmethod
    def parse_start(cls, v: Any) -> date | None:
        """Parse the project start date."""
        return _coerce_date(v)


class ProjectFileSchema(BaseModel):
    """Schema for the entire project YAML file."""

    project: ProjectInfoSchema = Field(default_factory=ProjectInfoSchema)
    tasks: dict[str, TaskSchema] = Field(default_factory=dict)

    @field_validator("tasks", mode="before")
    @classmethod
    def normalize_tasks(cls, v: Any) -> dict[str, Any]:
        """Allow bare task entries (``design:`` with no body) and numeric IDs."""
        if v is None:
            return {}
        if not isinstance(v, dict):
            raise ValueError("'tasks' must be a mapping of task ID to task")
        return {str(key): value or {} for key, value in v.items()}  # type: ignore[union-attr]
