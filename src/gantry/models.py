"""Data models for Gantry."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from .dates import duration_from_dates

DAYS_PER_WEEK = 7


class PredecessorType(str, Enum):
    """How a predecessor's dates constrain its dependent task."""

    FINISH_TO_START = "finish_to_start"
    START_TO_START = "start_to_start"
    FINISH_TO_FINISH = "finish_to_finish"
    START_TO_FINISH = "start_to_finish"

    @property
    def code(self) -> str:
        """Two-letter abbreviation (FS, SS, FF, SF)."""
        return _TYPE_CODES[self]

    @classmethod
    def from_code(cls, value: str) -> PredecessorType:
        """Look up a type by abbreviation or full name (case-insensitive)."""
        normalized = value.strip().lower()
        for member, code in _TYPE_CODES.items():
            if normalized in (member.value, code.lower()):
                return member
        raise ValueError(f"Unknown predecessor type: {value}")


_TYPE_CODES = {
    PredecessorType.FINISH_TO_START: "FS",
    PredecessorType.START_TO_START: "SS",
    PredecessorType.FINISH_TO_FINISH: "FF",
    PredecessorType.START_TO_FINISH: "SF",
}

_PREDECESSOR_RE = re.compile(
    r"^(?P<id>\S+)"
    r"(?:\s+(?P<type>FS|SS|FF|SF))?"
    r"(?:\s*(?P<sign>[+-])\s*(?P<value>\d+)(?P<unit>[dw]))?$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class Predecessor:
    """A directed edge: ``task_id`` depends on ``predecessor_id``.

    ``lag_time`` is a signed day offset applied on top of the relation.
    """

    task_id: str
    predecessor_id: str
    type: PredecessorType = PredecessorType.FINISH_TO_START
    lag_time: int = 0

    @classmethod
    def parse(cls, task_id: str, spec: str) -> Predecessor:
        """Parse the compact string form of an edge.

        Supported formats:
        - "design" - finish-to-start, no lag
        - "design SS" - start-to-start, no lag
        - "design FS+2d" / "design + 2d" - two days of lag
        - "design FF-1d" - one day of lead
        - "design SS+1w" - lag in weeks (7 days)
        """
        match = _PREDECESSOR_RE.match(spec.strip())
        if not match:
            raise ValueError(f"Invalid predecessor: '{spec}'")

        type_code = match.group("type")
        edge_type = (
            PredecessorType.from_code(type_code) if type_code else PredecessorType.FINISH_TO_START
        )

        lag = 0
        if match.group("value"):
            lag = int(match.group("value"))
            if match.group("unit").lower() == "w":
                lag *= DAYS_PER_WEEK
            if match.group("sign") == "-":
                lag = -lag

        return cls(
            task_id=task_id,
            predecessor_id=match.group("id"),
            type=edge_type,
            lag_time=lag,
        )

    def __str__(self) -> str:
        """Return the compact string form used in project files."""
        text = self.predecessor_id
        if self.type != PredecessorType.FINISH_TO_START or self.lag_time:
            text += f" {self.type.code}"
        if self.lag_time:
            text += f"{self.lag_time:+d}d"
        return text


@dataclass
class Task:
    """A schedulable unit of work."""

    id: str
    name: str = ""
    start_date: date | None = None
    end_date: date | None = None
    duration: float | None = None  # Days; 0 marks a milestone
    parent_id: str | None = None
    is_critical_path: bool = False
    margin_start: float = 0.0
    margin_end: float = 0.0
    lag_days: float = 0.0

    def __post_init__(self) -> None:
        if not self.name:
            self.name = self.id

    @property
    def has_dates(self) -> bool:
        """True when both start and end dates are set."""
        return self.start_date is not None and self.end_date is not None

    @property
    def is_milestone(self) -> bool:
        """True for zero-duration tasks."""
        return self.duration == 0

    @property
    def span_days(self) -> int:
        """Whole calendar days the task occupies in date arithmetic.

        Fractional durations round up. Milestones and tasks without any
        duration information occupy a single day.
        """
        if self.duration is None:
            if self.start_date is not None and self.end_date is not None:
                return duration_from_dates(self.start_date, self.end_date)
            return 1
        if self.duration <= 0:
            return 1
        return math.ceil(self.duration)


@dataclass(frozen=True)
class TaskUpdate:
    """New dates computed for a task, with the reason for the move."""

    id: str
    start_date: date
    end_date: date
    reason: str
    changed: bool = True


def _default_task_list() -> list[Task]:
    return []


def _default_predecessor_list() -> list[Predecessor]:
    return []


@dataclass
class Project:
    """A project: its tasks and the predecessor edges between them."""

    name: str = ""
    start_date: date | None = None
    tasks: list[Task] = field(default_factory=_default_task_list)
    predecessors: list[Predecessor] = field(default_factory=_default_predecessor_list)

    def get_all_ids(self) -> set[str]:
        """Get all task IDs in the project."""
        return {task.id for task in self.tasks}

    def get_task_by_id(self, task_id: str) -> Task | None:
        """Get a task by its ID."""
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None
