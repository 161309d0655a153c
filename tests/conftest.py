"""Pytest configuration and fixtures for gantry tests."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date
from pathlib import Path

import pytest

from gantry import context
from gantry.config import ResourceDefinition
from gantry.logger import reset_logger
from gantry.models import Predecessor, PredecessorType, Task

# Monday
MONDAY = date(2026, 1, 26)

PROJECT_YAML = """\
project:
  name: Website relaunch
  start_date: 2026-01-05

tasks:
  # Discovery phase
  design:
    name: Design
    start_date: 2026-01-05
    end_date: 2026-01-07
  build:
    name: Build
    start_date: 2026-01-08
    duration: 5
    predecessors:
      - design
  docs:
    name: Docs
    start_date: 2026-01-07
    duration: 2
    predecessors:
      - task: design
        type: SS
        lag: 2
  launch:
    name: Launch
    start_date: 2026-01-13
    duration: 1
    predecessors:
      - build
      - docs
"""


def task(
    task_id: str,
    start: date | None = None,
    end: date | None = None,
    duration: float | None = None,
    **kwargs: object,
) -> Task:
    """Create a Task, deriving the end date from start and duration when omitted.

    Example:
        task("design", date(2026, 1, 5), duration=3)
    """
    if start is not None and end is None and duration is not None:
        end = date.fromordinal(start.toordinal() + max(1, int(duration)) - 1)
    return Task(
        id=task_id,
        start_date=start,
        end_date=end,
        duration=duration,
        **kwargs,  # type: ignore[arg-type]
    )


def edge(
    task_id: str,
    predecessor_id: str,
    edge_type: PredecessorType = PredecessorType.FINISH_TO_START,
    lag: int = 0,
) -> Predecessor:
    """Create a Predecessor edge (task_id depends on predecessor_id)."""
    return Predecessor(task_id=task_id, predecessor_id=predecessor_id, type=edge_type, lag_time=lag)


@pytest.fixture
def resource() -> ResourceDefinition:
    """A resource with the default 540-minute capacity and a round hourly rate."""
    return ResourceDefinition(name="alice", daily_capacity_minutes=540, hourly_rate=60.0)


@pytest.fixture
def project_file(tmp_path: Path) -> Path:
    """A small four-task project written to disk."""
    path = tmp_path / "project.yaml"
    path.write_text(PROJECT_YAML, encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def isolate_global_state() -> Iterator[None]:
    """Reset the logger and CLI context after each test."""
    yield
    reset_logger()
    context.set_config_path(None)
