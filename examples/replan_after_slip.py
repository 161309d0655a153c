"""Example of driving the gantry engines from Python.

Loads the example project, slips the design task by two days, cascades the
slip, recomputes the critical path on the updated dates, then plans the
build effort for a configured resource and prints its fragments.

Usage:
    python examples/replan_after_slip.py
"""

from __future__ import annotations

from dataclasses import replace
from datetime import timedelta
from pathlib import Path

from gantry import (
    calculate_critical_path,
    calculate_multi_day_allocation_plan,
    load_effective_config,
    load_project,
    merge_consecutive_days,
    move_task,
)
from gantry.logger import VERBOSITY_CHANGES, setup_logger

EXAMPLES_DIR = Path(__file__).parent
SLIPPED_TASK = "design"
SLIP_DAYS = 2
BUILD_MINUTES = 5 * 540


def main() -> None:
    setup_logger(VERBOSITY_CHANGES)

    project_path = EXAMPLES_DIR / "project.yaml"
    project = load_project(project_path)
    config = load_effective_config(project_path=project_path)

    design = project.get_task_by_id(SLIPPED_TASK)
    assert design is not None and design.start_date is not None
    updates = move_task(
        SLIPPED_TASK,
        design.start_date + timedelta(days=SLIP_DAYS),
        project.tasks,
        project.predecessors,
    )

    print(f"Slipping {SLIPPED_TASK} by {SLIP_DAYS} day(s):")
    latest = {update.id: update for update in updates}
    for update in latest.values():
        print(f"  {update.id}: {update.start_date} .. {update.end_date} ({update.reason})")

    tasks = [
        replace(t, start_date=latest[t.id].start_date, end_date=latest[t.id].end_date)
        if t.id in latest
        else t
        for t in project.tasks
    ]
    result = calculate_critical_path(tasks, project.predecessors, project.start_date)
    print(f"\nCritical tasks: {', '.join(result.critical_path)}")
    print(f"Project duration: {result.project_duration} day(s)")

    build = next(t for t in tasks if t.id == "build")
    assert build.start_date is not None
    plan = calculate_multi_day_allocation_plan(
        BUILD_MINUTES,
        config.resolve_resource("alice"),
        build.start_date,
        use_overtime_by_default=True,
        calendar=config.calendar.to_work_calendar(),
    )
    print(f"\nBuild allocation for alice (cost {plan.estimated_cost:.2f}):")
    for fragment in merge_consecutive_days(plan.days):
        print(
            f"  {fragment.start_date} .. {fragment.end_date}: "
            f"{fragment.allocated_minutes} + {fragment.overtime_minutes} overtime min"
        )


if __name__ == "__main__":
    main()
