"""Command-line interface for Gantry."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date
from pathlib import Path
from typing import Annotated, Any

import typer
import yaml

from . import context
from .allocation import (
    MultiDayAllocationPlan,
    OvertimeDecisionSession,
    calculate_multi_day_allocation_plan,
    merge_consecutive_days,
)
from .config import GantryConfig, load_effective_config
from .cpm import calculate_critical_path, update_critical_path_flags
from .dates import parse_date
from .exceptions import GantryError, InvalidDateError, OverflowUnresolvedError
from .loader import load_project
from .logger import setup_logger
from .models import Project, TaskUpdate
from .propagation import (
    audit_predecessor_conflicts,
    move_task,
    recalculate_tasks_in_cascade,
    validate_task_start_date,
)
from .writer import write_critical_flags, write_task_updates

app = typer.Typer(
    name="gantry",
    help="Critical path, predecessor propagation and capacity allocation for task schedules",
    add_completion=False,
)

ProjectFile = Annotated[Path, typer.Argument(help="Path to the project YAML file")]
WriteOption = Annotated[
    bool, typer.Option("--write", "-w", help="Write the updated dates back to the project file")
]


@app.callback()
def main_callback(
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            help=(
                "Trace depth: 0=errors only (default), 1=date moves and critical tasks, "
                "2=every edge and allocation day, 3=CPM pass values"
            ),
            min=0,
            max=3,
        ),
    ] = 0,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to config file (default: gantry_config.yaml)",
        ),
    ] = None,
) -> None:
    """Global options for gantry commands."""
    setup_logger(verbose)
    context.set_config_path(config)


@contextmanager
def _exit_on_error() -> Iterator[None]:
    """Report gantry errors on stderr and exit with status 1."""
    try:
        yield
    except GantryError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None
    except (FileNotFoundError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None


def _parse_date_option(date_str: str, option_name: str) -> date:
    """Parse a required YYYY-MM-DD date from the command line."""
    try:
        parsed = parse_date(date_str)
    except InvalidDateError:
        parsed = None
    if parsed is None:
        typer.echo(
            f"Error: Invalid {option_name} '{date_str}'. Use YYYY-MM-DD format.",
            err=True,
        )
        raise typer.Exit(1)
    return parsed


def _require_task(project: Project, task_id: str) -> None:
    if project.get_task_by_id(task_id) is None:
        typer.echo(f"Error: Unknown task '{task_id}'", err=True)
        raise typer.Exit(1)


def _display_updates(project: Project, updates: list[TaskUpdate]) -> None:
    """Print task updates, one per line."""
    if not updates:
        typer.echo("No updates.")
        return

    for update in updates:
        task = project.get_task_by_id(update.id)
        old = f"{task.start_date}" if task and task.start_date else "unscheduled"
        marker = "*" if update.changed else " "
        typer.echo(
            f"{marker} {update.id}: {old} -> {update.start_date} .. {update.end_date}  "
            f"({update.reason})"
        )


def _apply_updates(file: Path, updates: list[TaskUpdate], write: bool) -> None:
    if not write:
        return
    changed = write_task_updates(file, [u for u in updates if u.changed])
    typer.echo(f"Updated {changed} task(s) in {file}")


@app.command()
def cpm(
    file: ProjectFile,
    start: Annotated[
        str | None,
        typer.Option("--start", "-s", help="Project start date (YYYY-MM-DD)"),
    ] = None,
    write: Annotated[
        bool,
        typer.Option("--write", "-w", help="Store critical-path flags in the project file"),
    ] = False,
) -> None:
    """Compute early/late dates, slack and the critical path."""
    start_date = _parse_date_option(start, "start date") if start else None

    with _exit_on_error():
        project = load_project(file)
        result = calculate_critical_path(
            project.tasks, project.predecessors, start_date or project.start_date
        )

        if not result.tasks:
            typer.echo("No scheduled tasks.")
            return

        typer.echo(
            f"{'Task':<20} {'ES':<10} {'EF':<10} {'LS':<10} {'LF':<10} {'Slack':>5} {'Free':>5}"
        )
        typer.echo("-" * 76)
        for task_id, entry in result.tasks.items():
            marker = " *" if entry.is_critical else ""
            typer.echo(
                f"{task_id:<20} {entry.early_start} {entry.early_finish} "
                f"{entry.late_start} {entry.late_finish} "
                f"{entry.total_slack:>5} {entry.free_slack:>5}{marker}"
            )

        typer.echo("")
        typer.echo(f"Critical tasks: {', '.join(result.critical_path)}")
        typer.echo(
            f"Project duration: {result.project_duration} day(s) "
            f"(finish {result.project_early_finish})"
        )

        if write:
            flags = update_critical_path_flags(project.tasks, result)
            changed = write_critical_flags(file, flags)
            typer.echo(f"Updated {changed} critical-path flag(s) in {file}")


@app.command()
def cascade(
    file: ProjectFile,
    task_id: Annotated[str, typer.Argument(help="Task whose dates changed")],
    all_visited: Annotated[
        bool,
        typer.Option("--all", help="Show every visited task, not just the net changes"),
    ] = False,
    write: WriteOption = False,
) -> None:
    """Recalculate the dates of every task downstream of a task."""
    with _exit_on_error():
        project = load_project(file)
        _require_task(project, task_id)
        updates = recalculate_tasks_in_cascade(
            task_id, project.tasks, project.predecessors, only_changed=not all_visited
        )
        _display_updates(project, updates)
        _apply_updates(file, updates, write)


@app.command()
def audit(file: ProjectFile, write: WriteOption = False) -> None:
    """Find tasks scheduled earlier than their predecessors allow."""
    with _exit_on_error():
        project = load_project(file)
        updates = audit_predecessor_conflicts(project.tasks, project.predecessors)
        if not updates:
            typer.echo("No predecessor conflicts.")
            return
        _display_updates(project, updates)
        _apply_updates(file, updates, write)


@app.command()
def validate(
    file: ProjectFile,
    task_id: Annotated[str, typer.Argument(help="Task to move")],
    proposed: Annotated[str, typer.Argument(help="Proposed start date (YYYY-MM-DD)")],
) -> None:
    """Check whether a task may start on a proposed date."""
    proposed_start = _parse_date_option(proposed, "start date")

    with _exit_on_error():
        project = load_project(file)
        _require_task(project, task_id)
        task = project.get_task_by_id(task_id)
        assert task is not None
        result = validate_task_start_date(
            task, proposed_start, project.tasks, project.predecessors
        )

    if not result.is_valid:
        typer.echo(f"Invalid: {result.message}", err=True)
        raise typer.Exit(1)
    typer.echo(f"OK: {task_id} may start on {proposed_start}")


@app.command()
def move(
    file: ProjectFile,
    task_id: Annotated[str, typer.Argument(help="Task to move")],
    proposed: Annotated[str, typer.Argument(help="New start date (YYYY-MM-DD)")],
    write: WriteOption = False,
) -> None:
    """Move a task to a new start date and cascade the change."""
    proposed_start = _parse_date_option(proposed, "start date")

    with _exit_on_error():
        project = load_project(file)
        _require_task(project, task_id)
        updates = move_task(task_id, proposed_start, project.tasks, project.predecessors)
        _display_updates(project, updates)
        _apply_updates(file, updates, write)


def _load_existing_allocations(path: Path) -> dict[date, int]:
    """Load a YAML mapping of date -> minutes already allocated."""
    with path.open(encoding="utf-8") as f:
        data: Any = yaml.safe_load(f)

    if not data:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Existing allocations must be a mapping of date to minutes: {path}")

    existing: dict[date, int] = {}
    for key, minutes in data.items():  # type: ignore[union-attr]
        day = parse_date(key)
        if day is None:
            raise ValueError(f"Invalid date key in {path}: {key!r}")
        existing[day] = int(minutes)
    return existing


def _display_plan(plan: MultiDayAllocationPlan) -> None:
    """Print the day-by-day plan, its fragments and totals."""
    typer.echo(f"{'Date':<12} {'Normal':>7} {'Overtime':>9} {'Mult':>5} {'Overflow':>9}")
    typer.echo("-" * 46)
    for day in plan.days:
        flags = " weekend" if day.is_weekend else ""
        flags += " holiday" if day.is_holiday else ""
        typer.echo(
            f"{day.date.isoformat():<12} {day.normal_minutes:>7} {day.overtime_minutes:>9} "
            f"{day.overtime_multiplier:>5.1f} {day.overflow_minutes:>9}{flags}"
        )

    typer.echo("")
    typer.echo("Fragments:")
    for fragment in merge_consecutive_days(plan.days):
        typer.echo(
            f"  {fragment.start_date} .. {fragment.end_date}: "
            f"{fragment.allocated_minutes} normal + {fragment.overtime_minutes} overtime "
            f"at {fragment.overtime_multiplier:.1f}x"
        )

    typer.echo("")
    typer.echo(
        f"Total: {plan.total_normal_minutes} normal + {plan.total_overtime_minutes} overtime "
        f"minute(s) of {plan.total_minutes}; estimated cost {plan.estimated_cost:.2f}"
    )
    if plan.requires_user_decision:
        typer.echo("Overflow was pushed forward; rerun with --overtime or --interactive to decide.")


def _write_plan(plan: MultiDayAllocationPlan, resource_name: str, output: Path) -> None:
    """Write the plan's fragments to a YAML file."""
    data = {
        "resource": resource_name,
        "total_minutes": plan.total_minutes,
        "estimated_cost": round(plan.estimated_cost, 2),
        "fragments": [
            {
                "start_date": fragment.start_date.isoformat(),
                "end_date": fragment.end_date.isoformat(),
                "allocated_minutes": fragment.allocated_minutes,
                "overtime_minutes": fragment.overtime_minutes,
                "overtime_multiplier": fragment.overtime_multiplier,
            }
            for fragment in merge_consecutive_days(plan.days)
        ],
    }
    with output.open("w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
    typer.echo(f"Fragments written to {output}")


def _run_interactive(session: OvertimeDecisionSession) -> MultiDayAllocationPlan:
    """Ask for a decision on each overflow day."""
    while not session.is_complete:
        day = session.current_day
        assert day is not None
        typer.echo("")
        typer.echo(
            f"{day.date} is over capacity by {day.overflow_minutes} minute(s) "
            f"({day.normal_minutes} minute(s) fit)."
        )
        for option in session.options():
            typer.echo(
                f"  - {option.label}: {option.description} "
                f"(cost {option.estimated_cost:.2f})"
            )

        choice = (
            typer.prompt("  Use overtime? (o=overtime, p=push, b=back)", default="p")
            .lower()
            .strip()
        )
        if choice == "o":
            session.decide(use_overtime=True)
        elif choice == "p":
            session.decide(use_overtime=False)
        elif choice == "b":
            if not session.back():
                typer.echo("  Nothing to undo.")
        else:
            typer.echo("  Invalid choice. Please enter 'o', 'p' or 'b'.")

    return session.plan


@app.command()
def allocate(  # noqa: PLR0913 - CLI command needs multiple options
    minutes: Annotated[int, typer.Argument(help="Work-minutes to allocate", min=1)],
    resource: Annotated[str, typer.Option("--resource", "-r", help="Resource name")],
    start: Annotated[str, typer.Option("--start", "-s", help="First day (YYYY-MM-DD)")],
    overtime: Annotated[
        bool | None,
        typer.Option(
            "--overtime/--no-overtime",
            help="Absorb overflow as overtime (default: allocation.use_overtime_by_default)",
        ),
    ] = None,
    interactive: Annotated[
        bool,
        typer.Option("--interactive", "-i", help="Decide overtime day by day"),
    ] = False,
    existing: Annotated[
        Path | None,
        typer.Option("--existing", "-e", help="YAML mapping of date to minutes already allocated"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write the resulting fragments to a YAML file"),
    ] = None,
) -> None:
    """Plan work-minutes over days under a resource's daily capacity."""
    start_date = _parse_date_option(start, "start date")

    with _exit_on_error():
        config: GantryConfig = load_effective_config()
        resource_def = config.resolve_resource(resource)
        calendar = config.calendar.to_work_calendar()
        existing_allocations = _load_existing_allocations(existing) if existing else {}
        use_overtime = (
            overtime if overtime is not None else config.allocation.use_overtime_by_default
        )

        try:
            if interactive:
                session = OvertimeDecisionSession(
                    minutes, resource_def, start_date, existing_allocations, calendar=calendar
                )
                plan = _run_interactive(session)
            else:
                plan = calculate_multi_day_allocation_plan(
                    minutes,
                    resource_def,
                    start_date,
                    existing_allocations,
                    use_overtime,
                    calendar=calendar,
                )
        except OverflowUnresolvedError as e:
            _display_plan(e.plan)
            raise

        _display_plan(plan)
        if output:
            _write_plan(plan, resource_def.name, output)


def main() -> int:
    """Main entry point."""
    # Typer handles sys.exit() internally
    app()
    return 0


if __name__ == "__main__":
    main()
