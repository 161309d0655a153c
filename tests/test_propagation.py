"""Tests for predecessor propagation, auditing and validation."""

from dataclasses import replace
from datetime import date

import pytest

from gantry.exceptions import InvalidDateError, ValidationError
from gantry.models import Predecessor, PredecessorType, Task, TaskUpdate
from gantry.propagation import (
    ValidationResult,
    audit_predecessor_conflicts,
    calculate_task_date_from_predecessor,
    detect_date_conflict,
    move_task,
    recalculate_tasks_in_cascade,
    validate_task_start_date,
)
from tests.conftest import edge, task


def _apply(tasks: list[Task], updates: list[TaskUpdate]) -> list[Task]:
    by_id = {u.id: u for u in updates}
    return [
        replace(t, start_date=by_id[t.id].start_date, end_date=by_id[t.id].end_date)
        if t.id in by_id
        else t
        for t in tasks
    ]


@pytest.fixture
def chain() -> tuple[list[Task], list[Predecessor]]:
    """design (shifted a day late) -> build -> launch, all finish-to-start."""
    tasks = [
        task("design", date(2026, 1, 6), date(2026, 1, 8), name="Design"),
        task("build", date(2026, 1, 8), duration=5, name="Build"),
        task("launch", date(2026, 1, 13), duration=1, name="Launch"),
    ]
    return tasks, [edge("build", "design"), edge("launch", "build")]


class TestCalculateTaskDate:
    """Test the per-relation date arithmetic on recorded dates."""

    def test_finish_to_start(self) -> None:
        """Test that FS starts the day after the predecessor ends."""
        pred = task("design", date(2026, 1, 5), date(2026, 1, 7), duration=3)
        succ = task("build", date(2026, 1, 1), duration=5)
        start, end = calculate_task_date_from_predecessor(succ, pred, edge("build", "design"))
        assert start == date(2026, 1, 8)
        assert end == date(2026, 1, 12)

    def test_finish_to_start_with_lag(self) -> None:
        """Test FS with positive and negative lag."""
        pred = task("a", date(2026, 1, 5), date(2026, 1, 7))
        succ = task("b", duration=1)
        assert calculate_task_date_from_predecessor(succ, pred, edge("b", "a", lag=2))[0] == date(
            2026, 1, 10
        )
        assert calculate_task_date_from_predecessor(succ, pred, edge("b", "a", lag=-1))[0] == date(
            2026, 1, 7
        )

    def test_start_to_start(self) -> None:
        """Test that SS with lag 2 starts two days after the predecessor."""
        pred = task("design", date(2026, 1, 5), date(2026, 1, 7))
        succ = task("docs", duration=2)
        e = edge("docs", "design", PredecessorType.START_TO_START, 2)
        assert calculate_task_date_from_predecessor(succ, pred, e) == (
            date(2026, 1, 7),
            date(2026, 1, 8),
        )

    def test_finish_to_finish(self) -> None:
        """Test that FF lines up the finish dates."""
        pred = task("a", date(2026, 1, 5), date(2026, 1, 7))
        succ = task("b", duration=2)
        e = edge("b", "a", PredecessorType.FINISH_TO_FINISH)
        assert calculate_task_date_from_predecessor(succ, pred, e) == (
            date(2026, 1, 6),
            date(2026, 1, 7),
        )

    def test_start_to_finish_keeps_own_start(self) -> None:
        """Test that SF leaves the dependent where it is."""
        pred = task("a", date(2026, 1, 5), date(2026, 1, 7))
        succ = task("b", date(2026, 1, 20), duration=3)
        e = edge("b", "a", PredecessorType.START_TO_FINISH)
        assert calculate_task_date_from_predecessor(succ, pred, e) == (
            date(2026, 1, 20),
            date(2026, 1, 22),
        )
        with pytest.raises(InvalidDateError):
            calculate_task_date_from_predecessor(task("c", duration=1), pred, e)

    def test_predecessor_without_start(self) -> None:
        """Test that an undated predecessor raises InvalidDateError."""
        with pytest.raises(InvalidDateError, match="no start date"):
            calculate_task_date_from_predecessor(Task(id="b"), Task(id="a"), edge("b", "a"))

    def test_predecessor_without_end_uses_start(self) -> None:
        """Test that a predecessor missing its end is treated as one day long."""
        pred = Task(id="a", start_date=date(2026, 1, 5))
        start, _ = calculate_task_date_from_predecessor(Task(id="b"), pred, edge("b", "a"))
        assert start == date(2026, 1, 6)


class TestDetectDateConflict:
    """Test detect_date_conflict."""

    def test_difference_is_signed(self) -> None:
        """Test later and earlier calculated starts."""
        t = task("t", date(2026, 1, 10), duration=1)
        assert detect_date_conflict(t, date(2026, 1, 12)) == (True, 2)
        assert detect_date_conflict(t, date(2026, 1, 9)) == (True, -1)
        assert detect_date_conflict(t, date(2026, 1, 10)) == (False, 0)

    def test_no_start_never_conflicts(self) -> None:
        """Test that undated tasks are never in conflict."""
        assert detect_date_conflict(Task(id="t"), date(2026, 1, 1)) == (False, 0)


class TestRecalculateTasksInCascade:
    """Test breadth-first propagation."""

    def test_chain_moves_downstream(self, chain: tuple[list[Task], list[Predecessor]]) -> None:
        """Test that a late design pushes build and then launch."""
        tasks, edges = chain
        updates = recalculate_tasks_in_cascade("design", tasks, edges)

        assert [u.id for u in updates] == ["build", "launch"]
        assert (updates[0].start_date, updates[0].end_date) == (date(2026, 1, 9), date(2026, 1, 13))
        assert updates[0].reason == 'Predecessor "Design" was changed'
        assert updates[1].start_date == updates[1].end_date == date(2026, 1, 14)
        assert updates[1].reason == 'Predecessor "Build" was changed'
        assert all(u.changed for u in updates)

    def test_every_visited_dependent_gets_an_entry(self) -> None:
        """Test that unchanged dependents are still reported and walked through."""
        tasks = [
            task("a", date(2026, 1, 5), date(2026, 1, 7)),
            task("b", date(2026, 1, 8), duration=2),  # already correct
            task("c", date(2026, 1, 9), duration=1),  # one day too early
        ]
        updates = recalculate_tasks_in_cascade("a", tasks, [edge("b", "a"), edge("c", "b")])

        assert [(u.id, u.changed) for u in updates] == [("b", False), ("c", True)]
        assert updates[1].start_date == date(2026, 1, 10)

    def test_reason_for_undated_dependent(self) -> None:
        """Test the reason when a dependent gets its first dates."""
        tasks = [task("a", date(2026, 1, 5), date(2026, 1, 7), name="Alpha"), Task(id="b")]
        updates = recalculate_tasks_in_cascade("a", tasks, [edge("b", "a")])
        assert updates[0].reason == 'Date calculated from predecessor "Alpha"'
        assert updates[0].start_date == date(2026, 1, 8)

    def test_fixed_point(self, chain: tuple[list[Task], list[Predecessor]]) -> None:
        """Test that re-running after applying the updates changes nothing."""
        tasks, edges = chain
        first = recalculate_tasks_in_cascade("design", tasks, edges, only_changed=True)
        assert [u.id for u in first] == ["build", "launch"]

        settled = _apply(tasks, first)
        assert recalculate_tasks_in_cascade("design", settled, edges, only_changed=True) == []
        assert not any(u.changed for u in recalculate_tasks_in_cascade("design", settled, edges))

    def test_only_changed_keeps_last_update_per_task(self) -> None:
        """Test that a task reached twice collapses to its final dates."""
        tasks = [
            task("a", date(2026, 1, 5), date(2026, 1, 7)),
            task("b", date(2026, 1, 5), duration=1),
            task("c", date(2026, 1, 5), duration=1),
        ]
        edges = [edge("b", "a"), edge("c", "a"), edge("c", "b")]

        full = recalculate_tasks_in_cascade("a", tasks, edges)
        assert [u.id for u in full] == ["b", "c", "c"]

        net = recalculate_tasks_in_cascade("a", tasks, edges, only_changed=True)
        assert [u.id for u in net] == ["b", "c"]
        assert net[1] == replace(full[2], changed=True)

    def test_inputs_are_not_mutated(self, chain: tuple[list[Task], list[Predecessor]]) -> None:
        """Test that caller-supplied tasks keep their dates."""
        tasks, edges = chain
        before = [replace(t) for t in tasks]
        recalculate_tasks_in_cascade("design", tasks, edges)
        assert tasks == before

    def test_changed_task_without_start(self) -> None:
        """Test that cascading from an undated task raises."""
        with pytest.raises(InvalidDateError):
            recalculate_tasks_in_cascade("a", [Task(id="a")], [])

    def test_unknown_task_has_no_updates(self) -> None:
        """Test cascading from a task not in the list."""
        assert recalculate_tasks_in_cascade("ghost", [Task(id="a")], []) == []

    def test_cycle_terminates(self) -> None:
        """Test that the walk is bounded even when edges form a cycle."""
        tasks = [task("a", date(2026, 1, 5), duration=1), task("b", date(2026, 1, 6), duration=1)]
        updates = recalculate_tasks_in_cascade("a", tasks, [edge("b", "a"), edge("a", "b")])
        assert [u.id for u in updates] == ["b", "a"]


class TestAuditPredecessorConflicts:
    """Test the project-wide conflict audit."""

    def test_reports_under_scheduled_tasks(self) -> None:
        """Test that a task starting too early is corrected."""
        tasks = [
            task("a", date(2026, 1, 5), date(2026, 1, 7), name="Alpha"),
            task("b", date(2026, 1, 6), duration=2),
        ]
        updates = audit_predecessor_conflicts(tasks, [edge("b", "a")])
        assert updates == [
            TaskUpdate(
                id="b",
                start_date=date(2026, 1, 8),
                end_date=date(2026, 1, 9),
                reason='Conflicts with predecessor "Alpha" (must start 2 day(s) later)',
            )
        ]

    def test_ignores_tasks_with_room(self) -> None:
        """Test that starting later than required is not a conflict."""
        tasks = [
            task("a", date(2026, 1, 5), date(2026, 1, 7)),
            task("b", date(2026, 1, 20), duration=2),
        ]
        assert audit_predecessor_conflicts(tasks, [edge("b", "a")]) == []

    def test_latest_implied_start_wins(self) -> None:
        """Test that the most restrictive predecessor decides."""
        tasks = [
            task("a", date(2026, 1, 5), date(2026, 1, 7)),
            task("b", date(2026, 1, 5), date(2026, 1, 12), name="Bravo"),
            task("c", date(2026, 1, 5), duration=1),
        ]
        updates = audit_predecessor_conflicts(tasks, [edge("c", "a"), edge("c", "b")])
        assert len(updates) == 1
        assert updates[0].start_date == date(2026, 1, 13)
        assert '"Bravo"' in updates[0].reason

    def test_skips_undated_tasks(self) -> None:
        """Test that missing dates on either side are skipped."""
        tasks = [Task(id="a"), Task(id="b"), task("c", date(2026, 1, 5), duration=1)]
        assert audit_predecessor_conflicts(tasks, [edge("b", "a"), edge("c", "a")]) == []


class TestValidateTaskStartDate:
    """Test validation of a proposed start."""

    def test_valid_move(self, chain: tuple[list[Task], list[Predecessor]]) -> None:
        """Test a start on or after the implied start."""
        tasks, edges = chain
        result = validate_task_start_date(tasks[1], date(2026, 1, 9), tasks, edges)
        assert result == ValidationResult(is_valid=True)
        result.raise_if_invalid()

    def test_invalid_move_message(self, chain: tuple[list[Task], list[Predecessor]]) -> None:
        """Test the message naming the violated predecessor."""
        tasks, edges = chain
        result = validate_task_start_date(tasks[1], date(2026, 1, 6), tasks, edges)
        assert not result.is_valid
        assert result.message == (
            'Conflicts with predecessor "Design". The task must start 3 day(s) later.'
        )
        with pytest.raises(ValidationError, match="must start 3 day"):
            result.raise_if_invalid()

    def test_task_without_predecessors(self) -> None:
        """Test that any date is fine with no predecessors."""
        t = task("solo", date(2026, 1, 5), duration=1)
        assert validate_task_start_date(t, date(2020, 1, 1), [t], []).is_valid


class TestMoveTask:
    """Test moving a task and cascading the move."""

    def test_move_and_cascade(self, chain: tuple[list[Task], list[Predecessor]]) -> None:
        """Test the moved task's update followed by its dependents."""
        tasks, edges = chain
        updates = move_task("build", date(2026, 1, 12), tasks, edges)

        assert [u.id for u in updates] == ["build", "launch"]
        assert updates[0].reason == "Moved directly"
        assert updates[0].end_date == date(2026, 1, 16)
        assert updates[1].start_date == date(2026, 1, 17)

    def test_move_violating_predecessor(self, chain: tuple[list[Task], list[Predecessor]]) -> None:
        """Test that an invalid move raises ValidationError."""
        tasks, edges = chain
        with pytest.raises(ValidationError, match="Design"):
            move_task("build", date(2026, 1, 1), tasks, edges)

    def test_move_unknown_task(self) -> None:
        """Test that an unknown task raises ValidationError."""
        with pytest.raises(ValidationError, match="Unknown task"):
            move_task("ghost", date(2026, 1, 1), [], [])
