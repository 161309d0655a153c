"""Tests for sequential overtime decisions."""

from datetime import timedelta

import pytest

from gantry.allocation import (
    DayDecision,
    DayPlan,
    OvertimeDecisionSession,
    OvertimeOptionType,
    apply_decisions,
    calculate_multi_day_allocation_plan,
)
from gantry.config import ResourceDefinition
from gantry.exceptions import OverflowUnresolvedError
from tests.conftest import MONDAY

TUESDAY = MONDAY + timedelta(days=1)


class ExplodingTracer:
    """Raises on every planned day once armed."""

    def __init__(self) -> None:
        self.armed = False

    def day_planned(self, index: int, day: DayPlan, decision: DayDecision) -> None:
        if self.armed:
            raise RuntimeError("boom")


class TestOvertimeDecisionSession:
    """Test walking overflow days one at a time."""

    def test_starts_on_first_overflow_day(self, resource: ResourceDefinition) -> None:
        """Test the initial state of a session."""
        session = OvertimeDecisionSession(1140, resource, MONDAY)

        assert not session.is_complete
        assert session.current_day is not None
        assert session.current_day.date == MONDAY
        assert session.current_day.overflow_minutes == 600
        assert session.plan.requires_user_decision
        assert session.decisions == {}

    def test_options_for_current_day(self, resource: ResourceDefinition) -> None:
        """Test that options describe the current day's overflow."""
        session = OvertimeDecisionSession(1140, resource, MONDAY)
        options = session.options()

        assert [o.type for o in options] == [
            OvertimeOptionType.PUSH_DATE,
            OvertimeOptionType.OVERTIME_WEEKDAY,
            OvertimeOptionType.OVERTIME_WEEKEND,
        ]
        assert options[1].overtime_minutes == 120
        assert options[2].overtime_minutes == 600

    def test_all_overtime_matches_automatic_plan(self, resource: ResourceDefinition) -> None:
        """Test that accepting every overflow equals overtime by default."""
        session = OvertimeDecisionSession(2000, resource, MONDAY)
        while not session.is_complete:
            session.decide(use_overtime=True)

        automatic = calculate_multi_day_allocation_plan(2000, resource, MONDAY, None, True)
        assert session.plan == automatic
        assert not session.plan.requires_user_decision
        assert session.options() == []

    def test_all_push_matches_pending_plan(self, resource: ResourceDefinition) -> None:
        """Test that pushing every overflow keeps the same days without the flag."""
        session = OvertimeDecisionSession(1140, resource, MONDAY)
        session.decide(use_overtime=False)
        session.decide(use_overtime=False)

        pending = calculate_multi_day_allocation_plan(1140, resource, MONDAY)
        assert session.is_complete
        assert session.plan.days == pending.days
        assert not session.plan.requires_user_decision

    def test_decision_moves_to_next_day(self, resource: ResourceDefinition) -> None:
        """Test that pushing Monday makes Tuesday the current day."""
        session = OvertimeDecisionSession(1140, resource, MONDAY)
        session.decide(use_overtime=False)

        assert session.decisions == {MONDAY: False}
        assert session.current_day is not None
        assert session.current_day.date == TUESDAY

    def test_overtime_can_finish_early(self, resource: ResourceDefinition) -> None:
        """Test that accepting overtime on Monday resolves the whole plan."""
        session = OvertimeDecisionSession(1140, resource, MONDAY)
        plan = session.decide(use_overtime=True)

        assert session.is_complete
        assert [d.total_minutes for d in plan.days] == [660, 480]

    def test_back_undoes_last_decision(self, resource: ResourceDefinition) -> None:
        """Test stepping back to a previous day."""
        session = OvertimeDecisionSession(1140, resource, MONDAY)
        session.decide(use_overtime=False)

        assert session.back()
        assert session.decisions == {}
        assert session.current_day is not None
        assert session.current_day.date == MONDAY
        assert not session.back()

    def test_decide_when_complete(self, resource: ResourceDefinition) -> None:
        """Test that deciding with nothing pending raises RuntimeError."""
        session = OvertimeDecisionSession(300, resource, MONDAY)
        assert session.is_complete
        with pytest.raises(RuntimeError, match="No overflow day"):
            session.decide(use_overtime=True)

    def test_failed_decision_is_rolled_back(self, resource: ResourceDefinition) -> None:
        """Test that a decision whose re-plan fails is undone."""
        tracer = ExplodingTracer()
        session = OvertimeDecisionSession(1140, resource, MONDAY, tracer=tracer)
        tracer.armed = True

        with pytest.raises(RuntimeError, match="boom"):
            session.decide(use_overtime=True)
        assert session.decisions == {}
        assert session.current_day is not None
        assert session.current_day.date == MONDAY

    def test_pending_plan_beyond_bound(self, resource: ResourceDefinition) -> None:
        """Test that a session cannot start when the undecided plan is too long."""
        with pytest.raises(OverflowUnresolvedError):
            OvertimeDecisionSession(1700, resource, MONDAY, max_days=2)


class TestApplyDecisions:
    """Test replaying a decision sequence."""

    def test_mixed_decisions(self, resource: ResourceDefinition) -> None:
        """Test push on Monday then overtime on Tuesday."""
        plan = apply_decisions(1200, resource, MONDAY, [False, True])

        assert [(d.normal_minutes, d.overtime_minutes) for d in plan.days] == [(540, 0), (540, 120)]
        assert not plan.requires_user_decision

    def test_extra_decisions_are_ignored(self, resource: ResourceDefinition) -> None:
        """Test that decisions beyond the last overflow day are dropped."""
        plan = apply_decisions(1140, resource, MONDAY, [True, False, False])
        assert len(plan.days) == 2

    def test_missing_decisions_leave_plan_pending(self, resource: ResourceDefinition) -> None:
        """Test that running out of decisions keeps the plan flagged."""
        plan = apply_decisions(1140, resource, MONDAY, [False])
        assert plan.requires_user_decision
        assert [d.normal_minutes for d in plan.days] == [540, 540, 60]
