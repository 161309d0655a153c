"""Sequential overtime decisions over the overflow days of a plan.

The session never builds day plans itself: every decision re-runs the
planner with the decisions collected so far, so each resolved day has
exactly the shape the automatic planner would have produced for it.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date
from typing import TYPE_CHECKING

from ..dates import DEFAULT_CALENDAR, WorkCalendar
from ..logger import get_logger
from .core import MAX_PLAN_DAYS, DayPlan, MultiDayAllocationPlan, OvertimeOption
from .planner import (
    AllocationTracer,
    calculate_multi_day_allocation_plan,
    detect_capacity_overflow,
    generate_overtime_options,
)

if TYPE_CHECKING:
    from ..config import ResourceDefinition

logger = get_logger()


class OvertimeDecisionSession:
    """Walks the overflow days of a plan one at a time.

    Usage:
        session = OvertimeDecisionSession(1140, resource, date(2026, 1, 26))
        while not session.is_complete:
            session.decide(use_overtime=ask_user(session.current_day))
        plan = session.plan
    """

    def __init__(  # noqa: PLR0913
        self,
        total_minutes: int,
        resource: ResourceDefinition,
        start_date: date | str,
        existing_allocations: Mapping[date, int] | Mapping[str, int] | None = None,
        *,
        calendar: WorkCalendar = DEFAULT_CALENDAR,
        tracer: AllocationTracer | None = None,
        max_days: int = MAX_PLAN_DAYS,
    ):
        """Plan with every overflow undecided and wait for the first decision.

        Raises:
            OverflowUnresolvedError: If even the undecided plan exceeds max_days
        """
        self.total_minutes = total_minutes
        self.resource = resource
        self.start_date = start_date
        self.existing_allocations = existing_allocations
        self.calendar = calendar
        self.tracer = tracer
        self.max_days = max_days
        self._decisions: dict[date, bool] = {}
        self.plan = self._replan()

    @property
    def decisions(self) -> dict[date, bool]:
        """Decisions taken so far, by day, in the order they were taken."""
        return dict(self._decisions)

    @property
    def current_day(self) -> DayPlan | None:
        """The first overflow day still awaiting a decision."""
        for day in self.plan.days:
            if day.has_overflow and day.date not in self._decisions:
                return day
        return None

    @property
    def is_complete(self) -> bool:
        """True when no overflow day awaits a decision."""
        return self.current_day is None

    def options(self) -> list[OvertimeOption]:
        """Resolution options for the current day (empty when complete)."""
        day = self.current_day
        if day is None:
            return []
        overflow = detect_capacity_overflow(
            day.overflow_minutes + day.normal_minutes,
            self.resource,
            day.date,
            self.resource.daily_capacity_minutes - day.normal_minutes,
            self.calendar,
        )
        return generate_overtime_options(overflow, self.resource, day.date)

    def decide(self, use_overtime: bool) -> MultiDayAllocationPlan:
        """Resolve the current day and re-plan.

        Args:
            use_overtime: Absorb the overflow as overtime instead of pushing it

        Returns:
            The updated plan

        Raises:
            RuntimeError: If no day awaits a decision
            OverflowUnresolvedError: If the resulting plan exceeds max_days
        """
        day = self.current_day
        if day is None:
            raise RuntimeError("No overflow day awaits a decision")

        logger.changes(f"  {day.date}: {'overtime' if use_overtime else 'push to next day'}")
        self._decisions[day.date] = use_overtime
        try:
            self.plan = self._replan()
        except Exception:
            del self._decisions[day.date]
            raise
        return self.plan

    def back(self) -> bool:
        """Undo the most recent decision.

        Returns:
            False when there was nothing to undo
        """
        if not self._decisions:
            return False
        undone, _ = self._decisions.popitem()
        logger.checks(f"  Undo decision for {undone}")
        self.plan = self._replan()
        return True

    def _resolve(self, day: date, overflow_minutes: int) -> bool | None:
        return self._decisions.get(day)

    def _replan(self) -> MultiDayAllocationPlan:
        return calculate_multi_day_allocation_plan(
            self.total_minutes,
            self.resource,
            self.start_date,
            self.existing_allocations,
            calendar=self.calendar,
            overflow_resolver=self._resolve,
            tracer=self.tracer,
            max_days=self.max_days,
        )


def apply_decisions(  # noqa: PLR0913
    total_minutes: int,
    resource: ResourceDefinition,
    start_date: date | str,
    decisions: Iterable[bool],
    existing_allocations: Mapping[date, int] | Mapping[str, int] | None = None,
    *,
    calendar: WorkCalendar = DEFAULT_CALENDAR,
    max_days: int = MAX_PLAN_DAYS,
) -> MultiDayAllocationPlan:
    """Feed a sequence of overtime decisions through a decision session.

    Decisions are applied to overflow days in order. Decisions left over once
    no day awaits one are ignored; if they run out first, the remaining
    overflow days stay undecided and the plan requires a user decision.

    Args:
        total_minutes: Minutes to allocate
        resource: Resource providing capacity and hourly rate
        start_date: First day of the plan
        decisions: True to accept overtime, False to push, per overflow day
        existing_allocations: Minutes already allocated per day
        calendar: Weekend/holiday rule
        max_days: Maximum number of days the plan may span

    Returns:
        The resulting plan
    """
    session = OvertimeDecisionSession(
        total_minutes,
        resource,
        start_date,
        existing_allocations,
        calendar=calendar,
        max_days=max_days,
    )
    for use_overtime in decisions:
        if session.is_complete:
            break
        session.decide(use_overtime)
    return session.plan
