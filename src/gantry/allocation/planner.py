"""Capacity-aware multi-day allocation planner.

Distributes a quantity of work-minutes across calendar days under a
resource's daily capacity. Overtime is never taken silently: unless overtime
is enabled by default (or a resolver accepts it for a given day), overflow is
pushed to the next working day and the plan is flagged as awaiting a decision.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import date
from typing import TYPE_CHECKING, Protocol

from ..dates import DEFAULT_CALENDAR, WorkCalendar, next_saturday, next_weekday, parse_date
from ..exceptions import InvalidDateError, OverflowUnresolvedError
from ..logger import get_logger
from .core import (
    MAX_PLAN_DAYS,
    MAX_WEEKDAY_OVERTIME_MINUTES,
    MINUTES_PER_HOUR,
    NORMAL_MULTIPLIER,
    WEEKDAY_OVERTIME_MULTIPLIER,
    WEEKEND_OVERTIME_MULTIPLIER,
    CapacityOverflow,
    DayDecision,
    DayPlan,
    MultiDayAllocationPlan,
    OvertimeOption,
    OvertimeOptionType,
)

if TYPE_CHECKING:
    from ..config import ResourceDefinition

logger = get_logger()

# Called with (day, overflow_minutes); True accepts overtime, False pushes the
# overflow to the next day, None leaves the day undecided (pushed and flagged)
OverflowResolver = Callable[[date, int], "bool | None"]


class AllocationTracer(Protocol):
    """Receives one event per planned day."""

    def day_planned(self, index: int, day: DayPlan, decision: DayDecision) -> None:
        """Record that a day was planned.

        Args:
            index: Zero-based position of the day in the plan
            day: The planned day
            decision: What the planner did with the day's overflow
        """
        ...


class LoggerTracer:
    """Writes planned days through the gantry logger at checks level."""

    def day_planned(self, index: int, day: DayPlan, decision: DayDecision) -> None:
        logger.checks(
            f"  Day {index} {day.date}: normal={day.normal_minutes} "
            f"overtime={day.overtime_minutes}x{day.overtime_multiplier} "
            f"overflow={day.overflow_minutes} [{decision.value}]"
        )


def get_overtime_multiplier(day: date, calendar: WorkCalendar = DEFAULT_CALENDAR) -> float:
    """Overtime pay multiplier for a date: 2.0 on weekends and holidays, else 1.5."""
    if calendar.is_non_working(day):
        return WEEKEND_OVERTIME_MULTIPLIER
    return WEEKDAY_OVERTIME_MULTIPLIER


def calculate_overtime_cost(
    regular_minutes: int, overtime_minutes: int, hourly_rate: float, overtime_multiplier: float
) -> float:
    """Cost of regular minutes plus overtime minutes at a multiplier."""
    regular_cost = regular_minutes / MINUTES_PER_HOUR * hourly_rate
    overtime_cost = overtime_minutes / MINUTES_PER_HOUR * hourly_rate * overtime_multiplier
    return regular_cost + overtime_cost


def detect_capacity_overflow(
    minutes_to_allocate: int,
    resource: ResourceDefinition,
    day: date | str,
    existing_minutes: int = 0,
    calendar: WorkCalendar = DEFAULT_CALENDAR,
) -> CapacityOverflow:
    """Check whether allocating minutes on a day exceeds the resource's capacity.

    Args:
        minutes_to_allocate: Minutes wanted on the day
        resource: Resource being allocated
        day: The day
        existing_minutes: Minutes already allocated to the resource that day
        calendar: Weekend/holiday rule

    Returns:
        CapacityOverflow describing the excess and the suggested multiplier
    """
    target = _require_date(day)
    capacity = resource.daily_capacity_minutes
    total = existing_minutes + minutes_to_allocate

    return CapacityOverflow(
        has_overflow=total > capacity,
        minutes_needed=minutes_to_allocate,
        minutes_available=max(0, capacity - existing_minutes),
        minutes_overflow=max(0, total - capacity),
        is_weekend=calendar.is_weekend(target),
        is_holiday=calendar.is_holiday(target),
        suggested_multiplier=get_overtime_multiplier(target, calendar),
    )


def generate_overtime_options(
    overflow: CapacityOverflow,
    resource: ResourceDefinition,
    current_date: date | str,
) -> list[OvertimeOption]:
    """List the ways of resolving a day's overflow.

    Always offers pushing the overflow to the next weekday and working it on
    the next Saturday; weekday overtime (capped at 120 minutes) is offered
    only when the current day is not a weekend day.

    Args:
        overflow: Result of detect_capacity_overflow for the day
        resource: Resource being allocated
        current_date: The day that overflowed

    Returns:
        Options in order: push, weekday overtime (if offered), weekend
    """
    current = _require_date(current_date)
    rate = resource.hourly_rate
    overflow_minutes = overflow.minutes_overflow
    hours = overflow_minutes / MINUTES_PER_HOUR

    next_day = next_weekday(current)
    options = [
        OvertimeOption(
            type=OvertimeOptionType.PUSH_DATE,
            label="Push to next day",
            description=f"Allocate {hours:.1f}h on {next_day.isoformat()} (no extra cost)",
            multiplier=NORMAL_MULTIPLIER,
            new_end_date=next_day,
            estimated_cost=calculate_overtime_cost(overflow_minutes, 0, rate, NORMAL_MULTIPLIER),
        )
    ]

    if not overflow.is_weekend:
        allowed = min(overflow_minutes, MAX_WEEKDAY_OVERTIME_MINUTES)
        excess = overflow_minutes - allowed
        if excess > 0:
            description = (
                f"{allowed / MINUTES_PER_HOUR:.1f}h overtime (daily limit) + "
                f"{excess / MINUTES_PER_HOUR:.1f}h pushed to next day"
            )
        else:
            description = (
                f"{allowed / MINUTES_PER_HOUR:.1f}h overtime at "
                f"{WEEKDAY_OVERTIME_MULTIPLIER}x"
            )
        options.append(
            OvertimeOption(
                type=OvertimeOptionType.OVERTIME_WEEKDAY,
                label="Weekday overtime",
                description=description,
                multiplier=WEEKDAY_OVERTIME_MULTIPLIER,
                overtime_minutes=allowed,
                estimated_cost=calculate_overtime_cost(
                    0, allowed, rate, WEEKDAY_OVERTIME_MULTIPLIER
                ),
            )
        )

    saturday = next_saturday(current)
    options.append(
        OvertimeOption(
            type=OvertimeOptionType.OVERTIME_WEEKEND,
            label="Work on the weekend",
            description=(
                f"{hours:.1f}h on Saturday {saturday.isoformat()} at "
                f"{WEEKEND_OVERTIME_MULTIPLIER}x"
            ),
            multiplier=WEEKEND_OVERTIME_MULTIPLIER,
            overtime_minutes=overflow_minutes,
            new_end_date=saturday,
            estimated_cost=calculate_overtime_cost(
                0, overflow_minutes, rate, WEEKEND_OVERTIME_MULTIPLIER
            ),
        )
    )

    return options


def calculate_multi_day_allocation_plan(  # noqa: PLR0913
    total_minutes: int,
    resource: ResourceDefinition,
    start_date: date | str,
    existing_allocations: Mapping[date, int] | Mapping[str, int] | None = None,
    use_overtime_by_default: bool = False,
    *,
    calendar: WorkCalendar = DEFAULT_CALENDAR,
    overflow_resolver: OverflowResolver | None = None,
    tracer: AllocationTracer | None = None,
    max_days: int = MAX_PLAN_DAYS,
) -> MultiDayAllocationPlan:
    """Distribute work-minutes over days starting at start_date.

    Each day takes as many normal minutes as its free capacity allows. When
    the remainder does not fit, the overflow is either absorbed as overtime
    (weekdays: at most 120 minutes at 1.5x, the rest rolls over; weekends and
    holidays: all of it at 2.0x) or pushed whole to the next day. After each
    day the plan moves to the next weekday; the start date itself is used
    even when it falls on a weekend.

    Args:
        total_minutes: Minutes to allocate
        resource: Resource providing capacity and hourly rate
        start_date: First day of the plan
        existing_allocations: Minutes already allocated per day
        use_overtime_by_default: Absorb overflow as overtime without asking
        calendar: Weekend/holiday rule
        overflow_resolver: Per-day overtime decision; overrides
            use_overtime_by_default when given
        tracer: Receives one event per planned day; defaults to logging
        max_days: Maximum number of days the plan may span

    Returns:
        The complete plan with totals and estimated cost

    Raises:
        InvalidDateError: If start_date cannot be parsed
        OverflowUnresolvedError: If minutes remain after max_days days
    """
    current = _require_date(start_date)
    existing = normalize_existing_allocations(existing_allocations)
    if overflow_resolver is None:
        overflow_resolver = _default_resolver(use_overtime_by_default)
    if tracer is None:
        tracer = LoggerTracer()

    capacity = resource.daily_capacity_minutes
    days: list[DayPlan] = []
    remaining = total_minutes
    requires_user_decision = False

    logger.changes(
        f"Allocating {total_minutes} min for {resource.name} from {current} "
        f"(capacity {capacity} min/day)"
    )

    while remaining > 0:
        if len(days) >= max_days:
            plan = _summarize(days, total_minutes, resource, requires_user_decision)
            raise OverflowUnresolvedError(plan, remaining, max_days)

        available = max(0, capacity - existing.get(current, 0))
        weekend = calendar.is_weekend(current)
        holiday = calendar.is_holiday(current)

        if remaining <= available:
            day = DayPlan(
                date=current,
                normal_minutes=remaining,
                is_weekend=weekend,
                is_holiday=holiday,
            )
            decision = DayDecision.FITS
            remaining = 0
        else:
            overflow = remaining - available
            accept = overflow_resolver(current, overflow)
            if accept is None:
                requires_user_decision = True
                decision = DayDecision.PENDING
            else:
                decision = DayDecision.OVERTIME if accept else DayDecision.PUSHED

            if decision == DayDecision.OVERTIME:
                day = _overtime_day(current, available, overflow, weekend, holiday)
                remaining = day.overflow_minutes
            else:
                day = DayPlan(
                    date=current,
                    normal_minutes=available,
                    is_weekend=weekend,
                    is_holiday=holiday,
                    has_overflow=True,
                    overflow_minutes=overflow,
                )
                remaining = overflow

        tracer.day_planned(len(days), day, decision)
        days.append(day)
        current = next_weekday(current)

    plan = _summarize(days, total_minutes, resource, requires_user_decision)
    logger.changes(
        f"  Planned {len(days)} day(s), {plan.total_overtime_minutes} overtime min, "
        f"cost {plan.estimated_cost:.2f}"
        + (" (awaiting overtime decisions)" if requires_user_decision else "")
    )
    return plan


def _overtime_day(
    day: date, available: int, overflow: int, weekend: bool, holiday: bool
) -> DayPlan:
    """Build a day that absorbs overflow as overtime."""
    if weekend or holiday:
        return DayPlan(
            date=day,
            normal_minutes=available,
            overtime_minutes=overflow,
            overtime_multiplier=WEEKEND_OVERTIME_MULTIPLIER,
            is_weekend=weekend,
            is_holiday=holiday,
        )

    overtime = min(overflow, MAX_WEEKDAY_OVERTIME_MINUTES)
    carried = overflow - overtime
    return DayPlan(
        date=day,
        normal_minutes=available,
        overtime_minutes=overtime,
        overtime_multiplier=WEEKDAY_OVERTIME_MULTIPLIER,
        is_weekend=weekend,
        is_holiday=holiday,
        has_overflow=True,
        overflow_minutes=carried,
    )


def _summarize(
    days: list[DayPlan],
    total_minutes: int,
    resource: ResourceDefinition,
    requires_user_decision: bool,
) -> MultiDayAllocationPlan:
    """Wrap planned days with their totals and cost."""
    return MultiDayAllocationPlan(
        days=list(days),
        total_minutes=total_minutes,
        total_normal_minutes=sum(day.normal_minutes for day in days),
        total_overtime_minutes=sum(day.overtime_minutes for day in days),
        estimated_cost=sum(day.cost(resource.hourly_rate) for day in days),
        requires_user_decision=requires_user_decision,
    )


def _default_resolver(use_overtime: bool) -> OverflowResolver:
    def resolve(day: date, overflow_minutes: int) -> bool | None:
        return True if use_overtime else None

    return resolve


def _require_date(value: date | str) -> date:
    parsed = parse_date(value)
    if parsed is None:
        raise InvalidDateError("A date is required")
    return parsed


def normalize_existing_allocations(
    existing: Mapping[date, int] | Mapping[str, int] | None,
) -> dict[date, int]:
    """Key minutes already booked by date, summing keys that name the same day."""
    if not existing:
        return {}
    normalized: dict[date, int] = {}
    for key, minutes in existing.items():
        day = _require_date(key)
        normalized[day] = normalized.get(day, 0) + minutes
    return normalized

