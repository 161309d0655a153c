"""Manual editing of day plans.

Each day is in one of three work modes (none, normal, overtime). Changing a
day's mode rebuilds that day from its mode, then the whole plan is trimmed
back so it allocates no more than the target number of minutes. Normal
minutes never exceed the capacity left free by existing allocations.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from datetime import date, timedelta

from ..dates import DEFAULT_CALENDAR, WorkCalendar
from ..logger import get_logger
from .core import (
    DEFAULT_DAILY_CAPACITY_MINUTES,
    MAX_WEEKDAY_OVERTIME_MINUTES,
    NORMAL_MULTIPLIER,
    WEEKDAY_OVERTIME_MULTIPLIER,
    WEEKEND_OVERTIME_MULTIPLIER,
    DayPlan,
    WorkMode,
)
from .planner import normalize_existing_allocations

logger = get_logger()

ExistingAllocations = Mapping[date, int] | Mapping[str, int] | None


def _cleared(day: DayPlan) -> DayPlan:
    return replace(
        day,
        normal_minutes=0,
        overtime_minutes=0,
        overtime_multiplier=NORMAL_MULTIPLIER,
        has_overflow=False,
        overflow_minutes=0,
    )


def _free(day: date, daily_capacity_minutes: int, existing: dict[date, int]) -> int:
    return max(0, daily_capacity_minutes - existing.get(day, 0))


def set_work_mode(  # noqa: PLR0913
    days: list[DayPlan],
    index: int,
    mode: WorkMode,
    total_minutes: int,
    daily_capacity_minutes: int = DEFAULT_DAILY_CAPACITY_MINUTES,
    overtime_minutes: int = MAX_WEEKDAY_OVERTIME_MINUTES,
    *,
    existing_allocations: ExistingAllocations = None,
) -> list[DayPlan]:
    """Switch one day to a work mode and redistribute the plan.

    Weekend days have no normal minutes: selecting one in any mode other than
    none books its free capacity as overtime at 2.0x. On weekdays, normal
    mode books the free capacity and overtime mode adds up to 120 minutes at
    1.5x on top of it.

    Args:
        days: Current day plans (left unchanged)
        index: Position of the day to change
        mode: New work mode for that day
        total_minutes: Minutes the plan must allocate
        daily_capacity_minutes: Capacity of the resource
        overtime_minutes: Weekday overtime to book in overtime mode
        existing_allocations: Minutes already booked per day

    Returns:
        New list of day plans

    Raises:
        IndexError: If index is out of range
        ValueError: If overtime_minutes is not between 1 and 120
    """
    if not 0 < overtime_minutes <= MAX_WEEKDAY_OVERTIME_MINUTES:
        raise ValueError(
            f"Weekday overtime must be between 1 and {MAX_WEEKDAY_OVERTIME_MINUTES} minutes"
        )

    existing = normalize_existing_allocations(existing_allocations)
    day = _cleared(days[index])
    free = _free(day.date, daily_capacity_minutes, existing)

    if mode == WorkMode.NONE:
        updated = day
    elif day.is_weekend:
        updated = replace(
            day,
            overtime_minutes=free,
            overtime_multiplier=WEEKEND_OVERTIME_MULTIPLIER,
        )
    elif mode == WorkMode.NORMAL:
        updated = replace(day, normal_minutes=free)
    else:
        updated = replace(
            day,
            normal_minutes=free,
            overtime_minutes=overtime_minutes,
            overtime_multiplier=WEEKDAY_OVERTIME_MULTIPLIER,
        )

    logger.checks(f"  {updated.date}: set to {updated.work_mode.value}")
    edited = list(days)
    edited[index] = updated
    return redistribute_days(
        edited, total_minutes, daily_capacity_minutes, existing_allocations=existing
    )


def redistribute_days(  # noqa: PLR0913
    days: list[DayPlan],
    total_minutes: int,
    daily_capacity_minutes: int = DEFAULT_DAILY_CAPACITY_MINUTES,
    *,
    extend: bool = False,
    calendar: WorkCalendar = DEFAULT_CALENDAR,
    existing_allocations: ExistingAllocations = None,
) -> list[DayPlan]:
    """Trim a plan so it allocates exactly the target minutes.

    Days are consumed in order. The day where the target is reached keeps
    only what is still needed (normal minutes first, up to the free capacity,
    overtime for the rest); every later day is cleared. A plan that falls
    short is returned as is, unless extend is set, in which case weekdays
    after the last allocated day are appended at their free capacity until
    the target is met.

    Args:
        days: Day plans in date order (left unchanged)
        total_minutes: Minutes the plan must allocate
        daily_capacity_minutes: Capacity of the resource
        extend: Append weekdays when the plan falls short
        calendar: Weekend/holiday rule for appended days
        existing_allocations: Minutes already booked per day

    Returns:
        New list of day plans

    Raises:
        ValueError: If extend is set and daily_capacity_minutes is not positive
    """
    existing = normalize_existing_allocations(existing_allocations)
    allocated = sum(day.total_minutes for day in days)

    if allocated < total_minutes:
        if not extend:
            return list(days)
        if daily_capacity_minutes <= 0:
            raise ValueError("Cannot extend a plan without daily capacity")
        return _extend(
            days, total_minutes - allocated, daily_capacity_minutes, calendar, existing
        )

    result: list[DayPlan] = []
    accumulated = 0
    for day in days:
        if not day.is_allocated:
            result.append(day)
        elif accumulated + day.total_minutes <= total_minutes:
            accumulated += day.total_minutes
            result.append(day)
        elif accumulated < total_minutes:
            free = _free(day.date, daily_capacity_minutes, existing)
            result.append(_trim_day(day, total_minutes - accumulated, free))
            accumulated = total_minutes
        else:
            result.append(_cleared(day))

    return result


def _trim_day(day: DayPlan, needed: int, free: int) -> DayPlan:
    """Reduce a day to the minutes still needed."""
    if day.work_mode != WorkMode.OVERTIME:
        return replace(day, normal_minutes=needed)
    if day.is_weekend:
        return replace(day, normal_minutes=0, overtime_minutes=needed)
    if needed <= free:
        return replace(
            day,
            normal_minutes=needed,
            overtime_minutes=0,
            overtime_multiplier=NORMAL_MULTIPLIER,
        )
    return replace(day, normal_minutes=free, overtime_minutes=needed - free)


def _extend(
    days: list[DayPlan],
    missing: int,
    daily_capacity_minutes: int,
    calendar: WorkCalendar,
    existing: dict[date, int],
) -> list[DayPlan]:
    """Append weekdays at their free capacity until missing minutes are placed."""
    result = list(days)
    allocated_dates = [day.date for day in days if day.is_allocated]
    if not allocated_dates:
        return result

    # Unallocated trailing days are dropped so appended days stay in date order
    last = allocated_dates[-1]
    while result and result[-1].date > last:
        result.pop()

    current = last + timedelta(days=1)
    while missing > 0:
        free = _free(current, daily_capacity_minutes, existing)
        if not calendar.is_weekend(current) and free > 0:
            amount = min(missing, free)
            result.append(
                DayPlan(
                    date=current,
                    normal_minutes=amount,
                    is_holiday=calendar.is_holiday(current),
                )
            )
            missing -= amount
        current += timedelta(days=1)

    return result
