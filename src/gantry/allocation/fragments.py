"""Merging day plans into fragments and expanding fragments back into days."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date, timedelta

from ..dates import DEFAULT_CALENDAR, WorkCalendar
from ..logger import get_logger
from .core import (
    DEFAULT_DAILY_CAPACITY_MINUTES,
    MAX_WEEKDAY_OVERTIME_MINUTES,
    NORMAL_MULTIPLIER,
    AllocationFragment,
    DayPlan,
)
from .planner import normalize_existing_allocations

logger = get_logger()


def _breaks_fragment(previous: DayPlan, day: DayPlan) -> bool:
    """Check whether day cannot join the fragment that previous belongs to."""
    return (
        (day.date - previous.date).days != 1
        or previous.overtime_multiplier != day.overtime_multiplier
        or previous.is_weekend != day.is_weekend
        or (previous.overtime_minutes > 0) != (day.overtime_minutes > 0)
    )


def _to_fragment(group: list[DayPlan]) -> AllocationFragment:
    return AllocationFragment(
        start_date=group[0].date,
        end_date=group[-1].date,
        allocated_minutes=sum(day.normal_minutes for day in group),
        overtime_minutes=sum(day.overtime_minutes for day in group),
        overtime_multiplier=group[0].overtime_multiplier,
    )


def merge_consecutive_days(day_plans: Iterable[DayPlan]) -> list[AllocationFragment]:
    """Collapse day plans into contiguous fragments.

    A day joins the open fragment only when it is the calendar day right after
    the previous one and shares its overtime multiplier, its weekend/weekday
    classification and whether it carries overtime at all. A day with nothing
    allocated closes the open fragment and is itself skipped.

    Args:
        day_plans: Day plans in date order

    Returns:
        Fragments in date order
    """
    fragments: list[AllocationFragment] = []
    group: list[DayPlan] = []

    for day in day_plans:
        if not day.is_allocated:
            if group:
                fragments.append(_to_fragment(group))
                group = []
            continue

        if group and _breaks_fragment(group[-1], day):
            fragments.append(_to_fragment(group))
            group = []
        group.append(day)

    if group:
        fragments.append(_to_fragment(group))

    logger.checks(f"  Merged into {len(fragments)} fragment(s)")
    return fragments


def _spread(total: int, caps: list[int]) -> list[int]:
    """Fill days up to their caps in order; the last day takes the rest."""
    amounts: list[int] = []
    remaining = total
    for index, cap in enumerate(caps):
        if index == len(caps) - 1:
            amounts.append(remaining)
        else:
            amount = min(remaining, cap)
            amounts.append(amount)
            remaining -= amount
    return amounts


def expand_fragments(
    fragments: Iterable[AllocationFragment],
    daily_capacity_minutes: int = DEFAULT_DAILY_CAPACITY_MINUTES,
    calendar: WorkCalendar = DEFAULT_CALENDAR,
    *,
    fill_gaps: bool = False,
    existing_allocations: Mapping[date, int] | Mapping[str, int] | None = None,
) -> list[DayPlan]:
    """Expand stored fragments back into editable day plans.

    Normal minutes fill each day up to the capacity left free by existing
    allocations, in order, with the last day taking the remainder. Overtime
    minutes are spread the same way, capped at 120 minutes per weekday and at
    the daily capacity per weekend day.

    Args:
        fragments: Fragments in date order
        daily_capacity_minutes: Capacity of the resource
        calendar: Weekend/holiday rule
        fill_gaps: Insert unallocated days between fragments
        existing_allocations: Minutes already booked per day, as passed to
            the planner that produced the fragments

    Returns:
        Day plans in date order
    """
    existing = normalize_existing_allocations(existing_allocations)
    days: list[DayPlan] = []

    for fragment in fragments:
        if fill_gaps and days:
            gap_day = days[-1].date + timedelta(days=1)
            while gap_day < fragment.start_date:
                days.append(
                    DayPlan(
                        date=gap_day,
                        is_weekend=calendar.is_weekend(gap_day),
                        is_holiday=calendar.is_holiday(gap_day),
                    )
                )
                gap_day += timedelta(days=1)

        dates = [
            fragment.start_date + timedelta(days=offset) for offset in range(fragment.day_count)
        ]
        weekend = calendar.is_weekend(fragment.start_date)
        overtime_cap = daily_capacity_minutes if weekend else MAX_WEEKDAY_OVERTIME_MINUTES
        free = [max(0, daily_capacity_minutes - existing.get(day, 0)) for day in dates]
        normal = _spread(fragment.allocated_minutes, free)
        overtime = _spread(fragment.overtime_minutes, [overtime_cap] * len(dates))

        for offset, day in enumerate(dates):
            days.append(
                DayPlan(
                    date=day,
                    normal_minutes=normal[offset],
                    overtime_minutes=overtime[offset],
                    overtime_multiplier=(
                        fragment.overtime_multiplier if overtime[offset] else NORMAL_MULTIPLIER
                    ),
                    is_weekend=calendar.is_weekend(day),
                    is_holiday=calendar.is_holiday(day),
                )
            )

    return days
