"""Day-granular date helpers and the fixed weekend/holiday calendar.

All scheduling arithmetic in Gantry works on whole calendar days using
``datetime.date``. Times of day never enter the engine; ISO strings with a
time part are truncated to their date.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta

from .exceptions import InvalidDateError

SATURDAY = 5
SUNDAY = 6

# Fixed (month, day) holidays used when no calendar is configured
DEFAULT_FIXED_HOLIDAYS: tuple[tuple[int, int], ...] = (
    (1, 1),  # New Year's Day
    (4, 21),  # Tiradentes
    (5, 1),  # Labour Day
    (9, 7),  # Independence Day
    (10, 12),  # Our Lady of Aparecida
    (11, 2),  # All Souls' Day
    (11, 15),  # Republic Day
    (12, 25),  # Christmas
)


def parse_date(value: str | date | None) -> date | None:
    """Parse a YYYY-MM-DD string (or ISO timestamp) into a date.

    Args:
        value: String, date or None

    Returns:
        The parsed date, or None when value is None or blank

    Raises:
        InvalidDateError: If the value is not a recognizable date
    """
    if value is None:
        return None
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text.split("T", 1)[0])
    except ValueError as e:
        raise InvalidDateError(f"Invalid date '{value}'. Use YYYY-MM-DD") from e


def format_date(value: date) -> str:
    """Format a date as YYYY-MM-DD."""
    return value.isoformat()


def add_days(value: date, days: float) -> date:
    """Shift a date by a whole number of days (fractions are truncated)."""
    return value + timedelta(days=int(days))


def days_between(start: date, end: date) -> int:
    """Signed number of days from start to end (exclusive of the start day)."""
    return (end - start).days


def duration_from_dates(start: date, end: date) -> int:
    """Inclusive day count of the interval, at least 1."""
    return max(1, days_between(start, end) + 1)


def is_weekend(value: date) -> bool:
    """Check whether the date falls on Saturday or Sunday."""
    return value.weekday() in (SATURDAY, SUNDAY)


def next_weekday(value: date) -> date:
    """Return the first day after value that is not a weekend day."""
    candidate = value + timedelta(days=1)
    while is_weekend(candidate):
        candidate += timedelta(days=1)
    return candidate


def next_saturday(value: date) -> date:
    """Return the Saturday strictly after value."""
    days_ahead = (SATURDAY - value.weekday()) % 7
    return value + timedelta(days=days_ahead or 7)


def _default_holidays() -> frozenset[tuple[int, int]]:
    return frozenset(DEFAULT_FIXED_HOLIDAYS)


@dataclass(frozen=True)
class WorkCalendar:
    """Fixed weekend/holiday rule.

    Holidays are (month, day) pairs repeating every year. Saturday and Sunday
    are always weekend days.
    """

    fixed_holidays: frozenset[tuple[int, int]] = field(default_factory=_default_holidays)

    def is_weekend(self, value: date) -> bool:
        """Check whether the date is a weekend day."""
        return is_weekend(value)

    def is_holiday(self, value: date) -> bool:
        """Check whether the date is one of the fixed holidays."""
        return (value.month, value.day) in self.fixed_holidays

    def is_non_working(self, value: date) -> bool:
        """Check whether the date is a weekend day or a holiday."""
        return self.is_weekend(value) or self.is_holiday(value)


DEFAULT_CALENDAR = WorkCalendar()


def is_holiday(value: date) -> bool:
    """Check whether the date is a holiday on the default calendar."""
    return DEFAULT_CALENDAR.is_holiday(value)
