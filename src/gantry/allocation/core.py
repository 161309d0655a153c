"""Core dataclasses for capacity allocation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum

# Weekday overtime is capped per day; weekend/holiday overtime is not
MAX_WEEKDAY_OVERTIME_MINUTES = 120
NORMAL_MULTIPLIER = 1.0
WEEKDAY_OVERTIME_MULTIPLIER = 1.5
WEEKEND_OVERTIME_MULTIPLIER = 2.0

# Safety bound on the number of days a single plan may span
MAX_PLAN_DAYS = 30

DEFAULT_DAILY_CAPACITY_MINUTES = 540

MINUTES_PER_HOUR = 60


class WorkMode(str, Enum):
    """Allocation state of a single day."""

    NONE = "none"  # Nothing allocated
    NORMAL = "normal"  # Only minutes within capacity
    OVERTIME = "overtime"  # Overtime minutes on top of (or instead of) normal ones


class DayDecision(str, Enum):
    """What the planner did with a day's work."""

    FITS = "fits"  # Remaining minutes fit within capacity
    PENDING = "pending"  # Overflow pushed to the next day, awaiting a decision
    PUSHED = "pushed"  # Overflow pushed to the next day by decision
    OVERTIME = "overtime"  # Overflow absorbed as overtime


class OvertimeOptionType(str, Enum):
    """Ways of resolving a day's overflow."""

    PUSH_DATE = "push_date"
    OVERTIME_WEEKDAY = "overtime_weekday"
    OVERTIME_WEEKEND = "overtime_weekend"


@dataclass(frozen=True)
class DayPlan:
    """Minutes planned for one calendar day."""

    date: date
    normal_minutes: int = 0
    overtime_minutes: int = 0
    overtime_multiplier: float = NORMAL_MULTIPLIER
    is_weekend: bool = False
    is_holiday: bool = False
    has_overflow: bool = False
    overflow_minutes: int = 0  # Minutes carried over to the following day

    @property
    def total_minutes(self) -> int:
        """Normal plus overtime minutes."""
        return self.normal_minutes + self.overtime_minutes

    @property
    def is_allocated(self) -> bool:
        """True when any minutes are planned for the day."""
        return self.total_minutes > 0

    @property
    def work_mode(self) -> WorkMode:
        """Allocation state of the day."""
        if not self.is_allocated:
            return WorkMode.NONE
        if self.overtime_minutes > 0:
            return WorkMode.OVERTIME
        return WorkMode.NORMAL

    def cost(self, hourly_rate: float) -> float:
        """Cost of the day at the given hourly rate."""
        per_minute = hourly_rate / MINUTES_PER_HOUR
        return (
            self.normal_minutes * per_minute
            + self.overtime_minutes * per_minute * self.overtime_multiplier
        )


def _default_day_list() -> list[DayPlan]:
    return []


@dataclass
class MultiDayAllocationPlan:
    """Day-by-day distribution of a quantity of work-minutes."""

    days: list[DayPlan] = field(default_factory=_default_day_list)
    total_minutes: int = 0  # Minutes requested
    total_normal_minutes: int = 0
    total_overtime_minutes: int = 0
    estimated_cost: float = 0.0
    requires_user_decision: bool = False  # Some overflow day still awaits a decision

    @property
    def allocated_minutes(self) -> int:
        """Minutes actually placed on days."""
        return self.total_normal_minutes + self.total_overtime_minutes

    @property
    def end_date(self) -> date | None:
        """Last day with minutes planned."""
        allocated = [day.date for day in self.days if day.is_allocated]
        return allocated[-1] if allocated else None

    @property
    def overflow_days(self) -> list[DayPlan]:
        """Days whose capacity was exceeded."""
        return [day for day in self.days if day.has_overflow]


@dataclass(frozen=True)
class AllocationFragment:
    """A contiguous block of days sharing one overtime classification."""

    start_date: date
    end_date: date
    allocated_minutes: int  # Normal minutes over the whole block
    overtime_minutes: int = 0
    overtime_multiplier: float = NORMAL_MULTIPLIER

    @property
    def total_minutes(self) -> int:
        """Normal plus overtime minutes."""
        return self.allocated_minutes + self.overtime_minutes

    @property
    def day_count(self) -> int:
        """Number of calendar days in the block."""
        return (self.end_date - self.start_date).days + 1


@dataclass(frozen=True)
class CapacityOverflow:
    """Result of checking one day's allocation against capacity."""

    has_overflow: bool
    minutes_needed: int
    minutes_available: int
    minutes_overflow: int
    is_weekend: bool
    is_holiday: bool
    suggested_multiplier: float


@dataclass(frozen=True)
class OvertimeOption:
    """One way of resolving a day's overflow, with its cost."""

    type: OvertimeOptionType
    label: str
    description: str
    multiplier: float
    estimated_cost: float
    new_end_date: date | None = None
    overtime_minutes: int | None = None
