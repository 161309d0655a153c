"""Custom exceptions for Gantry."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .allocation.core import MultiDayAllocationPlan


class GantryError(Exception):
    """Base exception for all Gantry errors."""

    pass


class InvalidDateError(GantryError):
    """Raised when a required date is missing or cannot be parsed."""

    pass


class CycleDetectedError(GantryError):
    """Raised when the predecessor graph contains a cycle."""

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        super().__init__(f"Circular predecessor chain detected: {' -> '.join(cycle)}")


class OverflowUnresolvedError(GantryError):
    """Raised when an allocation plan hits its day bound with minutes left over."""

    def __init__(self, plan: MultiDayAllocationPlan, remaining_minutes: int, max_days: int):
        self.plan = plan
        self.remaining_minutes = remaining_minutes
        self.max_days = max_days
        super().__init__(
            f"Allocation still has {remaining_minutes} minute(s) unplaced after {max_days} days"
        )


class ValidationError(GantryError):
    """Raised when validation fails."""

    pass


class MissingReferenceError(ValidationError):
    """Raised when a referenced task ID does not exist."""

    pass


class ParseError(GantryError):
    """Raised when YAML parsing fails."""

    pass
