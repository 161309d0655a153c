"""Configuration loader for resources, allocation defaults and the holiday rule.

A single configuration file (gantry_config.yaml) holds everything the engines
need beyond the project file itself:

    resources:
      - name: alice
        daily_capacity_minutes: 480
        hourly_rate: 90
    allocation:
      use_overtime_by_default: false
      default_daily_capacity_minutes: 540
    calendar:
      holidays:
        - {month: 1, day: 1}
        - {month: 12, day: 25}
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator

from . import context
from .allocation.core import DEFAULT_DAILY_CAPACITY_MINUTES
from .dates import DEFAULT_FIXED_HOLIDAYS, WorkCalendar

CONFIG_FILENAME = "gantry_config.yaml"
MINUTES_PER_DAY = 24 * 60


class ResourceDefinition(BaseModel):
    """A resource whose working minutes are allocated."""

    name: str
    daily_capacity_minutes: int = Field(default=DEFAULT_DAILY_CAPACITY_MINUTES, gt=0)
    hourly_rate: float = Field(default=0.0, ge=0)

    @model_validator(mode="after")
    def validate_capacity_fits_day(self) -> ResourceDefinition:
        """Ensure the daily capacity fits in a calendar day."""
        if self.daily_capacity_minutes > MINUTES_PER_DAY:
            raise ValueError(
                f"Resource '{self.name}' has daily_capacity_minutes "
                f"{self.daily_capacity_minutes} > {MINUTES_PER_DAY}"
            )
        return self


class AllocationConfig(BaseModel):
    """Defaults for the multi-day allocation planner."""

    use_overtime_by_default: bool = False
    default_daily_capacity_minutes: int = Field(default=DEFAULT_DAILY_CAPACITY_MINUTES, gt=0)


class HolidayDefinition(BaseModel):
    """A holiday repeating on the same month/day every year."""

    month: int = Field(ge=1, le=12)
    day: int = Field(ge=1, le=31)


def _default_holiday_definitions() -> list[HolidayDefinition]:
    return [HolidayDefinition(month=month, day=day) for month, day in DEFAULT_FIXED_HOLIDAYS]


class CalendarConfig(BaseModel):
    """Fixed weekend/holiday rule."""

    holidays: list[HolidayDefinition] = Field(default_factory=_default_holiday_definitions)

    def to_work_calendar(self) -> WorkCalendar:
        """Build the WorkCalendar used by the engines."""
        return WorkCalendar(fixed_holidays=frozenset((h.month, h.day) for h in self.holidays))


class GantryConfig(BaseModel):
    """Complete gantry configuration."""

    resources: list[ResourceDefinition] = Field(default_factory=list[ResourceDefinition])
    allocation: AllocationConfig = AllocationConfig()
    calendar: CalendarConfig = CalendarConfig()

    @model_validator(mode="after")
    def validate_unique_resources(self) -> GantryConfig:
        """Ensure resource names are unique."""
        seen: set[str] = set()
        for resource in self.resources:
            if resource.name in seen:
                raise ValueError(f"Duplicate resource name '{resource.name}'")
            seen.add(resource.name)
        return self

    def get_resource(self, name: str) -> ResourceDefinition | None:
        """Look up a resource by name."""
        for resource in self.resources:
            if resource.name == name:
                return resource
        return None

    def resolve_resource(self, name: str) -> ResourceDefinition:
        """Look up a resource, falling back to an ad-hoc one with default capacity.

        Unknown names are not an error: the planner only needs a capacity and
        a rate, so an unconfigured resource works at the configured default
        capacity and a zero rate.
        """
        resource = self.get_resource(name)
        if resource is not None:
            return resource
        return ResourceDefinition(
            name=name, daily_capacity_minutes=self.allocation.default_daily_capacity_minutes
        )


def load_config(config_path: Path | str) -> GantryConfig:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to gantry_config.yaml

    Returns:
        Validated GantryConfig; an empty file yields the defaults

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValueError: If the config is invalid
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with config_path.open() as f:
        data: dict[str, Any] | None = yaml.safe_load(f)

    if not data:
        return GantryConfig()
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")

    return GantryConfig.model_validate(data)


def discover_config(
    explicit_path: Path | str | None = None, project_path: Path | str | None = None
) -> Path | None:
    """Find the configuration file to use.

    Search order: the explicit path, the --config option of the running CLI,
    the project file's directory, then the current directory.

    Returns:
        Path to the config file, or None when none exists
    """
    if explicit_path is not None:
        return Path(explicit_path)

    context_path = context.get_config_path()
    if context_path is not None:
        return context_path

    candidates: list[Path] = []
    if project_path is not None:
        candidates.append(Path(project_path).parent / CONFIG_FILENAME)
    candidates.append(Path.cwd() / CONFIG_FILENAME)

    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def load_effective_config(
    explicit_path: Path | str | None = None, project_path: Path | str | None = None
) -> GantryConfig:
    """Discover and load the configuration, or return defaults when there is none."""
    path = discover_config(explicit_path, project_path)
    if path is None:
        return GantryConfig()
    return load_config(path)
