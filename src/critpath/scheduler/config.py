"""Configuration classes for the scheduling system."""

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from critpath.exceptions import CalendarError

WEEKDAY_NAMES = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")
MONDAY_TO_FRIDAY = 0b0011111  # bit 0 = Monday ... bit 6 = Sunday
ALL_WEEKDAYS = 0b1111111


class CalendarException(BaseModel):
    """A date range that overrides the weekly working pattern.

    Both ends are inclusive; omit ``end`` for a single day.
    """

    model_config = ConfigDict(frozen=True)

    start: date
    end: date | None = None
    is_working: bool = False
    name: str | None = None

    @model_validator(mode="after")
    def validate_end_after_start(self) -> "CalendarException":
        """Ensure end date is not before start date."""
        if self.end is not None and self.end < self.start:
            raise ValueError("end date must not be before start date")
        return self

    @property
    def last_day(self) -> date:
        return self.end if self.end is not None else self.start

    def covers(self, day: date) -> bool:
        return self.start <= day <= self.last_day


class WorkingCalendar(BaseModel):
    """Definition of which days count as working time."""

    model_config = ConfigDict(frozen=True)

    id: str = "default"
    working_days: int = MONDAY_TO_FRIDAY
    hours_per_day: float = 8.0
    days_per_month: float = 20.0
    exceptions: tuple[CalendarException, ...] = ()

    @field_validator("working_days", mode="before")
    @classmethod
    def coerce_weekday_list(cls, v: Any) -> Any:
        """Accept a list of weekday names (["mon", "tue", ...]) as well as a bitmask."""
        if isinstance(v, (list, tuple)):
            mask = 0
            for name in v:  # type: ignore[union-attr]
                key = str(name).strip().lower()[:3]
                if key not in WEEKDAY_NAMES:
                    raise ValueError(f"Unknown weekday: {name!r}")
                mask |= 1 << WEEKDAY_NAMES.index(key)
            return mask
        return v

    @field_validator("working_days")
    @classmethod
    def validate_working_days(cls, v: int) -> int:
        """Reject calendars that can never produce a working day."""
        if v & ALL_WEEKDAYS == 0:
            raise CalendarError("calendar has no working days in its weekly pattern")
        if v & ~ALL_WEEKDAYS:
            raise ValueError(f"working_days bitmask out of range: {v}")
        return v

    @field_validator("hours_per_day", "days_per_month")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @property
    def working_days_per_week(self) -> int:
        return bin(self.working_days).count("1")

    def is_working_weekday(self, weekday: int) -> bool:
        """Check the weekly pattern only (0 = Monday)."""
        return bool(self.working_days & (1 << weekday))


DEFAULT_CALENDAR = WorkingCalendar()


class SchedulingOptions(BaseModel):
    """Per-call options for calculate_schedule()."""

    project_start_date: date
    project_end_date: date | None = None
    calendar: WorkingCalendar = Field(default_factory=WorkingCalendar)
    # False = schedule backward from project_end_date (ALAP-anchored projects)
    schedule_from_start: bool = True

    @model_validator(mode="after")
    def validate_dates(self) -> "SchedulingOptions":
        """Backward scheduling needs an anchor, and the window must not be inverted."""
        if not self.schedule_from_start and self.project_end_date is None:
            raise ValueError("project_end_date is required when schedule_from_start is false")
        if self.project_end_date is not None and self.project_end_date < self.project_start_date:
            raise ValueError("project_end_date must not be before project_start_date")
        return self
