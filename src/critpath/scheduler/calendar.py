"""Working-day arithmetic over a WorkingCalendar.

All functions are pure and take the calendar as a parameter. Day counts follow
the half-open convention [start, end): a task of N working days starting on
``start`` ends on ``add_working_days(start, N)``, and
``count_working_days(start, end)`` gives N back.
"""

import math
from datetime import date, timedelta

from critpath.exceptions import CalendarError
from critpath.models import Duration, DurationUnit

from .config import DEFAULT_CALENDAR, WorkingCalendar

ONE_DAY = timedelta(days=1)
DAYS_PER_WEEK = 7
MAX_SCAN_DAYS = 3660  # ten years of consecutive non-working days is a broken calendar
ROUNDING_TOLERANCE = 1e-9


def is_working_day(day: date, calendar: WorkingCalendar = DEFAULT_CALENDAR) -> bool:
    """Check if a date is a working day.

    The weekly pattern is overridden by exception intervals; when several
    intervals cover the same day, the last one in the list wins.
    """
    working = calendar.is_working_weekday(day.weekday())
    for exception in calendar.exceptions:
        if exception.covers(day):
            working = exception.is_working
    return working


def get_next_working_day(day: date, calendar: WorkingCalendar = DEFAULT_CALENDAR) -> date:
    """Get the first working day on or after ``day``.

    Raises:
        CalendarError: If no working day exists within MAX_SCAN_DAYS
    """
    current = day
    for _ in range(MAX_SCAN_DAYS):
        if is_working_day(current, calendar):
            return current
        current += ONE_DAY
    raise CalendarError(
        f"Calendar '{calendar.id}' has no working day within {MAX_SCAN_DAYS} days after {day}"
    )


def get_previous_working_day(day: date, calendar: WorkingCalendar = DEFAULT_CALENDAR) -> date:
    """Get the last working day on or before ``day``.

    Raises:
        CalendarError: If no working day exists within MAX_SCAN_DAYS
    """
    current = day
    for _ in range(MAX_SCAN_DAYS):
        if is_working_day(current, calendar):
            return current
        current -= ONE_DAY
    raise CalendarError(
        f"Calendar '{calendar.id}' has no working day within {MAX_SCAN_DAYS} days before {day}"
    )


def whole_working_days(value: float) -> int:
    """Round a fractional day count away from zero (a partial day occupies the day)."""
    if value >= 0:
        return math.ceil(value - ROUNDING_TOLERANCE)
    return -math.ceil(-value - ROUNDING_TOLERANCE)


def add_working_days(day: date, days: float, calendar: WorkingCalendar = DEFAULT_CALENDAR) -> date:
    """Move ``days`` working days away from ``day``.

    - days > 0: start from the next working day and step forward
    - days < 0: start from the previous working day and step backward
    - days == 0: the next working day on or after ``day``, so nothing is ever
      anchored on a non-working day
    """
    count = whole_working_days(days)
    if count == 0:
        return get_next_working_day(day, calendar)

    if count > 0:
        current = get_next_working_day(day, calendar)
        for _ in range(count):
            current = get_next_working_day(current + ONE_DAY, calendar)
        return current

    current = get_previous_working_day(day, calendar)
    for _ in range(-count):
        current = get_previous_working_day(current - ONE_DAY, calendar)
    return current


def subtract_working_days(
    day: date, days: float, calendar: WorkingCalendar = DEFAULT_CALENDAR
) -> date:
    """Equivalent to ``add_working_days(day, -days, calendar)``."""
    return add_working_days(day, -days, calendar)


def count_working_days(start: date, end: date, calendar: WorkingCalendar = DEFAULT_CALENDAR) -> int:
    """Count working days in [start, end). Returns 0 when start >= end."""
    count = 0
    current = start
    while current < end:
        if is_working_day(current, calendar):
            count += 1
        current += ONE_DAY
    return count


def working_days_between(
    start: date, end: date, calendar: WorkingCalendar = DEFAULT_CALENDAR
) -> int:
    """Signed working-day distance from ``start`` to ``end`` (negative if end is earlier)."""
    if end >= start:
        return count_working_days(start, end, calendar)
    return -count_working_days(end, start, calendar)


def to_working_days(
    value: float,
    unit: DurationUnit = DurationUnit.DAY,
    calendar: WorkingCalendar = DEFAULT_CALENDAR,
) -> float:
    """Convert an amount of working time to (possibly fractional) working days."""
    if unit == DurationUnit.HOUR:
        return value / calendar.hours_per_day
    if unit == DurationUnit.WEEK:
        return value * calendar.working_days_per_week
    if unit == DurationUnit.MONTH:
        return value * calendar.days_per_month
    return value


def calculate_end_date(
    start: date,
    duration: float,
    unit: DurationUnit = DurationUnit.DAY,
    calendar: WorkingCalendar = DEFAULT_CALENDAR,
) -> date:
    """Calculate the (exclusive) end date of work starting on ``start``.

    A zero or negative duration is a milestone: the end is the start,
    normalised onto a working day.
    """
    if duration <= 0:
        return get_next_working_day(start, calendar)
    return add_working_days(start, to_working_days(duration, unit, calendar), calendar)


def calculate_duration(
    start: date, end: date, calendar: WorkingCalendar = DEFAULT_CALENDAR
) -> Duration:
    """Inverse of calculate_end_date(), expressed in working days."""
    return Duration(float(count_working_days(start, end, calendar)), DurationUnit.DAY)


def get_working_days_in_range(
    start: date, end: date, calendar: WorkingCalendar = DEFAULT_CALENDAR
) -> list[date]:
    """Get all working days between start and end, both inclusive."""
    days: list[date] = []
    current = start
    while current <= end:
        if is_working_day(current, calendar):
            days.append(current)
        current += ONE_DAY
    return days


def get_working_hours(day: date, calendar: WorkingCalendar = DEFAULT_CALENDAR) -> float | None:
    """Working hours available on ``day``, or None on a non-working day."""
    if not is_working_day(day, calendar):
        return None
    return calendar.hours_per_day


def calendar_days_to_working_days(
    calendar_days: float, calendar: WorkingCalendar = DEFAULT_CALENDAR
) -> int:
    """Approximate conversion using the weekly ratio (ignores exceptions)."""
    return math.ceil(calendar_days * calendar.working_days_per_week / DAYS_PER_WEEK)


def working_days_to_calendar_days(
    working_days: float, calendar: WorkingCalendar = DEFAULT_CALENDAR
) -> int:
    """Approximate conversion using the weekly ratio (ignores exceptions)."""
    return math.ceil(working_days * DAYS_PER_WEEK / calendar.working_days_per_week)
