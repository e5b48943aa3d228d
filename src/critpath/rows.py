"""Conversion between persistence rows and critpath models.

Rows are the loosely typed snake_case dictionaries stored by the persistence
layer (and exchanged with Gantt widgets). This is the only place where the
legacy integer dependency type codes (0=SS, 1=SF, 2=FS, 3=FF) are decoded
or encoded.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .dates import format_date, parse_date
from .logger import get_logger
from .models import (
    ConstraintType,
    Dependency,
    DependencyType,
    DurationUnit,
    SchedulingMode,
    Task,
    coerce_float,
)
from .scheduler.config import CalendarException, WorkingCalendar
from .scheduler.core import ScheduledTaskInfo

logger = get_logger()


def task_from_row(row: Mapping[str, Any]) -> Task:
    """Build a Task from a persisted task row.

    Date columns are passed through untouched; the scheduler normalises them
    and reports malformed values as conflicts.

    Raises:
        ValueError: If the row has no id or an unknown duration unit,
            constraint type or scheduling mode
    """
    task_id = row.get("id")
    if task_id is None or str(task_id) == "":
        raise ValueError("Task row has no id")

    duration = row.get("duration")
    parent_id = row.get("parent_id")
    return Task(
        id=str(task_id),
        name=str(row.get("name") or ""),
        duration=None if duration in (None, "") else coerce_float(duration, 1.0),
        duration_unit=DurationUnit.parse(row.get("duration_unit")),
        start=row.get("start_date"),
        end=row.get("end_date"),
        percent_done=coerce_float(row.get("percent_done"), 0.0),
        constraint_type=ConstraintType.parse(row.get("constraint_type")),
        constraint_date=row.get("constraint_date"),
        scheduling_mode=SchedulingMode(row.get("scheduling_mode") or SchedulingMode.NORMAL.value),
        manually_scheduled=bool(row.get("manually_scheduled", False)),
        inactive=bool(row.get("inactive", False)),
        parent_id=str(parent_id) if parent_id is not None else None,
    )


def decode_dependency_type(value: Any) -> DependencyType:
    """Decode a persisted dependency type (legacy integer code or name)."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid dependency type: {value!r}")
    if isinstance(value, int):
        return DependencyType.from_code(value)
    if isinstance(value, str) and value.strip().isdigit():
        return DependencyType.from_code(int(value))
    return DependencyType.parse(value)


def dependency_from_row(row: Mapping[str, Any]) -> Dependency:
    """Build a Dependency from a persisted dependency row.

    Raises:
        ValueError: If the row is missing an endpoint or has an unknown type code
    """
    from_task = row.get("from_task")
    to_task = row.get("to_task")
    if from_task is None or to_task is None:
        raise ValueError(f"Dependency row {row.get('id')!r} needs from_task and to_task")

    dep_id = row.get("id")
    return Dependency(
        id=str(dep_id) if dep_id is not None else f"{from_task}->{to_task}",
        from_task=str(from_task),
        to_task=str(to_task),
        type=decode_dependency_type(row.get("type")),
        lag=coerce_float(row.get("lag"), 0.0),
        lag_unit=DurationUnit.parse(row.get("lag_unit")),
    )


def dependency_to_row(dependency: Dependency) -> dict[str, Any]:
    """Encode a Dependency for persistence, with the legacy integer type code."""
    return {
        "id": dependency.id,
        "from_task": dependency.from_task,
        "to_task": dependency.to_task,
        "type": dependency.type.code,
        "lag": dependency.lag,
        "lag_unit": dependency.lag_unit.value,
    }


def calendar_from_row(row: Mapping[str, Any]) -> WorkingCalendar:
    """Build a WorkingCalendar from a persisted calendar row and its intervals.

    Intervals without a start date, or with a recurrence rule, cannot be
    expressed as exception ranges and are skipped.

    Raises:
        ValueError: If an interval date is malformed
        pydantic.ValidationError: If the calendar settings are invalid
    """
    exceptions: list[CalendarException] = []
    for interval in row.get("intervals") or []:
        name = interval.get("name")
        if interval.get("recurrence_rule"):
            logger.changes(f"Skipping recurring calendar interval {name!r}")
            continue
        start = parse_date(interval.get("start_date"), strict=True)
        if start is None:
            logger.changes(f"Skipping calendar interval {name!r} without a start date")
            continue
        exceptions.append(
            CalendarException(
                start=start,
                end=parse_date(interval.get("end_date"), strict=True),
                is_working=bool(interval.get("is_working", False)),
                name=name,
            )
        )

    settings: dict[str, Any] = {
        key: row[key]
        for key in ("working_days", "hours_per_day", "days_per_month")
        if row.get(key) is not None
    }
    return WorkingCalendar(
        id=str(row.get("id") or "default"),
        exceptions=tuple(exceptions),
        **settings,
    )


def scheduled_task_to_row(info: ScheduledTaskInfo) -> dict[str, Any]:
    """Encode computed dates for writing back to persistence."""
    return {
        "id": info.task_id,
        "start_date": format_date(info.scheduled_start),
        "end_date": format_date(info.scheduled_finish),
        "early_start_date": format_date(info.earliest_start),
        "early_end_date": format_date(info.earliest_finish),
        "late_start_date": format_date(info.latest_start),
        "late_end_date": format_date(info.latest_finish),
        "total_slack": info.slack,
        "free_slack": info.free_slack,
        "critical": info.is_critical,
    }
