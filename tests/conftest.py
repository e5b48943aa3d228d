"""Pytest configuration and fixtures for critpath tests."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any

import pytest

from critpath.logger import reset_logger
from critpath.models import Dependency, DependencyType, DurationUnit, Task
from critpath.scheduler import SchedulingOptions, WorkingCalendar

# Week of 2025-03-03 (Monday) used throughout the tests
MON = date(2025, 3, 3)
TUE = date(2025, 3, 4)
WED = date(2025, 3, 5)
THU = date(2025, 3, 6)
FRI = date(2025, 3, 7)
SAT = date(2025, 3, 8)
SUN = date(2025, 3, 9)
NEXT_MON = date(2025, 3, 10)


def day(offset: int) -> date:
    """Calendar day ``offset`` days after MON."""
    return MON + timedelta(days=offset)


@pytest.fixture(autouse=True)
def clean_logger() -> None:
    """Reset the critpath logger before each test for isolation."""
    reset_logger()


@pytest.fixture
def calendar() -> WorkingCalendar:
    """Monday-to-Friday calendar with 8 working hours per day."""
    return WorkingCalendar()


@pytest.fixture
def options(calendar: WorkingCalendar) -> SchedulingOptions:
    """Options starting the project on MON."""
    return SchedulingOptions(project_start_date=MON, calendar=calendar)


def make_task(task_id: str, duration: float | None = 1.0, **kwargs: Any) -> Task:
    """Create a Task with a duration in days."""
    return Task(id=task_id, name=kwargs.pop("name", task_id.upper()), duration=duration, **kwargs)


def link(
    from_task: str,
    to_task: str,
    dep_type: DependencyType = DependencyType.FINISH_TO_START,
    lag: float = 0.0,
    lag_unit: DurationUnit = DurationUnit.DAY,
) -> Dependency:
    """Create a Dependency with the default "from->to" id."""
    return Dependency(
        id=f"{from_task}->{to_task}",
        from_task=from_task,
        to_task=to_task,
        type=dep_type,
        lag=lag,
        lag_unit=lag_unit,
    )
