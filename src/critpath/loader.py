"""Project file loading."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ParseError, ValidationError
from .models import (
    ConstraintType,
    Dependency,
    DurationUnit,
    SchedulingMode,
    Task,
    parse_duration,
)
from .rows import decode_dependency_type
from .scheduler.config import SchedulingOptions, WorkingCalendar
from .scheduler.core import SchedulingResult
from .scheduler.service import calculate_schedule
from .schemas import DependencySchema, ProjectFileSchema, TaskSchema


@dataclass
class Project:
    """A loaded project: tasks, dependencies, calendar and scheduling options."""

    name: str
    tasks: list[Task]
    dependencies: list[Dependency]
    calendar: WorkingCalendar
    options: SchedulingOptions

    def get_task(self, task_id: str) -> Task | None:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def schedule(self) -> SchedulingResult:
        """Run calculate_schedule() with this project's calendar and options."""
        return calculate_schedule(self.tasks, self.dependencies, self.calendar, self.options)


def load_project(path: Path | str) -> Project:
    """Load a project file.

    Args:
        path: Path to the project YAML file

    Returns:
        Project ready to be scheduled

    Raises:
        ParseError: If the file is missing or is not a YAML mapping
        ValidationError: If the content does not match the project schema
    """
    path = Path(path)
    if not path.exists():
        raise ParseError(f"File not found: {path}")

    try:
        with path.open(encoding="utf-8") as f:
            data: Any = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ParseError(f"Failed to parse YAML: {e}") from e

    if not isinstance(data, dict):
        raise ParseError("YAML must contain a dictionary at the root level")

    try:
        schema = ProjectFileSchema(**data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid project file: {e}") from e

    return _build_project(schema, default_name=path.stem)


def _build_project(schema: ProjectFileSchema, default_name: str) -> Project:
    tasks: list[Task] = []
    dependencies: list[Dependency] = []

    for task_id, task_data in schema.tasks.items():
        tasks.append(_build_task(task_id, task_data))
        for requirement in task_data.requires:
            try:
                dependencies.append(Dependency.parse(requirement, task_id))
            except ValueError as e:
                raise ValidationError(f"Task '{task_id}': {e}") from e

    for index, dep_data in enumerate(schema.dependencies):
        try:
            dependencies.append(_build_dependency(dep_data))
        except ValueError as e:
            raise ValidationError(f"Dependency #{index + 1}: {e}") from e

    project = schema.project
    start_date = project.start_date or _earliest_task_start(tasks)
    try:
        options = SchedulingOptions(
            project_start_date=start_date,
            project_end_date=project.end_date,
            calendar=schema.calendar,
            schedule_from_start=project.schedule_from_start,
        )
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid project settings: {e}") from e

    return Project(
        name=project.name or default_name,
        tasks=tasks,
        dependencies=dependencies,
        calendar=schema.calendar,
        options=options,
    )


def _build_task(task_id: str, data: TaskSchema) -> Task:
    duration = parse_duration(data.duration) if data.duration is not None else None
    return Task(
        id=task_id,
        name=data.name,
        duration=duration.value if duration is not None else None,
        duration_unit=duration.unit if duration is not None else DurationUnit.DAY,
        start=data.start,
        end=data.end,
        percent_done=data.percent_done,
        constraint_type=ConstraintType.parse(data.constraint),
        constraint_date=data.constraint_date,
        scheduling_mode=SchedulingMode(data.scheduling_mode or SchedulingMode.NORMAL.value),
        manually_scheduled=data.manually_scheduled,
        inactive=data.inactive,
        parent_id=data.parent,
    )


def _build_dependency(data: DependencySchema) -> Dependency:
    lag = parse_duration(data.lag) if data.lag is not None else None
    return Dependency(
        id=data.id or f"{data.from_task}->{data.to_task}",
        from_task=data.from_task,
        to_task=data.to_task,
        type=decode_dependency_type(data.type),
        lag=lag.value if lag is not None else 0.0,
        lag_unit=lag.unit if lag is not None else DurationUnit.DAY,
    )


def _earliest_task_start(tasks: list[Task]) -> date:
    starts = [task.start for task in tasks if isinstance(task.start, date)]
    return min(starts, default=date.today())  # noqa: DTZ011
