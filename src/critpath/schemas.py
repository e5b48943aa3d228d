"""Pydantic schemas for project file validation."""

from __future__ import annotations

import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import ConstraintType, SchedulingMode, parse_duration
from .scheduler.config import WorkingCalendar


class ProjectSchema(BaseModel):
    """Schema for the ``project`` section."""

    name: str | None = None
    start_date: datetime.date | None = None
    end_date: datetime.date | None = None
    schedule_from_start: bool = True


class TaskSchema(BaseModel):
    """Schema for one entry of the ``tasks`` section (keyed by task id)."""

    name: str = ""
    duration: str | float | None = None  # "3d", "4h", "1.5w" or a number of days
    start: datetime.date | None = None
    end: datetime.date | None = None
    percent_done: float = 0.0
    constraint: str | None = None
    constraint_date: datetime.date | None = None
    scheduling_mode: str | None = None
    manually_scheduled: bool = False
    inactive: bool = False
    parent: str | None = None
    requires: list[str] = Field(default_factory=list)

    @field_validator("requires", mode="before")
    @classmethod
    def ensure_list(cls, v: Any) -> list[str]:
        """Ensure value is a list."""
        if v is None:
            return []
        if isinstance(v, list):
            return [str(item) for item in v]  # type: ignore[misc]
        return [str(v)]

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, v: str | float | None) -> str | float | None:
        if v is not None:
            parse_duration(v)
        return v

    @field_validator("constraint")
    @classmethod
    def validate_constraint(cls, v: str | None) -> str | None:
        if v is not None:
            ConstraintType.parse(v)
        return v

    @field_validator("scheduling_mode")
    @classmethod
    def validate_scheduling_mode(cls, v: str | None) -> str | None:
        if v is not None:
            SchedulingMode(v)
        return v


class DependencySchema(BaseModel):
    """Schema for one entry of the ``dependencies`` section."""

    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    from_task: str = Field(alias="from")
    to_task: str = Field(alias="to")
    type: str | int | None = None
    lag: str | float | None = None

    @field_validator("lag")
    @classmethod
    def validate_lag(cls, v: str | float | None) -> str | float | None:
        if v is not None:
            parse_duration(v)
        return v


class ProjectFileSchema(BaseModel):
    """Schema for the entire project file."""

    project: ProjectSchema = Field(default_factory=ProjectSchema)
    calendar: WorkingCalendar = Field(default_factory=WorkingCalendar)
    tasks: dict[str, TaskSchema] = Field(default_factory=dict)
    dependencies: list[DependencySchema] = Field(default_factory=list)
