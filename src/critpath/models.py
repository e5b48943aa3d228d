"""Data models for critpath."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any


class DurationUnit(str, Enum):
    """Units a duration or lag can be expressed in."""

    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"

    @classmethod
    def parse(cls, value: DurationUnit | str | None) -> DurationUnit:
        """Parse a unit name or abbreviation ("h", "days", "wk", "mo", ...).

        Missing values default to days.
        """
        if value is None or value == "":
            return cls.DAY
        if isinstance(value, DurationUnit):
            return value
        key = str(value).strip().lower()
        if key not in _UNIT_ALIASES:
            raise ValueError(f"Unknown duration unit: {value!r}")
        return _UNIT_ALIASES[key]


_UNIT_ALIASES: dict[str, DurationUnit] = {
    "h": DurationUnit.HOUR,
    "hr": DurationUnit.HOUR,
    "hrs": DurationUnit.HOUR,
    "hour": DurationUnit.HOUR,
    "hours": DurationUnit.HOUR,
    "d": DurationUnit.DAY,
    "day": DurationUnit.DAY,
    "days": DurationUnit.DAY,
    "w": DurationUnit.WEEK,
    "wk": DurationUnit.WEEK,
    "week": DurationUnit.WEEK,
    "weeks": DurationUnit.WEEK,
    "m": DurationUnit.MONTH,
    "mo": DurationUnit.MONTH,
    "month": DurationUnit.MONTH,
    "months": DurationUnit.MONTH,
}

_DURATION_RE = re.compile(r"^([+-]?\s*[\d.]+)\s*([a-zA-Z]*)$")


def parse_duration(value: str | float | int) -> Duration:
    """Parse a duration such as "3d", "4h", "1.5w" or a bare number (days).

    Raises:
        ValueError: If the value is not a number followed by an optional unit
    """
    if isinstance(value, (int, float)):
        return Duration(float(value), DurationUnit.DAY)
    match = _DURATION_RE.match(str(value).strip())
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    number, unit = match.groups()
    return Duration(float(number.replace(" ", "")), DurationUnit.parse(unit or None))


@dataclass(frozen=True)
class Duration:
    """An amount of working time in a given unit."""

    value: float
    unit: DurationUnit = DurationUnit.DAY

    def __str__(self) -> str:
        value = int(self.value) if self.value == int(self.value) else self.value
        return f"{value}{self.unit.value[0]}"


class DependencyType(str, Enum):
    """Precedence relationship between two tasks."""

    START_TO_START = "StartToStart"
    START_TO_FINISH = "StartToFinish"
    FINISH_TO_START = "FinishToStart"
    FINISH_TO_FINISH = "FinishToFinish"

    @property
    def code(self) -> int:
        """Legacy integer code used by the persistence layer and Gantt widgets."""
        return _TYPE_TO_CODE[self]

    @property
    def abbreviation(self) -> str:
        """Two-letter form (FS, SS, FF, SF)."""
        return _TYPE_TO_ABBREVIATION[self]

    @property
    def constrains_finish(self) -> bool:
        """True when the successor's finish (not its start) is bounded."""
        return self in (DependencyType.FINISH_TO_FINISH, DependencyType.START_TO_FINISH)

    @property
    def from_predecessor_finish(self) -> bool:
        """True when the bound is measured from the predecessor's finish."""
        return self in (DependencyType.FINISH_TO_START, DependencyType.FINISH_TO_FINISH)

    @classmethod
    def from_code(cls, code: int) -> DependencyType:
        """Decode a legacy integer code (0=SS, 1=SF, 2=FS, 3=FF)."""
        for dep_type, dep_code in _TYPE_TO_CODE.items():
            if dep_code == code:
                return dep_type
        raise ValueError(f"Unknown dependency type code: {code!r}")

    @classmethod
    def parse(cls, value: DependencyType | str | int | None) -> DependencyType:
        """Parse an enum value, two-letter abbreviation, or name.

        Integers are rejected here; decode them with from_code() at the
        persistence boundary.
        """
        if value is None:
            return cls.FINISH_TO_START
        if isinstance(value, DependencyType):
            return value
        if isinstance(value, int):
            raise TypeError("Integer dependency types must be decoded with from_code()")
        key = str(value).strip().replace("_", "").replace("-", "").lower()
        for dep_type in cls:
            if key in (dep_type.value.lower(), dep_type.abbreviation.lower()):
                return dep_type
        raise ValueError(f"Unknown dependency type: {value!r}")


_TYPE_TO_CODE: dict[DependencyType, int] = {
    DependencyType.START_TO_START: 0,
    DependencyType.START_TO_FINISH: 1,
    DependencyType.FINISH_TO_START: 2,
    DependencyType.FINISH_TO_FINISH: 3,
}

_TYPE_TO_ABBREVIATION: dict[DependencyType, str] = {
    DependencyType.START_TO_START: "SS",
    DependencyType.START_TO_FINISH: "SF",
    DependencyType.FINISH_TO_START: "FS",
    DependencyType.FINISH_TO_FINISH: "FF",
}


class ConstraintType(str, Enum):
    """Scheduling constraint a task places on its own dates."""

    AS_SOON_AS_POSSIBLE = "assoonaspossible"
    AS_LATE_AS_POSSIBLE = "aslateaspossible"
    MUST_START_ON = "muststarton"
    MUST_FINISH_ON = "mustfinishon"
    START_NO_EARLIER_THAN = "startnoearlierthan"
    START_NO_LATER_THAN = "startnolaterthan"
    FINISH_NO_EARLIER_THAN = "finishnoearlierthan"
    FINISH_NO_LATER_THAN = "finishnolaterthan"

    @property
    def is_hard(self) -> bool:
        """Hard constraints pin a date exactly; violating them is an error."""
        return self in (ConstraintType.MUST_START_ON, ConstraintType.MUST_FINISH_ON)

    @property
    def needs_date(self) -> bool:
        return self not in (ConstraintType.AS_SOON_AS_POSSIBLE, ConstraintType.AS_LATE_AS_POSSIBLE)

    @classmethod
    def parse(cls, value: ConstraintType | str | None) -> ConstraintType:
        """Parse "muststarton", "MustStartOn", "must_start_on" and friends."""
        if value is None or value == "":
            return cls.AS_SOON_AS_POSSIBLE
        if isinstance(value, ConstraintType):
            return value
        key = str(value).strip().replace("_", "").replace("-", "").replace(" ", "").lower()
        for constraint in cls:
            if constraint.value == key:
                return constraint
        raise ValueError(f"Unknown constraint type: {value!r}")


class SchedulingMode(str, Enum):
    """Effort-driven scheduling mode (informational for the CPM core)."""

    NORMAL = "Normal"
    FIXED_DURATION = "FixedDuration"
    FIXED_EFFORT = "FixedEffort"
    FIXED_UNITS = "FixedUnits"


@dataclass(frozen=True)
class Task:
    """A task to be scheduled.

    Dates may arrive as ``date`` objects or as raw ISO strings from persistence;
    the scheduler normalises them on entry. ``end`` is exclusive: a one-day task
    starting Monday ends Tuesday.
    """

    id: str
    name: str = ""
    duration: float | None = None  # None = derive from start/end, else 1 day
    duration_unit: DurationUnit = DurationUnit.DAY
    start: date | str | None = None
    end: date | str | None = None
    percent_done: float = 0.0
    constraint_type: ConstraintType = ConstraintType.AS_SOON_AS_POSSIBLE
    constraint_date: date | str | None = None
    scheduling_mode: SchedulingMode = SchedulingMode.NORMAL
    manually_scheduled: bool = False
    inactive: bool = False
    parent_id: str | None = None  # WBS parent, not used for scheduling

    @property
    def display_name(self) -> str:
        return self.name or self.id


_DEPENDENCY_RE = re.compile(
    r"^(?:(?P<type>[A-Za-z]{2}):)?\s*(?P<task>\S+?)"
    r"(?:\s+(?P<sign>[+-])\s*(?P<lag>[\d.]+\s*[a-zA-Z]*))?\s*$"
)


@dataclass(frozen=True)
class Dependency:
    """A precedence edge from one task to another, with optional lag.

    The lag is a signed amount of working time added to the bound the
    predecessor imposes (negative lag = lead).
    """

    id: str
    from_task: str
    to_task: str
    type: DependencyType = DependencyType.FINISH_TO_START
    lag: float = 0.0
    lag_unit: DurationUnit = DurationUnit.DAY

    @classmethod
    def parse(cls, dep_str: str, to_task: str, dep_id: str | None = None) -> Dependency:
        """Parse a dependency spec written on the successor task.

        Supported formats:
        - "design" - finish-to-start on task "design", no lag
        - "design + 2d" - with two working days of lag
        - "design - 4h" - with a four hour lead
        - "SS:design + 1w" - start-to-start with one week lag

        The sign must be separated from the task id by whitespace so that
        ids such as "task-1" parse as a plain dependency.
        """
        match = _DEPENDENCY_RE.match(dep_str.strip())
        if not match:
            raise ValueError(f"Invalid dependency: {dep_str!r}")

        from_task = match.group("task").strip()
        dep_type = DependencyType.parse(match.group("type"))
        lag = 0.0
        lag_unit = DurationUnit.DAY
        if match.group("lag"):
            parsed = parse_duration(match.group("lag"))
            lag = -parsed.value if match.group("sign") == "-" else parsed.value
            lag_unit = parsed.unit

        return cls(
            id=dep_id or f"{from_task}->{to_task}",
            from_task=from_task,
            to_task=to_task,
            type=dep_type,
            lag=lag,
            lag_unit=lag_unit,
        )

    def __str__(self) -> str:
        prefix = "" if self.type == DependencyType.FINISH_TO_START else f"{self.type.abbreviation}:"
        if self.lag == 0:
            return f"{prefix}{self.from_task}"
        sign = "+" if self.lag > 0 else "-"
        return f"{prefix}{self.from_task} {sign} {Duration(abs(self.lag), self.lag_unit)}"


def coerce_float(value: Any, default: float) -> float:
    """Best-effort float conversion for loosely typed persistence values."""
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default
