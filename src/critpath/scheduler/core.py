"""Core dataclasses for the scheduling system."""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from enum import Enum

from critpath.models import Dependency, DependencyType


class ConflictKind(str, Enum):
    """Category of a recoverable scheduling problem."""

    CYCLIC_DEPENDENCY = "cyclic_dependency"
    INVALID_REFERENCE = "invalid_reference"
    CONSTRAINT_VIOLATED = "constraint_violated"
    DEPENDENCY_VIOLATED = "dependency_violated"
    INVALID_DATE = "invalid_date"
    DUPLICATE_TASK = "duplicate_task"


class Severity(str, Enum):
    WARNING = "warning"
    ERROR = "error"


class BoundKind(str, Enum):
    """Which side of a task a bound applies to."""

    START_MIN = "start_min"
    START_MAX = "start_max"
    FINISH_MIN = "finish_min"
    FINISH_MAX = "finish_max"


@dataclass(frozen=True)
class SchedulingConflict:
    """A data problem found while scheduling. Never raised, always reported."""

    kind: ConflictKind
    task_ids: tuple[str, ...]
    message: str
    severity: Severity = Severity.WARNING
    dependency_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class ScheduledTaskInfo:
    """Computed dates for one task.

    Finish dates are exclusive. ``slack`` is the signed number of working days
    between earliest and latest start; it is negative only when constraints
    or manually scheduled tasks make the schedule infeasible.
    """

    task_id: str
    earliest_start: date
    earliest_finish: date
    latest_start: date
    latest_finish: date
    slack: int
    is_critical: bool
    free_slack: int
    scheduled_start: date  # Where the task should be shown (manual/ALAP aware)
    scheduled_finish: date
    duration_days: int


@dataclass(frozen=True)
class SchedulingResult:
    """Immutable snapshot returned by calculate_schedule()."""

    scheduled_tasks: Mapping[str, ScheduledTaskInfo]
    conflicts: tuple[SchedulingConflict, ...]
    critical_path: tuple[str, ...]  # Critical task ids ordered by earliest start
    critical_edges: tuple[Dependency, ...]  # Tight edges between critical tasks
    project_start: date
    project_end: date
    topological_order: tuple[str, ...]

    @property
    def has_errors(self) -> bool:
        return any(c.severity == Severity.ERROR for c in self.conflicts)

    def conflicts_for(self, task_id: str) -> list[SchedulingConflict]:
        """Get the conflicts that involve a task."""
        return [c for c in self.conflicts if task_id in c.task_ids]


@dataclass(frozen=True)
class ConstraintBounds:
    """Date window a task's own constraint allows. Finish bounds are exclusive ends."""

    start_min: date | None = None
    start_max: date | None = None
    finish_min: date | None = None
    finish_max: date | None = None

    @property
    def is_empty(self) -> bool:
        return (
            self.start_min is None
            and self.start_max is None
            and self.finish_min is None
            and self.finish_max is None
        )


@dataclass(frozen=True)
class DateValidationResult:
    """Outcome of checking a task's dates against its constraint and dependencies."""

    valid: bool
    violated_bound: BoundKind | None = None
    reason: str | None = None
    suggested_date: date | None = None
    min_date: date | None = None
    max_date: date | None = None
    conflicts: tuple[SchedulingConflict, ...] = ()


@dataclass(frozen=True)
class DependencyViolation:
    """A dependency whose bound the successor's current dates do not meet."""

    dependency_id: str
    from_task_id: str
    to_task_id: str
    type: DependencyType
    expected_date: date
    actual_date: date
    violation: str = "too_early"

    def to_conflict(self) -> SchedulingConflict:
        side = "finish" if self.type.constrains_finish else "start"
        return SchedulingConflict(
            kind=ConflictKind.DEPENDENCY_VIOLATED,
            task_ids=(self.from_task_id, self.to_task_id),
            dependency_ids=(self.dependency_id,),
            message=(
                f"Task '{self.to_task_id}' must {side} on or after {self.expected_date} "
                f"({self.type.abbreviation} from '{self.from_task_id}'), "
                f"but its {side} is {self.actual_date}"
            ),
            severity=Severity.WARNING,
        )


@dataclass(frozen=True)
class DependencyValidationResult:
    valid: bool
    violations: tuple[DependencyViolation, ...] = ()

    @property
    def conflicts(self) -> tuple[SchedulingConflict, ...]:
        return tuple(v.to_conflict() for v in self.violations)
