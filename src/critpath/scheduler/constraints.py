"""Constraint and dependency validation.

Every constraint kind reduces to at most four bounds (start_min, start_max,
finish_min, finish_max). Dependency bounds always win over soft constraints
when computing an earliest start; disagreement with a hard constraint
(MustStartOn / MustFinishOn) is reported, never raised.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date

from critpath.dates import parse_date
from critpath.models import ConstraintType, Dependency, DependencyType, Task

from .calendar import (
    add_working_days,
    calculate_end_date,
    count_working_days,
    get_next_working_day,
    subtract_working_days,
    to_working_days,
    whole_working_days,
)
from .config import DEFAULT_CALENDAR, WorkingCalendar
from .core import (
    BoundKind,
    ConflictKind,
    ConstraintBounds,
    DateValidationResult,
    DependencyValidationResult,
    DependencyViolation,
    SchedulingConflict,
    Severity,
)

DEFAULT_DURATION_DAYS = 1

DEPENDENCY_TYPE_NAMES = {
    DependencyType.START_TO_START: "Start-to-Start",
    DependencyType.START_TO_FINISH: "Start-to-Finish",
    DependencyType.FINISH_TO_START: "Finish-to-Start",
    DependencyType.FINISH_TO_FINISH: "Finish-to-Finish",
}

CONSTRAINT_TYPE_NAMES = {
    ConstraintType.AS_SOON_AS_POSSIBLE: "As soon as possible",
    ConstraintType.AS_LATE_AS_POSSIBLE: "As late as possible",
    ConstraintType.MUST_START_ON: "Must start on",
    ConstraintType.MUST_FINISH_ON: "Must finish on",
    ConstraintType.START_NO_EARLIER_THAN: "Start no earlier than",
    ConstraintType.START_NO_LATER_THAN: "Start no later than",
    ConstraintType.FINISH_NO_EARLIER_THAN: "Finish no earlier than",
    ConstraintType.FINISH_NO_LATER_THAN: "Finish no later than",
}


@dataclass(frozen=True)
class EdgeBound:
    """Lower bound one incoming dependency places on its successor's start."""

    dependency: Dependency
    start_bound: date


def get_dependency_type_name(dep_type: DependencyType) -> str:
    return DEPENDENCY_TYPE_NAMES[dep_type]


def get_constraint_type_name(constraint_type: ConstraintType) -> str:
    return CONSTRAINT_TYPE_NAMES[constraint_type]


def get_task_duration_days(
    task: Task,
    calendar: WorkingCalendar = DEFAULT_CALENDAR,
    start: date | None = None,
    end: date | None = None,
) -> int:
    """Resolve a task's duration in whole working days.

    An explicit duration wins (negative values count as milestones); without
    one, the span between start and end is used, and failing that one day.
    """
    if task.duration is not None:
        days = to_working_days(task.duration, task.duration_unit, calendar)
        return max(0, whole_working_days(days))
    if start is not None and end is not None:
        return count_working_days(start, end, calendar)
    return DEFAULT_DURATION_DAYS


def get_constraint_bounds(
    task: Task,
    calendar: WorkingCalendar = DEFAULT_CALENDAR,
    project_end: date | None = None,
) -> ConstraintBounds:
    """Get the bounds a task's own constraint imposes.

    Constraint dates are moved onto the next working day. AsLateAsPossible
    only bounds the finish once the project end is known. A date-bound
    constraint without a (parseable) date imposes nothing.
    """
    constraint = task.constraint_type
    if constraint == ConstraintType.AS_LATE_AS_POSSIBLE:
        return ConstraintBounds(finish_max=project_end)

    raw_date = parse_date(task.constraint_date)
    if raw_date is None or not constraint.needs_date:
        return ConstraintBounds()
    day = get_next_working_day(raw_date, calendar)

    if constraint == ConstraintType.MUST_START_ON:
        return ConstraintBounds(start_min=day, start_max=day)
    if constraint == ConstraintType.MUST_FINISH_ON:
        return ConstraintBounds(finish_min=day, finish_max=day)
    if constraint == ConstraintType.START_NO_EARLIER_THAN:
        return ConstraintBounds(start_min=day)
    if constraint == ConstraintType.START_NO_LATER_THAN:
        return ConstraintBounds(start_max=day)
    if constraint == ConstraintType.FINISH_NO_EARLIER_THAN:
        return ConstraintBounds(finish_min=day)
    return ConstraintBounds(finish_max=day)


def find_bound_violations(
    start: date | None, finish: date | None, bounds: ConstraintBounds
) -> list[tuple[BoundKind, date]]:
    """List the bounds that the given dates break, as (kind, bound date)."""
    violations: list[tuple[BoundKind, date]] = []
    if start is not None:
        if bounds.start_min is not None and start < bounds.start_min:
            violations.append((BoundKind.START_MIN, bounds.start_min))
        if bounds.start_max is not None and start > bounds.start_max:
            violations.append((BoundKind.START_MAX, bounds.start_max))
    if finish is not None:
        if bounds.finish_min is not None and finish < bounds.finish_min:
            violations.append((BoundKind.FINISH_MIN, bounds.finish_min))
        if bounds.finish_max is not None and finish > bounds.finish_max:
            violations.append((BoundKind.FINISH_MAX, bounds.finish_max))
    return violations


def constraint_conflict(
    task: Task, kind: BoundKind, bound: date, start: date, finish: date
) -> SchedulingConflict:
    """Build the conflict reported when a task's dates break its own constraint."""
    name = get_constraint_type_name(task.constraint_type).lower()
    if kind in (BoundKind.START_MIN, BoundKind.START_MAX):
        actual = f"starts {start}"
    else:
        actual = f"finishes {finish}"
    return SchedulingConflict(
        kind=ConflictKind.CONSTRAINT_VIOLATED,
        task_ids=(task.id,),
        message=f"Task '{task.id}' {actual} but is constrained to {name} {bound}",
        severity=Severity.ERROR if task.constraint_type.is_hard else Severity.WARNING,
    )


def dependency_bound(
    dep: Dependency,
    pred_start: date,
    pred_finish: date,
    calendar: WorkingCalendar = DEFAULT_CALENDAR,
) -> date:
    """Raw bound on the successor's start (FS/SS) or finish (FF/SF), lag applied."""
    anchor = pred_finish if dep.type.from_predecessor_finish else pred_start
    return add_working_days(anchor, to_working_days(dep.lag, dep.lag_unit, calendar), calendar)


def dependency_start_bound(
    dep: Dependency,
    pred_start: date,
    pred_finish: date,
    duration_days: int,
    calendar: WorkingCalendar = DEFAULT_CALENDAR,
) -> date:
    """Bound on the successor's start; finish bounds are shifted back by its duration."""
    bound = dependency_bound(dep, pred_start, pred_finish, calendar)
    if dep.type.constrains_finish:
        return subtract_working_days(bound, duration_days, calendar)
    return bound


def get_earliest_start(
    duration_days: int,
    bounds: ConstraintBounds,
    edge_bounds: Sequence[EdgeBound],
    calendar: WorkingCalendar = DEFAULT_CALENDAR,
    project_start: date | None = None,
) -> date | None:
    """max(constraint lower bound, dependency lower bounds, project start).

    Shared by the forward pass and by get_earliest_start_date(). Returns None
    when nothing bounds the task at all.
    """
    candidates = [edge.start_bound for edge in edge_bounds]
    if bounds.start_min is not None:
        candidates.append(bounds.start_min)
    if bounds.finish_min is not None:
        candidates.append(subtract_working_days(bounds.finish_min, duration_days, calendar))
    if project_start is not None:
        candidates.append(project_start)
    if not candidates:
        return None
    return get_next_working_day(max(candidates), calendar)


def _scheduled_dates(
    task: Task,
    calendar: WorkingCalendar,
    start: date | None = None,
    end: date | None = None,
) -> tuple[date | None, date | None]:
    """Current (or proposed) dates of a task, with a missing end derived from duration."""
    start = start if start is not None else parse_date(task.start)
    end = end if end is not None else parse_date(task.end)
    if start is not None and end is None:
        duration = get_task_duration_days(task, calendar)
        end = calculate_end_date(start, duration, calendar=calendar)
    return start, end


def _edge_bounds_from_tasks(
    task: Task,
    predecessors: Iterable[Task],
    dependencies: Iterable[Dependency],
    duration_days: int,
    calendar: WorkingCalendar,
) -> list[EdgeBound]:
    """Edge bounds from predecessors' stored dates; unscheduled predecessors are skipped."""
    pred_dates: dict[str, tuple[date, date]] = {}
    for pred in predecessors:
        pred_start, pred_end = _scheduled_dates(pred, calendar)
        if pred_start is not None and pred_end is not None:
            pred_dates[pred.id] = (pred_start, pred_end)

    edge_bounds: list[EdgeBound] = []
    for dep in dependencies:
        if dep.to_task != task.id or dep.from_task not in pred_dates:
            continue
        pred_start, pred_end = pred_dates[dep.from_task]
        bound = dependency_start_bound(dep, pred_start, pred_end, duration_days, calendar)
        edge_bounds.append(EdgeBound(dependency=dep, start_bound=bound))
    return edge_bounds


def get_earliest_start_date(
    task: Task,
    predecessors: Iterable[Task],
    dependencies: Iterable[Dependency],
    calendar: WorkingCalendar = DEFAULT_CALENDAR,
    project_start: date | None = None,
) -> date:
    """Earliest date a task may start given its constraint and its predecessors' dates.

    Used for "can I move this task to date X" checks. Falls back to the
    task's own start (or today) when nothing bounds it.
    """
    start, end = _scheduled_dates(task, calendar)
    duration = get_task_duration_days(task, calendar, start, end)
    bounds = get_constraint_bounds(task, calendar)
    edge_bounds = _edge_bounds_from_tasks(task, predecessors, dependencies, duration, calendar)

    earliest = get_earliest_start(duration, bounds, edge_bounds, calendar, project_start)
    if earliest is not None:
        return earliest
    return get_next_working_day(start or date.today(), calendar)  # noqa: DTZ011


def validate_constraint(
    task: Task,
    calendar: WorkingCalendar = DEFAULT_CALENDAR,
    start: date | None = None,
    end: date | None = None,
) -> DateValidationResult:
    """Check a task's current (or proposed) dates against its own constraint.

    Unscheduled tasks are always valid.
    """
    start, end = _scheduled_dates(task, calendar, start, end)
    bounds = get_constraint_bounds(task, calendar)
    violations = find_bound_violations(start, end, bounds)
    if not violations:
        return DateValidationResult(
            valid=True,
            min_date=bounds.start_min,
            max_date=bounds.start_max,
        )

    kind, bound = violations[0]
    assert start is not None and end is not None
    conflicts = tuple(constraint_conflict(task, k, b, start, end) for k, b in violations)
    return DateValidationResult(
        valid=False,
        violated_bound=kind,
        reason=conflicts[0].message,
        suggested_date=bound,
        min_date=bound if kind in (BoundKind.START_MIN, BoundKind.FINISH_MIN) else None,
        max_date=bound if kind in (BoundKind.START_MAX, BoundKind.FINISH_MAX) else None,
        conflicts=conflicts,
    )


def validate_against_dependencies(
    task: Task,
    predecessors: Iterable[Task],
    dependencies: Iterable[Dependency],
    calendar: WorkingCalendar = DEFAULT_CALENDAR,
    start: date | None = None,
    end: date | None = None,
) -> DependencyValidationResult:
    """Re-derive each incoming dependency bound and compare it to the task's dates."""
    start, end = _scheduled_dates(task, calendar, start, end)
    if start is None or end is None:
        return DependencyValidationResult(valid=True)

    pred_dates: dict[str, tuple[date, date]] = {}
    for pred in predecessors:
        pred_start, pred_end = _scheduled_dates(pred, calendar)
        if pred_start is not None and pred_end is not None:
            pred_dates[pred.id] = (pred_start, pred_end)

    violations: list[DependencyViolation] = []
    for dep in dependencies:
        if dep.to_task != task.id or dep.from_task not in pred_dates:
            continue
        pred_start, pred_end = pred_dates[dep.from_task]
        expected = dependency_bound(dep, pred_start, pred_end, calendar)
        actual = end if dep.type.constrains_finish else start
        if actual < expected:
            violations.append(
                DependencyViolation(
                    dependency_id=dep.id,
                    from_task_id=dep.from_task,
                    to_task_id=dep.to_task,
                    type=dep.type,
                    expected_date=expected,
                    actual_date=actual,
                )
            )

    return DependencyValidationResult(valid=not violations, violations=tuple(violations))


def validate_task_dates(
    task: Task,
    predecessors: Iterable[Task],
    dependencies: Iterable[Dependency],
    calendar: WorkingCalendar = DEFAULT_CALENDAR,
    start: date | None = None,
    end: date | None = None,
) -> DateValidationResult:
    """Validate a task's dates against its constraint and its incoming dependencies.

    ``start``/``end`` override the task's stored dates to check a proposed move.
    """
    predecessors = list(predecessors)
    dependencies = list(dependencies)
    constraint_result = validate_constraint(task, calendar, start, end)
    dependency_result = validate_against_dependencies(
        task, predecessors, dependencies, calendar, start, end
    )
    conflicts = constraint_result.conflicts + dependency_result.conflicts

    if not constraint_result.valid:
        return DateValidationResult(
            valid=False,
            violated_bound=constraint_result.violated_bound,
            reason=constraint_result.reason,
            suggested_date=constraint_result.suggested_date,
            min_date=constraint_result.min_date,
            max_date=constraint_result.max_date,
            conflicts=conflicts,
        )

    if not dependency_result.valid:
        first = dependency_result.violations[0]
        earliest = get_earliest_start_date(task, predecessors, dependencies, calendar)
        kind = BoundKind.FINISH_MIN if first.type.constrains_finish else BoundKind.START_MIN
        return DateValidationResult(
            valid=False,
            violated_bound=kind,
            reason=conflicts[0].message,
            suggested_date=earliest,
            min_date=earliest,
            conflicts=conflicts,
        )

    return DateValidationResult(
        valid=True,
        min_date=constraint_result.min_date,
        max_date=constraint_result.max_date,
    )
