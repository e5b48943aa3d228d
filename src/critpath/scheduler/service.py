"""Scheduling orchestrator: calculate_schedule() and queries over its result."""

from collections.abc import Iterable
from dataclasses import replace
from datetime import date
from types import MappingProxyType

from critpath.dates import parse_date
from critpath.logger import get_logger
from critpath.models import ConstraintType, Dependency, Task

from .calendar import (
    calculate_end_date,
    count_working_days,
    get_next_working_day,
    subtract_working_days,
)
from .config import DEFAULT_CALENDAR, SchedulingOptions, WorkingCalendar
from .constraints import get_constraint_bounds, get_task_duration_days
from .core import (
    ConflictKind,
    ScheduledTaskInfo,
    SchedulingConflict,
    SchedulingResult,
    Severity,
)
from .graph import DependencyGraph, build_dependency_graph
from .passes import (
    PassNode,
    backward_pass,
    find_constraint_violations,
    forward_pass,
    free_slack,
    tight_edges,
    total_slack,
)

logger = get_logger()

_DATE_FIELDS = {
    "start": "start date",
    "end": "end date",
    "constraint_date": "constraint date",
}


def calculate_schedule(  # noqa: PLR0915 - full scheduling pipeline
    tasks: Iterable[Task],
    dependencies: Iterable[Dependency],
    calendar: WorkingCalendar | None = None,
    options: SchedulingOptions | None = None,
) -> SchedulingResult:
    """Run the critical path method over a snapshot of tasks and dependencies.

    Data problems (cycles, dangling references, repeated task ids, malformed
    dates, violated constraints) are reported in ``conflicts`` and never
    raised; every active task receives dates. Inputs are not modified.

    Args:
        tasks: Tasks to schedule; inactive tasks are ignored
        dependencies: Precedence edges between tasks
        calendar: Working calendar (overrides ``options.calendar``)
        options: Project start/end and direction. Without options the project
            starts at the earliest task start date, or today.

    Returns:
        Immutable SchedulingResult

    Raises:
        CalendarError: If the calendar cannot produce a working day
    """
    if calendar is None:
        calendar = options.calendar if options is not None else DEFAULT_CALENDAR

    conflicts: list[SchedulingConflict] = []
    task_list = [
        task if task.inactive else _normalise_task(task, conflicts) for task in tasks
    ]
    dependency_list = list(dependencies)

    end_anchor = None
    if options is not None and options.project_end_date is not None:
        end_anchor = get_next_working_day(options.project_end_date, calendar)

    graph = build_dependency_graph(task_list, dependency_list)
    conflicts.extend(graph.conflicts)
    order = graph.topological_order()

    task_by_id: dict[str, Task] = {}
    for task in task_list:
        if not task.inactive:
            task_by_id.setdefault(task.id, task)
    nodes = {
        task_id: _make_node(task_by_id[task_id], calendar, end_anchor, conflicts)
        for task_id in order
    }
    logger.checks(f"Scheduling {len(nodes)} tasks with calendar '{calendar.id}'")

    if options is None or options.schedule_from_start:
        project_start_date = _project_start(list(task_by_id.values()), options)
        start_anchor = get_next_working_day(project_start_date, calendar)
        conflicts.extend(forward_pass(graph, order, nodes, start_anchor, calendar))
        finishes = [node.early_dates[1] for node in nodes.values()]
        if end_anchor is not None:
            finishes.append(end_anchor)
        project_end = max(finishes, default=start_anchor)
        for node in nodes.values():
            if node.task.constraint_type == ConstraintType.AS_LATE_AS_POSSIBLE:
                node.bounds = get_constraint_bounds(node.task, calendar, project_end)
        backward_pass(graph, order, nodes, project_end, calendar)
    else:
        assert end_anchor is not None
        project_end = end_anchor
        backward_pass(graph, order, nodes, project_end, calendar)
        start_anchor = min((node.late_dates[0] for node in nodes.values()), default=project_end)
        conflicts.extend(forward_pass(graph, order, nodes, start_anchor, calendar))

    conflicts.extend(find_constraint_violations(nodes))

    scheduled = {
        task_id: _task_info(nodes[task_id], graph, nodes, project_end, calendar)
        for task_id in order
    }

    position = {task_id: index for index, task_id in enumerate(order)}
    critical_path = sorted(
        (task_id for task_id, info in scheduled.items() if info.is_critical),
        key=lambda tid: (
            scheduled[tid].earliest_start,
            scheduled[tid].earliest_finish,
            position[tid],
        ),
    )
    critical_edges = [
        dep
        for task_id in order
        if scheduled[task_id].is_critical
        for dep in tight_edges(nodes[task_id])
        if scheduled[dep.from_task].is_critical
    ]

    project_start = min([start_anchor, *(info.earliest_start for info in scheduled.values())])
    logger.checks(
        f"Project {project_start} -> {project_end}: {len(critical_path)} critical task(s), "
        f"{len(conflicts)} conflict(s)"
    )

    return SchedulingResult(
        scheduled_tasks=MappingProxyType(scheduled),
        conflicts=tuple(conflicts),
        critical_path=tuple(critical_path),
        critical_edges=tuple(critical_edges),
        project_start=project_start,
        project_end=project_end,
        topological_order=tuple(order),
    )


def _normalise_task(task: Task, conflicts: list[SchedulingConflict]) -> Task:
    """Turn persisted date values into dates; malformed ones become unset."""
    values: dict[str, date | None] = {}
    for field_name, label in _DATE_FIELDS.items():
        raw = getattr(task, field_name)
        try:
            values[field_name] = parse_date(raw, strict=True)
        except ValueError:
            values[field_name] = None
            message = f"Task '{task.id}' has an invalid {label} {raw!r}; treated as unset"
            conflicts.append(_date_conflict(task, message))

    if task.constraint_type.needs_date and task.constraint_date in (None, ""):
        conflicts.append(
            _date_conflict(
                task,
                f"Task '{task.id}' has constraint {task.constraint_type.value} "
                "without a date; constraint ignored",
            )
        )

    return replace(task, **values)


def _date_conflict(task: Task, message: str) -> SchedulingConflict:
    logger.changes(message)
    return SchedulingConflict(
        kind=ConflictKind.INVALID_DATE,
        task_ids=(task.id,),
        message=message,
        severity=Severity.WARNING,
    )


def _project_start(tasks: list[Task], options: SchedulingOptions | None) -> date:
    if options is not None:
        return options.project_start_date
    starts = [
        task.start for task in tasks if not task.inactive and isinstance(task.start, date)
    ]
    return min(starts, default=date.today())  # noqa: DTZ011


def _make_node(
    task: Task,
    calendar: WorkingCalendar,
    project_end: date | None,
    conflicts: list[SchedulingConflict],
) -> PassNode:
    start = parse_date(task.start)
    end = parse_date(task.end)
    node = PassNode(
        task=task,
        duration=get_task_duration_days(task, calendar, start, end),
        bounds=get_constraint_bounds(task, calendar, project_end),
    )
    if task.manually_scheduled:
        _fix_manual_dates(node, start, end, calendar, conflicts)
    return node


def _fix_manual_dates(
    node: PassNode,
    start: date | None,
    end: date | None,
    calendar: WorkingCalendar,
    conflicts: list[SchedulingConflict],
) -> None:
    """Pin a manually scheduled task to its own dates.

    A missing end is derived from the duration and a missing start from the
    end. Without either date the task is scheduled like any other.
    """
    task = node.task
    if start is None and end is None:
        logger.changes(f"Task '{task.id}' is manually scheduled but has no dates; scheduling it")
        return

    if start is not None and end is not None and end < start:
        conflicts.append(
            _date_conflict(
                task,
                f"Task '{task.id}' ends ({end}) before it starts ({start}); "
                "end derived from duration instead",
            )
        )
        end = None

    if start is None:
        assert end is not None
        start = subtract_working_days(end, node.duration, calendar)
    elif end is None:
        end = calculate_end_date(start, node.duration, calendar=calendar)
    else:
        node.duration = count_working_days(start, end, calendar)

    node.fixed = True
    node.es = start
    node.ef = end


def _task_info(
    node: PassNode,
    graph: DependencyGraph,
    nodes: dict[str, PassNode],
    project_end: date,
    calendar: WorkingCalendar,
) -> ScheduledTaskInfo:
    es, ef = node.early_dates
    ls, lf = node.late_dates
    slack = total_slack(node, calendar)

    scheduled_start, scheduled_finish = es, ef
    if not node.fixed and node.task.constraint_type == ConstraintType.AS_LATE_AS_POSSIBLE:
        scheduled_start, scheduled_finish = ls, lf

    return ScheduledTaskInfo(
        task_id=node.task.id,
        earliest_start=es,
        earliest_finish=ef,
        latest_start=ls,
        latest_finish=lf,
        slack=slack,
        is_critical=slack <= 0,
        free_slack=free_slack(node, graph, nodes, project_end, calendar),
        scheduled_start=scheduled_start,
        scheduled_finish=scheduled_finish,
        duration_days=node.duration,
    )


# Queries over a SchedulingResult


def get_critical_path(result: SchedulingResult) -> list[str]:
    """Get the critical task ids ordered by earliest start."""
    return list(result.critical_path)


def get_critical_chains(result: SchedulingResult) -> list[list[str]]:
    """Split the critical tasks into chains linked by tight dependency edges.

    Each chain runs from a critical task with no tight incoming edge to one
    with no tight outgoing edge. Critical tasks linked to nothing form a
    chain of their own.
    """
    successors: dict[str, list[str]] = {task_id: [] for task_id in result.critical_path}
    has_predecessor: set[str] = set()
    for dep in result.critical_edges:
        if dep.to_task not in successors[dep.from_task]:
            successors[dep.from_task].append(dep.to_task)
        has_predecessor.add(dep.to_task)

    chains: list[list[str]] = []
    for root in result.critical_path:
        if root in has_predecessor:
            continue
        stack = [[root]]
        while stack:
            chain = stack.pop()
            following = successors[chain[-1]]
            if not following:
                chains.append(chain)
                continue
            stack.extend([*chain, succ] for succ in reversed(following))
    return chains


def is_task_critical(task_id: str, result: SchedulingResult) -> bool:
    info = result.scheduled_tasks.get(task_id)
    return info is not None and info.is_critical


def get_task_slack(task_id: str, result: SchedulingResult) -> int | None:
    """Get a task's total slack in working days, or None if it was not scheduled."""
    info = result.scheduled_tasks.get(task_id)
    if info is None:
        return None
    return info.slack
