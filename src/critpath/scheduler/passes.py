"""Forward and backward CPM passes over an acyclic dependency graph."""

from dataclasses import dataclass, field
from datetime import date

from critpath.logger import checks_enabled, debug_enabled, get_logger
from critpath.models import Dependency, Task

from .calendar import (
    add_working_days,
    calculate_end_date,
    subtract_working_days,
    to_working_days,
    working_days_between,
)
from .config import DEFAULT_CALENDAR, WorkingCalendar
from .constraints import (
    EdgeBound,
    constraint_conflict,
    dependency_bound,
    dependency_start_bound,
    find_bound_violations,
    get_earliest_start,
)
from .core import ConstraintBounds, DependencyViolation, SchedulingConflict
from .graph import DependencyGraph

logger = get_logger()


def _default_edge_bounds() -> list[EdgeBound]:
    return []


@dataclass
class PassNode:
    """Working record for one task while the passes run.

    ``fixed`` tasks (manually scheduled with usable dates) enter the forward
    pass with ``es``/``ef`` already set and are never moved.
    """

    task: Task
    duration: int
    bounds: ConstraintBounds
    fixed: bool = False
    es: date | None = None
    ef: date | None = None
    ls: date | None = None
    lf: date | None = None
    edge_bounds: list[EdgeBound] = field(default_factory=_default_edge_bounds)

    @property
    def early_dates(self) -> tuple[date, date]:
        assert self.es is not None and self.ef is not None, f"{self.task.id} not forward-scheduled"
        return self.es, self.ef

    @property
    def late_dates(self) -> tuple[date, date]:
        assert self.ls is not None and self.lf is not None, f"{self.task.id} not backward-scheduled"
        return self.ls, self.lf


def forward_pass(
    graph: DependencyGraph,
    order: list[str],
    nodes: dict[str, PassNode],
    project_start: date,
    calendar: WorkingCalendar = DEFAULT_CALENDAR,
) -> list[SchedulingConflict]:
    """Compute earliest dates in topological order.

    Returns dependency_violated conflicts for fixed tasks whose own dates do
    not satisfy an incoming bound.
    """
    conflicts: list[SchedulingConflict] = []

    for task_id in order:
        node = nodes[task_id]
        node.edge_bounds = []
        for dep in graph.incoming[task_id]:
            pred_start, pred_finish = nodes[dep.from_task].early_dates
            bound = dependency_start_bound(dep, pred_start, pred_finish, node.duration, calendar)
            if debug_enabled():
                logger.debug(
                    f"  {dep.type.abbreviation} '{dep.from_task}' -> '{task_id}': start >= {bound}"
                )
            node.edge_bounds.append(EdgeBound(dependency=dep, start_bound=bound))

        if node.fixed:
            conflicts.extend(_check_fixed_task(node, nodes, calendar))
        else:
            es = get_earliest_start(
                node.duration, node.bounds, node.edge_bounds, calendar, project_start
            )
            assert es is not None
            node.es = es
            node.ef = calculate_end_date(es, node.duration, calendar=calendar)

        if checks_enabled():
            fixed = " (fixed)" if node.fixed else ""
            logger.checks(f"Forward: {task_id} ES={node.es} EF={node.ef}{fixed}")

    return conflicts


def _check_fixed_task(
    node: PassNode, nodes: dict[str, PassNode], calendar: WorkingCalendar
) -> list[SchedulingConflict]:
    """Flag incoming bounds a manually scheduled task does not meet."""
    es, ef = node.early_dates
    conflicts: list[SchedulingConflict] = []
    for edge in node.edge_bounds:
        dep = edge.dependency
        pred_start, pred_finish = nodes[dep.from_task].early_dates
        expected = dependency_bound(dep, pred_start, pred_finish, calendar)
        actual = ef if dep.type.constrains_finish else es
        if actual < expected:
            violation = DependencyViolation(
                dependency_id=dep.id,
                from_task_id=dep.from_task,
                to_task_id=dep.to_task,
                type=dep.type,
                expected_date=expected,
                actual_date=actual,
            )
            conflict = violation.to_conflict()
            logger.changes(conflict.message)
            conflicts.append(conflict)
    return conflicts


def latest_finish_bound(
    dep: Dependency,
    succ_start: date,
    succ_finish: date,
    duration_days: int,
    calendar: WorkingCalendar = DEFAULT_CALENDAR,
) -> date:
    """Upper bound an outgoing dependency places on the predecessor's finish.

    FS and FF bound the predecessor's finish directly; SS and SF bound its
    start, which is shifted forward by its own duration.
    """
    anchor = succ_finish if dep.type.constrains_finish else succ_start
    lag_days = to_working_days(dep.lag, dep.lag_unit, calendar)
    bound = subtract_working_days(anchor, lag_days, calendar)
    if dep.type.from_predecessor_finish:
        return bound
    return add_working_days(bound, duration_days, calendar)


def backward_pass(
    graph: DependencyGraph,
    order: list[str],
    nodes: dict[str, PassNode],
    project_end: date,
    calendar: WorkingCalendar = DEFAULT_CALENDAR,
) -> None:
    """Compute latest dates in reverse topological order."""
    for task_id in reversed(order):
        node = nodes[task_id]
        candidates = [project_end]
        if node.bounds.finish_max is not None:
            candidates.append(node.bounds.finish_max)
        if node.bounds.start_max is not None:
            candidates.append(add_working_days(node.bounds.start_max, node.duration, calendar))

        for dep in graph.outgoing[task_id]:
            succ_start, succ_finish = nodes[dep.to_task].late_dates
            bound = latest_finish_bound(dep, succ_start, succ_finish, node.duration, calendar)
            if debug_enabled():
                logger.debug(
                    f"  {dep.type.abbreviation} '{task_id}' -> '{dep.to_task}': finish <= {bound}"
                )
            candidates.append(bound)

        node.lf = min(candidates)
        node.ls = subtract_working_days(node.lf, node.duration, calendar)
        logger.checks(f"Backward: {task_id} LS={node.ls} LF={node.lf}")


def find_constraint_violations(nodes: dict[str, PassNode]) -> list[SchedulingConflict]:
    """Compare each task's early dates with its own constraint."""
    conflicts: list[SchedulingConflict] = []
    for node in nodes.values():
        if node.bounds.is_empty:
            continue
        es, ef = node.early_dates
        for kind, bound in find_bound_violations(es, ef, node.bounds):
            conflict = constraint_conflict(node.task, kind, bound, es, ef)
            logger.changes(conflict.message)
            conflicts.append(conflict)
    return conflicts


def total_slack(node: PassNode, calendar: WorkingCalendar = DEFAULT_CALENDAR) -> int:
    """Signed working days between earliest and latest start."""
    return working_days_between(node.early_dates[0], node.late_dates[0], calendar)


def free_slack(
    node: PassNode,
    graph: DependencyGraph,
    nodes: dict[str, PassNode],
    project_end: date,
    calendar: WorkingCalendar = DEFAULT_CALENDAR,
) -> int:
    """Working days a task can slip without delaying any successor's earliest start.

    Tasks without successors measure against the project end.
    """
    outgoing = graph.outgoing[node.task.id]
    if not outgoing:
        return working_days_between(node.early_dates[1], project_end, calendar)

    gaps: list[int] = []
    for dep in outgoing:
        succ = nodes[dep.to_task]
        for edge in succ.edge_bounds:
            if edge.dependency is dep:
                gaps.append(working_days_between(edge.start_bound, succ.early_dates[0], calendar))
    return min(gaps)


def tight_edges(node: PassNode) -> list[Dependency]:
    """Incoming edges whose bound produced the task's earliest start."""
    es = node.early_dates[0]
    return [edge.dependency for edge in node.edge_bounds if edge.start_bound == es]

