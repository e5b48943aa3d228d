"""Dependency graph construction, cycle detection and graph queries."""

from collections import deque
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum

from critpath.logger import changes_enabled, get_logger
from critpath.models import Dependency, Task

from .core import ConflictKind, SchedulingConflict, Severity

logger = get_logger()


class _Mark(Enum):
    UNVISITED = 0
    IN_PROGRESS = 1
    DONE = 2


def _default_edge_map() -> dict[str, list[Dependency]]:
    return {}


def _default_dependency_list() -> list[Dependency]:
    return []


def _default_conflict_list() -> list[SchedulingConflict]:
    return []


@dataclass
class DependencyGraph:
    """Acyclic adjacency structure used by the forward and backward passes.

    ``excluded`` holds the cycle edges left out of the passes; edges with
    dangling references never make it this far and are only reported.
    """

    nodes: list[str]
    incoming: dict[str, list[Dependency]] = field(default_factory=_default_edge_map)
    outgoing: dict[str, list[Dependency]] = field(default_factory=_default_edge_map)
    excluded: list[Dependency] = field(default_factory=_default_dependency_list)
    conflicts: list[SchedulingConflict] = field(default_factory=_default_conflict_list)

    def topological_order(self) -> list[str]:
        """Compute a deterministic topological ordering (Kahn's algorithm).

        Ties are broken by input order.

        Raises:
            ValueError: If the graph still contains a cycle
        """
        in_degree = {node: len(self.incoming.get(node, [])) for node in self.nodes}
        queue = deque(node for node in self.nodes if in_degree[node] == 0)
        order: list[str] = []

        while queue:
            node = queue.popleft()
            order.append(node)
            for dep in self.outgoing.get(node, []):
                in_degree[dep.to_task] -= 1
                if in_degree[dep.to_task] == 0:
                    queue.append(dep.to_task)

        if len(order) != len(self.nodes):
            raise ValueError("Circular dependency detected in task graph")
        return order


def build_dependency_graph(
    tasks: Iterable[Task], dependencies: Iterable[Dependency]
) -> DependencyGraph:
    """Build the pass graph from a flat dependency list.

    - A task id seen again after its first active definition is dropped with
      a ``duplicate_task`` conflict.
    - Edges touching unknown or inactive tasks are dropped with an
      ``invalid_reference`` conflict.
    - A depth-first search over tasks (in input order) finds back edges. Each
      back edge closes a cycle and yields one ``cyclic_dependency`` conflict
      naming the tasks on it. A self-loop or a mutual dependency between two
      tasks loses all of its edges; on longer cycles only the closing edge is
      excluded.
    """
    task_list = list(tasks)
    graph = DependencyGraph(nodes=[])
    active: set[str] = set()
    for task in task_list:
        if task.inactive:
            continue
        if task.id in active:
            graph.conflicts.append(_duplicate_task(task))
            continue
        active.add(task.id)
        graph.nodes.append(task.id)
    active_ids = graph.nodes
    inactive = {task.id for task in task_list if task.inactive}

    candidates: list[Dependency] = []
    adjacency: dict[str, list[int]] = {node: [] for node in active_ids}

    for dep in dependencies:
        broken = [tid for tid in (dep.from_task, dep.to_task) if tid not in active]
        if broken:
            graph.conflicts.append(_invalid_reference(dep, broken, inactive))
            continue
        adjacency[dep.from_task].append(len(candidates))
        candidates.append(dep)

    cycle_edges = _find_cycle_edges(active_ids, adjacency, candidates, graph.conflicts)

    for node in active_ids:
        graph.incoming[node] = []
        graph.outgoing[node] = []
    for index, dep in enumerate(candidates):
        if index in cycle_edges:
            graph.excluded.append(dep)
            continue
        graph.outgoing[dep.from_task].append(dep)
        graph.incoming[dep.to_task].append(dep)

    return graph


def _find_cycle_edges(
    nodes: Sequence[str],
    adjacency: dict[str, list[int]],
    candidates: Sequence[Dependency],
    conflicts: list[SchedulingConflict],
) -> set[int]:
    """Iterative three-colour DFS; returns indices of the cycle edges to exclude."""
    marks = dict.fromkeys(nodes, _Mark.UNVISITED)
    cycle_edges: set[int] = set()

    for root in nodes:
        if marks[root] != _Mark.UNVISITED:
            continue

        marks[root] = _Mark.IN_PROGRESS
        path = [root]
        entered_by: list[int | None] = [None]
        position = {root: 0}
        stack = [(root, iter(adjacency[root]))]

        while stack:
            node, edges = stack[-1]
            for index in edges:
                target = candidates[index].to_task
                if marks[target] == _Mark.IN_PROGRESS:
                    start = position[target]
                    cycle = path[start:]
                    dropped = [index]
                    if len(cycle) <= 2:
                        tree_edges = [i for i in entered_by[start + 1 :] if i is not None]
                        dropped = tree_edges + dropped
                    cycle_edges.update(dropped)
                    conflicts.append(_cycle_conflict(cycle, [candidates[i] for i in dropped]))
                elif marks[target] == _Mark.UNVISITED:
                    marks[target] = _Mark.IN_PROGRESS
                    position[target] = len(path)
                    path.append(target)
                    entered_by.append(index)
                    stack.append((target, iter(adjacency[target])))
                    break
            else:
                marks[node] = _Mark.DONE
                stack.pop()
                path.pop()
                entered_by.pop()
                del position[node]

    return cycle_edges


def _cycle_conflict(cycle: list[str], edges: list[Dependency]) -> SchedulingConflict:
    loop = " -> ".join([*cycle, cycle[0]])
    ids = ", ".join(f"'{dep.id}'" for dep in edges)
    if changes_enabled():
        logger.changes(f"Cycle {loop}: ignoring dependencies {ids}")
    return SchedulingConflict(
        kind=ConflictKind.CYCLIC_DEPENDENCY,
        task_ids=tuple(cycle),
        dependency_ids=tuple(dep.id for dep in edges),
        message=f"Circular dependency detected: {loop} (ignoring {ids})",
        severity=Severity.ERROR,
    )


def _duplicate_task(task: Task) -> SchedulingConflict:
    logger.changes(f"Dropping repeated definition of task '{task.id}'")
    return SchedulingConflict(
        kind=ConflictKind.DUPLICATE_TASK,
        task_ids=(task.id,),
        dependency_ids=(),
        message=f"Task '{task.id}' is defined more than once; keeping the first definition",
        severity=Severity.WARNING,
    )


def _invalid_reference(
    dep: Dependency, broken: list[str], inactive: set[str]
) -> SchedulingConflict:
    reasons = [
        f"'{tid}' is inactive" if tid in inactive else f"'{tid}' does not exist" for tid in broken
    ]
    logger.changes(f"Dropping dependency '{dep.id}': {', '.join(reasons)}")
    return SchedulingConflict(
        kind=ConflictKind.INVALID_REFERENCE,
        task_ids=tuple(tid for tid in (dep.from_task, dep.to_task) if tid not in broken),
        dependency_ids=(dep.id,),
        message=f"Dependency '{dep.id}' ignored: task {' and '.join(reasons)}",
        severity=Severity.WARNING,
    )


# Graph queries over raw dependency lists (direct edges and transitive closure)


def get_predecessors(task_id: str, dependencies: Iterable[Dependency]) -> list[str]:
    """Get the direct predecessor ids of a task."""
    return list(dict.fromkeys(d.from_task for d in dependencies if d.to_task == task_id))


def get_successors(task_id: str, dependencies: Iterable[Dependency]) -> list[str]:
    """Get the direct successor ids of a task."""
    return list(dict.fromkeys(d.to_task for d in dependencies if d.from_task == task_id))


def get_all_predecessors(task_id: str, dependencies: Iterable[Dependency]) -> list[str]:
    """Get all transitive predecessors (predecessors of predecessors, and so on)."""
    index: dict[str, list[str]] = {}
    for dep in dependencies:
        index.setdefault(dep.to_task, []).append(dep.from_task)
    return _closure(task_id, index)


def get_all_successors(task_id: str, dependencies: Iterable[Dependency]) -> list[str]:
    """Get all transitive successors."""
    index: dict[str, list[str]] = {}
    for dep in dependencies:
        index.setdefault(dep.from_task, []).append(dep.to_task)
    return _closure(task_id, index)


def _closure(task_id: str, index: dict[str, list[str]]) -> list[str]:
    """Breadth-first reachability; safe on cyclic input."""
    found: dict[str, None] = {}
    queue = deque(index.get(task_id, []))
    while queue:
        current = queue.popleft()
        if current in found or current == task_id:
            continue
        found[current] = None
        queue.extend(index.get(current, []))
    return list(found)
