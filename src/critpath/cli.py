"""Command-line interface for critpath."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Annotated, Any

import typer
import yaml

from .dates import format_date, parse_date
from .exceptions import CritpathError
from .loader import Project, load_project
from .logger import VERBOSITY_DEBUG, VERBOSITY_SILENT, setup_logger
from .models import Task
from .rows import scheduled_task_to_row
from .scheduler import (
    SchedulingResult,
    Severity,
    get_all_predecessors,
    get_critical_chains,
    get_earliest_start_date,
    get_predecessors,
    validate_task_dates,
)

app = typer.Typer(
    name="critpath",
    help="Critical path scheduling for task dependency graphs",
    add_completion=False,
)


@app.callback()
def main_callback(
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            help=(
                "Verbosity level: 0=silent (default), 1=show conflicts, "
                "2=show computed dates, 3=debug"
            ),
            min=VERBOSITY_SILENT,
            max=VERBOSITY_DEBUG,
        ),
    ] = VERBOSITY_SILENT,
) -> None:
    """Global options for critpath commands."""
    setup_logger(verbose)


def _load(file: Path) -> Project:
    try:
        return load_project(file)
    except CritpathError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None


def _schedule(project: Project) -> SchedulingResult:
    try:
        return project.schedule()
    except CritpathError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None


def _with_scheduled_dates(task: Task, result: SchedulingResult) -> Task:
    info = result.scheduled_tasks.get(task.id)
    if info is None:
        return task
    return replace(task, start=info.scheduled_start, end=info.scheduled_finish)


def _display_schedule_results(project: Project, result: SchedulingResult) -> None:
    """Display schedule results as a table in topological order."""
    typer.echo(f"Schedule: {project.name}")
    start, end = format_date(result.project_start), format_date(result.project_end)
    typer.echo(f"Project: {start} -> {end}")
    typer.echo("=" * 80)
    typer.echo(
        f"{'Task':<20} {'Start':<11} {'Finish':<11} {'Late start':<11} {'Slack':>5}  Critical"
    )

    for task_id in result.topological_order:
        info = result.scheduled_tasks[task_id]
        typer.echo(
            f"{task_id:<20} {format_date(info.scheduled_start):<11} "
            f"{format_date(info.scheduled_finish):<11} {format_date(info.latest_start):<11} "
            f"{info.slack:>5}  {'*' if info.is_critical else ''}"
        )


def _display_conflicts(result: SchedulingResult) -> None:
    if not result.conflicts:
        return
    typer.echo("\nConflicts:", err=True)
    for conflict in result.conflicts:
        typer.echo(f"  - [{conflict.severity.value}] {conflict.message}", err=True)


def _snapshot(project: Project, result: SchedulingResult) -> dict[str, Any]:
    return {
        "project": {
            "name": project.name,
            "start_date": format_date(result.project_start),
            "end_date": format_date(result.project_end),
        },
        "tasks": [
            scheduled_task_to_row(result.scheduled_tasks[tid]) for tid in result.topological_order
        ],
        "critical_path": list(result.critical_path),
        "conflicts": [
            {
                "kind": conflict.kind.value,
                "severity": conflict.severity.value,
                "task_ids": list(conflict.task_ids),
                "dependency_ids": list(conflict.dependency_ids),
                "message": conflict.message,
            }
            for conflict in result.conflicts
        ],
    }


@app.command()
def schedule(
    file: Annotated[Path, typer.Argument(help="Path to the project YAML file")] = Path(
        "project.yaml"
    ),
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write the computed schedule to a YAML file"),
    ] = None,
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Exit with status 1 when error-level conflicts exist"),
    ] = False,
) -> None:
    """Compute the schedule and display dates, slack and conflicts."""
    project = _load(file)
    result = _schedule(project)

    if output:
        with output.open("w", encoding="utf-8") as f:
            yaml.safe_dump(_snapshot(project, result), f, sort_keys=False, allow_unicode=True)
        typer.echo(f"Schedule written to {output}")
    else:
        _display_schedule_results(project, result)

    _display_conflicts(result)

    if strict and result.has_errors:
        raise typer.Exit(1)


@app.command("critical-path")
def critical_path(
    file: Annotated[Path, typer.Argument(help="Path to the project YAML file")] = Path(
        "project.yaml"
    ),
    chains: Annotated[
        bool,
        typer.Option("--chains", help="Show each chain of critical tasks on its own line"),
    ] = False,
) -> None:
    """Show the critical tasks ordered by earliest start."""
    project = _load(file)
    result = _schedule(project)

    if chains:
        for chain in get_critical_chains(result):
            typer.echo(" -> ".join(chain))
        return

    for task_id in result.critical_path:
        info = result.scheduled_tasks[task_id]
        start, end = format_date(info.earliest_start), format_date(info.earliest_finish)
        typer.echo(f"{task_id}: {start} -> {end}")


@app.command()
def check(
    file: Annotated[Path, typer.Argument(help="Path to the project YAML file")],
    task_id: Annotated[str, typer.Argument(help="Task to check")],
    start: Annotated[
        str | None,
        typer.Option("--start", help="Proposed start date (YYYY-MM-DD) instead of the stored one"),
    ] = None,
    end: Annotated[
        str | None,
        typer.Option("--end", help="Proposed end date (YYYY-MM-DD) instead of the stored one"),
    ] = None,
) -> None:
    """Check a task's dates against its constraint and its predecessors."""
    project = _load(file)
    task = project.get_task(task_id)
    if task is None:
        typer.echo(f"Error: Unknown task '{task_id}'", err=True)
        raise typer.Exit(1)

    try:
        proposed_start = parse_date(start, strict=True)
        proposed_end = parse_date(end, strict=True)
    except ValueError:
        typer.echo("Error: Invalid date. Use YYYY-MM-DD format", err=True)
        raise typer.Exit(1) from None

    schedule_result = _schedule(project)
    if task.start is None and task.end is None:
        task = _with_scheduled_dates(task, schedule_result)
    predecessor_ids = set(get_predecessors(task_id, project.dependencies))
    predecessors = [
        _with_scheduled_dates(t, schedule_result) for t in project.tasks if t.id in predecessor_ids
    ]
    calendar = project.calendar

    result = validate_task_dates(
        task, predecessors, project.dependencies, calendar, start=proposed_start, end=proposed_end
    )
    earliest = get_earliest_start_date(
        task, predecessors, project.dependencies, calendar, project.options.project_start_date
    )

    typer.echo(f"Task: {task.display_name} ({task.id})")
    typer.echo(f"  Earliest start: {format_date(earliest)}")
    typer.echo(f"  Upstream tasks: {len(get_all_predecessors(task_id, project.dependencies))}")
    if result.valid:
        typer.echo("  Dates are valid")
        return

    for conflict in result.conflicts:
        marker = "!!" if conflict.severity == Severity.ERROR else "!"
        typer.echo(f"  {marker} {conflict.message}")
    if result.suggested_date is not None:
        typer.echo(f"  Suggested date: {format_date(result.suggested_date)}")
    raise typer.Exit(1)


def main() -> int:
    """Main entry point."""
    # Typer handles sys.exit() internally
    app()
    return 0


if __name__ == "__main__":
    main()
