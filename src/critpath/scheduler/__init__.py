"""Scheduler package - critical path scheduling over a working calendar.

This package provides a stateless CPM engine with:
- Working-day arithmetic over configurable calendars
- Dependency graph building with cycle detection
- Constraint and dependency validation for ad hoc date checks
- Forward/backward passes computing slack and the critical path

Main entry points:
- calculate_schedule: Schedule a snapshot of tasks and dependencies
- validate_task_dates / get_earliest_start_date: Check a proposed task move

Configuration:
- WorkingCalendar: Working days, hours per day and exception intervals
- SchedulingOptions: Project start/end and scheduling direction
"""

# Calendar arithmetic
from .calendar import (
    add_working_days,
    calculate_duration,
    calculate_end_date,
    calendar_days_to_working_days,
    count_working_days,
    get_next_working_day,
    get_previous_working_day,
    get_working_days_in_range,
    get_working_hours,
    is_working_day,
    subtract_working_days,
    to_working_days,
    working_days_between,
    working_days_to_calendar_days,
)

# Configuration
from .config import (
    DEFAULT_CALENDAR,
    MONDAY_TO_FRIDAY,
    CalendarException,
    SchedulingOptions,
    WorkingCalendar,
)

# Constraint validation
from .constraints import (
    get_constraint_bounds,
    get_constraint_type_name,
    get_dependency_type_name,
    get_earliest_start_date,
    validate_against_dependencies,
    validate_constraint,
    validate_task_dates,
)

# Core dataclasses
from .core import (
    BoundKind,
    ConflictKind,
    ConstraintBounds,
    DateValidationResult,
    DependencyValidationResult,
    DependencyViolation,
    ScheduledTaskInfo,
    SchedulingConflict,
    SchedulingResult,
    Severity,
)

# Graph building and queries
from .graph import (
    DependencyGraph,
    build_dependency_graph,
    get_all_predecessors,
    get_all_successors,
    get_predecessors,
    get_successors,
)

# High-level entry point
from .service import (
    calculate_schedule,
    get_critical_chains,
    get_critical_path,
    get_task_slack,
    is_task_critical,
)

__all__ = [
    # Core dataclasses
    "BoundKind",
    "ConflictKind",
    "ConstraintBounds",
    "DateValidationResult",
    "DependencyValidationResult",
    "DependencyViolation",
    "ScheduledTaskInfo",
    "SchedulingConflict",
    "SchedulingResult",
    "Severity",
    # Configuration
    "CalendarException",
    "DEFAULT_CALENDAR",
    "MONDAY_TO_FRIDAY",
    "SchedulingOptions",
    "WorkingCalendar",
    # Calendar arithmetic
    "add_working_days",
    "calculate_duration",
    "calculate_end_date",
    "calendar_days_to_working_days",
    "count_working_days",
    "get_next_working_day",
    "get_previous_working_day",
    "get_working_days_in_range",
    "get_working_hours",
    "is_working_day",
    "subtract_working_days",
    "to_working_days",
    "working_days_between",
    "working_days_to_calendar_days",
    # Graph
    "DependencyGraph",
    "build_dependency_graph",
    "get_all_predecessors",
    "get_all_successors",
    "get_predecessors",
    "get_successors",
    # Constraint validation
    "get_constraint_bounds",
    "get_constraint_type_name",
    "get_dependency_type_name",
    "get_earliest_start_date",
    "validate_against_dependencies",
    "validate_constraint",
    "validate_task_dates",
    # High-level entry point
    "calculate_schedule",
    "get_critical_chains",
    "get_critical_path",
    "get_task_slack",
    "is_task_critical",
]
