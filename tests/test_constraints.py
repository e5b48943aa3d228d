"""Tests for constraint bounds and date validation."""

from critpath.models import ConstraintType, DependencyType, DurationUnit
from critpath.scheduler import (
    BoundKind,
    ConflictKind,
    ConstraintBounds,
    Severity,
    WorkingCalendar,
    get_constraint_bounds,
    get_constraint_type_name,
    get_dependency_type_name,
    get_earliest_start_date,
    validate_against_dependencies,
    validate_constraint,
    validate_task_dates,
)
from critpath.scheduler.constraints import get_task_duration_days
from tests.conftest import FRI, MON, NEXT_MON, SAT, THU, TUE, WED, link, make_task


class TestTaskDuration:
    """Test resolving durations to whole working days."""

    def test_explicit_days(self, calendar: WorkingCalendar) -> None:
        assert get_task_duration_days(make_task("a", 3), calendar) == 3

    def test_hours_round_up(self, calendar: WorkingCalendar) -> None:
        task = make_task("a", 4, duration_unit=DurationUnit.HOUR)
        assert get_task_duration_days(task, calendar) == 1

    def test_fractional_weeks(self, calendar: WorkingCalendar) -> None:
        task = make_task("a", 1.5, duration_unit=DurationUnit.WEEK)
        assert get_task_duration_days(task, calendar) == 8

    def test_negative_duration_is_milestone(self, calendar: WorkingCalendar) -> None:
        assert get_task_duration_days(make_task("a", -2), calendar) == 0

    def test_derived_from_dates(self, calendar: WorkingCalendar) -> None:
        task = make_task("a", None)
        assert get_task_duration_days(task, calendar, MON, THU) == 3

    def test_default_one_day(self, calendar: WorkingCalendar) -> None:
        assert get_task_duration_days(make_task("a", None), calendar) == 1


class TestConstraintBounds:
    """Test reducing constraints to start/finish bounds."""

    def test_as_soon_as_possible_is_unbounded(self, calendar: WorkingCalendar) -> None:
        assert get_constraint_bounds(make_task("a"), calendar).is_empty

    def test_must_start_on(self, calendar: WorkingCalendar) -> None:
        task = make_task("a", constraint_type=ConstraintType.MUST_START_ON, constraint_date=WED)
        assert get_constraint_bounds(task, calendar) == ConstraintBounds(
            start_min=WED, start_max=WED
        )

    def test_constraint_date_moves_to_working_day(self, calendar: WorkingCalendar) -> None:
        task = make_task("a", constraint_type=ConstraintType.MUST_START_ON, constraint_date=SAT)
        bounds = get_constraint_bounds(task, calendar)
        assert bounds.start_min == NEXT_MON
        assert bounds.start_max == NEXT_MON

    def test_string_constraint_date(self, calendar: WorkingCalendar) -> None:
        task = make_task(
            "a",
            constraint_type=ConstraintType.FINISH_NO_LATER_THAN,
            constraint_date="2025-03-07",
        )
        assert get_constraint_bounds(task, calendar) == ConstraintBounds(finish_max=FRI)

    def test_one_sided_constraints(self, calendar: WorkingCalendar) -> None:
        expected = {
            ConstraintType.START_NO_EARLIER_THAN: ConstraintBounds(start_min=WED),
            ConstraintType.START_NO_LATER_THAN: ConstraintBounds(start_max=WED),
            ConstraintType.FINISH_NO_EARLIER_THAN: ConstraintBounds(finish_min=WED),
            ConstraintType.FINISH_NO_LATER_THAN: ConstraintBounds(finish_max=WED),
            ConstraintType.MUST_FINISH_ON: ConstraintBounds(finish_min=WED, finish_max=WED),
        }
        for constraint, bounds in expected.items():
            task = make_task("a", constraint_type=constraint, constraint_date=WED)
            assert get_constraint_bounds(task, calendar) == bounds, constraint

    def test_as_late_as_possible_needs_project_end(self, calendar: WorkingCalendar) -> None:
        task = make_task("a", constraint_type=ConstraintType.AS_LATE_AS_POSSIBLE)
        assert get_constraint_bounds(task, calendar).is_empty
        assert get_constraint_bounds(task, calendar, FRI) == ConstraintBounds(finish_max=FRI)

    def test_missing_or_malformed_date_imposes_nothing(self, calendar: WorkingCalendar) -> None:
        for raw in (None, "", "not-a-date"):
            task = make_task(
                "a", constraint_type=ConstraintType.MUST_START_ON, constraint_date=raw
            )
            assert get_constraint_bounds(task, calendar).is_empty


class TestValidateConstraint:
    """Test checking a task's own dates against its constraint."""

    def test_start_no_earlier_than_violated(self, calendar: WorkingCalendar) -> None:
        task = make_task(
            "a",
            start=MON,
            constraint_type=ConstraintType.START_NO_EARLIER_THAN,
            constraint_date=WED,
        )
        result = validate_constraint(task, calendar)

        assert not result.valid
        assert result.violated_bound == BoundKind.START_MIN
        assert result.suggested_date == WED
        assert result.min_date == WED
        assert result.max_date is None
        assert result.conflicts[0].kind == ConflictKind.CONSTRAINT_VIOLATED
        assert result.conflicts[0].severity == Severity.WARNING
        assert result.reason == (
            "Task 'a' starts 2025-03-03 but is constrained to start no earlier than 2025-03-05"
        )

    def test_must_start_on_satisfied(self, calendar: WorkingCalendar) -> None:
        task = make_task(
            "a", start=WED, constraint_type=ConstraintType.MUST_START_ON, constraint_date=WED
        )
        result = validate_constraint(task, calendar)
        assert result.valid
        assert result.min_date == WED
        assert result.max_date == WED

    def test_finish_no_later_than_uses_derived_end(self, calendar: WorkingCalendar) -> None:
        """Without a stored end, the end is derived from the duration."""
        task = make_task(
            "a",
            3,
            start=MON,
            constraint_type=ConstraintType.FINISH_NO_LATER_THAN,
            constraint_date=WED,
        )
        result = validate_constraint(task, calendar)
        assert not result.valid
        assert result.violated_bound == BoundKind.FINISH_MAX
        assert result.max_date == WED
        assert "finishes 2025-03-06" in (result.reason or "")

    def test_hard_constraint_is_error(self, calendar: WorkingCalendar) -> None:
        task = make_task(
            "a", start=MON, constraint_type=ConstraintType.MUST_FINISH_ON, constraint_date=FRI
        )
        result = validate_constraint(task, calendar)
        assert not result.valid
        assert result.conflicts[0].severity == Severity.ERROR

    def test_unscheduled_task_is_valid(self, calendar: WorkingCalendar) -> None:
        task = make_task(
            "a", constraint_type=ConstraintType.MUST_START_ON, constraint_date=WED
        )
        assert validate_constraint(task, calendar).valid

    def test_proposed_start_overrides_stored(self, calendar: WorkingCalendar) -> None:
        task = make_task(
            "a",
            start=MON,
            constraint_type=ConstraintType.START_NO_EARLIER_THAN,
            constraint_date=WED,
        )
        assert validate_constraint(task, calendar, start=THU).valid


class TestValidateAgainstDependencies:
    """Test re-deriving incoming dependency bounds."""

    def test_finish_to_start_too_early(self, calendar: WorkingCalendar) -> None:
        pred = make_task("a", 2, start=MON)
        task = make_task("b", start=TUE)
        result = validate_against_dependencies(task, [pred], [link("a", "b")], calendar)

        assert not result.valid
        violation = result.violations[0]
        assert violation.expected_date == WED
        assert violation.actual_date == TUE
        conflict = result.conflicts[0]
        assert conflict.kind == ConflictKind.DEPENDENCY_VIOLATED
        assert conflict.task_ids == ("a", "b")
        assert conflict.dependency_ids == ("a->b",)
        assert "must start on or after 2025-03-05" in conflict.message

    def test_finish_to_start_satisfied(self, calendar: WorkingCalendar) -> None:
        pred = make_task("a", 2, start=MON)
        task = make_task("b", start=WED)
        assert validate_against_dependencies(task, [pred], [link("a", "b")], calendar).valid

    def test_start_to_start_with_lag(self, calendar: WorkingCalendar) -> None:
        pred = make_task("a", 5, start=MON)
        task = make_task("b", start=MON)
        deps = [link("a", "b", DependencyType.START_TO_START, lag=1)]
        result = validate_against_dependencies(task, [pred], deps, calendar)
        assert not result.valid
        assert result.violations[0].expected_date == TUE

    def test_finish_to_finish_compares_end(self, calendar: WorkingCalendar) -> None:
        pred = make_task("a", 2, start=MON)
        task = make_task("b", 1, start=MON)
        deps = [link("a", "b", DependencyType.FINISH_TO_FINISH)]
        result = validate_against_dependencies(task, [pred], deps, calendar)
        assert not result.valid
        assert result.violations[0].actual_date == TUE
        assert "must finish on or after" in result.conflicts[0].message

    def test_lag_in_hours(self, calendar: WorkingCalendar) -> None:
        pred = make_task("a", 2, start=MON)
        task = make_task("b", start=WED)
        deps = [link("a", "b", lag=8, lag_unit=DurationUnit.HOUR)]
        result = validate_against_dependencies(task, [pred], deps, calendar)
        assert result.violations[0].expected_date == THU

    def test_unscheduled_predecessor_is_skipped(self, calendar: WorkingCalendar) -> None:
        task = make_task("b", start=MON)
        result = validate_against_dependencies(task, [make_task("a")], [link("a", "b")], calendar)
        assert result.valid


class TestValidateTaskDates:
    """Test the combined validation entry point."""

    def test_dependency_violation_suggests_earliest_start(
        self, calendar: WorkingCalendar
    ) -> None:
        pred = make_task("a", 2, start=MON)
        task = make_task("b", start=MON)
        result = validate_task_dates(task, [pred], [link("a", "b")], calendar)

        assert not result.valid
        assert result.violated_bound == BoundKind.START_MIN
        assert result.suggested_date == WED
        assert result.min_date == WED
        assert "must start on or after" in (result.reason or "")

    def test_constraint_reported_before_dependencies(self, calendar: WorkingCalendar) -> None:
        pred = make_task("a", 2, start=MON)
        task = make_task(
            "b",
            start=MON,
            constraint_type=ConstraintType.START_NO_EARLIER_THAN,
            constraint_date=THU,
        )
        result = validate_task_dates(task, [pred], [link("a", "b")], calendar)

        assert not result.valid
        assert result.suggested_date == THU
        kinds = [c.kind for c in result.conflicts]
        assert kinds == [ConflictKind.CONSTRAINT_VIOLATED, ConflictKind.DEPENDENCY_VIOLATED]

    def test_proposed_move_is_valid(self, calendar: WorkingCalendar) -> None:
        pred = make_task("a", 2, start=MON)
        task = make_task("b", start=MON)
        result = validate_task_dates(task, [pred], [link("a", "b")], calendar, start=WED)
        assert result.valid
        assert result.conflicts == ()


class TestEarliestStartDate:
    """Test earliest start computation from predecessors' stored dates."""

    def test_finish_to_start(self, calendar: WorkingCalendar) -> None:
        pred = make_task("a", 2, start=MON)
        task = make_task("b")
        assert get_earliest_start_date(task, [pred], [link("a", "b")], calendar) == WED

    def test_finish_to_start_with_lag(self, calendar: WorkingCalendar) -> None:
        pred = make_task("a", 2, start=MON)
        deps = [link("a", "b", lag=2)]
        assert get_earliest_start_date(make_task("b"), [pred], deps, calendar) == FRI

    def test_lead_time(self, calendar: WorkingCalendar) -> None:
        """A negative lag lets the successor start before the predecessor ends."""
        pred = make_task("a", 2, start=MON)
        deps = [link("a", "b", lag=-1)]
        assert get_earliest_start_date(make_task("b"), [pred], deps, calendar) == TUE

    def test_start_to_start(self, calendar: WorkingCalendar) -> None:
        pred = make_task("a", 5, start=MON)
        deps = [link("a", "b", DependencyType.START_TO_START, lag=1)]
        assert get_earliest_start_date(make_task("b"), [pred], deps, calendar) == TUE

    def test_finish_to_finish_shifts_back_by_duration(self, calendar: WorkingCalendar) -> None:
        pred = make_task("a", 4, start=MON)
        deps = [link("a", "b", DependencyType.FINISH_TO_FINISH)]
        assert get_earliest_start_date(make_task("b", 2), [pred], deps, calendar) == WED

    def test_start_to_finish(self, calendar: WorkingCalendar) -> None:
        pred = make_task("a", 1, start=WED)
        deps = [link("a", "b", DependencyType.START_TO_FINISH, lag=2)]
        assert get_earliest_start_date(make_task("b", 1), [pred], deps, calendar) == THU

    def test_soft_constraint_later_than_dependencies(self, calendar: WorkingCalendar) -> None:
        pred = make_task("a", 2, start=MON)
        task = make_task(
            "b", constraint_type=ConstraintType.START_NO_EARLIER_THAN, constraint_date=FRI
        )
        assert get_earliest_start_date(task, [pred], [link("a", "b")], calendar) == FRI

    def test_dependencies_beat_constraint(self, calendar: WorkingCalendar) -> None:
        """A constraint earlier than the dependency bound never pulls the task forward."""
        pred = make_task("a", 2, start=MON)
        task = make_task("b", constraint_type=ConstraintType.MUST_START_ON, constraint_date=MON)
        assert get_earliest_start_date(task, [pred], [link("a", "b")], calendar) == WED

    def test_finish_no_earlier_than(self, calendar: WorkingCalendar) -> None:
        task = make_task(
            "b",
            2,
            constraint_type=ConstraintType.FINISH_NO_EARLIER_THAN,
            constraint_date=FRI,
        )
        assert get_earliest_start_date(task, [], [], calendar) == WED

    def test_project_start_on_weekend(self, calendar: WorkingCalendar) -> None:
        assert get_earliest_start_date(make_task("b"), [], [], calendar, SAT) == NEXT_MON

    def test_falls_back_to_own_start(self, calendar: WorkingCalendar) -> None:
        task = make_task("b", start=TUE)
        assert get_earliest_start_date(task, [make_task("a")], [link("a", "b")], calendar) == TUE


class TestNames:
    """Test human-readable names."""

    def test_dependency_type_names(self) -> None:
        assert get_dependency_type_name(DependencyType.FINISH_TO_START) == "Finish-to-Start"
        assert get_dependency_type_name(DependencyType.START_TO_FINISH) == "Start-to-Finish"

    def test_constraint_type_names(self) -> None:
        assert get_constraint_type_name(ConstraintType.MUST_START_ON) == "Must start on"
        assert (
            get_constraint_type_name(ConstraintType.FINISH_NO_LATER_THAN)
            == "Finish no later than"
        )
