"""Tests for CLI commands."""

from pathlib import Path

import yaml
from typer.testing import CliRunner

from critpath.cli import app

runner = CliRunner()

EXAMPLE_PROJECT = str(Path(__file__).parent.parent / "examples" / "project.yaml")

CYCLIC_PROJECT = """
project:
  start_date: 2025-03-03
tasks:
  a:
    duration: 1d
    requires: [b]
  b:
    duration: 1d
    requires: [a]
"""


class TestScheduleCommand:
    """Test the schedule CLI command."""

    def test_schedule_table(self) -> None:
        result = runner.invoke(app, ["schedule", EXAMPLE_PROJECT])

        assert result.exit_code == 0
        assert "Schedule: Office move" in result.output
        assert "Project: 2025-03-03 -> 2025-03-14" in result.output
        lines = {line.split()[0]: line for line in result.output.splitlines() if line.strip()}
        assert "2025-03-12" in lines["move"]
        assert lines["move"].rstrip().endswith("*")
        assert not lines["book_movers"].rstrip().endswith("*")
        assert "Conflicts:" not in result.output

    def test_schedule_to_file(self, tmp_path: Path) -> None:
        output_file = tmp_path / "schedule.yaml"
        result = runner.invoke(app, ["schedule", EXAMPLE_PROJECT, "--output", str(output_file)])

        assert result.exit_code == 0
        assert f"Schedule written to {output_file}" in result.output
        data = yaml.safe_load(output_file.read_text(encoding="utf-8"))
        assert data["project"]["end_date"] == "2025-03-14"
        assert data["critical_path"] == ["plan", "pack", "move", "it_setup"]
        rows = {row["id"]: row for row in data["tasks"]}
        assert rows["move"]["start_date"] == "2025-03-12"
        assert rows["book_movers"]["total_slack"] == 1
        assert data["conflicts"] == []

    def test_conflicts_are_listed(self, tmp_path: Path) -> None:
        path = tmp_path / "cyclic.yaml"
        path.write_text(CYCLIC_PROJECT, encoding="utf-8")
        result = runner.invoke(app, ["schedule", str(path)])

        assert result.exit_code == 0
        assert "Conflicts:" in result.output
        assert "[error] Circular dependency detected" in result.output

    def test_strict_fails_on_errors(self, tmp_path: Path) -> None:
        path = tmp_path / "cyclic.yaml"
        path.write_text(CYCLIC_PROJECT, encoding="utf-8")
        result = runner.invoke(app, ["schedule", str(path), "--strict"])
        assert result.exit_code == 1

    def test_missing_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["schedule", str(tmp_path / "missing.yaml")])
        assert result.exit_code == 1
        assert "Error: File not found" in result.output

    def test_verbose_shows_computed_dates(self) -> None:
        result = runner.invoke(app, ["-v", "2", "schedule", EXAMPLE_PROJECT])
        assert result.exit_code == 0
        assert "Forward: plan ES=2025-03-03 EF=2025-03-06" in result.output


class TestCriticalPathCommand:
    """Test the critical-path CLI command."""

    def test_critical_tasks(self) -> None:
        result = runner.invoke(app, ["critical-path", EXAMPLE_PROJECT])

        assert result.exit_code == 0
        lines = result.output.strip().splitlines()
        assert lines[0] == "plan: 2025-03-03 -> 2025-03-06"
        assert [line.split(":")[0] for line in lines] == ["plan", "pack", "move", "it_setup"]

    def test_chains(self) -> None:
        result = runner.invoke(app, ["critical-path", EXAMPLE_PROJECT, "--chains"])
        assert result.exit_code == 0
        assert result.output.strip() == "plan -> pack -> move -> it_setup"


class TestCheckCommand:
    """Test the check CLI command."""

    def test_scheduled_dates_are_valid(self) -> None:
        result = runner.invoke(app, ["check", EXAMPLE_PROJECT, "move"])

        assert result.exit_code == 0
        assert "Task: Move day (move)" in result.output
        assert "Earliest start: 2025-03-12" in result.output
        assert "Upstream tasks: 3" in result.output
        assert "Dates are valid" in result.output

    def test_proposed_start_too_early(self) -> None:
        result = runner.invoke(app, ["check", EXAMPLE_PROJECT, "move", "--start", "2025-03-10"])

        assert result.exit_code == 1
        assert "must start on or after 2025-03-12" in result.output
        assert "Suggested date: 2025-03-12" in result.output

    def test_unknown_task(self) -> None:
        result = runner.invoke(app, ["check", EXAMPLE_PROJECT, "nope"])
        assert result.exit_code == 1
        assert "Unknown task 'nope'" in result.output

    def test_invalid_date(self) -> None:
        result = runner.invoke(app, ["check", EXAMPLE_PROJECT, "move", "--start", "soon"])
        assert result.exit_code == 1
        assert "Invalid date" in result.output
