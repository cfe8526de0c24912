"""Tests for the command-line interface."""

from pathlib import Path

import pytest
from rich.console import Console
from sqlalchemy import create_engine, text
from typer.testing import CliRunner

from pipeload.cli import app
from pipeload.orchestration import FileImportResult, FileStatus, ImportSummary
from pipeload.reporting import SummaryReporter

runner = CliRunner()


@pytest.fixture(autouse=True)
def _keep_logging_unconfigured(monkeypatch: pytest.MonkeyPatch) -> None:
    """Leave structlog defaults in place so log capture keeps working."""
    monkeypatch.setattr("pipeload.utils.logging.configure_logging", lambda **_: None)


@pytest.fixture
def project_dir(tmp_path: Path, spec_csv: Path) -> Path:
    """Config, specification, data and post-install folder in tmp_path."""
    data = tmp_path / "data"
    data.mkdir()
    (data / "EMP_Employee.txt").write_text("EMP_1|Alice|34|Y\nEMP_2|Bob|41|N\n", encoding="utf-8")

    scripts = tmp_path / "sql"
    scripts.mkdir()
    (scripts / "010_audit.sql").write_text(
        "CREATE TABLE audit (note TEXT)\nGO\nINSERT INTO audit VALUES ('done')\nGO\n",
        encoding="utf-8",
    )

    (tmp_path / "config.yaml").write_text(
        f"""
project: cli-test
database:
  url: "sqlite:///{tmp_path / 'cli.db'}"
specification:
  path: {spec_csv.name}
source:
  data_dir: data
post_install:
  scripts_dir: sql
""",
        encoding="utf-8",
    )
    return tmp_path


class TestCli:
    """Tests for the typer commands."""

    def test_version(self) -> None:
        """Test the version command."""
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "pipeload version" in result.stdout

    def test_spec(self, project_dir: Path) -> None:
        """Test printing the parsed specification."""
        result = runner.invoke(app, ["spec", "--config", str(project_dir / "config.yaml")])

        assert result.exit_code == 0
        assert "Employee" in result.stdout
        assert "2 table(s) specified" in result.stdout

    def test_run_imports_and_runs_post_install(self, project_dir: Path) -> None:
        """Test a full run including post-install scripts."""
        result = runner.invoke(app, ["run", "--config", str(project_dir / "config.yaml")])

        assert result.exit_code == 0, result.stdout
        engine = create_engine(f"sqlite:///{project_dir / 'cli.db'}")
        try:
            with engine.connect() as conn:
                assert conn.execute(text('SELECT COUNT(*) FROM "Employee"')).scalar_one() == 2
                assert conn.execute(text("SELECT note FROM audit")).scalar_one() == "done"
        finally:
            engine.dispose()

    def test_run_failure_skips_post_install(self, project_dir: Path) -> None:
        """Test that a failed file exits non-zero and skips post-install scripts."""
        (project_dir / "data" / "EMP_Employee.txt").write_text(
            "EMP_1|Alice|thirty|Y\n", encoding="utf-8"
        )

        result = runner.invoke(app, ["run", "--config", str(project_dir / "config.yaml")])

        assert result.exit_code == 1
        engine = create_engine(f"sqlite:///{project_dir / 'cli.db'}")
        try:
            with engine.connect() as conn:
                tables = conn.execute(
                    text("SELECT name FROM sqlite_master WHERE type = 'table'")
                ).scalars().all()
            assert "audit" not in tables
        finally:
            engine.dispose()

    def test_invalid_table_mode(self, project_dir: Path) -> None:
        """Test that an unknown table mode override is rejected."""
        result = runner.invoke(
            app,
            ["run", "--config", str(project_dir / "config.yaml"), "--table-mode", "merge"],
        )
        assert result.exit_code == 1

    def test_invalid_config(self, tmp_path: Path) -> None:
        """Test that a config without required keys exits with an error."""
        config = tmp_path / "config.yaml"
        config.write_text("project: broken\n", encoding="utf-8")

        result = runner.invoke(app, ["run", "--config", str(config)])

        assert result.exit_code == 1
        assert "Configuration error" in result.stdout


class TestSummaryReporter:
    """Tests for the rich summary output."""

    def test_print_summary(self) -> None:
        """Test that successes, failures and skips all appear."""
        summary = ImportSummary()
        summary.record(
            FileImportResult(Path("EMP_Employee.txt"), "Employee", FileStatus.SUCCEEDED, 12)
        )
        summary.record(
            FileImportResult(
                Path("DEP_Department.txt"),
                "Department",
                FileStatus.FAILED,
                error=ValueError("bad value on line 3"),
            )
        )
        summary.record(FileImportResult(Path("XYZ_Other.txt"), "Other", FileStatus.SKIPPED))
        console = Console(record=True, width=120)

        SummaryReporter(console).print_summary(summary)

        output = console.export_text()
        assert "Employee: 12 rows" in output
        assert "Failed: 1" in output
        assert "Skipped: 1" in output
        assert "bad value on line 3" in output
