"""
Console reporter for import runs.

Formats the run summary and per-file outcomes using Rich.
"""

from collections.abc import Mapping, Sequence

from rich.console import Console
from rich.table import Table

from pipeload.orchestration.orchestrator import FileImportResult, FileStatus, ImportSummary
from pipeload.schemas.field_spec import FieldSpecification


class SummaryReporter:
    """Formats and displays import results to the console."""

    def __init__(self, console: Console) -> None:
        """
        Initialize console reporter.

        Args:
            console: Rich Console instance for output.
        """
        self.console = console

    def print_summary(self, summary: ImportSummary) -> None:
        """
        Print per-file results, the imported tables and any errors.

        Args:
            summary: Result of an import run.
        """
        table = Table(title="Import Results", show_header=True)
        table.add_column("File", style="cyan", no_wrap=True)
        table.add_column("Table", style="blue")
        table.add_column("Status", justify="center")
        table.add_column("Rows", justify="right")
        table.add_column("Warnings", justify="right")

        for result in summary.results:
            table.add_row(
                result.path.name,
                result.table_name,
                self._format_status(result),
                str(result.row_count) if result.succeeded else "-",
                str(result.warning_count) if result.warning_count else "-",
            )

        self.console.print(table)
        self._print_totals(summary)
        self._print_detailed_errors(summary.failed)

    def _format_status(self, result: FileImportResult) -> str:
        """
        Format file status with color.

        Args:
            result: File import result.

        Returns:
            Status string with color markup.
        """
        if result.status is FileStatus.SUCCEEDED:
            return "[green]Loaded[/green]"
        if result.status is FileStatus.EMPTY:
            return "[green]Empty[/green]"
        if result.status is FileStatus.SKIPPED:
            return "[yellow]Skipped[/yellow]"
        return "[red]Failed[/red]"

    def _print_totals(self, summary: ImportSummary) -> None:
        self.console.print()
        self.console.print("[bold]Summary:[/bold]")
        for entry in summary.entries:
            self.console.print(f"  {entry.table_name}: {entry.row_count} rows")
        self.console.print(f"  Tables imported: {len(summary.entries)}")
        self.console.print(f"  Total rows: {summary.total_rows}")
        if summary.failed:
            self.console.print(f"  [red]Failed: {len(summary.failed)}[/red]")
        if summary.skipped:
            self.console.print(f"  [yellow]Skipped: {len(summary.skipped)}[/yellow]")

    def _print_detailed_errors(self, failed: Sequence[FileImportResult]) -> None:
        """
        Print the error of every failed file.

        Args:
            failed: Failed file results.
        """
        if not failed:
            return

        self.console.print()
        self.console.print("[bold red]Errors:[/bold red]")
        for result in failed:
            self.console.print(f"\n[red]{result.path.name}[/red] -> {result.table_name}")
            self.console.print(f"  {result.error}")

    def print_specifications(
        self, specifications: Mapping[str, Sequence[FieldSpecification]]
    ) -> None:
        """
        Print the parsed column specification, one table per destination.

        Args:
            specifications: Column specifications by table name.
        """
        for table_name, specs in specifications.items():
            table = Table(title=table_name, show_header=True)
            table.add_column("#", justify="right", style="dim")
            table.add_column("Column", style="cyan")
            table.add_column("Declared Type")
            table.add_column("Precision", justify="right")
            table.add_column("Scale", justify="right")
            table.add_column("Semantic Type", style="green")

            for position, spec in enumerate(specs, start=1):
                table.add_row(
                    str(position),
                    spec.column_name,
                    spec.declared_type,
                    "-" if spec.precision is None else str(spec.precision),
                    "-" if spec.scale is None else str(spec.scale),
                    spec.semantic_type.value,
                )

            self.console.print(table)
