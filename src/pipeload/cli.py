"""Command-line interface for pipeload."""

from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.console import Console

if TYPE_CHECKING:
    from pipeload.config.settings import ImportSettings

app = typer.Typer(
    name="pipeload",
    help="Bulk importer for pipe-delimited text files.",
    no_args_is_help=True,
)

console = Console()

ConfigOption = Annotated[
    Path,
    typer.Option(
        "--config",
        "-c",
        help="Path to configuration YAML file.",
        exists=True,
        dir_okay=False,
    ),
]


def _load_settings(config: Path) -> "ImportSettings":
    """Load configuration and set up logging, exiting on invalid files."""
    from pipeload.config.loader import load_config
    from pipeload.utils.logging import configure_logging

    console.print(f"[blue]Loading configuration from {config}[/blue]")
    try:
        settings = load_config(config)
    except (ValueError, FileNotFoundError) as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        raise typer.Exit(code=1) from e

    configure_logging(
        level=settings.logging.level,
        json_output=settings.logging.json_output,
        log_file=settings.logging.log_file,
    )
    return settings


@app.command()
def run(
    config: ConfigOption,
    table_mode: Annotated[
        str | None,
        typer.Option(
            "--table-mode",
            "-m",
            help="Override table mode: 'append', 'truncate' or 'recreate'.",
        ),
    ] = None,
    skip_post_install: Annotated[
        bool,
        typer.Option("--skip-post-install", help="Do not run post-install scripts."),
    ] = False,
) -> None:
    """Import every data file into its destination table."""
    from pipeload.config.settings import TableMode
    from pipeload.errors import PipeloadError
    from pipeload.ingestion.spec_reader import load_specifications
    from pipeload.loading import (
        BulkLoader,
        SqlAlchemyBulkSink,
        TableManager,
        create_destination_engine,
        run_post_install_scripts,
    )
    from pipeload.orchestration import ImportOrchestrator
    from pipeload.reporting import SummaryReporter

    settings = _load_settings(config)

    if table_mode is not None:
        try:
            mode = TableMode(table_mode.lower())
        except ValueError as e:
            console.print(
                f"[red]Error: Invalid table mode '{table_mode}'. "
                "Use 'append', 'truncate' or 'recreate'.[/red]"
            )
            raise typer.Exit(code=1) from e
        settings = settings.model_copy(
            update={"load": settings.load.model_copy(update={"table_mode": mode})}
        )

    try:
        specifications = load_specifications(
            settings.specification.path, settings.specification.sheet
        )
    except PipeloadError as e:
        console.print(f"[red]Specification error: {e}[/red]")
        raise typer.Exit(code=1) from e

    files = settings.source.discover_files()
    if not files:
        console.print(
            f"[yellow]No files matching '{settings.source.pattern}' "
            f"in {settings.source.data_dir}[/yellow]"
        )
        raise typer.Exit(code=1)

    console.print(f"[blue]Importing {len(files)} file(s) for {settings.project}[/blue]")
    console.print(f"[dim]Table mode: {settings.load.table_mode.value}[/dim]")

    engine = create_destination_engine(settings.database)
    try:
        loader = BulkLoader(
            SqlAlchemyBulkSink(engine),
            batch_size=settings.load.batch_size,
            timeout_seconds=settings.load.timeout_seconds,
        )
        orchestrator = ImportOrchestrator(
            settings, loader, TableManager(engine, settings.schema_name)
        )
        summary = orchestrator.run(files, specifications)

        console.print()
        SummaryReporter(console).print_summary(summary)

        if not summary.all_succeeded:
            console.print("\n[red]Import finished with errors; post-install scripts not run[/red]")
            raise typer.Exit(code=1)

        scripts_dir = settings.post_install.scripts_dir
        if scripts_dir is not None and not skip_post_install:
            console.print(f"\n[blue]Running post-install scripts from {scripts_dir}[/blue]")
            try:
                executed = run_post_install_scripts(
                    engine,
                    scripts_dir,
                    database=settings.database.database_name,
                    schema=settings.schema_name,
                )
            except (PipeloadError, FileNotFoundError) as e:
                console.print(f"[red]Post-install error: {e}[/red]")
                raise typer.Exit(code=1) from e
            console.print(f"[green]Executed {len(executed)} script(s)[/green]")

        console.print("\n[green]Import complete[/green]")
    finally:
        engine.dispose()


@app.command()
def spec(config: ConfigOption) -> None:
    """Show the parsed column specification."""
    from pipeload.errors import PipeloadError
    from pipeload.ingestion.spec_reader import load_specifications
    from pipeload.reporting import SummaryReporter

    settings = _load_settings(config)

    try:
        specifications = load_specifications(
            settings.specification.path, settings.specification.sheet
        )
    except PipeloadError as e:
        console.print(f"[red]Specification error: {e}[/red]")
        raise typer.Exit(code=1) from e

    SummaryReporter(console).print_specifications(specifications)
    console.print(f"\n[green]{len(specifications)} table(s) specified[/green]")


@app.command()
def version() -> None:
    """Show version information."""
    from pipeload import __version__

    console.print(f"pipeload version {__version__}")


if __name__ == "__main__":
    app()
