"""
Import orchestration.

Drives RecordReader -> RowMaterializer -> RowBuffer -> BulkLoader for one
file/table pair, and runs a whole set of files strictly one after the
other. A file either imports completely or is reported as failed with
the first fatal error; rows are never skipped individually.
"""

from collections.abc import Iterator, Mapping, Sequence
from contextlib import closing
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import TracebackType
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from pipeload.config.settings import ImportSettings
from pipeload.conversion.converters import TypeConverter
from pipeload.conversion.materializer import RowMaterializer, TypedRow
from pipeload.errors import PipeloadError
from pipeload.loading.bulk import BulkLoader
from pipeload.loading.sink import Destination
from pipeload.loading.tables import TableManager, destination_columns
from pipeload.parsing.records import build_boundary_predicate, read_records
from pipeload.schemas.field_spec import FieldSpecification
from pipeload.utils.logging import get_logger, log_context

log = get_logger(__name__)


class ImportState(str, Enum):
    """Per-file import state."""

    START = "start"
    READING = "reading"
    MATERIALIZING = "materializing"
    LOADING = "loading"
    DONE = "done"
    FAILED = "failed"


_ALLOWED: set[tuple[ImportState, ImportState]] = {
    (ImportState.START, ImportState.READING),
    (ImportState.READING, ImportState.MATERIALIZING),
    (ImportState.MATERIALIZING, ImportState.READING),
    (ImportState.READING, ImportState.LOADING),
    # mid-stream flush of a full buffer
    (ImportState.MATERIALIZING, ImportState.LOADING),
    (ImportState.LOADING, ImportState.READING),
    (ImportState.LOADING, ImportState.DONE),
}

_TERMINAL: set[ImportState] = {ImportState.DONE, ImportState.FAILED}


def is_terminal(state: ImportState) -> bool:
    return state in _TERMINAL


def can_transition(src: ImportState, dst: ImportState) -> bool:
    if src in _TERMINAL:
        return False
    if dst is ImportState.FAILED:
        return True
    return (src, dst) in _ALLOWED


def ensure_transition(src: ImportState, dst: ImportState) -> None:
    if not can_transition(src, dst):
        msg = f"Illegal transition: {src.value} -> {dst.value}"
        raise ValueError(msg)


class FileStatus(str, Enum):
    """Outcome of one file."""

    SUCCEEDED = "succeeded"
    EMPTY = "empty"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class FileImportResult:
    """
    Result of importing one file.

    Attributes:
        path: Source file.
        table_name: Destination table.
        status: Outcome.
        row_count: Rows accepted by the sink.
        warning_count: Non-fatal conversion warnings (booleans).
        error: First fatal error, for failed files.
        states: States visited, in order.
    """

    path: Path
    table_name: str
    status: FileStatus
    row_count: int = 0
    warning_count: int = 0
    error: Exception | None = None
    states: list[ImportState] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        """True when every record of the file was loaded."""
        return self.status in {FileStatus.SUCCEEDED, FileStatus.EMPTY}


@dataclass(frozen=True)
class SummaryEntry:
    """One successfully imported table."""

    table_name: str
    row_count: int


@dataclass
class ImportSummary:
    """
    Outcome of a whole run.

    entries only ever grows, and only with files that imported
    completely; results keeps every file, failed and skipped included.
    """

    entries: list[SummaryEntry] = field(default_factory=list)
    results: list[FileImportResult] = field(default_factory=list)

    def record(self, result: FileImportResult) -> None:
        self.results.append(result)
        if result.succeeded:
            self.entries.append(SummaryEntry(result.table_name, result.row_count))

    @property
    def total_rows(self) -> int:
        return sum(entry.row_count for entry in self.entries)

    @property
    def failed(self) -> list[FileImportResult]:
        return [r for r in self.results if r.status is FileStatus.FAILED]

    @property
    def skipped(self) -> list[FileImportResult]:
        return [r for r in self.results if r.status is FileStatus.SKIPPED]

    @property
    def all_succeeded(self) -> bool:
        """True when no file failed. Skipped files do not count as failures."""
        return not self.failed


class RowBuffer:
    """
    Row buffer owned by one file import.

    Used as a context manager; the rows are released on every exit path.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            msg = f"capacity must be positive, got {capacity}"
            raise ValueError(msg)
        self.capacity = capacity
        self._rows: list[TypedRow] = []

    def __enter__(self) -> "RowBuffer":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.clear()

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[TypedRow]:
        return iter(self._rows)

    @property
    def is_full(self) -> bool:
        return len(self._rows) >= self.capacity

    @property
    def rows(self) -> list[TypedRow]:
        return self._rows

    def append(self, row: TypedRow) -> None:
        self._rows.append(row)

    def clear(self) -> None:
        self._rows = []


@dataclass(frozen=True)
class ParsedFileName:
    """Table name and record-boundary prefix read from a file name."""

    table_name: str
    prefix: str | None


def parse_file_name(path: Path, separator: str = "_", *, use_prefix: bool = True) -> ParsedFileName:
    """
    Split a file name into boundary prefix and table name.

    EMP_Employee.txt gives prefix "EMP_" and table "Employee". A stem
    without the separator is the table name and has no prefix.

    Args:
        path: Input file.
        separator: Text between prefix and table name.
        use_prefix: If False the prefix is dropped and the generic
            boundary pattern applies.

    Returns:
        Parsed file name.
    """
    stem = path.stem
    head, sep, tail = stem.partition(separator)
    if not sep or not head or not tail:
        return ParsedFileName(table_name=stem, prefix=None)
    return ParsedFileName(table_name=tail, prefix=head + sep if use_prefix else None)


def _failed_before_import(path: Path, table_name: str, error: Exception) -> FileImportResult:
    return FileImportResult(
        path=path,
        table_name=table_name,
        status=FileStatus.FAILED,
        error=error,
        states=[ImportState.START, ImportState.FAILED],
    )


class ImportOrchestrator:
    """
    Sequences the import of delimited files into destination tables.

    Args:
        settings: Run configuration.
        loader: Bulk loader bound to the destination sink.
        table_manager: Table lifecycle; when None, tables must exist already.
    """

    def __init__(
        self,
        settings: ImportSettings,
        loader: BulkLoader,
        table_manager: TableManager | None = None,
    ) -> None:
        self.settings = settings
        self.loader = loader
        self.table_manager = table_manager

    def _destination(self, table_name: str) -> Destination:
        return Destination(table=table_name, schema=self.settings.schema_name)

    def _row_for_load(self, row: TypedRow) -> tuple[Any, ...]:
        return row if self.settings.load.include_import_id else row[1:]

    def import_file(
        self,
        path: Path,
        table_name: str,
        specs: Sequence[FieldSpecification],
        boundary_prefix: str | None = None,
    ) -> FileImportResult:
        """
        Import one file into one table.

        Args:
            path: Pipe-delimited source file.
            table_name: Destination table (must be prepared).
            specs: Ordered column specifications.
            boundary_prefix: ImportID prefix that marks a record start.

        Returns:
            Result with the loaded row count, or the first fatal error.
        """
        load_config = self.settings.load
        state = ImportState.START
        states = [state]

        def advance(dst: ImportState) -> None:
            nonlocal state
            if dst is state:
                return
            ensure_transition(state, dst)
            state = dst
            states.append(dst)

        converter = TypeConverter()
        materializer = RowMaterializer(
            table_name,
            specs,
            converter=converter,
            progress_interval=load_config.progress_interval,
        )
        destination = self._destination(table_name)
        columns = destination_columns(specs, include_import_id=load_config.include_import_id)
        predicate = build_boundary_predicate(boundary_prefix)
        loaded = 0

        log.info(
            "Importing file",
            expected_fields=materializer.expected_field_count,
            prefix=boundary_prefix,
        )

        try:
            with RowBuffer(self.loader.batch_size) as buffer:
                advance(ImportState.READING)
                records = read_records(
                    path,
                    materializer.expected_field_count,
                    predicate,
                    encoding=self.settings.source.encoding,
                )
                with closing(records):
                    for record in records:
                        advance(ImportState.MATERIALIZING)
                        buffer.append(self._row_for_load(materializer.materialize(record)))
                        if buffer.is_full:
                            advance(ImportState.LOADING)
                            loaded += self.loader.load(destination, columns, buffer.rows)
                            buffer.clear()
                        advance(ImportState.READING)

                advance(ImportState.LOADING)
                loaded += self.loader.load(destination, columns, buffer.rows)
                advance(ImportState.DONE)
        except (PipeloadError, OSError, UnicodeDecodeError) as e:
            advance(ImportState.FAILED)
            log.error(
                "File import failed",
                error=str(e),
                error_type=type(e).__name__,
                rows_committed=loaded,
            )
            return FileImportResult(
                path=path,
                table_name=table_name,
                status=FileStatus.FAILED,
                warning_count=converter.warning_count,
                error=e,
                states=states,
            )

        status = FileStatus.SUCCEEDED
        if materializer.rows_materialized == 0:
            status = FileStatus.EMPTY
            log.info("Empty file, nothing to load")
        else:
            log.info(
                "File import complete",
                rows=loaded,
                warnings=converter.warning_count,
            )
        return FileImportResult(
            path=path,
            table_name=table_name,
            status=status,
            row_count=loaded,
            warning_count=converter.warning_count,
            states=states,
        )

    def run(
        self,
        files: Sequence[Path],
        specifications: Mapping[str, Sequence[FieldSpecification]],
    ) -> ImportSummary:
        """
        Import every file in order.

        Args:
            files: Source files, processed sequentially.
            specifications: Column specifications by table name.

        Returns:
            Summary of the run.
        """
        source = self.settings.source
        load_config = self.settings.load
        summary = ImportSummary()

        log.info("Starting import run", project=self.settings.project, files=len(files))

        if self.table_manager is not None and self.settings.database.create_schema:
            try:
                self.table_manager.ensure_schema()
            except SQLAlchemyError as e:
                log.error(
                    "Could not create schema",
                    schema=self.settings.schema_name,
                    error=str(e),
                )
                for path in files:
                    parsed = parse_file_name(
                        path, source.prefix_separator, use_prefix=source.use_file_prefix
                    )
                    summary.record(_failed_before_import(path, parsed.table_name, e))
                return summary

        for path in files:
            parsed = parse_file_name(
                path, source.prefix_separator, use_prefix=source.use_file_prefix
            )
            with log_context(file=path.name, table=parsed.table_name):
                specs = specifications.get(parsed.table_name)
                if not specs:
                    log.warning("No column specification for table, skipping file")
                    summary.record(
                        FileImportResult(
                            path=path, table_name=parsed.table_name, status=FileStatus.SKIPPED
                        )
                    )
                    continue

                result = self._prepare_and_import(path, parsed, specs)
                summary.record(result)

            if result.status is FileStatus.FAILED and load_config.stop_on_error:
                log.warning("Stopping run after failed file", file=path.name)
                break

        log.info(
            "Import run finished",
            tables=len(summary.entries),
            rows=summary.total_rows,
            failed=len(summary.failed),
            skipped=len(summary.skipped),
        )
        return summary

    def _prepare_and_import(
        self,
        path: Path,
        parsed: ParsedFileName,
        specs: Sequence[FieldSpecification],
    ) -> FileImportResult:
        if self.table_manager is not None:
            load_config = self.settings.load
            try:
                self.table_manager.prepare(
                    parsed.table_name,
                    specs,
                    load_config.table_mode,
                    include_import_id=load_config.include_import_id,
                )
            except SQLAlchemyError as e:
                log.error("Could not prepare table", error=str(e))
                return _failed_before_import(path, parsed.table_name, e)

        return self.import_file(path, parsed.table_name, specs, parsed.prefix)
