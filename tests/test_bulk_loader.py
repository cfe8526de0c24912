"""Tests for bulk loading and the SQLAlchemy sink."""

from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy import Engine, select

from pipeload.config import DatabaseConfig
from pipeload.errors import BulkLoadFailure
from pipeload.loading import (
    BulkLoader,
    Destination,
    SqlAlchemyBulkSink,
    TableManager,
    create_destination_engine,
)
from pipeload.schemas import FieldSpecification


class RecordingSink:
    """Sink that keeps every call for assertions."""

    def __init__(self, fail_with: Exception | None = None) -> None:
        self.calls: list[dict[str, Any]] = []
        self.fail_with = fail_with

    def write(
        self,
        destination: Destination,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        *,
        timeout: int | None = None,
    ) -> int:
        self.calls.append(
            {
                "destination": destination,
                "columns": list(columns),
                "rows": list(rows),
                "timeout": timeout,
            }
        )
        if self.fail_with is not None:
            raise self.fail_with
        return len(rows)


class TestDestination:
    """Tests for Destination naming."""

    def test_qualified_name(self) -> None:
        """Test schema-qualified and bare names."""
        assert Destination("Employee", "hr").qualified_name == "hr.Employee"
        assert Destination("Employee").qualified_name == "Employee"


class TestBulkLoader:
    """Tests for BulkLoader against a fake sink."""

    def test_whole_buffer_in_one_call(self) -> None:
        """Test that the buffer is handed over in a single call."""
        sink = RecordingSink()
        loader = BulkLoader(sink, batch_size=100, timeout_seconds=30)
        rows = [("EMP_1", "Alice"), ("EMP_2", "Bob")]

        accepted = loader.load(Destination("Employee", "hr"), ["ImportID", "Name"], rows)

        assert accepted == 2
        assert len(sink.calls) == 1
        assert sink.calls[0]["rows"] == rows
        assert sink.calls[0]["columns"] == ["ImportID", "Name"]
        assert sink.calls[0]["timeout"] == 30

    def test_empty_buffer_skips_sink(self) -> None:
        """Test that nothing is sent for an empty buffer."""
        sink = RecordingSink()
        assert BulkLoader(sink).load(Destination("Employee"), ["ImportID"], []) == 0
        assert sink.calls == []

    def test_sink_error_wrapped(self) -> None:
        """Test that sink errors become BulkLoadFailure without retry."""
        cause = RuntimeError("constraint violated")
        sink = RecordingSink(fail_with=cause)
        loader = BulkLoader(sink)

        with pytest.raises(BulkLoadFailure, match="hr.Employee") as exc_info:
            loader.load(Destination("Employee", "hr"), ["ImportID"], [("EMP_1",)])

        assert exc_info.value.cause is cause
        assert exc_info.value.row_count == 1
        assert exc_info.value.__cause__ is cause
        assert len(sink.calls) == 1

    def test_defaults(self) -> None:
        """Test the default batch size and timeout."""
        loader = BulkLoader(RecordingSink())
        assert loader.batch_size == 10_000
        assert loader.timeout_seconds == 300

    def test_invalid_batch_size(self) -> None:
        """Test that a non-positive batch size is rejected."""
        with pytest.raises(ValueError, match="batch_size"):
            BulkLoader(RecordingSink(), batch_size=0)


class TestSqlAlchemyBulkSink:
    """Tests for the SQLAlchemy sink on SQLite."""

    def test_insert_typed_rows(
        self, sqlite_engine: Engine, employee_specs: list[FieldSpecification]
    ) -> None:
        """Test that typed rows land with their types intact."""
        specs = [
            *employee_specs,
            FieldSpecification(column_name="HireDate", declared_type="DATETIME"),
        ]
        table = TableManager(sqlite_engine).build_table("Employee", specs)
        table.create(sqlite_engine)
        sink = SqlAlchemyBulkSink(sqlite_engine)
        columns = ["ImportID", "Name", "Age", "Active", "HireDate"]
        rows = [
            ("EMP_1", "Alice", 34, True, datetime(2020, 1, 2, 3, 4, 5)),
            ("EMP_2", None, None, False, None),
        ]

        accepted = sink.write(Destination("Employee"), columns, rows, timeout=5)

        assert accepted == 2
        with sqlite_engine.connect() as conn:
            stored = conn.execute(select(table).order_by(table.c.ImportID)).all()
        assert [tuple(row) for row in stored] == rows

    def test_missing_table_raises(self, sqlite_engine: Engine) -> None:
        """Test that writing to a missing table fails through the loader."""
        loader = BulkLoader(SqlAlchemyBulkSink(sqlite_engine))

        with pytest.raises(BulkLoadFailure, match="Missing"):
            loader.load(Destination("Missing"), ["ImportID"], [("X_1",)])

    def test_failed_batch_rolls_back(
        self, sqlite_engine: Engine, employee_specs: list[FieldSpecification]
    ) -> None:
        """Test that a rejected batch leaves no rows behind."""
        table = TableManager(sqlite_engine).build_table("Employee", employee_specs)
        table.create(sqlite_engine)
        loader = BulkLoader(SqlAlchemyBulkSink(sqlite_engine))
        columns = ["ImportID", "Name", "Age", "Active"]
        # ImportID is NOT NULL; the second row violates it
        rows = [("EMP_1", "Alice", 1, True), (None, "Bob", 2, False)]

        with pytest.raises(BulkLoadFailure):
            loader.load(Destination("Employee"), columns, rows)

        with sqlite_engine.connect() as conn:
            assert conn.execute(select(table)).all() == []


class TestCreateDestinationEngine:
    """Tests for engine creation."""

    def test_sqlite_engine(self, tmp_path: Path) -> None:
        """Test that a plain URL yields a working engine."""
        engine = create_destination_engine(DatabaseConfig(url=f"sqlite:///{tmp_path / 'x.db'}"))
        try:
            assert engine.dialect.name == "sqlite"
        finally:
            engine.dispose()
