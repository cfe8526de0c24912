"""
Logical record reconstruction for pipe-delimited files.

Field values may contain line breaks, so one logical record can span
several physical lines. The reader keeps appending lines to the current
record until it holds the expected number of fields, or until the next
line looks like the start of a new record.

There is no escaping: a '|' inside a value is indistinguishable from a
field boundary. A continuation line that happens to look like a record
start (ID prefix followed by '|') ends the current record early; that
record then fails its field count check.
"""

import re
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

from pipeload.errors import FieldCountMismatch
from pipeload.utils.logging import get_logger

log = get_logger(__name__)

DELIMITER = "|"
PREVIEW_LENGTH = 200

BoundaryPredicate = Callable[[str], bool]


@dataclass(frozen=True)
class Record:
    """One logical data row as raw strings. Value 0 is the ImportID."""

    start_line: int
    raw_values: tuple[str, ...]

    @property
    def import_id(self) -> str:
        """The opaque row identifier."""
        return self.raw_values[0]


def build_boundary_predicate(prefix: str | None = None) -> BoundaryPredicate:
    """
    Build the predicate that recognises the first line of a record.

    A record starts with its ImportID: the prefix followed by one or more
    of A-Z, 0-9, '_' or '-', then the delimiter. Matching is case-sensitive.

    Args:
        prefix: Literal ID prefix, usually taken from the file name.

    Returns:
        Function returning True for lines that start a new record.
    """
    escaped = re.escape(prefix) if prefix else ""
    pattern = re.compile(rf"^{escaped}[A-Z0-9_-]+{re.escape(DELIMITER)}")
    return lambda line: pattern.match(line) is not None


def _preview(text: str) -> str:
    if len(text) <= PREVIEW_LENGTH:
        return text
    return text[:PREVIEW_LENGTH] + "..."


class RecordReader:
    """
    Forward-only reader of logical records.

    Iterating the reader consumes the underlying lines; a reader cannot
    be restarted.

    Args:
        lines: Physical lines, with or without trailing line terminators.
        expected_field_count: Exact number of fields per record,
            including the leading ImportID.
        is_record_start: Boundary predicate, see build_boundary_predicate.
    """

    def __init__(
        self,
        lines: Iterable[str],
        expected_field_count: int,
        is_record_start: BoundaryPredicate,
    ) -> None:
        if expected_field_count < 1:
            msg = f"expected_field_count must be positive, got {expected_field_count}"
            raise ValueError(msg)
        self._lines = iter(lines)
        self.expected_field_count = expected_field_count
        self.is_record_start = is_record_start
        self._pending: str | None = None
        self._line_number = 0
        self.records_read = 0

    def _next_line(self) -> str | None:
        """Consume the next physical line, stripped of its terminator."""
        if self._pending is not None:
            line, self._pending = self._pending, None
        else:
            raw = next(self._lines, None)
            if raw is None:
                return None
            line = raw.rstrip("\r\n")
            if self._line_number == 0:
                line = line.removeprefix("\ufeff")
        self._line_number += 1
        return line

    def _peek_line(self) -> str | None:
        """Look at the next physical line without consuming it."""
        if self._pending is None:
            raw = next(self._lines, None)
            if raw is None:
                return None
            self._pending = raw.rstrip("\r\n")
        return self._pending

    def __iter__(self) -> Iterator[Record]:
        while True:
            line = self._next_line()
            if line is None:
                return
            if not line.strip():
                continue
            yield self._read_record(line)

    def _read_record(self, first: str) -> Record:
        start_line = self._line_number
        text = first
        fields = text.split(DELIMITER)

        while len(fields) < self.expected_field_count:
            upcoming = self._peek_line()
            if upcoming is None or self.is_record_start(upcoming):
                break
            text = f"{text}\n{self._next_line()}"
            fields = text.split(DELIMITER)

        if len(fields) != self.expected_field_count:
            raise FieldCountMismatch(
                first_line=start_line,
                last_line=self._line_number,
                expected=self.expected_field_count,
                actual=len(fields),
                preview=_preview(text),
            )

        self.records_read += 1
        if self._line_number > start_line:
            log.debug(
                "Merged multi-line record",
                first_line=start_line,
                last_line=self._line_number,
            )
        return Record(start_line=start_line, raw_values=tuple(fields))


def read_records(
    path: Path,
    expected_field_count: int,
    is_record_start: BoundaryPredicate,
    *,
    encoding: str = "utf-8",
) -> Iterator[Record]:
    """
    Stream logical records from a file.

    The file stays open only while the returned generator is consumed
    and is closed when the generator finishes or is closed.

    Args:
        path: Pipe-delimited text file (CR/LF or LF line endings).
        expected_field_count: Fields per record including the ImportID.
        is_record_start: Boundary predicate.
        encoding: Text encoding of the file.

    Yields:
        Records in file order.

    Raises:
        FieldCountMismatch: On the first structurally invalid record.
    """
    with path.open(encoding=encoding, newline="") as handle:
        yield from RecordReader(handle, expected_field_count, is_record_start)
