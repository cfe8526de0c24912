"""
Exception hierarchy for the import pipeline.

Fatal errors abort the import of the current file. The only non-fatal
conversion error is BooleanFormatError, which degrades to False.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ConversionDiagnostic:
    """Operator-facing context for a failed or degraded field conversion."""

    table_name: str
    field_name: str
    row_line: int
    raw_value: str
    target_type: str
    guidance: str

    def describe(self) -> str:
        """Render the diagnostic as a single message."""
        return (
            f"Cannot convert value {self.raw_value!r} to {self.target_type} "
            f"(table {self.table_name}, field {self.field_name}, line {self.row_line}). "
            f"{self.guidance}"
        )


class PipeloadError(Exception):
    """Base class for all import errors."""


class FieldCountMismatch(PipeloadError):
    """A logical record does not have the expected number of fields."""

    def __init__(
        self,
        *,
        first_line: int,
        last_line: int,
        expected: int,
        actual: int,
        preview: str,
    ) -> None:
        self.first_line = first_line
        self.last_line = last_line
        self.expected = expected
        self.actual = actual
        self.preview = preview
        if first_line == last_line:
            location = f"line {first_line}"
        else:
            location = f"lines {first_line}-{last_line}"
        super().__init__(
            f"Field count mismatch at {location}: expected {expected} fields, "
            f"found {actual}. Record starts with: {preview!r}"
        )


class ConversionError(PipeloadError):
    """A raw field value could not be converted to its target type."""

    fatal = True
    fallback: object = None

    def __init__(self, diagnostic: ConversionDiagnostic) -> None:
        self.diagnostic = diagnostic
        super().__init__(diagnostic.describe())


class TemporalFormatError(ConversionError):
    """A value matched none of the accepted date/time formats."""


class NumericFormatError(ConversionError):
    """A value is not a valid number for its integer or floating target."""


class BooleanFormatError(ConversionError):
    """A value is not a recognised boolean token. Degrades to False."""

    fatal = False
    fallback = False


class BulkLoadFailure(PipeloadError):
    """The destination sink rejected a batch."""

    def __init__(self, destination: str, row_count: int, cause: BaseException) -> None:
        self.destination = destination
        self.row_count = row_count
        self.cause = cause
        super().__init__(
            f"Bulk load of {row_count} rows into {destination} failed: "
            f"{type(cause).__name__}: {cause}"
        )


class SpecificationError(PipeloadError):
    """The column specification sheet is missing or malformed."""


class PostInstallError(PipeloadError):
    """A post-install SQL script failed."""

    def __init__(self, script: str, batch: int, cause: BaseException) -> None:
        self.script = script
        self.batch = batch
        self.cause = cause
        super().__init__(f"Post-install script {script} failed in batch {batch}: {cause}")
