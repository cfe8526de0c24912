"""
Typed row construction from raw records.

Column 0 of every typed row is the raw ImportID; the remaining columns
follow the field specification order.
"""

from collections.abc import Sequence
from typing import Any

from pipeload.conversion.converters import ConversionContext, TypeConverter
from pipeload.parsing.records import Record
from pipeload.schemas.field_spec import FieldSpecification, SemanticType
from pipeload.utils.logging import get_logger

log = get_logger(__name__)

TypedRow = tuple[Any, ...]


class RowMaterializer:
    """
    Applies the TypeConverter across a record.

    Args:
        table_name: Destination table, used in diagnostics.
        specs: Ordered column specifications.
        converter: Converter to use; a fresh TypeConverter by default.
        progress_interval: Emit a progress event every N rows.
    """

    def __init__(
        self,
        table_name: str,
        specs: Sequence[FieldSpecification],
        converter: TypeConverter | None = None,
        progress_interval: int = 10_000,
    ) -> None:
        self.table_name = table_name
        self.specs = tuple(specs)
        self.converter = converter or TypeConverter()
        self.progress_interval = progress_interval
        self.rows_materialized = 0
        # Resolved once; declared types do not change during a file
        self._targets: tuple[SemanticType, ...] = tuple(s.semantic_type for s in self.specs)

    @property
    def expected_field_count(self) -> int:
        """Raw fields per record: one per column plus the ImportID."""
        return len(self.specs) + 1

    def materialize(self, record: Record) -> TypedRow:
        """
        Convert one record into a typed row.

        Args:
            record: Record with exactly expected_field_count raw values.

        Returns:
            Tuple of the raw ImportID followed by one typed value per spec.

        Raises:
            ConversionError: On the first fatal conversion failure.
        """
        if len(record.raw_values) != self.expected_field_count:
            msg = (
                f"Record at line {record.start_line} has {len(record.raw_values)} values, "
                f"expected {self.expected_field_count}"
            )
            raise ValueError(msg)

        values: list[Any] = [record.raw_values[0]]
        for spec, target, raw in zip(
            self.specs, self._targets, record.raw_values[1:], strict=True
        ):
            context = ConversionContext(
                table=self.table_name, field=spec.column_name, line=record.start_line
            )
            values.append(self.converter.convert(raw, target, context))

        self.rows_materialized += 1
        if self.rows_materialized % self.progress_interval == 0:
            log.info(
                "Materialization progress",
                table=self.table_name,
                rows=self.rows_materialized,
            )
        return tuple(values)
