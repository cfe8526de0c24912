"""
Destination table lifecycle.

Builds SQLAlchemy tables from column specifications and prepares them
before a file is loaded (create, truncate or drop-and-create).
"""

from collections.abc import Sequence

from sqlalchemy import (
    CHAR,
    REAL,
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    Engine,
    Float,
    Integer,
    MetaData,
    Numeric,
    SmallInteger,
    String,
    Table,
    Text,
    Unicode,
    UnicodeText,
    inspect,
    text,
)
from sqlalchemy.schema import CreateSchema
from sqlalchemy.types import TypeEngine

from pipeload.config.settings import TableMode
from pipeload.schemas.field_spec import IMPORT_ID_COLUMN, FieldSpecification, SemanticType
from pipeload.utils.logging import get_logger

log = get_logger(__name__)

IMPORT_ID_LENGTH = 255

_UNICODE_TEXT_TYPES = {"NVARCHAR", "NCHAR", "NTEXT"}
_FIXED_TEXT_TYPES = {"CHAR", "NCHAR"}
_MONEY_TYPES = {"MONEY": (19, 4), "SMALLMONEY": (10, 4)}
_DEFAULT_DECIMAL = (18, 0)


def storage_type(spec: FieldSpecification) -> TypeEngine:
    """
    SQLAlchemy column type for a specification.

    Args:
        spec: Column specification.

    Returns:
        Column type instance.
    """
    base = spec.base_type
    semantic = spec.semantic_type

    if semantic is SemanticType.TEMPORAL:
        return Date() if base == "DATE" else DateTime()
    if semantic is SemanticType.INT32:
        return SmallInteger() if base in {"SMALLINT", "TINYINT"} else Integer()
    if semantic is SemanticType.INT64:
        return BigInteger()
    if semantic is SemanticType.DOUBLE:
        return Float(precision=53)
    if semantic is SemanticType.SINGLE:
        return REAL()
    if semantic is SemanticType.DECIMAL:
        if base in _MONEY_TYPES:
            precision, scale = _MONEY_TYPES[base]
        else:
            precision = spec.precision or _DEFAULT_DECIMAL[0]
            scale = spec.scale if spec.scale is not None else _DEFAULT_DECIMAL[1]
        return Numeric(precision=precision, scale=scale)
    if semantic is SemanticType.BOOLEAN:
        return Boolean()

    # Text: no precision means unbounded
    if base in _FIXED_TEXT_TYPES and spec.precision:
        return CHAR(spec.precision)
    if base in _UNICODE_TEXT_TYPES:
        return Unicode(spec.precision) if spec.precision else UnicodeText()
    return String(spec.precision) if spec.precision else Text()


def destination_columns(
    specs: Sequence[FieldSpecification], *, include_import_id: bool = True
) -> list[str]:
    """Column names in load order."""
    names = [spec.column_name for spec in specs]
    return [IMPORT_ID_COLUMN, *names] if include_import_id else names


class TableManager:
    """
    Schema and table lifecycle on the destination engine.

    Args:
        engine: Destination engine.
        schema: Destination schema, or None for the default schema.
    """

    def __init__(self, engine: Engine, schema: str | None = None) -> None:
        self.engine = engine
        self.schema = schema

    def build_table(
        self,
        table_name: str,
        specs: Sequence[FieldSpecification],
        *,
        include_import_id: bool = True,
    ) -> Table:
        """Build (but do not create) the table for a specification."""
        columns: list[Column] = []
        if include_import_id:
            columns.append(Column(IMPORT_ID_COLUMN, String(IMPORT_ID_LENGTH), nullable=False))
        columns.extend(
            Column(spec.column_name, storage_type(spec), nullable=True) for spec in specs
        )
        return Table(table_name, MetaData(), *columns, schema=self.schema)

    def exists(self, table_name: str) -> bool:
        """Check whether the table exists."""
        return inspect(self.engine).has_table(table_name, schema=self.schema)

    def ensure_schema(self) -> None:
        """Create the destination schema if it is missing."""
        if self.schema is None:
            return
        if inspect(self.engine).has_schema(self.schema):
            return
        with self.engine.begin() as conn:
            conn.execute(CreateSchema(self.schema))
        log.info("Created schema", schema=self.schema)

    def create(self, table: Table) -> None:
        """Create the table if it does not exist."""
        table.create(self.engine, checkfirst=True)
        log.info("Table ready", table=table.fullname)

    def drop(self, table_name: str) -> None:
        """Drop the table if it exists."""
        if not self.exists(table_name):
            return
        Table(
            table_name, MetaData(), schema=self.schema, autoload_with=self.engine
        ).drop(self.engine)
        log.info("Dropped table", table=table_name, schema=self.schema)

    def truncate(self, table: Table) -> None:
        """Delete every row of the table."""
        with self.engine.begin() as conn:
            if self.engine.dialect.name == "sqlite":
                conn.execute(table.delete())
            else:
                quoted = self.engine.dialect.identifier_preparer.format_table(table)
                conn.execute(text(f"TRUNCATE TABLE {quoted}"))
        log.info("Truncated table", table=table.fullname)

    def prepare(
        self,
        table_name: str,
        specs: Sequence[FieldSpecification],
        mode: TableMode,
        *,
        include_import_id: bool = True,
    ) -> Table:
        """
        Make the table ready for a load according to the table mode.

        Args:
            table_name: Destination table.
            specs: Ordered column specifications.
            mode: append, truncate or recreate.
            include_import_id: Whether the ImportID column is part of the table.

        Returns:
            The table definition used.
        """
        table = self.build_table(table_name, specs, include_import_id=include_import_id)

        if mode is TableMode.RECREATE:
            self.drop(table_name)
            self.create(table)
        elif mode is TableMode.TRUNCATE:
            if self.exists(table_name):
                self.truncate(table)
            else:
                self.create(table)
        else:
            self.create(table)

        return table
