"""
Column specifications and their semantic conversion targets.

A FieldSpecification describes one destination column. Its declared
(SQL) type decides both how the column is stored and which converter
turns raw text into a typed value.
"""

import re
from enum import Enum
from typing import Any

import pandas as pd
import pandera.pandas as pa
from pandera.typing import Series
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

IMPORT_ID_COLUMN = "ImportID"


class SemanticType(str, Enum):
    """Closed set of conversion targets."""

    TEXT = "Text"
    TEMPORAL = "Temporal"
    INT32 = "Int32"
    INT64 = "Int64"
    DOUBLE = "Double"
    SINGLE = "Single"
    DECIMAL = "Decimal"
    BOOLEAN = "Boolean"


# Declared type (upper case, without length suffix) -> semantic type
_DECLARED_TYPE_MAP: dict[str, SemanticType] = {
    "DATE": SemanticType.TEMPORAL,
    "DATETIME": SemanticType.TEMPORAL,
    "DATETIME2": SemanticType.TEMPORAL,
    "SMALLDATETIME": SemanticType.TEMPORAL,
    "TIMESTAMP": SemanticType.TEMPORAL,
    "INT": SemanticType.INT32,
    "INTEGER": SemanticType.INT32,
    "SMALLINT": SemanticType.INT32,
    "TINYINT": SemanticType.INT32,
    "BIGINT": SemanticType.INT64,
    "FLOAT": SemanticType.DOUBLE,
    "DOUBLE": SemanticType.DOUBLE,
    "DOUBLE PRECISION": SemanticType.DOUBLE,
    "REAL": SemanticType.SINGLE,
    "DECIMAL": SemanticType.DECIMAL,
    "NUMERIC": SemanticType.DECIMAL,
    "MONEY": SemanticType.DECIMAL,
    "SMALLMONEY": SemanticType.DECIMAL,
    "BIT": SemanticType.BOOLEAN,
    "BOOLEAN": SemanticType.BOOLEAN,
    "BOOL": SemanticType.BOOLEAN,
}

# FLOAT(n) with n <= 24 is stored as a 4-byte float
_SINGLE_FLOAT_MAX_PRECISION = 24

# "(p)" or "(p, s)" after the type name; "(MAX)" does not match
_TYPE_ARGUMENTS = re.compile(r"\(\s*(\d+)\s*(?:,\s*(\d+)\s*)?\)")


def normalize_declared_type(declared_type: str) -> str:
    """Upper-case a declared type and drop any '(...)' suffix and extra spaces."""
    base = declared_type.split("(", 1)[0]
    return re.sub(r"\s+", " ", base).strip().upper()


def map_semantic_type(declared_type: str, precision: int | None = None) -> SemanticType:
    """
    Map a declared column type to its conversion target.

    Args:
        declared_type: SQL type name as written in the specification.
        precision: Optional precision (only FLOAT uses it).

    Returns:
        The semantic type; TEXT when no rule matches.
    """
    base = normalize_declared_type(declared_type)
    semantic = _DECLARED_TYPE_MAP.get(base, SemanticType.TEXT)
    if (
        base == "FLOAT"
        and precision is not None
        and 1 <= precision <= _SINGLE_FLOAT_MAX_PRECISION
    ):
        return SemanticType.SINGLE
    return semantic


class FieldSpecification(BaseModel):
    """One destination column."""

    model_config = ConfigDict(frozen=True)

    column_name: str = Field(min_length=1)
    declared_type: str = Field(min_length=1)
    precision: int | None = Field(default=None, ge=0)
    scale: int | None = Field(default=None, ge=0)

    @model_validator(mode="before")
    @classmethod
    def fill_type_arguments(cls, data: Any) -> Any:
        """Take precision and scale from e.g. DECIMAL(10,2) when not given separately."""
        if not isinstance(data, dict) or not isinstance(data.get("declared_type"), str):
            return data
        match = _TYPE_ARGUMENTS.search(data["declared_type"])
        if match is None:
            return data
        data = dict(data)
        if data.get("precision") is None:
            data["precision"] = int(match.group(1))
        if match.group(2) is not None and data.get("scale") is None:
            data["scale"] = int(match.group(2))
        return data

    @field_validator("column_name", "declared_type")
    @classmethod
    def strip_names(cls, v: str) -> str:
        """Trim surrounding whitespace from names."""
        v = v.strip()
        if not v:
            msg = "must not be blank"
            raise ValueError(msg)
        return v

    @field_validator("column_name")
    @classmethod
    def reject_import_id(cls, v: str) -> str:
        """ImportID is implicit and must not be specified again."""
        if v.lower() == IMPORT_ID_COLUMN.lower():
            msg = f"'{IMPORT_ID_COLUMN}' is implicit and cannot be declared as a column"
            raise ValueError(msg)
        return v

    @property
    def semantic_type(self) -> SemanticType:
        """Conversion target derived from the declared type."""
        return map_semantic_type(self.declared_type, self.precision)

    @property
    def base_type(self) -> str:
        """Declared type without length suffix, upper case."""
        return normalize_declared_type(self.declared_type)


class FieldSpecSheetSchema(pa.DataFrameModel):
    """
    Schema for the column specification sheet after header normalisation.

    One row per destination column; row order is column order.
    """

    table_name: Series[str] = pa.Field(
        description="Destination table",
        str_length={"min_value": 1},
    )
    column_name: Series[str] = pa.Field(
        description="Destination column",
        str_length={"min_value": 1},
    )
    data_type: Series[str] = pa.Field(
        description="Declared SQL type",
        str_length={"min_value": 1},
    )
    precision: Series[pd.Int64Dtype] = pa.Field(
        ge=0,
        nullable=True,
        description="Length or numeric precision",
    )
    scale: Series[pd.Int64Dtype] = pa.Field(
        ge=0,
        nullable=True,
        description="Numeric scale",
    )

    @pa.dataframe_check
    def unique_columns_per_table(cls, df: pd.DataFrame) -> bool:
        """A column may be declared only once per table."""
        keys = df["table_name"].str.lower() + "\x00" + df["column_name"].str.lower()
        return not keys.duplicated().any()

    class Config:
        """Schema configuration."""

        name = "FieldSpecSheetSchema"
        strict = False  # Allow extra columns (comments, descriptions)
        coerce = True
