"""
Column specification ingestion.

Reads the specification sheet (Excel workbook or CSV) that lists, per
destination table, the ordered columns with their declared types.
"""

import re
from pathlib import Path

import pandas as pd
from pandera.errors import SchemaErrors
from pydantic import ValidationError

from pipeload.errors import SpecificationError
from pipeload.ingestion.base import DataLoader
from pipeload.schemas.field_spec import FieldSpecification, FieldSpecSheetSchema
from pipeload.utils.logging import get_logger

log = get_logger(__name__)

# Normalised header -> canonical column
COLUMN_MAPPING: dict[str, str] = {
    "tablename": "table_name",
    "table": "table_name",
    "columnname": "column_name",
    "column": "column_name",
    "fieldname": "column_name",
    "datatype": "data_type",
    "type": "data_type",
    "precision": "precision",
    "length": "precision",
    "scale": "scale",
}

REQUIRED_COLUMNS = ("table_name", "column_name", "data_type")

TableSpecifications = dict[str, list[FieldSpecification]]


def _normalize_header(header: object) -> str:
    return re.sub(r"[\s_]+", "", str(header)).lower()


class SpecificationLoader(DataLoader[FieldSpecSheetSchema]):
    """Loader for the column specification sheet."""

    def __init__(self, path: Path, sheet: str | int = 0) -> None:
        """
        Initialize specification loader.

        Args:
            path: Path to a .xlsx/.xlsm workbook or a .csv file.
            sheet: Worksheet name or index (workbooks only).
        """
        super().__init__(path, FieldSpecSheetSchema)
        self.sheet = sheet

    def _load_raw(self) -> pd.DataFrame:
        """Read the sheet as text and map headers to canonical names."""
        suffix = self.path.suffix.lower()
        if suffix in {".xlsx", ".xlsm"}:
            df = pd.read_excel(self.path, sheet_name=self.sheet, dtype=str)
        elif suffix == ".csv":
            df = pd.read_csv(self.path, dtype=str, encoding="utf-8-sig")
        else:
            msg = f"Unsupported specification format: {suffix}"
            raise SpecificationError(msg)

        df = df.rename(
            columns={
                col: COLUMN_MAPPING[_normalize_header(col)]
                for col in df.columns
                if _normalize_header(col) in COLUMN_MAPPING
            }
        )

        missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
        if missing:
            msg = f"Specification {self.path.name} is missing columns: {', '.join(missing)}"
            raise SpecificationError(msg)

        for col in ("precision", "scale"):
            if col not in df.columns:
                df[col] = None

        for col in REQUIRED_COLUMNS:
            df[col] = df[col].str.strip()

        # Spreadsheets often carry trailing blank rows
        df = df.dropna(subset=list(REQUIRED_COLUMNS), how="all").reset_index(drop=True)

        for col in ("precision", "scale"):
            df[col] = pd.to_numeric(df[col], errors="raise").astype("Int64")

        return df

    def load_specifications(self) -> TableSpecifications:
        """
        Load, validate and group the sheet by table.

        Returns:
            Mapping of table name to its ordered column specifications.
            Tables appear in the order of their first row.

        Raises:
            SpecificationError: If the sheet is malformed.
        """
        try:
            df = self.load(validate=True)
        except SchemaErrors as e:
            failures = e.failure_cases.head(5).to_dict(orient="records")
            msg = f"Specification {self.path.name} failed validation: {failures}"
            raise SpecificationError(msg) from e
        except (ValueError, TypeError) as e:
            msg = f"Specification {self.path.name} has non-numeric precision/scale: {e}"
            raise SpecificationError(msg) from e

        return group_specifications(df)


def group_specifications(df: pd.DataFrame) -> TableSpecifications:
    """
    Turn a validated sheet into per-table specification lists.

    Args:
        df: DataFrame conforming to FieldSpecSheetSchema.

    Returns:
        Ordered mapping of table name to FieldSpecification list.
    """
    specifications: TableSpecifications = {}
    for row in df.itertuples(index=False):
        try:
            spec = FieldSpecification(
                column_name=row.column_name,
                declared_type=row.data_type,
                precision=None if pd.isna(row.precision) else int(row.precision),
                scale=None if pd.isna(row.scale) else int(row.scale),
            )
        except ValidationError as e:
            msg = f"Invalid column {row.table_name}.{row.column_name}: {e}"
            raise SpecificationError(msg) from e
        specifications.setdefault(row.table_name, []).append(spec)

    log.info(
        "Loaded column specifications",
        tables=len(specifications),
        columns=sum(len(specs) for specs in specifications.values()),
    )
    return specifications


def load_specifications(path: Path, sheet: str | int = 0) -> TableSpecifications:
    """
    Convenience function to load the column specification.

    Args:
        path: Specification workbook or CSV.
        sheet: Worksheet name or index.

    Returns:
        Mapping of table name to ordered FieldSpecification list.
    """
    try:
        return SpecificationLoader(path, sheet).load_specifications()
    except FileNotFoundError as e:
        raise SpecificationError(str(e)) from e
