"""Pytest configuration and shared fixtures."""

from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy import Engine, create_engine

from pipeload.config import (
    DatabaseConfig,
    ImportSettings,
    LoadConfig,
    SourceConfig,
    SpecificationConfig,
)
from pipeload.conversion.converters import ConversionContext
from pipeload.schemas import FieldSpecification


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def context() -> ConversionContext:
    """Conversion context used by converter tests."""
    return ConversionContext(table="Employee", field="Value", line=7)


@pytest.fixture
def employee_specs() -> list[FieldSpecification]:
    """Name/Age/Active specification."""
    return [
        FieldSpecification(column_name="Name", declared_type="NVARCHAR", precision=100),
        FieldSpecification(column_name="Age", declared_type="INT"),
        FieldSpecification(column_name="Active", declared_type="BIT"),
    ]


@pytest.fixture
def sqlite_engine(tmp_path: Path) -> Iterator[Engine]:
    """File-backed SQLite engine, disposed after the test."""
    engine = create_engine(f"sqlite:///{tmp_path / 'destination.db'}")
    yield engine
    engine.dispose()


@pytest.fixture
def make_settings(tmp_path: Path) -> Callable[..., ImportSettings]:
    """Factory for ImportSettings pointing at tmp_path."""

    def factory(**load_overrides: Any) -> ImportSettings:
        return ImportSettings(
            project="test-import",
            database=DatabaseConfig(url=f"sqlite:///{tmp_path / 'destination.db'}"),
            source=SourceConfig(data_dir=tmp_path / "data"),
            specification=SpecificationConfig(path=tmp_path / "spec.csv"),
            load=LoadConfig(**load_overrides),
        )

    return factory


@pytest.fixture
def write_data_file(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write a data file below tmp_path/data and return its path."""

    def writer(name: str, content: str) -> Path:
        data_dir = tmp_path / "data"
        data_dir.mkdir(exist_ok=True)
        path = data_dir / name
        path.write_bytes(content.encode("utf-8"))
        return path

    return writer


@pytest.fixture
def spec_csv(tmp_path: Path) -> Path:
    """Specification sheet as CSV with two tables."""
    path = tmp_path / "spec.csv"
    path.write_text(
        "TableName,ColumnName,DataType,Precision,Scale\n"
        "Employee,Name,NVARCHAR,100,\n"
        "Employee,Age,INT,,\n"
        "Employee,Active,BIT,,\n"
        "Department,Code,VARCHAR,10,\n"
        "Department,Budget,DECIMAL,12,2\n"
        "Department,Founded,DATE,,\n",
        encoding="utf-8",
    )
    return path
