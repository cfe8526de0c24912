"""
Typed configuration models using Pydantic.

Every toggle that changes how an import run behaves lives here and is
passed explicitly to the orchestrator. Nothing reads process-wide state.
"""

import codecs
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.engine import make_url


class TableMode(str, Enum):
    """What happens to a destination table before a file is loaded."""

    APPEND = "append"  # Create if missing, keep existing rows
    TRUNCATE = "truncate"  # Create if missing, delete existing rows
    RECREATE = "recreate"  # Drop and create from the specification


class DatabaseConfig(BaseModel):
    """Destination database configuration."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(description="SQLAlchemy database URL")
    schema_name: str | None = Field(
        default=None, description="Destination schema (None = database default)"
    )
    create_schema: bool = Field(
        default=False, description="Create the destination schema if it does not exist"
    )

    @property
    def database_name(self) -> str:
        """Database name as used in post-install placeholders."""
        return make_url(self.url).database or ""


class SourceConfig(BaseModel):
    """Where the delimited files come from and how their names are read."""

    model_config = ConfigDict(frozen=True)

    data_dir: Path = Field(default=Path("./data"), description="Directory with input files")
    pattern: str = Field(default="*.txt", description="Glob pattern for input files")
    encoding: str = Field(default="utf-8", description="Text encoding of input files")
    use_file_prefix: bool = Field(
        default=True,
        description="Derive the record-boundary prefix from the file name",
    )
    prefix_separator: str = Field(
        default="_",
        description="Separator between boundary prefix and table name in file names",
    )

    @field_validator("prefix_separator")
    @classmethod
    def validate_separator(cls, v: str) -> str:
        """The separator must be non-empty and must not be the field delimiter."""
        if not v or v == "|":
            msg = f"prefix_separator must be a non-empty string other than '|', got: {v!r}"
            raise ValueError(msg)
        return v

    @field_validator("encoding")
    @classmethod
    def validate_encoding(cls, v: str) -> str:
        """The encoding must be a codec Python knows."""
        try:
            codecs.lookup(v)
        except LookupError as e:
            msg = f"Unknown encoding: {v!r}"
            raise ValueError(msg) from e
        return v

    def discover_files(self) -> list[Path]:
        """List input files in name order."""
        return sorted(p for p in self.data_dir.glob(self.pattern) if p.is_file())


class SpecificationConfig(BaseModel):
    """Location of the column specification sheet."""

    model_config = ConfigDict(frozen=True)

    path: Path = Field(description="Path to the specification spreadsheet or CSV")
    sheet: str | int = Field(default=0, description="Worksheet name or index")


class LoadConfig(BaseModel):
    """Batching and table lifecycle settings."""

    model_config = ConfigDict(frozen=True)

    batch_size: int = Field(default=10_000, ge=1, description="Rows per bulk insert")
    timeout_seconds: int = Field(default=300, ge=1, description="Per-batch sink timeout")
    progress_interval: int = Field(
        default=10_000, ge=1, description="Rows between progress log events"
    )
    table_mode: TableMode = Field(default=TableMode.RECREATE)
    include_import_id: bool = Field(
        default=True, description="Load the leading ImportID field into the destination"
    )
    stop_on_error: bool = Field(
        default=False, description="Stop the run after the first failed file"
    )


class PostInstallConfig(BaseModel):
    """Post-load SQL scripts."""

    model_config = ConfigDict(frozen=True)

    scripts_dir: Path | None = Field(
        default=None, description="Folder with *.sql scripts run after a clean import"
    )


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = Field(default="INFO")
    json_output: bool = Field(default=False)
    log_file: Path | None = Field(default=None)


class ImportSettings(BaseModel):
    """Complete configuration of one import run."""

    model_config = ConfigDict(frozen=True)

    project: str = Field(description="Run identifier used in logs and the summary")

    database: DatabaseConfig
    source: SourceConfig = Field(default_factory=SourceConfig)
    specification: SpecificationConfig
    load: LoadConfig = Field(default_factory=LoadConfig)
    post_install: PostInstallConfig = Field(default_factory=PostInstallConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def schema_name(self) -> str | None:
        """Convenience accessor for the destination schema."""
        return self.database.schema_name
