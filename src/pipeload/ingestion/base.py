"""
Base classes and utilities for tabular input loading.

Provides schema validation at the system boundary for every loader.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Generic, TypeVar

import pandas as pd
import pandera.pandas as pa

from pipeload.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T", bound=pa.DataFrameModel)


class DataLoader(ABC, Generic[T]):
    """
    Abstract base class for tabular loaders.

    Subclasses read a source into a DataFrame; this class validates it
    against a Pandera schema before anything downstream sees it.
    """

    def __init__(self, path: Path, schema: type[T]) -> None:
        """
        Initialize data loader.

        Args:
            path: Source file.
            schema: Pandera schema for validation.
        """
        self.path = path
        self.schema = schema

    @abstractmethod
    def _load_raw(self) -> pd.DataFrame:
        """Load raw data from source. Implemented by subclasses."""
        ...

    def load(self, *, validate: bool = True) -> pd.DataFrame:
        """
        Load and optionally validate data.

        Args:
            validate: Whether to validate against schema.

        Returns:
            Loaded (and optionally validated) DataFrame.

        Raises:
            FileNotFoundError: If the source file does not exist.
            pandera.errors.SchemaErrors: If validation fails.
        """
        if not self.path.exists():
            msg = f"Input file not found: {self.path}"
            raise FileNotFoundError(msg)

        log.info("Loading data", loader=self.__class__.__name__, path=str(self.path))

        df = self._load_raw()
        log.info("Loaded raw data", rows=len(df), columns=list(df.columns))

        if validate:
            df = self.schema.validate(df, lazy=True)
            log.info("Schema validation passed", schema=self.schema.__name__)

        return df
