"""
Input ingestion layer.

The column specification is loaded here and validated at the
system boundary before any file is imported.
"""

from pipeload.ingestion.spec_reader import (
    SpecificationLoader,
    TableSpecifications,
    load_specifications,
)

__all__ = ["SpecificationLoader", "TableSpecifications", "load_specifications"]
