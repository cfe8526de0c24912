"""
Streaming reconstruction of logical records from delimited text.
"""

from pipeload.parsing.records import (
    DELIMITER,
    BoundaryPredicate,
    Record,
    RecordReader,
    build_boundary_predicate,
    read_records,
)

__all__ = [
    "DELIMITER",
    "BoundaryPredicate",
    "Record",
    "RecordReader",
    "build_boundary_predicate",
    "read_records",
]
