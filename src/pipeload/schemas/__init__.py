"""
Column specification model and data contracts.

FieldSpecification drives conversion and storage; FieldSpecSheetSchema
validates the specification sheet at the system boundary.
"""

from pipeload.schemas.field_spec import (
    IMPORT_ID_COLUMN,
    FieldSpecification,
    FieldSpecSheetSchema,
    SemanticType,
    map_semantic_type,
)

__all__ = [
    "IMPORT_ID_COLUMN",
    "FieldSpecSheetSchema",
    "FieldSpecification",
    "SemanticType",
    "map_semantic_type",
]
