"""
Typed conversion of raw field values.
"""

from pipeload.conversion.converters import (
    CONVERTERS,
    TEMPORAL_FORMATS,
    ConversionContext,
    TypeConverter,
    format_temporal,
    is_null,
)
from pipeload.conversion.materializer import RowMaterializer, TypedRow

__all__ = [
    "CONVERTERS",
    "TEMPORAL_FORMATS",
    "ConversionContext",
    "RowMaterializer",
    "TypeConverter",
    "TypedRow",
    "format_temporal",
    "is_null",
]
