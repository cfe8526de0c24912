"""
Culture-invariant conversion of raw field text to typed values.

Every value passes NULL detection first. Non-NULL values are dispatched
through a registry keyed by SemanticType. Temporal and numeric failures
are fatal; an unrecognised boolean degrades to False with a warning.
"""

import math
import re
import struct
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from pipeload.errors import (
    BooleanFormatError,
    ConversionDiagnostic,
    ConversionError,
    NumericFormatError,
    TemporalFormatError,
)
from pipeload.schemas.field_spec import SemanticType
from pipeload.utils.logging import get_logger

log = get_logger(__name__)

NULL_TOKENS = frozenset({"NULL", "NA", "N/A"})

TRUE_TOKENS = frozenset({"1", "TRUE", "YES", "Y", "T"})
FALSE_TOKENS = frozenset({"0", "FALSE", "NO", "N", "F"})

INT32_RANGE = (-(2**31), 2**31 - 1)
INT64_RANGE = (-(2**63), 2**63 - 1)

# ASCII digits only; no grouping separators
_DECIMAL_PATTERN = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)")
_FLOAT_PATTERN = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


@dataclass(frozen=True)
class ConversionContext:
    """Where a value came from, for diagnostics."""

    table: str
    field: str
    line: int

    def diagnostic(self, raw: str, target: SemanticType, guidance: str) -> ConversionDiagnostic:
        """Build a diagnostic for a value converted in this context."""
        return ConversionDiagnostic(
            table_name=self.table,
            field_name=self.field,
            row_line=self.line,
            raw_value=raw,
            target_type=target.value,
            guidance=guidance,
        )


ConverterFunc = Callable[[str, ConversionContext], Any]


@dataclass(frozen=True)
class TemporalFormat:
    """A strict date/time layout."""

    pattern: str
    regex: re.Pattern[str]
    strptime_format: str
    fraction_digits: int = 0


TEMPORAL_FORMATS: tuple[TemporalFormat, ...] = (
    TemporalFormat(
        "yyyy-MM-dd HH:mm:ss.fff",
        re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2} [0-9]{2}:[0-9]{2}:[0-9]{2}\.[0-9]{3}"),
        "%Y-%m-%d %H:%M:%S.%f",
        3,
    ),
    TemporalFormat(
        "yyyy-MM-dd HH:mm:ss.ff",
        re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2} [0-9]{2}:[0-9]{2}:[0-9]{2}\.[0-9]{2}"),
        "%Y-%m-%d %H:%M:%S.%f",
        2,
    ),
    TemporalFormat(
        "yyyy-MM-dd HH:mm:ss.f",
        re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2} [0-9]{2}:[0-9]{2}:[0-9]{2}\.[0-9]"),
        "%Y-%m-%d %H:%M:%S.%f",
        1,
    ),
    TemporalFormat(
        "yyyy-MM-dd HH:mm:ss",
        re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2} [0-9]{2}:[0-9]{2}:[0-9]{2}"),
        "%Y-%m-%d %H:%M:%S",
    ),
    TemporalFormat(
        "yyyy-MM-dd",
        re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}"),
        "%Y-%m-%d",
    ),
)

ACCEPTED_TEMPORAL_FORMATS = ", ".join(fmt.pattern for fmt in TEMPORAL_FORMATS)


def is_null(raw: str | None) -> bool:
    """
    Check whether a raw value represents NULL.

    Empty and whitespace-only values are NULL, as are NULL, NA and N/A
    in any letter case and with surrounding whitespace.
    """
    if raw is None:
        return True
    text = raw.strip()
    return not text or text.upper() in NULL_TOKENS


def format_temporal(value: datetime, pattern: str) -> str:
    """
    Render a datetime using one of the accepted temporal patterns.

    Args:
        value: Datetime to render.
        pattern: One of the patterns in TEMPORAL_FORMATS.

    Returns:
        The formatted string.
    """
    for fmt in TEMPORAL_FORMATS:
        if fmt.pattern == pattern:
            text = value.strftime(fmt.strptime_format)
            if fmt.fraction_digits:
                text = text[: len(text) - (6 - fmt.fraction_digits)]
            return text
    msg = f"Unknown temporal pattern {pattern!r}. Accepted: {ACCEPTED_TEMPORAL_FORMATS}"
    raise ValueError(msg)


def convert_text(raw: str, context: ConversionContext) -> str:
    """Pass text through unchanged, embedded newlines included."""
    return raw


def convert_temporal(raw: str, context: ConversionContext) -> datetime:
    """Parse a date/time using the first strict format that matches."""
    text = raw.strip()
    for fmt in TEMPORAL_FORMATS:
        if fmt.regex.fullmatch(text) is None:
            continue
        try:
            return datetime.strptime(text, fmt.strptime_format)
        except ValueError:
            # Layout matched but the calendar value is impossible (e.g. month 13)
            break
    raise TemporalFormatError(
        context.diagnostic(
            raw,
            SemanticType.TEMPORAL,
            f"Accepted formats: {ACCEPTED_TEMPORAL_FORMATS}.",
        )
    )


def _parse_decimal(raw: str, context: ConversionContext, target: SemanticType) -> Decimal:
    text = raw.strip()
    if _DECIMAL_PATTERN.fullmatch(text) is None:
        raise NumericFormatError(
            context.diagnostic(
                raw,
                target,
                "Expected a plain number with '.' as decimal separator "
                "and no thousands separators.",
            )
        )
    return Decimal(text)


def _integer_converter(target: SemanticType, bounds: tuple[int, int]) -> ConverterFunc:
    low, high = bounds

    def convert(raw: str, context: ConversionContext) -> int:
        number = _parse_decimal(raw, context, target)
        if number != number.to_integral_value():
            raise NumericFormatError(
                context.diagnostic(
                    raw,
                    target,
                    "Value has a non-zero fractional part; expected a whole number.",
                )
            )
        value = int(number)
        if not low <= value <= high:
            raise NumericFormatError(
                context.diagnostic(
                    raw,
                    target,
                    f"Value is outside the {target.value} range {low} to {high}.",
                )
            )
        return value

    convert.__name__ = f"convert_{target.value.lower()}"
    return convert


convert_int32 = _integer_converter(SemanticType.INT32, INT32_RANGE)
convert_int64 = _integer_converter(SemanticType.INT64, INT64_RANGE)


def _parse_float(raw: str, context: ConversionContext, target: SemanticType) -> float:
    text = raw.strip()
    if _FLOAT_PATTERN.fullmatch(text) is None:
        raise NumericFormatError(
            context.diagnostic(
                raw,
                target,
                "Expected a number with '.' as decimal separator, optional exponent "
                "(e.g. 1.5E-3) and no thousands separators.",
            )
        )
    value = float(text)
    if not math.isfinite(value):
        raise NumericFormatError(
            context.diagnostic(raw, target, f"Value is outside the {target.value} range.")
        )
    return value


def convert_double(raw: str, context: ConversionContext) -> float:
    """Parse a double-precision float."""
    return _parse_float(raw, context, SemanticType.DOUBLE)


def convert_single(raw: str, context: ConversionContext) -> float:
    """Parse a float and round it to single precision."""
    value = _parse_float(raw, context, SemanticType.SINGLE)
    try:
        return struct.unpack("f", struct.pack("f", value))[0]
    except OverflowError as e:
        raise NumericFormatError(
            context.diagnostic(raw, SemanticType.SINGLE, "Value is outside the Single range.")
        ) from e


def convert_decimal(raw: str, context: ConversionContext) -> Decimal:
    """Parse an arbitrary-precision decimal."""
    return _parse_decimal(raw, context, SemanticType.DECIMAL)


def convert_boolean(raw: str, context: ConversionContext) -> bool:
    """Map boolean tokens; unknown tokens raise the non-fatal BooleanFormatError."""
    token = raw.strip().upper()
    if token in TRUE_TOKENS:
        return True
    if token in FALSE_TOKENS:
        return False
    raise BooleanFormatError(
        context.diagnostic(
            raw,
            SemanticType.BOOLEAN,
            "Unrecognised boolean value, loaded as False. "
            "Use 1/TRUE/YES/Y/T or 0/FALSE/NO/N/F.",
        )
    )


CONVERTERS: dict[SemanticType, ConverterFunc] = {
    SemanticType.TEXT: convert_text,
    SemanticType.TEMPORAL: convert_temporal,
    SemanticType.INT32: convert_int32,
    SemanticType.INT64: convert_int64,
    SemanticType.DOUBLE: convert_double,
    SemanticType.SINGLE: convert_single,
    SemanticType.DECIMAL: convert_decimal,
    SemanticType.BOOLEAN: convert_boolean,
}


class TypeConverter:
    """
    Converts raw strings to typed values through a converter registry.

    Args:
        converters: Registry to use instead of CONVERTERS.
        on_warning: Called with the diagnostic of every non-fatal failure.
    """

    def __init__(
        self,
        converters: dict[SemanticType, ConverterFunc] | None = None,
        on_warning: Callable[[ConversionDiagnostic], None] | None = None,
    ) -> None:
        self._converters = dict(CONVERTERS if converters is None else converters)
        self.on_warning = on_warning
        self.warning_count = 0

    def register(self, semantic_type: SemanticType, converter: ConverterFunc) -> None:
        """Add or replace the converter for a semantic type."""
        self._converters[semantic_type] = converter

    def convert(self, raw: str, target: SemanticType, context: ConversionContext) -> Any:
        """
        Convert one raw value.

        Args:
            raw: Field text as read from the file.
            target: Semantic type of the destination column.
            context: Table, field and line for diagnostics.

        Returns:
            The typed value, or None for NULL.

        Raises:
            ConversionError: On any fatal conversion failure.
        """
        if is_null(raw):
            return None

        converter = self._converters.get(target)
        if converter is None:
            msg = f"No converter registered for {target.value}"
            raise KeyError(msg)

        try:
            return converter(raw, context)
        except ConversionError as e:
            if e.fatal:
                raise
            self._warn(e.diagnostic)
            return e.fallback

    def _warn(self, diagnostic: ConversionDiagnostic) -> None:
        self.warning_count += 1
        log.warning(
            "Non-fatal conversion failure",
            table=diagnostic.table_name,
            field=diagnostic.field_name,
            line=diagnostic.row_line,
            value=diagnostic.raw_value,
            target=diagnostic.target_type,
            guidance=diagnostic.guidance,
        )
        if self.on_warning is not None:
            self.on_warning(diagnostic)
