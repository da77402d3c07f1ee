"""
Cell parsing and column type inference.

Semantic types: integer | float | date | string.

Two numeric parsers are provided:
  to_number    strict:  the whole value must be a number (used for inference)
  parse_float  lenient: reads the leading numeric prefix, so "12kg" → 12.0
                        (used by imputation, outlier removal and coercion)
"""

import math
import re
import warnings
from datetime import date, datetime
from typing import Any, Iterable, NamedTuple, Optional

import numpy as np
import pandas as pd

SAMPLE_SIZE = 100

INTEGER = "integer"
FLOAT = "float"
DATE = "date"
STRING = "string"

COLUMN_TYPES = (INTEGER, FLOAT, DATE, STRING)

_NUMBER_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
_NUMBER_PREFIX_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_INT_PREFIX_RE = re.compile(r"^\s*([+-]?\d+)")
# a four-digit year, or digits joined by a date separator
_DATE_HINT_RE = re.compile(r"\d{4}|\d[-/.]\d")


class Coercion(NamedTuple):
    """Outcome of coercing one cell. converted=False means the value was left as is."""
    value: Any
    converted: bool


def is_missing(value: Any) -> bool:
    """None, the empty string, and NaN/NaT count as missing."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _is_native_number(value: Any) -> bool:
    return isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(
        value, (bool, np.bool_)
    )


def _finite(number: float) -> Optional[float]:
    return number if math.isfinite(number) else None


def to_number(value: Any) -> Optional[float]:
    if _is_native_number(value):
        return _finite(float(value))
    if isinstance(value, str):
        text = value.strip()
        if _NUMBER_RE.match(text):
            return _finite(float(text))
    return None


def parse_float(value: Any) -> Optional[float]:
    if _is_native_number(value):
        return _finite(float(value))
    if isinstance(value, str):
        match = _NUMBER_PREFIX_RE.match(value)
        if match:
            return _finite(float(match.group(1)))
    return None


def parse_int(value: Any) -> Optional[int]:
    if _is_native_number(value):
        number = _finite(float(value))
        return int(number) if number is not None else None
    if isinstance(value, str):
        match = _INT_PREFIX_RE.match(value)
        if match:
            return int(match.group(1))
    return None


def parse_date(value: Any) -> Optional[pd.Timestamp]:
    if isinstance(value, (datetime, date)):
        try:
            return pd.Timestamp(value)
        except (ValueError, OverflowError):
            return None
    if not isinstance(value, str):
        return None
    text = value.strip()
    # "now", "today" or "1 2" are accepted by pandas but are not dates
    if not _DATE_HINT_RE.search(text):
        return None
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            parsed = pd.to_datetime(text, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(parsed):
        return None
    return parsed


def format_date(timestamp: pd.Timestamp) -> str:
    if timestamp.tzinfo is not None:
        timestamp = timestamp.tz_convert("UTC")
    return timestamp.strftime("%Y-%m-%d")


def as_plain_number(number: float):
    """Return an int for integral values so 2.0 serialises as 2."""
    number = float(number)
    if number.is_integer():
        return int(number)
    return number


def infer_column_type(values: Iterable[Any]) -> str:
    """
    Classify a column from its first SAMPLE_SIZE values.

    Missing values are ignored by every check, so a column with no values at
    all passes the numeric check vacuously and is reported as "integer".
    """
    sample = list(values)[:SAMPLE_SIZE]
    present = [v for v in sample if not is_missing(v)]

    if all(to_number(v) is not None for v in present):
        if any("." in str(v) for v in present):
            return FLOAT
        return INTEGER

    if all(parse_date(v) is not None for v in present):
        return DATE

    return STRING


def coerce_value(value: Any, column_type: str) -> Coercion:
    """Cast a non-missing cell to its column's semantic type."""
    if column_type == INTEGER:
        parsed = parse_int(value)
    elif column_type == FLOAT:
        parsed = parse_float(value)
    elif column_type == DATE:
        timestamp = parse_date(value)
        parsed = format_date(timestamp) if timestamp is not None else None
    else:
        return Coercion(value, False)

    if parsed is None:
        return Coercion(value, False)
    return Coercion(parsed, True)
