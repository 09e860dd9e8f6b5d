"""
Comparison type inference for raw cell values.

Every cell arrives as text. The classifier decides whether a column should
be compared as a number, a date or plain characters, from a sample value
and the column name.
"""

import re
from enum import Enum

# Two digits, separator, two digits, separator, two more digits (a two or
# four digit year starts with two digits); anything may follow.
DATE_SHAPE = re.compile(r"\d\d[-/]\d\d[-/]\d\d")

NUMERIC_LITERAL = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

# Characters a stringified number may be built from. Dash-separated dates
# fit, slash-separated dates and anything with a time of day do not.
NUMERIC_SHAPE = re.compile(r"[0-9+\-.,eE#$%&']+")

_METADATA_NUMERIC_MARKERS = ("NUM", "DEC", "INT", "FLOAT", "DOUBLE", "LONG", "PIC9", "PIC 9")


class ComparisonType(str, Enum):
    """
    Closed set of comparison kinds.

    Inherits from str so values serialize directly into reports and JSON.
    """

    NUMERIC = "numeric"
    DATE = "date"
    CHARACTER = "character"


def looks_like_date(value: str | None) -> bool:
    """Return True if the value contains a date-shaped run of digits."""
    return bool(value) and DATE_SHAPE.search(value) is not None


def numeric_shaped(value: str | None) -> bool:
    """Return True if the value is made only of characters found in numbers."""
    if value is None:
        return False
    stripped = value.strip()
    return bool(stripped) and NUMERIC_SHAPE.fullmatch(stripped) is not None


def looks_numeric(value: str | None) -> bool:
    """Return True if the value is a signed decimal or scientific literal."""
    if value is None:
        return False
    stripped = value.strip()
    return bool(stripped) and NUMERIC_LITERAL.fullmatch(stripped) is not None


def name_suggests_date(column_name: str | None) -> bool:
    return bool(column_name) and "date" in column_name.lower()


def classify(value: str | None, column_name_hint: str | None = None) -> ComparisonType:
    """
    Decide how a value should be compared.

    Args:
        value: Raw cell text (None for a database null)
        column_name_hint: Column name; a name containing "date" marks the
            column as a date

    Returns:
        The inferred comparison type; never raises
    """
    if value is None or value == "":
        return ComparisonType.CHARACTER

    if looks_like_date(value) or name_suggests_date(column_name_hint):
        return ComparisonType.DATE

    if looks_numeric(value):
        return ComparisonType.NUMERIC

    return ComparisonType.CHARACTER


def classify_target(value: str | None, column_name: str | None) -> ComparisonType:
    """
    Classify a target column while priming.

    The name hint wins even over a null value, so a date column whose first
    matched value is null is still compared as a date.
    """
    if name_suggests_date(column_name):
        return ComparisonType.DATE
    return classify(value, column_name)


def type_from_metadata(source_type: str | None) -> ComparisonType:
    """
    Map a catalog data type such as "decimal(10,2)" or "PIC 9(5)".

    Args:
        source_type: Source-system type name from the metadata catalog

    Returns:
        Comparison type to start the column with before priming
    """
    if not source_type:
        return ComparisonType.CHARACTER

    upper = source_type.upper()
    if any(marker in upper for marker in _METADATA_NUMERIC_MARKERS):
        return ComparisonType.NUMERIC
    if "DATE" in upper:
        return ComparisonType.DATE
    return ComparisonType.CHARACTER
