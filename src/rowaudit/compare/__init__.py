"""
Type inference, date format discovery and value comparison.

This submodule decides how each column is compared:
- Numeric, date or character classification from sample values
- Date format discovery by round-trip verification
- Null/blank equivalence, numeric tolerance and date equality rules
"""

from .classifier import (
    ComparisonType,
    classify,
    classify_target,
    looks_like_date,
    looks_numeric,
    name_suggests_date,
    numeric_shaped,
    type_from_metadata,
)
from .dates import (
    CANDIDATE_PATTERNS,
    DEFAULT_TARGET_FORMAT,
    DateFormatCache,
    DatePattern,
    compile_pattern,
    resolve,
)
from .values import (
    Comparison,
    Outcome,
    Tolerance,
    ValueComparator,
    compare_blanks,
    compare_characters,
    parse_decimal,
)

__all__ = [
    'ComparisonType',
    'classify',
    'classify_target',
    'looks_like_date',
    'looks_numeric',
    'name_suggests_date',
    'numeric_shaped',
    'type_from_metadata',
    'CANDIDATE_PATTERNS',
    'DEFAULT_TARGET_FORMAT',
    'DateFormatCache',
    'DatePattern',
    'compile_pattern',
    'resolve',
    'Comparison',
    'Outcome',
    'Tolerance',
    'ValueComparator',
    'compare_blanks',
    'compare_characters',
    'parse_decimal',
]
