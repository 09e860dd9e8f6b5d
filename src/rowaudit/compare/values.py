"""
Type-aware cell comparison.

Null and blank cells are settled first by the same rules for every type.
Remaining cells are compared with the rule for the column's comparison
type. Numeric and date parse failures never raise: a numeric failure falls
back to character comparison for that cell, a date failure degrades the
whole column to character comparison for the rest of the run.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, DecimalException, InvalidOperation
from enum import Enum
from typing import TYPE_CHECKING

from ..errors import ConfigurationError
from ..results import Degraded, Ok, ParseResult
from .classifier import ComparisonType, looks_like_date, looks_numeric, numeric_shaped
from .dates import DateFormatCache, resolve

if TYPE_CHECKING:
    from ..columns import ColumnDescriptor

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    """Result of comparing one pair of cells."""

    EQUAL = "equal"
    UNEQUAL = "unequal"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class Tolerance:
    """
    Maximum numeric difference before two numbers are reported unequal.

    In percent mode the difference is taken relative to the target value.
    """

    amount: Decimal = Decimal(0)
    percent: bool = False

    @classmethod
    def parse(cls, text: str | None) -> "Tolerance":
        """
        Parse "0.05" (absolute) or "5%" (percentage of the target value).

        Raises:
            ConfigurationError: If the text is not a non-negative number
        """
        if text is None or not text.strip():
            return cls()

        raw = text.strip()
        percent = raw.endswith("%")
        if percent:
            raw = raw[:-1].strip()

        try:
            amount = Decimal(raw)
        except InvalidOperation:
            raise ConfigurationError(f"Invalid tolerance {text!r}") from None

        if not amount.is_finite() or amount < 0:
            raise ConfigurationError(f"Tolerance must be a non-negative number: {text!r}")

        return cls(amount=amount, percent=percent)

    @property
    def is_zero(self) -> bool:
        return self.amount == 0

    def exceeded(self, target: Decimal, source: Decimal) -> bool:
        """Return True if target and source differ by more than the tolerance."""
        difference = abs(target - source)
        if self.is_zero:
            return difference != 0
        if not self.percent:
            return difference > self.amount
        if target == 0:
            # Relative difference is undefined unless both sides are zero
            return source != 0
        return difference / abs(target) * 100 > self.amount

    def __str__(self) -> str:
        return f"{self.amount}%" if self.percent else str(self.amount)


@dataclass(frozen=True)
class Comparison:
    """Outcome of one cell comparison and the rule that produced it."""

    outcome: Outcome
    type_used: ComparisonType
    degraded: bool = False
    reason: str | None = None
    target_format: str | None = None
    source_format: str | None = None

    @property
    def unequal(self) -> bool:
        return self.outcome == Outcome.UNEQUAL


def _is_blank(value: str | None) -> bool:
    return value is None or value.strip() == ""


def compare_blanks(target: str | None, source: str | None) -> Outcome | None:
    """
    Settle comparisons involving nulls or blank strings.

    Returns:
        The outcome, or None when both cells hold non-blank text and the
        type-specific rule must decide
    """
    target_blank = _is_blank(target)
    source_blank = _is_blank(source)

    if not target_blank and not source_blank:
        return None
    if target_blank != source_blank:
        return Outcome.UNEQUAL
    if target is None or source is None:
        return Outcome.EQUAL

    # Both present and blank: runs of spaces must have the same length
    if target and source and len(target) != len(source):
        return Outcome.UNEQUAL
    return Outcome.EQUAL


def compare_characters(target: str, source: str) -> Outcome:
    return Outcome.EQUAL if target.strip() == source.strip() else Outcome.UNEQUAL


def parse_decimal(value: str) -> ParseResult:
    """Parse a numeric literal into an exact Decimal."""
    if not looks_numeric(value):
        return Degraded(f"{value!r} is not a number")
    try:
        return Ok(Decimal(value.strip()))
    except InvalidOperation:
        return Degraded(f"{value!r} is not a number")


class ValueComparator:
    """
    Compares target and source cells for a column.

    Args:
        formats: Date formats in force for the run
        tolerance: Numeric tolerance
        numeric_strings: Compare character columns numerically (or as dates)
            when both cells look like numbers (or dates)
        quiet: Suppress per-cell warnings
    """

    def __init__(
        self,
        formats: DateFormatCache,
        tolerance: Tolerance | None = None,
        numeric_strings: bool = True,
        quiet: bool = False,
    ):
        self.formats = formats
        self.tolerance = tolerance or Tolerance()
        self.numeric_strings = numeric_strings
        self.quiet = quiet
        self._dispatch = {
            ComparisonType.NUMERIC: self._compare_numeric,
            ComparisonType.DATE: self._compare_date_column,
            ComparisonType.CHARACTER: self._compare_character_column,
        }

    def compare(
        self,
        column: "ColumnDescriptor",
        target: str | None,
        source: str | None,
    ) -> Comparison:
        """
        Compare one pair of cells.

        Args:
            column: Column being compared; its type may degrade
            target: Target cell text (None for null)
            source: Source cell text (None for null)

        Returns:
            Comparison describing the outcome
        """
        if not column.audited:
            return Comparison(Outcome.SKIPPED, column.comparison_type)

        blank_outcome = compare_blanks(target, source)
        if blank_outcome is not None:
            return Comparison(blank_outcome, column.comparison_type)

        return self._dispatch[column.comparison_type](column, target, source)

    def _warn(self, message: str) -> None:
        if not self.quiet:
            logger.warning(message)

    def _character(self, target: str, source: str, degraded: bool = False, reason: str | None = None) -> Comparison:
        return Comparison(
            compare_characters(target, source),
            ComparisonType.CHARACTER,
            degraded=degraded,
            reason=reason,
        )

    def _compare_character_column(self, column, target: str, source: str) -> Comparison:
        if not self.numeric_strings or column.degraded:
            return self._character(target, source)

        # Only number-like text may be read as a date here; slash dates and
        # timestamps with a time of day stay character comparisons
        if not numeric_shaped(target) or not numeric_shaped(source):
            return self._character(target, source)

        target_date = looks_like_date(target)
        source_date = looks_like_date(source)
        if target_date and source_date:
            return self._compare_dates(column, target, source, degrade_column=False, refine=False)
        if target_date or source_date:
            return self._character(target, source)

        if looks_numeric(target) and looks_numeric(source):
            return self._compare_numeric(column, target, source)

        return self._character(target, source)

    def _compare_numeric(self, column, target: str, source: str) -> Comparison:
        parsed_target = parse_decimal(target)
        parsed_source = parse_decimal(source)

        if isinstance(parsed_target, Ok) and isinstance(parsed_source, Ok):
            try:
                unequal = self.tolerance.exceeded(parsed_target.value, parsed_source.value)
            except DecimalException as e:
                reason = (
                    f"column {column.name}: {target!r} and {source!r} are out of "
                    f"arithmetic range ({type(e).__name__}), compared as characters"
                )
            else:
                return Comparison(
                    Outcome.UNEQUAL if unequal else Outcome.EQUAL,
                    ComparisonType.NUMERIC,
                )
        else:
            failed = parsed_target if isinstance(parsed_target, Degraded) else parsed_source
            reason = f"column {column.name}: {failed.reason}, compared as characters"
        self._warn(f"Numeric comparison failed for {reason}")
        return self._character(target, source, degraded=True, reason=reason)

    def _compare_date_column(self, column, target: str, source: str) -> Comparison:
        return self._compare_dates(column, target, source, degrade_column=True)

    def _compare_dates(
        self,
        column: "ColumnDescriptor",
        target: str,
        source: str,
        degrade_column: bool,
        refine: bool = True,
    ) -> Comparison:
        source_format = self.formats.learn_source_format(column.ordinal, source)
        if source_format is None:
            return self._date_fallback(
                column, target, source, degrade_column,
                f"source date format of {source!r} could not be determined",
            )

        target_format = self.formats.target_format
        if looks_like_date(target) and not target_format.round_trips(target):
            if refine:
                self.formats.refine_target(target)
                target_format = self.formats.target_format
            else:
                # Character columns read their own format without touching the run's
                target_format = resolve(target, target_format) or target_format

        parsed_target = target_format.parse(target)
        if not isinstance(parsed_target, Ok):
            return self._date_fallback(column, target, source, degrade_column, parsed_target.reason)

        parsed_source = source_format.parse(source)
        if not isinstance(parsed_source, Ok):
            return self._date_fallback(column, target, source, degrade_column, parsed_source.reason)

        equal = parsed_target.value == parsed_source.value
        return Comparison(
            Outcome.EQUAL if equal else Outcome.UNEQUAL,
            ComparisonType.DATE,
            target_format=str(target_format),
            source_format=str(source_format),
        )

    def _date_fallback(
        self,
        column: "ColumnDescriptor",
        target: str,
        source: str,
        degrade_column: bool,
        reason: str,
    ) -> Comparison:
        message = f"column {column.name}: {reason}"
        if degrade_column and column.degrade(message):
            self._warn(f"Date column {column.name} degraded to character comparison: {reason}")
        else:
            self._warn(f"Date comparison failed for {message}, compared as characters")
        return self._character(target, source, degraded=True, reason=message)
