"""
Date format discovery by round-trip verification.

Date patterns use the familiar letter notation (yyyy, yy, MMM, MM, dd, HH,
mm, ss, SSS, SSSSSS). A sample is matched to a pattern by parsing it and
formatting the parsed instant again; the pattern is accepted only when the
two strings are identical. Candidates are tried in the fixed priority order
of CANDIDATE_PATTERNS.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from ..results import Degraded, Fatal, Ok, ParseResult, unwrap

logger = logging.getLogger(__name__)

DEFAULT_TARGET_FORMAT = "yyyy-MM-dd"

MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

# Priority order: two-digit years before four-digit years; within each,
# slash separators, then space separated month names, then dashes.
# Date-only forms come before time forms, fractional seconds last.
CANDIDATE_PATTERNS: tuple[str, ...] = (
    # Two-digit year, slash separated
    "dd/MM/yy", "yy/MM/dd", "dd/MMM/yy", "yy/MMM/dd",
    "dd/MM/yy HH:mm:ss", "yy/MM/dd HH:mm:ss", "dd/MMM/yy HH:mm:ss", "yy/MMM/dd HH:mm:ss",
    "dd/MM/yy ss:mm:HH", "yy/MM/dd ss:mm:HH", "dd/MMM/yy ss:mm:HH", "yy/MMM/dd ss:mm:HH",
    "dd/MM/yy HH:mm", "yy/MM/dd HH:mm", "dd/MMM/yy HH:mm", "yy/MMM/dd HH:mm",
    # Two-digit year, space separated
    "MMM d, yy HH:mm", "MMM dd, yy HH:mm", "MMM d, yy H:mm", "MMM dd, yy H:mm",
    "d MMM yy HH:mm", "dd MMM yy HH:mm", "d MMM yy H:mm", "dd MMM yy H:mm",
    "MMM d, yy", "MMM dd, yy", "d MMM yy", "dd MMM yy",
    # Two-digit year, dash separated
    "dd-MM-yy", "yy-MM-dd", "dd-MMM-yy", "yy-MMM-dd",
    "dd-MM-yy HH:mm:ss", "yy-MM-dd HH:mm:ss", "dd-MMM-yy HH:mm:ss", "yy-MMM-dd HH:mm:ss",
    "dd-MM-yy ss:mm:HH", "yy-MM-dd ss:mm:HH", "dd-MMM-yy ss:mm:HH", "yy-MMM-dd ss:mm:HH",
    "dd-MM-yy HH:mm", "yy-MM-dd HH:mm", "dd-MMM-yy HH:mm", "yy-MMM-dd HH:mm",
    # Four-digit year, slash separated
    "dd/MM/yyyy", "yyyy/MM/dd", "dd/MMM/yyyy", "yyyy/MMM/dd",
    "dd/MM/yyyy HH:mm:ss", "yyyy/MM/dd HH:mm:ss", "dd/MMM/yyyy HH:mm:ss", "yyyy/MMM/dd HH:mm:ss",
    "dd/MM/yyyy ss:mm:HH", "yyyy/MM/dd ss:mm:HH", "dd/MMM/yyyy ss:mm:HH", "yyyy/MMM/dd ss:mm:HH",
    "dd/MM/yyyy HH:mm", "yyyy/MM/dd HH:mm", "dd/MMM/yyyy HH:mm", "yyyy/MMM/dd HH:mm",
    "yyyy/MM/dd HH:mm:ss.S", "yyyy/MM/dd HH:mm:ss.SS", "yyyy/MM/dd HH:mm:ss.SSS",
    "yyyy/MM/dd HH:mm:ss.SSSSSS",
    # Four-digit year, space separated
    "MMM d, yyyy HH:mm", "MMM dd, yyyy HH:mm", "MMM d, yyyy H:mm", "MMM dd, yyyy H:mm",
    "d MMM yyyy HH:mm", "dd MMM yyyy HH:mm", "d MMM yyyy H:mm", "dd MMM yyyy H:mm",
    "MMM d, yyyy", "MMM dd, yyyy", "d MMM yyyy", "dd MMM yyyy",
    # Four-digit year, dash separated
    "dd-MM-yyyy", "yyyy-MM-dd", "dd-MMM-yyyy", "yyyy-MMM-dd",
    "dd-MM-yyyy HH:mm:ss", "yyyy-MM-dd HH:mm:ss", "dd-MMM-yyyy HH:mm:ss", "yyyy-MMM-dd HH:mm:ss",
    "dd-MM-yyyy ss:mm:HH", "yyyy-MM-dd ss:mm:HH", "dd-MMM-yyyy ss:mm:HH", "yyyy-MMM-dd ss:mm:HH",
    "dd-MM-yyyy HH:mm", "yyyy-MM-dd HH:mm", "dd-MMM-yyyy HH:mm", "yyyy-MMM-dd HH:mm",
    "yyyy-MM-dd HH:mm:ss.S", "yyyy-MM-dd HH:mm:ss.SS", "yyyy-MM-dd HH:mm:ss.SSS",
    "yyyy-MM-dd HH:mm:ss.SSSSSS",
)

_TOKEN = re.compile(
    r"yyyy|yy|MMM|MM|M|dd|d|HH|H|mm|ss|SSSSSS|SSS|SS|S|'[^']*'|[A-Za-z]|[^A-Za-z']+"
)


def expand_two_digit_year(two_digit: int, reference_year: int | None = None) -> int:
    """
    Place a two-digit year in the window 80 years back to 20 years ahead.

    Args:
        two_digit: Year modulo 100
        reference_year: Year the window is centred on (default: this year)

    Returns:
        Four-digit year
    """
    if reference_year is None:
        reference_year = datetime.now().year
    year = (reference_year // 100) * 100 + two_digit
    if year > reference_year + 20:
        year -= 100
    elif year <= reference_year - 80:
        year += 100
    return year


@dataclass(frozen=True)
class _Field:
    """One compiled pattern token."""

    regex: str
    assign: Callable[[dict, str], None] | None
    render: Callable[[datetime], str]


def _set(name: str, convert: Callable[[str], int] = int) -> Callable[[dict, str], None]:
    def assign(parts: dict, text: str) -> None:
        parts[name] = convert(text)
    return assign


def _month_from_name(text: str) -> int:
    lowered = text.lower()
    for index, abbreviation in enumerate(MONTH_ABBREVIATIONS):
        if abbreviation.lower() == lowered:
            return index + 1
    raise ValueError(f"Unknown month name: {text}")


def _fraction(width: int) -> _Field:
    scale = 10 ** (6 - width)
    return _Field(
        regex=rf"(\d{{{width}}})",
        assign=_set("microsecond", lambda text: int(text) * scale),
        render=lambda value: f"{value.microsecond // scale:0{width}d}",
    )


def _literal(text: str) -> _Field:
    return _Field(regex=f"({re.escape(text)})", assign=None, render=lambda value: text)


_FIELDS: dict[str, _Field] = {
    "yyyy": _Field(r"(\d{4})", _set("year"), lambda v: f"{v.year:04d}"),
    "yy": _Field(r"(\d{2})", _set("year", lambda t: expand_two_digit_year(int(t))), lambda v: f"{v.year % 100:02d}"),
    "MMM": _Field(r"([A-Za-z]{3})", _set("month", _month_from_name), lambda v: MONTH_ABBREVIATIONS[v.month - 1]),
    "MM": _Field(r"(\d{2})", _set("month"), lambda v: f"{v.month:02d}"),
    "M": _Field(r"(\d{1,2})", _set("month"), lambda v: str(v.month)),
    "dd": _Field(r"(\d{2})", _set("day"), lambda v: f"{v.day:02d}"),
    "d": _Field(r"(\d{1,2})", _set("day"), lambda v: str(v.day)),
    "HH": _Field(r"(\d{2})", _set("hour"), lambda v: f"{v.hour:02d}"),
    "H": _Field(r"(\d{1,2})", _set("hour"), lambda v: str(v.hour)),
    "mm": _Field(r"(\d{2})", _set("minute"), lambda v: f"{v.minute:02d}"),
    "ss": _Field(r"(\d{2})", _set("second"), lambda v: f"{v.second:02d}"),
    "SSSSSS": _fraction(6),
    "SSS": _fraction(3),
    "SS": _fraction(2),
    "S": _fraction(1),
}


@dataclass(frozen=True)
class DatePattern:
    """
    A compiled date pattern.

    Two patterns are equal when their pattern text is equal.
    """

    pattern: str
    _fields: tuple[_Field, ...] = field(init=False, repr=False, compare=False)
    _regex: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        fields = []
        for token in _TOKEN.findall(self.pattern):
            if token in _FIELDS:
                fields.append(_FIELDS[token])
            elif token.startswith("'"):
                fields.append(_literal(token[1:-1]))
            elif token.isalpha():
                raise ValueError(f"Unsupported pattern letter {token!r} in {self.pattern!r}")
            else:
                fields.append(_literal(token))

        if not any(f.assign is not None for f in fields):
            raise ValueError(f"Pattern {self.pattern!r} contains no date fields")

        object.__setattr__(self, "_fields", tuple(fields))
        object.__setattr__(self, "_regex", re.compile("".join(f.regex for f in fields)))

    @classmethod
    def of(cls, pattern: str) -> "DatePattern":
        """
        Compile a pattern, raising ConfigurationError when it is invalid.

        Args:
            pattern: Pattern text such as "dd/MM/yyyy HH:mm"

        Returns:
            Compiled pattern
        """
        return unwrap(compile_pattern(pattern))

    def parse(self, text: str) -> ParseResult:
        """
        Parse text that must match the whole pattern.

        Returns:
            Ok(datetime) or Degraded(reason)
        """
        match = self._regex.fullmatch(text.strip())
        if match is None:
            return Degraded(f"{text!r} does not match {self.pattern}")

        parts = {"year": 1970, "month": 1, "day": 1}
        try:
            for spec, group in zip(self._fields, match.groups()):
                if spec.assign is not None:
                    spec.assign(parts, group)
            return Ok(datetime(**parts))
        except ValueError as e:
            return Degraded(f"{text!r} is not a valid {self.pattern} date: {e}")

    def format(self, value: datetime) -> str:
        return "".join(spec.render(value) for spec in self._fields)

    def round_trips(self, sample: str) -> bool:
        """Return True if parsing then formatting reproduces the sample exactly."""
        sample = sample.strip()
        result = self.parse(sample)
        if not isinstance(result, Ok):
            return False
        return self.format(result.value) == sample

    def __str__(self) -> str:
        return self.pattern


def compile_pattern(pattern: str) -> ParseResult:
    """
    Compile pattern text.

    Returns:
        Ok(DatePattern), or Fatal(reason) when the pattern cannot be used
    """
    try:
        return Ok(DatePattern(pattern))
    except ValueError as e:
        return Fatal(f"Date pattern {pattern!r} cannot be used: {e}")


CANDIDATES: tuple[DatePattern, ...] = tuple(DatePattern(p) for p in CANDIDATE_PATTERNS)


def resolve(
    sample: str | None,
    hint: DatePattern | None = None,
    candidates: tuple[DatePattern, ...] = CANDIDATES,
) -> DatePattern | None:
    """
    Find the first pattern that round-trips the sample.

    Args:
        sample: Date text to recognise
        hint: Pattern tried first, on its own
        candidates: Priority-ordered patterns tried when the hint does not fit

    Returns:
        The resolved pattern, or None when nothing round-trips
    """
    if not sample or not sample.strip():
        return None

    if hint is not None and hint.round_trips(sample):
        return hint

    for candidate in candidates:
        if candidate.round_trips(sample):
            return candidate

    return None


class DateFormatCache:
    """
    Date formats in force for one run.

    Source formats are resolved per column and never change once found.
    The target side shares a single format, which starts as the configured
    target format, may be replaced while priming the first matched target
    row, and may be refined once more during the run.
    """

    def __init__(
        self,
        target_format: str | None = None,
        source_hint: str | None = None,
    ):
        """
        Initialize the cache.

        Args:
            target_format: Initial target format (default: yyyy-MM-dd)
            source_hint: Source format tried before the candidate list

        Raises:
            ConfigurationError: If either pattern cannot be compiled
        """
        self.target_format = DatePattern.of(target_format or DEFAULT_TARGET_FORMAT)
        self.source_hint = DatePattern.of(source_hint) if source_hint else None
        self._source_formats: dict[int, DatePattern] = {}
        self._refined = False

    @property
    def refined(self) -> bool:
        return self._refined

    def source_format(self, ordinal: int) -> DatePattern | None:
        return self._source_formats.get(ordinal)

    def source_formats(self) -> dict[int, DatePattern]:
        return dict(self._source_formats)

    def learn_source_format(self, ordinal: int, sample: str | None) -> DatePattern | None:
        """
        Return the column's source format, resolving it from the sample if unknown.

        The first successful guess for a column is kept for the rest of the run.
        """
        known = self._source_formats.get(ordinal)
        if known is not None:
            return known

        pattern = resolve(sample, self.source_hint)
        if pattern is not None:
            self._source_formats[ordinal] = pattern
            logger.debug(f"Source column {ordinal + 1} date format resolved to {pattern}")
        return pattern

    def prime_target(self, sample: str | None, column_name: str = "") -> bool:
        """
        Adopt the target format suggested by the first matched target row.

        Args:
            sample: Target value of a date column
            column_name: Column the sample came from, for logging

        Returns:
            True if the sample round-trips with the current or a new format
        """
        pattern = resolve(sample, self.target_format)
        if pattern is None:
            return False
        if pattern == self.target_format:
            return True

        logger.info(
            f"Target date format {self.target_format} replaced by {pattern} "
            f"guessed from column {column_name or '?'} value {sample!r}"
        )
        self.target_format = pattern
        return True

    def refine_target(self, sample: str | None) -> bool:
        """
        Replace the shared target format once per run.

        Only called when the format in force does not round-trip a
        date-shaped target value.

        Returns:
            True if a different round-tripping pattern was adopted
        """
        if self._refined:
            return False

        pattern = resolve(sample, self.target_format)
        if pattern is None or pattern == self.target_format:
            return False

        logger.warning(
            f"Target date format changed mid-run from {self.target_format} to {pattern} "
            f"after value {sample!r}"
        )
        self.target_format = pattern
        self._refined = True
        return True
