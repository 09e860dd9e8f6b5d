"""
Run context: the single owner of all per-run state.

Column descriptors, the key layout, counters, date formats and thresholds
live on one RunContext that is handed to every component of a run.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from ..columns import ColumnDescriptor
from ..compare.dates import DateFormatCache
from ..errors import ConfigurationError

DEFAULT_MAX_ERRORS = 20000
DEFAULT_MAX_ROWS_WITH_ERRORS = 20000
DEFAULT_PROGRESS_EVERY = 1000


class AuditState(str, Enum):
    """States of the row audit loop."""

    PRIMING = "priming"
    READING = "reading"
    KEY_LOOKUP = "key_lookup"
    COLUMN_COMPARE = "column_compare"
    COUNTING = "counting"
    TERMINATED = "terminated"


class TerminationReason(str, Enum):
    """Why the audit loop reached TERMINATED."""

    EXHAUSTED = "exhausted"
    MAX_ERRORS = "max_errors"
    MAX_ROWS_WITH_ERRORS = "max_rows_with_errors"

    @property
    def early(self) -> bool:
        return self != TerminationReason.EXHAUSTED


@dataclass
class RunCounters:
    """Monotonic run statistics."""

    rows_checked: int = 0
    rows_skipped: int = 0
    rows_with_errors: int = 0
    columns_with_errors: int = 0
    non_key_columns_audited: int = 0
    missing_rows: int = 0
    reverse_missing: int = 0
    cells_degraded: int = 0

    @property
    def total_errors(self) -> int:
        return (
            self.rows_with_errors
            + self.columns_with_errors
            + self.missing_rows
            + self.reverse_missing
        )

    @property
    def rows_in_error(self) -> int:
        return self.rows_with_errors + self.missing_rows

    def describe(self, reverse: bool = False) -> str:
        """One-line statistics for progress logs and the report footer."""
        parts = [
            f"Rows checked: {self.rows_checked:,}",
            f"Columns checked: {self.non_key_columns_audited:,}",
            f"Rows with errors: {self.rows_with_errors:,}",
            f"Columns with errors: {self.columns_with_errors:,}",
            f"Missing rows: {self.missing_rows:,}",
            f"Total of all errors: {self.total_errors:,}",
        ]
        if reverse:
            parts.append(f"Reverse-compare loss: {self.reverse_missing:,}")
        return ", ".join(parts)

    def to_dict(self) -> dict[str, int]:
        """Convert to dictionary for serialization."""
        return {
            "rows_checked": self.rows_checked,
            "rows_skipped": self.rows_skipped,
            "rows_with_errors": self.rows_with_errors,
            "columns_with_errors": self.columns_with_errors,
            "non_key_columns_audited": self.non_key_columns_audited,
            "missing_rows": self.missing_rows,
            "reverse_missing": self.reverse_missing,
            "cells_degraded": self.cells_degraded,
            "total_errors": self.total_errors,
        }


@dataclass
class RunContext:
    """
    Everything one audit run reads and mutates.

    Args:
        table: Target table name
        columns: Column descriptors indexed by ordinal
        key_ordinals: 0-based key column ordinals in key order
        formats: Date formats in force for the run
        max_errors: Stop once total errors reach this value
        max_rows_with_errors: Stop once rows in error reach this value
        skip_rows: Leading data rows counted but not audited
        progress_every: Log progress every N rows
        reverse: Run the reverse pass after normal completion
        input_name: Source file or query name, for reports
    """

    table: str
    columns: list[ColumnDescriptor]
    key_ordinals: list[int]
    formats: DateFormatCache = field(default_factory=DateFormatCache)
    max_errors: int = DEFAULT_MAX_ERRORS
    max_rows_with_errors: int = DEFAULT_MAX_ROWS_WITH_ERRORS
    skip_rows: int = 0
    progress_every: int = DEFAULT_PROGRESS_EVERY
    reverse: bool = False
    input_name: str = ""
    counters: RunCounters = field(default_factory=RunCounters)
    state: AuditState = AuditState.PRIMING
    termination: TerminationReason | None = None
    source_primed: bool = False
    target_primed: bool = False
    reverse_error: str | None = None
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    finished_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.max_errors < 1:
            raise ConfigurationError(f"max_errors must be at least 1, got {self.max_errors}")
        if self.max_rows_with_errors < 1:
            raise ConfigurationError(
                f"max_rows_with_errors must be at least 1, got {self.max_rows_with_errors}"
            )
        if self.skip_rows < 0:
            raise ConfigurationError(f"skip_rows cannot be negative, got {self.skip_rows}")
        if self.progress_every < 1:
            raise ConfigurationError(f"progress_every must be at least 1, got {self.progress_every}")

        for ordinal in self.key_ordinals:
            if ordinal >= len(self.columns) or not self.columns[ordinal].is_key:
                raise ConfigurationError(f"Key position {ordinal + 1} is not a key column")

    @property
    def key_columns(self) -> list[ColumnDescriptor]:
        return [self.columns[ordinal] for ordinal in self.key_ordinals]

    @property
    def key_names(self) -> list[str]:
        return [column.name for column in self.key_columns]

    @property
    def audited_columns(self) -> list[ColumnDescriptor]:
        return [column for column in self.columns if column.audited]

    @property
    def terminated(self) -> bool:
        return self.state == AuditState.TERMINATED

    def transition(self, state: AuditState) -> None:
        if self.terminated:
            raise RuntimeError(f"Run for {self.table} already terminated; cannot enter {state.value}")
        self.state = state

    def threshold_breached(self) -> TerminationReason | None:
        """Return the threshold that has been reached, if any."""
        if self.counters.total_errors >= self.max_errors:
            return TerminationReason.MAX_ERRORS
        if self.counters.rows_in_error >= self.max_rows_with_errors:
            return TerminationReason.MAX_ROWS_WITH_ERRORS
        return None

    def terminate(self, reason: TerminationReason) -> None:
        self.state = AuditState.TERMINATED
        self.termination = reason
        self.finished_at = datetime.now(UTC)

    def summary(self) -> dict[str, Any]:
        """Run summary for JSON export."""
        return {
            "table": self.table,
            "input": self.input_name,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "termination": self.termination.value if self.termination else None,
            "reverse_error": self.reverse_error,
            "key_columns": self.key_names,
            "counters": self.counters.to_dict(),
            "target_date_format": str(self.formats.target_format),
            "source_date_formats": {
                self.columns[ordinal].name if ordinal < len(self.columns) else str(ordinal + 1): str(pattern)
                for ordinal, pattern in self.formats.source_formats().items()
            },
            "degraded_columns": [
                {"column": column.name, "reason": column.degraded_reason}
                for column in self.columns
                if column.degraded
            ],
        }
