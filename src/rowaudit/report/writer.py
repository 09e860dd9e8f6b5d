"""
Tab-delimited discrepancy report.

One line is written per column difference, missing target row and reverse
orphan, in the order they are found. The footer carries the run
statistics. The report is flushed and closed exactly once.
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any, TextIO

from ..audit.context import RunContext, TerminationReason
from ..audit.keys import KeyTuple
from ..columns import ColumnDescriptor
from ..compare.classifier import ComparisonType
from ..compare.values import Comparison
from .formatters import see_a_null

logger = logging.getLogger(__name__)

HEADING_FIELDS = [
    "Col Name",
    "Target Value",
    "Source Value",
    "In Line#",
    "In Col#",
    "Data Type",
    "Column",
    "Table",
    "Tgt DateFmt",
    "Src DateFmt",
]

_TERMINATION_MESSAGES = {
    TerminationReason.MAX_ERRORS: "Maximum errors parameter was reached",
    TerminationReason.MAX_ROWS_WITH_ERRORS: "Maximum rows with errors parameter was reached",
}


class DiscrepancyKind(str, Enum):
    """Kinds of report lines."""

    UNEQUAL = "unequal"
    MISSING = "missing"
    NO_SOURCE = "no_source"


@dataclass
class Discrepancy:
    """One reported difference."""

    kind: DiscrepancyKind
    key: KeyTuple
    row_number: int | None = None
    column: str | None = None
    position: int | None = None
    target_value: str | None = None
    source_value: str | None = None
    comparison_type: ComparisonType | None = None
    metadata_type: str | None = None
    metadata_column: str | None = None
    metadata_table: str | None = None
    target_format: str | None = None
    source_format: str | None = None
    message: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def unequal(
        cls,
        key: KeyTuple,
        row_number: int,
        column: ColumnDescriptor,
        target_value: str | None,
        source_value: str | None,
        comparison: Comparison,
    ) -> "Discrepancy":
        is_date = comparison.type_used == ComparisonType.DATE
        return cls(
            kind=DiscrepancyKind.UNEQUAL,
            key=key,
            row_number=row_number,
            column=column.name,
            position=column.position,
            target_value=target_value,
            source_value=source_value,
            comparison_type=comparison.type_used,
            metadata_type=column.source_type,
            metadata_column=column.source_column,
            metadata_table=column.source_table,
            target_format=comparison.target_format if is_date else None,
            source_format=comparison.source_format if is_date else None,
        )

    def to_fields(self) -> list[str]:
        """Report line fields, key values first."""
        fields = list(self.key)

        if self.kind == DiscrepancyKind.NO_SOURCE:
            fields.append("NoSource")
            return fields

        if self.kind == DiscrepancyKind.MISSING:
            reason = "Missing" if not self.message else f"Missing: {self.message}"
            fields.extend([reason, "", "", str(self.row_number)])
            return fields

        fields.extend([
            self.column or "",
            see_a_null(self.target_value),
            see_a_null(self.source_value),
            str(self.row_number),
            str(self.position),
            self.metadata_type or "",
            self.metadata_column or "",
            self.metadata_table or "",
        ])
        if self.comparison_type == ComparisonType.DATE:
            fields.extend([self.target_format or "", self.source_format or ""])
        return fields

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "kind": self.kind.value,
            "key": list(self.key),
            "row_number": self.row_number,
            "column": self.column,
            "position": self.position,
            "target_value": self.target_value,
            "source_value": self.source_value,
            "comparison_type": self.comparison_type.value if self.comparison_type else None,
            "metadata_type": self.metadata_type,
            "metadata_column": self.metadata_column,
            "metadata_table": self.metadata_table,
            "target_format": self.target_format,
            "source_format": self.source_format,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


class DiscrepancyReport:
    """
    Writes discrepancies to a tab-delimited text stream.

    Usage:
        with DiscrepancyReport.open("customers.audit.txt") as report:
            report.write_header(context)
            report.write(discrepancy)
            report.write_footer(context)
    """

    def __init__(self, stream: TextIO, owns_stream: bool = False, path: str | None = None):
        """
        Initialize the report.

        Args:
            stream: Text stream to write to
            owns_stream: Close the stream when the report is closed
            path: File path, for logging
        """
        self.stream = stream
        self.path = path
        self._owns_stream = owns_stream
        self._closed = False
        self.counts: dict[DiscrepancyKind, int] = {kind: 0 for kind in DiscrepancyKind}

    @classmethod
    def open(cls, path: str) -> "DiscrepancyReport":
        output = Path(path)
        output.parent.mkdir(parents=True, exist_ok=True)
        stream = open(output, "w", newline="", encoding="utf-8")
        logger.info(f"Writing discrepancy report to {output}")
        return cls(stream, owns_stream=True, path=str(output))

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def _line(self, text: str = "") -> None:
        self.stream.write(text + "\n")

    def _fields(self, fields: list[str]) -> None:
        # Values are written as they are, without CSV quoting
        self._line("\t".join(fields))

    def write_header(self, context: RunContext) -> None:
        """Write the title lines and the column heading line."""
        self._line(
            f"Audit of table {context.table} against {context.input_name or 'source'} "
            f"started {context.started_at.strftime('%Y-%m-%d %H:%M:%S')}"
        )
        self._line(f"Key columns: {', '.join(context.key_names)}")
        self._fields(context.key_names + HEADING_FIELDS)

    def write(self, discrepancy: Discrepancy) -> None:
        if self._closed:
            raise RuntimeError("Discrepancy report is already closed")
        self._fields(discrepancy.to_fields())
        self.counts[discrepancy.kind] += 1

    def write_difference(
        self,
        key: KeyTuple,
        row_number: int,
        column: ColumnDescriptor,
        target_value: str | None,
        source_value: str | None,
        comparison: Comparison,
    ) -> None:
        self.write(Discrepancy.unequal(
            key, row_number, column, target_value, source_value, comparison,
        ))

    def write_missing(self, key: KeyTuple, row_number: int, error: str | None = None) -> None:
        self.write(Discrepancy(
            kind=DiscrepancyKind.MISSING,
            key=key,
            row_number=row_number,
            message=error,
        ))

    def write_orphan(self, key: KeyTuple) -> None:
        self.write(Discrepancy(kind=DiscrepancyKind.NO_SOURCE, key=key))

    def write_termination(self, reason: TerminationReason) -> None:
        message = _TERMINATION_MESSAGES.get(reason)
        if message:
            self._line(message)

    def write_reverse_failure(self, error: str) -> None:
        self._line(f"Reverse compare failed: {error}")

    def write_footer(
        self,
        context: RunContext,
        unaudited_metadata_columns: list[str] | None = None,
    ) -> None:
        """
        Write the end-of-run statistics.

        The footer is the same whether the input was exhausted or a
        threshold stopped the run.

        Args:
            context: Finished run context
            unaudited_metadata_columns: Catalog columns that were not part of
                the audited layout
        """
        finished = context.finished_at or datetime.now(UTC)
        self._line("End of data.")
        self._line("Statistics of the run:")
        self._line(context.counters.describe(reverse=context.reverse))
        self._line(f"Rows skipped: {context.counters.rows_skipped:,}")
        self._line(f"Columns audited: {', '.join(c.name for c in context.audited_columns)}")
        degraded = [c.name for c in context.columns if c.degraded]
        if degraded:
            self._line(f"Columns degraded to character comparison: {', '.join(degraded)}")
        if unaudited_metadata_columns:
            self._line(f"Metadata columns not audited: {', '.join(unaudited_metadata_columns)}")
        self._line(
            f"Audit ended checking table {context.table} "
            f"at {finished.strftime('%Y-%m-%d %H:%M:%S')}"
        )

    def close(self) -> None:
        """Flush and close; further calls are no-ops."""
        if self._closed:
            return
        self._closed = True
        self.stream.flush()
        if self._owns_stream:
            self.stream.close()
            logger.info(f"Discrepancy report closed: {self.path}")

    def __enter__(self) -> "DiscrepancyReport":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
