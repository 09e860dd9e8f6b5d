"""
Row audit loop.

Source rows are processed one at a time, start to finish: extract the key,
look up the target row, prime column types once per side, compare every
audited column, update the counters and check the stop thresholds. A
missing or failing lookup, or a cell that cannot be parsed, is reported
and the loop moves on; only a threshold stops it early.
"""

import time
from typing import TYPE_CHECKING, Iterable

from opentelemetry import trace

from utils.logging import ContextLogger
from utils.metrics import AuditMetrics
from utils.tracing import add_span_attributes, add_span_event, trace_operation

from ..compare.classifier import ComparisonType, classify, classify_target, looks_like_date
from ..compare.values import Outcome, ValueComparator
from .context import AuditState, RunContext, RunCounters, TerminationReason
from .keys import KeyTuple, LookupResult, Row, SourceKeySet, TargetLookup, extract_key
from .reverse import ReverseAuditPass

if TYPE_CHECKING:
    from ..report.writer import DiscrepancyReport


class RowAuditor:
    """
    Drives one audit run over a source of rows.

    Args:
        context: Run context owning columns, counters and formats
        source: Iterable of source rows (lists of cell text)
        target: Target lookup provider
        comparator: Cell comparator for the run
        report: Discrepancy report the run writes to
        metrics: Optional Prometheus metrics
        quiet: Suppress per-row warnings
        unaudited_metadata_columns: Catalog columns listed in the footer
    """

    def __init__(
        self,
        context: RunContext,
        source: Iterable[Row],
        target: TargetLookup,
        comparator: ValueComparator,
        report: "DiscrepancyReport",
        metrics: AuditMetrics | None = None,
        quiet: bool = False,
        unaudited_metadata_columns: list[str] | None = None,
    ):
        self.context = context
        self.source = source
        self.target = target
        self.comparator = comparator
        self.report = report
        self.metrics = metrics
        self.quiet = quiet
        self.unaudited_metadata_columns = unaudited_metadata_columns
        self.seen_keys = SourceKeySet()
        self.log = ContextLogger(__name__, table=context.table)

    def run(self) -> RunCounters:
        """
        Audit every source row, then run the reverse pass if enabled.

        Returns:
            Final run counters

        The footer is written and the report closed on both termination
        paths.
        """
        context = self.context
        started = time.monotonic()

        with trace_operation(
            "rowaudit_run",
            kind=trace.SpanKind.INTERNAL,
            table=context.table,
            input=context.input_name,
        ):
            self.log.info(f"Starting audit of {context.table} against {context.input_name or 'source'}")
            try:
                self.report.write_header(context)
                self._audit_rows()

                if context.termination == TerminationReason.EXHAUSTED and context.reverse:
                    ReverseAuditPass(context, self.target, self.report, self.seen_keys, self.metrics).run()

                self._finish()
            finally:
                self.report.close()

            add_span_attributes(
                termination=context.termination.value if context.termination else "aborted",
                **context.counters.to_dict(),
            )

        if self.metrics is not None:
            self.metrics.record_run(
                context.table,
                context.termination.value,
                time.monotonic() - started,
            )

        return context.counters

    def _audit_rows(self) -> None:
        context = self.context
        counters = context.counters

        for row in self.source:
            counters.rows_checked += 1
            row_number = counters.rows_checked

            if not context.source_primed:
                self._prime_source(row)
                context.transition(AuditState.READING)

            if self.metrics is not None:
                self.metrics.record_row(context.table)

            if row_number <= context.skip_rows:
                counters.rows_skipped += 1
                continue

            self._audit_row(row_number, row)
            self._log_progress(row_number)

            reason = context.threshold_breached()
            if reason is not None:
                self._stop_early(reason)
                return
            context.transition(AuditState.READING)

        context.terminate(TerminationReason.EXHAUSTED)
        self.log.info(f"End of input after {counters.rows_checked:,} rows")

    def _audit_row(self, row_number: int, row: Row) -> None:
        context = self.context
        counters = context.counters

        context.transition(AuditState.KEY_LOOKUP)
        key = extract_key(row, context.key_ordinals)
        if context.reverse:
            self.seen_keys.add(key)

        result = self._lookup(key)
        if not result.found:
            counters.missing_rows += 1
            self.report.write_missing(key, row_number, result.error)
            self._record_discrepancy("missing")
            if result.error and not self.quiet:
                self.log.warning(f"Lookup failed for key {key}: {result.error}", row=row_number)
            context.transition(AuditState.COUNTING)
            return

        target_row = result.row
        if len(row) != len(target_row) and not self.quiet:
            self.log.warning(
                f"Source row has {len(row)} columns, target row has {len(target_row)}",
                row=row_number,
            )

        if not context.target_primed:
            self._prime_target(target_row)

        context.transition(AuditState.COLUMN_COMPARE)
        column_errors = self._compare_columns(row_number, key, row, target_row)

        context.transition(AuditState.COUNTING)
        counters.columns_with_errors += column_errors
        if column_errors:
            counters.rows_with_errors += 1

    def _compare_columns(self, row_number: int, key: KeyTuple, row: Row, target_row: Row) -> int:
        counters = self.context.counters
        width = min(len(row), len(target_row), len(self.context.columns))
        errors = 0

        for column in self.context.columns[:width]:
            target_value = target_row[column.ordinal]
            source_value = row[column.ordinal]
            comparison = self.comparator.compare(column, target_value, source_value)
            if comparison.outcome == Outcome.SKIPPED:
                continue

            counters.non_key_columns_audited += 1
            if comparison.degraded:
                counters.cells_degraded += 1
                if self.metrics is not None:
                    self.metrics.record_degraded(self.context.table)

            if comparison.unequal:
                errors += 1
                self.report.write_difference(
                    key, row_number, column, target_value, source_value, comparison,
                )
                self._record_discrepancy("unequal")

        return errors

    def _lookup(self, key: KeyTuple) -> LookupResult:
        if self.metrics is None:
            return self.target.lookup(key)
        with self.metrics.time_lookup(self.context.table):
            return self.target.lookup(key)

    def _prime_source(self, row: Row) -> None:
        """Resolve source date formats from the first data row."""
        context = self.context
        for column in context.columns[:len(row)]:
            if not column.audited:
                continue
            value = row[column.ordinal]
            if classify(value, column.name) == ComparisonType.DATE:
                pattern = context.formats.learn_source_format(column.ordinal, value)
                if pattern is None and not self.quiet:
                    self.log.warning(
                        f"Could not determine the date format of source column {column.name} "
                        f"from {value!r}"
                    )
        context.source_primed = True

    def _prime_target(self, target_row: Row) -> None:
        """
        Set comparison types from the first matched target row.

        The first date-shaped target value, in column order, that round-trips
        decides the shared target date format.
        """
        context = self.context
        format_primed = False

        for column in context.columns[:len(target_row)]:
            if not column.audited:
                continue
            value = target_row[column.ordinal]
            column.prime(classify_target(value, column.name))

            if (
                not format_primed
                and column.comparison_type == ComparisonType.DATE
                and looks_like_date(value)
            ):
                format_primed = context.formats.prime_target(value, column.name)

        context.target_primed = True
        self.log.debug(
            "Target columns primed: "
            + ", ".join(f"{c.name}={c.comparison_type.value}" for c in context.audited_columns)
        )

    def _record_discrepancy(self, kind: str) -> None:
        if self.metrics is not None:
            self.metrics.record_discrepancy(self.context.table, kind)

    def _log_progress(self, row_number: int) -> None:
        if row_number == 1 or row_number % self.context.progress_every == 0:
            self.log.info(self.context.counters.describe(reverse=self.context.reverse))

    def _stop_early(self, reason: TerminationReason) -> None:
        self.context.terminate(reason)
        self.report.write_termination(reason)
        add_span_event("threshold_reached", reason=reason.value)
        self.log.warning(
            f"Stopping early, {reason.value} reached: "
            f"{self.context.counters.describe(reverse=self.context.reverse)}"
        )

    def _finish(self) -> None:
        self.report.write_footer(self.context, self.unaudited_metadata_columns)
        self.log.info(
            f"Audit of {self.context.table} ended ({self.context.termination.value}): "
            f"{self.context.counters.describe(reverse=self.context.reverse)}"
        )
