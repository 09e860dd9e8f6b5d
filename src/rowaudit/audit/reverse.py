"""
Reverse audit pass: target rows with no source counterpart.

Runs after the main loop has exhausted its input. Every target key is
checked against the keys recorded while auditing source rows; each key not
seen is reported as an orphan and counts toward the same stop thresholds
as the main loop. A failed key scan is noted in the report and ends the
pass; the run still finishes with its statistics.
"""

from typing import TYPE_CHECKING

from opentelemetry import trace

from utils.logging import ContextLogger
from utils.metrics import AuditMetrics
from utils.tracing import add_span_attributes, trace_operation

from .context import RunContext
from .keys import SourceKeySet, TargetLookup

if TYPE_CHECKING:
    from ..report.writer import DiscrepancyReport


class ReverseAuditPass:
    """Reports target keys that never appeared in the source."""

    def __init__(
        self,
        context: RunContext,
        target: TargetLookup,
        report: "DiscrepancyReport",
        seen_keys: SourceKeySet,
        metrics: AuditMetrics | None = None,
    ):
        self.context = context
        self.target = target
        self.report = report
        self.seen_keys = seen_keys
        self.metrics = metrics
        self.log = ContextLogger(__name__, table=context.table)

    def run(self) -> int:
        """
        Scan target keys and report orphans.

        Returns:
            Number of orphans reported by this pass
        """
        context = self.context
        counters = context.counters
        orphans = 0

        with trace_operation(
            "rowaudit_reverse_pass",
            kind=trace.SpanKind.CLIENT,
            table=context.table,
            source_keys=len(self.seen_keys),
        ):
            self.log.info(f"Reverse pass over {context.table} with {len(self.seen_keys):,} source keys")

            try:
                for key in self.target.iter_keys():
                    if key in self.seen_keys:
                        continue

                    orphans += 1
                    counters.reverse_missing += 1
                    self.report.write_orphan(key)
                    if self.metrics is not None:
                        self.metrics.record_discrepancy(context.table, "no_source")

                    reason = context.threshold_breached()
                    if reason is not None:
                        context.terminate(reason)
                        self.report.write_termination(reason)
                        self.log.warning(f"Reverse pass stopped early, {reason.value} reached")
                        break
            except Exception as e:
                context.reverse_error = str(e)
                self.report.write_reverse_failure(str(e))
                add_span_attributes(reverse_error=str(e))
                self.log.error(
                    f"Reverse pass over {context.table} failed after {orphans:,} orphans: {e}",
                    exc_info=True,
                )

            add_span_attributes(orphans=orphans)

        self.log.info(f"Reverse pass found {orphans:,} target rows with no source row")
        return orphans
