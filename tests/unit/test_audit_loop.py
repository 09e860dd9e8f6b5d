"""
Unit tests for the row audit loop

Covers the end-to-end scenarios: exact match, tolerated drift, date format
recovery, missing target rows, threshold stops, skipped rows and the
reverse pass.
"""

import logging

import pytest

from rowaudit.audit import RowAuditor, TerminationReason
from rowaudit.compare import Tolerance
from rowaudit.compare.classifier import ComparisonType
from rowaudit.report import DiscrepancyKind
from utils.metrics import AuditMetrics

NAMES = ["id", "created", "amount"]


@pytest.fixture
def audit(make_context, comparator_for, fake_target, report):
    """Run an audit over in-memory rows and return (context, report, target)."""
    def run(source_rows, target_rows, names=NAMES, tolerance=None, metrics=None, errors=None, **kwargs):
        context = make_context(names, **kwargs)
        target = fake_target(target_rows, errors)
        comparator = comparator_for(context, tolerance=Tolerance.parse(tolerance))
        RowAuditor(context, source_rows, target, comparator, report, metrics=metrics).run()
        return context, target
    return run


class TestScenarios:
    """Reference scenarios"""

    def test_exact_match(self, audit, report):
        context, _ = audit(
            [["1", "2008-01-31", "10.00"]],
            {("1",): ["1", "2008-01-31", "10.00"]},
        )

        assert report.total == 0
        assert context.counters.rows_checked == 1
        assert context.counters.non_key_columns_audited == 2
        assert context.counters.total_errors == 0
        assert context.termination == TerminationReason.EXHAUSTED

    @pytest.mark.parametrize("tolerance,errors", [("0.05", 0), ("0.03", 1)])
    def test_tolerated_drift(self, audit, report, tolerance, errors):
        context, _ = audit(
            [["1", "2008-01-31", "10.04"]],
            {("1",): ["1", "2008-01-31", "10.00"]},
            tolerance=tolerance,
        )

        assert report.total == errors
        assert context.counters.columns_with_errors == errors
        assert context.counters.rows_with_errors == errors

    def test_date_format_recovery(self, audit, report):
        context, _ = audit(
            [["1", "2008-01-31", "10.00"]],
            {("1",): ["1", "31/01/2008", "10.00"]},
        )

        assert report.total == 0
        assert str(context.formats.target_format) == "dd/MM/yyyy"
        assert context.columns[1].comparison_type == ComparisonType.DATE

    def test_missing_target_row(self, audit, report, report_stream):
        context, target = audit(
            [["1", "2008-01-31", "10.00"], ["999", "2008-01-31", "1.00"], ["2", "2008-02-29", "20.00"]],
            {("1",): ["1", "2008-01-31", "10.00"], ("2",): ["2", "2008-02-29", "20.00"]},
        )

        assert context.counters.missing_rows == 1
        assert context.counters.rows_with_errors == 0
        assert context.counters.columns_with_errors == 0
        assert context.counters.rows_checked == 3
        assert report.counts[DiscrepancyKind.MISSING] == 1
        assert target.lookups[-1] == ("2",)
        assert "999\tMissing\t\t\t2\n" in report_stream.getvalue()

    def test_threshold_breach(self, audit, report, report_stream):
        """The failed row and its failed column each count toward the error total"""
        context, target = audit(
            [["1", "2008-01-31", "99.00"], ["2", "2008-02-29", "99.00"]],
            {("1",): ["1", "2008-01-31", "10.00"], ("2",): ["2", "2008-02-29", "20.00"]},
            max_errors=1,
        )

        assert report.total == 1
        assert context.counters.rows_checked == 1
        assert context.termination == TerminationReason.MAX_ERRORS
        assert target.lookups == [("1",)]

        text = report_stream.getvalue()
        assert "Maximum errors parameter was reached" in text
        assert "End of data." in text
        assert "Total of all errors: 2" in text
        assert context.counters.rows_with_errors == 1
        assert context.counters.columns_with_errors == 1

    def test_rows_with_errors_threshold(self, audit):
        context, _ = audit(
            [["1", "x", "1"], ["2", "x", "1"], ["3", "x", "1"]],
            {},
            max_rows_with_errors=2,
        )

        assert context.counters.missing_rows == 2
        assert context.termination == TerminationReason.MAX_ROWS_WITH_ERRORS


class TestLoopBehaviour:
    """Skip filter, lookup failures and reporting details"""

    def test_lookup_error_reported_as_missing(self, audit, report_stream):
        context, _ = audit(
            [["1", "2008-01-31", "10.00"]],
            {},
            errors={("1",): "relation customers does not exist"},
        )

        assert context.counters.missing_rows == 1
        assert "Missing: relation customers does not exist" in report_stream.getvalue()

    def test_skip_rows(self, audit):
        context, target = audit(
            [["1", "2008-01-31", "10.00"], ["2", "2008-02-29", "20.00"]],
            {("2",): ["2", "2008-02-29", "20.00"]},
            skip_rows=1,
        )

        assert context.counters.rows_checked == 2
        assert context.counters.rows_skipped == 1
        assert context.counters.missing_rows == 0
        assert target.lookups == [("2",)]

    def test_source_primed_on_skipped_row(self, audit):
        context, _ = audit(
            [["1", "31/01/2008", "10.00"], ["2", "29/02/2008", "20.00"]],
            {("2",): ["2", "2008-02-29", "20.00"]},
            skip_rows=1,
        )

        assert str(context.formats.source_format(1)) == "dd/MM/yyyy"

    def test_difference_line(self, audit, report_stream):
        audit(
            [["1", "2008-01-31", "10.04"]],
            {("1",): ["1", "2008-01-31", "10.00"]},
        )

        assert "1\tamount\t10.00\t10.04\t1\t3\t\t\t\n" in report_stream.getvalue()

    def test_null_target_shown_in_report(self, audit, report_stream):
        audit(
            [["1", "2008-01-31", "10.00"]],
            {("1",): ["1", "2008-01-31", None]},
        )

        assert "1\tamount\tNull\t10.00" in report_stream.getvalue()

    def test_column_count_mismatch_warns(self, audit, report, caplog):
        with caplog.at_level(logging.WARNING):
            context, _ = audit(
                [["1", "2008-01-31"]],
                {("1",): ["1", "2008-01-31", "10.00"]},
            )

        assert report.total == 0
        assert context.counters.non_key_columns_audited == 1
        assert any("Source row has 2 columns" in r.getMessage() for r in caplog.records)

    def test_degraded_column_listed_in_footer(self, audit, report_stream):
        context, _ = audit(
            [["1", "31/01/2008", "10.00"], ["2", "garbage", "20.00"]],
            {("1",): ["1", "2008-01-31", "10.00"], ("2",): ["2", "2008-02-29", "20.00"]},
        )

        assert context.counters.columns_with_errors == 1
        assert "Columns degraded to character comparison: created" in report_stream.getvalue()

    def test_report_closed_after_run(self, audit, report):
        audit([], {})

        assert report.closed
        assert report.total == 0

    def test_metrics_recorded(self, audit, registry):
        metrics = AuditMetrics(registry=registry)

        audit(
            [["1", "2008-01-31", "10.04"], ["9", "2008-01-31", "1"]],
            {("1",): ["1", "2008-01-31", "10.00"]},
            metrics=metrics,
        )

        labels = {"table_name": "customers"}
        assert registry.get_sample_value("rowaudit_rows_checked_total", labels) == 2
        assert registry.get_sample_value(
            "rowaudit_discrepancies_total", {**labels, "kind": "missing"}
        ) == 1
        assert registry.get_sample_value(
            "rowaudit_discrepancies_total", {**labels, "kind": "unequal"}
        ) == 1
        assert registry.get_sample_value(
            "rowaudit_runs_total", {**labels, "termination": "exhausted"}
        ) == 1


class TestReversePass:
    """Reverse pass wiring in the loop"""

    def test_orphans_reported(self, audit, report, report_stream):
        context, _ = audit(
            [["1", "2008-01-31", "10.00"], ["002", "2008-02-29", "20.00"]],
            {
                ("1",): ["1", "2008-01-31", "10.00"],
                ("2",): ["2", "2008-02-29", "20.00"],
                ("3",): ["3", "2008-03-01", "30.00"],
            },
            reverse=True,
        )

        assert context.counters.reverse_missing == 1
        assert report.counts[DiscrepancyKind.NO_SOURCE] == 1
        assert "3\tNoSource\n" in report_stream.getvalue()
        assert "Reverse-compare loss: 1" in report_stream.getvalue()

    def test_no_reverse_after_early_stop(self, audit):
        context, _ = audit(
            [["1", "2008-01-31", "99.00"]],
            {("1",): ["1", "2008-01-31", "10.00"], ("3",): ["3", "2008-03-01", "30.00"]},
            reverse=True,
            max_errors=1,
        )

        assert context.termination == TerminationReason.MAX_ERRORS
        assert context.counters.reverse_missing == 0

    def test_reverse_disabled(self, audit):
        context, _ = audit(
            [["1", "2008-01-31", "10.00"]],
            {("1",): ["1", "2008-01-31", "10.00"], ("3",): ["3", "2008-03-01", "30.00"]},
        )

        assert context.counters.reverse_missing == 0

    def test_skipped_row_key_reported_as_orphan(self, audit, report_stream):
        context, _ = audit(
            [["1", "2008-01-31", "10.00"], ["2", "2008-02-29", "20.00"]],
            {("1",): ["1", "2008-01-31", "10.00"], ("2",): ["2", "2008-02-29", "20.00"]},
            skip_rows=1,
            reverse=True,
        )

        assert context.counters.rows_skipped == 1
        assert context.counters.reverse_missing == 1
        assert "1\tNoSource\n" in report_stream.getvalue()
        assert "2\tNoSource\n" not in report_stream.getvalue()

    def test_orphans_reach_max_errors(self, audit, report, report_stream):
        context, _ = audit(
            [["1", "2008-01-31", "10.00"]],
            {
                ("1",): ["1", "2008-01-31", "10.00"],
                ("2",): ["2", "2008-02-29", "20.00"],
                ("3",): ["3", "2008-03-01", "30.00"],
                ("4",): ["4", "2008-03-02", "40.00"],
            },
            reverse=True,
            max_errors=2,
        )

        assert context.termination == TerminationReason.MAX_ERRORS
        assert context.counters.reverse_missing == 2
        assert report.counts[DiscrepancyKind.NO_SOURCE] == 2

        text = report_stream.getvalue()
        assert "4\tNoSource\n" not in text
        stopped = text.index("Maximum errors parameter was reached")
        assert text.index("3\tNoSource\n") < stopped < text.index("End of data.")

    def test_key_scan_failure_still_writes_footer(
        self, make_context, comparator_for, fake_target, report, report_stream
    ):
        class BrokenScan(fake_target):
            def iter_keys(self):
                yield ("1",)
                yield ("3",)
                raise RuntimeError("connection reset by peer")

        context = make_context(NAMES, reverse=True)
        target = BrokenScan({("1",): ["1", "2008-01-31", "10.00"]})

        RowAuditor(context, [["1", "2008-01-31", "10.00"]], target, comparator_for(context), report).run()

        text = report_stream.getvalue()
        assert context.termination == TerminationReason.EXHAUSTED
        assert context.counters.reverse_missing == 1
        assert context.reverse_error == "connection reset by peer"
        assert context.summary()["reverse_error"] == "connection reset by peer"
        assert "Reverse compare failed: connection reset by peer\n" in text
        assert text.index("3\tNoSource\n") < text.index("Reverse compare failed") < text.index("End of data.")
        assert report.closed
