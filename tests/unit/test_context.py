"""
Unit tests for run context and counters
"""

import pytest

from rowaudit.audit.context import AuditState, RunCounters, TerminationReason
from rowaudit.errors import ConfigurationError


class TestRunCounters:
    """Test RunCounters"""

    def test_totals(self):
        counters = RunCounters(
            rows_with_errors=2, columns_with_errors=3, missing_rows=1, reverse_missing=4,
        )

        assert counters.total_errors == 10
        assert counters.rows_in_error == 3

    def test_describe(self):
        counters = RunCounters(rows_checked=1500, reverse_missing=2)

        line = counters.describe()
        assert "Rows checked: 1,500" in line
        assert "Reverse-compare loss" not in line
        assert "Reverse-compare loss: 2" in counters.describe(reverse=True)

    def test_to_dict_includes_totals(self):
        data = RunCounters(missing_rows=1).to_dict()

        assert data["missing_rows"] == 1
        assert data["total_errors"] == 1


class TestRunContext:
    """Test RunContext validation and state"""

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_errors": 0},
            {"max_rows_with_errors": 0},
            {"skip_rows": -1},
            {"progress_every": 0},
        ],
    )
    def test_invalid_settings(self, make_context, kwargs):
        with pytest.raises(ConfigurationError):
            make_context(["id", "name"], **kwargs)

    def test_key_ordinal_must_be_key_column(self, make_context):
        context = make_context(["id", "name"])
        with pytest.raises(ConfigurationError):
            type(context)(table="t", columns=context.columns, key_ordinals=[1])

    def test_key_and_audited_columns(self, make_context):
        context = make_context(["id", "region", "name", "''"], keys=[1, 0])

        assert context.key_names == ["region", "id"]
        assert [c.name for c in context.audited_columns] == ["name"]

    def test_thresholds_inclusive(self, make_context):
        context = make_context(["id", "name"], max_errors=3, max_rows_with_errors=5)

        context.counters.columns_with_errors = 2
        assert context.threshold_breached() is None

        context.counters.missing_rows = 1
        assert context.threshold_breached() == TerminationReason.MAX_ERRORS

    def test_rows_with_errors_threshold(self, make_context):
        context = make_context(["id", "name"], max_rows_with_errors=2)
        context.counters.missing_rows = 2
        assert context.threshold_breached() == TerminationReason.MAX_ROWS_WITH_ERRORS

    def test_no_transition_after_termination(self, make_context):
        context = make_context(["id", "name"])
        context.transition(AuditState.READING)
        context.terminate(TerminationReason.EXHAUSTED)

        assert context.terminated
        assert context.finished_at is not None
        assert not TerminationReason.EXHAUSTED.early
        with pytest.raises(RuntimeError):
            context.transition(AuditState.READING)

    def test_summary(self, make_context):
        context = make_context(["id", "created"], input_name="customers.dat")
        context.formats.learn_source_format(1, "31/01/2008")
        context.terminate(TerminationReason.MAX_ERRORS)

        summary = context.summary()

        assert summary["termination"] == "max_errors"
        assert summary["input"] == "customers.dat"
        assert summary["source_date_formats"] == {"created": "dd/MM/yyyy"}
        assert summary["target_date_format"] == "yyyy-MM-dd"
