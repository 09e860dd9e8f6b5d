"""
Unit tests for structured logging configuration

Tests formatters, the context logger, and setup from arguments and
environment variables.
"""

import json
import logging
import sys

import pytest

from utils.logging import (
    ConsoleFormatter,
    ContextLogger,
    JSONFormatter,
    configure_from_env,
    extra_fields,
    setup_logging,
)


def make_record(message="Lookup failed", level=logging.WARNING, **extra):
    record = logging.LogRecord(
        name="rowaudit.audit.loop",
        level=level,
        pathname="loop.py",
        lineno=42,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


class TestJSONFormatter:
    """Test JSON log output"""

    def test_standard_fields(self):
        output = json.loads(JSONFormatter(include_hostname=False).format(make_record()))

        assert output["level"] == "WARNING"
        assert output["logger"] == "rowaudit.audit.loop"
        assert output["message"] == "Lookup failed"
        assert output["app"] == "rowaudit"
        assert output["source"]["line"] == 42
        assert "hostname" not in output
        assert "context" not in output

    def test_extra_context(self):
        record = make_record(table="customers", row=7)
        output = json.loads(JSONFormatter().format(record))

        assert output["context"] == {"table": "customers", "row": 7}

    def test_exception_details(self):
        try:
            raise ValueError("bad cell")
        except ValueError:
            record = make_record(level=logging.ERROR)
            record.exc_info = sys.exc_info()

        output = json.loads(JSONFormatter().format(record))

        assert output["exception"]["type"] == "ValueError"
        assert output["exception"]["message"] == "bad cell"


class TestConsoleFormatter:
    """Test console log output"""

    def test_context_appended(self):
        formatter = ConsoleFormatter(use_colors=False)
        line = formatter.format(make_record(table="customers"))

        assert "[WARNING] rowaudit.audit.loop: Lookup failed" in line
        assert line.endswith("[table=customers]")

    def test_levelname_restored(self):
        formatter = ConsoleFormatter(use_colors=True)
        formatter.use_colors = True
        record = make_record()

        formatter.format(record)

        assert record.levelname == "WARNING"


class TestContextLogger:
    """Test the context-carrying logger"""

    def test_context_in_records(self, caplog):
        log = ContextLogger("rowaudit.test", table="customers")

        with caplog.at_level(logging.INFO, logger="rowaudit.test"):
            log.warning("Lookup failed", row=3)

        record = caplog.records[0]
        assert record.table == "customers"
        assert record.row == 3
        assert extra_fields(record) == {"table": "customers", "row": 3}

    def test_bind_layers_context(self):
        log = ContextLogger("rowaudit.test", table="customers").bind(run="r1")
        assert log.get_context() == {"table": "customers", "run": "r1"}

    def test_disabled_level_skipped(self, caplog):
        log = ContextLogger("rowaudit.test")

        with caplog.at_level(logging.WARNING, logger="rowaudit.test"):
            log.debug("not shown")

        assert caplog.records == []


class TestSetupLogging:
    """Test logging setup"""

    def test_level_and_console_handler(self):
        setup_logging(level="DEBUG")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, ConsoleFormatter)

    def test_file_handler_json(self, tmp_path):
        log_file = tmp_path / "logs" / "audit.log"
        setup_logging(log_file=str(log_file), console_output=False, json_format=True)

        logging.getLogger("rowaudit.test").info("written to file")
        for handler in logging.getLogger().handlers:
            handler.flush()

        line = log_file.read_text().strip().splitlines()[-1]
        assert json.loads(line)["message"] == "written to file"

    def test_configure_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        monkeypatch.setenv("LOG_JSON", "true")

        configure_from_env()

        root = logging.getLogger()
        assert root.level == logging.ERROR
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_argument_overrides_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        configure_from_env("DEBUG")
        assert logging.getLogger().level == logging.DEBUG
