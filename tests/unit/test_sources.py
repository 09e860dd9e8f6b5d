"""
Unit tests for flat file and SQL query sources
"""

import sqlite3
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from rowaudit.compare.dates import resolve
from rowaudit.errors import ConfigurationError, SourceError
from rowaudit.results import Ok
from rowaudit.sources import (
    FlatFileSource,
    QuerySource,
    cell_to_text,
    split_line,
    split_statements,
)


class TestSplitLine:
    """Test split_line()"""

    def test_keeps_trailing_empty_fields(self):
        assert split_line("1|Alice||\r\n") == ["1", "Alice", "", ""]

    def test_keeps_spaces(self):
        assert split_line("1|  |x\n") == ["1", "  ", "x"]


class TestFlatFileSource:
    """Test FlatFileSource"""

    def write(self, tmp_path, text):
        path = tmp_path / "customers.dat"
        path.write_text(text)
        return str(path)

    def test_header_and_rows(self, tmp_path):
        path = self.write(tmp_path, "HEADER|id|name\n1|Alice\n\n2|Bob\n")

        with FlatFileSource(path, header=True) as source:
            rows = list(source)

        assert source.column_names == ["id", "name"]
        assert rows == [["1", "Alice"], ["2", "Bob"]]
        assert source.name == "customers.dat"

    def test_header_tolerated_without_flag(self, tmp_path):
        path = self.write(tmp_path, "HEADER|id|name\n1|Alice\n")

        with FlatFileSource(path) as source:
            assert list(source) == [["1", "Alice"]]
        assert source.column_names == ["id", "name"]

    def test_first_line_is_data_without_header(self, tmp_path):
        path = self.write(tmp_path, "1|Alice\n2|Bob\n")

        with FlatFileSource(path) as source:
            assert list(source) == [["1", "Alice"], ["2", "Bob"]]
        assert source.column_names is None

    def test_missing_header(self, tmp_path):
        path = self.write(tmp_path, "1|Alice\n")

        with pytest.raises(ConfigurationError):
            FlatFileSource(path, header=True).open()

    def test_trailer_skipped(self, tmp_path):
        path = self.write(tmp_path, "1|Alice\nTRAILER|1\n")

        with FlatFileSource(path) as source:
            assert list(source) == [["1", "Alice"]]
        assert source.trailers == [["TRAILER", "1"]]

    def test_open_twice_keeps_position(self, tmp_path):
        path = self.write(tmp_path, "HEADER|id\n1\n")

        source = FlatFileSource(path).open()
        with source:
            assert list(source) == [["1"]]

    def test_missing_file(self, tmp_path):
        with pytest.raises(SourceError):
            FlatFileSource(str(tmp_path / "nope.dat")).open()

    def test_undecodable_file(self, tmp_path):
        path = tmp_path / "latin.dat"
        path.write_bytes(b"1|caf\xe9\n")

        with pytest.raises(SourceError):
            with FlatFileSource(str(path)) as source:
                list(source)


class TestSplitStatements:
    """Test split_statements()"""

    def test_comments_and_separators(self):
        script = "-- setup\nCREATE TEMP TABLE t (a);\nINSERT INTO t VALUES (1); -- one\nSELECT a FROM t;\n"

        assert split_statements(script) == [
            "CREATE TEMP TABLE t (a)",
            "INSERT INTO t VALUES (1)",
            "SELECT a FROM t",
        ]


class TestQuerySource:
    """Test QuerySource"""

    def test_runs_script_and_reads_last_statement(self):
        connection = sqlite3.connect(":memory:")
        script = (
            "CREATE TABLE t (id INTEGER, name TEXT);"
            "INSERT INTO t VALUES (1, 'Alice');"
            "INSERT INTO t VALUES (2, NULL);"
            "SELECT id, name FROM t ORDER BY id"
        )

        with QuerySource(connection, script, fetch_size=1) as source:
            rows = list(source)

        assert source.column_names == ["id", "name"]
        assert rows == [["1", "Alice"], ["2", ""]]

    def test_empty_script(self):
        with pytest.raises(SourceError):
            QuerySource(MagicMock(), "-- nothing here\n")

    def test_failing_statement(self):
        connection = sqlite3.connect(":memory:")

        with pytest.raises(SourceError, match="failed"):
            QuerySource(connection, "SELECT * FROM missing_table").open()

    def test_statement_without_rows(self):
        connection = sqlite3.connect(":memory:")

        with pytest.raises(SourceError, match="returns no rows"):
            QuerySource(connection, "CREATE TABLE t (a)").open()

    def test_from_missing_file(self, tmp_path):
        with pytest.raises(SourceError):
            QuerySource.from_file(MagicMock(), str(tmp_path / "missing.sql"))


class TestCellToText:
    """Test driver value rendering"""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, None),
            ("x", "x"),
            (7, "7"),
            (True, "1"),
            (Decimal("10.50"), "10.50"),
            (Decimal("1E+2"), "100"),
            (date(2008, 1, 31), "2008-01-31"),
            (datetime(2008, 1, 31, 10, 15), "2008-01-31 10:15:00"),
            (datetime(2008, 1, 31, 10, 15, 0, 123000), "2008-01-31 10:15:00.123"),
            (datetime(2008, 1, 31, 10, 15, 0, 123456), "2008-01-31 10:15:00.123456"),
            (datetime(2008, 1, 31, 10, 15, 0, 1), "2008-01-31 10:15:00.000001"),
            (datetime(2008, 1, 31, 10, 15, tzinfo=timezone(timedelta(hours=2))), "2008-01-31 10:15:00"),
            (b"\x01\xff", "01ff"),
        ],
    )
    def test_rendering(self, value, expected):
        assert cell_to_text(value) == expected

    @pytest.mark.parametrize("microsecond", [0, 120000, 123456, 999999])
    def test_timestamps_resolve_to_a_format_that_keeps_them(self, microsecond):
        value = datetime(2008, 1, 31, 10, 15, 30, microsecond)
        text = cell_to_text(value)

        pattern = resolve(text)

        assert pattern is not None
        assert pattern.parse(text) == Ok(value)
