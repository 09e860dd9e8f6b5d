"""
Pytest configuration and fixtures for rowaudit tests.
Provides shared fixtures for run contexts, in-memory targets and reports.
"""

import io
import os
import sqlite3
from pathlib import Path
from typing import Iterator

import pytest
from prometheus_client import CollectorRegistry

from rowaudit.audit import LookupResult, RunContext
from rowaudit.columns import build_columns
from rowaudit.compare import DateFormatCache, ValueComparator
from rowaudit.report import DiscrepancyReport


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: tests that use a real database connection")
    config.addinivalue_line("markers", "slow: mark test as slow running")


class FakeTarget:
    """Dict-backed target lookup for audit loop tests."""

    def __init__(self, rows: dict[tuple, list], errors: dict[tuple, str] | None = None):
        self.rows = rows
        self.errors = errors or {}
        self.lookups: list[tuple] = []

    def lookup(self, key: tuple) -> LookupResult:
        self.lookups.append(key)
        if key in self.errors:
            return LookupResult(error=self.errors[key])
        row = self.rows.get(key)
        return LookupResult(row=list(row)) if row is not None else LookupResult()

    def iter_keys(self) -> Iterator[tuple]:
        yield from self.rows


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Get project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def make_context():
    """Factory for run contexts over a named column layout."""
    def factory(names: list[str], keys: list[int] | None = None, **kwargs) -> RunContext:
        key_ordinals = keys if keys is not None else [0]
        return RunContext(
            table=kwargs.pop("table", "customers"),
            columns=build_columns(names, key_ordinals),
            key_ordinals=key_ordinals,
            formats=kwargs.pop("formats", None) or DateFormatCache(),
            **kwargs,
        )
    return factory


@pytest.fixture
def comparator_for():
    def factory(context: RunContext, **kwargs) -> ValueComparator:
        return ValueComparator(context.formats, **kwargs)
    return factory


@pytest.fixture
def report_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def report(report_stream: io.StringIO) -> DiscrepancyReport:
    return DiscrepancyReport(report_stream)


@pytest.fixture
def registry() -> CollectorRegistry:
    """Fresh Prometheus registry per test."""
    return CollectorRegistry()


@pytest.fixture
def sqlite_target() -> Iterator[sqlite3.Connection]:
    """In-memory target table with three customers."""
    connection = sqlite3.connect(":memory:")
    connection.execute(
        "CREATE TABLE customers (id INTEGER PRIMARY KEY, name TEXT, amount TEXT, created TEXT)"
    )
    connection.executemany(
        "INSERT INTO customers VALUES (?, ?, ?, ?)",
        [
            (1, "Alice", "10.05", "2008-01-31"),
            (2, "Bob", "20.00", "2008-02-29"),
            (3, "Carol", None, None),
        ],
    )
    connection.commit()
    yield connection
    connection.close()


@pytest.fixture(autouse=True)
def clear_rowaudit_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep ROWAUDIT_* variables from the developer's shell out of tests."""
    for name in list(os.environ):
        if name.startswith("ROWAUDIT_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_target():
    """Factory for dict-backed targets."""
    return FakeTarget
