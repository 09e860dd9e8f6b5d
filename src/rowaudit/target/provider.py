"""
Target table access for audit runs.

Builds one parameterized point-lookup statement and one key scan statement
from the column layout, then runs them through any DB-API connection
(psycopg2, pyodbc or sqlite3).
"""

import logging
from pathlib import Path
from typing import Any, Iterator

from opentelemetry import trace

from utils.database_types import DatabaseType
from utils.tracing import trace_function, trace_operation

from ..audit.keys import KeyTuple, LookupResult
from ..columns import ColumnDescriptor
from ..errors import ConfigurationError
from ..sources.cells import cell_to_text, row_to_text
from .quoting import quote_identifier

logger = logging.getLogger(__name__)

SQL_FILE_SUFFIX = ".rowaudit.sql"


def build_select_list(
    columns: list[ColumnDescriptor],
    db_type: DatabaseType,
    connection: Any = None,
) -> str:
    """Select list in column order; ignored columns are selected as NULL."""
    return ", ".join(
        "NULL" if column.ignored else quote_identifier(column.name, db_type, connection)
        for column in columns
    )


def build_lookup_sql(
    table: str,
    columns: list[ColumnDescriptor],
    key_ordinals: list[int],
    db_type: DatabaseType,
    connection: Any = None,
) -> str:
    """
    Build the parameterized point lookup statement.

    Args:
        table: Target table name (may include schema)
        columns: Column layout
        key_ordinals: 0-based key ordinals in key order
        db_type: Target database type, for quoting and placeholders
        connection: psycopg2 connection, for PostgreSQL quoting

    Returns:
        SELECT statement with one placeholder per key column
    """
    predicates = " AND ".join(
        f"{quote_identifier(columns[ordinal].name, db_type, connection)} = {db_type.placeholder}"
        for ordinal in key_ordinals
    )
    return (
        f"SELECT {build_select_list(columns, db_type, connection)} "
        f"FROM {quote_identifier(table, db_type, connection)} "
        f"WHERE {predicates}"
    )


def build_key_scan_sql(
    table: str,
    columns: list[ColumnDescriptor],
    key_ordinals: list[int],
    db_type: DatabaseType,
    connection: Any = None,
) -> str:
    key_list = ", ".join(
        quote_identifier(columns[ordinal].name, db_type, connection) for ordinal in key_ordinals
    )
    return f"SELECT {key_list} FROM {quote_identifier(table, db_type, connection)}"


@trace_function("describe_target_table", component="target")
def describe_table(connection: Any, table: str, db_type: DatabaseType | None = None) -> list[str]:
    """
    Read the target table's column names in table order.

    Args:
        connection: DB-API connection
        table: Target table name
        db_type: Target database type (detected from the connection if None)

    Returns:
        Column names

    Raises:
        ConfigurationError: If the table cannot be described
    """
    db_type = db_type or DatabaseType.from_connection(connection)
    statement = f"SELECT * FROM {quote_identifier(table, db_type, connection)} WHERE 1 = 0"

    cursor = connection.cursor()
    try:
        cursor.execute(statement)
        description = cursor.description
    except Exception as e:
        raise ConfigurationError(f"Could not determine the columns of {table}: {e}") from e
    finally:
        cursor.close()

    if not description:
        raise ConfigurationError(f"Could not determine the columns of {table}")
    return [entry[0] for entry in description]


class TargetQueryProvider:
    """
    Point lookups and key scans against the target table.

    Args:
        connection: DB-API connection to the target database
        table: Target table name
        columns: Column layout shared with the source
        key_ordinals: 0-based key ordinals in key order
        db_type: Target database type (detected from the connection if None)
        fetch_size: Rows fetched per round trip during the key scan
    """

    def __init__(
        self,
        connection: Any,
        table: str,
        columns: list[ColumnDescriptor],
        key_ordinals: list[int],
        db_type: DatabaseType | None = None,
        fetch_size: int = 1000,
    ):
        if not key_ordinals:
            raise ConfigurationError("At least one key column is required for target lookups")

        self.connection = connection
        self.table = table
        self.db_type = db_type or DatabaseType.from_connection(connection)
        self.fetch_size = fetch_size

        quoting_connection = connection if self.db_type == DatabaseType.POSTGRESQL else None
        self.lookup_sql = build_lookup_sql(table, columns, key_ordinals, self.db_type, quoting_connection)
        self.key_scan_sql = build_key_scan_sql(table, columns, key_ordinals, self.db_type, quoting_connection)
        self._cursor = None

        logger.debug(f"Target lookup for {table} ({self.db_type.value}): {self.lookup_sql}")

    def _lookup_cursor(self):
        if self._cursor is None:
            self._cursor = self.connection.cursor()
        return self._cursor

    def lookup(self, key: KeyTuple) -> LookupResult:
        """
        Fetch the target row for a key.

        Driver errors are returned on the result so the audit loop can
        report the row as missing and continue.
        """
        with trace_operation("target_lookup", kind=trace.SpanKind.CLIENT, table=self.table):
            cursor = self._lookup_cursor()
            try:
                cursor.execute(self.lookup_sql, tuple(key))
                row = cursor.fetchone()
            except Exception as e:
                self._recover()
                return LookupResult(error=str(e).strip() or type(e).__name__)

        if row is None:
            return LookupResult()
        return LookupResult(row=row_to_text(row))

    def _recover(self) -> None:
        """Roll back so an aborted transaction does not fail later lookups."""
        try:
            self.connection.rollback()
        except Exception as e:
            logger.debug(f"Rollback after failed lookup on {self.table} failed: {e}")
        self._cursor = None

    def iter_keys(self) -> Iterator[KeyTuple]:
        """Yield every key tuple in the target table, as stripped text."""
        cursor = self.connection.cursor()
        try:
            with trace_operation("target_key_scan", kind=trace.SpanKind.CLIENT, table=self.table):
                cursor.execute(self.key_scan_sql)
            while True:
                rows = cursor.fetchmany(self.fetch_size)
                if not rows:
                    break
                for row in rows:
                    yield tuple((cell_to_text(value) or "").strip() for value in row)
        finally:
            cursor.close()

    def write_sql_file(self, directory: str | Path = ".") -> Path:
        """
        Write the generated statements to <table>.rowaudit.sql.

        Args:
            directory: Directory to write the file into

        Returns:
            Path of the written file
        """
        path = Path(directory) / f"{self.table}{SQL_FILE_SUFFIX}"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            f"-- Point lookup for {self.table} ({self.db_type.value})\n"
            f"{self.lookup_sql};\n"
            f"-- Key scan for the reverse pass\n"
            f"{self.key_scan_sql};\n",
            encoding="utf-8",
        )
        logger.info(f"Generated target SQL written to {path}")
        return path

    def close(self) -> None:
        if self._cursor is not None:
            self._cursor.close()
            self._cursor = None
