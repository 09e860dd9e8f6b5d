"""
SQL query source.

A SQL file may hold several statements separated by ";". All statements
but the last are executed for their side effects (temporary tables,
session settings); rows are read from the last one. "--" comments are
removed before splitting, so a ";" inside a string literal is not
supported.
"""

import logging
import re
from pathlib import Path
from typing import Any, Iterator

from ..errors import SourceError
from .cells import row_to_text

logger = logging.getLogger(__name__)

_LINE_COMMENT = re.compile(r"--[^\n]*")


def split_statements(sql_text: str) -> list[str]:
    """
    Split a SQL script into statements.

    Args:
        sql_text: Script text

    Returns:
        Non-empty statements without comments or trailing ";"
    """
    without_comments = _LINE_COMMENT.sub("", sql_text)
    return [part.strip() for part in without_comments.split(";") if part.strip()]


class QuerySource:
    """
    Row source over the result of a SQL query.

    Null cells are returned as empty strings, matching what a flat file
    extract of the same data would contain.
    """

    def __init__(self, connection: Any, sql_text: str, name: str = "query", fetch_size: int = 1000):
        """
        Initialize the source.

        Args:
            connection: Open DB-API connection to the source database
            sql_text: One or more ";"-separated statements
            name: Name shown in reports
            fetch_size: Rows fetched per round trip
        """
        self.connection = connection
        self.statements = split_statements(sql_text)
        self.name = name
        self.fetch_size = fetch_size
        self.column_names: list[str] | None = None
        self._cursor = None

        if not self.statements:
            raise SourceError(f"No SQL statements found in {name}")

    @classmethod
    def from_file(cls, connection: Any, path: str, fetch_size: int = 1000) -> "QuerySource":
        try:
            sql_text = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise SourceError(f"Cannot read SQL file {path}: {e}") from e
        return cls(connection, sql_text, name=Path(path).name, fetch_size=fetch_size)

    def open(self) -> "QuerySource":
        """
        Run the script and leave a cursor positioned on the last statement's rows.

        Raises:
            SourceError: If any statement fails
        """
        if self._cursor is not None:
            return self

        cursor = self.connection.cursor()
        try:
            for statement in self.statements[:-1]:
                logger.debug(f"Executing setup statement: {statement[:80]}")
                cursor.execute(statement)
            cursor.execute(self.statements[-1])
        except Exception as e:
            cursor.close()
            raise SourceError(f"Source query {self.name} failed: {e}") from e

        if cursor.description is None:
            cursor.close()
            raise SourceError(f"The last statement of {self.name} returns no rows")

        self.column_names = [column[0] for column in cursor.description]
        self._cursor = cursor
        logger.info(f"Source query {self.name} returns {len(self.column_names)} columns")
        return self

    def close(self) -> None:
        if self._cursor is not None:
            self._cursor.close()
            self._cursor = None

    def __enter__(self) -> "QuerySource":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[list[str]]:
        if self._cursor is None:
            self.open()

        while True:
            rows = self._cursor.fetchmany(self.fetch_size)
            if not rows:
                break
            for row in rows:
                yield ["" if cell is None else cell for cell in row_to_text(row)]
