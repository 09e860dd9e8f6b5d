"""
Database type enumeration for driver-specific SQL details.

Identifies the database behind a DB-API connection or cursor from the
driver module, and supplies the placeholder style and identifier quoting
that driver expects.
"""

from enum import Enum
from typing import Any


class DatabaseType(str, Enum):
    """
    Enumeration of supported database types.

    Inherits from str for JSON serialization compatibility and
    easy comparison with string values.
    """

    POSTGRESQL = "postgresql"
    SQLSERVER = "sqlserver"
    SQLITE = "sqlite"
    UNKNOWN = "unknown"

    @classmethod
    def from_module(cls, module_name: str) -> "DatabaseType":
        module_name = module_name.lower()
        if "psycopg" in module_name:
            return cls.POSTGRESQL
        if "pyodbc" in module_name:
            return cls.SQLSERVER
        if "sqlite" in module_name:
            return cls.SQLITE
        return cls.UNKNOWN

    @classmethod
    def from_connection(cls, connection: Any) -> "DatabaseType":
        """
        Detect database type from the connection's driver module.

        Args:
            connection: DB-API connection object

        Returns:
            DatabaseType enum value
        """
        return cls.from_module(type(connection).__module__)

    @classmethod
    def from_cursor(cls, cursor: Any) -> "DatabaseType":
        return cls.from_module(type(cursor).__module__)

    @property
    def placeholder(self) -> str:
        """Positional parameter marker for this driver."""
        if self == DatabaseType.POSTGRESQL:
            return "%s"
        return "?"

    def quote_identifier(self, identifier: str) -> str:
        """
        Quote a single identifier part for this database.

        Args:
            identifier: Column, table or schema name (no dots)

        Returns:
            Quoted identifier string
        """
        if self == DatabaseType.SQLSERVER:
            return "[" + identifier.replace("]", "]]") + "]"
        return '"' + identifier.replace('"', '""') + '"'
