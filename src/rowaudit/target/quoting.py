"""
SQL identifier validation and quoting for generated target queries.

Table and column names come from the command line, flat file headers and
catalog tables, so every identifier is validated before it is quoted.
"""

import re
from typing import Any

from psycopg2 import sql

from utils.database_types import DatabaseType

from ..errors import ConfigurationError

# Strict ASCII-only pattern for SQL identifiers (no Unicode via \w)
VALID_IDENTIFIER_PATTERN = re.compile(
    r'^[a-zA-Z_][a-zA-Z0-9_$#]*(\.[a-zA-Z_][a-zA-Z0-9_$#]*)?$'
)


def validate_identifier(identifier: str) -> list[str]:
    """
    Validate a name and split it into schema and object parts.

    Args:
        identifier: Name such as "customers" or "dbo.customers"; SQL Server
            brackets are accepted and removed

    Returns:
        Identifier parts

    Raises:
        ConfigurationError: If the identifier format is invalid
    """
    clean = identifier.strip().replace('[', '').replace(']', '')
    if not VALID_IDENTIFIER_PATTERN.match(clean):
        raise ConfigurationError(f"Invalid identifier format: {identifier!r}")
    return clean.split('.')


def quote_identifier(
    identifier: str,
    db_type: DatabaseType,
    connection: Any = None,
) -> str:
    """
    Quote an identifier for the target database

    Args:
        identifier: Table or column name (may include schema)
        db_type: Target database type
        connection: psycopg2 connection, used for PostgreSQL quoting

    Returns:
        Safely quoted identifier
    """
    parts = validate_identifier(identifier)

    if db_type == DatabaseType.POSTGRESQL and connection is not None:
        return sql.Identifier(*parts).as_string(connection)

    return '.'.join(db_type.quote_identifier(part) for part in parts)
