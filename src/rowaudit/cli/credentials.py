"""
Database connection settings and connection opening for the CLI.

Settings come from command-line arguments with ROWAUDIT_TARGET_* and
ROWAUDIT_SOURCE_* environment variables as fallbacks. Opening a connection
is retried on transient errors; anything else fails the run before any
row is audited.
"""

import argparse
import logging
import os
import sqlite3
from dataclasses import dataclass
from typing import Any

from utils.database_types import DatabaseType
from utils.retry import retry_database_operation

from ..errors import ConfigurationError, TargetConnectionError

logger = logging.getLogger(__name__)

DEFAULT_PORTS = {
    DatabaseType.POSTGRESQL: 5432,
    DatabaseType.SQLSERVER: 1433,
}
DEFAULT_ODBC_DRIVER = "ODBC Driver 18 for SQL Server"


@dataclass
class ConnectionSettings:
    """Where and how to connect to one database."""

    db_type: DatabaseType
    host: str | None = None
    port: int | None = None
    database: str | None = None
    username: str | None = None
    password: str | None = None
    driver: str = DEFAULT_ODBC_DRIVER

    def describe(self) -> str:
        """Connection description without credentials, for logs."""
        if self.db_type == DatabaseType.SQLITE:
            return f"sqlite:{self.database}"
        return f"{self.db_type.value}://{self.username or ''}@{self.host}:{self.port}/{self.database}"


def get_connection_settings(args: argparse.Namespace, side: str = "target") -> ConnectionSettings | None:
    """
    Resolve connection settings for the target or source database.

    Args:
        args: Parsed command-line arguments
        side: "target" or "source"

    Returns:
        Connection settings, or None when no source database is configured

    Raises:
        ConfigurationError: If the database type is missing or a password
            is required but not provided
    """
    prefix = f"ROWAUDIT_{side.upper()}_"

    def option(name: str) -> str | None:
        return getattr(args, f"{side}_{name}", None) or os.getenv(prefix + name.upper())

    type_name = option("type")
    if not type_name:
        if side == "source":
            return None
        raise ConfigurationError("A target database type is required (--target-type)")

    try:
        db_type = DatabaseType(type_name.lower())
    except ValueError:
        raise ConfigurationError(f"Unsupported {side} database type {type_name!r}") from None

    database = option("database")
    if not database:
        raise ConfigurationError(f"A {side} database is required (--{side}-database)")

    if db_type == DatabaseType.SQLITE:
        return ConnectionSettings(db_type=db_type, database=database)

    port = option("port")
    settings = ConnectionSettings(
        db_type=db_type,
        host=option("host") or "localhost",
        port=int(port) if port else DEFAULT_PORTS[db_type],
        database=database,
        username=option("user"),
        password=option("password"),
        driver=option("driver") or DEFAULT_ODBC_DRIVER,
    )
    if not settings.password:
        raise ConfigurationError(f"{side.capitalize()} database password not provided")
    return settings


def _connect(settings: ConnectionSettings) -> Any:
    if settings.db_type == DatabaseType.POSTGRESQL:
        import psycopg2

        return psycopg2.connect(
            host=settings.host,
            port=settings.port,
            database=settings.database,
            user=settings.username,
            password=settings.password,
        )
    if settings.db_type == DatabaseType.SQLSERVER:
        import pyodbc

        return pyodbc.connect(
            f"DRIVER={{{settings.driver}}};"
            f"SERVER={settings.host},{settings.port};"
            f"DATABASE={settings.database};"
            f"UID={settings.username};"
            f"PWD={settings.password};"
            f"TrustServerCertificate=yes;"
        )
    return sqlite3.connect(settings.database)


def open_connection(settings: ConnectionSettings, max_retries: int = 3, base_delay: float = 1.0) -> Any:
    """
    Open a DB-API connection, retrying transient failures.

    Args:
        settings: Connection settings
        max_retries: Retries after the first attempt
        base_delay: Initial backoff delay in seconds

    Returns:
        Open connection

    Raises:
        TargetConnectionError: If the connection cannot be opened
    """
    connect = retry_database_operation(max_retries=max_retries, base_delay=base_delay)(_connect)
    try:
        connection = connect(settings)
    except Exception as e:
        raise TargetConnectionError(f"Could not connect to {settings.describe()}: {e}") from e

    logger.info(f"Connected to {settings.describe()}")
    return connection
