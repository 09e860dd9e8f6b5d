"""
Command-line argument parser configuration.

This module sets up the argument parser for the rowaudit CLI tool,
defining all commands and their options.
"""

import argparse

from ..audit.context import DEFAULT_MAX_ERRORS, DEFAULT_MAX_ROWS_WITH_ERRORS, DEFAULT_PROGRESS_EVERY
from ..compare.dates import DEFAULT_TARGET_FORMAT
from ..metadata import DEFAULT_CATALOG_TABLE

DATABASE_TYPES = ['postgresql', 'sqlserver', 'sqlite']


def _add_connection_arguments(parser: argparse.ArgumentParser, side: str, label: str) -> None:
    group = parser.add_argument_group(f'{label} database')
    group.add_argument(f'--{side}-type', choices=DATABASE_TYPES, help=f'{label} database type')
    group.add_argument(f'--{side}-host', help=f'{label} host (SQL Server: server name)')
    group.add_argument(f'--{side}-port', help=f'{label} port')
    group.add_argument(f'--{side}-database', help=f'{label} database name (SQLite: file path)')
    group.add_argument(f'--{side}-user', help=f'{label} username')
    group.add_argument(f'--{side}-password', help=f'{label} password')
    group.add_argument(f'--{side}-driver', help=f'{label} ODBC driver name (SQL Server only)')


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog='rowaudit',
        description="Row-by-row audit of a source dataset against a target database table",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Audit a pipe-delimited extract whose first line is a HEADER record
  rowaudit run --table customers --input-file customers.dat --header --keys 1

  # Composite key, 1% tolerance on numbers, reverse pass for target-only rows
  rowaudit run --table orders --input-file orders.dat --header --keys 1,2 \\
      --tolerance 1% --reverse

  # Audit the result of a SQL query run on a separate source database
  rowaudit run --table customers --sql-file extract.sql --header --keys 1 \\
      --source-type sqlserver --source-host mssql01 --source-database sales

  # Column layout and keys taken from the metadata catalog
  rowaudit run --table customers --input-file customers.dat --metadata-table meta_dwh_table_field

  # List the date patterns tried when discovering date formats
  rowaudit formats
        """
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: LOG_LEVEL or INFO)'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # ========== Run command ==========
    run_parser = subparsers.add_parser('run', help='Audit a source dataset against a target table')

    source = run_parser.add_argument_group('source and layout')
    source.add_argument('--table', help='Target table to audit (may include schema)')
    inputs = source.add_mutually_exclusive_group()
    inputs.add_argument('--input-file', help='Pipe-delimited source file')
    inputs.add_argument('--sql-file', help='SQL file whose last statement returns the source rows')
    source.add_argument(
        '--header',
        action='store_true',
        help='Take column names from the HEADER record or the query result'
    )
    source.add_argument(
        '--columns',
        help='Comma-separated column names in source order; use \'\' to skip a column'
    )
    source.add_argument(
        '--keys',
        help='Comma-separated 1-based key column positions (default: from the metadata catalog)'
    )

    comparison = run_parser.add_argument_group('comparison')
    comparison.add_argument(
        '--tolerance',
        help='Numeric tolerance: absolute ("0.05") or percentage of the target ("1%%")'
    )
    comparison.add_argument(
        '--source-date-format',
        help='Date pattern tried first for source dates (e.g. dd/MM/yyyy)'
    )
    comparison.add_argument(
        '--target-date-format',
        help=f'Initial target date pattern (default: {DEFAULT_TARGET_FORMAT})'
    )
    comparison.add_argument(
        '--no-numeric-strings',
        action='store_true',
        help='Compare character columns as text even when values look numeric or date-like'
    )

    limits = run_parser.add_argument_group('run control')
    limits.add_argument(
        '--max-errors',
        type=int,
        help=f'Stop once total errors reach this value (default: {DEFAULT_MAX_ERRORS})'
    )
    limits.add_argument(
        '--max-rows-with-errors',
        type=int,
        help=f'Stop once rows in error reach this value (default: {DEFAULT_MAX_ROWS_WITH_ERRORS})'
    )
    limits.add_argument(
        '--skip-rows',
        type=int,
        help='Count but do not audit the first N data rows (default: 0)'
    )
    limits.add_argument(
        '--progress-every',
        type=int,
        help=f'Log progress every N rows (default: {DEFAULT_PROGRESS_EVERY})'
    )
    limits.add_argument(
        '--reverse',
        action='store_true',
        help='After a complete run, report target keys absent from the source'
    )
    limits.add_argument(
        '--suppress-warnings',
        action='store_true',
        help='Do not log per-row warnings'
    )

    outputs = run_parser.add_argument_group('outputs')
    outputs.add_argument('--output', help='Discrepancy report path (default: <table>.rowaudit.txt)')
    outputs.add_argument(
        '--output-dir',
        help='Directory for the default report and the generated SQL file (default: current directory)'
    )
    outputs.add_argument('--summary-json', help='Write the run summary as JSON to this path')
    outputs.add_argument('--audit-log', help='Append the run to this tab-delimited audit trail')
    outputs.add_argument(
        '--no-sql-file',
        action='store_true',
        help='Do not write the generated target SQL to <table>.rowaudit.sql'
    )

    catalog = run_parser.add_argument_group('metadata catalog')
    catalog.add_argument(
        '--metadata-table',
        nargs='?',
        const=DEFAULT_CATALOG_TABLE,
        help=f'Read column metadata from this catalog table (default name: {DEFAULT_CATALOG_TABLE})'
    )
    catalog.add_argument('--source-system', help='Only use catalog rows for this source system')

    _add_connection_arguments(run_parser, 'target', 'Target')
    _add_connection_arguments(run_parser, 'source', 'Source query')

    observability = run_parser.add_argument_group('observability')
    observability.add_argument('--metrics-port', type=int, help='Expose Prometheus metrics on this port')
    observability.add_argument('--otlp-endpoint', help='Export traces to this OTLP collector')

    # ========== Formats command ==========
    subparsers.add_parser('formats', help='List the candidate date patterns in priority order')

    return parser
