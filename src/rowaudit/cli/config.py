"""
Run configuration resolved from command-line arguments and environment.

Every run option can be given on the command line; the numeric limits and
defaults can also come from ROWAUDIT_* environment variables, which in
turn fall back to built-in defaults.
"""

import argparse
import os
from dataclasses import dataclass, field
from pathlib import Path

from ..audit.context import DEFAULT_MAX_ERRORS, DEFAULT_MAX_ROWS_WITH_ERRORS, DEFAULT_PROGRESS_EVERY
from ..compare.values import Tolerance
from ..errors import ConfigurationError

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a whole number, got {raw!r}") from None


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in _TRUE_VALUES


def _split_names(text: str | None) -> list[str] | None:
    if text is None:
        return None
    return [name.strip() for name in text.split(",")]


@dataclass
class AuditConfig:
    """Resolved options for one audit run."""

    table: str
    input_file: str | None = None
    sql_file: str | None = None
    header: bool = False
    columns: list[str] | None = None
    keys: str | None = None
    tolerance: Tolerance = field(default_factory=Tolerance)
    source_date_format: str | None = None
    target_date_format: str | None = None
    numeric_strings: bool = True
    max_errors: int = DEFAULT_MAX_ERRORS
    max_rows_with_errors: int = DEFAULT_MAX_ROWS_WITH_ERRORS
    skip_rows: int = 0
    progress_every: int = DEFAULT_PROGRESS_EVERY
    reverse: bool = False
    quiet: bool = False
    output: str | None = None
    output_dir: str = "."
    summary_json: str | None = None
    audit_log: str | None = None
    write_sql_file: bool = True
    metadata_table: str | None = None
    source_system: str | None = None
    metrics_port: int | None = None
    otlp_endpoint: str | None = None

    @property
    def input_name(self) -> str:
        return Path(self.input_file or self.sql_file or "").name

    @property
    def report_path(self) -> str:
        if self.output:
            return self.output
        return str(Path(self.output_dir) / f"{self.table}.rowaudit.txt")

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "AuditConfig":
        """
        Build the configuration from parsed arguments.

        Args:
            args: Parsed arguments of the run command

        Returns:
            Resolved configuration

        Raises:
            ConfigurationError: If required options are missing or invalid
        """
        table = args.table or os.getenv("ROWAUDIT_TABLE")
        if not table:
            raise ConfigurationError("A target table is required (--table)")
        if not args.input_file and not args.sql_file:
            raise ConfigurationError("A source is required (--input-file or --sql-file)")

        metrics_port = args.metrics_port
        if metrics_port is None and os.getenv("ROWAUDIT_METRICS_PORT"):
            metrics_port = _env_int("ROWAUDIT_METRICS_PORT", 0)

        return cls(
            table=table.strip(),
            input_file=args.input_file,
            sql_file=args.sql_file,
            header=args.header,
            columns=_split_names(args.columns),
            keys=args.keys or os.getenv("ROWAUDIT_KEYS"),
            tolerance=Tolerance.parse(args.tolerance or os.getenv("ROWAUDIT_TOLERANCE")),
            source_date_format=args.source_date_format or os.getenv("ROWAUDIT_SOURCE_DATE_FORMAT"),
            target_date_format=args.target_date_format or os.getenv("ROWAUDIT_TARGET_DATE_FORMAT"),
            numeric_strings=not (args.no_numeric_strings or _env_flag("ROWAUDIT_NO_NUMERIC_STRINGS")),
            max_errors=(
                args.max_errors if args.max_errors is not None
                else _env_int("ROWAUDIT_MAX_ERRORS", DEFAULT_MAX_ERRORS)
            ),
            max_rows_with_errors=(
                args.max_rows_with_errors if args.max_rows_with_errors is not None
                else _env_int("ROWAUDIT_MAX_ROWS_WITH_ERRORS", DEFAULT_MAX_ROWS_WITH_ERRORS)
            ),
            skip_rows=(
                args.skip_rows if args.skip_rows is not None
                else _env_int("ROWAUDIT_SKIP_ROWS", 0)
            ),
            progress_every=(
                args.progress_every if args.progress_every is not None
                else _env_int("ROWAUDIT_PROGRESS_EVERY", DEFAULT_PROGRESS_EVERY)
            ),
            reverse=args.reverse or _env_flag("ROWAUDIT_REVERSE"),
            quiet=args.suppress_warnings or _env_flag("ROWAUDIT_SUPPRESS_WARNINGS"),
            output=args.output,
            output_dir=args.output_dir or os.getenv("ROWAUDIT_OUTPUT_DIR", "."),
            summary_json=args.summary_json,
            audit_log=args.audit_log or os.getenv("ROWAUDIT_AUDIT_LOG"),
            write_sql_file=not args.no_sql_file,
            metadata_table=args.metadata_table or os.getenv("ROWAUDIT_METADATA_TABLE"),
            source_system=args.source_system or os.getenv("ROWAUDIT_SOURCE_SYSTEM"),
            metrics_port=metrics_port,
            otlp_endpoint=args.otlp_endpoint,
        )
