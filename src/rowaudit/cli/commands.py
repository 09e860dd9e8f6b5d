"""
CLI command implementations.

This module contains the implementation of the CLI commands:
- run: Audit a source dataset against a target table
- formats: List the candidate date patterns
"""

import argparse
import logging
from typing import Any

from utils.metrics import initialize_metrics
from utils.tracing import initialize_tracing, shutdown_tracing

from ..audit import RowAuditor, RunContext, RunCounters
from ..columns import build_columns, parse_key_positions
from ..compare import CANDIDATE_PATTERNS, DateFormatCache, ValueComparator
from ..errors import ConfigurationError
from ..metadata import (
    MetadataCatalog,
    MetadataField,
    apply_metadata,
    catalog_key_ordinals,
    catalog_names,
)
from ..report import DiscrepancyReport, append_audit_log, export_summary_json, format_summary_console
from ..sources import FlatFileSource, QuerySource
from ..target import TargetQueryProvider, describe_table
from .config import AuditConfig
from .credentials import get_connection_settings, open_connection

logger = logging.getLogger(__name__)


def open_source(config: AuditConfig, connection: Any) -> FlatFileSource | QuerySource:
    """
    Open the configured source dataset.

    Args:
        config: Run configuration
        connection: Connection the source query runs on

    Returns:
        Opened source, positioned at the first data row
    """
    if config.input_file:
        return FlatFileSource(config.input_file, header=config.header).open()
    return QuerySource.from_file(connection, config.sql_file).open()


def resolve_column_names(
    config: AuditConfig,
    source: FlatFileSource | QuerySource,
    target_connection: Any,
    fields: list[MetadataField],
) -> list[str]:
    """
    Decide the column layout.

    Explicit --columns win, then names from the source header (a HEADER
    record, or the query result with --header), then the metadata catalog,
    then the target table itself.
    """
    if config.columns:
        return config.columns

    from_header = config.header or isinstance(source, FlatFileSource)
    if from_header and source.column_names:
        return source.column_names

    if fields:
        return catalog_names(fields)

    return describe_table(target_connection, config.table)


def resolve_key_ordinals(config: AuditConfig, names: list[str], fields: list[MetadataField]) -> list[int]:
    if config.keys:
        return parse_key_positions(config.keys)

    ordinals = catalog_key_ordinals(fields, names)
    if not ordinals:
        raise ConfigurationError(
            "No key columns given (--keys) and none flagged in the metadata catalog"
        )
    return ordinals


def audit_table(
    config: AuditConfig,
    target_connection: Any,
    source_connection: Any,
    metrics: Any = None,
) -> RunContext:
    """
    Run one complete audit.

    Args:
        config: Run configuration
        target_connection: Connection to the target database
        source_connection: Connection the source query runs on
        metrics: AuditMetrics instance, or None

    Returns:
        The finished run context
    """
    fields: list[MetadataField] = []
    if config.metadata_table:
        catalog = MetadataCatalog(target_connection, config.metadata_table, config.source_system)
        fields = catalog.fields(config.table)

    with open_source(config, source_connection) as source:
        names = resolve_column_names(config, source, target_connection, fields)
        key_ordinals = resolve_key_ordinals(config, names, fields)
        columns = build_columns(names, key_ordinals)
        unaudited = apply_metadata(columns, fields) if fields else None

        formats = DateFormatCache(config.target_date_format, config.source_date_format)
        context = RunContext(
            table=config.table,
            columns=columns,
            key_ordinals=key_ordinals,
            formats=formats,
            max_errors=config.max_errors,
            max_rows_with_errors=config.max_rows_with_errors,
            skip_rows=config.skip_rows,
            progress_every=config.progress_every,
            reverse=config.reverse,
            input_name=source.name,
        )

        provider = TargetQueryProvider(target_connection, config.table, columns, key_ordinals)
        if config.write_sql_file:
            provider.write_sql_file(config.output_dir)

        comparator = ValueComparator(
            formats,
            tolerance=config.tolerance,
            numeric_strings=config.numeric_strings,
            quiet=config.quiet,
        )
        report = DiscrepancyReport.open(config.report_path)

        try:
            RowAuditor(
                context,
                source,
                provider,
                comparator,
                report,
                metrics=metrics,
                quiet=config.quiet,
                unaudited_metadata_columns=unaudited,
            ).run()
        finally:
            provider.close()

    return context


def _close(connection: Any) -> None:
    try:
        connection.close()
    except Exception as e:
        logger.warning(f"Error closing connection: {e}")


def cmd_run(args: argparse.Namespace) -> RunCounters:
    """
    Run an audit

    Args:
        args: Parsed command-line arguments

    Returns:
        Final run counters
    """
    config = AuditConfig.from_args(args)
    logger.info(f"Starting audit of {config.table} against {config.input_name}")

    metrics = initialize_metrics(port=config.metrics_port)["audit"]
    if config.otlp_endpoint:
        initialize_tracing(otlp_endpoint=config.otlp_endpoint)

    target_settings = get_connection_settings(args, "target")
    source_settings = get_connection_settings(args, "source") if config.sql_file else None

    connections = []
    try:
        target_connection = open_connection(target_settings)
        connections.append(target_connection)

        source_connection = target_connection
        if source_settings is not None:
            source_connection = open_connection(source_settings)
            connections.append(source_connection)

        context = audit_table(config, target_connection, source_connection, metrics)
    finally:
        for connection in connections:
            _close(connection)
        if config.otlp_endpoint:
            shutdown_tracing()

    summary = context.summary()
    summary["report"] = config.report_path
    print(format_summary_console(summary))

    if config.summary_json:
        export_summary_json(summary, config.summary_json)
        logger.info(f"Run summary written to {config.summary_json}")
    if config.audit_log:
        append_audit_log(config.audit_log, context)

    return context.counters


def cmd_formats(args: argparse.Namespace) -> None:
    """Print the candidate date patterns in the order they are tried."""
    for priority, pattern in enumerate(CANDIDATE_PATTERNS, start=1):
        print(f"{priority:3d}  {pattern}")
