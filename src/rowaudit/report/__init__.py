"""
Discrepancy report generation and formatting.

This submodule writes the tab-delimited discrepancy report, exports run
summaries and appends finished runs to the audit trail.
"""

from .audit_log import AUDIT_LOG_FIELDS, append_audit_log
from .formatters import export_summary_json, format_summary_console, see_a_null
from .writer import HEADING_FIELDS, Discrepancy, DiscrepancyKind, DiscrepancyReport

__all__ = [
    'DiscrepancyReport',
    'Discrepancy',
    'DiscrepancyKind',
    'HEADING_FIELDS',
    'AUDIT_LOG_FIELDS',
    'append_audit_log',
    'export_summary_json',
    'format_summary_console',
    'see_a_null',
]
