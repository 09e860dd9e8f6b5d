"""
Row-by-row data audit of a source dataset against a target table.

This package pairs every source row (flat file or SQL query) with at most
one target row on a declared key and reports each column that differs,
using type-aware comparison rules that survive renamed columns, different
date formats and stringified numbers.

Components:
- compare: Type classification, date format discovery and value comparison
- audit: Run context, key lookup protocol, row audit loop and reverse pass
- sources: Flat file and SQL query row sources
- target: Parameterized target lookups and reverse key scans
- metadata: Optional column provenance catalog
- report: Discrepancy report, summaries and audit trail
- cli: Command-line entry point

Usage:
    from rowaudit.audit import RowAuditor, RunContext
    from rowaudit.compare import ValueComparator, classify
    from rowaudit.report import DiscrepancyReport
"""

__version__ = "1.0.0"
__all__ = ["audit", "compare", "sources", "target", "metadata", "report", "cli"]
