"""
Report formatting and export utilities.

This module renders cell values and run statistics for the discrepancy
report, and exports run summaries as JSON or console text.
"""

import json
from pathlib import Path
from typing import Any


def see_a_null(value: str | None) -> str:
    """
    Make null and blank cells visible in a tab-delimited report.

    Args:
        value: Cell text

    Returns:
        "Null", "Empty", "N Space(s)" or the value itself
    """
    if value is None:
        return "Null"
    if value == "":
        return "Empty"
    if value.strip(" ") == "":
        return f"{len(value)} Space(s)"
    return value


def export_summary_json(summary: dict[str, Any], output_path: str) -> None:
    """
    Export a run summary to a JSON file

    Args:
        summary: Summary dictionary from RunContext.summary()
        output_path: Path to output file
    """
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(summary, f, indent=2, default=str)


def format_summary_console(summary: dict[str, Any]) -> str:
    """
    Format a run summary for console output

    Args:
        summary: Summary dictionary from RunContext.summary()

    Returns:
        Formatted string for console display
    """
    counters = summary["counters"]
    lines = []

    lines.append("=" * 80)
    lines.append("ROW AUDIT SUMMARY")
    lines.append("=" * 80)
    lines.append(f"Table: {summary['table']}")
    lines.append(f"Input: {summary['input']}")
    lines.append(f"Keys: {', '.join(summary['key_columns'])}")
    lines.append(f"Ended: {summary['termination']}")
    lines.append("")
    lines.append(f"Rows checked:        {counters['rows_checked']:,}")
    lines.append(f"Rows skipped:        {counters['rows_skipped']:,}")
    lines.append(f"Columns checked:     {counters['non_key_columns_audited']:,}")
    lines.append(f"Rows with errors:    {counters['rows_with_errors']:,}")
    lines.append(f"Columns with errors: {counters['columns_with_errors']:,}")
    lines.append(f"Missing rows:        {counters['missing_rows']:,}")
    lines.append(f"Reverse missing:     {counters['reverse_missing']:,}")
    lines.append(f"Degraded cells:      {counters['cells_degraded']:,}")
    lines.append(f"Total of all errors: {counters['total_errors']:,}")

    if summary["degraded_columns"]:
        lines.append("")
        lines.append("DEGRADED COLUMNS")
        lines.append("-" * 80)
        for entry in summary["degraded_columns"]:
            lines.append(f"{entry['column']}: {entry['reason']}")

    lines.append("=" * 80)

    return "\n".join(lines)
