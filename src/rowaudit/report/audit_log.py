"""
Append-only audit trail of runs.

Each finished run adds one tab-separated line to a shared log file so that
operators can see what was audited, when and with what result. A heading
line is written when the file is created.
"""

import getpass
import logging
from pathlib import Path

from ..audit.context import RunContext

logger = logging.getLogger(__name__)

AUDIT_LOG_FIELDS = [
    "Start time",
    "End time",
    "Table name",
    "Input name",
    "Rows checked",
    "Columns checked",
    "Rows with errors",
    "Columns with errors",
    "Missing rows",
    "Reverse missing rows",
    "Termination",
    "User Id",
]


def append_audit_log(path: str, context: RunContext, user: str | None = None) -> None:
    """
    Append a run to the audit trail

    Args:
        path: Audit log file path
        context: Finished run context
        user: User id recorded with the run (default: current login)
    """
    log_path = Path(path)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    is_new = not log_path.exists() or log_path.stat().st_size == 0
    counters = context.counters

    with open(log_path, "a", newline="", encoding="utf-8") as f:
        if is_new:
            f.write("\t".join(AUDIT_LOG_FIELDS) + "\n")
        values = [
            context.started_at.strftime("%Y-%m-%d %H:%M:%S"),
            context.finished_at.strftime("%Y-%m-%d %H:%M:%S") if context.finished_at else "",
            context.table,
            context.input_name,
            counters.rows_checked,
            counters.non_key_columns_audited,
            counters.rows_with_errors,
            counters.columns_with_errors,
            counters.missing_rows,
            counters.reverse_missing,
            context.termination.value if context.termination else "",
            user or getpass.getuser(),
        ]
        f.write("\t".join(str(value) for value in values) + "\n")

    logger.info(f"Run appended to audit log {log_path}")
