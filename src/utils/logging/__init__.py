"""
Structured logging configuration for audit runs

Usage:
    import logging

    from utils.logging import configure_from_env

    # Setup logging once at startup (LOG_LEVEL, LOG_FILE, LOG_JSON, LOG_CONSOLE)
    configure_from_env()

    logger = logging.getLogger(__name__)
    logger.info("Audit started", extra={"table": "customers"})
"""

from .config import configure_from_env, setup_logging
from .formatters import ConsoleFormatter, JSONFormatter, extra_fields
from .handlers import ContextLogger

__all__ = [
    "setup_logging",
    "configure_from_env",
    "JSONFormatter",
    "ConsoleFormatter",
    "ContextLogger",
    "extra_fields",
]
