"""
Command-line interface for row audits.

Available commands:
- run: Audit a source dataset against a target table
- formats: List the candidate date patterns

Exit codes: 0 when the run finished (including a threshold stop),
2 for configuration errors, 3 when a database or the source cannot be
opened, 1 for anything unexpected.
"""

import logging
import sys

from utils.logging import configure_from_env

from ..errors import ConfigurationError, SourceError, TargetConnectionError
from .commands import audit_table, cmd_formats, cmd_run
from .config import AuditConfig
from .credentials import get_connection_settings, open_connection
from .parser import create_parser

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNEXPECTED = 1
EXIT_CONFIGURATION = 2
EXIT_CONNECTION = 3


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the rowaudit CLI"""
    parser = create_parser()
    args = parser.parse_args(argv)

    configure_from_env(args.log_level)

    try:
        if args.command == 'run':
            cmd_run(args)
        elif args.command == 'formats':
            cmd_formats(args)
        else:
            parser.print_help()
            return EXIT_UNEXPECTED
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIGURATION
    except (TargetConnectionError, SourceError) as e:
        logger.error(f"Setup failed: {e}")
        return EXIT_CONNECTION
    except Exception as e:
        logger.exception(f"Audit failed: {e}")
        return EXIT_UNEXPECTED

    return EXIT_OK


__all__ = [
    'main',
    'AuditConfig',
    'audit_table',
    'cmd_run',
    'cmd_formats',
    'create_parser',
    'get_connection_settings',
    'open_connection',
    'EXIT_OK',
    'EXIT_UNEXPECTED',
    'EXIT_CONFIGURATION',
    'EXIT_CONNECTION',
]


if __name__ == '__main__':
    sys.exit(main())
