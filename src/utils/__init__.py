"""
Shared infrastructure for audit runs

Provides:
- logging: Structured and console logging setup
- metrics: Prometheus metrics for audit runs
- tracing: OpenTelemetry spans around runs and lookups
- retry: Backoff for opening database connections
- database_types: Driver detection and identifier quoting rules
"""

__version__ = "1.0.0"
__all__ = ["logging", "metrics", "tracing", "retry", "database_types"]
