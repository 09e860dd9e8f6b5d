"""
Prometheus metrics for audit runs

Usage:
    from utils.metrics import AuditMetrics, MetricsPublisher

    # Optionally expose metrics over HTTP
    publisher = MetricsPublisher(port=9091)
    publisher.start()

    # Record audit activity
    metrics = AuditMetrics()
    metrics.record_discrepancy("customers", kind="missing")
    metrics.record_run("customers", termination="exhausted", duration=12.5)
"""

import logging
from typing import Any

from prometheus_client import CollectorRegistry

from .audit import AuditMetrics
from .publisher import ApplicationInfo, MetricsPublisher
from .registry import get_or_create_metric

logger = logging.getLogger(__name__)


def initialize_metrics(
    port: int | None = None,
    registry: CollectorRegistry | None = None,
) -> dict[str, Any]:
    """
    Create the audit metrics and optionally start the metrics server

    Args:
        port: Port to expose metrics on; None leaves the server off
        registry: Custom Prometheus registry (default: global REGISTRY)

    Returns:
        Dictionary containing all metrics objects:
        - publisher: MetricsPublisher, or None when no port is given
        - audit: AuditMetrics
        - app_info: ApplicationInfo
    """
    publisher = None
    if port is not None:
        logger.info(f"Initializing metrics on port {port}")
        publisher = MetricsPublisher(port=port, registry=registry)
        publisher.start()

    return {
        "publisher": publisher,
        "audit": AuditMetrics(registry=registry),
        "app_info": ApplicationInfo(registry=registry),
    }


__all__ = [
    "MetricsPublisher",
    "AuditMetrics",
    "ApplicationInfo",
    "initialize_metrics",
    "get_or_create_metric",
]
