"""
Metrics publisher for the Prometheus HTTP endpoint.

Audit runs are short-lived, so the endpoint is optional: it is started only
when a metrics port is configured and lives as long as the process.
"""

import logging
import time
from typing import Optional

from prometheus_client import (
    start_http_server,
    Gauge,
    Info,
    CollectorRegistry,
    REGISTRY,
)

from .registry import get_or_create_metric

logger = logging.getLogger(__name__)


class MetricsPublisher:
    """
    Exposes a registry on the /metrics endpoint
    """

    def __init__(
        self,
        port: int = 9091,
        registry: Optional[CollectorRegistry] = None,
    ):
        """
        Initialize metrics publisher

        Args:
            port: Port to expose metrics on (default: 9091)
            registry: Custom Prometheus registry (default: global REGISTRY)
        """
        self.port = port
        self.registry = registry or REGISTRY
        self._server_started = False

    def start(self) -> None:
        """Start the metrics HTTP server"""
        if self._server_started:
            logger.warning(f"Metrics server already running on port {self.port}")
            return

        try:
            start_http_server(self.port, registry=self.registry)
        except OSError as e:
            logger.error(f"Metrics server cannot start on port {self.port}: {e}")
            raise RuntimeError(
                f"Metrics server port {self.port} is unavailable: {e}"
            ) from e

        self._server_started = True
        logger.info(f"Metrics server started on port {self.port}")

    def is_started(self) -> bool:
        """Check if metrics server is running"""
        return self._server_started


class ApplicationInfo:
    """
    Build information and process uptime
    """

    def __init__(
        self,
        app_name: str = "rowaudit",
        version: str = "1.0.0",
        registry: Optional[CollectorRegistry] = None,
    ):
        """
        Initialize application info metrics

        Args:
            app_name: Application name
            version: Application version
            registry: Custom Prometheus registry (default: global REGISTRY)
        """
        self.registry = registry or REGISTRY

        self.info = get_or_create_metric(
            lambda: Info(
                "rowaudit_application",
                "Application metadata",
                registry=self.registry,
            ),
            "rowaudit_application_info",
            self.registry,
        )
        self.info.info({"name": app_name, "version": version})

        self._start_time = time.time()

        self.uptime_seconds = get_or_create_metric(
            lambda: Gauge(
                "rowaudit_uptime_seconds",
                "Process uptime in seconds",
                registry=self.registry,
            ),
            "rowaudit_uptime_seconds",
            self.registry,
        )

    def update_uptime(self) -> None:
        """Update the uptime metric"""
        self.uptime_seconds.set(self.get_uptime())

    def get_uptime(self) -> float:
        """Get current uptime in seconds"""
        return time.time() - self._start_time
