"""
Prometheus metrics for outreach dispatch.

Counts attempts per channel and outcome (sent, dry_run, rate_limited,
not_configured, failed, unknown_channel, timeout, skipped) and times
each dispatch. Exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    start_http_server,
)

from health_monitor.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for dispatch latency (in seconds); DMs make two API calls
LATENCY_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0)


class MetricsCollector:
    """
    Prometheus metrics collector for outreach.

    Usage:
        metrics = get_metrics()
        metrics.start_server()
        metrics.record_outreach("github", "sent", latency=0.4)
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        self._registry = registry or REGISTRY

        self.outreach_attempts = Counter(
            "llmfeed_outreach_attempts_total",
            "Outreach attempts by channel and outcome",
            ["channel", "outcome"],
            registry=self._registry,
        )

        self.dispatch_latency = Histogram(
            "llmfeed_outreach_dispatch_seconds",
            "Time spent dispatching one notification",
            ["channel"],
            buckets=LATENCY_BUCKETS,
            registry=self._registry,
        )

        logger.debug("Prometheus metrics initialized")

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        port = port or get_settings().metrics_port
        start_http_server(port, registry=self._registry)
        logger.info("Prometheus metrics server started on port %d", port)

    def record_outreach(
        self,
        channel: str,
        outcome: str,
        latency: float | None = None,
    ) -> None:
        """Record one outreach attempt and, if given, its dispatch time."""
        self.outreach_attempts.labels(channel=channel, outcome=outcome).inc()
        if latency is not None:
            self.dispatch_latency.labels(channel=channel).observe(latency)


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
