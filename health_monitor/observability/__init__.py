"""Observability layer - logging and metrics."""

from health_monitor.observability.logging import outreach_context, setup_logging
from health_monitor.observability.metrics import MetricsCollector, get_metrics

__all__ = ["setup_logging", "outreach_context", "MetricsCollector", "get_metrics"]
