"""Observability for Herald: structured logging and Prometheus metrics."""

from herald.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    LogContext,
    configure_logging,
    group_var,
)
from herald.observability.metrics import MetricsRegistry, NoOpMetric, get_metrics

__all__ = [
    "ConsoleFormatter",
    "JsonFormatter",
    "LogContext",
    "configure_logging",
    "group_var",
    "MetricsRegistry",
    "NoOpMetric",
    "get_metrics",
]
