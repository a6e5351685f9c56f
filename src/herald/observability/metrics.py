"""Prometheus metrics for Herald.

Provides:
- Leader change and watch failure counters
- Watch request counter
- Detect request counter by outcome (immediate or queued)
- Pending waiter gauge

Usage:
    from herald.observability.metrics import get_metrics

    metrics = get_metrics()
    metrics.leader_changes_total.labels(group="workers").inc()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from prometheus_client import REGISTRY, Counter, Gauge
from prometheus_client import generate_latest as _generate_latest

from herald.config import settings

logger = logging.getLogger(__name__)


class NoOpMetric:
    """No-op metric for when metrics are disabled."""

    def labels(self, **kwargs: Any) -> "NoOpMetric":
        """Return self for chaining."""
        return self

    def inc(self, amount: float = 1) -> None:
        pass

    def dec(self, amount: float = 1) -> None:
        pass

    def set(self, value: float) -> None:
        pass


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    leader_changes_total: Any = None
    watch_failures_total: Any = None
    watches_total: Any = None
    detect_requests_total: Any = None
    waiters_pending: Any = None

    # Internal state
    _initialized: bool = field(default=False, repr=False)
    _registry: Any = field(default=None, repr=False)

    def initialize(self, enabled: bool | None = None) -> None:
        """Create the collectors, or no-op stand-ins when metrics are disabled."""
        if self._initialized:
            return

        if enabled is None:
            enabled = settings.enable_metrics

        if not enabled:
            logger.info("Metrics are disabled")
            noop = NoOpMetric()
            self.leader_changes_total = noop
            self.watch_failures_total = noop
            self.watches_total = noop
            self.detect_requests_total = noop
            self.waiters_pending = noop
            self._initialized = True
            return

        self._registry = REGISTRY

        self.leader_changes_total = Counter(
            "herald_leader_changes_total",
            "Leader changes observed",
            ["group"],
        )

        self.watch_failures_total = Counter(
            "herald_watch_failures_total",
            "Membership watches that failed",
            ["group"],
        )

        self.watches_total = Counter(
            "herald_watches_total",
            "Membership watch requests issued",
            ["group"],
        )

        self.detect_requests_total = Counter(
            "herald_detect_requests_total",
            "Leader detection requests",
            ["group", "outcome"],
        )

        self.waiters_pending = Gauge(
            "herald_waiters_pending",
            "Detection requests waiting for a leader change",
            ["group"],
        )

        self._initialized = True
        logger.info("Prometheus metrics initialized")

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if self._registry is None:
            return b"# Metrics disabled\n"
        return _generate_latest(self._registry)


# Global metrics registry
metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry.

    Initializes metrics on first access.
    """
    if not metrics_registry._initialized:
        metrics_registry.initialize()
    return metrics_registry
