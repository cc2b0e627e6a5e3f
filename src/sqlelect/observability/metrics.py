"""Prometheus metrics for elections.

Provides:
- Campaign counts and latency by election and result
- Current leadership gauge per election
- Leadership transition counts

Usage:
    from sqlelect.observability.metrics import get_metrics

    metrics = get_metrics()
    metrics.campaigns_total.labels(election="job-x", result="claimed").inc()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from prometheus_client import REGISTRY, Counter, Gauge, Histogram, generate_latest

from sqlelect.config import settings

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

    def observe(self, value: float) -> None:
        pass


@dataclass
class MetricsRegistry:
    """Registry for election metrics."""

    campaigns_total: Any = field(default_factory=NoOpMetric)
    campaign_duration_seconds: Any = field(default_factory=NoOpMetric)
    leader: Any = field(default_factory=NoOpMetric)
    leadership_transitions_total: Any = field(default_factory=NoOpMetric)

    # Internal state
    _initialized: bool = field(default=False, repr=False)
    _registry: Any = field(default=None, repr=False)

    def initialize(self, enabled: bool | None = None) -> None:
        """Create the Prometheus collectors, once."""
        if self._initialized:
            return

        if not (settings.enable_metrics if enabled is None else enabled):
            logger.info("Metrics are disabled")
            self._initialized = True
            return

        self._registry = REGISTRY

        self.campaigns_total = Counter(
            "sqlelect_campaigns_total",
            "Campaign attempts",
            ["election", "result"],
        )

        self.campaign_duration_seconds = Histogram(
            "sqlelect_campaign_duration_seconds",
            "Campaign statement latency in seconds",
            ["election"],
            buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
        )

        self.leader = Gauge(
            "sqlelect_leader",
            "1 if this process leads the election, else 0",
            ["election"],
        )

        self.leadership_transitions_total = Counter(
            "sqlelect_leadership_transitions_total",
            "Leadership transitions",
            ["election", "transition"],
        )

        self._initialized = True
        logger.info("Prometheus metrics initialized")

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if self._registry is None:
            return b"# Metrics disabled\n"
        return generate_latest(self._registry)


# Global metrics registry
metrics_registry = MetricsRegistry()


def get_metrics(enabled: bool | None = None) -> MetricsRegistry:
    """Get the global metrics registry.

    Initializes metrics on first access. With ``enabled=False`` a registry of
    no-op collectors is returned and the global one is left untouched.
    """
    if enabled is False:
        return MetricsRegistry(_initialized=True)
    if not metrics_registry._initialized:
        metrics_registry.initialize(enabled)
    return metrics_registry
