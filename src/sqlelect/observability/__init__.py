"""Observability module for sqlelect.

Provides structured logging and metrics:
- JSON structured logging with election context
- Prometheus metrics for campaigns and leadership
"""

from sqlelect.observability.logging import (
    ElectionLogContext,
    candidate_var,
    configure_logging,
    election_name_var,
)
from sqlelect.observability.metrics import get_metrics, metrics_registry

__all__ = [
    # Logging
    "configure_logging",
    "ElectionLogContext",
    "election_name_var",
    "candidate_var",
    # Metrics
    "get_metrics",
    "metrics_registry",
]
