"""Logging and Prometheus metrics for the service."""

from __future__ import annotations

from postdesk.observability.logging import configure_logging
from postdesk.observability.metrics import MetricsMiddleware, metrics_response

__all__ = [
    "configure_logging",
    "MetricsMiddleware",
    "metrics_response",
]
