"""
ecs_discovery.tier0_core.metrics
──────────────────────────────────
Counters, gauges, and histograms with standard naming and labels, plus the
provider's own poll metrics. Exported via a Prometheus /metrics endpoint.

Stack: prometheus-client
Configure via: ECS_METRICS_PORT (unset = no HTTP server)
"""
from __future__ import annotations

import os
from typing import Callable

from prometheus_client import Counter, Gauge, Histogram, start_http_server

# Standard labels applied to every metric
_DEFAULT_LABELS = ["service", "env"]
_SERVICE = os.getenv("APP_NAME", "ecs-discovery")
_ENV = os.getenv("APP_ENV", "development")
_DEFAULT_LABEL_VALUES = {"service": _SERVICE, "env": _ENV}


def counter(name: str, description: str, labels: list[str] | None = None) -> Callable:
    """
    Create a counter with standard labels.

    Usage:
        polls_total = counter("ecs_polls_total", "Total polls", ["outcome"])
        polls_total(outcome="ok").inc()
    """
    all_labels = _DEFAULT_LABELS + (labels or [])
    c = Counter(name, description, all_labels)

    def _counter(**extra_labels: str) -> Counter:
        return c.labels(**_DEFAULT_LABEL_VALUES, **extra_labels)

    return _counter


def gauge(name: str, description: str, labels: list[str] | None = None) -> Callable:
    """
    Create a gauge with standard labels.

    Usage:
        services = gauge("ecs_services", "Services in the last snapshot")
        services().set(12)
    """
    all_labels = _DEFAULT_LABELS + (labels or [])
    g = Gauge(name, description, all_labels)

    def _gauge(**extra_labels: str) -> Gauge:
        return g.labels(**_DEFAULT_LABEL_VALUES, **extra_labels)

    return _gauge


def histogram(
    name: str,
    description: str,
    labels: list[str] | None = None,
    buckets: tuple = (0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
) -> Callable:
    """Create a histogram with standard labels."""
    all_labels = _DEFAULT_LABELS + (labels or [])
    h = Histogram(name, description, all_labels, buckets=buckets)

    def _histogram(**extra_labels: str) -> Histogram:
        return h.labels(**_DEFAULT_LABEL_VALUES, **extra_labels)

    return _histogram


def start_metrics_server(port: int | None = None) -> None:
    """
    Start the Prometheus HTTP metrics server on a dedicated port.
    Call once at process startup.
    """
    port = port or int(os.getenv("ECS_METRICS_PORT", "8001"))
    start_http_server(port)


# ── Provider metrics ──────────────────────────────────────────────────────────

poll_duration = histogram(
    "ecs_discovery_poll_duration_seconds",
    "Wall time of one complete discovery poll",
)
poll_failures = counter(
    "ecs_discovery_poll_failures_total",
    "Polls that ended in an error",
    ["error_type"],
)
consecutive_failures = gauge(
    "ecs_discovery_consecutive_failures",
    "Failed polls since the last successful one",
)
instances_discovered = gauge(
    "ecs_discovery_instances",
    "Service instances in the last delivered snapshot",
)
instances_filtered = counter(
    "ecs_discovery_instances_filtered_total",
    "Service instances rejected by policy",
    ["reason"],
)


__all__ = [
    "counter", "gauge", "histogram", "start_metrics_server",
    "poll_duration", "poll_failures", "consecutive_failures",
    "instances_discovered", "instances_filtered",
]
