"""Observability layer: in-memory lock metrics. No external SaaS."""

from leaselock.observability.metrics import MetricsCollector

__all__ = [
    "MetricsCollector",
]
