"""PyProjector Observability — Prometheus metrics."""

from pyprojector.observability.metrics import MetricsRegistry, timed

__all__ = ["MetricsRegistry", "timed"]
