"""Observability: in-process metrics."""

from .metrics import MetricsRegistry, metrics

__all__ = ["MetricsRegistry", "metrics"]
