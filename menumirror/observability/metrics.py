"""
Metrics — In-process sync counters with Prometheus text export.

## Usage

    from menumirror.observability.metrics import metrics

    metrics.increment("sync_total", labels={"outcome": "ok"})
    metrics.timing("drain_duration_ms", 12)
    metrics.set_gauge("mirror_entries", 4)

    output = metrics.export_prometheus()
"""

from __future__ import annotations

import logging
import time
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

# Drain timings are in milliseconds
MS_BUCKETS = (1, 5, 10, 25, 50, 100, 250, 500, 1000, 2500, float("inf"))


def _labels_key(labels: Optional[Dict[str, str]]) -> str:
    if not labels:
        return ""
    return ",".join(f"{k}={v}" for k, v in sorted(labels.items()))


def _parse_labels_key(key: str) -> Dict[str, str]:
    labels: Dict[str, str] = {}
    if key:
        for pair in key.split(","):
            k, _, v = pair.partition("=")
            labels[k] = v
    return labels


@dataclass
class MetricPoint:
    """A single metric data point."""

    name: str
    value: float
    timestamp: float
    labels: Dict[str, str] = field(default_factory=dict)


class Counter:
    """A monotonically increasing counter."""

    def __init__(self, name: str, help_text: str = ""):
        self.name = name
        self.help_text = help_text
        self._values: Dict[str, float] = defaultdict(float)
        self._lock = Lock()

    def inc(self, value: float = 1, labels: Optional[Dict[str, str]] = None) -> None:
        with self._lock:
            self._values[_labels_key(labels)] += value

    def get(self, labels: Optional[Dict[str, str]] = None) -> float:
        return self._values.get(_labels_key(labels), 0)

    def total(self) -> float:
        """Sum across every label set."""
        return sum(self._values.values())

    def export(self) -> List[MetricPoint]:
        now = time.time()
        return [
            MetricPoint(self.name, value, now, _parse_labels_key(key))
            for key, value in self._values.items()
        ]


class Gauge:
    """A gauge that can go up and down."""

    def __init__(self, name: str, help_text: str = ""):
        self.name = name
        self.help_text = help_text
        self._values: Dict[str, float] = {}
        self._lock = Lock()

    def set(self, value: float, labels: Optional[Dict[str, str]] = None) -> None:
        with self._lock:
            self._values[_labels_key(labels)] = value

    def get(self, labels: Optional[Dict[str, str]] = None) -> float:
        return self._values.get(_labels_key(labels), 0)

    def export(self) -> List[MetricPoint]:
        now = time.time()
        return [
            MetricPoint(self.name, value, now, _parse_labels_key(key))
            for key, value in self._values.items()
        ]


class Histogram:
    """A histogram for timing distributions."""

    def __init__(self, name: str, help_text: str = "", buckets: Tuple[float, ...] = MS_BUCKETS):
        self.name = name
        self.help_text = help_text
        self.buckets = buckets
        self._counts: Dict[str, Dict[float, int]] = defaultdict(lambda: defaultdict(int))
        self._sums: Dict[str, float] = defaultdict(float)
        self._totals: Dict[str, int] = defaultdict(int)
        self._lock = Lock()

    def observe(self, value: float, labels: Optional[Dict[str, str]] = None) -> None:
        key = _labels_key(labels)
        with self._lock:
            self._sums[key] += value
            self._totals[key] += 1
            # Counts are per bucket; export makes them cumulative
            for bucket in self.buckets:
                if value <= bucket:
                    self._counts[key][bucket] += 1
                    break

    def count(self, labels: Optional[Dict[str, str]] = None) -> int:
        return self._totals.get(_labels_key(labels), 0)

    def export(self) -> List[MetricPoint]:
        points = []
        now = time.time()

        for key in self._totals:
            labels = _parse_labels_key(key)
            cumulative = 0
            for bucket in self.buckets:
                cumulative += self._counts[key].get(bucket, 0)
                le = "+Inf" if bucket == float("inf") else str(bucket)
                points.append(MetricPoint(f"{self.name}_bucket", cumulative, now, {**labels, "le": le}))
            points.append(MetricPoint(f"{self.name}_sum", self._sums[key], now, labels))
            points.append(MetricPoint(f"{self.name}_count", self._totals[key], now, labels))

        return points


class MetricsRegistry:
    """Central registry for sync metrics."""

    def __init__(self, prefix: str = "menumirror"):
        self.prefix = prefix
        self._counters: Dict[str, Counter] = {}
        self._gauges: Dict[str, Gauge] = {}
        self._histograms: Dict[str, Histogram] = {}
        self._lock = Lock()

        self.counter("sync_total", "Sync jobs executed, by outcome and refusal reason")
        self.histogram("drain_duration_ms", "End-of-request drain duration")
        self.gauge("mirror_entries", "Entries in the loop store after the last write")

    def counter(self, name: str, help_text: str = "") -> Counter:
        full_name = f"{self.prefix}_{name}"
        with self._lock:
            if full_name not in self._counters:
                self._counters[full_name] = Counter(full_name, help_text)
            return self._counters[full_name]

    def gauge(self, name: str, help_text: str = "") -> Gauge:
        full_name = f"{self.prefix}_{name}"
        with self._lock:
            if full_name not in self._gauges:
                self._gauges[full_name] = Gauge(full_name, help_text)
            return self._gauges[full_name]

    def histogram(self, name: str, help_text: str = "") -> Histogram:
        full_name = f"{self.prefix}_{name}"
        with self._lock:
            if full_name not in self._histograms:
                self._histograms[full_name] = Histogram(full_name, help_text)
            return self._histograms[full_name]

    # Convenience methods
    def increment(self, name: str, value: float = 1, labels: Optional[Dict[str, str]] = None) -> None:
        self.counter(name).inc(value, labels)

    def set_gauge(self, name: str, value: float, labels: Optional[Dict[str, str]] = None) -> None:
        self.gauge(name).set(value, labels)

    def timing(self, name: str, value: float, labels: Optional[Dict[str, str]] = None) -> None:
        self.histogram(name).observe(value, labels)

    def reset(self) -> None:
        """Drop all recorded values (used between tests)."""
        self.__init__(self.prefix)

    def export_prometheus(self) -> str:
        """Export metrics in Prometheus text format."""
        lines = []
        families = (
            ("counter", self._counters.values()),
            ("gauge", self._gauges.values()),
            ("histogram", self._histograms.values()),
        )
        for kind, family in families:
            for metric in family:
                lines.append(f"# HELP {metric.name} {metric.help_text}")
                lines.append(f"# TYPE {metric.name} {kind}")
                for point in metric.export():
                    lines.append(f"{point.name}{self._format_labels(point.labels)} {point.value}")
        return "\n".join(lines) + "\n"

    def export_json(self) -> Dict[str, Any]:
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "counters": {name: c.total() for name, c in self._counters.items()},
            "gauges": {name: g.get() for name, g in self._gauges.items()},
            "histograms": {
                name: {"sum": sum(h._sums.values()), "count": sum(h._totals.values())}
                for name, h in self._histograms.items()
            },
        }

    def _format_labels(self, labels: Dict[str, str]) -> str:
        if not labels:
            return ""
        pairs = [f'{k}="{v}"' for k, v in sorted(labels.items())]
        return "{" + ",".join(pairs) + "}"


# Global metrics instance
metrics = MetricsRegistry()
