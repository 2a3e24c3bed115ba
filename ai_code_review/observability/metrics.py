"""
Metrics collection for monitoring and performance tracking.

Provides the telemetry sink the LLM client reports to, plus HTTP
request metrics. Counters and histograms are kept in memory and
exported as JSON on the /metrics endpoint.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


class TelemetrySink(Protocol):
    """Narrow interface the review core reports provider calls to."""

    def record_call(self, outcome: str) -> None:
        ...

    def observe_latency(self, latency_ms: float) -> None:
        ...


class MetricNames:
    """Standard metric names used throughout the application."""

    # Provider metrics
    OPENROUTER_CALLS = "openrouter_calls_total"
    OPENROUTER_LATENCY_MS = "openrouter_latency_ms"

    # HTTP metrics
    HTTP_REQUESTS = "http_requests_total"
    HTTP_REQUEST_DURATION_MS = "http_request_duration_ms"


OPENROUTER_LATENCY_BUCKETS = (100, 250, 500, 1000, 2500, 5000, 10000, 30000)
HTTP_DURATION_BUCKETS = (10, 50, 100, 250, 500, 1000, 2500, 5000, 10000)

TagKey = Tuple[Tuple[str, str], ...]


def _tag_key(tags: Optional[Dict[str, str]]) -> TagKey:
    return tuple(sorted((tags or {}).items()))


@dataclass
class Histogram:
    """Cumulative-bucket histogram."""

    buckets: Tuple[float, ...]
    counts: List[int] = field(default_factory=list)
    total: float = 0.0
    count: int = 0

    def __post_init__(self):
        if not self.counts:
            self.counts = [0] * len(self.buckets)

    def observe(self, value: float) -> None:
        for i, bound in enumerate(self.buckets):
            if value <= bound:
                self.counts[i] += 1
        self.total += value
        self.count += 1

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "buckets": {str(b): c for b, c in zip(self.buckets, self.counts)},
            "sum": self.total,
            "count": self.count,
        }


class MetricsCollector:
    """
    Collector for application metrics.

    Safe to share between concurrent requests: every update happens
    under a lock.
    """

    def __init__(self, enabled: bool = True):
        """
        Initialize metrics collector.

        Args:
            enabled: When False, every record call is a no-op
        """
        self.enabled = enabled
        self._lock = threading.Lock()
        self._counters: Dict[str, Dict[TagKey, float]] = {}
        self._histograms: Dict[str, Dict[TagKey, Histogram]] = {}
        self._start_time = datetime.now(timezone.utc)

        logger.info(f"Metrics collector initialized (enabled: {self.enabled})")

    def record_counter(
        self,
        name: str,
        value: float = 1.0,
        tags: Optional[Dict[str, str]] = None,
    ) -> None:
        """
        Increment a monotonically increasing counter.

        Args:
            name: Metric name
            value: Increment value (default: 1.0)
            tags: Optional tags/labels
        """
        if not self.enabled:
            return
        if value < 0:
            raise ValueError("Counters can only increase")

        with self._lock:
            series = self._counters.setdefault(name, {})
            key = _tag_key(tags)
            series[key] = series.get(key, 0.0) + value

    def record_histogram(
        self,
        name: str,
        value: float,
        buckets: Tuple[float, ...],
        tags: Optional[Dict[str, str]] = None,
    ) -> None:
        """
        Record an observation in a histogram.

        Args:
            name: Metric name
            value: Observed value
            buckets: Upper bounds used when the series is first created
            tags: Optional tags/labels
        """
        if not self.enabled:
            return

        with self._lock:
            series = self._histograms.setdefault(name, {})
            key = _tag_key(tags)
            if key not in series:
                series[key] = Histogram(buckets=buckets)
            series[key].observe(value)

    # TelemetrySink

    def record_call(self, outcome: str) -> None:
        self.record_counter(MetricNames.OPENROUTER_CALLS, tags={"status": outcome})

    def observe_latency(self, latency_ms: float) -> None:
        self.record_histogram(
            MetricNames.OPENROUTER_LATENCY_MS, latency_ms, OPENROUTER_LATENCY_BUCKETS
        )

    def record_request(self, route: str, status: int, duration_ms: float) -> None:
        """Record one handled HTTP request."""
        self.record_counter(
            MetricNames.HTTP_REQUESTS, tags={"route": route, "status": str(status)}
        )
        self.record_histogram(
            MetricNames.HTTP_REQUEST_DURATION_MS,
            duration_ms,
            HTTP_DURATION_BUCKETS,
            tags={"route": route},
        )

    def get_counter(self, name: str, tags: Optional[Dict[str, str]] = None) -> float:
        """
        Get a counter value.

        Args:
            name: Metric name
            tags: Exact tag set; None sums every series of the metric

        Returns:
            Current counter value (0.0 if never recorded)
        """
        with self._lock:
            series = self._counters.get(name, {})
            if tags is None:
                return sum(series.values())
            return series.get(_tag_key(tags), 0.0)

    def get_histogram(
        self, name: str, tags: Optional[Dict[str, str]] = None
    ) -> Optional[Dict[str, Any]]:
        """Get a snapshot of a histogram series, or None if never recorded."""
        with self._lock:
            histogram = self._histograms.get(name, {}).get(_tag_key(tags))
            return histogram.to_dict() if histogram else None

    def export_metrics(self) -> Dict[str, Any]:
        """
        Export metrics in serializable format.

        Returns:
            Counters and histograms keyed by metric name, one entry per
            tag set, plus process uptime
        """
        with self._lock:
            counters = {
                name: [{"tags": dict(key), "value": value} for key, value in series.items()]
                for name, series in self._counters.items()
            }
            histograms = {
                name: [{"tags": dict(key), **hist.to_dict()} for key, hist in series.items()]
                for name, series in self._histograms.items()
            }

        return {
            "counters": counters,
            "histograms": histograms,
            "uptime_seconds": (datetime.now(timezone.utc) - self._start_time).total_seconds(),
        }
