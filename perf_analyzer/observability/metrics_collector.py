"""
Self-metrics for the analysis engine.

Tracks how the engine itself behaves:
- Analysis cycles (completed, skipped, failed, duration)
- Benchmark runs and their durations
- Optimization outcomes by status
"""

import logging
import time
from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Deque, Dict, List, Optional, Union

import numpy as np

logger = logging.getLogger(__name__)


class MetricType(Enum):
    """Types of engine metrics."""
    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"


@dataclass
class MetricPoint:
    timestamp: datetime
    value: Union[int, float]
    tags: Dict[str, str] = field(default_factory=dict)


@dataclass
class MetricSeries:
    """Bounded time series of metric points."""
    name: str
    metric_type: MetricType
    max_points: int = 1000
    points: Deque[MetricPoint] = field(default_factory=deque)

    def __post_init__(self):
        self.points = deque(self.points, maxlen=self.max_points)

    def add_point(self, value: Union[int, float], tags: Optional[Dict[str, str]] = None):
        self.points.append(MetricPoint(timestamp=datetime.now(), value=value, tags=tags or {}))

    def values(self, duration: Optional[timedelta] = None) -> List[float]:
        if duration is None:
            return [point.value for point in self.points]
        cutoff = datetime.now() - duration
        return [point.value for point in self.points if point.timestamp >= cutoff]

    def get_stats(self, duration: Optional[timedelta] = None) -> Dict[str, float]:
        """Statistical summary of the series, empty when there are no points."""
        values = self.values(duration)
        if not values:
            return {}

        data = np.array(values, dtype=float)
        return {
            "count": len(values),
            "sum": float(data.sum()),
            "min": float(data.min()),
            "max": float(data.max()),
            "mean": float(data.mean()),
            "p95": float(np.percentile(data, 95)),
            "std_dev": float(data.std(ddof=1)) if len(values) > 1 else 0.0,
        }


class EngineMetricsCollector:
    """Counters, gauges and histograms describing the analyzer's own work."""

    def __init__(self, max_series_points: int = 1000):
        self.metrics: Dict[str, MetricSeries] = {}
        self.max_series_points = max_series_points
        self._counters: Dict[str, float] = defaultdict(float)
        self._gauges: Dict[str, float] = {}

    def increment(self, metric_name: str, value: Union[int, float] = 1, tags: Optional[Dict[str, str]] = None):
        self._ensure_metric(metric_name, MetricType.COUNTER)
        self._counters[metric_name] += value
        self.metrics[metric_name].add_point(self._counters[metric_name], tags)

    def gauge(self, metric_name: str, value: Union[int, float], tags: Optional[Dict[str, str]] = None):
        self._ensure_metric(metric_name, MetricType.GAUGE)
        self._gauges[metric_name] = value
        self.metrics[metric_name].add_point(value, tags)

    def histogram(self, metric_name: str, value: Union[int, float], tags: Optional[Dict[str, str]] = None):
        self._ensure_metric(metric_name, MetricType.HISTOGRAM)
        self.metrics[metric_name].add_point(value, tags)

    def time_context(self, metric_name: str, tags: Optional[Dict[str, str]] = None) -> "TimerContext":
        """Context manager recording the block's duration as a histogram value."""
        return TimerContext(self, metric_name, tags)

    # Engine events

    def record_cycle(self, duration: float, overall_score: float, bottleneck_count: int):
        self.increment("analyzer.cycles.completed")
        self.histogram("analyzer.cycle.duration", duration)
        self.gauge("analyzer.overall_score", overall_score)
        self.gauge("analyzer.bottlenecks", bottleneck_count)

    def record_skipped_cycle(self, reason: str):
        self.increment("analyzer.cycles.skipped", tags={"reason": reason})

    def record_failed_cycle(self, error: str):
        self.increment("analyzer.cycles.failed", tags={"error": error[:100]})

    def record_benchmark(self, name: str, duration: float, score: float, success: bool = True):
        tags = {"benchmark": name}
        if not success:
            self.increment("analyzer.benchmarks.failed", tags=tags)
            return
        self.increment("analyzer.benchmarks.completed", tags=tags)
        self.histogram(f"analyzer.benchmark.{name}.duration", duration, tags=tags)
        self.gauge(f"analyzer.benchmark.{name}.score", score, tags=tags)

    def record_optimization(self, recommendation_id: str, status: str, duration: Optional[float] = None):
        tags = {"recommendation": recommendation_id, "status": status}
        self.increment(f"analyzer.optimizations.{status}", tags=tags)
        if duration is not None:
            self.histogram("analyzer.optimization.duration", duration, tags=tags)

    # Queries

    def get_counter(self, metric_name: str) -> float:
        return self._counters.get(metric_name, 0)

    def get_gauge(self, metric_name: str) -> Optional[float]:
        return self._gauges.get(metric_name)

    def get_metric_stats(self, metric_name: str, duration: Optional[timedelta] = None) -> Dict[str, float]:
        if metric_name not in self.metrics:
            return {}
        return self.metrics[metric_name].get_stats(duration)

    def snapshot(self) -> Dict[str, Any]:
        """Current counters, gauges and per-series statistics."""
        return {
            "timestamp": datetime.now().isoformat(),
            "counters": dict(self._counters),
            "gauges": dict(self._gauges),
            "series": {
                name: {"type": series.metric_type.value, "stats": series.get_stats()}
                for name, series in self.metrics.items()
                if series.metric_type is MetricType.HISTOGRAM
            },
        }

    def reset(self):
        self.metrics.clear()
        self._counters.clear()
        self._gauges.clear()

    def _ensure_metric(self, metric_name: str, metric_type: MetricType):
        if metric_name not in self.metrics:
            self.metrics[metric_name] = MetricSeries(
                name=metric_name,
                metric_type=metric_type,
                max_points=self.max_series_points,
            )


class TimerContext:
    """Times a block and records it on exit."""

    def __init__(self, collector: EngineMetricsCollector, metric_name: str, tags: Optional[Dict[str, str]] = None):
        self.collector = collector
        self.metric_name = metric_name
        self.tags = tags
        self.start_time: Optional[float] = None
        self.duration: float = 0.0

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.perf_counter() - self.start_time
        self.collector.histogram(self.metric_name, self.duration, self.tags)
        return False
