"""
Event publication and engine self-metrics.
"""

from .events import AnalyzerEvent, EventBus
from .metrics_collector import EngineMetricsCollector, MetricSeries, MetricType

__all__ = [
    "AnalyzerEvent",
    "EventBus",
    "EngineMetricsCollector",
    "MetricSeries",
    "MetricType",
]
