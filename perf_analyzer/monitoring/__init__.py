"""
Metric history, scoring, trends and bottleneck detection.
"""

from .bottleneck_detector import BottleneckDetector, BottleneckRule
from .metrics_store import MetricsStore
from .models import (
    AgentMetrics,
    Analysis,
    ApplicationMetrics,
    MetricSample,
    SystemMetrics,
)
from .scoring import CategoryScorer, calculate_overall_score, score_metric, status_from_score
from .trends import TrendAnalyzer, classify_trend

__all__ = [
    "BottleneckDetector",
    "BottleneckRule",
    "MetricsStore",
    "AgentMetrics",
    "Analysis",
    "ApplicationMetrics",
    "MetricSample",
    "SystemMetrics",
    "CategoryScorer",
    "calculate_overall_score",
    "score_metric",
    "status_from_score",
    "TrendAnalyzer",
    "classify_trend",
]
