"""
Trend classification over metric time series.

The most recent window of samples is compared with the window before it; a
relative change beyond the threshold in either direction is a trend. The
classification is direction-agnostic: a rising series is "improving" whatever
the metric measures.
"""

import logging
import math
from typing import Dict, Iterable, List, Sequence

import numpy as np
from scipy import stats

from ..utils.helpers import get_metric_value, mean
from .models import MetricSample, TrendDirection, TrendReport, TrendSummary

logger = logging.getLogger(__name__)

TREND_WINDOW = 5
CHANGE_THRESHOLD = 0.10

OVERALL_TREND_PATHS = ("system.cpu", "system.memory", "application.response_time")

CATEGORY_TREND_PATHS: Dict[str, Sequence[str]] = {
    "system": ("system.cpu", "system.memory"),
    "application": ("application.response_time",),
    "resources": ("system.disk", "system.network_latency"),
    "network": ("application.active_connections",),
    "agents": ("agents.average_health",),
}


def relative_change(values: Sequence[float], window: int = TREND_WINDOW) -> float:
    """Relative change of the recent window's mean over the preceding window's."""
    recent = list(values[-window:])
    older = list(values[-2 * window:-window])
    if not recent or not older:
        return 0.0

    recent_avg = mean(recent)
    older_avg = mean(older)
    if older_avg == 0:
        if recent_avg == 0:
            return 0.0
        return math.copysign(math.inf, recent_avg)
    return (recent_avg - older_avg) / older_avg


def classify_trend(
    values: Sequence[float],
    window: int = TREND_WINDOW,
    threshold: float = CHANGE_THRESHOLD,
) -> TrendDirection:
    """Classify a series as improving, stable or degrading."""
    if len(values) < 2:
        return TrendDirection.STABLE

    change = relative_change(values, window)
    if change > threshold:
        return TrendDirection.IMPROVING
    if change < -threshold:
        return TrendDirection.DEGRADING
    return TrendDirection.STABLE


class TrendAnalyzer:
    """Applies trend classification to metric paths across samples."""

    def __init__(self, window: int = TREND_WINDOW, threshold: float = CHANGE_THRESHOLD):
        self.window = window
        self.threshold = threshold

    @staticmethod
    def series(samples: Iterable[MetricSample], path: str) -> List[float]:
        return [get_metric_value(sample, path) for sample in samples]

    @staticmethod
    def composite_series(samples: Iterable[MetricSample], paths: Sequence[str]) -> List[float]:
        """Per-sample mean of several metric paths."""
        return [mean(get_metric_value(sample, path) for path in paths) for sample in samples]

    def classify(self, values: Sequence[float]) -> TrendDirection:
        return classify_trend(values, self.window, self.threshold)

    def analyze_metric(self, samples: Sequence[MetricSample], path: str) -> TrendDirection:
        return self.classify(self.series(samples, path))

    def analyze_metrics(
        self, samples: Sequence[MetricSample], paths: Iterable[str]
    ) -> Dict[str, TrendDirection]:
        return {path: self.analyze_metric(samples, path) for path in paths}

    def summarize(self, values: Sequence[float]) -> TrendSummary:
        """Classification plus the numbers behind it."""
        values = list(values)
        recent = values[-self.window:]
        older = values[-2 * self.window:-self.window]

        slope = 0.0
        if len(values) >= 3 and np.ptp(values) > 0:
            slope = float(stats.linregress(np.arange(len(values)), np.array(values)).slope)

        change = relative_change(values, self.window)
        return TrendSummary(
            direction=self.classify(values),
            change=change if math.isfinite(change) else 0.0,
            slope=slope,
            recent_average=mean(recent),
            older_average=mean(older),
            sample_count=len(values),
        )

    def analyze(self, samples: Sequence[MetricSample]) -> TrendReport:
        """Overall, per-category and per-metric trends for a sample window."""
        overall = self.classify(self.composite_series(samples, OVERALL_TREND_PATHS))

        categories = {
            category: self.classify(self.composite_series(samples, paths))
            for category, paths in CATEGORY_TREND_PATHS.items()
        }

        tracked = {path for paths in CATEGORY_TREND_PATHS.values() for path in paths}
        metrics = {
            path: self.summarize(self.series(samples, path))
            for path in sorted(tracked)
        }

        logger.debug(f"Trend analysis over {len(samples)} samples: overall {overall.value}")
        return TrendReport(overall=overall, categories=categories, metrics=metrics)
