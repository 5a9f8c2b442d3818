"""
Threshold-driven bottleneck detection.

Detection is a closed rule table evaluated against the latest sample only.
Extending it means adding another ``BottleneckRule``.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from ..config.settings import PerformanceThresholds
from ..utils.helpers import get_metric_value
from .models import Bottleneck, BottleneckType, MetricSample, Severity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BottleneckRule:
    id: str
    type: BottleneckType
    metric_path: str
    threshold_key: str
    severity: Severity
    impact: float
    description: str
    location: str
    recommendations: Tuple[str, ...]
    estimated_cost: float
    # Fires when the value is strictly above the poor breakpoint; set False
    # for metrics where falling below it is the problem.
    breach_above: bool = True

    def is_breached(self, value: float, poor: float) -> bool:
        return value > poor if self.breach_above else value < poor

    def build(self) -> Bottleneck:
        return Bottleneck(
            id=self.id,
            type=self.type,
            severity=self.severity,
            description=self.description,
            impact=self.impact,
            location=self.location,
            detecting_metrics=[self.metric_path],
            recommendations=list(self.recommendations),
            estimated_cost=self.estimated_cost,
        )


DEFAULT_BOTTLENECK_RULES: Tuple[BottleneckRule, ...] = (
    BottleneckRule(
        id="cpu-bottleneck",
        type=BottleneckType.CPU,
        metric_path="system.cpu",
        threshold_key="cpu_usage",
        severity=Severity.HIGH,
        impact=80,
        description="CPU usage is consistently high",
        location="system",
        recommendations=(
            "Optimize CPU-intensive algorithms",
            "Implement parallel processing",
            "Consider horizontal scaling",
        ),
        estimated_cost=5000,
    ),
    BottleneckRule(
        id="memory-bottleneck",
        type=BottleneckType.MEMORY,
        metric_path="system.memory",
        threshold_key="memory_usage",
        severity=Severity.HIGH,
        impact=75,
        description="Memory usage is consistently high",
        location="system",
        recommendations=(
            "Optimize memory usage patterns",
            "Implement memory pooling",
            "Add more RAM",
        ),
        estimated_cost=2000,
    ),
    BottleneckRule(
        id="response-time-bottleneck",
        type=BottleneckType.APPLICATION,
        metric_path="application.response_time",
        threshold_key="response_time",
        severity=Severity.HIGH,
        impact=85,
        description="Response times are consistently slow",
        location="application",
        recommendations=(
            "Implement caching strategies",
            "Optimize database queries",
            "Add load balancing",
        ),
        estimated_cost=3000,
    ),
)


class BottleneckDetector:
    """Detects performance bottlenecks based on the latest metric sample"""

    def __init__(
        self,
        thresholds: PerformanceThresholds,
        rules: Optional[Sequence[BottleneckRule]] = None,
    ):
        self.thresholds = thresholds
        self.rules = tuple(rules) if rules is not None else DEFAULT_BOTTLENECK_RULES

    def detect(self, samples: Sequence[MetricSample]) -> List[Bottleneck]:
        """Evaluate every rule against the last sample in the window."""
        if not samples:
            return []

        latest = samples[-1]
        bottlenecks = []
        for rule in self.rules:
            poor = self.thresholds.get(rule.threshold_key).poor
            value = get_metric_value(latest, rule.metric_path)
            if rule.is_breached(value, poor):
                bottlenecks.append(rule.build())
                logger.warning(
                    f"Bottleneck detected: {rule.id} ({rule.metric_path}={value}, poor threshold {poor})"
                )

        return bottlenecks
