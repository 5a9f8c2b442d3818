"""
Health scoring for metric categories.

``score_metric`` and ``status_from_score`` are pure functions; ``CategoryScorer``
applies them to the latest sample of each category and synthesizes issues
for metrics that fall below the acceptable band.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..config.settings import MetricThresholds, PerformanceThresholds
from ..utils.exceptions import ScoringError
from ..utils.helpers import clamp, get_metric_value, mean
from .models import (
    CategoryScore,
    HealthStatus,
    MetricSample,
    MetricScore,
    PerformanceIssue,
    Severity,
)
from .trends import TrendAnalyzer

logger = logging.getLogger(__name__)

ISSUE_SCORE = 60
CRITICAL_ISSUE_SCORE = 30

STATUS_CUTOFFS: Tuple[Tuple[float, HealthStatus], ...] = (
    (90, HealthStatus.EXCELLENT),
    (80, HealthStatus.GOOD),
    (60, HealthStatus.ACCEPTABLE),
    (40, HealthStatus.POOR),
)


def score_metric(
    value: float,
    thresholds: MetricThresholds,
    lower_is_better: Optional[bool] = None,
) -> float:
    """Map a metric value onto a 0-100 score.

    Inside the good/acceptable/poor bands the score is 100/80/60; past the
    poor breakpoint it decays linearly from 40 towards 0 by relative distance.
    ``lower_is_better`` overrides the direction configured on the thresholds.
    """
    if lower_is_better is None:
        lower_is_better = thresholds.lower_is_better

    good, acceptable, poor = thresholds.good, thresholds.acceptable, thresholds.poor

    if lower_is_better:
        if value <= good:
            return 100.0
        if value <= acceptable:
            return 80.0
        if value <= poor:
            return 60.0
        return clamp(40 - ((value - poor) / poor) * 40)

    if value >= good:
        return 100.0
    if value >= acceptable:
        return 80.0
    if value >= poor:
        return 60.0
    return clamp(40 - ((poor - value) / poor) * 40)


def status_from_score(score: float) -> HealthStatus:
    for cutoff, status in STATUS_CUTOFFS:
        if score >= cutoff:
            return status
    return HealthStatus.CRITICAL


def issue_severity(score: float) -> Severity:
    return Severity.CRITICAL if score < CRITICAL_ISSUE_SCORE else Severity.HIGH


@dataclass(frozen=True)
class MetricDefinition:
    """How one metric is scored and what issue it raises when unhealthy."""
    name: str
    path: str
    threshold_key: Optional[str] = None
    issue_id: Optional[str] = None
    issue_title: str = ""
    issue_impact: str = ""
    correlations: Tuple[str, ...] = ()
    unit: str = ""
    display_scale: float = 1.0
    # Custom scorer for metrics without threshold breakpoints.
    scorer: Optional[Callable[[MetricSample], float]] = field(default=None, compare=False)


def _connection_score(sample: MetricSample) -> float:
    return clamp(get_metric_value(sample, "application.active_connections") / 100 * 100)


def _agent_health_score(sample: MetricSample) -> float:
    return clamp(get_metric_value(sample, "agents.average_health") * 100)


def _agent_utilization_score(sample: MetricSample) -> float:
    total = get_metric_value(sample, "agents.total")
    if total <= 0:
        return 0.0
    return clamp(get_metric_value(sample, "agents.active") / total * 100)


CATEGORY_METRICS: Dict[str, Tuple[MetricDefinition, ...]] = {
    "system": (
        MetricDefinition(
            name="CPU Usage",
            path="system.cpu",
            threshold_key="cpu_usage",
            issue_id="high-cpu-usage",
            issue_title="High CPU Usage",
            issue_impact="Reduced system responsiveness and throughput",
            correlations=("response-time", "throughput"),
            unit="%",
        ),
        MetricDefinition(
            name="Memory Usage",
            path="system.memory",
            threshold_key="memory_usage",
            issue_id="high-memory-usage",
            issue_title="High Memory Usage",
            issue_impact="Risk of memory exhaustion and system instability",
            correlations=("gc-pressure", "response-time"),
            unit="%",
        ),
    ),
    "application": (
        MetricDefinition(
            name="Response Time",
            path="application.response_time",
            threshold_key="response_time",
            issue_id="slow-response-time",
            issue_title="Slow Response Time",
            issue_impact="Poor user experience and reduced throughput",
            correlations=("cpu-usage", "memory-usage", "queue-depth"),
            unit="ms",
        ),
        MetricDefinition(
            name="Throughput",
            path="application.throughput",
            threshold_key="throughput",
            issue_id="low-throughput",
            issue_title="Low Throughput",
            issue_impact="Work is processed slower than expected",
            correlations=("response-time", "cpu-usage"),
            unit="ops/min",
        ),
        MetricDefinition(
            name="Error Rate",
            path="application.error_rate",
            threshold_key="error_rate",
            issue_id="high-error-rate",
            issue_title="High Error Rate",
            issue_impact="Reduced reliability and user satisfaction",
            correlations=("resource-exhaustion", "external-dependencies"),
            unit="%",
        ),
    ),
    "resources": (
        MetricDefinition(
            name="Disk Usage",
            path="system.disk",
            threshold_key="disk_usage",
            issue_id="high-disk-usage",
            issue_title="High Disk Usage",
            issue_impact="Risk of disk full and system failure",
            correlations=("log-retention", "data-growth"),
            unit="%",
        ),
        MetricDefinition(
            name="Network Latency",
            path="system.network_latency",
            threshold_key="network_latency",
            issue_id="high-network-latency",
            issue_title="High Network Latency",
            issue_impact="Slower remote calls and data transfer",
            correlations=("response-time",),
            unit="ms",
        ),
    ),
    "network": (
        MetricDefinition(
            name="Active Connections",
            path="application.active_connections",
            scorer=_connection_score,
        ),
    ),
    "agents": (
        MetricDefinition(
            name="Agent Health",
            path="agents.average_health",
            issue_id="poor-agent-health",
            issue_title="Poor Agent Health",
            issue_impact="Reduced task execution efficiency and reliability",
            correlations=("resource-contention", "task-complexity"),
            unit="%",
            display_scale=100,
            scorer=_agent_health_score,
        ),
        MetricDefinition(
            name="Agent Utilization",
            path="agents.active",
            scorer=_agent_utilization_score,
        ),
    ),
}


class CategoryScorer:
    """Scores each metric category against the configured thresholds."""

    def __init__(
        self,
        thresholds: PerformanceThresholds,
        trend_analyzer: Optional[TrendAnalyzer] = None,
        categories: Optional[Dict[str, Sequence[MetricDefinition]]] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.thresholds = thresholds
        self.trend_analyzer = trend_analyzer or TrendAnalyzer()
        self.categories = categories or CATEGORY_METRICS
        self._clock = clock

    def score_all(self, samples: Sequence[MetricSample]) -> Dict[str, CategoryScore]:
        """Score every category; the latest sample drives the scores."""
        if not samples:
            raise ScoringError("Cannot score an empty sample window")
        return {
            category: self.score_category(category, samples)
            for category in self.categories
        }

    def score_category(self, category: str, samples: Sequence[MetricSample]) -> CategoryScore:
        definitions = self.categories.get(category)
        if not definitions:
            raise ScoringError(f"Unknown category: {category}")

        latest = samples[-1]
        metric_scores: List[MetricScore] = []
        issues: List[PerformanceIssue] = []

        for definition in definitions:
            value = get_metric_value(latest, definition.path)
            score = self._score_definition(definition, latest, value)
            metric_scores.append(
                MetricScore(name=definition.name, path=definition.path, value=value, score=score)
            )

            if definition.issue_id and score < ISSUE_SCORE:
                issues.append(self._build_issue(category, definition, value, score))

        category_score = mean(m.score for m in metric_scores)
        return CategoryScore(
            score=category_score,
            status=status_from_score(category_score),
            metrics=metric_scores,
            trends=self.trend_analyzer.analyze_metrics(
                samples, [d.path for d in definitions]
            ),
            issues=issues,
        )

    def _score_definition(self, definition: MetricDefinition, sample: MetricSample, value: float) -> float:
        if definition.scorer is not None:
            return definition.scorer(sample)
        if definition.threshold_key is None:
            raise ScoringError(f"No scoring rule for metric {definition.path}")
        return score_metric(value, self.thresholds.get(definition.threshold_key))

    def _build_issue(
        self, category: str, definition: MetricDefinition, value: float, score: float
    ) -> PerformanceIssue:
        return PerformanceIssue(
            id=definition.issue_id,
            category=category,
            severity=issue_severity(score),
            title=definition.issue_title,
            description=f"{definition.name} is {value * definition.display_scale:.1f}{definition.unit}",
            impact=definition.issue_impact,
            detected_at=self._clock(),
            affected_metrics=[definition.path],
            correlations=list(definition.correlations),
        )


def calculate_overall_score(categories: Dict[str, CategoryScore]) -> float:
    """Unweighted mean of the category scores present this cycle."""
    return mean(category.score for category in categories.values())
