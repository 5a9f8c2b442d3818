"""Unit tests for metric scoring and category scores."""

import pytest
from pydantic import ValidationError

from perf_analyzer.config.settings import MetricThresholds, PerformanceThresholds
from perf_analyzer.monitoring.models import HealthStatus, Severity
from perf_analyzer.monitoring.scoring import (
    CategoryScorer,
    calculate_overall_score,
    score_metric,
    status_from_score,
)
from perf_analyzer.utils.exceptions import ScoringError


class TestScoreMetric:
    """Test suite for the score_metric function."""

    @pytest.fixture
    def latency(self):
        return MetricThresholds(good=100, acceptable=500, poor=2000, lower_is_better=True)

    @pytest.fixture
    def throughput(self):
        return MetricThresholds(good=1000, acceptable=500, poor=100)

    def test_lower_is_better_bands(self, latency):
        """Test the three bands for a lower-is-better metric."""
        assert score_metric(50, latency) == 100
        assert score_metric(100, latency) == 100
        assert score_metric(300, latency) == 80
        assert score_metric(500, latency) == 80
        assert score_metric(2000, latency) == 60

    def test_lower_is_better_decay_beyond_poor(self, latency):
        """Test linear decay past the poor breakpoint."""
        assert score_metric(2500, latency) == pytest.approx(30.0)
        assert score_metric(4000, latency) == pytest.approx(0.0)
        assert score_metric(10000, latency) == 0.0

    def test_lower_is_better_non_increasing(self, latency):
        """Test the score never rises as the value grows beyond poor."""
        values = [2000 + step * 137 for step in range(40)]
        scores = [score_metric(v, latency) for v in values]
        assert all(a >= b for a, b in zip(scores, scores[1:]))

    def test_higher_is_better_bands(self, throughput):
        """Test the three bands for a higher-is-better metric."""
        assert score_metric(1500, throughput) == 100
        assert score_metric(1000, throughput) == 100
        assert score_metric(700, throughput) == 80
        assert score_metric(100, throughput) == 60
        assert score_metric(50, throughput) == pytest.approx(20.0)
        assert score_metric(0, throughput) == pytest.approx(0.0)

    def test_direction_override(self, throughput):
        """Test an explicit direction argument wins over the configured one."""
        assert score_metric(50, throughput, lower_is_better=True) == 100

    def test_scores_stay_in_range(self, latency, throughput):
        """Test that every score lies within 0-100."""
        for value in (-1e6, -5, 0, 1, 99, 501, 1999, 2001, 1e9):
            assert 0 <= score_metric(value, latency) <= 100
            assert 0 <= score_metric(value, throughput) <= 100

    def test_zero_poor_threshold_rejected(self):
        """Test that a zero poor breakpoint is a configuration error."""
        with pytest.raises(ValidationError):
            MetricThresholds(good=0, acceptable=0, poor=0, lower_is_better=True)

    def test_default_thresholds_construct(self):
        """Test that the ascending higher-is-better utilisation defaults are valid."""
        thresholds = PerformanceThresholds()

        assert (thresholds.cpu_usage.good, thresholds.cpu_usage.poor) == (50, 90)
        assert thresholds.cpu_usage.lower_is_better is False
        assert thresholds.disk_usage.poor == 95

    def test_zero_poor_threshold_rejected_for_higher_is_better(self):
        with pytest.raises(ValidationError):
            MetricThresholds(good=50, acceptable=70, poor=0)


class TestStatusFromScore:
    """Test suite for status cutoffs."""

    @pytest.mark.parametrize("score,expected", [
        (100, HealthStatus.EXCELLENT),
        (90, HealthStatus.EXCELLENT),
        (89.999, HealthStatus.GOOD),
        (80, HealthStatus.GOOD),
        (79.999, HealthStatus.ACCEPTABLE),
        (60, HealthStatus.ACCEPTABLE),
        (59.999, HealthStatus.POOR),
        (40, HealthStatus.POOR),
        (39.999, HealthStatus.CRITICAL),
        (0, HealthStatus.CRITICAL),
    ])
    def test_cutoffs(self, score, expected):
        """Test each status boundary."""
        assert status_from_score(score) == expected


class TestDefaultScoringDirection:
    """High CPU/memory/disk readings under the default threshold direction."""

    def test_high_cpu_scores_excellent_by_default(self, thresholds):
        """Test that 99% CPU scores 100 because cpu_usage defaults to higher-is-better."""
        assert thresholds.cpu_usage.lower_is_better is False
        assert score_metric(99, thresholds.cpu_usage) == 100
        assert status_from_score(score_metric(99, thresholds.cpu_usage)) == HealthStatus.EXCELLENT

    def test_direction_is_configurable_per_metric(self):
        """Test that flipping the direction makes high CPU score poorly."""
        thresholds = PerformanceThresholds(
            cpu_usage=MetricThresholds(good=50, acceptable=70, poor=90, lower_is_better=True)
        )
        assert score_metric(99, thresholds.cpu_usage) == pytest.approx(36.0)
        assert score_metric(45, thresholds.cpu_usage) == 100


class TestCategoryScorer:
    """Test suite for CategoryScorer."""

    @pytest.fixture
    def scorer(self, thresholds, clock):
        return CategoryScorer(thresholds, clock=clock)

    def test_scores_every_category(self, scorer, make_sample):
        """Test that all five categories are scored."""
        categories = scorer.score_all([make_sample()])
        assert set(categories) == {"system", "application", "resources", "network", "agents"}

    def test_healthy_sample_scores(self, scorer, make_sample):
        """Test the category scores of the default healthy sample."""
        categories = scorer.score_all([make_sample()])

        assert categories["system"].score == 100
        assert categories["application"].score == 100
        assert categories["resources"].score == pytest.approx(90.0)
        assert categories["network"].score == pytest.approx(80.0)
        assert categories["agents"].score == pytest.approx(97.5)
        assert all(not c.issues for c in categories.values())

    def test_application_issues(self, scorer, make_sample):
        """Test issue synthesis and severities for a failing application."""
        sample = make_sample(response_time=2500, throughput=50, error_rate=10)
        application = scorer.score_category("application", [sample])

        assert application.score == pytest.approx(50 / 3)
        assert application.status == HealthStatus.CRITICAL

        issues = {issue.id: issue for issue in application.issues}
        assert set(issues) == {"slow-response-time", "low-throughput", "high-error-rate"}
        assert issues["slow-response-time"].severity == Severity.HIGH
        assert issues["low-throughput"].severity == Severity.CRITICAL
        assert issues["high-error-rate"].severity == Severity.CRITICAL
        assert issues["slow-response-time"].affected_metrics == ["application.response_time"]
        assert issues["slow-response-time"].detected_at == scorer._clock()

    def test_agent_scores(self, scorer, make_sample):
        """Test agent health and utilization scoring."""
        agents = scorer.score_category(
            "agents", [make_sample(agents_total=10, agents_active=5, average_health=0.2)]
        )
        assert [m.score for m in agents.metrics] == [pytest.approx(20.0), pytest.approx(50.0)]
        assert [issue.id for issue in agents.issues] == ["poor-agent-health"]
        assert agents.issues[0].severity == Severity.CRITICAL
        assert agents.issues[0].description == "Agent Health is 20.0%"

    def test_agent_utilization_without_agents(self, scorer, make_sample):
        """Test that zero agents yields zero utilization instead of dividing by zero."""
        agents = scorer.score_category("agents", [make_sample(agents_total=0, agents_active=0)])
        assert agents.metrics[1].score == 0

    def test_network_score_is_capped(self, scorer, make_sample):
        """Test that connection counts above 100 are capped at 100."""
        network = scorer.score_category("network", [make_sample(active_connections=500)])
        assert network.score == 100
        assert network.issues == []

    def test_empty_window_raises(self, scorer):
        """Test that scoring requires at least one sample."""
        with pytest.raises(ScoringError):
            scorer.score_all([])

    def test_unknown_category_raises(self, scorer, make_sample):
        with pytest.raises(ScoringError):
            scorer.score_category("gpu", [make_sample()])

    def test_overall_score_is_unweighted_mean(self, scorer, make_sample):
        """Test that the overall score averages the category scores."""
        categories = scorer.score_all([make_sample()])
        expected = sum(c.score for c in categories.values()) / len(categories)
        assert calculate_overall_score(categories) == pytest.approx(expected)
