"""Unit tests for trend classification."""

import math

import pytest

from perf_analyzer.monitoring.models import TrendDirection
from perf_analyzer.monitoring.trends import TrendAnalyzer, classify_trend, relative_change


class TestClassifyTrend:
    """Test suite for classify_trend."""

    def test_rising_series_is_improving(self):
        """Test a doubling of the window mean."""
        series = [10, 10, 10, 10, 10, 20, 20, 20, 20, 20]
        assert relative_change(series) == pytest.approx(1.0)
        assert classify_trend(series) == TrendDirection.IMPROVING

    def test_falling_series_is_degrading(self):
        series = [20, 20, 20, 20, 20, 10, 10, 10, 10, 10]
        assert classify_trend(series) == TrendDirection.DEGRADING

    def test_flat_series_is_stable(self):
        assert classify_trend([10] * 10) == TrendDirection.STABLE

    def test_change_within_threshold_is_stable(self):
        """Test that a 10% change is not yet a trend."""
        series = [10, 10, 10, 10, 10, 11, 11, 11, 11, 11]
        assert classify_trend(series) == TrendDirection.STABLE

    @pytest.mark.parametrize("series", [[], [42]])
    def test_fewer_than_two_samples_is_stable(self, series):
        assert classify_trend(series) == TrendDirection.STABLE

    def test_short_series_uses_available_history(self):
        """Test that the older window may be shorter than five samples."""
        assert classify_trend([10, 10, 20, 20, 20, 20, 20]) == TrendDirection.IMPROVING

    def test_zero_older_mean(self):
        """Test growth from an all-zero older window."""
        series = [0, 0, 0, 0, 0, 5, 5, 5, 5, 5]
        assert math.isinf(relative_change(series))
        assert classify_trend(series) == TrendDirection.IMPROVING
        assert classify_trend([0] * 10) == TrendDirection.STABLE


class TestTrendAnalyzer:
    """Test suite for TrendAnalyzer."""

    @pytest.fixture
    def analyzer(self):
        return TrendAnalyzer()

    def test_analyze_escalating_samples(self, analyzer, escalating_samples):
        """Test overall, category and metric trends for rising load."""
        report = analyzer.analyze(escalating_samples)

        assert report.overall == TrendDirection.IMPROVING
        assert report.categories["system"] == TrendDirection.IMPROVING
        assert report.categories["agents"] == TrendDirection.STABLE

        cpu = report.metrics["system.cpu"]
        assert cpu.direction == TrendDirection.IMPROVING
        assert cpu.older_average == pytest.approx(60.0)
        assert cpu.recent_average == pytest.approx(85.0)
        assert cpu.slope == pytest.approx(5.0)
        assert cpu.sample_count == 10

    def test_flat_series_has_zero_slope(self, analyzer):
        summary = analyzer.summarize([3.0] * 6)
        assert summary.slope == 0.0
        assert summary.direction == TrendDirection.STABLE

    def test_infinite_change_is_reported_as_zero(self, analyzer):
        """Test that summaries stay JSON friendly when the older mean is zero."""
        summary = analyzer.summarize([0, 0, 0, 0, 0, 1, 1, 1, 1, 1])
        assert summary.change == 0.0
        assert summary.direction == TrendDirection.IMPROVING

    def test_analyze_metrics_per_path(self, analyzer, escalating_samples):
        trends = analyzer.analyze_metrics(escalating_samples, ["system.cpu", "system.memory"])
        assert trends == {
            "system.cpu": TrendDirection.IMPROVING,
            "system.memory": TrendDirection.STABLE,
        }
