"""Unit tests for analyzer settings."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from perf_analyzer.config.settings import (
    AnalyzerSettings,
    OptimizationTarget,
    PerformanceThresholds,
    get_settings,
    load_settings,
    set_settings,
)
from perf_analyzer.utils.exceptions import ConfigurationError

EXAMPLE_CONFIG = Path(__file__).resolve().parents[2] / "config" / "analyzer.yaml"


class TestAnalyzerSettings:
    """Test suite for AnalyzerSettings."""

    def test_defaults(self):
        """Test default configuration values."""
        settings = AnalyzerSettings()

        assert settings.analysis_interval == 60
        assert settings.retention_period == 7 * 24 * 3600
        assert settings.stabilization_delay == 30
        assert settings.reporting_enabled is True
        assert settings.auto_optimization is False
        assert settings.benchmark_enabled is True
        assert settings.thresholds.response_time.poor == 2000
        assert settings.thresholds.response_time.lower_is_better is True
        assert settings.thresholds.error_rate.lower_is_better is True
        assert settings.thresholds.network_latency.lower_is_better is True
        assert [t.id for t in settings.optimization_targets] == ["response-time", "throughput", "cpu-usage"]

    def test_capacities(self):
        """Test ring-buffer sizes derived from retention and sampling rates."""
        settings = AnalyzerSettings(retention_period=100, expected_sample_interval=30, analysis_interval=40)
        assert settings.history_capacity == 4
        assert settings.analysis_capacity == 3

    @pytest.mark.parametrize("field", ["analysis_interval", "retention_period", "expected_sample_interval"])
    def test_intervals_must_be_positive(self, field):
        with pytest.raises(ValidationError):
            AnalyzerSettings(**{field: 0})

    def test_delays_must_not_be_negative(self):
        with pytest.raises(ValidationError):
            AnalyzerSettings(stabilization_delay=-1)

    def test_unknown_strategy_rejected(self):
        with pytest.raises(ValidationError):
            OptimizationTarget(id="x", name="X", metric="system.cpu", target_value=1, strategy="maximize")

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("PERF_ANALYZER_ANALYSIS_INTERVAL", "15")
        monkeypatch.setenv("PERF_ANALYZER_AUTO_OPTIMIZATION", "true")

        settings = AnalyzerSettings()

        assert settings.analysis_interval == 15
        assert settings.auto_optimization is True

    def test_unknown_threshold_key(self):
        with pytest.raises(ConfigurationError):
            AnalyzerSettings().thresholds.get("gpu_usage")


class TestLoadSettings:
    """Test suite for file-based settings loading."""

    def test_example_config(self):
        """Test that the shipped example configuration loads."""
        settings = load_settings(str(EXAMPLE_CONFIG))
        assert settings.thresholds.cpu_usage.poor == 90
        assert len(settings.optimization_targets) == 3

    def test_example_config_from_file(self):
        settings = AnalyzerSettings.from_file(str(EXAMPLE_CONFIG))

        assert settings.thresholds == PerformanceThresholds()
        assert settings.stabilization_delay == 30

    def test_json_with_overrides(self, tmp_path):
        path = tmp_path / "analyzer.json"
        path.write_text(json.dumps({
            "analysis_interval": 5,
            "thresholds": {
                "cpu_usage": {"good": 50, "acceptable": 70, "poor": 90, "lower_is_better": True}
            },
        }))

        settings = load_settings(str(path), auto_optimization=True)

        assert settings.analysis_interval == 5
        assert settings.auto_optimization is True
        assert settings.thresholds.cpu_usage.lower_is_better is True
        assert settings.thresholds.memory_usage.poor == 95

    def test_missing_file_uses_defaults(self, tmp_path):
        settings = load_settings(str(tmp_path / "absent.yaml"))
        assert settings.analysis_interval == 60

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "analyzer.toml"
        path.write_text("analysis_interval = 5")
        with pytest.raises(ConfigurationError):
            load_settings(str(path))

    def test_invalid_thresholds_in_file(self, tmp_path):
        path = tmp_path / "analyzer.yaml"
        path.write_text("thresholds:\n  response_time: {good: 100, acceptable: 500, poor: 0, lower_is_better: true}\n")
        with pytest.raises(ValidationError):
            load_settings(str(path))

    def test_global_settings(self):
        original = get_settings()
        try:
            custom = AnalyzerSettings(analysis_interval=7)
            set_settings(custom)
            assert get_settings() is custom
        finally:
            set_settings(original)
