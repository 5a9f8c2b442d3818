"""
Analyzer configuration settings.
"""
import json
import logging
import math
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DAY = 24 * 60 * 60


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class MetricThresholds(BaseModel):
    """Three scoring breakpoints for one metric plus its direction."""

    good: float
    acceptable: float
    poor: float
    lower_is_better: bool = False

    @field_validator("poor")
    @classmethod
    def validate_poor(cls, v):
        # The decay past the poor breakpoint divides by it.
        if v == 0:
            raise ValueError("poor threshold must be non-zero")
        return v


class PerformanceThresholds(BaseModel):
    # cpu/memory/disk score higher values as better unless lower_is_better is set.
    response_time: MetricThresholds = MetricThresholds(good=100, acceptable=500, poor=2000, lower_is_better=True)
    throughput: MetricThresholds = MetricThresholds(good=1000, acceptable=500, poor=100)
    cpu_usage: MetricThresholds = MetricThresholds(good=50, acceptable=70, poor=90, lower_is_better=False)
    memory_usage: MetricThresholds = MetricThresholds(good=60, acceptable=80, poor=95, lower_is_better=False)
    error_rate: MetricThresholds = MetricThresholds(good=0.1, acceptable=1, poor=5, lower_is_better=True)
    disk_usage: MetricThresholds = MetricThresholds(good=60, acceptable=80, poor=95, lower_is_better=False)
    network_latency: MetricThresholds = MetricThresholds(good=10, acceptable=50, poor=200, lower_is_better=True)

    def get(self, key: str) -> MetricThresholds:
        """Look up thresholds by field name."""
        try:
            return getattr(self, key)
        except AttributeError:
            raise ConfigurationError(f"Unknown threshold: {key}")


class OptimizationTarget(BaseModel):
    id: str
    name: str
    metric: str
    target_value: float
    priority: str = "medium"  # low, medium, high, critical
    strategy: str = "reduce"  # reduce, increase, stabilize
    actions: List[str] = Field(default_factory=list)

    @field_validator("strategy")
    @classmethod
    def validate_strategy(cls, v):
        if v not in ("reduce", "increase", "stabilize"):
            raise ValueError(f"Unknown optimization strategy: {v}")
        return v


def default_optimization_targets() -> List[OptimizationTarget]:
    return [
        OptimizationTarget(
            id="response-time",
            name="Response Time Optimization",
            metric="application.response_time",
            target_value=200,
            priority="high",
            strategy="reduce",
        ),
        OptimizationTarget(
            id="throughput",
            name="Throughput Optimization",
            metric="application.throughput",
            target_value=1000,
            priority="medium",
            strategy="increase",
        ),
        OptimizationTarget(
            id="cpu-usage",
            name="CPU Usage Optimization",
            metric="system.cpu",
            target_value=60,
            priority="high",
            strategy="reduce",
        ),
    ]


class AnalyzerSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PERF_ANALYZER_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Performance Optimization Analyzer"
    debug: bool = False
    log_level: LogLevel = LogLevel.INFO
    log_dir: str = "./logs"
    log_to_file: bool = False

    # Analysis cycle (seconds)
    analysis_interval: float = 60.0
    retention_period: float = 7 * DAY
    recent_window: float = 3600.0
    expected_sample_interval: float = 10.0

    # Optimization execution (seconds)
    stabilization_delay: float = 30.0
    step_delay: float = 1.0

    thresholds: PerformanceThresholds = Field(default_factory=PerformanceThresholds)
    optimization_targets: List[OptimizationTarget] = Field(default_factory=default_optimization_targets)

    # Feature flags
    reporting_enabled: bool = True
    auto_optimization: bool = False
    benchmark_enabled: bool = True
    persistence_enabled: bool = True

    # Persisted state
    data_dir: str = "./logs"

    @field_validator("analysis_interval", "retention_period", "recent_window", "expected_sample_interval")
    @classmethod
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError("interval values must be positive")
        return v

    @field_validator("stabilization_delay", "step_delay")
    @classmethod
    def validate_non_negative(cls, v):
        if v < 0:
            raise ValueError("delays cannot be negative")
        return v

    @property
    def history_capacity(self) -> int:
        """Ring-buffer size for raw samples: retention window / sample rate."""
        return max(1, math.ceil(self.retention_period / self.expected_sample_interval))

    @property
    def analysis_capacity(self) -> int:
        """Ring-buffer size for analysis snapshots."""
        return max(1, math.ceil(self.retention_period / self.analysis_interval))

    @classmethod
    def from_file(cls, config_path: str) -> "AnalyzerSettings":
        """Load settings from a YAML or JSON file."""
        path = Path(config_path)
        if not path.exists():
            logger.warning(f"Config file not found: {config_path}, using defaults")
            return cls()

        suffix = path.suffix.lower()
        with open(path, "r", encoding="utf-8") as f:
            if suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f) or {}
            elif suffix == ".json":
                data = json.load(f)
            else:
                raise ConfigurationError(f"Unsupported config format: {path.suffix}")

        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


def load_settings(config_path: Optional[str] = None, **overrides: Any) -> AnalyzerSettings:
    """Load settings from a file (if given) and apply keyword overrides."""
    if config_path:
        settings = AnalyzerSettings.from_file(config_path)
        if overrides:
            settings = AnalyzerSettings(**{**settings.model_dump(), **overrides})
        return settings
    return AnalyzerSettings(**overrides)


# Global settings instance
_global_settings: Optional[AnalyzerSettings] = None


def get_settings() -> AnalyzerSettings:
    """Get global analyzer settings."""
    global _global_settings
    if _global_settings is None:
        _global_settings = AnalyzerSettings()
    return _global_settings


def set_settings(settings: AnalyzerSettings) -> None:
    """Replace global analyzer settings."""
    global _global_settings
    _global_settings = settings
