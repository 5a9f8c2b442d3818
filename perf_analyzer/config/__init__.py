"""
Configuration package for the performance analyzer.
"""

from .settings import (
    AnalyzerSettings,
    LogLevel,
    MetricThresholds,
    OptimizationTarget,
    PerformanceThresholds,
    get_settings,
    load_settings,
    set_settings,
)

__all__ = [
    "AnalyzerSettings",
    "LogLevel",
    "MetricThresholds",
    "OptimizationTarget",
    "PerformanceThresholds",
    "get_settings",
    "load_settings",
    "set_settings",
]
