"""
Adaptive performance analysis and optimization engine.

Ingests periodic metric samples, scores subsystem health, detects bottlenecks,
recommends and optionally executes low-risk optimizations.
"""

from .monitoring.performance_analyzer import AnalysisScheduler, create_performance_analyzer
from .monitoring.models import MetricSample
from .config.settings import AnalyzerSettings

__version__ = "1.0.0"

__all__ = [
    "AnalysisScheduler",
    "create_performance_analyzer",
    "MetricSample",
    "AnalyzerSettings",
]
