"""Custom exceptions for the performance analyzer."""


class AnalyzerException(Exception):
    """Base exception for the performance analyzer."""
    pass


class ConfigurationError(AnalyzerException):
    """Raised when there's a configuration issue."""
    pass


class MetricsError(AnalyzerException):
    """Raised when metric samples cannot be read."""
    pass


class ScoringError(AnalyzerException):
    """Raised when category scoring fails."""
    pass


class BenchmarkError(AnalyzerException):
    """Raised when a benchmark cannot complete."""
    pass


class OptimizationError(AnalyzerException):
    """Raised when an optimization cannot be executed."""
    pass


class OptimizationStepError(OptimizationError):
    """Raised when a single implementation step fails hard."""

    def __init__(self, step: str, message: str = ""):
        self.step = step
        super().__init__(message or f"Optimization step failed: {step}")


class PersistenceError(AnalyzerException):
    """Raised when analyzer state cannot be read or written."""
    pass
