"""
Recommendations, benchmarks and optimization execution.
"""

from .benchmark_runner import (
    Benchmark,
    BenchmarkRunner,
    CpuIntensiveBenchmark,
    FunctionBenchmark,
    MemoryAllocationBenchmark,
)
from .optimization_executor import (
    OptimizationExecutor,
    SimulatedStepExecutor,
    StepExecutor,
    is_auto_optimizable,
)
from .recommendation_engine import RecommendationEngine
from .reporting import build_report, calculate_roi

__all__ = [
    "Benchmark",
    "BenchmarkRunner",
    "CpuIntensiveBenchmark",
    "FunctionBenchmark",
    "MemoryAllocationBenchmark",
    "OptimizationExecutor",
    "SimulatedStepExecutor",
    "StepExecutor",
    "is_auto_optimizable",
    "RecommendationEngine",
    "build_report",
    "calculate_roi",
]
