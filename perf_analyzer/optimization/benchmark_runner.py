"""
Calibration micro-benchmarks with baseline comparison.

Each benchmark is a synthetic workload measured for wall-clock duration and
allocated memory. Its score is ``max(0, 100 - penalty)`` where every penalty
term is ``weight * measured / reference``. The first recorded score per
benchmark name becomes the baseline; later runs compare against it without
replacing it.
"""

import asyncio
import logging
import math
import random
import time
import tracemalloc
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

import numpy as np
import psutil

from ..monitoring.models import BenchmarkResult, Comparison
from ..observability.metrics_collector import EngineMetricsCollector
from ..utils.exceptions import BenchmarkError

logger = logging.getLogger(__name__)


def compare(value: float, reference: float, lower_is_better: bool = True) -> Comparison:
    if value == reference:
        return Comparison.SAME
    better = value < reference if lower_is_better else value > reference
    return Comparison.BETTER if better else Comparison.WORSE


class Benchmark(ABC):
    """A named synthetic workload.

    ``references`` maps metric name to the reference value that costs
    ``weights[metric]`` points when matched exactly.
    """

    id: str = ""
    name: str = ""
    title: str = ""
    category: str = "system"
    references: Dict[str, float] = {}
    weights: Dict[str, float] = {}

    @abstractmethod
    def workload(self) -> Dict[str, Any]:
        """Run the workload and return details about what it did."""

    def measure(self) -> Tuple[Dict[str, float], Dict[str, Any]]:
        """Run the workload, returning (metrics, details).

        The duration comes from an untraced run. Benchmarks with a ``memory``
        reference run the workload a second time under tracemalloc for the
        peak allocation.
        """
        process = psutil.Process()
        rss_before = process.memory_info().rss

        start = time.perf_counter()
        details = self.workload()
        duration = time.perf_counter() - start
        details["rss_delta"] = process.memory_info().rss - rss_before

        metrics = {"duration": duration}
        if "memory" in self.references:
            metrics["memory"] = float(self.peak_memory())
        return metrics, details

    def peak_memory(self) -> int:
        """Peak traced allocation in bytes for one run of the workload."""
        started_tracing = not tracemalloc.is_tracing()
        if started_tracing:
            tracemalloc.start()
        tracemalloc.reset_peak()

        try:
            self.workload()
            _, peak = tracemalloc.get_traced_memory()
        finally:
            if started_tracing:
                tracemalloc.stop()
        return peak

    def score(self, metrics: Mapping[str, float]) -> float:
        penalty = sum(
            self.weights.get(name, 0.0) * metrics[name] / reference
            for name, reference in self.references.items()
            if name in metrics and reference
        )
        return max(0.0, 100.0 - penalty)

    def compare(self, metrics: Mapping[str, float]) -> Dict[str, Comparison]:
        return {
            name: compare(metrics[name], reference)
            for name, reference in self.references.items()
            if name in metrics
        }


class CpuIntensiveBenchmark(Benchmark):
    id = "cpu-benchmark"
    name = "cpu-intensive"
    title = "CPU Intensive Benchmark"

    def __init__(self, iterations: int = 1_000_000, reference_duration: float = 0.2, weight: float = 50.0):
        self.iterations = iterations
        self.references = {"duration": reference_duration}
        self.weights = {"duration": weight}

    def workload(self) -> Dict[str, Any]:
        result = 0.0
        for i in range(self.iterations):
            result += math.sqrt(i)
        return {"result": result, "operations": self.iterations}


class MemoryAllocationBenchmark(Benchmark):
    id = "memory-benchmark"
    name = "memory-allocation"
    title = "Memory Allocation Benchmark"

    def __init__(
        self,
        allocations: int = 1000,
        size: int = 1000,
        reference_duration: float = 0.1,
        reference_memory: float = 32 * 1024 * 1024,
    ):
        self.allocations = allocations
        self.size = size
        self.references = {"duration": reference_duration, "memory": reference_memory}
        self.weights = {"duration": 25.0, "memory": 25.0}

    def workload(self) -> Dict[str, Any]:
        arrays = [[random.random()] * self.size for _ in range(self.allocations)]
        return {"arrays": len(arrays), "allocations": self.allocations}


class FunctionBenchmark(Benchmark):
    """Wraps a plain callable as a benchmark."""

    def __init__(
        self,
        name: str,
        func: Callable[[], Optional[Dict[str, Any]]],
        references: Optional[Dict[str, float]] = None,
        weights: Optional[Dict[str, float]] = None,
        title: Optional[str] = None,
        category: str = "application",
    ):
        self.id = f"{name}-benchmark"
        self.name = name
        self.title = title or name
        self.category = category
        self.func = func
        self.references = dict(references or {"duration": 1.0})
        self.weights = dict(weights or {"duration": 50.0})

    def workload(self) -> Dict[str, Any]:
        return dict(self.func() or {})


def default_benchmarks() -> List[Benchmark]:
    return [CpuIntensiveBenchmark(), MemoryAllocationBenchmark()]


class BenchmarkRunner:
    """Runs the benchmark suite and keeps the per-name score baseline."""

    def __init__(
        self,
        benchmarks: Optional[Iterable[Benchmark]] = None,
        baseline: Optional[Mapping[str, float]] = None,
        metrics_collector: Optional[EngineMetricsCollector] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._suite: Dict[str, Benchmark] = {}
        for benchmark in default_benchmarks() if benchmarks is None else benchmarks:
            self.register(benchmark)

        self._baseline: Dict[str, float] = dict(baseline or {})
        self.metrics_collector = metrics_collector
        self._clock = clock

    @property
    def benchmark_names(self) -> List[str]:
        return list(self._suite)

    @property
    def baseline(self) -> Dict[str, float]:
        return dict(self._baseline)

    def register(self, benchmark: Benchmark) -> None:
        if not benchmark.name:
            raise BenchmarkError("Benchmarks need a name")
        self._suite[benchmark.name] = benchmark
        logger.debug(f"Registered benchmark: {benchmark.name}")

    def unregister(self, name: str) -> None:
        self._suite.pop(name, None)

    def load_baseline(self, baseline: Mapping[str, float]) -> None:
        """Replace the baseline, e.g. with one read from disk."""
        self._baseline = {name: float(score) for name, score in baseline.items()}

    def reset_baseline(self) -> None:
        self._baseline.clear()
        logger.info("Performance baseline cleared")

    def run_benchmark(self, benchmark: Benchmark) -> BenchmarkResult:
        """Measure one benchmark synchronously."""
        metrics, details = benchmark.measure()
        score = benchmark.score(metrics)

        baseline = dict(benchmark.references)
        comparison = benchmark.compare(metrics)
        baseline_score = self._baseline.get(benchmark.name)
        if baseline_score is not None:
            baseline["score"] = baseline_score
            comparison["score"] = compare(score, baseline_score, lower_is_better=False)

        return BenchmarkResult(
            id=benchmark.id,
            name=benchmark.name,
            timestamp=self._clock(),
            category=benchmark.category,
            metrics={name: float(value) for name, value in metrics.items()},
            baseline=baseline,
            comparison=comparison,
            score=float(score),
            details=details,
        )

    async def run_benchmarks(self) -> List[BenchmarkResult]:
        """Run the suite one benchmark at a time; failures are logged and skipped."""
        loop = asyncio.get_running_loop()
        results = []

        for name, benchmark in list(self._suite.items()):
            try:
                result = await loop.run_in_executor(None, self.run_benchmark, benchmark)
            except Exception as e:
                logger.error(f"Benchmark {name} failed: {e}")
                if self.metrics_collector:
                    self.metrics_collector.record_benchmark(name, 0.0, 0.0, success=False)
                continue

            results.append(result)
            if self.metrics_collector:
                self.metrics_collector.record_benchmark(
                    name, result.metrics.get("duration", 0.0), result.score
                )
            logger.debug(f"Benchmark {name} scored {result.score:.1f}")

        return results

    async def run_initial_benchmarks(self) -> List[BenchmarkResult]:
        """Run the suite and seed the baseline for names that have no score yet."""
        logger.info("Running initial benchmarks")
        results = await self.run_benchmarks()

        seeded = 0
        for result in results:
            if result.name not in self._baseline:
                self._baseline[result.name] = result.score
                seeded += 1

        average = float(np.mean([r.score for r in results])) if results else 0.0
        logger.info(
            f"Initial benchmarks completed: {len(results)} run, {seeded} baseline entries seeded, "
            f"average score {average:.1f}"
        )
        return results
