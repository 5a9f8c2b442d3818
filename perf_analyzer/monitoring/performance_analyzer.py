"""
Adaptive Performance Analyzer

Owns the periodic analysis cycle: scores subsystem health from recent metric
samples, classifies trends, detects bottlenecks, generates ranked optimization
recommendations, runs calibration benchmarks and, when enabled, executes
low-risk optimizations automatically.

All history is written only by the cycle itself; read accessors return deep
copies so callers never observe a half-built cycle.
"""

import asyncio
import copy
import logging
import time
from collections import deque
from datetime import datetime, timedelta
from typing import Any, Callable, Deque, Dict, Iterable, List, Mapping, Optional, Union

import numpy as np

from ..config.settings import AnalyzerSettings, get_settings, load_settings
from ..observability.events import AnalyzerEvent, EventBus, EventHandler
from ..observability.metrics_collector import EngineMetricsCollector
from ..optimization.benchmark_runner import Benchmark, BenchmarkRunner
from ..optimization.optimization_executor import OptimizationExecutor, SimulatedStepExecutor, StepExecutor
from ..optimization.recommendation_engine import RecommendationEngine
from ..optimization.reporting import build_report
from ..utils.exceptions import MetricsError
from ..utils.helpers import format_period
from ..utils.logging import OperationLogger, log_analysis_cycle
from .bottleneck_detector import BottleneckDetector
from .metrics_store import MetricsStore
from .models import (
    Analysis,
    BenchmarkResult,
    Bottleneck,
    ImplementedOptimization,
    MetricSample,
    OptimizationRecommendation,
    OptimizationReport,
)
from .persistence import AnalysisPersistence
from .scoring import CategoryScorer, calculate_overall_score
from .trends import TrendAnalyzer

logger = logging.getLogger(__name__)


class AnalysisScheduler:
    """Periodic performance analysis and optimization engine"""

    def __init__(
        self,
        settings: Optional[AnalyzerSettings] = None,
        step_executor: Optional[StepExecutor] = None,
        benchmarks: Optional[Iterable[Benchmark]] = None,
        event_bus: Optional[EventBus] = None,
        metrics_collector: Optional[EngineMetricsCollector] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.settings = settings or get_settings()
        self._clock = clock

        self.event_bus = event_bus or EventBus()
        self.engine_metrics = metrics_collector or EngineMetricsCollector()

        # Components
        self.metrics_store = MetricsStore(
            retention_period=self.settings.retention_period,
            capacity=self.settings.history_capacity,
            clock=clock,
        )
        self.trend_analyzer = TrendAnalyzer()
        self.scorer = CategoryScorer(self.settings.thresholds, self.trend_analyzer, clock=clock)
        self.bottleneck_detector = BottleneckDetector(self.settings.thresholds)
        self.recommendation_engine = RecommendationEngine()
        self.benchmark_runner = BenchmarkRunner(
            benchmarks=benchmarks,
            metrics_collector=self.engine_metrics,
            clock=clock,
        )
        self.optimization_executor = OptimizationExecutor(
            metrics_provider=self.metrics_store.get_latest,
            step_executor=step_executor or SimulatedStepExecutor(self.settings.step_delay),
            stabilization_delay=self.settings.stabilization_delay,
            event_bus=self.event_bus,
            metrics_collector=self.engine_metrics,
            clock=clock,
        )
        self.persistence = AnalysisPersistence(self.settings.data_dir)

        # History
        analysis_capacity = self.settings.analysis_capacity
        benchmark_capacity = analysis_capacity * max(1, len(self.benchmark_runner.benchmark_names))
        self._analysis_history: Deque[Analysis] = deque(maxlen=analysis_capacity)
        self._benchmark_history: Deque[BenchmarkResult] = deque(maxlen=benchmark_capacity)
        self._current_analysis: Optional[Analysis] = None

        # Lifecycle
        self._cycle_lock = asyncio.Lock()
        self._analysis_task: Optional[asyncio.Task] = None
        self._running = False
        self._initialized = False
        self._closed = False

    @property
    def is_running(self) -> bool:
        return self._running

    def subscribe(self, event: Union[AnalyzerEvent, str], handler: EventHandler) -> Callable[[], None]:
        """Register an event handler; returns the matching unsubscribe function."""
        return self.event_bus.subscribe(event, handler)

    # === LIFECYCLE ===

    async def initialize(self) -> None:
        """Load persisted state, start the analysis loop and seed the baseline."""
        if self._initialized:
            logger.warning("Performance analyzer already initialized")
            return

        logger.info(
            f"Initializing performance analyzer (interval {self.settings.analysis_interval}s, "
            f"benchmarks {'on' if self.settings.benchmark_enabled else 'off'}, "
            f"auto-optimization {'on' if self.settings.auto_optimization else 'off'})"
        )

        try:
            if self.settings.persistence_enabled:
                await self._load_state()

            # The initial suite holds the cycle lock and finishes before the
            # loop starts; benchmark runs share tracemalloc and never overlap.
            if self.settings.benchmark_enabled:
                async with self._cycle_lock:
                    results = await self.benchmark_runner.run_initial_benchmarks()
                    self._benchmark_history.extend(results)

            self._running = True
            self._analysis_task = asyncio.create_task(self._analysis_loop())

            self._initialized = True
            await self.event_bus.publish(AnalyzerEvent.INITIALIZED)
            logger.info("Performance analyzer initialized")

        except Exception as e:
            logger.error(f"Failed to initialize performance analyzer: {e}")

    async def shutdown(self) -> Optional[OptimizationReport]:
        """Drain the running cycle, persist state and produce the final report."""
        if self._closed:
            return None

        logger.info("Shutting down performance analyzer")
        self._running = False
        report = None

        # Waits for an in-flight cycle; cycles are never cancelled midway.
        async with self._cycle_lock:
            self._closed = True
            await self._stop_loop()

            try:
                if self.settings.persistence_enabled:
                    await self._save_state()

                report = build_report(
                    self._current_analysis,
                    self.optimization_executor.history,
                    targets=self.settings.optimization_targets,
                    latest_sample=self.metrics_store.get_latest(),
                    report_type="shutdown",
                    timestamp=self._clock(),
                )
                if self.settings.reporting_enabled:
                    await self.persistence.write_report(report)

            except Exception as e:
                logger.error(f"Failed to finalize analyzer state: {e}")

        await self.event_bus.publish(AnalyzerEvent.SHUTDOWN, copy.deepcopy(report))
        logger.info("Performance analyzer stopped")
        return copy.deepcopy(report)

    async def _stop_loop(self):
        task = self._analysis_task
        self._analysis_task = None
        if task and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _analysis_loop(self):
        """Background analysis loop"""
        while self._running:
            try:
                await asyncio.sleep(self.settings.analysis_interval)
                if self._running:
                    await self.run_cycle()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Analysis loop error: {e}")

    # === INGEST ===

    def add_metrics(self, sample: Union[MetricSample, Mapping[str, Any]]) -> None:
        """Store a sample from the external collector. Never raises."""
        try:
            if isinstance(sample, Mapping):
                try:
                    sample = MetricSample.from_dict(sample)
                except (TypeError, ValueError) as e:
                    logger.warning(f"Storing malformed metric sample as-is: {e}")
            self.metrics_store.add_metrics(sample)
        except Exception as e:
            logger.error(f"Failed to store metric sample: {e}")

    # === ANALYSIS CYCLE ===

    async def run_cycle(self) -> Optional[Analysis]:
        """Run one analysis cycle.

        Returns a copy of the new analysis, or None when the cycle was skipped
        or failed. Never raises.
        """
        if self._closed:
            self.engine_metrics.record_skipped_cycle("shutdown")
            return None
        if self._cycle_lock.locked():
            logger.debug("Skipping analysis cycle: previous cycle still running")
            self.engine_metrics.record_skipped_cycle("in_progress")
            return None
        if len(self.metrics_store) == 0:
            logger.debug("Skipping analysis cycle: no metrics collected yet")
            self.engine_metrics.record_skipped_cycle("no_metrics")
            return None

        async with self._cycle_lock:
            started = time.perf_counter()
            try:
                with OperationLogger("analysis_cycle") as operation:
                    analysis = await self._analyze()
                    operation.update_metadata(
                        overall_score=round(analysis.overall_score, 2),
                        bottlenecks=len(analysis.bottlenecks),
                    )

                    self._current_analysis = analysis
                    self._analysis_history.append(analysis)
                    self._benchmark_history.extend(analysis.benchmarks)
                    self._prune_history()

                duration = time.perf_counter() - started
                self.engine_metrics.record_cycle(duration, analysis.overall_score, len(analysis.bottlenecks))
                log_analysis_cycle(
                    analysis.overall_score,
                    len(analysis.bottlenecks),
                    len(analysis.recommendations),
                    len(analysis.benchmarks),
                    duration=duration,
                )
            except Exception as e:
                duration = time.perf_counter() - started
                logger.error(f"Performance analysis failed: {e}")
                try:
                    self.engine_metrics.record_failed_cycle(str(e))
                    log_analysis_cycle(0.0, 0, 0, duration=duration, error=str(e))
                except Exception as log_error:
                    logger.error(f"Failed to record analysis failure: {log_error}")
                await self.event_bus.publish(AnalyzerEvent.ANALYSIS_FAILED, e)
                return None

            logger.info(
                f"Performance analysis completed: score {analysis.overall_score:.1f}, "
                f"{len(analysis.bottlenecks)} bottlenecks, {len(analysis.recommendations)} recommendations"
            )

            await self.event_bus.publish(AnalyzerEvent.ANALYSIS_COMPLETED, copy.deepcopy(analysis))

            if self.settings.auto_optimization:
                try:
                    await self.optimization_executor.execute_auto_optimizations(analysis.recommendations)
                except Exception as e:
                    logger.error(f"Auto-optimization failed: {e}")

            return copy.deepcopy(analysis)

    async def _analyze(self) -> Analysis:
        samples = self.metrics_store.get_recent(self.settings.recent_window)
        if not samples:
            raise MetricsError(
                f"No samples within the last {format_period(self.settings.recent_window)}"
            )

        categories = self.scorer.score_all(samples)
        trends = self.trend_analyzer.analyze(samples)
        bottlenecks = self.bottleneck_detector.detect(samples)
        recommendations = self.recommendation_engine.generate(categories, bottlenecks)
        benchmarks = await self.benchmark_runner.run_benchmarks() if self.settings.benchmark_enabled else []

        return Analysis(
            timestamp=self._clock(),
            period=format_period(self.settings.recent_window),
            overall_score=calculate_overall_score(categories),
            categories=categories,
            bottlenecks=bottlenecks,
            recommendations=recommendations,
            trends=trends,
            benchmarks=benchmarks,
        )

    def _prune_history(self):
        """Drop samples, analyses and benchmark results older than the retention period."""
        cutoff = self._clock() - timedelta(seconds=self.settings.retention_period)
        self.metrics_store.prune()

        analyses = [a for a in self._analysis_history if a.timestamp >= cutoff]
        if len(analyses) != len(self._analysis_history):
            self._analysis_history = deque(analyses, maxlen=self._analysis_history.maxlen)

        benchmarks = [b for b in self._benchmark_history if b.timestamp >= cutoff]
        if len(benchmarks) != len(self._benchmark_history):
            self._benchmark_history = deque(benchmarks, maxlen=self._benchmark_history.maxlen)

    # === OPTIMIZATION ===

    async def execute_optimization(
        self, recommendation: OptimizationRecommendation
    ) -> Optional[ImplementedOptimization]:
        """Execute a recommendation on request, bypassing the auto gate. Never raises."""
        try:
            record = await self.optimization_executor.execute_optimization(recommendation)
        except Exception as e:
            logger.error(f"Optimization {getattr(recommendation, 'id', '?')} failed: {e}")
            return None
        return copy.deepcopy(record)

    async def generate_optimization_report(self) -> OptimizationReport:
        """Assemble an on-demand report, with or without a current analysis."""
        try:
            report = build_report(
                self._current_analysis,
                self.optimization_executor.history,
                targets=self.settings.optimization_targets,
                latest_sample=self.metrics_store.get_latest(),
                report_type="on_demand",
                timestamp=self._clock(),
            )
        except Exception as e:
            logger.error(f"Failed to generate optimization report: {e}")
            report = build_report(None, [], report_type="on_demand", timestamp=self._clock())
        return copy.deepcopy(report)

    # === QUERIES ===

    def get_current_analysis(self) -> Optional[Analysis]:
        return copy.deepcopy(self._current_analysis)

    def get_optimization_recommendations(self) -> List[OptimizationRecommendation]:
        if self._current_analysis is None:
            return []
        return copy.deepcopy(self._current_analysis.recommendations)

    def get_bottlenecks(self) -> List[Bottleneck]:
        if self._current_analysis is None:
            return []
        return copy.deepcopy(self._current_analysis.bottlenecks)

    def get_optimization_history(self) -> List[ImplementedOptimization]:
        return copy.deepcopy(self.optimization_executor.history)

    def get_analysis_history(self) -> List[Analysis]:
        return copy.deepcopy(list(self._analysis_history))

    def get_benchmark_history(self) -> List[BenchmarkResult]:
        return copy.deepcopy(list(self._benchmark_history))

    def get_performance_baseline(self) -> Dict[str, float]:
        return self.benchmark_runner.baseline

    def get_recent_metrics(self, window: Optional[float] = None) -> List[MetricSample]:
        return copy.deepcopy(self.metrics_store.get_recent(window or self.settings.recent_window))

    def reset_baseline(self) -> None:
        self.benchmark_runner.reset_baseline()

    def get_engine_stats(self) -> Dict[str, Any]:
        """Engine status plus self-metrics."""
        return {
            "status": "running" if self._running else "stopped",
            "cycle_in_progress": self._cycle_lock.locked(),
            "buffer_sizes": {
                "metrics": len(self.metrics_store),
                "analyses": len(self._analysis_history),
                "benchmarks": len(self._benchmark_history),
                "optimizations": len(self.optimization_executor.history),
            },
            "capacities": {
                "metrics": self.settings.history_capacity,
                "analyses": self.settings.analysis_capacity,
            },
            "baseline": self.benchmark_runner.baseline,
            "metrics": self.engine_metrics.snapshot(),
        }

    # === PERSISTENCE ===

    async def _load_state(self):
        try:
            baseline = await self.persistence.load_baseline()
            if baseline:
                self.benchmark_runner.load_baseline(baseline)
            self.optimization_executor.load_history(await self.persistence.load_optimization_history())
        except Exception as e:
            logger.warning(f"Could not load persisted analyzer state, starting fresh: {e}")

    async def _save_state(self):
        try:
            await self.persistence.save_baseline(self.benchmark_runner.baseline)
            await self.persistence.save_analysis_results(
                list(self._analysis_history),
                self.optimization_executor.history,
                self.benchmark_runner.baseline,
            )
        except Exception as e:
            logger.error(f"Failed to persist analyzer state: {e}")


def create_performance_analyzer(
    settings: Optional[AnalyzerSettings] = None,
    config_path: Optional[str] = None,
    step_executor: Optional[StepExecutor] = None,
    auto_start: bool = False,
    **overrides: Any,
) -> AnalysisScheduler:
    """Factory function to create a performance analyzer"""
    if settings is None:
        settings = load_settings(config_path, **overrides)

    analyzer = AnalysisScheduler(settings=settings, step_executor=step_executor)

    if auto_start:
        asyncio.create_task(analyzer.initialize())

    return analyzer


if __name__ == "__main__":
    import json

    from ..utils.helpers import to_serializable
    from ..utils.logging import setup_logging

    # Example usage
    async def main():
        settings = load_settings(
            analysis_interval=5.0,
            stabilization_delay=0.5,
            step_delay=0.1,
            auto_optimization=True,
            persistence_enabled=False,
        )
        setup_logging(settings)
        analyzer = create_performance_analyzer(settings)
        await analyzer.initialize()

        # Simulate a degrading system
        rng = np.random.default_rng()
        for i in range(20):
            analyzer.add_metrics({
                "timestamp": datetime.now(),
                "system": {
                    "cpu": 50 + i * 2.5 + rng.normal(0, 2),
                    "memory": 60 + rng.normal(0, 3),
                    "disk": 40.0,
                    "network_latency": 20 + rng.normal(0, 2),
                },
                "application": {
                    "response_time": 100 + i * 120,
                    "throughput": max(50.0, 1000 - i * 45),
                    "error_rate": 0.5,
                    "active_connections": 80,
                },
                "agents": {"total": 8, "active": 6, "average_health": 0.9},
            })

        analysis = await analyzer.run_cycle()
        if analysis:
            print(f"Overall score: {analysis.overall_score:.1f}")
            for recommendation in analysis.recommendations:
                print(f"  [{recommendation.priority.value}] {recommendation.id}: {recommendation.title}")

        report = await analyzer.generate_optimization_report()
        print("\nOptimization Report:")
        print(json.dumps(to_serializable(report.roi), indent=2))
        print("\n".join(report.next_steps))

        await analyzer.shutdown()

    asyncio.run(main())
