"""
Execution of optimization recommendations with before/after validation.

Steps are opaque named units of work run through a ``StepExecutor``. The
executor measures the latest metric sample before and after the steps (with
a stabilization delay in between), records the difference, and never rolls
anything back.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from ..monitoring.models import (
    ImplementedOptimization,
    MetricSample,
    OptimizationRecommendation,
    OptimizationStatus,
    Priority,
    RiskLevel,
)
from ..observability.events import AnalyzerEvent, EventBus
from ..observability.metrics_collector import EngineMetricsCollector
from ..utils.exceptions import OptimizationError, OptimizationStepError
from ..utils.helpers import get_metric_value
from ..utils.logging import OperationLogger, log_optimization

logger = logging.getLogger(__name__)

CAPTURED_METRICS = (
    "system.cpu",
    "system.memory",
    "application.response_time",
    "application.throughput",
    "application.error_rate",
)


class StepExecutor(ABC):
    """Runs a single implementation step of a recommendation."""

    @abstractmethod
    async def execute(self, step: str, recommendation: OptimizationRecommendation) -> bool:
        """Return False for a step that ran but did not take effect.

        Raising aborts the whole optimization.
        """


class SimulatedStepExecutor(StepExecutor):
    """Stands in for real remediation work with a fixed delay per step."""

    def __init__(self, step_delay: float = 1.0):
        self.step_delay = step_delay

    async def execute(self, step: str, recommendation: OptimizationRecommendation) -> bool:
        logger.debug(f"Executing optimization step for {recommendation.id}: {step}")
        await asyncio.sleep(self.step_delay)
        return True


def is_auto_optimizable(recommendation: OptimizationRecommendation) -> bool:
    """Only high-priority, low-risk recommendations run without approval."""
    return (
        Priority(recommendation.priority) is Priority.HIGH
        and RiskLevel(recommendation.risk.level) is RiskLevel.LOW
    )


def capture_metrics(sample: Optional[MetricSample]) -> Dict[str, float]:
    if sample is None:
        return {}
    return {path: get_metric_value(sample, path) for path in CAPTURED_METRICS}


def calculate_improvement(before: Mapping[str, float], after: Mapping[str, float]) -> Dict[str, float]:
    """``after - before`` for every numeric metric present in both snapshots."""
    improvement = {}
    for metric, before_value in before.items():
        after_value = after.get(metric)
        if _is_number(before_value) and _is_number(after_value):
            improvement[metric] = after_value - before_value
    return improvement


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def resolve_status(total_steps: int, failed_steps: int) -> OptimizationStatus:
    if failed_steps == 0:
        return OptimizationStatus.SUCCESS
    if failed_steps < total_steps:
        return OptimizationStatus.PARTIAL
    return OptimizationStatus.FAILED


class OptimizationExecutor:
    """Executes recommendations one at a time and keeps the outcome history."""

    def __init__(
        self,
        metrics_provider: Callable[[], Optional[MetricSample]],
        step_executor: Optional[StepExecutor] = None,
        stabilization_delay: float = 30.0,
        event_bus: Optional[EventBus] = None,
        metrics_collector: Optional[EngineMetricsCollector] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the executor.

        Args:
            metrics_provider: Returns the latest metric sample, or None
            step_executor: Runs implementation steps (simulated by default)
            stabilization_delay: Seconds to wait before the after-snapshot
            event_bus: Receives optimization:completed / optimization:failed
            metrics_collector: Engine self-metrics sink
            clock: Time source, injectable for tests
        """
        self.metrics_provider = metrics_provider
        self.step_executor = step_executor or SimulatedStepExecutor()
        self.stabilization_delay = stabilization_delay
        self.event_bus = event_bus or EventBus()
        self.metrics_collector = metrics_collector
        self._clock = clock
        self._history: List[ImplementedOptimization] = []
        self._lock = asyncio.Lock()

    @property
    def history(self) -> List[ImplementedOptimization]:
        return list(self._history)

    def load_history(self, records: Iterable[ImplementedOptimization]) -> None:
        self._history = list(records)

    async def execute_optimization(
        self, recommendation: OptimizationRecommendation
    ) -> Optional[ImplementedOptimization]:
        """Run one recommendation end to end.

        Returns the recorded outcome, or None when a step or capture raised.
        Never raises.
        """
        async with self._lock:
            started = time.perf_counter()
            logger.info(f"Executing optimization {recommendation.id}: {recommendation.title}")

            try:
                with OperationLogger("optimization", {"recommendation_id": recommendation.id}):
                    record = await self._run(recommendation)
            except Exception as e:
                duration = time.perf_counter() - started
                logger.error(f"Optimization {recommendation.id} failed: {e}")
                log_optimization(recommendation.id, OptimizationStatus.FAILED.value, duration=duration, error=str(e))
                if self.metrics_collector:
                    self.metrics_collector.record_optimization(
                        recommendation.id, OptimizationStatus.FAILED.value, duration
                    )
                await self.event_bus.publish(
                    AnalyzerEvent.OPTIMIZATION_FAILED,
                    {"recommendation": recommendation, "error": e},
                )
                return None

            duration = time.perf_counter() - started
            self._history.append(record)
            log_optimization(recommendation.id, record.status.value, record.improvement, duration)
            if self.metrics_collector:
                self.metrics_collector.record_optimization(recommendation.id, record.status.value, duration)

            if record.status is OptimizationStatus.FAILED:
                await self.event_bus.publish(
                    AnalyzerEvent.OPTIMIZATION_FAILED,
                    {
                        "recommendation": recommendation,
                        "error": OptimizationError(f"No step of {recommendation.id} took effect"),
                    },
                )
            else:
                await self.event_bus.publish(AnalyzerEvent.OPTIMIZATION_COMPLETED, record)

            return record

    async def execute_auto_optimizations(
        self, recommendations: Iterable[OptimizationRecommendation]
    ) -> List[ImplementedOptimization]:
        """Sequentially run every recommendation that passes the auto gate."""
        records = []
        for recommendation in recommendations:
            if not is_auto_optimizable(recommendation):
                continue
            record = await self.execute_optimization(recommendation)
            if record is not None:
                records.append(record)
        return records

    async def _run(self, recommendation: OptimizationRecommendation) -> ImplementedOptimization:
        before = capture_metrics(self.metrics_provider())

        steps = recommendation.implementation.steps
        failed_steps = []
        for step in steps:
            try:
                succeeded = await self.step_executor.execute(step, recommendation)
            except OptimizationStepError:
                raise
            except Exception as e:
                raise OptimizationStepError(step, str(e)) from e
            if succeeded is False:
                logger.warning(f"Optimization step did not take effect: {step}")
                failed_steps.append(step)

        if self.stabilization_delay > 0:
            await asyncio.sleep(self.stabilization_delay)

        after = capture_metrics(self.metrics_provider())
        improvement = calculate_improvement(before, after)
        status = resolve_status(len(steps), len(failed_steps))

        if status is OptimizationStatus.SUCCESS:
            notes = "Optimization executed successfully"
        else:
            notes = f"{len(failed_steps)} of {len(steps)} steps did not take effect: {'; '.join(failed_steps)}"

        return ImplementedOptimization(
            id=recommendation.id,
            name=recommendation.title,
            implemented_at=self._clock(),
            category=recommendation.category.value,
            before=before,
            after=after,
            improvement=improvement,
            cost=abs(recommendation.impact.cost),
            effort=recommendation.effort.implementation.value,
            status=status,
            notes=notes,
        )
