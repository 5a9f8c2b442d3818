"""
Optimization report assembly and ROI accounting.
"""

import logging
from dataclasses import asdict
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from ..config.settings import OptimizationTarget
from ..monitoring.models import (
    Analysis,
    ImplementedOptimization,
    MetricSample,
    OptimizationRecommendation,
    OptimizationReport,
    OptimizationResult,
    OptimizationStatus,
    PlannedOptimization,
    RoiSummary,
)
from ..utils.helpers import get_metric_value

logger = logging.getLogger(__name__)

NEXT_STEPS_SCORE_THRESHOLD = 70
STABILIZE_TOLERANCE = 0.10


def calculate_roi(history: Iterable[ImplementedOptimization]) -> RoiSummary:
    """Investment is the summed cost; savings the summed improvement values."""
    history = list(history)
    total_investment = sum(record.cost for record in history)
    total_savings = sum(sum(record.improvement.values()) for record in history)

    return RoiSummary(
        total_investment=total_investment,
        total_savings=total_savings,
        payback_period=total_investment / total_savings if total_savings > 0 else 0.0,
        roi=total_savings / total_investment * 100 if total_investment > 0 else 0.0,
    )


def plan_optimizations(
    recommendations: Sequence[OptimizationRecommendation],
    history: Sequence[ImplementedOptimization],
    planned_for: datetime,
) -> List[PlannedOptimization]:
    """Current recommendations that have not been implemented yet."""
    implemented = {record.id for record in history}
    return [
        PlannedOptimization(
            id=rec.id,
            name=rec.title,
            planned_for=planned_for,
            category=rec.category.value,
            expected_impact=asdict(rec.impact),
            estimated_cost=abs(rec.impact.cost),
            estimated_effort=rec.effort.implementation.value,
            priority=rec.priority,
            dependencies=list(rec.implementation.dependencies),
            risks=list(rec.risk.factors),
        )
        for rec in recommendations
        if rec.id not in implemented
    ]


def summarize_results(history: Sequence[ImplementedOptimization]) -> List[OptimizationResult]:
    return [
        OptimizationResult(
            optimization_id=record.id,
            before_metrics=dict(record.before),
            after_metrics=dict(record.after),
            improvement=dict(record.improvement),
            success=record.status is OptimizationStatus.SUCCESS,
            notes=record.notes,
            validated_at=record.implemented_at,
        )
        for record in history
    ]


def target_missed(target: OptimizationTarget, value: float) -> bool:
    if target.strategy == "reduce":
        return value > target.target_value
    if target.strategy == "increase":
        return value < target.target_value
    if target.target_value == 0:
        return value != 0
    return abs(value - target.target_value) / abs(target.target_value) > STABILIZE_TOLERANCE


def generate_next_steps(
    analysis: Optional[Analysis],
    targets: Sequence[OptimizationTarget] = (),
    latest_sample: Optional[MetricSample] = None,
) -> List[str]:
    steps = []

    if analysis is not None:
        if analysis.overall_score < NEXT_STEPS_SCORE_THRESHOLD:
            steps.append("Prioritize high-impact optimization recommendations")
        if analysis.bottlenecks:
            steps.append("Address identified bottlenecks starting with highest impact")
        if analysis.recommendations:
            steps.append("Implement top 3 optimization recommendations")

    if latest_sample is not None:
        for target in targets:
            value = get_metric_value(latest_sample, target.metric)
            if target_missed(target, value):
                steps.append(
                    f"{target.name}: {target.metric} is {value:g}, target {target.target_value:g} "
                    f"({target.strategy})"
                )

    steps.append("Continue monitoring and analysis")
    return steps


def build_report(
    analysis: Optional[Analysis],
    history: Sequence[ImplementedOptimization],
    targets: Sequence[OptimizationTarget] = (),
    latest_sample: Optional[MetricSample] = None,
    report_type: str = "on_demand",
    timestamp: Optional[datetime] = None,
) -> OptimizationReport:
    """Assemble an optimization report; works without any analysis."""
    timestamp = timestamp or datetime.now()
    recommendations = analysis.recommendations if analysis is not None else []

    report = OptimizationReport(
        timestamp=timestamp,
        report_type=report_type,
        analysis=analysis,
        implemented_optimizations=list(history),
        planned_optimizations=plan_optimizations(recommendations, history, timestamp),
        results=summarize_results(history),
        roi=calculate_roi(history),
        next_steps=generate_next_steps(analysis, targets, latest_sample),
    )
    logger.debug(
        f"Built {report_type} report: {len(report.implemented_optimizations)} implemented, "
        f"{len(report.planned_optimizations)} planned"
    )
    return report
