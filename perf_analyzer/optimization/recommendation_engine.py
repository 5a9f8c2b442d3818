"""
Optimization recommendations from category scores and bottlenecks.

Each cycle is a fresh computation: recommendations are not deduplicated
across cycles, and ids repeat whenever the same condition recurs.
"""

import logging
from typing import Dict, List, Sequence

from ..monitoring.models import (
    SEVERITY_RANK,
    Bottleneck,
    CategoryScore,
    EffortLevel,
    ImplementationPlan,
    OptimizationRecommendation,
    Priority,
    RecommendationCategory,
    RecommendationEffort,
    RecommendationImpact,
    RecommendationRisk,
    RiskLevel,
    ValidationPlan,
)

logger = logging.getLogger(__name__)

RECOMMENDATION_SCORE_THRESHOLD = 70


def system_optimization() -> OptimizationRecommendation:
    return OptimizationRecommendation(
        id="system-optimization",
        title="System Resource Optimization",
        description="Optimize system resource utilization to improve overall performance",
        category=RecommendationCategory.RESOURCE,
        priority=Priority.HIGH,
        impact=RecommendationImpact(performance=25, cost=-10, reliability=20, maintainability=15),
        effort=RecommendationEffort(
            implementation=EffortLevel.MEDIUM,
            testing=EffortLevel.MEDIUM,
            maintenance=EffortLevel.LOW,
        ),
        risk=RecommendationRisk(
            level=RiskLevel.LOW,
            factors=["Temporary performance impact during optimization"],
            mitigation=["Perform during maintenance window", "Gradual rollout"],
        ),
        implementation=ImplementationPlan(
            steps=[
                "Analyze current resource usage patterns",
                "Identify optimization opportunities",
                "Implement resource-efficient algorithms",
                "Monitor and validate improvements",
            ],
            timeline="2-3 weeks",
            resources=["DevOps Engineer", "Performance Analyst"],
            dependencies=["Monitoring system", "Test environment"],
        ),
        validation=ValidationPlan(
            metrics=["system.cpu", "system.memory"],
            tests=["Load testing", "Stress testing"],
            criteria=["CPU usage < 70%", "Memory usage < 80%"],
        ),
        alternatives=["Horizontal scaling", "Infrastructure upgrade"],
        references=["Performance Best Practices", "Resource Optimization Guide"],
    )


def application_optimization() -> OptimizationRecommendation:
    return OptimizationRecommendation(
        id="application-optimization",
        title="Application Performance Optimization",
        description="Optimize application performance through caching and algorithm improvements",
        category=RecommendationCategory.PERFORMANCE,
        priority=Priority.HIGH,
        impact=RecommendationImpact(performance=30, cost=-5, reliability=25, maintainability=10),
        effort=RecommendationEffort(
            implementation=EffortLevel.HIGH,
            testing=EffortLevel.HIGH,
            maintenance=EffortLevel.MEDIUM,
        ),
        risk=RecommendationRisk(
            level=RiskLevel.MEDIUM,
            factors=["Code changes may introduce bugs", "Performance regression risk"],
            mitigation=["Comprehensive testing", "Feature flags", "Gradual rollout"],
        ),
        implementation=ImplementationPlan(
            steps=[
                "Profile application performance",
                "Identify performance bottlenecks",
                "Implement caching strategies",
                "Optimize critical code paths",
                "Validate performance improvements",
            ],
            timeline="4-6 weeks",
            resources=["Senior Developer", "Performance Engineer"],
            dependencies=["Code profiling tools", "Test data"],
        ),
        validation=ValidationPlan(
            metrics=["application.response_time", "application.throughput"],
            tests=["Performance regression tests", "Load testing"],
            criteria=["Response time < 500ms", "Throughput > 1000 req/s"],
        ),
        alternatives=["Infrastructure scaling", "CDN implementation"],
        references=["Application Performance Guide", "Caching Best Practices"],
    )


def bottleneck_recommendation(bottleneck: Bottleneck) -> OptimizationRecommendation:
    """Remediation for a single bottleneck; impact and cost come straight from it."""
    return OptimizationRecommendation(
        id=f"fix-{bottleneck.id}",
        title=f"Fix {bottleneck.type.value} Bottleneck",
        description=bottleneck.description,
        category=RecommendationCategory.PERFORMANCE,
        priority=Priority(bottleneck.severity),
        impact=RecommendationImpact(
            performance=bottleneck.impact,
            cost=-bottleneck.estimated_cost / 1000,
            reliability=20,
            maintainability=10,
        ),
        effort=RecommendationEffort(
            implementation=EffortLevel.MEDIUM,
            testing=EffortLevel.MEDIUM,
            maintenance=EffortLevel.LOW,
        ),
        risk=RecommendationRisk(
            level=RiskLevel.LOW,
            factors=["Performance changes may affect other components"],
            mitigation=["Gradual rollout", "Monitoring", "Rollback plan"],
        ),
        implementation=ImplementationPlan(
            steps=list(bottleneck.recommendations),
            timeline="1-2 weeks",
            resources=["DevOps Engineer"],
            dependencies=["Monitoring tools"],
        ),
        validation=ValidationPlan(
            metrics=list(bottleneck.detecting_metrics),
            tests=["Performance testing"],
            criteria=["Improved performance metrics"],
        ),
        alternatives=["Infrastructure upgrade"],
        references=["Performance Optimization Guide"],
    )


def rank_recommendations(
    recommendations: Sequence[OptimizationRecommendation],
) -> List[OptimizationRecommendation]:
    """Highest priority first, then largest performance impact; ties keep input order."""
    return sorted(
        recommendations,
        key=lambda r: (SEVERITY_RANK[Priority(r.priority)], r.impact.performance),
        reverse=True,
    )


class RecommendationEngine:
    """Turns low category scores and bottlenecks into ranked recommendations."""

    def __init__(self, score_threshold: float = RECOMMENDATION_SCORE_THRESHOLD):
        self.score_threshold = score_threshold

    def generate(
        self,
        categories: Dict[str, CategoryScore],
        bottlenecks: Sequence[Bottleneck],
    ) -> List[OptimizationRecommendation]:
        recommendations: List[OptimizationRecommendation] = []

        system = categories.get("system")
        if system is not None and system.score < self.score_threshold:
            recommendations.append(system_optimization())

        application = categories.get("application")
        if application is not None and application.score < self.score_threshold:
            recommendations.append(application_optimization())

        seen = set()
        for bottleneck in bottlenecks:
            if bottleneck.id in seen:
                continue
            seen.add(bottleneck.id)
            recommendations.append(bottleneck_recommendation(bottleneck))

        ranked = rank_recommendations(recommendations)
        logger.debug(f"Generated {len(ranked)} recommendations from {len(bottlenecks)} bottlenecks")
        return ranked
