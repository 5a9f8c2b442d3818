"""
Data model for performance analysis.

Samples are produced by an external collector and never mutated once stored.
Everything else here is derived inside an analysis cycle and treated as an
immutable snapshot afterwards.
"""

import re
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


class HealthStatus(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    ACCEPTABLE = "acceptable"
    POOR = "poor"
    CRITICAL = "critical"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Recommendation priorities share the severity scale.
Priority = Severity


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class EffortLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TrendDirection(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DEGRADING = "degrading"


class BottleneckType(str, Enum):
    CPU = "cpu"
    MEMORY = "memory"
    DISK = "disk"
    NETWORK = "network"
    DATABASE = "database"
    APPLICATION = "application"


class RecommendationCategory(str, Enum):
    PERFORMANCE = "performance"
    RESOURCE = "resource"
    ARCHITECTURE = "architecture"
    CONFIGURATION = "configuration"


class Comparison(str, Enum):
    BETTER = "better"
    SAME = "same"
    WORSE = "worse"


class OptimizationStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


SEVERITY_RANK = {
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}


# === SAMPLES ===

@dataclass(frozen=True)
class SystemMetrics:
    """Host-level utilisation (percentages) and network latency (ms)."""
    cpu: float = 0.0
    memory: float = 0.0
    disk: float = 0.0
    network_latency: float = 0.0


@dataclass(frozen=True)
class ApplicationMetrics:
    response_time: float = 0.0  # ms
    throughput: float = 0.0  # ops/min
    error_rate: float = 0.0  # percent
    active_connections: int = 0


@dataclass(frozen=True)
class AgentMetrics:
    total: int = 0
    active: int = 0
    average_health: float = 0.0  # 0-1


_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _section(metrics_cls, data: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Keyword arguments for one sample section.

    camelCase keys are converted to snake_case; keys the section does not
    define are dropped.
    """
    known = {f.name for f in fields(metrics_cls)}
    values = {}
    for key, value in (data or {}).items():
        name = _CAMEL_BOUNDARY.sub("_", str(key)).lower()
        if name in known:
            values[name] = value
    return values


@dataclass(frozen=True)
class MetricSample:
    """One periodic measurement produced by the metric collector."""
    timestamp: datetime
    system: SystemMetrics = field(default_factory=SystemMetrics)
    application: ApplicationMetrics = field(default_factory=ApplicationMetrics)
    agents: AgentMetrics = field(default_factory=AgentMetrics)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MetricSample":
        """Build a sample from a collector payload (snake_case or camelCase keys)."""
        timestamp = data.get("timestamp") or datetime.now()
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
        return cls(
            timestamp=timestamp,
            system=SystemMetrics(**_section(SystemMetrics, data.get("system"))),
            application=ApplicationMetrics(**_section(ApplicationMetrics, data.get("application"))),
            agents=AgentMetrics(**_section(AgentMetrics, data.get("agents"))),
        )


# === ANALYSIS RECORDS ===

@dataclass
class PerformanceIssue:
    """A metric that scored below the acceptable band in the latest sample."""
    id: str
    category: str
    severity: Severity
    title: str
    description: str
    impact: str
    detected_at: datetime
    affected_metrics: List[str]
    frequency: int = 1
    correlations: List[str] = field(default_factory=list)


@dataclass
class MetricScore:
    name: str
    path: str
    value: float
    score: float


@dataclass
class CategoryScore:
    score: float
    status: HealthStatus
    metrics: List[MetricScore] = field(default_factory=list)
    trends: Dict[str, TrendDirection] = field(default_factory=dict)
    issues: List[PerformanceIssue] = field(default_factory=list)


@dataclass
class TrendSummary:
    direction: TrendDirection
    change: float = 0.0
    slope: float = 0.0
    recent_average: float = 0.0
    older_average: float = 0.0
    sample_count: int = 0


@dataclass
class TrendReport:
    overall: TrendDirection
    categories: Dict[str, TrendDirection] = field(default_factory=dict)
    metrics: Dict[str, TrendSummary] = field(default_factory=dict)


@dataclass
class Bottleneck:
    id: str
    type: BottleneckType
    severity: Severity
    description: str
    impact: float  # 0-100
    location: str
    detecting_metrics: List[str]
    recommendations: List[str]
    estimated_cost: float


@dataclass
class RecommendationImpact:
    performance: float
    cost: float
    reliability: float
    maintainability: float


@dataclass
class RecommendationEffort:
    implementation: EffortLevel
    testing: EffortLevel
    maintenance: EffortLevel


@dataclass
class RecommendationRisk:
    level: RiskLevel
    factors: List[str] = field(default_factory=list)
    mitigation: List[str] = field(default_factory=list)


@dataclass
class ImplementationPlan:
    steps: List[str]
    timeline: str
    resources: List[str] = field(default_factory=list)
    dependencies: List[str] = field(default_factory=list)


@dataclass
class ValidationPlan:
    metrics: List[str] = field(default_factory=list)
    tests: List[str] = field(default_factory=list)
    criteria: List[str] = field(default_factory=list)


@dataclass
class OptimizationRecommendation:
    id: str
    title: str
    description: str
    category: RecommendationCategory
    priority: Priority
    impact: RecommendationImpact
    effort: RecommendationEffort
    risk: RecommendationRisk
    implementation: ImplementationPlan
    validation: ValidationPlan
    alternatives: List[str] = field(default_factory=list)
    references: List[str] = field(default_factory=list)


@dataclass
class BenchmarkResult:
    id: str
    name: str
    timestamp: datetime
    category: str
    metrics: Dict[str, float]
    baseline: Dict[str, float]
    comparison: Dict[str, Comparison]
    score: float
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ImplementedOptimization:
    id: str
    name: str
    implemented_at: datetime
    category: str
    before: Dict[str, float]
    after: Dict[str, float]
    improvement: Dict[str, float]
    cost: float
    effort: str
    status: OptimizationStatus
    notes: str = ""


@dataclass
class Analysis:
    """Aggregate snapshot produced by one analysis cycle."""
    timestamp: datetime
    period: str
    overall_score: float
    categories: Dict[str, CategoryScore]
    bottlenecks: List[Bottleneck]
    recommendations: List[OptimizationRecommendation]
    trends: TrendReport
    benchmarks: List[BenchmarkResult] = field(default_factory=list)


# === REPORTING ===

@dataclass
class PlannedOptimization:
    id: str
    name: str
    planned_for: datetime
    category: str
    expected_impact: Dict[str, float]
    estimated_cost: float
    estimated_effort: str
    priority: Priority
    dependencies: List[str] = field(default_factory=list)
    risks: List[str] = field(default_factory=list)


@dataclass
class OptimizationResult:
    optimization_id: str
    before_metrics: Dict[str, float]
    after_metrics: Dict[str, float]
    improvement: Dict[str, float]
    success: bool
    notes: str
    validated_at: datetime


@dataclass
class RoiSummary:
    total_investment: float = 0.0
    total_savings: float = 0.0
    payback_period: float = 0.0
    roi: float = 0.0


@dataclass
class OptimizationReport:
    timestamp: datetime
    report_type: str  # "on_demand" or "shutdown"
    analysis: Optional[Analysis]
    implemented_optimizations: List[ImplementedOptimization]
    planned_optimizations: List[PlannedOptimization]
    results: List[OptimizationResult]
    roi: RoiSummary
    next_steps: List[str]
