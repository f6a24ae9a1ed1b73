"""
Value objects passed between the analysis layers.

Everything here except Goal is computed fresh per analysis request.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

Series = List[Tuple[date, float]]


@dataclass(frozen=True)
class MetricSample:
    date: date
    metric: str
    value: float
    source: str


@dataclass(frozen=True)
class InsufficientData:
    """Marker returned by the aggregator instead of a too-short series."""
    metric: str
    current_entries: int
    required_entries: int
    status: str = "insufficient_data"


@dataclass
class TrendResult:
    metric: str
    direction: str
    slope: float
    volatility: float
    average: float
    predicted_next: float
    sample_size: int


@dataclass
class CorrelationResult:
    metric_a: str
    metric_b: str
    coefficient: float
    sample_size: int
    mode: str = "pearson"
    p_value: Optional[float] = None
    bucket_means: Dict[str, float] = field(default_factory=dict)
    bucket_counts: Dict[str, int] = field(default_factory=dict)
    pattern: Optional[str] = None


@dataclass
class Pattern:
    type: str
    significance: str
    description: str
    confidence: float
    evidence: Dict[str, Any] = field(default_factory=dict)


@dataclass
class HealthWarning:
    type: str
    severity: str
    metric: str
    message: str
    recommendation: str
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RiskFactor:
    factor: str
    level: str
    description: str


@dataclass
class Goal:
    nutrient: str
    target_value: Optional[float] = None
    target_percentage: Optional[float] = None
    timeframe: str = "monthly"
    priority: str = "medium"

    def __post_init__(self):
        if self.target_value is None and self.target_percentage is None:
            raise ValueError(f"Goal for {self.nutrient} needs a target value or percentage")


@dataclass
class GoalProgress:
    nutrient: str
    current_intake: float
    target_value: Optional[float]
    target_percentage: Optional[float]
    progress_percent: float
    status: str
    timeframe: str
    priority: str
    recommendations: List[str] = field(default_factory=list)


@dataclass
class AnalysisConfig:
    window_days: int = 30
    focus_metrics: List[str] = field(default_factory=lambda: ["mood", "energy", "productivity"])
    include_nutrition: bool = True
    include_exercise: bool = True
    include_sleep: bool = True


@dataclass
class AnalysisResult:
    status: str
    user_id: Any
    window_days: int
    trends: Dict[str, TrendResult] = field(default_factory=dict)
    correlations: List[CorrelationResult] = field(default_factory=list)
    patterns: List[Pattern] = field(default_factory=list)
    warnings: List[HealthWarning] = field(default_factory=list)
    goal_progress: List[GoalProgress] = field(default_factory=list)
    confidence: float = 0.0
    health_score: int = 100
    risk_level: str = "low"
    risk_factors: List[RiskFactor] = field(default_factory=list)
    recommendations: List[Dict[str, Any]] = field(default_factory=list)
    insights: List[str] = field(default_factory=list)
    next_steps: List[str] = field(default_factory=list)
    time_patterns: Dict[str, Any] = field(default_factory=dict)
    insufficient_metrics: List[InsufficientData] = field(default_factory=list)
    degraded_reasons: List[str] = field(default_factory=list)
    current_entries: int = 0
    required_entries: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe dict (dates as ISO strings)."""
        return _jsonable(asdict(self))


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, date):
        return value.isoformat()
    return value
