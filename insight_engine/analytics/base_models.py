"""Base models for the analytics engine."""

import math
from typing import Dict, Any, Optional, List, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from enum import Enum
from datetime import datetime, timezone

from .exceptions import InvalidConfigError


class TrendDirection(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"
    VOLATILE = "volatile"


class AnomalySeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AnomalyType(str, Enum):
    SPIKE = "spike"
    DROP = "drop"
    OUTLIER = "outlier"
    TREND_BREAK = "trend_break"
    MISSING = "missing"


class AnomalyMethod(str, Enum):
    ZSCORE = "zscore"
    IQR = "iqr"
    COMBINED = "combined"


class PredictionModel(str, Enum):
    LINEAR = "linear"
    POLYNOMIAL = "polynomial"
    EXPONENTIAL = "exponential"
    SEASONAL = "seasonal"


class CorrelationStrength(str, Enum):
    WEAK = "weak"
    MODERATE = "moderate"
    STRONG = "strong"
    VERY_STRONG = "very_strong"


class CorrelationDirection(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"


class CausalityHint(str, Enum):
    """Advisory label only. Never a statistical causality claim."""
    LIKELY = "likely"
    POSSIBLE = "possible"
    UNLIKELY = "unlikely"


class InsightType(str, Enum):
    TREND = "trend"
    COMPARISON = "comparison"
    ANOMALY = "anomaly"
    PREDICTION = "prediction"
    RECOMMENDATION = "recommendation"


class InsightPriority(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ACTION = "action"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Sort rank, most urgent first."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    InsightPriority.CRITICAL: 0,
    InsightPriority.ACTION: 1,
    InsightPriority.WARNING: 2,
    InsightPriority.INFO: 3,
}


class InsightFraming(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class MetricTrend(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class ActionType(str, Enum):
    INVESTIGATE = "investigate"
    ADJUST = "adjust"
    MONITOR = "monitor"
    CELEBRATE = "celebrate"


class BenchmarkSource(str, Enum):
    PREVIOUS_PERIOD = "previous_period"
    TARGET = "target"
    INDUSTRY = "industry"
    BEST_PRACTICE = "best_practice"


class BenchmarkPerformance(str, Enum):
    EXCEEDING = "exceeding"
    MEETING = "meeting"
    BELOW = "below"
    CRITICAL = "critical"


class BenchmarkTrend(str, Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


class BenchmarkPeriod(str, Enum):
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"

    @property
    def days(self) -> int:
        return {"week": 7, "month": 30, "quarter": 91, "year": 365}[self.value]


class MetricStatus(str, Enum):
    GOOD = "good"
    NEUTRAL = "neutral"
    BAD = "bad"


class Level(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


def naive_utc(value: datetime) -> datetime:
    """Timezone-aware timestamps are converted to UTC and stored naive."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# ---------------------------------------------------------------------------
# Input data
# ---------------------------------------------------------------------------

class DataPoint(_Frozen):
    """
    One observation. Non-finite or null values count as missing.

    Timestamps are kept naive in UTC so series from mixed sources compare.
    """

    timestamp: datetime
    value: Optional[float] = None
    label: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return naive_utc(value)

    @property
    def is_missing(self) -> bool:
        return self.value is None or not math.isfinite(self.value)


class DataSeries(_Frozen):
    """Ordered, timestamped sequence of observations."""

    id: str
    name: str
    data: List[DataPoint] = Field(default_factory=list)
    unit: Optional[str] = None
    color: Optional[str] = None

    @field_validator("data")
    @classmethod
    def _check_order(cls, data: List[DataPoint]) -> List[DataPoint]:
        for prev, curr in zip(data, data[1:]):
            if curr.timestamp < prev.timestamp:
                raise ValueError(
                    f"timestamps must be non-decreasing ({curr.timestamp} after {prev.timestamp})"
                )
        return data


# ---------------------------------------------------------------------------
# Derived entities
# ---------------------------------------------------------------------------

class Percentiles(_Frozen):
    p25: float
    p50: float
    p75: float
    p90: float
    p95: float
    p99: float


class DescriptiveStats(_Frozen):
    """Descriptive statistics of one sample."""

    count: int
    min: float
    max: float
    mean: float
    median: float
    standard_deviation: float = Field(description="Sample (n-1) standard deviation")
    variance: float
    skewness: float = Field(description="Adjusted Fisher-Pearson skewness")
    kurtosis: float = Field(description="Adjusted excess kurtosis")
    percentiles: Percentiles

    @property
    def coefficient_of_variation(self) -> float:
        if self.mean == 0:
            return 0.0
        return self.standard_deviation / abs(self.mean)


class Seasonality(_Frozen):
    detected: bool
    period: int = Field(description="Period in sampling steps")
    amplitude: float = Field(description="Half-range of the seasonal component")
    strength: float = Field(default=0.0, description="Autocorrelation at the period")


class Trend(_Frozen):
    direction: TrendDirection
    slope: float
    r_squared: float = Field(ge=0, le=1)
    change_rate: float = Field(description="Mean relative change between consecutive points")
    acceleration: float = Field(description="Slope of the relative change series")
    seasonality: Optional[Seasonality] = None


class Anomaly(_Frozen):
    id: str
    series_id: str
    timestamp: datetime
    value: float
    expected_value: float
    deviation: float = Field(description="Percent difference from expected_value")
    severity: AnomalySeverity
    type: AnomalyType
    confidence: float = Field(ge=0, le=1)
    description: str
    suggested_action: Optional[str] = None


class PredictionFactor(_Frozen):
    name: str
    impact: float


class Prediction(_Frozen):
    id: str
    series_id: str
    step: int = Field(ge=1)
    target_date: datetime
    predicted_value: float
    lower_bound: float
    upper_bound: float
    confidence: float = Field(ge=0, le=1)
    model: PredictionModel
    factors: List[PredictionFactor] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_bounds(self) -> "Prediction":
        if not (self.lower_bound <= self.predicted_value <= self.upper_bound):
            raise ValueError("prediction must satisfy lower_bound <= predicted_value <= upper_bound")
        return self


class ForecastResult(_Frozen):
    """Predictions for one series plus the model that produced them."""

    series_id: str
    model: PredictionModel
    predictions: List[Prediction]
    fit_errors: Dict[str, float] = Field(
        default_factory=dict,
        description="In-sample residual standard error per candidate model"
    )


class Correlation(_Frozen):
    id: str
    series1: str
    series2: str
    coefficient: float = Field(ge=-1, le=1)
    strength: CorrelationStrength
    direction: CorrelationDirection
    lag_days: Optional[float] = Field(
        default=None,
        description="Offset with maximal |coefficient|; positive means series1 leads"
    )
    sample_size: int
    p_value: float = Field(ge=0, le=1)
    interpretation: str
    causality_hint: Optional[CausalityHint] = Field(
        default=None,
        description="Heuristic label, not statistical causal inference"
    )


class InsightMetric(_Frozen):
    name: str
    value: Union[float, str]
    change: Optional[float] = None
    trend: Optional[MetricTrend] = None


class InsightAction(_Frozen):
    label: str
    type: ActionType


class Insight(_Frozen):
    id: str
    type: InsightType
    priority: InsightPriority
    title: str
    description: str
    confidence: float = Field(ge=0, le=1)
    framing: InsightFraming = InsightFraming.NEUTRAL
    metrics: List[InsightMetric] = Field(default_factory=list)
    actions: Optional[List[InsightAction]] = None
    related_data: Optional[List[str]] = None
    observed_at: Optional[datetime] = None
    generated_at: datetime
    expires_at: Optional[datetime] = None


class BenchmarkTarget(_Frozen):
    """Caller-declared reference value for a series."""

    value: float
    source: BenchmarkSource = BenchmarkSource.TARGET
    higher_is_better: bool = True
    metric: Optional[str] = None


class Benchmark(_Frozen):
    id: str
    metric: str
    current_value: float
    benchmark_value: float
    source: BenchmarkSource
    performance: BenchmarkPerformance
    gap: float
    gap_percent: Optional[float] = Field(
        default=None,
        description="None when the benchmark value is zero"
    )
    trend: BenchmarkTrend = BenchmarkTrend.STABLE
    recommendation: Optional[str] = None
    series_id: Optional[str] = None


class Period(_Frozen):
    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def _normalize_bounds(cls, value: datetime) -> datetime:
        return naive_utc(value)


class KeyMetric(_Frozen):
    name: str
    value: Union[float, str]
    change: float = 0.0
    status: MetricStatus


class Risk(_Frozen):
    description: str
    probability: Level
    impact: Level


class Opportunity(_Frozen):
    description: str
    potential: float
    effort: Level


class ExecutiveSummary(_Frozen):
    period: Period
    highlights: List[str] = Field(default_factory=list)
    key_metrics: List[KeyMetric] = Field(default_factory=list)
    top_insights: List[Insight] = Field(default_factory=list)
    risks: List[Risk] = Field(default_factory=list)
    opportunities: List[Opportunity] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Configuration and top-level result
# ---------------------------------------------------------------------------

class AnalysisConfig(_Frozen):
    """Per-call analysis configuration. Out-of-range values raise InvalidConfigError."""

    anomaly_threshold: float = Field(default=2.5, description="Standard deviations")
    prediction_horizon: int = Field(default=7, description="Days")
    correlation_min_strength: float = 0.3
    insight_min_confidence: float = 0.5
    benchmark_period: BenchmarkPeriod = BenchmarkPeriod.MONTH
    correlation_max_lag: int = Field(default=0, description="Lag search window in steps")
    anomaly_method: AnomalyMethod = AnomalyMethod.ZSCORE
    growth_is_good: bool = True
    higher_is_better: bool = True

    @model_validator(mode="after")
    def _check_ranges(self) -> "AnalysisConfig":
        problems = []
        if not math.isfinite(self.anomaly_threshold) or self.anomaly_threshold <= 0:
            problems.append(f"anomaly_threshold must be > 0 (got {self.anomaly_threshold})")
        if self.prediction_horizon <= 0:
            problems.append(f"prediction_horizon must be > 0 (got {self.prediction_horizon})")
        if not 0 <= self.correlation_min_strength <= 1:
            problems.append(
                f"correlation_min_strength must be within [0, 1] (got {self.correlation_min_strength})"
            )
        if not 0 <= self.insight_min_confidence <= 1:
            problems.append(
                f"insight_min_confidence must be within [0, 1] (got {self.insight_min_confidence})"
            )
        if self.correlation_max_lag < 0:
            problems.append(f"correlation_max_lag must be >= 0 (got {self.correlation_max_lag})")
        if problems:
            raise InvalidConfigError("; ".join(problems), details={"problems": problems})
        return self


class SeriesFailure(_Frozen):
    """A per-series (or per-pair) error caught inside a batch."""

    series_id: str
    error: str
    message: str


class AnalysisResult(_Frozen):
    id: str
    analyzed_at: datetime
    config: AnalysisConfig
    series: List[DataSeries]
    statistics: Dict[str, DescriptiveStats] = Field(default_factory=dict)
    trends: Dict[str, Trend] = Field(default_factory=dict)
    models: Dict[str, PredictionModel] = Field(default_factory=dict)
    anomalies: List[Anomaly] = Field(default_factory=list)
    predictions: List[Prediction] = Field(default_factory=list)
    correlations: List[Correlation] = Field(default_factory=list)
    insights: List[Insight] = Field(default_factory=list)
    benchmarks: List[Benchmark] = Field(default_factory=list)
    failures: List[SeriesFailure] = Field(default_factory=list)
    summary: Optional[ExecutiveSummary] = None
