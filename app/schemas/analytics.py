"""Pydantic schemas for analytics requests and responses."""

from enum import Enum
from typing import Any, Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, Field

from insight_engine.analytics.base_models import (
    Anomaly,
    Benchmark,
    BenchmarkSource,
    BenchmarkTarget,
    Correlation,
    DataPoint,
    DataSeries,
    DescriptiveStats,
    ExecutiveSummary,
    Insight,
    Period,
    Prediction,
    PredictionModel,
    SeriesFailure,
    Trend,
)


class AnalyticsAction(str, Enum):
    ANOMALIES = "anomalies"
    INSIGHTS = "insights"
    PREDICTIONS = "predictions"
    FULL = "full"


class AnalyticsRequest(BaseModel):
    """Schema for a batch analysis request."""
    action: AnalyticsAction = AnalyticsAction.FULL
    series: List[DataSeries] = Field(default_factory=list, description="Series to analyze")
    data: Optional[List[DataPoint]] = Field(
        None, description="Shorthand for a single series of points"
    )
    series_name: str = Field("data", min_length=1, description="Id and name of the shorthand series")
    config: Optional[Dict[str, Any]] = Field(None, description="AnalysisConfig fields")
    targets: Dict[str, List[BenchmarkTarget]] = Field(
        default_factory=dict, description="Benchmark targets by series id"
    )
    as_of: Optional[datetime] = None
    period: Optional[Period] = None

    def all_series(self) -> List[DataSeries]:
        """Explicit series plus the shorthand series, if given."""
        series = list(self.series)
        if self.data is not None:
            series.append(DataSeries(id=self.series_name, name=self.series_name, data=self.data))
        return series


class AnalyticsResponse(BaseModel):
    """Schema for analysis results; fields outside the requested action are omitted."""
    success: bool = True
    action: AnalyticsAction
    analysis_id: str
    analyzed_at: datetime
    statistics: Optional[Dict[str, DescriptiveStats]] = None
    trends: Optional[Dict[str, Trend]] = None
    models: Optional[Dict[str, PredictionModel]] = None
    anomalies: Optional[List[Anomaly]] = None
    predictions: Optional[List[Prediction]] = None
    correlations: Optional[List[Correlation]] = None
    benchmarks: Optional[List[Benchmark]] = None
    insights: Optional[List[Insight]] = None
    summary: Optional[ExecutiveSummary] = None
    failures: List[SeriesFailure] = Field(default_factory=list)


class StatisticsRequest(BaseModel):
    """Schema for descriptive statistics over raw values."""
    values: List[Optional[float]] = Field(..., description="Sample; nulls count as missing")


class CorrelationRequest(BaseModel):
    """Schema for correlating two series."""
    series1: DataSeries
    series2: DataSeries
    max_lag: int = Field(0, ge=0, description="Lag search window in steps")
    min_strength: float = Field(0.0, ge=0, le=1)


class CorrelationResponse(BaseModel):
    success: bool = True
    correlation: Optional[Correlation] = None


class BenchmarkRequest(BaseModel):
    """Schema for comparing a value against a benchmark."""
    metric: str = Field(..., min_length=1)
    current_value: float
    benchmark_value: float
    source: BenchmarkSource = BenchmarkSource.TARGET
    higher_is_better: bool = True
    previous_value: Optional[float] = Field(
        None, description="Value of the metric at the previous snapshot"
    )
