"""Business logic for analytics requests."""

import logging
from typing import Optional

from app.schemas.analytics import (
    AnalyticsAction,
    AnalyticsRequest,
    AnalyticsResponse,
    BenchmarkRequest,
    CorrelationRequest,
    CorrelationResponse,
    StatisticsRequest,
)
from insight_engine.analytics import (
    AnalyticsEngine,
    Benchmark,
    BenchmarkEngine,
    CorrelationEngine,
    DescriptiveStats,
    StatisticsCalculator,
)

logger = logging.getLogger(__name__)

_ACTION_FIELDS = {
    AnalyticsAction.ANOMALIES: ("statistics", "anomalies"),
    AnalyticsAction.INSIGHTS: ("insights",),
    AnalyticsAction.PREDICTIONS: ("trends", "models", "predictions"),
    AnalyticsAction.FULL: (
        "statistics", "trends", "models", "anomalies", "predictions",
        "correlations", "benchmarks", "insights", "summary"
    ),
}


class AnalyticsService:
    """Service class for analytics operations."""

    @staticmethod
    def analyze(
        engine: AnalyticsEngine,
        request: AnalyticsRequest,
        max_series: Optional[int] = None
    ) -> AnalyticsResponse:
        """
        Run the analysis pipeline and keep the parts the action asks for.

        Args:
            engine: Analytics engine
            request: Analysis request
            max_series: Maximum number of series per request

        Returns:
            AnalyticsResponse

        Raises:
            ValueError: If no series is supplied or too many are
        """
        series = request.all_series()
        if not series:
            raise ValueError("At least one series is required")
        if max_series is not None and len(series) > max_series:
            raise ValueError(f"Too many series ({len(series)} > {max_series})")

        result = engine.analyze(
            series,
            config=request.config,
            targets=request.targets,
            as_of=request.as_of,
            include_summary=request.action == AnalyticsAction.FULL,
            period=request.period
        )
        logger.info("Action %s on %d series -> %s", request.action.value, len(series), result.id)

        return AnalyticsResponse(
            action=request.action,
            analysis_id=result.id,
            analyzed_at=result.analyzed_at,
            failures=result.failures,
            **{name: getattr(result, name) for name in _ACTION_FIELDS[request.action]}
        )

    @staticmethod
    def statistics(request: StatisticsRequest) -> DescriptiveStats:
        """Descriptive statistics over raw values."""
        return StatisticsCalculator().calculate(request.values)

    @staticmethod
    def correlate(request: CorrelationRequest) -> CorrelationResponse:
        """Correlate two series; the correlation is omitted when weaker than min_strength."""
        engine = CorrelationEngine(max_lag=request.max_lag, min_strength=request.min_strength)
        return CorrelationResponse(correlation=engine.correlate(request.series1, request.series2))

    @staticmethod
    def benchmark(request: BenchmarkRequest) -> Benchmark:
        """Compare a value against a benchmark, with an optional previous snapshot."""
        engine = BenchmarkEngine()
        previous = None
        if request.previous_value is not None:
            previous = engine.compare(
                request.metric,
                request.previous_value,
                request.benchmark_value,
                request.source,
                request.higher_is_better
            )
        return engine.compare(
            request.metric,
            request.current_value,
            request.benchmark_value,
            request.source,
            request.higher_is_better,
            previous=previous
        )
