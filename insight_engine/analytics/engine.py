"""Analysis pipeline: runs every component over a batch of series."""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from itertools import combinations
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Sequence, Union

from .anomaly_detection import AnomalyDetector
from .base_models import (
    AnalysisConfig,
    AnalysisResult,
    Anomaly,
    Benchmark,
    BenchmarkTarget,
    Correlation,
    DataSeries,
    DescriptiveStats,
    ForecastResult,
    Period,
    SeriesFailure,
    Trend,
    naive_utc,
)
from .benchmarking import BenchmarkEngine
from .config import AnalyticsSettings, get_analytics_settings
from .correlation import CorrelationEngine
from .exceptions import IdenticalSeriesError, InsightEngineError
from .executive_summary import ExecutiveSummaryBuilder
from .forecasting import PredictionEngine
from .statistics import StatisticsCalculator
from .synthesizer import InsightContext, InsightGenerator
from .trend_analysis import TrendAnalyzer
from .validation import StatisticalValidator, interval_days, modal_interval, to_pandas
from ..utils import make_id

logger = logging.getLogger(__name__)


class SeriesAnalysis(NamedTuple):
    """Per-series component outputs; a failed component leaves None or []."""

    statistics: Optional[DescriptiveStats]
    trend: Optional[Trend]
    anomalies: List[Anomaly]
    forecast: Optional[ForecastResult]
    benchmarks: List[Benchmark]
    failures: List[SeriesFailure]


class AnalyticsEngine:
    """
    Runs the full analysis over one or more series.

    Configuration is validated once up front and errors there abort the call.
    Data errors are caught per series and per component (and per pair for
    correlations) and reported in AnalysisResult.failures while the rest of
    the batch completes. Independent series and pairs run on a thread pool;
    results are joined in input order, so output never depends on scheduling.
    """

    def __init__(
        self,
        settings: Optional[AnalyticsSettings] = None,
        max_workers: Optional[int] = None
    ):
        """
        Initialize the engine.

        Args:
            settings: Tuning constants shared by every component
            max_workers: Thread pool size (None lets the executor decide)
        """
        self.settings = settings or get_analytics_settings()
        self.max_workers = max_workers
        self.validator = StatisticalValidator(self.settings)
        self.calculator = StatisticsCalculator(self.validator)
        self.trend_analyzer = TrendAnalyzer(self.settings)
        self.prediction_engine = PredictionEngine(
            settings=self.settings,
            trend_analyzer=self.trend_analyzer
        )
        self.benchmark_engine = BenchmarkEngine(self.settings)
        self.insight_generator = InsightGenerator(self.settings)
        self.summary_builder = ExecutiveSummaryBuilder(self.settings)

    def analyze(
        self,
        series_list: Sequence[DataSeries],
        config: Union[AnalysisConfig, Dict[str, Any], None] = None,
        targets: Optional[Mapping[str, Sequence[BenchmarkTarget]]] = None,
        as_of: Optional[datetime] = None,
        include_summary: bool = True,
        period: Optional[Period] = None
    ) -> AnalysisResult:
        """
        Analyze a batch of series.

        Args:
            series_list: Series to analyze (ids must be unique)
            config: Per-call configuration
            targets: Caller benchmark targets by series id
            as_of: Generation timestamp (defaults to the latest observation, stored as naive UTC)
            include_summary: Build the executive summary
            period: Summary window (defaults to the observed span)

        Returns:
            AnalysisResult

        Raises:
            InvalidConfigError: If the configuration is out of range
            IdenticalSeriesError: If two series share an id
        """
        config = self.validator.validate_config(config)
        self._check_unique_ids(series_list)
        targets = targets or {}
        as_of = naive_utc(as_of) if as_of else _latest_timestamp(series_list)

        logger.info(
            "Analyzing %d series (threshold=%.2f, horizon=%d days)",
            len(series_list), config.anomaly_threshold, config.prediction_horizon
        )

        ordered = sorted(series_list, key=lambda s: s.id)
        correlation_engine = CorrelationEngine(
            max_lag=config.correlation_max_lag,
            min_strength=config.correlation_min_strength,
            settings=self.settings
        )

        with ThreadPoolExecutor(
            max_workers=self.max_workers,
            thread_name_prefix="insight_engine"
        ) as executor:
            series_futures = [
                executor.submit(self._analyze_series, s, config, targets.get(s.id, ()))
                for s in series_list
            ]
            pair_futures = [
                (a, b, executor.submit(correlation_engine.correlate, a, b))
                for a, b in combinations(ordered, 2)
            ]
            analyses = [f.result() for f in series_futures]

            correlations: List[Correlation] = []
            pair_failures: List[SeriesFailure] = []
            for a, b, future in pair_futures:
                try:
                    correlation = future.result()
                except InsightEngineError as e:
                    pair_failures.append(_failure(e, f"{a.id}x{b.id}", "correlation"))
                    continue
                if correlation is not None:
                    correlations.append(correlation)

        statistics, trends, models = {}, {}, {}
        anomalies, predictions, benchmarks, failures = [], [], [], []
        for series, analysis in zip(series_list, analyses):
            if analysis.statistics is not None:
                statistics[series.id] = analysis.statistics
            if analysis.trend is not None:
                trends[series.id] = analysis.trend
            if analysis.forecast is not None:
                models[series.id] = analysis.forecast.model
                predictions.extend(analysis.forecast.predictions)
            anomalies.extend(analysis.anomalies)
            benchmarks.extend(analysis.benchmarks)
            failures.extend(analysis.failures)
        failures.extend(pair_failures)

        for failure in failures:
            logger.warning("%s: %s (%s)", failure.series_id, failure.message, failure.error)

        insights = self.insight_generator.generate(InsightContext(
            series={s.id: s for s in series_list},
            statistics=statistics,
            trends=trends,
            anomalies=anomalies,
            predictions=predictions,
            correlations=correlations,
            benchmarks=benchmarks,
            config=config,
            generated_at=as_of
        ))

        result = AnalysisResult(
            id=make_id(
                "analysis",
                as_of.isoformat(),
                config.model_dump_json(),
                *(s.model_dump_json() for s in ordered)
            ),
            analyzed_at=as_of,
            config=config,
            series=list(series_list),
            statistics=statistics,
            trends=trends,
            models=models,
            anomalies=anomalies,
            predictions=predictions,
            correlations=correlations,
            insights=insights,
            benchmarks=benchmarks,
            failures=failures
        )
        if include_summary:
            result = result.model_copy(update={
                "summary": self.summary_builder.build(result, period)
            })

        logger.info(
            "Analysis %s: %d anomalies, %d predictions, %d correlations, "
            "%d insights, %d failure(s)",
            result.id, len(anomalies), len(predictions), len(correlations),
            len(insights), len(failures)
        )
        return result

    def _analyze_series(
        self,
        series: DataSeries,
        config: AnalysisConfig,
        targets: Sequence[BenchmarkTarget]
    ) -> SeriesAnalysis:
        failures: List[SeriesFailure] = []

        def attempt(component: str, fn: Callable[[], Any], default: Any = None) -> Any:
            try:
                return fn()
            except InsightEngineError as e:
                failures.append(_failure(e, series.id, component))
                return default

        stats = attempt("statistics", lambda: self.calculator.calculate_series(series))
        if stats is None:
            # Nothing downstream can run without at least one observation
            return SeriesAnalysis(None, None, [], None, [], failures)

        trend = self.trend_analyzer.analyze_series(series)
        detector = AnomalyDetector(
            method=config.anomaly_method,
            threshold=config.anomaly_threshold,
            settings=self.settings
        )
        anomalies = attempt(
            "anomalies",
            lambda: detector.detect_anomalies(series, stats=stats),
            default=[]
        )
        forecast = attempt(
            "predictions",
            lambda: self.prediction_engine.predict(
                series, self.horizon_steps(series, config), trend=trend
            )
        )
        benchmarks = attempt(
            "benchmarks",
            lambda: self.benchmark_engine.benchmark_series(
                series, config.benchmark_period, targets, config.higher_is_better
            ),
            default=[]
        )
        return SeriesAnalysis(stats, trend, anomalies, forecast, benchmarks, failures)

    def horizon_steps(self, series: DataSeries, config: AnalysisConfig) -> int:
        """Convert the horizon in days into sampling steps of this series."""
        step_days = interval_days(modal_interval(to_pandas(series).index))
        return max(1, int(round(config.prediction_horizon / step_days)))

    def _check_unique_ids(self, series_list: Sequence[DataSeries]) -> None:
        seen = set()
        for series in series_list:
            if series.id in seen:
                raise IdenticalSeriesError(
                    f"Duplicate series id '{series.id}' in batch",
                    series_id=series.id
                )
            seen.add(series.id)


def _failure(error: InsightEngineError, series_id: str, component: str) -> SeriesFailure:
    return SeriesFailure(
        series_id=error.series_id or series_id,
        error=error.category.value,
        message=f"{component}: {error.message}"
    )


def _latest_timestamp(series_list: Sequence[DataSeries]) -> datetime:
    timestamps = [p.timestamp for s in series_list for p in s.data if not p.is_missing]
    return max(timestamps) if timestamps else datetime(1970, 1, 1)
