"""Insight synthesizer - converts statistical results to prioritized insights."""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional

from .base_models import (
    ActionType,
    AnalysisConfig,
    Anomaly,
    AnomalySeverity,
    Benchmark,
    BenchmarkPerformance,
    Correlation,
    CorrelationStrength,
    DataSeries,
    DescriptiveStats,
    Insight,
    InsightAction,
    InsightFraming,
    InsightMetric,
    InsightPriority,
    InsightType,
    MetricTrend,
    Prediction,
    Trend,
    TrendDirection,
)
from .config import AnalyticsSettings, get_analytics_settings
from .validation import StatisticalValidator, finite_values
from ..utils import make_id

logger = logging.getLogger(__name__)


def percent_change(first: float, last: float) -> Optional[float]:
    """Relative change in percent, None from a zero base."""
    if first == 0:
        return None
    return (last - first) / abs(first) * 100


class InsightContext(NamedTuple):
    """Read-only view of everything computed for one analysis."""

    series: Dict[str, DataSeries]
    statistics: Dict[str, DescriptiveStats]
    trends: Dict[str, Trend]
    anomalies: List[Anomaly]
    predictions: List[Prediction]
    correlations: List[Correlation]
    benchmarks: List[Benchmark]
    config: AnalysisConfig
    generated_at: datetime

    def anomalies_for(self, series_id: str) -> List[Anomaly]:
        return [a for a in self.anomalies if a.series_id == series_id]

    def predictions_for(self, series_id: str) -> List[Prediction]:
        return sorted(
            (p for p in self.predictions if p.series_id == series_id),
            key=lambda p: p.step
        )

    def observed(self, series_id: str) -> List[float]:
        return finite_values([p.value for p in self.series[series_id].data]).tolist()

    def last_timestamp(self, series_id: str) -> Optional[datetime]:
        points = [p for p in self.series[series_id].data if not p.is_missing]
        return points[-1].timestamp if points else None


class InsightRule(NamedTuple):
    """Independent predicate -> builder pair evaluated over one subject."""

    name: str
    subjects: Callable[[InsightContext], Iterable[Any]]
    applies: Callable[[InsightContext, Any], bool]
    build: Callable[[InsightContext, Any], Insight]


class InsightGenerator:
    """
    Converts analysis results into human-readable, prioritized insights.

    Every rule is evaluated on its own over a shared read-only context and
    emits at most one insight per subject (a series, a correlation or a
    benchmark). Insight confidence is the minimum confidence of the results
    it was derived from; insights below the configured floor are dropped.
    """

    def __init__(
        self,
        settings: Optional[AnalyticsSettings] = None,
        rules: Optional[List[InsightRule]] = None
    ):
        """
        Initialize generator.

        Args:
            settings: Tuning constants
            rules: Rule set (defaults to the built-in rules)
        """
        self.settings = settings or get_analytics_settings()
        self.validator = StatisticalValidator(self.settings)
        self.rules = rules if rules is not None else self._default_rules()

    def generate(
        self,
        context: InsightContext,
        min_confidence: Optional[float] = None
    ) -> List[Insight]:
        """
        Generate insights.

        Args:
            context: Results of one analysis
            min_confidence: Override of config.insight_min_confidence

        Returns:
            Insights ordered by priority (critical first), then most recent
            observation, then id
        """
        floor = context.config.insight_min_confidence if min_confidence is None else min_confidence

        insights: Dict[str, Insight] = {}
        for rule in self.rules:
            for subject in rule.subjects(context):
                if not rule.applies(context, subject):
                    continue
                insight = rule.build(context, subject)
                if insight.confidence < floor:
                    logger.debug(
                        "Dropped %s insight (confidence %.2f < %.2f)",
                        rule.name, insight.confidence, floor
                    )
                    continue
                insights.setdefault(insight.id, insight)

        ordered = sorted(insights.values(), key=lambda i: i.id)
        ordered.sort(key=_recency, reverse=True)
        ordered.sort(key=lambda i: i.priority.rank)
        logger.debug("Generated %d insight(s)", len(ordered))
        return ordered

    def _default_rules(self) -> List[InsightRule]:
        return [
            InsightRule("anomaly", _series_ids, self._has_severe_anomalies, self._anomaly_insight),
            InsightRule("trend", _series_ids, self._has_reliable_trend, self._trend_insight),
            InsightRule("volatility", _series_ids, self._is_volatile, self._volatility_insight),
            InsightRule("seasonality", _series_ids, self._has_seasonality, self._seasonality_insight),
            InsightRule(
                "prediction", _series_ids,
                lambda ctx, sid: self._decisive_prediction(ctx, sid) is not None,
                self._prediction_insight
            ),
            InsightRule(
                "correlation", lambda ctx: ctx.correlations,
                lambda ctx, c: c.strength in (
                    CorrelationStrength.STRONG, CorrelationStrength.VERY_STRONG
                ),
                self._correlation_insight
            ),
            InsightRule(
                "benchmark", lambda ctx: ctx.benchmarks,
                lambda ctx, b: b.performance in (
                    BenchmarkPerformance.BELOW, BenchmarkPerformance.CRITICAL
                ),
                self._benchmark_insight
            ),
        ]

    # Anomalies

    def _severe_anomalies(self, ctx: InsightContext, series_id: str) -> List[Anomaly]:
        return [
            a for a in ctx.anomalies_for(series_id)
            if a.severity in (AnomalySeverity.CRITICAL, AnomalySeverity.HIGH)
        ]

    def _has_severe_anomalies(self, ctx: InsightContext, series_id: str) -> bool:
        return bool(self._severe_anomalies(ctx, series_id))

    def _anomaly_insight(self, ctx: InsightContext, series_id: str) -> Insight:
        severe = self._severe_anomalies(ctx, series_id)
        critical = [a for a in severe if a.severity == AnomalySeverity.CRITICAL]
        shown = critical or severe
        name = ctx.series[series_id].name

        if critical:
            priority = InsightPriority.CRITICAL
            title = f"{len(critical)} critical anomaly(ies) in {name}"
            action = InsightAction(label="Investigate immediately", type=ActionType.INVESTIGATE)
        else:
            priority = InsightPriority.WARNING
            title = f"{len(severe)} significant anomaly(ies) in {name}"
            action = InsightAction(label="Verify the data", type=ActionType.INVESTIGATE)

        return self._build(
            ctx,
            rule="anomaly",
            subject=series_id,
            type=InsightType.ANOMALY,
            priority=priority,
            title=title,
            description=". ".join(a.description for a in shown[:3]),
            confidence=min(a.confidence for a in severe),
            framing=InsightFraming.NEGATIVE,
            metrics=[
                InsightMetric(name=f"{a.timestamp:%Y-%m-%d}", value=a.value, change=a.deviation)
                for a in shown[:3]
            ],
            actions=[action],
            related_data=[series_id],
            observed_at=max(a.timestamp for a in severe),
            volatility=self._volatility_of(ctx, [series_id])
        )

    # Trend, volatility and seasonality

    def _has_reliable_trend(self, ctx: InsightContext, series_id: str) -> bool:
        trend = ctx.trends.get(series_id)
        return (
            trend is not None
            and trend.direction in (TrendDirection.INCREASING, TrendDirection.DECREASING)
            and trend.r_squared >= self.settings.insight_fit_floor
        )

    def _trend_insight(self, ctx: InsightContext, series_id: str) -> Insight:
        trend = ctx.trends[series_id]
        name = ctx.series[series_id].name
        values = ctx.observed(series_id)
        first, last = values[0], values[-1]
        rising = trend.direction == TrendDirection.INCREASING
        favorable = rising == ctx.config.growth_is_good

        change = percent_change(first, last)
        if change is None:
            change = trend.change_rate * 100 * (len(values) - 1)
        verb = "grew" if rising else "declined"

        return self._build(
            ctx,
            rule="trend",
            subject=series_id,
            type=InsightType.TREND,
            priority=InsightPriority.INFO if favorable else InsightPriority.WARNING,
            title=f"{name} {verb} {abs(change):.1f}%",
            description=(
                f"{name} {'increased' if rising else 'decreased'} from {first:.2f} to "
                f"{last:.2f} over the analyzed period."
            ),
            confidence=trend.r_squared,
            framing=InsightFraming.POSITIVE if favorable else InsightFraming.NEGATIVE,
            metrics=[
                InsightMetric(name="Initial value", value=first, trend=MetricTrend.STABLE),
                InsightMetric(
                    name="Current value",
                    value=last,
                    change=change,
                    trend=MetricTrend.UP if rising else MetricTrend.DOWN
                ),
                InsightMetric(name="Trend reliability", value=f"{trend.r_squared * 100:.0f}%"),
            ],
            actions=[
                InsightAction(label="Sustain the momentum", type=ActionType.MONITOR)
                if favorable else
                InsightAction(label="Investigate the causes", type=ActionType.INVESTIGATE)
            ],
            related_data=[series_id],
            observed_at=ctx.last_timestamp(series_id),
            volatility=self._volatility_of(ctx, [series_id])
        )

    def _is_volatile(self, ctx: InsightContext, series_id: str) -> bool:
        trend = ctx.trends.get(series_id)
        return (
            trend is not None
            and trend.direction == TrendDirection.VOLATILE
            and series_id in ctx.statistics
        )

    def _volatility_insight(self, ctx: InsightContext, series_id: str) -> Insight:
        stats = ctx.statistics[series_id]
        name = ctx.series[series_id].name
        return self._build(
            ctx,
            rule="volatility",
            subject=series_id,
            type=InsightType.TREND,
            priority=InsightPriority.WARNING,
            title=f"High volatility in {name}",
            description=(
                f"{name} fluctuates strongly around its mean "
                f"(standard deviation {stats.standard_deviation:.2f})."
            ),
            confidence=self.validator.sample_confidence(stats.count),
            framing=InsightFraming.NEGATIVE,
            metrics=[
                InsightMetric(name="Mean", value=stats.mean),
                InsightMetric(name="Standard deviation", value=stats.standard_deviation),
                InsightMetric(
                    name="Coefficient of variation",
                    value=f"{stats.coefficient_of_variation * 100:.1f}%"
                ),
            ],
            actions=[
                InsightAction(label="Identify the sources of volatility", type=ActionType.INVESTIGATE)
            ],
            related_data=[series_id],
            observed_at=ctx.last_timestamp(series_id),
            volatility=self._volatility_of(ctx, [series_id])
        )

    def _has_seasonality(self, ctx: InsightContext, series_id: str) -> bool:
        trend = ctx.trends.get(series_id)
        return trend is not None and trend.seasonality is not None and trend.seasonality.detected

    def _seasonality_insight(self, ctx: InsightContext, series_id: str) -> Insight:
        seasonality = ctx.trends[series_id].seasonality
        name = ctx.series[series_id].name
        return self._build(
            ctx,
            rule="seasonality",
            subject=series_id,
            type=InsightType.TREND,
            priority=InsightPriority.INFO,
            title=f"Seasonal pattern in {name}",
            description=(
                f"A cycle of ~{seasonality.period} periods was identified in {name} "
                f"(amplitude {seasonality.amplitude:.2f})."
            ),
            confidence=seasonality.strength,
            framing=InsightFraming.NEUTRAL,
            metrics=[
                InsightMetric(name="Cycle length", value=float(seasonality.period)),
                InsightMetric(name="Amplitude", value=seasonality.amplitude),
                InsightMetric(name="Strength", value=seasonality.strength),
            ],
            actions=[
                InsightAction(
                    label=f"Plan around the {seasonality.period}-period cycle",
                    type=ActionType.ADJUST
                )
            ],
            related_data=[series_id],
            observed_at=ctx.last_timestamp(series_id),
            volatility=self._volatility_of(ctx, [series_id])
        )

    # Predictions

    def _decisive_prediction(self, ctx: InsightContext, series_id: str) -> Optional[Prediction]:
        """First step that crosses zero or whose interval excludes the current value."""
        values = ctx.observed(series_id)
        if not values:
            return None
        current = values[-1]
        for prediction in ctx.predictions_for(series_id):
            if _crosses_zero(current, prediction.predicted_value):
                return prediction
            if prediction.lower_bound > current or prediction.upper_bound < current:
                return prediction
        return None

    def _prediction_insight(self, ctx: InsightContext, series_id: str) -> Insight:
        prediction = self._decisive_prediction(ctx, series_id)
        name = ctx.series[series_id].name
        current = ctx.observed(series_id)[-1]
        rising = prediction.predicted_value > current
        favorable = rising == ctx.config.growth_is_good
        change = percent_change(current, prediction.predicted_value)

        if _crosses_zero(current, prediction.predicted_value):
            priority = InsightPriority.ACTION
            title = f"{name} is forecast to cross zero"
        else:
            priority = InsightPriority.INFO if favorable else InsightPriority.WARNING
            direction = "rise" if rising else "fall"
            title = f"{name} is forecast to {direction}" + (
                f" {abs(change):.1f}%" if change is not None else ""
            )

        return self._build(
            ctx,
            rule="prediction",
            subject=series_id,
            type=InsightType.PREDICTION,
            priority=priority,
            title=title,
            description=(
                f"By {prediction.target_date:%Y-%m-%d}, {name} is expected to reach "
                f"{prediction.predicted_value:.2f} (range {prediction.lower_bound:.2f} - "
                f"{prediction.upper_bound:.2f}, {prediction.model.value} model)."
            ),
            confidence=prediction.confidence,
            framing=InsightFraming.POSITIVE if favorable else InsightFraming.NEGATIVE,
            metrics=[
                InsightMetric(name="Current value", value=current),
                InsightMetric(
                    name="Predicted value",
                    value=prediction.predicted_value,
                    change=change,
                    trend=MetricTrend.UP if rising else MetricTrend.DOWN
                ),
                InsightMetric(name="Confidence", value=f"{prediction.confidence * 100:.0f}%"),
            ],
            actions=[
                InsightAction(
                    label="Prepare for growth" if rising else "Anticipate the decline",
                    type=ActionType.ADJUST
                )
            ],
            related_data=[series_id],
            observed_at=ctx.last_timestamp(series_id),
            volatility=self._volatility_of(ctx, [series_id])
        )

    # Cross-series

    def _correlation_insight(self, ctx: InsightContext, correlation: Correlation) -> Insight:
        ids = [correlation.series1, correlation.series2]
        names = [ctx.series[i].name if i in ctx.series else i for i in ids]
        kind = "positively" if correlation.coefficient >= 0 else "negatively"
        metrics = [
            InsightMetric(name="Coefficient", value=correlation.coefficient),
            InsightMetric(name="p-value", value=correlation.p_value),
        ]
        if correlation.lag_days:
            metrics.append(InsightMetric(name="Lag (days)", value=correlation.lag_days))

        last_seen = [ctx.last_timestamp(i) for i in ids if i in ctx.series]
        last_seen = [t for t in last_seen if t is not None]

        return self._build(
            ctx,
            rule="correlation",
            subject=correlation.id,
            type=InsightType.COMPARISON,
            priority=InsightPriority.INFO,
            title=f"{names[0]} and {names[1]} are strongly {kind} correlated",
            description=correlation.interpretation,
            confidence=1.0 - correlation.p_value,
            framing=InsightFraming.NEUTRAL,
            metrics=metrics,
            actions=[
                InsightAction(label="Explore the relationship", type=ActionType.INVESTIGATE)
            ],
            related_data=ids,
            observed_at=min(last_seen) if last_seen else None,
            volatility=self._volatility_of(ctx, ids)
        )

    def _benchmark_insight(self, ctx: InsightContext, benchmark: Benchmark) -> Insight:
        series_id = benchmark.series_id
        known = series_id is not None and series_id in ctx.series
        confidence = 1.0
        if known and series_id in ctx.statistics:
            confidence = self.validator.sample_confidence(ctx.statistics[series_id].count)
        critical = benchmark.performance == BenchmarkPerformance.CRITICAL

        return self._build(
            ctx,
            rule="benchmark",
            subject=benchmark.id,
            type=InsightType.RECOMMENDATION,
            priority=InsightPriority.ACTION if critical else InsightPriority.WARNING,
            title=f"{benchmark.metric} is {benchmark.performance.value} benchmark",
            description=benchmark.recommendation or "",
            confidence=confidence,
            framing=InsightFraming.NEGATIVE,
            metrics=[
                InsightMetric(name="Current value", value=benchmark.current_value),
                InsightMetric(
                    name="Benchmark",
                    value=benchmark.benchmark_value,
                    change=benchmark.gap_percent
                ),
            ],
            actions=[InsightAction(label="Close the gap", type=ActionType.ADJUST)],
            related_data=[series_id] if series_id else None,
            observed_at=ctx.last_timestamp(series_id) if known else None,
            volatility=self._volatility_of(ctx, [series_id] if known else [])
        )

    # Helpers

    def _volatility_of(self, ctx: InsightContext, series_ids: List[str]) -> float:
        return max(
            (ctx.statistics[s].coefficient_of_variation for s in series_ids if s in ctx.statistics),
            default=0.0
        )

    def _build(
        self,
        ctx: InsightContext,
        rule: str,
        subject: str,
        confidence: float,
        volatility: float,
        **fields
    ) -> Insight:
        """Assemble an insight; volatile subjects expire sooner."""
        insight_type: InsightType = fields["type"]
        ttl = self.settings.insight_ttl_days.get(insight_type.value, 7.0)
        return Insight(
            id=make_id("insight", rule, subject),
            confidence=float(min(1.0, max(0.0, confidence))),
            generated_at=ctx.generated_at,
            expires_at=ctx.generated_at + timedelta(days=ttl / (1.0 + volatility)),
            **fields
        )


def _series_ids(ctx: InsightContext) -> List[str]:
    return sorted(ctx.series)


def _crosses_zero(current: float, predicted: float) -> bool:
    return (current > 0 and predicted <= 0) or (current < 0 and predicted >= 0)


def _recency(insight: Insight) -> float:
    if insight.observed_at is None:
        return float("-inf")
    return insight.observed_at.timestamp()
