"""Period-level executive summary built from a completed analysis."""

import logging
from typing import List, Optional

from .base_models import (
    AnalysisResult,
    AnomalySeverity,
    ExecutiveSummary,
    Insight,
    InsightFraming,
    InsightPriority,
    InsightType,
    KeyMetric,
    Level,
    MetricStatus,
    Opportunity,
    Period,
    Risk,
    TrendDirection,
)
from .config import AnalyticsSettings, get_analytics_settings
from .synthesizer import percent_change

logger = logging.getLogger(__name__)

_SEVERITY_ORDER = {
    AnomalySeverity.CRITICAL: 0,
    AnomalySeverity.HIGH: 1,
    AnomalySeverity.MEDIUM: 2,
    AnomalySeverity.LOW: 3,
}


class ExecutiveSummaryBuilder:
    """Aggregates insights and headline numbers into a period report."""

    def __init__(self, settings: Optional[AnalyticsSettings] = None):
        self.settings = settings or get_analytics_settings()

    def build(self, result: AnalysisResult, period: Optional[Period] = None) -> ExecutiveSummary:
        """
        Build the summary for a period window.

        Args:
            result: Completed analysis
            period: Reporting window (defaults to the span of the observations)

        Returns:
            ExecutiveSummary
        """
        period = period or self._observed_period(result)
        top_insights = self.rank_insights(result.insights)[:self.settings.summary_top_insights]

        summary = ExecutiveSummary(
            period=period,
            highlights=[i.title for i in top_insights],
            key_metrics=self._key_metrics(result, period),
            top_insights=top_insights,
            risks=[self._to_risk(i) for i in result.insights if _is_risk(i)],
            opportunities=[self._to_opportunity(i) for i in result.insights if _is_opportunity(i)],
            recommendations=self._recommendations(result, period)
        )
        logger.debug(
            "Summary %s..%s: %d top insight(s), %d risk(s)",
            period.start, period.end, len(top_insights), len(summary.risks)
        )
        return summary

    @staticmethod
    def rank_insights(insights: List[Insight]) -> List[Insight]:
        """Order by priority, then confidence (highest first), then id."""
        ranked = sorted(insights, key=lambda i: i.id)
        ranked.sort(key=lambda i: i.confidence, reverse=True)
        ranked.sort(key=lambda i: i.priority.rank)
        return ranked

    def _observed_period(self, result: AnalysisResult) -> Period:
        timestamps = [p.timestamp for s in result.series for p in s.data if not p.is_missing]
        if not timestamps:
            return Period(start=result.analyzed_at, end=result.analyzed_at)
        return Period(start=min(timestamps), end=max(timestamps))

    def _key_metrics(self, result: AnalysisResult, period: Period) -> List[KeyMetric]:
        """Latest value, average and trend per series, plus batch-wide counts."""
        growth_is_good = result.config.growth_is_good
        threshold = self.settings.summary_status_change_pct
        metrics = []
        total_points = 0

        for series in result.series:
            values = [
                p.value for p in series.data
                if not p.is_missing and period.start <= p.timestamp <= period.end
            ]
            if not values:
                continue
            total_points += len(values)

            change = percent_change(values[0], values[-1]) or 0.0
            oriented = change if growth_is_good else -change
            if oriented > threshold:
                status = MetricStatus.GOOD
            elif oriented < -threshold:
                status = MetricStatus.BAD
            else:
                status = MetricStatus.NEUTRAL
            metrics.append(KeyMetric(name=series.name, value=values[-1], change=change, status=status))
            metrics.append(KeyMetric(
                name=f"{series.name} average",
                value=sum(values) / len(values),
                status=MetricStatus.NEUTRAL
            ))

            trend = result.trends.get(series.id)
            if trend is not None:
                metrics.append(KeyMetric(
                    name=f"{series.name} trend",
                    value=trend.direction.value,
                    status=_trend_status(trend.direction, growth_is_good)
                ))

        anomalies = [a for a in result.anomalies if period.start <= a.timestamp <= period.end]
        severe = [
            a for a in anomalies
            if a.severity in (AnomalySeverity.CRITICAL, AnomalySeverity.HIGH)
        ]
        metrics.append(KeyMetric(name="Observations", value=float(total_points), status=MetricStatus.NEUTRAL))
        metrics.append(KeyMetric(
            name="Anomalies",
            value=float(len(anomalies)),
            status=(
                MetricStatus.BAD if severe
                else MetricStatus.NEUTRAL if anomalies
                else MetricStatus.GOOD
            )
        ))
        return metrics

    def _to_risk(self, insight: Insight) -> Risk:
        if insight.priority == InsightPriority.CRITICAL:
            impact = Level.HIGH
        elif insight.priority == InsightPriority.INFO:
            impact = Level.LOW
        else:
            impact = Level.MEDIUM
        return Risk(
            description=insight.title,
            probability=_confidence_level(insight.confidence),
            impact=impact
        )

    def _to_opportunity(self, insight: Insight) -> Opportunity:
        potential = next((m.change for m in insight.metrics if m.change is not None), 0.0)
        return Opportunity(
            description=insight.title,
            potential=potential,
            effort=Level.LOW if insight.priority == InsightPriority.INFO else Level.MEDIUM
        )

    def _recommendations(self, result: AnalysisResult, period: Period) -> List[str]:
        """Suggested actions and benchmark recommendations, most severe first, deduplicated."""
        anomalies = sorted(
            (a for a in result.anomalies if period.start <= a.timestamp <= period.end),
            key=lambda a: (_SEVERITY_ORDER[a.severity], a.timestamp)
        )
        candidates = [a.suggested_action for a in anomalies]
        candidates += [b.recommendation for b in result.benchmarks]

        recommendations = []
        for text in candidates:
            if text and text not in recommendations:
                recommendations.append(text)
        return recommendations


def _is_risk(insight: Insight) -> bool:
    return (
        insight.type in (InsightType.ANOMALY, InsightType.PREDICTION)
        and insight.framing == InsightFraming.NEGATIVE
    )


def _is_opportunity(insight: Insight) -> bool:
    return (
        insight.type in (InsightType.ANOMALY, InsightType.PREDICTION)
        and insight.framing == InsightFraming.POSITIVE
    )


def _confidence_level(confidence: float) -> Level:
    if confidence >= 0.8:
        return Level.HIGH
    elif confidence >= 0.6:
        return Level.MEDIUM
    return Level.LOW


def _trend_status(direction: TrendDirection, growth_is_good: bool) -> MetricStatus:
    if direction == TrendDirection.VOLATILE:
        return MetricStatus.BAD
    if direction == TrendDirection.STABLE:
        return MetricStatus.NEUTRAL
    rising = direction == TrendDirection.INCREASING
    return MetricStatus.GOOD if rising == growth_is_good else MetricStatus.BAD
