"""Benchmark comparisons of a metric against a reference value."""

import logging
from typing import List, Optional, Sequence
import pandas as pd

from .base_models import (
    Benchmark,
    BenchmarkPerformance,
    BenchmarkPeriod,
    BenchmarkSource,
    BenchmarkTarget,
    BenchmarkTrend,
    DataSeries,
)
from .config import AnalyticsSettings, get_analytics_settings
from .validation import to_pandas
from ..utils import make_id

logger = logging.getLogger(__name__)

_SOURCE_LABELS = {
    BenchmarkSource.PREVIOUS_PERIOD: "the previous period",
    BenchmarkSource.TARGET: "target",
    BenchmarkSource.INDUSTRY: "the industry benchmark",
    BenchmarkSource.BEST_PRACTICE: "best practice",
}


class BenchmarkEngine:
    """
    Compares a current value against a reference value.

    The gap is always current - benchmark. Performance is judged on the gap
    oriented by the metric direction, so for lower-is-better metrics a
    negative gap counts as exceeding.
    """

    def __init__(self, settings: Optional[AnalyticsSettings] = None):
        self.settings = settings or get_analytics_settings()

    def compare(
        self,
        metric: str,
        current_value: float,
        benchmark_value: float,
        source: BenchmarkSource = BenchmarkSource.TARGET,
        higher_is_better: bool = True,
        previous: Optional[Benchmark] = None,
        series_id: Optional[str] = None
    ) -> Benchmark:
        """
        Compare a value against a benchmark.

        Args:
            metric: Metric name
            current_value: Current value of the metric
            benchmark_value: Reference value
            source: Where the reference comes from
            higher_is_better: Metric direction convention
            previous: Earlier snapshot of the same comparison (drives the trend)
            series_id: Series the metric was derived from

        Returns:
            Benchmark
        """
        source = BenchmarkSource(source)
        gap = float(current_value - benchmark_value)
        gap_percent = None
        if benchmark_value != 0:
            gap_percent = gap / abs(benchmark_value) * 100

        performance = self._classify(gap, gap_percent, higher_is_better)
        trend = self._trend(gap, gap_percent, previous, higher_is_better)

        return Benchmark(
            id=make_id(
                "benchmark", series_id or "", metric, source.value,
                benchmark_value, higher_is_better
            ),
            metric=metric,
            current_value=float(current_value),
            benchmark_value=float(benchmark_value),
            source=source,
            performance=performance,
            gap=gap,
            gap_percent=gap_percent,
            trend=trend,
            recommendation=self._recommendation(
                metric, performance, gap, gap_percent, source, higher_is_better
            ),
            series_id=series_id
        )

    def benchmark_series(
        self,
        series: DataSeries,
        period: BenchmarkPeriod = BenchmarkPeriod.MONTH,
        targets: Sequence[BenchmarkTarget] = (),
        higher_is_better: bool = True
    ) -> List[Benchmark]:
        """
        Benchmarks for one series over a reporting period.

        The current value is the mean of the latest period window. It is
        compared with the window before it and with every caller target; the
        window before that provides the earlier snapshot for the trend.
        """
        windows = period_means(series, period)
        current, prior, before = windows
        if current is None:
            return []

        benchmarks = []
        if prior is not None:
            earlier = None
            if before is not None:
                earlier = self.compare(
                    series.name, prior, before,
                    BenchmarkSource.PREVIOUS_PERIOD, higher_is_better, series_id=series.id
                )
            benchmarks.append(self.compare(
                series.name, current, prior,
                BenchmarkSource.PREVIOUS_PERIOD, higher_is_better,
                previous=earlier, series_id=series.id
            ))

        for target in targets:
            metric = target.metric or series.name
            earlier = None
            if prior is not None:
                earlier = self.compare(
                    metric, prior, target.value,
                    target.source, target.higher_is_better, series_id=series.id
                )
            benchmarks.append(self.compare(
                metric, current, target.value,
                target.source, target.higher_is_better,
                previous=earlier, series_id=series.id
            ))

        logger.debug("%s: %d benchmark(s) over %s windows", series.id, len(benchmarks), period.value)
        return benchmarks

    def _classify(
        self,
        gap: float,
        gap_percent: Optional[float],
        higher_is_better: bool
    ) -> BenchmarkPerformance:
        sign = 1 if higher_is_better else -1
        if gap_percent is None:
            # Zero benchmark: only the sign of the gap is meaningful
            oriented = sign * gap
            if oriented > 0:
                return BenchmarkPerformance.EXCEEDING
            elif oriented == 0:
                return BenchmarkPerformance.MEETING
            return BenchmarkPerformance.BELOW

        oriented = sign * gap_percent
        if oriented > self.settings.benchmark_meeting_band:
            return BenchmarkPerformance.EXCEEDING
        elif oriented >= -self.settings.benchmark_meeting_band:
            return BenchmarkPerformance.MEETING
        elif oriented >= -self.settings.benchmark_critical_band:
            return BenchmarkPerformance.BELOW
        else:
            return BenchmarkPerformance.CRITICAL

    def _trend(
        self,
        gap: float,
        gap_percent: Optional[float],
        previous: Optional[Benchmark],
        higher_is_better: bool
    ) -> BenchmarkTrend:
        """Movement of the oriented gap since the previous snapshot."""
        if previous is None:
            return BenchmarkTrend.STABLE

        sign = 1 if higher_is_better else -1
        if gap_percent is not None and previous.gap_percent is not None:
            delta = sign * (gap_percent - previous.gap_percent)
            tolerance = self.settings.benchmark_trend_tolerance
        else:
            delta = sign * (gap - previous.gap)
            tolerance = 0.0

        if delta > tolerance:
            return BenchmarkTrend.IMPROVING
        elif delta < -tolerance:
            return BenchmarkTrend.DECLINING
        return BenchmarkTrend.STABLE

    def _recommendation(
        self,
        metric: str,
        performance: BenchmarkPerformance,
        gap: float,
        gap_percent: Optional[float],
        source: BenchmarkSource,
        higher_is_better: bool
    ) -> Optional[str]:
        if performance not in (BenchmarkPerformance.BELOW, BenchmarkPerformance.CRITICAL):
            return None

        side = "below" if higher_is_better else "above"
        if gap_percent is not None:
            distance = f"{abs(gap_percent):.1f}% {side}"
        else:
            distance = f"{abs(gap):.2f} {side}"
        reference = _SOURCE_LABELS[source]

        if performance == BenchmarkPerformance.CRITICAL:
            return (
                f"{metric} is {distance} {reference}. "
                f"Prioritize a corrective plan and review it weekly."
            )
        return f"{metric} is {distance} {reference}. Review the main drivers of the gap."


def period_means(series: DataSeries, period: BenchmarkPeriod) -> List[Optional[float]]:
    """
    Mean value of the latest three period windows, newest first.

    Windows are half-open (end - k*period, end - (k-1)*period] relative to the
    last observation; an empty window yields None.
    """
    data = to_pandas(series)
    if data.empty:
        return [None, None, None]

    end = data.index[-1]
    width = pd.Timedelta(days=BenchmarkPeriod(period).days)
    means = []
    for k in range(3):
        upper = end - width * k
        window = data[(data.index > upper - width) & (data.index <= upper)]
        means.append(float(window.mean()) if len(window) else None)
    return means
