"""Descriptive statistics over a numeric sample."""

from typing import Optional, Sequence
import numpy as np
from scipy import stats

from .base_models import DataSeries, DescriptiveStats, Percentiles
from .validation import StatisticalValidator, finite_values

PERCENTILE_LEVELS = {
    "p25": 25.0,
    "p50": 50.0,
    "p75": 75.0,
    "p90": 90.0,
    "p95": 95.0,
    "p99": 99.0,
}


class StatisticsCalculator:
    """
    Descriptive statistics with small-sample fallbacks.

    Sample (Bessel-corrected) variance, adjusted Fisher-Pearson skewness and
    excess kurtosis, and linearly interpolated percentiles.
    """

    def __init__(self, validator: Optional[StatisticalValidator] = None):
        self.validator = validator or StatisticalValidator()

    def calculate_series(self, series: DataSeries) -> DescriptiveStats:
        """Statistics over the non-missing values of a series."""
        return self.calculate(
            [p.value for p in series.data],
            series_id=series.id
        )

    def calculate(
        self,
        values: Sequence[float],
        series_id: Optional[str] = None
    ) -> DescriptiveStats:
        """
        Calculate descriptive statistics.

        Args:
            values: Sample values; missing and non-finite entries are ignored
            series_id: Series identifier for error reporting

        Returns:
            DescriptiveStats

        Raises:
            InsufficientDataError: If no finite values remain
        """
        x = finite_values(values)
        n = len(x)
        self.validator.require_size(n, 1, "descriptive statistics", series_id)

        mean = float(np.mean(x))
        median = float(np.median(x))
        quantiles = np.percentile(x, list(PERCENTILE_LEVELS.values()))
        percentiles = Percentiles(**{
            name: float(q) for name, q in zip(PERCENTILE_LEVELS, quantiles)
        })

        # Constant samples (including n == 1) have exactly zero spread
        if n == 1 or np.ptp(x) == 0:
            return DescriptiveStats(
                count=n,
                min=float(x.min()),
                max=float(x.max()),
                mean=mean,
                median=median,
                standard_deviation=0.0,
                variance=0.0,
                skewness=0.0,
                kurtosis=0.0,
                percentiles=percentiles
            )

        variance = float(np.var(x, ddof=1))

        # The adjusted estimators need n > 2 (skewness) and n > 3 (kurtosis)
        skewness = float(stats.skew(x, bias=False)) if n > 2 else 0.0
        kurtosis = float(stats.kurtosis(x, fisher=True, bias=False)) if n > 3 else 0.0

        return DescriptiveStats(
            count=n,
            min=float(x.min()),
            max=float(x.max()),
            mean=mean,
            median=median,
            standard_deviation=float(np.sqrt(variance)),
            variance=variance,
            skewness=skewness,
            kurtosis=kurtosis,
            percentiles=percentiles
        )
