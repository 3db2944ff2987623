"""Regression-based trend and seasonality characterization."""

import logging
from typing import NamedTuple, Optional, Sequence
import numpy as np
from statsmodels.tsa.stattools import acf

from .base_models import DataSeries, Seasonality, Trend, TrendDirection
from .config import AnalyticsSettings, get_analytics_settings
from .validation import finite_values

logger = logging.getLogger(__name__)


class LinearFit(NamedTuple):
    """Ordinary least-squares fit of value on index."""
    slope: float
    intercept: float
    r_squared: float
    fitted: np.ndarray
    residuals: np.ndarray

    @property
    def residual_std(self) -> float:
        """Residual standard error (n - 2 degrees of freedom)."""
        n = len(self.residuals)
        if n <= 2:
            return 0.0
        return float(np.sqrt(np.sum(self.residuals ** 2) / (n - 2)))


def linear_fit(y: np.ndarray, x: Optional[np.ndarray] = None) -> LinearFit:
    """Fit y = intercept + slope * x (x defaults to 0..n-1)."""
    y = np.asarray(y, dtype=float)
    if x is None:
        x = np.arange(len(y), dtype=float)
    if len(y) < 2 or np.ptp(x) == 0:
        mean = float(np.mean(y)) if len(y) else 0.0
        fitted = np.full(len(y), mean)
        return LinearFit(0.0, mean, 0.0, fitted, y - fitted)

    slope, intercept = np.polyfit(x, y, 1)
    fitted = intercept + slope * x
    residuals = y - fitted
    return LinearFit(
        float(slope),
        float(intercept),
        r_squared(y, fitted),
        fitted,
        residuals
    )


def r_squared(y: np.ndarray, fitted: np.ndarray) -> float:
    """Coefficient of determination, 0 for a constant target."""
    ss_total = float(np.sum((y - np.mean(y)) ** 2))
    if ss_total == 0:
        return 0.0
    ss_residual = float(np.sum((y - fitted) ** 2))
    return float(np.clip(1.0 - ss_residual / ss_total, 0.0, 1.0))


def relative_changes(y: np.ndarray) -> np.ndarray:
    """Consecutive relative differences, skipping zero denominators."""
    prev, curr = y[:-1], y[1:]
    mask = prev != 0
    return (curr[mask] - prev[mask]) / np.abs(prev[mask])


class TrendAnalyzer:
    """
    Characterizes the trend of an ordered series.

    OLS on the point index gives slope and fit quality; the residual
    dispersion decides between a directional and a volatile trend, and the
    autocorrelation of the detrended residuals flags seasonality.
    """

    def __init__(self, settings: Optional[AnalyticsSettings] = None):
        self.settings = settings or get_analytics_settings()

    def analyze_series(self, series: DataSeries) -> Trend:
        return self.analyze([p.value for p in series.data])

    def analyze(self, values: Sequence[float]) -> Trend:
        """
        Analyze the trend of values ordered by index.

        Args:
            values: Ordered observations; missing entries are skipped

        Returns:
            Trend
        """
        y = finite_values(values)
        n = len(y)
        changes = relative_changes(y) if n >= 2 else np.array([])
        change_rate = float(np.mean(changes)) if len(changes) else 0.0

        if n < 3:
            return Trend(
                direction=TrendDirection.STABLE,
                slope=0.0,
                r_squared=0.0,
                change_rate=change_rate,
                acceleration=0.0,
                seasonality=None
            )

        fit = linear_fit(y)
        acceleration = linear_fit(changes).slope if len(changes) >= 2 else 0.0
        direction = self._classify(y, fit)
        seasonality = self.detect_seasonality(fit.residuals, scale=float(np.max(np.abs(y))))

        logger.debug(
            "Trend: %s slope=%.4f r2=%.3f seasonality=%s",
            direction.value, fit.slope, fit.r_squared,
            seasonality.period if seasonality.detected else None
        )

        return Trend(
            direction=direction,
            slope=fit.slope,
            r_squared=fit.r_squared,
            change_rate=change_rate,
            acceleration=float(acceleration),
            seasonality=seasonality
        )

    def detect_seasonality(self, residuals: np.ndarray, scale: float = 1.0) -> Seasonality:
        """
        Detect periodicity in detrended residuals.

        Each candidate period needs at least two full cycles. The candidate
        with the highest autocorrelation wins; it is detected when that
        autocorrelation exceeds the configured strength. Residuals within
        rounding error of zero (relative to `scale`) carry no seasonality.
        """
        n = len(residuals)
        candidates = [p for p in self.settings.seasonal_candidate_periods if 2 <= p and 2 * p <= n]
        if not candidates or np.ptp(residuals) <= 1e-9 * max(1.0, scale):
            return Seasonality(detected=False, period=0, amplitude=0.0, strength=0.0)

        autocorr = acf(residuals, nlags=max(candidates), fft=False)
        best = max(candidates, key=lambda p: autocorr[p])
        strength = float(autocorr[best])
        detected = strength > self.settings.seasonality_min_strength

        amplitude = 0.0
        if detected:
            component = seasonal_component(residuals, best)
            amplitude = float((component.max() - component.min()) / 2)

        return Seasonality(
            detected=detected,
            period=best,
            amplitude=amplitude,
            strength=strength
        )

    def _classify(self, y: np.ndarray, fit: LinearFit) -> TrendDirection:
        if np.ptp(y) == 0:
            return TrendDirection.STABLE

        # Series centred near zero are measured against their spread instead
        scale = max(abs(float(np.mean(y))), float(np.std(y, ddof=1)))
        dispersion = fit.residual_std / scale

        if dispersion > self.settings.volatility_ratio:
            return TrendDirection.VOLATILE
        if abs(fit.slope) < self.settings.stable_slope_ratio * scale:
            return TrendDirection.STABLE
        return TrendDirection.INCREASING if fit.slope > 0 else TrendDirection.DECREASING


def seasonal_component(residuals: np.ndarray, period: int) -> np.ndarray:
    """Centered mean residual per phase of the period."""
    phases = np.arange(len(residuals)) % period
    means = np.array([residuals[phases == k].mean() for k in range(period)])
    return means - means.mean()
