"""Pairwise correlation discovery between series."""

import logging
from typing import Optional, Tuple
import numpy as np
import pandas as pd
from scipy import stats

from .base_models import (
    CausalityHint,
    Correlation,
    CorrelationDirection,
    CorrelationStrength,
    DataSeries,
)
from .config import AnalyticsSettings, get_analytics_settings
from .exceptions import DegenerateVarianceError, IdenticalSeriesError
from .validation import StatisticalValidator, interval_days, modal_interval, to_pandas
from ..utils import make_id

logger = logging.getLogger(__name__)

_STRONG = (CorrelationStrength.STRONG, CorrelationStrength.VERY_STRONG)


def classify_strength(
    coefficient: float,
    settings: Optional[AnalyticsSettings] = None
) -> CorrelationStrength:
    """Strength bucket as a pure function of |coefficient|."""
    settings = settings or get_analytics_settings()
    magnitude = abs(coefficient)
    if magnitude >= settings.correlation_very_strong:
        return CorrelationStrength.VERY_STRONG
    elif magnitude >= settings.correlation_strong:
        return CorrelationStrength.STRONG
    elif magnitude >= settings.correlation_moderate:
        return CorrelationStrength.MODERATE
    else:
        return CorrelationStrength.WEAK


class CorrelationEngine:
    """
    Pearson correlation between two timestamp-aligned series.

    With a lag window, the offset with the largest |coefficient| is reported.
    The causality hint is a heuristic label for triage: correlation, lagged
    or not, is never evidence of causation.
    """

    def __init__(
        self,
        max_lag: int = 0,
        min_strength: float = 0.0,
        settings: Optional[AnalyticsSettings] = None
    ):
        """
        Initialize correlation engine.

        Args:
            max_lag: Lag search window in sampling steps (0 disables the search)
            min_strength: Minimum |coefficient| for a correlation to be reported
            settings: Tuning constants
        """
        self.max_lag = max_lag
        self.min_strength = min_strength
        self.settings = settings or get_analytics_settings()
        self.validator = StatisticalValidator(self.settings)

    def correlate(
        self,
        series_a: DataSeries,
        series_b: DataSeries,
        min_strength: Optional[float] = None,
        max_lag: Optional[int] = None
    ) -> Optional[Correlation]:
        """
        Correlate two series.

        Args:
            series_a: First series
            series_b: Second series
            min_strength: Override of the reporting floor on |coefficient|
            max_lag: Override of the lag search window

        Returns:
            Correlation in canonical (sorted id) order, or None when it is
            weaker than min_strength or either series has zero variance

        Raises:
            IdenticalSeriesError: If both series share an id
            InsufficientDataError: If fewer than 3 aligned pairs exist
        """
        min_strength = self.min_strength if min_strength is None else min_strength
        max_lag = self.max_lag if max_lag is None else max_lag

        if series_a.id == series_b.id:
            raise IdenticalSeriesError(
                f"Cannot correlate series {series_a.id} with itself",
                series_id=series_a.id
            )
        first, second = sorted((series_a, series_b), key=lambda s: s.id)

        pairs = self.align(first, second)
        pair_id = f"{first.id}x{second.id}"
        self.validator.require_size(len(pairs), 3, "correlation", pair_id)
        x, y = pairs["x"].values, pairs["y"].values

        try:
            coefficient, p_value = self._pearson(x, y)
        except DegenerateVarianceError as e:
            logger.debug("%s: %s", pair_id, e.message)
            return None

        lag_steps = 0
        if max_lag > 0:
            lag_steps, coefficient, p_value = self._best_lag(x, y, max_lag, coefficient, p_value)

        if abs(coefficient) < min_strength:
            return None

        lag_days = None
        if max_lag > 0:
            step_days = interval_days(modal_interval(pd.DatetimeIndex(pairs["timestamp"])))
            lag_days = float(lag_steps * step_days)

        strength = classify_strength(coefficient, self.settings)
        direction = (
            CorrelationDirection.POSITIVE if coefficient >= 0 else CorrelationDirection.NEGATIVE
        )
        sample_size = len(x) - abs(lag_steps)

        return Correlation(
            id=make_id("correlation", first.id, second.id),
            series1=first.id,
            series2=second.id,
            coefficient=coefficient,
            strength=strength,
            direction=direction,
            lag_days=lag_days,
            sample_size=sample_size,
            p_value=p_value,
            interpretation=self._create_interpretation(
                first, second, coefficient, strength, lag_days
            ),
            causality_hint=self._causality_hint(strength, lag_steps)
        )

    def align(self, first: DataSeries, second: DataSeries) -> pd.DataFrame:
        """Pair values by timestamp; points without a counterpart are dropped."""
        left = to_pandas(first).rename_axis("timestamp").reset_index(name="x")
        right = to_pandas(second).rename_axis("timestamp").reset_index(name="y")
        pairs = pd.merge(left, right, on="timestamp", how="inner")
        return pairs.sort_values("timestamp", kind="stable").reset_index(drop=True)

    def _pearson(self, x: np.ndarray, y: np.ndarray) -> Tuple[float, float]:
        if np.ptp(x) == 0 or np.ptp(y) == 0:
            raise DegenerateVarianceError("Zero-variance input: correlation undefined")
        coefficient, p_value = stats.pearsonr(x, y)
        return (
            float(np.clip(coefficient, -1.0, 1.0)),
            float(np.clip(p_value, 0.0, 1.0))
        )

    def _best_lag(
        self,
        x: np.ndarray,
        y: np.ndarray,
        max_lag: int,
        coefficient: float,
        p_value: float
    ) -> Tuple[int, float, float]:
        """
        Search offsets in [-max_lag, max_lag].

        Positive lag k pairs x[t] with y[t + k] (series1 leads). Smaller
        offsets win ties.
        """
        best = (0, coefficient, p_value)
        for k in range(1, max_lag + 1):
            for lag in (k, -k):
                if lag > 0:
                    xs, ys = x[:-lag], y[lag:]
                else:
                    xs, ys = x[-lag:], y[:lag]
                if len(xs) < 3:
                    continue
                try:
                    r, p = self._pearson(xs, ys)
                except DegenerateVarianceError:
                    continue
                if abs(r) > abs(best[1]):
                    best = (lag, r, p)
        return best

    def _causality_hint(self, strength: CorrelationStrength, lag_steps: int) -> CausalityHint:
        if lag_steps != 0 and strength in _STRONG:
            return CausalityHint.LIKELY
        if strength != CorrelationStrength.WEAK:
            return CausalityHint.POSSIBLE
        return CausalityHint.UNLIKELY

    def _create_interpretation(
        self,
        first: DataSeries,
        second: DataSeries,
        coefficient: float,
        strength: CorrelationStrength,
        lag_days: Optional[float]
    ) -> str:
        """Create human-readable interpretation."""
        movement = "move together" if coefficient >= 0 else "move in opposite directions"
        text = (
            f"{first.name} and {second.name} {movement} "
            f"({strength.value.replace('_', ' ')} correlation, r={coefficient:.2f})."
        )
        if lag_days:
            leader, follower = (first, second) if lag_days > 0 else (second, first)
            text += f" {leader.name} tends to lead {follower.name} by ~{abs(lag_days):.0f} day(s)."
        text += " Correlation alone does not establish causation."
        return text
