"""Anomaly detection using statistical methods."""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple
import numpy as np
import pandas as pd

from .base_models import (
    Anomaly,
    AnomalyMethod,
    AnomalySeverity,
    AnomalyType,
    DataSeries,
    DescriptiveStats,
)
from .config import AnalyticsSettings, get_analytics_settings
from .statistics import StatisticsCalculator
from .trend_analysis import linear_fit
from .validation import StatisticalValidator, modal_interval, to_pandas
from ..utils import make_id

logger = logging.getLogger(__name__)

# Converts an interquartile range to a normal-equivalent standard deviation
IQR_TO_SIGMA = 1.349
# Converts a median absolute deviation to a normal-equivalent standard deviation
MAD_TO_SIGMA = 1.4826

_SUGGESTED_ACTIONS = {
    AnomalyType.SPIKE: "Check the source of this unusual increase",
    AnomalyType.DROP: "Investigate the cause of this drop",
    AnomalyType.OUTLIER: "Verify whether this value is correct or a data entry error",
    AnomalyType.TREND_BREAK: "Review the factors behind this change of direction",
    AnomalyType.MISSING: "Check the data source for this period",
}


class AnomalyDetector:
    """
    Statistical anomaly detection for time series.

    Methods:
    - zscore: global z-score flags, trend breaks against a rolling local
      regression, and timestamp gaps
    - iqr: Tukey fences on the interquartile range, plus timestamp gaps
    - combined: union of both, one anomaly per timestamp
    """

    def __init__(
        self,
        method: AnomalyMethod = AnomalyMethod.ZSCORE,
        threshold: float = 2.5,
        settings: Optional[AnalyticsSettings] = None
    ):
        """
        Initialize anomaly detector.

        Args:
            method: Detection method
            threshold: Z-score threshold in standard deviations
            settings: Tuning constants
        """
        self.method = AnomalyMethod(method)
        self.threshold = threshold
        self.settings = settings or get_analytics_settings()
        self.validator = StatisticalValidator(self.settings)
        self.calculator = StatisticsCalculator(self.validator)

    def detect_anomalies(
        self,
        series: DataSeries,
        threshold: Optional[float] = None,
        method: Optional[AnomalyMethod] = None,
        stats: Optional[DescriptiveStats] = None
    ) -> List[Anomaly]:
        """
        Detect anomalies in a series.

        Args:
            series: Series to analyze
            threshold: Override of the z-score threshold
            method: Override of the detection method
            stats: Precomputed statistics of the series

        Returns:
            Anomalies ordered by timestamp, one per flagged point

        Raises:
            InsufficientDataError: If fewer than 2 usable points exist
        """
        threshold = self.threshold if threshold is None else threshold
        method = self.method if method is None else AnomalyMethod(method)

        data = to_pandas(series)
        self.validator.require_size(len(data), 2, "anomaly detection", series.id)
        stats = stats or self.calculator.calculate(data.values, series_id=series.id)

        if stats.standard_deviation == 0:
            logger.debug("%s: zero-variance series, no anomalies possible", series.id)
            return []

        if method == AnomalyMethod.ZSCORE:
            anomalies = self._detect_zscore(series.id, data, stats, threshold)
        elif method == AnomalyMethod.IQR:
            anomalies = self._detect_iqr(series.id, data, stats, threshold)
        else:
            anomalies = self._merge_anomalies(
                self._detect_zscore(series.id, data, stats, threshold)
                + self._detect_iqr(series.id, data, stats, threshold)
            )

        anomalies.extend(self._detect_missing(series.id, data))
        anomalies.sort(key=lambda a: (a.timestamp, a.type.value))

        logger.debug(
            "%s: %d anomalies (%s, threshold=%.2f)",
            series.id, len(anomalies), method.value, threshold
        )
        return anomalies

    def _detect_zscore(
        self,
        series_id: str,
        data: pd.Series,
        stats: DescriptiveStats,
        threshold: float
    ) -> List[Anomaly]:
        """Detect spikes, drops and outliers by z-score, then trend breaks."""
        values = data.values
        n = len(values)
        z_scores = (values - stats.mean) / stats.standard_deviation
        scores = np.maximum(np.abs(z_scores), np.abs(self._leave_one_out_z(values, stats)))

        anomalies = []
        flagged = set()
        for i, z in enumerate(z_scores):
            if abs(z) <= threshold:
                continue
            flagged.add(i)
            value = float(values[i])
            previous = float(values[i - 1]) if i > 0 else None

            if z > 0 and previous is not None and value > previous:
                anomaly_type = AnomalyType.SPIKE
                text = "Unusually high value"
            elif z < 0 and previous is not None and value < previous:
                anomaly_type = AnomalyType.DROP
                text = "Unusually low value"
            else:
                anomaly_type = AnomalyType.OUTLIER
                text = "Out-of-range value"

            anomalies.append(self._build_anomaly(
                series_id=series_id,
                timestamp=data.index[i],
                value=value,
                expected=stats.mean,
                anomaly_type=anomaly_type,
                score=float(scores[i]),
                threshold=threshold,
                n=n,
                description=(
                    f"{text}: {value:.2f} (expected ~{stats.mean:.2f}, "
                    f"{z:+.1f} standard deviations)"
                )
            ))

        anomalies.extend(self._detect_trend_breaks(series_id, data, stats, threshold, flagged))
        return anomalies

    def _leave_one_out_z(self, values: np.ndarray, stats: DescriptiveStats) -> np.ndarray:
        """
        Z-score of each point against the mean and spread of the other points.

        A single extreme point inflates the global spread; scoring it against
        the remaining points measures how far it really sits from the baseline.
        """
        n = len(values)
        if n <= 2:
            return (values - stats.mean) / stats.standard_deviation

        deviations = values - stats.mean
        rest_var = ((n - 1) * stats.variance - n / (n - 1) * deviations ** 2) / (n - 2)
        rest_std = np.sqrt(np.maximum(rest_var, 0.0))
        shifted = deviations * n / (n - 1)
        with np.errstate(divide="ignore", invalid="ignore"):
            z = np.where(rest_std > 0, shifted / rest_std, np.where(shifted == 0, 0.0, np.inf))
        return z

    def _detect_trend_breaks(
        self,
        series_id: str,
        data: pd.Series,
        stats: DescriptiveStats,
        threshold: float,
        flagged: set
    ) -> List[Anomaly]:
        """
        Detect sustained departures from the locally fitted trend.

        A short regression over the previous clean points is extrapolated one
        and two steps ahead; a break needs both residuals beyond the threshold
        in the same direction, with the point itself not already a z-score
        anomaly. After a break the local window restarts at the break.
        """
        window = self.settings.trend_break_window
        clean = [i for i in range(len(data)) if i not in flagged]
        if len(clean) < window + 2:
            return []

        values = data.values
        scale = self._noise_scale(values[clean], stats)
        limit = threshold * scale
        z_scores = (values - stats.mean) / stats.standard_deviation

        anomalies = []
        regime_start = 0
        j = window
        while j < len(clean) - 1:
            if j - window < regime_start:
                j += 1
                continue

            positions = np.array(clean[j - window:j], dtype=float)
            fit = linear_fit(values[clean[j - window:j]], positions)
            current, following = clean[j], clean[j + 1]
            expected = fit.intercept + fit.slope * current
            residual = values[current] - expected
            residual_next = values[following] - (fit.intercept + fit.slope * following)

            is_break = (
                abs(residual) > limit
                and abs(residual_next) > limit
                and np.sign(residual) == np.sign(residual_next)
                and abs(z_scores[current]) <= threshold
            )
            if not is_break:
                j += 1
                continue

            before = "rising" if fit.slope > 0 else "falling" if fit.slope < 0 else "flat"
            after = "above" if residual > 0 else "below"
            anomalies.append(self._build_anomaly(
                series_id=series_id,
                timestamp=data.index[current],
                value=float(values[current]),
                expected=float(expected),
                anomaly_type=AnomalyType.TREND_BREAK,
                score=abs(residual) / scale,
                threshold=threshold,
                n=len(values),
                description=(
                    f"Trend break: {before} local trend, series moved {after} it "
                    f"({values[current]:.2f} vs ~{expected:.2f})"
                )
            ))
            regime_start = j
            j += window

        return anomalies

    def _noise_scale(self, values: np.ndarray, stats: DescriptiveStats) -> float:
        """Robust point-to-point noise level from first differences."""
        diffs = np.diff(values)
        if len(diffs) == 0:
            return 0.0
        centered = np.abs(diffs - np.median(diffs))
        mad = float(np.median(centered)) or float(np.mean(centered))
        scale = MAD_TO_SIGMA * mad / np.sqrt(2)
        floor = np.sqrt(np.finfo(float).eps) * max(1.0, abs(stats.mean))
        return max(scale, floor)

    def _detect_iqr(
        self,
        series_id: str,
        data: pd.Series,
        stats: DescriptiveStats,
        threshold: float
    ) -> List[Anomaly]:
        """Detect anomalies using Interquartile Range (IQR) method."""
        q1 = stats.percentiles.p25
        q3 = stats.percentiles.p75
        iqr = q3 - q1
        if iqr == 0:
            return []

        lower_bound = q1 - self.settings.iqr_fence_multiplier * iqr
        upper_bound = q3 + self.settings.iqr_fence_multiplier * iqr
        robust_sigma = iqr / IQR_TO_SIGMA

        anomalies = []
        for timestamp, value in data.items():
            if lower_bound <= value <= upper_bound:
                continue
            expected = upper_bound if value > upper_bound else lower_bound
            anomalies.append(self._build_anomaly(
                series_id=series_id,
                timestamp=timestamp,
                value=float(value),
                expected=expected,
                anomaly_type=AnomalyType.OUTLIER,
                score=abs(value - stats.median) / robust_sigma,
                threshold=threshold,
                n=len(data),
                description=(
                    f"Value outside expected range: {value:.2f} "
                    f"(limits: {lower_bound:.2f} - {upper_bound:.2f})"
                )
            ))
        return anomalies

    def _detect_missing(self, series_id: str, data: pd.Series) -> List[Anomaly]:
        """Detect timestamp gaps wider than the modal sampling interval."""
        interval = modal_interval(data.index)
        if interval is None:
            return []

        anomalies = []
        max_gap = interval * self.settings.missing_gap_factor
        index, values = data.index, data.values
        for i in range(1, len(index)):
            gap = index[i] - index[i - 1]
            if gap <= max_gap:
                continue

            missing_count = max(1, int(round(gap / interval)) - 1)
            expected = float((values[i - 1] + values[i]) / 2)
            severity = (
                AnomalySeverity.HIGH
                if missing_count > self.settings.missing_high_severity_count
                else AnomalySeverity.MEDIUM
            )
            timestamp = (index[i - 1] + interval).to_pydatetime()
            anomalies.append(Anomaly(
                id=make_id("anomaly", series_id, timestamp.isoformat(), AnomalyType.MISSING.value),
                series_id=series_id,
                timestamp=timestamp,
                value=0.0,
                expected_value=expected,
                deviation=-100.0 if expected != 0 else 0.0,
                severity=severity,
                type=AnomalyType.MISSING,
                confidence=0.9,
                description=(
                    f"~{missing_count} missing value(s) between "
                    f"{index[i - 1]:%Y-%m-%d} and {index[i]:%Y-%m-%d}"
                ),
                suggested_action=_SUGGESTED_ACTIONS[AnomalyType.MISSING]
            ))
        return anomalies

    def _merge_anomalies(self, anomalies: List[Anomaly]) -> List[Anomaly]:
        """Keep one anomaly per timestamp; agreement between methods adds confidence."""
        merged: Dict[datetime, Tuple[Anomaly, int]] = {}
        for anomaly in anomalies:
            key = anomaly.timestamp
            if key not in merged:
                merged[key] = (anomaly, 1)
                continue
            existing, hits = merged[key]
            best = anomaly if anomaly.confidence > existing.confidence else existing
            merged[key] = (best, hits + 1)

        result = []
        for anomaly, hits in merged.values():
            if hits > 1:
                bonus = self.settings.multi_method_confidence_bonus
                anomaly = anomaly.model_copy(
                    update={"confidence": min(1.0, anomaly.confidence + bonus)}
                )
            result.append(anomaly)
        return result

    def _build_anomaly(
        self,
        series_id: str,
        timestamp: pd.Timestamp,
        value: float,
        expected: float,
        anomaly_type: AnomalyType,
        score: float,
        threshold: float,
        n: int,
        description: str
    ) -> Anomaly:
        timestamp = pd.Timestamp(timestamp).to_pydatetime()
        return Anomaly(
            id=make_id("anomaly", series_id, timestamp.isoformat(), anomaly_type.value),
            series_id=series_id,
            timestamp=timestamp,
            value=value,
            expected_value=float(expected),
            deviation=_percent_deviation(value, expected),
            severity=self._calculate_severity(score, threshold),
            type=anomaly_type,
            confidence=self._calculate_confidence(score, threshold, n),
            description=description,
            suggested_action=_SUGGESTED_ACTIONS[anomaly_type]
        )

    def _calculate_severity(self, score: float, threshold: float) -> AnomalySeverity:
        """Calculate severity from a score in standard deviations."""
        if score < self.settings.severity_medium_multiplier * threshold:
            return AnomalySeverity.LOW
        elif score < self.settings.severity_high_multiplier * threshold:
            return AnomalySeverity.MEDIUM
        elif score < self.settings.severity_critical_multiplier * threshold:
            return AnomalySeverity.HIGH
        else:
            return AnomalySeverity.CRITICAL

    def _calculate_confidence(self, score: float, threshold: float, n: int) -> float:
        """Grows with the score and with the sample size, capped at 1."""
        score_part = 1.0 - float(np.exp(-score / threshold)) if np.isfinite(score) else 1.0
        confidence = 0.5 * score_part + 0.5 * self.validator.sample_confidence(n)
        return float(min(1.0, max(0.0, confidence)))


def _percent_deviation(value: float, expected: float) -> float:
    """Percent difference from expected; 0 when expected is zero."""
    if expected == 0:
        return 0.0
    return float((value - expected) / abs(expected) * 100)
