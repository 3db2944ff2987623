"""Time series forecasting with model selection and confidence bounds."""

import logging
from typing import Dict, List, NamedTuple, Optional
import numpy as np
import pandas as pd
from scipy import stats
from statsmodels.tsa.seasonal import seasonal_decompose

from .base_models import (
    DataSeries,
    ForecastResult,
    Prediction,
    PredictionFactor,
    PredictionModel,
    Trend,
    TrendDirection,
)
from .config import AnalyticsSettings, get_analytics_settings
from .exceptions import InvalidConfigError, InvalidHorizonError
from .trend_analysis import TrendAnalyzer, linear_fit, r_squared
from .validation import StatisticalValidator, modal_interval, to_pandas
from ..utils import make_id

logger = logging.getLogger(__name__)

# Simpler models win ties on in-sample error
MODEL_ORDER = [
    PredictionModel.LINEAR,
    PredictionModel.EXPONENTIAL,
    PredictionModel.POLYNOMIAL,
    PredictionModel.SEASONAL,
]


class ModelFit(NamedTuple):
    """One candidate model fitted in-sample and extrapolated over the horizon."""
    model: PredictionModel
    fitted: np.ndarray
    forecast: np.ndarray
    trend_part: np.ndarray
    seasonal_part: np.ndarray
    error: float


class PredictionEngine:
    """
    Multi-model forecaster.

    Fits linear, quadratic and exponential models (plus a seasonal
    decomposition when the trend reports seasonality) and keeps the one with
    the lowest in-sample residual standard error. Strong seasonality is
    preferred over a marginally better non-seasonal fit.
    """

    def __init__(
        self,
        confidence_level: Optional[float] = None,
        settings: Optional[AnalyticsSettings] = None,
        trend_analyzer: Optional[TrendAnalyzer] = None
    ):
        """
        Initialize forecaster.

        Args:
            confidence_level: Coverage of the prediction intervals (0-1)
            settings: Tuning constants
            trend_analyzer: Analyzer used when no Trend is supplied
        """
        self.settings = settings or get_analytics_settings()
        self.confidence_level = confidence_level or self.settings.interval_confidence_level
        self.validator = StatisticalValidator(self.settings)
        self.trend_analyzer = trend_analyzer or TrendAnalyzer(self.settings)

    def predict(
        self,
        series: DataSeries,
        horizon: int,
        model: Optional[PredictionModel] = None,
        trend: Optional[Trend] = None
    ) -> ForecastResult:
        """
        Forecast the next `horizon` steps of a series.

        Args:
            series: Historical data
            horizon: Number of future steps
            model: Force a model instead of automatic selection
            trend: Precomputed trend of the series

        Returns:
            ForecastResult with one Prediction per step

        Raises:
            InvalidHorizonError: If horizon <= 0
            InsufficientDataError: If fewer than 3 usable points exist
            InvalidConfigError: If the forced model cannot be fitted to this series
        """
        if horizon <= 0:
            raise InvalidHorizonError(
                f"Prediction horizon must be positive (got {horizon})",
                series_id=series.id
            )

        data = to_pandas(series)
        self.validator.require_size(len(data), 3, "forecasting", series.id)
        y = data.values
        n = len(y)
        trend = trend or self.trend_analyzer.analyze(y)

        fits = self._fit_candidates(y, horizon, trend)
        if model is not None:
            model = PredictionModel(model)
            if model not in fits:
                raise InvalidConfigError(
                    f"Model '{model.value}' cannot be fitted to series {series.id}",
                    series_id=series.id
                )
            chosen = fits[model]
        else:
            chosen = self._choose_model(fits, trend)

        logger.debug(
            "%s: model=%s errors=%s",
            series.id, chosen.model.value,
            {m.value: round(f.error, 4) for m, f in fits.items()}
        )

        step = modal_interval(data.index) or pd.Timedelta(days=1)
        last_timestamp = data.index[-1]
        z = float(stats.norm.ppf(0.5 + self.confidence_level / 2))
        sigma = chosen.error if np.isfinite(chosen.error) else 0.0
        base_confidence = self._fit_confidence(y, chosen, trend)
        factors = self._identify_factors(chosen, y)

        predictions = []
        for h in range(1, horizon + 1):
            predicted = float(chosen.forecast[h - 1])
            half_width = z * sigma * np.sqrt(1 + h / n)
            predictions.append(Prediction(
                id=make_id("prediction", series.id, h, chosen.model.value),
                series_id=series.id,
                step=h,
                target_date=(last_timestamp + step * h).to_pydatetime(),
                predicted_value=predicted,
                lower_bound=float(predicted - half_width),
                upper_bound=float(predicted + half_width),
                confidence=self._step_confidence(base_confidence, h),
                model=chosen.model,
                factors=factors
            ))

        return ForecastResult(
            series_id=series.id,
            model=chosen.model,
            predictions=predictions,
            fit_errors={m.value: f.error for m, f in fits.items() if np.isfinite(f.error)}
        )

    def _fit_candidates(
        self,
        y: np.ndarray,
        horizon: int,
        trend: Trend
    ) -> Dict[PredictionModel, ModelFit]:
        n = len(y)
        x = np.arange(n, dtype=float)
        future = np.arange(n, n + horizon, dtype=float)
        zeros_in, zeros_out = np.zeros(n), np.zeros(horizon)
        fits = {}

        line = linear_fit(y)
        fits[PredictionModel.LINEAR] = ModelFit(
            PredictionModel.LINEAR,
            line.fitted,
            line.intercept + line.slope * future,
            line.fitted,
            zeros_in,
            _residual_error(y, line.fitted, 2)
        )

        if n > 3:
            coefficients = np.polyfit(x, y, 2)
            fitted = np.polyval(coefficients, x)
            fits[PredictionModel.POLYNOMIAL] = ModelFit(
                PredictionModel.POLYNOMIAL,
                fitted,
                np.polyval(coefficients, future),
                fitted,
                zeros_in,
                _residual_error(y, fitted, 3)
            )

        if np.all(y > 0):
            # y = a * e^(b*x)  ->  ln(y) = ln(a) + b*x
            log_fit = linear_fit(np.log(y))
            with np.errstate(over="ignore"):
                fitted = np.exp(log_fit.fitted)
                forecast = np.exp(log_fit.intercept + log_fit.slope * future)
            if np.all(np.isfinite(forecast)):
                fits[PredictionModel.EXPONENTIAL] = ModelFit(
                    PredictionModel.EXPONENTIAL,
                    fitted,
                    forecast,
                    fitted,
                    zeros_in,
                    _residual_error(y, fitted, 2)
                )

        seasonality = trend.seasonality
        if seasonality is not None and seasonality.detected and n >= 2 * seasonality.period:
            fits[PredictionModel.SEASONAL] = self._fit_seasonal(y, future, seasonality.period)

        return fits

    def _fit_seasonal(self, y: np.ndarray, future: np.ndarray, period: int) -> ModelFit:
        """Additive decomposition: linear trend on the trend component plus the seasonal figure."""
        decomposition = seasonal_decompose(
            y,
            model="additive",
            period=period,
            extrapolate_trend="freq"
        )
        seasonal = np.asarray(decomposition.seasonal, dtype=float)
        line = linear_fit(np.asarray(decomposition.trend, dtype=float))
        fitted = line.fitted + seasonal
        future_seasonal = np.array([seasonal[int(t) % period] for t in future])
        return ModelFit(
            PredictionModel.SEASONAL,
            fitted,
            line.intercept + line.slope * future + future_seasonal,
            line.fitted,
            seasonal,
            _residual_error(y, fitted, 2 + period - 1)
        )

    def _choose_model(self, fits: Dict[PredictionModel, ModelFit], trend: Trend) -> ModelFit:
        """Lowest error wins, simpler models first on ties; strong seasonality is preferred."""
        ranked = [fits[m] for m in MODEL_ORDER if m in fits]
        best_error = min(f.error for f in ranked)
        tolerance = 1e-9 * max(1.0, abs(best_error)) if np.isfinite(best_error) else 0.0
        best = next(f for f in ranked if f.error <= best_error + tolerance)

        seasonal = fits.get(PredictionModel.SEASONAL)
        seasonality = trend.seasonality
        if (
            seasonal is not None
            and seasonality is not None
            and seasonality.strength >= self.settings.strong_seasonality_strength
            and seasonal.error <= best.error * (1 + self.settings.seasonal_rmse_tolerance)
        ):
            return seasonal
        return best

    def _fit_confidence(self, y: np.ndarray, fit: ModelFit, trend: Trend) -> float:
        """In-sample fit quality, penalized for volatile series."""
        if np.ptp(y) == 0:
            base = 1.0
        else:
            base = r_squared(y, fit.fitted)
        if trend.direction == TrendDirection.VOLATILE:
            base *= self.settings.volatile_confidence_penalty
        return base

    def _step_confidence(self, base: float, step: int) -> float:
        """Decays geometrically with the forecast distance."""
        decayed = base * self.settings.prediction_confidence_decay ** step
        return float(min(1.0, max(self.settings.prediction_confidence_floor, decayed)))

    def _identify_factors(self, fit: ModelFit, y: np.ndarray) -> List[PredictionFactor]:
        """Share of variance carried by trend, seasonality and noise (sums to 1)."""
        trend_var = float(np.var(fit.trend_part))
        seasonal_var = float(np.var(fit.seasonal_part))
        noise_var = float(np.var(y - fit.fitted))
        total = trend_var + seasonal_var + noise_var
        if total == 0:
            shares = (1.0, 0.0, 0.0)
        else:
            shares = (trend_var / total, seasonal_var / total, noise_var / total)
        return [
            PredictionFactor(name=name, impact=share)
            for name, share in zip(("trend", "seasonality", "noise"), shares)
        ]


def _residual_error(y: np.ndarray, fitted: np.ndarray, n_params: int) -> float:
    """Residual standard error with n - n_params degrees of freedom."""
    dof = len(y) - n_params
    if dof <= 0:
        return float("inf")
    return float(np.sqrt(np.sum((y - fitted) ** 2) / dof))
