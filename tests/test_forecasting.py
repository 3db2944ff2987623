"""Tests for the multi-model forecaster."""

from datetime import timedelta

import pytest

from insight_engine.analytics import (
    InsufficientDataError,
    InvalidConfigError,
    InvalidHorizonError,
    PredictionEngine,
)
from insight_engine.analytics.base_models import PredictionModel

from conftest import START, alternating, weekly_wave


@pytest.fixture
def engine():
    return PredictionEngine()


def test_linear_series_extrapolates_the_line(engine, linear_series):
    result = engine.predict(linear_series, horizon=5)

    assert result.model == PredictionModel.LINEAR
    assert len(result.predictions) == 5
    for step, prediction in enumerate(result.predictions, start=1):
        assert prediction.step == step
        assert prediction.predicted_value == pytest.approx(10.0 + 2.0 * (19 + step))
        assert prediction.target_date == START + timedelta(days=19 + step)


def test_bounds_contain_prediction_and_confidence_decays(engine, make_series):
    values = [50.0 + 0.5 * i + v for i, v in enumerate(alternating(30, base=0.0, amplitude=3.0))]

    predictions = engine.predict(make_series(values), horizon=10).predictions

    for prediction in predictions:
        assert prediction.lower_bound <= prediction.predicted_value <= prediction.upper_bound
        assert 0 <= prediction.confidence <= 1
    confidences = [p.confidence for p in predictions]
    assert all(a >= b for a, b in zip(confidences, confidences[1:]))
    widths = [p.upper_bound - p.lower_bound for p in predictions]
    assert all(a < b for a, b in zip(widths, widths[1:]))


def test_exponential_growth_selects_exponential(engine, make_series):
    values = [100.0 * 1.1 ** i for i in range(20)]

    result = engine.predict(make_series(values), horizon=3)

    assert result.model == PredictionModel.EXPONENTIAL
    assert result.predictions[0].predicted_value == pytest.approx(100.0 * 1.1 ** 20, rel=1e-6)


def test_strong_seasonality_selects_seasonal(engine, make_series):
    series = make_series(weekly_wave(56, slope=0.5))

    result = engine.predict(series, horizon=7)

    assert result.model == PredictionModel.SEASONAL
    assert "seasonal" in result.fit_errors


def test_constant_series_forecasts_the_constant(engine, make_series):
    predictions = engine.predict(make_series([5.0] * 10), horizon=3).predictions

    assert [p.predicted_value for p in predictions] == pytest.approx([5.0, 5.0, 5.0])
    assert predictions[0].confidence == pytest.approx(0.9)


def test_factors_sum_to_one(engine, make_series):
    values = [50.0 + 0.5 * i + v for i, v in enumerate(alternating(30, base=0.0, amplitude=3.0))]

    factors = engine.predict(make_series(values), horizon=2).predictions[0].factors

    assert [f.name for f in factors] == ["trend", "seasonality", "noise"]
    assert sum(f.impact for f in factors) == pytest.approx(1.0)


@pytest.mark.parametrize("horizon", [0, -3])
def test_non_positive_horizon_is_rejected(engine, linear_series, horizon):
    with pytest.raises(InvalidHorizonError):
        engine.predict(linear_series, horizon=horizon)


def test_horizon_is_checked_before_data_size(engine, make_series):
    with pytest.raises(InvalidHorizonError):
        engine.predict(make_series([1.0]), horizon=0)


def test_two_points_are_insufficient(engine, make_series):
    with pytest.raises(InsufficientDataError):
        engine.predict(make_series([1.0, 2.0]), horizon=1)


def test_forced_model_is_used(engine, linear_series):
    result = engine.predict(linear_series, horizon=2, model=PredictionModel.POLYNOMIAL)

    assert result.model == PredictionModel.POLYNOMIAL
    assert all(p.model == PredictionModel.POLYNOMIAL for p in result.predictions)


def test_forced_model_that_cannot_fit_is_rejected(engine, make_series):
    with pytest.raises(InvalidConfigError):
        engine.predict(make_series([1.0, 2.0, 3.0]), horizon=1, model=PredictionModel.POLYNOMIAL)
    with pytest.raises(InvalidConfigError):
        engine.predict(make_series([-1.0, 2.0, 3.0, 4.0]), horizon=1, model=PredictionModel.EXPONENTIAL)


def test_target_dates_follow_the_sampling_interval(engine, make_series):
    series = make_series([1.0, 2.0, 3.0, 4.0, 5.0], step=timedelta(days=7))

    predictions = engine.predict(series, horizon=2).predictions

    assert predictions[1].target_date == START + timedelta(days=7 * 6)
