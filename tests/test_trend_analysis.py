"""Tests for trend and seasonality characterization."""

import pytest

from insight_engine.analytics import TrendAnalyzer
from insight_engine.analytics.base_models import TrendDirection
from insight_engine.analytics.trend_analysis import linear_fit, relative_changes

from conftest import alternating, weekly_wave


@pytest.fixture
def analyzer():
    return TrendAnalyzer()


def test_linear_fit_recovers_line():
    fit = linear_fit([1.0, 3.0, 5.0, 7.0])

    assert fit.slope == pytest.approx(2.0)
    assert fit.intercept == pytest.approx(1.0)
    assert fit.r_squared == pytest.approx(1.0)


def test_relative_changes_skip_zero_base():
    import numpy as np

    changes = relative_changes(np.array([0.0, 5.0, 10.0, 5.0]))

    assert changes.tolist() == pytest.approx([1.0, -0.5])


def test_increasing_series(analyzer):
    trend = analyzer.analyze([10.0 + 2.0 * i for i in range(20)])

    assert trend.direction == TrendDirection.INCREASING
    assert trend.slope == pytest.approx(2.0)
    assert trend.r_squared == pytest.approx(1.0)
    assert trend.seasonality is not None
    assert not trend.seasonality.detected


def test_decreasing_series(analyzer):
    trend = analyzer.analyze([100.0 - 3.0 * i for i in range(15)])

    assert trend.direction == TrendDirection.DECREASING
    assert trend.slope == pytest.approx(-3.0)


def test_flat_noisy_series_is_stable(analyzer):
    trend = analyzer.analyze(alternating(20, amplitude=0.5))

    assert trend.direction == TrendDirection.STABLE


def test_constant_series_is_stable(analyzer):
    trend = analyzer.analyze([5.0] * 10)

    assert trend.direction == TrendDirection.STABLE
    assert trend.slope == 0.0
    assert trend.change_rate == 0.0


def test_large_swings_are_volatile(analyzer):
    trend = analyzer.analyze([10.0, 100.0] * 10)

    assert trend.direction == TrendDirection.VOLATILE


def test_clean_ramp_through_zero_is_increasing(analyzer):
    values = [-10.0 + i + (0.05 if i % 2 == 0 else -0.05) for i in range(21)]

    trend = analyzer.analyze(values)

    assert trend.direction == TrendDirection.INCREASING
    assert trend.slope == pytest.approx(1.0, abs=0.01)


def test_noise_around_zero_is_volatile(analyzer):
    trend = analyzer.analyze(alternating(20, base=0.0, amplitude=5.0))

    assert trend.direction == TrendDirection.VOLATILE


def test_short_series_cannot_be_regressed(analyzer):
    trend = analyzer.analyze([1.0, 2.0])

    assert trend.direction == TrendDirection.STABLE
    assert trend.r_squared == 0.0
    assert trend.seasonality is None
    assert trend.change_rate == pytest.approx(1.0)


def test_change_rate_and_acceleration(analyzer):
    trend = analyzer.analyze([100.0, 110.0, 121.0, 133.1])

    assert trend.change_rate == pytest.approx(0.1)
    assert trend.acceleration == pytest.approx(0.0, abs=1e-9)


def test_weekly_seasonality_detected(analyzer):
    trend = analyzer.analyze(weekly_wave(56))

    assert trend.seasonality.detected
    assert trend.seasonality.period == 7
    assert trend.seasonality.strength > 0.5
    assert 8.0 < trend.seasonality.amplitude < 11.0


def test_seasonality_needs_two_full_cycles(analyzer):
    trend = analyzer.analyze(weekly_wave(13))

    assert not trend.seasonality.detected


def test_analyze_series_skips_missing(analyzer, make_series):
    series = make_series([1.0, None, 2.0, 3.0, 4.0])

    assert analyzer.analyze_series(series).slope == pytest.approx(1.0)
