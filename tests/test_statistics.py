"""Tests for descriptive statistics."""

import math

import pytest

from insight_engine.analytics import InsufficientDataError, StatisticsCalculator


@pytest.fixture
def calculator():
    return StatisticsCalculator()


def test_one_to_five(calculator):
    stats = calculator.calculate([1, 2, 3, 4, 5])

    assert stats.count == 5
    assert stats.mean == pytest.approx(3.0)
    assert stats.median == pytest.approx(3.0)
    assert stats.standard_deviation == pytest.approx(1.5811, abs=1e-4)
    assert stats.variance == pytest.approx(2.5)
    assert stats.percentiles.p50 == pytest.approx(3.0)
    assert stats.min == 1 and stats.max == 5


def test_percentiles_interpolate_linearly(calculator):
    p = calculator.calculate([1, 2, 3, 4, 5]).percentiles

    assert p.p25 == pytest.approx(2.0)
    assert p.p75 == pytest.approx(4.0)
    assert p.p90 == pytest.approx(4.6)
    assert p.p99 == pytest.approx(4.96)


def test_adjusted_moments(calculator):
    stats = calculator.calculate([1, 2, 3, 4, 5])

    assert stats.skewness == pytest.approx(0.0, abs=1e-12)
    assert stats.kurtosis == pytest.approx(-1.2)


def test_skewed_sample_has_positive_skewness(calculator):
    assert calculator.calculate([1, 1, 1, 2, 10]).skewness > 0


def test_single_value_is_degenerate(calculator):
    stats = calculator.calculate([42.0])

    assert stats.count == 1
    assert stats.standard_deviation == 0.0
    assert stats.variance == 0.0
    assert stats.skewness == 0.0
    assert stats.kurtosis == 0.0
    assert stats.percentiles.p99 == 42.0


def test_constant_sample_has_zero_spread(calculator):
    stats = calculator.calculate([7.0] * 10)

    assert stats.standard_deviation == 0.0
    assert stats.skewness == 0.0
    assert stats.kurtosis == 0.0
    assert stats.coefficient_of_variation == 0.0


def test_small_samples_skip_higher_moments(calculator):
    stats = calculator.calculate([1.0, 3.0])

    assert stats.standard_deviation == pytest.approx(math.sqrt(2))
    assert stats.skewness == 0.0
    assert stats.kurtosis == 0.0


def test_missing_values_are_ignored(calculator):
    stats = calculator.calculate([1.0, None, float("nan"), 3.0, float("inf")])

    assert stats.count == 2
    assert stats.mean == pytest.approx(2.0)


def test_empty_sample_raises(calculator):
    with pytest.raises(InsufficientDataError) as exc_info:
        calculator.calculate([], series_id="empty")

    assert exc_info.value.series_id == "empty"
    assert exc_info.value.required == 1
    assert exc_info.value.actual == 0


def test_calculate_series_skips_missing_points(calculator, make_series):
    series = make_series([1.0, None, 2.0, 3.0])

    assert calculator.calculate_series(series).count == 3
