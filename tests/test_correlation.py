"""Tests for pairwise correlation."""

import pytest

from insight_engine.analytics import (
    CorrelationEngine,
    IdenticalSeriesError,
    InsufficientDataError,
)
from insight_engine.analytics.base_models import (
    CausalityHint,
    CorrelationDirection,
    CorrelationStrength,
)
from insight_engine.analytics.correlation import classify_strength

from conftest import START, build_series

DIGITS = [3.0, 1.0, 4.0, 1.0, 5.0, 9.0, 2.0, 6.0, 5.0, 3.0,
          5.0, 8.0, 9.0, 7.0, 9.0, 3.0, 2.0, 3.0, 8.0, 4.0]


@pytest.fixture
def engine():
    return CorrelationEngine()


def test_perfect_positive_correlation(engine):
    a = build_series([1.0, 2.0, 3.0, 4.0, 5.0], series_id="a")
    b = build_series([2.0, 4.0, 6.0, 8.0, 10.0], series_id="b")

    correlation = engine.correlate(a, b)

    assert correlation.coefficient == pytest.approx(1.0)
    assert correlation.strength == CorrelationStrength.VERY_STRONG
    assert correlation.direction == CorrelationDirection.POSITIVE
    assert correlation.sample_size == 5
    assert correlation.lag_days is None
    assert "does not establish causation" in correlation.interpretation


def test_perfect_negative_correlation(engine):
    a = build_series([1.0, 2.0, 3.0, 4.0, 5.0], series_id="a")
    b = build_series([10.0, 8.0, 6.0, 4.0, 2.0], series_id="b")

    correlation = engine.correlate(a, b)

    assert correlation.coefficient == pytest.approx(-1.0)
    assert correlation.direction == CorrelationDirection.NEGATIVE
    assert correlation.causality_hint == CausalityHint.POSSIBLE


def test_argument_order_does_not_matter(engine):
    a = build_series(DIGITS, series_id="a")
    b = build_series(list(reversed(DIGITS)), series_id="b")

    assert engine.correlate(a, b) == engine.correlate(b, a)
    assert engine.correlate(b, a).series1 == "a"


def test_series_cannot_be_correlated_with_itself(engine, linear_series):
    with pytest.raises(IdenticalSeriesError):
        engine.correlate(linear_series, linear_series)


def test_pairs_are_aligned_on_timestamps(engine):
    a = build_series([1.0, 2.0, 3.0, 4.0, 5.0], series_id="a")
    b = build_series([1.0, 2.0, 3.0, 4.0, 5.0], series_id="b",
                     start=START.replace(day=4))

    with pytest.raises(InsufficientDataError):
        engine.correlate(a, b)


def test_zero_variance_yields_no_correlation(engine):
    a = build_series([5.0] * 10, series_id="a")
    b = build_series([float(i) for i in range(10)], series_id="b")

    assert engine.correlate(a, b) is None


def test_weak_correlation_is_filtered_by_min_strength():
    a = build_series([float(i) for i in range(1, 11)], series_id="a")
    b = build_series([5.0 if i % 2 == 0 else -5.0 for i in range(10)], series_id="b")

    assert CorrelationEngine(min_strength=0.3).correlate(a, b) is None

    correlation = CorrelationEngine().correlate(a, b)
    assert correlation.coefficient == pytest.approx(-0.174, abs=1e-3)
    assert correlation.strength == CorrelationStrength.WEAK
    assert correlation.causality_hint == CausalityHint.UNLIKELY


@pytest.mark.parametrize("coefficient,expected", [
    (0.1, CorrelationStrength.WEAK),
    (-0.3, CorrelationStrength.MODERATE),
    (0.5, CorrelationStrength.STRONG),
    (-0.69, CorrelationStrength.STRONG),
    (0.7, CorrelationStrength.VERY_STRONG),
    (-1.0, CorrelationStrength.VERY_STRONG),
])
def test_strength_bands(coefficient, expected):
    assert classify_strength(coefficient) == expected


def test_lag_search_finds_the_leading_series():
    a = build_series(DIGITS, series_id="a")
    b = build_series([7.0, 2.0] + DIGITS[:-2], series_id="b")

    correlation = CorrelationEngine(max_lag=3).correlate(a, b)

    assert correlation.coefficient == pytest.approx(1.0)
    assert correlation.lag_days == pytest.approx(2.0)
    assert correlation.sample_size == 18
    assert correlation.causality_hint == CausalityHint.LIKELY
    assert "A tends to lead B by ~2 day(s)" in correlation.interpretation
