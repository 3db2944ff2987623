"""Shared fixtures for the insight engine tests."""

import math
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

import pytest

from insight_engine.analytics import DataPoint, DataSeries

START = datetime(2024, 1, 1)


def build_series(
    values: Sequence[Optional[float]],
    series_id: str = "revenue",
    name: Optional[str] = None,
    start: datetime = START,
    step: timedelta = timedelta(days=1),
    timestamps: Optional[List[datetime]] = None
) -> DataSeries:
    """Series with one point per value, evenly spaced unless timestamps are given."""
    if timestamps is None:
        timestamps = [start + step * i for i in range(len(values))]
    return DataSeries(
        id=series_id,
        name=name or series_id.title(),
        data=[DataPoint(timestamp=t, value=v) for t, v in zip(timestamps, values)]
    )


def alternating(n: int, base: float = 100.0, amplitude: float = 1.0) -> List[float]:
    """base +/- amplitude, starting above."""
    return [base + (amplitude if i % 2 == 0 else -amplitude) for i in range(n)]


def weekly_wave(n: int, base: float = 100.0, amplitude: float = 10.0, slope: float = 0.0) -> List[float]:
    return [base + slope * t + amplitude * math.sin(2 * math.pi * t / 7) for t in range(n)]


@pytest.fixture
def make_series():
    return build_series


@pytest.fixture
def spike_values():
    """30 quiet points with one point ~12 standard deviations above the rest."""
    values = alternating(30)
    values[20] = 112.0
    return values


@pytest.fixture
def spike_series(spike_values):
    return build_series(spike_values, series_id="orders", name="Orders")


@pytest.fixture
def linear_series():
    return build_series([10.0 + 2.0 * i for i in range(20)], series_id="sales", name="Sales")
