"""Tests for the CSV command line entry point."""

import pandas as pd
import pytest

from main import load_series, run_analysis


@pytest.fixture
def frame():
    return pd.DataFrame({
        "date": pd.date_range("2024-01-01", periods=20, freq="D").astype(str),
        "revenue": [10.0 + 2.0 * i for i in range(20)],
        "region": ["north"] * 20,
    })


def test_load_series_one_per_numeric_column(frame):
    frame["costs"] = [5.0] * 19 + [None]

    series = load_series(frame)

    assert [s.id for s in series] == ["revenue", "costs"]
    assert len(series[0].data) == 20
    assert series[1].data[-1].value is None


def test_series_name_applies_to_a_single_column(frame):
    (series,) = load_series(frame, "sales")

    assert series.id == "sales"
    assert series.data[0].value == 10.0


def test_rows_are_sorted_by_date(frame):
    series = load_series(frame.iloc[::-1])[0]

    timestamps = [p.timestamp for p in series.data]
    assert timestamps == sorted(timestamps)


def test_missing_date_column(frame):
    with pytest.raises(ValueError, match="date"):
        load_series(frame.drop(columns=["date"]))


def test_missing_value_columns(frame):
    with pytest.raises(ValueError, match="numeric"):
        load_series(frame[["date", "region"]])


def test_run_analysis_on_csv(tmp_path, frame):
    path = tmp_path / "revenue.csv"
    frame.to_csv(path, index=False)

    result = run_analysis(str(path))

    assert result is not None
    assert "revenue" in result.statistics
    assert result.models["revenue"].value == "linear"


def test_run_analysis_rejects_other_formats(tmp_path):
    path = tmp_path / "revenue.xlsx"
    path.write_text("not a csv")

    assert run_analysis(str(path)) is None
    assert run_analysis(str(tmp_path / "missing.csv")) is None
