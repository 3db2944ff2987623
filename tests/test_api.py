"""Tests for the HTTP API."""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from app.main import app

from conftest import START, alternating


def points(values, start=START):
    return [
        {"timestamp": (start + timedelta(days=i)).isoformat(), "value": v}
        for i, v in enumerate(values)
    ]


def series_payload(series_id, values):
    return {"id": series_id, "name": series_id.title(), "data": points(values)}


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def spike_payload():
    values = alternating(30)
    values[20] = 112.0
    return series_payload("orders", values)


def test_root(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_health(client):
    body = client.get("/health").json()

    assert body["service"] == "Insight Engine API"
    assert "environment" in body
    assert "timestamp" in body


def test_full_analysis(client, spike_payload):
    linear = series_payload("sales", [10.0 + 2.0 * i for i in range(20)])

    response = client.post("/api/analytics", json={"series": [spike_payload, linear]})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["action"] == "full"
    assert body["analyzed_at"].startswith("2024-01-30")
    assert len(body["anomalies"]) == 1
    assert body["insights"][0]["priority"] == "critical"
    assert body["summary"]["highlights"]
    assert set(body["statistics"]) == {"orders", "sales"}


def test_anomalies_action_returns_only_its_sections(client, spike_payload):
    body = client.post(
        "/api/analytics",
        json={"action": "anomalies", "series": [spike_payload]}
    ).json()

    assert body["anomalies"][0]["series_id"] == "orders"
    assert "statistics" in body
    assert "insights" not in body
    assert "summary" not in body


def test_shorthand_single_series(client):
    response = client.post(
        "/api/analytics",
        json={
            "action": "predictions",
            "data": points([10.0 + 2.0 * i for i in range(20)]),
            "series_name": "revenue",
            "config": {"prediction_horizon": 2}
        }
    )

    body = response.json()
    assert response.status_code == 200
    assert body["models"] == {"revenue": "linear"}
    assert [p["step"] for p in body["predictions"]] == [1, 2]


def test_invalid_config_is_unprocessable(client, spike_payload):
    response = client.post(
        "/api/analytics",
        json={"series": [spike_payload], "config": {"anomaly_threshold": -1}}
    )

    assert response.status_code == 422
    assert response.json()["error"] == "invalid_config"
    assert response.json()["success"] is False


def test_request_without_series_is_rejected(client):
    response = client.post("/api/analytics", json={"action": "full"})

    assert response.status_code == 400


def test_statistics_endpoint(client):
    response = client.post("/api/analytics/statistics", json={"values": [1, 2, 3, 4, 5, None]})

    body = response.json()
    assert response.status_code == 200
    assert body["count"] == 5
    assert body["mean"] == pytest.approx(3.0)
    assert body["percentiles"]["p50"] == pytest.approx(3.0)


def test_statistics_without_values(client):
    response = client.post("/api/analytics/statistics", json={"values": []})

    assert response.status_code == 422
    assert response.json()["error"] == "insufficient_data"


def test_correlation_endpoint(client):
    response = client.post(
        "/api/analytics/correlation",
        json={
            "series1": series_payload("a", [1.0, 2.0, 3.0, 4.0, 5.0]),
            "series2": series_payload("b", [2.0, 4.0, 6.0, 8.0, 10.0])
        }
    )

    correlation = response.json()["correlation"]
    assert correlation["coefficient"] == pytest.approx(1.0)
    assert correlation["strength"] == "very_strong"


def test_correlating_a_series_with_itself(client):
    series = series_payload("a", [1.0, 2.0, 3.0])

    response = client.post(
        "/api/analytics/correlation",
        json={"series1": series, "series2": series}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "identical_series"


def test_benchmark_endpoint(client):
    response = client.post(
        "/api/analytics/benchmark",
        json={"metric": "profit", "current_value": 5.0, "benchmark_value": 0.0}
    )

    body = response.json()
    assert response.status_code == 200
    assert body["gap_percent"] is None
    assert body["performance"] == "exceeding"


def test_benchmark_trend_from_previous_value(client):
    body = client.post(
        "/api/analytics/benchmark",
        json={
            "metric": "revenue",
            "current_value": 90.0,
            "benchmark_value": 100.0,
            "previous_value": 80.0
        }
    ).json()

    assert body["performance"] == "below"
    assert body["trend"] == "improving"


def test_mixed_timezone_awareness_is_normalized(client):
    naive = series_payload("a", [10.0 + 2.0 * i for i in range(10)])
    aware = {
        "id": "b",
        "name": "B",
        "data": [
            {"timestamp": (START + timedelta(days=i)).isoformat() + "Z", "value": 5.0 + i}
            for i in range(10)
        ],
    }

    response = client.post("/api/analytics", json={"series": [naive, aware]})

    body = response.json()
    assert response.status_code == 200
    assert body["failures"] == []
    assert body["analyzed_at"] == "2024-01-10T00:00:00"
    assert body["correlations"][0]["sample_size"] == 10
