"""Tests for anomaly detection."""

from datetime import timedelta

import pytest

from insight_engine.analytics import AnomalyDetector, InsufficientDataError
from insight_engine.analytics.base_models import AnomalyMethod, AnomalySeverity, AnomalyType

from conftest import START, alternating


@pytest.fixture
def detector():
    return AnomalyDetector()


def test_single_extreme_point_is_the_only_anomaly(detector, spike_series):
    anomalies = detector.detect_anomalies(spike_series, threshold=2.5)

    assert len(anomalies) == 1
    anomaly = anomalies[0]
    assert anomaly.timestamp == START + timedelta(days=20)
    assert anomaly.severity == AnomalySeverity.CRITICAL
    assert anomaly.type in (AnomalyType.SPIKE, AnomalyType.OUTLIER)
    assert anomaly.value == 112.0
    assert anomaly.deviation > 0
    assert 0 < anomaly.confidence <= 1
    assert anomaly.suggested_action


def test_rise_above_previous_is_a_spike(detector, spike_series):
    assert detector.detect_anomalies(spike_series)[0].type == AnomalyType.SPIKE


def test_extreme_low_point_is_a_drop(detector, make_series):
    values = alternating(30)
    values[15] = 88.0

    anomalies = detector.detect_anomalies(make_series(values))

    assert len(anomalies) == 1
    assert anomalies[0].type == AnomalyType.DROP
    assert anomalies[0].deviation < 0


def test_constant_series_has_no_anomalies(detector, make_series):
    assert detector.detect_anomalies(make_series([5.0] * 20)) == []


@pytest.mark.parametrize("method", list(AnomalyMethod))
def test_constant_series_has_no_anomalies_with_any_method(make_series, method):
    timestamps = [START + timedelta(days=d) for d in (0, 1, 2, 3, 10, 11)]
    series = make_series([5.0] * 6, timestamps=timestamps)

    assert AnomalyDetector(method=method).detect_anomalies(series) == []


def test_single_point_is_insufficient(detector, make_series):
    with pytest.raises(InsufficientDataError):
        detector.detect_anomalies(make_series([5.0]))


def test_quiet_series_has_no_anomalies(detector, make_series):
    assert detector.detect_anomalies(make_series(alternating(40))) == []


def test_higher_threshold_flags_less(detector, make_series):
    values = alternating(30)
    values[10] = 104.0

    assert len(detector.detect_anomalies(make_series(values), threshold=2.5)) == 1
    assert detector.detect_anomalies(make_series(values), threshold=10.0) == []


def test_level_shift_is_a_trend_break(detector, make_series):
    values = alternating(20, base=100.0, amplitude=0.2) + alternating(20, base=110.0, amplitude=0.2)

    anomalies = detector.detect_anomalies(make_series(values))

    assert len(anomalies) == 1
    anomaly = anomalies[0]
    assert anomaly.type == AnomalyType.TREND_BREAK
    assert anomaly.timestamp == START + timedelta(days=20)
    assert anomaly.value > anomaly.expected_value


def test_timestamp_gap_is_reported_as_missing(detector, make_series):
    timestamps = [START + timedelta(days=i) for i in range(10)]
    timestamps += [START + timedelta(days=15 + i) for i in range(10)]

    anomalies = detector.detect_anomalies(make_series(alternating(20), timestamps=timestamps))

    assert len(anomalies) == 1
    missing = anomalies[0]
    assert missing.type == AnomalyType.MISSING
    assert missing.timestamp == START + timedelta(days=10)
    assert missing.severity == AnomalySeverity.HIGH
    assert missing.confidence == pytest.approx(0.9)
    assert missing.value == 0.0
    assert missing.expected_value == pytest.approx(100.0)


def test_short_gap_is_medium_severity(detector, make_series):
    timestamps = [START + timedelta(days=i) for i in range(10)]
    timestamps += [START + timedelta(days=12 + i) for i in range(10)]

    anomalies = detector.detect_anomalies(make_series(alternating(20), timestamps=timestamps))

    assert [a.severity for a in anomalies] == [AnomalySeverity.MEDIUM]


def test_iqr_method_flags_values_beyond_the_fences(make_series):
    values = [10.0 + i for i in range(19)] + [100.0]

    anomalies = AnomalyDetector(method=AnomalyMethod.IQR).detect_anomalies(make_series(values))

    assert len(anomalies) == 1
    assert anomalies[0].type == AnomalyType.OUTLIER
    assert anomalies[0].value == 100.0
    assert anomalies[0].expected_value == pytest.approx(24.25 + 1.5 * 9.5)


def test_combined_method_merges_agreeing_detections(make_series):
    series = make_series([10.0 + i for i in range(19)] + [100.0])

    by_zscore = AnomalyDetector(method=AnomalyMethod.ZSCORE).detect_anomalies(series)
    by_iqr = AnomalyDetector(method=AnomalyMethod.IQR).detect_anomalies(series)
    combined = AnomalyDetector(method=AnomalyMethod.COMBINED).detect_anomalies(series)

    assert len(by_zscore) == 1 and len(by_iqr) == 1
    assert len(combined) == 1
    expected = min(1.0, max(by_zscore[0].confidence, by_iqr[0].confidence) + 0.1)
    assert combined[0].confidence == pytest.approx(expected)


def test_anomalies_are_ordered_by_timestamp(detector, make_series):
    values = alternating(40)
    values[30] = 115.0
    values[8] = 85.0

    anomalies = detector.detect_anomalies(make_series(values))

    timestamps = [a.timestamp for a in anomalies]
    assert timestamps == sorted(timestamps)
    assert len(anomalies) == 2


def test_ids_are_deterministic(detector, spike_series):
    first = detector.detect_anomalies(spike_series)
    second = detector.detect_anomalies(spike_series)

    assert [a.id for a in first] == [a.id for a in second]
