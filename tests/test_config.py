"""Tests for configuration handling."""

import pytest

from app.core.config import Settings
from insight_engine.analytics import (
    AnalysisConfig,
    AnalyticsSettings,
    InvalidConfigError,
    StatisticalValidator,
)
from insight_engine.analytics.base_models import AnomalyMethod, BenchmarkPeriod


def test_analysis_config_defaults():
    config = AnalysisConfig()

    assert config.anomaly_threshold == 2.5
    assert config.prediction_horizon == 7
    assert config.correlation_min_strength == 0.3
    assert config.insight_min_confidence == 0.5
    assert config.benchmark_period == BenchmarkPeriod.MONTH
    assert config.anomaly_method == AnomalyMethod.ZSCORE
    assert config.growth_is_good is True


@pytest.mark.parametrize("field,value", [
    ("anomaly_threshold", 0),
    ("anomaly_threshold", float("nan")),
    ("prediction_horizon", -1),
    ("correlation_min_strength", 1.5),
    ("insight_min_confidence", -0.1),
    ("correlation_max_lag", -2),
])
def test_out_of_range_values_are_rejected(field, value):
    with pytest.raises(InvalidConfigError) as exc_info:
        AnalysisConfig(**{field: value})

    assert exc_info.value.to_dict()["error"] == "invalid_config"
    assert field in exc_info.value.message


def test_all_problems_are_reported_together():
    with pytest.raises(InvalidConfigError) as exc_info:
        AnalysisConfig(anomaly_threshold=-1, prediction_horizon=0)

    assert len(exc_info.value.details["problems"]) == 2


def test_validate_config_wraps_type_errors():
    validator = StatisticalValidator()

    with pytest.raises(InvalidConfigError) as exc_info:
        validator.validate_config({"anomaly_method": "magic"})

    assert exc_info.value.details["errors"]
    assert validator.validate_config(None) == AnalysisConfig()
    assert validator.validate_config({"anomaly_threshold": 3}).anomaly_threshold == 3.0


def test_validate_config_rechecks_unvalidated_instances():
    unchecked = AnalysisConfig.model_construct(prediction_horizon=0)

    with pytest.raises(InvalidConfigError):
        StatisticalValidator().validate_config(unchecked)


def test_analytics_settings_read_the_environment(monkeypatch):
    monkeypatch.setenv("INSIGHT_VOLATILITY_RATIO", "0.5")
    monkeypatch.setenv("INSIGHT_SUMMARY_TOP_INSIGHTS", "3")

    settings = AnalyticsSettings()

    assert settings.volatility_ratio == 0.5
    assert settings.summary_top_insights == 3
    assert settings.benchmark_meeting_band == 5.0


def test_app_settings_environment(monkeypatch):
    monkeypatch.setenv("ENV", "production")

    settings = Settings()

    assert settings.is_production
    assert settings.app_name == "Insight Engine API"
