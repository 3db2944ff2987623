"""Tunable thresholds for the analytics engine."""

from functools import lru_cache
from typing import Dict, List
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()


class AnalyticsSettings(BaseSettings):
    """
    Deployment-level tuning constants.

    Per-call knobs live on AnalysisConfig; these bucket boundaries and
    model parameters apply to every analysis. Override with INSIGHT_* env vars.
    """

    model_config = SettingsConfigDict(
        env_prefix="INSIGHT_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Anomaly severity as multiples of the anomaly threshold
    severity_medium_multiplier: float = 1.5
    severity_high_multiplier: float = 2.0
    severity_critical_multiplier: float = 3.0

    # Anomaly confidence: n / (n + reference) sample-size factor
    confidence_sample_reference: int = 10

    trend_break_window: int = 7
    missing_gap_factor: float = 1.5
    missing_high_severity_count: int = 3
    iqr_fence_multiplier: float = 1.5
    multi_method_confidence_bonus: float = 0.1

    # Trend classification
    stable_slope_ratio: float = 0.01
    volatility_ratio: float = 0.3
    seasonal_candidate_periods: List[int] = Field(default_factory=lambda: [7, 30])
    seasonality_min_strength: float = 0.5

    # Forecasting
    strong_seasonality_strength: float = 0.7
    seasonal_rmse_tolerance: float = 0.10
    interval_confidence_level: float = 0.95
    prediction_confidence_decay: float = 0.9
    prediction_confidence_floor: float = 0.05
    volatile_confidence_penalty: float = 0.7

    # Correlation strength bands on |coefficient|
    correlation_moderate: float = 0.3
    correlation_strong: float = 0.5
    correlation_very_strong: float = 0.7

    # Benchmarks (percent bands around the reference value)
    benchmark_meeting_band: float = 5.0
    benchmark_critical_band: float = 20.0
    benchmark_trend_tolerance: float = 1.0

    # Insights
    insight_fit_floor: float = 0.5
    insight_ttl_days: Dict[str, float] = Field(
        default_factory=lambda: {
            "anomaly": 1.0,
            "prediction": 3.0,
            "recommendation": 7.0,
            "comparison": 14.0,
            "trend": 14.0
        }
    )

    # Executive summary
    summary_top_insights: int = 5
    summary_status_change_pct: float = 10.0


@lru_cache()
def get_analytics_settings() -> AnalyticsSettings:
    """Get cached analytics settings instance."""
    return AnalyticsSettings()
