"""
Analytics Layer

Turns ordered, timestamped series into statistically grounded findings.
Every component is a pure function of its inputs plus configuration.

Modules:
- statistics: Descriptive statistics with small-sample fallbacks
- trend_analysis: Regression trend and autocorrelation seasonality
- anomaly_detection: Z-score, IQR, trend-break and gap detection
- forecasting: Multi-model forecasting with prediction intervals
- correlation: Timestamp-aligned Pearson correlation with lag search
- benchmarking: Comparisons against previous periods and targets
- synthesizer: Rule-based insight generation
- executive_summary: Period-level report
- engine: Full pipeline over a batch of series
- validation: Configuration and data sufficiency checks
"""

from .base_models import (
    AnalysisConfig,
    AnalysisResult,
    Anomaly,
    Benchmark,
    BenchmarkTarget,
    Correlation,
    DataPoint,
    DataSeries,
    DescriptiveStats,
    ExecutiveSummary,
    ForecastResult,
    Insight,
    Period,
    Prediction,
    SeriesFailure,
    Trend,
)
from .exceptions import (
    DegenerateVarianceError,
    IdenticalSeriesError,
    InsightEngineError,
    InsufficientDataError,
    InvalidConfigError,
    InvalidHorizonError,
)
from .config import AnalyticsSettings, get_analytics_settings
from .statistics import StatisticsCalculator
from .trend_analysis import TrendAnalyzer
from .anomaly_detection import AnomalyDetector
from .forecasting import PredictionEngine
from .correlation import CorrelationEngine
from .benchmarking import BenchmarkEngine
from .synthesizer import InsightContext, InsightGenerator
from .executive_summary import ExecutiveSummaryBuilder
from .engine import AnalyticsEngine
from .validation import StatisticalValidator

__all__ = [
    # Models
    'AnalysisConfig',
    'AnalysisResult',
    'Anomaly',
    'Benchmark',
    'BenchmarkTarget',
    'Correlation',
    'DataPoint',
    'DataSeries',
    'DescriptiveStats',
    'ExecutiveSummary',
    'ForecastResult',
    'Insight',
    'Period',
    'Prediction',
    'SeriesFailure',
    'Trend',

    # Errors
    'InsightEngineError',
    'InsufficientDataError',
    'InvalidConfigError',
    'InvalidHorizonError',
    'IdenticalSeriesError',
    'DegenerateVarianceError',

    # Settings
    'AnalyticsSettings',
    'get_analytics_settings',

    # Components
    'StatisticsCalculator',
    'TrendAnalyzer',
    'AnomalyDetector',
    'PredictionEngine',
    'CorrelationEngine',
    'BenchmarkEngine',
    'InsightContext',
    'InsightGenerator',
    'ExecutiveSummaryBuilder',
    'AnalyticsEngine',
    'StatisticalValidator'
]
