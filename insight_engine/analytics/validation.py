"""Input validation and series preparation for the analytics engine."""

import logging
from typing import Any, Dict, Optional, Sequence, Union
import numpy as np
import pandas as pd
from pydantic import ValidationError

from .base_models import AnalysisConfig, DataSeries
from .config import AnalyticsSettings, get_analytics_settings
from .exceptions import InsufficientDataError, InvalidConfigError

logger = logging.getLogger(__name__)


class StatisticalValidator:
    """Validates configuration and data sufficiency before analysis."""

    def __init__(self, settings: Optional[AnalyticsSettings] = None):
        """
        Initialize validator.

        Args:
            settings: Tuning constants (defaults to the cached env settings)
        """
        self.settings = settings or get_analytics_settings()

    def validate_config(
        self,
        config: Union[AnalysisConfig, Dict[str, Any], None]
    ) -> AnalysisConfig:
        """
        Coerce and validate an AnalysisConfig.

        Args:
            config: AnalysisConfig instance, plain dict, or None for defaults

        Returns:
            Validated AnalysisConfig

        Raises:
            InvalidConfigError: If any field is missing its type or valid range
        """
        if config is None:
            return AnalysisConfig()
        if isinstance(config, AnalysisConfig):
            # Re-run range checks: instances built with model_construct skip them
            return AnalysisConfig(**config.model_dump())
        try:
            return AnalysisConfig(**config)
        except ValidationError as e:
            raise InvalidConfigError(
                f"Invalid analysis configuration: {e.error_count()} error(s)",
                details={"errors": [err["msg"] for err in e.errors()]}
            ) from e

    def require_size(
        self,
        n: int,
        min_required: int,
        purpose: str,
        series_id: Optional[str] = None
    ) -> None:
        """Raise InsufficientDataError when fewer than min_required points exist."""
        if n < min_required:
            raise InsufficientDataError(
                f"Insufficient data for {purpose}: {n} obs (need {min_required})",
                required=min_required,
                actual=n,
                series_id=series_id
            )

    def sample_confidence(self, n: int) -> float:
        """Sample-size confidence factor in [0, 1), increasing with n."""
        if n <= 0:
            return 0.0
        return n / (n + self.settings.confidence_sample_reference)


def to_pandas(series: DataSeries) -> pd.Series:
    """
    Convert a DataSeries to a float pandas Series on a DatetimeIndex.

    Missing and non-finite values are dropped; duplicate timestamps are kept.
    """
    timestamps = [p.timestamp for p in series.data if not p.is_missing]
    values = [float(p.value) for p in series.data if not p.is_missing]
    return pd.Series(
        values,
        index=pd.DatetimeIndex(timestamps),
        name=series.id,
        dtype=float
    )


def finite_values(values: Sequence[Any]) -> np.ndarray:
    """Float array with missing and non-finite entries removed."""
    arr = np.array(
        [np.nan if v is None else v for v in values],
        dtype=float
    )
    return arr[np.isfinite(arr)]


def modal_interval(index: pd.DatetimeIndex) -> Optional[pd.Timedelta]:
    """
    Most frequent spacing between consecutive distinct timestamps.

    Ties resolve to the smallest interval. Returns None when fewer than two
    distinct timestamps exist.
    """
    if len(index) < 2:
        return None
    deltas = pd.Series(index[1:] - index[:-1])
    deltas = deltas[deltas > pd.Timedelta(0)]
    if deltas.empty:
        return None
    return deltas.mode().min()


def interval_days(interval: Optional[pd.Timedelta]) -> float:
    """Length of an interval in days, defaulting to one day."""
    if interval is None:
        return 1.0
    return interval / pd.Timedelta(days=1)
