"""Error taxonomy for the analytics engine."""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCategory(str, Enum):
    """Closed set of engine error categories."""
    INSUFFICIENT_DATA = "insufficient_data"
    INVALID_CONFIG = "invalid_config"
    INVALID_HORIZON = "invalid_horizon"
    IDENTICAL_SERIES = "identical_series"
    DEGENERATE_VARIANCE = "degenerate_variance"


class InsightEngineError(Exception):
    """Base class for all analytics engine errors."""

    category: ErrorCategory = ErrorCategory.INSUFFICIENT_DATA

    def __init__(
        self,
        message: str,
        series_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.series_id = series_id
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.category.value,
            "message": self.message,
            "series_id": self.series_id,
            "details": self.details,
        }


class InsufficientDataError(InsightEngineError):
    """Series too short for the requested computation."""

    category = ErrorCategory.INSUFFICIENT_DATA

    def __init__(self, message: str, required: int, actual: int, **kwargs):
        details = {"required": required, "actual": actual}
        details.update(kwargs.pop("details", None) or {})
        super().__init__(message, details=details, **kwargs)
        self.required = required
        self.actual = actual


class InvalidConfigError(InsightEngineError):
    """AnalysisConfig value out of its valid range."""

    category = ErrorCategory.INVALID_CONFIG


class InvalidHorizonError(InsightEngineError):
    """Prediction horizon must be a positive number of steps."""

    category = ErrorCategory.INVALID_HORIZON


class IdenticalSeriesError(InsightEngineError):
    """A series cannot be correlated with itself."""

    category = ErrorCategory.IDENTICAL_SERIES


class DegenerateVarianceError(InsightEngineError):
    """
    Zero-variance input.

    Never surfaced to callers: the correlation engine catches it and
    reports no correlation.
    """

    category = ErrorCategory.DEGENERATE_VARIANCE
