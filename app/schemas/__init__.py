"""Pydantic schemas for request/response validation."""

from .analytics import (
    AnalyticsAction,
    AnalyticsRequest,
    AnalyticsResponse,
    BenchmarkRequest,
    CorrelationRequest,
    CorrelationResponse,
    StatisticsRequest,
)

__all__ = [
    "AnalyticsAction",
    "AnalyticsRequest",
    "AnalyticsResponse",
    "BenchmarkRequest",
    "CorrelationRequest",
    "CorrelationResponse",
    "StatisticsRequest",
]
