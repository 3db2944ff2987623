"""Service layer for business logic."""

from .analytics_service import AnalyticsService

__all__ = ["AnalyticsService"]
