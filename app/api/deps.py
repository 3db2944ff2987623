"""API dependencies."""

from functools import lru_cache
from fastapi import Depends

from app.core.config import Settings, get_settings
from insight_engine.analytics import AnalyticsEngine


def get_current_settings() -> Settings:
    """Get current application settings."""
    return get_settings()


@lru_cache()
def _engine(max_workers) -> AnalyticsEngine:
    return AnalyticsEngine(max_workers=max_workers)


def get_engine(settings: Settings = Depends(get_current_settings)) -> AnalyticsEngine:
    """
    Get the shared analytics engine.

    The engine holds no per-request state, so one instance serves every request.
    """
    return _engine(settings.analysis_workers)
