"""Analytics routes: batch analysis and single-component calls."""

from fastapi import APIRouter, HTTPException, Depends

from app.api.deps import get_current_settings, get_engine
from app.core.config import Settings
from app.schemas.analytics import (
    AnalyticsRequest,
    AnalyticsResponse,
    BenchmarkRequest,
    CorrelationRequest,
    CorrelationResponse,
    StatisticsRequest,
)
from app.services.analytics_service import AnalyticsService
from insight_engine.analytics import AnalyticsEngine, Benchmark, DescriptiveStats

router = APIRouter()


@router.post("", response_model=AnalyticsResponse, response_model_exclude_none=True)
def analyze(
    request: AnalyticsRequest,
    engine: AnalyticsEngine = Depends(get_engine),
    settings: Settings = Depends(get_current_settings)
):
    """
    Analyze one or more series.

    `action` selects the returned sections: anomalies, insights, predictions,
    or full (everything plus the executive summary).
    """
    try:
        return AnalyticsService.analyze(engine, request, settings.max_series_per_request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/statistics", response_model=DescriptiveStats)
def statistics(request: StatisticsRequest):
    """Descriptive statistics over raw values."""
    return AnalyticsService.statistics(request)


@router.post("/correlation", response_model=CorrelationResponse)
def correlation(request: CorrelationRequest):
    """Correlate two series."""
    return AnalyticsService.correlate(request)


@router.post("/benchmark", response_model=Benchmark)
def benchmark(request: BenchmarkRequest):
    """Compare a value against a benchmark."""
    return AnalyticsService.benchmark(request)
