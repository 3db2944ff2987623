"""Main FastAPI application."""

import logging
import time
import psutil
import os
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.api.routes import health, analytics
from insight_engine.analytics import IdenticalSeriesError, InsightEngineError

# Get settings
settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log startup and shutdown."""
    logger.info("%s v%s started", settings.app_name, settings.app_version)
    logger.info("API docs available at /docs")
    logger.info("Performance logging enabled: Green <100ms | Yellow 100-500ms | Red >500ms")
    yield
    logger.info("%s shutting down", settings.app_name)


# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description=settings.app_description,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Performance logging middleware
@app.middleware("http")
async def log_performance(request: Request, call_next):
    """Log request execution time and memory usage."""
    process = psutil.Process(os.getpid())

    start_time = time.time()
    start_memory = process.memory_info().rss / 1024 / 1024  # MB

    response = await call_next(request)

    end_memory = process.memory_info().rss / 1024 / 1024  # MB
    duration_ms = (time.time() - start_time) * 1000
    memory_used = end_memory - start_memory

    # Color code based on duration
    if duration_ms < 100:
        time_color = "\033[92m"  # Green
    elif duration_ms < 500:
        time_color = "\033[93m"  # Yellow
    else:
        time_color = "\033[91m"  # Red
    reset = "\033[0m"

    mem_sign = "+" if memory_used >= 0 else ""
    logger.info(
        f"{time_color}[PERF]{reset} "
        f"{request.method:6s} {request.url.path:40s} | "
        f"{response.status_code} | "
        f"{time_color}{duration_ms:7.2f}ms{reset} | "
        f"{mem_sign}{memory_used:.2f}MB | "
        f"RSS: {end_memory:.1f}MB"
    )

    return response


@app.exception_handler(InsightEngineError)
async def engine_error_handler(request: Request, exc: InsightEngineError):
    """Map engine errors to client errors."""
    status_code = 400 if isinstance(exc, IdenticalSeriesError) else 422
    return JSONResponse(status_code=status_code, content={"success": False, **exc.to_dict()})


# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(analytics.router, prefix="/api/analytics", tags=["Analytics"])
