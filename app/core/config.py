"""Application configuration management."""

import os
from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    """Application settings."""

    model_config = ConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = os.getenv("ENV", "development")  # "development" or "production"

    # App Info
    app_name: str = "Insight Engine API"
    app_version: str = "1.0.0"
    app_description: str = "Anomalies, trends, forecasts, correlations and insights for business time series"

    # Server
    host: str = "0.0.0.0"
    port: int = int(os.getenv("PORT", 8000))
    debug: bool = True
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.env.lower() == "production"

    # Analysis
    analysis_workers: Optional[int] = None  # Thread pool size per request (None = executor default)
    max_series_per_request: int = int(os.getenv("MAX_SERIES_PER_REQUEST", 50))

    # CORS
    allowed_origins: list = [
        "http://localhost:3000",  # Local development
    ]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
