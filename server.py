"""
Insight Engine API Server - Main entry point for the FastAPI application.
"""

from app.core.config import get_settings


def main():
    """Run server."""
    settings = get_settings()

    print(f"🚀 Starting {settings.app_name} v{settings.app_version}...")
    print()
    print(f"🌐 Starting FastAPI server on http://{settings.host}:{settings.port}")
    print(f"📚 API documentation available at http://{settings.host}:{settings.port}/docs")
    print(f"📖 ReDoc documentation at http://{settings.host}:{settings.port}/redoc")
    print()
    print("Press Ctrl+C to stop the server")
    print()

    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug and not settings.is_production,
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    main()
