"""Main FastAPI application for the weather lookup service."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from weather_lookup.api.endpoints import router as weather_router
from weather_lookup.config import DEBUG, FAVORITES_DB_PATH, HOST, PORT
from weather_lookup.favorites.database import connect
from weather_lookup.favorites.repository import SqliteFavoriteRepository
from weather_lookup.favorites.store import FavoriteStore
from weather_lookup.logging_config import configure_logging
from weather_lookup.weather.geocoding import TimezoneResolver
from weather_lookup.weather.service import WeatherService

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the favorites database and upstream clients for the app's lifetime."""
    conn = connect(FAVORITES_DB_PATH)
    store = FavoriteStore(SqliteFavoriteRepository(conn))
    # Loading the timezone polygons is slow; do it before serving requests
    service = WeatherService(favorites=store, timezone_resolver=TimezoneResolver())
    app.state.favorite_store = store
    app.state.weather_service = service

    logger.info("Starting Weather Lookup Service")
    try:
        yield
    finally:
        logger.info("Shutting down Weather Lookup Service")
        await service.aclose()
        conn.close()


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title="Weather Lookup Service",
        description="Place search, hourly forecasts and favorite locations using Nominatim and Open-Meteo",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(weather_router)

    @app.get("/api", tags=["root"])
    async def api_info() -> dict:
        """API information endpoint.

        Returns:
            Basic service information
        """
        return {
            "message": "Weather Lookup Service",
            "docs": "/docs",
            "redoc": "/redoc",
            "search": "/weather/search",
            "forecast": "/weather/forecast",
            "favorites": "/weather/favorites",
            "health": "/weather/health"
        }

    return app


# Create app instance for uvicorn
app = create_app()


def main() -> None:
    """Main entry point for the application."""
    logger.info(f"Starting server on {HOST}:{PORT}")
    uvicorn.run(
        "weather_lookup.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
        log_level="info" if not DEBUG else "debug"
    )


if __name__ == "__main__":
    main()
