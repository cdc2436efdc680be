"""API endpoints for the weather lookup service."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from fastapi.concurrency import run_in_threadpool

from weather_lookup.config import FORECAST_WINDOW_HOURS
from weather_lookup.errors import (
    DecodeError, InvalidQuery, NetworkError, NotFound, WeatherLookupError
)
from weather_lookup.favorites.store import FavoriteStore
from weather_lookup.weather.models import Location, LocationWeather
from weather_lookup.weather.service import WeatherService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/weather", tags=["weather"])

COMMITTED_HEADER = "X-Favorites-Committed"


def get_weather_service(request: Request) -> WeatherService:
    """Dependency to get the application's weather service."""
    return request.app.state.weather_service


def get_favorite_store(request: Request) -> FavoriteStore:
    """Dependency to get the application's favorite store."""
    return request.app.state.favorite_store


def to_http_exception(error: WeatherLookupError) -> HTTPException:
    """Map a pipeline error to the HTTP error returned to clients."""
    if isinstance(error, InvalidQuery):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, NotFound):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, DecodeError):
        return HTTPException(status_code=502, detail="Upstream service returned unexpected data")
    if isinstance(error, NetworkError):
        return HTTPException(status_code=502, detail="Upstream service temporarily unavailable")
    return HTTPException(status_code=500, detail="Internal server error")


@router.get("/search", response_model=List[Location])
async def search_locations(
    q: str = Query(..., description="Free-text place name"),
    limit: int = Query(5, ge=1, le=50, description="Maximum number of candidates"),
    service: WeatherService = Depends(get_weather_service)
) -> List[Location]:
    """Search for locations matching a place name.

    Returns:
        Matching locations, best first; empty when nothing matches
    """
    try:
        locations = await service.search_all(q, limit=limit)
    except WeatherLookupError as e:
        logger.error(f"Error searching for '{q}': {e}")
        raise to_http_exception(e)

    return locations


@router.get("/forecast", response_model=LocationWeather)
async def get_forecast(
    q: Optional[str] = Query(None, description="Place name (alternative to lat/lon, not both)"),
    lat: Optional[float] = Query(None, ge=-90, le=90, description="Latitude in decimal degrees (use with lon)"),
    lon: Optional[float] = Query(None, ge=-180, le=180, description="Longitude in decimal degrees (use with lat)"),
    hours: int = Query(FORECAST_WINDOW_HOURS, ge=0, le=48, description="Number of forecast hours"),
    timezone_option: str = Query(
        "utc",
        pattern="^(utc|local)$",
        description="Timezone option: 'utc' (default) or 'local' (auto-detected)"
    ),
    service: WeatherService = Depends(get_weather_service)
) -> LocationWeather:
    """Get current conditions and the hourly forecast for a place.

    Raises:
        HTTPException: If parameters are invalid, nothing matches or an
            upstream request fails
    """
    validate_location_parameters(q, lat, lon)

    try:
        if q is not None:
            location = await service.search(q)
            if location is None:
                raise HTTPException(status_code=404, detail=f"No location found for '{q}'")
            weather = await service.get_location_weather(location, hours=hours, timezone_option=timezone_option)
        else:
            weather = await service.get_weather_at(lat, lon, hours=hours, timezone_option=timezone_option)
    except WeatherLookupError as e:
        logger.error(f"Error getting forecast: {e}")
        raise to_http_exception(e)

    logger.info(f"Returning {len(weather.forecast)} forecast hours for {weather.location.display_name}")
    return weather


def validate_location_parameters(
    q: Optional[str],
    lat: Optional[float],
    lon: Optional[float]
) -> None:
    """
    Validate that exactly one way of naming a location was used.

    Raises:
        HTTPException: If validation fails
    """
    has_coordinates = lat is not None or lon is not None
    has_query = q is not None

    if has_coordinates and has_query:
        raise HTTPException(
            status_code=400,
            detail="Cannot provide both coordinates and a place name. Use either lat/lon OR q."
        )

    if not has_coordinates and not has_query:
        raise HTTPException(status_code=400, detail="Provide either a place name (q) or lat/lon.")

    if has_coordinates and (lat is None or lon is None):
        raise HTTPException(
            status_code=400,
            detail="Both latitude and longitude must be provided when using coordinates."
        )


@router.get("/favorites", response_model=List[Location])
async def list_favorites(store: FavoriteStore = Depends(get_favorite_store)) -> List[Location]:
    """List favorites with their last known conditions."""
    return await run_in_threadpool(store.list)


@router.post("/favorites", response_model=Location, status_code=status.HTTP_201_CREATED)
async def add_favorite(
    location: Location,
    response: Response,
    store: FavoriteStore = Depends(get_favorite_store)
) -> Location:
    """Add a location to the favorites.

    Adding a location that is already a favorite returns the stored record.
    """
    committed = await run_in_threadpool(store.insert, location)
    response.headers[COMMITTED_HEADER] = str(committed).lower()
    return await run_in_threadpool(store.get, location.identity)


@router.delete("/favorites/{identity}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_favorite(
    identity: str,
    store: FavoriteStore = Depends(get_favorite_store)
) -> Response:
    """Remove a favorite; removing an unknown identity is a no-op."""
    committed = await run_in_threadpool(store.discard, identity)
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers={COMMITTED_HEADER: str(committed).lower()})


@router.post("/favorites/{identity}/refresh", response_model=LocationWeather)
async def refresh_favorite(
    identity: str,
    hours: int = Query(FORECAST_WINDOW_HOURS, ge=0, le=48, description="Number of forecast hours"),
    timezone_option: str = Query("utc", pattern="^(utc|local)$"),
    service: WeatherService = Depends(get_weather_service)
) -> LocationWeather:
    """Re-fetch the forecast for a favorite and refresh its cached conditions."""
    try:
        return await service.refresh_favorite(identity, hours=hours, timezone_option=timezone_option)
    except WeatherLookupError as e:
        logger.error(f"Error refreshing favorite {identity}: {e}")
        raise to_http_exception(e)


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint.

    Returns:
        Health status response
    """
    return {"status": "healthy", "service": "weather-lookup"}


@router.get("/info")
async def get_service_info() -> dict:
    """Get service information.

    Returns:
        Service information including forecast settings and data sources
    """
    return {
        "service": "Weather Lookup Service",
        "version": "0.1.0",
        "forecast_hours": FORECAST_WINDOW_HOURS,
        "features": [
            "Place name search",
            "Current conditions and hourly forecast",
            "Favorite locations with last known conditions"
        ],
        "data_sources": ["OpenStreetMap Nominatim", "Open-Meteo"]
    }
