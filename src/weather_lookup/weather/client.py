"""HTTP client for the Open-Meteo forecast API."""

import logging

from weather_lookup.config import (
    FORECAST_BASE_URL, FORECAST_DAYS, HOURLY_VARIABLES,
    REQUEST_TIMEOUT_SECONDS, TEMPERATURE_UNIT, USER_AGENT
)
from weather_lookup.weather.models import Location, WeatherSeries, decode_weather_series
from weather_lookup.weather.transport import create_http_client, get_json

logger = logging.getLogger(__name__)

# One day is not enough when "now" is late in the day
MIN_FORECAST_DAYS = 2


class ForecastClient:
    """Async client for fetching hourly forecasts from Open-Meteo."""

    def __init__(
        self,
        base_url: str = FORECAST_BASE_URL,
        user_agent: str = USER_AGENT,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        forecast_days: int = FORECAST_DAYS
    ):
        """Initialize the forecast client.

        Args:
            base_url: Forecast endpoint
            user_agent: User-Agent header for API requests
            timeout: Request timeout in seconds
            forecast_days: Calendar days to request, at least 2 so that
                12 forward hours exist whatever the current hour is
        """
        if forecast_days < MIN_FORECAST_DAYS:
            raise ValueError(f"forecast_days must be at least {MIN_FORECAST_DAYS}, got {forecast_days}")

        self.base_url = base_url
        self.user_agent = user_agent
        self.forecast_days = forecast_days
        self.client = create_http_client(user_agent, timeout)

    async def get_forecast(self, location: Location) -> WeatherSeries:
        """Fetch the hourly forecast for a location.

        Args:
            location: Location with valid coordinates

        Returns:
            Decoded hourly series

        Raises:
            NetworkError: On transport failures, timeouts or HTTP errors
            DecodeError: If the hourly sequences cannot be decoded
        """
        return await self.get_forecast_at(location.latitude, location.longitude)

    async def get_forecast_at(self, lat: float, lon: float) -> WeatherSeries:
        """Fetch the hourly forecast for a pair of coordinates.

        Args:
            lat: Latitude in decimal degrees
            lon: Longitude in decimal degrees

        Returns:
            Decoded hourly series
        """
        if not (-90 <= lat <= 90) or not (-180 <= lon <= 180):
            raise ValueError(f"Invalid coordinates: lat={lat}, lon={lon}")

        params = {
            "latitude": lat,
            "longitude": lon,
            "hourly": HOURLY_VARIABLES,
            "temperature_unit": TEMPERATURE_UNIT,
            "forecast_days": self.forecast_days,
        }

        logger.info(f"Fetching forecast for lat={lat}, lon={lon}")
        payload = await get_json(self.client, self.base_url, params=params, service="forecast")
        series = decode_weather_series(payload)

        logger.info(f"Successfully fetched forecast with {len(series)} hourly entries")
        return series

    async def aclose(self):
        """Close the async HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.aclose()
