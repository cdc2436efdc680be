"""Weather service tying geocoding, forecasts and favorites together."""

import asyncio
import logging
import threading
import zoneinfo
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from fastapi.concurrency import run_in_threadpool

from weather_lookup.config import FORECAST_WINDOW_HOURS
from weather_lookup.errors import NotFound
from weather_lookup.favorites.store import FavoriteEvent, FavoriteStore
from weather_lookup.weather.alignment import current_conditions, forecast_window
from weather_lookup.weather.client import ForecastClient
from weather_lookup.weather.geocoding import GeocodingClient, TimezoneResolver
from weather_lookup.weather.models import (
    Address, ForecastSample, Location, LocationWeather, WeatherSeries,
    location_identity
)

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class WeatherService:
    """Service for looking up locations and their current weather.

    Favorite store reads and writes and timezone lookups are blocking, so
    they run in the thread pool rather than on the event loop.
    """

    def __init__(
        self,
        geocoding_client: Optional[GeocodingClient] = None,
        forecast_client: Optional[ForecastClient] = None,
        favorites: Optional[FavoriteStore] = None,
        timezone_resolver: Optional[TimezoneResolver] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        """Initialize the weather service.

        Args:
            geocoding_client: Geocoding client (creates default if None)
            forecast_client: Forecast client (creates default if None)
            favorites: Favorite store whose snapshots are refreshed on every
                fetch for a stored location; no snapshots are kept if None
            timezone_resolver: Resolver for local time rendering (created
                on first use if None)
            clock: Source of the current time
        """
        self.geocoding_client = geocoding_client or GeocodingClient()
        self.forecast_client = forecast_client or ForecastClient()
        self.favorites = favorites
        self._timezone_resolver = timezone_resolver
        self.clock = clock
        # Latest completed series per stored favorite
        self._latest_series: Dict[str, WeatherSeries] = {}
        self._series_lock = threading.Lock()
        # FIFO, so snapshots are merged in completion order
        self._completion_lock = asyncio.Lock()
        if favorites is not None:
            favorites.subscribe(self._on_favorite_change)

    @property
    def timezone_resolver(self) -> TimezoneResolver:
        if self._timezone_resolver is None:
            self._timezone_resolver = TimezoneResolver()
        return self._timezone_resolver

    async def search(self, query: str) -> Optional[Location]:
        """Geocode a free-text query to its best match."""
        return await self.geocoding_client.geocode(query)

    async def search_all(self, query: str, limit: Optional[int] = None) -> List[Location]:
        """Geocode a free-text query to at most `limit` candidates."""
        return await self.geocoding_client.search(query, limit=limit)

    def latest_series(self, identity: str) -> Optional[WeatherSeries]:
        """Return the last series fetched for a stored favorite."""
        with self._series_lock:
            return self._latest_series.get(identity)

    async def get_location_weather(
        self,
        location: Location,
        now: Optional[datetime] = None,
        hours: int = FORECAST_WINDOW_HOURS,
        timezone_option: str = "utc"
    ) -> LocationWeather:
        """Get current conditions and the hourly forecast for a location.

        If the location is a stored favorite, its cached snapshot is
        refreshed with the current conditions. When fetches for the same
        favorite overlap, the one that completes last wins.

        Args:
            location: Location to fetch the forecast for
            now: Wall-clock time to align against (defaults to the clock)
            hours: Length of the forecast window
            timezone_option: 'utc' or 'local' for the location's own timezone

        Returns:
            LocationWeather with current conditions and forecast window

        Raises:
            NetworkError: If the forecast request fails
            DecodeError: If the forecast payload is invalid
        """
        series = await self.forecast_client.get_forecast(location)

        now = now or self.clock()
        current = current_conditions(series, now)
        window = forecast_window(series, now, hours)

        if current is None:
            logger.warning(f"Forecast for {location.identity} has no entry at or after {now.isoformat()}")

        if self.favorites is not None:
            async with self._completion_lock:
                location = await run_in_threadpool(self._record_completion, location, series, current)

        tz_name = await self._resolve_timezone(location, timezone_option)
        return LocationWeather(
            location=location,
            timezone=tz_name,
            current=self._localize(current, tz_name) if current else None,
            forecast=[self._localize(sample, tz_name) for sample in window]
        )

    async def get_weather_at(
        self,
        lat: float,
        lon: float,
        now: Optional[datetime] = None,
        hours: int = FORECAST_WINDOW_HOURS,
        timezone_option: str = "utc"
    ) -> LocationWeather:
        """Get weather for bare coordinates.

        Coordinates matching a favorite are served as that favorite.
        """
        location = await run_in_threadpool(self._find_favorite, location_identity(lat, lon))
        if location is None:
            location = Location(
                latitude=lat,
                longitude=lon,
                name=f"{lat}, {lon}",
                display_name=f"{lat}, {lon}",
                address=Address(state="", country="")
            )
        return await self.get_location_weather(location, now=now, hours=hours, timezone_option=timezone_option)

    async def refresh_favorite(
        self,
        identity: str,
        now: Optional[datetime] = None,
        hours: int = FORECAST_WINDOW_HOURS,
        timezone_option: str = "utc"
    ) -> LocationWeather:
        """Re-fetch the forecast for a favorite and refresh its snapshot.

        Raises:
            NotFound: If no favorite has this identity
        """
        location = await run_in_threadpool(self._find_favorite, identity)
        if location is None:
            raise NotFound(f"No favorite with identity {identity}")
        return await self.get_location_weather(location, now=now, hours=hours, timezone_option=timezone_option)

    def _find_favorite(self, identity: str) -> Optional[Location]:
        if self.favorites is None or not self.favorites.contains(identity):
            return None
        try:
            return self.favorites.get(identity)
        except NotFound:
            return None

    def _record_completion(
        self,
        location: Location,
        series: WeatherSeries,
        current: Optional[ForecastSample]
    ) -> Location:
        identity = location.identity
        with self._series_lock:
            if not self.favorites.contains(identity):
                return location
            self._latest_series[identity] = series

        if current is None:
            return location

        try:
            committed = self.favorites.update_snapshot(
                identity,
                current.temperature_f,
                current.precipitation_probability_pct,
                current.precipitation_mm
            )
            if not committed:
                logger.warning(f"Snapshot for favorite {identity} is not yet persisted")
            return self.favorites.get(identity)
        except NotFound:
            # Removed while the forecast was in flight
            logger.info(f"Favorite {identity} was removed before its snapshot could be refreshed")
            return location

    def _on_favorite_change(self, event: FavoriteEvent, location: Optional[Location]) -> None:
        if event == FavoriteEvent.REMOVED:
            with self._series_lock:
                self._latest_series.pop(location.identity, None)
        elif event == FavoriteEvent.CLEARED:
            with self._series_lock:
                self._latest_series.clear()

    async def _resolve_timezone(self, location: Location, timezone_option: str) -> str:
        if timezone_option == "local":
            tz_name = await run_in_threadpool(
                lambda: self.timezone_resolver.get_timezone(location.latitude, location.longitude)
            )
            logger.info(f"Using auto-detected timezone: {tz_name}")
            return tz_name
        return "UTC"

    @staticmethod
    def _localize(sample: ForecastSample, tz_name: str) -> ForecastSample:
        if tz_name == "UTC":
            return sample
        local_time = sample.time.astimezone(zoneinfo.ZoneInfo(tz_name))
        return sample.model_copy(update={"time": local_time})

    async def aclose(self):
        """Close the upstream clients."""
        for client in (self.geocoding_client, self.forecast_client):
            try:
                await client.aclose()
            except Exception as e:
                logger.error(f"Error closing {type(client).__name__}: {e}")

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.aclose()
