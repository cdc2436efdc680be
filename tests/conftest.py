"""Shared test fixtures."""

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, List, Optional

import pytest

from weather_lookup.errors import StorageError
from weather_lookup.favorites.repository import InMemoryFavoriteRepository
from weather_lookup.favorites.store import FavoriteStore
from weather_lookup.weather.models import Address, Location, WeatherSeries

# Start of the test forecast series
T0 = datetime(2025, 4, 11, 0, 0, tzinfo=timezone.utc)


def make_series(hours: int = 24, start: datetime = T0) -> WeatherSeries:
    """Build an hourly series whose values encode the hour offset."""
    return WeatherSeries(
        times=[start + timedelta(hours=i) for i in range(hours)],
        temperature_f=[50.0 + i for i in range(hours)],
        precipitation_probability_pct=[i * 4 % 101 for i in range(hours)],
        precipitation_mm=[round(i * 0.1, 1) for i in range(hours)],
        hourly_units={"time": "iso8601", "temperature_2m": "°F"},
    )


def make_forecast_payload(hours: int = 48, start: datetime = T0) -> dict:
    """Build an Open-Meteo style hourly forecast response."""
    times = [start + timedelta(hours=i) for i in range(hours)]
    return {
        "latitude": 39.95,
        "longitude": -75.16,
        "hourly_units": {
            "time": "iso8601",
            "temperature_2m": "°F",
            "precipitation_probability": "%",
            "precipitation": "mm",
        },
        "hourly": {
            "time": [t.strftime("%Y-%m-%dT%H:%M") for t in times],
            "temperature_2m": [50.0 + i for i in range(hours)],
            "precipitation_probability": [i % 100 for i in range(hours)],
            "precipitation": [0.0 for _ in range(hours)],
        },
    }


def make_location(lat: float, lon: float, name: str, state: str = "PA") -> Location:
    return Location(
        latitude=lat,
        longitude=lon,
        name=name,
        address=Address(state=state, country="United States", country_code="us"),
    )


class FailingRepository(InMemoryFavoriteRepository):
    """Repository whose commits fail while `failing` is set."""

    def __init__(self):
        super().__init__()
        self.failing = False

    def save(self, location: Location) -> None:
        if self.failing:
            raise StorageError("disk I/O error")
        super().save(location)

    def delete(self, identity: str) -> None:
        if self.failing:
            raise StorageError("disk I/O error")
        super().delete(identity)

    def delete_all(self) -> None:
        if self.failing:
            raise StorageError("disk I/O error")
        super().delete_all()


class FakeGeocodingClient:
    """Stands in for GeocodingClient without network access."""

    def __init__(self, results: Optional[List[Location]] = None, error: Optional[Exception] = None):
        self.results = results or []
        self.error = error
        self.queries: List[str] = []
        self.limits: List[Optional[int]] = []
        self.closed = False

    async def search(self, query: str, limit: Optional[int] = None) -> List[Location]:
        self.queries.append(query)
        self.limits.append(limit)
        if self.error is not None:
            raise self.error
        return list(self.results[:limit])

    async def geocode(self, query: str) -> Optional[Location]:
        results = await self.search(query)
        return results[0] if results else None

    async def aclose(self):
        self.closed = True


class FakeForecastClient:
    """Returns canned series in call order, optionally running a hook first.

    When `gates` is given, the n-th call waits for the n-th event before
    returning, so tests can choose the order in which calls complete.
    """

    def __init__(
        self,
        series: Optional[List[WeatherSeries]] = None,
        error: Optional[Exception] = None,
        before_return: Optional[Callable[[], None]] = None,
        gates: Optional[List[asyncio.Event]] = None
    ):
        self.series = series or [make_series()]
        self.error = error
        self.before_return = before_return
        self.gates = gates or []
        self.requested: List[tuple] = []
        self.closed = False

    async def get_forecast(self, location: Location) -> WeatherSeries:
        self.requested.append((location.latitude, location.longitude))
        call = len(self.requested) - 1
        if call < len(self.gates):
            await self.gates[call].wait()
        if self.error is not None:
            raise self.error
        if self.before_return is not None:
            self.before_return()
        return self.series[min(call, len(self.series) - 1)]

    async def aclose(self):
        self.closed = True


def on_event_loop() -> bool:
    """True when called from a thread that is running an event loop."""
    try:
        asyncio.get_running_loop()
        return True
    except RuntimeError:
        return False


class FakeTimezoneFinder:
    def __init__(self, timezone_name: Optional[str]):
        self.timezone_name = timezone_name
        self.lookups_on_loop: List[bool] = []

    def timezone_at(self, lng: float, lat: float) -> Optional[str]:
        self.lookups_on_loop.append(on_event_loop())
        return self.timezone_name


@pytest.fixture
def philadelphia() -> Location:
    return make_location(39.95, -75.16, "Philadelphia")


@pytest.fixture
def pittsburgh() -> Location:
    return make_location(40.44, -79.99, "Pittsburgh")


@pytest.fixture
def miami() -> Location:
    return make_location(25.76, -80.19, "Miami", state="FL")


@pytest.fixture
def memory_store() -> FavoriteStore:
    return FavoriteStore(InMemoryFavoriteRepository())


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "favorites.db"
