"""Data models for the weather lookup service."""

import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import (
    AliasChoices, BaseModel, Field, ValidationError, computed_field,
    field_validator, model_validator
)
from pydantic_core import PydanticCustomError

from weather_lookup.errors import DecodeError, MalformedLocation

# Open-Meteo sends naive timestamps; they are always GMT
WEATHER_TIME_FORMAT = "%Y-%m-%dT%H:%M"
MALFORMED_COORDINATE = "malformed_coordinate"
# JSON number grammar; float() alone also takes "1_000", "+5", "inf" and "nan"
NUMBER_PATTERN = re.compile(r"-?(0|[1-9][0-9]*)(\.[0-9]+)?([eE][+-]?[0-9]+)?")


def _coerce_coordinate(value: Any) -> Any:
    """Accept a coordinate sent either as a JSON number or a numeric string.

    Nominatim has sent both forms across API versions.
    """
    if isinstance(value, str):
        if not NUMBER_PATTERN.fullmatch(value.strip()):
            raise PydanticCustomError(
                MALFORMED_COORDINATE,
                "coordinate '{value}' is not a number",
                {"value": value},
            )
        value = float(value.strip())
    if isinstance(value, float) and not math.isfinite(value):
        raise PydanticCustomError(
            MALFORMED_COORDINATE,
            "coordinate '{value}' is not finite",
            {"value": value},
        )
    return value


class Address(BaseModel):
    """Address details of a geocoded place."""
    city: Optional[str] = Field(None, description="City name if known")
    county: Optional[str] = Field(None, description="County name if known")
    state: str = Field(..., description="State or region")
    country: str = Field(..., description="Country name")
    country_code: str = Field("", description="ISO country code, empty when upstream omits it")

    @field_validator("country_code", mode="before")
    @classmethod
    def default_country_code(cls, value: Any) -> Any:
        return "" if value is None else value


class Location(BaseModel):
    """A geocoded place, optionally carrying a cached weather snapshot."""
    latitude: float = Field(
        ...,
        ge=-90,
        le=90,
        validation_alias=AliasChoices("latitude", "lat"),
        description="Latitude in decimal degrees",
    )
    longitude: float = Field(
        ...,
        ge=-180,
        le=180,
        validation_alias=AliasChoices("longitude", "lon"),
        description="Longitude in decimal degrees",
    )
    name: str = Field(..., description="Short place name")
    display_name: Optional[str] = Field(None, description="Human-readable full name")
    address: Address = Field(..., description="Address details")

    # Snapshot of the last fetched conditions, only meaningful on favorites
    current_temperature: Optional[float] = Field(None, description="Last known temperature in Fahrenheit")
    current_precipitation_probability: Optional[int] = Field(None, description="Last known precipitation probability in %")
    current_precipitation_amount: Optional[float] = Field(None, description="Last known precipitation in mm")

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def parse_coordinate(cls, value: Any) -> Any:
        return _coerce_coordinate(value)

    @model_validator(mode="after")
    def derive_display_name(self) -> "Location":
        if not self.display_name:
            self.display_name = f"{self.name}, {self.address.state}"
        return self

    @computed_field
    @property
    def identity(self) -> str:
        """Key used for equality and favorite deduplication."""
        return location_identity(self.latitude, self.longitude)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Location):
            return NotImplemented
        return self.identity == other.identity

    def __hash__(self) -> int:
        return hash(self.identity)


def location_identity(latitude: float, longitude: float) -> str:
    """Build the "{lat}_{lon}" identity key for a pair of coordinates."""
    return f"{float(latitude)}_{float(longitude)}"


class ForecastSample(BaseModel):
    """Conditions for a single forecast hour."""
    time: datetime = Field(..., description="Start of the hour")
    temperature_f: float = Field(..., description="Temperature in Fahrenheit")
    precipitation_probability_pct: int = Field(..., description="Precipitation probability in %")
    precipitation_mm: float = Field(..., description="Precipitation amount in mm")


class WeatherSeries(BaseModel):
    """Decoded hourly forecast; index i of every sequence describes the same hour."""
    times: List[datetime]
    temperature_f: List[float]
    precipitation_probability_pct: List[int]
    precipitation_mm: List[float]
    hourly_units: Dict[str, str] = Field(default_factory=dict)

    @field_validator("times")
    @classmethod
    def times_in_utc(cls, times: List[datetime]) -> List[datetime]:
        return [
            time.replace(tzinfo=timezone.utc) if time.tzinfo is None else time.astimezone(timezone.utc)
            for time in times
        ]

    @model_validator(mode="after")
    def check_parallel_lengths(self) -> "WeatherSeries":
        lengths = {
            "time": len(self.times),
            "temperature_2m": len(self.temperature_f),
            "precipitation_probability": len(self.precipitation_probability_pct),
            "precipitation": len(self.precipitation_mm),
        }
        if len(set(lengths.values())) > 1:
            raise ValueError(f"Hourly sequences have inconsistent lengths: {lengths}")
        return self

    def __len__(self) -> int:
        # Shared bounds, also correct for instances built with model_construct
        return min(
            len(self.times),
            len(self.temperature_f),
            len(self.precipitation_probability_pct),
            len(self.precipitation_mm),
        )

    def sample(self, index: int) -> ForecastSample:
        """Return the sample at index across all parallel sequences."""
        return ForecastSample(
            time=self.times[index],
            temperature_f=self.temperature_f[index],
            precipitation_probability_pct=self.precipitation_probability_pct[index],
            precipitation_mm=self.precipitation_mm[index],
        )


class LocationWeather(BaseModel):
    """Current conditions and hourly forecast for a location."""
    location: Location = Field(..., description="Location the forecast is for")
    timezone: str = Field(..., description="Timezone the sample times are rendered in")
    current: Optional[ForecastSample] = Field(None, description="Conditions for the current hour")
    forecast: List[ForecastSample] = Field(default_factory=list, description="Hourly forecast from the current hour")


class HourlyData(BaseModel):
    """Raw hourly block from the Open-Meteo API."""
    time: List[str]
    temperature_2m: List[float]
    precipitation_probability: List[int]
    precipitation: List[float]


class ForecastResponse(BaseModel):
    """Raw response from the Open-Meteo forecast API."""
    hourly_units: Dict[str, str] = Field(default_factory=dict)
    hourly: HourlyData


def parse_weather_time(value: str) -> datetime:
    """Parse a "YYYY-MM-DDTHH:MM" timestamp as GMT.

    Raises:
        ValueError: If the value does not match the format
    """
    return datetime.strptime(value, WEATHER_TIME_FORMAT).replace(tzinfo=timezone.utc)


def _decode_error(error: ValidationError, what: str) -> DecodeError:
    if any(detail["type"] == MALFORMED_COORDINATE for detail in error.errors()):
        return MalformedLocation(f"Malformed {what} coordinates: {error}")
    return DecodeError(f"Invalid {what} payload: {error}")


def decode_location(payload: Any) -> Location:
    """Decode a single geocoding candidate.

    Tolerates string or numeric coordinates and a missing country code.

    Raises:
        MalformedLocation: If a coordinate string is not a finite number
        DecodeError: On any other schema mismatch
    """
    try:
        return Location.model_validate(payload)
    except ValidationError as e:
        raise _decode_error(e, "location") from e


def decode_locations(payload: Any) -> List[Location]:
    """Decode a geocoding response (a JSON array of candidates)."""
    if not isinstance(payload, list):
        raise DecodeError(f"Expected a list of locations, got {type(payload).__name__}")
    return [decode_location(item) for item in payload]


def decode_weather_series(payload: Any) -> WeatherSeries:
    """Decode an Open-Meteo hourly forecast payload.

    Raises:
        DecodeError: If any hourly sequence cannot be decoded or the
            sequences have different lengths
    """
    try:
        response = ForecastResponse.model_validate(payload)
    except ValidationError as e:
        raise DecodeError(f"Invalid forecast payload: {e}") from e

    try:
        times = [parse_weather_time(value) for value in response.hourly.time]
    except ValueError as e:
        raise DecodeError(f"Invalid forecast time: {e}") from e

    try:
        return WeatherSeries(
            times=times,
            temperature_f=response.hourly.temperature_2m,
            precipitation_probability_pct=response.hourly.precipitation_probability,
            precipitation_mm=response.hourly.precipitation,
            hourly_units=response.hourly_units,
        )
    except ValidationError as e:
        raise DecodeError(f"Invalid forecast series: {e}") from e
