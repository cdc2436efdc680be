"""Configuration settings for the weather lookup service."""

import os
from typing import Final
from dotenv import load_dotenv

load_dotenv()

# Upstream APIs
GEOCODING_BASE_URL: str = os.getenv("GEOCODING_BASE_URL", "https://nominatim.openstreetmap.org/search")
FORECAST_BASE_URL: str = os.getenv("FORECAST_BASE_URL", "https://api.open-meteo.com/v1/forecast")
# Nominatim blocks clients that do not identify themselves
USER_AGENT: str = os.getenv("USER_AGENT", "WeatherLookup/0.1 (user@example.com)")
REQUEST_TIMEOUT_SECONDS: float = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "10"))

# Forecast settings
HOURLY_VARIABLES: Final[str] = "temperature_2m,precipitation_probability,precipitation"
TEMPERATURE_UNIT: Final[str] = "fahrenheit"
FORECAST_DAYS: int = int(os.getenv("FORECAST_DAYS", "2"))  # 2 days always covers now + 12h
FORECAST_WINDOW_HOURS: int = int(os.getenv("FORECAST_WINDOW_HOURS", "12"))

# Favorites storage
FAVORITES_DB_PATH: str = os.getenv("FAVORITES_DB_PATH", "favorites.db")

# Server configuration
HOST: str = os.getenv("HOST", "0.0.0.0")
PORT: int = int(os.getenv("PORT", "8000"))
DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
