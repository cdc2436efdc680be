"""Alignment of hourly forecast series against the wall clock.

Forecast times are GMT. "Now" is truncated to the start of its hour in the
same frame, and the first sample at or after that hour is the current one.
"""

from datetime import datetime, timezone
from typing import List, Optional

from weather_lookup.config import FORECAST_WINDOW_HOURS
from weather_lookup.weather.models import ForecastSample, WeatherSeries


def floor_hour(now: datetime) -> datetime:
    """Truncate a timestamp to the start of its hour, in UTC.

    Naive timestamps are taken to already be UTC.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    else:
        now = now.astimezone(timezone.utc)
    return now.replace(minute=0, second=0, microsecond=0)


def find_current_hour_index(series: WeatherSeries, now: datetime) -> Optional[int]:
    """Find the index of the current hour in a series.

    Args:
        series: Decoded hourly series
        now: Wall-clock time

    Returns:
        Index of the first sample at or after the current hour, or None when
        every sample is in the past
    """
    current_hour = floor_hour(now)
    return next(
        (index for index, time in enumerate(series.times) if time >= current_hour),
        None
    )


def current_conditions(series: WeatherSeries, now: datetime) -> Optional[ForecastSample]:
    """Return the sample for the current hour, or None if alignment fails."""
    index = find_current_hour_index(series, now)
    if index is None or index >= len(series):
        return None
    return series.sample(index)


def forecast_window(
    series: WeatherSeries,
    now: datetime,
    hours: int = FORECAST_WINDOW_HOURS
) -> List[ForecastSample]:
    """Return up to `hours` samples starting at the current hour.

    The window is clipped to what the series holds; it is never padded.
    An unaligned series yields an empty list.
    """
    if hours < 0:
        raise ValueError(f"hours must not be negative, got {hours}")

    start = find_current_hour_index(series, now)
    if start is None:
        return []

    end = min(start + hours, len(series))
    return [series.sample(index) for index in range(start, end)]
