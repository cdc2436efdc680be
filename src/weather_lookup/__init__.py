"""Weather lookup: geocoding, hourly forecasts and favorite locations."""
