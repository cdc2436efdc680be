"""Geocoding and timezone lookup for the weather lookup service."""

import logging
from typing import List, Optional
from urllib.parse import quote

from timezonefinder import TimezoneFinder

from weather_lookup.config import GEOCODING_BASE_URL, REQUEST_TIMEOUT_SECONDS, USER_AGENT
from weather_lookup.errors import InvalidQuery
from weather_lookup.weather.models import Location, decode_locations
from weather_lookup.weather.transport import create_http_client, get_json

logger = logging.getLogger(__name__)


class GeocodingClient:
    """Async client for the Nominatim search API."""

    def __init__(
        self,
        base_url: str = GEOCODING_BASE_URL,
        user_agent: str = USER_AGENT,
        timeout: float = REQUEST_TIMEOUT_SECONDS
    ):
        """Initialize the geocoding client.

        Args:
            base_url: Search endpoint of the geocoding service
            user_agent: Descriptive User-Agent, required by the Nominatim usage policy
            timeout: Request timeout in seconds
        """
        self.base_url = base_url
        self.user_agent = user_agent
        self.client = create_http_client(user_agent, timeout)

    @staticmethod
    def encode_query(query: str) -> str:
        """Percent-encode a free-text query.

        Raises:
            InvalidQuery: If the query is empty or cannot be encoded
        """
        if query is None or not query.strip():
            raise InvalidQuery("Query must not be empty")
        try:
            return quote(query.strip(), safe="")
        except UnicodeEncodeError as e:
            raise InvalidQuery(f"Query cannot be encoded: {e}") from e

    async def search(self, query: str, limit: Optional[int] = None) -> List[Location]:
        """Return the candidates the geocoder matches for a query.

        Args:
            query: Free-text place name
            limit: Maximum number of candidates to request, or None for
                the geocoder's default

        Returns:
            Decoded candidates in upstream order, empty when nothing matches

        Raises:
            InvalidQuery: If the query is empty or cannot be encoded, or the limit is below 1
            NetworkError: On transport failures, timeouts or HTTP errors
            DecodeError: If the response does not match the expected schema
            MalformedLocation: If a coordinate string cannot be parsed
        """
        encoded = self.encode_query(query)
        url = f"{self.base_url}?q={encoded}&addressdetails=1&format=json"
        if limit is not None:
            if limit < 1:
                raise InvalidQuery(f"Limit must be at least 1, got {limit}")
            url = f"{url}&limit={limit}"

        logger.info(f"Geocoding query: {query}")
        payload = await get_json(self.client, url, service="geocoding")
        locations = decode_locations(payload)
        if limit is not None:
            locations = locations[:limit]

        logger.info(f"Geocoder returned {len(locations)} candidates for '{query}'")
        return locations

    async def geocode(self, query: str) -> Optional[Location]:
        """Turn a free-text query into the best matching location.

        Args:
            query: Free-text place name

        Returns:
            The first candidate, or None when nothing matches
        """
        locations = await self.search(query)
        if not locations:
            logger.info(f"No location found for '{query}'")
            return None

        location = locations[0]
        logger.info(f"Geocoded '{query}' to {location.display_name} ({location.latitude}, {location.longitude})")
        return location

    async def aclose(self):
        """Close the async HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()


class TimezoneResolver:
    """Finds the IANA timezone for a pair of coordinates."""

    def __init__(self, finder: Optional[TimezoneFinder] = None):
        # Loading the polygon data is slow, so share one instance
        self.tf = finder or TimezoneFinder(in_memory=True)

    def get_timezone(self, lat: float, lon: float) -> str:
        """Get timezone for coordinates.

        Args:
            lat: Latitude
            lon: Longitude

        Returns:
            Timezone string (e.g., "America/New_York") or "UTC" if not found
        """
        timezone = self.tf.timezone_at(lng=lon, lat=lat)
        if timezone:
            logger.info(f"Found timezone '{timezone}' for ({lat}, {lon})")
            return timezone

        logger.warning(f"No timezone found for ({lat}, {lon}), defaulting to UTC")
        return "UTC"
