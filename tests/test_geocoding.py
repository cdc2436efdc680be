"""Tests for the geocoding client with mocked httpx."""

import httpx
import pytest
import respx

from weather_lookup.errors import DecodeError, InvalidQuery, MalformedLocation, NetworkError
from weather_lookup.weather.geocoding import GeocodingClient, TimezoneResolver

from conftest import FakeTimezoneFinder

GEO_URL = "https://test-geo.example.com/search"

PHILADELPHIA = {
    "lat": "39.9527237",
    "lon": "-75.1635262",
    "name": "Philadelphia",
    "display_name": "Philadelphia, Philadelphia County, Pennsylvania, United States",
    "address": {
        "city": "Philadelphia",
        "county": "Philadelphia County",
        "state": "Pennsylvania",
        "country": "United States",
        "country_code": "us",
    },
}

PHILADELPHIA_MS = {
    "lat": 32.7715,
    "lon": -89.1167,
    "name": "Philadelphia",
    "address": {"state": "Mississippi", "country": "United States"},
}


@pytest.fixture
def geo_client() -> GeocodingClient:
    return GeocodingClient(base_url=GEO_URL, user_agent="WeatherLookupTests/1.0 (tests@example.com)", timeout=1.0)


class TestGeocode:
    @pytest.mark.asyncio
    async def test_returns_first_candidate(self, geo_client: GeocodingClient):
        with respx.mock:
            respx.get(GEO_URL).mock(return_value=httpx.Response(200, json=[PHILADELPHIA, PHILADELPHIA_MS]))

            async with geo_client:
                location = await geo_client.geocode("Philadelphia")

        assert location is not None
        assert location.latitude == 39.9527237
        assert location.longitude == -75.1635262
        assert location.display_name == "Philadelphia, Philadelphia County, Pennsylvania, United States"
        assert location.address.country_code == "us"

    @pytest.mark.asyncio
    async def test_request_format(self, geo_client: GeocodingClient):
        with respx.mock:
            route = respx.get(GEO_URL).mock(return_value=httpx.Response(200, json=[PHILADELPHIA]))

            async with geo_client:
                await geo_client.geocode("São Paulo, Brazil")

        assert route.called
        request = route.calls.last.request
        assert request.url.params["q"] == "São Paulo, Brazil"
        assert request.url.params["addressdetails"] == "1"
        assert request.url.params["format"] == "json"
        assert request.headers["user-agent"] == "WeatherLookupTests/1.0 (tests@example.com)"

    @pytest.mark.asyncio
    async def test_numeric_coordinates(self, geo_client: GeocodingClient):
        with respx.mock:
            respx.get(GEO_URL).mock(return_value=httpx.Response(200, json=[PHILADELPHIA_MS]))

            async with geo_client:
                location = await geo_client.geocode("Philadelphia, MS")

        assert location.latitude == 32.7715
        assert location.longitude == -89.1167
        assert location.address.country_code == ""
        assert location.display_name == "Philadelphia, Mississippi"

    @pytest.mark.asyncio
    async def test_no_match_returns_none(self, geo_client: GeocodingClient):
        with respx.mock:
            respx.get(GEO_URL).mock(return_value=httpx.Response(200, json=[]))

            async with geo_client:
                assert await geo_client.geocode("Nowhereville") is None

    @pytest.mark.asyncio
    async def test_search_returns_all_candidates(self, geo_client: GeocodingClient):
        with respx.mock:
            respx.get(GEO_URL).mock(return_value=httpx.Response(200, json=[PHILADELPHIA, PHILADELPHIA_MS]))

            async with geo_client:
                locations = await geo_client.search("Philadelphia")

        assert [location.address.state for location in locations] == ["Pennsylvania", "Mississippi"]

    @pytest.mark.asyncio
    async def test_search_without_limit_sends_none(self, geo_client: GeocodingClient):
        with respx.mock:
            route = respx.get(GEO_URL).mock(return_value=httpx.Response(200, json=[PHILADELPHIA]))

            async with geo_client:
                await geo_client.search("Philadelphia")

        assert "limit" not in route.calls.last.request.url.params

    @pytest.mark.asyncio
    async def test_search_limit_is_sent_and_applied(self, geo_client: GeocodingClient):
        with respx.mock:
            # Upstream ignoring the limit still yields at most `limit` candidates
            route = respx.get(GEO_URL).mock(return_value=httpx.Response(200, json=[PHILADELPHIA, PHILADELPHIA_MS]))

            async with geo_client:
                locations = await geo_client.search("Philadelphia", limit=1)

        assert route.calls.last.request.url.params["limit"] == "1"
        assert [location.address.state for location in locations] == ["Pennsylvania"]

    @pytest.mark.asyncio
    async def test_search_rejects_limit_below_one(self, geo_client: GeocodingClient):
        async with geo_client:
            with pytest.raises(InvalidQuery):
                await geo_client.search("Philadelphia", limit=0)


class TestInvalidQuery:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "   "])
    async def test_empty_query(self, geo_client: GeocodingClient, query: str):
        with respx.mock(assert_all_called=False) as mock:
            route = mock.get(GEO_URL).mock(return_value=httpx.Response(200, json=[]))

            async with geo_client:
                with pytest.raises(InvalidQuery):
                    await geo_client.geocode(query)

        assert not route.called

    @pytest.mark.asyncio
    async def test_unencodable_query(self, geo_client: GeocodingClient):
        async with geo_client:
            with pytest.raises(InvalidQuery):
                await geo_client.geocode("Philadelphia \ud800")

    def test_encode_query(self):
        assert GeocodingClient.encode_query(" New York ") == "New%20York"
        assert GeocodingClient.encode_query("A&B=C") == "A%26B%3DC"


class TestFailures:
    @pytest.mark.asyncio
    async def test_timeout(self, geo_client: GeocodingClient):
        with respx.mock:
            respx.get(GEO_URL).mock(side_effect=httpx.ReadTimeout("timed out"))

            async with geo_client:
                with pytest.raises(NetworkError):
                    await geo_client.geocode("Philadelphia")

    @pytest.mark.asyncio
    async def test_connection_error(self, geo_client: GeocodingClient):
        with respx.mock:
            respx.get(GEO_URL).mock(side_effect=httpx.ConnectError("connection refused"))

            async with geo_client:
                with pytest.raises(NetworkError):
                    await geo_client.geocode("Philadelphia")

    @pytest.mark.asyncio
    async def test_http_error_status(self, geo_client: GeocodingClient):
        with respx.mock:
            respx.get(GEO_URL).mock(return_value=httpx.Response(403, text="Access blocked"))

            async with geo_client:
                with pytest.raises(NetworkError):
                    await geo_client.geocode("Philadelphia")

    @pytest.mark.asyncio
    async def test_non_json_body(self, geo_client: GeocodingClient):
        with respx.mock:
            respx.get(GEO_URL).mock(return_value=httpx.Response(200, text="<html>oops</html>"))

            async with geo_client:
                with pytest.raises(DecodeError):
                    await geo_client.geocode("Philadelphia")

    @pytest.mark.asyncio
    async def test_schema_mismatch(self, geo_client: GeocodingClient):
        with respx.mock:
            respx.get(GEO_URL).mock(return_value=httpx.Response(200, json={"error": "bad request"}))

            async with geo_client:
                with pytest.raises(DecodeError):
                    await geo_client.geocode("Philadelphia")

    @pytest.mark.asyncio
    async def test_malformed_coordinate(self, geo_client: GeocodingClient):
        bad = dict(PHILADELPHIA, lat="39,95")
        with respx.mock:
            respx.get(GEO_URL).mock(return_value=httpx.Response(200, json=[bad]))

            async with geo_client:
                with pytest.raises(MalformedLocation):
                    await geo_client.geocode("Philadelphia")


class TestTimezoneResolver:
    def test_found(self):
        resolver = TimezoneResolver(finder=FakeTimezoneFinder("America/New_York"))
        assert resolver.get_timezone(39.95, -75.16) == "America/New_York"

    def test_defaults_to_utc(self):
        resolver = TimezoneResolver(finder=FakeTimezoneFinder(None))
        assert resolver.get_timezone(0.0, -160.0) == "UTC"
