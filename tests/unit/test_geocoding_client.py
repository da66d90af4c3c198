"""
Unit tests for the Mapbox geocoding client.

Tests cover:
- Request URL and query parameters
- Mapping of the first feature to a Location
- Empty results and unreachable provider errors
- Retry of transient failures and upstream metrics
"""

import asyncio

import aiohttp
import pytest

from tests.conftest import FakeResponse, FakeSession, mapbox_payload
from weather_api.src.clients.geocoding import GeocodingClient
from weather_api.src.utils.error_handler import (
    LocationNotFoundError,
    LocationServiceUnavailableError,
)


BASE_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places"


def make_client(session, metrics, retry, token="pk.test-token"):
    return GeocodingClient(
        session,
        access_token=token,
        base_url=BASE_URL,
        limit=1,
        retry_config=retry,
        metrics=metrics,
    )


class TestGeocodeRequest:
    """Tests for the outgoing request."""

    @pytest.mark.asyncio
    async def test_address_is_quoted_into_path(self, metrics, fast_retry):
        session = FakeSession(mapbox_payload())
        client = make_client(session, metrics, fast_retry)

        await client.geocode("12 What St/Philadelphia")

        url, params = session.calls[0]
        assert url == f"{BASE_URL}/12%20What%20St%2FPhiladelphia.json"
        assert params == {"access_token": "pk.test-token", "limit": 1}

    def test_trailing_slash_in_base_url_is_ignored(self, metrics, fast_retry):
        client = GeocodingClient(FakeSession(), access_token="t", base_url=BASE_URL + "/",
                                 retry_config=fast_retry, metrics=metrics)

        assert client.build_url("Boston") == f"{BASE_URL}/Boston.json"

    @pytest.mark.asyncio
    async def test_missing_token_sends_empty_token(self, metrics, fast_retry):
        session = FakeSession(mapbox_payload())
        client = make_client(session, metrics, fast_retry, token=None)

        await client.geocode("Boston")

        assert session.calls[0][1]["access_token"] == ""


class TestGeocodeResult:
    """Tests for response handling."""

    @pytest.mark.asyncio
    async def test_center_is_longitude_then_latitude(self, metrics, fast_retry):
        session = FakeSession(mapbox_payload(longitude=-75.1652, latitude=39.9526,
                                             place_name="Philadelphia, Pennsylvania, United States"))
        client = make_client(session, metrics, fast_retry)

        location = await client.geocode("philadelphia")

        assert location.latitude == pytest.approx(39.9526)
        assert location.longitude == pytest.approx(-75.1652)
        assert location.name == "Philadelphia, Pennsylvania, United States"

    @pytest.mark.asyncio
    async def test_first_feature_wins(self, metrics, fast_retry):
        body = mapbox_payload(place_name="First")
        body["features"].append({"place_name": "Second", "center": [1.0, 2.0]})
        client = make_client(FakeSession(body), metrics, fast_retry)

        location = await client.geocode("somewhere")

        assert location.name == "First"

    @pytest.mark.asyncio
    async def test_no_features_raises_not_found(self, metrics, fast_retry):
        client = make_client(FakeSession({"features": []}), metrics, fast_retry)

        with pytest.raises(LocationNotFoundError) as exc_info:
            await client.geocode("xyzzy")

        assert exc_info.value.message == "Unable to find location. Try another search."

    @pytest.mark.asyncio
    async def test_malformed_feature_raises_unavailable(self, metrics, fast_retry):
        body = {"features": [{"place_name": "Nowhere"}]}
        client = make_client(FakeSession(body), metrics, fast_retry)

        with pytest.raises(LocationServiceUnavailableError):
            await client.geocode("nowhere")


class TestGeocodeFailures:
    """Tests for transport failures."""

    @pytest.mark.asyncio
    async def test_connection_failure_after_retries(self, metrics, registry, fast_retry):
        session = FakeSession(*[aiohttp.ClientConnectionError("refused")] * 3)
        client = make_client(session, metrics, fast_retry)

        with pytest.raises(LocationServiceUnavailableError) as exc_info:
            await client.geocode("Boston")

        assert exc_info.value.message == "Unable to connect to location services!"
        assert len(session.calls) == 3
        assert registry.get_sample_value(
            "weather_upstream_requests_total", {"service": "geocoding", "outcome": "error"}
        ) == 1.0

    @pytest.mark.asyncio
    async def test_transient_failure_then_success(self, metrics, registry, fast_retry):
        session = FakeSession(asyncio.TimeoutError(), FakeResponse(status=503), mapbox_payload())
        client = make_client(session, metrics, fast_retry)

        location = await client.geocode("Boston")

        assert location.name.startswith("Boston")
        assert len(session.calls) == 3
        assert registry.get_sample_value(
            "weather_upstream_requests_total", {"service": "geocoding", "outcome": "success"}
        ) == 1.0

    @pytest.mark.asyncio
    async def test_rejected_token_is_not_retried(self, metrics, fast_retry):
        session = FakeSession(FakeResponse({"message": "Not Authorized - Invalid Token"}, status=401))
        client = make_client(session, metrics, fast_retry)

        with pytest.raises(LocationServiceUnavailableError):
            await client.geocode("Boston")

        assert len(session.calls) == 1

    @pytest.mark.asyncio
    async def test_undecodable_body_raises_unavailable(self, metrics, fast_retry):
        session = FakeSession(FakeResponse(ValueError("Expecting value")))
        client = make_client(session, metrics, fast_retry)

        with pytest.raises(LocationServiceUnavailableError):
            await client.geocode("Boston")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [None, [], "oops"])
    async def test_non_object_body_raises_unavailable(self, metrics, fast_retry, body):
        client = make_client(FakeSession(FakeResponse(body)), metrics, fast_retry)

        with pytest.raises(LocationServiceUnavailableError) as exc_info:
            await client.geocode("Boston")

        assert exc_info.value.message == "Unable to connect to location services!"
