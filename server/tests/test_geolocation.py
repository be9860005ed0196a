# ─────────────────────────────────────────────────────────────────────────────
# Geolocation Tests — GeoLocator against a respx-mocked provider
# ─────────────────────────────────────────────────────────────────────────────
# Every failure mode must come back as a GeoLookupResult, never an exception.
# ─────────────────────────────────────────────────────────────────────────────

import httpx
import pytest
import respx
from fastapi.testclient import TestClient

from tests.conftest import UPSTREAM_BASE
from weather_proxy.main import create_app
from weather_proxy.services.geolocation import GeoLocation, GeoLocator
from weather_proxy.services.metrics import ProxyMetrics

GEO = "http://geo.test/json"


@pytest.fixture
async def http_client():
    async with httpx.AsyncClient() as client:
        yield client


class TestLookup:
    @respx.mock
    async def test_success(self, http_client):
        respx.get(f"{GEO}/203.0.113.9").respond(
            200,
            json={"status": "success", "city": "Porto", "country": "Portugal", "lat": 41.15, "lon": -8.61},
        )
        result = await GeoLocator(http_client, GEO).lookup("203.0.113.9")

        assert result.ok
        assert result.error is None
        assert result.location == GeoLocation(
            ip="203.0.113.9", city="Porto", country="Portugal", lat=41.15, lon=-8.61
        )

    @respx.mock
    async def test_trailing_slash_in_base_url(self, http_client):
        route = respx.get(f"{GEO}/1.2.3.4").respond(200, json={"status": "success"})
        await GeoLocator(http_client, f"{GEO}/").lookup("1.2.3.4")
        assert route.called

    @respx.mock
    async def test_provider_reports_failure(self, http_client):
        respx.get(f"{GEO}/127.0.0.1").respond(
            200, json={"status": "fail", "message": "reserved range"}
        )
        result = await GeoLocator(http_client, GEO).lookup("127.0.0.1")

        assert not result.ok
        assert result.error == "reserved range"

    @respx.mock
    async def test_network_error(self, http_client):
        respx.get(f"{GEO}/1.2.3.4").mock(side_effect=httpx.ConnectError("refused"))
        result = await GeoLocator(http_client, GEO).lookup("1.2.3.4")

        assert result.location is None
        assert "ConnectError" in result.error

    @respx.mock
    async def test_malformed_body(self, http_client):
        respx.get(f"{GEO}/1.2.3.4").respond(200, text="<html>")
        result = await GeoLocator(http_client, GEO).lookup("1.2.3.4")
        assert not result.ok

    @respx.mock
    async def test_non_object_json(self, http_client):
        respx.get(f"{GEO}/1.2.3.4").respond(200, json=["a", "b"])
        result = await GeoLocator(http_client, GEO).lookup("1.2.3.4")
        assert result.error == "unexpected response shape"

    @respx.mock
    async def test_control_character_in_address(self, http_client):
        result = await GeoLocator(http_client, GEO).lookup("1.2.3.4\tx")

        assert not result.ok
        assert result.error.startswith("InvalidURL")


class TestLogClientLocation:
    @respx.mock
    async def test_failure_is_counted_not_raised(self, http_client):
        respx.get(f"{GEO}/1.2.3.4").mock(side_effect=httpx.ReadTimeout("slow"))
        metrics = ProxyMetrics()

        result = await GeoLocator(http_client, GEO, metrics=metrics).log_client_location("1.2.3.4")

        assert not result.ok
        assert metrics.geo_lookup_failures == 1

    @respx.mock
    async def test_success_is_not_counted_as_failure(self, http_client):
        respx.get(f"{GEO}/1.2.3.4").respond(200, json={"status": "success", "city": "Faro"})
        metrics = ProxyMetrics()

        result = await GeoLocator(http_client, GEO, metrics=metrics).log_client_location("1.2.3.4")

        assert result.location.city == "Faro"
        assert metrics.geo_lookup_failures == 0


class TestDisabled:
    def test_disabled_geolocation_makes_no_lookup(self, test_settings):
        settings = test_settings.model_copy(update={"geo_logging_enabled": False})
        app = create_app(settings)

        with respx.mock(assert_all_called=False) as mock, TestClient(app) as client:
            geo = mock.get(url__startswith=GEO)
            mock.get(url__startswith=f"{UPSTREAM_BASE}/weather").respond(200, json={"temp": 20})
            response = client.get("/weather", params={"city": "Lisbon", "lang": "en"})

        assert response.status_code == 200
        assert response.json() == {"temp": 20}
        assert not geo.called
        assert app.state.geo_locator is None
