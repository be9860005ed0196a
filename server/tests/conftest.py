# ─────────────────────────────────────────────────────────────────────────────
# Test Fixtures — shared across all tests
# ─────────────────────────────────────────────────────────────────────────────

from collections.abc import Iterator

import pytest
import respx
from fastapi import FastAPI
from fastapi.testclient import TestClient

from weather_proxy.config import Settings
from weather_proxy.main import create_app
from weather_proxy.rate_limit import FixedWindowRateLimiter

UPSTREAM_BASE = "https://owm.test/data/2.5"
GEO_BASE = "http://geo.test/json"
TEST_API_KEY = "owm-test-key"


class FakeClock:
    """Manually advanced monotonic clock for rate-limit tests."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def test_settings() -> Settings:
    """Settings pointed at fake hosts, with a small limit so tests stay quick."""
    return Settings(
        api_key=TEST_API_KEY,
        openweather_base_url=UPSTREAM_BASE,
        geo_lookup_url=GEO_BASE,
        geo_logging_enabled=True,
        rate_limit_enabled=True,
        rate_limit_max_requests=3,
        rate_limit_window_seconds=300,
        log_json=False,
        log_level="DEBUG",
    )


@pytest.fixture
def app(test_settings: Settings, clock: FakeClock) -> FastAPI:
    app = create_app(test_settings)
    # Swap in a limiter driven by the fake clock.
    app.state.rate_limiter = FixedWindowRateLimiter(
        max_requests=test_settings.rate_limit_max_requests,
        window_seconds=test_settings.rate_limit_window_seconds,
        clock=clock,
    )
    return app


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    """TestClient with the lifespan running (shared httpx client created)."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def upstream() -> Iterator[respx.MockRouter]:
    """Intercepts outbound httpx calls. Geolocation succeeds unless a test overrides it."""
    with respx.mock(assert_all_called=False) as mock:
        mock.get(url__startswith=f"{GEO_BASE}/", name="geo").respond(
            200,
            json={
                "status": "success",
                "city": "Lisbon",
                "country": "Portugal",
                "lat": 38.72,
                "lon": -9.14,
            },
        )
        yield mock
