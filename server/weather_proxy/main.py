# FastAPI application factory with lifespan management.
# Entrypoint: uvicorn weather_proxy.main:create_app --factory --host 0.0.0.0 --port 3000


from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from weather_proxy.config import Settings, get_settings
from weather_proxy.exceptions import register_exception_handlers
from weather_proxy.logging_config import configure_logging
from weather_proxy.middleware import RequestContextMiddleware
from weather_proxy.rate_limit import FixedWindowRateLimiter, RateLimitMiddleware
from weather_proxy.routes import health, weather
from weather_proxy.services.geolocation import GeoLocator
from weather_proxy.services.metrics import ProxyMetrics
from weather_proxy.services.proxy import WeatherProxy

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Own the shared outbound HTTP client for the lifetime of the process."""
    settings: Settings = app.state.settings

    # Bounded timeout so a slow upstream cannot pin connections indefinitely.
    client = httpx.AsyncClient(timeout=httpx.Timeout(settings.upstream_timeout_seconds))
    metrics: ProxyMetrics = app.state.metrics

    app.state.http_client = client
    app.state.weather_proxy = WeatherProxy(client, settings, metrics=metrics)
    app.state.geo_locator = (
        GeoLocator(client, settings.geo_lookup_url, metrics=metrics)
        if settings.geo_logging_enabled
        else None
    )

    if not settings.api_key.get_secret_value():
        logger.warning("upstream_api_key_missing", hint="Set API_KEY; upstream will reject requests")

    try:
        yield
    finally:
        await client.aclose()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Application factory. Invoked by: uvicorn weather_proxy.main:create_app --factory"""
    settings = settings or get_settings()
    configure_logging(log_level=settings.log_level, json_output=settings.log_json)

    app = FastAPI(
        title="Weather Proxy",
        description="OpenWeatherMap proxy with server-side credentials and per-IP rate limiting",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.metrics = ProxyMetrics()

    # Middleware order (Starlette applies in reverse): CORS → RequestContext → RateLimit
    if settings.rate_limit_enabled:
        app.state.rate_limiter = FixedWindowRateLimiter(
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
        app.add_middleware(RateLimitMiddleware, message=settings.rate_limit_message)
        logger.info(
            "rate_limit_enabled",
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
    else:
        logger.warning("rate_limit_disabled", reason="RATE_LIMIT_ENABLED=false")

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(weather.router, tags=["weather"])

    return app


def run() -> None:
    """Console entrypoint: serve on $PORT (default 3000)."""
    settings = get_settings()
    uvicorn.run(
        "weather_proxy.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=settings.port,
        log_config=None,
    )
