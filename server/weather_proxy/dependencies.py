# ─────────────────────────────────────────────────────────────────────────────
# Dependency Injection — FastAPI Depends() providers
# ─────────────────────────────────────────────────────────────────────────────
# State flows: lifespan creates → app.state stores → Depends() injects.
# ─────────────────────────────────────────────────────────────────────────────


from fastapi import Request

from weather_proxy.services.geolocation import GeoLocator
from weather_proxy.services.metrics import ProxyMetrics
from weather_proxy.services.proxy import WeatherProxy


def get_weather_proxy(request: Request) -> WeatherProxy:
    """Inject WeatherProxy into endpoints via Depends()."""
    return request.app.state.weather_proxy  # type: ignore[no-any-return]


def get_geo_locator(request: Request) -> GeoLocator | None:
    """Inject GeoLocator, or None when geolocation logging is disabled."""
    return getattr(request.app.state, "geo_locator", None)


def get_metrics(request: Request) -> ProxyMetrics:
    """Inject ProxyMetrics into endpoints via Depends()."""
    return request.app.state.metrics  # type: ignore[no-any-return]
