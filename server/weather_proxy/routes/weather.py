# ─────────────────────────────────────────────────────────────────────────────
# GET /weather, GET /forecast — upstream proxy endpoints (THIN)
# ─────────────────────────────────────────────────────────────────────────────


from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from weather_proxy.dependencies import get_geo_locator, get_weather_proxy
from weather_proxy.rate_limit import client_identity
from weather_proxy.schemas import PROXY_RESPONSES
from weather_proxy.services.geolocation import GeoLocator
from weather_proxy.services.proxy import CURRENT_WEATHER, FORECAST, UpstreamEndpoint, WeatherProxy

router = APIRouter()


async def _proxy(
    request: Request,
    endpoint: UpstreamEndpoint,
    city: str | None,
    lang: str | None,
    proxy: WeatherProxy,
    geo: GeoLocator | None,
) -> JSONResponse:
    # Awaited before validation; its result never changes the response.
    if geo is not None:
        await geo.log_client_location(client_identity(request))
    data = await proxy.forward(endpoint, city, lang)
    return JSONResponse(status_code=200, content=data)


@router.get("/weather", responses=PROXY_RESPONSES)
async def current_weather(
    request: Request,
    city: str | None = None,
    lang: str | None = None,
    proxy: WeatherProxy = Depends(get_weather_proxy),
    geo: GeoLocator | None = Depends(get_geo_locator),
) -> JSONResponse:
    """Current conditions for ``city``, relayed verbatim from OpenWeatherMap."""
    return await _proxy(request, CURRENT_WEATHER, city, lang, proxy, geo)


@router.get("/forecast", responses=PROXY_RESPONSES)
async def forecast(
    request: Request,
    city: str | None = None,
    lang: str | None = None,
    proxy: WeatherProxy = Depends(get_weather_proxy),
    geo: GeoLocator | None = Depends(get_geo_locator),
) -> JSONResponse:
    """5-day / 3-hour forecast for ``city``, relayed verbatim."""
    return await _proxy(request, FORECAST, city, lang, proxy, geo)
