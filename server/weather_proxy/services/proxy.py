# Upstream forwarding: validate → build OpenWeather request → relay JSON.
# One forward() serves every route; routes differ only by UpstreamEndpoint.


import json
import time
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from weather_proxy.config import Settings
from weather_proxy.exceptions import MissingParameterError, UpstreamFetchError
from weather_proxy.services.metrics import ProxyMetrics

logger = structlog.get_logger(__name__)


def _reject_constant(token: str) -> Any:
    raise ValueError(f"non-standard JSON constant {token!r}")


def parse_strict_json(body: bytes) -> Any:
    """Decode an upstream body, rejecting NaN and Infinity like a browser fetch would."""
    return json.loads(body, parse_constant=_reject_constant)


@dataclass(frozen=True)
class UpstreamEndpoint:
    """An upstream path plus the word used in its failure message."""

    path: str
    label: str


CURRENT_WEATHER = UpstreamEndpoint(path="weather", label="weather")
FORECAST = UpstreamEndpoint(path="forecast", label="forecast")


class WeatherProxy:
    """Forwards validated (city, lang) requests to OpenWeatherMap."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        settings: Settings,
        metrics: ProxyMetrics | None = None,
    ) -> None:
        self._client = client
        self._settings = settings
        self._metrics = metrics
        self._base_url = settings.openweather_base_url.rstrip("/")

    @staticmethod
    def validate(city: str | None, lang: str | None) -> tuple[str, str]:
        """City first, then language. Empty strings count as missing."""
        if not city:
            raise MissingParameterError("City is required")
        if not lang:
            raise MissingParameterError("Language is required")
        return city, lang

    def build_params(self, city: str, lang: str) -> dict[str, str]:
        return {
            "q": city,
            "appid": self._settings.api_key.get_secret_value(),
            "units": self._settings.units,
            "lang": lang,
        }

    async def forward(
        self, endpoint: UpstreamEndpoint, city: str | None, lang: str | None
    ) -> Any:
        """Validate, call the upstream once, and return its JSON unchanged."""
        logger.info("proxy_request", endpoint=endpoint.path, city=city, lang=lang)
        if self._metrics:
            self._metrics.record_request(endpoint.path)

        try:
            city, lang = self.validate(city, lang)
        except MissingParameterError:
            if self._metrics:
                self._metrics.record_validation_failure()
            raise

        url = f"{self._base_url}/{endpoint.path}"
        # appid stays out of the log line; only the public parts are recorded.
        logger.debug("upstream_request", url=url, city=city, lang=lang)

        start = time.perf_counter()
        try:
            response = await self._client.get(url, params=self.build_params(city, lang))
            data = parse_strict_json(response.content)
        except (httpx.HTTPError, ValueError) as e:
            elapsed_ms = (time.perf_counter() - start) * 1000
            if self._metrics:
                self._metrics.record_upstream(elapsed_ms, success=False)
            logger.error(
                "upstream_request_failed",
                endpoint=endpoint.path,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise UpstreamFetchError(endpoint.label) from e

        elapsed_ms = (time.perf_counter() - start) * 1000
        if self._metrics:
            self._metrics.record_upstream(elapsed_ms)
        logger.info(
            "upstream_response",
            endpoint=endpoint.path,
            upstream_status=response.status_code,
            keys=len(data) if isinstance(data, dict) else None,
            duration_ms=round(elapsed_ms, 1),
        )
        return data
