# Best-effort client geolocation for request logging.
# The lookup returns a GeoLookupResult instead of raising; callers only log it.


from __future__ import annotations

from dataclasses import dataclass

import httpx
import structlog

from weather_proxy.services.metrics import ProxyMetrics

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class GeoLocation:
    ip: str
    city: str | None
    country: str | None
    lat: float | None
    lon: float | None


@dataclass(frozen=True)
class GeoLookupResult:
    """Either a location or the reason there isn't one. Never both."""

    ip: str
    location: GeoLocation | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.location is not None


class GeoLocator:
    """Resolve an IP to an approximate location via an ip-api style service."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        metrics: ProxyMetrics | None = None,
    ) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._metrics = metrics

    async def lookup(self, ip: str) -> GeoLookupResult:
        # InvalidURL is not an HTTPError; a forwarded header can carry control characters.
        try:
            response = await self._client.get(f"{self._base_url}/{ip}")
            payload = response.json()
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            return GeoLookupResult(ip=ip, error=f"{type(e).__name__}: {e}")

        if not isinstance(payload, dict):
            return GeoLookupResult(ip=ip, error="unexpected response shape")
        # ip-api answers 200 with {"status": "fail", "message": ...} for
        # private/reserved ranges and unknown addresses.
        if payload.get("status") == "fail":
            return GeoLookupResult(ip=ip, error=str(payload.get("message", "lookup failed")))

        return GeoLookupResult(
            ip=ip,
            location=GeoLocation(
                ip=ip,
                city=payload.get("city"),
                country=payload.get("country"),
                lat=payload.get("lat"),
                lon=payload.get("lon"),
            ),
        )

    async def log_client_location(self, ip: str) -> GeoLookupResult:
        """Look up ``ip`` and log the outcome. The result is informational only."""
        result = await self.lookup(ip)
        if result.location is not None:
            loc = result.location
            logger.info(
                "client_location",
                ip=ip,
                city=loc.city,
                country=loc.country,
                lat=loc.lat,
                lon=loc.lon,
            )
        else:
            logger.warning("client_location_failed", ip=ip, error=result.error)
            if self._metrics:
                self._metrics.record_geo_failure()
        return result
