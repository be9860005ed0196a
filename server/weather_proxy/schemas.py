# ─────────────────────────────────────────────────────────────────────────────
# Pydantic v2 Response Schemas
# ─────────────────────────────────────────────────────────────────────────────
# Upstream payloads are relayed untouched and have no schema here.


from typing import Any

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Every non-2xx body: a single caller-safe message."""

    error: str


class LivenessResponse(BaseModel):
    """Liveness probe — minimal, near-zero cost."""

    status: str = "ok"


class MetricsResponse(BaseModel):
    """Counters served by GET /metrics."""

    requests_total: int
    requests_by_endpoint: dict[str, int]
    upstream_failures: int
    validation_failures: int
    rate_limited_total: int
    geo_lookup_failures: int
    upstream_latency_p50_ms: float
    upstream_latency_p95_ms: float
    uptime_seconds: int


# OpenAPI documentation for the proxy routes.
PROXY_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "city or lang missing"},
    429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
    500: {"model": ErrorResponse, "description": "Upstream fetch failed"},
}
