# ─────────────────────────────────────────────────────────────────────────────
# Health + Metrics Routes
# ─────────────────────────────────────────────────────────────────────────────
#   /health   → Liveness probe. No dependencies, no I/O, always 200.
#   /metrics  → Proxy counters (requests, upstream failures, rate limiting).
# Both are exempt from rate limiting.
# ─────────────────────────────────────────────────────────────────────────────

from typing import Any

from fastapi import APIRouter, Depends

from weather_proxy.dependencies import get_metrics
from weather_proxy.schemas import LivenessResponse, MetricsResponse
from weather_proxy.services.metrics import ProxyMetrics

router = APIRouter()


@router.get("/health", response_model=LivenessResponse)
async def liveness() -> LivenessResponse:
    return LivenessResponse(status="ok")


@router.get("/metrics", response_model=MetricsResponse)
async def metrics_endpoint(
    metrics: ProxyMetrics = Depends(get_metrics),
) -> dict[str, Any]:
    """Proxy counters and upstream latency percentiles."""
    return metrics.to_dict()
