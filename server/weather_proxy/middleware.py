# ─────────────────────────────────────────────────────────────────────────────
# Request Context Middleware — request id + client bound into every log event
# ─────────────────────────────────────────────────────────────────────────────
# proxy_request, upstream_response, client_location and rate_limit_exceeded
# all pick up request_id/client through structlog's merge_contextvars.
# ─────────────────────────────────────────────────────────────────────────────


import re
import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from weather_proxy.rate_limit import client_identity

logger = structlog.get_logger(__name__)

# Ids forwarded by a load balancer are reused only if they look like ids.
_INBOUND_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

_QUIET_PATHS: frozenset[str] = frozenset({"/health", "/metrics"})


def resolve_request_id(request: Request) -> str:
    inbound = request.headers.get("x-request-id", "")
    if _INBOUND_ID.match(inbound):
        return inbound
    return uuid.uuid4().hex[:8]


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id and client, time it, log one summary line."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = resolve_request_id(request)
        request.state.request_id = request_id
        start = time.perf_counter()

        with structlog.contextvars.bound_contextvars(
            request_id=request_id, client=client_identity(request)
        ):
            response: Response = await call_next(request)
            duration_ms = round((time.perf_counter() - start) * 1000, 1)

            if request.url.path not in _QUIET_PATHS:
                logger.info(
                    "request_completed",
                    method=request.method,
                    path=request.url.path,
                    query_keys=sorted(request.query_params.keys()),
                    status=response.status_code,
                    duration_ms=duration_ms,
                )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time-Ms"] = str(duration_ms)
        return response
