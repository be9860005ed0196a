# ─────────────────────────────────────────────────────────────────────────────
# Rate Limiter — fixed-window counter per client identity
# ─────────────────────────────────────────────────────────────────────────────
# One counter space shared by every proxy route. The limiter is owned by the
# app (created in create_app, stored on app.state) rather than living as
# module-global state.
#
# Written in place of a slowapi Limiter: windows open on a client's first hit,
# reset inclusively at the boundary, and run on an injectable clock.
#
# Thread-safe: check-and-increment runs under a threading.Lock, so two
# requests from the same client can never both observe the same count.
# ─────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = structlog.get_logger(__name__)

# Probes and metrics scrapes must never eat into a client's allowance.
_EXEMPT_PATHS: frozenset[str] = frozenset({"/health", "/metrics"})


def client_identity(request: Request) -> str:
    """First X-Forwarded-For entry, else the transport peer address."""
    forwarded = request.headers.get("x-forwarded-for", "")
    first = forwarded.split(",")[0].strip()
    if first:
        return first
    if request.client is not None and request.client.host:
        return request.client.host
    return "unknown"


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a single admission check."""

    allowed: bool
    count: int
    remaining: int
    reset_after: float


@dataclass
class _Window:
    count: int
    started_at: float


class FixedWindowRateLimiter:
    """Admit at most ``max_requests`` per client within each ``window_seconds``.

    A client's window opens on its first request and resets once
    ``now - started_at >= window_seconds`` (the boundary instant itself
    starts a new window). Counts only ever go up inside a window.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._windows: dict[str, _Window] = {}
        self._last_prune = clock()

    def check(self, key: str) -> RateLimitDecision:
        """Count one request for ``key`` and decide whether to admit it."""
        with self._lock:
            now = self._clock()
            self._prune_locked(now)

            window = self._windows.get(key)
            if window is None or now - window.started_at >= self.window_seconds:
                window = _Window(count=1, started_at=now)
                self._windows[key] = window
            else:
                window.count += 1

            allowed = window.count <= self.max_requests
            return RateLimitDecision(
                allowed=allowed,
                count=window.count,
                remaining=max(self.max_requests - window.count, 0),
                reset_after=max(window.started_at + self.window_seconds - now, 0.0),
            )

    def _prune_locked(self, now: float) -> None:
        # Sweep at most once per window; expired entries would reset on their
        # next hit anyway, this only bounds memory for clients that never return.
        if now - self._last_prune < self.window_seconds:
            return
        expired = [
            key
            for key, window in self._windows.items()
            if now - window.started_at >= self.window_seconds
        ]
        for key in expired:
            del self._windows[key]
        self._last_prune = now

    def reset(self) -> None:
        """Forget every client. Used by tests and admin tooling."""
        with self._lock:
            self._windows.clear()

    @property
    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._windows)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Gate every non-exempt request through the app's rate limiter.

    Rejections short-circuit before routing, so a denied request never
    reaches the proxy handler or the upstream.
    """

    def __init__(self, app: Any, *, message: str) -> None:
        super().__init__(app)
        self._message = message

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method == "OPTIONS" or request.url.path in _EXEMPT_PATHS:
            return await call_next(request)

        limiter: FixedWindowRateLimiter = request.app.state.rate_limiter
        client = client_identity(request)
        decision = limiter.check(client)

        if not decision.allowed:
            logger.warning(
                "rate_limit_exceeded",
                client=client,
                path=request.url.path,
                count=decision.count,
                limit=limiter.max_requests,
            )
            metrics = getattr(request.app.state, "metrics", None)
            if metrics is not None:
                metrics.record_rate_limited()
            return JSONResponse(
                status_code=429,
                content={"error": self._message},
                headers={"Retry-After": str(int(limiter.window_seconds))},
            )

        return await call_next(request)
