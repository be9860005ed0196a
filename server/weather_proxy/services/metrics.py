# ─────────────────────────────────────────────────────────────────────────────
# Proxy Metrics — thread-safe request counters
# ─────────────────────────────────────────────────────────────────────────────
# Tracks per-endpoint request counts, upstream failures, validation errors,
# rate-limit rejections and upstream latency. Exposed via GET /metrics.
#
# Bounded: latency history uses deque(maxlen=1000), auto-evicts oldest.
# ─────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import threading
import time
from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Any


@dataclass
class ProxyMetrics:
    """Thread-safe proxy counters."""

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    requests_total: int = 0
    upstream_failures: int = 0
    validation_failures: int = 0
    rate_limited_total: int = 0
    geo_lookup_failures: int = 0

    _by_endpoint: Counter[str] = field(default_factory=Counter, repr=False)
    _latency_history: deque[float] = field(default_factory=lambda: deque(maxlen=1000), repr=False)
    _start_time: float = field(default_factory=time.time, repr=False)

    def record_request(self, endpoint: str) -> None:
        with self._lock:
            self.requests_total += 1
            self._by_endpoint[endpoint] += 1

    def record_upstream(self, latency_ms: float, success: bool = True) -> None:
        """Record a completed (or failed) upstream call."""
        with self._lock:
            self._latency_history.append(latency_ms)
            if not success:
                self.upstream_failures += 1

    def record_validation_failure(self) -> None:
        with self._lock:
            self.validation_failures += 1

    def record_rate_limited(self) -> None:
        with self._lock:
            self.rate_limited_total += 1

    def record_geo_failure(self) -> None:
        with self._lock:
            self.geo_lookup_failures += 1

    def to_dict(self) -> dict[str, Any]:
        """Serialize metrics for the /metrics endpoint."""
        with self._lock:
            latencies = sorted(self._latency_history)
            n = len(latencies)
            return {
                "requests_total": self.requests_total,
                "requests_by_endpoint": dict(self._by_endpoint),
                "upstream_failures": self.upstream_failures,
                "validation_failures": self.validation_failures,
                "rate_limited_total": self.rate_limited_total,
                "geo_lookup_failures": self.geo_lookup_failures,
                "upstream_latency_p50_ms": round(latencies[n // 2], 1) if n else 0,
                "upstream_latency_p95_ms": round(latencies[int(n * 0.95)], 1) if n else 0,
                "uptime_seconds": int(time.time() - self._start_time),
            }
