"""Request latency logging middleware for performance monitoring."""

import logging
import re
import time
from collections import defaultdict
from typing import Callable

from fastapi import Request, Response

logger = logging.getLogger(__name__)

# Thresholds for log levels (in milliseconds)
SLOW_REQUEST_THRESHOLD_MS = 1000
VERY_SLOW_REQUEST_THRESHOLD_MS = 3000

HEALTH_CHECK_PATHS = ("/health", "/health/ready", "/health/realtime")

# Path segments that look like generated ids (uuid, cuid, numeric)
_ID_SEGMENT = re.compile(
    r"/([0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}|c[a-z0-9]{20,}|\d+)(?=/|$)",
    re.IGNORECASE,
)


class LatencyStats:
    """Simple in-memory stats tracker for request latencies."""

    def __init__(self, max_samples: int = 1000):
        self._samples: list[tuple[str, float]] = []  # (path, latency_ms)
        self._max_samples = max_samples

    def record(self, path: str, latency_ms: float) -> None:
        """Record a latency sample."""
        self._samples.append((path, latency_ms))
        if len(self._samples) > self._max_samples:
            self._samples = self._samples[-self._max_samples:]

    def get_stats(self) -> dict:
        """Get aggregated stats."""
        if not self._samples:
            return {
                "total_requests": 0,
                "avg_latency_ms": 0,
                "p50_latency_ms": 0,
                "p95_latency_ms": 0,
            }

        latencies = sorted(s[1] for s in self._samples)
        total = len(latencies)

        return {
            "total_requests": total,
            "avg_latency_ms": round(sum(latencies) / total, 2),
            "p50_latency_ms": round(latencies[int(total * 0.5)], 2),
            "p95_latency_ms": round(latencies[int(total * 0.95)], 2),
        }

    def get_stats_by_path(self) -> dict:
        """Get stats grouped by normalized path."""
        by_path: dict[str, list[float]] = defaultdict(list)
        for path, latency in self._samples:
            by_path[normalize_path(path)].append(latency)

        result = {}
        for path, latencies in by_path.items():
            sorted_latencies = sorted(latencies)
            total = len(sorted_latencies)
            result[path] = {
                "count": total,
                "avg_ms": round(sum(sorted_latencies) / total, 2),
                "p95_ms": round(sorted_latencies[int(total * 0.95)], 2),
            }
        return result


def normalize_path(path: str) -> str:
    """Replace id segments with ``{id}`` so per-route stats aggregate."""
    return _ID_SEGMENT.sub("/{id}", path)


# Global stats instance
_latency_stats: LatencyStats | None = None


def get_latency_stats() -> LatencyStats:
    """Get or create the global latency stats instance."""
    global _latency_stats
    if _latency_stats is None:
        _latency_stats = LatencyStats()
    return _latency_stats


async def latency_logging_middleware(request: Request, call_next: Callable) -> Response:
    """Log request latency and record it for the realtime health endpoint.

    Slow requests and errors are logged at elevated levels; health checks
    are only logged when slow.
    """
    start_time = time.perf_counter()

    method = request.method
    path = request.url.path
    is_health_check = path in HEALTH_CHECK_PATHS

    response = None
    error_occurred = False

    try:
        response = await call_next(request)
        return response
    except Exception:
        error_occurred = True
        raise
    finally:
        latency_ms = (time.perf_counter() - start_time) * 1000

        if not is_health_check:
            get_latency_stats().record(path, latency_ms)

        status_code = response.status_code if response else 500
        log_msg = f"{method} {path} - {status_code} - {latency_ms:.2f}ms"

        if is_health_check:
            if latency_ms > 100:
                logger.debug(log_msg)
        elif error_occurred or status_code >= 500:
            logger.error(log_msg)
        elif latency_ms > VERY_SLOW_REQUEST_THRESHOLD_MS:
            logger.error("VERY SLOW REQUEST: %s", log_msg)
        elif latency_ms > SLOW_REQUEST_THRESHOLD_MS:
            logger.warning("SLOW REQUEST: %s", log_msg)
        elif status_code >= 400:
            logger.warning(log_msg)
        else:
            logger.info(log_msg)
