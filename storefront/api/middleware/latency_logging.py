"""Request latency logging middleware."""

import logging
import time
from typing import Callable

from fastapi import Request, Response

logger = logging.getLogger(__name__)

SLOW_REQUEST_MS = 1000
VERY_SLOW_REQUEST_MS = 3000

# Probes hit these every few seconds
QUIET_PATHS = ("/health", "/health/ready")


def level_for(status_code: int, latency_ms: float) -> int:
    """Pick the log level for a finished request."""
    if status_code >= 500 or latency_ms > VERY_SLOW_REQUEST_MS:
        return logging.ERROR
    if status_code >= 400 or latency_ms > SLOW_REQUEST_MS:
        return logging.WARNING
    return logging.INFO


async def latency_logging_middleware(request: Request, call_next: Callable) -> Response:
    """Log method, path, status and latency of each request.

    Checkout requests include the simulated payment delay, so a slow
    POST /checkout/orders is expected when that delay is configured high.
    Health probes log at debug level only.
    """
    started = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        latency_ms = (time.perf_counter() - started) * 1000
        level = logging.DEBUG if request.url.path in QUIET_PATHS else level_for(status_code, latency_ms)
        logger.log(
            level,
            "%s %s - %s - %.2fms",
            request.method,
            request.url.path,
            status_code,
            latency_ms,
            extra={"status_code": status_code, "latency_ms": round(latency_ms, 2)},
        )
