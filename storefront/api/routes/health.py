"""Liveness and readiness probes."""

import inspect
import time
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import APIRouter, Response, status

from storefront.core.local_storage import check_local_storage
from storefront.core.supabase import check_database_connection
from storefront.schemas.common import CheckResult, HealthResponse, HealthStatus, ReadinessResponse

router = APIRouter(tags=["health"])


async def _run_check(name: str, probe: Callable[[], dict[str, Any] | Awaitable[dict[str, Any]]]) -> CheckResult:
    started = time.perf_counter()
    result = probe()
    if inspect.isawaitable(result):
        result = await result
    return CheckResult(
        name=name,
        healthy=result["healthy"],
        latency_ms=round((time.perf_counter() - started) * 1000, 2),
        error=result.get("error"),
    )


@router.get("/health", response_model=HealthResponse, summary="Liveness check")
async def health_check() -> HealthResponse:
    """Always 200 while the process serves requests."""
    return HealthResponse(status=HealthStatus.HEALTHY)


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    responses={503: {"description": "Local storage unusable"}},
    summary="Readiness check",
)
async def readiness_check(response: Response) -> ReadinessResponse:
    """Report the database and local storage.

    Only local storage decides readiness. While Supabase is unreachable
    orders and products are kept in the local fallback log, so the service
    still works.
    """
    database = await _run_check("database", check_database_connection)
    local = await _run_check("local_storage", check_local_storage)

    if local.healthy:
        return ReadinessResponse(status=HealthStatus.HEALTHY, checks=[database, local])

    response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ReadinessResponse(status=HealthStatus.UNHEALTHY, checks=[database, local])
