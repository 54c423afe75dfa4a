"""Health check endpoints for monitoring and deployment verification."""

import time

from fastapi import APIRouter, Request, Response, status

from src.api.middleware.latency_logging import get_latency_stats
from src.core.supabase import check_database_connection
from src.schemas.common import (
    CheckResult,
    HealthResponse,
    HealthStatus,
    ReadinessResponse,
    RealtimeStatsResponse,
)

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness check",
    description="Basic health check to verify the service is running. Used for liveness probes.",
)
async def health_check() -> HealthResponse:
    """Return basic health status.

    This endpoint should always return 200 if the service is running.
    It does not check external dependencies.
    """
    return HealthResponse(status=HealthStatus.HEALTHY)


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    responses={
        200: {"description": "All dependencies healthy"},
        503: {"description": "One or more dependencies unhealthy"},
    },
    summary="Readiness check",
    description="Check if all dependencies are available. Used for readiness probes.",
)
async def readiness_check(request: Request, response: Response) -> ReadinessResponse:
    """Check readiness of the database and the background task runner.

    Returns 503 if any check fails.
    """
    checks: list[CheckResult] = []

    start_time = time.perf_counter()
    db_result = await check_database_connection()
    latency_ms = (time.perf_counter() - start_time) * 1000

    checks.append(
        CheckResult(
            name="database",
            healthy=db_result["healthy"],
            latency_ms=round(latency_ms, 2),
            error=db_result.get("error"),
        )
    )

    runner_stats = request.app.state.task_runner.get_stats()
    runner_healthy = runner_stats["pending"] < runner_stats["max_pending"]
    checks.append(
        CheckResult(
            name="background_tasks",
            healthy=runner_healthy,
            error=None if runner_healthy else "Background task queue is full",
        )
    )

    all_healthy = all(check.healthy for check in checks)
    overall_status = HealthStatus.HEALTHY if all_healthy else HealthStatus.UNHEALTHY

    if not all_healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return ReadinessResponse(status=overall_status, checks=checks)


@router.get(
    "/health/realtime",
    response_model=RealtimeStatsResponse,
    summary="Realtime layer stats",
    description="Connection, room, task runner and suggestion cache counters for this instance.",
)
async def realtime_check(request: Request) -> RealtimeStatsResponse:
    state = request.app.state
    registry_stats = state.registry.get_stats()
    latency = get_latency_stats()
    return RealtimeStatsResponse(
        connections=registry_stats["connections"],
        rooms=registry_stats["rooms"],
        background_tasks=state.task_runner.get_stats(),
        suggestion_cache=state.suggestion_cache.get_stats(),
        http_latency={**latency.get_stats(), "by_path": latency.get_stats_by_path()},
    )
