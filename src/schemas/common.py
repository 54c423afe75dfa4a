"""Common schemas used across the application."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    """Timezone-aware current time, used as the default for timestamps."""
    return datetime.now(timezone.utc)


class HealthStatus(str, Enum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """Response schema for the liveness probe."""

    status: HealthStatus = Field(description="Current health status")
    timestamp: datetime = Field(default_factory=utc_now, description="Check timestamp")
    version: str = Field(default="0.1.0", description="API version")


class CheckResult(BaseModel):
    """Result of an individual dependency check."""

    name: str = Field(description="Name of the dependency being checked")
    healthy: bool = Field(description="Whether the dependency is healthy")
    latency_ms: float | None = Field(default=None, description="Response time in milliseconds")
    error: str | None = Field(default=None, description="Error message if unhealthy")


class ReadinessResponse(BaseModel):
    """Response schema for the readiness probe."""

    status: HealthStatus = Field(description="Overall readiness status")
    timestamp: datetime = Field(default_factory=utc_now, description="Check timestamp")
    checks: list[CheckResult] = Field(default_factory=list, description="Individual check results")


class RealtimeStatsResponse(BaseModel):
    """Snapshot of the in-process realtime layer."""

    connections: int = Field(description="Live socket connections on this instance")
    rooms: int = Field(description="Rooms with at least one member")
    background_tasks: dict[str, Any] = Field(default_factory=dict, description="Task runner counters")
    suggestion_cache: dict[str, Any] = Field(default_factory=dict, description="Suggestion cache counters")
    http_latency: dict[str, Any] = Field(default_factory=dict, description="Request latency percentiles")


class PaginatedResponse(BaseModel):
    """Page of rows plus page metadata."""

    data: list[dict[str, Any]] = Field(default_factory=list, description="Rows for the current page")
    total: int = Field(description="Total matching rows")
    page: int = Field(description="Current page (1-based)")
    limit: int = Field(description="Page size")
    total_pages: int = Field(description="Number of pages")
    has_next: bool = Field(description="Whether another page exists")

    @classmethod
    def build(cls, rows: list[dict[str, Any]], total: int, page: int, limit: int) -> "PaginatedResponse":
        total_pages = (total + limit - 1) // limit if limit else 0
        return cls(
            data=rows,
            total=total,
            page=page,
            limit=limit,
            total_pages=total_pages,
            has_next=page < total_pages,
        )


class ErrorDetail(BaseModel):
    """Detailed error information for a single error."""

    model_config = ConfigDict(from_attributes=True)

    loc: list[str] | None = Field(default=None, description="Location of error (e.g., field path)")
    msg: str = Field(description="Human-readable error message")
    type: str = Field(description="Error type identifier")


class ErrorResponse(BaseModel):
    """Standard error response schema.

    All API errors are returned in this format.
    """

    model_config = ConfigDict(from_attributes=True)

    error: str = Field(description="Error type or category")
    message: str = Field(description="Human-readable error description")
    details: list[ErrorDetail] | None = Field(default=None, description="Additional error details")
    request_id: str | None = Field(default=None, description="Request ID for tracing")
    timestamp: datetime = Field(default_factory=utc_now, description="Error timestamp")

    @classmethod
    def from_exception(
        cls,
        error_type: str,
        message: str,
        details: list[dict[str, Any]] | None = None,
        request_id: str | None = None,
    ) -> "ErrorResponse":
        """Create an ErrorResponse from exception details.

        Args:
            error_type: Category or type of error.
            message: Human-readable error description.
            details: Optional list of error detail dictionaries.
            request_id: Optional request ID for tracing.

        Returns:
            ErrorResponse: Formatted error response.
        """
        error_details = None
        if details:
            error_details = [
                ErrorDetail(
                    loc=d.get("loc"),
                    msg=d.get("msg", str(d)),
                    type=d.get("type", "error"),
                )
                for d in details
            ]

        return cls(
            error=error_type,
            message=message,
            details=error_details,
            request_id=request_id,
        )
