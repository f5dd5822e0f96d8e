"""Common schemas used across the application."""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps from either store are UTC; keeps them sortable together.
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


class HealthStatus(str, Enum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class RecordSource(str, Enum):
    """Which store ultimately holds a persisted record."""

    REMOTE = "remote"
    LOCAL = "local"


class HealthResponse(BaseModel):
    """Liveness probe body."""

    model_config = ConfigDict(from_attributes=True)

    status: HealthStatus = Field(description="Current health status")
    timestamp: datetime = Field(default_factory=utcnow, description="Check timestamp")
    version: str = Field(default="0.1.0", description="API version")


class CheckResult(BaseModel):
    """Result of an individual dependency check."""

    model_config = ConfigDict(from_attributes=True)

    name: str = Field(description="Name of the dependency being checked")
    healthy: bool = Field(description="Whether the dependency is healthy")
    latency_ms: float | None = Field(default=None, description="Response time in milliseconds")
    error: str | None = Field(default=None, description="Error message if unhealthy")


class ReadinessResponse(BaseModel):
    """Response schema for readiness check endpoint.

    The service stays ready while the remote store is down because records
    fall back to local storage; only local storage failures make it unready.
    """

    model_config = ConfigDict(from_attributes=True)

    status: HealthStatus = Field(description="Overall readiness status")
    timestamp: datetime = Field(default_factory=utcnow, description="Check timestamp")
    checks: list[CheckResult] = Field(default_factory=list, description="Individual check results")


class NotificationSchema(BaseModel):
    """Transient user-facing notification (a toast)."""

    model_config = ConfigDict(from_attributes=True)

    message: str = Field(description="Notification text")
    type: str = Field(default="success", description="success, error or info")


class ErrorDetail(BaseModel):
    """One field-level problem, or a hint such as a sign-in redirect."""

    loc: list[str] | None = Field(default=None, description="Field path, e.g. ['body', 'city']")
    msg: str = Field(description="Human-readable message, or the redirect target")
    type: str = Field(default="error", description="value_error, redirect, ...")


class ErrorResponse(BaseModel):
    """Body of every error the API returns."""

    error: str = Field(description="Error type, e.g. validation_error or persistence_exhausted")
    message: str = Field(description="Human-readable error description")
    details: list[ErrorDetail] | None = Field(default=None, description="Additional error details")
    request_id: str | None = Field(default=None, description="X-Request-ID of the failed request")
    timestamp: datetime = Field(default_factory=utcnow, description="Error timestamp")

    @classmethod
    def from_exception(
        cls,
        error_type: str,
        message: str,
        details: list[dict[str, Any]] | None = None,
        request_id: str | None = None,
    ) -> "ErrorResponse":
        return cls(
            error=error_type,
            message=message,
            details=[ErrorDetail(**{"msg": str(d), **d}) for d in details] if details else None,
            request_id=request_id,
        )
