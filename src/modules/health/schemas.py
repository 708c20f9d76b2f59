from typing import Literal

from pydantic import BaseModel, Field


class ServiceStatus(BaseModel):
    """Health of one backing store."""

    name: str = Field(..., description="Service name: database or redis")
    status: Literal["healthy", "unhealthy"] = Field(..., description="Service status")
    message: str | None = Field(None, description="Additional status information")
    response_time_ms: float | None = Field(None, description="Response time in milliseconds")


class HealthCheckResponse(BaseModel):
    status: Literal["healthy", "degraded", "unhealthy"] = Field(..., description="Overall status")
    version: str = Field(..., description="Application version")
    environment: str = Field(..., description="Environment: development, staging, production")
    services: dict[str, ServiceStatus] = Field(..., description="Individual service statuses")
    timestamp: str = Field(..., description="ISO 8601 timestamp")


class LivenessResponse(BaseModel):
    status: str = Field(default="ok", description="Application is alive")


class ReadinessResponse(BaseModel):
    status: Literal["ready", "not_ready"] = Field(..., description="Application readiness")
    ready: bool = Field(..., description="Whether the gateway can reach its stores")
