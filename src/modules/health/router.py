from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from src.modules.health.schemas import HealthCheckResponse, LivenessResponse, ReadinessResponse
from src.modules.health.service import HealthCheckService, get_health_service

router = APIRouter(prefix="/api/v1/health", tags=["Health"])


@router.get(
    "/",
    response_model=HealthCheckResponse,
    status_code=status.HTTP_200_OK,
    summary="Complete Health Check",
    description="Check health status of the database and the Redis counter store.",
)
async def health_check(service: HealthCheckService = Depends(get_health_service)):
    """
    Status values:
    - healthy: All services operational
    - degraded: Some services down
    - unhealthy: All services down
    """
    return await service.get_health_status()


@router.get(
    "/live",
    response_model=LivenessResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness Probe",
)
async def liveness():
    """Returns 200 while the process is running. Does not check external dependencies."""
    return LivenessResponse(status="ok")


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness Probe",
    description="Check if application is ready to serve requests.",
)
async def readiness(service: HealthCheckService = Depends(get_health_service)):
    """Returns 200 if the database and Redis respond, 503 otherwise."""
    db_status = await service.check_database()
    redis_status = await service.check_redis()

    if db_status.status != "healthy" or redis_status.status != "healthy":
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=ReadinessResponse(status="not_ready", ready=False).model_dump(),
        )

    return ReadinessResponse(status="ready", ready=True)
