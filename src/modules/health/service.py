import time
from datetime import UTC, datetime

from sqlalchemy import text

from src.core.config import settings
from src.core.database import get_session_factory
from src.core.logging import get_logger
from src.core.services.redis_service import RedisService, redis_service
from src.modules.health.schemas import HealthCheckResponse, ServiceStatus

logger = get_logger(__name__)


class HealthCheckService:
    """Service for checking health of the gateway's backing stores."""

    def __init__(self, redis: RedisService | None = None):
        self.redis = redis or redis_service

    async def check_database(self) -> ServiceStatus:
        """Check database connectivity (keyword rules, flags, users)."""
        start = time.time()
        try:
            async with get_session_factory()() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()
            response_time = (time.time() - start) * 1000
            return ServiceStatus(
                name="database",
                status="healthy",
                message="Database connection successful",
                response_time_ms=round(response_time, 2),
            )
        except Exception as e:
            response_time = (time.time() - start) * 1000
            logger.error(f"Database health check failed: {e}")
            return ServiceStatus(
                name="database",
                status="unhealthy",
                message="Database connection failed",
                response_time_ms=round(response_time, 2),
            )

    async def check_redis(self) -> ServiceStatus:
        """Check the rate-limit counter store."""
        start = time.time()
        try:
            await self.redis.ping()
            response_time = (time.time() - start) * 1000
            return ServiceStatus(
                name="redis",
                status="healthy",
                message="Redis connection successful",
                response_time_ms=round(response_time, 2),
            )
        except Exception as e:
            response_time = (time.time() - start) * 1000
            logger.error(f"Redis health check failed: {e}")
            return ServiceStatus(
                name="redis",
                status="unhealthy",
                message="Redis connection failed",
                response_time_ms=round(response_time, 2),
            )

    async def get_health_status(self) -> HealthCheckResponse:
        db_status = await self.check_database()
        redis_status = await self.check_redis()

        services = {
            "database": db_status,
            "redis": redis_status,
        }

        unhealthy_count = sum(1 for s in services.values() if s.status == "unhealthy")
        if unhealthy_count == 0:
            overall_status = "healthy"
        elif unhealthy_count == len(services):
            overall_status = "unhealthy"
        else:
            overall_status = "degraded"

        return HealthCheckResponse(
            status=overall_status,
            version="1.0.0",
            environment=settings.ENVIRONMENT,
            services=services,
            timestamp=datetime.now(tz=UTC).isoformat(),
        )


def get_health_service() -> HealthCheckService:
    return HealthCheckService()
