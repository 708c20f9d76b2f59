from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from src.core.middlewares.ratelimit import RateLimiter, get_auth_rate_limiter
from src.modules.auth.service import AuthGatewayService, PasswordIdentityProvider


async def get_auth_gateway_service(
    db: AsyncSession = Depends(get_db),
    rate_limiter: RateLimiter = Depends(get_auth_rate_limiter),
) -> AuthGatewayService:
    return AuthGatewayService(identity=PasswordIdentityProvider(db), rate_limiter=rate_limiter)
