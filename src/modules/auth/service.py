from logging import Logger
from typing import Protocol

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit import AuditTrail
from src.core.enums import AuditLevel
from src.core.exception import AuthenticationError, CounterStoreError, InternalServiceError, RateLimitExceededError
from src.core.logging import get_logger
from src.core.middlewares.ratelimit import RateLimiter
from src.core.security import security_service
from src.modules.auth.schemas import AuthAction, AuthRequest, AuthResponse, AuthUser, SessionResponse
from src.modules.users.models import User
from src.modules.users.repository import UserRepository

logger: Logger = get_logger(name=__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid login credentials"
ALREADY_REGISTERED_MESSAGE = "User already registered"


class IdentityProvider(Protocol):
    async def sign_in(self, email: str, password: str) -> AuthResponse: ...

    async def sign_up(self, email: str, password: str) -> AuthResponse: ...


class PasswordIdentityProvider:
    """Email/password accounts stored in the ``users`` table."""

    def __init__(self, db: AsyncSession):
        self.user_repo = UserRepository(db)

    @staticmethod
    def _auth_response(user: User) -> AuthResponse:
        return AuthResponse(
            user=AuthUser(id=user.id, email=user.email),
            session=SessionResponse(**security_service.create_session(subject=user.id)),
        )

    async def sign_in(self, email: str, password: str) -> AuthResponse:
        user = await self.user_repo.get_by_email(email)
        if not user or not user.hashed_password:
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        if not security_service.verify_password(password, user.hashed_password):
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        if not user.is_active:
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        return self._auth_response(user)

    async def sign_up(self, email: str, password: str) -> AuthResponse:
        if await self.user_repo.get_by_email(email):
            raise AuthenticationError(ALREADY_REGISTERED_MESSAGE)

        user = User(
            email=email,
            hashed_password=security_service.get_password_hash(password),
            is_active=True,
        )
        try:
            await self.user_repo.create(user)
        except IntegrityError as e:
            # A concurrent sign-up won the unique email constraint
            await self.user_repo.db.rollback()
            raise AuthenticationError(ALREADY_REGISTERED_MESSAGE) from e
        logger.info(f"Registered user {str(user.id)[:8]}...")
        return self._auth_response(user)


def _wait_message(retry_after: int) -> tuple[int, str]:
    wait_minutes = max(1, -(-retry_after // 60))
    plural = "s" if wait_minutes > 1 else ""
    return wait_minutes, f"Please wait {wait_minutes} minute{plural} before trying again."


class AuthGatewayService:
    """
    Rate-limited sign-in/sign-up.

    The request is already validated when it gets here, so malformed input never spends
    rate-limit budget. Every validated attempt counts, whether the credentials are right or not;
    a successful sign-in clears the client's counter.
    """

    def __init__(self, identity: IdentityProvider, rate_limiter: RateLimiter):
        self.identity = identity
        self.rate_limiter = rate_limiter

    async def _enforce_rate_limit(self, client_ip: str, audit: AuditTrail) -> None:
        try:
            decision = await self.rate_limiter.check(client_ip)
        except CounterStoreError as e:
            audit.emit(
                "rate_limit_unavailable",
                level=AuditLevel.ERROR,
                success=False,
                error=e.message,
            )
            raise InternalServiceError() from e

        if decision.allowed:
            return

        wait_minutes, message = _wait_message(decision.retry_after)
        audit.emit(
            "rate_limit_exceeded",
            level=AuditLevel.WARN,
            success=False,
            metadata={"attempts": decision.attempts, "retry_after": wait_minutes * 60},
        )
        raise RateLimitExceededError("Too many login attempts", message, retry_after=wait_minutes * 60)

    async def authenticate(self, request: AuthRequest, client_ip: str, audit: AuditTrail) -> AuthResponse:
        await self._enforce_rate_limit(client_ip, audit)

        action = request.action.value
        try:
            if request.action == AuthAction.SIGNIN:
                result = await self.identity.sign_in(request.email, request.password)
            else:
                result = await self.identity.sign_up(request.email, request.password)
        except AuthenticationError as e:
            audit.emit(f"{action}_failed", level=AuditLevel.WARN, success=False, error=e.message)
            raise

        user_id = str(result.user.id)
        if request.action == AuthAction.SIGNIN:
            try:
                await self.rate_limiter.clear(client_ip)
            except CounterStoreError as e:
                logger.error(f"Failed to clear auth rate limit after sign-in: {e}")
                audit.emit(
                    "rate_limit_clear_failed",
                    level=AuditLevel.ERROR,
                    success=False,
                    user_id=user_id,
                    error=e.message,
                )

        audit.emit(f"{action}_success", user_id=user_id)
        return result
