from fastapi import APIRouter, Depends, Request

from src.core.audit import AuditTrail
from src.core.enums import AuditLevel
from src.core.exception import GatewayError, InternalServiceError, ValidationFailedError
from src.core.logging import get_logger
from src.core.middlewares.ratelimit import get_client_ip
from src.core.schema import ErrorResponse, RateLimitedResponse, ValidationErrorResponse
from src.modules.auth.dependencies import get_auth_gateway_service
from src.modules.auth.schemas import AuthRequest, AuthResponse
from src.modules.auth.service import AuthGatewayService

logger = get_logger(__name__)

router = APIRouter()

AUDIT_FUNCTION_NAME = "auth-rate-limit"


@router.post(
    path="",
    response_model=AuthResponse,
    summary="Sign in or sign up",
    description="Email/password sign-in or sign-up, limited to 5 validated attempts per 15 minutes per client",
    openapi_extra=AuthRequest.openapi_request_body(),
    responses={
        400: {"model": ValidationErrorResponse, "description": "Validation failed."},
        401: {"model": ErrorResponse, "description": "Invalid credentials."},
        429: {"model": RateLimitedResponse, "description": "Too many login attempts."},
        500: {"model": ErrorResponse, "description": "Internal server error."},
    },
)
async def authenticate(
    request: Request,
    service: AuthGatewayService = Depends(get_auth_gateway_service),
):
    client_ip = get_client_ip(request)
    audit = AuditTrail(AUDIT_FUNCTION_NAME, client_ip)

    try:
        auth_request = AuthRequest.from_body(await request.body())
    except ValidationFailedError as e:
        audit.emit("validation_failed", level=AuditLevel.WARN, success=False, metadata={"errors": e.details})
        raise

    try:
        return await service.authenticate(auth_request, client_ip, audit)
    except GatewayError:
        raise
    except Exception as e:
        logger.error(f"Auth rate limit error: {e}", exc_info=True)
        audit.emit("internal_error", level=AuditLevel.ERROR, success=False, error=type(e).__name__)
        raise InternalServiceError() from e
