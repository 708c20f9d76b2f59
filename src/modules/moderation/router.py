from fastapi import APIRouter, Depends, Request

from src.core.audit import AuditTrail
from src.core.enums import AuditLevel
from src.core.exception import GatewayError, InternalServiceError, ValidationFailedError
from src.core.logging import get_logger
from src.core.middlewares.ratelimit import get_client_ip
from src.core.schema import ValidationErrorResponse
from src.modules.moderation.dependencies import get_moderation_service
from src.modules.moderation.schemas import (
    ModerationErrorResponse,
    ModerationRateLimitedResponse,
    ModerationRequest,
    ModerationVerdict,
)
from src.modules.moderation.services import ModerationService

logger = get_logger(__name__)

router = APIRouter()

AUDIT_FUNCTION_NAME = "moderate-content"


@router.post(
    path="/moderate",
    response_model=ModerationVerdict,
    summary="Moderate user-submitted text",
    description=(
        "Decide whether a caption or comment is safe to publish. "
        "Blocked content is rejected outright; flagged content is published and queued for review."
    ),
    openapi_extra=ModerationRequest.openapi_request_body(),
    responses={
        400: {"model": ValidationErrorResponse, "description": "Validation failed."},
        429: {"model": ModerationRateLimitedResponse, "description": "Too many moderation requests."},
        500: {"model": ModerationErrorResponse, "description": "Internal server error."},
    },
)
async def moderate_content(
    request: Request,
    service: ModerationService = Depends(get_moderation_service),
):
    client_ip = get_client_ip(request)
    audit = AuditTrail(AUDIT_FUNCTION_NAME, client_ip)

    try:
        moderation_request = ModerationRequest.from_body(await request.body())
    except ValidationFailedError as e:
        audit.emit("validation_failed", level=AuditLevel.WARN, success=False, metadata={"errors": e.details})
        raise

    try:
        return await service.moderate(moderation_request, client_ip, audit)
    except GatewayError:
        raise
    except Exception as e:
        logger.error(f"Moderation error: {e}", exc_info=True)
        audit.emit("internal_error", level=AuditLevel.ERROR, success=False, error=type(e).__name__)
        raise InternalServiceError(extra={"safe": True}) from e
