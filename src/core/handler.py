from logging import Logger
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.responses import JSONResponse

from src.core.exception import BaseAppError, GatewayError, RateLimitExceededError
from src.core.logging import get_logger
from src.core.schema import validation_details

logger: Logger = get_logger(__name__)


def init(app: FastAPI):
    def _result(status_code: int, detail: Any, extra: dict | None = None, headers: dict | None = None):
        logger.debug({status_code, str(detail)})
        content = {"error": detail, **(extra or {})}
        return JSONResponse(status_code=status_code, content=content, headers=headers)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(_request: Request, exc: HTTPException):
        logger.debug(f"HTTPException handler caught: {type(exc).__name__} - {exc.detail}")
        return _result(exc.status_code, str(exc.detail), headers=exc.headers)  # ty:ignore[invalid-argument-type]

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError):
        return _result(
            status.HTTP_400_BAD_REQUEST, "Validation failed", extra={"details": validation_details(exc.errors())}
        )

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(_request: Request, exc: GatewayError):
        headers = None
        if isinstance(exc, RateLimitExceededError):
            headers = {"Retry-After": str(exc.retry_after)}
        return _result(exc.status_code, exc.message, extra=exc.extra, headers=headers)

    @app.exception_handler(BaseAppError)
    async def app_exception_handler(_request: Request, exc: BaseAppError):
        logger.debug(f"BaseAppError handler caught: {type(exc).__name__} - {exc.message}")
        return _result(status.HTTP_400_BAD_REQUEST, exc.message)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled exception: {type(exc).__name__}: {exc!s}",
            exc_info=True,
            extra={
                "request_path": str(request.url.path),
                "request_method": request.method,
                "exception_type": type(exc).__name__,
            },
        )

        return _result(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")
