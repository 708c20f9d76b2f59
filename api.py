from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import APIRouter, FastAPI
from fastapi.middleware import Middleware
from fastapi.middleware.cors import CORSMiddleware

from src.core.config import settings
from src.core.database import get_engine
from src.core.handler import init as init_exception_handlers
from src.core.logging import configure_logging, get_logger
from src.core.middlewares.logging import LoggingMiddleware
from src.core.middlewares.security import MaxRequestSizeMiddleware, SecurityHeadersMiddleware
from src.core.services.redis_service import redis_service
from src.modules.auth.router import router as auth_router
from src.modules.health.router import router as health_router
from src.modules.moderation.router import router as moderation_router

configure_logging()
logger = get_logger(__name__)

environment: str = settings.ENVIRONMENT

CORS_ALLOWED_HEADERS = [
    "authorization",
    "x-client-info",
    "apikey",
    "content-type",
    "x-forwarded-for",
    "x-real-ip",
]

cors_origins = [str(origin).rstrip("/") for origin in settings.BACKEND_CORS_ORIGINS] or ["*"]

middleware_list: list[Middleware] = [
    Middleware(
        CORSMiddleware,  # ty:ignore[invalid-argument-type]
        allow_origins=cors_origins,
        allow_credentials=cors_origins != ["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=CORS_ALLOWED_HEADERS,
    ),
    Middleware(SecurityHeadersMiddleware),  # ty:ignore[invalid-argument-type]
    Middleware(MaxRequestSizeMiddleware),  # ty:ignore[invalid-argument-type]
    Middleware(LoggingMiddleware),  # ty:ignore[invalid-argument-type]
]

openapi_tags = [
    {
        "name": "Moderation",
        "description": (
            "Decide whether captions and comments are safe to publish. "
            "Rate limit: 30 requests per 5 minutes per client."
        ),
    },
    {
        "name": "Authentication",
        "description": "Sign-in and sign-up. Rate limit: 5 attempts per 15 minutes per client.",
    },
    {"name": "Health", "description": "Health Check Endpoint"},
]


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    logger.info("Application startup: abuse prevention gateway ready")

    yield

    logger.info("Application shutdown: Cleaning up resources...")
    await redis_service.close()
    await get_engine().dispose()


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Rate limiting and content moderation gateway",
    version="1.0",
    middleware=middleware_list,
    openapi_tags=openapi_tags,
    lifespan=lifespan,
    docs_url=None if environment == "production" else "/api/docs",
    redoc_url=None if environment == "production" else "/api/redoc",
    openapi_url=None if environment == "production" else "/api/openapi.json",
)

init_exception_handlers(app)

api_v1_router = APIRouter(prefix=settings.API_V1_STR)
api_v1_router.include_router(router=moderation_router, tags=["Moderation"])
api_v1_router.include_router(router=auth_router, prefix="/auth", tags=["Authentication"])

app.include_router(api_v1_router)
app.include_router(router=health_router)


if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=8000)
