"""REST API — FastAPI Application Factory."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from restapi import health
from restapi.auth.router import protected_router, router as auth_router, users_router
from restapi.common.exceptions import register_exception_handlers
from restapi.common.rate_limit import IPRateLimiter, RateLimitPolicy, enforce_rate_limit
from restapi.config import settings
from restapi.database import dispose_db, init_db
from restapi.logging_config import configure_logging
from restapi.middleware import register_middleware, validate_content_type

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    logger.info(
        "Starting application",
        extra={
            "app_name": settings.APP_NAME,
            "environment": settings.ENVIRONMENT,
            "port": settings.PORT,
        },
    )
    await init_db()
    yield
    logger.info("Shutting down")
    await dispose_db()


def _build_limiter(policy: RateLimitPolicy, name: str) -> IPRateLimiter:
    return IPRateLimiter(
        policy,
        cleanup_threshold=settings.RATE_LIMIT_CLEANUP_THRESHOLD,
        cleanup_batch=settings.RATE_LIMIT_CLEANUP_BATCH,
        name=name,
    )


def create_app(
    api_limiter: Optional[IPRateLimiter] = None,
    auth_limiter: Optional[IPRateLimiter] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Each app owns its limiters; pass them in to share or pre-configure them.
    """
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        lifespan=lifespan,
    )

    register_exception_handlers(app)
    register_middleware(app)

    # Rate limiting (per-IP token buckets, one registry per policy)
    if settings.RATE_LIMIT_ENABLED:
        app.state.api_limiter = (
            api_limiter if api_limiter is not None
            else _build_limiter(settings.api_rate_limit_policy(), "api")
        )
        app.state.auth_limiter = (
            auth_limiter if auth_limiter is not None
            else _build_limiter(settings.auth_rate_limit_policy(), "auth")
        )
    else:
        app.state.api_limiter = api_limiter
        app.state.auth_limiter = auth_limiter

    if settings.CORS_ENABLED:
        origins = settings.cors_origins_list
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials="*" not in origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Health checks (no auth, no rate limit)
    app.include_router(health.router, prefix="/health")

    api = APIRouter(
        prefix="/api",
        dependencies=[Depends(enforce_rate_limit), Depends(validate_content_type)],
    )
    api.include_router(auth_router, prefix="/auth")
    # Legacy paths kept for older clients: /api/register, /api/login
    api.include_router(auth_router, include_in_schema=False)
    api.include_router(protected_router, prefix="/protected")
    api.include_router(users_router, prefix="/users")
    app.include_router(api)

    return app


app = create_app()
