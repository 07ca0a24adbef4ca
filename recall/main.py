"""
Main FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from recall import __version__
from recall.api import api_router
from recall.api.errors import register_exception_handlers
from recall.core.config import Settings, settings
from recall.core.env_validation import validate_or_raise
from recall.core.logging import get_logger, setup_logging
from recall.core.middleware import BodySizeLimitMiddleware, SecurityHeadersMiddleware
from recall.core.rate_limit import RateLimitMiddleware
from recall.services.container import ServiceContainer, build_services

# Setup logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan events.
    Builds the service container on startup (unless one was injected)
    and closes it on shutdown.
    """
    app_settings: Settings = app.state.settings

    # Startup
    logger.info(
        "starting_application",
        app_name=app_settings.APP_NAME,
        environment=app_settings.APP_ENV,
        version=__version__,
    )

    owns_services = getattr(app.state, "services", None) is None
    if owns_services:
        validate_or_raise(app_settings)
        app.state.services = await build_services(app_settings)

    yield

    # Shutdown
    logger.info("shutting_down_application")

    if owns_services:
        await app.state.services.close()
        app.state.services = None


def create_app(
    services: Optional[ServiceContainer] = None,
    app_settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        services: Pre-built service container (tests); built in the
            lifespan when omitted
        app_settings: Settings to use (default: module-level settings)
    """
    app_settings = app_settings or (services.settings if services else settings)

    app = FastAPI(
        title=app_settings.APP_NAME,
        description="Recall - personal knowledge capture and semantic search API",
        version=__version__,
        docs_url="/docs" if app_settings.DEBUG else None,
        redoc_url="/redoc" if app_settings.DEBUG else None,
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.services = services

    # Add middleware (last added runs first)
    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=app_settings.MAX_BODY_BYTES)
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=app_settings.RATE_LIMIT_MAX_REQUESTS,
        window_seconds=app_settings.RATE_LIMIT_WINDOW_SECONDS,
        enabled=app_settings.RATE_LIMIT_ENABLED,
        trust_proxy_headers=app_settings.RATE_LIMIT_TRUST_PROXY_HEADERS,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)

    register_exception_handlers(app)

    # Include API routers
    app.include_router(api_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "recall.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
