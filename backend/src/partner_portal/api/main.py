"""Main FastAPI application for the partner portal API."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.middleware import SlowAPIMiddleware

from partner_portal import __version__
from partner_portal.api.errors import install_exception_handlers
from partner_portal.api.rate_limit import limiter
from partner_portal.api.v1.admin import router as admin_router
from partner_portal.api.v1.auth import router as auth_router
from partner_portal.api.v1.media import router as media_router
from partner_portal.api.v1.raffles import router as raffles_router
from partner_portal.api.v1.referral import router as referral_router
from partner_portal.logging_config import get_logger, setup_logging
from partner_portal.settings import settings
from partner_portal.storage.db import db

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    setup_logging()
    logger.info("app_starting", env=settings.env)

    db.create_tables()
    logger.info("database_tables_created")

    yield

    # Shutdown
    logger.info("app_shutting_down")


def _allowed_origins(is_production: bool) -> list[str]:
    origins = [
        origin.strip()
        for origin in settings.allowed_origins.split(",")
        if origin.strip()
    ]

    # Block wildcard in production
    if is_production and "*" in origins:
        logger.error("cors_wildcard_blocked", message="Wildcard CORS not allowed in production")
        return []
    return origins


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI app
    """
    # Hide API docs in production
    is_production = settings.env == "production"

    app = FastAPI(
        title="Partner Portal API",
        description="Referral intake, partner points and raffles",
        version=__version__,
        docs_url=None if is_production else "/api/docs",
        redoc_url=None if is_production else "/api/redoc",
        openapi_url=None if is_production else "/api/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_allowed_origins(is_production),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept"],
        max_age=3600,  # Cache preflight for 1 hour
    )

    # Rate limiting: default limits apply to every route
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)

    install_exception_handlers(app)

    # Include v1 API routers
    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(referral_router, prefix="/api/v1")
    app.include_router(admin_router, prefix="/api/v1")
    app.include_router(raffles_router, prefix="/api/v1")
    app.include_router(media_router, prefix="/api/v1")

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": __version__,
            "env": settings.env,
        }

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": "Partner Portal API",
            "version": __version__,
            "docs": "/api/docs",
        }

    return app


# Create app instance
app = create_app()
