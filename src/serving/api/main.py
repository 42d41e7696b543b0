"""
FastAPI Application Factory

Creates and configures the admin analytics API.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
import structlog
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from src.config import get_settings
from src.database.connection import init_database, close_database, get_db
from src.ingestion.seed_db import seed_sample_products
from src.serving.cache import init_redis, close_redis
from src.serving.api.errors import register_exception_handlers
from src.serving.api.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from src.serving.api.routes import admin_router, health_router

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    from src.config.logging import configure_logging

    settings = get_settings()
    configure_logging()
    logger.info("Starting Storefront Analytics API", environment=settings.app_env)

    # The record store is required; startup fails without it
    await init_database(create_schema=settings.database.async_url.startswith("sqlite"))

    if settings.seed_sample_products:
        async with get_db() as db:
            await seed_sample_products(db)

    if settings.analytics.summary_cache_enabled:
        try:
            await init_redis()
        except Exception as e:
            logger.warning("Redis init failed, summary cache disabled", error=str(e))

    yield

    logger.info("Shutting down...")
    await close_database()
    await close_redis()


def create_api_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        Configured FastAPI app instance
    """
    settings = get_settings()

    app = FastAPI(
        title="Storefront Analytics API",
        description="Admin dashboard analytics over accounts, products and purchases",
        version=settings.version,
        debug=settings.debug and not settings.is_production,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "PATCH"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)

    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(admin_router, prefix="/api/v1/admin", tags=["Admin Analytics"])

    @app.get("/api/v1/info")
    async def api_info():
        """API information endpoint."""
        return {
            "name": "Storefront Analytics API",
            "version": settings.version,
            "environment": settings.app_env,
        }

    if settings.monitoring.metrics_enabled:
        @app.get("/metrics", include_in_schema=False)
        async def metrics():
            """Prometheus scrape endpoint."""
            return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app
