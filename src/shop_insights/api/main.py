"""
FastAPI application entry point for Shop Insights.
"""

# Load environment variables FIRST before any other imports
from pathlib import Path
from dotenv import load_dotenv

# src/shop_insights/api/main.py -> project root
env_file = Path(__file__).parent.parent.parent.parent / ".env"
if env_file.exists():
    load_dotenv(env_file)

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import PlainTextResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from shop_insights import __version__
from shop_insights.api.routes import analytics, auth, health, sync, tenants, webhooks
from shop_insights.api.middleware.error_handler import ErrorHandlerMiddleware, register_exception_handlers
from shop_insights.database.connection import dispose_engine, get_engine
from shop_insights.monitoring import (
    MetricsMiddleware,
    setup_sentry,
    get_metrics,
)
from shop_insights.utils.config import get_config
from shop_insights.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging()
    logger.info("Starting Shop Insights API...")

    config = get_config()
    if config.webhook_verification_disabled:
        logger.warning("Webhook signature verification is DISABLED for this process")

    # Connection pool lives for the whole process
    get_engine()
    setup_sentry()
    get_metrics()

    logger.info("API started successfully")

    yield

    logger.info("Shutting down Shop Insights API...")
    dispose_engine()


def create_app() -> FastAPI:
    """Build the application with middleware, error handlers and routes."""
    config = get_config()

    app = FastAPI(
        title="Shop Insights API",
        description="Multi-tenant Shopify analytics backend",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # GZip compression
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    # Custom middlewares (last added runs first)
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(MetricsMiddleware)

    register_exception_handlers(app)

    # Register routes
    app.include_router(health.router, prefix="/health", tags=["Health"])
    app.include_router(webhooks.router, prefix="/webhooks", tags=["Webhooks"])
    app.include_router(auth.router, prefix="/api/v1/auth", tags=["Authentication"])
    app.include_router(analytics.router, prefix="/api/v1/analytics", tags=["Analytics"])
    app.include_router(sync.router, prefix="/api/v1/sync", tags=["Sync"])
    app.include_router(tenants.router, prefix="/api/v1/tenants", tags=["Tenants"])

    @app.get("/metrics", tags=["Monitoring"])
    async def metrics():
        """Prometheus metrics endpoint."""
        return PlainTextResponse(
            generate_latest(get_metrics().registry),
            media_type=CONTENT_TYPE_LATEST
        )

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint."""
        return {
            "name": "Shop Insights API",
            "version": __version__,
            "status": "operational",
            "docs": "/docs"
        }

    return app


app = create_app()


def main():
    import uvicorn

    config = get_config()
    uvicorn.run(
        "shop_insights.api.main:app",
        host=config.api_host,
        port=config.api_port,
        reload=config.debug,
    )


if __name__ == "__main__":
    main()
