"""
Main FastAPI application entry point.
Configures logging, exception handlers, middleware, and routers.
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from recommender.api.dependencies import get_key_value_store, get_search_provider
from recommender.api.routers import health_router, history_router, recommendations_router
from recommender.config import get_settings
from recommender.config.logging import configure_logging
from recommender.core.exceptions import AppException
from recommender.core.telemetry import setup_telemetry


# =============================================================================
# Lifespan (Startup/Shutdown)
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    logger = logging.getLogger(__name__)
    settings = get_settings()

    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Redis configured: {bool(settings.REDIS_URL)}")
    logger.info(f"Daily refresh limit: {settings.DAILY_REFRESH_LIMIT}")
    if not settings.YOUTUBE_API_KEY:
        logger.warning("YOUTUBE_API_KEY not set, recommendation requests will be rejected")

    yield

    # Shutdown
    logger.info("Shutting down application")
    await get_search_provider().close()
    await get_key_value_store().close()


# =============================================================================
# Exception Handlers
# =============================================================================


async def app_exception_handler(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    """Handle custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle unexpected exceptions - return generic error."""
    logger = logging.getLogger(__name__)
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
            }
        },
    )


# =============================================================================
# Application Factory
# =============================================================================


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Configure structured logging
    configure_logging(debug=settings.DEBUG)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="""
        Podcast Recommender API

        Streams personalized long-form podcast recommendations from YouTube.

        ## Features
        - Shared per-topic video pools with progressive search relaxation
        - Per-user seen tracking so videos are not repeated for five days
        - Two fresh batches per user per day, with replay afterwards
        - LLM-generated search queries and per-video reasoning
        - Observability: JSON logs, Prometheus, OpenTelemetry
        """,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Register exception handlers
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Include routers
    app.include_router(health_router)
    app.include_router(recommendations_router)
    app.include_router(history_router)

    # Setup Telemetry (Metrics & Tracing)
    setup_telemetry(app)

    return app


# Create application instance
app = create_app()


# =============================================================================
# Development Entry Point
# =============================================================================


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "recommender.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
