"""Main FastAPI application for the Daybook dashboard."""

import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from daybook.api.auth import router as auth_router
from daybook.core.config import get_settings
from daybook.core.logging_config import configure_logging, trace_id_ctx
from daybook.core.models.db_helper import db_helper

# Configure logging based on environment settings early during startup
settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Checks the database and creates missing tables on startup, closes the
    engine on shutdown.
    """
    # Startup
    logger.info("Starting %s...", settings.app_name)

    try:
        async with db_helper.engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection successful")
    except Exception as e:
        logger.error("Failed to connect to database: %s", e)
        raise

    if settings.database.auto_create:
        await db_helper.create_schema()
        logger.info("Database schema ready")

    logger.info("%s started on %s:%s", settings.app_name, settings.host, settings.port)

    yield

    # Shutdown
    logger.info("Shutting down %s...", settings.app_name)
    await db_helper.dispose()
    logger.info("Database connections closed")


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Personal dashboard backed by linked Google accounts",
        debug=settings.debug,
        lifespan=lifespan,
    )

    # ========================================
    # Middleware
    # ========================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.base_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def attach_trace_id(request: Request, call_next):
        trace_id = request.headers.get("X-Trace-Id") or str(uuid.uuid4())
        request.state.trace_id = trace_id
        token = trace_id_ctx.set(trace_id)
        try:
            response = await call_next(request)
        finally:
            trace_id_ctx.reset(token)
        response.headers["X-Trace-Id"] = trace_id
        return response

    # ========================================
    # Routers
    # ========================================

    app.include_router(auth_router, prefix="/api")

    # ========================================
    # Root Endpoints
    # ========================================

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "status": "running",
            "docs": "/docs",
        }

    @app.get("/health")
    async def health():
        """
        Health check endpoint.

        Returns:
            Health status of the application and its dependencies
        """
        try:
            async with db_helper.engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
            db_status = "healthy"
        except Exception as e:
            logger.error("Database health check failed: %s", e)
            db_status = "unhealthy"

        overall_status = "healthy" if db_status == "healthy" else "degraded"

        return {
            "status": overall_status,
            "services": {
                "database": db_status,
            },
        }

    # ========================================
    # Exception Handlers
    # ========================================

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """Global exception handler for unhandled errors."""
        logger.exception("Unhandled exception: %s", exc)
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "type": "internal_error",
            },
        )

    return app


# Create application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "daybook.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
