"""
FoodKeeper FastAPI Application - Main Entry Point
REST API for household food inventory and expiry tracking.

Features:
- JWT authentication with rotating refresh tokens
- Food inventory with status lifecycle and storage-based expiry extension
- Expiry alerts and a notification inbox
- Recipe suggestions from on-hand ingredients, favorites and ratings
- Shopping lists generated from recipes or used-up foods
- Storage tips reference data
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from foodkeeper.api.config import get_settings
from foodkeeper.api.errors import register_exception_handlers
from foodkeeper.api.middleware.logging import LoggingMiddleware, configure_logging
from foodkeeper.api.middleware.rate_limit import limiter, rate_limit_exceeded_handler
from foodkeeper.api.middleware.request_id import RequestIDMiddleware
from foodkeeper.api.middleware.security import SecurityHeadersMiddleware
from foodkeeper.api.routers import (
    auth,
    categories,
    foods,
    notifications,
    recipes,
    shopping,
    storage,
)
from foodkeeper.shared.database import Database, get_database
from foodkeeper.shared.seed_data import seed_reference_data
from foodkeeper.shared.utils.expiry import utcnow

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.
    Opens the database, creates the schema and seeds reference data.
    """
    logger.info(f"Starting {settings.APP_NAME} ({settings.ENVIRONMENT})...")
    database = Database(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    try:
        await database.create_all()
        if settings.DATABASE_SEED_ON_STARTUP:
            async with database.session() as session:
                await seed_reference_data(session)
        logger.info(f"Database health: {await database.health()}")
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        await database.dispose()
        raise

    app.state.database = database
    logger.info(f"{settings.APP_NAME} is ready")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    await database.dispose()


def create_app() -> FastAPI:
    """Build the FastAPI application with middleware, handlers and routers."""
    configure_logging(settings.LOG_LEVEL, settings.LOG_FILE)

    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "REST API for tracking household food, expiry dates and waste.\n\n"
            "Features:\n"
            "- JWT authentication with refresh tokens\n"
            "- Food inventory with expiry classification\n"
            "- Expiry notifications\n"
            "- Recipe suggestions and shopping lists\n"
            "- Storage tips\n"
        ),
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ========================================================================
    # Middleware Configuration
    # ========================================================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Response-Time", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        SecurityHeadersMiddleware,
        enable_hsts=settings.ENVIRONMENT == "production",
    )
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Default per-IP limit for every route; stricter limits are set per route
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)

    # ========================================================================
    # Exception Handlers
    # ========================================================================

    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    register_exception_handlers(app)

    # ========================================================================
    # Router Registration
    # ========================================================================

    app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
    app.include_router(foods.router, prefix="/foods", tags=["Foods"])
    app.include_router(categories.router, prefix="/categories", tags=["Categories"])
    app.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
    app.include_router(recipes.router, prefix="/recipes", tags=["Recipes"])
    app.include_router(shopping.router, prefix="/shopping", tags=["Shopping Lists"])
    app.include_router(storage.router, prefix="/storage", tags=["Storage Tips"])

    # ========================================================================
    # Health Check Endpoints
    # ========================================================================

    @app.get("/", summary="Root endpoint", description="API information")
    @limiter.exempt
    async def root(request: Request) -> dict:
        return {
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "status": "operational",
            "documentation": "/docs",
            "timestamp": utcnow().isoformat(),
        }

    @app.get("/health", summary="Health check", tags=["Health"])
    @limiter.exempt
    async def health_check(request: Request) -> dict:
        db_health = await get_database(request).health()
        return {
            "status": "healthy" if db_health["status"] == "healthy" else "unhealthy",
            "timestamp": utcnow().isoformat(),
            "database": db_health,
            "api": {"version": settings.APP_VERSION},
        }

    @app.get("/ready", summary="Readiness check", tags=["Health"])
    @limiter.exempt
    async def readiness_check(request: Request):
        db_health = await get_database(request).health()
        if db_health["status"] == "healthy":
            return {"status": "ready", "timestamp": utcnow().isoformat()}

        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "error": db_health.get("error"),
                "timestamp": utcnow().isoformat(),
            },
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "foodkeeper.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
