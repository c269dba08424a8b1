"""
FoodKeeper MCP Service - Main Entry Point
Tool-style HTTP endpoints over the same database and services as the REST API.

Every response is an envelope:
    {"success": true, "data": ...}
    {"success": false, "error": message}
"""

import json
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import date
from typing import Any, AsyncGenerator, Dict, List

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from foodkeeper.api.config import get_settings
from foodkeeper.api.dependencies import get_today
from foodkeeper.api.errors import (
    AppError,
    NotFoundError,
    ValidationError,
    translate_database_error,
    validation_details,
)
from foodkeeper.api.middleware.logging import LoggingMiddleware, configure_logging
from foodkeeper.api.middleware.request_id import RequestIDMiddleware
from foodkeeper.api.schemas import CategoryResponse
from foodkeeper.api.services import food_service, storage_service
from foodkeeper.mcp.tools import TOOLS
from foodkeeper.shared.database import Database, get_database, get_session
from foodkeeper.shared.seed_data import seed_reference_data
from foodkeeper.shared.utils.expiry import utcnow

settings = get_settings()
logger = logging.getLogger(__name__)

RESOURCES = ["food-categories://list", "storage-tips://list"]
AVAILABLE_ENDPOINTS = [
    "GET /mcp/info",
    "POST /mcp/tools/{tool}",
    "GET /mcp/resources/food-categories",
    "GET /mcp/resources/storage-tips",
    "GET /health",
]


def success(data: Any) -> Dict[str, Any]:
    return {"success": True, "data": data}


def failure(status_code: int, error: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error, **extra})


# ============================================================================
# Exception Handlers
# ============================================================================

async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    extra = {"details": exc.details} if exc.details is not None else {}
    return failure(exc.status_code, exc.message, **extra)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return failure(
        status.HTTP_400_BAD_REQUEST,
        "Request validation failed",
        details=validation_details(exc),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return failure(
            exc.status_code,
            f"MCP endpoint {request.url.path} not found",
            available_endpoints=AVAILABLE_ENDPOINTS,
        )
    return failure(exc.status_code, str(exc.detail))


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    translated = translate_database_error(exc)
    logger.error(f"Database error ({translated.status_code}): {exc}", exc_info=translated.status_code >= 500)
    return failure(translated.status_code, translated.message)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return failure(status.HTTP_500_INTERNAL_SERVER_ERROR, "An unexpected error occurred")


# ============================================================================
# Application
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info(f"Starting {settings.MCP_SERVER_NAME} {settings.MCP_SERVER_VERSION}...")
    database = Database(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    try:
        await database.create_all()
        if settings.DATABASE_SEED_ON_STARTUP:
            async with database.session() as session:
                await seed_reference_data(session)
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        await database.dispose()
        raise

    app.state.database = database
    logger.info(f"Available MCP tools: {', '.join(TOOLS)}")

    yield

    await database.dispose()


def create_app() -> FastAPI:
    configure_logging(settings.LOG_LEVEL, settings.LOG_FILE)

    app = FastAPI(
        title="FoodKeeper MCP Service",
        description="Tool endpoints for food inventory, recipes, shopping lists and storage advice",
        version=settings.MCP_SERVER_VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    @app.get("/mcp/info")
    async def info() -> Dict[str, Any]:
        return {
            "name": settings.MCP_SERVER_NAME,
            "version": settings.MCP_SERVER_VERSION,
            "description": "MCP server for food waste reduction app",
            "capabilities": {
                "tools": list(TOOLS),
                "resources": RESOURCES,
            },
        }

    @app.post("/mcp/tools/{tool_name}")
    async def call_tool(
        tool_name: str,
        request: Request,
        session: AsyncSession = Depends(get_session),
        today: date = Depends(get_today),
    ) -> Dict[str, Any]:
        """Validate the JSON body against the tool's input model and run it."""
        if tool_name not in TOOLS:
            raise NotFoundError(f"Unknown tool: {tool_name}")
        input_model, handler = TOOLS[tool_name]

        raw = await request.body()
        try:
            body = json.loads(raw) if raw else {}
        except ValueError:
            raise ValidationError("Request body must be JSON", {"body": ["Invalid JSON"]})

        try:
            params = input_model.model_validate(body)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid input for {tool_name}", validation_details(e))

        logger.info(f"MCP tool call: {tool_name}")
        return success(await handler(session, params, today))

    @app.get("/mcp/resources/food-categories")
    async def food_categories(session: AsyncSession = Depends(get_session)) -> Dict[str, Any]:
        categories = await food_service.list_categories(session)
        return success([
            CategoryResponse.model_validate(category).model_dump(mode="json")
            for category in categories
        ])

    @app.get("/mcp/resources/storage-tips")
    async def storage_tips(session: AsyncSession = Depends(get_session)) -> Dict[str, Any]:
        """Tip texts grouped by category."""
        grouped: Dict[str, List[str]] = defaultdict(list)
        for tip in await storage_service.list_tips(session):
            grouped[tip.category or "その他"].extend(tip.tips)
        return success([{"category": category, "tips": tips} for category, tips in grouped.items()])

    @app.get("/health")
    async def health(request: Request) -> Dict[str, Any]:
        db_health = await get_database(request).health()
        return {
            "status": "OK" if db_health["status"] == "healthy" else "DEGRADED",
            "service": "MCP Server",
            "database": db_health["status"],
            "timestamp": utcnow().isoformat(),
            "version": settings.MCP_SERVER_VERSION,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "foodkeeper.mcp.main:app",
        host=settings.MCP_HOST,
        port=settings.MCP_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )
