"""Catalog manager main application module.

This module initializes the FastAPI application and configures
core middleware, routers, exception handlers and startup/shutdown events.
"""

from contextlib import asynccontextmanager
from http import HTTPStatus
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from catalog_manager.api.categories import router as categories_router
from catalog_manager.api.health import router as health_router
from catalog_manager.api.middleware import error_body, setup_middleware
from catalog_manager.api.products import router as products_router
from catalog_manager.domain.exceptions import (
    CatalogError,
    InvalidFilterError,
    NotFoundError,
    PayloadValidationError,
    StoreFailureError,
)
from catalog_manager.infrastructure.config import settings
from catalog_manager.infrastructure.database import create_tables, engine
from catalog_manager.infrastructure.logging import configure_logging

configure_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown events.

    Args:
        app: The FastAPI application instance.

    Yields:
        None after startup, cleanup happens after yield.
    """
    logger.info(
        "Starting catalog manager",
        version=settings.api_version,
        debug=settings.debug,
    )

    if settings.create_tables_on_startup:
        await create_tables()
        logger.info("Database tables ready")

    yield

    logger.info("Shutting down catalog manager")
    await engine.dispose()


app = FastAPI(
    title="Catalog Manager API",
    description="Products and categories with filtered, paginated listing",
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware (must be added before custom middleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Setup custom middleware (request ID, error handling)
setup_middleware(app)

# Include routers
app.include_router(health_router, tags=["Health"])
app.include_router(products_router)
app.include_router(categories_router)


# ============================================================================
# Custom Exception Handlers
# ============================================================================


def _error_response(
    request: Request,
    status_code: int,
    error_code: str,
    message: str,
    details: list[dict] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_body(
            error_code,
            message,
            getattr(request.state, "request_id", None),
            details,
        ),
    )


@app.exception_handler(CatalogError)
async def catalog_exception_handler(request: Request, exc: CatalogError) -> JSONResponse:
    """Map catalog errors to HTTP responses."""
    if isinstance(exc, InvalidFilterError):
        return _error_response(
            request,
            status.HTTP_400_BAD_REQUEST,
            exc.error_code,
            exc.message,
            [{"field": exc.field, "message": exc.message}],
        )

    if isinstance(exc, PayloadValidationError):
        return _error_response(
            request,
            status.HTTP_400_BAD_REQUEST,
            exc.error_code,
            exc.message,
            exc.errors,
        )

    if isinstance(exc, NotFoundError):
        return _error_response(
            request, status.HTTP_404_NOT_FOUND, exc.error_code, exc.message
        )

    if isinstance(exc, StoreFailureError):
        # Already logged with traceback where it was raised
        return _error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            exc.error_code,
            "An internal error occurred",
        )

    logger.error("Unmapped catalog error", error=exc.message)
    return _error_response(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, exc.error_code, exc.message
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report schema violations as 400 with per-field details."""
    details = [
        {
            "field": ".".join(str(part) for part in error["loc"][1:]) or None,
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    summary = "; ".join(
        f"{detail['field']}: {detail['message']}" if detail["field"] else detail["message"]
        for detail in details
    )
    return _error_response(
        request,
        status.HTTP_400_BAD_REQUEST,
        "VALIDATION_ERROR",
        f"Validation error: {summary}",
        details,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Give routing errors (unknown path, wrong method) the standard error body."""
    response = _error_response(
        request,
        exc.status_code,
        HTTPStatus(exc.status_code).name,
        str(exc.detail),
    )
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions with consistent format."""
    logger.exception(
        "Unhandled exception in handler",
        path=request.url.path,
        method=request.method,
        error=str(exc),
    )
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_ERROR",
        "An internal error occurred",
    )
