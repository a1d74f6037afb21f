"""
ProDeck API - Main application entry point.
"""
import time
from contextlib import asynccontextmanager
from typing import Any, Dict

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.asgi import SentryAsgiMiddleware
from structlog.contextvars import bind_contextvars, clear_contextvars

from prodeck.api.v1.router import api_router
from prodeck.core.config import settings
from prodeck.core.errors import ErrorCode, ErrorResponse
from prodeck.core.exceptions import ProDeckException
from prodeck.core.logging import (
    get_logger,
    log_performance_metrics,
    log_request_details,
    setup_logging,
)

# Setup logging
setup_logging()
logger = get_logger(__name__)


# Initialize Sentry if configured
if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT or settings.ENVIRONMENT,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    """
    logger.info(
        "Starting ProDeck API",
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )
    logger.info("AI configuration", **settings.get_ai_config())
    if not settings.GOOGLE_API_KEY:
        logger.warning("planner_unconfigured", setting="GOOGLE_API_KEY")

    yield

    logger.info("Shutting down ProDeck API")


# Create FastAPI application
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.APP_VERSION,
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json" if not settings.is_production else None,
    docs_url=f"{settings.API_V1_PREFIX}/docs" if not settings.is_production else None,
    redoc_url=f"{settings.API_V1_PREFIX}/redoc" if not settings.is_production else None,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Request-ID"],
)


# Add request ID middleware
@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add unique request ID to each request."""
    request_id = request.headers.get("X-Request-ID", str(time.time_ns()))

    # Bind request ID to logging context
    clear_contextvars()
    bind_contextvars(request_id=request_id)

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# Add request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests with timing information."""
    start_time = time.time()

    logger.info(
        "Request started",
        **log_request_details(
            request_id=request.headers.get("X-Request-ID", ""),
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
        ),
    )

    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000
    logger.info(
        "Request completed",
        **log_performance_metrics(
            operation=f"{request.method} {request.url.path}",
            duration_ms=duration_ms,
            success=response.status_code < 500,
            status_code=response.status_code,
        ),
    )

    return response


# Add Sentry middleware if configured
if settings.SENTRY_DSN:
    app.add_middleware(SentryAsgiMiddleware)


@app.exception_handler(ProDeckException)
async def prodeck_exception_handler(request: Request, exc: ProDeckException):
    """Render application exceptions with their error code."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "Request failed",
        error_type=type(exc).__name__,
        error_message=exc.message,
        status_code=exc.status_code,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse.from_exception(exc).to_dict(),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Report the first invalid field in the standard error shape."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:]) or "body"
    response = ErrorResponse.validation_error(
        field=field,
        message=first.get("msg", "Invalid input provided"),
        code=ErrorCode.VAL_INVALID_INPUT,
    )
    return JSONResponse(status_code=422, content=response.to_dict())


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions."""
    logger.error(
        "Unhandled exception",
        exc_info=exc,
        path=request.url.path,
        method=request.method,
    )

    # Don't expose internal errors in production
    message = None if settings.is_production else str(exc)
    response = ErrorResponse(code=ErrorCode.SYS_INTERNAL_ERROR, message=message)
    return JSONResponse(status_code=500, content=response.to_dict())


# Health check endpoint
@app.get("/health")
async def health_check() -> Dict[str, Any]:
    """
    Health check endpoint.

    Returns:
        Health status and application info
    """
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }


# Include API router
app.include_router(api_router, prefix=settings.API_V1_PREFIX)


# Root endpoint
@app.get("/")
async def root() -> Dict[str, str]:
    """
    Root endpoint.

    Returns:
        API information
    """
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": f"{settings.API_V1_PREFIX}/docs" if not settings.is_production else "Disabled in production",
    }
