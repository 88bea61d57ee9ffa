"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from quicklink.aggregators.reconciler import start_reconciler, stop_reconciler
from quicklink.api.redirect import router as redirect_router
from quicklink.api.router import router as api_router
from quicklink.core.config import get_settings
from quicklink.core.database import close_db, init_db
from quicklink.core.exceptions import (
    QuickLinkError,
    quicklink_error_handler,
    validation_error_handler,
)
from quicklink.core.middleware import SecurityHeadersMiddleware
from quicklink.core.observability import (
    RequestIDMiddleware,
    RequestLoggingMiddleware,
    setup_observability,
)
from quicklink.core.rate_limit import limiter
from quicklink.services.geoip import close_geoip_service

settings = get_settings()

# Get logger (will be configured by setup_observability)
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown events."""
    # Startup
    logger.info(
        "Starting QuickLink API",
        version=settings.app_version,
        environment=settings.environment,
    )
    if settings.auto_create_tables:
        await init_db()
        logger.info("Database tables ensured")
    if settings.reconcile_enabled:
        await start_reconciler()

    yield

    # Shutdown
    logger.info("Shutting down QuickLink API")
    await stop_reconciler()
    close_geoip_service()
    await close_db()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="URL Shortener with Click Analytics",
    lifespan=lifespan,
)

# Set up observability (logging, tracing, metrics, Sentry)
setup_observability(app)

# Rate limiter state and exception handlers
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(QuickLinkError, quicklink_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)

# Middleware stack (order matters - first added = outermost = runs last on request, first on response)

# Request logging middleware (logs all requests with timing)
app.add_middleware(RequestLoggingMiddleware)

# Request ID middleware (adds unique ID to each request)
app.add_middleware(RequestIDMiddleware)

# Security headers middleware
app.add_middleware(
    SecurityHeadersMiddleware,
    enable_hsts=not settings.debug,  # Enable HSTS in production
)

# CORS middleware (innermost - runs first on request)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset", "X-Request-ID"],
)


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Welcome to QuickLink API", "version": settings.app_version}


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "environment": settings.environment}


# Include routers
app.include_router(api_router)

# Redirect router - must be last so /api/*, /health and /metrics take precedence
# The redirect endpoint handles /{short_code} for URL redirects
app.include_router(redirect_router)
