"""
FastAPI Application Entry Point.

This is the main application file for the Ride Proxy Backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from rideproxy.app.core.config import settings
from rideproxy.app.core.observability import ObservabilityMiddleware, configure_logging
from rideproxy.app.core.redis_client import close_redis
from rideproxy.app.api.v1.router import router as api_v1_router
from rideproxy.app.db.session import engine, Base, AsyncSessionLocal
from rideproxy.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from rideproxy.app.models.party import Party
from rideproxy.app.models.proxy_number import ProxyNumber
from rideproxy.app.models.ride import Ride
from rideproxy.app.models.proxy_binding import ProxyBinding
from rideproxy.app.models.audit_log import AuditLog
from rideproxy.app.models.dlq import DeadLetterQueue
from rideproxy.seed_example_data import seed_example_data

configure_logging(settings.debug)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.
    
    1. Creates database tables on startup.
    2. Seeds the demo customers, drivers and proxy numbers when enabled.
    3. Closes the Redis and database connections on shutdown.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    if settings.seed_example_data:
        async with AsyncSessionLocal() as db:
            await seed_example_data(db)
    yield
    await close_redis()
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Masks customer and driver phone numbers behind a rotating pool of proxy numbers",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.
    
    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.
    
    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to Ride Proxy Backend API",
        "docs": "/docs",
        "health": "/health",
    }
