"""
EcoRide Backend - FastAPI Application

Main application entry point with middleware, routers, and OpenAPI
documentation.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ecoride import __version__
from ecoride.config import settings
from ecoride.database import close_db, get_db, get_redis, init_db
from ecoride.middleware.rate_limit import RateLimitMiddleware
from ecoride.routers import admin, bookings, notifications, reports, trips, users, websocket
from ecoride.services.exceptions import EcoRideError


logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    Handles startup and shutdown events:
    - Initialize database connections
    - Verify MongoDB and Redis
    - Cleanup on shutdown
    """
    await init_db()

    try:
        await get_db().client.admin.command("ping")
        logger.info("Connected to MongoDB")
    except Exception as e:
        logger.error(f"FAILED to connect to MongoDB: {e}")

    try:
        await get_redis().ping()
        logger.info("Redis connected")
    except Exception as e:
        logger.error(f"FAILED to connect to Redis: {e}")

    yield

    await close_db()


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="EcoRide API",
    description="""
    EcoRide - Ride-sharing Trip Matching and Booking API

    ## Features
    - Trip publishing with routed distance and duration
    - Corridor-aware trip search for passengers
    - Seat booking with atomic acceptance
    - Carbon savings, ride credits and loyalty levels on completion
    - In-app notifications, trip chat and live location over WebSocket

    ## Authentication
    Requests are authenticated upstream. The gateway forwards the account id
    in the `X-User-Id` header.
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)


# =============================================================================
# Middleware
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RateLimitMiddleware)


# =============================================================================
# Exception Handlers
# =============================================================================

@app.exception_handler(EcoRideError)
async def domain_exception_handler(request: Request, exc: EcoRideError):
    """Map domain errors to their HTTP status."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.error_code},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler for unhandled errors.

    Details are logged, never returned to the client.
    """
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Something went wrong. Please try again later."},
    )


# =============================================================================
# Routers
# =============================================================================

app.include_router(users.router, prefix=f"{settings.api_v1_str}/users", tags=["Users"])

app.include_router(trips.router, prefix=f"{settings.api_v1_str}/trips", tags=["Trips"])

app.include_router(bookings.router, prefix=f"{settings.api_v1_str}/bookings", tags=["Bookings"])

app.include_router(
    notifications.router,
    prefix=f"{settings.api_v1_str}/notifications",
    tags=["Notifications"],
)

app.include_router(reports.router, prefix=f"{settings.api_v1_str}/reports", tags=["Reports"])

app.include_router(admin.router, prefix=f"{settings.api_v1_str}/admin", tags=["Admin"])

app.include_router(websocket.router, prefix="/ws", tags=["WebSocket"])


# =============================================================================
# Health Check
# =============================================================================

@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for load balancers and monitoring."""
    return {"status": "healthy", "version": __version__}


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": "EcoRide API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }
