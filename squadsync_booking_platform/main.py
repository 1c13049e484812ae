"""FastAPI application setup and configuration."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from squadsync_booking_platform.config import settings
from squadsync_booking_platform.api import api_router
from squadsync_booking_platform.database import init_database, close_database
from squadsync_booking_platform.middleware import (
    ErrorHandlerMiddleware,
    RateLimiterMiddleware,
    LoggingMiddleware
)
from squadsync_booking_platform.utils.health_check import get_health_status
from squadsync_booking_platform.utils.logging_config import setup_logging

# Set up logging
setup_logging(
    log_level="DEBUG" if settings.debug else settings.log_level,
    log_file="logs/squadsync.log" if settings.environment == "production" else None,
    enable_json_logging=settings.enable_json_logging or settings.environment == "production",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    # Startup
    logger.info("Starting SquadSync Booking Platform")
    await init_database()
    yield
    # Shutdown
    logger.info("Shutting down SquadSync Booking Platform")
    await close_database()


app = FastAPI(
    title="SquadSync Booking Platform API",
    description="""
    ## SquadSync Booking Platform

    Campus sports facility booking for students, faculty and class representatives.

    ### Key Features

    * **Court Booking**: Hourly slot grid per court with conflict checks and time blocks
    * **Equipment Lending**: Stock-checked equipment bookings, issue and return with delay fees
    * **Class Bookings**: Class representatives book on behalf of their class with a class code
    * **Approval Workflow**: Faculty and admins approve, reject and complete bookings
    * **Notifications**: In-app notifications and email for every status change
    * **Admin Analytics**: Utilisation, peak hours and monthly trends

    ### Authentication

    Use the token returned by `/api/v1/auth/login` or `/api/v1/auth/class-login`
    in the header `Authorization: Bearer <your_access_token>`.

    ### Error Handling

    ```json
    {
      "error": {
        "error_code": "BOOKING_CONFLICT",
        "message": "Human readable error message",
        "details": {},
        "suggestions": ["Helpful suggestions"]
      }
    }
    ```
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "authentication", "description": "Registration, login and class login"},
        {"name": "user-management", "description": "Admin user management"},
        {"name": "classes", "description": "Class registration and class codes"},
        {"name": "courts", "description": "Courts and their daily slot grids"},
        {"name": "time-blocks", "description": "Maintenance and event blocks"},
        {"name": "equipment", "description": "Equipment inventory"},
        {"name": "equipment-issues", "description": "Issuing and returning equipment"},
        {"name": "bookings", "description": "Court and equipment bookings"},
        {"name": "admin", "description": "Staff and admin operations"},
        {"name": "notifications", "description": "In-app notifications"},
        {"name": "analytics", "description": "Admin analytics and reporting"},
        {"name": "health", "description": "System health endpoints"},
    ],
    lifespan=lifespan,
)

# Middleware runs in reverse order of registration

app.add_middleware(
    ErrorHandlerMiddleware,
    debug=settings.debug
)

if settings.enable_rate_limiting:
    app.add_middleware(
        RateLimiterMiddleware,
        default_limit=settings.default_rate_limit,
        default_window=settings.default_rate_window,
        burst_limit=settings.burst_rate_limit,
        burst_window=settings.burst_rate_window
    )

app.add_middleware(
    LoggingMiddleware,
    log_requests=settings.enable_request_logging,
    log_responses=settings.enable_request_logging
)

if settings.debug:
    # Wildcard origins cannot be combined with credentials
    cors_origins = ["*"]
    cors_allow_credentials = False
else:
    cors_origins = settings.cors_origins
    cors_allow_credentials = settings.cors_allow_credentials

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
    expose_headers=settings.cors_expose_headers
)

# Include API routes
app.include_router(api_router)


@app.get("/", tags=["health"])
async def root():
    """Root endpoint for API information."""
    return {
        "message": "SquadSync Booking Platform API",
        "version": "1.0.0",
        "docs_url": "/docs",
        "redoc_url": "/redoc",
        "status": "operational"
    }


@app.get("/health", tags=["health"])
async def health_check():
    """
    Basic health check endpoint.

    Use this endpoint for simple uptime monitoring.
    """
    return {"status": "healthy", "service": "squadsync-booking-platform"}


@app.get("/health/detailed", tags=["health"])
async def detailed_health_check():
    """
    Detailed health check with service dependencies.

    Reports database, Redis, Celery and SMTP status. Only the database
    is critical; the others degrade the overall status.
    """
    return await get_health_status()
