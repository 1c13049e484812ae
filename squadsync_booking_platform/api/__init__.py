"""API endpoints for the SquadSync Booking Platform."""

from fastapi import APIRouter

from ..schemas.common import ErrorResponse
from .auth import router as auth_router
from .users import router as users_router
from .classes import router as classes_router
from .courts import router as courts_router
from .time_blocks import router as time_blocks_router
from .equipment import router as equipment_router
from .equipment_issues import router as equipment_issues_router
from .bookings import router as bookings_router
from .admin_bookings import router as admin_bookings_router
from .notifications import router as notifications_router
from .analytics import router as analytics_router

# Domain errors share one body shape, see ErrorHandlerMiddleware
api_router = APIRouter(
    prefix="/api/v1",
    responses={
        404: {"model": ErrorResponse, "description": "Resource not found"},
        409: {"model": ErrorResponse, "description": "Conflicting booking or state"},
        422: {"model": ErrorResponse, "description": "Validation error"},
    },
)

# Include all routers
api_router.include_router(auth_router)
api_router.include_router(users_router)
api_router.include_router(classes_router)
api_router.include_router(courts_router)
api_router.include_router(time_blocks_router)
api_router.include_router(equipment_router)
api_router.include_router(equipment_issues_router)
api_router.include_router(bookings_router)
api_router.include_router(admin_bookings_router)
api_router.include_router(notifications_router)
api_router.include_router(analytics_router)

__all__ = ["api_router"]
