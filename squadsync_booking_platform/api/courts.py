"""
Court API endpoints.
"""

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User
from ..schemas.booking import BookingResponse, CourtSlotsResponse
from ..schemas.court import CourtCountResponse, CourtCreate, CourtResponse, CourtUpdate
from ..services.availability_service import AvailabilityService
from ..services.booking_service import BookingService
from ..services.court_service import CourtService
from ..utils.dependencies import get_current_active_user, get_current_admin_user
from ..utils.time_utils import to_facility_time, utcnow


router = APIRouter(prefix="/courts", tags=["courts"])


def get_court_service(db: AsyncSession = Depends(get_db)) -> CourtService:
    """Dependency to get court service instance."""
    return CourtService(db)


def _resolve_day(day: Optional[date]) -> date:
    return day or to_facility_time(utcnow()).date()


@router.get("/", response_model=List[CourtResponse])
async def list_courts(
    sport: Optional[str] = Query(None, description="Filter by sport"),
    available_only: bool = Query(False, description="Show only bookable courts"),
    court_service: CourtService = Depends(get_court_service)
):
    """List courts ordered by name."""
    return await court_service.list_courts(sport=sport, available_only=available_only)


@router.get("/available-count", response_model=CourtCountResponse)
async def count_available_courts(court_service: CourtService = Depends(get_court_service)):
    """Number of courts currently open for booking."""
    return CourtCountResponse(available=await court_service.count_available())


@router.get("/{court_id}", response_model=CourtResponse)
async def get_court(
    court_id: UUID,
    court_service: CourtService = Depends(get_court_service)
):
    """Get a court by ID."""
    return await court_service.get_court(court_id)


@router.get("/{court_id}/slots", response_model=CourtSlotsResponse)
async def get_court_slots(
    court_id: UUID,
    day: Optional[date] = Query(None, description="Day to show, defaults to today"),
    db: AsyncSession = Depends(get_db)
):
    """
    Get the slot grid of a court for one day.

    Each slot reports whether it is free and, if not, who holds it or
    why it is blocked.
    """
    target_day = _resolve_day(day)
    slots = await AvailabilityService(db).get_court_slots(court_id, target_day)
    return CourtSlotsResponse(court_id=court_id, day=target_day, slots=slots)


@router.get("/{court_id}/bookings", response_model=List[BookingResponse])
async def get_court_bookings(
    court_id: UUID,
    day: Optional[date] = Query(None, description="Day to show, defaults to today"),
    _: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Active bookings of a court on one day."""
    await CourtService(db).get_court(court_id)
    bookings = await BookingService(db).get_court_bookings(court_id, _resolve_day(day))
    return [BookingResponse.from_booking(booking) for booking in bookings]


@router.post("/", response_model=CourtResponse, status_code=status.HTTP_201_CREATED)
async def create_court(
    court_data: CourtCreate,
    _: User = Depends(get_current_admin_user),
    court_service: CourtService = Depends(get_court_service)
):
    """Create a new court (admin only)."""
    return await court_service.create_court(court_data)


@router.put("/{court_id}", response_model=CourtResponse)
async def update_court(
    court_id: UUID,
    court_data: CourtUpdate,
    _: User = Depends(get_current_admin_user),
    court_service: CourtService = Depends(get_court_service)
):
    """Update a court (admin only)."""
    return await court_service.update_court(court_id, court_data)


@router.post("/{court_id}/toggle-availability", response_model=CourtResponse)
async def toggle_court_availability(
    court_id: UUID,
    _: User = Depends(get_current_admin_user),
    court_service: CourtService = Depends(get_court_service)
):
    """Open or close a court for booking (admin only)."""
    return await court_service.toggle_availability(court_id)
