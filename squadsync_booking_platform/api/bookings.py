"""
FastAPI routes for court and equipment bookings.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.booking import BookingStatus, ResourceType
from ..models.user import User
from ..schemas.booking import (
    BookingCancelRequest,
    BookingListResponse,
    BookingPassResponse,
    BookingResponse,
    BookingStatusHistoryResponse,
    CourtBookingCreate,
    EquipmentBookingCreate,
    UserBookingStats,
)
from ..services.booking_service import BookingService
from ..utils.dependencies import get_current_active_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/bookings", tags=["bookings"])


def get_booking_service(db: AsyncSession = Depends(get_db)) -> BookingService:
    """Dependency to get booking service instance."""
    return BookingService(db)


@router.post("/courts", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_court_booking(
    booking_data: CourtBookingCreate,
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service)
):
    """
    Request a court for a time window.

    The request is checked against existing bookings and time blocks
    and starts out pending until staff approve it.
    """
    booking = await booking_service.create_court_booking(current_user, booking_data)
    return BookingResponse.from_booking(booking)


@router.post("/equipment", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_equipment_booking(
    booking_data: EquipmentBookingCreate,
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Request equipment for a time window."""
    booking = await booking_service.create_equipment_booking(current_user, booking_data)
    return BookingResponse.from_booking(booking)


@router.get("/", response_model=BookingListResponse)
async def list_my_bookings(
    booking_status: Optional[BookingStatus] = Query(None, alias="status", description="Filter by status"),
    resource_type: Optional[ResourceType] = Query(None, description="court or equipment"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service)
):
    """List the signed-in user's bookings."""
    bookings, total = await booking_service.list_user_bookings(
        current_user.id,
        status=booking_status,
        resource_type=resource_type,
        limit=limit,
        offset=offset,
    )
    return BookingListResponse(
        bookings=[BookingResponse.from_booking(b) for b in bookings],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/upcoming", response_model=List[BookingResponse])
async def get_upcoming_bookings(
    limit: int = Query(5, ge=1, le=20),
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Next active bookings of the signed-in user."""
    bookings = await booking_service.get_upcoming_bookings(current_user.id, limit=limit)
    return [BookingResponse.from_booking(b) for b in bookings]


@router.get("/stats", response_model=UserBookingStats)
async def get_my_booking_stats(
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Dashboard counters for the signed-in user."""
    return UserBookingStats(**await booking_service.get_user_stats(current_user.id))


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: UUID,
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service)
):
    booking = await booking_service.get_booking_for_user(booking_id, current_user)
    return BookingResponse.from_booking(booking)


@router.get("/{booking_id}/history", response_model=List[BookingStatusHistoryResponse])
async def get_booking_history(
    booking_id: UUID,
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Status changes of a booking, oldest first."""
    await booking_service.get_booking_for_user(booking_id, current_user)
    history = await booking_service.get_status_history(booking_id)
    return [BookingStatusHistoryResponse(**entry) for entry in history]


@router.get("/{booking_id}/pass", response_model=BookingPassResponse)
async def get_booking_pass(
    booking_id: UUID,
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Entry pass for an approved booking."""
    return BookingPassResponse(**await booking_service.get_booking_pass(booking_id, current_user))


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: UUID,
    cancel_data: Optional[BookingCancelRequest] = None,
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service)
):
    """
    Cancel a pending or approved booking.

    Only the booking owner or an admin may cancel.
    """
    reason = cancel_data.reason if cancel_data else None
    booking = await booking_service.cancel_booking(booking_id, current_user, reason)
    logger.info(f"Booking {booking_id} cancelled by {current_user.id}")
    return BookingResponse.from_booking(booking)
