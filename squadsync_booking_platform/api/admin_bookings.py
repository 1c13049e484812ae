"""
Booking review API endpoints for faculty and admins.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.booking import BookingStatus, ResourceType
from ..models.user import User
from ..schemas.booking import (
    BookingListResponse,
    BookingResponse,
    BookingReviewRequest,
    BulkApproveRequest,
    BulkApproveResponse,
)
from ..services.booking_service import BookingService
from ..utils.dependencies import get_current_staff_user


router = APIRouter(prefix="/admin/bookings", tags=["admin", "bookings"])


def get_booking_service(db: AsyncSession = Depends(get_db)) -> BookingService:
    """Dependency to get booking service instance."""
    return BookingService(db)


@router.get("/", response_model=BookingListResponse)
async def list_bookings(
    booking_status: Optional[BookingStatus] = Query(None, alias="status", description="Filter by status"),
    resource_type: Optional[ResourceType] = Query(None, description="court or equipment"),
    court_id: Optional[UUID] = Query(None),
    equipment_id: Optional[UUID] = Query(None),
    user_id: Optional[UUID] = Query(None),
    start_date: Optional[date] = Query(None, description="Bookings starting on or after this day"),
    end_date: Optional[date] = Query(None, description="Bookings starting on or before this day"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    _: User = Depends(get_current_staff_user),
    booking_service: BookingService = Depends(get_booking_service)
):
    """
    List all bookings with filters.

    Requires faculty or admin privileges.
    """
    bookings, total = await booking_service.list_bookings(
        user_id=user_id,
        status=booking_status,
        resource_type=resource_type,
        court_id=court_id,
        equipment_id=equipment_id,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
    return BookingListResponse(
        bookings=[BookingResponse.from_booking(b) for b in bookings],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post("/bulk-approve", response_model=BulkApproveResponse)
async def bulk_approve_bookings(
    request: BulkApproveRequest,
    current_user: User = Depends(get_current_staff_user),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Approve several pending bookings, reporting the ones that failed."""
    return BulkApproveResponse(
        **await booking_service.bulk_approve(request.booking_ids, current_user, request.notes)
    )


@router.post("/{booking_id}/approve", response_model=BookingResponse)
async def approve_booking(
    booking_id: UUID,
    review: Optional[BookingReviewRequest] = None,
    current_user: User = Depends(get_current_staff_user),
    booking_service: BookingService = Depends(get_booking_service)
):
    booking = await booking_service.approve_booking(
        booking_id, current_user, review.notes if review else None
    )
    return BookingResponse.from_booking(booking)


@router.post("/{booking_id}/reject", response_model=BookingResponse)
async def reject_booking(
    booking_id: UUID,
    review: Optional[BookingReviewRequest] = None,
    current_user: User = Depends(get_current_staff_user),
    booking_service: BookingService = Depends(get_booking_service)
):
    booking = await booking_service.reject_booking(
        booking_id, current_user, review.notes if review else None
    )
    return BookingResponse.from_booking(booking)


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    booking_id: UUID,
    review: Optional[BookingReviewRequest] = None,
    current_user: User = Depends(get_current_staff_user),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Mark an approved booking as completed."""
    booking = await booking_service.complete_booking(
        booking_id, current_user, review.notes if review else None
    )
    return BookingResponse.from_booking(booking)
