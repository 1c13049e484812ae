"""
Pydantic schemas for booking-related API requests and responses.
"""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from ..models.booking import Booking, BookingStatus, BookingType, ResourceType
from ..utils.time_utils import as_utc


class _BookingWindow(BaseModel):
    """Shared start/end handling for booking requests."""

    start_time: datetime = Field(..., description="Start of the booking (naive values are read as UTC)")
    end_time: datetime = Field(..., description="End of the booking")
    booking_type: BookingType = Field(BookingType.INDIVIDUAL, description="Individual or class booking")
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("start_time", "end_time")
    @classmethod
    def normalise_timezone(cls, v: datetime) -> datetime:
        return as_utc(v)

    @model_validator(mode="after")
    def check_order(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class CourtBookingCreate(_BookingWindow):
    """Schema for requesting a court."""

    court_id: UUID = Field(..., description="ID of the court to book")


class EquipmentBookingCreate(_BookingWindow):
    """Schema for requesting equipment."""

    equipment_id: UUID = Field(..., description="ID of the equipment to borrow")
    quantity: int = Field(1, ge=1, le=20, description="Number of items")


class BookingCancelRequest(BaseModel):
    """Schema for cancelling a booking."""

    reason: Optional[str] = Field(None, max_length=500, description="Optional cancellation reason")


class BookingReviewRequest(BaseModel):
    """Schema for approving, rejecting or completing a booking."""

    notes: Optional[str] = Field(None, max_length=500, description="Note stored in the status history")


class BulkApproveRequest(BaseModel):
    """Schema for approving several bookings at once."""

    booking_ids: List[UUID] = Field(..., min_length=1, max_length=100)
    notes: Optional[str] = Field(None, max_length=500)


class BulkApproveFailure(BaseModel):
    booking_id: UUID
    error_code: str
    message: str


class BulkApproveResponse(BaseModel):
    """Outcome of a bulk approval."""

    approved: List[UUID]
    failed: List[BulkApproveFailure]


class BookingResponse(BaseModel):
    """Schema for booking responses."""

    id: UUID
    user_id: UUID
    class_id: Optional[UUID] = None
    resource_type: ResourceType
    court_id: Optional[UUID] = None
    equipment_id: Optional[UUID] = None
    booking_type: BookingType
    quantity: int
    start_time: datetime
    end_time: datetime
    status: BookingStatus
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    resource_name: Optional[str] = None
    class_name: Optional[str] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None

    model_config = {"from_attributes": True}

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingResponse":
        """Build a response from a booking with its relationships loaded."""
        response = cls.model_validate(booking)
        response.start_time = as_utc(booking.start_time)
        response.end_time = as_utc(booking.end_time)
        response.class_name = booking.sports_class.name if booking.sports_class else None
        response.user_name = booking.user.full_name if booking.user else None
        response.user_email = booking.user.email if booking.user else None
        return response


class BookingListResponse(BaseModel):
    """Schema for booking list responses."""

    bookings: List[BookingResponse]
    total: int
    limit: int
    offset: int


class BookingStatusHistoryResponse(BaseModel):
    """One entry of a booking's status history."""

    id: UUID
    booking_id: UUID
    old_status: Optional[BookingStatus] = None
    new_status: BookingStatus
    changed_at: datetime
    notes: Optional[str] = None
    changed_by: Optional[UUID] = None
    changed_by_name: Optional[str] = None
    changed_by_email: Optional[str] = None


class BookingPassResponse(BaseModel):
    """Entry pass for an approved booking."""

    booking_id: UUID
    pass_code: str
    holder_name: str
    resource_type: ResourceType
    resource_name: Optional[str]
    location: Optional[str] = None
    start_time: datetime
    end_time: datetime
    quantity: int
    booking_type: BookingType
    class_name: Optional[str] = None


class UserBookingStats(BaseModel):
    """Dashboard counters for the signed-in user."""

    active_bookings: int
    equipment_issued: int
    hours_booked_this_month: float
    pending_fees: float


class TimeSlotResponse(BaseModel):
    """One slot of a court's daily grid."""

    start_time: datetime
    end_time: datetime
    label: str
    available: bool
    occupied_by: Optional[str] = None
    booking_type: Optional[str] = None
    class_name: Optional[str] = None
    reason: Optional[str] = None


class CourtSlotsResponse(BaseModel):
    court_id: UUID
    day: date
    slots: List[TimeSlotResponse]
