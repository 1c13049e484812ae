"""
Booking model and the booking status state machine.
"""

import enum
import uuid
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional, TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Integer, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .user import User
    from .court import Court
    from .equipment import Equipment
    from .sports_class import SportsClass
    from .booking_status_history import BookingStatusHistory
    from .equipment_issue import EquipmentIssue


class BookingStatus(enum.Enum):
    """Enumeration for booking status."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class BookingType(enum.Enum):
    """Whether a booking is for one student or a whole class."""
    INDIVIDUAL = "individual"
    CLASS = "class"


class ResourceType(enum.Enum):
    """What a booking reserves."""
    COURT = "court"
    EQUIPMENT = "equipment"


ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({
        BookingStatus.APPROVED,
        BookingStatus.REJECTED,
        BookingStatus.CANCELLED,
    }),
    BookingStatus.APPROVED: frozenset({
        BookingStatus.CANCELLED,
        BookingStatus.COMPLETED,
    }),
    BookingStatus.REJECTED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}

# Statuses that hold a slot or stock
ACTIVE_STATUSES: FrozenSet[BookingStatus] = frozenset({
    BookingStatus.PENDING,
    BookingStatus.APPROVED,
})


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    """Check the transition table for a status change."""
    return target in ALLOWED_TRANSITIONS[current]


def is_terminal(status: BookingStatus) -> bool:
    return not ALLOWED_TRANSITIONS[status]


class Booking(Base):
    """A request to use a court or borrow equipment for a time window."""

    __tablename__ = "bookings"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    class_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("classes.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    resource_type: Mapped[ResourceType] = mapped_column(Enum(ResourceType), nullable=False, index=True)
    court_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("courts.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )
    equipment_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("equipment.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )

    booking_type: Mapped[BookingType] = mapped_column(
        Enum(BookingType),
        default=BookingType.INDIVIDUAL,
        nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus),
        default=BookingStatus.PENDING,
        nullable=False,
        index=True
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    user: Mapped["User"] = relationship("User", back_populates="bookings", foreign_keys=[user_id])
    sports_class: Mapped[Optional["SportsClass"]] = relationship("SportsClass")
    court: Mapped[Optional["Court"]] = relationship("Court", back_populates="bookings")
    equipment: Mapped[Optional["Equipment"]] = relationship("Equipment", back_populates="bookings")

    status_history: Mapped[List["BookingStatusHistory"]] = relationship(
        "BookingStatusHistory",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingStatusHistory.changed_at"
    )
    equipment_issues: Mapped[List["EquipmentIssue"]] = relationship(
        "EquipmentIssue",
        back_populates="booking",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_bookings_quantity_positive"),
        CheckConstraint("end_time > start_time", name="ck_bookings_time_order"),
        CheckConstraint(
            "(court_id IS NOT NULL AND equipment_id IS NULL) OR "
            "(court_id IS NULL AND equipment_id IS NOT NULL)",
            name="ck_bookings_single_resource"
        ),
    )

    @property
    def is_active(self) -> bool:
        """Check if the booking still holds its slot (pending or approved)."""
        return self.status in ACTIVE_STATUSES

    @property
    def resource_name(self) -> Optional[str]:
        if self.resource_type == ResourceType.COURT:
            return self.court.name if self.court else None
        return self.equipment.name if self.equipment else None

    @property
    def duration_hours(self) -> float:
        return (self.end_time - self.start_time).total_seconds() / 3600

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, user_id={self.user_id}, "
            f"resource={self.resource_type.value}, status={self.status.value})>"
        )
