"""
Audit trail of booking status changes.
"""

import uuid
from datetime import datetime
from typing import Optional, TYPE_CHECKING

from sqlalchemy import DateTime, Enum, ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from .booking import BookingStatus
from ..utils.time_utils import utcnow

if TYPE_CHECKING:
    from .booking import Booking
    from .user import User


class BookingStatusHistory(Base):
    """One row per status change, including the initial pending state."""

    __tablename__ = "booking_status_history"

    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    old_status: Mapped[Optional[BookingStatus]] = mapped_column(Enum(BookingStatus), nullable=True)
    new_status: Mapped[BookingStatus] = mapped_column(Enum(BookingStatus), nullable=False, index=True)

    changed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )
    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    booking: Mapped["Booking"] = relationship("Booking", back_populates="status_history")
    changer: Mapped[Optional["User"]] = relationship("User")

    def __repr__(self) -> str:
        old = self.old_status.value if self.old_status else None
        return (
            f"<BookingStatusHistory(booking_id={self.booking_id}, "
            f"{old} -> {self.new_status.value})>"
        )
