"""
Equipment issue model tracking items handed out against a booking.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional, TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Integer, Numeric, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from ..utils.time_utils import utcnow

if TYPE_CHECKING:
    from .booking import Booking
    from .equipment import Equipment
    from .user import User


class ReturnCondition(enum.Enum):
    """State of the items when they come back."""
    GOOD = "good"
    DAMAGED = "damaged"
    LOST = "lost"


class EquipmentIssue(Base):
    """Items physically handed to a student for an approved booking."""

    __tablename__ = "equipment_issues"

    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    equipment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("equipment.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    issued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    due_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    returned_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    return_condition: Mapped[Optional[ReturnCondition]] = mapped_column(Enum(ReturnCondition), nullable=True)
    delay_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    booking: Mapped["Booking"] = relationship("Booking", back_populates="equipment_issues")
    equipment: Mapped["Equipment"] = relationship("Equipment")
    user: Mapped["User"] = relationship("User")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_equipment_issues_quantity_positive"),
        CheckConstraint("delay_fee >= 0", name="ck_equipment_issues_delay_fee_non_negative"),
    )

    @property
    def is_returned(self) -> bool:
        return self.returned_at is not None

    def __repr__(self) -> str:
        return f"<EquipmentIssue(id={self.id}, booking_id={self.booking_id}, quantity={self.quantity})>"
