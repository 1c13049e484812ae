"""
Equipment model for lendable sports gear and its inventory counters.
"""

import enum
from datetime import datetime
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .booking import Booking


class EquipmentCondition(enum.Enum):
    """Overall condition of an equipment line."""
    GOOD = "good"
    FAIR = "fair"
    NEEDS_ATTENTION = "needs_attention"


class Equipment(Base):
    """A line of identical items tracked by quantity."""

    __tablename__ = "equipment"

    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    condition: Mapped[EquipmentCondition] = mapped_column(
        Enum(EquipmentCondition),
        default=EquipmentCondition.GOOD,
        nullable=False
    )

    total_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    available_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    damaged_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    lost_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    last_restocked_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    bookings: Mapped[List["Booking"]] = relationship("Booking", back_populates="equipment")

    __table_args__ = (
        CheckConstraint("total_quantity >= 0", name="ck_equipment_total_non_negative"),
        CheckConstraint("available_quantity >= 0", name="ck_equipment_available_non_negative"),
        CheckConstraint("available_quantity <= total_quantity", name="ck_equipment_available_within_total"),
        CheckConstraint("damaged_quantity >= 0", name="ck_equipment_damaged_non_negative"),
        CheckConstraint("lost_quantity >= 0", name="ck_equipment_lost_non_negative"),
    )

    @property
    def serviceable_quantity(self) -> int:
        """Items that exist and can be lent, whether on the shelf or out on loan."""
        return max(0, self.total_quantity - self.damaged_quantity - self.lost_quantity)

    @property
    def issued_quantity(self) -> int:
        """Items currently out on loan."""
        return max(0, self.serviceable_quantity - self.available_quantity)

    def __repr__(self) -> str:
        return (
            f"<Equipment(id={self.id}, name='{self.name}', "
            f"available={self.available_quantity}/{self.total_quantity})>"
        )
