"""
Court model for bookable playing areas.
"""

from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import JSON, Boolean, CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .booking import Booking
    from .time_block import TimeBlock


class Court(Base):
    """A court, pitch or hall that can be reserved by the hour."""

    __tablename__ = "courts"

    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    sport: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    amenities: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    bookings: Mapped[List["Booking"]] = relationship("Booking", back_populates="court")
    time_blocks: Mapped[List["TimeBlock"]] = relationship(
        "TimeBlock",
        back_populates="court",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_courts_capacity_positive"),
    )

    def __repr__(self) -> str:
        return f"<Court(id={self.id}, name='{self.name}', sport='{self.sport}')>"
