"""
Time block model for maintenance windows and campus events.
"""

import enum
import uuid
from datetime import datetime
from typing import Optional, TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .court import Court


class BlockScope(enum.Enum):
    """Whether a block closes one court or every court."""
    COURT = "court"
    GLOBAL = "global"


class TimeBlock(Base):
    """An interval during which bookings are not accepted."""

    __tablename__ = "time_blocks"

    resource_type: Mapped[BlockScope] = mapped_column(Enum(BlockScope), nullable=False)
    court_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("courts.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )
    reason: Mapped[str] = mapped_column(String(255), nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    court: Mapped[Optional["Court"]] = relationship("Court", back_populates="time_blocks")

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_time_blocks_time_order"),
    )

    def __repr__(self) -> str:
        return f"<TimeBlock(id={self.id}, scope={self.resource_type.value}, reason='{self.reason}')>"
