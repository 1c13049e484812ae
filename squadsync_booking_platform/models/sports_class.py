"""
Class model for student groups that book through a representative.
"""

import uuid
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .user import User


class SportsClass(Base):
    """An academic class registered for group bookings."""

    __tablename__ = "classes"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    class_identifier: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True
    )
    department: Mapped[str] = mapped_column(String(200), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    student_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    class_code: Mapped[str] = mapped_column(
        String(20),
        unique=True,
        nullable=False,
        index=True
    )

    representative_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    representative: Mapped[Optional["User"]] = relationship(
        "User",
        foreign_keys=[representative_user_id]
    )
    members: Mapped[List["User"]] = relationship(
        "User",
        back_populates="sports_class",
        foreign_keys="User.class_id"
    )

    __table_args__ = (
        CheckConstraint("year >= 1", name="ck_classes_year_positive"),
        CheckConstraint("student_count >= 0", name="ck_classes_student_count_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<SportsClass(id={self.id}, class_identifier='{self.class_identifier}')>"
