"""
User model for authentication, roles and student profiles.
"""

import enum
import uuid
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import Boolean, Enum, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from ..utils.auth import get_password_hash, verify_password

if TYPE_CHECKING:
    from .booking import Booking
    from .notification import Notification
    from .sports_class import SportsClass


class UserRole(enum.Enum):
    """Roles a campus account can hold."""
    STUDENT = "student"
    FACULTY = "faculty"
    ADMIN = "admin"


class UserStatus(enum.Enum):
    """Account lifecycle states managed by administrators."""
    ACTIVE = "active"
    SUSPENDED = "suspended"
    PENDING = "pending"


STAFF_ROLES = frozenset({UserRole.FACULTY, UserRole.ADMIN})


class User(Base):
    """User account together with the student profile fields."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    student_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    avatar_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole),
        default=UserRole.STUDENT,
        nullable=False,
        index=True
    )
    status: Mapped[UserStatus] = mapped_column(
        Enum(UserStatus),
        default=UserStatus.ACTIVE,
        nullable=False,
        index=True
    )

    class_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("classes.id", ondelete="SET NULL", use_alter=True, name="fk_users_class_id"),
        nullable=True,
        index=True
    )
    is_representative: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    sports_class: Mapped[Optional["SportsClass"]] = relationship(
        "SportsClass",
        back_populates="members",
        foreign_keys=[class_id]
    )
    bookings: Mapped[List["Booking"]] = relationship(
        "Booking",
        back_populates="user",
        cascade="all, delete-orphan",
        foreign_keys="Booking.user_id"
    )
    notifications: Mapped[List["Notification"]] = relationship(
        "Notification",
        back_populates="user",
        cascade="all, delete-orphan"
    )

    @property
    def is_active(self) -> bool:
        """Only active accounts may sign in."""
        return self.status == UserStatus.ACTIVE

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_staff(self) -> bool:
        """Faculty and admins can review booking requests."""
        return self.role in STAFF_ROLES

    def set_password(self, password: str) -> None:
        """Hash and set the user's password."""
        self.password_hash = get_password_hash(password)

    def verify_password(self, password: str) -> bool:
        """Verify the user's password against the stored hash."""
        return verify_password(password, self.password_hash)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role={self.role.value})>"
