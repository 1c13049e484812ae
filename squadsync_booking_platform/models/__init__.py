"""
Database models for the SquadSync booking platform.
"""

from .base import Base
from .user import User, UserRole, UserStatus
from .sports_class import SportsClass
from .court import Court
from .equipment import Equipment, EquipmentCondition
from .booking import (
    Booking,
    BookingStatus,
    BookingType,
    ResourceType,
    ALLOWED_TRANSITIONS,
    ACTIVE_STATUSES,
    can_transition,
)
from .booking_status_history import BookingStatusHistory
from .notification import Notification, NotificationType
from .equipment_issue import EquipmentIssue, ReturnCondition
from .time_block import TimeBlock, BlockScope

__all__ = [
    "Base",
    "User",
    "UserRole",
    "UserStatus",
    "SportsClass",
    "Court",
    "Equipment",
    "EquipmentCondition",
    "Booking",
    "BookingStatus",
    "BookingType",
    "ResourceType",
    "ALLOWED_TRANSITIONS",
    "ACTIVE_STATUSES",
    "can_transition",
    "BookingStatusHistory",
    "Notification",
    "NotificationType",
    "EquipmentIssue",
    "ReturnCondition",
    "TimeBlock",
    "BlockScope",
]
