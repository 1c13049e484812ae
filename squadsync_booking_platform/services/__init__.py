"""Business logic services for the SquadSync Booking Platform."""

from .user_service import UserService
from .class_service import ClassService
from .court_service import CourtService
from .equipment_service import EquipmentService
from .availability_service import AvailabilityService
from .booking_service import BookingService
from .notification_service import NotificationService
from .analytics_service import AnalyticsService

__all__ = [
    "UserService",
    "ClassService",
    "CourtService",
    "EquipmentService",
    "AvailabilityService",
    "BookingService",
    "NotificationService",
    "AnalyticsService",
]
