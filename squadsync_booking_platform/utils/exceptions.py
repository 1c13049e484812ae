"""
Custom exceptions for the SquadSync Booking Platform.
"""

from typing import Any, Dict, Optional, List
from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes for the platform."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    ALREADY_EXISTS = "ALREADY_EXISTS"

    # Business logic errors
    BOOKING_CONFLICT = "BOOKING_CONFLICT"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    RESOURCE_UNAVAILABLE = "RESOURCE_UNAVAILABLE"
    INSUFFICIENT_EQUIPMENT = "INSUFFICIENT_EQUIPMENT"
    INVALID_BOOKING_WINDOW = "INVALID_BOOKING_WINDOW"
    INVALID_CLASS_CODE = "INVALID_CLASS_CODE"
    NOT_CLASS_REPRESENTATIVE = "NOT_CLASS_REPRESENTATIVE"
    EQUIPMENT_ALREADY_ISSUED = "EQUIPMENT_ALREADY_ISSUED"
    EQUIPMENT_ALREADY_RETURNED = "EQUIPMENT_ALREADY_RETURNED"

    # Concurrency errors
    CONCURRENCY_CONFLICT = "CONCURRENCY_CONFLICT"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # External service errors
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    EMAIL_SERVICE_ERROR = "EMAIL_SERVICE_ERROR"
    CACHE_SERVICE_ERROR = "CACHE_SERVICE_ERROR"


class SquadSyncError(Exception):
    """Base exception class for the SquadSync platform."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
        retry_after: Optional[int] = None
    ):
        """Initialize the exception with comprehensive error information."""
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.suggestions = suggestions or []
        self.retry_after = retry_after
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        result = {
            "error_code": self.error_code.value,
            "message": self.message,
        }

        if self.details:
            result["details"] = self.details

        if self.suggestions:
            result["suggestions"] = self.suggestions

        if self.retry_after:
            result["retry_after"] = self.retry_after

        return result


class ValidationError(SquadSyncError):
    """Exception raised for validation errors."""

    def __init__(
        self,
        message: str,
        field_errors: Optional[Dict[str, List[str]]] = None,
        details: Optional[Dict[str, Any]] = None,
        **kwargs
    ):
        merged = dict(details or {})
        if field_errors:
            merged["field_errors"] = field_errors
        super().__init__(
            message,
            error_code=ErrorCode.VALIDATION_ERROR,
            details=merged or None,
            **kwargs
        )
        self.field_errors = field_errors or {}


class AlreadyExistsError(SquadSyncError):
    """Exception raised when a unique resource already exists."""

    def __init__(self, resource_type: str, field: str, value: str, **kwargs):
        super().__init__(
            f"A {resource_type} with {field} '{value}' already exists",
            error_code=ErrorCode.ALREADY_EXISTS,
            details={"resource_type": resource_type, "field": field},
            **kwargs
        )


class NotFoundError(SquadSyncError):
    """Base exception for resource not found errors."""

    def __init__(self, message: str, resource_type: Optional[str] = None, resource_id: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": resource_id} if resource_type else None,
            **kwargs
        )


class UserNotFoundError(NotFoundError):
    """Exception raised when a user is not found."""

    def __init__(self, user_id: str, **kwargs):
        super().__init__(
            f"User {user_id} not found",
            resource_type="user",
            resource_id=user_id,
            **kwargs
        )


class BookingNotFoundError(NotFoundError):
    """Exception raised when a booking is not found."""

    def __init__(self, booking_id: str, **kwargs):
        super().__init__(
            f"Booking {booking_id} not found",
            resource_type="booking",
            resource_id=booking_id,
            suggestions=["Check the booking ID", "View your booking history"],
            **kwargs
        )


class CourtNotFoundError(NotFoundError):
    """Exception raised when a court is not found."""

    def __init__(self, court_id: str, **kwargs):
        super().__init__(
            f"Court {court_id} not found",
            resource_type="court",
            resource_id=court_id,
            suggestions=["Browse the list of courts"],
            **kwargs
        )


class EquipmentNotFoundError(NotFoundError):
    """Exception raised when an equipment item is not found."""

    def __init__(self, equipment_id: str, **kwargs):
        super().__init__(
            f"Equipment {equipment_id} not found",
            resource_type="equipment",
            resource_id=equipment_id,
            **kwargs
        )


class ClassNotFoundError(NotFoundError):
    """Exception raised when a class is not found."""

    def __init__(self, class_id: str, **kwargs):
        super().__init__(
            f"Class {class_id} not found",
            resource_type="class",
            resource_id=class_id,
            **kwargs
        )


class AuthenticationError(SquadSyncError):
    """Exception raised for authentication failures."""

    def __init__(self, message: str = "Authentication failed", **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.UNAUTHORIZED,
            suggestions=["Check your credentials", "Login again"],
            **kwargs
        )


class AuthorizationError(SquadSyncError):
    """Exception raised for authorization failures."""

    def __init__(self, message: str = "Access denied", required_permission: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.FORBIDDEN,
            details={"required_permission": required_permission} if required_permission else None,
            suggestions=["Contact an administrator for access"],
            **kwargs
        )


class BusinessLogicError(SquadSyncError):
    """Base exception for business logic violations."""
    pass


class BookingConflictError(BusinessLogicError):
    """Exception raised when a requested slot overlaps an existing booking or block."""

    def __init__(self, court_id: str, conflicting_id: Optional[str] = None, reason: Optional[str] = None, **kwargs):
        message = f"Court {court_id} is already booked for the requested time"
        if reason:
            message = f"Court {court_id} is blocked for the requested time: {reason}"
        super().__init__(
            message,
            error_code=ErrorCode.BOOKING_CONFLICT,
            details={"court_id": court_id, "conflicting_id": conflicting_id},
            suggestions=["Pick another time slot", "Check the court availability grid"],
            **kwargs
        )


class InvalidStatusTransitionError(BusinessLogicError):
    """Exception raised when a booking status change is not allowed."""

    def __init__(self, booking_id: str, current_status: str, requested_status: str, **kwargs):
        super().__init__(
            f"Booking {booking_id} cannot move from {current_status} to {requested_status}",
            error_code=ErrorCode.INVALID_STATUS_TRANSITION,
            details={
                "booking_id": booking_id,
                "current_status": current_status,
                "requested_status": requested_status,
            },
            **kwargs
        )


class ResourceUnavailableError(BusinessLogicError):
    """Exception raised when a court or equipment item is switched off for bookings."""

    def __init__(self, resource_type: str, resource_id: str, **kwargs):
        super().__init__(
            f"{resource_type.capitalize()} {resource_id} is not available for booking",
            error_code=ErrorCode.RESOURCE_UNAVAILABLE,
            details={"resource_type": resource_type, "resource_id": resource_id},
            **kwargs
        )


class InsufficientEquipmentError(BusinessLogicError):
    """Exception raised when not enough equipment is in stock."""

    def __init__(self, requested: int, available: int, equipment_id: Optional[str] = None, **kwargs):
        super().__init__(
            f"Insufficient equipment: requested {requested}, available {available}",
            error_code=ErrorCode.INSUFFICIENT_EQUIPMENT,
            details={"requested": requested, "available": available, "equipment_id": equipment_id},
            suggestions=["Request a smaller quantity", "Try a different time"],
            **kwargs
        )


class InvalidBookingWindowError(BusinessLogicError):
    """Exception raised when the requested time window breaks a booking rule."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.INVALID_BOOKING_WINDOW,
            **kwargs
        )


class InvalidClassCodeError(BusinessLogicError):
    """Exception raised when a class login code is wrong or belongs to someone else."""

    def __init__(self, message: str = "Invalid class code", **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.INVALID_CLASS_CODE,
            suggestions=["Check the code sent to the class representative"],
            **kwargs
        )


class NotClassRepresentativeError(BusinessLogicError):
    """Exception raised when a non-representative tries to book for a class."""

    def __init__(self, user_id: str, **kwargs):
        super().__init__(
            "Only class representatives can make class bookings",
            error_code=ErrorCode.NOT_CLASS_REPRESENTATIVE,
            details={"user_id": user_id},
            **kwargs
        )


class EquipmentAlreadyIssuedError(BusinessLogicError):
    """Exception raised when equipment for a booking has already been handed out."""

    def __init__(self, booking_id: str, **kwargs):
        super().__init__(
            f"Equipment for booking {booking_id} has already been issued",
            error_code=ErrorCode.EQUIPMENT_ALREADY_ISSUED,
            details={"booking_id": booking_id},
            **kwargs
        )


class EquipmentAlreadyReturnedError(BusinessLogicError):
    """Exception raised when an equipment issue is returned twice."""

    def __init__(self, issue_id: str, **kwargs):
        super().__init__(
            f"Equipment issue {issue_id} has already been returned",
            error_code=ErrorCode.EQUIPMENT_ALREADY_RETURNED,
            details={"issue_id": issue_id},
            **kwargs
        )


class ConcurrencyError(SquadSyncError):
    """Exception raised for concurrency-related issues."""

    def __init__(self, message: str, retry_after: int = 1, **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.CONCURRENCY_CONFLICT,
            retry_after=retry_after,
            suggestions=["Please try again", "Wait a moment and retry"],
            **kwargs
        )


class RateLimitError(SquadSyncError):
    """Exception raised when rate limit is exceeded."""

    def __init__(self, limit: int, window: int, retry_after: int, **kwargs):
        super().__init__(
            f"Rate limit exceeded: {limit} requests per {window} seconds",
            error_code=ErrorCode.RATE_LIMIT_EXCEEDED,
            details={"limit": limit, "window": window},
            retry_after=retry_after,
            suggestions=[f"Wait {retry_after} seconds before retrying"],
            **kwargs
        )


class ExternalServiceError(SquadSyncError):
    """Exception raised for external service failures."""

    def __init__(
        self,
        service_name: str,
        message: str,
        status_code: Optional[int] = None,
        error_code: ErrorCode = ErrorCode.EXTERNAL_SERVICE_ERROR,
        details: Optional[Dict[str, Any]] = None,
        **kwargs
    ):
        merged = {"service_name": service_name, "status_code": status_code}
        merged.update(details or {})
        super().__init__(
            f"{service_name} service error: {message}",
            error_code=error_code,
            details=merged,
            suggestions=["Try again later", "Contact support if problem persists"],
            **kwargs
        )


class EmailServiceError(ExternalServiceError):
    """Exception raised for email service failures."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            "email",
            message,
            error_code=ErrorCode.EMAIL_SERVICE_ERROR,
            **kwargs
        )
