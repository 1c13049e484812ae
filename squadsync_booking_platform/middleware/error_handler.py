"""
Error handling middleware that turns exceptions into JSON error responses.
"""

import logging
import traceback
from typing import Any, Dict
from uuid import uuid4

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy.exc import IntegrityError, OperationalError, TimeoutError as SQLTimeoutError
from pydantic import ValidationError as PydanticValidationError

from ..utils.exceptions import (
    SquadSyncError,
    ErrorCode,
    ValidationError,
    NotFoundError,
    BusinessLogicError,
    ConcurrencyError,
    ExternalServiceError,
)
from ..utils.time_utils import utcnow

logger = logging.getLogger(__name__)


STATUS_MAP: Dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    ErrorCode.BOOKING_CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_STATUS_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorCode.RESOURCE_UNAVAILABLE: status.HTTP_409_CONFLICT,
    ErrorCode.INSUFFICIENT_EQUIPMENT: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_BOOKING_WINDOW: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_CLASS_CODE: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.NOT_CLASS_REPRESENTATIVE: status.HTTP_403_FORBIDDEN,
    ErrorCode.EQUIPMENT_ALREADY_ISSUED: status.HTTP_409_CONFLICT,
    ErrorCode.EQUIPMENT_ALREADY_RETURNED: status.HTTP_409_CONFLICT,
    ErrorCode.CONCURRENCY_CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.RATE_LIMIT_EXCEEDED: status.HTTP_429_TOO_MANY_REQUESTS,
    ErrorCode.EXTERNAL_SERVICE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCode.EMAIL_SERVICE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCode.CACHE_SERVICE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_code_for(exc: SquadSyncError) -> int:
    """Map an error code to its HTTP status code."""
    return STATUS_MAP.get(exc.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)


def error_payload(exc: SquadSyncError, error_id: str) -> Dict[str, Any]:
    return {
        "error": exc.to_dict(),
        "error_id": error_id,
        "timestamp": utcnow().isoformat(),
    }


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Middleware for error handling and response formatting."""

    def __init__(self, app, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next):
        """Process request and handle any exceptions."""
        error_id = str(uuid4())

        try:
            return await call_next(request)
        except Exception as exc:
            return self._handle_exception(request, exc, error_id)

    def _handle_exception(self, request: Request, exc: Exception, error_id: str) -> JSONResponse:
        """Handle different types of exceptions and return appropriate responses."""
        self._log_error(request, exc, error_id)

        if isinstance(exc, SquadSyncError):
            return self._handle_platform_error(exc, error_id)
        elif isinstance(exc, PydanticValidationError):
            return self._handle_validation_error(exc, error_id)
        elif isinstance(exc, IntegrityError):
            return self._handle_integrity_error(exc, error_id)
        elif isinstance(exc, (OperationalError, SQLTimeoutError)):
            return self._handle_database_error(exc, error_id)
        else:
            return self._handle_unexpected_error(exc, error_id)

    def _handle_platform_error(self, exc: SquadSyncError, error_id: str) -> JSONResponse:
        headers = {}
        if exc.retry_after:
            headers["Retry-After"] = str(exc.retry_after)

        return JSONResponse(
            status_code=status_code_for(exc),
            content=error_payload(exc, error_id),
            headers=headers
        )

    def _handle_validation_error(self, exc: PydanticValidationError, error_id: str) -> JSONResponse:
        """Handle Pydantic validation errors raised outside request parsing."""
        field_errors: Dict[str, list] = {}
        for error in exc.errors():
            field_path = ".".join(str(loc) for loc in error["loc"])
            field_errors.setdefault(field_path, []).append(error["msg"])

        validation_error = ValidationError("Request validation failed", field_errors=field_errors)
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=error_payload(validation_error, error_id)
        )

    def _handle_integrity_error(self, exc: IntegrityError, error_id: str) -> JSONResponse:
        """Handle database integrity constraint violations."""
        error_message = str(getattr(exc, "orig", exc)).lower()

        if "unique" in error_message:
            platform_error = ValidationError(
                "A record with this information already exists",
                details={"constraint_type": "unique"}
            )
        elif "foreign key" in error_message:
            platform_error = ValidationError(
                "Referenced resource does not exist",
                details={"constraint_type": "foreign_key"}
            )
        elif "not null" in error_message:
            platform_error = ValidationError(
                "Required field is missing",
                details={"constraint_type": "not_null"}
            )
        elif "check" in error_message:
            platform_error = ValidationError(
                "Value violates a data constraint",
                details={"constraint_type": "check"}
            )
        else:
            platform_error = ValidationError(
                "Data integrity constraint violation",
                details={"constraint_type": "unknown"}
            )

        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=error_payload(platform_error, error_id)
        )

    def _handle_database_error(self, exc: Exception, error_id: str) -> JSONResponse:
        """Handle database connection and operational errors."""
        platform_error = ExternalServiceError(
            "database",
            "Database service temporarily unavailable",
            details={"error_type": type(exc).__name__}
        )

        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=error_payload(platform_error, error_id),
            headers={"Retry-After": "30"}
        )

    def _handle_unexpected_error(self, exc: Exception, error_id: str) -> JSONResponse:
        platform_error = SquadSyncError(
            "An unexpected error occurred",
            error_code=ErrorCode.INTERNAL_ERROR,
            details={"error_type": type(exc).__name__} if self.debug else None
        )

        response_data = error_payload(platform_error, error_id)
        if self.debug:
            response_data["debug"] = {
                "exception": str(exc),
                "traceback": traceback.format_exc()
            }

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=response_data
        )

    def _log_error(self, request: Request, exc: Exception, error_id: str) -> None:
        """Log the error with request context, at a level matching its severity."""
        request_info = {
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else None,
            "user_agent": request.headers.get("user-agent"),
        }

        if isinstance(exc, SquadSyncError):
            extra = {
                "error_id": error_id,
                "error_code": exc.error_code.value,
                "request": request_info,
                "details": exc.details,
            }
            if isinstance(exc, (ValidationError, NotFoundError, BusinessLogicError)):
                logger.warning(f"Client error [{error_id}]: {exc.message}", extra=extra)
            elif isinstance(exc, (ConcurrencyError, ExternalServiceError)):
                logger.error(f"System error [{error_id}]: {exc.message}", extra=extra)
            else:
                logger.info(f"Request rejected [{error_id}]: {exc.message}", extra=extra)
        else:
            logger.error(
                f"Unexpected error [{error_id}]: {exc}",
                extra={
                    "error_id": error_id,
                    "error_type": type(exc).__name__,
                    "request": request_info,
                    "traceback": traceback.format_exc()
                }
            )
