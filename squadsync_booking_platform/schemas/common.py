"""
Common schemas for API responses and error handling.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Schema for detailed error information."""

    error_code: str = Field(..., description="Error code for programmatic handling")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error context")
    suggestions: Optional[List[str]] = Field(None, description="Helpful suggestions for resolving the error")
    retry_after: Optional[int] = None


class ErrorResponse(BaseModel):
    """Schema for API error responses."""

    error: ErrorDetail
    error_id: Optional[str] = None
    timestamp: Optional[str] = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "error": {
                        "error_code": "BOOKING_CONFLICT",
                        "message": "Court 123e4567-e89b-12d3-a456-426614174000 is already booked for the requested time",
                        "details": {
                            "court_id": "123e4567-e89b-12d3-a456-426614174000",
                            "conflicting_id": "9b2f4c1e-4d7a-4a4e-9d0c-2f8e1b7a6c55"
                        },
                        "suggestions": [
                            "Pick another time slot",
                            "Check the court availability grid"
                        ]
                    }
                },
                {
                    "error": {
                        "error_code": "INSUFFICIENT_EQUIPMENT",
                        "message": "Insufficient equipment: requested 6, available 4",
                        "details": {"requested": 6, "available": 4}
                    }
                }
            ]
        }
    }


class SuccessResponse(BaseModel):
    """Schema for simple success responses."""

    message: str = Field(..., description="Success message")
    data: Optional[Dict[str, Any]] = Field(None, description="Additional response data")
