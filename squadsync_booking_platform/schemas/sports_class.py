"""
Class registration and class management schemas.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from .auth import UserProfile


class ClassRegistration(BaseModel):
    """Schema for registering a class together with its representative."""

    # Representative account
    email: EmailStr
    password: str = Field(..., min_length=8)
    full_name: str = Field(..., min_length=1, max_length=200)
    phone: Optional[str] = Field(None, max_length=30)
    student_id: Optional[str] = Field(None, max_length=50)

    # Class
    class_name: str = Field(..., min_length=1, max_length=200)
    class_identifier: str = Field(..., min_length=2, max_length=50, description="e.g. 4AI23CD")
    department: str = Field(..., min_length=1, max_length=200)
    year: int = Field(..., ge=1, le=10)
    student_count: int = Field(0, ge=0, le=1000)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("class_identifier")
    @classmethod
    def normalise_identifier(cls, v: str) -> str:
        return v.strip().upper()


class ClassUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    department: Optional[str] = Field(None, min_length=1, max_length=200)
    year: Optional[int] = Field(None, ge=1, le=10)
    student_count: Optional[int] = Field(None, ge=0, le=1000)
    is_active: Optional[bool] = None


class ClassResponse(BaseModel):
    """Schema for class response."""

    id: UUID
    name: str
    class_identifier: str
    department: str
    year: int
    student_count: int
    representative_user_id: Optional[UUID] = None
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ClassWithCodeResponse(ClassResponse):
    """Class response including the login code, shown to its representative and admins."""

    class_code: str


class ClassRegistrationResponse(BaseModel):
    sports_class: ClassWithCodeResponse
    representative: UserProfile


class ClassListResponse(BaseModel):
    classes: List[ClassWithCodeResponse]
    total: int
