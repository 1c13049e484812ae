"""
Authentication-related Pydantic schemas.
"""

from pydantic import BaseModel, EmailStr, Field, field_serializer, field_validator
from typing import List, Optional
from uuid import UUID

from ..models.user import UserRole, UserStatus


class UserRegistration(BaseModel):
    """Schema for student self-registration."""
    email: EmailStr
    password: str = Field(..., min_length=8, description="Password must be at least 8 characters")
    full_name: str = Field(..., min_length=1, max_length=200)
    phone: Optional[str] = Field(None, max_length=30)
    student_id: Optional[str] = Field(None, max_length=50)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()


class UserLogin(BaseModel):
    """Schema for user login."""
    email: EmailStr
    password: str


class ClassLogin(BaseModel):
    """Schema for class representative login."""
    email: EmailStr
    password: str
    class_code: str = Field(..., min_length=4, max_length=20)


class UserProfile(BaseModel):
    """Schema for user profile information."""
    id: UUID
    email: str
    full_name: str
    phone: Optional[str] = None
    student_id: Optional[str] = None
    avatar_url: Optional[str] = None
    role: UserRole
    status: UserStatus
    class_id: Optional[UUID] = None
    is_representative: bool
    is_admin: bool
    is_staff: bool

    @field_serializer('id')
    def serialize_id(self, value: UUID) -> str:
        return str(value)

    model_config = {"from_attributes": True}


class UserProfileUpdate(BaseModel):
    """Schema for updating user profile."""
    full_name: Optional[str] = Field(None, min_length=1, max_length=200)
    phone: Optional[str] = Field(None, max_length=30)
    student_id: Optional[str] = Field(None, max_length=50)
    avatar_url: Optional[str] = Field(None, max_length=500)


class PasswordChange(BaseModel):
    """Schema for changing password."""
    current_password: str
    new_password: str = Field(..., min_length=8, description="Password must be at least 8 characters")


class TokenResponse(BaseModel):
    """Schema for token response."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserProfile


class AdminUserRoleUpdate(BaseModel):
    role: UserRole


class AdminUserStatusUpdate(BaseModel):
    status: UserStatus


class UserListResponse(BaseModel):
    """Schema for the admin user listing."""
    users: List[UserProfile]
    total: int
    limit: int
    offset: int
