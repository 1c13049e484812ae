"""
Authentication API endpoints.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..models.user import User
from ..schemas.common import SuccessResponse
from ..schemas.auth import (
    ClassLogin,
    PasswordChange,
    TokenResponse,
    UserLogin,
    UserProfile,
    UserProfileUpdate,
    UserRegistration,
)
from ..services.class_service import ClassService
from ..services.user_service import UserService
from ..utils.auth import issue_token_for
from ..utils.dependencies import get_current_active_user


router = APIRouter(prefix="/auth", tags=["authentication"])


def _token_response(user: User, class_id=None) -> TokenResponse:
    return TokenResponse(
        access_token=issue_token_for(user, class_id),
        token_type="bearer",
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=UserProfile.model_validate(user)
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    user_data: UserRegistration,
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Register a new student account.

    Args:
        user_data: User registration data
        db: Database session

    Returns:
        Token response with user information
    """
    user = await UserService(db).create_user(user_data)
    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
async def login_user(
    login_data: UserLogin,
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Authenticate user and return access token.

    Raises:
        HTTPException: If credentials are invalid or the account is not active
    """
    user = await UserService(db).authenticate_user(login_data.email, login_data.password)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Account is {user.status.value}"
        )

    return _token_response(user)


@router.post("/class-login", response_model=TokenResponse)
async def class_login(
    login_data: ClassLogin,
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Sign in as a class representative with email, password and class code.
    """
    user, sports_class = await ClassService(db).validate_class_login(
        login_data.email, login_data.password, login_data.class_code
    )
    return _token_response(user, class_id=sports_class.id)


@router.get("/me", response_model=UserProfile)
async def get_current_user_profile(
    current_user: User = Depends(get_current_active_user)
) -> Any:
    """Get current user's profile."""
    return UserProfile.model_validate(current_user)


@router.put("/me", response_model=UserProfile)
async def update_current_user_profile(
    update_data: UserProfileUpdate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Update current user's profile.

    Args:
        update_data: Profile update data
        current_user: The authenticated user
        db: Database session

    Returns:
        Updated user profile
    """
    updated_user = await UserService(db).update_user_profile(current_user.id, update_data)
    return UserProfile.model_validate(updated_user)


@router.post("/change-password", response_model=SuccessResponse)
async def change_password(
    password_data: PasswordChange,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Change current user's password.

    Raises:
        HTTPException: If current password is incorrect
    """
    success = await UserService(db).change_password(
        current_user.id,
        password_data.current_password,
        password_data.new_password
    )

    if not success:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect"
        )

    return SuccessResponse(message="Password changed successfully")
