"""
User management API endpoints (admin only).
"""

from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User, UserRole, UserStatus
from ..schemas.auth import (
    AdminUserRoleUpdate,
    AdminUserStatusUpdate,
    UserListResponse,
    UserProfile,
)
from ..services.user_service import UserService
from ..utils.dependencies import get_current_admin_user


router = APIRouter(prefix="/users", tags=["user-management"])


@router.get("/", response_model=UserListResponse)
async def list_users(
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    user_status: Optional[UserStatus] = Query(None, alias="status", description="Filter by status"),
    search: Optional[str] = Query(None, description="Search in name, email or student ID"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin_user)
) -> Any:
    """List users with optional filters (admin only)."""
    users, total = await UserService(db).list_users(
        role=role, status=user_status, search=search, limit=limit, offset=offset
    )
    return UserListResponse(
        users=[UserProfile.model_validate(user) for user in users],
        total=total,
        limit=limit,
        offset=offset
    )


@router.get("/{user_id}", response_model=UserProfile)
async def get_user_by_id(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin_user)
) -> Any:
    """
    Get a user by ID (admin only).

    Args:
        user_id: The user ID
        db: Database session
        _: Admin user (for authorization)

    Returns:
        User profile information
    """
    user = await UserService(db).get_user(user_id)
    return UserProfile.model_validate(user)


@router.patch("/{user_id}/role", response_model=UserProfile)
async def update_user_role(
    user_id: UUID,
    role_data: AdminUserRoleUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin_user)
) -> Any:
    """Change a user's role (admin only)."""
    user = await UserService(db).update_role(user_id, role_data.role, current_user)
    return UserProfile.model_validate(user)


@router.patch("/{user_id}/status", response_model=UserProfile)
async def update_user_status(
    user_id: UUID,
    status_data: AdminUserStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin_user)
) -> Any:
    """
    Activate, deactivate or suspend a user account (admin only).

    Suspended users can no longer sign in.
    """
    user = await UserService(db).update_status(user_id, status_data.status, current_user)
    return UserProfile.model_validate(user)
