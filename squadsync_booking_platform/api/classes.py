"""
Class registration and management API endpoints.
"""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User
from ..schemas.auth import UserProfile
from ..schemas.sports_class import (
    ClassListResponse,
    ClassRegistration,
    ClassRegistrationResponse,
    ClassUpdate,
    ClassWithCodeResponse,
)
from ..services.class_service import ClassService
from ..utils.dependencies import get_current_active_user, get_current_admin_user


router = APIRouter(prefix="/classes", tags=["classes"])


def get_class_service(db: AsyncSession = Depends(get_db)) -> ClassService:
    """Dependency to get class service instance."""
    return ClassService(db)


@router.post("/register", response_model=ClassRegistrationResponse, status_code=status.HTTP_201_CREATED)
async def register_class(
    registration: ClassRegistration,
    class_service: ClassService = Depends(get_class_service)
) -> Any:
    """
    Register a class together with its representative account.

    The generated class code is returned here and emailed to the
    representative.
    """
    sports_class, representative = await class_service.register_class(registration)
    return ClassRegistrationResponse(
        sports_class=ClassWithCodeResponse.model_validate(sports_class),
        representative=UserProfile.model_validate(representative)
    )


@router.get("/", response_model=ClassListResponse)
async def list_classes(
    active_only: bool = Query(False, description="Show only active classes"),
    _: User = Depends(get_current_admin_user),
    class_service: ClassService = Depends(get_class_service)
) -> Any:
    """List registered classes (admin only)."""
    classes = await class_service.list_classes(active_only=active_only)
    return ClassListResponse(
        classes=[ClassWithCodeResponse.model_validate(c) for c in classes],
        total=len(classes)
    )


@router.get("/mine", response_model=ClassWithCodeResponse)
async def get_my_class(
    current_user: User = Depends(get_current_active_user),
    class_service: ClassService = Depends(get_class_service)
) -> Any:
    """Get the class the signed-in user belongs to."""
    sports_class = await class_service.get_user_class(current_user)
    if sports_class is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="You are not a member of any class"
        )
    return ClassWithCodeResponse.model_validate(sports_class)


@router.get("/{class_id}", response_model=ClassWithCodeResponse)
async def get_class(
    class_id: UUID,
    _: User = Depends(get_current_admin_user),
    class_service: ClassService = Depends(get_class_service)
) -> Any:
    """Get a class by ID (admin only)."""
    return ClassWithCodeResponse.model_validate(await class_service.get_class(class_id))


@router.put("/{class_id}", response_model=ClassWithCodeResponse)
async def update_class(
    class_id: UUID,
    update_data: ClassUpdate,
    _: User = Depends(get_current_admin_user),
    class_service: ClassService = Depends(get_class_service)
) -> Any:
    """Update class details or deactivate a class (admin only)."""
    sports_class = await class_service.update_class(class_id, update_data)
    return ClassWithCodeResponse.model_validate(sports_class)


@router.post("/{class_id}/regenerate-code", response_model=ClassWithCodeResponse)
async def regenerate_class_code(
    class_id: UUID,
    _: User = Depends(get_current_admin_user),
    class_service: ClassService = Depends(get_class_service)
) -> Any:
    """Issue a new class code, invalidating the old one (admin only)."""
    sports_class = await class_service.regenerate_class_code(class_id)
    return ClassWithCodeResponse.model_validate(sports_class)
