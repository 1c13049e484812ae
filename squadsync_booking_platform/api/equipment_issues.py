"""
Equipment issue and return API endpoints (staff only).
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User
from ..schemas.equipment import (
    EquipmentIssueCreate,
    EquipmentIssueResponse,
    EquipmentReturnRequest,
)
from ..services.equipment_service import EquipmentService
from ..utils.dependencies import get_current_staff_user


router = APIRouter(prefix="/equipment-issues", tags=["equipment-issues"])


@router.post("/", response_model=EquipmentIssueResponse, status_code=status.HTTP_201_CREATED)
async def issue_equipment(
    issue_data: EquipmentIssueCreate,
    current_user: User = Depends(get_current_staff_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Hand out the equipment of an approved booking.

    The items are due back at the end of the booking.
    """
    return await EquipmentService(db).issue_equipment(
        issue_data.booking_id, current_user, issue_data.notes
    )


@router.post("/{issue_id}/return", response_model=EquipmentIssueResponse)
async def return_equipment(
    issue_id: UUID,
    return_data: EquipmentReturnRequest,
    current_user: User = Depends(get_current_staff_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Record the return of issued equipment.

    Late returns accrue a delay fee and the booking is completed.
    """
    return await EquipmentService(db).return_equipment(
        issue_id, return_data.condition, current_user, return_data.notes
    )


@router.get("/", response_model=List[EquipmentIssueResponse])
async def list_equipment_issues(
    active_only: bool = Query(False, description="Only items not yet returned"),
    user_id: Optional[UUID] = Query(None, description="Filter by borrower"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    _: User = Depends(get_current_staff_user),
    db: AsyncSession = Depends(get_db)
):
    return await EquipmentService(db).list_issues(
        active_only=active_only, user_id=user_id, limit=limit, offset=offset
    )


@router.get("/{issue_id}", response_model=EquipmentIssueResponse)
async def get_equipment_issue(
    issue_id: UUID,
    _: User = Depends(get_current_staff_user),
    db: AsyncSession = Depends(get_db)
):
    return await EquipmentService(db).get_issue(issue_id)
