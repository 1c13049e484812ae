"""
Time block API endpoints (admin only).
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User
from ..schemas.court import TimeBlockCreate, TimeBlockResponse
from ..services.court_service import CourtService
from ..utils.dependencies import get_current_admin_user


router = APIRouter(prefix="/time-blocks", tags=["time-blocks"])


@router.post("/", response_model=TimeBlockResponse, status_code=status.HTTP_201_CREATED)
async def create_time_block(
    block_data: TimeBlockCreate,
    current_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    """Block a court, or every court, for an interval."""
    return await CourtService(db).create_time_block(block_data, current_user)


@router.get("/", response_model=List[TimeBlockResponse])
async def list_time_blocks(
    court_id: Optional[UUID] = Query(None, description="Only blocks affecting this court"),
    include_past: bool = Query(False, description="Include blocks that already ended"),
    _: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    return await CourtService(db).list_time_blocks(court_id=court_id, include_past=include_past)


@router.delete("/{block_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_time_block(
    block_id: UUID,
    _: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    await CourtService(db).delete_time_block(block_id)
