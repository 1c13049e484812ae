"""
Equipment inventory API endpoints.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User
from ..schemas.equipment import (
    EquipmentCountResponse,
    EquipmentCreate,
    EquipmentResponse,
    EquipmentRestock,
    EquipmentUpdate,
    InventorySummary,
)
from ..services.equipment_service import EquipmentService
from ..utils.dependencies import get_current_admin_user, get_current_staff_user


router = APIRouter(prefix="/equipment", tags=["equipment"])


def get_equipment_service(db: AsyncSession = Depends(get_db)) -> EquipmentService:
    """Dependency to get equipment service instance."""
    return EquipmentService(db)


@router.get("/", response_model=List[EquipmentResponse])
async def list_equipment(
    category: Optional[str] = Query(None, description="Filter by category"),
    equipment_service: EquipmentService = Depends(get_equipment_service)
):
    """List equipment ordered by name."""
    return await equipment_service.list_equipment(category=category)


@router.get("/in-stock-count", response_model=EquipmentCountResponse)
async def count_in_stock(equipment_service: EquipmentService = Depends(get_equipment_service)):
    """Number of equipment lines with at least one item on the shelf."""
    return EquipmentCountResponse(in_stock=await equipment_service.count_in_stock())


@router.get("/inventory-summary", response_model=InventorySummary)
async def get_inventory_summary(
    _: User = Depends(get_current_staff_user),
    equipment_service: EquipmentService = Depends(get_equipment_service)
):
    """Stock totals across all equipment (staff only)."""
    return InventorySummary(**await equipment_service.inventory_summary())


@router.get("/{equipment_id}", response_model=EquipmentResponse)
async def get_equipment(
    equipment_id: UUID,
    equipment_service: EquipmentService = Depends(get_equipment_service)
):
    return await equipment_service.get_equipment(equipment_id)


@router.post("/", response_model=EquipmentResponse, status_code=status.HTTP_201_CREATED)
async def create_equipment(
    equipment_data: EquipmentCreate,
    _: User = Depends(get_current_admin_user),
    equipment_service: EquipmentService = Depends(get_equipment_service)
):
    """Add a new equipment line (admin only)."""
    return await equipment_service.create_equipment(equipment_data)


@router.put("/{equipment_id}", response_model=EquipmentResponse)
async def update_equipment(
    equipment_id: UUID,
    equipment_data: EquipmentUpdate,
    _: User = Depends(get_current_admin_user),
    equipment_service: EquipmentService = Depends(get_equipment_service)
):
    """Update an equipment line (admin only)."""
    return await equipment_service.update_equipment(equipment_id, equipment_data)


@router.post("/{equipment_id}/restock", response_model=EquipmentResponse)
async def restock_equipment(
    equipment_id: UUID,
    restock_data: EquipmentRestock,
    current_user: User = Depends(get_current_admin_user),
    equipment_service: EquipmentService = Depends(get_equipment_service)
):
    """
    Add items to stock (admin only).

    Restocking resets the line's condition to good.
    """
    return await equipment_service.restock(equipment_id, restock_data.quantity, current_user)
