"""
Equipment and equipment issue schemas.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..models.equipment import EquipmentCondition
from ..models.equipment_issue import ReturnCondition


class EquipmentBase(BaseModel):
    """Base equipment schema with common fields."""

    name: str = Field(..., min_length=1, max_length=200, description="Equipment name")
    category: str = Field(..., min_length=1, max_length=100, description="Category such as rackets or balls")
    image_url: Optional[str] = Field(None, max_length=500)


class EquipmentCreate(EquipmentBase):
    """Schema for adding a new equipment line."""

    total_quantity: int = Field(..., ge=0, description="Number of items owned")
    condition: EquipmentCondition = EquipmentCondition.GOOD


class EquipmentUpdate(BaseModel):
    """Schema for updating equipment details."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    image_url: Optional[str] = Field(None, max_length=500)
    condition: Optional[EquipmentCondition] = None


class EquipmentRestock(BaseModel):
    quantity: int = Field(..., gt=0, le=1000, description="Items added to stock")


class EquipmentResponse(EquipmentBase):
    """Schema for equipment response."""

    id: UUID
    condition: EquipmentCondition
    total_quantity: int
    available_quantity: int
    damaged_quantity: int
    lost_quantity: int
    issued_quantity: int
    last_restocked_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class EquipmentCountResponse(BaseModel):
    in_stock: int


class InventorySummary(BaseModel):
    """Inventory totals across every equipment line."""

    total_items: int = Field(..., description="Items owned")
    available_items: int = Field(..., description="Items on the shelf")
    issued_items: int = Field(..., description="Items out on loan")
    damaged_items: int
    lost_items: int
    needs_attention: int = Field(..., description="Lines flagged for attention")
    low_stock: int = Field(..., description="Lines below the low stock threshold")
    equipment_lines: int


class EquipmentIssueCreate(BaseModel):
    """Schema for handing out equipment against an approved booking."""

    booking_id: UUID
    notes: Optional[str] = Field(None, max_length=500)


class EquipmentReturnRequest(BaseModel):
    """Schema for recording a return."""

    condition: ReturnCondition = ReturnCondition.GOOD
    notes: Optional[str] = Field(None, max_length=500)


class EquipmentIssueResponse(BaseModel):
    """Schema for equipment issue response."""

    id: UUID
    booking_id: UUID
    equipment_id: UUID
    user_id: UUID
    quantity: int
    issued_at: datetime
    due_at: datetime
    returned_at: Optional[datetime] = None
    return_condition: Optional[ReturnCondition] = None
    delay_fee: Decimal
    notes: Optional[str] = None
    is_returned: bool

    model_config = ConfigDict(from_attributes=True)
