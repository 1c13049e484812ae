"""
Court and time block schemas for request/response validation.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models.time_block import BlockScope
from ..utils.time_utils import as_utc


class CourtBase(BaseModel):
    """Base court schema with common fields."""

    name: str = Field(..., min_length=1, max_length=200, description="Court name")
    sport: str = Field(..., min_length=1, max_length=100, description="Sport played on the court")
    location: str = Field(..., min_length=1, max_length=255, description="Building or area")
    capacity: int = Field(..., gt=0, description="Maximum number of players")
    image_url: Optional[str] = Field(None, max_length=500)
    amenities: List[str] = Field(default_factory=list, description="Amenities such as lights or lockers")


class CourtCreate(CourtBase):
    """Schema for creating a new court."""

    is_available: bool = True


class CourtUpdate(BaseModel):
    """Schema for updating an existing court."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    sport: Optional[str] = Field(None, min_length=1, max_length=100)
    location: Optional[str] = Field(None, min_length=1, max_length=255)
    capacity: Optional[int] = Field(None, gt=0)
    image_url: Optional[str] = Field(None, max_length=500)
    amenities: Optional[List[str]] = None
    is_available: Optional[bool] = None


class CourtResponse(CourtBase):
    """Schema for court response."""

    id: UUID
    is_available: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CourtCountResponse(BaseModel):
    available: int


class TimeBlockCreate(BaseModel):
    """Schema for blocking a court, or every court, for an interval."""

    resource_type: BlockScope = Field(BlockScope.COURT, description="court or global")
    court_id: Optional[UUID] = Field(None, description="Required for court blocks")
    reason: str = Field(..., min_length=1, max_length=255)
    start_time: datetime
    end_time: datetime

    @field_validator("start_time", "end_time")
    @classmethod
    def normalise_timezone(cls, v: datetime) -> datetime:
        return as_utc(v)

    @model_validator(mode="after")
    def check_block(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        if self.resource_type == BlockScope.COURT and self.court_id is None:
            raise ValueError("court_id is required for court blocks")
        if self.resource_type == BlockScope.GLOBAL and self.court_id is not None:
            raise ValueError("Global blocks cannot target a court")
        return self


class TimeBlockResponse(BaseModel):
    """Schema for time block response."""

    id: UUID
    resource_type: BlockScope
    court_id: Optional[UUID] = None
    reason: str
    start_time: datetime
    end_time: datetime
    created_by: Optional[UUID] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
