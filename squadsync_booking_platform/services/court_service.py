"""
Court service for managing courts and the time blocks that close them.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..cache import CacheInvalidator
from ..models.court import Court
from ..models.time_block import BlockScope, TimeBlock
from ..models.user import User
from ..schemas.court import CourtCreate, CourtUpdate, TimeBlockCreate
from ..utils.exceptions import CourtNotFoundError, NotFoundError
from ..utils.logging_config import log_business_event
from ..utils.time_utils import utcnow

logger = logging.getLogger(__name__)


class CourtService:
    """Service class for court management operations."""

    def __init__(self, db: AsyncSession):
        """Initialize the court service with database session."""
        self.db = db

    async def list_courts(self, sport: Optional[str] = None, available_only: bool = False) -> List[Court]:
        """
        List courts ordered by name.

        Args:
            sport: Only courts for this sport (case-insensitive)
            available_only: Skip courts switched off for bookings

        Returns:
            List of courts
        """
        query = select(Court).order_by(Court.name)
        if sport:
            query = query.where(func.lower(Court.sport) == sport.lower())
        if available_only:
            query = query.where(Court.is_available.is_(True))

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_court(self, court_id: UUID) -> Court:
        """
        Get a court by ID.

        Raises:
            CourtNotFoundError: If court is not found
        """
        court = await self.db.get(Court, court_id)
        if court is None:
            raise CourtNotFoundError(str(court_id))
        return court

    async def count_available(self) -> int:
        result = await self.db.execute(
            select(func.count(Court.id)).where(Court.is_available.is_(True))
        )
        return result.scalar_one()

    async def create_court(self, court_data: CourtCreate) -> Court:
        """Create a new court."""
        court = Court(**court_data.model_dump())
        self.db.add(court)
        await self.db.commit()

        await CacheInvalidator.invalidate_court_caches()
        log_business_event("court_created", {"court_id": str(court.id), "name": court.name})
        return court

    async def update_court(self, court_id: UUID, court_data: CourtUpdate) -> Court:
        """
        Update court details; only provided fields change.

        Raises:
            CourtNotFoundError: If court is not found
        """
        court = await self.get_court(court_id)

        for field, value in court_data.model_dump(exclude_unset=True).items():
            setattr(court, field, value)

        await self.db.commit()
        await CacheInvalidator.invalidate_court_caches(str(court.id))
        logger.info(f"Updated court {court.id}")
        return court

    async def toggle_availability(self, court_id: UUID) -> Court:
        """Switch a court on or off for new bookings."""
        court = await self.get_court(court_id)
        court.is_available = not court.is_available
        await self.db.commit()

        await CacheInvalidator.invalidate_court_caches(str(court.id))
        log_business_event(
            "court_availability_changed",
            {"court_id": str(court.id), "is_available": court.is_available},
        )
        return court

    # Time blocks

    async def create_time_block(self, block_data: TimeBlockCreate, actor: User) -> TimeBlock:
        """
        Block a court, or every court, for an interval.

        Existing bookings are left untouched; the block only stops new ones.

        Raises:
            CourtNotFoundError: When a court block names an unknown court
        """
        if block_data.resource_type == BlockScope.COURT:
            await self.get_court(block_data.court_id)

        block = TimeBlock(
            resource_type=block_data.resource_type,
            court_id=block_data.court_id,
            reason=block_data.reason,
            start_time=block_data.start_time,
            end_time=block_data.end_time,
            created_by=actor.id,
        )
        self.db.add(block)
        await self.db.commit()

        await CacheInvalidator.invalidate_court_caches(
            str(block.court_id) if block.court_id else None
        )
        log_business_event(
            "time_block_created",
            {"block_id": str(block.id), "scope": block.resource_type.value, "reason": block.reason},
            user_id=str(actor.id),
        )
        return block

    async def list_time_blocks(
        self,
        court_id: Optional[UUID] = None,
        include_past: bool = False
    ) -> List[TimeBlock]:
        """
        List time blocks ordered by start time.

        When ``court_id`` is given, global blocks are included because they
        close that court too.
        """
        query = select(TimeBlock).order_by(TimeBlock.start_time)
        if court_id is not None:
            query = query.where(
                or_(TimeBlock.court_id == court_id, TimeBlock.resource_type == BlockScope.GLOBAL)
            )
        if not include_past:
            query = query.where(TimeBlock.end_time > utcnow())

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def delete_time_block(self, block_id: UUID) -> None:
        block = await self.db.get(TimeBlock, block_id)
        if block is None:
            raise NotFoundError(
                f"Time block {block_id} not found",
                resource_type="time_block",
                resource_id=str(block_id),
            )

        court_id = block.court_id
        await self.db.delete(block)
        await self.db.commit()

        await CacheInvalidator.invalidate_court_caches(str(court_id) if court_id else None)
        logger.info(f"Deleted time block {block_id}")
