"""
Equipment service for inventory management and issuing items against bookings.
"""

import logging
import math
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..cache import CacheKeyBuilder, CacheTTL, distributed_lock
from ..config import get_settings
from ..models.booking import BookingStatus, ResourceType
from ..models.equipment import Equipment, EquipmentCondition
from ..models.equipment_issue import EquipmentIssue, ReturnCondition
from ..models.notification import NotificationType
from ..models.user import User
from ..schemas.equipment import EquipmentCreate, EquipmentUpdate
from ..utils.exceptions import (
    EquipmentAlreadyIssuedError,
    EquipmentAlreadyReturnedError,
    EquipmentNotFoundError,
    InsufficientEquipmentError,
    NotFoundError,
    ValidationError,
)
from ..utils.logging_config import log_business_event
from ..utils.time_utils import as_utc, utcnow
from .booking_service import BookingService
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def compute_delay_fee(
    due_at: datetime,
    returned_at: datetime,
    rate_per_hour: Optional[float] = None
) -> Decimal:
    """
    Fee for a late return: every started hour past ``due_at`` is charged.

    Returns:
        Decimal fee rounded to cents, zero when returned on time
    """
    rate = get_settings().delay_fee_per_hour if rate_per_hour is None else rate_per_hour
    late_seconds = (as_utc(returned_at) - as_utc(due_at)).total_seconds()
    if late_seconds <= 0:
        return Decimal("0.00")

    hours = math.ceil(late_seconds / 3600)
    return (Decimal(hours) * Decimal(str(rate))).quantize(CENTS, rounding=ROUND_HALF_UP)


class EquipmentService:
    """Service class for equipment inventory and issues."""

    def __init__(self, db: AsyncSession):
        """Initialize the equipment service with database session."""
        self.db = db
        self.settings = get_settings()

    # Inventory

    async def list_equipment(self, category: Optional[str] = None) -> List[Equipment]:
        """List equipment ordered by name, optionally for one category."""
        query = select(Equipment).order_by(Equipment.name)
        if category:
            query = query.where(func.lower(Equipment.category) == category.lower())

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_equipment(self, equipment_id: UUID) -> Equipment:
        """
        Get equipment by ID.

        Raises:
            EquipmentNotFoundError: If equipment is not found
        """
        equipment = await self.db.get(Equipment, equipment_id)
        if equipment is None:
            raise EquipmentNotFoundError(str(equipment_id))
        return equipment

    async def count_in_stock(self) -> int:
        """Number of equipment lines with at least one item on the shelf."""
        result = await self.db.execute(
            select(func.count(Equipment.id)).where(Equipment.available_quantity > 0)
        )
        return result.scalar_one()

    async def create_equipment(self, equipment_data: EquipmentCreate) -> Equipment:
        """Add a new equipment line with every item on the shelf."""
        equipment = Equipment(
            name=equipment_data.name,
            category=equipment_data.category,
            image_url=equipment_data.image_url,
            condition=equipment_data.condition,
            total_quantity=equipment_data.total_quantity,
            available_quantity=equipment_data.total_quantity,
            damaged_quantity=0,
            lost_quantity=0,
            last_restocked_at=utcnow(),
        )
        self.db.add(equipment)
        await self.db.commit()

        log_business_event(
            "equipment_created",
            {"equipment_id": str(equipment.id), "name": equipment.name, "quantity": equipment.total_quantity},
        )
        return equipment

    async def update_equipment(self, equipment_id: UUID, equipment_data: EquipmentUpdate) -> Equipment:
        equipment = await self.get_equipment(equipment_id)

        for field, value in equipment_data.model_dump(exclude_unset=True).items():
            setattr(equipment, field, value)

        await self.db.commit()
        return equipment

    async def restock(self, equipment_id: UUID, quantity: int, actor: Optional[User] = None) -> Equipment:
        """
        Add items to stock.

        Both total and available quantities grow, and the line is marked good.
        """
        if quantity <= 0:
            raise ValidationError("Restock quantity must be positive", field_errors={"quantity": ["must be > 0"]})

        equipment = await self.get_equipment(equipment_id)
        equipment.total_quantity += quantity
        equipment.available_quantity += quantity
        equipment.condition = EquipmentCondition.GOOD
        equipment.last_restocked_at = utcnow()
        await self.db.commit()

        log_business_event(
            "equipment_restocked",
            {"equipment_id": str(equipment.id), "quantity": quantity, "total": equipment.total_quantity},
            user_id=str(actor.id) if actor else None,
        )
        return equipment

    async def inventory_summary(self) -> Dict[str, int]:
        """Totals across every equipment line."""
        equipment = await self.list_equipment()
        threshold = self.settings.low_stock_threshold

        return {
            "total_items": sum(item.total_quantity for item in equipment),
            "available_items": sum(item.available_quantity for item in equipment),
            "issued_items": sum(item.issued_quantity for item in equipment),
            "damaged_items": sum(item.damaged_quantity for item in equipment),
            "lost_items": sum(item.lost_quantity for item in equipment),
            "needs_attention": sum(
                1 for item in equipment if item.condition == EquipmentCondition.NEEDS_ATTENTION
            ),
            "low_stock": sum(1 for item in equipment if item.available_quantity < threshold),
            "equipment_lines": len(equipment),
        }

    # Issues and returns

    async def issue_equipment(self, booking_id: UUID, actor: User, notes: Optional[str] = None) -> EquipmentIssue:
        """
        Hand out the items of an approved equipment booking.

        Raises:
            ValidationError: When the booking is not an approved equipment booking
            EquipmentAlreadyIssuedError: When the booking was already issued
            InsufficientEquipmentError: When the shelf no longer holds enough items
        """
        booking = await BookingService(self.db).get_booking(booking_id)
        if booking.resource_type != ResourceType.EQUIPMENT:
            raise ValidationError("Only equipment bookings can be issued")
        if booking.status != BookingStatus.APPROVED:
            raise ValidationError(
                "Equipment can only be issued for approved bookings",
                details={"booking_id": str(booking.id), "status": booking.status.value},
            )

        existing = await self.db.execute(
            select(EquipmentIssue.id).where(EquipmentIssue.booking_id == booking.id)
        )
        if existing.first() is not None:
            raise EquipmentAlreadyIssuedError(str(booking.id))

        lock_key = CacheKeyBuilder.equipment_booking_lock(str(booking.equipment_id))
        async with distributed_lock(lock_key, timeout=CacheTTL.LOCK_TIMEOUT):
            equipment = booking.equipment
            if booking.quantity > equipment.available_quantity:
                raise InsufficientEquipmentError(booking.quantity, equipment.available_quantity, str(equipment.id))

            equipment.available_quantity -= booking.quantity
            issue = EquipmentIssue(
                booking_id=booking.id,
                equipment_id=equipment.id,
                user_id=booking.user_id,
                quantity=booking.quantity,
                issued_at=utcnow(),
                due_at=booking.end_time,
                delay_fee=Decimal("0.00"),
                notes=notes,
            )
            self.db.add(issue)
            await self.db.commit()

        log_business_event(
            "equipment_issued",
            {"issue_id": str(issue.id), "booking_id": str(booking.id), "quantity": issue.quantity},
            user_id=str(actor.id),
        )
        return issue

    async def return_equipment(
        self,
        issue_id: UUID,
        condition: ReturnCondition,
        actor: User,
        notes: Optional[str] = None
    ) -> EquipmentIssue:
        """
        Record the return of issued items.

        Good items go back on the shelf; damaged or lost ones move to their
        counters and flag the line for attention. Late returns are charged and
        the booking is completed.

        Raises:
            NotFoundError: When the issue does not exist
            EquipmentAlreadyReturnedError: When it was already returned
        """
        issue = await self.get_issue(issue_id)
        if issue.is_returned:
            raise EquipmentAlreadyReturnedError(str(issue.id))

        now = utcnow()
        fee = compute_delay_fee(issue.due_at, now, self.settings.delay_fee_per_hour)

        equipment = issue.equipment
        if condition == ReturnCondition.GOOD:
            equipment.available_quantity += issue.quantity
        elif condition == ReturnCondition.DAMAGED:
            equipment.damaged_quantity += issue.quantity
            equipment.condition = EquipmentCondition.NEEDS_ATTENTION
        else:
            equipment.lost_quantity += issue.quantity
            equipment.condition = EquipmentCondition.NEEDS_ATTENTION

        issue.returned_at = now
        issue.return_condition = condition
        issue.delay_fee = fee
        if notes:
            issue.notes = f"{issue.notes}\n{notes}" if issue.notes else notes

        if fee > 0:
            await NotificationService(self.db).create_notification(
                issue.user_id,
                "Late Return Fee",
                f"{equipment.name} was returned late. A delay fee of {fee} has been added to your account.",
                NotificationType.WARNING,
            )

        booking = issue.booking
        if booking.status == BookingStatus.APPROVED:
            await BookingService(self.db).complete_booking(booking.id, actor, "Equipment returned")
        else:
            await self.db.commit()

        log_business_event(
            "equipment_returned",
            {
                "issue_id": str(issue.id),
                "condition": condition.value,
                "delay_fee": str(fee),
            },
            user_id=str(actor.id),
        )
        return issue

    async def get_issue(self, issue_id: UUID) -> EquipmentIssue:
        result = await self.db.execute(
            select(EquipmentIssue)
            .options(selectinload(EquipmentIssue.equipment), selectinload(EquipmentIssue.booking))
            .where(EquipmentIssue.id == issue_id)
            .execution_options(populate_existing=True)
        )
        issue = result.scalar_one_or_none()
        if issue is None:
            raise NotFoundError(
                f"Equipment issue {issue_id} not found",
                resource_type="equipment_issue",
                resource_id=str(issue_id),
            )
        return issue

    async def list_issues(
        self,
        active_only: bool = False,
        user_id: Optional[UUID] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[EquipmentIssue]:
        """List issues, newest first."""
        query = select(EquipmentIssue).order_by(EquipmentIssue.issued_at.desc()).limit(limit).offset(offset)
        if active_only:
            query = query.where(EquipmentIssue.returned_at.is_(None))
        if user_id is not None:
            query = query.where(EquipmentIssue.user_id == user_id)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def refresh_overdue_fees(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Update running delay fees of unreturned overdue issues.

        The borrower is notified the first time an issue starts accruing a fee.

        Returns:
            Counts of overdue issues and newly flagged ones
        """
        now = now or utcnow()
        result = await self.db.execute(
            select(EquipmentIssue)
            .options(selectinload(EquipmentIssue.equipment))
            .where(EquipmentIssue.returned_at.is_(None), EquipmentIssue.due_at < now)
        )
        overdue = list(result.scalars().all())

        notifications = NotificationService(self.db)
        newly_flagged = 0
        for issue in overdue:
            fee = compute_delay_fee(issue.due_at, now, self.settings.delay_fee_per_hour)
            if fee <= issue.delay_fee:
                continue

            if issue.delay_fee == 0:
                newly_flagged += 1
                await notifications.create_notification(
                    issue.user_id,
                    "Equipment Overdue",
                    f"{issue.equipment.name} was due back at "
                    f"{as_utc(issue.due_at).strftime('%H:%M UTC on %B %d')}. "
                    f"Late fees of {self.settings.delay_fee_per_hour:.2f} per hour now apply.",
                    NotificationType.WARNING,
                )
            issue.delay_fee = fee

        await self.db.commit()
        return {"overdue": len(overdue), "newly_flagged": newly_flagged}
