"""
Booking service for court and equipment requests and their approval workflow.
"""

import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..cache import CacheInvalidator, CacheKeyBuilder, CacheTTL, distributed_lock
from ..config import get_settings
from ..models.booking import (
    ACTIVE_STATUSES,
    Booking,
    BookingStatus,
    BookingType,
    ResourceType,
    can_transition,
)
from ..models.booking_status_history import BookingStatusHistory
from ..models.court import Court
from ..models.equipment import Equipment
from ..models.equipment_issue import EquipmentIssue
from ..models.sports_class import SportsClass
from ..models.user import User
from ..schemas.booking import CourtBookingCreate, EquipmentBookingCreate
from ..utils.exceptions import (
    AuthorizationError,
    BookingConflictError,
    BookingNotFoundError,
    CourtNotFoundError,
    EquipmentAlreadyIssuedError,
    EquipmentNotFoundError,
    InsufficientEquipmentError,
    InvalidBookingWindowError,
    InvalidStatusTransitionError,
    NotClassRepresentativeError,
    ResourceUnavailableError,
    SquadSyncError,
)
from ..utils.logging_config import log_business_event
from ..utils.time_utils import as_utc, day_bounds, facility_zone, month_bounds, to_facility_time, utcnow
from .availability_service import AvailabilityService, find_overlap
from .notification_service import NotificationService

logger = logging.getLogger(__name__)


def booking_load_options() -> list:
    """Relationships every booking response needs."""
    return [
        selectinload(Booking.user),
        selectinload(Booking.court),
        selectinload(Booking.equipment),
        selectinload(Booking.sports_class),
    ]


class BookingService:
    """Service for creating bookings and moving them through their statuses."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.settings = get_settings()
        self.availability = AvailabilityService(session)
        self.notifications = NotificationService(session)

    # Creation

    async def create_court_booking(self, user: User, booking_data: CourtBookingCreate) -> Booking:
        """
        Request a court for a time window.

        Args:
            user: The user making the request
            booking_data: Court, window and booking type

        Returns:
            The pending booking

        Raises:
            CourtNotFoundError: When the court does not exist
            ResourceUnavailableError: When the court is switched off
            InvalidBookingWindowError: When the window breaks a booking rule
            NotClassRepresentativeError: For class bookings by non-representatives
            BookingConflictError: When the window overlaps a booking or block
        """
        logger.info(f"Creating court booking for user {user.id}, court {booking_data.court_id}")

        start, end = booking_data.start_time, booking_data.end_time
        self._validate_court_window(start, end)

        court = await self.session.get(Court, booking_data.court_id)
        if court is None:
            raise CourtNotFoundError(str(booking_data.court_id))
        if not court.is_available:
            raise ResourceUnavailableError("court", str(court.id))

        class_id = await self._resolve_class_id(user, booking_data.booking_type)

        lock_key = CacheKeyBuilder.court_booking_lock(str(court.id))
        async with distributed_lock(lock_key, timeout=CacheTTL.LOCK_TIMEOUT):
            await self._ensure_court_free(court.id, start, end)

            booking = Booking(
                user_id=user.id,
                class_id=class_id,
                resource_type=ResourceType.COURT,
                court_id=court.id,
                booking_type=booking_data.booking_type,
                quantity=1,
                start_time=start,
                end_time=end,
                status=BookingStatus.PENDING,
                notes=booking_data.notes,
            )
            self.session.add(booking)
            await self.session.flush()

            self._record_status_change(booking, None, BookingStatus.PENDING, user.id, "Booking requested")
            await self.session.commit()

        await CacheInvalidator.invalidate_court_caches(str(court.id))
        self._queue_status_email(booking.id, BookingStatus.PENDING)
        log_business_event(
            "court_booking_requested",
            {"booking_id": str(booking.id), "court_id": str(court.id), "booking_type": booking.booking_type.value},
            user_id=str(user.id),
        )

        return await self.get_booking(booking.id)

    async def create_equipment_booking(self, user: User, booking_data: EquipmentBookingCreate) -> Booking:
        """
        Request equipment for a time window.

        Raises:
            EquipmentNotFoundError: When the equipment does not exist
            InvalidBookingWindowError: When the window has already ended
            InsufficientEquipmentError: When stock cannot cover the request
        """
        logger.info(
            f"Creating equipment booking for user {user.id}, equipment {booking_data.equipment_id}, "
            f"quantity {booking_data.quantity}"
        )

        start, end = booking_data.start_time, booking_data.end_time
        if end <= utcnow():
            raise InvalidBookingWindowError("Equipment bookings must end in the future")

        equipment = await self.session.get(Equipment, booking_data.equipment_id)
        if equipment is None:
            raise EquipmentNotFoundError(str(booking_data.equipment_id))

        class_id = await self._resolve_class_id(user, booking_data.booking_type)

        lock_key = CacheKeyBuilder.equipment_booking_lock(str(equipment.id))
        async with distributed_lock(lock_key, timeout=CacheTTL.LOCK_TIMEOUT):
            await self._ensure_equipment_stock(equipment, booking_data.quantity, start, end)

            booking = Booking(
                user_id=user.id,
                class_id=class_id,
                resource_type=ResourceType.EQUIPMENT,
                equipment_id=equipment.id,
                booking_type=booking_data.booking_type,
                quantity=booking_data.quantity,
                start_time=start,
                end_time=end,
                status=BookingStatus.PENDING,
                notes=booking_data.notes,
            )
            self.session.add(booking)
            await self.session.flush()

            self._record_status_change(booking, None, BookingStatus.PENDING, user.id, "Booking requested")
            await self.session.commit()

        self._queue_status_email(booking.id, BookingStatus.PENDING)
        log_business_event(
            "equipment_booking_requested",
            {"booking_id": str(booking.id), "equipment_id": str(equipment.id), "quantity": booking.quantity},
            user_id=str(user.id),
        )

        return await self.get_booking(booking.id)

    # Status workflow

    async def approve_booking(self, booking_id: UUID, actor: User, notes: Optional[str] = None) -> Booking:
        """
        Approve a pending booking.

        Court approvals re-check the window against approved bookings and blocks.

        Raises:
            BookingNotFoundError: When booking is not found
            InvalidStatusTransitionError: When the booking is not pending
            BookingConflictError: When an approved booking or block now overlaps
        """
        booking = await self.get_booking(booking_id)
        self._check_transition(booking, BookingStatus.APPROVED)

        if booking.resource_type == ResourceType.COURT:
            await self._ensure_court_free(
                booking.court_id,
                as_utc(booking.start_time),
                as_utc(booking.end_time),
                statuses={BookingStatus.APPROVED},
                exclude_booking_id=booking.id,
            )

        return await self._apply_transition(booking, BookingStatus.APPROVED, actor.id, notes or "Approved")

    async def reject_booking(self, booking_id: UUID, actor: User, reason: Optional[str] = None) -> Booking:
        """Reject a pending booking."""
        booking = await self.get_booking(booking_id)
        self._check_transition(booking, BookingStatus.REJECTED)
        return await self._apply_transition(booking, BookingStatus.REJECTED, actor.id, reason or "Rejected")

    async def complete_booking(
        self,
        booking_id: UUID,
        actor: Optional[User] = None,
        notes: Optional[str] = None
    ) -> Booking:
        """Mark an approved booking as completed. ``actor`` is None for automatic completion."""
        booking = await self.get_booking(booking_id)
        self._check_transition(booking, BookingStatus.COMPLETED)
        return await self._apply_transition(
            booking,
            BookingStatus.COMPLETED,
            actor.id if actor else None,
            notes or "Completed",
        )

    async def cancel_booking(self, booking_id: UUID, actor: User, reason: Optional[str] = None) -> Booking:
        """
        Cancel a pending or approved booking.

        Raises:
            AuthorizationError: When the actor is neither the owner nor an admin
            InvalidStatusTransitionError: When the booking is already final
            EquipmentAlreadyIssuedError: When issued equipment has not been returned yet
        """
        booking = await self.get_booking(booking_id)
        if booking.user_id != actor.id and not actor.is_admin:
            raise AuthorizationError("You can only cancel your own bookings")

        self._check_transition(booking, BookingStatus.CANCELLED)

        if booking.resource_type == ResourceType.EQUIPMENT:
            open_issues = await self.session.scalar(
                select(func.count(EquipmentIssue.id)).where(
                    EquipmentIssue.booking_id == booking.id,
                    EquipmentIssue.returned_at.is_(None),
                )
            )
            if open_issues:
                raise EquipmentAlreadyIssuedError(
                    str(booking.id),
                    suggestions=["Return the equipment at the desk to close the booking"],
                )

        history_notes = "Booking cancelled"
        if reason:
            history_notes += f" - Reason: {reason}"
        return await self._apply_transition(booking, BookingStatus.CANCELLED, actor.id, history_notes)

    async def bulk_approve(
        self,
        booking_ids: Iterable[UUID],
        actor: User,
        notes: Optional[str] = None
    ) -> Dict[str, List[Any]]:
        """
        Approve several bookings, collecting failures instead of stopping.

        Returns:
            Dict with ``approved`` booking ids and ``failed`` entries
        """
        approved: List[UUID] = []
        failed: List[Dict[str, Any]] = []

        for booking_id in booking_ids:
            try:
                await self.approve_booking(booking_id, actor, notes)
                approved.append(booking_id)
            except SquadSyncError as e:
                logger.info(f"Bulk approval skipped booking {booking_id}: {e.message}")
                failed.append({
                    "booking_id": booking_id,
                    "error_code": e.error_code.value,
                    "message": e.message,
                })

        logger.info(f"Bulk approval by {actor.id}: {len(approved)} approved, {len(failed)} failed")
        return {"approved": approved, "failed": failed}

    # Queries

    async def get_booking(self, booking_id: UUID) -> Booking:
        """
        Get a booking with user, resource and class loaded.

        Raises:
            BookingNotFoundError: When booking is not found
        """
        result = await self.session.execute(
            select(Booking)
            .options(*booking_load_options())
            .where(Booking.id == booking_id)
            .execution_options(populate_existing=True)
        )
        booking = result.scalar_one_or_none()
        if booking is None:
            raise BookingNotFoundError(str(booking_id))
        return booking

    async def get_booking_for_user(self, booking_id: UUID, user: User) -> Booking:
        """Get a booking visible to ``user``: their own, or any for staff."""
        booking = await self.get_booking(booking_id)
        if booking.user_id != user.id and not user.is_staff:
            raise AuthorizationError("You can only view your own bookings")
        return booking

    async def list_user_bookings(
        self,
        user_id: UUID,
        status: Optional[BookingStatus] = None,
        resource_type: Optional[ResourceType] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Booking], int]:
        """List a user's bookings, most recent start first."""
        return await self.list_bookings(
            user_id=user_id,
            status=status,
            resource_type=resource_type,
            limit=limit,
            offset=offset,
        )

    async def get_upcoming_bookings(self, user_id: UUID, limit: int = 5) -> List[Booking]:
        """Active bookings that have not started yet, soonest first."""
        result = await self.session.execute(
            select(Booking)
            .options(*booking_load_options())
            .where(
                Booking.user_id == user_id,
                Booking.status.in_(list(ACTIVE_STATUSES)),
                Booking.start_time >= utcnow(),
            )
            .order_by(Booking.start_time.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_court_bookings(self, court_id: UUID, day: date) -> List[Booking]:
        """Active bookings of a court that overlap a facility-local day."""
        day_start, day_end = day_bounds(day)
        result = await self.session.execute(
            select(Booking)
            .options(*booking_load_options())
            .where(
                Booking.court_id == court_id,
                Booking.status.in_(list(ACTIVE_STATUSES)),
                Booking.start_time < day_end,
                Booking.end_time > day_start,
            )
            .order_by(Booking.start_time.asc())
        )
        return list(result.scalars().all())

    async def list_bookings(
        self,
        user_id: Optional[UUID] = None,
        status: Optional[BookingStatus] = None,
        resource_type: Optional[ResourceType] = None,
        court_id: Optional[UUID] = None,
        equipment_id: Optional[UUID] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Booking], int]:
        """
        List bookings with optional filters.

        Args:
            start_date: Only bookings starting on or after this facility-local day
            end_date: Only bookings starting on or before this facility-local day

        Returns:
            Tuple of (bookings, total count)
        """
        conditions = []
        if user_id is not None:
            conditions.append(Booking.user_id == user_id)
        if status is not None:
            conditions.append(Booking.status == status)
        if resource_type is not None:
            conditions.append(Booking.resource_type == resource_type)
        if court_id is not None:
            conditions.append(Booking.court_id == court_id)
        if equipment_id is not None:
            conditions.append(Booking.equipment_id == equipment_id)
        if start_date is not None:
            conditions.append(Booking.start_time >= day_bounds(start_date)[0])
        if end_date is not None:
            conditions.append(Booking.start_time < day_bounds(end_date)[1])

        query = (
            select(Booking)
            .options(*booking_load_options())
            .where(*conditions)
            .order_by(Booking.start_time.desc())
            .limit(limit)
            .offset(offset)
        )
        count_query = select(func.count(Booking.id)).where(*conditions)

        bookings = (await self.session.execute(query)).scalars().all()
        total = (await self.session.execute(count_query)).scalar_one()
        return list(bookings), total

    async def get_status_history(self, booking_id: UUID) -> List[Dict[str, Any]]:
        """
        Get a booking's status history, oldest first, with who made each change.

        Raises:
            BookingNotFoundError: When booking is not found
        """
        await self.get_booking(booking_id)

        result = await self.session.execute(
            select(BookingStatusHistory)
            .options(selectinload(BookingStatusHistory.changer))
            .where(BookingStatusHistory.booking_id == booking_id)
            .order_by(BookingStatusHistory.changed_at.asc())
        )

        history = []
        for entry in result.scalars().all():
            history.append({
                "id": entry.id,
                "booking_id": entry.booking_id,
                "old_status": entry.old_status,
                "new_status": entry.new_status,
                "changed_at": as_utc(entry.changed_at),
                "notes": entry.notes,
                "changed_by": entry.changed_by,
                "changed_by_name": entry.changer.full_name if entry.changer else None,
                "changed_by_email": entry.changer.email if entry.changer else None,
            })
        return history

    async def get_booking_pass(self, booking_id: UUID, user: User) -> Dict[str, Any]:
        """
        Build the entry pass for an approved booking.

        Raises:
            InvalidStatusTransitionError: When the booking is not approved
        """
        booking = await self.get_booking_for_user(booking_id, user)
        if booking.status != BookingStatus.APPROVED:
            raise InvalidStatusTransitionError(
                str(booking.id),
                booking.status.value,
                BookingStatus.APPROVED.value,
                suggestions=["Passes are only issued for approved bookings"],
            )

        return {
            "booking_id": booking.id,
            "pass_code": f"SQS-{booking.id.hex[:8].upper()}",
            "holder_name": booking.user.full_name,
            "resource_type": booking.resource_type,
            "resource_name": booking.resource_name,
            "location": booking.court.location if booking.court else None,
            "start_time": as_utc(booking.start_time),
            "end_time": as_utc(booking.end_time),
            "quantity": booking.quantity,
            "booking_type": booking.booking_type,
            "class_name": booking.sports_class.name if booking.sports_class else None,
        }

    async def get_user_stats(self, user_id: UUID) -> Dict[str, Any]:
        """
        Dashboard counters for a user.

        Returns:
            Active upcoming bookings, items currently issued, hours booked this
            month and delay fees
        """
        now = utcnow()

        active = (await self.session.execute(
            select(func.count(Booking.id)).where(
                Booking.user_id == user_id,
                Booking.status.in_(list(ACTIVE_STATUSES)),
                Booking.end_time > now,
            )
        )).scalar_one()

        issued = (await self.session.execute(
            select(func.coalesce(func.sum(EquipmentIssue.quantity), 0)).where(
                EquipmentIssue.user_id == user_id,
                EquipmentIssue.returned_at.is_(None),
            )
        )).scalar_one()

        month_start, month_end = month_bounds(now)
        windows = (await self.session.execute(
            select(Booking.start_time, Booking.end_time).where(
                Booking.user_id == user_id,
                Booking.status.in_([BookingStatus.APPROVED, BookingStatus.COMPLETED]),
                Booking.start_time >= month_start,
                Booking.start_time < month_end,
            )
        )).all()
        hours = sum(
            (as_utc(end) - as_utc(start)).total_seconds() / 3600
            for start, end in windows
        )

        fees = (await self.session.execute(
            select(func.coalesce(func.sum(EquipmentIssue.delay_fee), 0)).where(
                EquipmentIssue.user_id == user_id,
            )
        )).scalar_one()

        return {
            "active_bookings": active,
            "equipment_issued": int(issued),
            "hours_booked_this_month": round(hours, 2),
            "pending_fees": float(Decimal(str(fees))),
        }

    async def get_finished_court_bookings(self, now: Optional[datetime] = None, limit: int = 100) -> List[Booking]:
        """Approved court bookings whose window has ended."""
        now = now or utcnow()
        result = await self.session.execute(
            select(Booking)
            .where(
                Booking.status == BookingStatus.APPROVED,
                Booking.resource_type == ResourceType.COURT,
                Booking.end_time <= now,
            )
            .order_by(Booking.end_time.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    # Helpers

    def _validate_court_window(self, start: datetime, end: datetime) -> None:
        """Court bookings must be in the future, inside opening hours and not too long."""
        if start <= utcnow():
            raise InvalidBookingWindowError("Bookings must start in the future")

        max_hours = self.settings.max_booking_hours
        if end - start > timedelta(hours=max_hours):
            raise InvalidBookingWindowError(
                f"Court bookings cannot be longer than {max_hours} hours",
                details={"max_booking_hours": max_hours},
            )

        local_start = to_facility_time(start)
        local_end = to_facility_time(end)
        zone = facility_zone()
        opening = datetime.combine(local_start.date(), time(hour=self.settings.facility_open_hour), tzinfo=zone)
        closing = (
            datetime.combine(local_start.date(), time.min, tzinfo=zone)
            + timedelta(hours=self.settings.facility_close_hour)
        )
        if local_start < opening or local_end > closing:
            raise InvalidBookingWindowError(
                "Courts can only be booked within opening hours",
                details={
                    "open_hour": self.settings.facility_open_hour,
                    "close_hour": self.settings.facility_close_hour,
                    "timezone": self.settings.facility_timezone,
                },
            )

    async def _resolve_class_id(self, user: User, booking_type: BookingType) -> Optional[UUID]:
        """Class bookings are only open to the representative of an active class."""
        if booking_type != BookingType.CLASS:
            return None

        if not user.is_representative or user.class_id is None:
            raise NotClassRepresentativeError(str(user.id))

        sports_class = await self.session.get(SportsClass, user.class_id)
        if (
            sports_class is None
            or not sports_class.is_active
            or sports_class.representative_user_id != user.id
        ):
            raise NotClassRepresentativeError(str(user.id))

        return sports_class.id

    async def _ensure_court_free(
        self,
        court_id: UUID,
        start: datetime,
        end: datetime,
        statuses=ACTIVE_STATUSES,
        exclude_booking_id: Optional[UUID] = None,
    ) -> None:
        occupancies = await self.availability.get_court_occupancies(
            court_id, start, end, statuses=statuses, exclude_booking_id=exclude_booking_id
        )
        clash = find_overlap(start, end, occupancies)
        if clash is not None:
            raise BookingConflictError(
                str(court_id),
                conflicting_id=str(clash.booking_id) if clash.booking_id else None,
                reason=clash.reason,
            )

    async def _ensure_equipment_stock(
        self,
        equipment: Equipment,
        quantity: int,
        start: datetime,
        end: datetime
    ) -> None:
        if quantity > equipment.available_quantity:
            raise InsufficientEquipmentError(quantity, equipment.available_quantity, str(equipment.id))

        reserved = (await self.session.execute(
            select(func.coalesce(func.sum(Booking.quantity), 0)).where(
                Booking.equipment_id == equipment.id,
                Booking.status.in_(list(ACTIVE_STATUSES)),
                Booking.start_time < end,
                Booking.end_time > start,
            )
        )).scalar_one()

        remaining = equipment.serviceable_quantity - int(reserved)
        if quantity > remaining:
            raise InsufficientEquipmentError(quantity, max(0, remaining), str(equipment.id))

    def _check_transition(self, booking: Booking, target: BookingStatus) -> None:
        if not can_transition(booking.status, target):
            raise InvalidStatusTransitionError(str(booking.id), booking.status.value, target.value)

    def _record_status_change(
        self,
        booking: Booking,
        old_status: Optional[BookingStatus],
        new_status: BookingStatus,
        changed_by: Optional[UUID],
        notes: Optional[str] = None,
    ) -> BookingStatusHistory:
        entry = BookingStatusHistory(
            booking_id=booking.id,
            old_status=old_status,
            new_status=new_status,
            changed_by=changed_by,
            changed_at=utcnow(),
            notes=notes,
        )
        self.session.add(entry)
        return entry

    async def _apply_transition(
        self,
        booking: Booking,
        target: BookingStatus,
        actor_id: Optional[UUID],
        notes: Optional[str],
    ) -> Booking:
        """Change status, write history, notify the owner and queue the email."""
        old_status = booking.status
        booking.status = target
        self._record_status_change(booking, old_status, target, actor_id, notes)
        await self.notifications.notify_booking_status(booking, target)
        await self.session.commit()

        if booking.court_id is not None:
            await CacheInvalidator.invalidate_court_caches(str(booking.court_id))
        self._queue_status_email(booking.id, target)

        log_business_event(
            f"booking_{target.value}",
            {"booking_id": str(booking.id), "from": old_status.value, "to": target.value},
            user_id=str(actor_id) if actor_id else None,
        )
        logger.info(f"Booking {booking.id} moved from {old_status.value} to {target.value}")

        return await self.get_booking(booking.id)

    def _queue_status_email(self, booking_id: UUID, status: BookingStatus) -> None:
        try:
            from ..tasks.notification_tasks import send_booking_status_email_task
            send_booking_status_email_task.delay(str(booking_id), status.value)
        except Exception as e:
            logger.warning(f"Failed to queue status email for booking {booking_id}: {e}")
