"""
Court availability: interval overlap checks and the hourly slot grid.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..cache import CacheKeyBuilder, CacheTTL, get_cache
from ..config import get_settings
from ..models.booking import ACTIVE_STATUSES, Booking
from ..models.court import Court
from ..models.time_block import BlockScope, TimeBlock
from ..utils.exceptions import CourtNotFoundError
from ..utils.time_utils import as_utc, day_bounds, facility_zone, utcnow

logger = logging.getLogger(__name__)


@dataclass
class Occupancy:
    """Something that occupies a court for an interval."""

    start: datetime
    end: datetime
    kind: str  # "booking" or "block"
    booking_id: Optional[UUID] = None
    booking_type: Optional[str] = None
    class_name: Optional[str] = None
    reason: Optional[str] = None


@dataclass
class TimeSlot:
    """One fixed-length slot of the daily grid."""

    start_time: datetime
    end_time: datetime
    label: str
    available: bool
    occupied_by: Optional[str] = None
    booking_type: Optional[str] = None
    class_name: Optional[str] = None
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["start_time"] = self.start_time.isoformat()
        data["end_time"] = self.end_time.isoformat()
        return data


def intervals_overlap(
    a_start: datetime,
    a_end: datetime,
    b_start: datetime,
    b_end: datetime
) -> bool:
    """Half-open interval test; intervals that only touch do not overlap."""
    return a_start < b_end and b_start < a_end


def find_overlap(
    start: datetime,
    end: datetime,
    occupancies: Iterable[Occupancy]
) -> Optional[Occupancy]:
    """Return the first occupancy overlapping ``[start, end)``, if any."""
    for occupancy in occupancies:
        if intervals_overlap(start, end, occupancy.start, occupancy.end):
            return occupancy
    return None


def format_slot_label(moment: datetime) -> str:
    """Render a local time as ``6:00 AM``."""
    return moment.strftime("%I:%M %p").lstrip("0")


def generate_time_slots(
    day: date,
    occupancies: Iterable[Occupancy] = (),
    now: Optional[datetime] = None,
    open_hour: Optional[int] = None,
    close_hour: Optional[int] = None,
    step_minutes: Optional[int] = None,
) -> List[TimeSlot]:
    """
    Build the slot grid for one day in the facility timezone.

    Args:
        day: Calendar day in the facility timezone
        occupancies: Bookings and blocks touching that day
        now: Reference time; slots that have already started are unavailable
        open_hour: First slot start hour, defaults to settings
        close_hour: Hour the last slot must end by, defaults to settings
        step_minutes: Slot length, defaults to settings

    Returns:
        Slots ordered by start time
    """
    settings = get_settings()
    open_hour = settings.facility_open_hour if open_hour is None else open_hour
    close_hour = settings.facility_close_hour if close_hour is None else close_hour
    step = timedelta(minutes=step_minutes or settings.slot_duration_minutes)
    now = as_utc(now) if now else utcnow()
    occupancies = list(occupancies)

    zone = facility_zone()
    cursor = datetime.combine(day, time(hour=open_hour), tzinfo=zone)
    closing = datetime.combine(day, time.min, tzinfo=zone) + timedelta(hours=close_hour)

    slots: List[TimeSlot] = []
    while cursor + step <= closing:
        slot_start = as_utc(cursor)
        slot_end = as_utc(cursor + step)
        slot = TimeSlot(
            start_time=slot_start,
            end_time=slot_end,
            label=format_slot_label(cursor),
            available=True,
        )

        occupant = find_overlap(slot_start, slot_end, occupancies)
        if occupant is not None:
            slot.available = False
            slot.occupied_by = occupant.kind
            slot.booking_type = occupant.booking_type
            slot.class_name = occupant.class_name
            slot.reason = occupant.reason
        elif slot_start <= now:
            slot.available = False
            slot.reason = "past"

        slots.append(slot)
        cursor += step

    return slots


def mark_started_slots(slots: List[dict], now: datetime) -> List[dict]:
    """Close free slots of a serialised grid that have started by ``now``."""
    for slot in slots:
        if slot["available"] and datetime.fromisoformat(slot["start_time"]) <= now:
            slot["available"] = False
            slot["reason"] = "past"
    return slots


class AvailabilityService:
    """Loads court occupancy from the database and builds slot grids."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.cache = get_cache()

    async def get_court_occupancies(
        self,
        court_id: UUID,
        start: datetime,
        end: datetime,
        statuses=ACTIVE_STATUSES,
        exclude_booking_id: Optional[UUID] = None,
    ) -> List[Occupancy]:
        """
        Collect bookings and time blocks overlapping ``[start, end)`` for a court.

        Global blocks apply to every court.
        """
        booking_query = (
            select(Booking)
            .options(selectinload(Booking.sports_class))
            .where(
                Booking.court_id == court_id,
                Booking.status.in_(list(statuses)),
                Booking.start_time < end,
                Booking.end_time > start,
            )
            .order_by(Booking.start_time)
        )
        if exclude_booking_id is not None:
            booking_query = booking_query.where(Booking.id != exclude_booking_id)

        block_query = (
            select(TimeBlock)
            .where(
                or_(
                    TimeBlock.court_id == court_id,
                    TimeBlock.resource_type == BlockScope.GLOBAL,
                ),
                TimeBlock.start_time < end,
                TimeBlock.end_time > start,
            )
            .order_by(TimeBlock.start_time)
        )

        bookings = (await self.session.execute(booking_query)).scalars().all()
        blocks = (await self.session.execute(block_query)).scalars().all()

        occupancies = [
            Occupancy(
                start=as_utc(booking.start_time),
                end=as_utc(booking.end_time),
                kind="booking",
                booking_id=booking.id,
                booking_type=booking.booking_type.value,
                class_name=booking.sports_class.name if booking.sports_class else None,
            )
            for booking in bookings
        ]
        occupancies.extend(
            Occupancy(
                start=as_utc(block.start_time),
                end=as_utc(block.end_time),
                kind="block",
                reason=block.reason,
            )
            for block in blocks
        )
        return occupancies

    async def get_court_slots(self, court_id: UUID, day: date) -> List[dict]:
        """
        Get the slot grid for a court on a given day.

        Raises:
            CourtNotFoundError: When the court does not exist
        """
        cache_key = CacheKeyBuilder.court_slots(str(court_id), day.isoformat())
        cached = await self.cache.get(cache_key)
        if cached is not None:
            return mark_started_slots(cached, utcnow())

        court = await self.session.get(Court, court_id)
        if court is None:
            raise CourtNotFoundError(str(court_id))

        day_start, day_end = day_bounds(day)
        occupancies = await self.get_court_occupancies(court_id, day_start, day_end)
        slots = [slot.to_dict() for slot in generate_time_slots(day, occupancies)]

        if not court.is_available:
            for slot in slots:
                if slot["available"]:
                    slot["available"] = False
                    slot["reason"] = "court unavailable"

        await self.cache.set(cache_key, slots, ttl=CacheTTL.COURT_SLOTS)
        logger.debug(f"Built {len(slots)} slots for court {court_id} on {day}")
        return slots
