from datetime import date, datetime, timedelta, timezone

import pytest

from squadsync_booking_platform.models import BlockScope, Booking, BookingStatus, ResourceType, TimeBlock
from squadsync_booking_platform.services.availability_service import (
    AvailabilityService,
    Occupancy,
    find_overlap,
    format_slot_label,
    generate_time_slots,
    intervals_overlap,
    mark_started_slots,
)
from squadsync_booking_platform.utils.exceptions import CourtNotFoundError

from conftest import future_window


def _at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


DAY = date(2030, 3, 14)
BEFORE_DAY = _at(date(2030, 3, 13), 12)


class TestIntervals:
    def test_overlapping_intervals(self):
        assert intervals_overlap(_at(DAY, 10), _at(DAY, 12), _at(DAY, 11), _at(DAY, 13))

    def test_contained_interval(self):
        assert intervals_overlap(_at(DAY, 10), _at(DAY, 14), _at(DAY, 11), _at(DAY, 12))

    def test_touching_intervals_do_not_overlap(self):
        assert not intervals_overlap(_at(DAY, 10), _at(DAY, 11), _at(DAY, 11), _at(DAY, 12))
        assert not intervals_overlap(_at(DAY, 11), _at(DAY, 12), _at(DAY, 10), _at(DAY, 11))

    def test_find_overlap_returns_first_match(self):
        occupancies = [
            Occupancy(start=_at(DAY, 8), end=_at(DAY, 9), kind="booking"),
            Occupancy(start=_at(DAY, 10), end=_at(DAY, 12), kind="block", reason="Maintenance"),
            Occupancy(start=_at(DAY, 11), end=_at(DAY, 13), kind="booking"),
        ]
        found = find_overlap(_at(DAY, 11), _at(DAY, 12), occupancies)
        assert found is occupancies[1]

    def test_find_overlap_none(self):
        occupancies = [Occupancy(start=_at(DAY, 8), end=_at(DAY, 9), kind="booking")]
        assert find_overlap(_at(DAY, 9), _at(DAY, 10), occupancies) is None


class TestGenerateTimeSlots:
    def test_grid_covers_opening_hours(self):
        slots = generate_time_slots(DAY, now=BEFORE_DAY, open_hour=6, close_hour=21, step_minutes=60)

        assert len(slots) == 15
        assert slots[0].start_time == _at(DAY, 6)
        assert slots[-1].end_time == _at(DAY, 21)
        assert slots[0].label == "6:00 AM"
        assert slots[-1].label == "8:00 PM"
        assert all(slot.available for slot in slots)

    def test_booked_and_blocked_slots(self):
        occupancies = [
            Occupancy(start=_at(DAY, 9), end=_at(DAY, 11), kind="booking", booking_type="class", class_name="CS 3A"),
            Occupancy(start=_at(DAY, 14), end=_at(DAY, 15), kind="block", reason="Tournament"),
        ]
        slots = generate_time_slots(DAY, occupancies, now=BEFORE_DAY, open_hour=6, close_hour=21, step_minutes=60)
        by_hour = {slot.start_time.hour: slot for slot in slots}

        assert not by_hour[9].available and by_hour[9].occupied_by == "booking"
        assert by_hour[10].class_name == "CS 3A"
        assert by_hour[11].available
        assert not by_hour[14].available
        assert by_hour[14].reason == "Tournament"

    def test_started_slots_are_unavailable(self):
        now = _at(DAY, 12, 30)
        slots = generate_time_slots(DAY, now=now, open_hour=6, close_hour=21, step_minutes=60)
        by_hour = {slot.start_time.hour: slot for slot in slots}

        assert not by_hour[12].available
        assert by_hour[12].reason == "past"
        assert by_hour[13].available

    def test_cached_grid_closes_started_slots(self):
        grid = [
            slot.to_dict()
            for slot in generate_time_slots(DAY, now=BEFORE_DAY, open_hour=6, close_hour=21, step_minutes=60)
        ]
        by_hour = {datetime.fromisoformat(s["start_time"]).hour: s for s in mark_started_slots(grid, _at(DAY, 12, 30))}

        assert not by_hour[12]["available"]
        assert by_hour[12]["reason"] == "past"
        assert by_hour[13]["available"]

    def test_half_hour_slots(self):
        slots = generate_time_slots(DAY, now=BEFORE_DAY, open_hour=6, close_hour=8, step_minutes=30)
        assert [slot.label for slot in slots] == ["6:00 AM", "6:30 AM", "7:00 AM", "7:30 AM"]

    def test_slot_serialises_to_iso_strings(self):
        slot = generate_time_slots(DAY, now=BEFORE_DAY, open_hour=6, close_hour=7, step_minutes=60)[0]
        data = slot.to_dict()
        assert data["start_time"] == "2030-03-14T06:00:00+00:00"
        assert data["available"] is True


def test_format_slot_label_afternoon():
    assert format_slot_label(_at(DAY, 15, 30)) == "3:30 PM"


class TestAvailabilityService:
    @pytest.mark.asyncio
    async def test_slots_reflect_bookings_and_blocks(self, db_session, court, student):
        start, end = future_window(days=2, hour=10, hours=2)
        db_session.add(Booking(
            user_id=student.id,
            resource_type=ResourceType.COURT,
            court_id=court.id,
            start_time=start,
            end_time=end,
            status=BookingStatus.APPROVED,
        ))
        db_session.add(TimeBlock(
            resource_type=BlockScope.GLOBAL,
            reason="Sports day",
            start_time=start + timedelta(hours=5),
            end_time=start + timedelta(hours=6),
        ))
        await db_session.commit()

        slots = await AvailabilityService(db_session).get_court_slots(court.id, start.date())
        by_hour = {datetime.fromisoformat(s["start_time"]).hour: s for s in slots}

        assert not by_hour[10]["available"]
        assert not by_hour[11]["available"]
        assert by_hour[12]["available"]
        assert by_hour[15]["reason"] == "Sports day"

    @pytest.mark.asyncio
    async def test_cancelled_bookings_free_the_slot(self, db_session, court, student):
        start, end = future_window(days=2, hour=8)
        db_session.add(Booking(
            user_id=student.id,
            resource_type=ResourceType.COURT,
            court_id=court.id,
            start_time=start,
            end_time=end,
            status=BookingStatus.CANCELLED,
        ))
        await db_session.commit()

        occupancies = await AvailabilityService(db_session).get_court_occupancies(court.id, start, end)
        assert occupancies == []

    @pytest.mark.asyncio
    async def test_closed_court_has_no_free_slots(self, db_session, court):
        court.is_available = False
        await db_session.commit()

        start, _ = future_window(days=3)
        slots = await AvailabilityService(db_session).get_court_slots(court.id, start.date())
        assert not any(slot["available"] for slot in slots)

    @pytest.mark.asyncio
    async def test_unknown_court(self, db_session):
        import uuid

        with pytest.raises(CourtNotFoundError):
            await AvailabilityService(db_session).get_court_slots(uuid.uuid4(), DAY)


class _StaticCache:
    def __init__(self, value):
        self.value = value

    async def get(self, key):
        return self.value

    async def set(self, key, value, ttl=None):
        self.value = value


@pytest.mark.asyncio
async def test_cached_slots_are_rechecked_against_now(db_session, court):
    past_day = date(2020, 1, 6)
    stale = [
        slot.to_dict()
        for slot in generate_time_slots(past_day, now=_at(date(2020, 1, 1), 12))
    ]
    assert all(slot["available"] for slot in stale)

    service = AvailabilityService(db_session)
    service.cache = _StaticCache(stale)
    slots = await service.get_court_slots(court.id, past_day)

    assert not any(slot["available"] for slot in slots)
    assert {slot["reason"] for slot in slots} == {"past"}
