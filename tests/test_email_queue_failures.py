import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from squadsync_booking_platform.models import BookingStatus, BookingStatusHistory, SportsClass
from squadsync_booking_platform.schemas.booking import CourtBookingCreate
from squadsync_booking_platform.schemas.sports_class import ClassRegistration
from squadsync_booking_platform.services.booking_service import BookingService
from squadsync_booking_platform.services.class_service import ClassService
from squadsync_booking_platform.tasks import notification_tasks

from conftest import future_window


def _broker_down(*args, **kwargs):
    raise ConnectionError("broker unreachable")


@pytest.fixture
def broken_queue(monkeypatch):
    monkeypatch.setattr(notification_tasks.send_booking_status_email_task, "delay", _broker_down)
    monkeypatch.setattr(notification_tasks.send_class_code_email_task, "delay", _broker_down)


def _fresh_session(engine) -> AsyncSession:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)()


@pytest.mark.asyncio
async def test_booking_workflow_survives_queue_outage(broken_queue, engine, db_session, student, faculty, court):
    service = BookingService(db_session)
    start, end = future_window()

    booking = await service.create_court_booking(
        student, CourtBookingCreate(court_id=court.id, start_time=start, end_time=end)
    )
    assert booking.status == BookingStatus.PENDING

    approved = await service.approve_booking(booking.id, faculty)
    assert approved.status == BookingStatus.APPROVED

    async with _fresh_session(engine) as other:
        result = await other.execute(
            select(BookingStatusHistory.new_status)
            .where(BookingStatusHistory.booking_id == booking.id)
        )
        assert sorted(s.value for s in result.scalars()) == ["approved", "pending"]


@pytest.mark.asyncio
async def test_class_registration_survives_queue_outage(broken_queue, engine, db_session):
    sports_class, representative = await ClassService(db_session).register_class(ClassRegistration(
        email="lead@campus.edu",
        password="classpass1",
        full_name="Lee Lead",
        class_name="Civil 1C",
        class_identifier="4cv21c",
        department="Civil Engineering",
        year=1,
        student_count=48,
    ))
    assert representative.class_id == sports_class.id

    async with _fresh_session(engine) as other:
        stored = await other.scalar(select(SportsClass).where(SportsClass.id == sports_class.id))
        assert stored is not None
        assert stored.class_code == sports_class.class_code
