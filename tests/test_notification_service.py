import uuid
from datetime import datetime, timezone

import pytest

from squadsync_booking_platform.models import (
    Booking,
    BookingStatus,
    Court,
    Notification,
    NotificationType,
    ResourceType,
)
from squadsync_booking_platform.services.notification_service import (
    NotificationService,
    build_status_message,
)
from squadsync_booking_platform.utils.exceptions import AuthorizationError, NotFoundError

from conftest import future_window


def _court_booking(court_name: str = "Tennis Court A") -> Booking:
    return Booking(
        resource_type=ResourceType.COURT,
        court=Court(name=court_name, sport="Tennis", location="Outdoor", capacity=4),
        start_time=datetime(2030, 6, 2, 15, 0, tzinfo=timezone.utc),
        end_time=datetime(2030, 6, 2, 16, 0, tzinfo=timezone.utc),
    )


class TestStatusMessage:
    def test_approved_message(self):
        title, message, notification_type = build_status_message(_court_booking(), BookingStatus.APPROVED)

        assert title == "Booking Approved"
        assert message == "Your court booking for Tennis Court A on June 02, 2030 has been approved."
        assert notification_type == NotificationType.SUCCESS

    def test_rejected_is_error(self):
        _, _, notification_type = build_status_message(_court_booking(), BookingStatus.REJECTED)
        assert notification_type == NotificationType.ERROR

    def test_cancelled_is_info(self):
        title, _, notification_type = build_status_message(_court_booking(), BookingStatus.CANCELLED)
        assert title == "Booking Cancelled"
        assert notification_type == NotificationType.INFO


async def _notify(session, user, count=1, **kwargs):
    service = NotificationService(session)
    created = [
        await service.create_notification(user.id, f"Title {i}", "Body", **kwargs)
        for i in range(count)
    ]
    await session.commit()
    return created


class TestInAppNotifications:
    @pytest.mark.asyncio
    async def test_list_and_unread_count(self, db_session, student, other_student):
        await _notify(db_session, student, count=3)
        await _notify(db_session, other_student)
        service = NotificationService(db_session)

        notifications, total = await service.list_notifications(student.id)
        assert total == 3
        assert {n.user_id for n in notifications} == {student.id}
        assert await service.get_unread_count(student.id) == 3

    @pytest.mark.asyncio
    async def test_mark_as_read(self, db_session, student):
        first, _ = await _notify(db_session, student, count=2)
        service = NotificationService(db_session)

        read = await service.mark_as_read(first.id, student.id)
        assert read.is_read
        assert await service.get_unread_count(student.id) == 1

        unread, total = await service.list_notifications(student.id, unread_only=True)
        assert total == 1 and unread[0].id != first.id

    @pytest.mark.asyncio
    async def test_cannot_read_someone_elses(self, db_session, student, other_student):
        (notification,) = await _notify(db_session, student)

        with pytest.raises(AuthorizationError):
            await NotificationService(db_session).mark_as_read(notification.id, other_student.id)

    @pytest.mark.asyncio
    async def test_unknown_notification(self, db_session, student):
        with pytest.raises(NotFoundError):
            await NotificationService(db_session).mark_as_read(uuid.uuid4(), student.id)

    @pytest.mark.asyncio
    async def test_mark_all_as_read(self, db_session, student, other_student):
        await _notify(db_session, student, count=3)
        await _notify(db_session, other_student)
        service = NotificationService(db_session)

        assert await service.mark_all_as_read(student.id) == 3
        assert await service.get_unread_count(student.id) == 0
        assert await service.get_unread_count(other_student.id) == 1
        assert await service.mark_all_as_read(student.id) == 0


class TestEmail:
    @pytest.mark.asyncio
    async def test_skipped_without_smtp(self, db_session, student, court):
        start, end = future_window()
        booking = Booking(
            user_id=student.id,
            resource_type=ResourceType.COURT,
            court_id=court.id,
            start_time=start,
            end_time=end,
        )
        db_session.add(booking)
        await db_session.commit()

        service = NotificationService(db_session)
        service.settings = service.settings.model_copy(update={"smtp_server": None})

        assert await service.send_booking_status_email(booking.id, BookingStatus.APPROVED) is False

    @pytest.mark.asyncio
    async def test_status_email_is_delivered(self, db_session, student, court, monkeypatch):
        start, end = future_window()
        booking = Booking(
            user_id=student.id,
            resource_type=ResourceType.COURT,
            court_id=court.id,
            start_time=start,
            end_time=end,
        )
        db_session.add(booking)
        await db_session.commit()

        service = NotificationService(db_session)
        service.settings = service.settings.model_copy(update={"smtp_server": "smtp.campus.edu"})
        sent = []
        monkeypatch.setattr(service, "_deliver", sent.append)

        assert await service.send_booking_status_email(booking.id, BookingStatus.APPROVED)
        (message,) = sent
        assert message["To"] == "student@campus.edu"
        assert message["Subject"] == "Booking Approved - Badminton Court 1"

    @pytest.mark.asyncio
    async def test_class_code_email(self, db_session, representative, monkeypatch):
        service = NotificationService(db_session)
        service.settings = service.settings.model_copy(update={"smtp_server": "smtp.campus.edu"})
        sent = []
        monkeypatch.setattr(service, "_deliver", sent.append)

        assert await service.send_class_code_email(representative.class_id)
        (message,) = sent
        assert message["To"] == "rep@campus.edu"
        assert "4CS23A" in message["Subject"]

    @pytest.mark.asyncio
    async def test_missing_booking(self, db_session):
        service = NotificationService(db_session)
        assert await service.send_booking_status_email(uuid.uuid4(), BookingStatus.APPROVED) is False


@pytest.mark.asyncio
async def test_notifications_are_stored_unread(db_session, student):
    (notification,) = await _notify(db_session, student, notification_type=NotificationType.WARNING)
    stored = await db_session.get(Notification, notification.id)
    assert stored.type == NotificationType.WARNING
    assert stored.is_read is False
