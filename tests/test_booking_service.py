import uuid
from datetime import timedelta

import pytest
from sqlalchemy import select

from squadsync_booking_platform.models import (
    ALLOWED_TRANSITIONS,
    BlockScope,
    BookingStatus,
    BookingType,
    Notification,
    TimeBlock,
    can_transition,
)
from squadsync_booking_platform.schemas.booking import CourtBookingCreate, EquipmentBookingCreate
from squadsync_booking_platform.services.booking_service import BookingService
from squadsync_booking_platform.utils.exceptions import (
    AuthorizationError,
    BookingConflictError,
    BookingNotFoundError,
    InsufficientEquipmentError,
    InvalidBookingWindowError,
    InvalidStatusTransitionError,
    NotClassRepresentativeError,
    ResourceUnavailableError,
)

from conftest import future_window


def court_request(court, days=1, hour=10, hours=1, **kwargs) -> CourtBookingCreate:
    start, end = future_window(days=days, hour=hour, hours=hours)
    return CourtBookingCreate(court_id=court.id, start_time=start, end_time=end, **kwargs)


def equipment_request(equipment, quantity=1, days=1, hour=10, hours=2) -> EquipmentBookingCreate:
    start, end = future_window(days=days, hour=hour, hours=hours)
    return EquipmentBookingCreate(equipment_id=equipment.id, quantity=quantity, start_time=start, end_time=end)


class TestStatusMachine:
    def test_pending_can_move_to_review_outcomes(self):
        assert can_transition(BookingStatus.PENDING, BookingStatus.APPROVED)
        assert can_transition(BookingStatus.PENDING, BookingStatus.REJECTED)
        assert can_transition(BookingStatus.PENDING, BookingStatus.CANCELLED)
        assert not can_transition(BookingStatus.PENDING, BookingStatus.COMPLETED)

    def test_approved_can_complete_or_cancel(self):
        assert can_transition(BookingStatus.APPROVED, BookingStatus.COMPLETED)
        assert can_transition(BookingStatus.APPROVED, BookingStatus.CANCELLED)
        assert not can_transition(BookingStatus.APPROVED, BookingStatus.REJECTED)

    @pytest.mark.parametrize("status", [BookingStatus.REJECTED, BookingStatus.CANCELLED, BookingStatus.COMPLETED])
    def test_final_statuses_are_terminal(self, status):
        assert ALLOWED_TRANSITIONS[status] == frozenset()


class TestCreateCourtBooking:
    @pytest.mark.asyncio
    async def test_creates_pending_booking_with_history(self, db_session, student, court, queued_emails):
        service = BookingService(db_session)
        booking = await service.create_court_booking(student, court_request(court))

        assert booking.status == BookingStatus.PENDING
        assert booking.court.name == "Badminton Court 1"
        assert booking.booking_type == BookingType.INDIVIDUAL

        history = await service.get_status_history(booking.id)
        assert len(history) == 1
        assert history[0]["old_status"] is None
        assert history[0]["new_status"] == BookingStatus.PENDING
        assert history[0]["changed_by_email"] == "student@campus.edu"

        assert queued_emails["status"].calls == [(str(booking.id), "pending")]

    @pytest.mark.asyncio
    async def test_overlapping_request_conflicts(self, db_session, student, other_student, court):
        service = BookingService(db_session)
        await service.create_court_booking(student, court_request(court, hour=10, hours=2))

        with pytest.raises(BookingConflictError):
            await service.create_court_booking(other_student, court_request(court, hour=11))

    @pytest.mark.asyncio
    async def test_adjacent_request_is_allowed(self, db_session, student, other_student, court):
        service = BookingService(db_session)
        await service.create_court_booking(student, court_request(court, hour=10))
        booking = await service.create_court_booking(other_student, court_request(court, hour=11))
        assert booking.status == BookingStatus.PENDING

    @pytest.mark.asyncio
    async def test_cancelled_booking_frees_the_slot(self, db_session, student, other_student, court):
        service = BookingService(db_session)
        first = await service.create_court_booking(student, court_request(court))
        await service.cancel_booking(first.id, student)

        second = await service.create_court_booking(other_student, court_request(court))
        assert second.status == BookingStatus.PENDING

    @pytest.mark.asyncio
    async def test_time_block_conflicts(self, db_session, student, court, admin):
        start, end = future_window(hour=14, hours=3)
        db_session.add(TimeBlock(
            resource_type=BlockScope.COURT,
            court_id=court.id,
            reason="Maintenance",
            start_time=start,
            end_time=end,
            created_by=admin.id,
        ))
        await db_session.commit()

        with pytest.raises(BookingConflictError) as exc_info:
            await BookingService(db_session).create_court_booking(student, court_request(court, hour=15))
        assert "Maintenance" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_past_window_rejected(self, db_session, student, court):
        with pytest.raises(InvalidBookingWindowError):
            await BookingService(db_session).create_court_booking(student, court_request(court, days=-1))

    @pytest.mark.asyncio
    async def test_too_long_window_rejected(self, db_session, student, court):
        with pytest.raises(InvalidBookingWindowError):
            await BookingService(db_session).create_court_booking(student, court_request(court, hour=8, hours=4))

    @pytest.mark.asyncio
    async def test_outside_opening_hours_rejected(self, db_session, student, court):
        with pytest.raises(InvalidBookingWindowError):
            await BookingService(db_session).create_court_booking(student, court_request(court, hour=20, hours=2))

    @pytest.mark.asyncio
    async def test_closed_court_rejected(self, db_session, student, court):
        court.is_available = False
        await db_session.commit()

        with pytest.raises(ResourceUnavailableError):
            await BookingService(db_session).create_court_booking(student, court_request(court))

    @pytest.mark.asyncio
    async def test_class_booking_requires_representative(self, db_session, student, court):
        with pytest.raises(NotClassRepresentativeError):
            await BookingService(db_session).create_court_booking(
                student, court_request(court, booking_type=BookingType.CLASS)
            )

    @pytest.mark.asyncio
    async def test_class_booking_records_class(self, db_session, representative, court):
        booking = await BookingService(db_session).create_court_booking(
            representative, court_request(court, booking_type=BookingType.CLASS)
        )
        assert booking.class_id == representative.class_id
        assert booking.sports_class.name == "Computer Science 3A"


class TestCreateEquipmentBooking:
    @pytest.mark.asyncio
    async def test_books_within_stock(self, db_session, student, rackets):
        booking = await BookingService(db_session).create_equipment_booking(
            student, equipment_request(rackets, quantity=3)
        )
        assert booking.quantity == 3
        assert booking.resource_name == "Badminton Racket"

    @pytest.mark.asyncio
    async def test_more_than_available_rejected(self, db_session, student, rackets):
        with pytest.raises(InsufficientEquipmentError):
            await BookingService(db_session).create_equipment_booking(
                student, equipment_request(rackets, quantity=6)
            )

    @pytest.mark.asyncio
    async def test_overlapping_reservations_share_stock(self, db_session, student, other_student, rackets):
        service = BookingService(db_session)
        await service.create_equipment_booking(student, equipment_request(rackets, quantity=4))

        with pytest.raises(InsufficientEquipmentError):
            await service.create_equipment_booking(other_student, equipment_request(rackets, quantity=2))

        later = await service.create_equipment_booking(
            other_student, equipment_request(rackets, quantity=2, hour=14)
        )
        assert later.quantity == 2

    @pytest.mark.asyncio
    async def test_damaged_items_are_not_bookable(self, db_session, student, rackets):
        rackets.damaged_quantity = 2
        rackets.available_quantity = 3
        await db_session.commit()

        with pytest.raises(InsufficientEquipmentError):
            await BookingService(db_session).create_equipment_booking(
                student, equipment_request(rackets, quantity=4)
            )


class TestStatusWorkflow:
    @pytest.mark.asyncio
    async def test_approve_notifies_owner(self, db_session, student, faculty, court, queued_emails):
        service = BookingService(db_session)
        booking = await service.create_court_booking(student, court_request(court))

        approved = await service.approve_booking(booking.id, faculty, "See you there")
        assert approved.status == BookingStatus.APPROVED

        notifications = (await db_session.execute(
            select(Notification).where(Notification.user_id == student.id)
        )).scalars().all()
        assert len(notifications) == 1
        assert "approved" in notifications[0].message.lower()

        history = await service.get_status_history(booking.id)
        assert [h["new_status"] for h in history] == [BookingStatus.PENDING, BookingStatus.APPROVED]
        assert history[-1]["changed_by_name"] == "Casey Coach"
        assert queued_emails["status"].calls[-1] == (str(booking.id), "approved")

    @pytest.mark.asyncio
    async def test_reject_then_approve_is_invalid(self, db_session, student, faculty, court):
        service = BookingService(db_session)
        booking = await service.create_court_booking(student, court_request(court))
        await service.reject_booking(booking.id, faculty, "Court reserved for team practice")

        with pytest.raises(InvalidStatusTransitionError):
            await service.approve_booking(booking.id, faculty)

    @pytest.mark.asyncio
    async def test_complete_requires_approval(self, db_session, student, faculty, court):
        service = BookingService(db_session)
        booking = await service.create_court_booking(student, court_request(court))

        with pytest.raises(InvalidStatusTransitionError):
            await service.complete_booking(booking.id, faculty)

        await service.approve_booking(booking.id, faculty)
        completed = await service.complete_booking(booking.id, faculty)
        assert completed.status == BookingStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_approval_rechecks_blocks(self, db_session, student, faculty, court):
        service = BookingService(db_session)
        booking = await service.create_court_booking(student, court_request(court))

        # Block added after the request was made
        start, end = future_window(hour=10)
        db_session.add(TimeBlock(resource_type=BlockScope.GLOBAL, reason="Exams", start_time=start, end_time=end))
        await db_session.commit()

        with pytest.raises(BookingConflictError):
            await service.approve_booking(booking.id, faculty)

    @pytest.mark.asyncio
    async def test_approval_ignores_other_pending_requests(self, db_session, student, other_student, faculty, court):
        service = BookingService(db_session)
        first = await service.create_court_booking(student, court_request(court))
        await service.cancel_booking(first.id, student)
        second = await service.create_court_booking(other_student, court_request(court))

        approved = await service.approve_booking(second.id, faculty)
        assert approved.status == BookingStatus.APPROVED

    @pytest.mark.asyncio
    async def test_cancel_by_other_student_forbidden(self, db_session, student, other_student, court):
        service = BookingService(db_session)
        booking = await service.create_court_booking(student, court_request(court))

        with pytest.raises(AuthorizationError):
            await service.cancel_booking(booking.id, other_student)

    @pytest.mark.asyncio
    async def test_admin_can_cancel_any_booking(self, db_session, student, admin, court):
        service = BookingService(db_session)
        booking = await service.create_court_booking(student, court_request(court))

        cancelled = await service.cancel_booking(booking.id, admin, "Facility closed")
        assert cancelled.status == BookingStatus.CANCELLED

        history = await service.get_status_history(booking.id)
        assert history[-1]["notes"] == "Booking cancelled - Reason: Facility closed"

    @pytest.mark.asyncio
    async def test_bulk_approve_reports_failures(self, db_session, student, faculty, court):
        service = BookingService(db_session)
        good = await service.create_court_booking(student, court_request(court, hour=8))
        rejected = await service.create_court_booking(student, court_request(court, hour=12))
        await service.reject_booking(rejected.id, faculty)
        missing = uuid.uuid4()

        result = await service.bulk_approve([good.id, rejected.id, missing], faculty)

        assert result["approved"] == [good.id]
        failed = {entry["booking_id"]: entry["error_code"] for entry in result["failed"]}
        assert failed == {
            rejected.id: "INVALID_STATUS_TRANSITION",
            missing: "NOT_FOUND",
        }


class TestQueries:
    @pytest.mark.asyncio
    async def test_get_missing_booking(self, db_session):
        with pytest.raises(BookingNotFoundError):
            await BookingService(db_session).get_booking(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_other_students_cannot_view(self, db_session, student, other_student, faculty, court):
        service = BookingService(db_session)
        booking = await service.create_court_booking(student, court_request(court))

        with pytest.raises(AuthorizationError):
            await service.get_booking_for_user(booking.id, other_student)
        assert (await service.get_booking_for_user(booking.id, faculty)).id == booking.id

    @pytest.mark.asyncio
    async def test_user_bookings_and_upcoming(self, db_session, student, court, rackets):
        service = BookingService(db_session)
        court_booking = await service.create_court_booking(student, court_request(court, days=2))
        equipment_booking = await service.create_equipment_booking(student, equipment_request(rackets, days=1))

        bookings, total = await service.list_user_bookings(student.id)
        assert total == 2
        assert [b.id for b in bookings] == [court_booking.id, equipment_booking.id]

        upcoming = await service.get_upcoming_bookings(student.id)
        assert [b.id for b in upcoming] == [equipment_booking.id, court_booking.id]

        courts_only, total = await service.list_user_bookings(
            student.id, resource_type=court_booking.resource_type
        )
        assert total == 1 and courts_only[0].id == court_booking.id

    @pytest.mark.asyncio
    async def test_court_bookings_for_day(self, db_session, student, court):
        service = BookingService(db_session)
        booking = await service.create_court_booking(student, court_request(court, days=3))

        day = booking.start_time.date()
        assert [b.id for b in await service.get_court_bookings(court.id, day)] == [booking.id]
        assert await service.get_court_bookings(court.id, day + timedelta(days=1)) == []

    @pytest.mark.asyncio
    async def test_pass_only_for_approved(self, db_session, student, faculty, court):
        service = BookingService(db_session)
        booking = await service.create_court_booking(student, court_request(court))

        with pytest.raises(InvalidStatusTransitionError):
            await service.get_booking_pass(booking.id, student)

        await service.approve_booking(booking.id, faculty)
        booking_pass = await service.get_booking_pass(booking.id, student)
        assert booking_pass["pass_code"] == f"SQS-{booking.id.hex[:8].upper()}"
        assert booking_pass["holder_name"] == "Sam Student"
        assert booking_pass["location"] == "Indoor Hall"

    @pytest.mark.asyncio
    async def test_user_stats(self, db_session, student, court):
        service = BookingService(db_session)
        await service.create_court_booking(student, court_request(court, hours=2))

        stats = await service.get_user_stats(student.id)
        assert stats["active_bookings"] == 1
        assert stats["equipment_issued"] == 0
        assert stats["pending_fees"] == 0.0
