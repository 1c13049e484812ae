from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import select

from squadsync_booking_platform.models import (
    Booking,
    BookingStatus,
    EquipmentCondition,
    Notification,
    NotificationType,
    ResourceType,
    ReturnCondition,
)
from squadsync_booking_platform.schemas.equipment import EquipmentCreate, EquipmentUpdate
from squadsync_booking_platform.services.equipment_service import EquipmentService, compute_delay_fee
from squadsync_booking_platform.tasks.booking_tasks import complete_finished_bookings
from squadsync_booking_platform.utils.exceptions import (
    EquipmentAlreadyIssuedError,
    EquipmentAlreadyReturnedError,
    EquipmentNotFoundError,
    ValidationError,
)

from conftest import future_window


DUE = datetime(2030, 5, 1, 12, 0, tzinfo=timezone.utc)


class TestDelayFee:
    def test_on_time_return_is_free(self):
        assert compute_delay_fee(DUE, DUE, 10) == Decimal("0.00")
        assert compute_delay_fee(DUE, DUE - timedelta(minutes=5), 10) == Decimal("0.00")

    def test_started_hours_are_charged(self):
        assert compute_delay_fee(DUE, DUE + timedelta(minutes=1), 10) == Decimal("10.00")
        assert compute_delay_fee(DUE, DUE + timedelta(hours=1), 10) == Decimal("10.00")
        assert compute_delay_fee(DUE, DUE + timedelta(hours=2, minutes=1), 10) == Decimal("30.00")

    def test_fractional_rate(self):
        assert compute_delay_fee(DUE, DUE + timedelta(hours=3), 2.5) == Decimal("7.50")

    def test_naive_times_are_utc(self):
        naive_due = DUE.replace(tzinfo=None)
        assert compute_delay_fee(naive_due, DUE + timedelta(minutes=30), 4) == Decimal("4.00")


async def _approved_equipment_booking(db_session, user, equipment, quantity=2, start=None, end=None):
    if start is None:
        start, end = future_window(hours=2)
    booking = Booking(
        user_id=user.id,
        resource_type=ResourceType.EQUIPMENT,
        equipment_id=equipment.id,
        quantity=quantity,
        start_time=start,
        end_time=end,
        status=BookingStatus.APPROVED,
    )
    db_session.add(booking)
    await db_session.commit()
    return booking


class TestInventory:
    @pytest.mark.asyncio
    async def test_create_sets_available_to_total(self, db_session):
        service = EquipmentService(db_session)
        equipment = await service.create_equipment(
            EquipmentCreate(name="Football", category="Balls", total_quantity=8)
        )
        assert equipment.available_quantity == 8
        assert equipment.last_restocked_at is not None

    @pytest.mark.asyncio
    async def test_list_filters_by_category(self, db_session, rackets):
        service = EquipmentService(db_session)
        await service.create_equipment(EquipmentCreate(name="Basketball", category="Balls", total_quantity=4))

        assert [e.name for e in await service.list_equipment()] == ["Badminton Racket", "Basketball"]
        assert [e.name for e in await service.list_equipment(category="balls")] == ["Basketball"]

    @pytest.mark.asyncio
    async def test_update(self, db_session, rackets):
        updated = await EquipmentService(db_session).update_equipment(
            rackets.id, EquipmentUpdate(name="Pro Racket")
        )
        assert updated.name == "Pro Racket"
        assert updated.category == "Rackets"

    @pytest.mark.asyncio
    async def test_restock_resets_condition(self, db_session, rackets, admin):
        rackets.condition = EquipmentCondition.NEEDS_ATTENTION
        await db_session.commit()

        restocked = await EquipmentService(db_session).restock(rackets.id, 3, admin)
        assert restocked.total_quantity == 8
        assert restocked.available_quantity == 8
        assert restocked.condition == EquipmentCondition.GOOD

    @pytest.mark.asyncio
    async def test_restock_rejects_non_positive(self, db_session, rackets):
        with pytest.raises(ValidationError):
            await EquipmentService(db_session).restock(rackets.id, 0)

    @pytest.mark.asyncio
    async def test_unknown_equipment(self, db_session):
        import uuid

        with pytest.raises(EquipmentNotFoundError):
            await EquipmentService(db_session).get_equipment(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_summary_and_stock_count(self, db_session, rackets):
        service = EquipmentService(db_session)
        cones = await service.create_equipment(EquipmentCreate(name="Cones", category="Training", total_quantity=2))
        cones.available_quantity = 0
        await db_session.commit()

        summary = await service.inventory_summary()
        assert summary["total_items"] == 7
        assert summary["available_items"] == 5
        assert summary["issued_items"] == 2
        assert summary["low_stock"] == 1
        assert summary["equipment_lines"] == 2
        assert await service.count_in_stock() == 1


class TestIssueAndReturn:
    @pytest.mark.asyncio
    async def test_issue_decrements_available(self, db_session, student, faculty, rackets):
        booking = await _approved_equipment_booking(db_session, student, rackets)
        issue = await EquipmentService(db_session).issue_equipment(booking.id, faculty)

        assert issue.quantity == 2
        assert issue.user_id == student.id
        await db_session.refresh(rackets)
        assert rackets.available_quantity == 3

    @pytest.mark.asyncio
    async def test_issue_twice_rejected(self, db_session, student, faculty, rackets):
        booking = await _approved_equipment_booking(db_session, student, rackets)
        service = EquipmentService(db_session)
        await service.issue_equipment(booking.id, faculty)

        with pytest.raises(EquipmentAlreadyIssuedError):
            await service.issue_equipment(booking.id, faculty)

    @pytest.mark.asyncio
    async def test_issue_requires_approved_booking(self, db_session, student, faculty, rackets):
        booking = await _approved_equipment_booking(db_session, student, rackets)
        booking.status = BookingStatus.PENDING
        await db_session.commit()

        with pytest.raises(ValidationError):
            await EquipmentService(db_session).issue_equipment(booking.id, faculty)

    @pytest.mark.asyncio
    async def test_good_return_restocks_and_completes(self, db_session, student, faculty, rackets):
        booking = await _approved_equipment_booking(db_session, student, rackets)
        service = EquipmentService(db_session)
        issue = await service.issue_equipment(booking.id, faculty)

        returned = await service.return_equipment(issue.id, ReturnCondition.GOOD, faculty)

        assert returned.is_returned
        assert returned.delay_fee == Decimal("0.00")
        await db_session.refresh(rackets)
        assert rackets.available_quantity == 5
        await db_session.refresh(booking)
        assert booking.status == BookingStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_damaged_return_flags_equipment(self, db_session, student, faculty, rackets):
        booking = await _approved_equipment_booking(db_session, student, rackets)
        service = EquipmentService(db_session)
        issue = await service.issue_equipment(booking.id, faculty)

        await service.return_equipment(issue.id, ReturnCondition.DAMAGED, faculty, "Broken strings")

        await db_session.refresh(rackets)
        assert rackets.available_quantity == 3
        assert rackets.damaged_quantity == 2
        assert rackets.condition == EquipmentCondition.NEEDS_ATTENTION

    @pytest.mark.asyncio
    async def test_lost_return(self, db_session, student, faculty, rackets):
        booking = await _approved_equipment_booking(db_session, student, rackets, quantity=1)
        service = EquipmentService(db_session)
        issue = await service.issue_equipment(booking.id, faculty)

        await service.return_equipment(issue.id, ReturnCondition.LOST, faculty)

        await db_session.refresh(rackets)
        assert rackets.lost_quantity == 1
        assert rackets.serviceable_quantity == 4

    @pytest.mark.asyncio
    async def test_late_return_charges_fee(self, db_session, student, faculty, rackets):
        now = datetime.now(timezone.utc)
        booking = await _approved_equipment_booking(
            db_session, student, rackets,
            start=now - timedelta(hours=5), end=now - timedelta(hours=2, minutes=30),
        )
        service = EquipmentService(db_session)
        issue = await service.issue_equipment(booking.id, faculty)

        returned = await service.return_equipment(issue.id, ReturnCondition.GOOD, faculty)
        assert returned.delay_fee == Decimal("30.00")

        warnings = (await db_session.execute(
            select(Notification).where(
                Notification.user_id == student.id,
                Notification.type == NotificationType.WARNING,
            )
        )).scalars().all()
        assert [n.title for n in warnings] == ["Late Return Fee"]

    @pytest.mark.asyncio
    async def test_return_twice_rejected(self, db_session, student, faculty, rackets):
        booking = await _approved_equipment_booking(db_session, student, rackets)
        service = EquipmentService(db_session)
        issue = await service.issue_equipment(booking.id, faculty)
        await service.return_equipment(issue.id, ReturnCondition.GOOD, faculty)

        with pytest.raises(EquipmentAlreadyReturnedError):
            await service.return_equipment(issue.id, ReturnCondition.GOOD, faculty)

    @pytest.mark.asyncio
    async def test_list_active_issues(self, db_session, student, faculty, rackets):
        service = EquipmentService(db_session)
        first = await service.issue_equipment(
            (await _approved_equipment_booking(db_session, student, rackets, quantity=1)).id, faculty
        )
        await service.issue_equipment(
            (await _approved_equipment_booking(db_session, student, rackets, quantity=1)).id, faculty
        )
        await service.return_equipment(first.id, ReturnCondition.GOOD, faculty)

        assert len(await service.list_issues()) == 2
        assert len(await service.list_issues(active_only=True)) == 1


class TestOverdueRefresh:
    @pytest.mark.asyncio
    async def test_overdue_issue_is_flagged_once(self, db_session, student, faculty, rackets):
        now = datetime.now(timezone.utc)
        booking = await _approved_equipment_booking(
            db_session, student, rackets, start=now - timedelta(hours=4), end=now - timedelta(hours=1)
        )
        service = EquipmentService(db_session)
        issue = await service.issue_equipment(booking.id, faculty)

        first = await service.refresh_overdue_fees(now=now)
        assert first == {"overdue": 1, "newly_flagged": 1}
        await db_session.refresh(issue)
        assert issue.delay_fee == Decimal("10.00")

        later = await service.refresh_overdue_fees(now=now + timedelta(hours=2))
        assert later == {"overdue": 1, "newly_flagged": 0}
        await db_session.refresh(issue)
        assert issue.delay_fee == Decimal("30.00")

        notifications = (await db_session.execute(
            select(Notification).where(Notification.title == "Equipment Overdue")
        )).scalars().all()
        assert len(notifications) == 1


class TestCompleteFinishedBookings:
    @pytest.mark.asyncio
    async def test_finished_court_bookings_complete(self, db_session, student, court):
        now = datetime.now(timezone.utc)
        finished = Booking(
            user_id=student.id,
            resource_type=ResourceType.COURT,
            court_id=court.id,
            start_time=now - timedelta(hours=3),
            end_time=now - timedelta(hours=2),
            status=BookingStatus.APPROVED,
        )
        upcoming = Booking(
            user_id=student.id,
            resource_type=ResourceType.COURT,
            court_id=court.id,
            start_time=now + timedelta(hours=2),
            end_time=now + timedelta(hours=3),
            status=BookingStatus.APPROVED,
        )
        db_session.add_all([finished, upcoming])
        await db_session.commit()

        result = await complete_finished_bookings(db_session)

        assert result == {"completed_count": 1}
        await db_session.refresh(finished)
        await db_session.refresh(upcoming)
        assert finished.status == BookingStatus.COMPLETED
        assert upcoming.status == BookingStatus.APPROVED


class TestCancelWhileIssued:
    @pytest.mark.asyncio
    async def test_owner_cannot_cancel_with_equipment_out(self, db_session, student, faculty, rackets):
        from squadsync_booking_platform.services.booking_service import BookingService

        booking = await _approved_equipment_booking(db_session, student, rackets)
        service = EquipmentService(db_session)
        issue = await service.issue_equipment(booking.id, faculty)

        with pytest.raises(EquipmentAlreadyIssuedError) as excinfo:
            await BookingService(db_session).cancel_booking(booking.id, student, "Changed plans")
        assert excinfo.value.suggestions

        await db_session.refresh(booking)
        assert booking.status == BookingStatus.APPROVED

        await service.return_equipment(issue.id, ReturnCondition.GOOD, faculty)
        await db_session.refresh(booking)
        assert booking.status == BookingStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_cancel_before_issue_is_allowed(self, db_session, student, rackets):
        from squadsync_booking_platform.services.booking_service import BookingService

        booking = await _approved_equipment_booking(db_session, student, rackets)
        cancelled = await BookingService(db_session).cancel_booking(booking.id, student)
        assert cancelled.status == BookingStatus.CANCELLED
