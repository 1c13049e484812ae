import uuid
from datetime import timedelta

import pytest
from pydantic import ValidationError as SchemaValidationError

from squadsync_booking_platform.models import BlockScope
from squadsync_booking_platform.schemas.court import CourtCreate, CourtUpdate, TimeBlockCreate
from squadsync_booking_platform.services.court_service import CourtService
from squadsync_booking_platform.utils.exceptions import CourtNotFoundError, NotFoundError

from conftest import future_window


class TestCourts:
    @pytest.mark.asyncio
    async def test_list_sorted_and_filtered(self, db_session, court):
        service = CourtService(db_session)
        await service.create_court(
            CourtCreate(name="Basketball Court", sport="Basketball", location="Outdoor", capacity=10)
        )
        await service.create_court(
            CourtCreate(name="Badminton Court 2", sport="Badminton", location="Indoor Hall", capacity=4)
        )

        assert [c.name for c in await service.list_courts()] == [
            "Badminton Court 1",
            "Badminton Court 2",
            "Basketball Court",
        ]
        assert len(await service.list_courts(sport="badminton")) == 2

    @pytest.mark.asyncio
    async def test_toggle_availability(self, db_session, court):
        service = CourtService(db_session)
        assert await service.count_available() == 1

        toggled = await service.toggle_availability(court.id)
        assert toggled.is_available is False
        assert await service.count_available() == 0
        assert await service.list_courts(available_only=True) == []

        assert (await service.toggle_availability(court.id)).is_available is True

    @pytest.mark.asyncio
    async def test_partial_update(self, db_session, court):
        updated = await CourtService(db_session).update_court(court.id, CourtUpdate(capacity=6))
        assert updated.capacity == 6
        assert updated.name == "Badminton Court 1"

    @pytest.mark.asyncio
    async def test_unknown_court(self, db_session):
        with pytest.raises(CourtNotFoundError):
            await CourtService(db_session).get_court(uuid.uuid4())


class TestTimeBlocks:
    def test_court_block_needs_court(self):
        start, end = future_window()
        with pytest.raises(SchemaValidationError):
            TimeBlockCreate(resource_type=BlockScope.COURT, reason="Resurfacing", start_time=start, end_time=end)

    def test_global_block_cannot_name_court(self):
        start, end = future_window()
        with pytest.raises(SchemaValidationError):
            TimeBlockCreate(
                resource_type=BlockScope.GLOBAL,
                court_id=uuid.uuid4(),
                reason="Holiday",
                start_time=start,
                end_time=end,
            )

    def test_block_must_end_after_start(self):
        start, _ = future_window()
        with pytest.raises(SchemaValidationError):
            TimeBlockCreate(resource_type=BlockScope.GLOBAL, reason="Holiday", start_time=start, end_time=start)

    @pytest.mark.asyncio
    async def test_create_list_and_delete(self, db_session, court, admin):
        service = CourtService(db_session)
        start, end = future_window(days=2, hours=3)

        court_block = await service.create_time_block(
            TimeBlockCreate(court_id=court.id, reason="Resurfacing", start_time=start, end_time=end),
            admin,
        )
        global_block = await service.create_time_block(
            TimeBlockCreate(
                resource_type=BlockScope.GLOBAL,
                reason="Sports day",
                start_time=start + timedelta(days=1),
                end_time=end + timedelta(days=1),
            ),
            admin,
        )
        assert court_block.created_by == admin.id

        blocks = await service.list_time_blocks(court_id=court.id)
        assert [b.id for b in blocks] == [court_block.id, global_block.id]

        await service.delete_time_block(court_block.id)
        assert [b.id for b in await service.list_time_blocks()] == [global_block.id]

    @pytest.mark.asyncio
    async def test_past_blocks_hidden_by_default(self, db_session, court, admin):
        service = CourtService(db_session)
        start, end = future_window(days=-2)
        await service.create_time_block(
            TimeBlockCreate(court_id=court.id, reason="Old repair", start_time=start, end_time=end),
            admin,
        )

        assert await service.list_time_blocks() == []
        assert len(await service.list_time_blocks(include_past=True)) == 1

    @pytest.mark.asyncio
    async def test_block_for_unknown_court(self, db_session, admin):
        start, end = future_window()
        with pytest.raises(CourtNotFoundError):
            await CourtService(db_session).create_time_block(
                TimeBlockCreate(court_id=uuid.uuid4(), reason="Resurfacing", start_time=start, end_time=end),
                admin,
            )

    @pytest.mark.asyncio
    async def test_delete_unknown_block(self, db_session):
        with pytest.raises(NotFoundError):
            await CourtService(db_session).delete_time_block(uuid.uuid4())
