"""
Periodic Celery tasks for booking housekeeping.
"""

import logging
from datetime import datetime
from typing import Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from .celery_app import celery_app, run_async
from ..database import get_task_session
from ..services.booking_service import BookingService
from ..services.equipment_service import EquipmentService
from ..utils.exceptions import SquadSyncError

logger = logging.getLogger(__name__)


async def complete_finished_bookings(session: AsyncSession, now: Optional[datetime] = None) -> Dict[str, int]:
    """Move approved court bookings whose window has ended to completed."""
    booking_service = BookingService(session)
    finished = await booking_service.get_finished_court_bookings(now=now, limit=100)
    if not finished:
        logger.info("No finished bookings to complete")
        return {"completed_count": 0}

    completed = 0
    for booking in finished:
        try:
            await booking_service.complete_booking(booking.id, notes="Completed automatically after end time")
            completed += 1
        except SquadSyncError as e:
            logger.error(f"Failed to complete booking {booking.id}: {e.message}")

    logger.info(f"Completed {completed} of {len(finished)} finished bookings")
    return {"completed_count": completed}


@celery_app.task(name="complete_finished_bookings_task")
def complete_finished_bookings_task():
    """Periodic task that completes court bookings once their slot is over."""

    async def _complete():
        async with get_task_session() as session:
            return await complete_finished_bookings(session)

    return run_async(_complete())


@celery_app.task(name="flag_overdue_equipment_task")
def flag_overdue_equipment_task():
    """Periodic task that updates delay fees of equipment not yet returned."""

    async def _flag():
        async with get_task_session() as session:
            result = await EquipmentService(session).refresh_overdue_fees()
        logger.info(
            f"Overdue equipment check: {result['overdue']} overdue, {result['newly_flagged']} newly flagged"
        )
        return result

    return run_async(_flag())
