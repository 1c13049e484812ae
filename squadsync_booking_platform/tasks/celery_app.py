"""
Celery application configuration for background tasks.
"""

import asyncio
from typing import Any, Awaitable

from celery import Celery
from ..config import get_settings

settings = get_settings()

celery_app = Celery(
    "squadsync_booking_platform",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "squadsync_booking_platform.tasks.booking_tasks",
        "squadsync_booking_platform.tasks.notification_tasks",
    ]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=10 * 60,
    task_soft_time_limit=8 * 60,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
)

celery_app.conf.beat_schedule = {
    "complete-finished-bookings": {
        "task": "complete_finished_bookings_task",
        "schedule": 900.0,  # every 15 minutes
    },
    "flag-overdue-equipment": {
        "task": "flag_overdue_equipment_task",
        "schedule": 3600.0,  # hourly
    },
}


def run_async(coro: Awaitable[Any]) -> Any:
    """Run a coroutine to completion on a fresh event loop inside a worker."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()
