"""
Celery tasks for email delivery.
"""

import logging
from uuid import UUID

from .celery_app import celery_app, run_async
from ..database import get_task_session
from ..models.booking import BookingStatus
from ..services.notification_service import NotificationService

logger = logging.getLogger(__name__)


@celery_app.task(name="send_booking_status_email_task")
def send_booking_status_email_task(booking_id: str, status: str):
    """
    Email the booking owner about a status change.

    Args:
        booking_id: ID of the booking
        status: Status value the booking moved to
    """

    async def _send():
        logger.info(f"Sending {status} email for booking {booking_id}")
        async with get_task_session() as session:
            sent = await NotificationService(session).send_booking_status_email(
                UUID(booking_id), BookingStatus(status)
            )
        return {"booking_id": booking_id, "status": status, "sent": sent}

    return run_async(_send())


@celery_app.task(name="send_class_code_email_task")
def send_class_code_email_task(class_id: str):
    """
    Email a newly issued class code to the class representative.

    Args:
        class_id: ID of the class
    """

    async def _send():
        logger.info(f"Sending class code email for class {class_id}")
        async with get_task_session() as session:
            sent = await NotificationService(session).send_class_code_email(UUID(class_id))
        return {"class_id": class_id, "sent": sent}

    return run_async(_send())
