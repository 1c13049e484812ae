"""
Notification service for in-app notifications and email delivery.
"""

import asyncio
import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..config import get_settings
from ..models.booking import Booking, BookingStatus, ResourceType
from ..models.notification import Notification, NotificationType
from ..models.sports_class import SportsClass
from ..utils.exceptions import AuthorizationError, NotFoundError
from ..utils.time_utils import to_facility_time

logger = logging.getLogger(__name__)


STATUS_NOTIFICATION_TYPES: Dict[BookingStatus, NotificationType] = {
    BookingStatus.APPROVED: NotificationType.SUCCESS,
    BookingStatus.REJECTED: NotificationType.ERROR,
}

STATUS_EMAIL_LINES: Dict[BookingStatus, str] = {
    BookingStatus.PENDING: "We have received your request. Staff will review it shortly.",
    BookingStatus.APPROVED: "Great news! Your booking is confirmed. Please arrive on time and bring your student ID.",
    BookingStatus.REJECTED: "Unfortunately your request could not be accommodated. Please try another slot.",
    BookingStatus.CANCELLED: "Your booking has been cancelled and the slot released.",
    BookingStatus.COMPLETED: "Thanks for playing! Your booking is now marked as completed.",
}


def describe_booking(booking: Booking) -> Tuple[str, str, str]:
    """Return the resource kind, resource name and formatted local date of a booking."""
    kind = "court" if booking.resource_type == ResourceType.COURT else "equipment"
    name = booking.resource_name or kind
    when = to_facility_time(booking.start_time).strftime("%B %d, %Y")
    return kind, name, when


def build_status_message(booking: Booking, status: BookingStatus) -> Tuple[str, str, NotificationType]:
    """Build the title, message and type of a booking status notification."""
    kind, name, when = describe_booking(booking)
    title = f"Booking {status.value.capitalize()}"
    message = f"Your {kind} booking for {name} on {when} has been {status.value}."
    return title, message, STATUS_NOTIFICATION_TYPES.get(status, NotificationType.INFO)


class NotificationService:
    """Service for in-app notifications and email messages."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.settings = get_settings()

    # In-app notifications

    async def create_notification(
        self,
        user_id: UUID,
        title: str,
        message: str,
        notification_type: NotificationType = NotificationType.INFO,
    ) -> Notification:
        """Add a notification to the current transaction."""
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=notification_type,
            is_read=False,
        )
        self.session.add(notification)
        await self.session.flush()
        return notification

    async def notify_booking_status(self, booking: Booking, status: BookingStatus) -> Notification:
        """
        Create the in-app notification for a booking status change.

        The booking must have its court or equipment relationship loaded.
        """
        title, message, notification_type = build_status_message(booking, status)
        return await self.create_notification(booking.user_id, title, message, notification_type)

    async def list_notifications(
        self,
        user_id: UUID,
        unread_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Notification], int]:
        """List a user's notifications, newest first."""
        query = select(Notification).where(Notification.user_id == user_id)
        count_query = select(func.count(Notification.id)).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read.is_(False))
            count_query = count_query.where(Notification.is_read.is_(False))

        query = query.order_by(Notification.created_at.desc()).limit(limit).offset(offset)

        notifications = (await self.session.execute(query)).scalars().all()
        total = (await self.session.execute(count_query)).scalar_one()
        return list(notifications), total

    async def get_unread_count(self, user_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
        )
        return result.scalar_one()

    async def mark_as_read(self, notification_id: UUID, user_id: UUID) -> Notification:
        """
        Mark one notification as read.

        Raises:
            NotFoundError: When the notification does not exist
            AuthorizationError: When it belongs to another user
        """
        notification = await self.session.get(Notification, notification_id)
        if notification is None:
            raise NotFoundError(
                f"Notification {notification_id} not found",
                resource_type="notification",
                resource_id=str(notification_id),
            )
        if notification.user_id != user_id:
            raise AuthorizationError("You can only update your own notifications")

        notification.is_read = True
        await self.session.commit()
        return notification

    async def mark_all_as_read(self, user_id: UUID) -> int:
        """Mark every unread notification of a user as read, returning how many changed."""
        result = await self.session.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
            .execution_options(synchronize_session="fetch")
        )
        updated = result.rowcount or 0
        await self.session.commit()
        return updated

    # Email

    async def send_booking_status_email(self, booking_id: UUID, status: BookingStatus) -> bool:
        """
        Email the booking owner about a status change.

        Args:
            booking_id: ID of the booking
            status: Status the booking moved to

        Returns:
            bool: True if email was sent successfully
        """
        result = await self.session.execute(
            select(Booking)
            .options(
                selectinload(Booking.user),
                selectinload(Booking.court),
                selectinload(Booking.equipment),
            )
            .where(Booking.id == booking_id)
        )
        booking = result.scalar_one_or_none()
        if booking is None:
            logger.error(f"Booking {booking_id} not found")
            return False

        kind, name, when = describe_booking(booking)
        local_start = to_facility_time(booking.start_time)
        local_end = to_facility_time(booking.end_time)
        template_data = {
            "user_name": booking.user.full_name,
            "status": status.value,
            "status_title": status.value.capitalize(),
            "status_line": STATUS_EMAIL_LINES[status],
            "resource_kind": kind,
            "resource_name": name,
            "date": when,
            "time_range": f"{local_start.strftime('%I:%M %p').lstrip('0')} - {local_end.strftime('%I:%M %p').lstrip('0')}",
            "quantity": booking.quantity,
            "booking_id": str(booking.id),
            "dashboard_url": f"{self.settings.app_base_url}/dashboard",
        }

        subject = f"Booking {template_data['status_title']} - {name}"
        success = await self._send_email(
            to_email=booking.user.email,
            subject=subject,
            html_content=self._render_status_html(template_data),
            text_content=self._render_status_text(template_data),
        )

        if success:
            logger.info(f"Status email ({status.value}) sent for booking {booking_id}")
        return success

    async def send_class_code_email(self, class_id: UUID) -> bool:
        """
        Email the class code to the class representative.

        Returns:
            bool: True if email was sent successfully
        """
        result = await self.session.execute(
            select(SportsClass)
            .options(selectinload(SportsClass.representative))
            .where(SportsClass.id == class_id)
        )
        sports_class = result.scalar_one_or_none()
        if sports_class is None or sports_class.representative is None:
            logger.error(f"Class {class_id} or its representative not found")
            return False

        template_data = {
            "user_name": sports_class.representative.full_name,
            "class_name": sports_class.name,
            "class_identifier": sports_class.class_identifier,
            "class_code": sports_class.class_code,
            "login_url": f"{self.settings.app_base_url}/auth?mode=class",
        }

        success = await self._send_email(
            to_email=sports_class.representative.email,
            subject=f"Your SquadSync class code for {sports_class.class_identifier}",
            html_content=self._render_class_code_html(template_data),
            text_content=self._render_class_code_text(template_data),
        )

        if success:
            logger.info(f"Class code email sent for class {class_id}")
        return success

    async def _send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: str
    ) -> bool:
        """
        Send an email over SMTP.

        Returns:
            bool: True if the message was handed to the SMTP server
        """
        if not self.settings.smtp_server:
            logger.warning(f"SMTP not configured, skipping email '{subject}'")
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.settings.email_from_address
        msg["To"] = to_email
        msg.attach(MIMEText(text_content, "plain"))
        msg.attach(MIMEText(html_content, "html"))

        try:
            await asyncio.to_thread(self._deliver, msg)
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email '{subject}': {e}")
            return False

    def _deliver(self, msg: MIMEMultipart) -> None:
        with smtplib.SMTP(self.settings.smtp_server, self.settings.smtp_port, timeout=30) as server:
            if self.settings.smtp_use_tls:
                server.starttls(context=ssl.create_default_context())
            if self.settings.smtp_username and self.settings.smtp_password:
                server.login(self.settings.smtp_username, self.settings.smtp_password)
            server.send_message(msg)

    def _render_status_html(self, data: Dict) -> str:
        return f"""
        <html>
        <body style="font-family: Arial, sans-serif; color: #1f2937;">
            <h2>Booking {data['status_title']}</h2>
            <p>Hi {data['user_name']},</p>
            <p>Your {data['resource_kind']} booking for <strong>{data['resource_name']}</strong>
               on {data['date']} has been <strong>{data['status']}</strong>.</p>
            <p>{data['status_line']}</p>
            <table style="border-collapse: collapse;">
                <tr><td style="padding: 4px 12px 4px 0;">Time</td><td>{data['time_range']}</td></tr>
                <tr><td style="padding: 4px 12px 4px 0;">Quantity</td><td>{data['quantity']}</td></tr>
                <tr><td style="padding: 4px 12px 4px 0;">Booking ID</td><td>{data['booking_id']}</td></tr>
            </table>
            <p><a href="{data['dashboard_url']}">Open your dashboard</a></p>
            <p>SquadSync Sports Facilities</p>
        </body>
        </html>
        """

    def _render_status_text(self, data: Dict) -> str:
        return f"""
Booking {data['status_title']}

Hi {data['user_name']},

Your {data['resource_kind']} booking for {data['resource_name']} on {data['date']} has been {data['status']}.
{data['status_line']}

Time: {data['time_range']}
Quantity: {data['quantity']}
Booking ID: {data['booking_id']}

Dashboard: {data['dashboard_url']}

SquadSync Sports Facilities
        """.strip()

    def _render_class_code_html(self, data: Dict) -> str:
        return f"""
        <html>
        <body style="font-family: Arial, sans-serif; color: #1f2937;">
            <h2>Welcome to SquadSync</h2>
            <p>Hi {data['user_name']},</p>
            <p>Your class <strong>{data['class_name']}</strong> ({data['class_identifier']}) is registered.</p>
            <p>Use this class code together with your email and password to sign in as the class representative:</p>
            <p style="font-size: 24px; letter-spacing: 4px;"><strong>{data['class_code']}</strong></p>
            <p><a href="{data['login_url']}">Sign in</a></p>
        </body>
        </html>
        """

    def _render_class_code_text(self, data: Dict) -> str:
        return f"""
Welcome to SquadSync

Hi {data['user_name']},

Your class {data['class_name']} ({data['class_identifier']}) is registered.
Class code: {data['class_code']}

Sign in at {data['login_url']} with your email, password and this code.
        """.strip()
