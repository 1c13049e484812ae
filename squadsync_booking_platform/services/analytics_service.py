"""
Analytics service for admin dashboards and facility usage reporting.
"""

import logging
from collections import Counter, defaultdict
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..models import (
    Booking,
    BookingStatus,
    BookingStatusHistory,
    BookingType,
    Court,
    Equipment,
    EquipmentIssue,
    ResourceType,
    SportsClass,
    User,
)
from ..schemas.analytics import (
    AdminDashboardStats,
    AnalyticsOverview,
    BookingStatusMetrics,
    EquipmentUsage,
    MonthlyBookingTrend,
    PeakHour,
    SportUtilization,
)
from ..utils.time_utils import as_utc, day_bounds, to_facility_time, utcnow
from .availability_service import format_slot_label

logger = logging.getLogger(__name__)

USED_STATUSES = (BookingStatus.APPROVED, BookingStatus.COMPLETED)


def _month_start(moment: datetime, months_back: int = 0) -> datetime:
    """First instant of the month ``months_back`` months before ``moment``'s month."""
    year, month = moment.year, moment.month - months_back
    while month <= 0:
        month += 12
        year -= 1
    return moment.replace(year=year, month=month, day=1, hour=0, minute=0, second=0, microsecond=0)


class AnalyticsService:
    """Service for analytics and reporting operations."""

    def __init__(self, db: AsyncSession):
        """Initialize the analytics service."""
        self.db = db
        self.settings = get_settings()

    async def get_admin_dashboard(self) -> AdminDashboardStats:
        """Headline counters for the admin dashboard."""
        now = utcnow()
        today_start, today_end = day_bounds(to_facility_time(now).date())

        total_users = await self._scalar(select(func.count(User.id)))
        active_classes = await self._scalar(
            select(func.count(SportsClass.id)).where(SportsClass.is_active.is_(True))
        )
        total_courts = await self._scalar(select(func.count(Court.id)))
        available_courts = await self._scalar(
            select(func.count(Court.id)).where(Court.is_available.is_(True))
        )
        equipment_issued = await self._scalar(
            select(func.coalesce(func.sum(EquipmentIssue.quantity), 0)).where(
                EquipmentIssue.returned_at.is_(None)
            )
        )
        low_stock = await self._scalar(
            select(func.count(Equipment.id)).where(
                Equipment.available_quantity < self.settings.low_stock_threshold
            )
        )
        pending = await self._scalar(
            select(func.count(Booking.id)).where(Booking.status == BookingStatus.PENDING)
        )
        approved_today = await self._scalar(
            select(func.count(BookingStatusHistory.id)).where(
                BookingStatusHistory.new_status == BookingStatus.APPROVED,
                BookingStatusHistory.changed_at >= today_start,
                BookingStatusHistory.changed_at < today_end,
            )
        )

        return AdminDashboardStats(
            total_users=total_users,
            active_classes=active_classes,
            total_courts=total_courts,
            available_courts=available_courts,
            equipment_issued=int(equipment_issued),
            low_stock_items=low_stock,
            pending_approvals=pending,
            approved_today=approved_today,
        )

    async def get_booking_metrics(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> BookingStatusMetrics:
        """Booking counts per status, optionally for bookings starting in a date range."""
        query = select(
            func.count(Booking.id).label("total_bookings"),
            func.count(case((Booking.status == BookingStatus.PENDING, 1))).label("pending"),
            func.count(case((Booking.status == BookingStatus.APPROVED, 1))).label("approved"),
            func.count(case((Booking.status == BookingStatus.REJECTED, 1))).label("rejected"),
            func.count(case((Booking.status == BookingStatus.CANCELLED, 1))).label("cancelled"),
            func.count(case((Booking.status == BookingStatus.COMPLETED, 1))).label("completed"),
        )
        if start_date:
            query = query.where(Booking.start_time >= day_bounds(start_date)[0])
        if end_date:
            query = query.where(Booking.start_time < day_bounds(end_date)[1])

        row = (await self.db.execute(query)).first()

        reviewed = (row.approved or 0) + (row.completed or 0) + (row.rejected or 0)
        approval_rate = ((row.approved + row.completed) / reviewed * 100) if reviewed else 0.0

        return BookingStatusMetrics(
            total_bookings=row.total_bookings or 0,
            pending_bookings=row.pending or 0,
            approved_bookings=row.approved or 0,
            rejected_bookings=row.rejected or 0,
            cancelled_bookings=row.cancelled or 0,
            completed_bookings=row.completed or 0,
            approval_rate=round(approval_rate, 1),
        )

    async def get_court_utilization(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[SportUtilization]:
        """Approved and completed court bookings and hours, grouped by sport."""
        query = (
            select(Court.sport, Booking.start_time, Booking.end_time)
            .join(Court, Booking.court_id == Court.id)
            .where(Booking.status.in_(USED_STATUSES))
        )
        if start_date:
            query = query.where(Booking.start_time >= day_bounds(start_date)[0])
        if end_date:
            query = query.where(Booking.start_time < day_bounds(end_date)[1])

        bookings = Counter()
        hours = defaultdict(float)
        for sport, start, end in (await self.db.execute(query)).all():
            bookings[sport] += 1
            hours[sport] += (as_utc(end) - as_utc(start)).total_seconds() / 3600

        return [
            SportUtilization(sport=sport, bookings=count, hours=round(hours[sport], 2))
            for sport, count in bookings.most_common()
        ]

    async def get_monthly_trends(self, months: int = 6) -> List[MonthlyBookingTrend]:
        """Individual and class bookings per month for the last ``months`` months."""
        now = to_facility_time(utcnow())
        first_month = _month_start(now, months - 1)

        result = await self.db.execute(
            select(Booking.start_time, Booking.booking_type).where(
                Booking.start_time >= as_utc(first_month)
            )
        )

        buckets = {}
        for offset in range(months - 1, -1, -1):
            buckets[_month_start(now, offset).strftime("%Y-%m")] = Counter()

        for start, booking_type in result.all():
            key = to_facility_time(start).strftime("%Y-%m")
            if key in buckets:
                buckets[key][booking_type] += 1

        return [
            MonthlyBookingTrend(
                month=month,
                individual=counts[BookingType.INDIVIDUAL],
                class_bookings=counts[BookingType.CLASS],
            )
            for month, counts in buckets.items()
        ]

    async def get_peak_hours(self) -> List[PeakHour]:
        """Court bookings per local starting hour across opening hours, busiest first."""
        result = await self.db.execute(
            select(Booking.start_time).where(
                Booking.resource_type == ResourceType.COURT,
                Booking.status.in_([BookingStatus.PENDING, *USED_STATUSES]),
            )
        )
        counts = Counter(to_facility_time(start).hour for (start,) in result.all())

        hours = range(self.settings.facility_open_hour, self.settings.facility_close_hour)
        peaks = [
            PeakHour(
                hour=hour,
                label=format_slot_label(datetime(2000, 1, 1, hour)),
                bookings=counts.get(hour, 0),
            )
            for hour in hours
        ]
        peaks.sort(key=lambda peak: (-peak.bookings, peak.hour))
        return peaks

    async def get_equipment_usage(self) -> List[EquipmentUsage]:
        """Quantity booked (approved or completed) as a share of each line's stock."""
        booked = (
            select(
                Booking.equipment_id,
                func.coalesce(func.sum(Booking.quantity), 0).label("quantity_booked"),
            )
            .where(
                Booking.resource_type == ResourceType.EQUIPMENT,
                Booking.status.in_(USED_STATUSES),
            )
            .group_by(Booking.equipment_id)
            .subquery()
        )

        result = await self.db.execute(
            select(Equipment, func.coalesce(booked.c.quantity_booked, 0))
            .outerjoin(booked, booked.c.equipment_id == Equipment.id)
            .order_by(Equipment.name)
        )

        usage = []
        for equipment, quantity in result.all():
            quantity = int(quantity)
            percentage = (quantity / equipment.total_quantity * 100) if equipment.total_quantity else 0.0
            usage.append(
                EquipmentUsage(
                    equipment_id=str(equipment.id),
                    name=equipment.name,
                    category=equipment.category,
                    quantity_booked=quantity,
                    total_quantity=equipment.total_quantity,
                    usage_percentage=round(percentage, 1),
                )
            )
        usage.sort(key=lambda item: item.usage_percentage, reverse=True)
        return usage

    async def get_overview(self) -> AnalyticsOverview:
        """Every analytics section in one response."""
        return AnalyticsOverview(
            dashboard=await self.get_admin_dashboard(),
            booking_metrics=await self.get_booking_metrics(),
            court_utilization=await self.get_court_utilization(),
            monthly_trends=await self.get_monthly_trends(),
            peak_hours=await self.get_peak_hours(),
            equipment_usage=await self.get_equipment_usage(),
        )

    async def _scalar(self, query) -> int:
        return (await self.db.execute(query)).scalar_one() or 0
