"""
Analytics API endpoints for admin reporting.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User
from ..schemas.analytics import (
    AdminDashboardStats,
    AnalyticsOverview,
    BookingStatusMetrics,
    EquipmentUsage,
    MonthlyBookingTrend,
    PeakHour,
    SportUtilization,
)
from ..services.analytics_service import AnalyticsService
from ..utils.dependencies import get_current_admin_user

router = APIRouter(prefix="/admin/analytics", tags=["admin", "analytics"])


@router.get("/overview", response_model=AnalyticsOverview)
async def get_analytics_overview(
    current_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Get every analytics section in one response.

    Requires admin privileges.
    """
    return await AnalyticsService(db).get_overview()


@router.get("/dashboard", response_model=AdminDashboardStats)
async def get_admin_dashboard(
    current_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Get the counters shown on the admin dashboard.

    Requires admin privileges.
    """
    return await AnalyticsService(db).get_admin_dashboard()


@router.get("/bookings", response_model=BookingStatusMetrics)
async def get_booking_metrics(
    start_date: Optional[date] = Query(None, description="Start date for filtering"),
    end_date: Optional[date] = Query(None, description="End date for filtering"),
    current_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Get booking counts per status and the approval rate.

    Requires admin privileges.
    """
    return await AnalyticsService(db).get_booking_metrics(start_date, end_date)


@router.get("/courts", response_model=List[SportUtilization])
async def get_court_utilization(
    start_date: Optional[date] = Query(None, description="Start date for filtering"),
    end_date: Optional[date] = Query(None, description="End date for filtering"),
    current_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Get court bookings and hours per sport.

    Requires admin privileges.
    """
    return await AnalyticsService(db).get_court_utilization(start_date, end_date)


@router.get("/monthly", response_model=List[MonthlyBookingTrend])
async def get_monthly_trends(
    months: int = Query(6, ge=1, le=24, description="Number of months to include"),
    current_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Get individual and class booking counts per month.

    Requires admin privileges.
    """
    return await AnalyticsService(db).get_monthly_trends(months)


@router.get("/peak-hours", response_model=List[PeakHour])
async def get_peak_hours(
    current_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Get bookings per starting hour, busiest first.

    Requires admin privileges.
    """
    return await AnalyticsService(db).get_peak_hours()


@router.get("/equipment", response_model=List[EquipmentUsage])
async def get_equipment_usage(
    current_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Get how much of each equipment line's stock has been booked.

    Requires admin privileges.
    """
    return await AnalyticsService(db).get_equipment_usage()
