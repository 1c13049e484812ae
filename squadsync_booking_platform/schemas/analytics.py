"""
Pydantic schemas for admin analytics.
"""

from typing import List

from pydantic import BaseModel, Field


class AdminDashboardStats(BaseModel):
    """Headline counters for the admin dashboard."""
    total_users: int = Field(..., description="Registered users")
    active_classes: int = Field(..., description="Classes that can book")
    total_courts: int
    available_courts: int
    equipment_issued: int = Field(..., description="Items currently out on loan")
    low_stock_items: int = Field(..., description="Equipment lines below the low stock threshold")
    pending_approvals: int
    approved_today: int


class BookingStatusMetrics(BaseModel):
    """Booking counts per status."""
    total_bookings: int
    pending_bookings: int
    approved_bookings: int
    rejected_bookings: int
    cancelled_bookings: int
    completed_bookings: int
    approval_rate: float = Field(..., description="Approved or completed share of reviewed bookings, in percent")


class SportUtilization(BaseModel):
    """Court usage grouped by sport."""
    sport: str
    bookings: int
    hours: float


class MonthlyBookingTrend(BaseModel):
    """Individual and class bookings for one month."""
    month: str = Field(..., description="Month as YYYY-MM")
    individual: int
    class_bookings: int


class PeakHour(BaseModel):
    hour: int = Field(..., ge=0, le=23, description="Local starting hour")
    label: str
    bookings: int


class EquipmentUsage(BaseModel):
    """Share of stock booked per equipment line."""
    equipment_id: str
    name: str
    category: str
    quantity_booked: int
    total_quantity: int
    usage_percentage: float


class AnalyticsOverview(BaseModel):
    """Everything the admin analytics page shows at once."""
    dashboard: AdminDashboardStats
    booking_metrics: BookingStatusMetrics
    court_utilization: List[SportUtilization]
    monthly_trends: List[MonthlyBookingTrend]
    peak_hours: List[PeakHour]
    equipment_usage: List[EquipmentUsage]
