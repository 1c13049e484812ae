from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from squadsync_booking_platform.utils import time_utils
from squadsync_booking_platform.utils.time_utils import month_bounds


def test_month_bounds_in_utc():
    start, end = month_bounds(datetime(2030, 12, 17, 9, tzinfo=timezone.utc))
    assert start == datetime(2030, 12, 1, tzinfo=timezone.utc)
    assert end == datetime(2031, 1, 1, tzinfo=timezone.utc)


def test_month_bounds_follow_facility_zone(monkeypatch):
    monkeypatch.setattr(time_utils, "facility_zone", lambda: ZoneInfo("America/New_York"))

    # 20:00 on May 31st in New York is already June 1st in UTC
    start, end = month_bounds(datetime(2030, 6, 1, 0, 30, tzinfo=timezone.utc))
    assert start == datetime(2030, 5, 1, 4, tzinfo=timezone.utc)
    assert end == datetime(2030, 6, 1, 4, tzinfo=timezone.utc)
