import pytest
from pydantic import ValidationError

from squadsync_booking_platform.config import Settings


def test_defaults_describe_the_facility():
    settings = Settings(_env_file=None)
    assert (settings.facility_open_hour, settings.facility_close_hour) == (6, 21)
    assert settings.max_booking_hours == 3


def test_closing_must_follow_opening():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, facility_open_hour=22, facility_close_hour=8)


def test_unknown_timezone_is_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, facility_timezone="Mars/Olympus_Mons")


@pytest.mark.parametrize("minutes", [0, 45, 90])
def test_slot_length_must_tile_hours(minutes):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, slot_duration_minutes=minutes)


@pytest.mark.parametrize("minutes", [15, 30, 60, 120])
def test_valid_slot_lengths(minutes):
    assert Settings(_env_file=None, slot_duration_minutes=minutes).slot_duration_minutes == minutes
