import math
from datetime import timedelta

import pytest

from birthchart.services.errors import ValidationError
from birthchart.services.timescale import (
    CivilDateTime,
    GeoPosition,
    calculate_julian_day,
    julian_day_from_utc,
    julian_day_to_datetime,
    resolve_timezone,
)


def _zone(name):
    return lambda _lat, _lon: name


LONDON = GeoPosition(51.5074, -0.1278)
NEW_YORK = GeoPosition(40.7128, -74.0060)


def test_j2000_epoch():
    assert julian_day_from_utc(2000, 1, 1, 12.0) == 2451545.0


@pytest.mark.parametrize(
    "ymd,hours,expected",
    [
        ((1999, 1, 1), 0.0, 2451179.5),
        ((1987, 6, 19), 12.0, 2446966.0),
        ((1988, 1, 27), 0.0, 2447187.5),
        ((1600, 1, 1), 0.0, 2305447.5),
    ],
)
def test_reference_julian_days(ymd, hours, expected):
    assert julian_day_from_utc(*ymd, hours) == expected


def test_civil_time_goes_through_local_zone():
    res = calculate_julian_day(CivilDateTime(2000, 1, 1, 7, 0, 0), NEW_YORK, _zone("America/New_York"))
    assert res.julian_day == 2451545.0
    assert res.tz_name == "America/New_York"
    assert res.warnings == ()


def test_historical_dst_offset_applied():
    # New York is on EDT (UTC-4) in July
    res = calculate_julian_day(CivilDateTime(2021, 7, 1, 8, 0, 0), NEW_YORK, _zone("America/New_York"))
    assert res.julian_day == julian_day_from_utc(2021, 7, 1, 12.0)
    assert res.utc.hour == 12


def test_zone_lookup_failure_falls_back_to_utc_with_warning():
    res = calculate_julian_day(CivilDateTime(2000, 1, 1, 12), GeoPosition(0.0, -160.0), _zone(None))
    assert res.tz_name == "UTC"
    assert res.julian_day == 2451545.0
    assert len(res.warnings) == 1
    assert "using UTC" in res.warnings[0]


def test_unknown_zone_key_falls_back_to_utc():
    res = calculate_julian_day(CivilDateTime(2000, 1, 1, 12), LONDON, _zone("Mars/Olympus_Mons"))
    assert res.tz_name == "UTC"
    assert res.warnings


def test_dst_gap_is_reported():
    res = calculate_julian_day(CivilDateTime(2021, 3, 14, 2, 30), NEW_YORK, _zone("America/New_York"))
    assert any("DST gap" in w for w in res.warnings)


def test_ambiguous_time_is_reported():
    res = calculate_julian_day(CivilDateTime(2021, 11, 7, 1, 30), NEW_YORK, _zone("America/New_York"))
    assert any("ambiguous" in w for w in res.warnings)


def test_zone_resolved_from_coordinates():
    assert resolve_timezone(NEW_YORK.latitude, NEW_YORK.longitude) == "America/New_York"
    assert resolve_timezone(LONDON.latitude, LONDON.longitude) == "Europe/London"


def test_julian_day_is_monotonic_in_civil_time():
    earlier = calculate_julian_day(CivilDateTime(1990, 8, 18, 14, 32), LONDON, _zone("Europe/London"))
    later = calculate_julian_day(CivilDateTime(1990, 8, 18, 14, 33), LONDON, _zone("Europe/London"))
    assert later.julian_day > earlier.julian_day


def test_inverse_of_j2000():
    assert julian_day_to_datetime(2451545.0) == CivilDateTime(2000, 1, 1, 12, 0, 0.0)


@pytest.mark.parametrize(
    "dt,pos,tz",
    [
        (CivilDateTime(1990, 8, 18, 14, 32, 0), GeoPosition(17.385, 78.4867), "Asia/Kolkata"),
        (CivilDateTime(1583, 1, 1, 0, 0, 0), LONDON, "Europe/London"),
        (CivilDateTime(1969, 7, 20, 20, 17, 40.5), NEW_YORK, "America/New_York"),
        (CivilDateTime(2024, 2, 29, 23, 59, 59), GeoPosition(-33.8688, 151.2093), "Australia/Sydney"),
        (CivilDateTime(2999, 12, 31, 6, 15), GeoPosition(35.6762, 139.6503), "Asia/Tokyo"),
        (CivilDateTime(1900, 3, 1, 0, 0), GeoPosition(0.0, 0.0), "UTC"),
    ],
)
def test_round_trip_recovers_civil_time(dt, pos, tz):
    res = calculate_julian_day(dt, pos, _zone(tz))
    back = julian_day_to_datetime(res.julian_day, res.tz_name)
    delta = abs(back.to_datetime() - dt.to_datetime())
    assert delta <= timedelta(minutes=1)


@pytest.mark.parametrize(
    "dt",
    [
        CivilDateTime(1990, 13, 1),
        CivilDateTime(1990, 2, 30),
        CivilDateTime(1990, 1, 1, 24, 0),
        CivilDateTime(1990, 1, 1, 12, 60),
        CivilDateTime(1990, 1, 1, 12, 0, math.nan),
        CivilDateTime(1990, 1, 1, 12, 0, 60.0),
        CivilDateTime(1200, 1, 1),
        CivilDateTime(3001, 1, 1),
        CivilDateTime(1990, 1.5, 1),
    ],
)
def test_invalid_civil_time_rejected(dt):
    with pytest.raises(ValidationError):
        calculate_julian_day(dt, LONDON, _zone("Europe/London"))


@pytest.mark.parametrize(
    "pos",
    [
        GeoPosition(91.0, 0.0),
        GeoPosition(-90.5, 0.0),
        GeoPosition(0.0, 181.0),
        GeoPosition(math.nan, 0.0),
        GeoPosition(0.0, math.inf),
        GeoPosition("10", 0.0),
    ],
)
def test_invalid_position_rejected_before_zone_lookup(pos):
    def resolver(_lat, _lon):
        raise AssertionError("zone lookup must not run on invalid input")

    with pytest.raises(ValidationError):
        calculate_julian_day(CivilDateTime(1990, 8, 18, 12), pos, resolver)


def test_validation_error_carries_inputs():
    with pytest.raises(ValidationError) as err:
        calculate_julian_day(CivilDateTime(1990, 8, 18), GeoPosition(91.0, 0.0), _zone("UTC"))
    assert err.value.inputs == {"latitude": 91.0}
    assert err.value.to_dict()["error"] == "validation_error"
