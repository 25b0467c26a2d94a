"""Civil time and geographic position to Julian Day (UT).

The zone used for the local -> UTC conversion is derived from the coordinates
(never supplied by the user).  When it cannot be resolved we degrade to UTC and
report a warning instead of failing the chart.
"""

from __future__ import annotations

import logging
import math
import numbers
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Callable, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from timezonefinder import TimezoneFinder

from .errors import ValidationError

logger = logging.getLogger(__name__)

J2000 = 2451545.0
MIN_YEAR = 1583
MAX_YEAR = 3000
# First Julian Day of the Gregorian calendar (1582-10-15 00:00 UT)
GREGORIAN_START_JD = 2299160.5


@dataclass(frozen=True)
class CivilDateTime:
    year: int
    month: int
    day: int
    hour: int = 0
    minute: int = 0
    second: float = 0.0

    @classmethod
    def from_datetime(cls, dt: datetime) -> "CivilDateTime":
        return cls(dt.year, dt.month, dt.day, dt.hour, dt.minute, dt.second + dt.microsecond / 1e6)

    def to_datetime(self, tzinfo=None) -> datetime:
        whole = int(self.second)
        micro = int(round((self.second - whole) * 1_000_000))
        if micro >= 1_000_000:
            whole, micro = whole + 1, 0
        base = datetime(self.year, self.month, self.day, self.hour, self.minute, tzinfo=tzinfo)
        return base + timedelta(seconds=whole, microseconds=micro)

    def to_dict(self) -> dict:
        return {
            "year": self.year,
            "month": self.month,
            "day": self.day,
            "hour": self.hour,
            "minute": self.minute,
            "second": self.second,
        }


@dataclass(frozen=True)
class GeoPosition:
    latitude: float
    longitude: float

    def to_dict(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass(frozen=True)
class ResolvedInstant:
    """Outcome of the normaliser: the Julian Day plus how it was obtained."""

    julian_day: float
    tz_name: str
    utc: datetime
    warnings: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "julian_day": self.julian_day,
            "tz": self.tz_name,
            "utc": self.utc.isoformat().replace("+00:00", "Z"),
        }


def _is_int(value) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _is_real(value) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool) and math.isfinite(value)


def validate_position(pos: GeoPosition) -> None:
    lat, lon = pos.latitude, pos.longitude
    if not _is_real(lat) or not _is_real(lon):
        raise ValidationError("Coordinates must be finite numbers", {"latitude": lat, "longitude": lon})
    if not -90.0 <= lat <= 90.0:
        raise ValidationError("Latitude must be between -90 and 90 degrees", {"latitude": lat})
    if not -180.0 <= lon <= 180.0:
        raise ValidationError("Longitude must be between -180 and 180 degrees", {"longitude": lon})


def validate_civil(dt: CivilDateTime) -> None:
    fields = {"year": dt.year, "month": dt.month, "day": dt.day, "hour": dt.hour, "minute": dt.minute}
    for name, value in fields.items():
        if not _is_int(value):
            raise ValidationError(f"{name} must be an integer", {name: value})
    if not _is_real(dt.second):
        raise ValidationError("second must be a finite number", {"second": dt.second})
    if not MIN_YEAR <= dt.year <= MAX_YEAR:
        raise ValidationError(f"Year must be between {MIN_YEAR} and {MAX_YEAR}", {"year": dt.year})
    if not 1 <= dt.month <= 12:
        raise ValidationError("Month must be between 1 and 12", {"month": dt.month})
    if not 0 <= dt.hour <= 23 or not 0 <= dt.minute <= 59 or not 0 <= dt.second < 60:
        raise ValidationError("Time of day is out of range", fields | {"second": dt.second})
    try:
        datetime(dt.year, dt.month, dt.day)
    except ValueError as exc:
        raise ValidationError(f"Invalid calendar date: {exc}", fields) from exc


@lru_cache(maxsize=1)
def _finder() -> TimezoneFinder:
    return TimezoneFinder()


def resolve_timezone(lat: float, lon: float) -> Optional[str]:
    """Return the IANA zone at the coordinates, or ``None`` when unknown."""

    return _finder().timezone_at(lng=lon, lat=lat)


def julian_centuries(jd: float) -> float:
    return (jd - J2000) / 36525.0


def julian_day_from_utc(year: int, month: int, day: int, hours: float = 0.0) -> float:
    """Meeus' Julian Day formula for a UT calendar date and decimal hours."""

    y, m = year, month
    if m <= 2:
        y -= 1
        m += 12
    b = 0
    if (year, month, day) >= (1582, 10, 15):
        a = math.floor(y / 100)
        b = 2 - a + math.floor(a / 4)
    return math.floor(365.25 * (y + 4716)) + math.floor(30.6001 * (m + 1)) + day + hours / 24.0 + b - 1524.5


def julian_day_to_datetime(jd: float, tz_name: Optional[str] = None) -> CivilDateTime:
    """Invert :func:`julian_day_from_utc` to the nearest second.

    With ``tz_name`` the UT instant is converted back to that zone's civil time.
    """

    if not _is_real(jd):
        raise ValidationError("Julian Day must be a finite number", {"julian_day": jd})
    jd += 0.5
    z = math.floor(jd)
    f = jd - z
    a = z
    if z >= 2299161:
        alpha = math.floor((z - 1867216.25) / 36524.25)
        a = z + 1 + alpha - math.floor(alpha / 4)
    b = a + 1524
    c = math.floor((b - 122.1) / 365.25)
    d = math.floor(365.25 * c)
    e = math.floor((b - d) / 30.6001)
    day = b - d - math.floor(30.6001 * e)
    month = e - 1 if e < 14 else e - 13
    year = c - 4716 if month > 2 else c - 4715

    utc = datetime(year, month, day, tzinfo=timezone.utc) + timedelta(seconds=round(f * 86400.0))
    if tz_name:
        return CivilDateTime.from_datetime(utc.astimezone(ZoneInfo(tz_name)))
    return CivilDateTime.from_datetime(utc)


def _zone(tz_name: Optional[str], pos: GeoPosition, warnings: list) -> Tuple[str, ZoneInfo]:
    if tz_name:
        try:
            return tz_name, ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown time zone %r for lat=%s lon=%s", tz_name, pos.latitude, pos.longitude)
    msg = f"Could not determine time zone for lat={pos.latitude}, lon={pos.longitude}; using UTC"
    logger.warning(msg)
    warnings.append(msg)
    return "UTC", ZoneInfo("UTC")


def calculate_julian_day(
    dt: CivilDateTime,
    pos: GeoPosition,
    tz_resolver: Callable[[float, float], Optional[str]] = resolve_timezone,
) -> ResolvedInstant:
    """Convert a civil birth time at a position into a Julian Day (UT)."""

    validate_civil(dt)
    validate_position(pos)

    warnings: list[str] = []
    tz_name, zone = _zone(tz_resolver(pos.latitude, pos.longitude), pos, warnings)

    local = dt.to_datetime(tzinfo=zone)
    utc = local.astimezone(timezone.utc)
    naive = local.replace(tzinfo=None)
    if utc.astimezone(zone).replace(tzinfo=None) != naive:
        warnings.append(f"Local time {naive.isoformat()} does not exist in {tz_name} (DST gap)")
    elif local.replace(fold=1).utcoffset() != local.utcoffset():
        warnings.append(f"Local time {naive.isoformat()} is ambiguous in {tz_name}; using the earlier instant")

    hours = utc.hour + utc.minute / 60 + utc.second / 3600 + utc.microsecond / 3_600_000_000
    jd = julian_day_from_utc(utc.year, utc.month, utc.day, hours)
    return ResolvedInstant(julian_day=jd, tz_name=tz_name, utc=utc, warnings=tuple(warnings))


__all__ = [
    "CivilDateTime",
    "GeoPosition",
    "ResolvedInstant",
    "calculate_julian_day",
    "julian_centuries",
    "julian_day_from_utc",
    "julian_day_to_datetime",
    "resolve_timezone",
    "validate_civil",
    "validate_position",
]
