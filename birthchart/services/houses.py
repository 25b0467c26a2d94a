"""House cusps, Ascendant and Midheaven.

Two engines: ``swisseph`` delegates to ``swe.houses``; ``analytic`` evaluates
the sidereal-time / obliquity trig sequence directly and supports Placidus
(true semi-arc trisection), Porphyry and Equal houses.

Only systems whose first cusp is the Ascendant are offered.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

import swisseph as swe

from .constants import fmt_deg, norm360, sign_name_from_lon
from .errors import GeometryDomainError, ValidationError
from .timescale import J2000, julian_centuries

HOUSE_CODE_MAP = {
    "placidus": "P",
    "koch": "K",
    "porphyry": "O",
    "regiomontanus": "R",
    "campanus": "C",
    "equal": "E",
    "topocentric": "T",
    "alcabitius": "B",
}
ANALYTIC_SYSTEMS = ("placidus", "porphyry", "equal")
# semi-arc systems are undefined where some ecliptic degrees never rise or set
POLAR_SENSITIVE = ("placidus", "koch")

ANGULAR = (1, 4, 7, 10)
SUCCEDENT = (2, 5, 8, 11)


def house_quality(house: int) -> str:
    if house in ANGULAR:
        return "angular"
    if house in SUCCEDENT:
        return "succedent"
    return "cadent"


@dataclass(frozen=True)
class HouseCusp:
    number: int
    longitude: float

    @property
    def sign(self) -> str:
        return sign_name_from_lon(self.longitude)

    @property
    def quality(self) -> str:
        return house_quality(self.number)

    def to_dict(self) -> dict:
        return {
            "num": self.number,
            "cusp_lon": round(self.longitude, 6),
            "sign": self.sign,
            "degree": fmt_deg(self.longitude),
            "quality": self.quality,
        }


@dataclass(frozen=True)
class HouseResult:
    cusps: Tuple[HouseCusp, ...]
    ascendant: float
    midheaven: float
    system: str
    engine: str

    @property
    def descendant(self) -> float:
        return norm360(self.ascendant + 180.0)

    @property
    def imum_coeli(self) -> float:
        return norm360(self.midheaven + 180.0)

    def longitudes(self) -> List[float]:
        return [c.longitude for c in self.cusps]

    def angles(self) -> Dict[str, float]:
        return {
            "ascendant": round(self.ascendant, 6),
            "mc": round(self.midheaven, 6),
            "descendant": round(self.descendant, 6),
            "ic": round(self.imum_coeli, 6),
        }


def supported_systems(engine: str = "analytic") -> Tuple[str, ...]:
    return ANALYTIC_SYSTEMS if engine == "analytic" else tuple(HOUSE_CODE_MAP)


def obliquity(t: float) -> float:
    """Mean obliquity of the ecliptic (Meeus 22.2), degrees."""

    return 23.43929111 - 0.013004167 * t - 1.6389e-7 * t * t + 5.0361e-7 * t ** 3


def gmst(jd_utc: float) -> float:
    """Greenwich mean sidereal time in degrees (Meeus 12.4)."""

    t = julian_centuries(jd_utc)
    return norm360(280.46061837 + 360.98564736629 * (jd_utc - J2000) + 0.000387933 * t * t - t ** 3 / 38710000.0)


def _finite(values: Sequence[float], inputs: dict) -> None:
    if not all(math.isfinite(v) for v in values):
        raise GeometryDomainError("House calculation produced non-finite values", inputs)


def _ra_to_lon(ra: float, eps: float) -> float:
    r = math.radians(ra)
    return norm360(math.degrees(math.atan2(math.sin(r), math.cos(r) * math.cos(math.radians(eps)))))


def angles_from_ramc(ramc: float, eps: float, lat: float) -> Tuple[float, float]:
    """Return (ascendant, midheaven) longitudes for a RAMC, obliquity and latitude."""

    r, e, p = math.radians(ramc), math.radians(eps), math.radians(lat)
    mc = _ra_to_lon(ramc, eps)
    asc = norm360(math.degrees(math.atan2(math.cos(r), -(math.sin(e) * math.tan(p) + math.cos(e) * math.sin(r)))))
    # inside the polar circles the formula can return the setting degree
    if norm360(asc - mc) >= 180.0:
        asc = norm360(asc + 180.0)
    return asc, mc


def _placidus_cusp(ramc: float, eps: float, lat: float, fraction: float, above: bool, inputs: dict) -> float:
    """Iterate the cusp whose hour angle is ``fraction`` of its semi-arc."""

    tan_phi = math.tan(math.radians(lat))
    sin_eps = math.sin(math.radians(eps))
    ra = ramc + (fraction * 90.0 if above else 180.0 - fraction * 90.0)
    lon = _ra_to_lon(ra, eps)
    for _ in range(100):
        decl = math.asin(sin_eps * math.sin(math.radians(lon)))
        x = tan_phi * math.tan(decl)
        if abs(x) >= 1.0:
            raise GeometryDomainError("Placidus cusp undefined: ecliptic degree is circumpolar", inputs)
        ad = math.degrees(math.asin(x))
        ra = ramc + (fraction * (90.0 + ad) if above else 180.0 - fraction * (90.0 - ad))
        new = _ra_to_lon(ra, eps)
        step = abs((new - lon + 180.0) % 360.0 - 180.0)
        lon = new
        if step < 1e-9:
            return lon
    raise GeometryDomainError("Placidus cusp iteration did not converge", inputs)


def _analytic(jd_utc: float, lat: float, lon: float, system: str, inputs: dict) -> Tuple[List[float], float, float]:
    eps = obliquity(julian_centuries(jd_utc))
    ramc = norm360(gmst(jd_utc) + lon)
    asc, mc = angles_from_ramc(ramc, eps, lat)
    _finite((asc, mc), inputs)
    ic, dsc = norm360(mc + 180.0), norm360(asc + 180.0)

    if system == "equal":
        return [norm360(asc + 30.0 * i) for i in range(12)], asc, mc

    if system == "placidus":
        c11 = _placidus_cusp(ramc, eps, lat, 1 / 3, True, inputs)
        c12 = _placidus_cusp(ramc, eps, lat, 2 / 3, True, inputs)
        c2 = _placidus_cusp(ramc, eps, lat, 2 / 3, False, inputs)
        c3 = _placidus_cusp(ramc, eps, lat, 1 / 3, False, inputs)
    else:  # porphyry
        q1 = norm360(ic - asc)
        q2 = norm360(dsc - ic)
        c2, c3 = norm360(asc + q1 / 3), norm360(asc + 2 * q1 / 3)
        c5, c6 = norm360(ic + q2 / 3), norm360(ic + 2 * q2 / 3)
        c11, c12 = norm360(c5 + 180.0), norm360(c6 + 180.0)

    c5, c6 = norm360(c11 + 180.0), norm360(c12 + 180.0)
    c8, c9 = norm360(c2 + 180.0), norm360(c3 + 180.0)
    return [asc, c2, c3, ic, c5, c6, dsc, c8, c9, mc, c11, c12], asc, mc


def _swisseph(jd_utc: float, lat: float, lon: float, system: str, inputs: dict) -> Tuple[List[float], float, float]:
    code = HOUSE_CODE_MAP[system]
    try:
        cusps, ascmc = swe.houses(jd_utc, lat, lon, code.encode())
    except swe.Error as exc:
        raise GeometryDomainError(f"Swiss Ephemeris house error: {exc}", inputs) from exc
    asc, mc = norm360(ascmc[0]), norm360(ascmc[1])
    values = [norm360(c) for c in cusps[:12]]
    values[0] = asc
    return values, asc, mc


def _validate(jd_utc: float, lat: float, lon: float, system: str, engine: str) -> dict:
    inputs = {"julian_day": jd_utc, "latitude": lat, "longitude": lon, "system": system}
    for name in ("julian_day", "latitude", "longitude"):
        value = inputs[name]
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ValidationError(f"{name} must be a finite number", inputs)
    if abs(lat) > 90.0:
        raise ValidationError("Latitude must be between -90 and 90 degrees", inputs)
    if abs(lon) > 180.0:
        raise ValidationError("Longitude must be between -180 and 180 degrees", inputs)
    if engine not in ("analytic", "swisseph"):
        raise ValidationError(f"Unknown house engine {engine!r}", inputs)
    if system not in supported_systems(engine):
        raise ValidationError(
            f"House system {system!r} is not supported by the {engine} engine; "
            f"expected one of {', '.join(supported_systems(engine))}",
            inputs,
        )
    return inputs


def houses(jd_utc: float, lat: float, lon: float, system: str = "placidus", engine: str = "analytic") -> HouseResult:
    system = (system or "placidus").lower()
    inputs = _validate(jd_utc, lat, lon, system, engine)

    if abs(lat) == 90.0:
        raise GeometryDomainError("Ascendant is undefined at the geographic poles", inputs)
    if system in POLAR_SENSITIVE and abs(lat) >= 90.0 - obliquity(julian_centuries(jd_utc)):
        raise GeometryDomainError(f"{system.capitalize()} houses are undefined inside the polar circles", inputs)

    calc = _analytic if engine == "analytic" else _swisseph
    values, asc, mc = calc(jd_utc, lat, lon, system, inputs)
    _finite(values, inputs)
    return HouseResult(
        cusps=tuple(HouseCusp(i + 1, v) for i, v in enumerate(values)),
        ascendant=asc,
        midheaven=mc,
        system=system,
        engine=engine,
    )


def house_of(lon: float, cusps: list[float], cusp_orb: float = 0.0) -> int:
    """House 1..12 containing ``lon``.

    With ``cusp_orb`` > 0 a body that far or less before the next cusp is
    counted in the next house (the traditional five-degree rule).
    """

    # Shift all longitudes so cusp 1 becomes 0°, then find the half-open
    # sector [cusp i, cusp i+1); a body exactly on a cusp belongs to that house.
    shift = cusps[0]
    def norm(x):
        return norm360(x - shift)
    nlon = norm(lon)
    ncusps = [norm(c) for c in cusps] + [360.0]
    house = 12
    for i in range(12):
        if ncusps[i] <= nlon < ncusps[i+1]:
            house = i + 1
            break
    if cusp_orb > 0 and 0.0 < norm360(cusps[house % 12] - lon) <= cusp_orb:
        return house % 12 + 1
    return house


__all__ = [
    "ANALYTIC_SYSTEMS",
    "HOUSE_CODE_MAP",
    "HouseCusp",
    "HouseResult",
    "angles_from_ramc",
    "gmst",
    "house_of",
    "house_quality",
    "houses",
    "obliquity",
    "supported_systems",
]
