"""Ephemeris position providers.

Two strategies sit behind the same ``PositionProvider`` interface: the Swiss
Ephemeris (data files or the built-in Moshier series) and a closed-form
mean-element model in :mod:`birthchart.services.ephem_approx`.  The provider is
chosen once at startup by :func:`build_provider`.
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Protocol, Tuple

import swisseph as swe

from .constants import fmt_deg, norm360, sign_name_from_lon
from .errors import EphemerisUnavailable, ValidationError

logger = logging.getLogger(__name__)


try:
    ENGINE_VERSION = f"swisseph-{swe.version}"
except AttributeError:
    ENGINE_VERSION = "swisseph-2.10"


@dataclass(frozen=True)
class CelestialBody:
    name: str
    kind: str  # "planet" | "point"
    essential: bool = False


CATALOG: Tuple[CelestialBody, ...] = (
    CelestialBody("Sun", "planet", True),
    CelestialBody("Moon", "planet", True),
    CelestialBody("Mercury", "planet", True),
    CelestialBody("Venus", "planet", True),
    CelestialBody("Mars", "planet", True),
    CelestialBody("Jupiter", "planet"),
    CelestialBody("Saturn", "planet"),
    CelestialBody("Uranus", "planet"),
    CelestialBody("Neptune", "planet"),
    CelestialBody("Pluto", "planet"),
    CelestialBody("North Node", "point"),
    CelestialBody("Chiron", "point"),
)
BODIES_BY_NAME: Dict[str, CelestialBody] = {b.name: b for b in CATALOG}
DEFAULT_BODIES: Tuple[str, ...] = tuple(b.name for b in CATALOG)
ESSENTIAL_BODIES: Tuple[str, ...] = tuple(b.name for b in CATALOG if b.essential)

SWE_CODES: Dict[str, int] = {
    "Sun": swe.SUN,
    "Moon": swe.MOON,
    "Mercury": swe.MERCURY,
    "Venus": swe.VENUS,
    "Mars": swe.MARS,
    "Jupiter": swe.JUPITER,
    "Saturn": swe.SATURN,
    "Uranus": swe.URANUS,
    "Neptune": swe.NEPTUNE,
    "Pluto": swe.PLUTO,
    "North Node": swe.TRUE_NODE,
    "Chiron": swe.CHIRON,
}


@dataclass(frozen=True)
class BodyPosition:
    body: str
    longitude: float
    latitude: float
    distance: float
    speed: float

    @property
    def sign(self) -> str:
        return sign_name_from_lon(self.longitude)

    @property
    def retrograde(self) -> bool:
        return self.speed < 0

    @property
    def formatted(self) -> str:
        return fmt_deg(self.longitude)

    @property
    def kind(self) -> str:
        body = BODIES_BY_NAME.get(self.body)
        return body.kind if body else "point"

    def to_dict(self) -> dict:
        return {
            "name": self.body,
            "lon": round(self.longitude, 6),
            "lat": round(self.latitude, 6),
            "distance": round(self.distance, 8),
            "speed": round(self.speed, 6),
            "sign": self.sign,
            "degree": self.formatted,
            "retro": self.retrograde,
        }


class BodyUnavailable(Exception):
    """Raised by a provider when a single body cannot be computed."""


class PositionProvider(Protocol):
    name: str
    house_engine: str

    def position(self, jd_utc: float, body: str) -> BodyPosition:
        ...


def make_position(body: str, lon: float, lat: float, dist: float, speed: float) -> BodyPosition:
    values = (lon, lat, dist, speed)
    if not all(math.isfinite(v) for v in values):
        raise BodyUnavailable(f"non-finite position for {body}: {values}")
    return BodyPosition(body=body, longitude=norm360(lon), latitude=lat, distance=dist, speed=speed)


class SwissEphemerisProvider:
    """Positions from ``swe.calc_ut`` (data files or the Moshier series)."""

    house_engine = "swisseph"

    def __init__(self, moshier: bool = False) -> None:
        self.flag = swe.FLG_MOSEPH if moshier else swe.FLG_SWIEPH
        self.name = "moshier" if moshier else "swisseph"

    def position(self, jd_utc: float, body: str) -> BodyPosition:
        code = SWE_CODES.get(body)
        if code is None:
            raise BodyUnavailable(f"{body} is not supported by the Swiss Ephemeris provider")
        try:
            values, retflag = swe.calc_ut(jd_utc, code, self.flag | swe.FLG_SPEED)
        except swe.Error as exc:
            # Chiron and asteroids require the data files
            raise BodyUnavailable(str(exc)) from exc
        if self.flag == swe.FLG_SWIEPH and retflag & swe.FLG_MOSEPH:
            logger.info("Swiss Ephemeris files missing for %s; Moshier fallback used", body)
        lon, lat, dist, lon_speed = values[:4]
        return make_position(body, lon, lat, dist, lon_speed)


def init_paths(ephe_dir: str | os.PathLike[str] | None) -> None:
    """Set the Swiss Ephemeris file search path when available."""

    if not ephe_dir:
        return

    path = os.fspath(ephe_dir)
    if os.path.isdir(path):
        swe.set_ephe_path(path)
    else:
        logger.warning("EPHEMERIS_DIR %s does not exist; using built-in search path", path)


BACKENDS = ("swisseph", "moshier", "approximate")


def build_provider(backend: str = "swisseph", ephe_dir: Optional[str] = None) -> PositionProvider:
    backend = (backend or "swisseph").strip().lower()
    if backend == "approximate":
        from .ephem_approx import ApproximateProvider

        return ApproximateProvider()
    if backend not in BACKENDS:
        raise ValueError(f"Unknown ephemeris backend {backend!r}; expected one of {BACKENDS}")
    init_paths(ephe_dir)
    return SwissEphemerisProvider(moshier=(backend == "moshier"))


def collect_positions(
    provider: PositionProvider,
    jd_utc: float,
    bodies: Iterable[str] = DEFAULT_BODIES,
) -> Tuple[Dict[str, BodyPosition], List[str]]:
    """Compute every requested body, omitting failures of non-essential ones.

    Returns the positions in request order and warnings for omitted bodies.
    Raises ``EphemerisUnavailable`` when an essential body is missing.
    """

    if not isinstance(jd_utc, (int, float)) or not math.isfinite(jd_utc):
        raise ValidationError("Julian Day must be a finite number", {"julian_day": jd_utc})

    requested = list(bodies)
    out: Dict[str, BodyPosition] = {}
    warnings: List[str] = []
    for name in requested:
        try:
            out[name] = provider.position(jd_utc, name)
        except BodyUnavailable as exc:
            logger.warning("Position of %s unavailable at JD %s: %s", name, jd_utc, exc)
            warnings.append(f"{name} omitted: position unavailable")

    missing = [name for name in ESSENTIAL_BODIES if name in requested and name not in out]
    if missing:
        raise EphemerisUnavailable(
            "Essential bodies could not be computed: " + ", ".join(missing),
            {"julian_day": jd_utc, "provider": provider.name, "missing": missing},
        )
    return out, warnings


__all__ = [
    "BodyPosition",
    "BodyUnavailable",
    "CATALOG",
    "CelestialBody",
    "DEFAULT_BODIES",
    "ENGINE_VERSION",
    "ESSENTIAL_BODIES",
    "PositionProvider",
    "SwissEphemerisProvider",
    "build_provider",
    "collect_positions",
    "init_paths",
]
