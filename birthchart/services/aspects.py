"""Pairwise aspects between body longitudes.

The catalog is tested in a fixed order and the first entry within orb wins, so
a pair never carries more than one aspect.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .constants import norm360
from .errors import ValidationError
from .motion import aspect_motion, signed_separation


@dataclass(frozen=True)
class AspectDef:
    name: str
    angle: float
    orb: float
    nature: str  # "harmonious" | "challenging" | "neutral"
    weight: float
    minor: bool = False


MAJOR: Tuple[AspectDef, ...] = (
    AspectDef("conjunction", 0.0, 10.0, "neutral", 10.0),
    AspectDef("sextile", 60.0, 6.0, "harmonious", 6.0),
    AspectDef("square", 90.0, 10.0, "challenging", 7.0),
    AspectDef("trine", 120.0, 10.0, "harmonious", 8.0),
    AspectDef("opposition", 180.0, 10.0, "challenging", 9.0),
)
MINOR: Tuple[AspectDef, ...] = (
    AspectDef("quincunx", 150.0, 3.0, "challenging", 4.0, True),
    AspectDef("sesquiquadrate", 135.0, 3.0, "challenging", 3.0, True),
    AspectDef("quintile", 72.0, 2.0, "harmonious", 5.0, True),
    AspectDef("semisextile", 30.0, 2.0, "neutral", 4.0, True),
    AspectDef("octile", 45.0, 2.0, "challenging", 3.0, True),
)
CATALOG: Tuple[AspectDef, ...] = MAJOR + MINOR
ASPECTS_BY_NAME: Dict[str, AspectDef] = {a.name: a for a in CATALOG}

ASPECT_ALIASES = {
    "inconjunct": "quincunx",
    "semisquare": "octile",
    "semi-square": "octile",
    "semi-sextile": "semisextile",
    "sesquisquare": "sesquiquadrate",
}


def canonical_aspect(name: str) -> str:
    key = name.strip().lower()
    return ASPECT_ALIASES.get(key, key)


@dataclass(frozen=True)
class AspectPolicy:
    """Which catalog entries are active and their orbs."""

    include_minor: bool = False
    orbs: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        cleaned: Dict[str, float] = {}
        for name, orb in dict(self.orbs).items():
            canonical = canonical_aspect(name)
            if canonical not in ASPECTS_BY_NAME:
                raise ValidationError(f"Unknown aspect {name!r} in orb overrides", {"aspect": name})
            if isinstance(orb, bool) or not isinstance(orb, (int, float)) or not math.isfinite(orb) or orb < 0:
                raise ValidationError(f"Orb for {name} must be a non-negative number", {"aspect": name, "orb": orb})
            cleaned[canonical] = float(orb)
        object.__setattr__(self, "orbs", cleaned)

    def catalog(self) -> List[Tuple[AspectDef, float]]:
        active = CATALOG if self.include_minor else MAJOR
        return [(a, self.orbs.get(a.name, a.orb)) for a in active]


@dataclass(frozen=True)
class Aspect:
    body_a: str
    body_b: str
    type: str
    exact_angle: float
    measured_angle: float
    orb: float
    max_orb: float
    motion: Optional[str] = None

    @property
    def nature(self) -> str:
        return ASPECTS_BY_NAME[self.type].nature

    @property
    def strength(self) -> float:
        return aspect_strength(self)

    def involves(self, body: str) -> bool:
        return body in (self.body_a, self.body_b)

    def other(self, body: str) -> str:
        return self.body_b if body == self.body_a else self.body_a

    def to_dict(self) -> dict:
        out = {
            "p1": self.body_a,
            "p2": self.body_b,
            "type": self.type,
            "exact_angle": self.exact_angle,
            "angle": round(self.measured_angle, 4),
            "orb": round(self.orb, 4),
            "nature": self.nature,
            "strength": round(self.strength, 3),
        }
        if self.motion is not None:
            out["motion"] = self.motion
            out["applying"] = self.motion == "applying"
        return out


def separation(a: float, b: float) -> float:
    """Shorter arc between two longitudes, 0..180."""

    d = abs(a - b) % 360.0
    return min(d, 360.0 - d)


def _lon_speed(name: str, value) -> Tuple[float, Optional[float]]:
    if hasattr(value, "longitude"):
        lon, speed = value.longitude, value.speed
    elif isinstance(value, Mapping):
        lon, speed = value.get("lon"), value.get("speed")
    else:
        lon, speed = value, None
    if isinstance(lon, bool) or not isinstance(lon, (int, float)) or not math.isfinite(lon):
        raise ValidationError(f"Longitude of {name} must be a finite number", {"body": name, "longitude": lon})
    if speed is not None and not math.isfinite(speed):
        speed = None
    return norm360(lon), speed


def match_aspect(sep: float, catalog: Iterable[Tuple[AspectDef, float]]) -> Optional[Tuple[AspectDef, float]]:
    for defn, orb in catalog:
        if abs(sep - defn.angle) <= orb:
            return defn, orb
    return None


def find_aspects(positions: Mapping[str, object], policy: AspectPolicy | None = None) -> List[Aspect]:
    """Aspects for every unordered pair, in input order.

    ``positions`` maps body names to ``BodyPosition`` objects, ``{"lon", "speed"}``
    dicts or bare longitudes. Motion is reported only when both speeds are known.
    """

    policy = policy or AspectPolicy()
    catalog = policy.catalog()
    points = [(name, *_lon_speed(name, value)) for name, value in positions.items()]
    res: List[Aspect] = []
    for i in range(len(points)):
        for j in range(i + 1, len(points)):
            n1, lon1, v1 = points[i]
            n2, lon2, v2 = points[j]
            sep = separation(lon1, lon2)
            hit = match_aspect(sep, catalog)
            if hit is None:
                continue
            defn, orb_limit = hit
            motion = None
            if v1 is not None and v2 is not None:
                motion = aspect_motion(lon1, lon2, v1, v2, defn.angle)
            res.append(Aspect(
                body_a=n1,
                body_b=n2,
                type=defn.name,
                exact_angle=defn.angle,
                measured_angle=sep,
                orb=abs(sep - defn.angle),
                max_orb=orb_limit,
                motion=motion,
            ))
    return res


def aspect_strength(aspect: Aspect) -> float:
    """Type weight scaled by how much of the allowed orb is left."""

    weight = ASPECTS_BY_NAME[aspect.type].weight
    if aspect.max_orb <= 0:
        return weight
    return weight * max(0.0, 1.0 - aspect.orb / aspect.max_orb)


def significant_aspects(aspects: Iterable[Aspect], limit: int = 5) -> List[Aspect]:
    ranked = sorted(aspects, key=lambda a: (-aspect_strength(a), a.orb))
    return ranked[:limit]


def aspects_for(body: str, aspects: Iterable[Aspect]) -> List[Aspect]:
    return [a for a in aspects if a.involves(body)]


def body_strength(body: str, aspects: Iterable[Aspect]) -> float:
    return sum(aspect_strength(a) for a in aspects_for(body, aspects))


def midpoint(a: float, b: float) -> float:
    """Midpoint on the shorter arc between two longitudes."""

    return norm360(a + signed_separation(b, a) / 2.0)


def midpoints(positions: Mapping[str, object]) -> Dict[str, float]:
    points = [(name, _lon_speed(name, value)[0]) for name, value in positions.items()]
    out: Dict[str, float] = {}
    for i in range(len(points)):
        for j in range(i + 1, len(points)):
            (n1, lon1), (n2, lon2) = points[i], points[j]
            out[f"{n1}/{n2}"] = midpoint(lon1, lon2)
    return out


__all__ = [
    "ASPECTS_BY_NAME",
    "CATALOG",
    "MAJOR",
    "MINOR",
    "Aspect",
    "AspectDef",
    "AspectPolicy",
    "aspect_strength",
    "aspects_for",
    "body_strength",
    "canonical_aspect",
    "find_aspects",
    "midpoint",
    "midpoints",
    "separation",
    "significant_aspects",
]
