"""Birth chart assembly.

``calculate_chart`` runs the whole pipeline for one request: civil time to
Julian Day, body positions, houses, aspects, patterns and the element /
modality tallies.  Any stage error propagates; a partial chart is never
returned.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from .aspects import Aspect, AspectPolicy, aspects_for, find_aspects, midpoints, significant_aspects
from .constants import fmt_deg, sign_name_from_lon
from .derivations import balances, dominant, house_occupancy, notes
from .dignities import dignities
from .ephem import (
    BODIES_BY_NAME,
    DEFAULT_BODIES,
    ENGINE_VERSION,
    ESSENTIAL_BODIES,
    BodyPosition,
    PositionProvider,
    collect_positions,
)
from .errors import ValidationError
from .houses import HouseResult, house_of, houses
from .patterns import Pattern, PatternPoint, detect_patterns, significant_patterns
from .timescale import CivilDateTime, GeoPosition, ResolvedInstant, calculate_julian_day, resolve_timezone

logger = logging.getLogger(__name__)

TALLY_BODIES: Tuple[str, ...] = ESSENTIAL_BODIES
# a body this close before a cusp is read in the following house
CUSP_ORB = 5.0


@dataclass(frozen=True)
class ChartOptions:
    house_system: str = "placidus"
    include_minor_aspects: bool = False
    calculate_midpoints: bool = False
    include_angles_in_patterns: bool = True
    cusp_orb: float = CUSP_ORB
    tally_bodies: Tuple[str, ...] = TALLY_BODIES
    bodies: Tuple[str, ...] = DEFAULT_BODIES
    orbs: Mapping[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class ChartRequest:
    dt: CivilDateTime
    position: GeoPosition
    options: ChartOptions = field(default_factory=ChartOptions)


@dataclass(frozen=True)
class BirthChartResult:
    dt: CivilDateTime
    position: GeoPosition
    instant: ResolvedInstant
    positions: Mapping[str, BodyPosition]
    houses: HouseResult
    house_of_body: Mapping[str, int]
    aspects: Tuple[Aspect, ...]
    patterns: Tuple[Pattern, ...]
    elements: Mapping[str, int]
    modalities: Mapping[str, int]
    dignities: Tuple[Mapping[str, str], ...]
    midpoints: Optional[Mapping[str, float]]
    warnings: Tuple[str, ...]
    meta: Mapping[str, str]

    @property
    def julian_day(self) -> float:
        return self.instant.julian_day

    def house_occupancy(self) -> Dict[int, List[str]]:
        return house_occupancy(self.house_of_body)

    def aspects_for(self, body: str) -> List[Aspect]:
        return aspects_for(body, self.aspects)

    def top_aspects(self, n: int = 5) -> List[Aspect]:
        return significant_aspects(self.aspects, n)

    def top_patterns(self, n: int = 3) -> List[Pattern]:
        return significant_patterns(self.patterns, n)

    def stelliums(self) -> List[Pattern]:
        return [p for p in self.patterns if p.name == "Stellium"]

    def summary(self, top: int = 3) -> dict:
        """Small projection for text generation: key signs, top aspects and patterns."""

        def placement(name: str) -> Optional[dict]:
            pos = self.positions.get(name)
            if pos is None:
                return None
            return {"sign": pos.sign, "degree": pos.formatted, "house": self.house_of_body[name]}

        asc = self.houses.ascendant
        return {
            "sun": placement("Sun"),
            "moon": placement("Moon"),
            "ascendant": {"sign": sign_name_from_lon(asc), "degree": fmt_deg(asc)},
            "dominant_element": dominant(self.elements),
            "dominant_modality": dominant(self.modalities),
            "top_aspects": [a.to_dict() for a in self.top_aspects(top)],
            "stelliums": [p.to_dict() for p in sorted(self.stelliums(), key=lambda p: -p.arity)[:top]],
            "top_patterns": [p.to_dict() for p in self.top_patterns(top)],
            "notes": notes(
                self.elements,
                self.modalities,
                [n for n, p in self.positions.items() if p.retrograde],
                self.house_of_body,
            ),
        }

    def to_dict(self) -> dict:
        bodies = []
        for name, pos in self.positions.items():
            row = pos.to_dict()
            row["kind"] = pos.kind
            row["house"] = self.house_of_body[name]
            bodies.append(row)
        out = {
            "meta": dict(self.meta),
            "instant": {
                "input": self.dt.to_dict(),
                "position": self.position.to_dict(),
                **self.instant.to_dict(),
            },
            "bodies": bodies,
            "angles": self.houses.angles(),
            "houses": [c.to_dict() for c in self.houses.cusps],
            "aspects": [a.to_dict() for a in self.aspects],
            "patterns": [p.to_dict() for p in self.patterns],
            "elements": dict(self.elements),
            "modalities": dict(self.modalities),
            "dignities": [dict(d) for d in self.dignities],
            "warnings": list(self.warnings),
        }
        if self.midpoints is not None:
            out["midpoints"] = {k: round(v, 6) for k, v in self.midpoints.items()}
        return out


def _validate_options(opts: ChartOptions) -> None:
    unknown = [b for b in (*opts.bodies, *opts.tally_bodies) if b not in BODIES_BY_NAME]
    if unknown:
        raise ValidationError("Unknown bodies: " + ", ".join(unknown), {"bodies": unknown})
    if not 0.0 <= opts.cusp_orb < 30.0:
        raise ValidationError("cusp_orb must be between 0 and 30 degrees", {"cusp_orb": opts.cusp_orb})


def pattern_points(
    positions: Mapping[str, BodyPosition],
    house_result: Optional[HouseResult] = None,
) -> List[PatternPoint]:
    points = [PatternPoint(name, pos.longitude, pos.kind) for name, pos in positions.items()]
    if house_result is not None:
        points.append(PatternPoint("Ascendant", house_result.ascendant, "angle"))
        points.append(PatternPoint("Midheaven", house_result.midheaven, "angle"))
    return points


def calculate_chart(
    request: ChartRequest,
    provider: PositionProvider,
    tz_resolver: Callable[[float, float], Optional[str]] = resolve_timezone,
) -> BirthChartResult:
    opts = request.options
    _validate_options(opts)
    policy = AspectPolicy(include_minor=opts.include_minor_aspects, orbs=opts.orbs)

    instant = calculate_julian_day(request.dt, request.position, tz_resolver)
    jd = instant.julian_day
    positions, body_warnings = collect_positions(provider, jd, opts.bodies)

    house_result = houses(
        jd,
        request.position.latitude,
        request.position.longitude,
        opts.house_system,
        engine=provider.house_engine,
    )
    cusps = house_result.longitudes()
    house_of_body = {name: house_of(pos.longitude, cusps, opts.cusp_orb) for name, pos in positions.items()}

    aspects = find_aspects(positions, policy)
    points = pattern_points(positions, house_result if opts.include_angles_in_patterns else None)
    patterns = detect_patterns(points)

    elements, modalities = balances(positions[b].sign for b in opts.tally_bodies if b in positions)
    digs = dignities({name: pos.sign for name, pos in positions.items()})
    mids = midpoints(positions) if opts.calculate_midpoints else None

    meta = {
        "ephemeris": provider.name,
        "house_engine": house_result.engine,
        "house_system": house_result.system,
    }
    if provider.house_engine == "swisseph":
        meta["engine_version"] = ENGINE_VERSION

    logger.info(
        "chart computed jd=%.6f bodies=%d aspects=%d patterns=%d",
        jd, len(positions), len(aspects), len(patterns),
    )
    return BirthChartResult(
        dt=request.dt,
        position=request.position,
        instant=instant,
        positions=MappingProxyType(dict(positions)),
        houses=house_result,
        house_of_body=MappingProxyType(house_of_body),
        aspects=tuple(aspects),
        patterns=tuple(patterns),
        elements=MappingProxyType(elements),
        modalities=MappingProxyType(modalities),
        dignities=tuple(MappingProxyType(d) for d in digs),
        midpoints=MappingProxyType(mids) if mids is not None else None,
        warnings=tuple(instant.warnings) + tuple(body_warnings),
        meta=MappingProxyType(meta),
    )


__all__ = [
    "BirthChartResult",
    "ChartOptions",
    "ChartRequest",
    "TALLY_BODIES",
    "calculate_chart",
    "pattern_points",
]
