"""Multi-body chart patterns.

Aspect configurations are declared as data in ``PATTERNS``: each entry names
its role slots ``a``..``f`` and the links that must hold between them, where a
link may accept several aspects (``"trine|sextile"``).  One matcher walks every
combination of points for the entry's arity and tries to seat the members in
the slots by backtracking, checking each link as soon as both of its slots are
filled.  The first seating found is reported, so a combination yields at most
one instance of a pattern.

Stelliums (tight clusters) and the distribution shapes (Bundle, Bowl, Bucket,
...) are not pairwise predicates and are computed separately.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from itertools import combinations
from typing import Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple

from .constants import ELEMENT, norm360, sign_name_from_lon
from .errors import ValidationError

logger = logging.getLogger(__name__)

SLOTS = "abcdef"

PATTERN_ORBS: Dict[str, float] = {
    "conjunction": 10.0,
    "opposition": 8.0,
    "square": 8.0,
    "trine": 8.0,
    "sextile": 6.0,
    "quincunx": 3.0,
    "sesquiquadrate": 3.0,
    "quintile": 2.0,
    "biquintile": 2.0,
}
PATTERN_ANGLES: Dict[str, float] = {
    "conjunction": 0.0,
    "sextile": 60.0,
    "quintile": 72.0,
    "square": 90.0,
    "trine": 120.0,
    "sesquiquadrate": 135.0,
    "biquintile": 144.0,
    "quincunx": 150.0,
    "opposition": 180.0,
}
STELLIUM_ORB = 8.0
STELLIUM_MIN = 3

Link = Tuple[int, int, FrozenSet[str]]


@dataclass(frozen=True)
class PatternPoint:
    name: str
    longitude: float
    kind: str = "planet"  # "planet" | "point" | "angle"

    @property
    def sign(self) -> str:
        return sign_name_from_lon(self.longitude)


@dataclass(frozen=True)
class Pattern:
    name: str
    bodies: Tuple[str, ...]
    longitudes: Tuple[float, ...]
    description: str
    kind: str  # "aspect" | "cluster" | "shape"

    @property
    def arity(self) -> int:
        return len(self.bodies)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "kind": self.kind,
            "description": self.description,
            "bodies": list(self.bodies),
            "planets": [
                {"name": n, "lon": round(lon, 6), "sign": sign_name_from_lon(lon)}
                for n, lon in zip(self.bodies, self.longitudes)
            ],
        }


@dataclass(frozen=True)
class PatternDef:
    name: str
    description: str
    arity: int
    links: Tuple[Link, ...]


def _def(name: str, description: str, *links: Tuple[str, str, str]) -> PatternDef:
    parsed = tuple(
        (SLOTS.index(a), SLOTS.index(b), frozenset(aspects.split("|")))
        for a, b, aspects in links
    )
    arity = 1 + max(max(a, b) for a, b, _ in parsed)
    return PatternDef(name, description, arity, parsed)


PATTERNS: Tuple[PatternDef, ...] = (
    _def("Grand Cross", "Four planets in two oppositions, each square to its neighbours.",
         ("a", "c", "opposition"), ("b", "d", "opposition"),
         ("a", "b", "square"), ("b", "c", "square"), ("c", "d", "square"), ("d", "a", "square")),
    _def("T-Square", "Two planets in opposition, both square to a third planet.",
         ("a", "b", "opposition"), ("a", "c", "square"), ("b", "c", "square")),
    _def("Grand Trine", "A harmonious triangle of flowing energy between three planets, each approximately 120° apart.",
         ("a", "b", "trine"), ("b", "c", "trine"), ("c", "a", "trine")),
    _def("Cradle", "A harmonious chain of sextiles and trines.",
         ("a", "b", "sextile"), ("b", "c", "trine"), ("c", "d", "sextile"), ("d", "a", "trine")),
    _def("Kite", "A Grand Trine with an additional opposition forming a kite shape.",
         ("a", "b", "trine"), ("b", "c", "trine"), ("c", "a", "trine"),
         ("d", "a", "opposition"), ("d", "b", "sextile"), ("d", "c", "sextile")),
    _def("Mystic Rectangle", "A balanced rectangle formed by two oppositions joined by sextiles and trines.",
         ("a", "c", "opposition"), ("b", "d", "opposition"),
         ("a", "b", "sextile"), ("b", "c", "trine"), ("c", "d", "sextile"), ("d", "a", "trine")),
    _def("Rectangle", "Two oppositions connected by sextiles or trines.",
         ("a", "c", "opposition"), ("b", "d", "opposition"), ("a", "b", "sextile|trine")),
    _def("Yod", "Two planets in sextile, both quincunx to a third planet.",
         ("a", "b", "sextile"), ("a", "c", "quincunx"), ("b", "c", "quincunx")),
    _def("Hammer of Thor", "Two planets in square, both sesquiquadrate to a third planet.",
         ("a", "b", "square"), ("a", "c", "sesquiquadrate"), ("b", "c", "sesquiquadrate")),
    _def("Star of David", "Two interwoven Grand Trines linked by sextiles.",
         ("a", "b", "trine"), ("b", "c", "trine"), ("c", "a", "trine"),
         ("d", "e", "trine"), ("e", "f", "trine"), ("f", "d", "trine"),
         ("a", "d", "sextile"), ("b", "e", "sextile"), ("c", "f", "sextile")),
    _def("Double T-Square", "Two overlapping T-Squares creating intense energy and tension.",
         ("a", "b", "opposition"), ("a", "c", "square"), ("b", "c", "square"),
         ("c", "d", "opposition"), ("d", "a", "square")),
    _def("Grand Sextile", "Six planets in a ring of sextiles with oppositions across the circle.",
         ("a", "b", "sextile"), ("b", "c", "sextile"), ("c", "d", "sextile"),
         ("d", "e", "sextile"), ("e", "f", "sextile"), ("f", "a", "sextile"),
         ("a", "d", "opposition"), ("b", "e", "opposition"), ("c", "f", "opposition")),
    _def("Wedge", "A sextile pair both linked to a third planet by trine or opposition.",
         ("a", "b", "sextile"), ("a", "c", "trine|opposition"), ("b", "c", "trine|opposition")),
    _def("Castle", "A Grand Trine reinforced by two planets opposing its vertices.",
         ("a", "b", "trine"), ("b", "c", "trine"), ("c", "a", "trine"),
         ("d", "a", "opposition"), ("d", "b", "sextile"), ("d", "c", "sextile"),
         ("e", "b", "opposition"), ("e", "a", "sextile"), ("e", "c", "sextile")),
    _def("Trapezoid", "A four-planet configuration forming a trapezoid with mixed aspects.",
         ("a", "b", "trine|sextile"), ("b", "c", "square|opposition"),
         ("c", "d", "trine|sextile"), ("d", "a", "square|opposition")),
    _def("Pentagram", "A five-pointed star of biquintile aspects.",
         ("a", "b", "biquintile"), ("b", "c", "biquintile"), ("c", "d", "biquintile"),
         ("d", "e", "biquintile"), ("e", "a", "biquintile")),
    _def("Grand Quintile", "A rare pentagon formed by quintile aspects.",
         ("a", "b", "quintile"), ("b", "c", "quintile"), ("c", "d", "quintile"),
         ("d", "e", "quintile"), ("e", "a", "quintile")),
    _def("Rosetta", "Two conjunct pairs in square to each other.",
         ("a", "b", "conjunction"), ("c", "d", "conjunction"),
         ("a", "c", "square"), ("b", "d", "square")),
    _def("Boomerang Yod", "A Yod with an additional opposition creating a boomerang effect.",
         ("a", "b", "sextile"), ("a", "c", "quincunx"), ("b", "c", "quincunx"), ("c", "d", "opposition")),
    _def("Arrowhead", "A triangular pattern forming an arrow-like shape with harmonious and tense aspects.",
         ("a", "b", "sextile"), ("a", "c", "trine|opposition"), ("b", "c", "trine|opposition")),
    _def("Star", "A pentagon of quintiles with biquintiles across it.",
         ("a", "b", "quintile"), ("b", "c", "quintile"), ("c", "d", "quintile"),
         ("d", "e", "quintile"), ("e", "a", "quintile"),
         ("a", "c", "biquintile"), ("b", "d", "biquintile"), ("c", "e", "biquintile"),
         ("d", "a", "biquintile"), ("e", "b", "biquintile")),
    _def("Crossbow", "A dynamic pattern formed by a mix of oppositions and squares.",
         ("a", "b", "opposition"), ("b", "c", "square"), ("c", "d", "square"), ("d", "a", "opposition")),
    _def("Butterfly", "A harmonious and balanced pattern resembling a butterfly.",
         ("a", "b", "trine"), ("c", "d", "trine"), ("b", "c", "sextile"), ("d", "a", "sextile")),
    _def("Diamond", "An opposition whose ends are joined by sextiles and trines to two more planets.",
         ("a", "c", "opposition"), ("a", "b", "sextile"), ("a", "d", "sextile"),
         ("b", "c", "trine"), ("d", "c", "trine")),
    _def("Hexagon", "Six planets forming a harmonious hexagonal shape with sextiles.",
         ("a", "b", "sextile"), ("b", "c", "sextile"), ("c", "d", "sextile"),
         ("d", "e", "sextile"), ("e", "f", "sextile"), ("f", "a", "sextile")),
    _def("Shield", "A configuration resembling a protective shield with harmonious and tense aspects.",
         ("a", "b", "trine"), ("b", "c", "sextile"), ("c", "d", "sextile"),
         ("d", "a", "trine"), ("a", "c", "opposition")),
    _def("Arrow", "A triangular configuration forming a pointed arrow-like focus.",
         ("a", "b", "trine"), ("b", "c", "sextile"), ("a", "c", "opposition")),
    _def("Hourglass", "A symmetrical configuration resembling an hourglass with oppositions and sextiles.",
         ("a", "c", "opposition"), ("b", "d", "opposition"), ("a", "b", "sextile"), ("c", "d", "sextile")),
)
PATTERNS_BY_NAME: Dict[str, PatternDef] = {p.name: p for p in PATTERNS}

PRIORITY: Tuple[str, ...] = (
    "Grand Cross", "T-Square", "Grand Trine", "Bucket", "Bundle", "Locomotive",
    "Bowl", "Splash", "Seesaw", "Cradle", "Kite", "Mystic Rectangle", "Rectangle",
    "Yod", "Stellium", "Hammer of Thor", "Star of David", "Double T-Square",
    "Grand Sextile", "Wedge", "Castle", "Trapezoid", "Pentagram", "Grand Quintile",
    "Rosetta", "Boomerang Yod", "Arrowhead", "Star", "Crossbow", "Butterfly",
    "Basket", "Diamond", "Hexagon", "Shield", "Arrow", "Hourglass",
)
_RANK = {name: i for i, name in enumerate(PRIORITY)}

SHAPE_DESCRIPTIONS = {
    "Bundle": "All planets grouped tightly within 120 degrees.",
    "Bowl": "All planets grouped within 180 degrees of the chart.",
    "Bucket": "A concentration of planets with one acting as a handle.",
    "Basket": "A concentration of planets in one hemisphere with a handle planet opposite the rim.",
    "Locomotive": "Planets spread over two thirds of the chart, leaving an empty space of at least 120 degrees.",
    "Seesaw": "Two groups of planets in opposition forming a balance.",
    "Splash": "Planets evenly distributed across the chart.",
}
STELLIUM_DESCRIPTION = "Three or more planets in close conjunction."


@dataclass(frozen=True)
class ShapeThresholds:
    """Calibrated defaults for the distribution shapes (degrees unless noted)."""

    min_planets: int = 7
    bundle_span: float = 120.0
    bowl_span: float = 180.0
    bucket_handle_gap: float = 60.0
    basket_handle_distance: float = 90.0
    locomotive_gap: float = 120.0
    seesaw_gap: float = 60.0
    splash_sectors: int = 10


def _separation(a: float, b: float) -> float:
    d = abs(a - b) % 360.0
    return min(d, 360.0 - d)


def _relations(points: Sequence[PatternPoint], orbs: Mapping[str, float]) -> List[List[FrozenSet[str]]]:
    """Which pattern aspects hold for every pair of points."""

    n = len(points)
    rel: List[List[FrozenSet[str]]] = [[frozenset()] * n for _ in range(n)]
    for i in range(n):
        for j in range(i + 1, n):
            sep = _separation(points[i].longitude, points[j].longitude)
            hits = frozenset(
                name for name, angle in PATTERN_ANGLES.items()
                if abs(sep - angle) <= orbs.get(name, 0.0)
            )
            rel[i][j] = rel[j][i] = hits
    return rel


def _seat(defn: PatternDef, combo: Tuple[int, ...], rel) -> Optional[List[int]]:
    """Assign the combination's points to role slots; ``None`` when impossible."""

    # links grouped by the later of their two slots
    checks: List[List[Link]] = [[] for _ in range(defn.arity)]
    for link in defn.links:
        checks[max(link[0], link[1])].append(link)

    seats: List[int] = [-1] * defn.arity
    used = [False] * len(combo)

    def place(slot: int) -> bool:
        if slot == defn.arity:
            return True
        for k, idx in enumerate(combo):
            if used[k]:
                continue
            seats[slot] = idx
            if all(rel[seats[a]][seats[b]] & aspects for a, b, aspects in checks[slot]):
                used[k] = True
                if place(slot + 1):
                    return True
                used[k] = False
        seats[slot] = -1
        return False

    return seats if place(0) else None


def match_patterns(points: Sequence[PatternPoint], orbs: Mapping[str, float] | None = None) -> List[Pattern]:
    """All aspect-defined pattern instances, in table order."""

    orbs = {**PATTERN_ORBS, **(orbs or {})}
    rel = _relations(points, orbs)
    found: List[Pattern] = []
    for defn in PATTERNS:
        if defn.arity > len(points):
            continue
        for combo in combinations(range(len(points)), defn.arity):
            seats = _seat(defn, combo, rel)
            if seats is None:
                continue
            found.append(Pattern(
                name=defn.name,
                bodies=tuple(points[i].name for i in seats),
                longitudes=tuple(points[i].longitude for i in seats),
                description=defn.description,
                kind="aspect",
            ))
    return found


def stelliums(points: Sequence[PatternPoint], orb: float = STELLIUM_ORB) -> List[Pattern]:
    """Clusters of at least three bodies mutually within ``orb``.

    Largest groups come first; a group contained in one already found is not
    reported again.  Groups that merely overlap are left to ``dedupe``.
    """

    pool = [p for p in points if p.kind != "angle"]
    n = len(pool)
    near = [[_separation(a.longitude, b.longitude) <= orb for b in pool] for a in pool]
    # a member needs at least two close neighbours
    candidates = [i for i in range(n) if sum(near[i]) - 1 >= STELLIUM_MIN - 1]

    found: List[FrozenSet[int]] = []
    out: List[Pattern] = []
    for k in range(len(candidates), STELLIUM_MIN - 1, -1):
        for combo in combinations(candidates, k):
            members = frozenset(combo)
            if any(members <= prev for prev in found):
                continue
            if not all(near[i][j] for i, j in combinations(combo, 2)):
                continue
            found.append(members)
            out.append(Pattern(
                name="Stellium",
                bodies=tuple(pool[i].name for i in combo),
                longitudes=tuple(pool[i].longitude for i in combo),
                description=STELLIUM_DESCRIPTION,
                kind="cluster",
            ))
    return out


def _occupied_arc(points: Sequence[PatternPoint]) -> Tuple[List[PatternPoint], float, float]:
    """Points ordered from the leading edge of their occupied arc.

    Returns (ordered points, span of the occupied arc, largest empty gap).
    """

    ordered = sorted(points, key=lambda p: (p.longitude, p.name))
    n = len(ordered)
    gaps = [norm360(ordered[(i + 1) % n].longitude - ordered[i].longitude) for i in range(n)]
    if n == 1:
        gaps = [360.0]
    widest = max(range(n), key=lambda i: (gaps[i], -i))
    start = (widest + 1) % n
    arc = ordered[start:] + ordered[:start]
    return arc, 360.0 - gaps[widest], gaps[widest]


def _shape(name: str, members: Sequence[PatternPoint]) -> Pattern:
    return Pattern(
        name=name,
        bodies=tuple(p.name for p in members),
        longitudes=tuple(p.longitude for p in members),
        description=SHAPE_DESCRIPTIONS[name],
        kind="shape",
    )


def _handle(planets: Sequence[PatternPoint], min_distance: float, strict: bool) -> Optional[Tuple[PatternPoint, List[PatternPoint]]]:
    for handle in sorted(planets, key=lambda p: (p.longitude, p.name)):
        rest = [p for p in planets if p is not handle]
        arc, span, _ = _occupied_arc(rest)
        if span > 180.0:
            continue
        lead, trail = arc[0].longitude, arc[-1].longitude
        # the handle must sit in the empty half, not inside the bowl
        if norm360(handle.longitude - lead) <= span:
            continue
        d1, d2 = _separation(handle.longitude, lead), _separation(handle.longitude, trail)
        ok = (d1 > min_distance and d2 > min_distance) if strict else (d1 >= min_distance and d2 >= min_distance)
        if ok:
            return handle, arc
    return None


def distribution_shapes(points: Sequence[PatternPoint], thresholds: ShapeThresholds = ShapeThresholds()) -> List[Pattern]:
    """Whole-chart shapes over ``planet`` points only."""

    planets = [p for p in points if p.kind == "planet"]
    if len(planets) < thresholds.min_planets:
        return []

    out: List[Pattern] = []
    arc, span, widest = _occupied_arc(planets)

    if span <= thresholds.bundle_span:
        out.append(_shape("Bundle", arc))
    if span <= thresholds.bowl_span:
        out.append(_shape("Bowl", arc))
    elif widest >= thresholds.locomotive_gap:
        out.append(_shape("Locomotive", arc))

    if span > thresholds.bowl_span:
        bucket = _handle(planets, thresholds.bucket_handle_gap, strict=False)
        if bucket:
            out.append(_shape("Bucket", [bucket[0], *bucket[1]]))
        basket = _handle(planets, thresholds.basket_handle_distance, strict=True)
        if basket:
            out.append(_shape("Basket", [basket[0], *basket[1]]))

    ordered = sorted(planets, key=lambda p: (p.longitude, p.name))
    n = len(ordered)
    gaps = sorted(
        ((norm360(ordered[(i + 1) % n].longitude - ordered[i].longitude), i) for i in range(n)),
        key=lambda g: (-g[0], g[1]),
    )
    (g1, i1), (g2, i2) = gaps[0], gaps[1]
    if g1 >= thresholds.seesaw_gap and g2 >= thresholds.seesaw_gap:
        lo, hi = sorted((i1, i2))
        first = ordered[lo + 1:hi + 1]
        second = ordered[hi + 1:] + ordered[:lo + 1]
        if len(first) >= 2 and len(second) >= 2:
            out.append(_shape("Seesaw", first + second))

    sectors = {int(norm360(p.longitude) // 30) for p in planets}
    if len(sectors) >= thresholds.splash_sectors:
        out.append(_shape("Splash", ordered))

    return out


def dedupe(patterns: Sequence[Pattern]) -> List[Pattern]:
    """Drop instances sharing all but one body with an earlier one of the same name."""

    kept: List[Pattern] = []
    for pat in patterns:
        bodies = set(pat.bodies)
        duplicate = any(
            prev.name == pat.name
            and len(bodies & set(prev.bodies)) >= min(len(bodies), len(prev.bodies)) - 1
            for prev in kept
        )
        if not duplicate:
            kept.append(pat)
    return kept


def _validate(points: Sequence[PatternPoint]) -> None:
    seen = set()
    for p in points:
        lon = p.longitude
        if isinstance(lon, bool) or not isinstance(lon, (int, float)) or not math.isfinite(lon):
            raise ValidationError(f"Longitude of {p.name} must be a finite number", {"body": p.name, "longitude": lon})
        if p.name in seen:
            raise ValidationError(f"Duplicate body {p.name!r}", {"body": p.name})
        seen.add(p.name)


def detect_patterns(
    points: Sequence[PatternPoint],
    thresholds: ShapeThresholds = ShapeThresholds(),
    orbs: Mapping[str, float] | None = None,
) -> List[Pattern]:
    """Every pattern in the chart, ordered by priority then arity (largest first)."""

    _validate(points)
    points = [PatternPoint(p.name, norm360(p.longitude), p.kind) for p in points]
    found = match_patterns(points, orbs) + stelliums(points) + distribution_shapes(points, thresholds)
    unique = dedupe(found)
    unique.sort(key=lambda p: (_RANK[p.name], -p.arity))
    logger.debug("pattern search: %d points, %d found, %d after dedupe", len(points), len(found), len(unique))
    return unique


def grand_trine_element(pattern: Pattern) -> Optional[str]:
    """The shared element of a Grand Trine's signs, or ``None`` for a dissociate one."""

    if pattern.name != "Grand Trine":
        return None
    elements = {ELEMENT[sign_name_from_lon(lon)] for lon in pattern.longitudes}
    return elements.pop() if len(elements) == 1 else None


def significant_patterns(patterns: Sequence[Pattern], limit: int = 3) -> List[Pattern]:
    ranked = sorted(patterns, key=lambda p: (-p.arity, _RANK[p.name]))
    return ranked[:limit]


__all__ = [
    "PATTERNS",
    "PATTERN_ORBS",
    "PRIORITY",
    "Pattern",
    "PatternDef",
    "PatternPoint",
    "ShapeThresholds",
    "dedupe",
    "detect_patterns",
    "distribution_shapes",
    "grand_trine_element",
    "match_patterns",
    "significant_patterns",
    "stelliums",
]
