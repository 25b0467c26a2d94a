"""Closed-form geocentric positions from mean orbital elements.

Used when no Swiss Ephemeris is wanted.  Planets come from Keplerian elements
with linear rates (E. M. Standish, "Keplerian Elements for Approximate
Positions of the Major Planets", valid 1800-2050 to arc-minutes for the inner
planets and degrading for the outer ones across centuries).  The Moon uses the
principal periodic terms of Meeus, Astronomical Algorithms ch. 47.

Everything here is pure arithmetic so it can be unit-tested without the Swiss
Ephemeris bindings.
"""

from __future__ import annotations

import math
from typing import Dict, Tuple

from .constants import norm360
from .ephem import BodyPosition, BodyUnavailable, make_position
from .timescale import julian_centuries

AU_KM = 149_597_870.7
SPEED_STEP_DAYS = 0.5

# a [AU], e, I, L, long. perihelion, long. ascending node [deg]; each with a rate per century
ELEMENTS: Dict[str, Tuple[Tuple[float, float], ...]] = {
    "Mercury": ((0.38709927, 0.00000037), (0.20563593, 0.00001906), (7.00497902, -0.00594749),
                (252.25032350, 149472.67411175), (77.45779628, 0.16047689), (48.33076593, -0.12534081)),
    "Venus": ((0.72333566, 0.00000390), (0.00677672, -0.00004107), (3.39467605, -0.00078890),
              (181.97909950, 58517.81538729), (131.60246718, 0.00268329), (76.67984255, -0.27769418)),
    "Earth": ((1.00000261, 0.00000562), (0.01671123, -0.00004392), (-0.00001531, -0.01294668),
              (100.46457166, 35999.37244981), (102.93768193, 0.32327364), (0.0, 0.0)),
    "Mars": ((1.52371034, 0.00001847), (0.09339410, 0.00007882), (1.84969142, -0.00813131),
             (-4.55343205, 19140.30268499), (-23.94362959, 0.44441088), (49.55953891, -0.29257343)),
    "Jupiter": ((5.20288700, -0.00011607), (0.04838624, -0.00013253), (1.30439695, -0.00183714),
                (34.39644051, 3034.74612775), (14.72847983, 0.21252668), (100.47390909, 0.20469106)),
    "Saturn": ((9.53667594, -0.00125060), (0.05386179, -0.00050991), (2.48599187, 0.00193609),
               (49.95424423, 1222.49362201), (92.59887831, -0.41897216), (113.66242448, -0.28867794)),
    "Uranus": ((19.18916464, -0.00196176), (0.04725744, -0.00004397), (0.77263783, -0.00242939),
               (313.23810451, 428.48202785), (170.95427630, 0.40805281), (74.01692503, 0.04240589)),
    "Neptune": ((30.06992276, 0.00026291), (0.00859048, 0.00005105), (1.77004347, 0.00035372),
                (-55.12002969, 218.45945325), (44.96476227, -0.32241464), (131.78422574, -0.00508664)),
    "Pluto": ((39.48211675, -0.00031596), (0.24882730, 0.00005170), (17.14001206, 0.00004818),
              (238.92903833, 145.20780515), (224.06891629, -0.04062942), (110.30393684, -0.01183482)),
}

# (coefficient, D, M, M', F) for longitude, Meeus table 47.A (largest terms)
MOON_LON_TERMS = (
    (6.288774, 0, 0, 1, 0), (1.274027, 2, 0, -1, 0), (0.658314, 2, 0, 0, 0),
    (0.213618, 0, 0, 2, 0), (-0.185116, 0, 1, 0, 0), (-0.114332, 0, 0, 0, 2),
    (0.058793, 2, 0, -2, 0), (0.057066, 2, -1, -1, 0), (0.053322, 2, 0, 1, 0),
    (0.045758, 2, -1, 0, 0), (-0.040923, 0, 1, -1, 0), (-0.034720, 1, 0, 0, 0),
    (-0.030383, 0, 1, 1, 0), (0.015327, 2, 0, 0, -2), (-0.012528, 0, 0, 1, 2),
    (0.010980, 0, 0, 1, -2), (0.010675, 4, 0, -1, 0), (0.010034, 0, 0, 3, 0),
)
MOON_LAT_TERMS = (
    (5.128122, 0, 0, 0, 1), (0.280602, 0, 0, 1, 1), (0.277693, 0, 0, 1, -1),
    (0.173237, 2, 0, 0, -1), (0.055413, 2, 0, -1, 1), (0.046271, 2, 0, -1, -1),
    (0.032573, 2, 0, 0, 1), (0.017198, 0, 0, 2, 1),
)
MOON_DIST_TERMS = (
    (-20905.355, 0, 0, 1, 0), (-3699.111, 2, 0, -1, 0), (-2955.968, 2, 0, 0, 0),
    (-569.925, 0, 0, 2, 0), (48.888, 0, 1, 0, 0), (246.158, 2, 0, -2, 0),
)


def _precession(t: float) -> float:
    """Accumulated general precession in longitude since J2000 [deg]."""

    return 1.396971 * t + 0.0003086 * t * t


def _solve_kepler(m: float, e: float) -> float:
    ecc = m + e * math.sin(m)
    for _ in range(30):
        delta = (ecc - e * math.sin(ecc) - m) / (1.0 - e * math.cos(ecc))
        ecc -= delta
        if abs(delta) < 1e-12:
            break
    return ecc


def heliocentric(name: str, t: float) -> Tuple[float, float, float]:
    """Heliocentric ecliptic J2000 rectangular coordinates [AU]."""

    (a, a_dot), (e, e_dot), (inc, inc_dot), (mean_lon, l_dot), (peri, p_dot), (node, n_dot) = ELEMENTS[name]
    a += a_dot * t
    e += e_dot * t
    inc = math.radians(inc + inc_dot * t)
    mean_lon += l_dot * t
    peri += p_dot * t
    node += n_dot * t

    m = math.radians((mean_lon - peri + 180.0) % 360.0 - 180.0)
    arg = math.radians(peri - node)
    node = math.radians(node)

    ecc = _solve_kepler(m, e)
    xp = a * (math.cos(ecc) - e)
    yp = a * math.sqrt(1.0 - e * e) * math.sin(ecc)

    cw, sw = math.cos(arg), math.sin(arg)
    cn, sn = math.cos(node), math.sin(node)
    ci, si = math.cos(inc), math.sin(inc)
    x = (cw * cn - sw * sn * ci) * xp + (-sw * cn - cw * sn * ci) * yp
    y = (cw * sn + sw * cn * ci) * xp + (-sw * sn + cw * cn * ci) * yp
    z = (sw * si) * xp + (cw * si) * yp
    return x, y, z


def _spherical(x: float, y: float, z: float) -> Tuple[float, float, float]:
    lon = math.degrees(math.atan2(y, x))
    lat = math.degrees(math.atan2(z, math.hypot(x, y)))
    return lon, lat, math.sqrt(x * x + y * y + z * z)


def planet_geocentric(name: str, t: float) -> Tuple[float, float, float]:
    ex, ey, ez = heliocentric("Earth", t)
    if name == "Sun":
        lon, lat, dist = _spherical(-ex, -ey, -ez)
    else:
        px, py, pz = heliocentric(name, t)
        lon, lat, dist = _spherical(px - ex, py - ey, pz - ez)
    return norm360(lon + _precession(t)), lat, dist


def _moon_arguments(t: float) -> Tuple[float, float, float, float, float]:
    lp = 218.3164477 + 481267.88123421 * t - 0.0015786 * t * t
    d = 297.8501921 + 445267.1114034 * t - 0.0018819 * t * t
    m = 357.5291092 + 35999.0502909 * t - 0.0001536 * t * t
    mp = 134.9633964 + 477198.8675055 * t + 0.0087414 * t * t
    f = 93.2720950 + 483202.0175233 * t - 0.0036539 * t * t
    return lp, d, m, mp, f


def _series(terms, d, m, mp, f, fn) -> float:
    total = 0.0
    for coeff, cd, cm, cmp_, cf in terms:
        total += coeff * fn(math.radians(cd * d + cm * m + cmp_ * mp + cf * f))
    return total


def moon_geocentric(t: float) -> Tuple[float, float, float]:
    lp, d, m, mp, f = _moon_arguments(t)
    lon = lp + _series(MOON_LON_TERMS, d, m, mp, f, math.sin)
    lat = _series(MOON_LAT_TERMS, d, m, mp, f, math.sin)
    dist_km = 385000.56 + _series(MOON_DIST_TERMS, d, m, mp, f, math.cos)
    return norm360(lon), lat, dist_km / AU_KM


def mean_node(t: float) -> Tuple[float, float, float]:
    lon = 125.0445479 - 1934.1362891 * t + 0.0020754 * t * t + t ** 3 / 467441.0
    return norm360(lon), 0.0, 384400.0 / AU_KM


def ecliptic(name: str, jd: float) -> Tuple[float, float, float]:
    t = julian_centuries(jd)
    if name == "Moon":
        return moon_geocentric(t)
    if name == "North Node":
        return mean_node(t)
    if name == "Sun" or name in ELEMENTS:
        return planet_geocentric(name, t)
    raise BodyUnavailable(f"{name} is not modelled by the approximate ephemeris")


class ApproximateProvider:
    """Mean-element positions with speeds from a central difference."""

    name = "approximate"
    house_engine = "analytic"

    def position(self, jd_utc: float, body: str) -> BodyPosition:
        if body == "Earth":
            raise BodyUnavailable("Earth is the observer")
        lon, lat, dist = ecliptic(body, jd_utc)
        before = ecliptic(body, jd_utc - SPEED_STEP_DAYS)[0]
        after = ecliptic(body, jd_utc + SPEED_STEP_DAYS)[0]
        step = (after - before + 180.0) % 360.0 - 180.0
        return make_position(body, lon, lat, dist, step / (2 * SPEED_STEP_DAYS))


__all__ = ["ApproximateProvider", "ecliptic", "heliocentric", "moon_geocentric"]
