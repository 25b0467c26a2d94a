"""Applying / separating qualifier for aspects.

These utilities are kept free of heavy runtime dependencies so they can be
unit-tested without requiring the Swiss Ephemeris bindings.
"""

from __future__ import annotations

EXACT_TOLERANCE = 1e-6


def signed_separation(lon_a: float, lon_b: float) -> float:
    """Return ``lon_a - lon_b`` wrapped into (-180, 180]."""

    delta = (lon_a - lon_b) % 360.0
    return delta - 360.0 if delta > 180.0 else delta


def signed_orb(lon_a: float, lon_b: float, aspect_angle: float) -> float:
    """Return the separation minus the exact aspect angle.

    Positive values mean the pair is wider than exact, negative values that it
    is tighter.
    """

    return abs(signed_separation(lon_a, lon_b)) - aspect_angle


def orb_rate(
    lon_a: float,
    lon_b: float,
    speed_a: float,
    speed_b: float,
    aspect_angle: float,
) -> float:
    """Rate of change of ``|orb|`` in degrees per day."""

    delta = signed_separation(lon_a, lon_b)
    rate = speed_a - speed_b
    # d|delta|/dt; at delta == 0 any relative motion opens the separation
    sep_rate = rate if delta > 0 else -rate if delta < 0 else abs(rate)
    orb = abs(delta) - aspect_angle
    if orb > 0:
        return sep_rate
    if orb < 0:
        return -sep_rate
    return abs(sep_rate)


def is_applying(
    lon_a: float,
    lon_b: float,
    speed_a: float,
    speed_b: float,
    aspect_angle: float,
) -> bool:
    """Determine whether an aspect is applying.

    An aspect is *applying* when the orb shrinks, i.e. the separation between
    the two bodies is moving toward the exact aspect angle. Conversely, when the
    orb grows the aspect is *separating*. An exact aspect counts as applying.

    Parameters
    ----------
    lon_a, lon_b
        Ecliptic longitudes of the two bodies.
    speed_a, speed_b
        Longitudinal speeds (degrees per day); negative while retrograde.
    aspect_angle
        The exact angular difference for the aspect (e.g. 0° for conjunction,
        90° for a square).
    """

    if abs(signed_orb(lon_a, lon_b, aspect_angle)) < EXACT_TOLERANCE:
        return True
    if abs(speed_a - speed_b) < EXACT_TOLERANCE:
        # Bodies moving at an effectively identical pace are not converging.
        return False
    return orb_rate(lon_a, lon_b, speed_a, speed_b, aspect_angle) < 0


def aspect_motion(
    lon_a: float,
    lon_b: float,
    speed_a: float,
    speed_b: float,
    aspect_angle: float,
) -> str:
    return "applying" if is_applying(lon_a, lon_b, speed_a, speed_b, aspect_angle) else "separating"


__all__ = ["aspect_motion", "is_applying", "orb_rate", "signed_orb", "signed_separation"]
