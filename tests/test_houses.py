import math

import pytest

from birthchart.services import houses as houses_mod
from birthchart.services.constants import norm360
from birthchart.services.errors import GeometryDomainError, ValidationError
from birthchart.services.houses import (
    ANALYTIC_SYSTEMS,
    HOUSE_CODE_MAP,
    house_of,
    house_quality,
    houses,
)
from birthchart.services.timescale import julian_day_from_utc

JD = julian_day_from_utc(1990, 8, 18, 9.0)
LONDON = (51.5074, -0.1278)
SYDNEY = (-33.8688, 151.2093)


def _diff(a, b):
    return abs((a - b + 180.0) % 360.0 - 180.0)


def _forward_gaps(cusps):
    return [norm360(cusps[(i + 1) % 12] - cusps[i]) for i in range(12)]


def _check_invariants(res):
    cusps = res.longitudes()
    assert len(cusps) == 12
    assert cusps[0] == res.ascendant
    assert all(0.0 <= c < 360.0 for c in cusps)
    gaps = _forward_gaps(cusps)
    assert all(g > 0 for g in gaps)
    assert sum(gaps) == pytest.approx(360.0)


@pytest.mark.parametrize("system", ANALYTIC_SYSTEMS)
@pytest.mark.parametrize("place", [LONDON, SYDNEY, (0.0, 0.0)])
def test_analytic_systems_keep_invariants(system, place):
    _check_invariants(houses(JD, *place, system=system, engine="analytic"))


@pytest.mark.parametrize("system", list(HOUSE_CODE_MAP))
def test_swiss_systems_keep_invariants(system):
    _check_invariants(houses(JD, *LONDON, system=system, engine="swisseph"))


@pytest.mark.parametrize("place", [LONDON, SYDNEY])
def test_analytic_angles_match_swiss(place):
    a = houses(JD, *place, "placidus", engine="analytic")
    s = houses(JD, *place, "placidus", engine="swisseph")
    assert _diff(a.ascendant, s.ascendant) < 0.05
    assert _diff(a.midheaven, s.midheaven) < 0.05


@pytest.mark.parametrize("system", ["placidus", "porphyry", "equal"])
@pytest.mark.parametrize("place", [LONDON, SYDNEY])
def test_analytic_cusps_match_swiss(system, place):
    a = houses(JD, *place, system, engine="analytic")
    s = houses(JD, *place, system, engine="swisseph")
    for ca, cs in zip(a.longitudes(), s.longitudes()):
        assert _diff(ca, cs) < 0.1


def test_quadrant_systems_put_midheaven_on_tenth_cusp():
    for system in ("placidus", "porphyry"):
        res = houses(JD, *LONDON, system)
        assert res.cusps[9].longitude == pytest.approx(res.midheaven)
        assert res.cusps[3].longitude == pytest.approx(res.imum_coeli)


def test_equal_houses_step_thirty_degrees():
    res = houses(JD, *LONDON, "equal")
    assert _forward_gaps(res.longitudes()) == pytest.approx([30.0] * 12)


def test_derived_angles():
    res = houses(JD, *LONDON)
    assert res.descendant == pytest.approx(norm360(res.ascendant + 180.0))
    assert res.imum_coeli == pytest.approx(norm360(res.midheaven + 180.0))
    assert set(res.angles()) == {"ascendant", "mc", "descendant", "ic"}


def test_latitude_out_of_range_rejected_before_trig(monkeypatch):
    def boom(*_args):
        raise AssertionError("trig evaluated on invalid input")

    monkeypatch.setattr(houses_mod, "angles_from_ramc", boom)
    monkeypatch.setattr(houses_mod, "gmst", boom)
    with pytest.raises(ValidationError):
        houses(JD, 91.0, 0.0)


@pytest.mark.parametrize("jd", [math.nan, math.inf])
def test_non_finite_julian_day_rejected(jd):
    with pytest.raises(ValidationError):
        houses(jd, *LONDON)


@pytest.mark.parametrize("engine", ["analytic", "swisseph"])
def test_placidus_undefined_inside_polar_circle(engine):
    with pytest.raises(GeometryDomainError) as err:
        houses(JD, 70.0, 25.0, "placidus", engine=engine)
    assert err.value.inputs["latitude"] == 70.0


def test_porphyry_works_inside_polar_circle():
    _check_invariants(houses(JD, 70.0, 25.0, "porphyry"))


@pytest.mark.parametrize("lat", [90.0, -90.0])
def test_geographic_pole_is_a_domain_error(lat):
    with pytest.raises(GeometryDomainError):
        houses(JD, lat, 0.0, "equal")


@pytest.mark.parametrize(
    "system,engine",
    [("whole_sign", "analytic"), ("whole_sign", "swisseph"), ("koch", "analytic"), ("morinus", "swisseph")],
)
def test_unsupported_systems_rejected(system, engine):
    with pytest.raises(ValidationError):
        houses(JD, *LONDON, system, engine=engine)


CUSPS_FROM_15 = [norm360(15.0 + 30.0 * i) for i in range(12)]
CUSPS_FROM_350 = [norm360(350.0 + 30.0 * i) for i in range(12)]


def test_body_on_cusp_belongs_to_that_house():
    assert house_of(15.0, CUSPS_FROM_15) == 1
    assert house_of(45.0, CUSPS_FROM_15) == 2
    assert house_of(44.999, CUSPS_FROM_15) == 1
    assert house_of(14.999, CUSPS_FROM_15) == 12


def test_house_assignment_wraps_through_zero():
    assert house_of(355.0, CUSPS_FROM_350) == 1
    assert house_of(5.0, CUSPS_FROM_350) == 1
    assert house_of(20.0, CUSPS_FROM_350) == 2
    assert house_of(349.9, CUSPS_FROM_350) == 12
    assert house_of(370.0, CUSPS_FROM_15) == house_of(10.0, CUSPS_FROM_15)


def test_planet_just_before_ascendant_read_in_first_house_with_cusp_orb():
    # Ascendant at 15° Aries, planet at 10° Aries
    assert house_of(10.0, CUSPS_FROM_15) == 12
    assert house_of(10.0, CUSPS_FROM_15, cusp_orb=5.0) == 1
    assert house_of(9.9, CUSPS_FROM_15, cusp_orb=5.0) == 12
    assert house_of(15.0, CUSPS_FROM_15, cusp_orb=5.0) == 1


def test_every_longitude_maps_to_exactly_one_house():
    cusps = houses(JD, *LONDON, "placidus").longitudes()
    for step in range(0, 7200):
        lon = step / 20.0
        h = house_of(lon, cusps)
        assert 1 <= h <= 12
        start, width = cusps[h - 1], norm360(cusps[h % 12] - cusps[h - 1])
        assert norm360(lon - start) < width


def test_house_quality():
    assert [house_quality(n) for n in (1, 2, 3, 10, 11, 12)] == [
        "angular", "succedent", "cadent", "angular", "succedent", "cadent",
    ]
