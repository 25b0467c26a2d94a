import dataclasses

import pytest

from birthchart.services import chart as chart_mod
from birthchart.services.chart import ChartOptions, ChartRequest, calculate_chart
from birthchart.services.constants import norm360
from birthchart.services.ephem import BodyUnavailable, SwissEphemerisProvider, make_position
from birthchart.services.ephem_approx import ApproximateProvider
from birthchart.services.errors import EphemerisUnavailable, GeometryDomainError, ValidationError
from birthchart.services.houses import HouseCusp, HouseResult
from birthchart.services.timescale import CivilDateTime, GeoPosition

LONDON = GeoPosition(51.5074, -0.1278)
BIRTH = CivilDateTime(1990, 8, 18, 14, 32, 0)
INNER = ("Sun", "Moon", "Mercury", "Venus", "Mars")


def london_zone(_lat, _lon):
    return "Europe/London"


def utc_zone(_lat, _lon):
    return "UTC"


class StaticProvider:
    name = "static"
    house_engine = "analytic"

    def __init__(self, lons, speeds=None, failing=()):
        self.lons = lons
        self.speeds = speeds or {}
        self.failing = set(failing)

    def position(self, jd_utc, body):
        if body in self.failing or body not in self.lons:
            raise BodyUnavailable(f"{body} not modelled")
        return make_position(body, self.lons[body], 0.0, 1.0, self.speeds.get(body, 1.0))


def _equal_houses(asc, mc=None):
    result = HouseResult(
        cusps=tuple(HouseCusp(i + 1, norm360(asc + 30.0 * i)) for i in range(12)),
        ascendant=asc,
        midheaven=norm360(asc + 270.0) if mc is None else mc,
        system="equal",
        engine="analytic",
    )

    def fake(jd_utc, lat, lon, system="placidus", engine="analytic"):
        return result

    return fake


@pytest.fixture(scope="module")
def london_chart():
    request = ChartRequest(BIRTH, LONDON, ChartOptions(calculate_midpoints=True))
    return calculate_chart(request, SwissEphemerisProvider(moshier=True), london_zone)


def test_london_chart_placements(london_chart):
    chart = london_chart
    assert chart.instant.tz_name == "Europe/London"
    # BST is UTC+1 in August
    assert chart.instant.utc.hour == 13
    assert chart.positions["Sun"].sign == "Leo"
    assert chart.meta["ephemeris"] == "moshier"
    assert chart.meta["house_engine"] == "swisseph"
    assert chart.meta["house_system"] == "placidus"
    assert "engine_version" in chart.meta


def test_london_chart_invariants(london_chart):
    chart = london_chart
    assert len(chart.houses.cusps) == 12
    assert chart.houses.cusps[0].longitude == chart.houses.ascendant
    assert set(chart.house_of_body) == set(chart.positions)
    assert all(1 <= h <= 12 for h in chart.house_of_body.values())
    pairs = [frozenset((a.body_a, a.body_b)) for a in chart.aspects]
    assert len(pairs) == len(set(pairs))
    assert sum(chart.elements.values()) == len(INNER)
    assert sum(chart.modalities.values()) == len(INNER)
    assert {d["planet"] for d in chart.dignities} <= {"Sun", "Moon", "Mercury", "Venus", "Mars", "Jupiter", "Saturn"}


def test_london_chart_serialises(london_chart):
    data = london_chart.to_dict()
    assert [b["name"] for b in data["bodies"]][:3] == ["Sun", "Moon", "Mercury"]
    assert set(data["angles"]) == {"ascendant", "mc", "descendant", "ic"}
    assert len(data["houses"]) == 12
    assert "Sun/Moon" in data["midpoints"]
    summary = london_chart.summary()
    assert summary["sun"]["sign"] == "Leo"
    assert len(summary["top_aspects"]) <= 3


def test_planet_just_before_ascendant_is_in_first_house(monkeypatch):
    monkeypatch.setattr(chart_mod, "houses", _equal_houses(15.0))
    provider = StaticProvider({"Sun": 10.0, "Moon": 100.0, "Mercury": 20.0, "Venus": 350.0, "Mars": 200.0})
    chart = calculate_chart(ChartRequest(BIRTH, LONDON, ChartOptions(bodies=INNER)), provider, utc_zone)
    assert chart.house_of_body["Sun"] == 1
    assert chart.house_of_body["Mercury"] == 1
    assert chart.house_of_body["Venus"] == 12
    assert chart.house_occupancy()[1] == ["Sun", "Mercury"]


def test_strict_cusps_without_cusp_orb(monkeypatch):
    monkeypatch.setattr(chart_mod, "houses", _equal_houses(15.0))
    provider = StaticProvider({"Sun": 10.0, "Moon": 100.0, "Mercury": 20.0, "Venus": 350.0, "Mars": 200.0})
    opts = ChartOptions(bodies=INNER, cusp_orb=0.0)
    chart = calculate_chart(ChartRequest(BIRTH, LONDON, opts), provider, utc_zone)
    assert chart.house_of_body["Sun"] == 12


def test_angles_join_pattern_search_only_when_requested(monkeypatch):
    monkeypatch.setattr(chart_mod, "houses", _equal_houses(15.0, mc=285.0))
    provider = StaticProvider({"Sun": 135.0, "Moon": 255.0, "Mercury": 40.0, "Venus": 50.0, "Mars": 70.0})

    with_angles = calculate_chart(ChartRequest(BIRTH, LONDON, ChartOptions(bodies=INNER)), provider, utc_zone)
    trines = [p for p in with_angles.patterns if p.name == "Grand Trine"]
    assert trines and "Ascendant" in trines[0].bodies

    opts = ChartOptions(bodies=INNER, include_angles_in_patterns=False)
    without = calculate_chart(ChartRequest(BIRTH, LONDON, opts), provider, utc_zone)
    assert not any("Ascendant" in p.bodies for p in without.patterns)


def test_invalid_civil_time_yields_no_chart():
    provider = StaticProvider({b: 10.0 * i for i, b in enumerate(INNER)})
    with pytest.raises(ValidationError):
        calculate_chart(ChartRequest(CivilDateTime(1990, 13, 1), LONDON), provider, utc_zone)


def test_missing_essential_body_yields_no_chart():
    provider = StaticProvider({b: 10.0 * i for i, b in enumerate(INNER)}, failing={"Moon"})
    with pytest.raises(EphemerisUnavailable):
        calculate_chart(ChartRequest(BIRTH, LONDON), provider, utc_zone)


def test_polar_placidus_yields_no_chart():
    provider = StaticProvider({b: 10.0 * i for i, b in enumerate(INNER)})
    request = ChartRequest(BIRTH, GeoPosition(75.0, 20.0), ChartOptions(bodies=INNER))
    with pytest.raises(GeometryDomainError):
        calculate_chart(request, provider, utc_zone)


def test_polar_porphyry_is_fine():
    provider = StaticProvider({b: 10.0 * i for i, b in enumerate(INNER)})
    request = ChartRequest(BIRTH, GeoPosition(75.0, 20.0), ChartOptions(house_system="porphyry", bodies=INNER))
    chart = calculate_chart(request, provider, utc_zone)
    assert chart.houses.system == "porphyry"


@pytest.mark.parametrize(
    "opts",
    [ChartOptions(bodies=("Sun", "Vulcan")), ChartOptions(tally_bodies=("Lilith",)), ChartOptions(cusp_orb=40.0)],
)
def test_invalid_options_rejected(opts):
    provider = StaticProvider({b: 10.0 * i for i, b in enumerate(INNER)})
    with pytest.raises(ValidationError):
        calculate_chart(ChartRequest(BIRTH, LONDON, opts), provider, utc_zone)


def test_result_is_read_only(london_chart):
    with pytest.raises(TypeError):
        london_chart.positions["Sun"] = None
    with pytest.raises(dataclasses.FrozenInstanceError):
        london_chart.aspects = ()


def test_tally_bodies_configurable():
    provider = StaticProvider({b: 10.0 * i for i, b in enumerate(INNER)})
    opts = ChartOptions(bodies=INNER, tally_bodies=("Sun",))
    chart = calculate_chart(ChartRequest(BIRTH, LONDON, opts), provider, utc_zone)
    assert sum(chart.elements.values()) == 1
    assert chart.elements["fire"] == 1


def test_zone_fallback_warning_reaches_result():
    provider = StaticProvider({b: 10.0 * i for i, b in enumerate(INNER)})
    chart = calculate_chart(ChartRequest(BIRTH, LONDON, ChartOptions(bodies=INNER)), provider, lambda _a, _b: None)
    assert chart.instant.tz_name == "UTC"
    assert any("using UTC" in w for w in chart.warnings)


def test_omitted_bodies_are_warned():
    provider = StaticProvider({b: 10.0 * i for i, b in enumerate(INNER)})
    chart = calculate_chart(ChartRequest(BIRTH, LONDON), provider, utc_zone)
    assert list(chart.positions) == list(INNER)
    assert any("Chiron" in w for w in chart.warnings)


def test_approximate_chart_omits_chiron():
    chart = calculate_chart(ChartRequest(BIRTH, LONDON), ApproximateProvider(), london_zone)
    assert "Chiron" not in chart.positions
    assert "Pluto" in chart.positions
    assert chart.meta["house_engine"] == "analytic"
    assert "engine_version" not in chart.meta
    assert chart.positions["Sun"].sign == "Leo"
