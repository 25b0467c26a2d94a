from fastapi import APIRouter, Request
from hashlib import sha256
from ..schemas import (
    ComputeRequest,
    ComputeResponse,
    AspectsRequest,
    AspectsResponse,
    PatternsRequest,
    PatternsResponse,
    HouseSystemsResponse,
)
from ..services import aspects as aspects_svc, patterns as patterns_svc
from ..services.chart import CUSP_ORB, ChartOptions, ChartRequest, TALLY_BODIES, calculate_chart
from ..services.ephem import DEFAULT_BODIES
from ..services.houses import supported_systems
from ..services.patterns import PatternPoint
from ..services.timescale import CivilDateTime, GeoPosition

router = APIRouter(prefix="/v1/charts", tags=["charts"])


def _chart_request(req: ComputeRequest, default_house_system: str) -> ChartRequest:
    o = req.options
    options = ChartOptions(
        house_system=(o and o.house_system) or default_house_system,
        include_minor_aspects=bool(o and o.include_minor_aspects),
        calculate_midpoints=bool(o and o.calculate_midpoints),
        include_angles_in_patterns=o.include_angles_in_patterns if o else True,
        cusp_orb=o.cusp_orb if o and o.cusp_orb is not None else CUSP_ORB,
        tally_bodies=tuple(o.tally_bodies) if o and o.tally_bodies else TALLY_BODIES,
        bodies=tuple(o.bodies) if o and o.bodies else DEFAULT_BODIES,
        orbs=dict(o.orbs) if o and o.orbs else {},
    )
    d = req.date_time
    return ChartRequest(
        dt=CivilDateTime(d.year, d.month, d.day, d.hour, d.minute, d.second),
        position=GeoPosition(req.position.latitude, req.position.longitude),
        options=options,
    )


@router.post("/compute", response_model=ComputeResponse)
def compute_chart(req: ComputeRequest, request: Request):
    settings = request.app.state.settings
    provider = request.app.state.provider
    chart_req = _chart_request(req, settings.default_house_system)
    result = calculate_chart(chart_req, provider)

    data = result.to_dict()
    d, p = chart_req.dt, chart_req.position
    seed = (
        f"{d.year:04d}-{d.month:02d}-{d.day:02d}T{d.hour:02d}:{d.minute:02d}:{d.second:06.3f}"
        f"|{p.latitude:.6f}|{p.longitude:.6f}|{result.houses.system}|{provider.name}"
    )
    chart_id = "cht_" + sha256(seed.encode()).hexdigest()[:24]

    meta = dict(data["meta"])
    meta["warnings"] = data["warnings"] or None
    return ComputeResponse(
        chart_id=chart_id,
        meta=meta,
        instant=data["instant"],
        angles=data["angles"],
        houses=data["houses"],
        bodies=data["bodies"],
        aspects=data["aspects"],
        patterns=data["patterns"],
        elements=data["elements"],
        modalities=data["modalities"],
        dignities=data["dignities"],
        midpoints=data.get("midpoints"),
        summary=result.summary(),
    )


@router.post("/aspects", response_model=AspectsResponse)
def compute_aspects(req: AspectsRequest):
    positions = {pt.name: {"lon": pt.lon, "speed": pt.speed} for pt in req.points}
    policy = aspects_svc.AspectPolicy(include_minor=req.include_minor, orbs=req.orbs or {})
    found = aspects_svc.find_aspects(positions, policy)
    return AspectsResponse(aspects=[a.to_dict() for a in found])


@router.post("/patterns", response_model=PatternsResponse)
def compute_patterns(req: PatternsRequest):
    points = [PatternPoint(pt.name, pt.lon, pt.kind) for pt in req.points]
    found = patterns_svc.detect_patterns(points)
    return PatternsResponse(patterns=[pat.to_dict() for pat in found])


@router.get("/house-systems", response_model=HouseSystemsResponse)
def house_systems(request: Request):
    engine = request.app.state.provider.house_engine
    return HouseSystemsResponse(
        engine=engine,
        default=request.app.state.settings.default_house_system,
        systems=list(supported_systems(engine)),
    )
