from pydantic import BaseModel
from typing import Optional, List, Literal, Dict, Any

PointKind = Literal["planet", "point", "angle"]

class DateTimeIn(BaseModel):
    year: int
    month: int
    day: int
    hour: int = 0
    minute: int = 0
    second: float = 0.0

class PositionIn(BaseModel):
    latitude: float
    longitude: float

class ChartOptionsIn(BaseModel):
    house_system: Optional[str] = None
    include_minor_aspects: bool = False
    calculate_midpoints: bool = False
    include_angles_in_patterns: bool = True
    cusp_orb: Optional[float] = None
    tally_bodies: Optional[List[str]] = None
    bodies: Optional[List[str]] = None
    orbs: Optional[Dict[str, float]] = None

class ComputeRequest(BaseModel):
    date_time: DateTimeIn
    position: PositionIn
    options: Optional[ChartOptionsIn] = None

class BodyOut(BaseModel):
    name: str
    kind: str
    lon: float
    lat: float
    distance: float
    speed: float
    sign: str
    degree: str
    retro: bool
    house: int

class MetaOut(BaseModel):
    engine: str = "birthchart"
    engine_version: Optional[str] = None
    ephemeris: str
    house_engine: str
    house_system: str
    warnings: Optional[List[str]] = None

class ComputeResponse(BaseModel):
    chart_id: str
    meta: MetaOut
    instant: Dict[str, Any]
    angles: Dict[str, float]
    houses: list
    bodies: List[BodyOut]
    aspects: list
    patterns: list
    elements: Dict[str, int]
    modalities: Dict[str, int]
    dignities: list
    midpoints: Optional[Dict[str, float]] = None
    summary: Dict[str, Any]

class PointIn(BaseModel):
    name: str
    lon: float
    speed: Optional[float] = None
    kind: PointKind = "planet"

class AspectsRequest(BaseModel):
    points: List[PointIn]
    include_minor: bool = False
    orbs: Optional[Dict[str, float]] = None

class AspectsResponse(BaseModel):
    aspects: list

class PatternsRequest(BaseModel):
    points: List[PointIn]

class PatternsResponse(BaseModel):
    patterns: list

class HouseSystemsResponse(BaseModel):
    engine: str
    default: str
    systems: List[str]
