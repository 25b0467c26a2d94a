from .charts import (
    DateTimeIn,
    PositionIn,
    ChartOptionsIn,
    ComputeRequest,
    ComputeResponse,
    BodyOut,
    MetaOut,
    PointIn,
    AspectsRequest,
    AspectsResponse,
    PatternsRequest,
    PatternsResponse,
    HouseSystemsResponse,
)
