"""Error taxonomy raised by the chart engine.

Every calculation stage raises one of these synchronously; callers translate
them into user-facing messages (see ``birthchart.app``).
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class ChartError(Exception):
    """Base class for all engine errors."""

    code = "chart_error"

    def __init__(self, message: str, inputs: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.inputs = dict(inputs or {})

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.code, "detail": self.message}
        if self.inputs:
            payload["inputs"] = self.inputs
        return payload


class ValidationError(ChartError):
    """Malformed or out-of-range input, rejected before any calculation."""

    code = "validation_error"


class EphemerisUnavailable(ChartError):
    """Ephemeris backend missing or an essential body could not be computed."""

    code = "ephemeris_unavailable"


class GeometryDomainError(ChartError):
    """Non-finite trig results near the poles or at degenerate inputs."""

    code = "geometry_domain_error"


__all__ = ["ChartError", "EphemerisUnavailable", "GeometryDomainError", "ValidationError"]
