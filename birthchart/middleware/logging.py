import json
import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

access_log = logging.getLogger("birthchart.access")


class LoggingMiddleware(BaseHTTPMiddleware):
    """One JSON line per request on the ``birthchart.access`` logger."""

    def __init__(self, app, enabled: bool = False):
        super().__init__(app)
        self.enabled = enabled

    async def dispatch(self, request: Request, call_next):
        if not self.enabled:
            return await call_next(request)

        start = time.perf_counter()
        response = await call_next(request)
        record = {
            "ts": round(time.time(), 3),
            "ip": request.client.host if request.client else None,
            "method": request.method,
            "endpoint": request.url.path,
            "status": response.status_code,
            "latency_ms": round((time.perf_counter() - start) * 1000, 2),
        }
        access_log.info(json.dumps(record))
        return response
