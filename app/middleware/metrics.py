"""Prometheus metrics middleware: instruments every HTTP request.

For each request:
  1. ACTIVE_REQUESTS goes up, and back down on completion
  2. the request is timed
  3. REQUEST_COUNT (method/endpoint/status) and REQUEST_DURATION are recorded

ENDPOINT LABEL
----------------
Record routes carry ids (/v1/clients/42).  Labelling by raw path would
create one time series per record, so the label is the matched route
template (/v1/clients/{record_id}).  Unmatched paths (404s for unknown
URLs) are collapsed into a single "unmatched" label for the same reason.
"""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.core.metrics import ACTIVE_REQUESTS, REQUEST_COUNT, REQUEST_DURATION

UNMATCHED_ENDPOINT = "unmatched"


def _endpoint_label(request: Request) -> str:
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    return path if path else UNMATCHED_ENDPOINT


class MetricsMiddleware(BaseHTTPMiddleware):
    """Collect Prometheus metrics for every HTTP request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # Prometheus scrapes would otherwise inflate the request count.
        if request.url.path == "/metrics":
            return await call_next(request)

        ACTIVE_REQUESTS.inc()
        start = time.monotonic()
        status_code = "500"

        try:
            response = await call_next(request)
            status_code = str(response.status_code)
        finally:
            duration = time.monotonic() - start
            ACTIVE_REQUESTS.dec()
            endpoint = _endpoint_label(request)
            REQUEST_COUNT.labels(
                method=request.method,
                endpoint=endpoint,
                status_code=status_code,
            ).inc()
            REQUEST_DURATION.labels(
                method=request.method,
                endpoint=endpoint,
            ).observe(duration)

        return response
