"""Request context middleware: request id and timing for every request.

The request id goes into request_id_var (app/core/logging.py), where the
handler-level RequestContextFilter picks it up for every log line.  The
principal's user_id / tenant_id are bound later by require_principal.

ContextVars rather than thread-locals: FastAPI runs many requests on
one event-loop thread, and each request task gets its own copy.

Each request ends with one completion line (method, path, status,
duration, and the principal when one was resolved).
"""

from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.core.logging import request_id_var, tenant_id_var, user_id_var

logger = logging.getLogger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assigns a request id, times the request and logs one completion line."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request_id_var.set(req_id)
        user_id_var.set("-")
        tenant_id_var.set("-")

        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        # The endpoint runs in a child context, so the principal is read
        # back from request.state rather than the ContextVars.
        principal = getattr(request.state, "principal", None)
        extra: dict[str, object] = {
            "request_id": req_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        }
        if principal is not None:
            extra["user_id"] = principal.user_id
            extra["tenant_id"] = principal.tenant_id

        logger.info(
            "%s %s -> %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra=extra,
        )

        response.headers["X-Request-ID"] = req_id
        return response
