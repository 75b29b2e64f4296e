"""
ResiHub Backend — Access Logging Middleware
=============================================

What:  One log line per request: method, path, status, duration, request ID
       and client IP.
How:   Level follows the status class (5xx ERROR, 4xx WARNING, else INFO).
       Liveness and health probes are not logged.

Never logged: request bodies (passwords), Authorization / x-auth-token
headers, uploaded file contents.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from resihub.middleware.request_id import request_id_var

logger = logging.getLogger("resihub.access")

QUIET_PATHS = frozenset({"/", "/api/health"})


def level_for_status(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access log with request-ID correlation and millisecond timings."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        client_ip = request.client.host if request.client else "unknown"
        rid = getattr(request.state, "request_id", "") or request_id_var.get("")
        status = response.status_code

        logger.log(
            level_for_status(status),
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
