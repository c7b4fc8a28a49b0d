"""
QuickGen Backend: Access Log Middleware
=======================================

What:  One log line per HTTP request: method, path, status, duration.
How:   Measures from middleware entry to response return. Level follows the
       status: 5xx → ERROR, 4xx → WARNING, otherwise INFO.

Not logged: request bodies, uploaded files, the user-id header. Prompts
and resumes are user content.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from quickgen.middleware.request_id import request_id_var

logger = logging.getLogger("quickgen.access")

# Probed every few seconds by load balancers
QUIET_PATHS = frozenset({"/health", "/"})


def level_for_status(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        rid = request_id_var.get("")
        logger.log(
            level_for_status(status),
            "%s %s %d %.1fms from %s",
            request.method,
            path,
            status,
            duration_ms,
            client_ip,
            extra={
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
                "rid": rid,
            },
        )
        return response
