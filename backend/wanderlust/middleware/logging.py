"""
Wanderlust: Request Logging Middleware
======================================

What:  One access-log line per request: method, path, status, duration,
       client address and (when logged in) the username.
When:  Registered right after RequestIDMiddleware, so the request id is
       already set when the line is written.

Level by status:
    5xx → ERROR, 4xx → WARNING, everything else → INFO.
    Static assets (/uploads) and /health are not logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("wanderlust.access")

QUIET_PREFIXES = ("/health", "/uploads/")


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path.startswith(QUIET_PREFIXES):
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        user = getattr(request.state, "user", None)
        logger.log(
            log_level,
            "%s %s %d %.1fms from %s%s",
            request.method,
            path,
            status,
            duration_ms,
            client_ip,
            f" as {user.username}" if user is not None else "",
            extra={
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
