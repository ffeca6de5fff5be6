"""
Wanderlust: Request ID Middleware
=================================

What:  Tags every request with a short correlation id, echoes it in the
       X-Request-ID response header, and stamps it on every log record
       emitted while the request is being handled.
How:   The id lives in a ContextVar (coroutine-local), so concurrent requests
       on the same event loop never see each other's id.
       `RequestIDLogFilter` copies it onto log records as `request_id`.
"""

import logging
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class RequestIDLogFilter(logging.Filter):
    """Adds `record.request_id` so formatters can reference it."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_var.get()
        return True


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Outermost middleware: runs before anything else logs.

    A client-supplied X-Request-ID is reused (end-to-end tracing); otherwise
    the first 8 characters of a UUID4 are used.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers["X-Request-ID"] = rid
        return response
