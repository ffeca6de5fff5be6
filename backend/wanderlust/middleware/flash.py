"""Attaches the session-backed flash queues as `request.state.flash`."""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from wanderlust.flash import FlashMessages


class FlashMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        session = getattr(request.state, "session", None)
        if session is None:
            raise RuntimeError("FlashMiddleware requires SessionMiddleware to run first")
        request.state.flash = FlashMessages(session)
        return await call_next(request)
