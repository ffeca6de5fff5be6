"""
Wanderlust: Render Locals Middleware
====================================

What:  Builds the values every template can see, once per request:
           success       flashed success messages (consumed)
           error         flashed error messages (consumed)
           current_user  the authenticated User, or None
When:  After AuthenticationMiddleware (needs request.state.user) and before
       any route runs.
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response


class LocalsMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        flash = request.state.flash
        request.state.locals = {
            "success": flash.consume("success"),
            "error": flash.consume("error"),
            "current_user": getattr(request.state, "user", None),
        }
        return await call_next(request)
