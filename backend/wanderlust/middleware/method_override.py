"""
Wanderlust: HTTP Method Override
================================

What:  Lets HTML forms (which can only GET or POST) reach PUT, PATCH and
       DELETE routes: `POST /listings/<id>?_method=DELETE` is dispatched as
       `DELETE /listings/<id>`.
How:   Plain ASGI middleware rewriting `scope["method"]` before routing.
       Only POST requests are eligible; unknown override values are ignored.
"""

from urllib.parse import parse_qs

from starlette.types import ASGIApp, Receive, Scope, Send

OVERRIDE_PARAM = "_method"
ALLOWED_OVERRIDES = {"PUT", "PATCH", "DELETE"}


class MethodOverrideMiddleware:

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["method"] == "POST":
            query = parse_qs(scope.get("query_string", b"").decode("latin-1"))
            requested = (query.get(OVERRIDE_PARAM) or [""])[0].upper()
            if requested in ALLOWED_OVERRIDES:
                scope["method"] = requested
        await self.app(scope, receive, send)
