"""
Wanderlust: Error Funnel
========================

What:  The single terminal error handler. Every failure raised while a
       request is routed ends up here and becomes one rendered error page.
How:   An ASGI middleware wrapping the routed application. It tracks the
       response state of the request explicitly:

           NORMAL ──(first http.response.start)──▶ COMMITTED

       - Error in NORMAL: classify, render `error.html` with the status.
       - Error in COMMITTED: log once, never render a second response.
       - A second `http.response.start` (double send) is suppressed and
         logged as a single warning per request; nothing is raised.

Classification (see `ErrorFunnel.classify`):
    MalformedIdentifierError  → 400 "Invalid ID format!" (driver text hidden)
    WanderlustError           → its own status and message
    HTTPException             → its status; message kept for 4xx only
    RequestValidationError    → 400 with the field errors
    anything else             → 500 "Something went wrong"

If rendering the error page fails, a bare text/plain 500 is sent instead.

FastAPI's own handlers for HTTPException and RequestValidationError are
pointed at the same funnel (see `register_exception_handlers` in main.py),
so framework-raised 404/405/422 render identically.
"""

import logging

from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from wanderlust.exceptions import MalformedIdentifierError, WanderlustError
from wanderlust.templating import Templates

logger = logging.getLogger(__name__)

INVALID_ID_MESSAGE = "Invalid ID format!"
FALLBACK_BODY = "Something went wrong"


class ResponseState:
    """
    Committed/not-committed flag for one request, plus the guarded `send`.

    Stored on `request.state.response_state` so handlers can check it.
    """

    def __init__(self, send: Send, path: str):
        self._send = send
        self.path = path
        self.committed = False
        self.finished = False
        self._suppressing = False
        self._warned = False

    def _warn_duplicate(self) -> None:
        if not self._warned:
            self._warned = True
            logger.warning(
                "Suppressed a second response for %s: headers were already sent", self.path
            )

    async def send(self, message: Message) -> None:
        kind = message["type"]
        if kind == "http.response.start":
            if self.committed:
                self._suppressing = True
                self._warn_duplicate()
                return
            self.committed = True
        elif kind == "http.response.body":
            if self._suppressing or self.finished:
                if not message.get("more_body", False):
                    self._suppressing = False
                self._warn_duplicate()
                return
            if not message.get("more_body", False):
                self.finished = True
        await self._send(message)


class ErrorFunnel:
    """Turns any exception into the rendered error page."""

    def __init__(self, templates: Templates):
        self.templates = templates

    @staticmethod
    def classify(exc: BaseException) -> WanderlustError:
        if isinstance(exc, MalformedIdentifierError):
            return WanderlustError(
                INVALID_ID_MESSAGE,
                status_code=400,
                context={"model": exc.model},
            )
        if isinstance(exc, WanderlustError):
            return exc
        if isinstance(exc, StarletteHTTPException):
            status = exc.status_code
            if status == 404:
                return WanderlustError("Page Not Found!", status_code=404)
            if 400 <= status < 500 and isinstance(exc.detail, str):
                return WanderlustError(exc.detail, status_code=status)
            return WanderlustError(status_code=status)
        if isinstance(exc, RequestValidationError):
            problems = [
                f"{'.'.join(str(p) for p in err.get('loc', ())[1:]) or 'request'} {err.get('msg', 'is invalid')}"
                for err in exc.errors()
            ]
            return WanderlustError("; ".join(problems) or "Invalid request", status_code=400)
        return WanderlustError()

    def render(self, request: Request, exc: BaseException) -> Response:
        error = self.classify(exc)
        if error.status_code >= 500:
            logger.error(
                "Unhandled error on %s %s: %s",
                request.method,
                request.url.path,
                exc,
                exc_info=(type(exc), exc, exc.__traceback__),
            )
        else:
            logger.warning(
                "%s %s → %d %s",
                request.method,
                request.url.path,
                error.status_code,
                error.message,
            )

        try:
            return self.templates.render(
                request,
                "error.html",
                {"status_code": error.status_code, "message": error.message},
                status_code=error.status_code,
            )
        except Exception:
            logger.exception("Error while rendering error page")
            return PlainTextResponse(FALLBACK_BODY, status_code=500)


class ErrorFunnelMiddleware:
    """
    Innermost registered middleware: sits directly around the routers, inside
    session/auth/locals so the error page still sees the current user.
    """

    def __init__(self, app: ASGIApp, funnel: ErrorFunnel):
        self.app = app
        self.funnel = funnel

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        state = ResponseState(send, scope.get("path", ""))
        scope.setdefault("state", {})["response_state"] = state

        try:
            await self.app(scope, receive, state.send)
        except Exception as exc:
            await self._handle(scope, receive, state, exc)

    async def _handle(
        self,
        scope: Scope,
        receive: Receive,
        state: ResponseState,
        exc: Exception,
    ) -> None:
        if state.committed:
            logger.error(
                "Headers already sent while handling error for %s; not rendering: %s",
                state.path,
                exc,
                exc_info=(type(exc), exc, exc.__traceback__),
            )
            return

        request = Request(scope, receive)
        response = self.funnel.render(request, exc)
        await response(scope, receive, state.send)
