"""
Wanderlust: Session Middleware
==============================

What:  Loads the client's server-side session before the request is handled
       and persists it afterwards.
How:
    1. Read the session cookie; its value is the session id signed with
       SECRET (itsdangerous). A bad signature is treated as no cookie.
    2. Load the payload from the SessionStore, or start an empty session.
    3. Expose it as `request.state.session`.
    4. After the handler: save only if the payload changed and is not
       empty (nothing is stored for anonymous visitors who never get a
       flash), set the cookie, destroy superseded records.

Cookie: http-only, SameSite=Lax, max-age = SESSION_MAX_AGE.
"""

import logging
from typing import Optional

from itsdangerous import BadSignature, Signer
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from wanderlust.sessions import Session, SessionStore, new_session_id

logger = logging.getLogger(__name__)


class SessionMiddleware(BaseHTTPMiddleware):

    def __init__(
        self,
        app: ASGIApp,
        store: SessionStore,
        secret: str,
        cookie_name: str = "session",
        max_age: int = 7 * 24 * 60 * 60,
        https_only: bool = False,
    ):
        super().__init__(app)
        self.store = store
        self.signer = Signer(secret, salt="wanderlust.session")
        self.cookie_name = cookie_name
        self.max_age = max_age
        self.https_only = https_only

    def _read_sid(self, request: Request) -> Optional[str]:
        raw = request.cookies.get(self.cookie_name)
        if not raw:
            return None
        try:
            return self.signer.unsign(raw).decode("utf-8")
        except BadSignature:
            logger.warning("Ignoring session cookie with invalid signature")
            return None

    async def _load(self, request: Request) -> Session:
        sid = self._read_sid(request)
        if sid:
            payload = await self.store.get(sid)
            if payload is not None:
                return Session(sid, payload, is_new=False)
        return Session(new_session_id())

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        session = await self._load(request)
        request.state.session = session

        response = await call_next(request)

        await self._commit(session, response)
        return response

    async def _commit(self, session: Session, response: Response) -> None:
        if session.previous_sid:
            await self.store.destroy(session.previous_sid)

        if session.invalidated or (not session and not session.is_new):
            await self.store.destroy(session.sid)
            response.delete_cookie(self.cookie_name, httponly=True, samesite="lax")
            return

        if not session or not session.changed:
            return

        saved = await self.store.set(session.sid, dict(session), session.expiry(self.max_age))
        if saved:
            response.set_cookie(
                self.cookie_name,
                self.signer.sign(session.sid).decode("utf-8"),
                max_age=self.max_age,
                httponly=True,
                samesite="lax",
                secure=self.https_only,
            )
