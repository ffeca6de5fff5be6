"""
Wanderlust: Authentication Middleware
=====================================

What:  Resolves the session's user token into `request.state.user`
       (a `User` or None) before any route or guard runs.
How:   Uses its own short database session; the loaded user stays readable
       afterwards because sessions are created with expire_on_commit=False.
       A token that no longer resolves is removed from the session, which
       logs the client out instead of failing the request. A database error
       while resolving the token is logged and the request continues
       anonymously; the token is kept so the next request can retry.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from wanderlust.auth import AUTH_KEY, Authenticator
from wanderlust.database import Database

logger = logging.getLogger(__name__)


class AuthenticationMiddleware(BaseHTTPMiddleware):

    def __init__(self, app: ASGIApp, authenticator: Authenticator, database: Database):
        super().__init__(app)
        self.authenticator = authenticator
        self.database = database

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        session = getattr(request.state, "session", None)
        if session is None:
            raise RuntimeError("AuthenticationMiddleware requires SessionMiddleware to run first")

        request.state.user = None
        token = self.authenticator.session_token(session)
        if token:
            try:
                async with self.database.session() as db:
                    user = await self.authenticator.deserialize_user(db, token)
            except SQLAlchemyError as exc:
                logger.error("Could not load session user, continuing anonymously: %s", exc)
                return await call_next(request)
            if user is None:
                logger.info("Session user no longer exists; clearing login")
                session.pop(AUTH_KEY, None)
            request.state.user = user

        return await call_next(request)
