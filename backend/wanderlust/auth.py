"""
Wanderlust: Authentication
==========================

What:  Credential verification and the mapping between a logged-in user and
       the token kept in their session.
How:
    - Passwords: PBKDF2-HMAC-SHA256, 25000 iterations, 32-byte random salt,
      compared with `hmac.compare_digest`.
    - LocalStrategy: username + password → User or None.
    - Authenticator: serialize (User → token) and deserialize
      (token → User | None). A token that no longer resolves to a user
      (deleted account, garbage value) yields None; callers treat that as
      "logged out".

Session layout:
    session["auth"] = {"user": "<user id hex>"}
"""

import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from wanderlust.database import parse_identifier
from wanderlust.exceptions import MalformedIdentifierError
from wanderlust.models.user import User
from wanderlust.sessions import Session

logger = logging.getLogger(__name__)

AUTH_KEY = "auth"
HASH_ITERATIONS = 25_000
SALT_BYTES = 32


def hash_password(password: str, salt: Optional[str] = None) -> Tuple[str, str]:
    """Return (hash_hex, salt_hex) for `password`."""
    salt = salt or secrets.token_hex(SALT_BYTES)
    digest = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        bytes.fromhex(salt),
        HASH_ITERATIONS,
    )
    return digest.hex(), salt


def verify_password(password: str, password_hash: str, salt: str) -> bool:
    candidate, _ = hash_password(password, salt)
    return hmac.compare_digest(candidate, password_hash)


class LocalStrategy:
    """Username/password verification against the users table."""

    name = "local"

    async def authenticate(
        self, db: AsyncSession, username: str, password: str
    ) -> Optional[User]:
        result = await db.execute(select(User).where(User.username == username))
        user = result.scalar_one_or_none()
        if user is None:
            logger.info("Login failed: unknown username %r", username)
            return None
        if not verify_password(password, user.password_hash, user.salt):
            logger.info("Login failed: bad password for %r", username)
            return None
        return user


@dataclass
class Authenticator:
    """
    Authentication runtime: one strategy plus the serialize/deserialize pair.

    Registered by the startup sequencer strictly after the session middleware,
    since login/logout and deserialization all read or write the session.
    """

    strategy: LocalStrategy

    def serialize_user(self, user: User) -> str:
        return user.id.hex

    async def deserialize_user(self, db: AsyncSession, token: Optional[str]) -> Optional[User]:
        """User for `token`, or None when the token no longer resolves."""
        if not token:
            return None
        try:
            user_id = parse_identifier(token, model="User")
        except MalformedIdentifierError:
            logger.warning("Discarding malformed session user token")
            return None
        return await db.get(User, user_id)

    async def authenticate(
        self, db: AsyncSession, username: str, password: str
    ) -> Optional[User]:
        return await self.strategy.authenticate(db, username, password)

    @staticmethod
    def session_token(session: Session) -> Optional[str]:
        return (session.get(AUTH_KEY) or {}).get("user")

    def login(self, request: Request, user: User) -> None:
        """
        Bind `user` to the request's session.

        The session id is regenerated first so a pre-login session id can
        never be reused after authentication.
        """
        session: Session = request.state.session
        session.regenerate()
        session[AUTH_KEY] = {"user": self.serialize_user(user)}
        request.state.user = user
        logger.info("User %s logged in", user.username)

    def logout(self, request: Request) -> None:
        session: Session = request.state.session
        session.pop(AUTH_KEY, None)
        request.state.user = None
