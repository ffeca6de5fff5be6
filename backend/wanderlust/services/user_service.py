"""
Wanderlust: User Service
========================

What:  Account registration.
How:   Hashes the password (see auth.hash_password) and inserts the user.
       A taken username is reported as a ValidationError so the signup
       handler can flash it; the unique index is the final arbiter when two
       signups race.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from wanderlust.auth import hash_password
from wanderlust.exceptions import DatabaseError, ValidationError
from wanderlust.models.user import User

logger = logging.getLogger(__name__)

DUPLICATE_USERNAME_MESSAGE = "A user with the given username is already registered"


class UserService:

    async def get_by_username(self, db: AsyncSession, username: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def register(
        self, db: AsyncSession, username: str, email: str, password: str
    ) -> User:
        """
        Create an account.

        Raises:
            ValidationError: blank username/password, or the username is taken.
            DatabaseError: the insert failed for any other reason.
        """
        username = username.strip()
        if not username:
            raise ValidationError(message="No username was given", field="username")
        if not password:
            raise ValidationError(message="No password was given", field="password")

        if await self.get_by_username(db, username) is not None:
            raise ValidationError(message=DUPLICATE_USERNAME_MESSAGE, field="username")

        password_hash, salt = hash_password(password)
        user = User(username=username, email=email.strip(), password_hash=password_hash, salt=salt)
        try:
            db.add(user)
            await db.commit()
        except IntegrityError as e:
            # Lost a race on the unique index; leave the session usable
            await db.rollback()
            raise ValidationError(message=DUPLICATE_USERNAME_MESSAGE, field="username") from e
        except SQLAlchemyError as e:
            logger.error("Database error registering %r: %s", username, e)
            raise DatabaseError(
                message="Could not create the account. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

        logger.info("Registered user %s", username)
        return user
