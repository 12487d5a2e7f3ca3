"""Credential store: persistence for user records."""

import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.exceptions import ConflictError, DatabaseError
from inkwell.models.user import User

logger = logging.getLogger(__name__)


class UserStore:
    """Thin wrapper around database access for user records."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def find_by_username(self, username: str) -> Optional[User]:
        """Return the user with this (already normalized) username, or None."""
        try:
            result = await self.session.execute(select(User).where(User.username == username))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error looking up user %s: %s", username, str(e))
            raise DatabaseError(context={"operation": "find_by_username"})

    async def get(self, user_id: uuid.UUID) -> Optional[User]:
        try:
            return await self.session.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching user %s: %s", user_id, str(e))
            raise DatabaseError(context={"operation": "get_user"})

    async def save(self, user: User) -> User:
        """
        Insert or update `user` and flush so the id is assigned.

        Raises:
            ConflictError: the username is already taken (unique index),
                including when a concurrent registration wins the race.
            DatabaseError: any other storage failure.
        """
        self.session.add(user)
        try:
            await self.session.flush()
        except IntegrityError as e:
            logger.info("Duplicate username rejected at write time: %s", user.username)
            raise ConflictError(
                message="Username already exists",
                context={"constraint": str(e.orig)[:200]},
            )
        except SQLAlchemyError as e:
            logger.error("Database error saving user: %s", str(e), exc_info=True)
            raise DatabaseError(context={"operation": "save_user"})
        return user
