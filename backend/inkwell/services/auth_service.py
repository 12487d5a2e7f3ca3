"""
Inkwell Backend — Registration & Login Flow
=============================================

What:  Creates accounts and exchanges credentials for identity tokens.
Why:   Keeps credential rules out of the HTTP layer.
How:   Composes UserStore, PasswordHasher and TokenCodec.
Who:   Called by the /api/users routes after schema validation and the
       per-IP rate limit have both passed.

Failure signalling:
    register: duplicate username      → ConflictError ("User already exists")
    login:    unknown user/bad password → InvalidCredentialError ("Invalid credentials")

    Both login failures produce the same error and spend one bcrypt
    comparison, so a caller cannot learn which usernames exist from the
    response or its timing.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.exceptions import ConflictError, InvalidCredentialError
from inkwell.models.user import User
from inkwell.repositories import UserStore
from inkwell.schemas.auth import AuthResponse, UserPublic
from inkwell.services.password_service import PasswordHasher, password_hasher
from inkwell.services.token_service import TokenCodec, get_token_codec

logger = logging.getLogger(__name__)


def normalize_username(username: str) -> str:
    return username.strip().lower()


class AuthService:
    """
    Stateless orchestrator for register/login.

    Args:
        hasher: Password hasher (default: process-wide bcrypt hasher)
        codec:  Token codec (default: built from settings on first use)
    """

    def __init__(
        self,
        hasher: Optional[PasswordHasher] = None,
        codec: Optional[TokenCodec] = None,
    ):
        self.hasher = hasher or password_hasher
        self._codec = codec

    @property
    def codec(self) -> TokenCodec:
        if self._codec is None:
            self._codec = get_token_codec()
        return self._codec

    def _authenticated(self, user: User) -> AuthResponse:
        token = self.codec.issue(str(user.id))
        return AuthResponse(token=token, user=UserPublic.model_validate(user))

    async def register(self, db: AsyncSession, username: str, password: str) -> AuthResponse:
        """
        Create an account and return a token for it.

        The existence check runs before hashing so a duplicate costs no
        bcrypt work. A concurrent registration that slips past the check is
        caught by the unique index (UserStore.save raises ConflictError).
        """
        store = UserStore(db)
        username = normalize_username(username)

        if await store.find_by_username(username) is not None:
            logger.info("Registration rejected, username taken: %s", username)
            raise ConflictError(message="User already exists", context={"username": username})

        password_hash = await self.hasher.hash(password)
        user = await store.save(User(username=username, password_hash=password_hash))

        logger.info("User registered: %s (%s)", user.username, user.id)
        return self._authenticated(user)

    async def login(self, db: AsyncSession, username: str, password: str) -> AuthResponse:
        """
        Verify credentials and return a fresh token.

        Raises:
            InvalidCredentialError: unknown username or wrong password.
        """
        store = UserStore(db)
        username = normalize_username(username)

        user = await store.find_by_username(username)
        if user is None:
            await self.hasher.burn(password)
            logger.info("Login failed: unknown user")
            raise InvalidCredentialError(message="Invalid credentials", context={"reason": "unknown_user"})

        if not await self.hasher.verify(password, user.password_hash):
            logger.info("Login failed: wrong password for %s", user.id)
            raise InvalidCredentialError(message="Invalid credentials", context={"reason": "bad_password"})

        logger.info("User logged in: %s", user.id)
        return self._authenticated(user)


auth_service = AuthService()
