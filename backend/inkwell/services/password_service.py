"""
Inkwell Backend — Password Hashing
====================================

What:  bcrypt hashing and comparison for user passwords.
Why:   Plaintext passwords are never stored or compared directly.
How:   bcrypt.hashpw / bcrypt.checkpw, run in the threadpool because a
       cost-10 hash takes tens of milliseconds of pure CPU and would
       otherwise stall every request on the event loop.

bcrypt reads at most 72 bytes of input (recent releases raise on longer
input). Passwords may be up to 128 characters, so the UTF-8 encoding is
truncated to 72 bytes for both hashing and comparison.
"""

import logging

import bcrypt
from fastapi.concurrency import run_in_threadpool

from inkwell.config import settings

logger = logging.getLogger(__name__)

BCRYPT_MAX_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


class PasswordHasher:
    """bcrypt wrapper. Not cancellable mid-hash; calls run to completion."""

    def __init__(self, rounds: int = 10):
        self.rounds = rounds
        # Compared against when a login names an unknown user, so both
        # failure paths spend one bcrypt comparison.
        self._dummy_hash = bcrypt.hashpw(b"inkwell-dummy-password", bcrypt.gensalt(rounds=rounds))

    def hash_sync(self, password: str) -> str:
        return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=self.rounds)).decode("ascii")

    def verify_sync(self, password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(_encode(password), password_hash.encode("ascii"))
        except ValueError:
            # Stored value is not a bcrypt hash
            logger.error("Stored password hash is malformed")
            return False

    async def hash(self, password: str) -> str:
        return await run_in_threadpool(self.hash_sync, password)

    async def verify(self, password: str, password_hash: str) -> bool:
        return await run_in_threadpool(self.verify_sync, password, password_hash)

    async def burn(self, password: str) -> None:
        """Spend one comparison against a throwaway hash."""
        await run_in_threadpool(bcrypt.checkpw, _encode(password), self._dummy_hash)


password_hasher = PasswordHasher(rounds=settings.bcrypt_salt_rounds)
