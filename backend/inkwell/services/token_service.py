"""
Inkwell Backend — Identity Token Codec
========================================

What:  Signs and verifies compact, expiring identity tokens (JWT, HS256).
Why:   The authentication gate trusts a signed token instead of looking the
       user up on every request. No session table, no round trip.
How:   python-jose encodes {sub, iat, exp}. Expiry is checked here against an
       injectable clock rather than inside jose, so the boundary is exact:
       a token is valid strictly before `exp` and invalid at `exp`.
Who:   AuthService issues tokens; the authentication gate verifies them.

Trade-off (stateless trust):
    Tokens cannot be revoked before they expire. A revocation list keyed by
    a token id would be consulted by the gate; it is not implemented.
"""

import logging
import time
from typing import Callable, Optional

from jose import JWTError, jwt

from inkwell.config import settings
from inkwell.exceptions import InvalidCredentialError

logger = logging.getLogger(__name__)


class TokenCodec:
    """
    Issue and verify identity tokens.

    Args:
        secret:       HMAC signing secret. Must be non-empty.
        default_ttl:  Lifetime in seconds used when issue() gets no ttl.
        algorithm:    JWS algorithm; verification accepts only this one.
        clock:        Returns the current time in seconds (epoch).
    """

    def __init__(
        self,
        secret: str,
        default_ttl: int = 5 * 3600,
        algorithm: str = "HS256",
        clock: Callable[[], float] = time.time,
    ):
        if not secret:
            raise ValueError("Token signing secret must be configured")
        if default_ttl <= 0:
            raise ValueError("Token TTL must be positive")
        self._secret = secret
        self.default_ttl = default_ttl
        self.algorithm = algorithm
        self._clock = clock

    def issue(self, subject_id: str, ttl: Optional[int] = None) -> str:
        """Return a signed token for `subject_id` that expires `ttl` seconds from now."""
        lifetime = self.default_ttl if ttl is None else ttl
        if lifetime <= 0:
            raise ValueError("Token TTL must be positive")
        issued_at = int(self._clock())
        claims = {
            "sub": str(subject_id),
            "iat": issued_at,
            "exp": issued_at + lifetime,
        }
        return jwt.encode(claims, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> str:
        """
        Return the subject id carried by `token`.

        Raises:
            InvalidCredentialError: bad signature, malformed token, wrong
                algorithm, missing claims, or current time at/after expiry.
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"verify_exp": False, "verify_aud": False},
            )
        except JWTError as e:
            logger.info("Token rejected: %s", str(e))
            raise InvalidCredentialError(context={"reason": type(e).__name__})

        subject = claims.get("sub")
        expires_at = claims.get("exp")
        if not isinstance(subject, str) or not subject:
            raise InvalidCredentialError(context={"reason": "missing_subject"})
        if not isinstance(expires_at, (int, float)) or isinstance(expires_at, bool):
            raise InvalidCredentialError(context={"reason": "missing_expiry"})

        if self._clock() >= expires_at:
            raise InvalidCredentialError(context={"reason": "expired"})

        return subject


_token_codec: Optional[TokenCodec] = None


def get_token_codec() -> TokenCodec:
    """
    Process-wide codec built from settings on first use.

    Raises ValueError if JWT_SECRET is missing. The lifespan calls this at
    startup so a misconfigured server exits instead of failing per request.
    """
    global _token_codec
    if _token_codec is None:
        _token_codec = TokenCodec(
            secret=settings.jwt_secret,
            default_ttl=settings.jwt_ttl_seconds,
            algorithm=settings.jwt_algorithm,
        )
    return _token_codec
