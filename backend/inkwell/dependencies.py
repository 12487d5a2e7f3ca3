"""
Inkwell Backend — Request Dependencies
========================================

What:  FastAPI dependencies shared by the routers: the authentication gate,
       the per-app rate limiters and sanitizer, and the client address.
Why:   Routes declare what they need; tests swap any of it through
       app.dependency_overrides.

Authentication Gate:
    Reads the `x-auth-token` header.
        absent or blank   → NoCredentialError (401)
        fails verification → InvalidCredentialError (401)
        valid             → subject id, also stored on request.state.user_id
    The gate never reads the database; a valid token is sufficient.
"""

import logging

from fastapi import Request

from inkwell.exceptions import NoCredentialError
from inkwell.services.rate_limiter import RateLimiter
from inkwell.services.sanitizer import Sanitizer, default_sanitizer
from inkwell.services.token_service import get_token_codec

logger = logging.getLogger(__name__)

AUTH_HEADER = "x-auth-token"


async def get_current_user_id(request: Request) -> str:
    """Authentication gate for protected routes."""
    token = request.headers.get(AUTH_HEADER, "").strip()
    if not token:
        raise NoCredentialError(context={"path": request.url.path})

    user_id = get_token_codec().verify(token)
    request.state.user_id = user_id
    return user_id


def get_client_ip(request: Request) -> str:
    """Transport peer address. Behind a proxy, uvicorn's --proxy-headers sets it."""
    return request.client.host if request.client else "unknown"


def get_auth_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.auth_rate_limiter


def get_generation_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.generation_rate_limiter


def get_sanitizer(request: Request) -> Sanitizer:
    return getattr(request.app.state, "sanitizer", None) or default_sanitizer
