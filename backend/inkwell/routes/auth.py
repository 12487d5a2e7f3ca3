"""
Inkwell Backend — Authentication Route Handlers
=================================================

What:  POST /api/users/register and POST /api/users/login.
How:   Order of checks for both endpoints:
       1. Schema validation (400)   - FastAPI, before the handler runs
       2. Per-IP rate limit (429)   - counted only for well-formed requests
       3. Domain rule (409 / 401)   - AuthService
       4. Token issuance
"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.database import get_db_session
from inkwell.dependencies import get_auth_rate_limiter, get_client_ip
from inkwell.schemas.auth import AuthResponse, LoginRequest, RegisterRequest
from inkwell.schemas.common import ErrorResponse
from inkwell.services.auth_service import auth_service
from inkwell.services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])

_AUTH_ERRORS = {
    400: {"description": "Invalid input", "model": ErrorResponse},
    429: {"description": "Too many attempts from this address", "model": ErrorResponse},
}


@router.post(
    "/register",
    response_model=AuthResponse,
    responses={**_AUTH_ERRORS, 409: {"description": "Username taken", "model": ErrorResponse}},
    summary="Create an account",
)
async def register(
    payload: RegisterRequest,
    request: Request,
    limiter: RateLimiter = Depends(get_auth_rate_limiter),
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    await limiter.check(
        get_client_ip(request),
        "register",
        message="Too many registration attempts. Please try again later.",
    )
    return await auth_service.register(db, payload.username, payload.password)


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={**_AUTH_ERRORS, 401: {"description": "Invalid credentials", "model": ErrorResponse}},
    summary="Exchange credentials for a token",
)
async def login(
    payload: LoginRequest,
    request: Request,
    limiter: RateLimiter = Depends(get_auth_rate_limiter),
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    await limiter.check(
        get_client_ip(request),
        "login",
        message="Too many login attempts. Please try again later.",
    )
    return await auth_service.login(db, payload.username, payload.password)
