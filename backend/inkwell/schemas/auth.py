"""
Inkwell Backend — Authentication Schemas
==========================================

What:  Request/response models for POST /api/users/register and /login.
Why:   Field rules live here so every violation surfaces as a 400 with the
       failing field named, before rate limiting or any store access.

Validation rules:
    username: 3-30 characters after trimming; letters, digits, underscore
    password: 6-128 characters (not trimmed)

The request body reaches these models after SanitizeRequestMiddleware, so
a password containing ' or & is validated (and hashed) in escaped form.
Registration and login see the same transformation, which keeps them
consistent.
"""

import re
import uuid

from pydantic import BaseModel, Field, field_validator

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 128


def validate_username(value: str) -> str:
    trimmed = value.strip()
    if len(trimmed) < USERNAME_MIN_LENGTH:
        raise ValueError("Username must be at least 3 characters long")
    if len(trimmed) > USERNAME_MAX_LENGTH:
        raise ValueError("Username must be less than 30 characters")
    if not USERNAME_PATTERN.match(trimmed):
        raise ValueError("Username can only contain letters, numbers, and underscores")
    return trimmed


def validate_password(value: str) -> str:
    if len(value) < PASSWORD_MIN_LENGTH:
        raise ValueError("Password must be at least 6 characters long")
    if len(value) > PASSWORD_MAX_LENGTH:
        raise ValueError("Password must be less than 128 characters")
    return value


class CredentialsRequest(BaseModel):
    """Body of both register and login."""
    username: str = Field(description="3-30 characters: letters, numbers, underscores")
    password: str = Field(description="6-128 characters")

    @field_validator("username")
    @classmethod
    def check_username(cls, v: str) -> str:
        return validate_username(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        return validate_password(v)


class RegisterRequest(CredentialsRequest):
    pass


class LoginRequest(CredentialsRequest):
    pass


class UserPublic(BaseModel):
    id: uuid.UUID
    username: str

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """
    What:  Returned by register and login on success.
    How:   The client sends `token` back in the x-auth-token header.
    """
    token: str = Field(description="Signed identity token")
    user: UserPublic
