"""Pydantic schemas related to authentication."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import EmailStr, Field

from classroom.views.common import CamelModel
from classroom.views.users import UserResponse


class SignUpRequest(CamelModel):
    """Credentials and profile submitted to create an account."""

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    # Admins are promoted by another admin, never self-registered.
    role: Literal["student", "teacher"] = "student"
    image: Optional[str] = None


class SignInRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class SessionResponse(CamelModel):
    id: str
    user_id: str
    expires_at: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class AuthResponse(CamelModel):
    """Session token plus the authenticated user."""

    token: str
    expires_at: datetime
    user: UserResponse


class CurrentSessionResponse(CamelModel):
    session: SessionResponse
    user: UserResponse


class VerificationRequest(CamelModel):
    email: EmailStr


class VerificationIssuedResponse(CamelModel):
    status: bool = True
    expires_at: datetime
    # Only populated in debug deployments, where no mailer delivers it.
    value: Optional[str] = None


class VerifyEmailRequest(CamelModel):
    email: EmailStr
    value: str = Field(..., min_length=1)


__all__ = [
    "SignUpRequest",
    "SignInRequest",
    "SessionResponse",
    "AuthResponse",
    "CurrentSessionResponse",
    "VerificationRequest",
    "VerificationIssuedResponse",
    "VerifyEmailRequest",
]
