"""Utility helpers for the classroom backend."""

from .security import (
    as_utc,
    generate_id,
    generate_invite_code,
    generate_session_token,
    generate_verification_value,
    hash_password,
    utcnow,
    verify_password,
)

__all__ = [
    "hash_password",
    "verify_password",
    "generate_id",
    "generate_session_token",
    "generate_verification_value",
    "generate_invite_code",
    "utcnow",
    "as_utc",
]
