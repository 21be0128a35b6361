"""Security helpers for password hashing and opaque token generation."""

from __future__ import annotations

import base64
import hashlib
import hmac
import os
import secrets
import string
import uuid
from datetime import datetime, timezone

_SALT_BYTES = 16
_ITERATIONS = 120_000
_INVITE_CODE_LENGTH = 8
# No 0/O or 1/I so codes survive being read aloud or copied by hand.
_INVITE_CODE_CHARSET = "".join(
    c for c in string.ascii_uppercase + string.digits if c not in "0O1I"
)


def hash_password(password: str) -> str:
    """Return a salted PBKDF2 hash for the supplied password."""

    salt = os.urandom(_SALT_BYTES)
    derived = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt,
        _ITERATIONS,
    )
    return base64.b64encode(salt + derived).decode("utf-8")


def verify_password(password: str, hashed: str | None) -> bool:
    """Check whether the provided password matches the stored hash."""

    if not hashed:
        return False

    try:
        decoded = base64.b64decode(hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False

    salt = decoded[:_SALT_BYTES]
    stored = decoded[_SALT_BYTES:]
    candidate = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt,
        _ITERATIONS,
    )
    return hmac.compare_digest(candidate, stored)


def generate_id() -> str:
    """Opaque primary key for identity records."""

    return uuid.uuid4().hex


def generate_session_token() -> str:
    return secrets.token_urlsafe(32)


def generate_verification_value() -> str:
    return secrets.token_urlsafe(24)


def generate_invite_code(length: int = _INVITE_CODE_LENGTH) -> str:
    """Create a human-friendly class invite code."""

    return "".join(secrets.choice(_INVITE_CODE_CHARSET) for _ in range(length))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as returned by SQLite) as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


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
