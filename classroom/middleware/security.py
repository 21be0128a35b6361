"""Session resolution middleware.

Resolves the caller's session token (bearer header or session cookie) and
attaches a :class:`Principal` to ``request.state``. Only public paths are
reachable without a valid session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from classroom.config.settings import settings
from classroom.database import TRANSIENT_ERRORS, Database
from classroom.errors import TransientStoreError, UnauthenticatedError, error_response
from classroom.models import Role
from classroom.services.identity import IdentityStore

logger = logging.getLogger(__name__)

AUTH_PREFIX = "/api/auth"
PUBLIC_PATHS = frozenset({"/", "/health", "/metrics", "/openapi.json"})
PUBLIC_PREFIXES = (AUTH_PREFIX, "/docs", "/redoc")


@dataclass(frozen=True, slots=True)
class Principal:
    """The authenticated caller of the current request."""

    user_id: str
    role: Role
    session_id: str
    expires_at: datetime


def under_prefix(path: str, prefix: str) -> bool:
    """True for ``prefix`` itself and paths below it, never for siblings like ``/api/authors``."""

    return path == prefix or path.startswith(prefix + "/")


def is_public_path(path: str) -> bool:
    return path in PUBLIC_PATHS or any(
        under_prefix(path, prefix) for prefix in PUBLIC_PREFIXES
    )


def extract_session_token(request: Request) -> Optional[str]:
    """Return the session token from the bearer header or the session cookie."""

    auth_header = request.headers.get("authorization")
    if auth_header:
        scheme, _, token = auth_header.partition(" ")
        if scheme.lower() == "bearer" and token:
            return token.strip()

    return request.cookies.get(settings.security.session_cookie_name) or None


class SecurityMiddleware(BaseHTTPMiddleware):
    """Reject requests without a live session unless the path is public."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if request.method == "OPTIONS" or is_public_path(request.url.path):
            return await call_next(request)

        database: Database = request.app.state.database
        token = extract_session_token(request)
        try:
            # The session is closed before the route runs so no transaction
            # is held across the handler.
            async with database.session() as session:
                user, user_session = await IdentityStore(session).validate_session(token)
        except UnauthenticatedError as exc:
            return error_response(exc)
        except TRANSIENT_ERRORS:
            logger.warning("Session lookup failed", exc_info=True)
            return error_response(TransientStoreError())

        request.state.principal = Principal(
            user_id=user.id,
            role=user.role,
            session_id=user_session.id,
            expires_at=user_session.expires_at,
        )
        return await call_next(request)
