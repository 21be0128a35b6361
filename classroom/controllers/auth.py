"""Authentication controller: sign-up, sign-in, sessions and email verification.

Mounted under ``/api/auth``, which the security middleware treats as public;
these handlers resolve the session token themselves where they need one.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Request, Response, status

from classroom.config.settings import settings
from classroom.controllers.dependencies import IdentityStoreDep
from classroom.errors import UnauthenticatedError, UnknownUserError
from classroom.middleware.security import AUTH_PREFIX, extract_session_token
from classroom.models import Role, User, UserSession
from classroom.services import SessionMetadata
from classroom.telemetry import increment_login
from classroom.views import (
    AuthResponse,
    CurrentSessionResponse,
    SessionResponse,
    SignInRequest,
    SignUpRequest,
    UserResponse,
    VerificationIssuedResponse,
    VerificationRequest,
    VerifyEmailRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix=AUTH_PREFIX, tags=["auth"])


def _session_metadata(request: Request) -> SessionMetadata:
    user_agent = request.headers.get("user-agent")
    return SessionMetadata(
        ip_address=request.client.host if request.client else None,
        user_agent=user_agent[:512] if user_agent else None,
    )


def _issue_cookie(response: Response, user_session: UserSession) -> None:
    response.set_cookie(
        settings.security.session_cookie_name,
        user_session.token,
        max_age=settings.security.session_expires_minutes * 60,
        httponly=True,
        secure=not settings.debug,
        samesite="lax",
    )


def _auth_response(user: User, user_session: UserSession) -> AuthResponse:
    return AuthResponse(
        token=user_session.token,
        expires_at=user_session.expires_at,
        user=UserResponse.model_validate(user),
    )


@router.post(
    "/sign-up/email",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
)
async def sign_up(
    payload: SignUpRequest,
    request: Request,
    response: Response,
    store: IdentityStoreDep,
) -> AuthResponse:
    """Register a user with a password credential and sign them in."""

    user = await store.create_user(
        name=payload.name.strip(),
        email=payload.email,
        role=Role(payload.role),
        image=payload.image,
        password=payload.password,
    )
    user_session = await store.create_session(user.id, _session_metadata(request))
    increment_login()
    _issue_cookie(response, user_session)
    return _auth_response(user, user_session)


@router.post("/sign-in/email", response_model=AuthResponse)
async def sign_in(
    payload: SignInRequest,
    request: Request,
    response: Response,
    store: IdentityStoreDep,
) -> AuthResponse:
    """Validate credentials and open a new session."""

    user = await store.authenticate(payload.email, payload.password)
    user_session = await store.create_session(user.id, _session_metadata(request))
    increment_login()
    _issue_cookie(response, user_session)
    return _auth_response(user, user_session)


@router.post("/sign-out")
async def sign_out(
    request: Request,
    response: Response,
    store: IdentityStoreDep,
) -> dict[str, bool]:
    token = extract_session_token(request)
    if not token:
        raise UnauthenticatedError()

    await store.revoke_session(token)
    response.delete_cookie(settings.security.session_cookie_name)
    return {"success": True}


@router.get("/get-session", response_model=Optional[CurrentSessionResponse])
async def get_session(
    request: Request,
    store: IdentityStoreDep,
) -> Optional[CurrentSessionResponse]:
    """Return the caller's session, or ``null`` when there is none."""

    try:
        user, user_session = await store.validate_session(extract_session_token(request))
    except UnauthenticatedError:
        return None

    return CurrentSessionResponse(
        session=SessionResponse.model_validate(user_session),
        user=UserResponse.model_validate(user),
    )


@router.post(
    "/send-verification-email",
    response_model=VerificationIssuedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def send_verification_email(
    payload: VerificationRequest,
    store: IdentityStoreDep,
) -> VerificationIssuedResponse:
    verification = await store.issue_verification(payload.email.lower())
    logger.info("Issued email verification for %s", verification.identifier)
    return VerificationIssuedResponse(
        expires_at=verification.expires_at,
        value=verification.value if settings.debug else None,
    )


@router.post("/verify-email", response_model=UserResponse)
async def verify_email(
    payload: VerifyEmailRequest,
    store: IdentityStoreDep,
) -> UserResponse:
    email = payload.email.lower()
    await store.consume_verification(email, payload.value)
    user = await store.mark_email_verified(email)
    if user is None:
        raise UnknownUserError(email=email)
    return UserResponse.model_validate(user)
