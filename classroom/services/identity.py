"""Persistence of users, sessions, linked accounts and verification challenges."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from classroom.database import atomic
from classroom.errors import (
    DuplicateAccountError,
    DuplicateEmailError,
    InvalidCredentialsError,
    StudentHasEnrollmentsError,
    TeacherHasClassesError,
    UnauthenticatedError,
    UnknownUserError,
    VerificationExpiredError,
    VerificationMismatchError,
)
from classroom.models import (
    CREDENTIAL_PROVIDER,
    Account,
    Class,
    Enrollment,
    Role,
    User,
    UserSession,
    Verification,
)
from classroom.services.integrity import IntegrityPolicy
from classroom.telemetry import record_deleted_rows
from classroom.utils import (
    as_utc,
    generate_id,
    generate_session_token,
    generate_verification_value,
    hash_password,
    utcnow,
    verify_password,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SessionMetadata:
    """Client details recorded alongside a new session."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class IdentityStore:
    """Identity records consumed by the request pipeline and the auth routes."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        session_ttl: timedelta = timedelta(days=7),
        verification_ttl: timedelta = timedelta(hours=1),
    ) -> None:
        self.session = session
        self.session_ttl = session_ttl
        self.verification_ttl = verification_ttl

    # Users

    async def create_user(
        self,
        name: str,
        email: str,
        *,
        role: Role = Role.STUDENT,
        image: Optional[str] = None,
        email_verified: bool = False,
        password: Optional[str] = None,
    ) -> User:
        """Create a user; with ``password`` also link a credential account."""

        user = User(
            id=generate_id(),
            name=name,
            email=email.lower(),
            role=role,
            image=image,
            email_verified=email_verified,
        )
        async with atomic(self.session):
            self.session.add(user)
            try:
                await self.session.flush()
            except IntegrityError as exc:
                raise DuplicateEmailError(email=email) from exc

            if password is not None:
                self.session.add(
                    Account(
                        id=generate_id(),
                        user_id=user.id,
                        provider_id=CREDENTIAL_PROVIDER,
                        account_id=user.id,
                        password=hash_password(password),
                    )
                )

        await self.session.refresh(user)
        logger.info("Created %s user %s", user.role.value, user.id)
        return user

    async def find_user_by_id(self, user_id: str) -> Optional[User]:
        return await self.session.get(User, user_id)

    async def find_user_by_email(self, email: str) -> Optional[User]:
        result = await self.session.execute(
            select(User).where(User.email == email.lower())
        )
        return result.scalar_one_or_none()

    async def get_user(self, user_id: str) -> User:
        user = await self.find_user_by_id(user_id)
        if user is None:
            raise UnknownUserError(id=user_id)
        return user

    async def update_role(self, user_id: str, role: Role) -> User:
        """Change a user's role.

        A teacher who still owns classes stays a teacher, and an enrolled
        student stays a student, until those rows are gone.
        """

        async with atomic(self.session):
            user = await self.session.get(User, user_id, with_for_update=True)
            if user is None:
                raise UnknownUserError(id=user_id)
            if user.role != role:
                await self._ensure_role_unreferenced(user)
            user.role = role
        await self.session.refresh(user)
        return user

    async def _ensure_role_unreferenced(self, user: User) -> None:
        if user.role == Role.TEACHER:
            owned = await self.session.execute(
                select(Class.id).where(Class.teacher_id == user.id).limit(1)
            )
            if owned.first() is not None:
                raise TeacherHasClassesError(id=user.id)
        elif user.role == Role.STUDENT:
            enrolled = await self.session.execute(
                select(Enrollment.id).where(Enrollment.student_id == user.id).limit(1)
            )
            if enrolled.first() is not None:
                raise StudentHasEnrollmentsError(id=user.id)

    async def mark_email_verified(self, email: str) -> Optional[User]:
        async with atomic(self.session):
            user = await self.find_user_by_email(email)
            if user is None:
                return None
            user.email_verified = True
        await self.session.refresh(user)
        return user

    async def delete_user(self, user_id: str) -> None:
        """Delete a user unless they still teach a class.

        Enrollments, sessions and accounts owned by the user go with it.
        """

        async with atomic(self.session):
            await self.get_user(user_id)
            plan = await IntegrityPolicy(self.session).delete(User, user_id)
        record_deleted_rows(plan.summary())

    async def authenticate(self, email: str, password: str) -> User:
        """Return the user whose credential account matches ``password``."""

        user = await self.find_user_by_email(email)
        if user is None:
            raise InvalidCredentialsError()

        account = await self.find_account(CREDENTIAL_PROVIDER, user.id)
        if account is None or not verify_password(password, account.password):
            raise InvalidCredentialsError()
        return user

    # Sessions

    async def create_session(
        self,
        user_id: str,
        metadata: SessionMetadata | None = None,
    ) -> UserSession:
        """Persist a new login; sessions are never reused."""

        metadata = metadata or SessionMetadata()
        async with atomic(self.session):
            await self.get_user(user_id)
            user_session = UserSession(
                id=generate_id(),
                user_id=user_id,
                token=generate_session_token(),
                expires_at=utcnow() + self.session_ttl,
                ip_address=metadata.ip_address,
                user_agent=metadata.user_agent,
            )
            self.session.add(user_session)

        await self.session.refresh(user_session)
        return user_session

    async def validate_session(self, token: Optional[str]) -> tuple[User, UserSession]:
        """Resolve a session token to its user. Never extends the expiry."""

        if not token:
            raise UnauthenticatedError()

        result = await self.session.execute(
            select(UserSession, User)
            .join(User, User.id == UserSession.user_id)
            .where(UserSession.token == token)
        )
        row = result.first()
        if row is None:
            raise UnauthenticatedError()

        user_session, user = row
        if utcnow() >= as_utc(user_session.expires_at):
            raise UnauthenticatedError("Session has expired")
        return user, user_session

    async def revoke_session(self, token: str) -> None:
        async with atomic(self.session):
            await self.session.execute(
                delete(UserSession).where(UserSession.token == token)
            )

    # Accounts

    async def link_account(
        self,
        user_id: str,
        provider_id: str,
        account_id: str,
        *,
        password: Optional[str] = None,
        **tokens: Any,
    ) -> Account:
        """Attach a provider identity (or a password credential) to a user."""

        async with atomic(self.session):
            await self.get_user(user_id)
            account = Account(
                id=generate_id(),
                user_id=user_id,
                provider_id=provider_id,
                account_id=account_id,
                password=hash_password(password) if password is not None else None,
                access_token=tokens.get("access_token"),
                refresh_token=tokens.get("refresh_token"),
                access_token_expires_at=tokens.get("access_token_expires_at"),
                refresh_token_expires_at=tokens.get("refresh_token_expires_at"),
                scope=tokens.get("scope"),
                id_token=tokens.get("id_token"),
            )
            self.session.add(account)
            try:
                await self.session.flush()
            except IntegrityError as exc:
                raise DuplicateAccountError(
                    provider_id=provider_id,
                    account_id=account_id,
                ) from exc

        await self.session.refresh(account)
        return account

    async def find_account(self, provider_id: str, account_id: str) -> Optional[Account]:
        result = await self.session.execute(
            select(Account).where(
                Account.provider_id == provider_id,
                Account.account_id == account_id,
            )
        )
        return result.scalar_one_or_none()

    # Verification challenges

    async def issue_verification(self, identifier: str) -> Verification:
        async with atomic(self.session):
            verification = Verification(
                id=generate_id(),
                identifier=identifier,
                value=generate_verification_value(),
                expires_at=utcnow() + self.verification_ttl,
            )
            self.session.add(verification)
        await self.session.refresh(verification)
        return verification

    async def consume_verification(self, identifier: str, value: str) -> Verification:
        """Consume a challenge; a consumed or expired value cannot be reused."""

        async with atomic(self.session):
            result = await self.session.execute(
                select(Verification).where(
                    Verification.identifier == identifier,
                    Verification.value == value,
                )
            )
            verification = result.scalars().first()
            if verification is None:
                raise VerificationMismatchError(identifier=identifier)

            expires_at: datetime = as_utc(verification.expires_at)
            await self.session.delete(verification)

        if utcnow() >= expires_at:
            raise VerificationExpiredError(identifier=identifier)
        return verification


__all__ = ["IdentityStore", "SessionMetadata"]
