"""Common FastAPI dependencies reused across controllers."""

from __future__ import annotations

from datetime import timedelta
from typing import Annotated, Callable

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from classroom.config.settings import settings
from classroom.database import get_session
from classroom.errors import UnauthenticatedError, UnauthorizedError
from classroom.middleware.security import Principal
from classroom.models import Role
from classroom.services import CatalogStore, ClassStore, IdentityStore

SessionDep = Annotated[AsyncSession, Depends(get_session)]


def get_principal(request: Request) -> Principal:
    """Return the caller resolved by the security middleware."""

    principal = getattr(request.state, "principal", None)
    if principal is None:
        raise UnauthenticatedError()
    return principal


PrincipalDep = Annotated[Principal, Depends(get_principal)]


def require_roles(*roles: Role) -> Callable[[Principal], Principal]:
    """Dependency factory restricting a route to the given roles."""

    def dependency(principal: PrincipalDep) -> Principal:
        if principal.role not in roles:
            raise UnauthorizedError(
                f"Requires role: {', '.join(role.value for role in roles)}"
            )
        return principal

    return dependency


AdminDep = Annotated[Principal, Depends(require_roles(Role.ADMIN))]
StaffDep = Annotated[Principal, Depends(require_roles(Role.TEACHER, Role.ADMIN))]


def get_identity_store(session: SessionDep) -> IdentityStore:
    return IdentityStore(
        session,
        session_ttl=timedelta(minutes=settings.security.session_expires_minutes),
        verification_ttl=timedelta(
            minutes=settings.security.verification_expires_minutes
        ),
    )


def get_catalog_store(session: SessionDep) -> CatalogStore:
    return CatalogStore(session)


def get_class_store(session: SessionDep) -> ClassStore:
    return ClassStore(session)


IdentityStoreDep = Annotated[IdentityStore, Depends(get_identity_store)]
CatalogStoreDep = Annotated[CatalogStore, Depends(get_catalog_store)]
ClassStoreDep = Annotated[ClassStore, Depends(get_class_store)]


__all__ = [
    "SessionDep",
    "PrincipalDep",
    "AdminDep",
    "StaffDep",
    "get_principal",
    "require_roles",
    "IdentityStoreDep",
    "CatalogStoreDep",
    "ClassStoreDep",
]
