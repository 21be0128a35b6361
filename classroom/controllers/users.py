"""User endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from classroom.controllers.dependencies import AdminDep, IdentityStoreDep, PrincipalDep
from classroom.views import UserResponse, UserRoleUpdateRequest

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(
    store: IdentityStoreDep,
    principal: PrincipalDep,
) -> UserResponse:
    return UserResponse.model_validate(await store.get_user(principal.user_id))


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    store: IdentityStoreDep,
    _principal: PrincipalDep,
) -> UserResponse:
    return UserResponse.model_validate(await store.get_user(user_id))


@router.patch("/{user_id}/role", response_model=UserResponse)
async def update_user_role(
    user_id: str,
    payload: UserRoleUpdateRequest,
    store: IdentityStoreDep,
    _admin: AdminDep,
) -> UserResponse:
    """Only admins may change a user's role."""

    return UserResponse.model_validate(await store.update_role(user_id, payload.role))


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    store: IdentityStoreDep,
    _admin: AdminDep,
) -> Response:
    """Delete a user unless they still teach a class."""

    await store.delete_user(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
