"""Pydantic schemas for user interactions."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from classroom.models import Role
from classroom.views.common import CamelModel


class UserResponse(CamelModel):
    """Serialized representation of a user."""

    id: str
    name: str
    email: str
    email_verified: bool
    role: Role
    image: Optional[str] = None
    image_cld_pub_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class UserRoleUpdateRequest(CamelModel):
    role: Role


__all__ = ["UserResponse", "UserRoleUpdateRequest"]
