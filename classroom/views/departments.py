"""Pydantic schemas for Department resources."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from classroom.views.common import CamelModel


class DepartmentCreateRequest(CamelModel):
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class DepartmentSummary(CamelModel):
    id: int
    code: str
    name: str


class DepartmentResponse(CamelModel):
    id: int
    code: str
    name: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime


__all__ = ["DepartmentCreateRequest", "DepartmentResponse", "DepartmentSummary"]
