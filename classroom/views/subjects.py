"""Pydantic schemas for Subject resources."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from classroom.views.common import CamelModel, Pagination
from classroom.views.departments import DepartmentSummary


class SubjectCreateRequest(CamelModel):
    department_id: int = Field(..., ge=1)
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class SubjectUpdateRequest(CamelModel):
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None


class SubjectResponse(CamelModel):
    id: int
    department_id: int
    code: str
    name: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    department: Optional[DepartmentSummary] = None


class SubjectListResponse(BaseModel):
    data: list[SubjectResponse]
    pagination: Pagination


__all__ = [
    "SubjectCreateRequest",
    "SubjectUpdateRequest",
    "SubjectResponse",
    "SubjectListResponse",
]
