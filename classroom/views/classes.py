"""Pydantic schemas for classes and enrollments."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from classroom.models import DEFAULT_CAPACITY, ClassStatus
from classroom.views.common import CamelModel


class ClassCreateRequest(CamelModel):
    """Payload to create a class.

    ``teacherId`` may only be chosen by admins; teachers always create
    classes for themselves.
    """

    subject_id: int = Field(..., ge=1)
    teacher_id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=255)
    capacity: int = Field(DEFAULT_CAPACITY, gt=0)
    description: Optional[str] = None
    banner_url: Optional[str] = None
    banner_cld_pub_id: Optional[str] = None
    schedules: list[dict[str, Any]] = Field(default_factory=list)


class ClassStatusUpdateRequest(CamelModel):
    status: ClassStatus


class ClassResponse(CamelModel):
    id: int
    subject_id: int
    teacher_id: str
    invite_code: str
    name: str
    capacity: int
    description: Optional[str] = None
    banner_url: Optional[str] = None
    banner_cld_pub_id: Optional[str] = None
    status: ClassStatus
    schedules: list[dict[str, Any]]
    created_at: datetime
    updated_at: datetime


class EnrollmentCreateRequest(CamelModel):
    """Teachers and admins name the student; students omit it."""

    student_id: Optional[str] = None


class JoinClassRequest(CamelModel):
    invite_code: str = Field(..., min_length=1, max_length=50)


class EnrollmentResponse(CamelModel):
    id: int
    student_id: str
    class_id: int
    created_at: datetime
    updated_at: datetime


__all__ = [
    "ClassCreateRequest",
    "ClassStatusUpdateRequest",
    "ClassResponse",
    "EnrollmentCreateRequest",
    "JoinClassRequest",
    "EnrollmentResponse",
]
