"""Subject catalog endpoints."""

from __future__ import annotations

import math
from typing import Annotated, Optional

from fastapi import APIRouter, Query, Response, status

from classroom.controllers.dependencies import AdminDep, CatalogStoreDep, PrincipalDep
from classroom.models import Department, Subject
from classroom.views import (
    DepartmentSummary,
    Pagination,
    SubjectCreateRequest,
    SubjectListResponse,
    SubjectResponse,
    SubjectUpdateRequest,
)

router = APIRouter(prefix="/api/subjects", tags=["subjects"])


def _serialize_subject(
    subject: Subject,
    department: Department | None = None,
) -> SubjectResponse:
    # Built field by field: the ORM relationship is never lazy-loaded here.
    return SubjectResponse(
        id=subject.id,
        department_id=subject.department_id,
        code=subject.code,
        name=subject.name,
        description=subject.description,
        created_at=subject.created_at,
        updated_at=subject.updated_at,
        department=(
            DepartmentSummary.model_validate(department) if department else None
        ),
    )


@router.get("/", response_model=SubjectListResponse)
async def list_subjects(
    store: CatalogStoreDep,
    _principal: PrincipalDep,
    search: Optional[str] = None,
    department_id: Annotated[Optional[int], Query(alias="departmentId", ge=1)] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> SubjectListResponse:
    """Return a page of subjects, optionally filtered by department or text."""

    rows, total = await store.list_subjects(
        department_id=department_id,
        search=search.strip() if search else None,
        page=page,
        limit=limit,
    )
    return SubjectListResponse(
        data=[_serialize_subject(subject, department) for subject, department in rows],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            totalPages=math.ceil(total / limit) if total else 0,
        ),
    )


@router.post(
    "/",
    response_model=SubjectResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_subject(
    payload: SubjectCreateRequest,
    store: CatalogStoreDep,
    _admin: AdminDep,
) -> SubjectResponse:
    subject = await store.create_subject(
        department_id=payload.department_id,
        code=payload.code.strip(),
        name=payload.name.strip(),
        description=payload.description,
    )
    return _serialize_subject(subject)


@router.get("/{subject_id}", response_model=SubjectResponse)
async def get_subject(
    subject_id: int,
    store: CatalogStoreDep,
    _principal: PrincipalDep,
) -> SubjectResponse:
    subject = await store.get_subject(subject_id)
    department = await store.get_department(subject.department_id)
    return _serialize_subject(subject, department)


@router.put("/{subject_id}", response_model=SubjectResponse)
async def update_subject(
    subject_id: int,
    payload: SubjectUpdateRequest,
    store: CatalogStoreDep,
    _admin: AdminDep,
) -> SubjectResponse:
    subject = await store.update_subject(
        subject_id,
        name=payload.name.strip() if payload.name is not None else None,
        code=payload.code.strip() if payload.code is not None else None,
        description=payload.description,
    )
    return _serialize_subject(subject)


@router.delete("/{subject_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_subject(
    subject_id: int,
    store: CatalogStoreDep,
    _admin: AdminDep,
) -> Response:
    """Delete a subject along with its classes and their enrollments."""

    await store.delete_subject(subject_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
