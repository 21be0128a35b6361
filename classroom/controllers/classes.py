"""Endpoints for classes and their enrollments."""

from __future__ import annotations

from typing import Annotated, Optional

from fastapi import APIRouter, Query, Response, status

from classroom.controllers.dependencies import (
    ClassStoreDep,
    PrincipalDep,
    StaffDep,
)
from classroom.errors import InvalidInputError, UnauthorizedError
from classroom.middleware.security import Principal
from classroom.models import Class, ClassStatus, Role
from classroom.views import (
    ClassCreateRequest,
    ClassResponse,
    ClassStatusUpdateRequest,
    EnrollmentCreateRequest,
    EnrollmentResponse,
    JoinClassRequest,
)

router = APIRouter(prefix="/api/classes", tags=["classes"])


def _ensure_can_manage(principal: Principal, klass: Class) -> None:
    if principal.role == Role.ADMIN:
        return
    if principal.role == Role.TEACHER and klass.teacher_id == principal.user_id:
        return
    raise UnauthorizedError("Only the class teacher or an admin can manage this class")


def _ensure_student(principal: Principal) -> None:
    if principal.role != Role.STUDENT:
        raise UnauthorizedError("Only students can enroll themselves")


@router.get("/", response_model=list[ClassResponse])
async def list_classes(
    store: ClassStoreDep,
    _principal: PrincipalDep,
    subject_id: Annotated[Optional[int], Query(alias="subjectId", ge=1)] = None,
    teacher_id: Annotated[Optional[str], Query(alias="teacherId")] = None,
    class_status: Annotated[Optional[ClassStatus], Query(alias="status")] = None,
) -> list[ClassResponse]:
    classes = await store.list_classes(
        subject_id=subject_id,
        teacher_id=teacher_id,
        status=class_status,
    )
    return [ClassResponse.model_validate(klass) for klass in classes]


@router.post(
    "/",
    response_model=ClassResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_class(
    payload: ClassCreateRequest,
    store: ClassStoreDep,
    principal: StaffDep,
) -> ClassResponse:
    """Teachers create classes for themselves; admins assign any teacher."""

    if principal.role == Role.ADMIN:
        if not payload.teacher_id:
            raise InvalidInputError("teacherId is required", field="teacherId")
        teacher_id = payload.teacher_id
    else:
        if payload.teacher_id not in (None, principal.user_id):
            raise UnauthorizedError("Teachers can only create their own classes")
        teacher_id = principal.user_id

    klass = await store.create_class(
        subject_id=payload.subject_id,
        teacher_id=teacher_id,
        name=payload.name.strip(),
        capacity=payload.capacity,
        schedules=payload.schedules,
        description=payload.description,
        banner_url=payload.banner_url,
        banner_cld_pub_id=payload.banner_cld_pub_id,
    )
    return ClassResponse.model_validate(klass)


@router.post(
    "/join",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def join_class(
    payload: JoinClassRequest,
    store: ClassStoreDep,
    principal: PrincipalDep,
) -> EnrollmentResponse:
    """Self-service enrollment with a class invite code."""

    _ensure_student(principal)
    enrollment = await store.enroll_with_invite_code(
        principal.user_id,
        payload.invite_code,
    )
    return EnrollmentResponse.model_validate(enrollment)


@router.get("/{class_id}", response_model=ClassResponse)
async def get_class(
    class_id: int,
    store: ClassStoreDep,
    _principal: PrincipalDep,
) -> ClassResponse:
    return ClassResponse.model_validate(await store.get_class(class_id))


@router.patch("/{class_id}/status", response_model=ClassResponse)
async def update_class_status(
    class_id: int,
    payload: ClassStatusUpdateRequest,
    store: ClassStoreDep,
    principal: PrincipalDep,
) -> ClassResponse:
    _ensure_can_manage(principal, await store.get_class(class_id))
    klass = await store.update_class_status(class_id, payload.status)
    return ClassResponse.model_validate(klass)


@router.delete("/{class_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_class(
    class_id: int,
    store: ClassStoreDep,
    principal: PrincipalDep,
) -> Response:
    """Delete a class and every enrollment in it."""

    _ensure_can_manage(principal, await store.get_class(class_id))
    await store.delete_class(class_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{class_id}/enrollments", response_model=list[EnrollmentResponse])
async def list_enrollments(
    class_id: int,
    store: ClassStoreDep,
    principal: PrincipalDep,
) -> list[EnrollmentResponse]:
    _ensure_can_manage(principal, await store.get_class(class_id))
    enrollments = await store.list_enrollments(class_id)
    return [EnrollmentResponse.model_validate(item) for item in enrollments]


@router.post(
    "/{class_id}/enrollments",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def enroll(
    class_id: int,
    store: ClassStoreDep,
    principal: PrincipalDep,
    payload: Optional[EnrollmentCreateRequest] = None,
) -> EnrollmentResponse:
    """Students enroll themselves; the class teacher or an admin may add a student."""

    student_id = payload.student_id if payload else None
    if principal.role == Role.STUDENT:
        if student_id not in (None, principal.user_id):
            raise UnauthorizedError("Students can only enroll themselves")
        student_id = principal.user_id
    else:
        _ensure_can_manage(principal, await store.get_class(class_id))
        if not student_id:
            raise InvalidInputError("studentId is required", field="studentId")

    enrollment = await store.enroll(student_id, class_id)
    return EnrollmentResponse.model_validate(enrollment)


@router.delete(
    "/{class_id}/enrollments/{student_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def unenroll(
    class_id: int,
    student_id: str,
    store: ClassStoreDep,
    principal: PrincipalDep,
) -> Response:
    """Remove a student from a class; succeeds even if they were not enrolled."""

    klass = await store.get_class(class_id)
    if student_id != principal.user_id:
        _ensure_can_manage(principal, klass)

    await store.unenroll(student_id, class_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
