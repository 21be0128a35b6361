"""Classes and enrollments.

Capacity-gated enrollment locks the class row for the rest of the transaction
(``SELECT ... FOR UPDATE`` on PostgreSQL; SQLite connections already hold the
database write lock from ``BEGIN IMMEDIATE``). Two students racing for the
last seat are therefore serialized: the second one sees the first one's row
and gets :class:`CapacityExceededError`.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from classroom.database import atomic
from classroom.errors import (
    AlreadyEnrolledError,
    CapacityExceededError,
    InvalidCapacityError,
    InviteCodeUnavailableError,
    UnknownClassError,
    UnknownStudentError,
    UnknownSubjectError,
    UnknownTeacherError,
)
from classroom.models import (
    DEFAULT_CAPACITY,
    Class,
    ClassStatus,
    Enrollment,
    Role,
    Subject,
    User,
)
from classroom.services.integrity import DeletePlan, IntegrityPolicy
from classroom.telemetry import record_deleted_rows, record_enrollment
from classroom.utils import generate_invite_code

logger = logging.getLogger(__name__)

INVITE_CODE_ATTEMPTS = 10


def _validate_capacity(capacity: Any) -> int:
    if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity <= 0:
        raise InvalidCapacityError(capacity=capacity)
    return capacity


class ClassStore:
    """Classes owned by a subject and taught by a teacher, plus their roster."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_class(
        self,
        subject_id: int,
        teacher_id: str,
        name: str,
        *,
        capacity: Optional[int] = None,
        schedules: Sequence[dict[str, Any]] = (),
        description: Optional[str] = None,
        banner_url: Optional[str] = None,
        banner_cld_pub_id: Optional[str] = None,
    ) -> Class:
        capacity = _validate_capacity(DEFAULT_CAPACITY if capacity is None else capacity)

        async with atomic(self.session):
            if await self.session.get(Subject, subject_id) is None:
                raise UnknownSubjectError(id=subject_id)
            # FOR SHARE: the role cannot change until this transaction ends.
            teacher = await self.session.get(
                User, teacher_id, with_for_update={"read": True}
            )
            if teacher is None or teacher.role != Role.TEACHER:
                raise UnknownTeacherError(id=teacher_id)

            klass = await self._insert_with_invite_code(
                subject_id=subject_id,
                teacher_id=teacher_id,
                name=name,
                capacity=capacity,
                schedules=list(schedules),
                description=description,
                banner_url=banner_url,
                banner_cld_pub_id=banner_cld_pub_id,
            )

        await self.session.refresh(klass)
        logger.info("Created class %s (invite %s)", klass.id, klass.invite_code)
        return klass

    async def _insert_with_invite_code(self, **values: Any) -> Class:
        # Collisions are caught by the unique index, then retried in a fresh savepoint.
        for attempt in range(1, INVITE_CODE_ATTEMPTS + 1):
            klass = Class(invite_code=generate_invite_code(), **values)
            try:
                async with self.session.begin_nested():
                    self.session.add(klass)
            except IntegrityError:
                logger.warning("Invite code collision on attempt %d", attempt)
                continue
            return klass
        raise InviteCodeUnavailableError(attempts=INVITE_CODE_ATTEMPTS)

    async def get_class(self, class_id: int) -> Class:
        klass = await self.session.get(Class, class_id)
        if klass is None:
            raise UnknownClassError(id=class_id)
        return klass

    async def get_class_by_invite_code(self, invite_code: str) -> Class:
        result = await self.session.execute(
            select(Class).where(Class.invite_code == invite_code.strip().upper())
        )
        klass = result.scalar_one_or_none()
        if klass is None:
            raise UnknownClassError(invite_code=invite_code)
        return klass

    async def list_classes(
        self,
        *,
        subject_id: Optional[int] = None,
        teacher_id: Optional[str] = None,
        status: Optional[ClassStatus] = None,
    ) -> list[Class]:
        query = select(Class).order_by(Class.id)
        if subject_id is not None:
            query = query.where(Class.subject_id == subject_id)
        if teacher_id is not None:
            query = query.where(Class.teacher_id == teacher_id)
        if status is not None:
            query = query.where(Class.status == status)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def update_class_status(self, class_id: int, status: ClassStatus) -> Class:
        async with atomic(self.session):
            klass = await self.get_class(class_id)
            klass.status = status
        await self.session.refresh(klass)
        return klass

    async def delete_class(self, class_id: int) -> DeletePlan:
        """Remove a class and all of its enrollments."""

        async with atomic(self.session):
            await self.get_class(class_id)
            plan = await IntegrityPolicy(self.session).delete(Class, class_id)
        record_deleted_rows(plan.summary())
        return plan

    # Enrollments

    async def count_enrollments(self, class_id: int) -> int:
        result = await self.session.execute(
            select(func.count(Enrollment.id)).where(Enrollment.class_id == class_id)
        )
        return result.scalar_one()

    async def list_enrollments(self, class_id: int) -> list[Enrollment]:
        await self.get_class(class_id)
        result = await self.session.execute(
            select(Enrollment)
            .where(Enrollment.class_id == class_id)
            .order_by(Enrollment.id)
        )
        return list(result.scalars().all())

    async def enroll(self, student_id: str, class_id: int) -> Enrollment:
        """Add a student to a class if a seat is free."""

        try:
            async with atomic(self.session):
                klass = await self._lock_class(class_id)
                student = await self.session.get(
                    User, student_id, with_for_update={"read": True}
                )
                if student is None or student.role != Role.STUDENT:
                    raise UnknownStudentError(id=student_id)

                enrollment = Enrollment(student_id=student_id, class_id=class_id)
                self.session.add(enrollment)
                try:
                    await self.session.flush()
                except IntegrityError as exc:
                    raise AlreadyEnrolledError(
                        student_id=student_id,
                        class_id=class_id,
                    ) from exc

                # Counted under the class lock, including the row just inserted.
                if await self.count_enrollments(class_id) > klass.capacity:
                    raise CapacityExceededError(
                        class_id=class_id,
                        capacity=klass.capacity,
                    )
        except (AlreadyEnrolledError, CapacityExceededError) as exc:
            record_enrollment(exc.code)
            raise

        record_enrollment("enrolled")
        await self.session.refresh(enrollment)
        logger.info("Enrolled student %s in class %s", student_id, class_id)
        return enrollment

    async def enroll_with_invite_code(self, student_id: str, invite_code: str) -> Enrollment:
        klass = await self.get_class_by_invite_code(invite_code)
        return await self.enroll(student_id, klass.id)

    async def unenroll(self, student_id: str, class_id: int) -> bool:
        """Remove an enrollment; returns False when there was nothing to remove."""

        async with atomic(self.session):
            result = await self.session.execute(
                delete(Enrollment).where(
                    Enrollment.student_id == student_id,
                    Enrollment.class_id == class_id,
                )
            )
        return result.rowcount > 0

    async def _lock_class(self, class_id: int) -> Class:
        result = await self.session.execute(
            select(Class)
            .where(Class.id == class_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        klass = result.scalar_one_or_none()
        if klass is None:
            raise UnknownClassError(id=class_id)
        return klass


__all__ = ["ClassStore", "INVITE_CODE_ATTEMPTS"]
