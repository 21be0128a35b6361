"""Departments and subjects."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from classroom.database import atomic
from classroom.errors import (
    DuplicateCodeError,
    UnknownDepartmentError,
    UnknownSubjectError,
)
from classroom.models import Department, Subject
from classroom.services.integrity import DeletePlan, IntegrityPolicy
from classroom.telemetry import record_deleted_rows

logger = logging.getLogger(__name__)


def _is_foreign_key_violation(exc: IntegrityError) -> bool:
    return "foreign key" in str(exc.orig).lower()


class CatalogStore:
    """Keyed CRUD over the catalog; codes are unique per table."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # Departments

    async def create_department(
        self,
        code: str,
        name: str,
        description: Optional[str] = None,
    ) -> Department:
        department = Department(code=code, name=name, description=description)
        async with atomic(self.session):
            self.session.add(department)
            try:
                await self.session.flush()
            except IntegrityError as exc:
                raise DuplicateCodeError(
                    f"Department code '{code}' already exists", code=code
                ) from exc

        await self.session.refresh(department)
        logger.info("Created department %s (%s)", department.id, department.code)
        return department

    async def get_department(self, department_id: int) -> Department:
        department = await self.session.get(Department, department_id)
        if department is None:
            raise UnknownDepartmentError(id=department_id)
        return department

    async def list_departments(self) -> list[Department]:
        result = await self.session.execute(select(Department).order_by(Department.code))
        return list(result.scalars().all())

    async def delete_department(self, department_id: int) -> DeletePlan:
        """Remove a department; rejected while any subject still references it."""

        async with atomic(self.session):
            await self.get_department(department_id)
            plan = await IntegrityPolicy(self.session).delete(Department, department_id)
        record_deleted_rows(plan.summary())
        return plan

    # Subjects

    async def create_subject(
        self,
        department_id: int,
        code: str,
        name: str,
        description: Optional[str] = None,
    ) -> Subject:
        async with atomic(self.session):
            await self.get_department(department_id)
            subject = Subject(
                department_id=department_id,
                code=code,
                name=name,
                description=description,
            )
            self.session.add(subject)
            try:
                await self.session.flush()
            except IntegrityError as exc:
                if _is_foreign_key_violation(exc):
                    raise UnknownDepartmentError(id=department_id) from exc
                raise DuplicateCodeError(
                    f"Subject code '{code}' already exists", code=code
                ) from exc

        await self.session.refresh(subject)
        logger.info("Created subject %s (%s)", subject.id, subject.code)
        return subject

    async def get_subject(self, subject_id: int) -> Subject:
        subject = await self.session.get(Subject, subject_id)
        if subject is None:
            raise UnknownSubjectError(id=subject_id)
        return subject

    async def list_subjects(
        self,
        *,
        department_id: Optional[int] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[tuple[Subject, Department]], int]:
        """Return one page of subjects with their department, plus the total."""

        filters = []
        if department_id is not None:
            filters.append(Subject.department_id == department_id)
        if search:
            pattern = f"%{search.lower()}%"
            filters.append(
                or_(
                    func.lower(Subject.name).like(pattern),
                    func.lower(Subject.code).like(pattern),
                )
            )

        total = await self.session.execute(
            select(func.count(Subject.id)).where(*filters)
        )
        rows = await self.session.execute(
            select(Subject, Department)
            .join(Department, Department.id == Subject.department_id)
            .where(*filters)
            .order_by(Subject.created_at.desc(), Subject.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return [(subject, department) for subject, department in rows.all()], total.scalar_one()

    async def update_subject(
        self,
        subject_id: int,
        *,
        name: Optional[str] = None,
        code: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Subject:
        async with atomic(self.session):
            subject = await self.get_subject(subject_id)
            if name is not None:
                subject.name = name
            if code is not None:
                subject.code = code
            if description is not None:
                subject.description = description
            try:
                await self.session.flush()
            except IntegrityError as exc:
                raise DuplicateCodeError(
                    f"Subject code '{code}' already exists", code=code
                ) from exc

        await self.session.refresh(subject)
        return subject

    async def delete_subject(self, subject_id: int) -> DeletePlan:
        """Remove a subject together with its classes and their enrollments."""

        async with atomic(self.session):
            await self.get_subject(subject_id)
            plan = await IntegrityPolicy(self.session).delete(Subject, subject_id)
        record_deleted_rows(plan.summary())
        return plan


__all__ = ["CatalogStore"]
