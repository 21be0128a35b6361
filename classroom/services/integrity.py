"""Referential integrity policy applied on every delete path.

The rule table below is the single authority on what happens to dependent
rows when a parent is deleted. The same rules are declared as ``ON DELETE``
clauses on the foreign keys, but stores never rely on the engine for them:
every delete is planned here first, so restrict checks run before anything
is removed and cascades are issued explicitly, children first.

Callers own the transaction. Run :meth:`IntegrityPolicy.delete` inside
:func:`classroom.database.atomic` so a cascade is all-or-nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from classroom.errors import (
    ConflictError,
    HasDependentSubjectsError,
    TeacherHasClassesError,
)
from classroom.models import (
    Account,
    Class,
    Department,
    Enrollment,
    Subject,
    User,
    UserSession,
)

logger = logging.getLogger(__name__)


class DeleteAction(str, Enum):
    RESTRICT = "restrict"
    CASCADE = "cascade"


@dataclass(frozen=True, slots=True)
class DeleteRule:
    """What happens to ``child`` rows when their ``parent`` is deleted."""

    parent: type
    child: type
    foreign_key: str
    action: DeleteAction
    error: type[ConflictError] | None = None

    @property
    def column(self) -> Any:
        return getattr(self.child, self.foreign_key)


DELETE_RULES: tuple[DeleteRule, ...] = (
    DeleteRule(
        Department,
        Subject,
        "department_id",
        DeleteAction.RESTRICT,
        HasDependentSubjectsError,
    ),
    DeleteRule(Subject, Class, "subject_id", DeleteAction.CASCADE),
    DeleteRule(
        User,
        Class,
        "teacher_id",
        DeleteAction.RESTRICT,
        TeacherHasClassesError,
    ),
    DeleteRule(User, Enrollment, "student_id", DeleteAction.CASCADE),
    DeleteRule(Class, Enrollment, "class_id", DeleteAction.CASCADE),
    DeleteRule(User, UserSession, "user_id", DeleteAction.CASCADE),
    DeleteRule(User, Account, "user_id", DeleteAction.CASCADE),
)


@dataclass(slots=True)
class DeletePlan:
    """Ordered delete steps; dependents always precede their parents."""

    steps: list[tuple[type, list[Any]]] = field(default_factory=list)

    def count(self, model: type) -> int:
        return sum(len(ids) for step_model, ids in self.steps if step_model is model)

    def summary(self) -> dict[str, int]:
        totals: dict[str, int] = {}
        for model, ids in self.steps:
            totals[model.__tablename__] = totals.get(model.__tablename__, 0) + len(ids)
        return totals


class IntegrityPolicy:
    """Plans and executes deletes according to a set of :class:`DeleteRule`."""

    def __init__(
        self,
        session: AsyncSession,
        rules: Iterable[DeleteRule] = DELETE_RULES,
    ) -> None:
        self.session = session
        self.rules = tuple(rules)

    def rules_for(self, parent: type) -> list[DeleteRule]:
        return [rule for rule in self.rules if rule.parent is parent]

    async def plan(self, model: type, ids: Sequence[Any]) -> DeletePlan:
        """Check every restrict rule in the cascade tree without writing anything.

        Raises the first violated rule's error.
        """

        plan = DeletePlan()
        await self._collect(model, list(ids), plan)
        return plan

    async def delete(self, model: type, pk: Any) -> DeletePlan:
        """Delete one row and everything that cascades from it."""

        plan = await self.plan(model, [pk])
        try:
            for step_model, ids in plan.steps:
                await self.session.execute(
                    delete(step_model).where(step_model.id.in_(ids))
                )
        except IntegrityError as exc:
            # A dependent was inserted after the restrict checks ran.
            error = self._restrict_error(model)
            if error is None:
                raise
            raise error(model=model.__name__, id=pk) from exc

        logger.info(
            "Deleted %s %s with dependents %s",
            model.__name__,
            pk,
            plan.summary(),
        )
        return plan

    async def _collect(self, model: type, ids: list[Any], plan: DeletePlan) -> None:
        if not ids:
            return

        for rule in self.rules_for(model):
            if rule.action is DeleteAction.RESTRICT:
                blocking = await self.session.execute(
                    select(rule.column).where(rule.column.in_(ids)).limit(1)
                )
                if blocking.first() is not None:
                    raise (rule.error or ConflictError)(
                        model=model.__name__,
                        ids=ids,
                    )

        for rule in self.rules_for(model):
            if rule.action is DeleteAction.CASCADE:
                result = await self.session.execute(
                    select(rule.child.id).where(rule.column.in_(ids))
                )
                child_ids = list(result.scalars().all())
                await self._collect(rule.child, child_ids, plan)

        plan.steps.append((model, ids))

    def _restrict_error(self, model: type) -> type[ConflictError] | None:
        for rule in self.rules_for(model):
            if rule.action is DeleteAction.RESTRICT:
                return rule.error or ConflictError
        return None


__all__ = [
    "DeleteAction",
    "DeleteRule",
    "DeletePlan",
    "DELETE_RULES",
    "IntegrityPolicy",
]
