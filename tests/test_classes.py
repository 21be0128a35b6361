"""Classes, invite codes and capacity-gated enrollment."""

from __future__ import annotations

import asyncio

import pytest

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
from classroom.models import DEFAULT_CAPACITY, ClassStatus, Role
from classroom.services import ClassStore
from classroom.services import classes as classes_module


@pytest.fixture
def teacher(make_user):
    return make_user(Role.TEACHER)


@pytest.fixture
def subject(make_subject):
    return make_subject()


def test_create_class_defaults(make_class, subject, teacher):
    klass = make_class(subject.id, teacher.id)

    assert klass.capacity == DEFAULT_CAPACITY
    assert klass.status == ClassStatus.ACTIVE
    assert klass.schedules == []
    assert len(klass.invite_code) == 8
    assert not set(klass.invite_code) & set("0O1I")
    assert klass.invite_code == klass.invite_code.upper()


def test_schedules_are_stored_verbatim(run, make_class, subject, teacher):
    schedules = [
        {"day": "Monday", "startTime": "09:00", "endTime": "10:30"},
        {"day": "Thursday", "startTime": "14:00", "endTime": "15:30", "room": "B2"},
    ]
    klass = make_class(subject.id, teacher.id, schedules=schedules)

    loaded = run(lambda session: ClassStore(session).get_class(klass.id))

    assert loaded.schedules == schedules


@pytest.mark.parametrize("capacity", [0, -3])
def test_capacity_must_be_positive(make_class, subject, teacher, capacity):
    with pytest.raises(InvalidCapacityError):
        make_class(subject.id, teacher.id, capacity=capacity)


def test_create_class_requires_subject_and_teacher(make_class, make_user, subject, teacher):
    student = make_user(Role.STUDENT)

    with pytest.raises(UnknownSubjectError):
        make_class(999, teacher.id)
    with pytest.raises(UnknownTeacherError):
        make_class(subject.id, "missing")
    with pytest.raises(UnknownTeacherError):
        make_class(subject.id, student.id)


def test_invite_codes_are_distinct(make_class, subject, teacher):
    codes = {make_class(subject.id, teacher.id).invite_code for _ in range(5)}

    assert len(codes) == 5


def test_invite_code_collisions_are_retried(
    monkeypatch, make_class, subject, teacher
):
    first = make_class(subject.id, teacher.id)
    codes = iter([first.invite_code, first.invite_code, "FRESH234"])
    monkeypatch.setattr(classes_module, "generate_invite_code", lambda: next(codes))

    second = make_class(subject.id, teacher.id)

    assert second.invite_code == "FRESH234"


def test_invite_code_allocation_gives_up(monkeypatch, make_class, subject, teacher):
    first = make_class(subject.id, teacher.id)
    monkeypatch.setattr(
        classes_module, "generate_invite_code", lambda: first.invite_code
    )

    with pytest.raises(InviteCodeUnavailableError):
        make_class(subject.id, teacher.id)


def test_list_classes_filters(run, make_class, make_user, make_subject, teacher):
    other_teacher = make_user(Role.TEACHER)
    first_subject = make_subject()
    second_subject = make_subject()
    a = make_class(first_subject.id, teacher.id)
    b = make_class(second_subject.id, teacher.id)
    c = make_class(first_subject.id, other_teacher.id)
    run(lambda session: ClassStore(session).update_class_status(c.id, ClassStatus.ARCHIVED))

    by_subject = run(
        lambda session: ClassStore(session).list_classes(subject_id=first_subject.id)
    )
    by_teacher = run(lambda session: ClassStore(session).list_classes(teacher_id=teacher.id))
    archived = run(
        lambda session: ClassStore(session).list_classes(status=ClassStatus.ARCHIVED)
    )

    assert [k.id for k in by_subject] == [a.id, c.id]
    assert [k.id for k in by_teacher] == [a.id, b.id]
    assert [k.id for k in archived] == [c.id]


def test_enroll_and_unenroll(run, make_class, make_user, subject, teacher):
    student = make_user(Role.STUDENT)
    klass = make_class(subject.id, teacher.id)

    enrollment = run(lambda session: ClassStore(session).enroll(student.id, klass.id))
    assert enrollment.student_id == student.id
    assert enrollment.class_id == klass.id

    assert run(lambda session: ClassStore(session).unenroll(student.id, klass.id)) is True
    assert run(lambda session: ClassStore(session).unenroll(student.id, klass.id)) is False
    assert run(lambda session: ClassStore(session).count_enrollments(klass.id)) == 0


def test_double_enrollment_is_rejected(run, make_class, make_user, subject, teacher):
    student = make_user(Role.STUDENT)
    klass = make_class(subject.id, teacher.id)
    run(lambda session: ClassStore(session).enroll(student.id, klass.id))

    with pytest.raises(AlreadyEnrolledError):
        run(lambda session: ClassStore(session).enroll(student.id, klass.id))

    assert run(lambda session: ClassStore(session).count_enrollments(klass.id)) == 1


def test_enroll_rejects_unknown_class_and_non_students(
    run, make_class, make_user, subject, teacher
):
    student = make_user(Role.STUDENT)
    klass = make_class(subject.id, teacher.id)

    with pytest.raises(UnknownClassError):
        run(lambda session: ClassStore(session).enroll(student.id, 999))
    with pytest.raises(UnknownStudentError):
        run(lambda session: ClassStore(session).enroll(teacher.id, klass.id))


def test_capacity_is_enforced(run, make_class, make_user, subject, teacher):
    klass = make_class(subject.id, teacher.id, capacity=2)
    students = [make_user(Role.STUDENT) for _ in range(3)]

    for student in students[:2]:
        run(lambda session, s=student: ClassStore(session).enroll(s.id, klass.id))

    with pytest.raises(CapacityExceededError):
        run(lambda session: ClassStore(session).enroll(students[2].id, klass.id))

    assert run(lambda session: ClassStore(session).count_enrollments(klass.id)) == 2


def test_concurrent_enrollment_for_last_seat(database, make_class, make_user, subject, teacher):
    klass = make_class(subject.id, teacher.id, capacity=1)
    first, second = make_user(Role.STUDENT), make_user(Role.STUDENT)

    async def attempt(student_id):
        async with database.session() as session:
            return await ClassStore(session).enroll(student_id, klass.id)

    async def race():
        return await asyncio.gather(
            attempt(first.id),
            attempt(second.id),
            return_exceptions=True,
        )

    results = asyncio.run(race())

    failures = [r for r in results if isinstance(r, Exception)]
    assert len(failures) == 1
    assert isinstance(failures[0], CapacityExceededError)

    async def count():
        async with database.session() as session:
            return await ClassStore(session).count_enrollments(klass.id)

    assert asyncio.run(count()) == 1


def test_enroll_with_invite_code_is_case_insensitive(
    run, make_class, make_user, subject, teacher
):
    student = make_user(Role.STUDENT)
    klass = make_class(subject.id, teacher.id)

    enrollment = run(
        lambda session: ClassStore(session).enroll_with_invite_code(
            student.id, f"  {klass.invite_code.lower()} "
        )
    )

    assert enrollment.class_id == klass.id


def test_unknown_invite_code(run, make_user):
    student = make_user(Role.STUDENT)

    with pytest.raises(UnknownClassError):
        run(lambda session: ClassStore(session).enroll_with_invite_code(student.id, "NOPE2345"))


def test_delete_class_removes_enrollments(run, make_class, make_user, subject, teacher):
    student = make_user(Role.STUDENT)
    klass = make_class(subject.id, teacher.id)
    run(lambda session: ClassStore(session).enroll(student.id, klass.id))

    plan = run(lambda session: ClassStore(session).delete_class(klass.id))

    assert plan.summary() == {"enrollments": 1, "classes": 1}
    with pytest.raises(UnknownClassError):
        run(lambda session: ClassStore(session).get_class(klass.id))
