"""Shared fixtures: an isolated SQLite store per test and an API client bound to it."""

from __future__ import annotations

import asyncio
from pathlib import Path
import sys
from typing import Any, Awaitable, Callable, TypeVar

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from classroom.database import Database  # noqa: E402
from classroom.main import create_app  # noqa: E402
from classroom.models import Role  # noqa: E402
from classroom.services import CatalogStore, ClassStore, IdentityStore  # noqa: E402

T = TypeVar("T")


@pytest.fixture
def database(tmp_path: Path) -> Database:
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    asyncio.run(db.init_models())
    yield db
    asyncio.run(db.dispose())


@pytest.fixture
def run(database: Database) -> Callable[[Callable[..., Awaitable[T]]], T]:
    """Run ``scenario(session)`` inside a fresh session and return its result.

    Each call gets its own session, so the SQLite write lock is released
    between calls.
    """

    def runner(scenario: Callable[..., Awaitable[T]]) -> T:
        async def wrapped() -> T:
            async with database.session() as session:
                return await scenario(session)

        return asyncio.run(wrapped())

    return runner


@pytest.fixture
def make_user(run) -> Callable[..., Any]:
    counter = {"n": 0}

    def factory(role: Role = Role.STUDENT, *, name: str | None = None, password: str | None = None):
        counter["n"] += 1
        n = counter["n"]
        return run(
            lambda session: IdentityStore(session).create_user(
                name=name or f"{role.value.title()} {n}",
                email=f"{role.value}{n}@example.com",
                role=role,
                password=password,
            )
        )

    return factory


@pytest.fixture
def make_subject(run) -> Callable[..., Any]:
    counter = {"n": 0}

    def factory(department_id: int | None = None):
        counter["n"] += 1
        n = counter["n"]

        async def scenario(session):
            store = CatalogStore(session)
            dept_id = department_id
            if dept_id is None:
                department = await store.create_department(f"D{n}", f"Department {n}")
                dept_id = department.id
            return await store.create_subject(dept_id, f"S{n}", f"Subject {n}")

        return run(scenario)

    return factory


@pytest.fixture
def make_class(run) -> Callable[..., Any]:
    def factory(subject_id: int, teacher_id: str, **kwargs: Any):
        kwargs.setdefault("name", "Section A")
        return run(
            lambda session: ClassStore(session).create_class(
                subject_id, teacher_id, **kwargs
            )
        )

    return factory


@pytest.fixture
def client(database: Database) -> TestClient:
    return TestClient(create_app(database=database))


@pytest.fixture
def login(run) -> Callable[[str], dict[str, str]]:
    """Open a session for ``user_id`` and return bearer auth headers."""

    def factory(user_id: str) -> dict[str, str]:
        user_session = run(lambda session: IdentityStore(session).create_session(user_id))
        return {"Authorization": f"Bearer {user_session.token}"}

    return factory
